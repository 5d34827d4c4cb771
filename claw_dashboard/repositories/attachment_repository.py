"""Per-task attachment directories: ``{attachments_dir}/{task_id}/{name}``."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import List

from ..clock import iso_from_epoch, now_ms
from ..errors import NotFoundError
from ..schemas.attachment import AttachmentInfo
from .storage import FileInfo, StorageRepository, check_path_segment

logger = logging.getLogger("claw_dashboard.repositories.attachment_repository")

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".bmp"}

MIME_TYPES = {
    ".png": "image/png", ".jpg": "image/jpeg", ".jpeg": "image/jpeg",
    ".gif": "image/gif", ".webp": "image/webp", ".svg": "image/svg+xml",
    ".bmp": "image/bmp", ".pdf": "application/pdf",
    ".txt": "text/plain", ".md": "text/markdown",
    ".json": "application/json", ".csv": "text/csv",
    ".zip": "application/zip", ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".html": "text/html", ".htm": "text/html",
}

MAX_NAME_LENGTH = 200
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name)[:MAX_NAME_LENGTH]


def mime_for(name: str) -> str:
    return MIME_TYPES.get(os.path.splitext(name)[1].lower(), "application/octet-stream")


def is_image(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in IMAGE_EXTENSIONS


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def _candidate_name(filename: str, attempt: int) -> str:
    """*filename* itself first, then ``base_<epochMs>[_n]ext`` trimmed to MAX_NAME_LENGTH."""
    if attempt == 0:
        return filename
    suffix = f"_{now_ms()}" if attempt == 1 else f"_{now_ms()}_{attempt}"
    base, ext = os.path.splitext(filename)
    room = MAX_NAME_LENGTH - len(suffix) - len(ext)
    if room < 1:
        base, ext = filename, ""
        room = MAX_NAME_LENGTH - len(suffix)
    return base[:room] + suffix + ext


def _to_info(info: FileInfo) -> AttachmentInfo:
    return AttachmentInfo(
        name=info.name,
        size=info.size,
        is_image=is_image(info.name),
        created_at=iso_from_epoch(info.created_at),
        ext=os.path.splitext(info.name)[1].lower(),
        mime=mime_for(info.name),
    )


class AttachmentRepository:
    def __init__(self, storage: StorageRepository, root: str):
        self.storage = storage
        self.root = Path(root)

    def task_dir(self, task_id: str) -> Path:
        return self.root / check_path_segment(task_id, "task id")

    def file_path(self, task_id: str, name: str) -> Path:
        return self.task_dir(task_id) / check_path_segment(name)

    async def list(self, task_id: str) -> List[AttachmentInfo]:
        """Attachments of a task, newest first. Dot files are skipped."""
        files = await self.storage.list_files(str(self.task_dir(task_id)))
        infos = [_to_info(f) for f in files if not f.name.startswith(".")]
        infos.sort(key=lambda a: a.created_at, reverse=True)
        return infos

    async def get(self, task_id: str, name: str) -> AttachmentInfo:
        info = await self.storage.stat(str(self.file_path(task_id, name)))
        if info is None:
            raise NotFoundError("File not found")
        return _to_info(info)

    async def save(self, task_id: str, filename: str, data: bytes) -> AttachmentInfo:
        """Store *data* under *filename*, suffixing a timestamp instead of overwriting.

        Each attempt creates the file exclusively, so two uploads racing for
        the same name end up in different files.
        """
        task_dir = self.task_dir(task_id)
        attempt = 0
        while True:
            final_name = _candidate_name(filename, attempt)
            try:
                await self.storage.create_bytes(str(task_dir / final_name), data)
                break
            except FileExistsError:
                attempt += 1

        logger.info("Stored attachment '%s' for task '%s' (%d bytes)", final_name, task_id, len(data))
        return await self.get(task_id, final_name)

    async def delete(self, task_id: str, name: str) -> None:
        path = self.file_path(task_id, name)
        if await self.storage.stat(str(path)) is None:
            raise NotFoundError("File not found")
        await self.storage.delete_file(str(path))
        logger.info("Deleted attachment '%s' of task '%s'", name, task_id)
