"""Task attachments: uploads from the dashboard and files produced by the agent."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import os
from pathlib import Path
from typing import List, Tuple

from ..errors import NotFoundError, ValidationError
from ..repositories.attachment_repository import (
    AttachmentRepository,
    format_file_size,
    sanitize_filename,
)
from ..repositories.storage import check_path_segment
from ..schemas.attachment import AttachmentInfo, UploadAttachmentRequest
from .task_service import TaskService

logger = logging.getLogger("claw_dashboard.services.attachment_service")


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


class AttachmentService:
    def __init__(
        self,
        repo: AttachmentRepository,
        tasks: TaskService,
        source_dirs: List[Path],
        max_bytes: int,
    ):
        self.repo = repo
        self.tasks = tasks
        self.source_dirs = [Path(os.path.realpath(d)) for d in source_dirs]
        self.max_bytes = max_bytes

    def _too_large(self) -> ValidationError:
        return ValidationError(f"File too large (max {self.max_bytes // (1024 * 1024)}MB)")

    async def list_attachments(self, task_id: str) -> List[AttachmentInfo]:
        return await self.repo.list(task_id)

    async def open_attachment(self, task_id: str, filename: str) -> Tuple[AttachmentInfo, Path]:
        check_path_segment(filename)
        info = await self.repo.get(task_id, filename)
        return info, self.repo.file_path(task_id, filename)

    # ── Upload ──────────────────────────────────────────────────────────────────

    async def _read_source_file(self, file_path: str) -> bytes:
        """Copy source for agent-generated files; only allow-listed directories."""
        src = Path(os.path.realpath(file_path))
        if not any(_is_within(src, root) for root in self.source_dirs):
            raise ValidationError("filePath not in allowed directory")
        if not await asyncio.to_thread(src.is_file):
            raise ValidationError(f"Source file not found: {src}")
        size = (await asyncio.to_thread(src.stat)).st_size
        if size > self.max_bytes:
            raise self._too_large()
        return await self.repo.storage.read_bytes(str(src))

    def _decode_inline(self, data: str) -> bytes:
        # Accept data URLs ("data:image/png;base64,....")
        if "," in data:
            data = data.split(",", 1)[1]
        try:
            decoded = base64.b64decode("".join(data.split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("data is not valid base64") from exc
        if len(decoded) > self.max_bytes:
            raise self._too_large()
        return decoded

    async def upload(self, task_id: str, req: UploadAttachmentRequest) -> AttachmentInfo:
        check_path_segment(task_id, "task id")

        if req.file_path:
            payload = await self._read_source_file(req.file_path)
            raw_name = req.filename or os.path.basename(os.path.realpath(req.file_path))
        else:
            if not req.filename:
                raise ValidationError("filename required")
            if not req.data:
                raise ValidationError("data (base64) or filePath required")
            payload = self._decode_inline(req.data)
            raw_name = req.filename

        filename = sanitize_filename(raw_name)
        if not filename or filename.strip(".") == "" or ".." in filename:
            raise ValidationError("Invalid filename")

        info = await self.repo.save(task_id, filename, payload)

        uploader = "Agent" if req.source == "agent" else "User"
        await self.tasks.record_note(
            task_id, f"📎 {uploader} attached: {info.name} ({format_file_size(info.size)})",
        )
        return info

    # ── Delete ──────────────────────────────────────────────────────────────────

    async def delete(self, task_id: str, filename: str) -> str:
        check_path_segment(filename)
        try:
            await self.repo.delete(task_id, filename)
        except FileNotFoundError as exc:
            raise NotFoundError("File not found") from exc
        await self.tasks.record_note(task_id, f"🗑️ Attachment removed: {filename}")
        return filename
