"""Agent workspace views: editable markdown files, installed skills, daily memory logs.

Only two kinds of workspace files are reachable::

    {OPENCLAW_WORKSPACE}/
    ├── AGENTS.md, SOUL.md, ...      # root *.md
    ├── memory/
    │   └── 2026-01-31.md            # memory/*.md
    └── skills/
        └── <skill>/SKILL.md         # listed, never written here
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
import re
from pathlib import Path
from typing import List, Optional

from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..repositories.storage import StorageRepository
from ..schemas.workspace import MemoryLog, SkillInfo, WorkspaceFile, WorkspaceWriteResponse

logger = logging.getLogger("claw_dashboard.services.workspace_service")

_FRONTMATTER = re.compile(r"^---\n(.*?)\n---", re.DOTALL)
_HEADING = re.compile(r"^#\s+(.+)", re.MULTILINE)
_DATE_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})")


def is_allowed_path(path: Optional[str]) -> bool:
    """Root ``*.md`` files and ``memory/*.md`` only; no absolute or parent paths."""
    if not path or not isinstance(path, str):
        return False
    normalized = posixpath.normpath(path)
    if ".." in normalized or normalized.startswith("/") or "\\" in normalized:
        return False
    parts = normalized.split("/")
    if len(parts) == 1:
        return normalized.endswith(".md")
    return len(parts) == 2 and parts[0] == "memory" and parts[1].endswith(".md")


def _frontmatter_value(block: str, key: str) -> str:
    match = re.search(rf"^{key}:\s*(.+)$", block, re.MULTILINE)
    if not match:
        return ""
    return match.group(1).strip().strip("\"'").strip()


def parse_skill(content: str, skill_md: Path, workspace: Path) -> SkillInfo:
    """Name and description from SKILL.md front matter, with sensible fallbacks."""
    fallback_name = skill_md.parent.name
    rel_path = os.path.relpath(skill_md, workspace)

    match = _FRONTMATTER.match(content)
    if not match:
        heading = _HEADING.search(content)
        return SkillInfo(
            name=heading.group(1).strip() if heading else fallback_name,
            description="",
            path=rel_path,
        )

    block = match.group(1)
    return SkillInfo(
        name=_frontmatter_value(block, "name") or fallback_name,
        description=_frontmatter_value(block, "description"),
        path=rel_path,
    )


class WorkspaceService:
    def __init__(self, storage: StorageRepository, workspace: str, system_skills_dir: str = ""):
        self.storage = storage
        self.workspace = Path(workspace)
        self.system_skills_dir = Path(system_skills_dir) if system_skills_dir else None

    def _resolve(self, path: Optional[str]) -> Path:
        if not path:
            raise ValidationError("path query param is required")
        if not is_allowed_path(path):
            raise ForbiddenError("Access denied: path not allowed")
        return self.workspace / posixpath.normpath(path)

    # ── Files ───────────────────────────────────────────────────────────────────

    async def read_file(self, path: Optional[str]) -> WorkspaceFile:
        full = self._resolve(path)
        try:
            content = await self.storage.read_text(str(full))
        except FileNotFoundError as exc:
            raise NotFoundError("File not found") from exc
        return WorkspaceFile(path=path, content=content)

    async def write_file(self, path: Optional[str], content: str) -> WorkspaceWriteResponse:
        full = self._resolve(path)
        await self.storage.write_text_atomic(str(full), content)
        logger.info("Workspace file '%s' written (%d chars)", path, len(content))
        return WorkspaceWriteResponse(path=path, size=len(content))

    # ── Skills ──────────────────────────────────────────────────────────────────

    async def _scan_skills(self, root: Path) -> List[SkillInfo]:
        def _find() -> List[Path]:
            if not root.is_dir():
                return []
            return sorted(root.rglob("SKILL.md"))

        skills = []
        for skill_md in await asyncio.to_thread(_find):
            try:
                content = await self.storage.read_text(str(skill_md))
            except (OSError, UnicodeDecodeError) as exc:
                logger.debug("Skipping unreadable skill %s: %s", skill_md, exc)
                continue
            skills.append(parse_skill(content, skill_md, self.workspace))
        return skills

    async def list_skills(self) -> List[SkillInfo]:
        """Workspace skills first, then system skills; first name wins."""
        found = await self._scan_skills(self.workspace / "skills")
        if self.system_skills_dir is not None:
            found += await self._scan_skills(self.system_skills_dir)

        seen = set()
        unique = []
        for skill in found:
            if skill.name in seen:
                continue
            seen.add(skill.name)
            unique.append(skill)
        return unique

    # ── Memory logs ─────────────────────────────────────────────────────────────

    async def list_logs(self) -> List[MemoryLog]:
        memory_dir = self.workspace / "memory"
        files = [f for f in await self.storage.list_files(str(memory_dir)) if f.name.endswith(".md")]
        files.sort(key=lambda f: f.name, reverse=True)

        logs = []
        for f in files:
            content = await self.storage.read_text(str(memory_dir / f.name))
            match = _DATE_PREFIX.match(f.name)
            logs.append(MemoryLog(
                date=match.group(1) if match else f.name[: -len(".md")],
                filename=f.name,
                content=content,
            ))
        return logs
