from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from ..clock import now_ms
from ..repositories.storage import StorageRepository
from ..schemas.session import (
    CategorySummary,
    MainAgentStatus,
    SessionCategory,
    SessionEntry,
    SessionSummary,
)

logger = logging.getLogger("claw_dashboard.services.session_service")

RECENT_PER_CATEGORY = 10
SUBAGENT_TASK_PREVIEW = 200


def _int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def build_entry(
    key: str,
    record: dict,
    now: int,
    active_ms: int,
    subagent_runs: Dict[str, dict],
) -> SessionEntry:
    """Turn one raw session record into a classified, age-stamped entry."""
    category = SessionCategory.from_key(key)
    updated_at = _int(record.get("updatedAt"))
    age_ms = now - updated_at
    origin = record.get("origin") if isinstance(record.get("origin"), dict) else {}

    entry = SessionEntry(
        key=key,
        category=category,
        updated_at=updated_at,
        age_ms=age_ms,
        age_minutes=round(age_ms / 60000),
        is_active=age_ms < active_ms,
        model=_str(record.get("model")),
        total_tokens=_int(record.get("totalTokens")),
        context_tokens=_int(record.get("contextTokens")),
        channel=_str(record.get("channel")) or _str(origin.get("surface")),
        display_name=_str(record.get("displayName")),
        label=_str(record.get("label")),
        session_id=_str(record.get("sessionId")),
    )

    if category is SessionCategory.SUBAGENT:
        # First run in registry order wins.
        for run in subagent_runs.values():
            if isinstance(run, dict) and run.get("childSessionKey") == key:
                entry.task = _str(run.get("task"))[:SUBAGENT_TASK_PREVIEW]
                entry.requester_session_key = _str(run.get("requesterSessionKey"))
                entry.subagent_status = _str(run.get("status")) or "unknown"
                break
    elif category is SessionCategory.HOOK:
        entry.hook_source = "dashboard" if ":dashboard:" in key else "external"

    return entry


def _category_summary(entries: List[SessionEntry]) -> CategorySummary:
    return CategorySummary(
        total=len(entries),
        active=sum(1 for e in entries if e.is_active),
        sessions=entries[:RECENT_PER_CATEGORY],
    )


def summarize(
    sessions: Dict[str, dict],
    subagent_runs: Dict[str, dict],
    now: int,
    active_ms: int,
) -> SessionSummary:
    """Liveness snapshot of every session, grouped by category."""
    by_category: Dict[SessionCategory, List[SessionEntry]] = {c: [] for c in SessionCategory}
    for key, record in sessions.items():
        if not isinstance(record, dict):
            continue
        entry = build_entry(key, record, now, active_ms, subagent_runs)
        by_category[entry.category].append(entry)

    for entries in by_category.values():
        entries.sort(key=lambda e: e.updated_at, reverse=True)

    everything = [e for entries in by_category.values() for e in entries]
    main_entries = by_category[SessionCategory.MAIN]
    main = main_entries[0] if main_entries else None

    return SessionSummary(
        total_sessions=len(everything),
        active_sessions=sum(1 for e in everything if e.is_active),
        main_agent=MainAgentStatus(
            status="active" if main.is_active else "idle",
            age_minutes=main.age_minutes,
            model=main.model,
            total_tokens=main.total_tokens,
            channel=main.channel,
        ) if main else None,
        subagents=_category_summary(by_category[SessionCategory.SUBAGENT]),
        hooks=_category_summary(by_category[SessionCategory.HOOK]),
        crons=_category_summary(by_category[SessionCategory.CRON]),
        groups=_category_summary(by_category[SessionCategory.GROUP]),
        timestamp=now,
    )


class SessionService:
    """Reads the gateway's session table and sub-agent registry."""

    def __init__(
        self,
        storage: StorageRepository,
        sessions_file: str,
        subagent_runs_file: str,
        active_minutes: int = 30,
    ):
        self.storage = storage
        self.sessions_file = sessions_file
        self.subagent_runs_file = subagent_runs_file
        self.active_ms = active_minutes * 60 * 1000

    async def _read_json(self, path: str) -> Optional[Any]:
        try:
            if not await self.storage.exists(path):
                return None
            return json.loads(await self.storage.read_text(path))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Could not read %s: %s", path, exc)
            return None

    async def snapshot(self, now: Optional[int] = None) -> SessionSummary:
        sessions = await self._read_json(self.sessions_file)
        if not isinstance(sessions, dict):
            sessions = {}

        registry = await self._read_json(self.subagent_runs_file)
        runs = registry.get("runs") if isinstance(registry, dict) else None
        if not isinstance(runs, dict):
            runs = {}

        return summarize(sessions, runs, now if now is not None else now_ms(), self.active_ms)
