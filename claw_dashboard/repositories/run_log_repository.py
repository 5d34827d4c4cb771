"""Read-only access to the per-job cron run logs (``{runs_dir}/{job_id}.jsonl``)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

from .storage import StorageRepository, check_path_segment

logger = logging.getLogger("claw_dashboard.repositories.run_log_repository")


def parse_run_lines(data: bytes) -> List[dict]:
    """Parse each line on its own; blank, undecodable, corrupt and non-object lines are dropped."""
    runs: List[dict] = []
    for raw in data.splitlines():
        raw = raw.strip()
        if not raw:
            continue
        try:
            entry = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            continue
        if isinstance(entry, dict):
            runs.append(entry)
    return runs


def _run_ts(run: dict) -> float:
    ts = run.get("ts")
    return ts if isinstance(ts, (int, float)) and not isinstance(ts, bool) else 0


class RunLogRepository:
    def __init__(self, storage: StorageRepository, runs_dir: str):
        self.storage = storage
        self.runs_dir = Path(runs_dir)

    def log_path(self, job_id: str) -> Path:
        return self.runs_dir / f"{check_path_segment(job_id, 'job id')}.jsonl"

    async def recent(self, job_id: str, limit: int) -> List[dict]:
        """Newest-first run records for *job_id*, at most *limit* of them."""
        path = str(self.log_path(job_id))
        try:
            if not await self.storage.exists(path):
                return []
            data = await self.storage.read_bytes(path)
        except OSError as exc:
            logger.warning("Could not read run log %s: %s", path, exc)
            return []

        runs = parse_run_lines(data)
        runs.sort(key=_run_ts, reverse=True)
        return runs[:limit]
