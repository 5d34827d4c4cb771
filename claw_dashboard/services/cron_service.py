"""Cron job management service over the gateway's job store plus run history.

The job document (``{"version": 1, "jobs": [...]}``) is shared with the
OpenClaw gateway, which owns scheduling and the ``state`` block of each job.
This service edits job definitions and then asks the gateway to reload.
"""

import logging
import uuid
from typing import List, Optional

from ..clients.gateway_client import GatewayClient
from ..clock import now_ms
from ..errors import NotFoundError, ValidationError
from ..repositories.json_store import JsonCollectionStore
from ..repositories.run_log_repository import RunLogRepository
from ..schemas.cron import (
    CreateCronRequest,
    CronListResponse,
    CronRunNowResponse,
    CronRunsResponse,
    CronStatusResponse,
    UpdateCronRequest,
)
from .dispatcher import ExecutionDispatcher

logger = logging.getLogger("claw_dashboard.services.cron_service")

DEFAULT_RUNS_LIMIT = 50

# camelCase job keys a PATCH may change
_UPDATABLE = {
    "name": "name",
    "enabled": "enabled",
    "schedule": "schedule",
    "session_target": "sessionTarget",
    "wake_mode": "wakeMode",
    "payload": "payload",
}


def _jobs(store: dict) -> List[dict]:
    jobs = store.get("jobs")
    if not isinstance(jobs, list):
        jobs = store["jobs"] = []
    return jobs


def _find(jobs: List[dict], job_id: str) -> int:
    for idx, job in enumerate(jobs):
        if isinstance(job, dict) and job.get("id") == job_id:
            return idx
    return -1


def _next_run(job: dict) -> Optional[int]:
    state = job.get("state")
    if not isinstance(state, dict):
        return None
    value = state.get("nextRunAtMs")
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


class CronService:
    def __init__(
        self,
        store: JsonCollectionStore,
        runs: RunLogRepository,
        dispatcher: ExecutionDispatcher,
        gateway: GatewayClient,
    ):
        self.store = store
        self.runs = runs
        self.dispatcher = dispatcher
        self.gateway = gateway

    async def _signal_reload(self) -> None:
        try:
            await self.gateway.signal_reload()
        except Exception as exc:
            logger.warning("Gateway reload signal failed: %s", exc)

    # ── Read ────────────────────────────────────────────────────────────────────

    async def list_jobs(self) -> CronListResponse:
        store = await self.store.load()
        return CronListResponse(jobs=_jobs(store), version=store.get("version", 1))

    async def get_job(self, job_id: str) -> dict:
        jobs = _jobs(await self.store.load())
        idx = _find(jobs, job_id)
        if idx < 0:
            raise NotFoundError("Job not found")
        return jobs[idx]

    async def status(self, now: Optional[int] = None) -> CronStatusResponse:
        """Counts plus the soonest scheduled run among enabled jobs."""
        jobs = [j for j in _jobs(await self.store.load()) if isinstance(j, dict)]
        now = now if now is not None else now_ms()
        enabled = sum(1 for j in jobs if j.get("enabled"))

        upcoming = [t for t in (_next_run(j) for j in jobs if j.get("enabled")) if t is not None]
        next_run = min(upcoming) if upcoming else None

        return CronStatusResponse(
            total=len(jobs),
            enabled=enabled,
            disabled=len(jobs) - enabled,
            next_run_at_ms=next_run,
            next_run_in=max(0, next_run - now) if next_run is not None else None,
        )

    async def get_runs(self, job_id: str, limit: Optional[int] = None) -> CronRunsResponse:
        if not limit or limit <= 0:
            limit = DEFAULT_RUNS_LIMIT
        runs = await self.runs.recent(job_id, limit)
        return CronRunsResponse(job_id=job_id, runs=runs, count=len(runs))

    # ── Create ──────────────────────────────────────────────────────────────────

    async def create_job(self, req: CreateCronRequest) -> dict:
        if not req.name or not req.name.strip():
            raise ValidationError("name is required")
        if req.schedule is None or req.schedule == "":
            raise ValidationError("schedule is required")

        now = now_ms()
        job = {
            "id": str(uuid.uuid4()),
            "agentId": req.agent_id or "main",
            "name": req.name.strip(),
            "enabled": req.enabled is not False,
            "createdAtMs": now,
            "updatedAtMs": now,
            "schedule": req.schedule,
            "sessionTarget": req.session_target or "isolated",
            "wakeMode": req.wake_mode or "now",
            "payload": req.payload or {"kind": "agentTurn", "message": ""},
            "state": {
                "nextRunAtMs": None,
                "lastRunAtMs": None,
                "lastStatus": None,
                "lastDurationMs": None,
            },
        }
        async with self.store.mutate() as store:
            _jobs(store).append(job)

        logger.info("Cron job '%s' (%s) created", job["id"], job["name"])
        await self._signal_reload()
        return job

    # ── Update ──────────────────────────────────────────────────────────────────

    async def update_job(self, job_id: str, req: UpdateCronRequest) -> dict:
        updates = req.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in updates and not updates["name"].strip():
            raise ValidationError("name must not be empty")

        async with self.store.mutate() as store:
            jobs = _jobs(store)
            idx = _find(jobs, job_id)
            if idx < 0:
                raise NotFoundError("Job not found")
            job = jobs[idx]

            for field, key in _UPDATABLE.items():
                if field in updates:
                    job[key] = updates[field]
            job["updatedAtMs"] = now_ms()

            if "schedule" in updates:
                # The gateway recomputes the next run from the new schedule.
                state = job.get("state") if isinstance(job.get("state"), dict) else {}
                state["nextRunAtMs"] = None
                job["state"] = state

        logger.info("Cron job '%s' updated", job_id)
        await self._signal_reload()
        return job

    # ── Delete ──────────────────────────────────────────────────────────────────

    async def delete_job(self, job_id: str) -> dict:
        async with self.store.mutate() as store:
            jobs = _jobs(store)
            idx = _find(jobs, job_id)
            if idx < 0:
                raise NotFoundError("Job not found")
            removed = jobs.pop(idx)

        logger.info("Cron job '%s' deleted", job_id)
        await self._signal_reload()
        return removed

    # ── Run now ─────────────────────────────────────────────────────────────────

    async def run_now(self, job_id: str) -> CronRunNowResponse:
        job = await self.get_job(job_id)
        result = await self.dispatcher.dispatch_cron_run(job)
        return CronRunNowResponse(ok=True, job_id=job_id, result=result)
