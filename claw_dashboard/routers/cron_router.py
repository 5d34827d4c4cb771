from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from ..dependencies import get_cron_service
from ..schemas.cron import (
    CreateCronRequest,
    CronListResponse,
    CronRunNowResponse,
    CronRunsResponse,
    CronStatusResponse,
    UpdateCronRequest,
)
from ..security import require_token
from ..services.cron_service import CronService

router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(require_token)])

CronServiceDep = Annotated[CronService, Depends(get_cron_service)]


@router.get("", response_model=CronListResponse)
async def list_jobs(svc: CronServiceDep):
    return await svc.list_jobs()


@router.get("/status", response_model=CronStatusResponse)
async def cron_status(svc: CronServiceDep):
    """Job counts and the soonest upcoming run."""
    return await svc.status()


@router.get("/{job_id}/runs", response_model=CronRunsResponse)
async def job_runs(job_id: str, svc: CronServiceDep, limit: Optional[int] = None):
    """Most recent runs of a job, newest first."""
    return await svc.get_runs(job_id, limit)


@router.post("", status_code=201)
async def create_job(req: CreateCronRequest, svc: CronServiceDep):
    """Create a job and ask the gateway to reload its schedule."""
    return await svc.create_job(req)


@router.patch("/{job_id}")
async def update_job(job_id: str, req: UpdateCronRequest, svc: CronServiceDep):
    return await svc.update_job(job_id, req)


@router.delete("/{job_id}")
async def delete_job(job_id: str, svc: CronServiceDep):
    return await svc.delete_job(job_id)


@router.post("/{job_id}/run", response_model=CronRunNowResponse)
async def run_job(job_id: str, svc: CronServiceDep):
    """Trigger a job immediately and wait for the gateway's answer."""
    return await svc.run_now(job_id)
