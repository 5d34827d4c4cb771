from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Request

from ..dependencies import get_task_service, get_workspace_service
from ..schemas.task import TaskHistoryEntry
from ..schemas.workspace import MemoryLog, SkillInfo, WorkspaceFile, WorkspaceWriteResponse
from ..security import require_token
from ..services.task_service import TaskService
from ..services.workspace_service import WorkspaceService

router = APIRouter(tags=["Workspace"], dependencies=[Depends(require_token)])

WorkspaceServiceDep = Annotated[WorkspaceService, Depends(get_workspace_service)]


@router.get("/files", response_model=WorkspaceFile)
async def read_file(svc: WorkspaceServiceDep, path: Optional[str] = None):
    """Read a root ``*.md`` or ``memory/*.md`` workspace file."""
    return await svc.read_file(path)


@router.put("/files", response_model=WorkspaceWriteResponse)
async def write_file(request: Request, svc: WorkspaceServiceDep, path: Optional[str] = None):
    """Replace a workspace file with the raw request body."""
    content = (await request.body()).decode("utf-8")
    return await svc.write_file(path, content)


@router.get("/skills", response_model=List[SkillInfo])
async def list_skills(svc: WorkspaceServiceDep):
    return await svc.list_skills()


@router.get("/logs", response_model=List[MemoryLog])
async def list_logs(svc: WorkspaceServiceDep):
    """Daily memory logs, newest first."""
    return await svc.list_logs()


@router.get("/logs/tasks", response_model=List[TaskHistoryEntry])
async def task_history(svc: Annotated[TaskService, Depends(get_task_service)]):
    """Tasks with notes, as an activity log."""
    return await svc.history()
