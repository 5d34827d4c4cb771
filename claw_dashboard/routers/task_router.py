from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends

from ..dependencies import get_task_service
from ..schemas.task import (
    AddNoteRequest,
    CreateTaskRequest,
    SpawnBatchRequest,
    SpawnBatchResponse,
    Task,
    TaskNote,
    UpdateTaskRequest,
)
from ..security import require_token
from ..services.task_service import TaskService

router = APIRouter(prefix="/tasks", tags=["Tasks"], dependencies=[Depends(require_token)])

TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]


@router.get("", response_model=List[Task])
async def list_tasks(
    svc: TaskServiceDep,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assignee: Optional[str] = None,
):
    """List tasks, optionally filtered by status, priority and assignee."""
    return await svc.list_tasks(status=status, priority=priority, assignee=assignee)


@router.post("", response_model=Task, status_code=201)
async def create_task(req: CreateTaskRequest, svc: TaskServiceDep):
    """Create a task. New tasks are handed to the agent right away."""
    return await svc.create_task(req)


# Registered before /{task_id} so "spawn-batch" is never taken for an id.
@router.post("/spawn-batch", response_model=SpawnBatchResponse)
async def spawn_batch(req: SpawnBatchRequest, svc: TaskServiceDep):
    """Spawn several tasks as parallel sub-agents."""
    return await svc.spawn_batch(req)


@router.post("/{task_id}/spawn", response_model=Task)
async def spawn_task(task_id: str, svc: TaskServiceDep):
    return await svc.spawn_task(task_id)


@router.post("/{task_id}/notes", response_model=TaskNote, status_code=201)
async def add_note(task_id: str, req: AddNoteRequest, svc: TaskServiceDep):
    return await svc.add_note(task_id, req)


@router.get("/{task_id}", response_model=Task)
async def get_task(task_id: str, svc: TaskServiceDep):
    return await svc.get_task(task_id)


@router.patch("/{task_id}", response_model=Task)
async def update_task(task_id: str, req: UpdateTaskRequest, svc: TaskServiceDep):
    """Update task fields. Status changes are recorded as notes."""
    return await svc.update_task(task_id, req)


@router.delete("/{task_id}", response_model=Task)
async def delete_task(task_id: str, svc: TaskServiceDep):
    """Delete a task and return the removed record."""
    return await svc.delete_task(task_id)
