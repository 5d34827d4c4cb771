"""Task management service for the dashboard task list and its state machine.

Lifecycle: new -> in-progress -> done | failed.  Terminal tasks go back to
``new`` through :meth:`TaskService.spawn_task`, which also re-triggers
execution.  Every status change is recorded as a note, and notes are only
ever appended.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..clock import utc_now_iso
from ..errors import ConflictError, NotFoundError, StorageError, ValidationError
from ..repositories.json_store import JsonCollectionStore
from ..schemas.task import (
    PATCHABLE_FIELDS,
    TERMINAL_STATUSES,
    VALID_PRIORITIES,
    VALID_STATUSES,
    AddNoteRequest,
    CreateTaskRequest,
    SpawnBatchRequest,
    SpawnBatchResponse,
    SpawnSkip,
    Task,
    TaskHistoryEntry,
    TaskNote,
    UpdateTaskRequest,
)
from .dispatcher import ExecutionDispatcher

logger = logging.getLogger("claw_dashboard.services.task_service")

SPAWN_NOTE = "⚡ Spawned as parallel sub-agent"
BATCH_SPAWN_NOTE = "⚡ Spawned as part of parallel batch ({count} tasks)"


def _find(records: list, task_id: str) -> int:
    for idx, record in enumerate(records):
        if isinstance(record, dict) and record.get("id") == task_id:
            return idx
    return -1


def _load(record: dict) -> Task:
    try:
        return Task.model_validate(record)
    except PydanticValidationError as exc:
        raise StorageError(f"Stored task {record.get('id')!r} is malformed: {exc}") from exc


def _note(task: Task, text: str) -> TaskNote:
    note = TaskNote(text=text, timestamp=utc_now_iso())
    task.notes.append(note)
    return note


def _touch(task: Task) -> None:
    # Never move updatedAt backwards, even if the clock does.
    task.updated_at = max(utc_now_iso(), task.updated_at or "")


def _change_status(task: Task, status: str) -> None:
    if status != task.status:
        _note(task, f'Status changed from "{task.status}" to "{status}"')
        task.status = status


class TaskService:
    def __init__(self, store: JsonCollectionStore, dispatcher: ExecutionDispatcher):
        self.store = store
        self.dispatcher = dispatcher

    # ── List / Get ──────────────────────────────────────────────────────────────

    async def list_tasks(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assignee: Optional[str] = None,
    ) -> List[Task]:
        tasks = []
        for record in await self.store.load():
            try:
                task = Task.model_validate(record)
            except PydanticValidationError:
                logger.warning("Skipping malformed task record %r", record.get("id") if isinstance(record, dict) else record)
                continue
            if status and task.status != status:
                continue
            if priority and task.priority != priority:
                continue
            if assignee and task.assignee != assignee:
                continue
            tasks.append(task)
        return tasks

    async def get_task(self, task_id: str) -> Task:
        records = await self.store.load()
        idx = _find(records, task_id)
        if idx < 0:
            raise NotFoundError("Task not found")
        return _load(records[idx])

    # ── Create ──────────────────────────────────────────────────────────────────

    async def create_task(self, req: CreateTaskRequest) -> Task:
        if not req.title:
            raise ValidationError("title is required")

        now = utc_now_iso()
        task = Task(
            id=str(uuid.uuid4()),
            title=req.title,
            description=req.description or "",
            content=req.content or "",
            status=req.status if req.status in VALID_STATUSES else "new",
            priority=req.priority if req.priority in VALID_PRIORITIES else "medium",
            assignee=req.assignee or "main",
            created_at=now,
            updated_at=now,
            due_date=req.due_date or None,
            notes=[],
            source=req.source or "dashboard",
        )
        async with self.store.mutate() as records:
            records.append(task.to_record())

        logger.info("Task '%s' created (status=%s)", task.id, task.status)
        if task.status == "new":
            self.dispatcher.dispatch_task(task)
        return task

    # ── Update ──────────────────────────────────────────────────────────────────

    async def update_task(self, task_id: str, req: UpdateTaskRequest) -> Task:
        updates = {
            field: value
            for field, value in req.model_dump(exclude_unset=True).items()
            if field in PATCHABLE_FIELDS
        }
        if "title" in updates and not updates["title"]:
            raise ValidationError("title must be a non-empty string")
        if "status" in updates and updates["status"] not in VALID_STATUSES:
            raise ValidationError("Invalid status. Must be: " + ", ".join(VALID_STATUSES))
        if "priority" in updates and updates["priority"] not in VALID_PRIORITIES:
            raise ValidationError("Invalid priority. Must be: " + ", ".join(VALID_PRIORITIES))

        async with self.store.mutate() as records:
            idx = _find(records, task_id)
            if idx < 0:
                raise NotFoundError("Task not found")
            task = _load(records[idx])

            if "status" in updates:
                _change_status(task, updates.pop("status"))
            for field, value in updates.items():
                setattr(task, field, value)
            _touch(task)
            records[idx] = task.to_record()

        logger.info("Task '%s' updated", task_id)
        return task

    # ── Notes ───────────────────────────────────────────────────────────────────

    async def add_note(self, task_id: str, req: AddNoteRequest) -> TaskNote:
        if not req.text:
            raise ValidationError("text is required")

        async with self.store.mutate() as records:
            idx = _find(records, task_id)
            if idx < 0:
                raise NotFoundError("Task not found")
            task = _load(records[idx])
            note = _note(task, req.text)
            _touch(task)
            records[idx] = task.to_record()
        return note

    async def record_note(self, task_id: str, text: str) -> None:
        """Append a bookkeeping note; unknown task ids are ignored."""
        if _find(await self.store.load(), task_id) < 0:
            return
        async with self.store.mutate() as records:
            idx = _find(records, task_id)
            if idx < 0:
                return
            task = _load(records[idx])
            _note(task, text)
            _touch(task)
            records[idx] = task.to_record()

    # ── Spawn ───────────────────────────────────────────────────────────────────

    @staticmethod
    def _respawn(task: Task, note_text: str) -> None:
        """Mark *task* as spawned and reset a finished task to ``new``."""
        _note(task, note_text)
        if task.status in TERMINAL_STATUSES:
            _change_status(task, "new")
        _touch(task)

    async def spawn_task(self, task_id: str) -> Task:
        async with self.store.mutate() as records:
            idx = _find(records, task_id)
            if idx < 0:
                raise NotFoundError("Task not found")
            task = _load(records[idx])
            if task.status == "in-progress":
                raise ConflictError("Task is already running")
            self._respawn(task, SPAWN_NOTE)
            records[idx] = task.to_record()

        logger.info("Task '%s' spawned", task_id)
        self.dispatcher.dispatch_task(task)
        return task

    async def spawn_batch(self, req: SpawnBatchRequest) -> SpawnBatchResponse:
        task_ids = req.task_ids or []
        if not task_ids:
            raise ValidationError("taskIds array is required")

        spawned: List[Task] = []
        skipped: List[SpawnSkip] = []
        note_text = BATCH_SPAWN_NOTE.format(count=len(task_ids))

        async with self.store.mutate() as records:
            for task_id in task_ids:
                idx = _find(records, task_id)
                if idx < 0:
                    skipped.append(SpawnSkip(id=task_id, reason="not found"))
                    continue
                task = _load(records[idx])
                if task.status == "in-progress":
                    skipped.append(SpawnSkip(id=task_id, reason="already running"))
                    continue
                self._respawn(task, note_text)
                records[idx] = task.to_record()
                spawned.append(task)

        for task in spawned:
            self.dispatcher.dispatch_task(task)
        logger.info("Batch spawn: %d spawned, %d skipped", len(spawned), len(skipped))
        return SpawnBatchResponse(spawned=len(spawned), skipped=skipped, tasks=spawned)

    # ── Delete ──────────────────────────────────────────────────────────────────

    async def delete_task(self, task_id: str) -> Task:
        async with self.store.mutate() as records:
            idx = _find(records, task_id)
            if idx < 0:
                raise NotFoundError("Task not found")
            removed = _load(records.pop(idx))

        logger.info("Task '%s' deleted", task_id)
        return removed

    # ── History ─────────────────────────────────────────────────────────────────

    async def history(self) -> List[TaskHistoryEntry]:
        """Tasks that carry notes, for the activity log view."""
        return [
            TaskHistoryEntry(id=t.id, title=t.title, status=t.status, notes=t.notes)
            for t in await self.list_tasks()
            if t.notes
        ]
