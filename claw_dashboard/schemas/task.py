"""Pydantic schemas for the dashboard task list.

Tasks are persisted and served with camelCase keys (``createdAt``,
``dueDate``) so the agent's curl callbacks and the dashboard frontend share
one shape.  Keys written by other clients are kept on round-trip.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

TaskStatus = Literal["new", "in-progress", "done", "failed"]
TaskPriority = Literal["high", "medium", "low"]

VALID_STATUSES: tuple[str, ...] = ("new", "in-progress", "done", "failed")
VALID_PRIORITIES: tuple[str, ...] = ("high", "medium", "low")
TERMINAL_STATUSES = frozenset({"done", "failed"})

# Fields a PATCH may change; everything else in the body is ignored.
PATCHABLE_FIELDS = (
    "title", "description", "content", "status",
    "priority", "assignee", "due_date", "source",
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Stored records ──────────────────────────────────────────────────────────────

class TaskNote(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: str
    timestamp: str


class Task(_CamelModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str
    description: Optional[str] = ""
    content: Optional[str] = ""
    status: TaskStatus = "new"
    priority: TaskPriority = "medium"
    assignee: Optional[str] = "main"
    created_at: str
    updated_at: str
    due_date: Optional[str] = None
    source: Optional[str] = "dashboard"
    notes: List[TaskNote] = []

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


# ── Request models ──────────────────────────────────────────────────────────────

class CreateTaskRequest(_CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    status: Optional[str] = None  # unknown values fall back to "new"
    priority: Optional[str] = None  # unknown values fall back to "medium"
    assignee: Optional[str] = None
    due_date: Optional[str] = None
    source: Optional[str] = None


class UpdateTaskRequest(_CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assignee: Optional[str] = None
    due_date: Optional[str] = None
    source: Optional[str] = None


class AddNoteRequest(BaseModel):
    text: Optional[str] = None


class SpawnBatchRequest(_CamelModel):
    task_ids: Optional[List[str]] = None


# ── Response models ─────────────────────────────────────────────────────────────

class SpawnSkip(BaseModel):
    id: str
    reason: Literal["not found", "already running"]


class SpawnBatchResponse(BaseModel):
    spawned: int
    skipped: List[SpawnSkip]
    tasks: List[Task]


class TaskHistoryEntry(BaseModel):
    id: str
    title: str
    status: str
    notes: List[TaskNote]
