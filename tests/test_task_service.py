import pytest

from claw_dashboard.errors import ConflictError, DispatchError, NotFoundError, ValidationError
from claw_dashboard.schemas.task import (
    AddNoteRequest,
    CreateTaskRequest,
    SpawnBatchRequest,
    UpdateTaskRequest,
)
from claw_dashboard.services.task_service import SPAWN_NOTE

from .conftest import read_json, write_json


def _record(task_id, status="new", **extra):
    record = {
        "id": task_id,
        "title": f"Task {task_id}",
        "description": "",
        "content": "",
        "status": status,
        "priority": "medium",
        "assignee": "main",
        "createdAt": "2026-01-01T00:00:00.000Z",
        "updatedAt": "2026-01-01T00:00:00.000Z",
        "dueDate": None,
        "source": "dashboard",
        "notes": [],
    }
    record.update(extra)
    return record


# ── Create ──────────────────────────────────────────────────────────────────────

async def test_create_requires_title(env):
    with pytest.raises(ValidationError, match="title is required"):
        await env.tasks.create_task(CreateTaskRequest(description="no title"))
    assert not env.paths.tasks.exists()


async def test_create_applies_defaults_and_dispatches(env):
    task = await env.tasks.create_task(CreateTaskRequest(title="Write report", priority="urgent"))

    assert task.status == "new"
    assert task.priority == "medium"
    assert task.assignee == "main"
    assert task.source == "dashboard"
    assert task.notes == []
    assert task.created_at == task.updated_at
    assert task.created_at.endswith("Z")

    stored = read_json(env.paths.tasks)
    assert stored[0]["id"] == task.id
    assert stored[0]["createdAt"] == task.created_at

    await env.dispatcher.drain()
    assert len(env.gateway.hooks) == 1
    hook = env.gateway.hooks[0]
    assert hook["session_key"] == f"hook:dashboard:{task.id}"
    assert "Title: Write report" in hook["message"]


async def test_create_with_non_new_status_is_not_dispatched(env):
    task = await env.tasks.create_task(CreateTaskRequest(title="Old", status="done"))
    await env.dispatcher.drain()
    assert task.status == "done"
    assert env.gateway.hooks == []


async def test_create_survives_gateway_failure(env):
    env.gateway.error = DispatchError("gateway down")
    task = await env.tasks.create_task(CreateTaskRequest(title="Resilient"))
    await env.dispatcher.drain()

    assert len(env.gateway.hooks) == 1
    assert (await env.tasks.get_task(task.id)).title == "Resilient"


# ── Update ──────────────────────────────────────────────────────────────────────

async def test_status_change_is_recorded_as_note(env):
    write_json(env.paths.tasks, [_record("t1")])

    task = await env.tasks.update_task("t1", UpdateTaskRequest(status="in-progress"))

    assert task.status == "in-progress"
    assert [n.text for n in task.notes] == ['Status changed from "new" to "in-progress"']
    assert task.updated_at > "2026-01-01T00:00:00.000Z"


async def test_same_status_adds_no_note(env):
    write_json(env.paths.tasks, [_record("t1")])
    task = await env.tasks.update_task("t1", UpdateTaskRequest(status="new", title="Renamed"))
    assert task.title == "Renamed"
    assert task.notes == []


async def test_invalid_status_leaves_store_untouched(env):
    write_json(env.paths.tasks, [_record("t1")])
    before = env.paths.tasks.read_bytes()

    with pytest.raises(ValidationError, match="Invalid status. Must be: new, in-progress, done, failed"):
        await env.tasks.update_task("t1", UpdateTaskRequest(status="archived", title="x"))
    with pytest.raises(ValidationError, match="Invalid priority"):
        await env.tasks.update_task("t1", UpdateTaskRequest(priority="critical"))

    assert env.paths.tasks.read_bytes() == before


async def test_update_unknown_task(env):
    with pytest.raises(NotFoundError):
        await env.tasks.update_task("missing", UpdateTaskRequest(title="x"))


async def test_unknown_keys_survive_updates(env):
    write_json(env.paths.tasks, [_record("t1", externalRef="JIRA-7")])
    await env.tasks.update_task("t1", UpdateTaskRequest(description="more"))
    assert read_json(env.paths.tasks)[0]["externalRef"] == "JIRA-7"


# ── Notes ───────────────────────────────────────────────────────────────────────

async def test_notes_are_appended_in_order(env):
    write_json(env.paths.tasks, [_record("t1")])

    await env.tasks.add_note("t1", AddNoteRequest(text="first"))
    note = await env.tasks.add_note("t1", AddNoteRequest(text="second"))

    assert note.text == "second"
    task = await env.tasks.get_task("t1")
    assert [n.text for n in task.notes] == ["first", "second"]


async def test_empty_note_is_rejected(env):
    write_json(env.paths.tasks, [_record("t1")])
    with pytest.raises(ValidationError, match="text is required"):
        await env.tasks.add_note("t1", AddNoteRequest(text=""))


# ── Spawn ───────────────────────────────────────────────────────────────────────

async def test_spawn_running_task_conflicts(env):
    write_json(env.paths.tasks, [_record("t1", status="in-progress")])
    before = env.paths.tasks.read_bytes()

    with pytest.raises(ConflictError, match="Task is already running"):
        await env.tasks.spawn_task("t1")

    assert env.paths.tasks.read_bytes() == before
    await env.dispatcher.drain()
    assert env.gateway.hooks == []


async def test_spawn_finished_task_resets_to_new(env):
    write_json(env.paths.tasks, [_record("t1", status="done")])

    task = await env.tasks.spawn_task("t1")

    assert task.status == "new"
    assert [n.text for n in task.notes] == [SPAWN_NOTE, 'Status changed from "done" to "new"']
    await env.dispatcher.drain()
    assert [h["session_key"] for h in env.gateway.hooks] == ["hook:dashboard:t1"]


async def test_spawn_batch_reports_skips(env):
    write_json(env.paths.tasks, [
        _record("a"),
        _record("b", status="in-progress"),
        _record("c", status="failed"),
    ])

    result = await env.tasks.spawn_batch(SpawnBatchRequest(task_ids=["a", "b", "c", "zzz"]))

    assert result.spawned == 2
    assert [t.id for t in result.tasks] == ["a", "c"]
    assert [(s.id, s.reason) for s in result.skipped] == [("b", "already running"), ("zzz", "not found")]

    stored = {r["id"]: r for r in read_json(env.paths.tasks)}
    assert stored["c"]["status"] == "new"
    assert stored["c"]["notes"][0]["text"] == "⚡ Spawned as part of parallel batch (4 tasks)"
    assert stored["c"]["notes"][1]["text"] == 'Status changed from "failed" to "new"'
    assert stored["b"]["notes"] == []

    await env.dispatcher.drain()
    assert sorted(h["session_key"] for h in env.gateway.hooks) == ["hook:dashboard:a", "hook:dashboard:c"]


async def test_spawn_batch_requires_ids(env):
    with pytest.raises(ValidationError, match="taskIds array is required"):
        await env.tasks.spawn_batch(SpawnBatchRequest(task_ids=[]))


# ── List / Delete ───────────────────────────────────────────────────────────────

async def test_list_filters_and_skips_malformed(env):
    write_json(env.paths.tasks, [
        _record("a", priority="high"),
        _record("b", status="done"),
        {"id": "broken", "status": "???"},
    ])

    assert [t.id for t in await env.tasks.list_tasks()] == ["a", "b"]
    assert [t.id for t in await env.tasks.list_tasks(status="done")] == ["b"]
    assert [t.id for t in await env.tasks.list_tasks(priority="high")] == ["a"]


async def test_delete_returns_removed_task(env):
    write_json(env.paths.tasks, [_record("a"), _record("b")])

    removed = await env.tasks.delete_task("a")

    assert removed.id == "a"
    assert [r["id"] for r in read_json(env.paths.tasks)] == ["b"]
    with pytest.raises(NotFoundError):
        await env.tasks.get_task("a")


async def test_delete_unknown_task_leaves_store_untouched(env):
    write_json(env.paths.tasks, [_record("a")])
    before = env.paths.tasks.read_bytes()

    with pytest.raises(NotFoundError, match="Task not found"):
        await env.tasks.delete_task("missing")

    assert env.paths.tasks.read_bytes() == before


async def test_history_only_lists_tasks_with_notes(env):
    write_json(env.paths.tasks, [
        _record("a"),
        _record("b", notes=[{"text": "hi", "timestamp": "2026-01-01T00:00:00.000Z"}]),
    ])
    assert [h.id for h in await env.tasks.history()] == ["b"]
