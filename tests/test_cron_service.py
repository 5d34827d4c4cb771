import json

import pytest

from claw_dashboard.errors import DispatchError, NotFoundError, ValidationError
from claw_dashboard.schemas.cron import CreateCronRequest, UpdateCronRequest

from .conftest import read_json, write_json

DIGEST = {"kind": "cron", "expr": "0 9 * * *", "tz": "Europe/Berlin"}


def _job(job_id, enabled=True, next_run=None, **extra):
    job = {
        "id": job_id,
        "agentId": "main",
        "name": f"Job {job_id}",
        "enabled": enabled,
        "createdAtMs": 1,
        "updatedAtMs": 1,
        "schedule": DIGEST,
        "sessionTarget": "isolated",
        "wakeMode": "now",
        "payload": {"kind": "agentTurn", "message": f"run {job_id}"},
        "state": {"nextRunAtMs": next_run},
    }
    job.update(extra)
    return job


def _store(env, *jobs):
    write_json(env.paths.cron_store, {"version": 1, "jobs": list(jobs)})


async def test_create_daily_digest(env):
    job = await env.cron.create_job(CreateCronRequest(name="  Daily digest ", schedule=DIGEST))

    assert job["name"] == "Daily digest"
    assert job["agentId"] == "main"
    assert job["enabled"] is True
    assert job["sessionTarget"] == "isolated"
    assert job["wakeMode"] == "now"
    assert job["payload"] == {"kind": "agentTurn", "message": ""}
    assert job["state"] == {"nextRunAtMs": None, "lastRunAtMs": None, "lastStatus": None, "lastDurationMs": None}
    assert job["createdAtMs"] == job["updatedAtMs"]

    assert read_json(env.paths.cron_store)["jobs"] == [job]
    assert env.gateway.reloads == 1


async def test_create_validates(env):
    with pytest.raises(ValidationError, match="name is required"):
        await env.cron.create_job(CreateCronRequest(schedule=DIGEST))
    with pytest.raises(ValidationError, match="schedule is required"):
        await env.cron.create_job(CreateCronRequest(name="x"))
    assert env.gateway.reloads == 0
    assert not env.paths.cron_store.exists()


async def test_update_resets_next_run_on_schedule_change(env):
    _store(env, _job("a", next_run=5_000, state_extra=True))

    job = await env.cron.update_job("a", UpdateCronRequest(schedule={"kind": "every", "everyMs": 60000}))

    assert job["schedule"] == {"kind": "every", "everyMs": 60000}
    assert job["state"]["nextRunAtMs"] is None
    assert job["updatedAtMs"] > 1
    stored = read_json(env.paths.cron_store)["jobs"][0]
    assert stored["state_extra"] is True
    assert env.gateway.reloads == 1


async def test_update_ignores_null_fields(env):
    _store(env, _job("a", next_run=5_000))

    job = await env.cron.update_job("a", UpdateCronRequest(enabled=False, name=None))

    assert job["enabled"] is False
    assert job["name"] == "Job a"
    assert job["state"]["nextRunAtMs"] == 5_000


async def test_update_and_delete_unknown_job(env):
    _store(env, _job("a"))
    with pytest.raises(NotFoundError, match="Job not found"):
        await env.cron.update_job("zzz", UpdateCronRequest(enabled=False))
    with pytest.raises(NotFoundError):
        await env.cron.delete_job("zzz")
    assert env.gateway.reloads == 0


async def test_delete_returns_removed_job(env):
    _store(env, _job("a"), _job("b"))

    removed = await env.cron.delete_job("a")

    assert removed["id"] == "a"
    assert [j["id"] for j in read_json(env.paths.cron_store)["jobs"]] == ["b"]
    assert env.gateway.reloads == 1


async def test_reads_do_not_signal_reload(env):
    _store(env, _job("a"))
    await env.cron.list_jobs()
    await env.cron.get_job("a")
    await env.cron.status()
    await env.cron.get_runs("a")
    assert env.gateway.reloads == 0


async def test_status_picks_soonest_enabled_run(env):
    _store(
        env,
        _job("a", next_run=10_000),
        _job("b", next_run=4_000),
        _job("c", enabled=False, next_run=1_000),
        _job("d", next_run=None),
    )

    status = await env.cron.status(now=5_000)

    assert status.total == 4
    assert status.enabled == 3
    assert status.disabled == 1
    assert status.next_run_at_ms == 4_000
    assert status.next_run_in == 0


async def test_status_keeps_zero_next_run(env):
    _store(env, _job("a", next_run=0), _job("b", next_run=4_000))

    status = await env.cron.status(now=5_000)

    assert status.next_run_at_ms == 0
    assert status.next_run_in == 0


async def test_status_of_empty_store(env):
    status = await env.cron.status(now=5_000)
    assert (status.total, status.next_run_at_ms, status.next_run_in) == (0, None, None)


async def test_runs_skip_malformed_lines_and_respect_limit(env):
    env.paths.cron_runs.mkdir(parents=True)
    lines = [json.dumps({"ts": ts, "status": "ok"}) for ts in (100, 300, 200)]
    lines.insert(1, "{truncated")
    lines.append("")
    (env.paths.cron_runs / "a.jsonl").write_text("\n".join(lines), encoding="utf-8")

    result = await env.cron.get_runs("a", limit=2)

    assert result.job_id == "a"
    assert [r["ts"] for r in result.runs] == [300, 200]
    assert result.count == 2
    assert (await env.cron.get_runs("a", limit=0)).count == 3
    assert (await env.cron.get_runs("never-ran")).runs == []


async def test_runs_skip_non_utf8_lines(env):
    env.paths.cron_runs.mkdir(parents=True)
    (env.paths.cron_runs / "a.jsonl").write_bytes(b'{"ts": 1}\n\xff\xfe garbage\n{"ts": 2}\n')

    result = await env.cron.get_runs("a", limit=2)

    assert [r["ts"] for r in result.runs] == [2, 1]


async def test_runs_reject_path_traversal(env):
    with pytest.raises(ValidationError):
        await env.cron.get_runs("../jobs")


async def test_run_now(env):
    _store(env, _job("a"))
    env.gateway.result = {"ok": True, "runId": "r9"}

    result = await env.cron.run_now("a")

    assert result.ok is True
    assert result.job_id == "a"
    assert result.result == {"ok": True, "runId": "r9"}
    assert env.gateway.hooks == [{"message": "run a", "session_key": "hook:dashboard-cron:a", "timeout": 1.0}]
    assert env.gateway.reloads == 0


async def test_run_now_errors(env):
    _store(env, _job("a"))
    with pytest.raises(NotFoundError):
        await env.cron.run_now("zzz")

    env.gateway.error = DispatchError("gateway down")
    with pytest.raises(DispatchError, match="gateway down"):
        await env.cron.run_now("a")


async def test_reload_signal_failures_are_swallowed(monkeypatch):
    from claw_dashboard import openclaw

    calls = []

    async def no_gateway(pattern):
        calls.append(("find", pattern))
        return None

    async def failing_restart(cmd, timeout=10.0):
        calls.append(("restart", cmd))
        raise openclaw.ProcessCommandError("systemctl exited with 1")

    monkeypatch.setattr(openclaw, "find_process", no_gateway)
    monkeypatch.setattr(openclaw, "run_shell", failing_restart)

    await openclaw.signal_gateway_reload("node.*gateway", "systemctl restart openclaw")

    assert calls == [("find", "node.*gateway"), ("restart", "systemctl restart openclaw")]
