import json
from types import SimpleNamespace
from typing import Any, List, Optional

import pytest
from fastapi.testclient import TestClient

from claw_dashboard import dependencies
from claw_dashboard.clients.gateway_client import GatewayClient
from claw_dashboard.repositories.attachment_repository import AttachmentRepository
from claw_dashboard.repositories.filesystem_storage import FileSystemStorage
from claw_dashboard.repositories.json_store import cron_collection, task_collection
from claw_dashboard.repositories.run_log_repository import RunLogRepository
from claw_dashboard.services.attachment_service import AttachmentService
from claw_dashboard.services.cron_service import CronService
from claw_dashboard.services.dispatcher import ExecutionDispatcher
from claw_dashboard.services.session_service import SessionService
from claw_dashboard.services.task_service import TaskService
from claw_dashboard.services.workspace_service import WorkspaceService

AUTH_TOKEN = "s3cret-token"
CALLBACK_URL = "http://dashboard.test:18791"
MAX_UPLOAD_BYTES = 64 * 1024


class FakeGateway(GatewayClient):
    """Records hook calls and reload signals instead of talking to a gateway."""

    def __init__(self):
        self.hooks: List[dict] = []
        self.reloads = 0
        self.result: Any = {"ok": True}
        self.error: Optional[Exception] = None

    async def execute_hook(self, message: str, session_key: str, timeout: float) -> Any:
        self.hooks.append({"message": message, "session_key": session_key, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.result

    async def signal_reload(self) -> None:
        self.reloads += 1


def build_env(root) -> SimpleNamespace:
    """Every service wired against directories under *root*."""
    storage = FileSystemStorage()
    gateway = FakeGateway()

    paths = SimpleNamespace(
        tasks=root / "data" / "tasks.json",
        attachments=root / "data" / "attachments",
        cron_store=root / "openclaw" / "cron" / "jobs.json",
        cron_runs=root / "openclaw" / "cron" / "runs",
        sessions=root / "openclaw" / "sessions.json",
        subagent_runs=root / "openclaw" / "subagents" / "runs.json",
        workspace=root / "workspace",
        system_skills=root / "system-skills",
        outbox=root / "outbox",
    )
    paths.outbox.mkdir(parents=True)

    attachment_repo = AttachmentRepository(storage, str(paths.attachments))
    dispatcher = ExecutionDispatcher(
        gateway,
        attachment_repo,
        callback_url=CALLBACK_URL,
        auth_token=AUTH_TOKEN,
        task_timeout=1.0,
        cron_timeout=1.0,
        workers=2,
    )
    task_store = task_collection(storage, str(paths.tasks))
    cron_store = cron_collection(storage, str(paths.cron_store))
    tasks = TaskService(task_store, dispatcher)

    return SimpleNamespace(
        paths=paths,
        storage=storage,
        gateway=gateway,
        dispatcher=dispatcher,
        task_store=task_store,
        cron_store=cron_store,
        attachment_repo=attachment_repo,
        tasks=tasks,
        attachments=AttachmentService(attachment_repo, tasks, [paths.outbox], MAX_UPLOAD_BYTES),
        cron=CronService(cron_store, RunLogRepository(storage, str(paths.cron_runs)), dispatcher, gateway),
        sessions=SessionService(storage, str(paths.sessions), str(paths.subagent_runs), active_minutes=30),
        workspace=WorkspaceService(storage, str(paths.workspace), str(paths.system_skills)),
    )


def write_json(path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def read_json(path):
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
async def env(tmp_path):
    env = build_env(tmp_path)
    yield env
    await env.dispatcher.stop()


@pytest.fixture
def api(tmp_path):
    """A TestClient whose providers all point at a temp directory."""
    from main import app

    env = build_env(tmp_path)
    app.dependency_overrides.update({
        dependencies.get_auth_token: lambda: AUTH_TOKEN,
        dependencies.get_dispatcher: lambda: env.dispatcher,
        dependencies.get_gateway: lambda: env.gateway,
        dependencies.get_task_service: lambda: env.tasks,
        dependencies.get_attachment_service: lambda: env.attachments,
        dependencies.get_cron_service: lambda: env.cron,
        dependencies.get_session_service: lambda: env.sessions,
        dependencies.get_workspace_service: lambda: env.workspace,
    })
    with TestClient(app, headers={"Authorization": f"Bearer {AUTH_TOKEN}"}) as client:
        env.client = client
        env.drain = lambda: client.portal.call(env.dispatcher.drain)
        yield env
        client.portal.call(env.dispatcher.stop)
    app.dependency_overrides.clear()
