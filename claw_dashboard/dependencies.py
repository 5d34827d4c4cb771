"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends

from .config import settings
from .clients.gateway_client import GatewayClient
from .clients.http_gateway_client import HttpGatewayClient
from .repositories.attachment_repository import AttachmentRepository
from .repositories.filesystem_storage import FileSystemStorage
from .repositories.json_store import cron_collection, task_collection
from .repositories.run_log_repository import RunLogRepository
from .repositories.storage import StorageRepository
from .services.attachment_service import AttachmentService
from .services.cron_service import CronService
from .services.dispatcher import ExecutionDispatcher
from .services.session_service import SessionService
from .services.task_service import TaskService
from .services.workspace_service import WorkspaceService

# Singletons: each collection store owns the lock that serializes its writers,
# and the dispatcher owns the outbox worker pool.
_storage = FileSystemStorage()
_gateway = HttpGatewayClient(
    hook_url=settings.OPENCLAW_HOOK_URL,
    hook_token=settings.OPENCLAW_HOOK_TOKEN,
    process_pattern=settings.GATEWAY_PROCESS_PATTERN,
    restart_command=settings.GATEWAY_RESTART_COMMAND,
)
_attachments = AttachmentRepository(_storage, str(settings.attachments_dir))
_dispatcher = ExecutionDispatcher(
    _gateway,
    _attachments,
    callback_url=settings.DASHBOARD_PUBLIC_URL,
    auth_token=settings.OPENCLAW_AUTH_TOKEN,
    task_timeout=settings.TASK_TRIGGER_TIMEOUT_S,
    cron_timeout=settings.CRON_TRIGGER_TIMEOUT_S,
    workers=settings.DISPATCH_WORKERS,
)
_task_store = task_collection(_storage, str(settings.tasks_file))
_cron_store = cron_collection(_storage, str(settings.cron_store_path))
_runs = RunLogRepository(_storage, str(settings.cron_runs_dir))


def get_auth_token() -> str:
    return settings.OPENCLAW_AUTH_TOKEN


def get_storage() -> StorageRepository:
    return _storage


def get_gateway() -> GatewayClient:
    return _gateway


def get_dispatcher() -> ExecutionDispatcher:
    return _dispatcher


def get_task_service(
    dispatcher: Annotated[ExecutionDispatcher, Depends(get_dispatcher)],
) -> TaskService:
    return TaskService(_task_store, dispatcher)


def get_attachment_service(
    tasks: Annotated[TaskService, Depends(get_task_service)],
) -> AttachmentService:
    return AttachmentService(
        _attachments, tasks, settings.attachment_source_dirs, settings.max_upload_bytes,
    )


def get_cron_service(
    dispatcher: Annotated[ExecutionDispatcher, Depends(get_dispatcher)],
    gateway: Annotated[GatewayClient, Depends(get_gateway)],
) -> CronService:
    return CronService(_cron_store, _runs, dispatcher, gateway)


def get_session_service(
    storage: Annotated[StorageRepository, Depends(get_storage)],
) -> SessionService:
    return SessionService(
        storage,
        str(settings.sessions_file),
        str(settings.subagent_runs_file),
        active_minutes=settings.SESSION_ACTIVE_MINUTES,
    )


def get_workspace_service(
    storage: Annotated[StorageRepository, Depends(get_storage)],
) -> WorkspaceService:
    return WorkspaceService(storage, settings.OPENCLAW_WORKSPACE, settings.OPENCLAW_SYSTEM_SKILLS)
