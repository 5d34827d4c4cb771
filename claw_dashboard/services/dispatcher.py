"""Execution triggers sent to the OpenClaw gateway hook.

Task triggers are fire-and-forget: ``dispatch_task`` only enqueues, and a
small pool of worker coroutines drains the queue, sending one hook call per
trigger and logging the outcome.  The request that created or spawned the
task has already committed its write by then, so a gateway outage never
fails it.  Cron run-now calls are awaited and their result or error goes
back to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Tuple

from ..clients.gateway_client import GatewayClient
from ..errors import DispatchError
from ..repositories.attachment_repository import AttachmentRepository, format_file_size
from ..schemas.attachment import AttachmentInfo
from ..schemas.task import Task

logger = logging.getLogger("claw_dashboard.services.dispatcher")


def task_session_key(task_id: str) -> str:
    return f"hook:dashboard:{task_id}"


def cron_session_key(job_id: str) -> str:
    return f"hook:dashboard-cron:{job_id}"


def _attachment_block(attachments: List[Tuple[AttachmentInfo, str]]) -> str:
    if not attachments:
        return ""
    images = [(a, p) for a, p in attachments if a.is_image]
    others = [(a, p) for a, p in attachments if not a.is_image]
    count = len(attachments)

    lines = ["", f"User-uploaded attachments ({count} file{'s' if count > 1 else ''}):"]
    if images:
        lines.append("  Images:")
        lines += [f"   - {a.name} -> `{p}` ({format_file_size(a.size)})" for a, p in images]
    if others:
        lines.append("  Other files:")
        lines += [f"   - {a.name} -> `{p}` ({format_file_size(a.size)})" for a, p in others]
    if images:
        lines += [
            "",
            f"IMPORTANT: the user attached {len(images)} image(s) to this task. Before doing anything else:",
            "   1. Inspect every attached image with your image tool to understand what the user wants.",
            "   2. If the task is to edit or remake an image, use the attached image as the input file.",
            "   3. Refer to attached files by the absolute paths listed above.",
        ]
    return "\n".join(lines)


def build_task_message(
    task: Task,
    attachments: List[Tuple[AttachmentInfo, str]],
    callback_url: str,
    auth_token: str,
) -> str:
    """Instruction text for the agent, including the curl callbacks it must make."""
    base = callback_url.rstrip("/")
    task_url = f"{base}/tasks/{task.id}"
    json_header = "-H 'Content-Type: application/json'"

    return f"""Execute this dashboard task immediately.

Task ID: {task.id}
Title: {task.title}
Description: {task.description or '(no description)'}
Priority: {task.priority or 'medium'}{_attachment_block(attachments)}

Steps:
1. Set the status to in-progress: curl -s -X PATCH '{task_url}?token={auth_token}' {json_header} -d '{{"status":"in-progress"}}'
2. Execute the task (do what the title/description says).
3. IMPORTANT, file attachments: if you produce ANY files (images, documents, PDFs, ...), attach each one to the task:
   curl -s -X POST '{task_url}/attachments?token={auth_token}' {json_header} -d '{{"filePath":"/absolute/path/to/file.ext","source":"agent"}}'
   filePath must be the absolute path of the generated file on this server so the dashboard can show it.
4. Add the result as a note: curl -s -X POST '{task_url}/notes?token={auth_token}' {json_header} -d '{{"text":"<YOUR_RESULT>"}}'
5. Mark it done: curl -s -X PATCH '{task_url}?token={auth_token}' {json_header} -d '{{"status":"done"}}'
6. If it fails, set the status to failed and put the error in a note."""


class ExecutionDispatcher:
    def __init__(
        self,
        gateway: GatewayClient,
        attachments: AttachmentRepository,
        callback_url: str,
        auth_token: str,
        task_timeout: float = 10.0,
        cron_timeout: float = 15.0,
        workers: int = 4,
    ):
        self.gateway = gateway
        self.attachments = attachments
        self.callback_url = callback_url
        self.auth_token = auth_token
        self.task_timeout = task_timeout
        self.cron_timeout = cron_timeout
        self.worker_count = max(1, workers)
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # ── Worker pool ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Create the outbox queue and its workers on the running loop (idempotent)."""
        loop = asyncio.get_running_loop()
        if self._queue is not None and self._loop is loop:
            return
        self._loop = loop
        self._queue = asyncio.Queue()
        self._workers = [
            loop.create_task(self._worker(), name=f"dispatch-worker-{n}")
            for n in range(self.worker_count)
        ]
        logger.info("Dispatcher started with %d workers", self.worker_count)

    async def drain(self) -> None:
        """Wait until every queued trigger has been attempted."""
        if self._queue is not None and self._loop is asyncio.get_running_loop():
            await self._queue.join()

    async def stop(self) -> None:
        workers, self._workers = self._workers, []
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        self._queue = None
        self._loop = None

    async def _worker(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            task = await queue.get()
            try:
                await self._send_task(task)
            except Exception:
                logger.exception("Unexpected error dispatching task %s", task.id)
            finally:
                queue.task_done()

    # ── Task triggers ───────────────────────────────────────────────────────────

    def dispatch_task(self, task: Task) -> None:
        """Queue an execution trigger for *task* and return immediately."""
        self.start()
        self._queue.put_nowait(task.model_copy(deep=True))

    async def _attachment_manifest(self, task_id: str) -> List[Tuple[AttachmentInfo, str]]:
        try:
            infos = await self.attachments.list(task_id)
        except OSError as exc:
            logger.error("Error scanning attachments for task %s: %s", task_id, exc)
            return []
        return [(a, str(self.attachments.file_path(task_id, a.name))) for a in infos]

    async def _send_task(self, task: Task) -> None:
        manifest = await self._attachment_manifest(task.id)
        message = build_task_message(task, manifest, self.callback_url, self.auth_token)
        try:
            result = await self.gateway.execute_hook(message, task_session_key(task.id), self.task_timeout)
        except DispatchError as exc:
            logger.error("Failed to trigger task %s: %s", task.id, exc.message)
            return
        logger.info("Task %s triggered: %s", task.id, str(result)[:200])

    # ── Cron triggers ───────────────────────────────────────────────────────────

    async def dispatch_cron_run(self, job: dict) -> Any:
        """Run *job* now and return the gateway's answer.

        Raises :class:`DispatchError` / :class:`DispatchTimeoutError`.
        """
        payload = job.get("payload") or {}
        message = payload.get("message", "") if isinstance(payload, dict) else ""
        result = await self.gateway.execute_hook(
            message or "", cron_session_key(job["id"]), self.cron_timeout,
        )
        logger.info("Cron job %s triggered manually", job["id"])
        return result
