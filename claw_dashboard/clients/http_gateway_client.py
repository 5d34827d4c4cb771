import asyncio
import logging
from typing import Any, Optional

import httpx

from ..errors import DispatchError, DispatchTimeoutError
from ..openclaw import signal_gateway_reload
from .gateway_client import GatewayClient

logger = logging.getLogger("claw_dashboard.clients.http_gateway_client")


class HttpGatewayClient(GatewayClient):
    """Talks to the gateway's ``/hooks/agent`` endpoint over HTTP."""

    def __init__(
        self,
        hook_url: str,
        hook_token: str,
        process_pattern: str,
        restart_command: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.hook_url = hook_url
        self.hook_token = hook_token
        self.process_pattern = process_pattern
        self.restart_command = restart_command
        self._transport = transport

    async def _post(self, body: dict, timeout: float) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.hook_token}",
        }
        async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=self._transport) as client:
            return await client.post(self.hook_url, json=body, headers=headers)

    async def execute_hook(self, message: str, session_key: str, timeout: float) -> Any:
        body = {"message": message, "sessionKey": session_key}
        try:
            # wait_for bounds the whole exchange; httpx timeouts are per phase
            resp = await asyncio.wait_for(self._post(body, timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise DispatchTimeoutError(
                f"Timeout after {timeout:g}s calling gateway hook for {session_key}"
            ) from exc
        except httpx.HTTPError as exc:
            raise DispatchError(f"Cannot reach gateway hook at {self.hook_url}: {exc}") from exc

        if resp.status_code >= 400:
            raise DispatchError(
                f"Gateway hook returned {resp.status_code}: {resp.text[:200]}"
            )

        logger.debug("Hook %s accepted: %s %s", session_key, resp.status_code, resp.text[:200])
        try:
            return resp.json()
        except ValueError:
            return {"ok": True, "raw": resp.text}

    async def signal_reload(self) -> None:
        await signal_gateway_reload(self.process_pattern, self.restart_command)
