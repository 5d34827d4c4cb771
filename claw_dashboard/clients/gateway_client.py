from abc import ABC, abstractmethod
from typing import Any


class GatewayClient(ABC):
    @abstractmethod
    async def execute_hook(self, message: str, session_key: str, timeout: float) -> Any:
        """Ask the agent runtime to act on *message* in session *session_key*.

        Raises :class:`DispatchTimeoutError` when *timeout* elapses and
        :class:`DispatchError` on any other transport or HTTP failure.
        """

    @abstractmethod
    async def signal_reload(self) -> None:
        """Best-effort nudge for the scheduler to re-read the cron store. Never raises."""
