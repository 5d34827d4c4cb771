"""Async wrappers around process commands used to poke the OpenClaw gateway."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import Optional

logger = logging.getLogger("claw_dashboard.openclaw")


class ProcessCommandError(RuntimeError):
    """A helper command exited non-zero or did not finish in time."""


async def _communicate(proc: asyncio.subprocess.Process, timeout: float, what: str) -> tuple[str, str]:
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise ProcessCommandError(f"{what} timed out after {timeout}s")
    return stdout.decode().strip(), stderr.decode().strip()


async def run_command(args: list[str], timeout: float = 3.0) -> str:
    """Run *args* and return stdout.

    Raises :class:`ProcessCommandError` when the command exits non-zero.
    """
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout_text, stderr_text = await _communicate(proc, timeout, args[0])

    if proc.returncode != 0:
        logger.debug("%s failed (rc=%s): %s", args, proc.returncode, stderr_text)
        raise ProcessCommandError(
            f"{' '.join(args)} exited with {proc.returncode}: {stderr_text or '(no stderr output)'}"
        )
    return stdout_text


async def run_shell(cmd: str, timeout: float = 10.0) -> str:
    """Run an arbitrary shell command and return stdout.

    Raises :class:`ProcessCommandError` on non-zero exit.
    """
    proc = await asyncio.create_subprocess_shell(
        cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout_text, stderr_text = await _communicate(proc, timeout, cmd)

    if proc.returncode != 0:
        raise ProcessCommandError(
            f"{cmd} exited with {proc.returncode}: {stderr_text or '(no stderr output)'}"
        )
    return stdout_text


async def find_process(pattern: str) -> Optional[int]:
    """PID of the first process whose command line matches *pattern*, if any."""
    try:
        out = await run_command(["pgrep", "-f", pattern])
    except ProcessCommandError:
        # pgrep exits 1 when nothing matches
        return None
    for line in out.splitlines():
        if line.strip().isdigit():
            return int(line.strip())
    return None


async def signal_gateway_reload(pattern: str, restart_command: str = "") -> None:
    """Ask the gateway to re-read its cron store.

    Sends SIGUSR1 to the gateway process, then runs *restart_command* when
    one is configured.  Every failure is logged and swallowed; the gateway
    also polls the store on its own.
    """
    try:
        pid = await find_process(pattern)
        if pid is not None:
            os.kill(pid, signal.SIGUSR1)
            logger.info("Sent SIGUSR1 to gateway pid %d", pid)
        else:
            logger.debug("No gateway process matches %r", pattern)
    except (OSError, AttributeError, ProcessCommandError) as exc:
        logger.warning("Could not signal gateway reload: %s", exc)

    if restart_command:
        try:
            await run_shell(restart_command)
            logger.info("Gateway restart command finished")
        except (OSError, ProcessCommandError) as exc:
            logger.warning("Gateway restart command failed: %s", exc)
