"""Timestamp helpers shared by the stores."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. ``2026-01-02T03:04:05.678Z``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_from_epoch(seconds: float) -> str:
    return datetime.fromtimestamp(seconds, timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
