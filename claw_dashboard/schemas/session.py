"""Schemas for the agent liveness snapshot served at ``GET /agents``."""

from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SessionCategory(str, Enum):
    MAIN = "main"
    SUBAGENT = "subagent"
    HOOK = "hook"
    CRON = "cron"
    GROUP = "group"

    @classmethod
    def from_key(cls, key: str) -> "SessionCategory":
        """Classify a session key; the first matching rule wins."""
        if key.endswith(":main"):
            return cls.MAIN
        if ":subagent:" in key:
            return cls.SUBAGENT
        if ":hook:" in key:
            return cls.HOOK
        if ":cron:" in key:
            return cls.CRON
        return cls.GROUP


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionEntry(_CamelModel):
    key: str
    category: SessionCategory
    updated_at: int
    age_ms: int
    age_minutes: int
    is_active: bool
    model: str = ""
    total_tokens: int = 0
    context_tokens: int = 0
    channel: str = ""
    display_name: str = ""
    label: str = ""
    session_id: str = ""
    # subagent sessions only
    task: Optional[str] = None
    requester_session_key: Optional[str] = None
    subagent_status: Optional[str] = None
    # hook sessions only
    hook_source: Optional[Literal["dashboard", "external"]] = None


class MainAgentStatus(_CamelModel):
    status: Literal["active", "idle"]
    age_minutes: int
    model: str
    total_tokens: int
    channel: str


class CategorySummary(_CamelModel):
    total: int
    active: int
    sessions: List[SessionEntry] = []


class SessionSummary(_CamelModel):
    total_sessions: int
    active_sessions: int
    main_agent: Optional[MainAgentStatus] = None
    subagents: CategorySummary
    hooks: CategorySummary
    crons: CategorySummary
    groups: CategorySummary
    timestamp: int
