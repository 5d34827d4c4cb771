"""Application settings loaded from environment variables."""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env relative to the project root (one level above claw_dashboard/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"
_HOME = Path.home()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DASHBOARD_HOST: str = "0.0.0.0"
    DASHBOARD_PORT: int = 18791
    DASHBOARD_PUBLIC_URL: str = "http://localhost:18791"  # Base URL the agent calls back on

    OPENCLAW_AUTH_TOKEN: str = ""  # Shared secret for every dashboard route except /health
    OPENCLAW_HOOK_URL: str = "http://127.0.0.1:18789/hooks/agent"
    OPENCLAW_HOOK_TOKEN: str = ""

    OPENCLAW_HOME: str = str(_HOME / ".openclaw")
    OPENCLAW_WORKSPACE: str = str(_HOME / "clawd")
    OPENCLAW_SESSIONS_FILE: str = ""  # Defaults to {OPENCLAW_HOME}/agents/main/sessions/sessions.json
    OPENCLAW_SUBAGENT_RUNS: str = ""  # Defaults to {OPENCLAW_HOME}/subagents/runs.json
    OPENCLAW_SYSTEM_SKILLS: str = "/opt/homebrew/lib/node_modules/openclaw/skills"

    DATA_DIR: str = str(_PROJECT_ROOT / "data")  # Holds tasks.json and attachments/
    CRON_STORE_PATH: str = ""  # Defaults to {OPENCLAW_HOME}/cron/jobs.json
    CRON_RUNS_DIR: str = ""  # Defaults to {OPENCLAW_HOME}/cron/runs

    TASK_TRIGGER_TIMEOUT_S: float = 10.0
    CRON_TRIGGER_TIMEOUT_S: float = 15.0
    DISPATCH_WORKERS: int = 4

    MAX_UPLOAD_MB: int = 20
    ATTACHMENT_SOURCE_DIRS: List[str] = []  # Empty means /tmp, the workspace and ~/openclaw

    SESSION_ACTIVE_MINUTES: int = 30

    GATEWAY_PROCESS_PATTERN: str = "node.*openclaw.*gateway"
    GATEWAY_RESTART_COMMAND: str = ""  # e.g. "sudo systemctl restart openclaw-gateway"

    # ── Derived paths ───────────────────────────────────────────────────────────

    @property
    def tasks_file(self) -> Path:
        return Path(self.DATA_DIR) / "tasks.json"

    @property
    def attachments_dir(self) -> Path:
        return Path(self.DATA_DIR) / "attachments"

    @property
    def cron_store_path(self) -> Path:
        if self.CRON_STORE_PATH:
            return Path(self.CRON_STORE_PATH)
        return Path(self.OPENCLAW_HOME) / "cron" / "jobs.json"

    @property
    def cron_runs_dir(self) -> Path:
        if self.CRON_RUNS_DIR:
            return Path(self.CRON_RUNS_DIR)
        return Path(self.OPENCLAW_HOME) / "cron" / "runs"

    @property
    def sessions_file(self) -> Path:
        if self.OPENCLAW_SESSIONS_FILE:
            return Path(self.OPENCLAW_SESSIONS_FILE)
        return Path(self.OPENCLAW_HOME) / "agents" / "main" / "sessions" / "sessions.json"

    @property
    def subagent_runs_file(self) -> Path:
        if self.OPENCLAW_SUBAGENT_RUNS:
            return Path(self.OPENCLAW_SUBAGENT_RUNS)
        return Path(self.OPENCLAW_HOME) / "subagents" / "runs.json"

    @property
    def attachment_source_dirs(self) -> List[Path]:
        if self.ATTACHMENT_SOURCE_DIRS:
            return [Path(d) for d in self.ATTACHMENT_SOURCE_DIRS]
        return [Path("/tmp"), Path(self.OPENCLAW_WORKSPACE), _HOME / "openclaw"]

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_UPLOAD_MB * 1024 * 1024


settings = Settings()
