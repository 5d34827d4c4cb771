from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateCronRequest(_CamelModel):
    name: Optional[str] = None
    schedule: Optional[Any] = None  # opaque, owned by the external scheduler
    agent_id: Optional[str] = None
    enabled: Optional[bool] = None
    session_target: Optional[str] = None
    wake_mode: Optional[str] = None
    payload: Optional[Any] = None


class UpdateCronRequest(_CamelModel):
    name: Optional[str] = None
    enabled: Optional[bool] = None
    schedule: Optional[Any] = None
    session_target: Optional[str] = None
    wake_mode: Optional[str] = None
    payload: Optional[Any] = None


class CronListResponse(BaseModel):
    jobs: List[dict]
    version: Any = 1


class CronStatusResponse(_CamelModel):
    total: int
    enabled: int
    disabled: int
    next_run_at_ms: Optional[int] = None
    next_run_in: Optional[int] = None


class CronRunsResponse(_CamelModel):
    job_id: str
    runs: List[dict]
    count: int


class CronRunNowResponse(_CamelModel):
    ok: bool = True
    job_id: str
    result: Any = None
