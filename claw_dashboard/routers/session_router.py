from typing import Annotated

from fastapi import APIRouter, Depends

from ..dependencies import get_session_service
from ..schemas.session import SessionSummary
from ..security import require_token
from ..services.session_service import SessionService

router = APIRouter(tags=["Sessions"], dependencies=[Depends(require_token)])


@router.get("/agents", response_model=SessionSummary)
async def agent_sessions(svc: Annotated[SessionService, Depends(get_session_service)]):
    """Activity snapshot of the main agent, sub-agents, hooks, crons and groups."""
    return await svc.snapshot()
