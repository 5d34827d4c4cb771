"""Shared-secret authentication for dashboard routes."""

import secrets
from typing import Annotated, Optional

from fastapi import Depends, Request

from .dependencies import get_auth_token
from .errors import UnauthorizedError

COOKIE_NAME = "ds"


def _matches(candidate: Optional[str], token: str) -> bool:
    if not candidate:
        return False
    return secrets.compare_digest(candidate.encode(), token.encode())


def is_authorized(request: Request, token: str) -> bool:
    """Token query param, ``Authorization: Bearer`` header or the ``ds`` cookie.

    An empty configured token leaves the dashboard open.
    """
    if not token:
        return True
    if _matches(request.query_params.get("token"), token):
        return True
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer ") and _matches(header[len("Bearer "):].strip(), token):
        return True
    return _matches(request.cookies.get(COOKIE_NAME), token)


async def require_token(
    request: Request,
    token: Annotated[str, Depends(get_auth_token)],
) -> None:
    if not is_authorized(request, token):
        raise UnauthorizedError()
