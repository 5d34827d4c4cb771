"""OpenClaw Dashboard: FastAPI application entry-point."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from claw_dashboard.config import settings
from claw_dashboard.dependencies import get_dispatcher
from claw_dashboard.errors import DashboardError
from claw_dashboard.routers.attachment_router import router as attachment_router
from claw_dashboard.routers.cron_router import router as cron_router
from claw_dashboard.routers.session_router import router as session_router
from claw_dashboard.routers.task_router import router as task_router
from claw_dashboard.routers.workspace_router import router as workspace_router

# ── Logging ─────────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
)
logger = logging.getLogger("claw_dashboard")

_STARTED_AT = time.monotonic()


# ── Lifespan ────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Dashboard starting: hook=%s  data_dir=%s  workspace=%s",
        settings.OPENCLAW_HOOK_URL,
        settings.DATA_DIR,
        settings.OPENCLAW_WORKSPACE,
    )
    if not settings.OPENCLAW_AUTH_TOKEN:
        logger.warning("OPENCLAW_AUTH_TOKEN is not set; every route is open")
    dispatcher = get_dispatcher()
    dispatcher.start()
    yield
    await dispatcher.stop()
    logger.info("Dashboard shutting down")


# ── App ─────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="OpenClaw Dashboard",
    description=(
        "Task list, cron jobs and agent activity for an OpenClaw agent. "
        "Hands tasks to the agent through the gateway's webhook."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ── Exception handlers ──────────────────────────────────────────────────────────

@app.exception_handler(DashboardError)
async def _dashboard_error(request: Request, exc: DashboardError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def _unhandled_exception(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "error": type(exc).__name__,
            "path": str(request.url.path),
            "method": request.method,
        },
    )


# ── Health ──────────────────────────────────────────────────────────────────────

@app.get("/health", tags=["Health"])
async def health():
    """Liveness probe; needs no token."""
    return {"status": "ok", "uptime": round(time.monotonic() - _STARTED_AT, 3)}


app.include_router(task_router)
app.include_router(attachment_router)
app.include_router(cron_router)
app.include_router(session_router)
app.include_router(workspace_router)


# ── Entry-point ─────────────────────────────────────────────────────────────────

def main():
    uvicorn.run(
        "main:app",
        host=settings.DASHBOARD_HOST,
        port=settings.DASHBOARD_PORT,
        log_level="info",
    )


if __name__ == "__main__":
    main()
