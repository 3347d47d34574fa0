from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Header, HTTPException, Request

import config
from models.base import utcnow
from schemas.notifications import RunReport, WindowStatusOut
from segmentation.orchestrator import Orchestrator

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = structlog.get_logger()


def require_internal(x_internal_token: Optional[str]) -> None:
    secret = config.PUSH_INTERNAL_TOKEN
    if secret and (x_internal_token or "").strip() != secret:
        logger.warning("api.forbidden")
        raise HTTPException(status_code=403, detail="Forbidden")


def get_orchestrator(request: Request) -> Orchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Notification engine not initialized")
    return orchestrator


@router.post("/segments/run", response_model=RunReport)
async def run_segments(request: Request, x_internal_token: Optional[str] = Header(default=None)):
    require_internal(x_internal_token)
    orchestrator = get_orchestrator(request)

    structlog.contextvars.bind_contextvars(run_id=uuid.uuid4().hex, trigger="manual")
    logger.info("api.run_requested")
    try:
        return await orchestrator.run()
    finally:
        structlog.contextvars.unbind_contextvars("run_id", "trigger")


@router.get("/windows", response_model=WindowStatusOut)
async def window_status(request: Request, x_internal_token: Optional[str] = Header(default=None)):
    require_internal(x_internal_token)
    gate = get_orchestrator(request).gate
    now = utcnow()
    return WindowStatusOut(
        now=now,
        active_countries=gate.active_countries(now),
        supported_countries=gate.supported_countries(),
    )
