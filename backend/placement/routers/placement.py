from __future__ import annotations

import logging
from typing import Union

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import NotFoundError, PersistenceError, PlacementError, StateError, ValidationError
from ..orchestrator import PlacementOrchestrator
from ..schemas import AssessmentSummary, NextRequest, PendingQuestion, PlacementResult, StartResponse
from ..store import AssessmentStore
from .auth import User, get_current_user


router = APIRouter(prefix="/placement", tags=["placement"])

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (StateError, 409),
    (PersistenceError, 503),
)


def get_orchestrator(request: Request) -> PlacementOrchestrator:
    return request.app.state.orchestrator


def get_store(db: Session = Depends(get_db)) -> AssessmentStore:
    return AssessmentStore(db)


def _to_http(exc: PlacementError) -> HTTPException:
    for error_cls, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            if status_code >= 500:
                logger.error("Placement request failed: %s", exc)
            return HTTPException(status_code=status_code, detail=str(exc))
    logger.error("Unexpected placement error: %s", exc)
    return HTTPException(status_code=500, detail="Placement engine error")


@router.post("/start", response_model=StartResponse)
async def start(
    user: User = Depends(get_current_user),
    store: AssessmentStore = Depends(get_store),
    orchestrator: PlacementOrchestrator = Depends(get_orchestrator),
):
    try:
        return orchestrator.start(store, user.username)
    except PlacementError as exc:
        raise _to_http(exc)


@router.post("/next", response_model=Union[PendingQuestion, PlacementResult])
async def next_question(
    req: NextRequest,
    user: User = Depends(get_current_user),
    store: AssessmentStore = Depends(get_store),
    orchestrator: PlacementOrchestrator = Depends(get_orchestrator),
):
    try:
        return await orchestrator.advance(store, req.assessment_id, user.username, req.answer, req.item_id)
    except PlacementError as exc:
        raise _to_http(exc)


@router.get("/{assessment_id}", response_model=AssessmentSummary)
async def summary(
    assessment_id: str,
    user: User = Depends(get_current_user),
    store: AssessmentStore = Depends(get_store),
    orchestrator: PlacementOrchestrator = Depends(get_orchestrator),
):
    try:
        return orchestrator.describe(store, assessment_id, user.username)
    except PlacementError as exc:
        raise _to_http(exc)
