"""
Study session router.

Endpoints for planning sessions, serving the daily review queue,
storing collaborator-generated items and recording graded answers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from synapse.api.deps import get_service
from synapse.core.models import Level, ReviewMode, SessionType, UserContext, UserSignals
from synapse.core.sanitize import context_from_dict, item_from_dict
from synapse.delivery.review_service import ReviewService

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class SignalsModel(BaseModel):
    """Self-reported learner signals."""

    model_config = ConfigDict(populate_by_name=True)

    time_available: int = Field(alias="timeAvailable", ge=0)
    energy_level: Level = Field(default=Level.MEDIUM, alias="energyLevel")
    stress_level: Level = Field(default=Level.MEDIUM, alias="stressLevel")

    def to_signals(self) -> UserSignals:
        return UserSignals(
            time_available=self.time_available,
            energy_level=self.energy_level,
            stress_level=self.stress_level,
        )


class ContextModel(BaseModel):
    """An already calibrated learner context."""

    model_config = ConfigDict(populate_by_name=True)

    focus_score: int = Field(alias="focusScore", ge=1, le=100)
    session_type: SessionType = Field(alias="sessionType")
    state_description: str = Field(default="", alias="stateDescription")


class DirectiveRequest(BaseModel):
    """
    Model for a session planning request.

    Either a calibrated context or raw signals (calibrated server-side).
    The time budget defaults to the signals' time available.
    """

    signals: Optional[SignalsModel] = None
    context: Optional[ContextModel] = None
    minutes: Optional[int] = Field(default=None, ge=0)


class ReviewRequest(BaseModel):
    """Model for a graded answer."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(alias="itemId", min_length=1)
    quality: int = Field(ge=0, le=5)
    mode: ReviewMode = ReviewMode.SESSION


# ========================================
# Session Endpoints
# ========================================


def _context(request: DirectiveRequest, service: ReviewService) -> UserContext:
    signals = request.signals.to_signals() if request.signals else None
    if request.context:
        return UserContext(
            focus_score=request.context.focus_score,
            session_type=request.context.session_type,
            state_description=request.context.state_description,
            signals=signals,
        )
    if signals:
        return service.calibrate(signals)
    return context_from_dict({})


@router.post("/{graph_id}/directive", summary="Plan the next session")
def plan_session(
    graph_id: str,
    request: DirectiveRequest,
    service: ReviewService = Depends(get_service),
) -> Dict[str, Any]:
    context = _context(request, service)
    directive = service.plan_session(graph_id, context, request.minutes)
    return {"context": context.to_dict(), "directive": directive.to_dict()}


@router.get("/{graph_id}/queue", summary="Get the daily review queue")
def get_queue(
    graph_id: str,
    limit: Optional[int] = Query(default=None, ge=0, le=200),
    service: ReviewService = Depends(get_service),
) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in service.daily_queue(graph_id, limit=limit)]


@router.get("/{graph_id}/items", summary="List study items")
def list_items(graph_id: str, service: ReviewService = Depends(get_service)) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in service.items(graph_id)]


@router.post("/{graph_id}/items", status_code=status.HTTP_201_CREATED, summary="Add study items")
def add_items(
    graph_id: str,
    payload: List[Dict[str, Any]],
    service: ReviewService = Depends(get_service),
) -> Dict[str, Any]:
    """
    Store items produced by a generation collaborator.

    Records are sanitized; records without an id and ids already stored are
    skipped.
    """
    parsed = [item for item in (item_from_dict(raw) for raw in payload) if item is not None]
    added = service.add_items(graph_id, parsed)
    return {"added": len(added), "skipped": len(payload) - len(added)}


@router.post("/{graph_id}/reviews", summary="Record a graded answer")
def record_review(
    graph_id: str,
    request: ReviewRequest,
    service: ReviewService = Depends(get_service),
) -> Dict[str, Any]:
    logger.info(f"Review request: {graph_id}/{request.item_id} q={request.quality}")
    outcome = service.record_review(graph_id, request.item_id, request.quality, mode=request.mode)
    return outcome.to_dict()
