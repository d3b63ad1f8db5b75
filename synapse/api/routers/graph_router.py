"""
Knowledge graph router.

Endpoints for importing and deleting graphs and reading per-graph dashboards
(mastery, progress, weak concepts).
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query, Response, status
from loguru import logger
from pydantic import BaseModel

from synapse.api.deps import get_service
from synapse.delivery.review_service import ReviewService

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class GraphSummary(BaseModel):
    """Model for an imported graph listing entry."""

    id: str
    title: str
    node_count: int
    updated_at: str | None = None


class MasteryResponse(BaseModel):
    """Response model for a graph's mastery layer."""

    graph_id: str
    mastery: List[Dict[str, Any]]
    summary: Dict[str, Any]


class ProgressResponse(BaseModel):
    """Response model for XP/level progress."""

    level: int
    current_xp: int
    xp_for_next_level: int


# ========================================
# Graph Endpoints
# ========================================


@router.post(
    "",
    response_model=GraphSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Import a knowledge graph",
)
def import_graph(
    payload: Dict[str, Any],
    service: ReviewService = Depends(get_service),
) -> GraphSummary:
    """
    Import (or re-import) a knowledge graph.

    The payload is the graph JSON (`id`, `title`, `nodes`, ...). Invalid
    graphs are rejected with 422.
    """
    graph = service.import_graph(payload)
    return GraphSummary(id=graph.id, title=graph.title, node_count=len(graph.nodes))


@router.get("", response_model=List[GraphSummary], summary="List graphs")
def list_graphs(service: ReviewService = Depends(get_service)) -> List[GraphSummary]:
    return [
        GraphSummary(
            id=record.graph_id,
            title=record.title,
            node_count=record.node_count,
            updated_at=record.updated_at.isoformat() if record.updated_at else None,
        )
        for record in service.list_graphs()
    ]


@router.get("/{graph_id}", summary="Get a knowledge graph")
def get_graph(graph_id: str, service: ReviewService = Depends(get_service)) -> Dict[str, Any]:
    return service.get_graph(graph_id).to_dict()


@router.delete("/{graph_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a knowledge graph")
def delete_graph(graph_id: str, service: ReviewService = Depends(get_service)) -> Response:
    """Delete a graph with its mastery layer, items, progress and activity."""
    service.delete_graph(graph_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{graph_id}/mastery", response_model=MasteryResponse, summary="Get mastery layer")
def get_mastery(graph_id: str, service: ReviewService = Depends(get_service)) -> MasteryResponse:
    layer = service.mastery(graph_id)
    return MasteryResponse(
        graph_id=graph_id,
        mastery=[state.to_dict() for state in layer],
        summary=service.mastery_summary(graph_id).to_dict(),
    )


@router.get("/{graph_id}/progress", response_model=ProgressResponse, summary="Get XP progress")
def get_progress(graph_id: str, service: ReviewService = Depends(get_service)) -> ProgressResponse:
    progress = service.progress(graph_id)
    return ProgressResponse(
        level=progress.level,
        current_xp=progress.current_xp,
        xp_for_next_level=progress.xp_for_next_level,
    )


@router.get("/{graph_id}/weak-nodes", summary="Get weak concepts")
def get_weak_nodes(
    graph_id: str,
    limit: int | None = Query(default=None, ge=0, le=100),
    service: ReviewService = Depends(get_service),
) -> List[Dict[str, Any]]:
    """
    Concepts needing attention, highest priority first.

    A concept is weak when confidence < 60 and stability < 40, or when it
    was failed at least twice over the last 7 days.
    """
    insights = service.weak_nodes(graph_id, limit=limit)
    logger.debug(f"{len(insights)} weak node(s) for {graph_id}")
    return [insight.to_dict() for insight in insights]
