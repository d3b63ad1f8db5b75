"""
Core Mastery Module.

Per-concept confidence/stability state for one knowledge graph.

Design:
- MasteryLevel: Enum for categorizing confidence scores (dashboards)
- normalize_mastery_layer: align a stored layer with the current graph
- apply_answer: post-answer update of the answered item's concept
- summarize_mastery: aggregate view for dashboards

All functions are pure: they return new lists and never mutate their input.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from loguru import logger

from synapse.core.models import MasteryLayer, MasteryState, StudyItem, ensure_utc, utc_now
from synapse.core.sanitize import clamp, mastery_state_from_raw, round_half_up

CONFIDENCE_STEP = 10
STABILITY_SMOOTHING = 0.7  # Weight kept from the previous stability


class MasteryLevel(str, Enum):
    """
    Mastery level categorization of a 0-100 confidence score.

    Boundaries match the orchestration thresholds: below 40 triggers
    remediation, 70 unlocks dependents, 90 counts as a solid base.
    """

    NOT_STARTED = "not_started"  # 0
    NOVICE = "novice"  # 1-39
    DEVELOPING = "developing"  # 40-69
    PROFICIENT = "proficient"  # 70-89
    MASTERED = "mastered"  # 90-100

    @classmethod
    def from_score(cls, score: float) -> MasteryLevel:
        if score <= 0:
            return cls.NOT_STARTED
        elif score < 40:
            return cls.NOVICE
        elif score < 70:
            return cls.DEVELOPING
        elif score < 90:
            return cls.PROFICIENT
        else:
            return cls.MASTERED

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("_", " ").title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryLevel.NOT_STARTED: "dim",
            MasteryLevel.NOVICE: "red",
            MasteryLevel.DEVELOPING: "yellow",
            MasteryLevel.PROFICIENT: "cyan",
            MasteryLevel.MASTERED: "green",
        }[self]


# ============================================================================
# Normalization
# ============================================================================


def _node_id(node: Any) -> str:
    return node["id"] if isinstance(node, dict) else node.id


def normalize_mastery_layer(
    nodes: Iterable[Any],
    stored: Iterable[Any] | None,
) -> MasteryLayer:
    """
    Align a stored MasteryLayer with the current graph.

    Every node gets exactly one entry, in node order. Stored entries are kept
    (with their fields coerced), missing nodes start at 0/0/None and entries
    for nodes no longer in the graph are dropped.

    Args:
        nodes: Graph nodes (objects or dicts with an ``id``)
        stored: Previously persisted entries (MasteryState or raw dicts), or None

    Returns:
        A new MasteryLayer
    """
    stored_map: dict[str, MasteryState] = {}
    for entry in stored or ():
        state = mastery_state_from_raw(entry)
        if state is not None:
            stored_map[state.node_id] = state

    layer: MasteryLayer = []
    for node in nodes:
        node_id = _node_id(node)
        existing = stored_map.get(node_id)
        layer.append(replace(existing) if existing else MasteryState(node_id=node_id))
    return layer


# ============================================================================
# Post-answer update
# ============================================================================


def resolve_source_node_id(item: StudyItem, node_ids: Sequence[str]) -> str | None:
    """
    Find the concept an answered item belongs to.

    Uses ``source_node_id`` when it names a known node; otherwise looks for a
    known node id embedded in the item id (generated ids follow
    ``gen-<nodeId>-<n>-<stamp>``), preferring the longest match.

    Returns:
        Node id, or None if the item cannot be attributed
    """
    if item.source_node_id and item.source_node_id in node_ids:
        return item.source_node_id

    padded = f"-{item.id}-"
    candidates = [node_id for node_id in node_ids if f"-{node_id}-" in padded]
    if not candidates:
        return None
    return max(candidates, key=len)


def stability_from_interval(interval: int) -> int:
    """Map an SM-2 interval (days) to a 0-100 stability reading."""
    raw = round_half_up(math.log2(max(0, interval) + 1) * 20)
    return int(clamp(raw, 0, 100))


def confidence_adjustment(quality: int) -> int:
    if quality >= 4:
        return CONFIDENCE_STEP
    if quality <= 2:
        return -CONFIDENCE_STEP
    return 0


def apply_answer(
    layer: Sequence[MasteryState],
    item: StudyItem,
    now: datetime | None = None,
) -> MasteryLayer:
    """
    Update the answered item's concept after a review.

    The item must already carry its post-review SM-2 state and
    ``last_quality``. Confidence moves by +/-10 per answer; stability is
    smoothed towards the reading derived from the new interval so a single
    answer cannot swing it.

    Args:
        layer: Current (normalized) mastery layer
        item: Answered study item
        now: Interaction time (defaults to UTC now)

    Returns:
        A new layer; unchanged copy if the item cannot be attributed
    """
    updated = [replace(state) for state in layer]
    if item.last_quality is None:
        return updated

    node_ids = [state.node_id for state in updated]
    node_id = resolve_source_node_id(item, node_ids)
    if node_id is None:
        logger.debug(f"Skipping mastery update for unattributable item {item.id}")
        return updated

    index = node_ids.index(node_id)
    state = updated[index]
    when = ensure_utc(now) if isinstance(now, datetime) else utc_now()

    confidence = clamp(state.confidence_score + confidence_adjustment(item.last_quality), 0, 100)
    stability_raw = stability_from_interval(item.sm2.interval)
    stability = round_half_up(
        STABILITY_SMOOTHING * state.stability_index + (1 - STABILITY_SMOOTHING) * stability_raw
    )

    updated[index] = MasteryState(
        node_id=node_id,
        confidence_score=confidence,
        stability_index=int(clamp(stability, 0, 100)),
        last_interaction_at=when,
    )
    logger.debug(
        f"Mastery {node_id}: confidence {state.confidence_score}->{confidence}, "
        f"stability {state.stability_index}->{updated[index].stability_index}"
    )
    return updated


# ============================================================================
# Dashboards
# ============================================================================


@dataclass
class MasterySummary:
    """Aggregate mastery figures for one graph."""

    node_count: int = 0
    average_confidence: float = 0.0
    average_stability: float = 0.0
    by_level: dict[MasteryLevel, int] = field(default_factory=dict)

    @property
    def mastered_count(self) -> int:
        return self.by_level.get(MasteryLevel.MASTERED, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeCount": self.node_count,
            "averageConfidence": self.average_confidence,
            "averageStability": self.average_stability,
            "byLevel": {level.value: count for level, count in self.by_level.items()},
        }


def summarize_mastery(layer: Sequence[MasteryState]) -> MasterySummary:
    """Averages and level distribution of a mastery layer."""
    if not layer:
        return MasterySummary()

    by_level = {level: 0 for level in MasteryLevel}
    for state in layer:
        by_level[MasteryLevel.from_score(state.confidence_score)] += 1

    count = len(layer)
    return MasterySummary(
        node_count=count,
        average_confidence=round(sum(s.confidence_score for s in layer) / count, 1),
        average_stability=round(sum(s.stability_index for s in layer) / count, 1),
        by_level=by_level,
    )
