"""
Weak-node detection.

Flags concepts that need attention now, either because they are
statistically weak (low confidence and low stability) or because the
learner keeps failing them (at least two errors over the last 7 days).
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from synapse.core.models import ActivityEvent, MasteryState, ensure_utc, utc_now

ERROR_WINDOW = timedelta(days=7)
ERROR_QUALITY_MAX = 2
WEAK_CONFIDENCE = 60
WEAK_STABILITY = 40
CRITICAL_CONFIDENCE = 40
ERROR_PENALTY = 15
MIN_RECENT_ERRORS = 2


@dataclass(frozen=True)
class WeakNodeInsight:
    """A concept flagged for remediation, with its ranking."""

    node_id: str
    label: str
    confidence: float
    stability: float
    errors_7d: int
    priority: float
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "label": self.label,
            "confidence": self.confidence,
            "stability": self.stability,
            "errors7d": self.errors_7d,
            "priority": self.priority,
            "reason": self.reason,
        }


def count_recent_errors(activity: Sequence[ActivityEvent], now: datetime) -> Counter[str]:
    """Failed reviews (quality <= 2) per node, strictly inside the last 7 days."""
    since = ensure_utc(now) - ERROR_WINDOW
    return Counter(
        event.node_id
        for event in activity
        if event.node_id
        and event.quality is not None
        and event.quality <= ERROR_QUALITY_MAX
        and ensure_utc(event.ts) > since
    )


def _reason(state: MasteryState, errors: int) -> str:
    if errors >= MIN_RECENT_ERRORS:
        return f"{errors} erreurs récentes"
    if state.confidence_score < CRITICAL_CONFIDENCE:
        return "Maîtrise critique"
    return "Faible rétention"


def compute_weak_nodes(
    mastery: Sequence[MasteryState],
    activity: Sequence[ActivityEvent],
    node_labels: Mapping[str, str] | None = None,
    now: datetime | None = None,
    limit: int = 5,
) -> list[WeakNodeInsight]:
    """
    Rank the concepts needing immediate attention.

    Args:
        mastery: Mastery layer of the graph
        activity: Review activity log
        node_labels: Display labels by node id (falls back to the id)
        now: Reference time (defaults to UTC now)
        limit: Maximum number of insights

    Returns:
        Insights sorted by descending priority (ties keep mastery order)
    """
    labels = node_labels or {}
    reference = ensure_utc(now) if isinstance(now, datetime) else utc_now()
    errors_by_node = count_recent_errors(activity, reference)

    insights: list[WeakNodeInsight] = []
    for state in mastery:
        errors = errors_by_node.get(state.node_id, 0)
        statistically_weak = (
            state.confidence_score < WEAK_CONFIDENCE and state.stability_index < WEAK_STABILITY
        )
        if not statistically_weak and errors < MIN_RECENT_ERRORS:
            continue

        priority = (
            max(0, WEAK_CONFIDENCE - state.confidence_score)
            + max(0, WEAK_STABILITY - state.stability_index)
            + errors * ERROR_PENALTY
        )
        insights.append(
            WeakNodeInsight(
                node_id=state.node_id,
                label=labels.get(state.node_id) or state.node_id,
                confidence=state.confidence_score,
                stability=state.stability_index,
                errors_7d=errors,
                priority=priority,
                reason=_reason(state, errors),
            )
        )

    insights.sort(key=lambda insight: insight.priority, reverse=True)
    return insights[: max(0, limit)]
