"""
Pedagogical Orchestration Engine (POE).

Pure decision function: (graph, mastery, context, time) -> directive.

The session strategy is chosen by a fixed priority ladder over strict
thresholds, so the same inputs always yield the same directive:

1. Low energy / Recovery session  -> Review (intensity 1)
2. Ten minutes or less            -> Review (intensity 2)
3. Any concept below 40 confidence -> Remediation (intensity 3)
4. DeepWork with focus >= 80       -> Socratic (5) with 3+ mastered concepts,
                                      otherwise Expansion (4)
5. Any concept below 40 stability  -> Review (intensity 3)
6. Otherwise                       -> Expansion (intensity 3)

Expansion only targets concepts whose prerequisites are all solid; when none
qualify the directive falls back to Review.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from synapse.core.models import (
    DirectiveMode,
    KnowledgeGraph,
    Level,
    MasteryState,
    PedagogicalDirective,
    SessionType,
    UserContext,
)

# =============================================================================
# Thresholds
# =============================================================================

CRITICAL_STABILITY = 40  # Below: retention erosion risk
REMEDIATION_CONFIDENCE = 40  # Below: concept not acquired
UNLOCK_CONFIDENCE = 70  # At or above: prerequisite satisfied / concept known
HIGH_CONFIDENCE = 90  # At or above: solid base for synthesis
DEEP_FOCUS = 80
SOCRATIC_MIN_HIGH_NODES = 3
FLASH_SESSION_MINUTES = 10

REVIEW_TARGETS = 3
REMEDIATION_TARGETS = 2
EXPANSION_TARGETS = 2
SOCRATIC_TARGETS = 1

RATIONALE_LOW_ENERGY = "low energy: passive recall only."
RATIONALE_FLASH = "flash session: fast memory anchors."
RATIONALE_REMEDIATION = "critical gaps detected."
RATIONALE_SOCRATIC = "optimal focus + solid base: deep synthesis."
RATIONALE_DEEP_EXPANSION = "high cognitive availability: acquire adjacent nodes."
RATIONALE_STABILIZE = "retention-erosion risk: stabilize via SRS."
RATIONALE_LINEAR = "standard linear progression."
RATIONALE_EXPANSION_BLOCKED = "expansion blocked by unmet prerequisites: falling back to review."


def max_items_for_minutes(minutes: float) -> int:
    """Session volume from the time budget."""
    if minutes >= 45:
        return 20
    if minutes >= 20:
        return 10
    if minutes >= 10:
        return 5
    return 3


def _ids(states: Sequence[MasteryState], count: int) -> list[str]:
    return [state.node_id for state in states[:count]]


def expansion_candidates(graph: KnowledgeGraph, mastery: Sequence[MasteryState]) -> list[str]:
    """
    Unlocked, not-yet-known concepts in graph order.

    A concept qualifies when it has no mastery entry or confidence below 70,
    and every prerequisite has an entry with confidence of at least 70.
    """
    by_node = {state.node_id: state for state in mastery}

    def solid(node_id: str) -> bool:
        state = by_node.get(node_id)
        return state is not None and state.confidence_score >= UNLOCK_CONFIDENCE

    return [
        node.id
        for node in graph.nodes
        if not solid(node.id) and all(solid(prereq) for prereq in node.prerequisites)
    ]


def compute_directive(
    graph: KnowledgeGraph,
    mastery: Sequence[MasteryState],
    context: UserContext,
    time_available_minutes: float,
) -> PedagogicalDirective:
    """
    Choose the session strategy and its target concepts.

    Args:
        graph: Knowledge graph of the session
        mastery: Normalized mastery layer for the graph
        context: Calibrated learner context
        time_available_minutes: Time budget for the session

    Returns:
        PedagogicalDirective (1-3 targets whenever the graph has nodes)
    """
    max_items = max_items_for_minutes(time_available_minutes)

    # sorted() is stable: ties keep mastery order
    critical = sorted(
        (s for s in mastery if s.stability_index < CRITICAL_STABILITY),
        key=lambda s: s.stability_index,
    )
    remediation = sorted(
        (s for s in mastery if s.confidence_score < REMEDIATION_CONFIDENCE),
        key=lambda s: s.confidence_score,
    )
    high = [s for s in mastery if s.confidence_score >= HIGH_CONFIDENCE]

    energy = context.signals.energy_level if context.signals else None

    if energy == Level.LOW or context.session_type == SessionType.RECOVERY:
        mode, intensity, rationale = DirectiveMode.REVIEW, 1, RATIONALE_LOW_ENERGY
    elif time_available_minutes <= FLASH_SESSION_MINUTES:
        mode, intensity, rationale = DirectiveMode.REVIEW, 2, RATIONALE_FLASH
    elif remediation:
        mode, intensity, rationale = DirectiveMode.REMEDIATION, 3, RATIONALE_REMEDIATION
    elif context.session_type == SessionType.DEEP_WORK and context.focus_score >= DEEP_FOCUS:
        if len(high) >= SOCRATIC_MIN_HIGH_NODES:
            mode, intensity, rationale = DirectiveMode.SOCRATIC, 5, RATIONALE_SOCRATIC
        else:
            mode, intensity, rationale = DirectiveMode.EXPANSION, 4, RATIONALE_DEEP_EXPANSION
    elif critical:
        mode, intensity, rationale = DirectiveMode.REVIEW, 3, RATIONALE_STABILIZE
    else:
        mode, intensity, rationale = DirectiveMode.EXPANSION, 3, RATIONALE_LINEAR

    targets: list[str] = []
    if mode is DirectiveMode.REVIEW:
        targets = _ids(critical, REVIEW_TARGETS) if critical else _ids(mastery, REVIEW_TARGETS)
    elif mode is DirectiveMode.REMEDIATION:
        targets = _ids(remediation, REMEDIATION_TARGETS)
    elif mode is DirectiveMode.EXPANSION:
        targets = expansion_candidates(graph, mastery)[:EXPANSION_TARGETS]
        if not targets:
            mode = DirectiveMode.REVIEW
            rationale = RATIONALE_EXPANSION_BLOCKED
            targets = _ids(mastery, REVIEW_TARGETS)
    elif mode is DirectiveMode.SOCRATIC:
        targets = _ids(high, SOCRATIC_TARGETS)

    if not targets and graph.nodes:
        targets = [graph.nodes[0].id]

    logger.debug(f"Directive {mode.value}/{intensity} -> {targets} ({max_items} items)")
    return PedagogicalDirective(
        mode=mode,
        target_node_ids=tuple(targets),
        intensity=intensity,
        max_items=max_items,
        rationale=rationale,
    )
