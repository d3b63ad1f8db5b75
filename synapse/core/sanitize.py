"""
Validate-and-coerce layer for persisted and incoming records.

Everything read from storage or received from a collaborator passes through
here before reaching the scheduler, mastery model or orchestration engine.
Corrupt values are replaced by safe defaults instead of raising:

- non-numeric or out-of-range scores -> clamped / 0
- unparsable timestamps -> None
- invalid SM-2 state -> fresh {0, 0, 2.5}
- records without an id -> dropped

Only a graph without an id or node list is rejected, since nothing
downstream could be keyed on it.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Iterable

from loguru import logger

from synapse.core.exceptions import GraphValidationError
from synapse.core.models import (
    ITEM_CLASSES,
    ActivityEvent,
    ItemType,
    KnowledgeGraph,
    KnowledgeNode,
    Level,
    MasteryState,
    ReviewMode,
    SessionType,
    Sm2State,
    StudyItem,
    UserContext,
    UserSignals,
    ensure_utc,
)
from synapse.core.progress import Progress

DEFAULT_EFACTOR = 2.5
MINIMUM_EFACTOR = 1.3


# =============================================================================
# Scalars
# =============================================================================


def is_number(value: Any) -> bool:
    """True for finite ints/floats (booleans excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values, like Math.round."""
    return math.floor(value + 0.5)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def coerce_score(value: Any) -> float:
    """A 0-100 score; anything non-numeric becomes 0."""
    if not is_number(value):
        return 0
    return clamp(value, 0, 100)


def coerce_int(value: Any, default: int, lower: int | None = None, upper: int | None = None) -> int:
    if not is_number(value):
        return default
    result = round_half_up(value)
    if lower is not None:
        result = max(lower, result)
    if upper is not None:
        result = min(upper, result)
    return result


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 timestamp.

    Accepts datetimes and strings (a trailing 'Z' is understood as UTC).
    Returns an aware UTC datetime, or None when the value is missing or
    cannot be parsed.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if isinstance(v, str)]


def _enum_or(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


# =============================================================================
# SM-2 State
# =============================================================================


def is_valid_sm2(interval: Any, repetitions: Any, efactor: Any) -> bool:
    """Stored SM-2 fields are usable as-is."""
    return (
        is_number(interval)
        and is_number(repetitions)
        and is_number(efactor)
        and interval >= 0
        and repetitions >= 0
        and efactor >= MINIMUM_EFACTOR
    )


def sanitize_sm2(raw: Any) -> Sm2State:
    """
    Build an Sm2State from stored data.

    Any invalid field resets the whole state, since a partially valid
    interval/repetition pair would schedule inconsistently.
    """
    if isinstance(raw, Sm2State):
        raw = raw.to_dict()
    if not isinstance(raw, dict):
        return Sm2State()

    interval = raw.get("interval")
    repetitions = raw.get("repetitions")
    efactor = raw.get("efactor")
    if not is_valid_sm2(interval, repetitions, efactor):
        logger.debug(f"Resetting invalid SM-2 state: {raw!r}")
        return Sm2State()

    return Sm2State(
        interval=round_half_up(interval),
        repetitions=round_half_up(repetitions),
        efactor=float(efactor),
    )


# =============================================================================
# Knowledge Graph
# =============================================================================


def node_from_dict(raw: Any) -> KnowledgeNode | None:
    """Build a KnowledgeNode, or None if the record has no usable id."""
    if not isinstance(raw, dict):
        return None
    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id:
        return None

    label = raw.get("label")
    description = raw.get("description")
    return KnowledgeNode(
        id=node_id,
        label=label if isinstance(label, str) and label else node_id,
        description=description if isinstance(description, str) else "",
        content_atoms=tuple(_str_list(raw.get("content_atoms"))),
        prerequisites=tuple(_str_list(raw.get("prerequisites"))),
        difficulty_weight=coerce_int(raw.get("difficulty_weight"), 3, lower=1, upper=5),
    )


def graph_from_dict(raw: Any) -> KnowledgeGraph:
    """
    Build a KnowledgeGraph from its JSON form.

    Raises:
        GraphValidationError: If the payload has no id or no node list
    """
    if not isinstance(raw, dict):
        raise GraphValidationError("Graph payload must be an object")

    graph_id = raw.get("id")
    if not isinstance(graph_id, str) or not graph_id:
        raise GraphValidationError("Graph payload has no id")

    raw_nodes = raw.get("nodes")
    if not isinstance(raw_nodes, list):
        raise GraphValidationError(f"Graph {graph_id} has no node list")

    nodes = []
    for raw_node in raw_nodes:
        node = node_from_dict(raw_node)
        if node is None:
            logger.warning(f"Dropping node without id in graph {graph_id}")
            continue
        nodes.append(node)

    title = raw.get("title")
    source_text = raw.get("source_text")
    return KnowledgeGraph(
        id=graph_id,
        title=title if isinstance(title, str) and title else graph_id,
        nodes=tuple(nodes),
        source_text=source_text if isinstance(source_text, str) else "",
        created_at=parse_timestamp(raw.get("created_at")),
    )


# =============================================================================
# Study Items
# =============================================================================


def item_from_dict(raw: Any) -> StudyItem | None:
    """Build the concrete StudyItem for a record's ``type`` tag."""
    if not isinstance(raw, dict):
        return None
    item_id = raw.get("id")
    if not isinstance(item_id, str) or not item_id:
        return None

    item_type = _enum_or(ItemType, raw.get("type"), ItemType.FLASHCARD)
    question = raw.get("question")
    explanation = raw.get("explanation")
    source_node_id = raw.get("sourceNodeId")
    last_quality = raw.get("lastQuality")
    coverage = raw.get("atomCoverage")

    common: dict[str, Any] = {
        "id": item_id,
        "question": question if isinstance(question, str) else "",
        "difficulty": coerce_int(raw.get("difficulty"), 3, lower=1, upper=5),
        "sm2": sanitize_sm2(raw.get("sm2")),
        "last_reviewed_at": parse_timestamp(raw.get("lastReviewedAt")),
        "next_review_at": parse_timestamp(raw.get("nextReviewAt")),
        "last_quality": coerce_int(last_quality, 0, 0, 5) if is_number(last_quality) else None,
        "explanation": explanation if isinstance(explanation, str) else None,
        "tags": _str_list(raw.get("tags")),
        "source_node_id": source_node_id if isinstance(source_node_id, str) and source_node_id else None,
        "source_atoms": _str_list(raw.get("sourceAtoms")),
        "atom_coverage": clamp(coverage, 0.0, 1.0) if is_number(coverage) else None,
    }

    answer = raw.get("answer")
    answer = answer if isinstance(answer, str) else None
    cls = ITEM_CLASSES[item_type]

    if item_type is ItemType.FLASHCARD:
        return cls(answer=answer or "", **common)
    if item_type is ItemType.MCQ:
        return cls(
            options=_str_list(raw.get("options")),
            correct_answer_index=coerce_int(raw.get("correctAnswerIndex"), 0, lower=0),
            **common,
        )
    if item_type is ItemType.TRUE_FALSE:
        correct = raw.get("correctAnswer")
        return cls(correct_answer=correct if isinstance(correct, bool) else False, **common)
    return cls(answer=answer, **common)


def items_from_raw(raw: Any) -> list[StudyItem]:
    """Load a stored item collection, dropping unusable and duplicate records."""
    if not isinstance(raw, list):
        return []

    items: list[StudyItem] = []
    seen: set[str] = set()
    dropped = 0
    for entry in raw:
        item = item_from_dict(entry)
        if item is None or item.id in seen:
            dropped += 1
            continue
        seen.add(item.id)
        items.append(item)

    if dropped:
        logger.warning(f"Dropped {dropped} unusable study item record(s)")
    return items


# =============================================================================
# Mastery
# =============================================================================


def mastery_state_from_raw(raw: Any) -> MasteryState | None:
    """Coerce a stored mastery entry (dict or MasteryState)."""
    if isinstance(raw, MasteryState):
        node_id = raw.node_id
        confidence = raw.confidence_score
        stability = raw.stability_index
        last = raw.last_interaction_at
    elif isinstance(raw, dict):
        node_id = raw.get("nodeId")
        confidence = raw.get("confidence_score")
        stability = raw.get("stability_index")
        last = raw.get("last_interaction_at")
    else:
        return None

    if not isinstance(node_id, str):
        return None

    return MasteryState(
        node_id=node_id,
        confidence_score=coerce_score(confidence),
        stability_index=coerce_score(stability),
        last_interaction_at=parse_timestamp(last),
    )


def mastery_from_raw(raw: Any) -> list[MasteryState]:
    if not isinstance(raw, (list, tuple)):
        return []
    states = (mastery_state_from_raw(entry) for entry in raw)
    return [state for state in states if state is not None]


# =============================================================================
# Activity, Progress, Context
# =============================================================================


def activity_event_from_dict(raw: Any) -> ActivityEvent | None:
    if isinstance(raw, ActivityEvent):
        return raw
    if not isinstance(raw, dict):
        return None

    ts = parse_timestamp(raw.get("ts"))
    item_id = raw.get("itemId")
    if ts is None or not isinstance(item_id, str):
        return None

    node_id = raw.get("nodeId")
    quality = raw.get("quality")
    gained = raw.get("gainedXp")
    mode = raw.get("mode")
    return ActivityEvent(
        ts=ts,
        item_id=item_id,
        node_id=node_id if isinstance(node_id, str) else None,
        quality=coerce_int(quality, 0, 0, 5) if is_number(quality) else None,
        mode=_enum_or(ReviewMode, mode, None) if mode is not None else None,
        gained_xp=coerce_int(gained, 0, lower=0) if is_number(gained) else None,
    )


def activity_from_raw(raw: Any) -> list[ActivityEvent]:
    if not isinstance(raw, list):
        return []
    events = [activity_event_from_dict(entry) for entry in raw]
    kept = [event for event in events if event is not None]
    if len(kept) != len(events):
        logger.warning(f"Dropped {len(events) - len(kept)} unreadable activity event(s)")
    return kept


def progress_from_dict(raw: Any) -> Progress | None:
    if not isinstance(raw, dict):
        return None
    return Progress(
        level=coerce_int(raw.get("level"), 1, lower=1),
        current_xp=coerce_int(raw.get("currentXp"), 0, lower=0),
    )


def signals_from_dict(raw: Any) -> UserSignals | None:
    if not isinstance(raw, dict):
        return None
    return UserSignals(
        time_available=coerce_int(raw.get("timeAvailable"), 0, lower=0),
        energy_level=_enum_or(Level, raw.get("energyLevel"), Level.MEDIUM),
        stress_level=_enum_or(Level, raw.get("stressLevel"), Level.MEDIUM),
    )


def context_from_dict(raw: Any) -> UserContext:
    """Build a UserContext; missing fields default to a neutral Maintenance context."""
    if not isinstance(raw, dict):
        raw = {}
    description = raw.get("stateDescription")
    return UserContext(
        focus_score=coerce_int(raw.get("focusScore"), 50, lower=1, upper=100),
        session_type=_enum_or(SessionType, raw.get("sessionType"), SessionType.MAINTENANCE),
        state_description=description if isinstance(description, str) else "",
        signals=signals_from_dict(raw.get("signals")),
    )


def dump_all(records: Iterable[Any]) -> list[dict[str, Any]]:
    """Serialize a collection of models with ``to_dict``."""
    return [record.to_dict() for record in records]
