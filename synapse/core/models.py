"""
Core domain models.

Canonical dataclasses shared by the scheduler, mastery model, orchestration
engine and persistence layers. Field names in ``to_dict`` follow the JSON
contract used by the generation collaborators and the state store
(``nodeId``, ``confidence_score``, ``nextReviewAt`` ...).

Study items are a tagged union discriminated by ``ItemType``: each concrete
class carries only the answer fields meaningful for its type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

# =============================================================================
# Time helpers
# =============================================================================


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    """Serialize a datetime to ISO-8601 (UTC), passing None through."""
    if value is None:
        return None
    return ensure_utc(value).isoformat().replace("+00:00", "Z")


# =============================================================================
# Enums
# =============================================================================


class ItemType(str, Enum):
    """Discriminant of the StudyItem union."""

    FLASHCARD = "flashcard"
    MCQ = "mcq"
    FREE = "free"
    CASE = "case"
    TRUE_FALSE = "true/false"


class DirectiveMode(str, Enum):
    """Session strategy chosen by the orchestration engine."""

    REVIEW = "Review"
    EXPANSION = "Expansion"
    REMEDIATION = "Remediation"
    SOCRATIC = "Socratic"


class SessionType(str, Enum):
    """Session typology produced by context calibration."""

    SPRINT = "Sprint"
    DEEP_WORK = "DeepWork"
    MAINTENANCE = "Maintenance"
    RECOVERY = "Recovery"


class Level(str, Enum):
    """Three-step scale for self-reported energy and stress."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReviewMode(str, Enum):
    """Where a review happened."""

    DAILY_REVIEW = "DailyReview"
    SESSION = "Session"


# =============================================================================
# Knowledge Graph
# =============================================================================


@dataclass(frozen=True)
class KnowledgeNode:
    """A concept extracted from a source document."""

    id: str
    label: str
    description: str = ""
    content_atoms: tuple[str, ...] = ()
    prerequisites: tuple[str, ...] = ()
    difficulty_weight: int = 3

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "content_atoms": list(self.content_atoms),
            "prerequisites": list(self.prerequisites),
            "difficulty_weight": self.difficulty_weight,
        }


@dataclass(frozen=True)
class KnowledgeGraph:
    """A read-only graph of concepts built once per imported document."""

    id: str
    title: str
    nodes: tuple[KnowledgeNode, ...] = ()
    source_text: str = ""
    created_at: datetime | None = None

    @property
    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    def get_node(self, node_id: str) -> KnowledgeNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def labels(self) -> dict[str, str]:
        """Map of node id to display label."""
        return {node.id: node.label for node in self.nodes}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "nodes": [node.to_dict() for node in self.nodes],
            "source_text": self.source_text,
            "created_at": to_iso(self.created_at),
        }


# =============================================================================
# Mastery
# =============================================================================


@dataclass
class MasteryState:
    """Confidence and stability of one concept for one graph."""

    node_id: str
    confidence_score: float = 0
    stability_index: float = 0
    last_interaction_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "confidence_score": self.confidence_score,
            "stability_index": self.stability_index,
            "last_interaction_at": to_iso(self.last_interaction_at),
        }


MasteryLayer = list[MasteryState]


# =============================================================================
# Spaced Repetition & Study Items
# =============================================================================


@dataclass
class Sm2State:
    """SM-2 scheduling state embedded in every study item."""

    interval: int = 0  # Days until next review
    repetitions: int = 0  # Consecutive successful recalls
    efactor: float = 2.5  # Ease factor, never below 1.3

    def to_dict(self) -> dict[str, Any]:
        return {
            "interval": self.interval,
            "repetitions": self.repetitions,
            "efactor": self.efactor,
        }


@dataclass(kw_only=True)
class StudyItem:
    """
    Base of the study item union.

    Never instantiated directly; use one of the concrete item classes.
    """

    type: ClassVar[ItemType]

    id: str
    question: str
    difficulty: int = 3
    sm2: Sm2State = field(default_factory=Sm2State)
    last_reviewed_at: datetime | None = None
    next_review_at: datetime | None = None
    last_quality: int | None = None
    explanation: str | None = None
    tags: list[str] = field(default_factory=list)

    # Provenance into the knowledge graph
    source_node_id: str | None = None
    source_atoms: list[str] = field(default_factory=list)
    atom_coverage: float | None = None

    @property
    def is_new(self) -> bool:
        """Never reviewed."""
        return self.last_reviewed_at is None

    def _type_fields(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "question": self.question,
            "difficulty": self.difficulty,
            "sm2": self.sm2.to_dict(),
            "lastReviewedAt": to_iso(self.last_reviewed_at),
            "nextReviewAt": to_iso(self.next_review_at),
        }
        data.update(self._type_fields())
        if self.last_quality is not None:
            data["lastQuality"] = self.last_quality
        if self.explanation is not None:
            data["explanation"] = self.explanation
        if self.tags:
            data["tags"] = list(self.tags)
        if self.source_node_id is not None:
            data["sourceNodeId"] = self.source_node_id
        if self.source_atoms:
            data["sourceAtoms"] = list(self.source_atoms)
        if self.atom_coverage is not None:
            data["atomCoverage"] = self.atom_coverage
        return data


@dataclass(kw_only=True)
class Flashcard(StudyItem):
    type: ClassVar[ItemType] = ItemType.FLASHCARD

    answer: str

    def _type_fields(self) -> dict[str, Any]:
        return {"answer": self.answer}


@dataclass(kw_only=True)
class MultipleChoice(StudyItem):
    type: ClassVar[ItemType] = ItemType.MCQ

    options: list[str]
    correct_answer_index: int

    @property
    def correct_option(self) -> str | None:
        if 0 <= self.correct_answer_index < len(self.options):
            return self.options[self.correct_answer_index]
        return None

    def _type_fields(self) -> dict[str, Any]:
        return {
            "options": list(self.options),
            "correctAnswerIndex": self.correct_answer_index,
        }


@dataclass(kw_only=True)
class TrueFalse(StudyItem):
    type: ClassVar[ItemType] = ItemType.TRUE_FALSE

    correct_answer: bool

    def _type_fields(self) -> dict[str, Any]:
        return {"correctAnswer": self.correct_answer}


@dataclass(kw_only=True)
class FreeResponse(StudyItem):
    type: ClassVar[ItemType] = ItemType.FREE

    answer: str | None = None

    def _type_fields(self) -> dict[str, Any]:
        return {"answer": self.answer} if self.answer is not None else {}


@dataclass(kw_only=True)
class CaseStudy(StudyItem):
    type: ClassVar[ItemType] = ItemType.CASE

    answer: str | None = None

    def _type_fields(self) -> dict[str, Any]:
        return {"answer": self.answer} if self.answer is not None else {}


ITEM_CLASSES: dict[ItemType, type[StudyItem]] = {
    ItemType.FLASHCARD: Flashcard,
    ItemType.MCQ: MultipleChoice,
    ItemType.TRUE_FALSE: TrueFalse,
    ItemType.FREE: FreeResponse,
    ItemType.CASE: CaseStudy,
}


# =============================================================================
# Activity
# =============================================================================


@dataclass(frozen=True)
class ActivityEvent:
    """Immutable log entry appended on every review."""

    ts: datetime
    item_id: str
    type: str = "review"
    node_id: str | None = None
    quality: int | None = None
    mode: ReviewMode | None = None
    gained_xp: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ts": to_iso(self.ts),
            "type": self.type,
            "itemId": self.item_id,
        }
        if self.node_id is not None:
            data["nodeId"] = self.node_id
        if self.quality is not None:
            data["quality"] = self.quality
        if self.mode is not None:
            data["mode"] = self.mode.value
        if self.gained_xp is not None:
            data["gainedXp"] = self.gained_xp
        return data


# =============================================================================
# Context & Directive
# =============================================================================


@dataclass(frozen=True)
class UserSignals:
    """Raw self-reported signals captured before a session."""

    time_available: int  # minutes
    energy_level: Level = Level.MEDIUM
    stress_level: Level = Level.MEDIUM

    def to_dict(self) -> dict[str, Any]:
        return {
            "timeAvailable": self.time_available,
            "energyLevel": self.energy_level.value,
            "stressLevel": self.stress_level.value,
        }


@dataclass(frozen=True)
class UserContext:
    """Calibrated learner context consumed once by the orchestration engine."""

    focus_score: int
    session_type: SessionType
    state_description: str = ""
    signals: UserSignals | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "focusScore": self.focus_score,
            "sessionType": self.session_type.value,
            "stateDescription": self.state_description,
            "signals": self.signals.to_dict() if self.signals else None,
        }


@dataclass(frozen=True)
class PedagogicalDirective:
    """Session plan: strategy, targets, intensity and volume."""

    mode: DirectiveMode
    target_node_ids: tuple[str, ...]
    intensity: int
    max_items: int
    rationale: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "targetNodeIds": list(self.target_node_ids),
            "intensity": self.intensity,
            "maxItems": self.max_items,
            "rationale": self.rationale,
        }
