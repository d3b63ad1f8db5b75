"""
Core domain layer.

Pure, side-effect-free building blocks shared by every other package:

Components:
- models: Knowledge graph, mastery, study item and directive dataclasses
- sanitize: Validate-and-coerce layer for stored and incoming records
- graph: Prerequisite validation and topological ordering
- mastery: Mastery normalization and post-answer update
- progress: XP and level ledger
"""

from synapse.core.exceptions import (
    ExportFormatError,
    GraphNotFoundError,
    GraphValidationError,
    ItemNotFoundError,
    SynapseError,
)
from synapse.core.graph import topological_order, validate_graph
from synapse.core.mastery import (
    MasteryLevel,
    MasterySummary,
    apply_answer,
    normalize_mastery_layer,
    resolve_source_node_id,
    summarize_mastery,
)
from synapse.core.models import (
    ActivityEvent,
    CaseStudy,
    DirectiveMode,
    Flashcard,
    FreeResponse,
    ItemType,
    KnowledgeGraph,
    KnowledgeNode,
    Level,
    MasteryLayer,
    MasteryState,
    MultipleChoice,
    PedagogicalDirective,
    ReviewMode,
    SessionType,
    Sm2State,
    StudyItem,
    TrueFalse,
    UserContext,
    UserSignals,
)
from synapse.core.progress import Progress, apply_xp, award_xp, xp_for_level

__all__ = [
    # Errors
    "SynapseError",
    "GraphValidationError",
    "GraphNotFoundError",
    "ItemNotFoundError",
    "ExportFormatError",
    # Graph
    "KnowledgeGraph",
    "KnowledgeNode",
    "validate_graph",
    "topological_order",
    # Mastery
    "MasteryState",
    "MasteryLayer",
    "MasteryLevel",
    "MasterySummary",
    "normalize_mastery_layer",
    "apply_answer",
    "resolve_source_node_id",
    "summarize_mastery",
    # Study items
    "ItemType",
    "Sm2State",
    "StudyItem",
    "Flashcard",
    "MultipleChoice",
    "TrueFalse",
    "FreeResponse",
    "CaseStudy",
    # Sessions
    "ActivityEvent",
    "ReviewMode",
    "Level",
    "SessionType",
    "DirectiveMode",
    "UserSignals",
    "UserContext",
    "PedagogicalDirective",
    # Gamification
    "Progress",
    "xp_for_level",
    "award_xp",
    "apply_xp",
]
