"""
Review Service.

Orchestrates the pure core around the state store:

    answer -> SM-2 update -> mastery update -> XP/level -> activity log

and the read side used by the CLI and the HTTP API (daily queue, weak
nodes, progress, mastery dashboards, session planning).

Every read-modify-write sequence on a graph runs under that graph's lock,
so concurrent reviews of the same graph never interleave.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger

from synapse.adaptive.context import RuleBasedCalibrator
from synapse.adaptive.orchestrator import compute_directive
from synapse.adaptive.weak_nodes import WeakNodeInsight, compute_weak_nodes
from synapse.config import Settings, get_settings
from synapse.core.exceptions import GraphNotFoundError, ItemNotFoundError
from synapse.core.graph import validate_graph
from synapse.core.mastery import (
    MasterySummary,
    apply_answer,
    normalize_mastery_layer,
    resolve_source_node_id,
    summarize_mastery,
)
from synapse.core.models import (
    ActivityEvent,
    KnowledgeGraph,
    MasteryLayer,
    MasteryState,
    PedagogicalDirective,
    ReviewMode,
    StudyItem,
    UserContext,
    UserSignals,
    ensure_utc,
    utc_now,
)
from synapse.core.progress import Progress, apply_xp, award_xp
from synapse.core.sanitize import dump_all, graph_from_dict
from synapse.delivery.activity import prune_activity_log
from synapse.delivery.review_queue import build_daily_review_queue
from synapse.delivery.scheduler import SM2Config, SM2Scheduler, get_due_study_items
from synapse.delivery.state_store import StateKind, StateStore
from synapse.generation.fallback_generator import FallbackItemGenerator, ItemGenerator


@dataclass
class ReviewOutcome:
    """Everything a single review changed."""

    item: StudyItem
    mastery: MasteryState | None
    gained_xp: int
    progress: Progress
    leveled_up: bool
    event: ActivityEvent

    def to_dict(self) -> dict[str, Any]:
        return {
            "item": self.item.to_dict(),
            "mastery": self.mastery.to_dict() if self.mastery else None,
            "gainedXp": self.gained_xp,
            "progress": self.progress.to_dict(),
            "leveledUp": self.leveled_up,
            "event": self.event.to_dict(),
        }


class ReviewService:
    """
    Stateful facade over the study core for one state store.

    The core functions never hold state: each call loads snapshots from the
    store, applies pure transitions and saves the results.
    """

    def __init__(
        self,
        store: StateStore,
        settings: Settings | None = None,
        generator: ItemGenerator | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.scheduler = SM2Scheduler(SM2Config.from_settings(self.settings))
        self.generator = generator or FallbackItemGenerator()
        self.calibrator = RuleBasedCalibrator()

        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, graph_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(graph_id, threading.Lock())

    @staticmethod
    def _now(now: datetime | None) -> datetime:
        return ensure_utc(now) if isinstance(now, datetime) else utc_now()

    # =========================================================================
    # Graphs & Snapshots
    # =========================================================================

    def import_graph(self, raw: Any) -> KnowledgeGraph:
        """
        Import (or re-import) a knowledge graph.

        The graph is sanitized and validated, then saved together with its
        normalized mastery layer. Existing items, progress and activity are
        kept.

        Raises:
            GraphValidationError: If the graph is malformed
        """
        graph = validate_graph(graph_from_dict(raw), self.settings.cycle_policy)

        with self._lock_for(graph.id):
            mastery = normalize_mastery_layer(graph.nodes, self.store.load_mastery(graph.id))
            self.store.save_many(
                graph.id,
                {
                    StateKind.GRAPH: graph.to_dict(),
                    StateKind.MASTERY: dump_all(mastery),
                },
            )

        logger.info(f"Imported graph {graph.id} ({len(graph.nodes)} nodes)")
        return graph

    def list_graphs(self):
        return self.store.list_graphs()

    def get_graph(self, graph_id: str) -> KnowledgeGraph:
        graph = self.store.load_graph(graph_id)
        if graph is None:
            raise GraphNotFoundError(graph_id)
        return graph

    def delete_graph(self, graph_id: str) -> None:
        """
        Remove a graph together with its mastery, items, progress and activity.

        Raises:
            GraphNotFoundError: Unknown graph
        """
        self.get_graph(graph_id)
        with self._lock_for(graph_id):
            self.store.delete_graph(graph_id)
        logger.info(f"Deleted graph {graph_id}")

    def mastery(self, graph_id: str) -> MasteryLayer:
        """Normalized mastery layer of a graph."""
        graph = self.get_graph(graph_id)
        return normalize_mastery_layer(graph.nodes, self.store.load_mastery(graph_id))

    def items(self, graph_id: str) -> list[StudyItem]:
        self.get_graph(graph_id)
        return self.store.load_items(graph_id) or []

    def activity(self, graph_id: str) -> list[ActivityEvent]:
        self.get_graph(graph_id)
        return self.store.load_activity(graph_id) or []

    def progress(self, graph_id: str) -> Progress:
        self.get_graph(graph_id)
        return self.store.load_progress(graph_id) or Progress()

    # =========================================================================
    # Reviews
    # =========================================================================

    def record_review(
        self,
        graph_id: str,
        item_id: str,
        quality: Any,
        now: datetime | None = None,
        mode: ReviewMode = ReviewMode.SESSION,
    ) -> ReviewOutcome:
        """
        Apply a graded answer to an item and persist every consequence.

        Args:
            graph_id: Graph owning the item
            item_id: Answered item
            quality: SM-2 grade (clamped to 0-5)
            now: Review time (defaults to UTC now)
            mode: Where the review happened

        Returns:
            ReviewOutcome

        Raises:
            GraphNotFoundError: Unknown graph
            ItemNotFoundError: Unknown item for this graph
        """
        reviewed_at = self._now(now)

        with self._lock_for(graph_id):
            graph = self.get_graph(graph_id)
            items = self.store.load_items(graph_id) or []
            index = next((i for i, item in enumerate(items) if item.id == item_id), None)
            if index is None:
                raise ItemNotFoundError(graph_id, item_id)

            reviewed = self.scheduler.review_item(items[index], quality, reviewed_at)
            items[index] = reviewed

            layer = normalize_mastery_layer(graph.nodes, self.store.load_mastery(graph_id))
            layer = apply_answer(layer, reviewed, reviewed_at)
            node_id = resolve_source_node_id(reviewed, graph.node_ids)
            state = next((s for s in layer if s.node_id == node_id), None)

            previous = self.store.load_progress(graph_id) or Progress()
            gained = award_xp(reviewed.last_quality)
            progress = apply_xp(previous.level, previous.current_xp, gained)

            event = ActivityEvent(
                ts=reviewed_at,
                item_id=item_id,
                node_id=node_id,
                quality=reviewed.last_quality,
                mode=ReviewMode(mode),
                gained_xp=gained,
            )
            activity = prune_activity_log(
                [*(self.store.load_activity(graph_id) or []), event],
                reviewed_at,
                window_days=self.settings.activity_window_days,
                max_entries=self.settings.activity_max_entries,
            )

            self.store.save_many(
                graph_id,
                {
                    StateKind.ITEMS: dump_all(items),
                    StateKind.MASTERY: dump_all(layer),
                    StateKind.PROGRESS: progress.to_dict(),
                    StateKind.ACTIVITY: dump_all(activity),
                },
            )

        leveled_up = progress.level > previous.level
        logger.info(
            f"Review {graph_id}/{item_id}: q={reviewed.last_quality}, "
            f"next in {reviewed.sm2.interval}d, +{gained} XP"
        )
        if leveled_up:
            logger.info(f"Level up on {graph_id}: {previous.level} -> {progress.level}")

        return ReviewOutcome(
            item=reviewed,
            mastery=state,
            gained_xp=gained,
            progress=progress,
            leveled_up=leveled_up,
            event=event,
        )

    # =========================================================================
    # Sessions
    # =========================================================================

    def calibrate(self, signals: UserSignals) -> UserContext:
        return self.calibrator.calibrate(signals)

    def plan_session(
        self,
        graph_id: str,
        context: UserContext,
        minutes: float | None = None,
    ) -> PedagogicalDirective:
        """
        Compute the directive for the next session.

        Args:
            graph_id: Graph to study
            context: Calibrated learner context
            minutes: Time budget (defaults to the context's signals, else 0)
        """
        if minutes is None:
            minutes = context.signals.time_available if context.signals else 0
        graph = self.get_graph(graph_id)
        mastery = normalize_mastery_layer(graph.nodes, self.store.load_mastery(graph_id))
        directive = compute_directive(graph, mastery, context, minutes)
        logger.info(
            f"Session plan for {graph_id}: {directive.mode.value}/{directive.intensity} "
            f"on {', '.join(directive.target_node_ids)}"
        )
        return directive

    def add_items(self, graph_id: str, new_items: Iterable[StudyItem]) -> list[StudyItem]:
        """
        Append items to a graph, skipping ids already stored.

        Returns:
            The items actually added
        """
        with self._lock_for(graph_id):
            self.get_graph(graph_id)
            items = self.store.load_items(graph_id) or []
            known = {item.id for item in items}
            added = []
            for item in new_items:
                if item.id in known:
                    continue
                known.add(item.id)
                added.append(item)
            self.store.save_items(graph_id, items + added)

        logger.info(f"Added {len(added)} item(s) to graph {graph_id}")
        return added

    def generate_items(
        self,
        graph_id: str,
        directive: PedagogicalDirective,
        generator: ItemGenerator | None = None,
        now: datetime | None = None,
    ) -> list[StudyItem]:
        """Generate items for a directive and store them."""
        graph = self.get_graph(graph_id)
        generated = (generator or self.generator).generate(graph, directive, self._now(now))
        return self.add_items(graph_id, generated)

    # =========================================================================
    # Dashboards
    # =========================================================================

    def due_items(self, graph_id: str, now: datetime | None = None) -> list[StudyItem]:
        return get_due_study_items(self.items(graph_id), self._now(now))

    def daily_queue(
        self,
        graph_id: str,
        now: datetime | None = None,
        limit: int | None = None,
    ) -> list[StudyItem]:
        limit = self.settings.daily_review_limit if limit is None else limit
        return build_daily_review_queue(self.items(graph_id), self._now(now), limit)

    def weak_nodes(
        self,
        graph_id: str,
        now: datetime | None = None,
        limit: int | None = None,
    ) -> list[WeakNodeInsight]:
        graph = self.get_graph(graph_id)
        limit = self.settings.weak_node_limit if limit is None else limit
        return compute_weak_nodes(
            normalize_mastery_layer(graph.nodes, self.store.load_mastery(graph_id)),
            self.store.load_activity(graph_id) or [],
            graph.labels(),
            self._now(now),
            limit,
        )

    def mastery_summary(self, graph_id: str) -> MasterySummary:
        return summarize_mastery(self.mastery(graph_id))
