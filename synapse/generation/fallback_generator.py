"""
Item generation.

Study items are normally produced by a language-model collaborator from a
PedagogicalDirective. FallbackItemGenerator keeps sessions running without
one: it turns the content atoms of the targeted concepts into recall
flashcards.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from loguru import logger

from synapse.core.models import (
    Flashcard,
    KnowledgeGraph,
    KnowledgeNode,
    PedagogicalDirective,
    Sm2State,
    StudyItem,
    ensure_utc,
    utc_now,
)

ATOMS_PER_NODE = 2


class ItemGenerator(Protocol):
    """Produces study items for the concepts a directive targets."""

    def generate(
        self,
        graph: KnowledgeGraph,
        directive: PedagogicalDirective,
        now: datetime | None = None,
    ) -> list[StudyItem]: ...


def generated_item_id(node_id: str, index: int, now: datetime) -> str:
    """Id convention for generated items: gen-<nodeId>-<n>-<stamp>."""
    stamp = int(ensure_utc(now).timestamp() * 1000)
    return f"gen-{node_id}-{index}-{stamp}"


class FallbackItemGenerator:
    """
    Deterministic flashcard generator.

    For each targeted node (or the first node of the graph when no target
    matches) emits one flashcard per content atom, using the first two atoms,
    capped at the directive's ``max_items``.
    """

    def __init__(self, atoms_per_node: int = ATOMS_PER_NODE):
        self.atoms_per_node = atoms_per_node

    def _target_nodes(self, graph: KnowledgeGraph, directive: PedagogicalDirective) -> list[KnowledgeNode]:
        nodes = [node for node_id in directive.target_node_ids if (node := graph.get_node(node_id))]
        if not nodes and graph.nodes:
            nodes = [graph.nodes[0]]
        return nodes

    def _cards_for(self, node: KnowledgeNode, now: datetime) -> Sequence[Flashcard]:
        return [
            Flashcard(
                id=generated_item_id(node.id, index, now),
                question=f"Concept: {node.label}. Recall: {atom}",
                answer=atom,
                explanation=f"Source: {node.description}" if node.description else None,
                difficulty=node.difficulty_weight,
                sm2=Sm2State(),
                tags=["Recall", node.label],
                source_node_id=node.id,
                source_atoms=[atom],
            )
            for index, atom in enumerate(node.content_atoms[: self.atoms_per_node])
        ]

    def generate(
        self,
        graph: KnowledgeGraph,
        directive: PedagogicalDirective,
        now: datetime | None = None,
    ) -> list[StudyItem]:
        """
        Generate flashcards for a directive.

        Args:
            graph: Graph holding the targeted concepts
            directive: Session directive (targets and max_items)
            now: Generation time used in item ids (defaults to UTC now)

        Returns:
            Fresh, never-reviewed items
        """
        created = ensure_utc(now) if isinstance(now, datetime) else utc_now()
        items: list[StudyItem] = []
        for node in self._target_nodes(graph, directive):
            items.extend(self._cards_for(node, created))

        items = items[: max(0, directive.max_items)]
        logger.debug(f"Fallback generator produced {len(items)} item(s) for {directive.target_node_ids}")
        return items
