"""Unit tests for the deterministic fallback item generator."""

from synapse.core.mastery import resolve_source_node_id
from synapse.core.models import DirectiveMode, Flashcard, PedagogicalDirective
from synapse.generation.fallback_generator import FallbackItemGenerator, generated_item_id


def directive(targets, max_items=10):
    return PedagogicalDirective(
        mode=DirectiveMode.EXPANSION,
        target_node_ids=tuple(targets),
        intensity=3,
        max_items=max_items,
        rationale="test",
    )


class TestFallbackItemGenerator:
    def test_one_card_per_atom(self, sample_graph, t0):
        items = FallbackItemGenerator().generate(sample_graph, directive(["loops", "functions"]), t0)

        assert [item.id for item in items] == [
            "gen-loops-0-1709283600000",
            "gen-functions-0-1709283600000",
            "gen-functions-1-1709283600000",
        ]
        assert all(isinstance(item, Flashcard) and item.is_new for item in items)

    def test_card_content(self, sample_graph, t0):
        [card] = FallbackItemGenerator().generate(sample_graph, directive(["loops"]), t0)

        assert card.question == "Concept: Loops. Recall: for iterates over an iterable"
        assert card.answer == "for iterates over an iterable"
        assert card.explanation == "Source: for and while"
        assert card.tags == ["Recall", "Loops"]
        assert card.source_node_id == "loops"
        assert card.source_atoms == ["for iterates over an iterable"]

    def test_atoms_per_node_cap(self, sample_graph, t0):
        items = FallbackItemGenerator().generate(sample_graph, directive(["basics"]), t0)
        assert len(items) == 2

        items = FallbackItemGenerator(atoms_per_node=5).generate(sample_graph, directive(["basics"]), t0)
        assert len(items) == 3

    def test_max_items_cap(self, sample_graph, t0):
        items = FallbackItemGenerator().generate(sample_graph, directive(["basics", "functions"], max_items=3), t0)
        assert len(items) == 3

    def test_unknown_targets_use_first_node(self, sample_graph, t0):
        items = FallbackItemGenerator().generate(sample_graph, directive(["nope"]), t0)
        assert {item.source_node_id for item in items} == {"basics"}

    def test_generated_ids_resolve_to_their_node(self, sample_graph, t0):
        item_id = generated_item_id("recursion", 0, t0)
        [card] = FallbackItemGenerator().generate(sample_graph, directive(["recursion"]), t0)
        card.source_node_id = None

        assert card.id == item_id
        assert resolve_source_node_id(card, sample_graph.node_ids) == "recursion"
