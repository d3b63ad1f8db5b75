"""
Unit tests for the mastery model.

Covers layer normalization, the post-answer update and dashboard helpers.
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from synapse.core.mastery import (
    MasteryLevel,
    apply_answer,
    normalize_mastery_layer,
    resolve_source_node_id,
    stability_from_interval,
    summarize_mastery,
)
from synapse.core.models import MasteryState, Sm2State


def answered(card, quality, interval):
    return replace(card, last_quality=quality, sm2=Sm2State(interval=interval, repetitions=1, efactor=2.5))


class TestNormalizeMasteryLayer:
    def test_defaults_in_node_order(self, sample_graph):
        layer = normalize_mastery_layer(sample_graph.nodes, None)

        assert [s.node_id for s in layer] == ["basics", "loops", "functions", "recursion"]
        assert all(s.confidence_score == 0 and s.stability_index == 0 for s in layer)
        assert all(s.last_interaction_at is None for s in layer)

    def test_keeps_stored_and_drops_orphans(self, sample_graph, t0):
        stored = [
            {"nodeId": "functions", "confidence_score": 55, "stability_index": 20, "last_interaction_at": "2024-02-01T10:00:00Z"},
            {"nodeId": "deleted-node", "confidence_score": 90, "stability_index": 90},
        ]
        layer = normalize_mastery_layer(sample_graph.nodes, stored)

        assert [s.node_id for s in layer] == ["basics", "loops", "functions", "recursion"]
        functions = layer[2]
        assert functions.confidence_score == 55
        assert functions.stability_index == 20
        assert functions.last_interaction_at.year == 2024

    def test_field_coercion(self, sample_graph):
        stored = [
            {"nodeId": "basics", "confidence_score": "high", "stability_index": 250, "last_interaction_at": "not a date"},
            {"nodeId": "loops", "confidence_score": -20, "stability_index": None},
        ]
        layer = normalize_mastery_layer(sample_graph.nodes, stored)

        assert layer[0].confidence_score == 0
        assert layer[0].stability_index == 100
        assert layer[0].last_interaction_at is None
        assert layer[1].confidence_score == 0
        assert layer[1].stability_index == 0

    def test_idempotent(self, sample_graph):
        stored = [{"nodeId": "loops", "confidence_score": 140, "stability_index": 33}]
        once = normalize_mastery_layer(sample_graph.nodes, stored)
        twice = normalize_mastery_layer(sample_graph.nodes, once)
        assert once == twice

    def test_accepts_dict_nodes(self):
        layer = normalize_mastery_layer([{"id": "a"}, {"id": "b"}], [])
        assert [s.node_id for s in layer] == ["a", "b"]


class TestResolveSourceNodeId:
    def test_known_source_node(self, make_card):
        assert resolve_source_node_id(make_card("x", node_id="loops"), ["basics", "loops"]) == "loops"

    def test_recovered_from_generated_id(self, make_card):
        card = make_card("gen-functions-1-1709283600000")
        assert resolve_source_node_id(card, ["basics", "functions"]) == "functions"

    def test_unknown_source_falls_back_to_id(self, make_card):
        card = make_card("gen-loops-0-1", node_id="removed")
        assert resolve_source_node_id(card, ["basics", "loops"]) == "loops"

    def test_longest_embedded_id_wins(self, make_card):
        card = make_card("gen-loop-advanced-0-1709283600000")
        assert resolve_source_node_id(card, ["loop", "loop-advanced"]) == "loop-advanced"

    def test_unresolvable(self, make_card):
        assert resolve_source_node_id(make_card("manual-card-7"), ["basics", "loops"]) is None


class TestApplyAnswer:
    def test_success_raises_confidence_and_stability(self, sample_graph, make_card, t0):
        layer = normalize_mastery_layer(sample_graph.nodes, None)
        card = answered(make_card("c1", node_id="basics"), quality=5, interval=1)

        updated = apply_answer(layer, card, t0)

        basics = updated[0]
        assert basics.confidence_score == 10
        # raw = round(log2(2) * 20) = 20; round(0.7 * 0 + 0.3 * 20) = 6
        assert basics.stability_index == 6
        assert basics.last_interaction_at == t0
        assert updated[1:] == layer[1:]

    def test_stability_is_smoothed(self, sample_graph, make_card, t0):
        layer = normalize_mastery_layer(
            sample_graph.nodes, [{"nodeId": "loops", "confidence_score": 50, "stability_index": 50}]
        )
        card = answered(make_card("c2", node_id="loops"), quality=4, interval=6)

        loops = apply_answer(layer, card, t0)[1]
        # raw = round(log2(7) * 20) = 56; round(35 + 16.8) = 52
        assert loops.stability_index == 52
        assert loops.confidence_score == 60

    def test_neutral_quality_keeps_confidence(self, sample_graph, make_card, t0):
        layer = normalize_mastery_layer(sample_graph.nodes, [{"nodeId": "basics", "confidence_score": 40}])
        card = answered(make_card("c3", node_id="basics"), quality=3, interval=1)
        assert apply_answer(layer, card, t0)[0].confidence_score == 40

    def test_failure_lowers_confidence_with_floor(self, sample_graph, make_card, t0):
        layer = normalize_mastery_layer(sample_graph.nodes, [{"nodeId": "basics", "confidence_score": 5}])
        card = answered(make_card("c4", node_id="basics"), quality=1, interval=1)
        assert apply_answer(layer, card, t0)[0].confidence_score == 0

    def test_confidence_ceiling(self, sample_graph, make_card, t0):
        layer = normalize_mastery_layer(sample_graph.nodes, [{"nodeId": "basics", "confidence_score": 95}])
        card = answered(make_card("c5", node_id="basics"), quality=5, interval=30)
        assert apply_answer(layer, card, t0)[0].confidence_score == 100

    def test_unresolvable_item_is_noop(self, sample_graph, make_card, t0):
        layer = normalize_mastery_layer(sample_graph.nodes, None)
        card = answered(make_card("manual-1"), quality=5, interval=1)

        assert apply_answer(layer, card, t0) == layer

    def test_input_layer_not_mutated(self, sample_graph, make_card, t0):
        layer = normalize_mastery_layer(sample_graph.nodes, None)
        snapshot = [replace(s) for s in layer]
        apply_answer(layer, answered(make_card("c6", node_id="loops"), 5, 6), t0 + timedelta(days=1))
        assert layer == snapshot

    @pytest.mark.parametrize("interval, expected", [(0, 0), (1, 20), (3, 40), (6, 56), (31, 100), (1000, 100)])
    def test_stability_from_interval(self, interval, expected):
        assert stability_from_interval(interval) == expected

    def test_scores_stay_in_range(self, sample_graph, make_card, t0):
        layer = normalize_mastery_layer(sample_graph.nodes, None)
        for quality in [5, 5, 5, 0, 0, 5, 5, 5, 5, 5, 5, 5, 5, 5, 5]:
            layer = apply_answer(layer, answered(make_card("c7", node_id="recursion"), quality, 400), t0)
            state = layer[3]
            assert 0 <= state.confidence_score <= 100
            assert 0 <= state.stability_index <= 100


class TestDashboards:
    @pytest.mark.parametrize(
        "score, level",
        [
            (0, MasteryLevel.NOT_STARTED),
            (1, MasteryLevel.NOVICE),
            (39, MasteryLevel.NOVICE),
            (40, MasteryLevel.DEVELOPING),
            (70, MasteryLevel.PROFICIENT),
            (90, MasteryLevel.MASTERED),
            (100, MasteryLevel.MASTERED),
        ],
    )
    def test_level_from_score(self, score, level):
        assert MasteryLevel.from_score(score) is level

    def test_summary(self):
        layer = [
            MasteryState("a", confidence_score=100, stability_index=50),
            MasteryState("b", confidence_score=50, stability_index=0),
            MasteryState("c", confidence_score=0, stability_index=10),
        ]
        summary = summarize_mastery(layer)

        assert summary.node_count == 3
        assert summary.average_confidence == 50.0
        assert summary.average_stability == 20.0
        assert summary.mastered_count == 1
        assert summary.by_level[MasteryLevel.NOT_STARTED] == 1
        assert summary.to_dict()["byLevel"]["developing"] == 1

    def test_empty_summary(self):
        assert summarize_mastery([]).node_count == 0
