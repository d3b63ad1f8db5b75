"""Unit tests for weak-node detection."""

from datetime import timedelta

from synapse.adaptive.weak_nodes import compute_weak_nodes, count_recent_errors
from synapse.core.models import ActivityEvent, MasteryState


def failure(node_id, ts, quality=1):
    return ActivityEvent(ts=ts, item_id=f"item-{node_id}", node_id=node_id, quality=quality)


class TestRecentErrors:
    def test_window_is_strict(self, t0):
        events = [
            failure("a", t0 - timedelta(days=7)),
            failure("a", t0 - timedelta(days=7) + timedelta(seconds=1)),
            failure("a", t0 - timedelta(hours=1)),
        ]
        assert count_recent_errors(events, t0)["a"] == 2

    def test_ignores_passes_and_unattributed_events(self, t0):
        events = [
            failure("a", t0, quality=3),
            failure("a", t0, quality=2),
            ActivityEvent(ts=t0, item_id="x", quality=0),
            ActivityEvent(ts=t0, item_id="y", node_id="a"),
        ]
        assert count_recent_errors(events, t0) == {"a": 1}


class TestComputeWeakNodes:
    def test_statistically_weak_node(self, t0):
        mastery = [MasteryState("a", confidence_score=30, stability_index=10)]
        [insight] = compute_weak_nodes(mastery, [], {"a": "Alpha"}, t0)

        assert insight.label == "Alpha"
        assert insight.priority == 60
        assert insight.reason == "Maîtrise critique"
        assert insight.errors_7d == 0

    def test_low_retention_reason(self, t0):
        mastery = [MasteryState("a", confidence_score=50, stability_index=20)]
        [insight] = compute_weak_nodes(mastery, [], {}, t0)

        assert insight.priority == 30
        assert insight.reason == "Faible rétention"
        assert insight.label == "a"

    def test_recent_errors_flag_strong_node(self, t0):
        mastery = [MasteryState("a", confidence_score=80, stability_index=80)]
        activity = [failure("a", t0 - timedelta(days=1)), failure("a", t0 - timedelta(days=2))]
        [insight] = compute_weak_nodes(mastery, activity, {}, t0)

        assert insight.errors_7d == 2
        assert insight.priority == 30
        assert insight.reason == "2 erreurs récentes"

    def test_single_error_on_strong_node_not_weak(self, t0):
        mastery = [MasteryState("a", confidence_score=80, stability_index=80)]
        assert compute_weak_nodes(mastery, [failure("a", t0)], {}, t0) == []

    def test_boundaries_not_weak(self, t0):
        mastery = [
            MasteryState("a", confidence_score=60, stability_index=0),
            MasteryState("b", confidence_score=0, stability_index=40),
        ]
        assert compute_weak_nodes(mastery, [], {}, t0) == []

    def test_sorted_by_priority_and_limited(self, t0):
        mastery = [
            MasteryState("low", confidence_score=55, stability_index=35),
            MasteryState("high", confidence_score=0, stability_index=0),
            MasteryState("mid", confidence_score=30, stability_index=30),
            MasteryState("mid-twin", confidence_score=30, stability_index=30),
        ]
        insights = compute_weak_nodes(mastery, [], {}, t0, limit=3)

        assert [i.node_id for i in insights] == ["high", "mid", "mid-twin"]

    def test_to_dict(self, t0):
        [insight] = compute_weak_nodes([MasteryState("a", 10, 10)], [], {}, t0)
        assert insight.to_dict()["errors7d"] == 0
        assert insight.to_dict()["nodeId"] == "a"
