"""Unit tests for activity log pruning."""

from datetime import timedelta

from synapse.core.models import ActivityEvent
from synapse.delivery.activity import prune_activity_log


def event(ts, item_id="i"):
    return ActivityEvent(ts=ts, item_id=item_id, node_id="n", quality=4)


def test_drops_events_outside_window(t0):
    events = [
        event(t0 - timedelta(days=61), "old"),
        event(t0 - timedelta(days=60), "edge"),
        event(t0 - timedelta(days=59), "kept"),
    ]
    assert [e.item_id for e in prune_activity_log(events, t0)] == ["kept"]


def test_keeps_most_recent_in_chronological_order(t0):
    events = [event(t0 - timedelta(minutes=m), f"e{m}") for m in range(10)]
    pruned = prune_activity_log(events, t0, max_entries=3)

    assert [e.item_id for e in pruned] == ["e2", "e1", "e0"]


def test_zero_cap(t0):
    assert prune_activity_log([event(t0)], t0, max_entries=0) == []


def test_custom_window(t0):
    events = [event(t0 - timedelta(days=8), "a"), event(t0 - timedelta(days=6), "b")]
    assert [e.item_id for e in prune_activity_log(events, t0, window_days=7)] == ["b"]
