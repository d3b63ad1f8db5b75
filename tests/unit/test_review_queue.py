"""Unit tests for the daily review queue builder."""

from datetime import timedelta

from synapse.delivery.review_queue import build_daily_review_queue


def ids(items):
    return [item.id for item in items]


class TestDailyReviewQueue:
    def test_empty_input(self, t0):
        assert build_daily_review_queue([], t0) == []

    def test_reviewed_items_not_due_sorted_by_interval(self, t0, make_card):
        reviewed = t0 - timedelta(days=1)
        items = [
            make_card(f"c{interval}", interval=interval, last_reviewed_at=reviewed,
                      next_review_at=t0 + timedelta(days=interval))
            for interval in [10, 3, 7, 1, 5]
        ]

        queue = build_daily_review_queue(items, t0, limit=10)
        assert ids(queue) == ["c1", "c3", "c5", "c7", "c10"]

    def test_due_items_most_overdue_first(self, t0, make_card):
        reviewed = t0 - timedelta(days=10)
        items = [
            make_card("due-1d", last_reviewed_at=reviewed, next_review_at=t0 - timedelta(days=1)),
            make_card("due-5d", last_reviewed_at=reviewed, next_review_at=t0 - timedelta(days=5)),
            make_card("due-now", last_reviewed_at=reviewed, next_review_at=t0),
        ]
        assert ids(build_daily_review_queue(items, t0)) == ["due-5d", "due-1d", "due-now"]

    def test_priority_order_due_new_reinforcement(self, t0, make_card):
        reviewed = t0 - timedelta(days=3)
        items = [
            make_card("later-long", interval=20, last_reviewed_at=reviewed, next_review_at=t0 + timedelta(days=20)),
            make_card("new-a"),
            make_card("due", interval=1, last_reviewed_at=reviewed, next_review_at=t0 - timedelta(days=2)),
            make_card("later-short", interval=2, last_reviewed_at=reviewed, next_review_at=t0 + timedelta(days=2)),
            make_card("new-b"),
        ]

        queue = build_daily_review_queue(items, t0, limit=10)
        assert ids(queue) == ["due", "new-a", "new-b", "later-short", "later-long"]

    def test_limit_and_no_duplicates(self, t0, make_card):
        reviewed = t0 - timedelta(days=30)
        items = [
            make_card(f"due-{i}", last_reviewed_at=reviewed, next_review_at=t0 - timedelta(days=i))
            for i in range(1, 8)
        ] + [make_card(f"new-{i}") for i in range(5)]

        queue = build_daily_review_queue(items, t0, limit=4)
        assert len(queue) == 4
        assert len(set(ids(queue))) == 4
        assert ids(queue) == ["due-7", "due-6", "due-5", "due-4"]

    def test_new_items_fill_remaining_slots(self, t0, make_card):
        items = [make_card(f"new-{i}") for i in range(6)]
        assert ids(build_daily_review_queue(items, t0, limit=3)) == ["new-0", "new-1", "new-2"]

    def test_zero_and_negative_limit(self, t0, make_card):
        items = [make_card("a"), make_card("b")]
        assert build_daily_review_queue(items, t0, limit=0) == []
        assert build_daily_review_queue(items, t0, limit=-5) == []

    def test_reviewed_item_without_due_date_is_reinforcement(self, t0, make_card):
        # A stored date that failed to parse loads as None
        corrupt = make_card("corrupt", interval=4, last_reviewed_at=t0 - timedelta(days=1))
        fresh = make_card("new")

        assert ids(build_daily_review_queue([corrupt, fresh], t0)) == ["new", "corrupt"]

    def test_deterministic(self, t0, make_card):
        reviewed = t0 - timedelta(days=1)
        items = [
            make_card(f"c{i}", interval=i % 3, last_reviewed_at=reviewed, next_review_at=t0 + timedelta(days=1))
            for i in range(9)
        ]
        first = build_daily_review_queue(items, t0, limit=6)
        second = build_daily_review_queue(items, t0, limit=6)

        assert ids(first) == ids(second)
        # Stable sort keeps input order among equal intervals
        assert ids(first) == ["c0", "c3", "c6", "c1", "c4", "c7"]
