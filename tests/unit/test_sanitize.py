"""Unit tests for the validate-and-coerce layer."""

import math
from datetime import datetime, timezone

import pytest

from synapse.core.models import (
    CaseStudy,
    Flashcard,
    FreeResponse,
    Level,
    MultipleChoice,
    ReviewMode,
    SessionType,
    Sm2State,
    TrueFalse,
    to_iso,
)
from synapse.core.sanitize import (
    activity_from_raw,
    context_from_dict,
    item_from_dict,
    items_from_raw,
    parse_timestamp,
    progress_from_dict,
    round_half_up,
    sanitize_sm2,
)


class TestScalars:
    @pytest.mark.parametrize("value, expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.4999, 2), (-0.5, 0), (16.8, 17)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_parse_timestamp_variants(self):
        expected = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

        assert parse_timestamp("2024-03-01T09:00:00Z") == expected
        assert parse_timestamp("2024-03-01T10:00:00+01:00") == expected
        assert parse_timestamp(datetime(2024, 3, 1, 9, 0)) == expected
        assert parse_timestamp("2024-03-01T09:00:00.000Z") == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "yesterday", 1709283600, "2024-13-45"])
    def test_parse_timestamp_invalid(self, value):
        assert parse_timestamp(value) is None

    def test_to_iso_uses_z_suffix(self, t0):
        assert to_iso(t0).endswith("Z")
        assert parse_timestamp(to_iso(t0)) == t0


class TestSanitizeSm2:
    def test_valid_state_kept(self):
        assert sanitize_sm2({"interval": 6, "repetitions": 2, "efactor": 2.36}) == Sm2State(6, 2, 2.36)

    @pytest.mark.parametrize(
        "raw",
        [
            {"interval": 6, "repetitions": 2},
            {"interval": math.inf, "repetitions": 2, "efactor": 2.5},
            {"interval": 6, "repetitions": True, "efactor": 2.5},
            {"interval": 6, "repetitions": 2, "efactor": 1.2},
            "corrupt",
        ],
    )
    def test_invalid_state_reset(self, raw):
        assert sanitize_sm2(raw) == Sm2State()


class TestItems:
    def test_dispatch_on_type(self):
        records = [
            {"id": "f", "type": "flashcard", "question": "Q", "answer": "A"},
            {"id": "m", "type": "mcq", "question": "Q", "options": ["x", "y"], "correctAnswerIndex": 1},
            {"id": "t", "type": "true/false", "question": "Q", "correctAnswer": True},
            {"id": "r", "type": "free", "question": "Q"},
            {"id": "c", "type": "case", "question": "Q", "answer": "A"},
        ]
        items = [item_from_dict(r) for r in records]

        assert [type(i) for i in items] == [Flashcard, MultipleChoice, TrueFalse, FreeResponse, CaseStudy]
        assert items[1].options == ["x", "y"]
        assert items[1].correct_answer_index == 1
        assert items[2].correct_answer is True
        assert items[3].answer is None

    def test_unknown_type_defaults_to_flashcard(self):
        assert isinstance(item_from_dict({"id": "x", "type": "essay"}), Flashcard)

    def test_scheduling_fields(self):
        item = item_from_dict(
            {
                "id": "f",
                "question": "Q",
                "answer": "A",
                "sm2": {"interval": -3, "repetitions": 1, "efactor": 2.5},
                "lastReviewedAt": "garbage",
                "nextReviewAt": "2024-03-02T09:00:00Z",
                "lastQuality": 4.6,
                "sourceNodeId": "loops",
                "difficulty": 12,
                "atomCoverage": 1.7,
            }
        )
        assert item.sm2 == Sm2State()
        assert item.last_reviewed_at is None
        assert item.next_review_at.day == 2
        assert item.last_quality == 5
        assert item.source_node_id == "loops"
        assert item.difficulty == 5
        assert item.atom_coverage == 1.0

    def test_collection_drops_unusable_and_duplicates(self):
        raw = [{"id": "a"}, {"question": "no id"}, "junk", {"id": "a", "question": "dup"}, {"id": "b"}]
        assert [item.id for item in items_from_raw(raw)] == ["a", "b"]

    def test_non_list_collection(self):
        assert items_from_raw({"id": "a"}) == []

    def test_to_dict_round_trip(self, make_card, t0):
        card = make_card("c1", node_id="loops", interval=6, repetitions=2, last_reviewed_at=t0, next_review_at=t0)
        assert item_from_dict(card.to_dict()) == card


class TestActivityProgressContext:
    def test_activity_drops_bad_timestamps(self):
        raw = [
            {"ts": "2024-03-01T09:00:00Z", "itemId": "a", "nodeId": "n", "quality": 2, "mode": "DailyReview", "gainedXp": 5},
            {"ts": "nope", "itemId": "b"},
            {"ts": "2024-03-01T09:00:00Z"},
        ]
        [event] = activity_from_raw(raw)

        assert event.item_id == "a"
        assert event.quality == 2
        assert event.mode is ReviewMode.DAILY_REVIEW
        assert event.gained_xp == 5

    def test_progress_coercion(self):
        progress = progress_from_dict({"level": 0, "currentXp": -10})
        assert (progress.level, progress.current_xp) == (1, 0)
        assert progress_from_dict("x") is None

    def test_context_defaults(self):
        context = context_from_dict(None)
        assert context.focus_score == 50
        assert context.session_type is SessionType.MAINTENANCE
        assert context.signals is None

    def test_context_from_payload(self):
        context = context_from_dict(
            {
                "focusScore": 140,
                "sessionType": "DeepWork",
                "stateDescription": "Fresh",
                "signals": {"timeAvailable": 60, "energyLevel": "high", "stressLevel": "bogus"},
            }
        )
        assert context.focus_score == 100
        assert context.session_type is SessionType.DEEP_WORK
        assert context.signals.energy_level is Level.HIGH
        assert context.signals.stress_level is Level.MEDIUM
