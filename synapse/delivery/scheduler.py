"""
SM-2 Spaced Repetition Scheduler.

Implements:
- SM-2 algorithm for review intervals (per-item scheduling state)
- Due-item selection (fail-open on missing dates)
- Post-review item update (scheduling fields + last quality)

SM-2 Grade Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, TypeVar

from loguru import logger

from synapse.config import Settings
from synapse.core.models import Sm2State, StudyItem, ensure_utc, utc_now
from synapse.core.sanitize import clamp, is_number, round_half_up, sanitize_sm2

ItemT = TypeVar("ItemT", bound=StudyItem)

# =============================================================================
# SM-2 Algorithm
# =============================================================================


@dataclass
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_easiness: float = 2.5
    minimum_easiness: float = 1.3
    first_interval: int = 1  # Days for first review
    second_interval: int = 6  # Days for second review
    maximum_interval: int = 36500  # Upper bound keeps due dates representable

    @classmethod
    def from_settings(cls, settings: Settings) -> SM2Config:
        return cls(
            initial_easiness=settings.sm2_initial_efactor,
            minimum_easiness=settings.sm2_minimum_efactor,
            first_interval=settings.sm2_first_interval,
            second_interval=settings.sm2_second_interval,
            maximum_interval=settings.sm2_maximum_interval,
        )


@dataclass
class Sm2Result:
    """New scheduling state plus the date it makes the item due."""

    state: Sm2State
    next_review_at: datetime

    @property
    def interval(self) -> int:
        return self.state.interval

    @property
    def repetitions(self) -> int:
        return self.state.repetitions

    @property
    def efactor(self) -> float:
        return self.state.efactor


def clamp_quality(quality: Any) -> int:
    """Integer grade in [0, 5]; non-numeric input counts as a blackout."""
    if not is_number(quality):
        return 0
    return int(clamp(round_half_up(quality), 0, 5))


class SM2Scheduler:
    """
    Implements the SM-2 spaced repetition algorithm.

    The SuperMemo 2 algorithm calculates review intervals based on
    performance history. Each study item carries:
    - Easiness Factor (efactor): How easy the item is (2.5 default, min 1.3)
    - Interval: Days until next review
    - Repetitions: Consecutive correct recalls

    Never raises: invalid stored state is reset and invalid grades are
    clamped.
    """

    def __init__(self, config: SM2Config | None = None):
        """
        Initialize SM-2 scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or SM2Config()

    def _fresh_state(self) -> Sm2State:
        return Sm2State(interval=0, repetitions=0, efactor=self.config.initial_easiness)

    def calculate_next_review(
        self,
        state: Sm2State | dict | None,
        quality: Any,
        now: datetime | None = None,
    ) -> Sm2Result:
        """
        Calculate the next scheduling state for a graded review.

        Args:
            state: Current SM-2 state (sanitized before use)
            quality: User grade (clamped to 0-5)
            now: Review time; anything but a datetime means "now"

        Returns:
            Sm2Result with new interval/repetitions/efactor and due date
        """
        current = sanitize_sm2(state)
        if current.efactor < self.config.minimum_easiness:
            current = self._fresh_state()
        grade = clamp_quality(quality)
        reviewed_at = ensure_utc(now) if isinstance(now, datetime) else utc_now()

        if grade < 3:
            # Failed - reset to beginning, ease untouched
            new_ef = current.efactor
            new_repetitions = 0
            new_interval = self.config.first_interval
        else:
            # EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
            ef_delta = 0.1 - (5 - grade) * (0.08 + (5 - grade) * 0.02)
            new_ef = max(self.config.minimum_easiness, current.efactor + ef_delta)
            new_repetitions = current.repetitions + 1

            if new_repetitions == 1:
                new_interval = self.config.first_interval
            elif new_repetitions == 2:
                new_interval = self.config.second_interval
            else:
                base = min(current.interval, self.config.maximum_interval)
                new_interval = max(1, round_half_up(base * new_ef))

            new_interval = min(new_interval, self.config.maximum_interval)

        logger.debug(
            f"SM-2 q={grade}: interval {current.interval}->{new_interval}, "
            f"reps {current.repetitions}->{new_repetitions}, ef {current.efactor:.2f}->{new_ef:.2f}"
        )
        return Sm2Result(
            state=Sm2State(interval=new_interval, repetitions=new_repetitions, efactor=new_ef),
            next_review_at=reviewed_at + timedelta(days=new_interval),
        )

    def review_item(self, item: ItemT, quality: Any, now: datetime | None = None) -> ItemT:
        """
        Apply a graded review to a study item.

        Returns:
            A copy of the item with new SM-2 state, review dates and quality
        """
        reviewed_at = ensure_utc(now) if isinstance(now, datetime) else utc_now()
        result = self.calculate_next_review(item.sm2, quality, reviewed_at)
        return replace(
            item,
            sm2=result.state,
            last_reviewed_at=reviewed_at,
            next_review_at=result.next_review_at,
            last_quality=clamp_quality(quality),
        )


_default_scheduler = SM2Scheduler()


def calculate_sm2(state: Sm2State | dict | None, quality: Any, now: datetime | None = None) -> Sm2Result:
    """SM-2 update with the default configuration."""
    return _default_scheduler.calculate_next_review(state, quality, now)


# =============================================================================
# Due Items
# =============================================================================


def is_due(item: StudyItem, now: datetime) -> bool:
    """An item without a due date is due (never scheduled or corrupt date)."""
    if item.next_review_at is None:
        return True
    return ensure_utc(item.next_review_at) <= now


def get_due_study_items(items: Iterable[ItemT], now: datetime | None = None) -> list[ItemT]:
    """
    Items due for review, in input order.

    Args:
        items: Study items of one graph
        now: Reference time (defaults to UTC now)
    """
    reference = ensure_utc(now) if isinstance(now, datetime) else utc_now()
    return [item for item in items if is_due(item, reference)]
