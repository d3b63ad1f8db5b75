"""
Daily review queue.

Builds the short, bounded list of items offered as the daily review:

1. Due items (most overdue first)
2. Never-reviewed items, in stored order
3. Reinforcement: remaining items with the shortest SM-2 interval

Each item appears at most once; sorts are stable so the queue is
deterministic for a given input.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TypeVar

from loguru import logger

from synapse.core.models import StudyItem, ensure_utc, utc_now

ItemT = TypeVar("ItemT", bound=StudyItem)


def build_daily_review_queue(
    items: Sequence[ItemT],
    now: datetime | None = None,
    limit: int = 10,
) -> list[ItemT]:
    """
    Select up to ``limit`` items for today's review.

    Args:
        items: All study items of the active graph
        now: Reference time (defaults to UTC now)
        limit: Maximum queue length (negative values count as 0)

    Returns:
        Ordered queue of distinct items
    """
    limit = max(0, limit)
    if not items or limit == 0:
        return []

    reference = ensure_utc(now) if isinstance(now, datetime) else utc_now()

    # 1. Due items, oldest due date first
    due = sorted(
        (
            item
            for item in items
            if item.next_review_at is not None and ensure_utc(item.next_review_at) <= reference
        ),
        key=lambda item: ensure_utc(item.next_review_at),
    )
    queue: list[ItemT] = due[:limit]
    chosen = {item.id for item in queue}

    # 2. New items
    if len(queue) < limit:
        for item in items:
            if len(queue) >= limit:
                break
            if item.last_reviewed_at is None and item.id not in chosen:
                queue.append(item)
                chosen.add(item.id)

    # 3. Reinforcement: shortest intervals first
    if len(queue) < limit:
        remaining = sorted(
            (item for item in items if item.id not in chosen),
            key=lambda item: item.sm2.interval,
        )
        for item in remaining:
            if len(queue) >= limit:
                break
            if item.id in chosen:
                continue
            queue.append(item)
            chosen.add(item.id)

    logger.debug(f"Daily queue: {len(queue)} item(s) ({len(due)} due) from {len(items)}")
    return queue
