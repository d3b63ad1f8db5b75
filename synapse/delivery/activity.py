"""Rolling review activity log."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from synapse.core.models import ActivityEvent, ensure_utc

DEFAULT_WINDOW_DAYS = 60
DEFAULT_MAX_ENTRIES = 3000


def prune_activity_log(
    events: Iterable[ActivityEvent],
    now: datetime,
    window_days: int = DEFAULT_WINDOW_DAYS,
    max_entries: int = DEFAULT_MAX_ENTRIES,
) -> list[ActivityEvent]:
    """
    Bound the activity log in time and size.

    Keeps events strictly newer than ``now - window_days``, then the most
    recent ``max_entries`` of those, in chronological order.
    """
    since = ensure_utc(now) - timedelta(days=window_days)
    recent = sorted(
        (event for event in events if ensure_utc(event.ts) > since),
        key=lambda event: ensure_utc(event.ts),
    )
    if max_entries <= 0:
        return []
    return recent[-max_entries:]
