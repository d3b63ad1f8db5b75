"""
Synapse delivery layer.

Components:
- SM2Scheduler: Spaced repetition algorithm
- build_daily_review_queue: Bounded daily review selection
- prune_activity_log: Rolling review history
- StateStore: SQLite persistence
- ReviewService: Review/session orchestration over the store
- cli: Main terminal interface
"""

from .activity import prune_activity_log
from .review_queue import build_daily_review_queue
from .review_service import ReviewOutcome, ReviewService
from .scheduler import SM2Config, SM2Scheduler, Sm2Result, calculate_sm2, get_due_study_items
from .state_store import GraphRecord, StateKind, StateStore

__all__ = [
    # Persistence
    "StateStore",
    "StateKind",
    "GraphRecord",
    # Scheduling
    "SM2Config",
    "SM2Scheduler",
    "Sm2Result",
    "calculate_sm2",
    "get_due_study_items",
    "build_daily_review_queue",
    # Activity
    "prune_activity_log",
    # Service
    "ReviewService",
    "ReviewOutcome",
]
