"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from synapse.config import get_settings
from synapse.delivery.review_service import ReviewService
from synapse.delivery.state_store import StateStore


@lru_cache(maxsize=1)
def get_service() -> ReviewService:
    """Process-wide review service over the configured state database."""
    settings = get_settings()
    return ReviewService(StateStore(settings.state_db_path), settings)


def close_service() -> None:
    """Close the cached service's store, if one was created."""
    if get_service.cache_info().currsize:
        get_service().store.close()
        get_service.cache_clear()
