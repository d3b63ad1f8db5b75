"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from synapse.config import Settings  # noqa: E402
from synapse.core.models import Flashcard, Sm2State  # noqa: E402
from synapse.core.sanitize import graph_from_dict  # noqa: E402
from synapse.delivery.review_service import ReviewService  # noqa: E402
from synapse.delivery.state_store import StateStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (temporary SQLite store)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands and API endpoints")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def t0():
    """Fixed reference time."""
    return datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_graph_dict():
    """
    A small programming course graph.

    basics -> loops
    basics -> functions -> recursion
    """
    return {
        "id": "py-101",
        "title": "Python 101",
        "source_text": "Python basics course notes.",
        "nodes": [
            {
                "id": "basics",
                "label": "Basics",
                "description": "Values, names and expressions",
                "content_atoms": ["Names bind to objects", "Expressions evaluate to values", "Ints are immutable"],
                "prerequisites": [],
                "difficulty_weight": 1,
            },
            {
                "id": "loops",
                "label": "Loops",
                "description": "for and while",
                "content_atoms": ["for iterates over an iterable"],
                "prerequisites": ["basics"],
                "difficulty_weight": 2,
            },
            {
                "id": "functions",
                "label": "Functions",
                "description": "def, arguments, return",
                "content_atoms": ["def creates a function object", "return ends the call"],
                "prerequisites": ["basics"],
                "difficulty_weight": 2,
            },
            {
                "id": "recursion",
                "label": "Recursion",
                "description": "Functions calling themselves",
                "content_atoms": ["A base case stops the recursion"],
                "prerequisites": ["functions"],
                "difficulty_weight": 4,
            },
        ],
    }


@pytest.fixture
def sample_graph(sample_graph_dict):
    return graph_from_dict(sample_graph_dict)


@pytest.fixture
def make_card():
    """Factory for flashcards with optional scheduling state."""

    def _make(
        item_id,
        node_id=None,
        interval=0,
        repetitions=0,
        efactor=2.5,
        last_reviewed_at=None,
        next_review_at=None,
        **kwargs,
    ):
        return Flashcard(
            id=item_id,
            question=f"Question {item_id}",
            answer=f"Answer {item_id}",
            sm2=Sm2State(interval=interval, repetitions=repetitions, efactor=efactor),
            last_reviewed_at=last_reviewed_at,
            next_review_at=next_review_at,
            source_node_id=node_id,
            **kwargs,
        )

    return _make


@pytest.fixture
def reviewed_days_ago(t0):
    """Timestamp helper: n days before t0."""

    def _ago(days):
        return t0 - timedelta(days=days)

    return _ago


@pytest.fixture
def settings(tmp_path):
    """Settings isolated to a temporary data directory."""
    return Settings(data_dir=tmp_path, log_level="DEBUG")


@pytest.fixture
def store(tmp_path):
    state_store = StateStore(tmp_path / "state.db")
    yield state_store
    state_store.close()


@pytest.fixture
def service(store, settings):
    return ReviewService(store, settings)
