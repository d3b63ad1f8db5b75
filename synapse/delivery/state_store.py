"""
SQLite State Store for Synapse.

Provides portable persistence, scoped per knowledge graph, for:
- the imported knowledge graph
- the mastery layer
- study items (with their SM-2 state)
- XP/level progress
- the review activity log

Each (graph_id, kind) pair holds one JSON document. Every load goes through
the sanitize layer, so corrupt rows degrade to safe defaults instead of
raising.

Database location: ~/.synapse/state.db
"""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

from synapse.core.exceptions import GraphValidationError
from synapse.core.models import (
    ActivityEvent,
    KnowledgeGraph,
    MasteryState,
    StudyItem,
    to_iso,
    utc_now,
)
from synapse.core.progress import Progress
from synapse.core.sanitize import (
    activity_from_raw,
    dump_all,
    graph_from_dict,
    items_from_raw,
    mastery_from_raw,
    parse_timestamp,
    progress_from_dict,
)

# =============================================================================
# Data Classes
# =============================================================================


class StateKind(str, Enum):
    """Document kinds stored per graph."""

    GRAPH = "graph"
    MASTERY = "mastery"
    ITEMS = "items"
    PROGRESS = "progress"
    ACTIVITY = "activity"


@dataclass
class GraphRecord:
    """Listing entry for an imported graph."""

    graph_id: str
    title: str
    node_count: int
    updated_at: datetime | None = None


# =============================================================================
# State Store
# =============================================================================


class StateStore:
    """
    SQLite-backed state persistence for Synapse.

    Load returns None when nothing is stored; save commits before returning,
    so the next load sees the new value. The connection is shared across
    threads and guarded by a lock.
    """

    DEFAULT_DB_PATH = Path.home() / ".synapse" / "state.db"

    def __init__(self, db_path: Path | None = None):
        """
        Initialize the state store.

        Args:
            db_path: Custom database path (defaults to ~/.synapse/state.db)
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._init_schema()

        logger.info(f"StateStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS graph_state (
                    graph_id TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (graph_id, kind)
                )
            """)
            self.conn.commit()

    # =========================================================================
    # Raw Documents
    # =========================================================================

    def load(self, graph_id: str, kind: StateKind) -> Any | None:
        """
        Load the raw JSON document stored for a graph.

        Returns:
            Decoded payload, or None if absent or unreadable
        """
        kind = StateKind(kind)
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT payload FROM graph_state WHERE graph_id = ? AND kind = ?",
                (graph_id, kind.value),
            )
            row = cursor.fetchone()

        if row is None:
            return None
        try:
            return json.loads(row["payload"])
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt {kind.value} state for graph {graph_id}: {e}")
            return None

    def save_many(self, graph_id: str, documents: Mapping[StateKind, Any]) -> None:
        """
        Save several documents for one graph in a single transaction.

        Args:
            graph_id: Owning graph
            documents: kind -> JSON-serializable payload
        """
        stamp = to_iso(utc_now())
        rows = [
            (graph_id, StateKind(kind).value, json.dumps(payload, ensure_ascii=False), stamp)
            for kind, payload in documents.items()
        ]
        with self._lock, self.conn:
            self.conn.executemany(
                """
                INSERT INTO graph_state (graph_id, kind, payload, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(graph_id, kind) DO UPDATE SET
                    payload = excluded.payload,
                    updated_at = excluded.updated_at
            """,
                rows,
            )

    def save(self, graph_id: str, kind: StateKind, payload: Any) -> None:
        """Save one document for a graph."""
        self.save_many(graph_id, {kind: payload})

    def delete_graph(self, graph_id: str) -> int:
        """
        Remove every document stored for a graph.

        Returns:
            Number of rows deleted
        """
        with self._lock, self.conn:
            cursor = self.conn.execute("DELETE FROM graph_state WHERE graph_id = ?", (graph_id,))
            deleted = cursor.rowcount
        logger.info(f"Deleted {deleted} state document(s) for graph {graph_id}")
        return deleted

    # =========================================================================
    # Typed Helpers
    # =========================================================================

    def load_graph(self, graph_id: str) -> KnowledgeGraph | None:
        raw = self.load(graph_id, StateKind.GRAPH)
        if raw is None:
            return None
        try:
            return graph_from_dict(raw)
        except GraphValidationError as e:
            logger.warning(f"Unreadable stored graph {graph_id}: {e}")
            return None

    def load_mastery(self, graph_id: str) -> list[MasteryState] | None:
        raw = self.load(graph_id, StateKind.MASTERY)
        return None if raw is None else mastery_from_raw(raw)

    def load_items(self, graph_id: str) -> list[StudyItem] | None:
        raw = self.load(graph_id, StateKind.ITEMS)
        return None if raw is None else items_from_raw(raw)

    def save_items(self, graph_id: str, items: list[StudyItem]) -> None:
        self.save(graph_id, StateKind.ITEMS, dump_all(items))

    def load_progress(self, graph_id: str) -> Progress | None:
        return progress_from_dict(self.load(graph_id, StateKind.PROGRESS))

    def load_activity(self, graph_id: str) -> list[ActivityEvent] | None:
        raw = self.load(graph_id, StateKind.ACTIVITY)
        return None if raw is None else activity_from_raw(raw)

    # =========================================================================
    # Listing
    # =========================================================================

    def list_graphs(self) -> list[GraphRecord]:
        """Imported graphs, most recently updated first."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                SELECT graph_id, payload, updated_at FROM graph_state
                WHERE kind = ?
                ORDER BY updated_at DESC, graph_id ASC
            """,
                (StateKind.GRAPH.value,),
            )
            rows = cursor.fetchall()

        records = []
        for row in rows:
            try:
                payload = json.loads(row["payload"])
            except json.JSONDecodeError:
                payload = {}
            if not isinstance(payload, dict):
                payload = {}
            nodes = payload.get("nodes")
            title = payload.get("title")
            records.append(
                GraphRecord(
                    graph_id=row["graph_id"],
                    title=title if isinstance(title, str) and title else row["graph_id"],
                    node_count=len(nodes) if isinstance(nodes, list) else 0,
                    updated_at=parse_timestamp(row["updated_at"]),
                )
            )
        return records

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
