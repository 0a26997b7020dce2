"""
Graph Store — SQLite-backed storage for the community cross-reference graph

Tables:
    nodes        - Community entities (normalized unique name, visited flag, metadata)
    edges        - Directed discovered links, unique per (from_id, to_id), append-only
    memberships  - (group_name, node_name) facts from curated external collections

The store owns the uniqueness and referential invariants: names are
normalized before every lookup, edges are deduplicated and never self-loops,
and an edge is only written when both endpoints already exist. A missing
endpoint is skipped silently so a long crawl never aborts on it.

Every sqlite3 failure surfaces as StorageError; nothing else is fatal here.

Author: commgraph maintainers | 2026-10-18
"""

from __future__ import annotations

import logging
import re
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from commgraph.config import StoreConfig
from commgraph.errors import StorageError
from commgraph.types import Sensitivity

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_GRAPH_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS nodes (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT UNIQUE NOT NULL,
    visited     BOOLEAN NOT NULL DEFAULT 0,
    subscribers INTEGER DEFAULT NULL,
    sensitive   BOOLEAN DEFAULT NULL,
    added_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS edges (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    from_id       INTEGER NOT NULL REFERENCES nodes(id) ON DELETE CASCADE,
    to_id         INTEGER NOT NULL REFERENCES nodes(id) ON DELETE CASCADE,
    discovered_at TEXT NOT NULL,
    UNIQUE (from_id, to_id),
    CHECK (from_id <> to_id)
);

CREATE TABLE IF NOT EXISTS memberships (
    group_name TEXT NOT NULL,
    node_name  TEXT NOT NULL,
    added_at   TEXT NOT NULL,
    PRIMARY KEY (group_name, node_name)
);

CREATE INDEX IF NOT EXISTS idx_edges_from ON edges(from_id);
CREATE INDEX IF NOT EXISTS idx_edges_to ON edges(to_id);
CREATE INDEX IF NOT EXISTS idx_nodes_visited ON nodes(visited);
CREATE INDEX IF NOT EXISTS idx_nodes_name ON nodes(name);
CREATE INDEX IF NOT EXISTS idx_memberships_group ON memberships(group_name);
CREATE INDEX IF NOT EXISTS idx_memberships_node ON memberships(node_name);
"""


def _now_iso() -> str:
    from datetime import datetime, timezone
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Name normalization
# ---------------------------------------------------------------------------

# "r/foo", "/r/foo", "g/foo" -> "foo"
_GROUP_PREFIX = re.compile(r"^/?[rg]/")


def normalize_name(name: Optional[str]) -> str:
    """
    Canonical form of a node name: trimmed, lower-cased, group prefix removed.

    Prefixes are stripped until the value is stable, so the function is
    idempotent even for inputs like "g/r/foo".
    """
    value = (name or "").strip().lower()
    previous = None
    while value != previous:
        previous = value
        value = _GROUP_PREFIX.sub("", value).strip()
    return value


# ---------------------------------------------------------------------------
# GraphStore
# ---------------------------------------------------------------------------

class GraphStore:
    """
    SQLite-backed graph store.

    A single writer process is assumed; SQLite's own file locking (bounded by
    busy_timeout) provides exclusion between processes. The internal lock only
    serializes calls sharing this connection.

    The connection can be injected (tests, shared DB); otherwise it is opened
    from db_path.
    """

    def __init__(
        self,
        db_path: str = ":memory:",
        *,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        connection: Optional[sqlite3.Connection] = None,
    ):
        """Open (or adopt) the database and create tables if needed."""
        self._db_path = db_path
        self._lock = threading.Lock()
        try:
            if connection is not None:
                self._conn = connection
            else:
                if db_path != ":memory:":
                    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
                self._conn = sqlite3.connect(
                    db_path,
                    timeout=busy_timeout_ms / 1000.0,
                    check_same_thread=False,
                )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            if wal_mode and db_path != ":memory:" and connection is None:
                self._conn.execute("PRAGMA journal_mode = WAL")
            self._ensure_tables()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open graph store at {db_path}: {e}") from e
        logger.debug(f"GraphStore initialized: {db_path}")

    @classmethod
    def from_config(cls, config: StoreConfig) -> "GraphStore":
        return cls(
            config.db_path,
            wal_mode=config.wal_mode,
            busy_timeout_ms=config.busy_timeout_ms,
        )

    def _ensure_tables(self) -> None:
        """Create graph tables if they don't exist (safe on existing DB)."""
        self._conn.executescript(_GRAPH_SCHEMA_SQL)
        self._conn.commit()

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        """
        Serialize access and run the body as one transaction.

        Commits on success, rolls back on error; sqlite3 errors become
        StorageError.
        """
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as e:
                raise StorageError(f"{action} failed: {e}") from e

    def close(self) -> None:
        """Close the underlying SQLite connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "GraphStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- Nodes -------------------------------------------------------------

    def upsert_node(self, name: str) -> int:
        """Insert the node unvisited if absent; return its stable id."""
        normalized = normalize_name(name)
        if not normalized:
            raise ValueError(f"Invalid node name: {name!r}")
        with self._transaction("upsert_node") as conn:
            return self._upsert(conn, normalized)

    def bulk_upsert_nodes(self, names: Iterable[str]) -> List[int]:
        """
        upsert_node for many names in one transaction.

        Returns ids in input order; equivalent spellings share an id.
        """
        names = list(names)
        normalized = [normalize_name(n) for n in names]
        for raw, value in zip(names, normalized):
            if not value:
                raise ValueError(f"Invalid node name: {raw!r}")
        if not normalized:
            return []
        with self._transaction("bulk_upsert_nodes") as conn:
            return [self._upsert(conn, value) for value in normalized]

    @staticmethod
    def _upsert(conn: sqlite3.Connection, normalized: str) -> int:
        conn.execute(
            "INSERT OR IGNORE INTO nodes (name, visited, added_at) VALUES (?, 0, ?)",
            (normalized, _now_iso()),
        )
        row = conn.execute(
            "SELECT id FROM nodes WHERE name = ?", (normalized,)
        ).fetchone()
        return row["id"]

    def get_node_id(self, name: str) -> Optional[int]:
        """Id of an existing node, or None."""
        normalized = normalize_name(name)
        if not normalized:
            return None
        with self._transaction("get_node_id") as conn:
            row = conn.execute(
                "SELECT id FROM nodes WHERE name = ?", (normalized,)
            ).fetchone()
        return row["id"] if row is not None else None

    def get_node(self, name: str) -> Optional[Dict[str, Any]]:
        """Read a single node."""
        normalized = normalize_name(name)
        if not normalized:
            return None
        with self._transaction("get_node") as conn:
            row = conn.execute(
                "SELECT * FROM nodes WHERE name = ?", (normalized,)
            ).fetchone()
        if row is None:
            return None
        return {
            "id": row["id"],
            "name": row["name"],
            "visited": bool(row["visited"]),
            "subscribers": row["subscribers"],
            "sensitive": Sensitivity.from_flag(row["sensitive"]),
            "added_at": row["added_at"],
        }

    def update_metadata(
        self,
        name: str,
        sensitive: Any,
        subscribers: Optional[int],
    ) -> bool:
        """
        Write sensitivity and subscriber count together.

        No-op (returns False) on an empty name or a node that was never
        enqueued. `sensitive` may be a bool, 0/1, None or a Sensitivity.
        """
        normalized = normalize_name(name)
        if not normalized:
            return False
        flag = Sensitivity.from_flag(sensitive).to_flag()
        with self._transaction("update_metadata") as conn:
            cur = conn.execute(
                "UPDATE nodes SET sensitive = ?, subscribers = ? WHERE name = ?",
                (flag, subscribers, normalized),
            )
            return cur.rowcount == 1

    def mark_visited(self, name: str) -> bool:
        """One-way visited transition. Returns True only when the flag flipped."""
        normalized = normalize_name(name)
        if not normalized:
            return False
        with self._transaction("mark_visited") as conn:
            cur = conn.execute(
                "UPDATE nodes SET visited = 1 WHERE name = ? AND visited = 0",
                (normalized,),
            )
            return cur.rowcount == 1

    def nodes(self) -> List[Dict[str, Any]]:
        """All nodes ordered by id (snapshot order)."""
        with self._transaction("nodes") as conn:
            rows = conn.execute(
                "SELECT id, name, visited, subscribers, sensitive FROM nodes ORDER BY id"
            ).fetchall()
        return [
            {
                "id": row["id"],
                "name": row["name"],
                "visited": bool(row["visited"]),
                "subscribers": row["subscribers"],
                "sensitive": row["sensitive"],
            }
            for row in rows
        ]

    # -- Edges -------------------------------------------------------------

    def add_edge(self, from_id: int, to_id: int) -> bool:
        """
        Insert the directed edge from_id -> to_id.

        Self-loops and duplicates are no-ops; so is an edge whose endpoint
        does not exist. Returns True only when a row was written.
        """
        if from_id is None or to_id is None or from_id == to_id:
            return False
        with self._transaction("add_edge") as conn:
            found = conn.execute(
                "SELECT COUNT(*) FROM nodes WHERE id IN (?, ?)", (from_id, to_id)
            ).fetchone()[0]
            if found < 2:
                logger.debug(f"Skipping edge {from_id} -> {to_id}: missing endpoint")
                return False
            cur = conn.execute(
                "INSERT OR IGNORE INTO edges (from_id, to_id, discovered_at) VALUES (?, ?, ?)",
                (from_id, to_id, _now_iso()),
            )
            return cur.rowcount == 1

    def add_edge_by_name(self, from_name: str, to_name: str) -> bool:
        """add_edge on names; neither endpoint is created implicitly."""
        from_id = self.get_node_id(from_name)
        to_id = self.get_node_id(to_name)
        if from_id is None or to_id is None:
            logger.debug(f"Skipping edge {from_name!r} -> {to_name!r}: missing endpoint")
            return False
        return self.add_edge(from_id, to_id)

    def edges(self) -> List[Tuple[int, int]]:
        """All (from_id, to_id) pairs, ordered by source then target."""
        with self._transaction("edges") as conn:
            rows = conn.execute(
                "SELECT from_id, to_id FROM edges ORDER BY from_id, to_id"
            ).fetchall()
        return [(row["from_id"], row["to_id"]) for row in rows]

    # -- Memberships -------------------------------------------------------

    def set_membership(self, group_name: str, node_name: str) -> bool:
        """Record (or replace) that node_name belongs to group_name."""
        group = (group_name or "").strip().lower()
        normalized = normalize_name(node_name)
        if not group or not normalized:
            return False
        with self._transaction("set_membership") as conn:
            conn.execute(
                """INSERT OR REPLACE INTO memberships (group_name, node_name, added_at)
                   VALUES (?, ?, ?)""",
                (group, normalized, _now_iso()),
            )
        return True

    def memberships(self, group_name: Optional[str] = None) -> List[Tuple[str, str]]:
        """(group_name, node_name) pairs, optionally restricted to one group."""
        with self._transaction("memberships") as conn:
            if group_name is None:
                rows = conn.execute(
                    "SELECT group_name, node_name FROM memberships ORDER BY group_name, node_name"
                ).fetchall()
            else:
                rows = conn.execute(
                    """SELECT group_name, node_name FROM memberships
                       WHERE group_name = ? ORDER BY node_name""",
                    (group_name.strip().lower(),),
                ).fetchall()
        return [(row["group_name"], row["node_name"]) for row in rows]

    def groups(self) -> List[str]:
        with self._transaction("groups") as conn:
            rows = conn.execute(
                "SELECT DISTINCT group_name FROM memberships ORDER BY group_name"
            ).fetchall()
        return [row["group_name"] for row in rows]

    # -- Frontier queries --------------------------------------------------

    def next_unvisited(self) -> Optional[str]:
        """Oldest unvisited node by insertion order, or None."""
        with self._transaction("next_unvisited") as conn:
            row = conn.execute(
                "SELECT name FROM nodes WHERE visited = 0 ORDER BY id LIMIT 1"
            ).fetchone()
        return row["name"] if row is not None else None

    def count_unvisited(self) -> int:
        with self._transaction("count_unvisited") as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM nodes WHERE visited = 0"
            ).fetchone()[0]

    def incomplete_nodes(self) -> List[str]:
        """Nodes whose subscriber count or sensitivity is still unset."""
        with self._transaction("incomplete_nodes") as conn:
            rows = conn.execute(
                """SELECT name FROM nodes
                   WHERE subscribers IS NULL OR sensitive IS NULL
                   ORDER BY id"""
            ).fetchall()
        return [row["name"] for row in rows]

    # -- Statistics --------------------------------------------------------

    def stats(self) -> Dict[str, int]:
        """Row counts for nodes, edges and memberships."""
        with self._transaction("stats") as conn:
            node_row = conn.execute(
                """SELECT COUNT(*) AS total,
                          COALESCE(SUM(visited), 0) AS visited,
                          COALESCE(SUM(CASE WHEN subscribers IS NULL OR sensitive IS NULL
                                       THEN 1 ELSE 0 END), 0) AS incomplete
                   FROM nodes"""
            ).fetchone()
            total_edges = conn.execute("SELECT COUNT(*) FROM edges").fetchone()[0]
            total_memberships = conn.execute(
                "SELECT COUNT(*) FROM memberships"
            ).fetchone()[0]
            total_groups = conn.execute(
                "SELECT COUNT(DISTINCT group_name) FROM memberships"
            ).fetchone()[0]

        return {
            "total_nodes": node_row["total"],
            "visited": node_row["visited"],
            "unvisited": node_row["total"] - node_row["visited"],
            "incomplete": node_row["incomplete"],
            "total_edges": total_edges,
            "memberships": total_memberships,
            "groups": total_groups,
        }
