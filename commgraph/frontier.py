"""
Crawl Frontier — resumable FIFO work queue over unvisited nodes

The frontier holds no state of its own: every pull reads the store, so nodes
discovered mid-traversal are visible to later pulls and a restarted process
resumes where the previous one stopped. Marking an item visited is the
caller's job, which gives at-least-once delivery.

Note: next_unvisited() followed by mark_visited() is not atomic. That is fine
for the single sequential consumer this module is written for; parallel
workers would need a compare-and-set claim step first.

Author: commgraph maintainers | 2026-10-18
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional

from commgraph.graph_store import GraphStore

logger = logging.getLogger(__name__)


class CrawlFrontier:
    """Ordered view of the store's unvisited nodes."""

    def __init__(self, store: GraphStore):
        self._store = store

    @property
    def store(self) -> GraphStore:
        return self._store

    def enqueue_if_absent(self, name: str) -> int:
        """Add name unvisited if unknown; an already visited node stays visited."""
        return self._store.upsert_node(name)

    def enqueue_many(self, names: Iterable[str]) -> List[int]:
        return self._store.bulk_upsert_nodes(names)

    def next_unvisited(self) -> Optional[str]:
        return self._store.next_unvisited()

    def count_unvisited(self) -> int:
        return self._store.count_unvisited()

    def mark_visited(self, name: str) -> bool:
        return self._store.mark_visited(name)

    def iterate(self, limit: Optional[int] = None) -> Iterator[str]:
        """
        Lazily yield unvisited names, oldest first.

        Each name is fetched from storage when the consumer asks for it, not
        from a precomputed list. If the consumer does not mark a yielded name
        visited, the next pull yields it again.

        Args:
            limit: stop after this many items (None = until the frontier is empty)
        """
        yielded = 0
        while limit is None or yielded < limit:
            name = self._store.next_unvisited()
            if name is None:
                return
            yielded += 1
            yield name
        logger.debug(f"Frontier iteration stopped at limit={limit}")
