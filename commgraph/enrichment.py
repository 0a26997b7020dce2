"""
Metadata Enrichment Tracker

A node can be visited (its links extracted) while its metadata fetch failed.
Such nodes are found here, independently of the visited flag, and retried
by a healing pass that only ever writes metadata.

Author: commgraph maintainers | 2026-10-18
"""

from __future__ import annotations

import logging
from typing import List, Optional

from commgraph.graph_store import GraphStore
from commgraph.types import NodeMeta

logger = logging.getLogger(__name__)


class EnrichmentTracker:
    """Tracks nodes whose subscriber count or sensitivity is still unset."""

    def __init__(self, store: GraphStore):
        self._store = store

    def list_incomplete(self) -> List[str]:
        return self._store.incomplete_nodes()

    def count_incomplete(self) -> int:
        return len(self._store.incomplete_nodes())

    def apply(self, name: str, meta: Optional[NodeMeta]) -> bool:
        """
        Write fetched metadata for name.

        None (a failed fetch) leaves the node incomplete for the next pass.
        Never touches visited or edges.
        """
        if meta is None:
            logger.debug(f"No metadata for {name}, left incomplete")
            return False
        return self._store.update_metadata(name, meta.sensitive, meta.subscribers)
