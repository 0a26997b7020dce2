"""
Crawl Runner — sequential frontier loop, healing pass and group seeding

The page-scraping layer is an external collaborator implementing Extractor.
It is treated as fallible: a failed fetch (exception, None metadata, empty
link list) is logged, the node is marked visited so the loop advances, and
its metadata is left NULL for the healing pass. Only StorageError stops a
run.

One item is in flight at a time: extraction, metadata write, edge inserts
and the visited mark all complete before the next pull.

Author: commgraph maintainers | 2026-10-18
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from commgraph.config import CrawlConfig
from commgraph.enrichment import EnrichmentTracker
from commgraph.errors import ExtractionError, StorageError
from commgraph.frontier import CrawlFrontier
from commgraph.graph_store import GraphStore, normalize_name
from commgraph.types import CrawlReport, NodeMeta, PageResult

logger = logging.getLogger(__name__)


class Extractor(ABC):
    """
    Contract of the external scraping layer.

    fetch() is required. Group listing is only needed for seed(); the
    metadata-only fetch defaults to a full fetch.
    """

    @abstractmethod
    def fetch(self, name: str) -> PageResult:
        """Return deduplicated discovered names and metadata (or None) for a node."""
        raise NotImplementedError

    def fetch_meta(self, name: str) -> Optional[NodeMeta]:
        return self.fetch(name).meta

    def list_groups(self, owner: str) -> List[str]:
        """Names of the curated collections owned by owner."""
        raise NotImplementedError

    def group_members(self, owner: str, group: str) -> List[str]:
        """Node names listed in one of owner's collections."""
        raise NotImplementedError


class CrawlRunner:
    """Drives an Extractor over the frontier and writes results to the store."""

    def __init__(
        self,
        store: GraphStore,
        config: Optional[CrawlConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.config = config or CrawlConfig()
        self.frontier = CrawlFrontier(store)
        self.tracker = EnrichmentTracker(store)
        self._sleep = sleep

    # -- helpers -----------------------------------------------------------

    def _pause(self, index: int) -> None:
        """Politeness delay between items (none before the first)."""
        if index > 0 and self.config.delay_seconds > 0:
            self._sleep(self.config.delay_seconds)

    def _fetch(self, extractor: Extractor, name: str) -> Optional[PageResult]:
        try:
            return extractor.fetch(name)
        except StorageError:
            raise
        except ExtractionError as e:
            logger.warning(f"Extraction failed for {name}: {e}")
        except Exception as e:
            logger.warning(f"Extractor error for {name}: {type(e).__name__}: {e}")
        return None

    def _fetch_meta(self, extractor: Extractor, name: str) -> Optional[NodeMeta]:
        try:
            return extractor.fetch_meta(name)
        except StorageError:
            raise
        except Exception as e:
            logger.warning(f"Metadata fetch failed for {name}: {type(e).__name__}: {e}")
        return None

    def _record_links(self, name: str, links: List[str]) -> int:
        """Enqueue discovered names and link them from name. Returns new edges."""
        from_id = self.store.upsert_node(name)
        added = 0
        seen = set()
        for link in links:
            target = normalize_name(link)
            if not target or target in seen:
                continue
            seen.add(target)
            to_id = self.frontier.enqueue_if_absent(target)
            if self.store.add_edge(from_id, to_id):
                added += 1
        return added

    # -- crawl -------------------------------------------------------------

    def process(self, name: str, extractor: Extractor) -> CrawlReport:
        """Crawl one node: metadata, discovered links, then the visited mark."""
        report = CrawlReport()
        result = self._fetch(extractor, name)
        if result is None:
            report.failed += 1
            result = PageResult()
        elif result.meta is None:
            logger.warning(f"No metadata for {name}, left for healing")
            report.failed += 1

        self.tracker.apply(name, result.meta)
        report.edges_added = self._record_links(name, result.links or [])
        self.frontier.mark_visited(name)
        report.processed = 1
        logger.info(f"Created {report.edges_added} edges from {name}")
        return report

    def run(self, extractor: Extractor, max_iterations: Optional[int] = None) -> CrawlReport:
        """
        Drain the frontier (or stop after max_iterations items).

        Safe to call again after a crash: an item pulled but never marked
        visited is simply processed again.
        """
        limit = max_iterations if max_iterations is not None else self.config.max_iterations
        report = CrawlReport()

        for index, name in enumerate(self.frontier.iterate(limit)):
            self._pause(index)
            logger.info(f"{index + 1}/{self.frontier.count_unvisited()}: {name}")
            item = self.process(name, extractor)
            report.processed += item.processed
            report.failed += item.failed
            report.edges_added += item.edges_added

        report.remaining = self.frontier.count_unvisited()
        logger.info(f"Crawl finished: {report.summary()}")
        return report

    # -- healing -----------------------------------------------------------

    def heal(self, extractor: Extractor, max_iterations: Optional[int] = None) -> CrawlReport:
        """Retry metadata for every incomplete node. Never touches visited or edges."""
        limit = max_iterations if max_iterations is not None else self.config.max_iterations
        names = self.tracker.list_incomplete()
        if limit is not None:
            names = names[:limit]
        logger.info(f"Found {len(names)} nodes with missing metadata")

        report = CrawlReport()
        for index, name in enumerate(names):
            self._pause(index)
            meta = self._fetch_meta(extractor, name)
            report.processed += 1
            if not self.tracker.apply(name, meta):
                report.failed += 1
                logger.info(f"[{index + 1}/{len(names)}] {name}: failed")
            else:
                logger.info(f"[{index + 1}/{len(names)}] {name}: {meta.subscribers} subscribers")

        report.remaining = self.tracker.count_incomplete()
        logger.info(f"Healing finished: {report.summary()}")
        return report

    # -- seeding -----------------------------------------------------------

    def seed(self, extractor: Extractor, owner: Optional[str] = None) -> List[int]:
        """
        Seed the frontier from an owner's curated collections.

        Records every (group, member) membership and enqueues the
        deduplicated member names. Returns their ids in discovery order.
        """
        owner = owner or self.config.owner
        if not owner:
            raise ValueError("seed() needs an owner (argument or CrawlConfig.owner)")

        try:
            groups = extractor.list_groups(owner)
        except NotImplementedError as e:
            raise ValueError(
                f"{type(extractor).__name__} does not support group listing, cannot seed"
            ) from e
        logger.info(f"Found {len(groups)} groups for {owner}")

        members: List[str] = []
        seen = set()
        for group in groups:
            try:
                names = extractor.group_members(owner, group)
            except ExtractionError as e:
                logger.warning(f"Could not list group {group}: {e}")
                continue
            for member in names:
                self.store.set_membership(group, member)
                normalized = normalize_name(member)
                if normalized and normalized not in seen:
                    seen.add(normalized)
                    members.append(normalized)
            logger.info(f"Found {len(names)} members in {group}")

        logger.info(f"Total members found: {len(members)}")
        return self.frontier.enqueue_many(members)
