"""
commgraph — community cross-reference graph

Incrementally discovers and persists a directed graph of links between
community entities, then derives connected communities (with a hub each)
and a redacted, shareable export.

Architecture:
    types.py        - Data model (NodeData, Community, Sensitivity, ...)
    errors.py       - StorageError, ExtractionError, NotFound, ...
    config.py       - Configuration dataclasses + YAML loader
    graph_store.py  - SQLite store for nodes, edges and group memberships
    frontier.py     - Resumable FIFO queue over unvisited nodes
    enrichment.py   - Nodes still missing metadata (healing pass input)
    crawler.py      - Extractor contract + sequential crawl / heal / seed runs
    snapshot.py     - Order-stable flat export and JSON interchange
    communities.py  - Connected components, degrees, hub selection
    anonymize.py    - Selection, filtering and random id relabeling
    cli.py          - Analysis commands (stats, export, communities, anonymize)

Author: commgraph maintainers | 2026-10-18
"""

from commgraph.errors import (
    CommunityNotFound,
    ExtractionError,
    NotFound,
    SnapshotFormatError,
    StorageError,
)
from commgraph.types import (
    AnonymizedSnapshot,
    Community,
    CrawlReport,
    NodeData,
    NodeMeta,
    PageResult,
    Sensitivity,
)
from commgraph.graph_store import GraphStore, normalize_name
from commgraph.frontier import CrawlFrontier
from commgraph.enrichment import EnrichmentTracker
from commgraph.crawler import CrawlRunner, Extractor
from commgraph.snapshot import SnapshotExporter
from commgraph.communities import detect_communities
from commgraph.anonymize import anonymize

__version__ = "0.1.0"

__all__ = [
    "AnonymizedSnapshot",
    "Community",
    "CommunityNotFound",
    "CrawlFrontier",
    "CrawlReport",
    "CrawlRunner",
    "EnrichmentTracker",
    "Extractor",
    "ExtractionError",
    "GraphStore",
    "NodeData",
    "NodeMeta",
    "NotFound",
    "PageResult",
    "Sensitivity",
    "SnapshotExporter",
    "SnapshotFormatError",
    "StorageError",
    "anonymize",
    "detect_communities",
    "normalize_name",
]
