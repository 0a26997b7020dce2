"""
Snapshot Exporter — flatten the store into an order-stable node list

Nodes are emitted ascending by id with their outgoing targets ascending, so
two exports of an unchanged store serialize to identical bytes. Missing
metadata stays null.

Author: commgraph maintainers | 2026-10-18
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Union

from pydantic import TypeAdapter, ValidationError

from commgraph.communities import check_unique_ids
from commgraph.errors import SnapshotFormatError
from commgraph.graph_store import GraphStore
from commgraph.types import NodeData

logger = logging.getLogger(__name__)

_SNAPSHOT_ADAPTER = TypeAdapter(List[NodeData])


class SnapshotExporter:
    """Builds NodeData records from a GraphStore."""

    def __init__(self, store: GraphStore):
        self._store = store

    def export(self) -> List[NodeData]:
        links: Dict[int, List[int]] = defaultdict(list)
        for from_id, to_id in self._store.edges():
            links[from_id].append(to_id)

        nodes = [
            NodeData(
                id=row["id"],
                name=row["name"],
                sensitive=row["sensitive"],
                subscribers=row["subscribers"],
                links_to=links.get(row["id"], []),
            )
            for row in self._store.nodes()
        ]
        logger.info(f"Exported snapshot: {len(nodes)} nodes, {sum(map(len, links.values()))} edges")
        return nodes


def dumps(nodes: List[NodeData]) -> str:
    """Serialize to the interchange format (2-space indent, camelCase linksTo)."""
    return json.dumps([n.to_dict() for n in nodes], indent=2, ensure_ascii=False) + "\n"


def write_json(nodes: List[NodeData], path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(nodes), encoding="utf-8")
    logger.info(f"Snapshot written: {path} ({len(nodes)} nodes)")
    return path


def loads(text: str) -> List[NodeData]:
    """Parse and validate interchange JSON."""
    try:
        nodes = _SNAPSHOT_ADAPTER.validate_json(text)
    except ValidationError as e:
        raise SnapshotFormatError(f"Invalid snapshot: {e.error_count()} error(s)\n{e}") from e

    check_unique_ids(nodes)
    return nodes


def load_json(path: Union[str, Path]) -> List[NodeData]:
    path = Path(path)
    return loads(path.read_text(encoding="utf-8"))
