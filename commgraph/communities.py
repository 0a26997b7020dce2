"""
Community Detector — connected components and hubs over a snapshot

Cross-links are not reliably reciprocal, so component membership uses the
undirected closure of the edge set. Popularity (total degree = in + out) is
counted on the original directed edges and picks each component's hub:
highest total degree, ties broken by the alphabetically first name.

Traversal is an iterative DFS with an explicit stack; large components do
not grow the call stack.

Author: commgraph maintainers | 2026-10-18
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

from commgraph.errors import CommunityNotFound, SnapshotFormatError
from commgraph.graph_store import normalize_name
from commgraph.types import Community, NodeData

logger = logging.getLogger(__name__)


@dataclass
class DegreeStats:
    in_degree: int = 0
    out_degree: int = 0

    @property
    def total(self) -> int:
        return self.in_degree + self.out_degree


def check_unique_ids(nodes: Sequence[NodeData]) -> None:
    """Raise SnapshotFormatError if two records share an id."""
    seen = set()
    for node in nodes:
        if node.id in seen:
            raise SnapshotFormatError(f"Duplicate node id {node.id} in snapshot")
        seen.add(node.id)


def _valid_targets(node: NodeData, ids) -> List[int]:
    """Distinct outgoing targets present in the snapshot, self-loops excluded."""
    return [t for t in dict.fromkeys(node.links_to) if t != node.id and t in ids]


def compute_degrees(nodes: Sequence[NodeData]) -> Dict[int, DegreeStats]:
    """In/out/total degree per node id over the directed edges of the snapshot."""
    stats = {node.id: DegreeStats() for node in nodes}
    for node in nodes:
        for target in _valid_targets(node, stats):
            stats[node.id].out_degree += 1
            stats[target].in_degree += 1
    return stats


def connected_components(nodes: Sequence[NodeData]) -> List[List[int]]:
    """
    Components of the undirected closure, as lists of node ids.

    Start nodes are taken in snapshot order, so component order is
    first-discovery order. Singletons form their own component.
    """
    # dicts keep neighbor order deterministic and deduplicated
    adjacency: Dict[int, Dict[int, None]] = {node.id: {} for node in nodes}
    for node in nodes:
        for target in _valid_targets(node, adjacency):
            adjacency[node.id][target] = None
            adjacency[target][node.id] = None

    component_of: Dict[int, int] = {}
    components: List[List[int]] = []
    for node in nodes:
        if node.id in component_of:
            continue
        component_id = len(components)
        members: List[int] = []
        stack = [node.id]
        component_of[node.id] = component_id
        while stack:
            current = stack.pop()
            members.append(current)
            for neighbor in adjacency[current]:
                if neighbor not in component_of:
                    component_of[neighbor] = component_id
                    stack.append(neighbor)
        components.append(members)
    return components


def detect_communities(nodes: Sequence[NodeData]) -> List[Community]:
    """
    Partition a snapshot into communities, largest first.

    Equal-size communities keep their discovery order. Members are listed
    alphabetically; `member_ids` follows the same order.
    """
    check_unique_ids(nodes)
    names = {node.id: node.name for node in nodes}
    degrees = compute_degrees(nodes)

    communities: List[Community] = []
    for members in connected_components(nodes):
        hub_id = min(members, key=lambda i: (-degrees[i].total, names[i]))
        ordered = sorted(members, key=lambda i: names[i])
        communities.append(Community(
            hub=names[hub_id],
            members=[names[i] for i in ordered],
            member_ids=ordered,
        ))

    communities.sort(key=lambda c: c.size, reverse=True)
    logger.debug(f"Detected {len(communities)} communities over {len(nodes)} nodes")
    return communities


def find_community(communities: Sequence[Community], hub: str) -> Community:
    """The community whose hub is `hub`; CommunityNotFound otherwise."""
    wanted = normalize_name(hub)
    for community in communities:
        if community.hub == wanted:
            return community
    raise CommunityNotFound(hub)


def format_communities(communities: Sequence[Community]) -> str:
    """Plain-text listing: one block per community, hub first, then members."""
    blocks = []
    for index, community in enumerate(communities):
        if community.size == 0:
            continue
        lines = [f"- Group {index + 1}: {community.hub} ({community.size} members)"]
        lines.append(f"  - {community.hub}")
        lines.extend(f"  - {m}" for m in community.members if m != community.hub)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
