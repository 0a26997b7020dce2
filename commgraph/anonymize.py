"""
Anonymizer — redacted, shareable copy of a snapshot

Steps:
    1. select   - ids of large communities, or of one named community
    2. filter   - drop nodes outside the selection and links leaving it
    3. remap    - uniform random bijection retained ids -> [0, k)
    4. resort   - ascending by new id (hides the original insertion order)

Original ids have holes after filtering; the dense new range does not reveal
how many nodes were dropped. Links leaving the selection are omitted, never
rewritten, so no emitted edge can carry an original id. Structure of the
retained subgraph is unchanged; only labels move.

Author: commgraph maintainers | 2026-10-18
"""

from __future__ import annotations

import logging
import random
from typing import Dict, Iterable, List, Optional, Sequence, Set

from commgraph.communities import check_unique_ids, find_community
from commgraph.types import AnonymizedSnapshot, Community, NodeData

logger = logging.getLogger(__name__)


def select_by_size(communities: Iterable[Community], min_size: int) -> Set[int]:
    """Ids of every member of communities strictly larger than min_size."""
    return {
        member_id
        for community in communities
        if community.size > min_size
        for member_id in community.member_ids
    }


def select_by_hub(communities: Sequence[Community], hub: str) -> Set[int]:
    """Ids of the community labeled `hub`. Raises CommunityNotFound if absent."""
    return set(find_community(communities, hub).member_ids)


def build_id_map(ids: Iterable[int], rng: Optional[random.Random] = None) -> Dict[int, int]:
    """
    Uniform random bijection from `ids` onto range(len(ids)).

    The id list is shuffled (Fisher-Yates, via Random.shuffle) and paired
    positionally with the dense range.
    """
    rng = rng or random.Random()
    shuffled = sorted(set(ids))
    rng.shuffle(shuffled)
    return {original: new for new, original in enumerate(shuffled)}


def anonymize(
    nodes: Sequence[NodeData],
    retained_ids: Iterable[int],
    rng: Optional[random.Random] = None,
    redact_names: bool = False,
) -> AnonymizedSnapshot:
    """
    Filter `nodes` to `retained_ids` and relabel them.

    Args:
        nodes: snapshot records
        retained_ids: original ids to keep; each must exist in `nodes`
        rng: random source (pass a seeded Random for reproducible output)
        redact_names: replace names by "node-<new id>"
    """
    check_unique_ids(nodes)
    retained = set(retained_ids)
    known = {node.id for node in nodes}
    unknown = retained - known
    if unknown:
        raise ValueError(f"Retained ids not in snapshot: {sorted(unknown)[:10]}")

    kept = [node for node in nodes if node.id in retained]
    id_map = build_id_map((node.id for node in kept), rng)

    relabeled: List[NodeData] = []
    for node in kept:
        new_id = id_map[node.id]
        relabeled.append(node.model_copy(update={
            "id": new_id,
            "name": f"node-{new_id}" if redact_names else node.name,
            "links_to": [id_map[t] for t in node.links_to if t in id_map],
        }))
    relabeled.sort(key=lambda n: n.id)

    logger.info(f"Filtered from {len(nodes)} to {len(relabeled)} nodes")
    return AnonymizedSnapshot(nodes=relabeled, id_map=id_map)
