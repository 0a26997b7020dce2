"""
Community Graph Data Model

    Sensitivity        - tri-state sensitivity flag (unknown / safe / flagged)
    NodeMeta           - metadata returned by an extractor for one node
    PageResult         - links + metadata returned by an extractor for one node
    NodeData           - snapshot record (interchange format, validated by pydantic)
    Community          - connected component with its hub
    AnonymizedSnapshot - relabeled, filtered snapshot copy
    CrawlReport        - counters returned by crawl and healing runs

Author: commgraph maintainers | 2026-10-18
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Sensitivity(str, Enum):
    """Sensitivity flag of a node. UNKNOWN maps to NULL in storage."""
    UNKNOWN = "unknown"
    SAFE = "safe"
    FLAGGED = "flagged"

    @classmethod
    def from_flag(cls, value: Any) -> "Sensitivity":
        """Map a stored/raw flag (None, bool, 0/1 or a Sensitivity) to the enum."""
        if isinstance(value, Sensitivity):
            return value
        if value is None:
            return cls.UNKNOWN
        return cls.FLAGGED if bool(value) else cls.SAFE

    def to_flag(self) -> Optional[int]:
        """Storage / snapshot representation: None, 0 or 1."""
        if self is Sensitivity.UNKNOWN:
            return None
        return 1 if self is Sensitivity.FLAGGED else 0


@dataclass
class NodeMeta:
    """Metadata fetched for a node. Both fields are written together."""
    subscribers: int
    sensitive: bool


@dataclass
class PageResult:
    """What an extractor returns for one node name."""
    links: List[str] = field(default_factory=list)
    meta: Optional[NodeMeta] = None


class NodeData(BaseModel):
    """
    One record of the snapshot interchange format:

        {id, name, sensitive: 0|1|null, subscribers: int|null, linksTo: [int]}
    """
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    id: int
    name: str
    sensitive: Optional[int] = Field(default=None, ge=0, le=1)
    subscribers: Optional[int] = None
    links_to: List[int] = Field(default_factory=list, alias="linksTo")

    @property
    def sensitivity(self) -> Sensitivity:
        return Sensitivity.from_flag(self.sensitive)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class Community:
    """A connected component of the undirected closure, labeled by its hub."""
    hub: str
    members: List[str]
    member_ids: List[int]

    @property
    def size(self) -> int:
        return len(self.members)

    def to_dict(self) -> Dict[str, Any]:
        return {"hub": self.hub, "members": list(self.members), "size": self.size}


@dataclass
class AnonymizedSnapshot:
    """
    Filtered snapshot with ids relabeled onto [0, k).

    `id_map` (original id -> new id) is kept for in-process checks only and
    is never serialized.
    """
    nodes: List[NodeData]
    id_map: Dict[int, int] = field(default_factory=dict, repr=False)

    @property
    def size(self) -> int:
        return len(self.nodes)

    def to_list(self) -> List[Dict[str, Any]]:
        return [n.to_dict() for n in self.nodes]


@dataclass
class CrawlReport:
    """Counters for one crawl or healing run."""
    processed: int = 0
    failed: int = 0
    edges_added: int = 0
    remaining: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def summary(self) -> str:
        return (
            f"{self.processed} processed ({self.failed} failed), "
            f"{self.edges_added} edges added, {self.remaining} remaining"
        )
