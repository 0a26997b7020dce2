"""
Pytest Configuration and Fixtures
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from commgraph.crawler import Extractor  # noqa: E402
from commgraph.errors import ExtractionError  # noqa: E402
from commgraph.graph_store import GraphStore  # noqa: E402
from commgraph.types import NodeData, NodeMeta, PageResult  # noqa: E402


@pytest.fixture
def tmp_db(tmp_path):
    """Create a temporary SQLite DB path."""
    return str(tmp_path / "test_graph.db")


@pytest.fixture
def store():
    """Fresh in-memory GraphStore."""
    s = GraphStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def file_store(tmp_db):
    """GraphStore backed by a file (WAL mode)."""
    s = GraphStore(tmp_db)
    yield s
    s.close()


class FakeExtractor(Extractor):
    """
    Deterministic extractor backed by dicts.

    pages:    name -> list of linked names
    meta:     name -> NodeMeta (missing = None metadata)
    failing:  names whose fetch raises ExtractionError
    groups:   group name -> member names (owner is ignored)
    """

    def __init__(
        self,
        pages: Optional[Dict[str, List[str]]] = None,
        meta: Optional[Dict[str, NodeMeta]] = None,
        failing: Optional[set] = None,
        groups: Optional[Dict[str, List[str]]] = None,
    ):
        self.pages = pages or {}
        self.meta = meta or {}
        self.failing = failing or set()
        self.groups = groups or {}
        self.calls: List[str] = []

    def fetch(self, name: str) -> PageResult:
        self.calls.append(name)
        if name in self.failing:
            raise ExtractionError(f"cannot fetch {name}")
        return PageResult(links=list(self.pages.get(name, [])), meta=self.meta.get(name))

    def list_groups(self, owner: str) -> List[str]:
        return list(self.groups)

    def group_members(self, owner: str, group: str) -> List[str]:
        return list(self.groups[group])


@pytest.fixture
def fake_extractor_cls():
    return FakeExtractor


def make_nodes(edges, names=None, isolated=()) -> List[NodeData]:
    """
    Build a snapshot from name pairs.

    Ids are assigned in first-appearance order starting at 1.
    """
    ids: Dict[str, int] = {}
    order = list(names or [])
    for a, b in edges:
        order.extend([a, b])
    order.extend(isolated)
    for name in order:
        ids.setdefault(name, len(ids) + 1)
    links: Dict[str, List[int]] = {name: [] for name in ids}
    for a, b in edges:
        links[a].append(ids[b])
    return [
        NodeData(id=ids[name], name=name, sensitive=0, subscribers=1, links_to=links[name])
        for name in ids
    ]


@pytest.fixture
def nodes_from_edges():
    return make_nodes
