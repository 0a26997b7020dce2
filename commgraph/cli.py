"""
Community Graph CLI — analysis commands over a crawled store

Commands:
    commgraph stats
    commgraph export -o graph-data.json
    commgraph communities [--snapshot graph-data.json] [--json] [--min-size 1]
    commgraph anonymize --min-size 10 -o shared.json
    commgraph anonymize --hub apple --seed 7 --redact-names -o shared.json

Usage:
    python -m commgraph.cli [--config commgraph.yaml] [--db graph.db] <command> [args]

Crawling itself needs an Extractor implementation and is driven from code
(see commgraph.crawler.CrawlRunner).

Author: commgraph maintainers | 2026-10-18
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import List, Optional

from commgraph.anonymize import anonymize, select_by_hub, select_by_size
from commgraph.communities import detect_communities, format_communities
from commgraph.config import GraphConfig, load_config
from commgraph.errors import CommunityNotFound, SnapshotFormatError, StorageError
from commgraph.graph_store import GraphStore
from commgraph.snapshot import SnapshotExporter, dumps, load_json
from commgraph.types import NodeData

logger = logging.getLogger(__name__)


def _open_store(config: GraphConfig) -> GraphStore:
    return GraphStore.from_config(config.store)


def _load_nodes(args: argparse.Namespace) -> List[NodeData]:
    """Snapshot from --snapshot if given, else a fresh export of the store."""
    if args.snapshot:
        return load_json(args.snapshot)
    with _open_store(args.config) as store:
        return SnapshotExporter(store).export()


def _emit(text: str, output: Optional[str]) -> None:
    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        print(f"Written: {path}", file=sys.stderr)
    else:
        sys.stdout.write(text)


def cmd_stats(args: argparse.Namespace) -> None:
    with _open_store(args.config) as store:
        stats = store.stats()
    print(json.dumps(stats, indent=2))


def cmd_export(args: argparse.Namespace) -> None:
    with _open_store(args.config) as store:
        nodes = SnapshotExporter(store).export()
    _emit(dumps(nodes), args.output)


def cmd_communities(args: argparse.Namespace) -> None:
    communities = detect_communities(_load_nodes(args))
    if args.min_size:
        communities = [c for c in communities if c.size > args.min_size]
    if args.json:
        print(json.dumps([c.to_dict() for c in communities], indent=2, ensure_ascii=False))
    else:
        print(format_communities(communities))


def cmd_anonymize(args: argparse.Namespace) -> None:
    analysis = args.config.analysis
    nodes = _load_nodes(args)
    communities = detect_communities(nodes)

    if args.hub:
        retained = select_by_hub(communities, args.hub)
    else:
        min_size = args.min_size if args.min_size is not None else analysis.min_component_size
        retained = select_by_size(communities, min_size)

    seed = args.seed if args.seed is not None else analysis.seed
    result = anonymize(
        nodes,
        retained,
        rng=random.Random(seed),
        redact_names=args.redact_names or analysis.redact_names,
    )
    print(f"Filtered from {len(nodes)} to {result.size} nodes", file=sys.stderr)
    _emit(dumps(result.nodes), args.output)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="commgraph",
        description="Community cross-reference graph: export, communities, anonymization",
    )
    parser.add_argument("--config", "-c", default=None,
                        help="YAML config path (default: ./commgraph.yaml if present)")
    parser.add_argument("--db", default=None,
                        help="Path to SQLite database (overrides config)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose logging")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # stats
    p_stats = sub.add_parser("stats", help="Store statistics")
    p_stats.set_defaults(func=cmd_stats)

    # export
    p_export = sub.add_parser("export", help="Export the snapshot as JSON")
    p_export.add_argument("--output", "-o", help="Output file (stdout if omitted)")
    p_export.set_defaults(func=cmd_export)

    # communities
    p_comm = sub.add_parser("communities", help="List communities and their hubs")
    p_comm.add_argument("--snapshot", help="Read a snapshot file instead of the DB")
    p_comm.add_argument("--min-size", type=int, default=0,
                        help="Only list communities larger than this")
    p_comm.add_argument("--json", action="store_true", help="JSON output")
    p_comm.set_defaults(func=cmd_communities)

    # anonymize
    p_anon = sub.add_parser("anonymize", help="Write a redacted, shareable snapshot")
    p_anon.add_argument("--snapshot", help="Read a snapshot file instead of the DB")
    select = p_anon.add_mutually_exclusive_group()
    select.add_argument("--min-size", type=int, default=None,
                        help="Keep communities larger than this (default: config)")
    select.add_argument("--hub", help="Keep only the community with this hub")
    p_anon.add_argument("--seed", type=int, default=None, help="Shuffle seed")
    p_anon.add_argument("--redact-names", action="store_true",
                        help="Replace names by node-<id>")
    p_anon.add_argument("--output", "-o", help="Output file (stdout if omitted)")
    p_anon.set_defaults(func=cmd_anonymize)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = load_config(Path(args.config) if args.config else None)
    if args.db:
        config.store.db_path = args.db
    args.config = config

    level = logging.DEBUG if args.verbose else getattr(logging, config.logging.level, logging.INFO)
    logging.basicConfig(level=level, format=config.logging.format)

    try:
        args.func(args)
    except CommunityNotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (SnapshotFormatError, StorageError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
