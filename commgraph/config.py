"""
Community Graph Configuration
=============================

Nested dataclasses for the store, the crawl loop, the analysis passes and
logging. Loaded from commgraph.yaml with environment variable overrides.
Configuration is always passed explicitly into constructors; nothing here
is read implicitly by the core classes.

Author: commgraph maintainers | 2026-10-18
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Data Classes
# =============================================================================

@dataclass
class StoreConfig:
    """SQLite store configuration."""
    db_path: str = "commgraph.db"  # relative to cwd or absolute; ":memory:" for tests
    wal_mode: bool = True
    busy_timeout_ms: int = 5000   # how long to wait on another process's lock


@dataclass
class CrawlConfig:
    """Frontier loop configuration."""
    delay_seconds: float = 2.0            # politeness delay between items
    max_iterations: Optional[int] = None  # None = drain the frontier
    owner: Optional[str] = None           # collection owner used for seeding


@dataclass
class AnalysisConfig:
    """Community detection and anonymization configuration."""
    min_component_size: int = 10   # keep components strictly larger than this
    seed: Optional[int] = None     # None = non-reproducible shuffle
    redact_names: bool = False
    snapshot_path: str = "graph-data.json"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class GraphConfig:
    """Root configuration container."""
    store: StoreConfig = field(default_factory=StoreConfig)
    crawl: CrawlConfig = field(default_factory=CrawlConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> GraphConfig:
        """Build config from a nested dict (e.g. YAML/JSON)."""
        return cls(
            store=StoreConfig(**(d.get("store") or {})),
            crawl=CrawlConfig(**(d.get("crawl") or {})),
            analysis=AnalysisConfig(**(d.get("analysis") or {})),
            logging=LoggingConfig(**(d.get("logging") or {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# Configuration Loader
# =============================================================================

CONFIG_FILENAME = "commgraph.yaml"


def find_config_file(start_path: Optional[Path] = None) -> Optional[Path]:
    """
    Locate commgraph.yaml.

    Search order:
    1. start_path / commgraph.yaml (default: cwd)
    2. ~/.config/commgraph/commgraph.yaml
    """
    start = Path(start_path) if start_path else Path.cwd()
    candidates = [
        start / CONFIG_FILENAME,
        Path.home() / ".config" / "commgraph" / CONFIG_FILENAME,
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def load_config(config_path: Optional[Path] = None) -> GraphConfig:
    """
    Load configuration from YAML with environment variable overrides.

    Environment variables override config file values:
    - COMMGRAPH_DATABASE_FILE   -> store.db_path
    - COMMGRAPH_DELAY           -> crawl.delay_seconds
    - COMMGRAPH_MAX_ITERATIONS  -> crawl.max_iterations
    - COMMGRAPH_GRAPH_DATA_FILE -> analysis.snapshot_path
    - COMMGRAPH_LOG_LEVEL       -> logging.level

    An explicit config_path that does not exist is an error; a missing
    auto-detected file just means defaults.
    """
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_file()

    if config_path is not None:
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        config = GraphConfig.from_dict(data)
    else:
        logger.debug("No config file found, using defaults")
        config = GraphConfig()

    config = _apply_env_overrides(config)
    _validate_config(config)
    return config


def _apply_env_overrides(config: GraphConfig) -> GraphConfig:
    """Apply environment variable overrides to config."""
    if os.environ.get("COMMGRAPH_DATABASE_FILE"):
        config.store.db_path = os.environ["COMMGRAPH_DATABASE_FILE"]

    if os.environ.get("COMMGRAPH_DELAY"):
        config.crawl.delay_seconds = float(os.environ["COMMGRAPH_DELAY"])

    if os.environ.get("COMMGRAPH_MAX_ITERATIONS"):
        config.crawl.max_iterations = int(os.environ["COMMGRAPH_MAX_ITERATIONS"])

    if os.environ.get("COMMGRAPH_GRAPH_DATA_FILE"):
        config.analysis.snapshot_path = os.environ["COMMGRAPH_GRAPH_DATA_FILE"]

    if os.environ.get("COMMGRAPH_LOG_LEVEL"):
        config.logging.level = os.environ["COMMGRAPH_LOG_LEVEL"].upper()

    return config


def _validate_config(config: GraphConfig) -> None:
    """Validate configuration, logging a warning for every repaired value."""
    if config.crawl.delay_seconds < 0:
        logger.warning(f"Negative crawl delay {config.crawl.delay_seconds}, using 0")
        config.crawl.delay_seconds = 0.0

    if config.crawl.max_iterations is not None and config.crawl.max_iterations < 0:
        logger.warning("Negative max_iterations, draining the frontier instead")
        config.crawl.max_iterations = None

    if config.analysis.min_component_size < 0:
        logger.warning(
            f"Negative min_component_size {config.analysis.min_component_size}, using 0"
        )
        config.analysis.min_component_size = 0

    if config.store.busy_timeout_ms < 0:
        logger.warning(f"Negative busy_timeout_ms {config.store.busy_timeout_ms}, using 0")
        config.store.busy_timeout_ms = 0

    valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    if config.logging.level.upper() not in valid_levels:
        logger.warning(f"Unknown log level '{config.logging.level}', defaulting to INFO")
        config.logging.level = "INFO"
    else:
        config.logging.level = config.logging.level.upper()


def save_config(config: GraphConfig, path: Path) -> None:
    """Save configuration to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
    logger.info(f"Config saved to: {path}")
