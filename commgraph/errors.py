"""
Exception types for the community graph.

StorageError is the only fatal condition: it aborts the enclosing batch.
Everything else is either recovered per item (ExtractionError) or surfaced
as an explicit lookup failure (NotFound).

Author: commgraph maintainers | 2026-10-18
"""


class StorageError(Exception):
    """Raised when the underlying database fails (I/O, corruption, lock contention)."""
    pass


class ExtractionError(Exception):
    """Raised by an extractor when a page could not be fetched or parsed."""
    pass


class NotFound(LookupError):
    """Raised when a requested graph object does not exist."""
    pass


class CommunityNotFound(NotFound):
    """Raised when a named community (by hub) is not present in a snapshot."""

    def __init__(self, hub: str):
        super().__init__(f"No community with hub '{hub}'")
        self.hub = hub


class SnapshotFormatError(ValueError):
    """Raised when a snapshot file does not match the interchange format."""
    pass
