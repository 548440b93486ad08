"""Exception types.

Convention:
- ``TombstoneConflictError``: input conflicts that need an operator decision.
- ``InvariantError`` subclasses: invalid requests, rejected before anything is written.
- ``NoSuchItemError``: a rank position outside the current standings.
- ``OSError`` / ``sqlite3.Error`` are never wrapped; they propagate as-is.
"""

from __future__ import annotations


class EntryRankError(Exception):
    """Base class for all entryrank errors."""


class ConfigError(EntryRankError):
    """Raised for an invalid .entryrank.toml value."""


class TombstoneConflictError(EntryRankError):
    """A file exists on disk at a path whose history ends in a tombstone."""

    def __init__(self, paths: list[str]) -> None:
        self.paths = list(paths)
        listing = ", ".join(self.paths)
        super().__init__(
            f"file(s) already exist in history as deleted: {listing}\n"
            "Remove them or rerun sync with --delete-already-deleted"
        )


class InvariantError(EntryRankError):
    """A request that would break a store invariant."""


class SelfComparisonError(InvariantError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"cannot compare an entry with itself: {path}")


class EmptyHistoryError(InvariantError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"entry has no content versions: {path}")


class UnknownEntryError(InvariantError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"unknown entry: {path}")


class NoSuchItemError(EntryRankError):
    """Requested rank position is outside the standings."""

    def __init__(self, number: int, size: int) -> None:
        self.number = number
        self.size = size
        super().__init__(f"no item {number} found ({size} ranked)")


class NotEnoughEntriesError(EntryRankError):
    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f"need at least 2 live entries to compare, have {count}")
