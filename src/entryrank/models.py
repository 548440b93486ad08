"""Data models for entries, their content history and the comparison log."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from entryrank.errors import EmptyHistoryError


@dataclass(frozen=True)
class ContentVersion:
    """One snapshot of an entry's bytes. ``content is None`` marks a tombstone."""

    content: bytes | None
    observed_at: int                   # unix seconds: file mtime, or "now" for tombstones

    @property
    def is_tombstone(self) -> bool:
        return self.content is None


@dataclass
class Entry:
    """A tracked file, keyed by its path relative to the entries dir."""

    path: str
    versions: list[ContentVersion] = field(default_factory=list)

    @property
    def latest(self) -> ContentVersion:
        if not self.versions:
            raise EmptyHistoryError(self.path)
        return self.versions[-1]

    @property
    def is_deleted(self) -> bool:
        return self.latest.is_tombstone

    @property
    def is_live(self) -> bool:
        return not self.is_deleted

    def text(self) -> str:
        """Latest content decoded as UTF-8 ("" for a tombstone)."""
        content = self.latest.content
        if content is None:
            return ""
        return content.decode("utf-8", errors="replace")

    def __str__(self) -> str:
        if self.is_deleted:
            return f"{self.path} (deleted)"
        lines = self.text().splitlines()
        first = lines[0] if lines else ""
        return f"{first} ({self.path})"


class Outcome(Enum):
    """Result from the first participant's point of view."""

    WIN = 1.0
    DRAW = 0.5
    LOSS = 0.0

    @classmethod
    def from_magnitude(cls, magnitude: int) -> Outcome:
        if magnitude > 0:
            return cls.WIN
        if magnitude < 0:
            return cls.LOSS
        return cls.DRAW

    @property
    def score(self) -> float:
        return self.value

    def flipped(self) -> Outcome:
        if self is Outcome.WIN:
            return Outcome.LOSS
        if self is Outcome.LOSS:
            return Outcome.WIN
        return Outcome.DRAW


@dataclass(frozen=True)
class Comparison:
    """One pairwise judgment. ``seq`` is the insertion order in the log."""

    winner: str
    loser: str
    magnitude: int
    at: int
    seq: int = 0

    @property
    def outcome(self) -> Outcome:
        return Outcome.from_magnitude(self.magnitude)


@dataclass(frozen=True)
class Rating:
    """Skill (TrueSkill mu) and deviation (sigma) on the public 1500-centred scale."""

    rating: float
    deviation: float
    matches: int = 0
    last_at: int | None = None         # timestamp of the last counted comparison


@dataclass(frozen=True)
class RankedEntry:
    """An entry paired with its derived rating."""

    entry: Entry
    rating: Rating

    @property
    def path(self) -> str:
        return self.entry.path

    @property
    def is_deleted(self) -> bool:
        return self.entry.is_deleted

    def __str__(self) -> str:
        return str(self.entry)
