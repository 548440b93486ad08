"""Ranked listing of entries, derived from the store on every call."""

from __future__ import annotations

from typing import TYPE_CHECKING

from entryrank.errors import NoSuchItemError
from entryrank.rating import compute_ratings, rank
from entryrank.store import load_comparisons, load_entries

if TYPE_CHECKING:
    import sqlite3
    from collections.abc import Sequence

    from entryrank.config import RatingConfig
    from entryrank.models import RankedEntry


def load_standings(
    conn: sqlite3.Connection,
    config: RatingConfig | None = None,
    *,
    include_deleted: bool = False,
) -> list[RankedEntry]:
    """Entries sorted ascending by rating. Deleted ones only if asked, with the prior."""
    entries = load_entries(conn)
    ratings = compute_ratings(entries.values(), load_comparisons(conn), config)
    shown = [e for e in entries.values() if include_deleted or e.is_live]
    return rank(shown, ratings, config)


def entry_at(standings: Sequence[RankedEntry], number: int) -> RankedEntry:
    """1-based position counted from the top: 1 is the highest-rated entry."""
    if number < 1 or number > len(standings):
        raise NoSuchItemError(number, len(standings))
    return standings[len(standings) - number]


def numbered(standings: Sequence[RankedEntry]) -> list[tuple[int, RankedEntry]]:
    """(position, entry) pairs in standings order, so the top entry (1) comes last."""
    size = len(standings)
    return [(size - i, r) for i, r in enumerate(standings)]
