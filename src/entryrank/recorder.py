"""Append one pairwise judgment to the comparison log."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from entryrank.errors import SelfComparisonError, UnknownEntryError
from entryrank.models import Comparison
from entryrank.store import append_comparison, entry_exists

if TYPE_CHECKING:
    import sqlite3

logger = logging.getLogger(__name__)


def record(
    conn: sqlite3.Connection,
    winner: str,
    loser: str,
    *,
    magnitude: int = 1,
    at: int | None = None,
) -> Comparison:
    """Record "winner beats loser". Validates before anything is written."""
    if winner == loser:
        raise SelfComparisonError(winner)
    for path in (winner, loser):
        if not entry_exists(conn, path):
            raise UnknownEntryError(path)

    ts = int(time.time()) if at is None else at
    seq = append_comparison(conn, winner, loser, magnitude=magnitude, at=ts)
    logger.info("recorded %s > %s (magnitude %d)", winner, loser, magnitude)
    return Comparison(winner=winner, loser=loser, magnitude=magnitude, at=ts, seq=seq)
