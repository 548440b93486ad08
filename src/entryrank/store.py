"""Read and write entries, content versions and comparisons.

Every write helper runs in its own transaction (``with conn:``), so a pass
interrupted between two writes leaves all earlier writes committed. Nothing
here ever updates or deletes a row: history is append-only.

    entries = load_entries(conn)
    create_entry(conn, "notes/a.txt", b"hello", observed_at=1700000000)
    append_version(conn, "notes/a.txt", b"hello again", observed_at=1700000100)
    append_version(conn, "notes/a.txt", None, observed_at=1700000200)  # tombstone
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from entryrank.errors import EmptyHistoryError, UnknownEntryError
from entryrank.models import Comparison, ContentVersion, Entry

if TYPE_CHECKING:
    import sqlite3

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


def load_entries(conn: sqlite3.Connection, *, include_deleted: bool = True) -> dict[str, Entry]:
    """Load every entry with its full version history, keyed by path."""
    entries = {path: Entry(path=path) for (path,) in conn.execute("SELECT path FROM entries")}

    rows = conn.execute(
        "SELECT path, content, observed_at FROM content_versions ORDER BY path, observed_at, id"
    )
    for path, content, observed_at in rows:
        entries[path].versions.append(
            ContentVersion(content=bytes(content) if content is not None else None, observed_at=observed_at)
        )

    for entry in entries.values():
        if not entry.versions:
            raise EmptyHistoryError(entry.path)

    if include_deleted:
        return entries
    return {path: e for path, e in entries.items() if e.is_live}


def get_entry(conn: sqlite3.Connection, path: str) -> Entry:
    """Load one entry. Raises UnknownEntryError if the path was never seen."""
    if not entry_exists(conn, path):
        raise UnknownEntryError(path)
    versions = [
        ContentVersion(content=bytes(c) if c is not None else None, observed_at=at)
        for c, at in conn.execute(
            "SELECT content, observed_at FROM content_versions WHERE path = ? ORDER BY observed_at, id",
            (path,),
        )
    ]
    if not versions:
        raise EmptyHistoryError(path)
    return Entry(path=path, versions=versions)


def entry_exists(conn: sqlite3.Connection, path: str) -> bool:
    row = conn.execute("SELECT 1 FROM entries WHERE path = ?", (path,)).fetchone()
    return row is not None


def load_comparisons(conn: sqlite3.Connection) -> list[Comparison]:
    """Every comparison in replay order: timestamp, then insertion order."""
    return [
        Comparison(winner=winner, loser=loser, magnitude=magnitude, at=at, seq=seq)
        for seq, winner, loser, magnitude, at in conn.execute(
            "SELECT id, winner_path, loser_path, magnitude, at FROM comparisons ORDER BY at, id"
        )
    ]


def count_versions(conn: sqlite3.Connection, path: str | None = None) -> int:
    if path is None:
        row = conn.execute("SELECT COUNT(*) FROM content_versions").fetchone()
    else:
        row = conn.execute("SELECT COUNT(*) FROM content_versions WHERE path = ?", (path,)).fetchone()
    return int(row[0])


# ---------------------------------------------------------------------------
# Write (append-only)
# ---------------------------------------------------------------------------


def _last_observed_at(conn: sqlite3.Connection, path: str) -> int | None:
    row = conn.execute(
        "SELECT MAX(observed_at) FROM content_versions WHERE path = ?", (path,)
    ).fetchone()
    return row[0] if row else None


def create_entry(conn: sqlite3.Connection, path: str, content: bytes, *, observed_at: int) -> None:
    """Insert a new entry together with its first version, atomically."""
    with conn:
        conn.execute("INSERT INTO entries(path) VALUES (?)", (path,))
        conn.execute(
            "INSERT INTO content_versions(path, content, observed_at) VALUES (?, ?, ?)",
            (path, content, observed_at),
        )
    logger.debug("created entry %s (%d bytes)", path, len(content))


def append_version(
    conn: sqlite3.Connection,
    path: str,
    content: bytes | None,
    *,
    observed_at: int,
) -> int:
    """Append a version (None = tombstone). Returns the timestamp actually stored.

    The timestamp is clamped to the previous version's so ordering by
    observed_at always matches append order.
    """
    with conn:
        last = _last_observed_at(conn, path)
        if last is None:
            raise UnknownEntryError(path)
        if observed_at < last:
            logger.debug("clamping %s version time %d -> %d", path, observed_at, last)
            observed_at = last
        conn.execute(
            "INSERT INTO content_versions(path, content, observed_at) VALUES (?, ?, ?)",
            (path, content, observed_at),
        )
    return observed_at


def append_comparison(
    conn: sqlite3.Connection,
    winner: str,
    loser: str,
    *,
    magnitude: int,
    at: int,
) -> int:
    """Insert one comparison row. Returns its sequence number."""
    with conn:
        cur = conn.execute(
            "INSERT INTO comparisons(winner_path, loser_path, magnitude, at) VALUES (?, ?, ?, ?)",
            (winner, loser, magnitude, at),
        )
    return int(cur.lastrowid or 0)
