"""DB connection and schema: a local SQLite file is the content store."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from entryrank.config import EntryRankConfig


def get_conn(cfg: EntryRankConfig) -> sqlite3.Connection:
    """Return a connection to cfg.db_path with the schema in place."""
    return cfg_from_path(cfg.db_path)


def cfg_from_path(db_path: Path) -> sqlite3.Connection:
    """Open a local SQLite connection directly from a file path.

    Enables WAL mode and foreign key enforcement, and creates the schema.
    A 0-byte file is reported instead of being silently reinitialised.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    if db_path.exists() and db_path.stat().st_size == 0:
        msg = f"SQLite DB is empty (0 bytes): {db_path}\nFix: rm {db_path}* and rerun sync"
        raise sqlite3.OperationalError(msg)
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        ensure_schema(conn)
    except sqlite3.Error:
        conn.close()
        raise
    return conn


def ensure_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS entries (
            path TEXT PRIMARY KEY
        );

        -- Append-only. content IS NULL is a tombstone.
        CREATE TABLE IF NOT EXISTS content_versions (
            id          INTEGER PRIMARY KEY,
            path        TEXT NOT NULL REFERENCES entries(path),
            content     BLOB,
            observed_at INTEGER NOT NULL
        );
        CREATE INDEX IF NOT EXISTS content_versions_path_idx
            ON content_versions(path, observed_at);

        -- Append-only. id gives the replay tie-break for equal timestamps.
        CREATE TABLE IF NOT EXISTS comparisons (
            id          INTEGER PRIMARY KEY,
            winner_path TEXT NOT NULL REFERENCES entries(path),
            loser_path  TEXT NOT NULL REFERENCES entries(path),
            magnitude   INTEGER NOT NULL,
            at          INTEGER NOT NULL,
            CHECK (winner_path != loser_path)
        );
        CREATE INDEX IF NOT EXISTS comparisons_winner_idx ON comparisons(winner_path);
        CREATE INDEX IF NOT EXISTS comparisons_loser_idx ON comparisons(loser_path);
    """)
    conn.commit()
