"""Rank a directory of text entries from pairwise comparisons.

SQLite is the source of truth for history; the directory is the source of
truth for the present:

    <entries dir>/
        .entryrank.toml       # optional config
        .entryrank.db         # entries, content_versions, comparisons (append-only)
        any/file.txt          # every non-hidden regular file is an entry

content_versions rows:
    (path, content BLOB, observed_at)      # content NULL = tombstone

comparisons rows:
    (winner_path, loser_path, magnitude, at)

Ratings are never stored: they are replayed from comparisons on every read.
"""

from entryrank.config import EntryRankConfig, init_config, load_config
from entryrank.models import Comparison, ContentVersion, Entry, RankedEntry, Rating
from entryrank.rating import compute_ratings
from entryrank.reconciler import ConflictPolicy, reconcile
from entryrank.recorder import record
from entryrank.sampler import SelectionPolicy, select_pair

__all__ = [
    "Comparison",
    "ConflictPolicy",
    "ContentVersion",
    "Entry",
    "EntryRankConfig",
    "RankedEntry",
    "Rating",
    "SelectionPolicy",
    "compute_ratings",
    "init_config",
    "load_config",
    "reconcile",
    "record",
    "select_pair",
]
