"""Filesystem reconciler: entries dir → append-only version history.

One pass is scan → plan → apply:

    snapshots = scan_files(root, exclude=cfg.state_files)   # every non-hidden regular file, read once
    plan = plan_reconcile(snapshots, load_entries(conn), policy=ConflictPolicy.FAIL)
    stats = apply_plan(conn, plan)                  # one transaction per mutation

Mutations:
    create      path never seen            → entry + first version (bytes, mtime)
    update      live path, bytes differ    → new version (bytes, mtime)
    tombstone   live path, file missing    → new version with content NULL, time = now
    delete-file deleted path, file exists  → remove the file (ConflictPolicy.DELETE_FILE only)

A file at a tombstoned path is never resurrected. Under ConflictPolicy.FAIL it
is reported after every other mutation has been applied.
"""

from __future__ import annotations

import logging
import os
import stat
import time
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from entryrank.errors import InvariantError, TombstoneConflictError, UnknownEntryError
from entryrank.store import append_version, create_entry, load_entries

if TYPE_CHECKING:
    import sqlite3
    from collections.abc import Iterable

    from entryrank.models import Entry

logger = logging.getLogger(__name__)


class ConflictPolicy(StrEnum):
    """What to do with a file found at a path whose history ends in a tombstone."""

    FAIL = "fail"
    DELETE_FILE = "delete-file"


class MutationKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    TOMBSTONE = "tombstone"
    DELETE_FILE = "delete-file"


@dataclass(frozen=True)
class FileSnapshot:
    """A file as observed during one scan."""

    rel_path: str
    abs_path: Path
    mtime: int
    content: bytes


@dataclass(frozen=True)
class Mutation:
    kind: MutationKind
    path: str
    content: bytes | None = None
    observed_at: int | None = None     # None for tombstones: stamped at apply time
    abs_path: Path | None = None


@dataclass
class ReconcilePlan:
    mutations: list[Mutation] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.mutations and not self.conflicts

    def of_kind(self, kind: MutationKind) -> list[Mutation]:
        return [m for m in self.mutations if m.kind is kind]


@dataclass
class ReconcileStats:
    new: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    removed: int = 0
    conflicts: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, int]:
        return {
            "new": self.new,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "deleted": self.deleted,
            "removed": self.removed,
            "conflicts": len(self.conflicts),
        }


# ---------------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------------


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def scan_files(root: Path, *, exclude: Iterable[Path] = ()) -> list[FileSnapshot]:
    """Read every non-hidden regular file under root, sorted by relative path.

    Only the file name decides whether a file is hidden: hidden directories
    are walked like any other. Symlinks, special files and the paths in
    exclude are skipped. A missing root raises FileNotFoundError rather than
    looking like "every file was deleted".
    """
    root = Path(root)
    skip = {Path(p).absolute() for p in exclude}
    if not root.is_dir():
        msg = f"entries directory not found: {root}"
        raise FileNotFoundError(msg)

    snapshots: list[FileSnapshot] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            if _is_hidden(filename):
                continue
            full = Path(dirpath) / filename
            if full.absolute() in skip:
                continue
            st = full.lstat()
            if not stat.S_ISREG(st.st_mode):
                logger.debug("skipping non-regular file %s", full)
                continue
            snapshots.append(
                FileSnapshot(
                    rel_path=full.relative_to(root).as_posix(),
                    abs_path=full,
                    mtime=int(st.st_mtime),
                    content=full.read_bytes(),
                )
            )
    snapshots.sort(key=lambda s: s.rel_path)
    return snapshots


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


def plan_reconcile(
    snapshots: Iterable[FileSnapshot],
    entries: dict[str, Entry],
    *,
    policy: ConflictPolicy = ConflictPolicy.FAIL,
) -> ReconcilePlan:
    """Diff a filesystem snapshot against stored entries. Pure: touches nothing."""
    plan = ReconcilePlan()
    seen: set[str] = set()

    for snap in snapshots:
        seen.add(snap.rel_path)
        entry = entries.get(snap.rel_path)

        if entry is None:
            plan.mutations.append(
                Mutation(MutationKind.CREATE, snap.rel_path, snap.content, snap.mtime)
            )
        elif entry.is_deleted:
            if policy is ConflictPolicy.DELETE_FILE:
                plan.mutations.append(
                    Mutation(MutationKind.DELETE_FILE, snap.rel_path, abs_path=snap.abs_path)
                )
            else:
                plan.conflicts.append(snap.rel_path)
        elif entry.latest.content == snap.content:
            plan.unchanged.append(snap.rel_path)
        else:
            plan.mutations.append(
                Mutation(MutationKind.UPDATE, snap.rel_path, snap.content, snap.mtime)
            )

    for path in sorted(entries):
        if path not in seen and entries[path].is_live:
            plan.mutations.append(Mutation(MutationKind.TOMBSTONE, path))

    return plan


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------


def _payload(m: Mutation) -> tuple[bytes, int]:
    if m.content is None or m.observed_at is None:
        msg = f"{m.kind} mutation for {m.path} carries no content"
        raise InvariantError(msg)
    return m.content, m.observed_at


def apply_plan(
    conn: sqlite3.Connection,
    plan: ReconcilePlan,
    *,
    now: int | None = None,
) -> ReconcileStats:
    """Apply every mutation in its own transaction.

    Raises TombstoneConflictError after the other mutations are committed
    if the plan holds conflicts.
    """
    stats = ReconcileStats(unchanged=len(plan.unchanged), conflicts=list(plan.conflicts))
    # True deletion time is unknowable from a snapshot: tombstones get "now"
    tombstone_at = int(time.time()) if now is None else now

    for m in plan.mutations:
        if m.kind is MutationKind.CREATE:
            content, observed_at = _payload(m)
            create_entry(conn, m.path, content, observed_at=observed_at)
            stats.new += 1
            logger.info("new: %s", m.path)
        elif m.kind is MutationKind.UPDATE:
            content, observed_at = _payload(m)
            append_version(conn, m.path, content, observed_at=observed_at)
            stats.updated += 1
            logger.info("updated: %s", m.path)
        elif m.kind is MutationKind.TOMBSTONE:
            append_version(conn, m.path, None, observed_at=tombstone_at)
            stats.deleted += 1
            logger.info("deleted: %s", m.path)
        elif m.kind is MutationKind.DELETE_FILE:
            if m.abs_path is None:
                msg = f"delete-file mutation for {m.path} has no file path"
                raise InvariantError(msg)
            m.abs_path.unlink()
            stats.removed += 1
            logger.info("removed file already deleted in history: %s", m.path)

    for path in plan.conflicts:
        logger.warning("file already exists in history as deleted: %s", path)
    if plan.conflicts:
        raise TombstoneConflictError(plan.conflicts)

    return stats


def reconcile(
    conn: sqlite3.Connection,
    root: Path,
    *,
    policy: ConflictPolicy = ConflictPolicy.FAIL,
    now: int | None = None,
    exclude: Iterable[Path] = (),
) -> ReconcileStats:
    """Scan root, diff against the store and apply. Returns stats."""
    snapshots = scan_files(root, exclude=exclude)
    plan = plan_reconcile(snapshots, load_entries(conn), policy=policy)
    stats = apply_plan(conn, plan, now=now)
    logger.debug("reconciled %s: %s", root, stats.as_dict())
    return stats


def remove_entry(
    conn: sqlite3.Connection,
    root: Path,
    path: str,
    *,
    now: int | None = None,
    exclude: Iterable[Path] = (),
) -> ReconcileStats:
    """Delete the file behind a live entry, then reconcile so it is tombstoned."""
    entries = load_entries(conn)
    entry = entries.get(path)
    if entry is None or entry.is_deleted:
        raise UnknownEntryError(path)
    (Path(root) / path).unlink(missing_ok=True)
    return reconcile(conn, root, now=now, exclude=exclude)
