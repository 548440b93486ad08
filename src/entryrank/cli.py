"""entryrank CLI: rank a directory of text entries by pairwise comparison.

Commands:
    entryrank init                 create .entryrank.toml and the .entryrank.db store
    entryrank [show] [NUMBER]      sync, then list standings (or show one entry)
    entryrank vote                 sync, then compare pairs until you stop
    entryrank remove NUMBER        delete the file at that position and sync
    entryrank sync [-d]            sync only (-d: delete files already deleted in history)
    entryrank history PATH         list every stored version of an entry
    entryrank status               store and standings overview
"""

from __future__ import annotations

import contextlib
import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import click

from entryrank.config import POLICIES, EntryRankConfig, init_config, load_config
from entryrank.db import get_conn
from entryrank.errors import EntryRankError
from entryrank.reconciler import ConflictPolicy, ReconcileStats, reconcile, remove_entry
from entryrank.session import run_session
from entryrank.standings import entry_at, load_standings, numbered
from entryrank.store import count_versions, get_entry, load_comparisons, load_entries

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from entryrank.models import RankedEntry

_LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg(root: str | None, *, require_file: bool = True) -> EntryRankConfig:
    try:
        cfg = load_config(root)
    except EntryRankError as exc:
        raise click.ClickException(str(exc)) from exc
    if require_file and not cfg.has_config_file:
        msg = f"no .entryrank.toml in {cfg.root} or any parent directory; run `entryrank init` first"
        raise click.ClickException(msg)
    return cfg


@contextlib.contextmanager
def _store(cfg: EntryRankConfig) -> Iterator[sqlite3.Connection]:
    """Open the store; turn entryrank and SQLite errors into CLI errors."""
    try:
        conn = get_conn(cfg)
    except sqlite3.Error as exc:
        raise click.ClickException(f"cannot open {cfg.db_path}: {exc}") from exc
    try:
        yield conn
    except EntryRankError as exc:
        raise click.ClickException(str(exc)) from exc
    except sqlite3.OperationalError as exc:
        raise click.ClickException(f"SQLite error: {exc}") from exc
    finally:
        conn.close()


def _sync(conn: sqlite3.Connection, cfg: EntryRankConfig, *, delete_already_deleted: bool | None = None) -> ReconcileStats:
    if delete_already_deleted is None:
        delete_already_deleted = cfg.sync.delete_already_deleted
    policy = ConflictPolicy.DELETE_FILE if delete_already_deleted else ConflictPolicy.FAIL
    try:
        return reconcile(conn, cfg.entries_dir, policy=policy, exclude=cfg.state_files)
    except OSError as exc:
        raise click.ClickException(f"cannot sync {cfg.entries_dir}: {exc}") from exc


def _fmt_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts, UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def _line(number: int, item: RankedEntry) -> str:
    return (
        f"{number}. {item} (score: {int(item.rating.rating)}, "
        f"deviation: {int(item.rating.deviation)})"
    )


def _prompt_select(labels: Sequence[str]) -> int | None:
    """Selection collaborator backed by a click prompt. Empty input or EOF stops."""
    click.echo()
    for i, label in enumerate(labels, 1):
        click.echo(f"  {i}. {label}")
    while True:
        try:
            answer = click.prompt("Better one (empty to stop)", default="", show_default=False)
        except click.Abort:
            return None
        answer = answer.strip().lower()
        if answer in ("", "q"):
            return None
        if answer.isdigit() and 1 <= int(answer) <= len(labels):
            return int(answer) - 1
        click.echo(f"Enter a number from 1 to {len(labels)}.", err=True)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group(invoke_without_command=True)
@click.version_option(package_name="entryrank")
@click.option("--root", default=None, help="Directory holding .entryrank.toml (default: search upward)")
@click.option("--verbose", "-v", is_flag=True, help="Log every change at DEBUG level")
@click.pass_context
def cli(ctx: click.Context, root: str | None, verbose: bool) -> None:
    """entryrank: rank text entries by pairwise comparison."""
    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    if ctx.invoked_subcommand == "init":
        return
    cfg = _load_cfg(root)
    logging.basicConfig(level=logging.DEBUG if verbose else cfg.logging.level, format=_LOG_FORMAT)
    ctx.obj["cfg"] = cfg
    if ctx.invoked_subcommand is None:
        ctx.invoke(show)


# ---------------------------------------------------------------------------
# entryrank init
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--dir", "directory", default=None, help="Entries directory (default: --root or .)")
@click.pass_context
def init(ctx: click.Context, directory: str | None) -> None:
    """Create .entryrank.toml and the .entryrank.db store, then sync."""
    root_path = Path(directory or ctx.obj.get("root") or ".").resolve()
    root_path.mkdir(parents=True, exist_ok=True)
    try:
        config_path = init_config(root_path)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo(".entryrank.toml already exists, skipping init")

    cfg = _load_cfg(str(root_path), require_file=False)
    cfg.ensure_dirs()
    with _store(cfg) as conn:
        stats = _sync(conn, cfg)
    click.echo(f"Entries dir : {cfg.entries_dir}")
    click.echo(f"Store       : {cfg.db_path}")
    click.echo(f"Tracked {stats.new} new entries")


# ---------------------------------------------------------------------------
# entryrank show
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("number", type=int, required=False)
@click.option("--include-deleted", is_flag=True, help="Also list entries deleted from disk")
@click.pass_obj
def show(obj: dict, number: int | None, include_deleted: bool = False) -> None:
    """Sync, then list standings (best last) or show entry NUMBER in full."""
    cfg: EntryRankConfig = obj["cfg"]
    with _store(cfg) as conn:
        _sync(conn, cfg)
        standings = load_standings(conn, cfg.rating, include_deleted=include_deleted)

        if number is None:
            if not standings:
                click.echo("No entries.")
            for position, item in numbered(standings):
                click.echo(_line(position, item))
            return

        item = entry_at(standings, number)
        click.echo(_line(number, item) + "\n")
        latest = item.entry.latest
        click.echo(f"@ {_fmt_ts(latest.observed_at)}")
        click.echo(item.entry.text().strip())


# ---------------------------------------------------------------------------
# entryrank vote
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--policy", type=click.Choice(POLICIES), default=None, help="Override [sampler].policy")
@click.option("--limit", "-n", type=int, default=None, help="Stop after N comparisons")
@click.pass_obj
def vote(obj: dict, policy: str | None, limit: int | None) -> None:
    """Sync, then pick the better of two entries until you stop."""
    cfg: EntryRankConfig = obj["cfg"]
    with _store(cfg) as conn:
        _sync(conn, cfg)
        count = run_session(conn, cfg, _prompt_select, policy=policy, limit=limit)
    click.echo(f"Recorded {count} comparison(s)")


# ---------------------------------------------------------------------------
# entryrank remove
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("number", type=int)
@click.pass_obj
def remove(obj: dict, number: int) -> None:
    """Delete the file at position NUMBER; its history is kept as a tombstone."""
    cfg: EntryRankConfig = obj["cfg"]
    with _store(cfg) as conn:
        item = entry_at(load_standings(conn, cfg.rating), number)
        try:
            remove_entry(conn, cfg.entries_dir, item.path, exclude=cfg.state_files)
        except OSError as exc:
            raise click.ClickException(f"cannot remove {item.path}: {exc}") from exc
    click.echo(f"File {number} ({item}) removed")


# ---------------------------------------------------------------------------
# entryrank sync
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--delete-already-deleted",
    "-d",
    is_flag=True,
    help="Delete files found at paths already deleted in history",
)
@click.pass_obj
def sync(obj: dict, delete_already_deleted: bool) -> None:
    """Record new, changed and deleted files."""
    cfg: EntryRankConfig = obj["cfg"]
    with _store(cfg) as conn:
        stats = _sync(conn, cfg, delete_already_deleted=delete_already_deleted or None)
    parts = [f"{v} {k}" for k, v in stats.as_dict().items() if v and k != "unchanged"]
    click.echo(", ".join(parts) or "no changes")


# ---------------------------------------------------------------------------
# entryrank history
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("path")
@click.pass_obj
def history(obj: dict, path: str) -> None:
    """List every stored version of PATH (relative to the entries dir)."""
    cfg: EntryRankConfig = obj["cfg"]
    with _store(cfg) as conn:
        entry = get_entry(conn, path)
    for version in entry.versions:
        size = "deleted" if version.content is None else f"{len(version.content)} bytes"
        click.echo(f"{_fmt_ts(version.observed_at)}  {size}")


# ---------------------------------------------------------------------------
# entryrank status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_obj
def status(obj: dict) -> None:
    """Show store stats and the current extremes of the standings. Does not sync."""
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table

    cfg: EntryRankConfig = obj["cfg"]
    with _store(cfg) as conn:
        entries = load_entries(conn)
        n_versions = count_versions(conn)
        n_comparisons = len(load_comparisons(conn))
        standings = load_standings(conn, cfg.rating)

    table = Table(title=f"entryrank: {cfg.root.name}", show_header=True, header_style="bold")
    table.add_column("Metric", style="dim", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Config", str(cfg.config_path))
    table.add_row("Entries dir", str(cfg.entries_dir))
    size_mb = cfg.db_path.stat().st_size / 1_000_000
    table.add_row("Store", f"{cfg.db_path}  [{size_mb:.1f} MB]")
    table.add_row("", "")

    n_live = sum(1 for e in entries.values() if e.is_live)
    table.add_row("Live entries", str(n_live))
    table.add_row("Deleted entries", str(len(entries) - n_live))
    table.add_row("Versions", str(n_versions))
    table.add_row("Comparisons", str(n_comparisons))
    table.add_row("Policy", cfg.sampler.policy)

    if standings:
        top = standings[-1]
        uncertain = max(standings, key=lambda r: r.rating.deviation)
        table.add_row("", "")
        table.add_row("Top", escape(f"{top} ({int(top.rating.rating)})"))
        table.add_row(
            "Most uncertain", escape(f"{uncertain} (deviation {int(uncertain.rating.deviation)})")
        )
    else:
        table.add_row("", "")
        table.add_row("Standings", "[yellow]no entries yet; run `entryrank sync`[/yellow]")

    Console().print(table)
