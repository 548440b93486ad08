"""Shared test fixtures for entryrank."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from entryrank.config import load_config
from entryrank.db import cfg_from_path

if TYPE_CHECKING:
    import sqlite3
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from entryrank.config import EntryRankConfig


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ENTRYRANK_LOG_LEVEL", raising=False)


@pytest.fixture
def entries_dir(tmp_path: Path) -> Path:
    d = tmp_path / "entries"
    d.mkdir()
    return d


@pytest.fixture
def conn(tmp_path: Path) -> Iterator[sqlite3.Connection]:
    """Store kept outside the entries dir so scans never see it."""
    c = cfg_from_path(tmp_path / "state" / "entries.db")
    yield c
    c.close()


@pytest.fixture
def cfg(entries_dir: Path) -> EntryRankConfig:
    return load_config(entries_dir)


@pytest.fixture
def write_entry(entries_dir: Path) -> Callable[..., Path]:
    """Write a file under the entries dir, optionally pinning its mtime."""

    def _write(rel: str, content: str | bytes, mtime: int | None = None) -> Path:
        path = entries_dir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode()
        path.write_bytes(content)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _write
