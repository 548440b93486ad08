"""EntryRankConfig: per-directory config for entryrank.

Default layout (all relative to the config root):

    .entryrank.toml       # config, written by `entryrank init`
    .entryrank.db         # SQLite store: entries, content versions, comparisons
    notes/whatever.txt    # entries: every non-hidden regular file, at any depth

Hidden files are never scanned, so the config and the store (with its
-wal/-shm companions) stay out of the entry set. Hidden directories are
walked like any other.

.entryrank.toml example:

    [entryrank]
    entries_dir = "."
    db_path = ".entryrank.db"

    [rating]
    rating = 1500.0             # TrueSkill mu of an unrated entry
    deviation = 350.0           # TrueSkill sigma of an unrated entry
    beta = 175.0                # skill distance that means ~76% chance to win
    tau = 3.5                   # sigma added before every comparison
    draw_probability = 0.1
    drift = 35.0                # sigma added (in quadrature) per idle rating period
    rating_period_days = 30     # 0 = deviation never grows with idle time

    [sampler]
    policy = "weighted"         # random | weighted | uncertain | mixed
    uncertain_weight = 70       # mixed: chance of picking the most uncertain pair
    random_weight = 30

    [sync]
    delete_already_deleted = false

    [logging]
    level = "WARNING"           # or set ENTRYRANK_LOG_LEVEL
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from entryrank.errors import ConfigError

_CONFIG_FILENAME = ".entryrank.toml"
_DEFAULT_DB_PATH = ".entryrank.db"
_LOG_LEVEL_ENV = "ENTRYRANK_LOG_LEVEL"
_SECONDS_PER_DAY = 86400
# SQLite writes these next to the database file
_SQLITE_SUFFIXES = ("", "-wal", "-shm", "-journal")

POLICIES = ("random", "weighted", "uncertain", "mixed")


@dataclass
class RatingConfig:
    rating: float = 1500.0
    deviation: float = 350.0
    beta: float = 175.0
    tau: float = 3.5
    draw_probability: float = 0.1
    drift: float = 35.0
    rating_period_days: float = 30.0

    @property
    def rating_period(self) -> float:
        """Rating period in seconds (0 disables idle-time deviation growth)."""
        return self.rating_period_days * _SECONDS_PER_DAY


@dataclass
class SamplerConfig:
    policy: str = "weighted"
    uncertain_weight: float = 70.0
    random_weight: float = 30.0


@dataclass
class SyncConfig:
    delete_already_deleted: bool = False


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class EntryRankConfig:
    """Resolved configuration for one entries directory."""

    root: Path                      # directory that contains .entryrank.toml
    entries_dir: Path = field(default_factory=Path)
    db_path: Path = field(default_factory=Path)
    rating: RatingConfig = field(default_factory=RatingConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME

    @property
    def has_config_file(self) -> bool:
        return self.config_path.exists()

    @property
    def state_dir(self) -> Path:
        return self.db_path.parent

    @property
    def state_files(self) -> tuple[Path, ...]:
        """The store and its SQLite companions; never treated as entries."""
        return tuple(self.db_path.with_name(self.db_path.name + s) for s in _SQLITE_SUFFIXES)

    def ensure_dirs(self) -> None:
        """Create the entries dir and the state dir if they don't exist."""
        self.entries_dir.mkdir(parents=True, exist_ok=True)
        self.state_dir.mkdir(parents=True, exist_ok=True)


def _log_level(raw: str) -> str:
    level = raw.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        msg = f"unknown log level: {raw!r}"
        raise ConfigError(msg)
    return level


def _policy(raw: str) -> str:
    policy = raw.strip().lower()
    if policy not in POLICIES:
        msg = f"unknown sampler policy: {raw!r} (expected one of {', '.join(POLICIES)})"
        raise ConfigError(msg)
    return policy


def _check_rating(rating: RatingConfig) -> None:
    if rating.deviation <= 0 or rating.beta <= 0:
        msg = "rating.deviation and rating.beta must be positive"
        raise ConfigError(msg)
    if rating.tau < 0 or rating.drift < 0 or rating.rating_period_days < 0:
        msg = "rating.tau, rating.drift and rating.rating_period_days must be >= 0"
        raise ConfigError(msg)
    if not 0 <= rating.draw_probability < 1:
        msg = f"rating.draw_probability must be in [0, 1), got {rating.draw_probability}"
        raise ConfigError(msg)


def load_config(root: Path | str | None = None) -> EntryRankConfig:
    """Load .entryrank.toml from root (or search upward from cwd if root is None).

    Without a config file every key takes its default and root is the start
    directory; check ``has_config_file`` before touching the filesystem.
    """
    root_path = _find_root(Path(root) if root else Path.cwd()).resolve()
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            msg = f"invalid {config_path}: {exc}"
            raise ConfigError(msg) from exc

    main = raw.get("entryrank", {})
    rating_section = raw.get("rating", {})
    sampler_section = raw.get("sampler", {})
    sync_section = raw.get("sync", {})
    log_section = raw.get("logging", {})

    defaults = RatingConfig()
    try:
        rating = RatingConfig(
            rating=float(rating_section.get("rating", defaults.rating)),
            deviation=float(rating_section.get("deviation", defaults.deviation)),
            beta=float(rating_section.get("beta", defaults.beta)),
            tau=float(rating_section.get("tau", defaults.tau)),
            draw_probability=float(rating_section.get("draw_probability", defaults.draw_probability)),
            drift=float(rating_section.get("drift", defaults.drift)),
            rating_period_days=float(rating_section.get("rating_period_days", defaults.rating_period_days)),
        )
        sampler = SamplerConfig(
            policy=_policy(str(sampler_section.get("policy", "weighted"))),
            uncertain_weight=float(sampler_section.get("uncertain_weight", 70.0)),
            random_weight=float(sampler_section.get("random_weight", 30.0)),
        )
    except (TypeError, ValueError) as exc:
        msg = f"invalid value in {config_path}: {exc}"
        raise ConfigError(msg) from exc
    _check_rating(rating)

    # Environment overrides the file for the log level
    level = os.environ.get(_LOG_LEVEL_ENV) or str(log_section.get("level", "WARNING"))

    return EntryRankConfig(
        root=root_path,
        entries_dir=root_path / main.get("entries_dir", "."),
        db_path=root_path / main.get("db_path", _DEFAULT_DB_PATH),
        rating=rating,
        sampler=sampler,
        sync=SyncConfig(
            delete_already_deleted=bool(sync_section.get("delete_already_deleted", False)),
        ),
        logging=LoggingConfig(level=_log_level(level)),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for .entryrank.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path) -> Path:
    """Write a default .entryrank.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"{_CONFIG_FILENAME} already exists at {config_path}"
        raise FileExistsError(msg)

    content = """\
[entryrank]
# entries_dir = "."                    # default: the directory holding this file
# db_path = ".entryrank.db"            # default; a hidden file, so it is never scanned

# [rating]
# rating = 1500.0
# deviation = 350.0
# beta = 175.0
# tau = 3.5
# draw_probability = 0.1
# drift = 35.0
# rating_period_days = 30   # deviation grows back over idle periods (0 = never)

# [sampler]
# policy = "weighted"       # random | weighted | uncertain | mixed
# uncertain_weight = 70
# random_weight = 30

# [sync]
# delete_already_deleted = false

# [logging]
# level = "WARNING"         # or set ENTRYRANK_LOG_LEVEL
"""
    config_path.write_text(content)
    return config_path
