"""Interactive comparison loop.

The loop never talks to a terminal itself. It hands the two candidate
labels to a selector and records whatever it answers:

    def select(labels: Sequence[str]) -> int | None:
        ...   # index of the winner, or None to stop

    run_session(conn, cfg, select)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from entryrank.recorder import record
from entryrank.sampler import select_pair
from entryrank.standings import load_standings

if TYPE_CHECKING:
    import random
    import sqlite3

    from entryrank.config import EntryRankConfig
    from entryrank.sampler import SelectionPolicy

logger = logging.getLogger(__name__)

Selector = Callable[[Sequence[str]], int | None]


def run_session(
    conn: sqlite3.Connection,
    cfg: EntryRankConfig,
    select: Selector,
    *,
    policy: SelectionPolicy | str | None = None,
    rng: random.Random | None = None,
    limit: int | None = None,
) -> int:
    """Present pairs until the selector returns None. Returns comparisons recorded."""
    recorded = 0
    while limit is None or recorded < limit:
        standings = load_standings(conn, cfg.rating)
        if len(standings) < 2:
            logger.info("fewer than 2 live entries, nothing to compare")
            break

        pair = select_pair(
            standings,
            policy or cfg.sampler.policy,
            rng=rng,
            uncertain_weight=cfg.sampler.uncertain_weight,
            random_weight=cfg.sampler.random_weight,
        )
        choice = select([str(p) for p in pair])
        if choice is None:
            break
        if choice not in (0, 1):
            msg = f"selector returned invalid index {choice!r}"
            raise ValueError(msg)

        winner, loser = pair[choice], pair[1 - choice]
        record(conn, winner.path, loser.path)
        recorded += 1

    return recorded
