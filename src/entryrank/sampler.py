"""Pick two entries to compare.

Policies:
    random     two distinct entries, uniformly
    weighted   weighted sampling without replacement, weight = deviation
    uncertain  the two entries with the highest deviation
    mixed      uncertain or random, chosen by configured weights (70/30 by default)

A policy only looks at the standings it is given; nothing carries over
between calls. The pair comes back in standings order.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence
from enum import StrEnum

from entryrank.errors import NotEnoughEntriesError
from entryrank.models import RankedEntry


class SelectionPolicy(StrEnum):
    RANDOM = "random"
    WEIGHTED = "weighted"
    UNCERTAIN = "uncertain"
    MIXED = "mixed"


def _random_indices(ranked: Sequence[RankedEntry], rng: random.Random) -> list[int]:
    return rng.sample(range(len(ranked)), 2)


def _weighted_indices(ranked: Sequence[RankedEntry], rng: random.Random) -> list[int]:
    pool = list(range(len(ranked)))
    weights = [max(r.rating.deviation, 0.0) for r in ranked]
    chosen: list[int] = []
    for _ in range(2):
        if sum(weights[i] for i in pool) <= 0:
            idx = rng.choice(pool)
        else:
            idx = rng.choices(pool, weights=[weights[i] for i in pool], k=1)[0]
        chosen.append(idx)
        pool.remove(idx)
    return chosen


def _uncertain_indices(ranked: Sequence[RankedEntry], rng: random.Random) -> list[int]:  # noqa: ARG001
    # sorted() is stable: equal deviations keep standings order
    order = sorted(range(len(ranked)), key=lambda i: -ranked[i].rating.deviation)
    return order[:2]


_POLICIES: dict[SelectionPolicy, Callable[[Sequence[RankedEntry], random.Random], list[int]]] = {
    SelectionPolicy.RANDOM: _random_indices,
    SelectionPolicy.WEIGHTED: _weighted_indices,
    SelectionPolicy.UNCERTAIN: _uncertain_indices,
}


def select_pair(
    ranked: Sequence[RankedEntry],
    policy: SelectionPolicy | str = SelectionPolicy.WEIGHTED,
    *,
    rng: random.Random | None = None,
    uncertain_weight: float = 70.0,
    random_weight: float = 30.0,
) -> tuple[RankedEntry, RankedEntry]:
    """Return two distinct entries from ranked, in ranked order."""
    if len(ranked) < 2:
        raise NotEnoughEntriesError(len(ranked))
    rng = rng or random.Random()
    policy = SelectionPolicy(policy)

    if policy is SelectionPolicy.MIXED:
        policy = rng.choices(
            [SelectionPolicy.UNCERTAIN, SelectionPolicy.RANDOM],
            weights=[uncertain_weight, random_weight],
            k=1,
        )[0]

    first, second = sorted(_POLICIES[policy](ranked, rng))
    return ranked[first], ranked[second]
