"""TrueSkill ratings replayed from the comparison log.

Ratings are never stored. ``compute_ratings`` starts every live entry from
the prior and folds over the eligible comparisons in (timestamp, insertion)
order, so the same inputs always give bit-identical output.

Each comparison is rated as one 1-vs-1 game by ``trueskill``, on a scale
centred at 1500 with a prior deviation of 350. Between two comparisons of
the same entry its deviation grows back by ``sqrt(σ² + t·drift²)`` where
``t`` is the idle time in rating periods, capped at the prior deviation.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import TYPE_CHECKING

import trueskill

from entryrank.config import RatingConfig
from entryrank.models import Outcome, RankedEntry, Rating

if TYPE_CHECKING:
    from collections.abc import Iterable

    from entryrank.models import Comparison, Entry


def environment(config: RatingConfig) -> trueskill.TrueSkill:
    """A TrueSkill environment on the public scale."""
    return trueskill.TrueSkill(
        mu=config.rating,
        sigma=config.deviation,
        beta=config.beta,
        tau=config.tau,
        draw_probability=config.draw_probability,
    )


def prior(config: RatingConfig) -> Rating:
    """Neutral skill, maximal uncertainty."""
    return Rating(rating=config.rating, deviation=config.deviation)


def _after(before: Rating, rated: trueskill.Rating, at: int | None) -> Rating:
    return Rating(
        rating=rated.mu,
        deviation=rated.sigma,
        matches=before.matches + 1,
        last_at=at if at is not None else before.last_at,
    )


def rate_game(
    a: Rating,
    b: Rating,
    outcome: Outcome,
    env: trueskill.TrueSkill,
    *,
    at: int | None = None,
) -> tuple[Rating, Rating]:
    """Rate one game between a and b. ``outcome`` is from a's point of view.

    Both sides are updated from their pre-game states.
    """
    ts_a = env.create_rating(mu=a.rating, sigma=a.deviation)
    ts_b = env.create_rating(mu=b.rating, sigma=b.deviation)
    if outcome is Outcome.LOSS:
        new_b, new_a = env.rate_1vs1(ts_b, ts_a)
    else:
        new_a, new_b = env.rate_1vs1(ts_a, ts_b, drawn=outcome is Outcome.DRAW)
    return _after(a, new_a, at), _after(b, new_b, at)


def age(rating: Rating, now: int, config: RatingConfig) -> Rating:
    """Grow the deviation for the idle time since the rating's last comparison."""
    period = config.rating_period
    if period <= 0 or rating.last_at is None or now <= rating.last_at:
        return rating
    periods = (now - rating.last_at) / period
    grown = math.sqrt(rating.deviation**2 + periods * config.drift**2)
    return replace(rating, deviation=min(grown, config.deviation))


def compute_ratings(
    entries: Iterable[Entry],
    comparisons: Iterable[Comparison],
    config: RatingConfig | None = None,
) -> dict[str, Rating]:
    """Replay comparisons over the live entries. Deleted entries are ignored.

    A comparison counts only while both of its sides are live; history is
    kept in the store, it just does not contribute.
    """
    config = config or RatingConfig()
    env = environment(config)
    live = sorted(e.path for e in entries if e.is_live)
    ratings = {path: prior(config) for path in live}

    eligible = sorted(
        (
            c
            for c in comparisons
            if c.winner in ratings and c.loser in ratings and c.winner != c.loser
        ),
        key=lambda c: (c.at, c.seq),
    )
    for c in eligible:
        winner = age(ratings[c.winner], c.at, config)
        loser = age(ratings[c.loser], c.at, config)
        ratings[c.winner], ratings[c.loser] = rate_game(winner, loser, c.outcome, env, at=c.at)

    return ratings


def rank(
    entries: Iterable[Entry],
    ratings: dict[str, Rating],
    config: RatingConfig | None = None,
) -> list[RankedEntry]:
    """Sort ascending by (truncated rating, path). Unrated entries get the prior."""
    default = prior(config or RatingConfig())
    ranked = [RankedEntry(entry=e, rating=ratings.get(e.path, default)) for e in entries]
    ranked.sort(key=lambda r: (int(r.rating.rating), r.path))
    return ranked
