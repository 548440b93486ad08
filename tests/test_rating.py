"""Tests for the TrueSkill replay."""

from __future__ import annotations

import random

import pytest

from entryrank.config import RatingConfig
from entryrank.models import Comparison, ContentVersion, Entry, Outcome, Rating
from entryrank.rating import age, compute_ratings, environment, prior, rank, rate_game

NO_DECAY = RatingConfig(rating_period_days=0)
ENV = environment(NO_DECAY)


def _live(path: str) -> Entry:
    return Entry(path=path, versions=[ContentVersion(path.encode(), 0)])


def _deleted(path: str) -> Entry:
    return Entry(path=path, versions=[ContentVersion(path.encode(), 0), ContentVersion(None, 1)])


class TestOutcome:
    @pytest.mark.parametrize(
        ("magnitude", "expected"),
        [(1, Outcome.WIN), (7, Outcome.WIN), (0, Outcome.DRAW), (-1, Outcome.LOSS)],
    )
    def test_from_magnitude(self, magnitude: int, expected: Outcome) -> None:
        assert Outcome.from_magnitude(magnitude) is expected

    def test_flipped(self) -> None:
        assert Outcome.WIN.flipped() is Outcome.LOSS
        assert Outcome.LOSS.flipped() is Outcome.WIN
        assert Outcome.DRAW.flipped() is Outcome.DRAW


class TestRateGame:
    def test_single_win_from_prior(self) -> None:
        # The default environment scaled by 42 (sigma 25/3 -> 350): 29.396 / 7.171 there
        a, b = rate_game(prior(NO_DECAY), prior(NO_DECAY), Outcome.WIN, ENV)
        assert a.rating == pytest.approx(1684.63, abs=0.1)
        assert a.deviation == pytest.approx(301.18, abs=0.1)
        assert b.rating == pytest.approx(1315.37, abs=0.1)
        assert b.deviation == pytest.approx(a.deviation)
        assert (a.matches, b.matches) == (1, 1)

    def test_loss_mirrors_win(self) -> None:
        won, lost = rate_game(prior(NO_DECAY), prior(NO_DECAY), Outcome.WIN, ENV)
        lost_again, won_again = rate_game(prior(NO_DECAY), prior(NO_DECAY), Outcome.LOSS, ENV)
        assert (won_again, lost_again) == (won, lost)

    def test_draw_between_equals_keeps_rating(self) -> None:
        a, b = rate_game(prior(NO_DECAY), prior(NO_DECAY), Outcome.DRAW, ENV)
        assert a.rating == pytest.approx(1500.0)
        assert b.rating == pytest.approx(1500.0)
        assert a.deviation < 350.0

    def test_upset_moves_more_than_expected_win(self) -> None:
        strong = Rating(rating=1800.0, deviation=100.0)
        weak = Rating(rating=1400.0, deviation=100.0)
        expected_win, _ = rate_game(strong, weak, Outcome.WIN, ENV)
        upset_loss, _ = rate_game(strong, weak, Outcome.LOSS, ENV)
        assert expected_win.rating - strong.rating < strong.rating - upset_loss.rating

    def test_records_timestamp(self) -> None:
        a, b = rate_game(prior(NO_DECAY), prior(NO_DECAY), Outcome.WIN, ENV, at=42)
        assert a.last_at == b.last_at == 42


class TestAge:
    def test_disabled_when_period_is_zero(self) -> None:
        r = Rating(rating=1500.0, deviation=100.0, last_at=0)
        assert age(r, 10**9, NO_DECAY) == r

    def test_grows_with_idle_time_and_is_capped(self) -> None:
        cfg = RatingConfig(rating_period_days=1)
        r = Rating(rating=1500.0, deviation=100.0, last_at=0)
        one_day = age(r, 86400, cfg)
        ten_days = age(r, 864000, cfg)
        assert 100.0 < one_day.deviation < ten_days.deviation
        assert age(r, 10**12, cfg).deviation == cfg.deviation

    def test_unrated_entry_does_not_age(self) -> None:
        cfg = RatingConfig(rating_period_days=1)
        assert age(prior(cfg), 10**6, cfg) == prior(cfg)


class TestComputeRatings:
    def test_no_comparisons_gives_prior(self) -> None:
        ratings = compute_ratings([_live("a"), _live("b")], [], NO_DECAY)
        assert ratings == {"a": prior(NO_DECAY), "b": prior(NO_DECAY)}

    def test_winner_ranks_above_loser(self) -> None:
        ratings = compute_ratings([_live("a.txt"), _live("b.txt")], [Comparison("a.txt", "b.txt", 1, 10, 1)])
        assert ratings["a.txt"].rating > ratings["b.txt"].rating

    def test_negative_magnitude_reverses(self) -> None:
        entries = [_live("a"), _live("b")]
        reversed_ = compute_ratings(entries, [Comparison("a", "b", -1, 10, 1)], NO_DECAY)
        plain = compute_ratings(entries, [Comparison("b", "a", 1, 10, 1)], NO_DECAY)
        assert reversed_ == plain

    def test_deterministic(self) -> None:
        entries = [_live(p) for p in "abcde"]
        rng = random.Random(7)
        comparisons = []
        for seq in range(200):
            winner, loser = rng.sample("abcde", 2)
            comparisons.append(Comparison(winner, loser, 1, 1000 + seq * 3600, seq))
        cfg = RatingConfig()
        assert compute_ratings(entries, comparisons, cfg) == compute_ratings(entries, list(comparisons), cfg)

    def test_input_order_does_not_matter(self) -> None:
        entries = [_live(p) for p in "abc"]
        comparisons = [
            Comparison("a", "b", 1, 10, 1),
            Comparison("b", "c", 1, 10, 2),
            Comparison("c", "a", 1, 10, 3),
            Comparison("a", "c", 1, 5, 4),
        ]
        shuffled = list(comparisons)
        random.Random(3).shuffle(shuffled)
        assert compute_ratings(entries, shuffled, NO_DECAY) == compute_ratings(entries, comparisons, NO_DECAY)

    def test_equal_timestamps_replay_in_insertion_order(self) -> None:
        entries = [_live(p) for p in "abc"]
        first = [Comparison("a", "b", 1, 10, 1), Comparison("b", "c", 1, 10, 2)]
        swapped = [Comparison("a", "b", 1, 10, 2), Comparison("b", "c", 1, 10, 1)]
        assert compute_ratings(entries, first, NO_DECAY) != compute_ratings(entries, swapped, NO_DECAY)

    def test_comparisons_with_deleted_side_are_ignored(self) -> None:
        live = [_live("a"), _live("b")]
        base = [Comparison("a", "b", 1, 10, 1)]
        with_ghost = [*base, Comparison("c", "a", 1, 20, 2), Comparison("b", "c", 1, 30, 3)]

        expected = compute_ratings(live, base, NO_DECAY)
        assert compute_ratings([*live, _deleted("c")], with_ghost, NO_DECAY) == expected
        assert "c" not in compute_ratings([*live, _deleted("c")], with_ghost, NO_DECAY)

    def test_comparisons_with_unknown_paths_are_ignored(self) -> None:
        ratings = compute_ratings([_live("a")], [Comparison("a", "zzz", 1, 10, 1)], NO_DECAY)
        assert ratings == {"a": prior(NO_DECAY)}

    def test_more_comparisons_shrink_deviation(self) -> None:
        entries = [_live("a"), _live("b")]
        one = compute_ratings(entries, [Comparison("a", "b", 1, 10, 1)], NO_DECAY)
        many = compute_ratings(
            entries, [Comparison("a", "b", 0, 10 + i, i) for i in range(10)], NO_DECAY
        )
        assert many["a"].deviation < one["a"].deviation
        assert many["a"].matches == 10


class TestRank:
    def test_sorted_ascending_by_truncated_rating_then_path(self) -> None:
        entries = [_live("b"), _live("a"), _live("c")]
        ratings = {
            "a": Rating(rating=1500.9, deviation=350.0),
            "b": Rating(rating=1500.1, deviation=350.0),
            "c": Rating(rating=1400.0, deviation=350.0),
        }
        assert [r.path for r in rank(entries, ratings)] == ["c", "a", "b"]

    def test_unrated_entries_get_prior(self) -> None:
        (ranked,) = rank([_deleted("x")], {})
        assert ranked.rating == prior(RatingConfig())
        assert ranked.is_deleted
