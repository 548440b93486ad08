"""Tests for candidate selection policies."""

from __future__ import annotations

import random

import pytest

from entryrank.errors import NotEnoughEntriesError
from entryrank.models import ContentVersion, Entry, RankedEntry, Rating
from entryrank.sampler import SelectionPolicy, select_pair


def _ranked(*deviations: float) -> list[RankedEntry]:
    return [
        RankedEntry(
            entry=Entry(path=f"e{i}.txt", versions=[ContentVersion(b"x", 0)]),
            rating=Rating(rating=1500.0 + i, deviation=dev),
        )
        for i, dev in enumerate(deviations)
    ]


class TestSelectPair:
    @pytest.mark.parametrize("policy", list(SelectionPolicy))
    def test_needs_two_entries(self, policy: SelectionPolicy) -> None:
        with pytest.raises(NotEnoughEntriesError):
            select_pair(_ranked(100.0), policy)
        with pytest.raises(NotEnoughEntriesError):
            select_pair([], policy)

    @pytest.mark.parametrize("policy", list(SelectionPolicy))
    def test_pair_is_distinct_and_in_ranked_order(self, policy: SelectionPolicy) -> None:
        ranked = _ranked(50.0, 300.0, 120.0, 350.0, 80.0)
        for seed in range(50):
            a, b = select_pair(ranked, policy, rng=random.Random(seed))
            assert a.path != b.path
            assert ranked.index(a) < ranked.index(b)

    @pytest.mark.parametrize("policy", list(SelectionPolicy))
    def test_two_entries_always_gives_both(self, policy: SelectionPolicy) -> None:
        ranked = _ranked(10.0, 20.0)
        assert select_pair(ranked, policy, rng=random.Random(1)) == (ranked[0], ranked[1])

    def test_uncertain_picks_highest_deviations(self) -> None:
        ranked = _ranked(50.0, 300.0, 120.0, 350.0, 80.0)
        a, b = select_pair(ranked, SelectionPolicy.UNCERTAIN)
        assert (a.path, b.path) == ("e1.txt", "e3.txt")

    def test_uncertain_ties_keep_ranked_order(self) -> None:
        ranked = _ranked(350.0, 350.0, 350.0)
        a, b = select_pair(ranked, "uncertain")
        assert (a.path, b.path) == ("e0.txt", "e1.txt")

    def test_weighted_never_picks_zero_deviation_when_others_can_be_picked(self) -> None:
        ranked = _ranked(0.0, 200.0, 100.0)
        for seed in range(50):
            a, b = select_pair(ranked, SelectionPolicy.WEIGHTED, rng=random.Random(seed))
            assert {a.path, b.path} == {"e1.txt", "e2.txt"}

    def test_weighted_with_all_zero_deviation_still_works(self) -> None:
        a, b = select_pair(_ranked(0.0, 0.0, 0.0), SelectionPolicy.WEIGHTED, rng=random.Random(0))
        assert a.path != b.path

    def test_mixed_respects_weights(self) -> None:
        ranked = _ranked(50.0, 300.0, 120.0, 350.0, 80.0)
        for seed in range(20):
            a, b = select_pair(
                ranked,
                SelectionPolicy.MIXED,
                rng=random.Random(seed),
                uncertain_weight=1.0,
                random_weight=0.0,
            )
            assert (a.path, b.path) == ("e1.txt", "e3.txt")

    def test_same_seed_same_pair(self) -> None:
        ranked = _ranked(50.0, 300.0, 120.0, 350.0, 80.0)
        first = select_pair(ranked, "random", rng=random.Random(99))
        second = select_pair(ranked, "random", rng=random.Random(99))
        assert first == second

    def test_unknown_policy_rejected(self) -> None:
        with pytest.raises(ValueError):
            select_pair(_ranked(1.0, 2.0), "best")
