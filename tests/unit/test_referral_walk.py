"""Tests for the fifteen-level referral walk."""

import pytest

from presale.config.sale_constants import REFERRAL_RATES, REFERRAL_TOTAL_PERCENT
from presale.core.ledger import InMemoryAssetLedger
from presale.core.referral_walk import ReferralGraph, walk_referrals
from presale.utils.exceptions import Overflow
from presale.utils.safe_math import UINT256_MAX
from presale.utils.validation import ZERO_ADDRESS
from tests.helpers import BUYER, REFERRER_1, REFERRER_2, REFERRER_3, SALE_HOLDER, filler


class FakeGraph:
    """Referral graph built from explicit parent links and referee counts."""

    def __init__(self, parents: dict[str, str], counts: dict[str, int]) -> None:
        self.parents = parents
        self.counts = counts

    def referrer_of(self, account: str) -> str:
        return self.parents.get(account, account)

    def qualifying_referral_count(self, account: str) -> int:
        return self.counts.get(account, 0)


def chain(length: int) -> list[str]:
    """Referrer addresses above BUYER, nearest first."""
    return [filler(100 + i) for i in range(length)]


def chain_graph(referrers: list[str], counts: list[int]) -> FakeGraph:
    parents = {}
    cursor = BUYER
    for referrer in referrers:
        parents[cursor] = referrer
        cursor = referrer
    return FakeGraph(parents, dict(zip(referrers, counts)))


class TestReferralRates:
    """Tests for the rate table."""

    def test_rate_table(self) -> None:
        assert REFERRAL_RATES == (6, 6, 5, 4, 3, 2, 1, 1, 1, 1, 1, 1, 1, 1, 1)
        assert len(REFERRAL_RATES) == 15
        assert REFERRAL_TOTAL_PERCENT == 35


class TestWalkReferrals:
    """Tests for walk_referrals."""

    # === Qualified chains ===

    def test_three_level_qualifying_chain(self) -> None:
        graph = chain_graph([REFERRER_1, REFERRER_2, REFERRER_3], [1, 2, 3])

        result = walk_referrals(BUYER, graph)

        assert result.referrers == [REFERRER_1, REFERRER_2, REFERRER_3]
        assert [r.percent for r in result.rewards] == [6, 6, 5]
        assert [r.level for r in result.rewards] == [0, 1, 2]
        assert result.assigned_percent == 17
        assert result.residual_percent == 18

    def test_full_depth_chain_assigns_everything(self) -> None:
        referrers = chain(20)
        graph = chain_graph(referrers, [100] * 20)

        result = walk_referrals(BUYER, graph)

        assert len(result.rewards) == 15
        assert result.referrers == referrers[:15]
        assert result.residual_percent == 0
        assert result.assigned_percent == 35

    # === Qualification ===

    def test_unqualified_level_is_skipped_but_walk_continues(self) -> None:
        """Level 1 needs two referees; the walk climbs past it."""
        graph = chain_graph([REFERRER_1, REFERRER_2, REFERRER_3], [1, 1, 3])

        result = walk_referrals(BUYER, graph)

        assert result.referrers == [REFERRER_1, REFERRER_3]
        assert [r.level for r in result.rewards] == [0, 2]
        assert result.residual_percent == 35 - 6 - 5

    def test_qualification_needs_more_referees_than_level(self) -> None:
        graph = chain_graph([REFERRER_1, REFERRER_2], [1, 2])
        assert walk_referrals(BUYER, graph).referrers == [REFERRER_1, REFERRER_2]

        graph = chain_graph([REFERRER_1, REFERRER_2], [1, 1])
        assert walk_referrals(BUYER, graph).referrers == [REFERRER_1]

    def test_no_referee_counts_means_nothing_assigned(self) -> None:
        graph = chain_graph([REFERRER_1, REFERRER_2], [0, 0])

        result = walk_referrals(BUYER, graph)

        assert result.rewards == ()
        assert result.residual_percent == REFERRAL_TOTAL_PERCENT

    # === Termination ===

    def test_buyer_without_referrer(self) -> None:
        result = walk_referrals(BUYER, FakeGraph({}, {}))

        assert result.rewards == ()
        assert result.residual_percent == 35

    def test_zero_address_ends_walk(self) -> None:
        graph = FakeGraph({BUYER: REFERRER_1, REFERRER_1: ZERO_ADDRESS}, {REFERRER_1: 1})

        result = walk_referrals(BUYER, graph)

        assert result.referrers == [REFERRER_1]
        assert result.residual_percent == 29

    def test_cycle_is_bounded_by_depth(self) -> None:
        """A referral cycle can never produce more than fifteen levels."""
        graph = FakeGraph(
            {BUYER: REFERRER_1, REFERRER_1: REFERRER_2, REFERRER_2: BUYER},
            {BUYER: 50, REFERRER_1: 50, REFERRER_2: 50},
        )

        result = walk_referrals(BUYER, graph)

        assert len(result.rewards) == 15
        assert result.residual_percent == 0

    # === Inputs ===

    def test_custom_rates(self) -> None:
        graph = chain_graph([REFERRER_1, REFERRER_2], [5, 5])

        result = walk_referrals(BUYER, graph, rates=(10, 5, 1))

        assert result.assigned_percent == 15
        assert result.residual_percent == 1

    def test_rate_total_is_checked(self) -> None:
        with pytest.raises(Overflow):
            walk_referrals(BUYER, FakeGraph({}, {}), rates=(UINT256_MAX, 1))

    def test_referrers_are_lowercased(self) -> None:
        mixed = "0x" + "Ab" * 20
        graph = FakeGraph({BUYER: mixed}, {mixed: 1})

        result = walk_referrals(BUYER, graph)

        assert result.referrers == [mixed.lower()]

    def test_in_memory_ledger_is_a_referral_graph(self) -> None:
        ledger = InMemoryAssetLedger(SALE_HOLDER)
        ledger.register_referral(BUYER, REFERRER_1)

        assert isinstance(ledger, ReferralGraph)
        assert walk_referrals(BUYER, ledger).referrers == [REFERRER_1]


@pytest.mark.parametrize("qualified_levels", [0, 1, 7, 15])
def test_assigned_plus_residual_is_total(qualified_levels: int) -> None:
    referrers = chain(15)
    counts = [100] * qualified_levels + [0] * (15 - qualified_levels)
    result = walk_referrals(BUYER, chain_graph(referrers, counts))

    assert result.assigned_percent + result.residual_percent == REFERRAL_TOTAL_PERCENT
    assert result.assigned_percent == sum(REFERRAL_RATES[:qualified_levels])
