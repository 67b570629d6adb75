"""Tests for read-only reporting views."""

import pytest
from web3 import Web3

from presale.core.engine import TokenSale
from presale.core.reporting import SaleReporter, format_status
from tests.helpers import BUYER, HALF_ETHER, OTHER_BUYER, OWNER, REFERRER_1, TREASURY


class TestSaleReporter:
    """Views over a sale with stage 0 sold out."""

    @pytest.fixture
    def sold(self, sale: TokenSale, reporter: SaleReporter) -> SaleReporter:
        sale.purchase(BUYER, HALF_ETHER)
        return reporter

    # === Aggregate status ===

    def test_fresh_status(self, reporter: SaleReporter) -> None:
        status = reporter.status()

        assert status.stage == 0
        assert status.season == 1
        assert status.is_open is True
        assert status.price == 1_000
        assert status.exchange_rate == 200_000_000
        assert status.stage_dollar_cap == 100_000_000
        assert status.stage_dollars_remaining == 100_000_000
        assert status.total_tx_count == 0

    def test_status_after_purchase(self, sold: SaleReporter) -> None:
        status = sold.status()

        assert status.stage == 1
        assert status.price == 1_010
        assert status.stage_dollar_cap == 101_000_000
        assert status.stage_dollars_sold == 0
        assert status.total_tx_count == 1
        assert status.total_asset_issued == 100_000_000_000
        assert status.total_currency_sold == HALF_ETHER

    def test_closed_sale_status(self, small_sale: TokenSale) -> None:
        small_sale.purchase(BUYER, Web3.to_wei(2, "ether"))
        status = SaleReporter(small_sale).status()

        assert status.is_open is False
        assert status.stage_dollar_cap == 0
        assert status.stage_dollars_remaining == 0

    # === Stage and season ===

    def test_stage_status(self, sold: SaleReporter) -> None:
        closed = sold.stage_status(0)
        assert closed.dollars_sold == 100_000_000
        assert closed.dollars_remaining == 0
        assert closed.asset_cap == 100_000_000_000
        assert closed.is_closed is True

        upcoming = sold.stage_status(5)
        assert upcoming.dollars_sold == 0
        assert upcoming.price == 1_050
        assert upcoming.is_closed is False

    @pytest.mark.parametrize("stage", [-1, 60_001])
    def test_stage_out_of_range(self, reporter: SaleReporter, stage: int) -> None:
        with pytest.raises(ValueError):
            reporter.stage_status(stage)

    def test_season_status(self, sold: SaleReporter) -> None:
        season = sold.season_status(1)

        assert (season.first_stage, season.last_stage) == (0, 600)
        assert season.currency_sold == HALF_ETHER
        assert season.top_sales == HALF_ETHER * 15 // 100
        assert season.top_sales_remaining == season.top_sales
        assert season.is_closed is False

    def test_season_status_after_withdrawal(self, sale: TokenSale, sold: SaleReporter) -> None:
        sale.withdraw_top_sales(OWNER, 1, TREASURY, 1_000)

        season = sold.season_status(1)
        assert season.top_sales_withdrawn == 1_000
        assert season.top_sales_remaining == season.top_sales - 1_000

    @pytest.mark.parametrize("season", [0, 101])
    def test_season_out_of_range(self, reporter: SaleReporter, season: int) -> None:
        with pytest.raises(ValueError):
            reporter.season_status(season)

    # === Accounts ===

    def test_account_status(self, sold: SaleReporter) -> None:
        account = sold.account_status(BUYER)

        assert account.asset_issued == 100_000_000_000
        assert account.currency_spent == HALF_ETHER
        assert account.dollars_spent == 100_000_000
        assert account.tx_count == 1

    def test_unknown_account_is_empty(self, sold: SaleReporter) -> None:
        account = sold.account_status(OTHER_BUYER)
        assert account.tx_count == 0
        assert account.asset_issued == 0

    def test_season_referrers_and_volume(self, sale, reporter, referral_chain) -> None:
        sale.purchase(BUYER, HALF_ETHER)

        assert reporter.season_referrers(1) == referral_chain
        assert reporter.season_referrers(2) == []

        volume = reporter.season_account_volume(1, REFERRER_1)
        assert volume.referred_dollars == 100_000_000
        assert volume.purchased_dollars == 0
        assert reporter.season_account_volume(1, BUYER).purchased_dollars == 100_000_000

    def test_fund_status(self, sold: SaleReporter) -> None:
        funds = sold.fund_status()

        assert funds.total_sold == HALF_ETHER
        assert funds.total_top_sales == HALF_ETHER * 15 // 100
        assert funds.unaccounted_remainder == funds.total_sold - funds.total_top_sales

    # === Idempotence ===

    def test_views_are_idempotent(self, sale: TokenSale, sold: SaleReporter) -> None:
        stages_before = set(sale.state.stages)
        accounts_before = set(sale.state.accounts)

        def views() -> list:
            return [
                sold.status(),
                sold.stage_status(42),
                sold.season_status(3),
                sold.account_status(OTHER_BUYER),
                sold.season_referrers(9),
                sold.season_account_volume(4, OTHER_BUYER),
                sold.fund_status(),
            ]

        assert views() == views()
        assert set(sale.state.stages) == stages_before
        assert set(sale.state.accounts) == accounts_before
        assert 3 not in sale.state.seasons
        assert 4 not in sale.state.season_referrals


class TestFormatStatus:
    """Tests for format_status."""

    def test_open_sale(self, sale: TokenSale, reporter: SaleReporter) -> None:
        sale.purchase(BUYER, HALF_ETHER)

        text = format_status(reporter.status())

        assert "Stage 1, season 1 (open)" in text
        assert "Price: $0.001010" in text
        assert "Top-sales ratio: 15.00%" in text
        assert "Stage sold: $0.00 of $101.00" in text
        assert "Issued: 100,000.00 units" in text
        assert "Sold: 0.500000 ETH ($100.00)" in text
        assert "Unaccounted" not in text

    def test_paused_with_funds(self, sale: TokenSale, reporter: SaleReporter) -> None:
        sale.pause(OWNER)

        text = format_status(reporter.status(), reporter.fund_status())

        assert "(open, paused)" in text
        assert "Unaccounted: 0.000000 ETH" in text
