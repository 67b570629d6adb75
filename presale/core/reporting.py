"""
Reporting views.

Read-only projections over the sale state. Views never create records,
so calling one twice without an intervening mutation returns equal
results. A view refuses to read while another task has an atomic block
open on the sale, so uncommitted changes are never reported.
"""

from typing import TYPE_CHECKING

from presale.config.sale_constants import ASSET_DECIMALS, DOLLAR_DECIMALS, TOP_SALES_RATIO_BASE
from presale.core.models import (
    AccountStatus,
    FundStatus,
    SaleStatus,
    SeasonAccountVolume,
    SeasonStatus,
    StageStatus,
)
from presale.core.state import AccountRecord, SeasonRecord, SeasonReferralRecord, StageRecord
from presale.utils.formatters import (
    format_currency,
    format_dollars,
    format_price,
    format_ratio,
    format_units,
)
from presale.utils.validation import normalize_address


if TYPE_CHECKING:
    from presale.core.engine import TokenSale


class SaleReporter:
    """Read-only views over a TokenSale."""

    def __init__(self, sale: "TokenSale") -> None:
        self.sale = sale

    def status(self) -> SaleStatus:
        self.sale.require_settled()
        sale = self.sale
        state = sale.state
        stage_sold = state.stages.get(state.stage, StageRecord()).dollars_sold
        stage_cap = sale.curve.stage_dollar_cap(state.stage) if sale.is_open else 0
        return SaleStatus(
            stage=state.stage,
            season=state.season,
            is_open=sale.is_open,
            paused=sale.access.paused,
            price=state.current_price,
            top_sales_ratio=state.current_top_sales_ratio,
            exchange_rate=state.exchange_rate,
            start_time=state.start_time,
            stage_dollar_cap=stage_cap,
            stage_dollars_sold=stage_sold,
            stage_dollars_remaining=max(stage_cap - stage_sold, 0),
            total_tx_count=state.total_tx_count,
            total_asset_issued=state.total_asset_issued,
            total_bonus_issued=state.total_bonus_issued,
            total_whitelist_issued=state.total_whitelist_issued,
            total_currency_sold=state.total_currency_sold,
            total_dollars_sold=state.total_dollars_sold,
        )

    def stage_status(self, stage: int) -> StageStatus:
        self.sale.require_settled()
        curve = self.sale.curve
        if stage < 0 or stage > self.sale.config.stage_max:
            raise ValueError(f"Stage {stage} is outside 0..{self.sale.config.stage_max}")
        record = self.sale.state.stages.get(stage, StageRecord())
        cap = curve.stage_dollar_cap(stage)
        return StageStatus(
            stage=stage,
            season=curve.season_of(stage),
            price=curve.stage_price(stage),
            dollar_cap=cap,
            asset_cap=curve.stage_asset_cap(stage),
            top_sales_ratio=curve.top_sales_ratio(stage),
            dollars_sold=record.dollars_sold,
            asset_issued=record.asset_issued,
            dollars_remaining=cap - record.dollars_sold,
            is_closed=stage < self.sale.state.stage,
        )

    def season_status(self, season: int) -> SeasonStatus:
        self.sale.require_settled()
        curve = self.sale.curve
        if season < 1 or season > curve.season_max:
            raise ValueError(f"Season {season} is outside 1..{curve.season_max}")
        first, last = curve.season_stages(season)
        record = self.sale.state.seasons.get(season, SeasonRecord())
        referrals = self.sale.state.season_referrals.get(season, SeasonReferralRecord())
        return SeasonStatus(
            season=season,
            first_stage=first,
            last_stage=last,
            currency_sold=record.currency_sold,
            dollars_sold=record.dollars_sold,
            top_sales=record.top_sales,
            top_sales_withdrawn=record.top_sales_withdrawn,
            top_sales_remaining=record.top_sales - record.top_sales_withdrawn,
            referrer_count=len(referrals.referrers),
            is_closed=self.sale.is_closed or season < self.sale.state.season,
        )

    def account_status(self, account: str) -> AccountStatus:
        self.sale.require_settled()
        account = normalize_address(account)
        record = self.sale.state.accounts.get(account, AccountRecord())
        return AccountStatus(
            account=account,
            asset_issued=record.asset_issued,
            bonus_received=record.bonus_received,
            whitelist_received=record.whitelist_received,
            currency_spent=record.currency_spent,
            dollars_spent=record.dollars_spent,
            referral_received=record.referral_received,
            tx_count=record.tx_count,
        )

    def season_referrers(self, season: int) -> list[str]:
        """Referrers credited in `season`, in first-seen order."""
        self.sale.require_settled()
        record = self.sale.state.season_referrals.get(season)
        return list(record.referrers) if record else []

    def season_account_volume(self, season: int, account: str) -> SeasonAccountVolume:
        self.sale.require_settled()
        account = normalize_address(account)
        record = self.sale.state.season_referrals.get(season, SeasonReferralRecord())
        return SeasonAccountVolume(
            season=season,
            account=account,
            purchased_dollars=record.purchased_dollars.get(account, 0),
            referred_dollars=record.referred_dollars.get(account, 0),
        )

    def fund_status(self) -> FundStatus:
        self.sale.require_settled()
        sale = self.sale
        return FundStatus(
            total_sold=sale.total_sold,
            total_referral_paid=sale.total_referral_paid,
            total_top_sales=sale.total_top_sales,
            total_team_paid=sale.total_team_paid,
            total_pending=sale.total_pending,
            total_pending_paid=sale.total_pending_paid,
            pending_remaining=sale.pending_remaining,
            unaccounted_remainder=sale.unaccounted_remainder,
        )


def format_status(status: SaleStatus, funds: FundStatus | None = None) -> str:
    """
    Render sale status as readable text.

    Args:
        status: Aggregate status
        funds: Optional fund buckets to append

    Returns:
        Multi-line summary
    """
    state_label = "open" if status.is_open else "closed"
    if status.paused:
        state_label += ", paused"

    lines = [
        f"Stage {status.stage}, season {status.season} ({state_label})",
        f"Price: {format_price(status.price, DOLLAR_DECIMALS)}",
        f"Top-sales ratio: {format_ratio(status.top_sales_ratio, TOP_SALES_RATIO_BASE)}",
        f"Stage sold: {format_dollars(status.stage_dollars_sold)} of "
        f"{format_dollars(status.stage_dollar_cap)}",
        f"Transactions: {status.total_tx_count}",
        f"Issued: {format_units(status.total_asset_issued, ASSET_DECIMALS)}",
        f"Bonus: {format_units(status.total_bonus_issued, ASSET_DECIMALS)}",
        f"Whitelist: {format_units(status.total_whitelist_issued, ASSET_DECIMALS)}",
        f"Sold: {format_currency(status.total_currency_sold)} "
        f"({format_dollars(status.total_dollars_sold)})",
    ]

    if funds is not None:
        lines.extend([
            f"Referral paid: {format_currency(funds.total_referral_paid)}",
            f"Top-sales pool: {format_currency(funds.total_top_sales)}",
            f"Pending remaining: {format_currency(funds.pending_remaining)}",
            f"Team paid: {format_currency(funds.total_team_paid)}",
            f"Unaccounted: {format_currency(funds.unaccounted_remainder)}",
        ])

    return "\n".join(lines)
