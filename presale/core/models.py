"""Pydantic models returned by the sale engine and its reporting views."""

from pydantic import BaseModel, ConfigDict, Field

from presale.core.events import SaleEvent


class StagePortion(BaseModel):
    """Part of one purchase settled inside a single stage."""

    model_config = ConfigDict(frozen=True)

    stage: int = Field(..., ge=0)
    season: int = Field(..., ge=1)
    price: int = Field(..., gt=0, description="Dollar price per whole unit")
    dollars: int = Field(..., ge=0, description="Dollars consumed in the stage")
    currency: int = Field(..., ge=0, description="Wei consumed in the stage")
    units: int = Field(..., ge=0, description="Asset base units issued")
    top_sales: int = Field(default=0, ge=0, description="Wei added to the season pool")


class ReferralPayout(BaseModel):
    """Referral commission paid for one level."""

    model_config = ConfigDict(frozen=True)

    level: int = Field(..., ge=0)
    referrer: str
    percent: int = Field(..., ge=0)
    amount: int = Field(..., ge=0, description="Wei paid")


class PurchaseReceipt(BaseModel):
    """Outcome of one settled purchase."""

    model_config = ConfigDict(frozen=True)

    buyer: str
    value: int = Field(..., description="Wei supplied")
    dollars: int = Field(..., description="Dollar value of the supplied wei")
    dollars_used: int
    currency_used: int
    refunded: int
    asset_issued: int
    bonus: int = 0
    whitelist: int = 0
    referral_payouts: list[ReferralPayout] = Field(default_factory=list)
    pending_added: int = 0
    top_sales_added: int = 0
    team_swept: int = 0
    start_stage: int
    end_stage: int
    start_season: int
    end_season: int
    sale_closed: bool = False
    portions: list[StagePortion] = Field(default_factory=list)
    events: list[SaleEvent] = Field(default_factory=list)

    @property
    def referral_paid(self) -> int:
        return sum(payout.amount for payout in self.referral_payouts)

    @property
    def counted(self) -> bool:
        """Whether the purchase counts as a sale."""
        return self.currency_used > 0


class SaleStatus(BaseModel):
    """Aggregate sale status."""

    model_config = ConfigDict(frozen=True)

    stage: int
    season: int
    is_open: bool
    paused: bool
    price: int
    top_sales_ratio: int
    exchange_rate: int
    start_time: int
    stage_dollar_cap: int
    stage_dollars_sold: int
    stage_dollars_remaining: int
    total_tx_count: int
    total_asset_issued: int
    total_bonus_issued: int
    total_whitelist_issued: int
    total_currency_sold: int
    total_dollars_sold: int


class StageStatus(BaseModel):
    """Status of one stage."""

    model_config = ConfigDict(frozen=True)

    stage: int
    season: int
    price: int
    dollar_cap: int
    asset_cap: int
    top_sales_ratio: int
    dollars_sold: int
    asset_issued: int
    dollars_remaining: int
    is_closed: bool


class SeasonStatus(BaseModel):
    """Top-sales and volume status of one season."""

    model_config = ConfigDict(frozen=True)

    season: int
    first_stage: int
    last_stage: int
    currency_sold: int
    dollars_sold: int
    top_sales: int
    top_sales_withdrawn: int
    top_sales_remaining: int
    referrer_count: int
    is_closed: bool


class AccountStatus(BaseModel):
    """Cumulative activity of one account."""

    model_config = ConfigDict(frozen=True)

    account: str
    asset_issued: int
    bonus_received: int
    whitelist_received: int
    currency_spent: int
    dollars_spent: int
    referral_received: int
    tx_count: int


class SeasonAccountVolume(BaseModel):
    """Dollar volume of one account within one season."""

    model_config = ConfigDict(frozen=True)

    season: int
    account: str
    purchased_dollars: int
    referred_dollars: int


class FundStatus(BaseModel):
    """Fund buckets."""

    model_config = ConfigDict(frozen=True)

    total_sold: int
    total_referral_paid: int
    total_top_sales: int
    total_team_paid: int
    total_pending: int
    total_pending_paid: int
    pending_remaining: int
    unaccounted_remainder: int
