"""Sale events emitted while settling purchases and withdrawals."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class EventKind(StrEnum):
    """Sale event kinds."""

    PURCHASE = "purchase"
    STAGE_CLOSED = "stage_closed"
    SEASON_CLOSED = "season_closed"
    SALE_CLOSED = "sale_closed"
    BONUS = "bonus"
    WHITELIST = "whitelist"
    REFERRAL_PAID = "referral_paid"
    PENDING_ESCROWED = "pending_escrowed"
    REFUND = "refund"
    TEAM_SWEPT = "team_swept"
    BUDGET_EXHAUSTED = "budget_exhausted"
    WITHDRAWAL = "withdrawal"


class SaleEvent(BaseModel):
    """One notification from the sale."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    account: str | None = None
    amount: int = 0
    stage: int | None = None
    season: int | None = None
    level: int | None = None
    bucket: str | None = None
