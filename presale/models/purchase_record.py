"""
PurchaseRecord model.

Journal of committed purchases, one row per settled payment.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from presale.models.base import Base
from presale.models.types import AddressType, UInt256


if TYPE_CHECKING:
    from presale.models.referral_payout_record import ReferralPayoutRecord


class PurchaseRecord(Base):
    """
    PurchaseRecord entity.

    Attributes:
        id: Primary key
        buyer: Buyer address
        value: Wei supplied
        currency_used: Wei converted into units
        refunded: Wei returned to the buyer
        dollars_used: Dollars converted (6 decimals)
        asset_issued: Units issued at stage prices
        bonus: Volume bonus units
        whitelist: Whitelist allocation units
        referral_paid: Wei paid to referrers
        pending_added: Wei escrowed as pending
        top_sales_added: Wei added to season top-sales pools
        team_swept: Wei swept to the team
        start_stage / end_stage: Stage before and after settlement
        start_season / end_season: Season before and after settlement
        sale_closed: Whether the purchase closed the sale
        created_at: When the purchase was journaled
    """

    __tablename__ = "purchases"
    __table_args__ = (
        Index("idx_purchases_buyer_created", "buyer", "created_at"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    buyer: Mapped[str] = mapped_column(AddressType, nullable=False, index=True)

    # Currency movements (wei)
    value: Mapped[int] = mapped_column(UInt256, nullable=False)
    currency_used: Mapped[int] = mapped_column(UInt256, nullable=False)
    refunded: Mapped[int] = mapped_column(UInt256, nullable=False, default=0)
    referral_paid: Mapped[int] = mapped_column(UInt256, nullable=False, default=0)
    pending_added: Mapped[int] = mapped_column(UInt256, nullable=False, default=0)
    top_sales_added: Mapped[int] = mapped_column(UInt256, nullable=False, default=0)
    team_swept: Mapped[int] = mapped_column(UInt256, nullable=False, default=0)

    dollars_used: Mapped[int] = mapped_column(UInt256, nullable=False)

    # Issued units
    asset_issued: Mapped[int] = mapped_column(UInt256, nullable=False)
    bonus: Mapped[int] = mapped_column(UInt256, nullable=False, default=0)
    whitelist: Mapped[int] = mapped_column(UInt256, nullable=False, default=0)

    # Progression
    start_stage: Mapped[int] = mapped_column(Integer, nullable=False)
    end_stage: Mapped[int] = mapped_column(Integer, nullable=False)
    start_season: Mapped[int] = mapped_column(Integer, nullable=False)
    end_season: Mapped[int] = mapped_column(Integer, nullable=False)
    sale_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    payouts: Mapped[list["ReferralPayoutRecord"]] = relationship(
        "ReferralPayoutRecord",
        back_populates="purchase",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ReferralPayoutRecord.level",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<PurchaseRecord(id={self.id}, buyer={self.buyer}, "
            f"currency_used={self.currency_used}, stages={self.start_stage}->{self.end_stage})>"
        )
