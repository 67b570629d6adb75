"""
ReferralPayoutRecord model.

One referral commission paid as part of a purchase.
"""

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from presale.models.base import Base
from presale.models.types import AddressType, UInt256


if TYPE_CHECKING:
    from presale.models.purchase_record import PurchaseRecord


class ReferralPayoutRecord(Base):
    """
    ReferralPayoutRecord entity.

    Attributes:
        id: Primary key
        purchase_id: Purchase that paid the commission
        level: Referral level (0 = direct referrer)
        referrer: Referrer address
        percent: Percent of the purchase's used wei
        amount: Wei paid
    """

    __tablename__ = "referral_payouts"
    __table_args__ = (
        Index("idx_referral_payouts_referrer", "referrer"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    purchase_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("purchases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    level: Mapped[int] = mapped_column(Integer, nullable=False)
    referrer: Mapped[str] = mapped_column(AddressType, nullable=False)
    percent: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[int] = mapped_column(UInt256, nullable=False)

    purchase: Mapped["PurchaseRecord"] = relationship(
        "PurchaseRecord", back_populates="payouts"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralPayoutRecord(id={self.id}, purchase_id={self.purchase_id}, "
            f"level={self.level}, referrer={self.referrer}, amount={self.amount})>"
        )
