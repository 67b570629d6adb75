"""
Purchase repository.

Data access layer for the purchase journal.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from presale.core.models import PurchaseReceipt
from presale.models.purchase_record import PurchaseRecord
from presale.models.referral_payout_record import ReferralPayoutRecord
from presale.repositories.base import BaseRepository


class PurchaseRepository(BaseRepository[PurchaseRecord]):
    """Purchase repository with journal-specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize purchase repository."""
        super().__init__(PurchaseRecord, session)

    async def record_receipt(self, receipt: PurchaseReceipt) -> PurchaseRecord:
        """
        Journal a settled purchase with its referral payouts.

        Args:
            receipt: Receipt returned by the engine

        Returns:
            Flushed PurchaseRecord
        """
        record = PurchaseRecord(
            buyer=receipt.buyer,
            value=receipt.value,
            currency_used=receipt.currency_used,
            refunded=receipt.refunded,
            referral_paid=receipt.referral_paid,
            pending_added=receipt.pending_added,
            top_sales_added=receipt.top_sales_added,
            team_swept=receipt.team_swept,
            dollars_used=receipt.dollars_used,
            asset_issued=receipt.asset_issued,
            bonus=receipt.bonus,
            whitelist=receipt.whitelist,
            start_stage=receipt.start_stage,
            end_stage=receipt.end_stage,
            start_season=receipt.start_season,
            end_season=receipt.end_season,
            sale_closed=receipt.sale_closed,
            payouts=[
                ReferralPayoutRecord(
                    level=payout.level,
                    referrer=payout.referrer,
                    percent=payout.percent,
                    amount=payout.amount,
                )
                for payout in receipt.referral_payouts
            ],
        )
        return await self.add(record)

    async def get_by_buyer(
        self, buyer: str, limit: int | None = None
    ) -> list[PurchaseRecord]:
        """
        Get purchases of a buyer, oldest first.

        Args:
            buyer: Buyer address
            limit: Optional max number of results

        Returns:
            List of purchases
        """
        return await self.find_all(limit=limit, buyer=buyer.lower())

    async def get_total_currency_used(self, buyer: str | None = None) -> int:
        """
        Sum of wei used, optionally for one buyer.

        Amounts are stored as strings, so the sum is taken in Python.
        """
        filters = {"buyer": buyer.lower()} if buyer else {}
        purchases = await self.find_by(**filters)
        return sum(purchase.currency_used for purchase in purchases)
