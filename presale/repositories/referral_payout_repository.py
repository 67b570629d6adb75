"""
Referral payout repository.

Data access layer for journaled referral commissions.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from presale.models.referral_payout_record import ReferralPayoutRecord
from presale.repositories.base import BaseRepository


class ReferralPayoutRepository(BaseRepository[ReferralPayoutRecord]):
    """Referral payout repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral payout repository."""
        super().__init__(ReferralPayoutRecord, session)

    async def get_by_referrer(
        self, referrer: str, level: int | None = None
    ) -> list[ReferralPayoutRecord]:
        """
        Get payouts received by a referrer.

        Args:
            referrer: Referrer address
            level: Optional level filter

        Returns:
            List of payouts
        """
        filters: dict = {"referrer": referrer.lower()}
        if level is not None:
            filters["level"] = level

        return await self.find_by(**filters)

    async def get_total_paid(self, referrer: str) -> int:
        """Total wei journaled as paid to a referrer."""
        payouts = await self.get_by_referrer(referrer)
        return sum(payout.amount for payout in payouts)
