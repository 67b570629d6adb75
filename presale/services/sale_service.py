"""
Sale service.

Async entry point to a TokenSale. Serializes every call behind one lock
per sale and journals committed purchases in the same all-or-nothing
block as the engine update. Reads taken through the service wait for
pending purchases; a direct SaleReporter read during one raises
SaleBusy instead of returning uncommitted numbers.

A sale is driven from one running event loop at a time. The lock is
bound to the loop it was created in and is replaced when the sale is
next used from a different loop.
"""

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar
from weakref import WeakKeyDictionary

from sqlalchemy.ext.asyncio import AsyncSession

from presale.core.engine import TokenSale
from presale.core.models import FundStatus, PurchaseReceipt, SaleStatus
from presale.core.reporting import SaleReporter
from presale.models.purchase_record import PurchaseRecord
from presale.models.referral_payout_record import ReferralPayoutRecord
from presale.repositories.purchase_repository import PurchaseRepository
from presale.repositories.referral_payout_repository import ReferralPayoutRepository
from presale.services.base_service import BaseService, log_operation, transaction


T = TypeVar("T")

# One writer lock per sale instance and event loop, shared by all services using it
_sale_locks: "WeakKeyDictionary[TokenSale, tuple[asyncio.AbstractEventLoop, asyncio.Lock]]" = (
    WeakKeyDictionary()
)


def get_sale_lock(sale: TokenSale) -> asyncio.Lock:
    """
    Get the writer lock of a sale for the running event loop.

    Raises:
        RuntimeError: Called outside a running event loop
    """
    loop = asyncio.get_running_loop()
    entry = _sale_locks.get(sale)
    if entry is None or entry[0] is not loop:
        entry = (loop, asyncio.Lock())
        _sale_locks[sale] = entry
    return entry[1]


class SaleService(BaseService):
    """
    Serialized, journaled access to a sale.

    Example:
        async with session_maker() as session:
            service = SaleService(session, sale)
            receipt = await service.purchase(buyer, value)
    """

    def __init__(self, session: AsyncSession, sale: TokenSale) -> None:
        """
        Initialize sale service.

        Args:
            session: Async database session for the journal
            sale: Sale engine
        """
        super().__init__(session)
        self.sale = sale
        self.reporter = SaleReporter(sale)
        self.purchase_repo = PurchaseRepository(session)
        self.payout_repo = ReferralPayoutRepository(session)

    @property
    def lock(self) -> asyncio.Lock:
        return get_sale_lock(self.sale)

    @log_operation
    async def purchase(
        self, buyer: str, value: int, caller: str | None = None
    ) -> PurchaseReceipt:
        """
        Settle and journal a purchase.

        The engine update, the journal write and the commit succeed or
        fail together.

        Args:
            buyer: Buyer address
            value: Wei supplied
            caller: Submitting account when it differs from the buyer

        Returns:
            PurchaseReceipt of the committed purchase
        """
        async with self.lock:
            with self.sale.atomic():
                return await self._settle_and_journal(buyer, value, caller)

    @transaction
    async def _settle_and_journal(
        self, buyer: str, value: int, caller: str | None
    ) -> PurchaseReceipt:
        receipt = self.sale.purchase(buyer, value, caller)
        if receipt.counted:
            record = await self.purchase_repo.record_receipt(receipt)
            self.logger.info(
                "Purchase journaled",
                extra={
                    "purchase_id": record.id,
                    "buyer": receipt.buyer,
                    "currency_used": str(receipt.currency_used),
                    "stages": f"{receipt.start_stage}->{receipt.end_stage}",
                },
            )
        return receipt

    async def execute(self, operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Run any other mutating engine call under the writer lock.

        Example:
            await service.execute(sale.withdraw_pending, owner, treasury, amount)
        """
        async with self.lock:
            return operation(*args, **kwargs)

    async def get_purchases(self, buyer: str, limit: int | None = None) -> list[PurchaseRecord]:
        """Journaled purchases of a buyer, oldest first."""
        return await self.purchase_repo.get_by_buyer(buyer, limit=limit)

    async def get_referral_payouts(self, referrer: str) -> list[ReferralPayoutRecord]:
        """Journaled referral payouts of a referrer."""
        return await self.payout_repo.get_by_referrer(referrer)

    async def get_referral_total(self, referrer: str) -> int:
        """Total wei journaled as paid to a referrer."""
        return await self.payout_repo.get_total_paid(referrer)

    async def get_status(self) -> SaleStatus:
        """Sale status once no purchase is pending."""
        async with self.lock:
            return self.reporter.status()

    async def get_fund_status(self) -> FundStatus:
        """Fund buckets once no purchase is pending."""
        async with self.lock:
            return self.reporter.fund_status()
