"""
Fund accounting.

Read-only bucket sums and the owner-gated withdrawals of the top-sales,
pending-escrow and team buckets.
"""

from typing import TYPE_CHECKING

from loguru import logger

from presale.core.events import EventKind, SaleEvent
from presale.utils import safe_math as sm
from presale.utils.exceptions import InvalidAmount, TransferRejected
from presale.utils.validation import require_destination


if TYPE_CHECKING:
    from presale.core.access import AccessControl
    from presale.core.ledger import NativeWallet
    from presale.core.state import SaleState


class FundAccounting:
    """
    Fund buckets of the sale.

    Every wei sold belongs to exactly one of: referral paid, top-sales
    pool, pending escrow, team paid, or the unaccounted remainder owed to
    the team. Mixed into the sale engine, which provides `state`,
    `access`, `wallet`, `atomic()` and `_emit()`.
    """

    state: "SaleState"
    access: "AccessControl"
    wallet: "NativeWallet"

    @property
    def total_sold(self) -> int:
        return self.state.total_currency_sold

    @property
    def total_referral_paid(self) -> int:
        return self.state.total_referral_paid

    @property
    def total_top_sales(self) -> int:
        return self.state.total_top_sales

    @property
    def total_team_paid(self) -> int:
        return self.state.total_team_paid

    @property
    def total_pending(self) -> int:
        return self.state.total_pending

    @property
    def total_pending_paid(self) -> int:
        return self.state.total_pending_paid

    @property
    def pending_remaining(self) -> int:
        return sm.sub(self.state.total_pending, self.state.total_pending_paid)

    @property
    def unaccounted_remainder(self) -> int:
        """Wei sold but not yet earmarked; owed to the team."""
        return sm.sub(self.state.total_currency_sold, self.state.earmarked)

    def season_top_sales_remaining(self, season: int) -> int:
        record = self.state.seasons.get(season)
        if record is None:
            return 0
        return sm.sub(record.top_sales, record.top_sales_withdrawn)

    def withdraw_top_sales(self, caller: str, season: int, to: str, amount: int) -> int:
        """
        Withdraw from a season's top-sales pool.

        Args:
            caller: Must be the owner
            season: Season whose pool is drawn
            to: Destination address
            amount: Wei to withdraw

        Returns:
            Amount withdrawn

        Raises:
            Unauthorized: Caller is not the owner
            InvalidAddress: Destination is empty or zero
            InvalidAmount: Amount exceeds the season's remaining pool
        """
        with self.atomic():
            self.access.require_owner(caller)
            to = require_destination(to)
            remaining = self.season_top_sales_remaining(season)
            self._require_withdrawable(amount, remaining, f"season {season} top sales")

            record = self.state.season_record(season)
            record.top_sales_withdrawn = sm.add(record.top_sales_withdrawn, amount)
            self._send(to, amount, "top_sales")
            self._emit(SaleEvent(
                kind=EventKind.WITHDRAWAL, account=to, amount=amount,
                season=season, bucket="top_sales",
            ))
        return amount

    def withdraw_pending(self, caller: str, to: str, amount: int) -> int:
        """
        Withdraw from the pending-escrow bucket.

        Raises:
            Unauthorized: Caller is not the owner
            InvalidAddress: Destination is empty or zero
            InvalidAmount: Amount exceeds pending_remaining
        """
        with self.atomic():
            self.access.require_owner(caller)
            to = require_destination(to)
            self._require_withdrawable(amount, self.pending_remaining, "pending escrow")

            self.state.total_pending_paid = sm.add(self.state.total_pending_paid, amount)
            self._send(to, amount, "pending")
            self._emit(SaleEvent(
                kind=EventKind.WITHDRAWAL, account=to, amount=amount, bucket="pending",
            ))
        return amount

    def withdraw_team(self, caller: str, to: str, amount: int) -> int:
        """
        Withdraw from the unaccounted remainder owed to the team.

        Raises:
            Unauthorized: Caller is not the owner
            InvalidAddress: Destination is empty or zero
            InvalidAmount: Amount exceeds the unaccounted remainder
        """
        with self.atomic():
            self.access.require_owner(caller)
            to = require_destination(to)
            self._require_withdrawable(amount, self.unaccounted_remainder, "team remainder")

            self.state.total_team_paid = sm.add(self.state.total_team_paid, amount)
            self._send(to, amount, "team")
            self._emit(SaleEvent(
                kind=EventKind.WITHDRAWAL, account=to, amount=amount, bucket="team",
            ))
        return amount

    def _require_withdrawable(self, amount: int, remaining: int, bucket: str) -> None:
        if amount <= 0:
            raise InvalidAmount(f"Withdrawal from {bucket} must be positive")
        if amount > remaining:
            raise InvalidAmount(
                f"Withdrawal of {amount} exceeds {bucket} balance {remaining}"
            )

    def _send(self, to: str, amount: int, purpose: str) -> None:
        """Move native currency out of the sale or fail the whole call."""
        if not self.wallet.send(to, amount):
            logger.error(
                "Native transfer rejected",
                extra={"to": to, "amount": str(amount), "purpose": purpose},
            )
            raise TransferRejected(f"{purpose} transfer of {amount} to {to} rejected")
        logger.debug(
            "Native transfer sent",
            extra={"to": to, "amount": str(amount), "purpose": purpose},
        )
