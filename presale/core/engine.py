"""
Sale settlement engine.

Converts incoming native-currency payments into issued asset units
stage by stage, pays bonuses, whitelist allocations and referral
commissions, and keeps every fund bucket consistent. Each purchase and
administrative call is atomic: on any error the sale state and all
transactional collaborators are restored before the error propagates.
"""

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from functools import reduce

from loguru import logger

from presale.config.sale_constants import (
    BONUS_PERCENT,
    REFERRAL_TOTAL_PERCENT,
    TOP_SALES_RATIO_BASE,
    WEI_PER_ETHER,
)
from presale.config.settings import SaleSettings
from presale.core.access import AccessControl
from presale.core.accounting import FundAccounting
from presale.core.curve import PriceCurve
from presale.core.events import EventKind, SaleEvent
from presale.core.ledger import AssetLedger, NativeWallet, TokenLedger, Transactional
from presale.core.models import PurchaseReceipt, ReferralPayout, StagePortion
from presale.core.referral_walk import walk_referrals
from presale.core.state import SaleState
from presale.utils import safe_math as sm
from presale.utils.exceptions import (
    InsufficientBudget,
    InvalidAmount,
    RateNotSet,
    SaleBusy,
    SaleNotOpen,
    TransferRejected,
)
from presale.utils.safe_math import UINT16_BITS
from presale.utils.validation import require_destination


EventListener = Callable[[SaleEvent], None]

# Atomic blocks opened by the current task
_held_blocks: ContextVar[frozenset] = ContextVar("held_sale_blocks", default=frozenset())


class TokenSale(FundAccounting):
    """
    Staged, capped token sale.

    The single writer of SaleState. Not thread-safe: callers that share
    one instance across tasks must serialize mutating calls (see
    SaleService).

    Example:
        >>> sale = TokenSale(settings, ledger, wallet, owner=OWNER)
        >>> sale.add_auditor(OWNER, AUDITOR)
        >>> sale.set_exchange_rate(AUDITOR, 200_000_000)
        >>> receipt = sale.purchase(BUYER, Web3.to_wei(0.5, "ether"))
    """

    def __init__(
        self,
        config: SaleSettings,
        ledger: AssetLedger,
        wallet: NativeWallet,
        owner: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the sale.

        Args:
            config: Sale settings
            ledger: Issued-asset ledger (mint, whitelist, referral graph)
            wallet: Native-currency custody
            owner: Owner address, defaults to config.owner
            clock: Returns the current unix time
        """
        self.config = config
        self.curve = PriceCurve(config)
        self.ledger = ledger
        self.wallet = wallet
        self.clock = clock

        self.access = AccessControl(owner=owner or config.owner or "")
        self.state = SaleState(
            current_price=self.curve.stage_price(0),
            current_top_sales_ratio=self.curve.top_sales_ratio(0),
            start_time=config.start_time,
            team_recipient=config.team_recipient,
        )

        self._listeners: list[EventListener] = []
        self._events: list[SaleEvent] = []
        self._block: object | None = None

    # === State queries ===

    @property
    def is_open(self) -> bool:
        """Whether stages remain to be sold."""
        return self.state.stage <= self.config.stage_max

    @property
    def is_closed(self) -> bool:
        return not self.is_open

    def dollars_for(self, value: int) -> int:
        """Dollar value of `value` wei at the audited exchange rate."""
        return sm.mul_div(value, self.state.exchange_rate, WEI_PER_ETHER)

    def currency_for(self, dollars: int) -> int:
        """Wei needed for `dollars` at the audited exchange rate, rounded down."""
        if self.state.exchange_rate == 0:
            raise RateNotSet()
        return sm.mul_div(dollars, WEI_PER_ETHER, self.state.exchange_rate)

    # === Events ===

    def subscribe(self, listener: EventListener) -> None:
        """Register a listener called with each committed event."""
        self._listeners.append(listener)

    def _emit(self, event: SaleEvent) -> None:
        self._events.append(event)
        logger.info(
            f"Sale event: {event.kind}",
            extra=event.model_dump(exclude_none=True, mode="json"),
        )

    def _publish(self, events: list[SaleEvent]) -> None:
        for event in events:
            for listener in self._listeners:
                try:
                    listener(event)
                except Exception as e:
                    logger.error(
                        "Sale event listener failed",
                        extra={"kind": str(event.kind), "error": str(e)},
                    )

    # === Atomicity ===

    def _transactional_collaborators(self) -> list[Transactional]:
        seen: list[Transactional] = []
        for collaborator in (self.ledger, self.wallet):
            if isinstance(collaborator, Transactional) and all(collaborator is not c for c in seen):
                seen.append(collaborator)
        return seen

    @property
    def in_transaction(self) -> bool:
        """Whether an atomic block is open."""
        return self._block is not None

    def _owns_block(self) -> bool:
        return self._block is not None and self._block in _held_blocks.get()

    def require_settled(self) -> None:
        """
        Refuse to expose state while another task's block is open.

        Raises:
            SaleBusy: An atomic block opened by another task has not finished
        """
        if self._block is not None and not self._owns_block():
            raise SaleBusy()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Run a block all-or-nothing.

        Nested blocks of the same task join the outermost one; a block
        opened from another task while one is pending raises SaleBusy.
        Events are published to listeners only after the outermost block
        succeeds.
        """
        if self._block is not None:
            self.require_settled()
            yield
            return

        access = self.access.snapshot()
        checkpoints = [(c, c.checkpoint()) for c in self._transactional_collaborators()]
        self.state.begin()
        block = object()
        self._block = block
        held = _held_blocks.set(_held_blocks.get() | {block})
        self._events = []
        try:
            yield
        except BaseException:
            self.state.rollback()
            self.access.restore(access)
            for collaborator, token in reversed(checkpoints):
                collaborator.restore(token)
            self._events = []
            raise
        else:
            self.state.commit()
        finally:
            self._block = None
            _held_blocks.reset(held)

        committed, self._events = self._events, []
        self._publish(committed)

    # === Purchase ===

    def purchase(self, buyer: str, value: int, caller: str | None = None) -> PurchaseReceipt:
        """
        Settle an incoming payment.

        Args:
            buyer: Account paying and receiving the units
            value: Wei supplied
            caller: Account submitting the payment; must be a proxy
                when it differs from the buyer

        Returns:
            PurchaseReceipt describing every movement of the purchase

        Raises:
            SaleNotOpen: Paused, before start, or after the last stage
            RateNotSet: Exchange rate is unset or zero
            InvalidAmount: Value outside [min_purchase, max_purchase]
            Unauthorized: Caller is neither the buyer nor a proxy
            SaleBusy: Another task has an operation on the sale in progress
            TransferRejected: A mint or native transfer failed
            ArithmeticGuardError: Checked arithmetic failed
        """
        with self.atomic():
            return self._purchase(buyer, value, caller)

    def _require_open(self) -> None:
        if self.access.paused:
            raise SaleNotOpen("Sale is paused")
        if self.clock() < self.state.start_time:
            raise SaleNotOpen("Sale has not started")
        if self.is_closed:
            raise SaleNotOpen("Sale has closed")
        if self.state.exchange_rate <= 0:
            raise RateNotSet()

    def _require_amount(self, value: int) -> None:
        if value < self.config.min_purchase:
            raise InvalidAmount(f"Payment {value} below minimum {self.config.min_purchase}")
        if value > self.config.max_purchase:
            raise InvalidAmount(f"Payment {value} above maximum {self.config.max_purchase}")

    def _check_budget(self, iterations: int) -> None:
        if iterations >= self.config.max_stage_iterations:
            raise InsufficientBudget(
                f"Stage iteration budget of {self.config.max_stage_iterations} exhausted"
            )

    def _purchase(self, buyer: str, value: int, caller: str | None) -> PurchaseReceipt:
        buyer = require_destination(buyer)
        if caller is not None and caller.lower() != buyer:
            self.access.require_proxy(caller)
        self._require_open()
        self._require_amount(value)

        state = self.state
        start_stage, start_season = state.stage, state.season
        first_event = len(self._events)

        self.wallet.receive(buyer, value)
        dollars = self.dollars_for(value)

        portions = self._settle_stages(buyer, value, dollars)

        dollars_used = reduce(sm.add, (p.dollars for p in portions), 0)
        currency_used = reduce(sm.add, (p.currency for p in portions), 0)
        issued = reduce(sm.add, (p.units for p in portions), 0)
        top_sales_added = reduce(sm.add, (p.top_sales for p in portions), 0)
        refunded = sm.sub(value, currency_used)

        if issued:
            self._mint(buyer, issued, "purchase")
        if refunded:
            self._send(buyer, refunded, "refund")
            self._emit(SaleEvent(kind=EventKind.REFUND, account=buyer, amount=refunded))

        bonus = self._grant_bonus(buyer, value, issued)

        whitelist = 0
        payouts: list[ReferralPayout] = []
        pending_added = 0
        if issued and self.ledger.is_whitelisted(buyer):
            whitelist = self._grant_whitelist(buyer, sm.add(issued, bonus))
            payouts, pending_added = self._pay_referrals(buyer, currency_used, portions)

        self._record_totals(buyer, currency_used, dollars_used, issued, portions)
        team_swept = self._sweep_team()

        if currency_used:
            self._emit(SaleEvent(
                kind=EventKind.PURCHASE, account=buyer, amount=currency_used,
                stage=start_stage, season=start_season,
            ))

        return PurchaseReceipt(
            buyer=buyer,
            value=value,
            dollars=dollars,
            dollars_used=dollars_used,
            currency_used=currency_used,
            refunded=refunded,
            asset_issued=issued,
            bonus=bonus,
            whitelist=whitelist,
            referral_payouts=payouts,
            pending_added=pending_added,
            top_sales_added=top_sales_added,
            team_swept=team_swept,
            start_stage=start_stage,
            end_stage=state.stage,
            start_season=start_season,
            end_season=state.season,
            sale_closed=self.is_closed,
            portions=portions,
            events=self._events[first_event:],
        )

    def _settle_stages(self, buyer: str, value: int, dollars: int) -> list[StagePortion]:
        """
        Consume `dollars` stage by stage.

        Stops when the dollars run out, the sale closes, or the iteration
        budget is exhausted; whatever is left is refunded by the caller.
        """
        state = self.state
        portions: list[StagePortion] = []
        dollars_left = dollars
        currency_left = value
        iterations = 0

        while dollars_left > 0 and self.is_open:
            try:
                self._check_budget(iterations)
            except InsufficientBudget as e:
                logger.warning(
                    "Purchase stopped early",
                    extra={"buyer": buyer, "stage": state.stage, "reason": str(e)},
                )
                self._emit(SaleEvent(
                    kind=EventKind.BUDGET_EXHAUSTED, account=buyer,
                    amount=dollars_left, stage=state.stage, season=state.season,
                ))
                break
            iterations += 1

            stage, season = state.stage, state.season
            record = state.stage_record(stage)
            cap = self.curve.stage_dollar_cap(stage)
            portion = min(dollars_left, sm.sub(cap, record.dollars_sold))

            # The final portion takes all remaining wei so no dust is refunded
            if portion == dollars_left:
                currency = currency_left
            else:
                currency = min(self.currency_for(portion), currency_left)

            units = self.curve.dollars_to_units(portion, stage)
            top_sales = sm.mul_div(currency, state.current_top_sales_ratio, TOP_SALES_RATIO_BASE)

            record.dollars_sold = sm.add(record.dollars_sold, portion)
            record.asset_issued = sm.add(record.asset_issued, units)

            season_record = state.season_record(season)
            season_record.currency_sold = sm.add(season_record.currency_sold, currency)
            season_record.dollars_sold = sm.add(season_record.dollars_sold, portion)
            season_record.top_sales = sm.add(season_record.top_sales, top_sales)
            state.total_top_sales = sm.add(state.total_top_sales, top_sales)

            state.add_season_purchase(season, buyer, portion)

            portions.append(StagePortion(
                stage=stage,
                season=season,
                price=state.current_price,
                dollars=portion,
                currency=currency,
                units=units,
                top_sales=top_sales,
            ))

            dollars_left = sm.sub(dollars_left, portion)
            currency_left = sm.sub(currency_left, currency)

            if record.dollars_sold == cap:
                self._close_stage()

        return portions

    def _close_stage(self) -> None:
        """Advance past a stage whose cap is exhausted."""
        state = self.state
        closed_stage, closed_season = state.stage, state.season
        state.stage = sm.add(state.stage, 1, UINT16_BITS)
        self._emit(SaleEvent(kind=EventKind.STAGE_CLOSED, stage=closed_stage, season=closed_season))

        if self.is_closed:
            self._emit(SaleEvent(kind=EventKind.SEASON_CLOSED, stage=closed_stage, season=closed_season))
            self._emit(SaleEvent(kind=EventKind.SALE_CLOSED, stage=closed_stage, season=closed_season))
            logger.success("Sale closed", extra={"last_stage": closed_stage})
            return

        state.current_price = self.curve.stage_price(state.stage)
        state.current_top_sales_ratio = self.curve.top_sales_ratio(state.stage)

        season = self.curve.season_of(state.stage)
        if season > state.season:
            state.season = season
            self._emit(SaleEvent(kind=EventKind.SEASON_CLOSED, stage=closed_stage, season=closed_season))

    def _grant_bonus(self, buyer: str, value: int, issued: int) -> int:
        if not issued or value < self.config.bonus_threshold:
            return 0
        bonus = sm.mul_div(issued, BONUS_PERCENT, 100)
        if not bonus:
            return 0
        self._mint(buyer, bonus, "bonus")
        self.state.total_bonus_issued = sm.add(self.state.total_bonus_issued, bonus)
        account = self.state.account_record(buyer)
        account.bonus_received = sm.add(account.bonus_received, bonus)
        self._emit(SaleEvent(kind=EventKind.BONUS, account=buyer, amount=bonus))
        return bonus

    def _grant_whitelist(self, buyer: str, amount: int) -> int:
        """Mirror issued-plus-bonus units to a whitelisted buyer."""
        self._mint(buyer, amount, "whitelist")
        self.state.total_whitelist_issued = sm.add(self.state.total_whitelist_issued, amount)
        account = self.state.account_record(buyer)
        account.whitelist_received = sm.add(account.whitelist_received, amount)
        self._emit(SaleEvent(kind=EventKind.WHITELIST, account=buyer, amount=amount))
        return amount

    def _pay_referrals(
        self, buyer: str, currency_used: int, portions: list[StagePortion]
    ) -> tuple[list[ReferralPayout], int]:
        """
        Pay the referral chain of a whitelisted buyer.

        Qualifying referrers are paid their share of the wei actually used;
        the rest of the referral allowance is escrowed as pending.
        """
        state = self.state
        walk = walk_referrals(buyer, self.ledger)
        allowance = sm.mul_div(currency_used, REFERRAL_TOTAL_PERCENT, 100)

        payouts: list[ReferralPayout] = []
        paid = 0
        for reward in walk.rewards:
            amount = sm.mul_div(currency_used, reward.percent, 100)
            if amount:
                self._send(reward.referrer, amount, "referral")
            paid = sm.add(paid, amount)

            account = state.account_record(reward.referrer)
            account.referral_received = sm.add(account.referral_received, amount)
            state.total_referral_paid = sm.add(state.total_referral_paid, amount)

            for portion in portions:
                state.credit_season_referrer(portion.season, reward.referrer, portion.dollars)

            payouts.append(ReferralPayout(
                level=reward.level, referrer=reward.referrer,
                percent=reward.percent, amount=amount,
            ))
            self._emit(SaleEvent(
                kind=EventKind.REFERRAL_PAID, account=reward.referrer,
                amount=amount, level=reward.level,
            ))

        pending = sm.sub(allowance, paid)
        if pending:
            state.total_pending = sm.add(state.total_pending, pending)
            self._emit(SaleEvent(
                kind=EventKind.PENDING_ESCROWED, account=buyer, amount=pending, bucket="pending",
            ))

        logger.info(
            "Referral rewards processed",
            extra={
                "buyer": buyer,
                "levels_paid": len(payouts),
                "residual_percent": walk.residual_percent,
                "paid": str(paid),
                "pending": str(pending),
            },
        )
        return payouts, pending

    def _record_totals(
        self,
        buyer: str,
        currency_used: int,
        dollars_used: int,
        issued: int,
        portions: list[StagePortion],
    ) -> None:
        if not currency_used:
            return
        state = self.state
        state.total_tx_count = sm.add(state.total_tx_count, 1)
        state.total_currency_sold = sm.add(state.total_currency_sold, currency_used)
        state.total_dollars_sold = sm.add(state.total_dollars_sold, dollars_used)
        state.total_asset_issued = sm.add(state.total_asset_issued, issued)

        account = state.account_record(buyer)
        account.tx_count = sm.add(account.tx_count, 1)
        account.currency_spent = sm.add(account.currency_spent, currency_used)
        account.dollars_spent = sm.add(account.dollars_spent, dollars_used)
        account.asset_issued = sm.add(account.asset_issued, issued)

    def _sweep_team(self) -> int:
        """
        Pay the unaccounted remainder to the team recipient.

        While the sale is open only whole multiples of the sweep
        granularity are paid; once closed the exact remainder is paid.
        """
        recipient = self.state.team_recipient
        if not recipient:
            return 0

        remainder = self.unaccounted_remainder
        if self.is_open:
            amount = sm.sub(remainder, sm.mod(remainder, self.config.team_sweep_granularity))
        else:
            amount = remainder
        if not amount:
            return 0

        self.state.total_team_paid = sm.add(self.state.total_team_paid, amount)
        self._send(recipient, amount, "team")
        self._emit(SaleEvent(kind=EventKind.TEAM_SWEPT, account=recipient, amount=amount, bucket="team"))
        return amount

    def _mint(self, to: str, amount: int, purpose: str) -> None:
        if not self.ledger.mint(to, amount):
            logger.error(
                "Asset mint rejected",
                extra={"to": to, "amount": str(amount), "purpose": purpose},
            )
            raise TransferRejected(f"{purpose} mint of {amount} to {to} rejected")

    # === Administration ===

    def set_start_time(self, caller: str, start_time: int) -> None:
        """Set the unix time the sale opens."""
        with self.atomic():
            self.access.require_owner(caller)
            if start_time < 0:
                raise InvalidAmount("Start time must not be negative")
            self.state.start_time = start_time
        logger.info("Sale start time set", extra={"start_time": start_time})

    def set_exchange_rate(self, caller: str, rate: int) -> None:
        """
        Set the audited dollars-per-currency rate (6-decimal fixed point).

        A zero rate blocks purchases until a positive rate is set.
        """
        with self.atomic():
            self.access.require_auditor(caller)
            if rate < 0:
                raise InvalidAmount("Exchange rate must not be negative")
            previous, self.state.exchange_rate = self.state.exchange_rate, rate
        logger.info(
            "Exchange rate audited",
            extra={"auditor": caller, "previous": previous, "rate": rate},
        )

    def add_auditor(self, caller: str, account: str) -> bool:
        with self.atomic():
            self.access.require_owner(caller)
            return self.access.auditors.add(account)

    def remove_auditor(self, caller: str, account: str) -> bool:
        with self.atomic():
            self.access.require_owner(caller)
            return self.access.auditors.remove(account)

    def add_proxy(self, caller: str, account: str) -> bool:
        with self.atomic():
            self.access.require_owner(caller)
            return self.access.proxies.add(account)

    def remove_proxy(self, caller: str, account: str) -> bool:
        with self.atomic():
            self.access.require_owner(caller)
            return self.access.proxies.remove(account)

    def pause(self, caller: str) -> None:
        with self.atomic():
            self.access.require_owner(caller)
            self.access.paused = True
        logger.warning("Sale paused", extra={"by": caller})

    def unpause(self, caller: str) -> None:
        with self.atomic():
            self.access.require_owner(caller)
            self.access.paused = False
        logger.info("Sale unpaused", extra={"by": caller})

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self.atomic():
            self.access.propose_owner(caller, new_owner)

    def accept_ownership(self, caller: str) -> None:
        with self.atomic():
            self.access.accept_owner(caller)

    def set_team_recipient(self, caller: str, recipient: str | None) -> None:
        """Set or clear the address that receives the team sweep."""
        with self.atomic():
            self.access.require_owner(caller)
            self.state.team_recipient = require_destination(recipient) if recipient else None
        logger.info("Team recipient set", extra={"recipient": self.state.team_recipient})

    def rescue_tokens(self, caller: str, token: TokenLedger, to: str, amount: int) -> None:
        """Return tokens mistakenly sent to the sale."""
        with self.atomic():
            self.access.require_owner(caller)
            to = require_destination(to)
            if amount <= 0:
                raise InvalidAmount("Rescue amount must be positive")
            if not token.transfer(to, amount):
                raise TransferRejected(f"Token rescue of {amount} to {to} rejected")
        logger.info("Tokens rescued", extra={"to": to, "amount": str(amount)})
