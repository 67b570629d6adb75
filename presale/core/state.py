"""
Sale state aggregate.

Holds the global counters and every keyed record of the sale. Only the
settlement loop and fund accounting mutate it; reporting reads it.

While a change block is open (`begin` .. `commit`/`rollback`) the state
keeps an undo log: scalar counters are captured once, and each keyed
record is saved the first time it is touched, so rolling back costs only
as much as the block changed.
"""

import copy
from collections.abc import Callable
from dataclasses import dataclass, field, fields
from functools import reduce
from typing import Any

from presale.core.undo import UndoLog
from presale.utils import safe_math as sm


@dataclass
class StageRecord:
    """Cumulative sales of one stage."""

    dollars_sold: int = 0
    asset_issued: int = 0


@dataclass
class SeasonRecord:
    """Cumulative sales and top-sales pool of one season."""

    currency_sold: int = 0
    dollars_sold: int = 0
    top_sales: int = 0
    top_sales_withdrawn: int = 0


@dataclass
class AccountRecord:
    """Cumulative activity of one account."""

    asset_issued: int = 0
    bonus_received: int = 0
    whitelist_received: int = 0
    currency_spent: int = 0
    dollars_spent: int = 0
    referral_received: int = 0
    tx_count: int = 0


@dataclass
class SeasonReferralRecord:
    """
    Per-season referral and purchase volume.

    `referrers` keeps every referrer credited in the season, in first-seen
    order and without duplicates. Written only through SaleState so every
    entry change is undoable.
    """

    referred_dollars: dict[str, int] = field(default_factory=dict)
    purchased_dollars: dict[str, int] = field(default_factory=dict)
    referrers: list[str] = field(default_factory=list)


_RECORD_MAPS = ("stages", "seasons", "accounts", "season_referrals")


@dataclass
class SaleState:
    """Single owned aggregate of all sale state."""

    stage: int = 0
    season: int = 1
    current_price: int = 0
    current_top_sales_ratio: int = 0

    exchange_rate: int = 0
    start_time: int = 0
    team_recipient: str | None = None

    total_tx_count: int = 0
    total_asset_issued: int = 0
    total_bonus_issued: int = 0
    total_whitelist_issued: int = 0
    total_currency_sold: int = 0
    total_dollars_sold: int = 0
    total_referral_paid: int = 0
    total_top_sales: int = 0
    total_team_paid: int = 0
    total_pending: int = 0
    total_pending_paid: int = 0

    stages: dict[int, StageRecord] = field(default_factory=dict)
    seasons: dict[int, SeasonRecord] = field(default_factory=dict)
    accounts: dict[str, AccountRecord] = field(default_factory=dict)
    season_referrals: dict[int, SeasonReferralRecord] = field(default_factory=dict)

    _undo: UndoLog | None = field(default=None, init=False, repr=False, compare=False)
    _scalars: dict[str, Any] = field(default_factory=dict, init=False, repr=False, compare=False)
    _touched: set[tuple[str, Any]] = field(default_factory=set, init=False, repr=False, compare=False)

    # === Change blocks ===

    @property
    def in_block(self) -> bool:
        return self._undo is not None

    def begin(self) -> None:
        """Start recording changes."""
        self._undo = UndoLog()
        self._touched = set()
        self._scalars = {name: getattr(self, name) for name in SCALAR_FIELDS}

    def commit(self) -> None:
        """Keep every change made since `begin`."""
        self._undo = None
        self._touched = set()
        self._scalars = {}

    def rollback(self) -> None:
        """Undo every change made since `begin`."""
        if self._undo is not None:
            self._undo.rollback()
        for name, value in self._scalars.items():
            setattr(self, name, value)
        self.commit()

    def _record(self, kind: str, key: Any, factory: Callable[[], Any], save: bool = True) -> Any:
        records = getattr(self, kind)
        record = records.get(key)
        if self._undo is not None and (kind, key) not in self._touched:
            self._touched.add((kind, key))
            if record is None:
                self._undo.forget_item(records, key)
            elif save:
                self._undo.save_item(records, key, copy.copy(record))
        if record is None:
            record = factory()
            records[key] = record
        return record

    def _set_entry(self, mapping: dict, key: Any, value: Any) -> None:
        if self._undo is not None:
            self._undo.set_item(mapping, key, value)
        else:
            mapping[key] = value

    # === Records ===

    def stage_record(self, stage: int) -> StageRecord:
        """Record of `stage`, created on first use."""
        return self._record("stages", stage, StageRecord)

    def season_record(self, season: int) -> SeasonRecord:
        """Record of `season`, created on first use."""
        return self._record("seasons", season, SeasonRecord)

    def account_record(self, account: str) -> AccountRecord:
        """Record of `account`, created on first use."""
        return self._record("accounts", account, AccountRecord)

    def season_referral_record(self, season: int) -> SeasonReferralRecord:
        """Referral record of `season`, created on first use."""
        # Entry changes are logged one by one, so the record itself is never copied
        return self._record("season_referrals", season, SeasonReferralRecord, save=False)

    def add_season_purchase(self, season: int, account: str, dollars: int) -> None:
        """Add to the dollars `account` bought in `season`."""
        volume = self.season_referral_record(season).purchased_dollars
        self._set_entry(volume, account, sm.add(volume.get(account, 0), dollars))

    def credit_season_referrer(self, season: int, referrer: str, dollars: int) -> None:
        """Credit `referrer` with referred volume in `season`."""
        record = self.season_referral_record(season)
        if referrer not in record.referred_dollars:
            if self._undo is not None:
                self._undo.append_item(record.referrers, referrer)
            else:
                record.referrers.append(referrer)
        volume = record.referred_dollars
        self._set_entry(volume, referrer, sm.add(volume.get(referrer, 0), dollars))

    @property
    def earmarked(self) -> int:
        """Sum of all buckets already assigned a purpose."""
        return reduce(sm.add, (
            self.total_referral_paid,
            self.total_top_sales,
            self.total_pending,
            self.total_team_paid,
        ), 0)


SCALAR_FIELDS = tuple(
    f.name for f in fields(SaleState)
    if not f.name.startswith("_") and f.name not in _RECORD_MAPS
)
