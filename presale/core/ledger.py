"""
External collaborators of the sale.

Narrow interfaces for the issued-asset ledger and the native-currency
wallet, plus in-memory implementations for tests, simulations and
local runs.
"""

from typing import Any, Protocol, runtime_checkable

from loguru import logger

from presale.core.undo import UndoLog
from presale.utils.validation import normalize_address


@runtime_checkable
class AssetLedger(Protocol):
    """Issued-asset ledger consumed by the sale."""

    def transfer(self, to: str, amount: int) -> bool: ...

    def mint(self, to: str, amount: int) -> bool: ...

    def is_whitelisted(self, account: str) -> bool: ...

    def referrer_of(self, account: str) -> str: ...

    def qualifying_referral_count(self, account: str) -> int: ...


@runtime_checkable
class TokenLedger(Protocol):
    """Any token the sale may hold by mistake."""

    def transfer(self, to: str, amount: int) -> bool: ...


@runtime_checkable
class NativeWallet(Protocol):
    """Native-currency custody of the sale."""

    def receive(self, sender: str, amount: int) -> None: ...

    def send(self, to: str, amount: int) -> bool: ...


@runtime_checkable
class Transactional(Protocol):
    """Collaborator that can be rolled back to a checkpoint."""

    def checkpoint(self) -> Any: ...

    def restore(self, token: Any) -> None: ...


class InMemoryAssetLedger:
    """
    In-memory issued-asset ledger.

    Keeps balances, the whitelist and the referral graph. An account with
    no referrer is its own referrer, which ends a referral walk.

    A checkpoint starts a fresh undo log; restoring it reverses only the
    entries changed since.
    """

    def __init__(self, holder: str) -> None:
        self.holder = normalize_address(holder)
        self.balances: dict[str, int] = {}
        self.total_supply = 0
        self.whitelist: set[str] = set()
        self.referrers: dict[str, str] = {}
        self.rejecting: set[str] = set()
        self._undo: UndoLog | None = None

    def _set(self, mapping: dict, key: str, value: Any) -> None:
        if self._undo is not None:
            self._undo.set_item(mapping, key, value)
        else:
            mapping[key] = value

    def balance_of(self, account: str) -> int:
        return self.balances.get(account.lower(), 0)

    def mint(self, to: str, amount: int) -> bool:
        to = to.lower()
        if to in self.rejecting:
            return False
        self._set(self.balances, to, self.balances.get(to, 0) + amount)
        self.total_supply += amount
        return True

    def transfer(self, to: str, amount: int) -> bool:
        to = to.lower()
        if to in self.rejecting or self.balance_of(self.holder) < amount:
            return False
        self._set(self.balances, self.holder, self.balances[self.holder] - amount)
        self._set(self.balances, to, self.balances.get(to, 0) + amount)
        return True

    def add_to_whitelist(self, account: str) -> None:
        account = normalize_address(account)
        if self._undo is not None:
            self._undo.add_member(self.whitelist, account)
        else:
            self.whitelist.add(account)

    def is_whitelisted(self, account: str) -> bool:
        return account.lower() in self.whitelist

    def register_referral(self, account: str, referrer: str) -> bool:
        """
        Record that `referrer` invited `account`.

        Returns:
            False if the account already has a referrer or the link is a self-referral
        """
        account = normalize_address(account)
        referrer = normalize_address(referrer)
        if account == referrer or account in self.referrers:
            return False
        self._set(self.referrers, account, referrer)
        logger.debug("Referral registered", extra={"account": account, "referrer": referrer})
        return True

    def referrer_of(self, account: str) -> str:
        account = account.lower()
        return self.referrers.get(account, account)

    def qualifying_referral_count(self, account: str) -> int:
        account = account.lower()
        return sum(1 for referrer in self.referrers.values() if referrer == account)

    def checkpoint(self) -> Any:
        self._undo = UndoLog()
        return self._undo, self.total_supply

    def restore(self, token: Any) -> None:
        undo, self.total_supply = token
        undo.rollback()
        if self._undo is undo:
            self._undo = None


class InMemoryWallet:
    """
    In-memory native-currency custody.

    `holder_balance` is what the sale holds; `balances` is what every
    recipient was paid.
    """

    def __init__(self) -> None:
        self.holder_balance = 0
        self.balances: dict[str, int] = {}
        self.rejecting: set[str] = set()
        self._undo: UndoLog | None = None

    def receive(self, sender: str, amount: int) -> None:
        self.holder_balance += amount

    def send(self, to: str, amount: int) -> bool:
        to = to.lower()
        if to in self.rejecting or amount > self.holder_balance:
            return False
        self.holder_balance -= amount
        paid = self.balances.get(to, 0) + amount
        if self._undo is not None:
            self._undo.set_item(self.balances, to, paid)
        else:
            self.balances[to] = paid
        return True

    def balance_of(self, account: str) -> int:
        return self.balances.get(account.lower(), 0)

    def checkpoint(self) -> Any:
        self._undo = UndoLog()
        return self._undo, self.holder_balance

    def restore(self, token: Any) -> None:
        undo, self.holder_balance = token
        undo.rollback()
        if self._undo is undo:
            self._undo = None
