"""
Access control.

Owner with two-phase transfer, auditor and proxy role sets, pause flag.
"""

from dataclasses import dataclass, field

from loguru import logger

from presale.utils.exceptions import Unauthorized
from presale.utils.validation import normalize_address, require_destination


@dataclass
class RoleSet:
    """Set of authorized addresses for one role."""

    name: str
    members: set[str] = field(default_factory=set)

    def add(self, account: str) -> bool:
        account = require_destination(account)
        if account in self.members:
            return False
        self.members.add(account)
        logger.info(f"{self.name} role granted", extra={"account": account})
        return True

    def remove(self, account: str) -> bool:
        account = normalize_address(account)
        if account not in self.members:
            return False
        self.members.remove(account)
        logger.info(f"{self.name} role revoked", extra={"account": account})
        return True

    def has(self, account: str | None) -> bool:
        return bool(account) and account.lower() in self.members


@dataclass
class AccessControl:
    """Owner, roles and pause state of the sale."""

    owner: str
    pending_owner: str | None = None
    paused: bool = False
    auditors: RoleSet = field(default_factory=lambda: RoleSet("auditor"))
    proxies: RoleSet = field(default_factory=lambda: RoleSet("proxy"))

    def __post_init__(self) -> None:
        self.owner = require_destination(self.owner)

    def is_owner(self, account: str | None) -> bool:
        return bool(account) and account.lower() == self.owner

    def require_owner(self, caller: str | None) -> None:
        if not self.is_owner(caller):
            raise Unauthorized(f"{caller} is not the owner")

    def require_auditor(self, caller: str | None) -> None:
        if not self.auditors.has(caller):
            raise Unauthorized(f"{caller} is not an auditor")

    def require_proxy(self, caller: str | None) -> None:
        if not self.proxies.has(caller):
            raise Unauthorized(f"{caller} is not a proxy")

    def propose_owner(self, caller: str, new_owner: str) -> None:
        """Start two-phase ownership transfer."""
        self.require_owner(caller)
        self.pending_owner = require_destination(new_owner)
        logger.info(
            "Ownership transfer proposed",
            extra={"owner": self.owner, "pending_owner": self.pending_owner},
        )

    def accept_owner(self, caller: str) -> None:
        """Complete ownership transfer; only the pending owner may call."""
        if not self.pending_owner or not caller or caller.lower() != self.pending_owner:
            raise Unauthorized(f"{caller} is not the pending owner")
        previous, self.owner = self.owner, self.pending_owner
        self.pending_owner = None
        logger.info(
            "Ownership transferred",
            extra={"previous_owner": previous, "owner": self.owner},
        )

    def snapshot(self) -> tuple:
        """Capture owner, pause flag and role members for a rollback."""
        return (
            self.owner,
            self.pending_owner,
            self.paused,
            frozenset(self.auditors.members),
            frozenset(self.proxies.members),
        )

    def restore(self, snapshot: tuple) -> None:
        owner, pending_owner, paused, auditors, proxies = snapshot
        self.owner, self.pending_owner, self.paused = owner, pending_owner, paused
        self.auditors.members = set(auditors)
        self.proxies.members = set(proxies)
