"""
Referral walk.

Walks up to REFERRAL_DEPTH referrer levels above a buyer and decides,
level by level, which referrers qualify for a reward.
"""

from dataclasses import dataclass, field
from functools import reduce
from typing import Protocol, runtime_checkable

from loguru import logger

from presale.config.sale_constants import REFERRAL_RATES, REFERRAL_TOTAL_PERCENT
from presale.utils import safe_math as sm
from presale.utils.validation import is_zero_address


@runtime_checkable
class ReferralGraph(Protocol):
    """Read-only view of who referred whom."""

    def referrer_of(self, account: str) -> str:
        """Referrer of `account`; the account itself when it has none."""
        ...

    def qualifying_referral_count(self, account: str) -> int:
        """Number of direct referees of `account`."""
        ...


@dataclass(frozen=True)
class ReferralReward:
    """One qualifying level of a walk."""

    level: int
    referrer: str
    percent: int


@dataclass(frozen=True)
class ReferralWalkResult:
    """Qualifying referrers in level order plus the unassigned percent."""

    rewards: tuple[ReferralReward, ...] = field(default_factory=tuple)
    residual_percent: int = REFERRAL_TOTAL_PERCENT

    @property
    def assigned_percent(self) -> int:
        return reduce(sm.add, (reward.percent for reward in self.rewards), 0)

    @property
    def referrers(self) -> list[str]:
        return [reward.referrer for reward in self.rewards]


def walk_referrals(
    buyer: str,
    graph: ReferralGraph,
    rates: tuple[int, ...] = REFERRAL_RATES,
) -> ReferralWalkResult:
    """
    Walk the referral chain above `buyer`.

    At level i the referrer qualifies when it has more than i direct
    referees. Unqualified levels are skipped but the walk still climbs
    through them. A self-referencing or empty referrer ends the walk;
    every unrecorded level counts towards the residual.

    Args:
        buyer: Account that made the purchase
        graph: Referral graph to query
        rates: Percent per level

    Returns:
        ReferralWalkResult with rewards in level order
    """
    rewards: list[ReferralReward] = []
    assigned = 0
    cursor = buyer

    for level, percent in enumerate(rates):
        referrer = graph.referrer_of(cursor)
        if is_zero_address(referrer) or referrer.lower() == cursor.lower():
            break

        if graph.qualifying_referral_count(referrer) > level:
            rewards.append(ReferralReward(level=level, referrer=referrer.lower(), percent=percent))
            assigned = sm.add(assigned, percent)
        else:
            logger.debug(
                "Referrer not qualified for level",
                extra={"buyer": buyer, "referrer": referrer, "level": level},
            )

        cursor = referrer

    residual = sm.sub(reduce(sm.add, rates, 0), assigned)
    return ReferralWalkResult(rewards=tuple(rewards), residual_percent=residual)
