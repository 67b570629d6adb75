"""
Core sale functionality.

Pure settlement logic: curve, referral walk, state, settlement loop,
fund accounting and reporting. No database dependencies.
"""

from presale.core.access import AccessControl, RoleSet
from presale.core.curve import PriceCurve
from presale.core.engine import TokenSale
from presale.core.events import EventKind, SaleEvent
from presale.core.ledger import (
    AssetLedger,
    InMemoryAssetLedger,
    InMemoryWallet,
    NativeWallet,
    TokenLedger,
    Transactional,
)
from presale.core.models import (
    AccountStatus,
    FundStatus,
    PurchaseReceipt,
    ReferralPayout,
    SaleStatus,
    SeasonAccountVolume,
    SeasonStatus,
    StagePortion,
    StageStatus,
)
from presale.core.referral_walk import (
    ReferralGraph,
    ReferralReward,
    ReferralWalkResult,
    walk_referrals,
)
from presale.core.reporting import SaleReporter, format_status
from presale.core.state import (
    AccountRecord,
    SaleState,
    SeasonRecord,
    SeasonReferralRecord,
    StageRecord,
)
from presale.core.undo import UndoLog

__all__ = [
    # Engine
    "TokenSale",
    "PriceCurve",
    "AccessControl",
    "RoleSet",
    # Referral walk
    "ReferralGraph",
    "ReferralReward",
    "ReferralWalkResult",
    "walk_referrals",
    # Collaborators
    "AssetLedger",
    "TokenLedger",
    "NativeWallet",
    "Transactional",
    "InMemoryAssetLedger",
    "InMemoryWallet",
    # State
    "SaleState",
    "StageRecord",
    "SeasonRecord",
    "AccountRecord",
    "SeasonReferralRecord",
    "UndoLog",
    # Events and views
    "EventKind",
    "SaleEvent",
    "PurchaseReceipt",
    "ReferralPayout",
    "StagePortion",
    "SaleStatus",
    "StageStatus",
    "SeasonStatus",
    "AccountStatus",
    "SeasonAccountVolume",
    "FundStatus",
    "SaleReporter",
    "format_status",
]
