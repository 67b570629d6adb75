"""
Repositories.

Data access layer for the purchase journal.
"""

from presale.repositories.base import BaseRepository
from presale.repositories.purchase_repository import PurchaseRepository
from presale.repositories.referral_payout_repository import ReferralPayoutRepository

__all__ = [
    "BaseRepository",
    "PurchaseRepository",
    "ReferralPayoutRepository",
]
