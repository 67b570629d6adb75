"""
Database models.

Exports all SQLAlchemy models of the purchase journal.
"""

from presale.models.base import Base
from presale.models.purchase_record import PurchaseRecord
from presale.models.referral_payout_record import ReferralPayoutRecord
from presale.models.types import AddressType, UInt256

__all__ = [
    "Base",
    "PurchaseRecord",
    "ReferralPayoutRecord",
    "UInt256",
    "AddressType",
]
