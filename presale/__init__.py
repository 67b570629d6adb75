"""
Staged, capped token-sale settlement engine.

Example:
    >>> from presale import TokenSale, SaleSettings, InMemoryAssetLedger, InMemoryWallet
    >>>
    >>> sale = TokenSale(SaleSettings(), InMemoryAssetLedger(SALE), InMemoryWallet(), owner=OWNER)
    >>> sale.add_auditor(OWNER, AUDITOR)
    >>> sale.set_exchange_rate(AUDITOR, 200_000_000)  # $200.000000 per unit of currency
    >>> receipt = sale.purchase(BUYER, 500_000_000_000_000_000)
    >>> receipt.asset_issued
    100000000000
"""

from presale.config.settings import SaleSettings
from presale.core import (
    InMemoryAssetLedger,
    InMemoryWallet,
    PriceCurve,
    PurchaseReceipt,
    SaleReporter,
    TokenSale,
    walk_referrals,
)


__version__ = "1.0.0"
__all__ = [
    "SaleSettings",
    "TokenSale",
    "PriceCurve",
    "PurchaseReceipt",
    "SaleReporter",
    "InMemoryAssetLedger",
    "InMemoryWallet",
    "walk_referrals",
]
