"""
Services.

Async layer over the sale engine.
"""

from presale.services.base_service import BaseService, log_operation, transaction
from presale.services.sale_service import SaleService, get_sale_lock

__all__ = [
    "BaseService",
    "SaleService",
    "get_sale_lock",
    "log_operation",
    "transaction",
]
