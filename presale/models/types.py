"""
Standard type definitions for journal models.

Sale amounts are unsigned integers up to 256 bits, wider than any
native database numeric column, so they are stored as decimal strings.
"""

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


class UInt256(TypeDecorator):
    """
    Unsigned 256-bit integer stored as a decimal string.

    Suitable for: wei amounts, asset base units, 6-decimal dollars.
    Range: 0 to 2**256 - 1 (78 digits)
    """

    impl = String(78)
    cache_ok = True

    def process_bind_param(self, value: int | None, dialect) -> str | None:
        if value is None:
            return None
        if value < 0:
            raise ValueError(f"UInt256 column cannot store negative value {value}")
        return str(int(value))

    def process_result_value(self, value: str | None, dialect) -> int | None:
        if value is None:
            return None
        return int(value)


# Address column type: lowercase 0x-prefixed hex
AddressType = String(42)
