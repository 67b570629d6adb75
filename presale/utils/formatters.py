"""
Formatting utilities for amounts and percentages.

Fixed-point integers from the engine are rendered as readable strings
for reports and logs.
"""

from decimal import Decimal

from web3 import Web3


def scale_down(amount: int, decimals: int) -> Decimal:
    """
    Convert a fixed-point integer to Decimal.

    Example:
        >>> scale_down(1_500_000, 6)
        Decimal('1.5')
    """
    return (Decimal(amount) / (Decimal(10) ** decimals)).normalize()


def format_number(value: Decimal | int, decimals: int = 2) -> str:
    """
    Format number with thousands separators.

    Example:
        >>> format_number(Decimal("1234.5"))
        '1,234.50'
    """
    quantum = Decimal(1).scaleb(-decimals)
    return f"{Decimal(value).quantize(quantum):,}"


def format_dollars(amount: int, dollar_decimals: int = 6, decimals: int = 2) -> str:
    """
    Format a fixed-point dollar amount.

    Example:
        >>> format_dollars(100_000_000)
        '$100.00'
    """
    return f"${format_number(scale_down(amount, dollar_decimals), decimals)}"


def format_price(amount: int, dollar_decimals: int = 6) -> str:
    """
    Format a unit price with full precision.

    Example:
        >>> format_price(1010)
        '$0.001010'
    """
    return f"${format_number(scale_down(amount, dollar_decimals), dollar_decimals)}"


def format_currency(amount_wei: int, symbol: str = "ETH", decimals: int = 6) -> str:
    """
    Format a native-currency amount given in wei.

    Example:
        >>> format_currency(500_000_000_000_000_000)
        '0.500000 ETH'
    """
    ether = Web3.from_wei(amount_wei, "ether")
    return f"{format_number(ether, decimals)} {symbol}"


def format_units(amount: int, unit_decimals: int = 6, symbol: str = "units", decimals: int = 2) -> str:
    """
    Format an asset amount.

    Example:
        >>> format_units(100_000_000_000)
        '100,000.00 units'
    """
    return f"{format_number(scale_down(amount, unit_decimals), decimals)} {symbol}"


def format_ratio(ratio: int, base: int, decimals: int = 2) -> str:
    """
    Format a ratio expressed against a base as a percentage.

    Example:
        >>> format_ratio(15_000_000, 100_000_000)
        '15.00%'
    """
    percent = Decimal(ratio) * 100 / Decimal(base)
    return f"{format_number(percent, decimals)}%"
