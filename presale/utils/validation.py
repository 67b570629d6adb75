"""Address validation utilities."""

from loguru import logger
from web3 import Web3

from presale.utils.exceptions import InvalidAddress


# Zero address - "no account" marker, never a valid destination
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def validate_address(address: str) -> tuple[bool, str | None]:
    """
    Validate an account address.

    Args:
        address: Address to validate

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_address("0x1234567890123456789012345678901234567890")
        (True, None)
        >>> validate_address("invalid")
        (False, 'Address must start with 0x')
    """
    if not address or not isinstance(address, str):
        return False, "Address is empty"

    address = address.strip()

    if not address:
        return False, "Address is empty"

    if not address.startswith("0x"):
        return False, "Address must start with 0x"

    if len(address) != 42:
        return False, "Address must be 42 characters"

    try:
        int(address[2:], 16)
    except ValueError:
        return False, "Invalid address format"

    try:
        Web3.to_checksum_address(address)
    except (ValueError, TypeError) as e:
        logger.debug(f"Address validation failed for {address}: {e}")
        return False, "Invalid address format"

    return True, None


def is_zero_address(address: str | None) -> bool:
    """Check if address is empty or the zero address."""
    if not address:
        return True
    return address.strip().lower() == ZERO_ADDRESS


def normalize_address(address: str) -> str:
    """
    Normalize address to lowercase hex.

    Raises:
        InvalidAddress: If the address is malformed
    """
    is_valid, error = validate_address(address)
    if not is_valid:
        raise InvalidAddress(f"{error}: {address!r}")
    return address.strip().lower()


def require_destination(address: str | None) -> str:
    """
    Normalize a payout destination.

    Raises:
        InvalidAddress: If the address is malformed or the zero address
    """
    if is_zero_address(address):
        raise InvalidAddress("Destination must not be empty or the zero address")
    return normalize_address(address)


def to_checksum(address: str) -> str:
    """Checksummed form of an address, for display."""
    return Web3.to_checksum_address(normalize_address(address))
