"""
Exception handling utilities.

Defines the categorized exception types raised by the sale engine.
Every error aborts the enclosing purchase or administrative call.
"""


class SaleError(Exception):
    """Base class for all sale errors."""

    error_code = "sale_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class InvalidAmount(SaleError):
    """Amount is outside the allowed bounds."""

    error_code = "invalid_amount"


class InvalidAddress(SaleError):
    """Address is empty, malformed or the zero address."""

    error_code = "invalid_address"


class SaleNotOpen(SaleError):
    """Sale has not started, is paused, or has closed."""

    error_code = "sale_not_open"


class RateNotSet(SaleError):
    """Exchange rate is unset or zero."""

    error_code = "rate_not_set"


class Unauthorized(SaleError):
    """Caller lacks the required role."""

    error_code = "unauthorized"


class SaleBusy(SaleError):
    """Another operation on the sale has not finished yet."""

    error_code = "sale_busy"


class InsufficientBudget(SaleError):
    """Stage iteration budget exhausted."""

    error_code = "insufficient_budget"


class TransferRejected(SaleError):
    """Recipient did not accept a value transfer."""

    error_code = "transfer_rejected"


class ArithmeticGuardError(SaleError):
    """Checked arithmetic failed."""

    error_code = "arithmetic"


class Overflow(ArithmeticGuardError):
    """Result does not fit the integer width."""

    error_code = "overflow"


class Underflow(ArithmeticGuardError):
    """Result would be negative."""

    error_code = "underflow"


class DivideByZero(ArithmeticGuardError):
    """Division or modulo by zero."""

    error_code = "divide_by_zero"


# Errors caused by the caller's input; safe to report back verbatim
CALLER_ERRORS = (
    InvalidAmount,
    InvalidAddress,
    SaleNotOpen,
    RateNotSet,
    Unauthorized,
    SaleBusy,
)

# Errors that indicate broken accounting or a failed payout
MUST_ALERT = (
    ArithmeticGuardError,
    TransferRejected,
)


def is_caller_error(exc: Exception) -> bool:
    """
    Check if exception was caused by caller input.

    Args:
        exc: Exception to check

    Returns:
        True if the caller can fix the request and retry
    """
    return isinstance(exc, CALLER_ERRORS)


def must_alert(exc: Exception) -> bool:
    """
    Check if exception must be escalated to operators.

    Args:
        exc: Exception to check

    Returns:
        True if exception points at an accounting or payout failure
    """
    return isinstance(exc, MUST_ALERT)
