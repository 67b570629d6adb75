"""
Checked unsigned integer arithmetic.

All settlement math goes through these helpers. Results never wrap:
an out-of-range result raises instead.
"""

from presale.utils.exceptions import DivideByZero, Overflow, Underflow

UINT256_BITS = 256
UINT16_BITS = 16

UINT256_MAX = 2**UINT256_BITS - 1
UINT16_MAX = 2**UINT16_BITS - 1


def max_value(bits: int) -> int:
    """Largest value representable with `bits` unsigned bits."""
    return (1 << bits) - 1


def _check_operand(value: int, bits: int) -> int:
    if value < 0:
        raise Underflow(f"Negative operand {value}")
    if value > max_value(bits):
        raise Overflow(f"Operand {value} exceeds uint{bits}")
    return value


def add(a: int, b: int, bits: int = UINT256_BITS) -> int:
    """
    Add two unsigned integers.

    Raises:
        Overflow: If the sum exceeds the width
    """
    _check_operand(a, bits)
    _check_operand(b, bits)
    result = a + b
    if result > max_value(bits):
        raise Overflow(f"uint{bits} overflow: {a} + {b}")
    return result


def sub(a: int, b: int, bits: int = UINT256_BITS) -> int:
    """
    Subtract `b` from `a`.

    Raises:
        Underflow: If b > a
    """
    _check_operand(a, bits)
    _check_operand(b, bits)
    if b > a:
        raise Underflow(f"uint{bits} underflow: {a} - {b}")
    return a - b


def mul(a: int, b: int, bits: int = UINT256_BITS) -> int:
    """
    Multiply two unsigned integers.

    Raises:
        Overflow: If the product exceeds the width
    """
    _check_operand(a, bits)
    _check_operand(b, bits)
    result = a * b
    if result > max_value(bits):
        raise Overflow(f"uint{bits} overflow: {a} * {b}")
    return result


def div(a: int, b: int, bits: int = UINT256_BITS) -> int:
    """
    Floor-divide `a` by `b`.

    Raises:
        DivideByZero: If b is zero
    """
    _check_operand(a, bits)
    _check_operand(b, bits)
    if b == 0:
        raise DivideByZero(f"uint{bits} division of {a} by zero")
    return a // b


def mod(a: int, b: int, bits: int = UINT256_BITS) -> int:
    """
    Remainder of `a` divided by `b`.

    Raises:
        DivideByZero: If b is zero
    """
    _check_operand(a, bits)
    _check_operand(b, bits)
    if b == 0:
        raise DivideByZero(f"uint{bits} modulo of {a} by zero")
    return a % b


def mul_div(a: int, b: int, c: int, bits: int = UINT256_BITS) -> int:
    """Checked `a * b // c`."""
    return div(mul(a, b, bits), c, bits)


def ceil_div(a: int, b: int, bits: int = UINT256_BITS) -> int:
    """Checked ceiling division."""
    quotient = div(a, b, bits)
    if mod(a, b, bits):
        quotient = add(quotient, 1, bits)
    return quotient
