"""Overflow-checked arithmetic over unsigned 128-bit integers."""
from synthvault.constants import MAX_UINT
from synthvault.errors import ArithmeticOverflow


def _check_operand(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected an unsigned integer, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT:
        raise ArithmeticOverflow(f"Operand out of uint range: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    """Add with overflow checking"""
    result = _check_operand(a) + _check_operand(b)
    if result > MAX_UINT:
        raise ArithmeticOverflow("Arithmetic overflow in addition")
    return result


def checked_sub(a: int, b: int) -> int:
    """Subtract with underflow checking"""
    if _check_operand(a) < _check_operand(b):
        raise ArithmeticOverflow("Arithmetic underflow in subtraction")
    return a - b


def checked_mul(a: int, b: int) -> int:
    """Multiply with overflow checking"""
    result = _check_operand(a) * _check_operand(b)
    if result > MAX_UINT:
        raise ArithmeticOverflow("Arithmetic overflow in multiplication")
    return result

