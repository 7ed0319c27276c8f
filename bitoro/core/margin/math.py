"""Decimal arithmetic for the margin engine.

Every public computation runs inside ``MARGIN_CONTEXT`` (see ``margin_context``).
Additions and multiplications are exact at this precision; divisions are the
only lossy step and are quantized explicitly by ``div()``.

Rounding must match the settlement system bit-for-bit:
- ``div()`` keeps ``DIV_DECIMAL_PLACES`` places, rounding half up,
- ``round_down()`` truncates toward zero (used by the liquidity fee curve).
"""

from __future__ import annotations

import functools
from decimal import (
    ROUND_DOWN,
    ROUND_HALF_UP,
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    localcontext,
)
from typing import Callable, TypeVar

ZERO = Decimal(0)
ONE = Decimal(1)

DIV_DECIMAL_PLACES: int = 20
LIQUIDITY_FEE_DECIMAL_PLACES: int = 5

MARGIN_CONTEXT = Context(
    prec=80,
    rounding=ROUND_HALF_UP,
    traps=[InvalidOperation, DivisionByZero, Overflow],
)

_DIV_QUANTUM = Decimal(1).scaleb(-DIV_DECIMAL_PLACES)

F = TypeVar("F", bound=Callable)


def margin_context(fn: F) -> F:
    """Run *fn* inside a thread-local copy of ``MARGIN_CONTEXT``."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        with localcontext(MARGIN_CONTEXT):
            return fn(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def to_decimal(name: str, value: object) -> Decimal:
    """Coerce ``int``/``str``/``Decimal`` to ``Decimal``. Floats and bools are rejected."""
    if isinstance(value, bool):
        raise TypeError(f"{name} must be a Decimal, got bool")
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"{name} must be finite: {value}")
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        try:
            out = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"{name} must be a decimal string: {value!r}") from exc
        if not out.is_finite():
            raise ValueError(f"{name} must be finite: {value!r}")
        return out
    raise TypeError(f"{name} must be a Decimal, got {type(value).__name__}")


def div(x: Decimal, y: Decimal) -> Decimal:
    """``x / y`` rounded half up to ``DIV_DECIMAL_PLACES`` places. Caller guards ``y != 0``."""
    return (x / y).quantize(_DIV_QUANTUM, rounding=ROUND_HALF_UP)


def round_down(x: Decimal, places: int) -> Decimal:
    """Truncate *x* toward zero at *places* decimal places."""
    return x.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)
