"""Invariant checkers for sub-account snapshots.

Each function returns True when the invariant holds, and `check_all()` returns
the list of violated invariant ids (empty = all pass). Trade simulations run
`check_all()` on every post-trade snapshot.

Collateral sign is not checked here: opening a position may leave collateral
negative and the caller decides what to do with that.
"""

from __future__ import annotations

from typing import Callable

from .math import ZERO
from .types import SubAccount


def inv_size_non_negative(s: SubAccount) -> bool:
    return s.size >= ZERO


def inv_entry_price_zero_when_flat(s: SubAccount) -> bool:
    if s.size != ZERO:
        return True
    return s.entry_price == ZERO


def inv_entry_funding_zero_when_flat(s: SubAccount) -> bool:
    if s.size != ZERO:
        return True
    return s.entry_funding == ZERO


def inv_last_increased_zero_when_flat(s: SubAccount) -> bool:
    if s.size != ZERO:
        return True
    return s.last_increased_time == 0


def inv_entry_price_positive_when_open(s: SubAccount) -> bool:
    if s.size == ZERO:
        return True
    return s.entry_price > ZERO


_ALL_INVARIANTS: dict[str, Callable[[SubAccount], bool]] = {
    "size_non_negative": inv_size_non_negative,
    "entry_price_zero_when_flat": inv_entry_price_zero_when_flat,
    "entry_funding_zero_when_flat": inv_entry_funding_zero_when_flat,
    "last_increased_zero_when_flat": inv_last_increased_zero_when_flat,
    "entry_price_positive_when_open": inv_entry_price_positive_when_open,
}


def check_all(s: SubAccount) -> list[str]:
    """Return ids of all violated invariants (empty list = all pass)."""
    return [name for name, fn in _ALL_INVARIANTS.items() if not fn(s)]
