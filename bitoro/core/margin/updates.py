"""State transition functions for sub-account snapshots.

Each function returns a new `SubAccount` with one step of a trade applied,
via `dataclasses.replace()` on the frozen dataclass. Trade simulations chain
these in order; the order is the settlement order (funding fee computed on the
old snapshot, then funding index updated, then pnl, size and fees).
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from .errors import BankruptError
from .math import ZERO, div, margin_context
from .types import SubAccount

logger = logging.getLogger(__name__)


def deduct_collateral(sub_account: SubAccount, amount: Decimal) -> SubAccount:
    """Subtract *amount* from collateral. The result may be negative."""
    return replace(sub_account, collateral=sub_account.collateral - amount)


@margin_context
def compute_realize_loss(
    sub_account: SubAccount,
    collateral_price: Decimal,
    loss_usd: Decimal,
    is_throw_bankrupt: bool,
) -> SubAccount:
    """Deduct a realized loss (USD) from collateral.

    With *is_throw_bankrupt* a loss larger than collateral raises
    ``BankruptError``. Without it the deduction is clamped to collateral and
    the remainder is dropped.
    """
    if loss_usd == ZERO:
        return sub_account
    loss_collateral = div(loss_usd, collateral_price)
    if sub_account.collateral < loss_collateral:
        if is_throw_bankrupt:
            raise BankruptError(
                f"bankrupt: loss {loss_collateral} > collateral {sub_account.collateral}"
            )
        logger.warning(
            "loss clamped to collateral: loss=%s collateral=%s unresolved=%s",
            loss_collateral, sub_account.collateral, loss_collateral - sub_account.collateral,
        )
        loss_collateral = sub_account.collateral
    return deduct_collateral(sub_account, loss_collateral)


def increase_position(
    sub_account: SubAccount,
    amount: Decimal,
    asset_price: Decimal,
    pnl_usd: Decimal,
    now: int,
) -> SubAccount:
    """Add *amount* to the position.

    With no realizable pnl the entry price snaps to *asset_price*; otherwise it
    becomes the size-weighted average.
    """
    new_size = sub_account.size + amount
    if pnl_usd == ZERO:
        entry_price = asset_price
    else:
        entry_price = div(sub_account.entry_price * sub_account.size + asset_price * amount, new_size)
    return replace(
        sub_account,
        size=new_size,
        entry_price=entry_price,
        last_increased_time=now,
    )


def reduce_position(sub_account: SubAccount, amount: Decimal) -> SubAccount:
    """Remove *amount* from the position, zeroing entry fields when flat."""
    new_size = sub_account.size - amount
    if new_size == ZERO:
        return replace(
            sub_account,
            size=ZERO,
            entry_price=ZERO,
            entry_funding=ZERO,
            last_increased_time=0,
        )
    return replace(sub_account, size=new_size)


def shift_entry_price(sub_account: SubAccount, delta_usd: Decimal, is_long: bool) -> SubAccount:
    """Move the entry price by ``delta_usd / size`` against the position.

    Used when profit is taken without closing: a long's cost basis goes up,
    a short's goes down. Requires ``size > 0``.
    """
    per_unit = div(delta_usd, sub_account.size)
    if is_long:
        return replace(sub_account, entry_price=sub_account.entry_price + per_unit)
    return replace(sub_account, entry_price=sub_account.entry_price - per_unit)
