"""Dynamic add/remove-liquidity fee.

The fee depends on how an operation moves an asset's pool value relative to
its target allocation:

- the deviation shrinks: ``base - dynamic * old_diff / target`` (floored at 0),
- the deviation grows or stays: ``base + dynamic * avg_diff / target`` where
  ``avg_diff`` is the mean of the old and new deviation, capped at ``target``.

The dynamic component is truncated to 5 decimal places.
"""

from __future__ import annotations

from decimal import Decimal

from .errors import InsufficientLiquidityError, InsufficientLiquidityType
from .guards import coerce_decimal
from .math import LIQUIDITY_FEE_DECIMAL_PLACES, ZERO, div, margin_context, round_down
from .types import LiquidityPool

TWO = Decimal(2)


def _dynamic_component(dynamic_fee_rate: Decimal, diff: Decimal, target: Decimal) -> Decimal:
    return round_down(div(dynamic_fee_rate * diff, target), LIQUIDITY_FEE_DECIMAL_PLACES)


@margin_context
def compute_liquidity_fee_rate(
    pool: LiquidityPool,
    current_asset_value: Decimal,
    target_asset_value: Decimal,
    is_add: bool,
    delta_value: Decimal,
) -> Decimal:
    current_asset_value = coerce_decimal("current_asset_value", current_asset_value)
    target_asset_value = coerce_decimal("target_asset_value", target_asset_value)
    delta_value = coerce_decimal("delta_value", delta_value)
    base_fee_rate = pool.liquidity_base_fee_rate
    dynamic_fee_rate = pool.liquidity_dynamic_fee_rate
    if is_add:
        new_asset_value = current_asset_value + delta_value
    else:
        if current_asset_value < delta_value:
            raise InsufficientLiquidityError(
                InsufficientLiquidityType.REMOVE_LIQUIDITY_EXCEEDS_CURRENT_ASSET,
                requested=delta_value,
                available=current_asset_value,
            )
        new_asset_value = current_asset_value - delta_value

    # | x - target |
    old_diff = abs(current_asset_value - target_asset_value)
    new_diff = abs(new_asset_value - target_asset_value)
    if target_asset_value == ZERO:
        return base_fee_rate
    if new_diff < old_diff:
        rebate = _dynamic_component(dynamic_fee_rate, old_diff, target_asset_value)
        return max(ZERO, base_fee_rate - rebate)
    avg_diff = min(div(old_diff + new_diff, TWO), target_asset_value)
    return base_fee_rate + _dynamic_component(dynamic_fee_rate, avg_diff, target_asset_value)
