"""Utilization-based funding rates.

Funding rate curve (per 8 hours):

    ^ fr           / limit
    |            /
    |          /
    |        /
    |______/ base
    |    .
    |  .
    |.
    +-------------------> utilization

Both functions always return the 8h rate. With a 1h funding interval the
charge is ``rate_8h / 8`` every hour.
"""

from __future__ import annotations

from decimal import Decimal

from .errors import InvalidArgumentError
from .guards import coerce_decimal
from .math import ONE, margin_context
from .types import Asset, FundingRate8H, LiquidityPool


@margin_context
def compute_single_funding_rate_8h(
    base_rate_8h: Decimal,
    limit_rate_8h: Decimal,
    utilization: Decimal,
) -> Decimal:
    """``max(utilization * limit, base)``. Utilization above 100% is rejected."""
    base_rate_8h = coerce_decimal("base_rate_8h", base_rate_8h)
    limit_rate_8h = coerce_decimal("limit_rate_8h", limit_rate_8h)
    utilization = coerce_decimal("utilization", utilization)
    if utilization > ONE:
        raise InvalidArgumentError(f"utilization {utilization} > 100%")
    return max(utilization * limit_rate_8h, base_rate_8h)


@margin_context
def compute_funding_rate_8h(
    pool: LiquidityPool,
    asset: Asset,
    stable_utilization: Decimal,
    unstable_utilization: Decimal,
) -> FundingRate8H:
    """Short side uses the pool's stable-asset curve, long side the asset's own."""
    short_rate = compute_single_funding_rate_8h(
        pool.short_funding_base_rate_8h,
        pool.short_funding_limit_rate_8h,
        stable_utilization,
    )
    long_rate = compute_single_funding_rate_8h(
        asset.long_funding_base_rate_8h,
        asset.long_funding_limit_rate_8h,
        unstable_utilization,
    )
    return FundingRate8H(long_funding_rate_8h=long_rate, short_funding_rate_8h=short_rate)
