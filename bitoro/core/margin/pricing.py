"""Execution prices with a directional half-spread.

Spread direction by context:

    sub-account   open position   close position   add liquidity   remove liquidity
    long          ask             bid
    short         bid             ask
    n/a                                            bid             ask
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from .errors import BugError
from .guards import check_asset_index, lookup_price
from .math import ZERO, margin_context
from .subaccount_id import decode_sub_account_id
from .types import Asset, PriceDict, SpreadType, TradingPrice


@margin_context
def compute_price_with_spread(asset: Asset, price: Decimal, spread_type: SpreadType) -> Decimal:
    if asset.half_spread == ZERO:
        return price
    half_spread = price * asset.half_spread
    if spread_type is SpreadType.BID:
        if price <= half_spread:
            raise BugError(f"price - half_spread <= 0. impossible. price: {price}, asset: {asset.symbol}")
        return price - half_spread
    return price + half_spread


@margin_context
def compute_trading_price(
    assets: Sequence[Asset],
    sub_account_id: str,
    prices: PriceDict,
    is_open_position: bool,
) -> TradingPrice:
    """Collateral price (raw) and asset price (with spread) for a position trade."""
    sid = decode_sub_account_id(sub_account_id)
    collateral = check_asset_index(assets, sid.collateral_id)
    asset = check_asset_index(assets, sid.asset_id)
    collateral_price = lookup_price(prices, collateral)
    asset_price = lookup_price(prices, asset)
    if is_open_position:
        spread_type = SpreadType.ASK if sid.is_long else SpreadType.BID
    else:
        spread_type = SpreadType.BID if sid.is_long else SpreadType.ASK
    return TradingPrice(
        asset_price=compute_price_with_spread(asset, asset_price, spread_type),
        collateral_price=collateral_price,
    )


@margin_context
def compute_liquidity_price(
    assets: Sequence[Asset],
    prices: PriceDict,
    token_id: int,
    is_add_liquidity: bool,
) -> Decimal:
    asset = check_asset_index(assets, token_id)
    price = lookup_price(prices, asset)
    spread_type = SpreadType.BID if is_add_liquidity else SpreadType.ASK
    return compute_price_with_spread(asset, price, spread_type)
