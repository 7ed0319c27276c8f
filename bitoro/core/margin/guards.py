"""Argument and asset-state guards shared by the trade simulations.

Each guard raises ``InvalidArgumentError`` on failure and returns nothing (or
the validated value) on success. Guards run before any new snapshot is built.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from .errors import InvalidArgumentError
from .math import ZERO, to_decimal
from .types import Asset, PriceDict


def check_asset_index(assets: Sequence[Asset], asset_id: int) -> Asset:
    if not isinstance(asset_id, int) or isinstance(asset_id, bool):
        raise InvalidArgumentError(f"asset id must be an int, got {asset_id!r}")
    if asset_id < 0 or asset_id >= len(assets):
        raise InvalidArgumentError(f"missing asset[{asset_id}]")
    return assets[asset_id]


def coerce_decimal(name: str, value: object) -> Decimal:
    """``to_decimal`` for caller input: malformed values are invalid arguments."""
    try:
        return to_decimal(name, value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"invalid {name}: {exc}") from exc


def lookup_price(prices: PriceDict, asset: Asset) -> Decimal:
    """Price of *asset*; missing, malformed or non-positive prices are caller errors."""
    raw = prices.get(asset.symbol)
    if raw is None:
        raise InvalidArgumentError(f"invalid price[{asset.symbol}]")
    price = coerce_decimal(f"price[{asset.symbol}]", raw)
    if price <= ZERO:
        raise InvalidArgumentError(f"invalid price[{asset.symbol}]")
    return price


def guard_amount(amount: Decimal, *, max_amount: Decimal | None = None) -> Decimal:
    amount = coerce_decimal("amount", amount)
    if amount <= ZERO or (max_amount is not None and amount > max_amount):
        raise InvalidArgumentError(f"invalid amount {amount}")
    return amount


def guard_gas_fee(broker_gas_fee: Decimal) -> Decimal:
    broker_gas_fee = coerce_decimal("gas_fee", broker_gas_fee)
    if broker_gas_fee < ZERO:
        raise InvalidArgumentError(f"invalid gas_fee {broker_gas_fee}")
    return broker_gas_fee


def _is_tradable(asset: Asset, collateral: Asset, is_long: bool) -> bool:
    return (
        not asset.is_stable
        and asset.is_tradable
        and asset.is_enabled
        and collateral.is_enabled
        and (is_long or asset.is_shortable)
    )


def guard_open_position(asset: Asset, collateral: Asset, is_long: bool) -> None:
    if not _is_tradable(asset, collateral, is_long) or not asset.is_openable:
        raise InvalidArgumentError("not tradable")


def guard_close_position(asset: Asset, collateral: Asset, is_long: bool) -> None:
    """Also guards profit withdrawal."""
    if not _is_tradable(asset, collateral, is_long):
        raise InvalidArgumentError("not tradable")


def guard_withdraw_collateral(asset: Asset, collateral: Asset) -> None:
    if not asset.is_enabled or not collateral.is_enabled:
        raise InvalidArgumentError("not tradable")


def resolve_profit_asset(
    assets: Sequence[Asset],
    prices: PriceDict,
    asset_id: int,
    asset_price: Decimal,
    is_long: bool,
    profit_asset_id: int,
) -> tuple[int, Decimal]:
    """Asset (and its price) that profit is paid in.

    A long position is paid in the position asset itself, at the trading
    price, unless the asset forces stable profit. Otherwise *profit_asset_id*
    must name a stable asset with a valid price.
    """
    if is_long and not assets[asset_id].use_stable_token_for_profit:
        return asset_id, asset_price
    profit_asset = check_asset_index(assets, profit_asset_id)
    if not profit_asset.is_stable:
        raise InvalidArgumentError(f"profit asset[{profit_asset_id}] should be a stable coin")
    return profit_asset_id, lookup_price(prices, profit_asset)
