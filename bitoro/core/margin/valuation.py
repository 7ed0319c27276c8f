"""Valuation of a sub-account: pnl, funding, margin safety and limits.

Every function here is pure and raises nothing for well-formed input; each
division is guarded by an explicit ``> 0`` (or ``!= 0``) check.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Sequence

from .clock import Clock, system_clock
from .guards import check_asset_index, coerce_decimal
from .math import ONE, ZERO, div, margin_context
from .subaccount_id import decode_sub_account_id
from .types import (
    Asset,
    PositionPnl,
    SubAccount,
    SubAccountComputed,
    SubAccountDetails,
)

# Floor on the initial margin rate used for withdrawal limits (caps leverage at 100x).
MIN_SAFE_IMR = Decimal("0.01")


@margin_context
def compute_position_pnl_usd(
    asset: Asset,
    sub_account: SubAccount,
    is_long: bool,
    amount: Decimal,
    asset_price: Decimal,
    now: int,
) -> PositionPnl:
    """Pending and realizable pnl of *amount* units of the position.

    Within ``min_profit_time`` of the last increase, a profit smaller than
    ``min_profit_rate`` of the entry price is not realizable (``pnl_usd == 0``).
    """
    if amount == ZERO:
        return PositionPnl(pending_pnl_usd=ZERO, pnl_usd=ZERO)
    if is_long:
        price_delta = asset_price - sub_account.entry_price
    else:
        price_delta = sub_account.entry_price - asset_price
    pending_pnl_usd = price_delta * amount
    if (
        price_delta > ZERO
        and now < sub_account.last_increased_time + asset.min_profit_time
        and abs(price_delta) < asset.min_profit_rate * sub_account.entry_price
    ):
        return PositionPnl(pending_pnl_usd=pending_pnl_usd, pnl_usd=ZERO)
    return PositionPnl(pending_pnl_usd=pending_pnl_usd, pnl_usd=pending_pnl_usd)


@margin_context
def compute_funding_fee_usd(
    sub_account: SubAccount,
    asset: Asset,
    is_long: bool,
    asset_price: Decimal,
) -> Decimal:
    """Funding accrued since ``entry_funding``.

    Long funding accrues in asset units and is converted at *asset_price*;
    short funding is already USD-denominated.
    """
    if sub_account.size == ZERO:
        return ZERO
    if is_long:
        cumulative = (asset.long_cumulative_funding_rate - sub_account.entry_funding) * asset_price
    else:
        cumulative = asset.short_cumulative_funding - sub_account.entry_funding
    return cumulative * sub_account.size


@margin_context
def compute_position_fee_usd(asset: Asset, amount: Decimal, asset_price: Decimal) -> Decimal:
    if amount == ZERO:
        return ZERO
    return asset_price * asset.position_fee_rate * amount


def update_entry_funding(sub_account: SubAccount, asset: Asset, is_long: bool) -> SubAccount:
    """Snapshot the current cumulative funding index.

    Compute the funding fee of the prior interval first: the fee reads the old
    ``entry_funding``.
    """
    if is_long:
        return replace(sub_account, entry_funding=asset.long_cumulative_funding_rate)
    return replace(sub_account, entry_funding=asset.short_cumulative_funding)


def _estimate_liquidation_price(
    assets: Sequence[Asset],
    collateral_id: int,
    asset_id: int,
    is_long: bool,
    sub_account: SubAccount,
    collateral_price: Decimal,
    funding_fee_usd: Decimal,
) -> Decimal:
    """Index price at which the margin balance meets the maintenance requirement.

    Returns 0 when there is no positive finite solution. Besides a flat
    position this covers a short collateralized in its own asset with
    ``collateral == (1 + mmr) * size``: collateral value and position loss move
    together, so the margin never reaches maintenance and the position cannot
    be liquidated by price.
    """
    if sub_account.size == ZERO:
        return ZERO
    asset = assets[asset_id]
    long_factor = ONE if is_long else -ONE
    t = (long_factor - asset.maintenance_margin_rate) * sub_account.size
    numerator = long_factor * sub_account.entry_price * sub_account.size + funding_fee_usd
    if collateral_id == asset_id:
        denominator = t + sub_account.collateral
    else:
        numerator -= collateral_price * sub_account.collateral
        denominator = t
    if denominator == ZERO:
        return ZERO
    p = max(ZERO, div(numerator, denominator))

    # p is a trading price; liquidation is evaluated against the index price.
    # Closing a long sells at the bid, so the index price is above p; shorts
    # buy at the ask, so the index price is below p.
    if is_long:
        return div(p, ONE - asset.half_spread)
    return div(p, ONE + asset.half_spread)


@margin_context
def compute_sub_account(
    assets: Sequence[Asset],
    sub_account_id: str,
    sub_account: SubAccount,
    collateral_price: Decimal,
    asset_price: Decimal,
    *,
    clock: Clock = system_clock,
) -> SubAccountDetails:
    """Full risk snapshot of *sub_account*.

    *asset_price* is expected to be spread-adjusted already (see
    ``compute_trading_price``).
    """
    collateral_price = coerce_decimal("collateral_price", collateral_price)
    asset_price = coerce_decimal("asset_price", asset_price)
    sid = decode_sub_account_id(sub_account_id)
    check_asset_index(assets, sid.collateral_id)
    asset = check_asset_index(assets, sid.asset_id)
    is_long = sid.is_long

    position_value_usd = asset_price * sub_account.size
    funding_fee_usd = compute_funding_fee_usd(sub_account, asset, is_long, asset_price)
    pnl = compute_position_pnl_usd(asset, sub_account, is_long, sub_account.size, asset_price, clock())
    pending_pnl_after_funding_usd = pnl.pending_pnl_usd - funding_fee_usd
    pnl_after_funding_usd = pnl.pnl_usd - funding_fee_usd
    collateral_value = sub_account.collateral * collateral_price
    margin_balance_usd = collateral_value + pending_pnl_after_funding_usd
    entry_value_usd = sub_account.entry_price * sub_account.size

    is_im_safe = margin_balance_usd >= position_value_usd * asset.initial_margin_rate
    is_mm_safe = margin_balance_usd >= position_value_usd * asset.maintenance_margin_rate
    is_margin_safe = margin_balance_usd >= ZERO
    leverage = div(entry_value_usd, collateral_value) if collateral_value > ZERO else ZERO
    effective_leverage = div(position_value_usd, margin_balance_usd) if margin_balance_usd > ZERO else ZERO
    pending_roe = div(pending_pnl_after_funding_usd, collateral_value) if collateral_value > ZERO else ZERO
    liquidation_price = _estimate_liquidation_price(
        assets, sid.collateral_id, sid.asset_id, is_long,
        sub_account, collateral_price, funding_fee_usd,
    )

    safe_imr = max(asset.initial_margin_rate, MIN_SAFE_IMR)
    im_headroom_usd = collateral_value + pnl_after_funding_usd - position_value_usd * safe_imr
    withdrawable_collateral = max(
        ZERO,
        min(im_headroom_usd, collateral_value - funding_fee_usd - entry_value_usd * safe_imr),
    )
    withdrawable_collateral = div(withdrawable_collateral, collateral_price) if collateral_price > ZERO else ZERO
    withdrawable_profit = max(ZERO, min(im_headroom_usd, pnl_after_funding_usd))
    if is_long:
        # short profit settles in stable terms
        withdrawable_profit = div(withdrawable_profit, asset_price) if asset_price > ZERO else ZERO

    computed = SubAccountComputed(
        position_value_usd=position_value_usd,
        funding_fee_usd=funding_fee_usd,
        pending_pnl_usd=pnl.pending_pnl_usd,
        pending_pnl_after_funding_usd=pending_pnl_after_funding_usd,
        pnl_usd=pnl.pnl_usd,
        pnl_after_funding_usd=pnl_after_funding_usd,
        margin_balance_usd=margin_balance_usd,
        is_im_safe=is_im_safe,
        is_mm_safe=is_mm_safe,
        is_margin_safe=is_margin_safe,
        leverage=leverage,
        effective_leverage=effective_leverage,
        pending_roe=pending_roe,
        liquidation_price=liquidation_price,
        withdrawable_collateral=withdrawable_collateral,
        withdrawable_profit=withdrawable_profit,
    )
    return SubAccountDetails(sub_account=sub_account, computed=computed)
