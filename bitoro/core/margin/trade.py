"""Trade simulation: open, close, withdraw collateral, withdraw profit.

Each simulation:

1. Resolves execution prices (``compute_trading_price``).
2. Validates arguments and asset state (``guards``).
3. Chains pure snapshot transforms (``updates``) in settlement order.
4. Checks invariants on the post-state.
5. Revalues the post-state with ``compute_sub_account``.

The caller's ``SubAccount`` is never modified. The clock is read once per
simulation so the lockup check and ``last_increased_time`` agree.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Sequence

from .clock import Clock, fixed_clock, system_clock
from .errors import InsufficientPnlError, InvalidArgumentError, MarginInvariantError
from .guards import (
    guard_amount,
    guard_close_position,
    guard_gas_fee,
    guard_open_position,
    guard_withdraw_collateral,
    resolve_profit_asset,
)
from .invariants import check_all
from .math import ZERO, div, margin_context
from .pricing import compute_trading_price
from .subaccount_id import decode_sub_account_id
from .types import (
    Asset,
    ClosePositionResult,
    OpenPositionResult,
    PriceDict,
    RealizeProfitResult,
    SubAccount,
    WithdrawCollateralResult,
    WithdrawProfitResult,
)
from .updates import (
    compute_realize_loss,
    deduct_collateral,
    increase_position,
    reduce_position,
    shift_entry_price,
)
from .valuation import (
    compute_funding_fee_usd,
    compute_position_fee_usd,
    compute_position_pnl_usd,
    compute_sub_account,
    update_entry_funding,
)

logger = logging.getLogger(__name__)


def _check_post_state(sub_account: SubAccount) -> None:
    violations = check_all(sub_account)
    if violations:
        raise MarginInvariantError(violations)


@margin_context
def compute_realize_profit(
    profit_usd: Decimal,
    fee_usd: Decimal,
    profit_asset: Asset,
    profit_asset_price: Decimal,
) -> RealizeProfitResult:
    """Pay fees out of profit first, then pay the rest in the profit asset.

    The payout is capped by ``spot_liquidity``; the shortfall is issued as
    bitoro token (an IOU on the pool).
    """
    deduct_usd = min(profit_usd, fee_usd)
    profit_asset_transferred = ZERO
    bitoro_token_transferred = ZERO
    profit_usd = profit_usd - deduct_usd
    if profit_usd > ZERO:
        profit_collateral = div(profit_usd, profit_asset_price)
        spot = min(profit_collateral, profit_asset.spot_liquidity)
        if spot > ZERO:
            profit_asset_transferred = spot
        debt = profit_collateral - spot
        if debt > ZERO:
            bitoro_token_transferred = debt
    return RealizeProfitResult(
        deduct_usd=deduct_usd,
        profit_asset_transferred=profit_asset_transferred,
        bitoro_token_transferred=bitoro_token_transferred,
    )


@margin_context
def compute_open_position(
    assets: Sequence[Asset],
    sub_account_id: str,
    sub_account: SubAccount,
    prices: PriceDict,
    amount: Decimal,
    broker_gas_fee: Decimal,
    *,
    clock: Clock = system_clock,
) -> OpenPositionResult:
    """Simulate opening (or increasing) a position by *amount*.

    *broker_gas_fee* is in collateral units. Fees are deducted even when they
    exceed collateral; rejecting such a trade is the caller's decision.
    """
    now = clock()
    sid = decode_sub_account_id(sub_account_id)
    tp = compute_trading_price(assets, sub_account_id, prices, True)
    amount = guard_amount(amount)
    broker_gas_fee = guard_gas_fee(broker_gas_fee)
    asset = assets[sid.asset_id]
    guard_open_position(asset, assets[sid.collateral_id], sid.is_long)

    funding_fee_usd = compute_funding_fee_usd(sub_account, asset, sid.is_long, tp.asset_price)
    fee_usd = funding_fee_usd + compute_position_fee_usd(asset, amount, tp.asset_price)
    account = update_entry_funding(sub_account, asset, sid.is_long)
    fee_collateral = div(fee_usd, tp.collateral_price) + broker_gas_fee
    if account.collateral < fee_collateral:
        logger.warning(
            "open position fee exceeds collateral: sub_account=%s fee=%s collateral=%s",
            sub_account_id, fee_collateral, account.collateral,
        )
    account = deduct_collateral(account, fee_collateral)

    pnl = compute_position_pnl_usd(asset, account, sid.is_long, amount, tp.asset_price, now)
    account = increase_position(account, amount, tp.asset_price, pnl.pnl_usd, now)
    _check_post_state(account)

    after_trade = compute_sub_account(
        assets, sub_account_id, account, tp.collateral_price, tp.asset_price,
        clock=fixed_clock(now),
    )
    logger.debug(
        "open position: sub_account=%s amount=%s price=%s fee_usd=%s safe=%s",
        sub_account_id, amount, tp.asset_price, fee_usd, after_trade.computed.is_im_safe,
    )
    return OpenPositionResult(
        after_trade=after_trade,
        is_trade_safe=after_trade.computed.is_im_safe,
        funding_fee_usd=funding_fee_usd,
        fee_usd=fee_usd,
    )


@margin_context
def compute_close_position(
    assets: Sequence[Asset],
    sub_account_id: str,
    sub_account: SubAccount,
    profit_asset_id: int,
    prices: PriceDict,
    amount: Decimal,
    broker_gas_fee: Decimal,
    *,
    clock: Clock = system_clock,
) -> ClosePositionResult:
    """Simulate closing *amount* of the position.

    Profit pays fees first. A loss is clamped to collateral. Fees not covered
    by profit, plus gas, come out of collateral with gas paid first; whatever
    collateral cannot cover is waived.
    """
    now = clock()
    sid = decode_sub_account_id(sub_account_id)
    tp = compute_trading_price(assets, sub_account_id, prices, False)
    profit_asset_id, profit_asset_price = resolve_profit_asset(
        assets, prices, sid.asset_id, tp.asset_price, sid.is_long, profit_asset_id,
    )
    amount = guard_amount(amount, max_amount=sub_account.size)
    broker_gas_fee = guard_gas_fee(broker_gas_fee)
    asset = assets[sid.asset_id]
    guard_close_position(asset, assets[sid.collateral_id], sid.is_long)

    total_fee_usd = (
        compute_funding_fee_usd(sub_account, asset, sid.is_long, tp.asset_price)
        + compute_position_fee_usd(asset, amount, tp.asset_price)
    )
    account = update_entry_funding(sub_account, asset, sid.is_long)

    paid_fee_usd = ZERO
    profit_asset_transferred = ZERO
    bitoro_token_transferred = ZERO
    pnl_usd = compute_position_pnl_usd(asset, account, sid.is_long, amount, tp.asset_price, now).pnl_usd
    if pnl_usd > ZERO:
        realized = compute_realize_profit(pnl_usd, total_fee_usd, assets[profit_asset_id], profit_asset_price)
        paid_fee_usd = realized.deduct_usd
        profit_asset_transferred = realized.profit_asset_transferred
        bitoro_token_transferred = realized.bitoro_token_transferred
    elif pnl_usd < ZERO:
        account = compute_realize_loss(account, tp.collateral_price, -pnl_usd, False)
    account = reduce_position(account, amount)

    if broker_gas_fee > ZERO or total_fee_usd > paid_fee_usd:
        fee_collateral = div(total_fee_usd - paid_fee_usd, tp.collateral_price)
        fee_and_gas_collateral = fee_collateral + broker_gas_fee
        if account.collateral < fee_and_gas_collateral:
            fee_and_gas_collateral = account.collateral
            if account.collateral < broker_gas_fee:
                fee_collateral = ZERO
            else:
                fee_collateral = account.collateral - broker_gas_fee
        account = deduct_collateral(account, fee_and_gas_collateral)
        paid_fee_usd += fee_collateral * tp.collateral_price
    _check_post_state(account)

    after_trade = compute_sub_account(
        assets, sub_account_id, account, tp.collateral_price, tp.asset_price,
        clock=fixed_clock(now),
    )
    logger.debug(
        "close position: sub_account=%s amount=%s price=%s pnl_usd=%s fee_usd=%s",
        sub_account_id, amount, tp.asset_price, pnl_usd, paid_fee_usd,
    )
    return ClosePositionResult(
        after_trade=after_trade,
        is_trade_safe=after_trade.computed.is_margin_safe,
        fee_usd=paid_fee_usd,
        profit_asset_transferred=profit_asset_transferred,
        bitoro_token_transferred=bitoro_token_transferred,
    )


@margin_context
def compute_withdraw_collateral(
    assets: Sequence[Asset],
    sub_account_id: str,
    sub_account: SubAccount,
    prices: PriceDict,
    amount: Decimal,
    *,
    clock: Clock = system_clock,
) -> WithdrawCollateralResult:
    now = clock()
    sid = decode_sub_account_id(sub_account_id)
    tp = compute_trading_price(assets, sub_account_id, prices, False)
    amount = guard_amount(amount)
    asset = assets[sid.asset_id]
    guard_withdraw_collateral(asset, assets[sid.collateral_id])

    fee_usd = compute_funding_fee_usd(sub_account, asset, sid.is_long, tp.asset_price)
    account = sub_account
    if account.size > ZERO:
        account = update_entry_funding(account, asset, sid.is_long)
    account = deduct_collateral(account, div(fee_usd, tp.collateral_price))
    account = deduct_collateral(account, amount)
    _check_post_state(account)

    after_trade = compute_sub_account(
        assets, sub_account_id, account, tp.collateral_price, tp.asset_price,
        clock=fixed_clock(now),
    )
    logger.debug(
        "withdraw collateral: sub_account=%s amount=%s fee_usd=%s",
        sub_account_id, amount, fee_usd,
    )
    return WithdrawCollateralResult(
        after_trade=after_trade,
        is_trade_safe=after_trade.computed.is_im_safe,
        fee_usd=fee_usd,
    )


@margin_context
def compute_withdraw_profit(
    assets: Sequence[Asset],
    sub_account_id: str,
    sub_account: SubAccount,
    profit_asset_id: int,
    prices: PriceDict,
    amount: Decimal,
    *,
    clock: Clock = system_clock,
) -> WithdrawProfitResult:
    """Take *amount* of profit (in profit-asset units) without closing.

    The withdrawal plus accrued funding must be covered by the realizable pnl
    of the whole position. The entry price moves so that the position keeps
    its size while its remaining pnl drops by the amount taken.
    """
    now = clock()
    sid = decode_sub_account_id(sub_account_id)
    tp = compute_trading_price(assets, sub_account_id, prices, False)
    profit_asset_id, profit_asset_price = resolve_profit_asset(
        assets, prices, sid.asset_id, tp.asset_price, sid.is_long, profit_asset_id,
    )
    amount = guard_amount(amount)
    asset = assets[sid.asset_id]
    guard_close_position(asset, assets[sid.collateral_id], sid.is_long)
    if sub_account.size == ZERO:
        raise InvalidArgumentError("empty position")

    fee_usd = compute_funding_fee_usd(sub_account, asset, sid.is_long, tp.asset_price)
    account = update_entry_funding(sub_account, asset, sid.is_long)
    delta_usd = amount * profit_asset_price + fee_usd
    pnl_usd = compute_position_pnl_usd(asset, account, sid.is_long, account.size, tp.asset_price, now).pnl_usd
    if pnl_usd < delta_usd:
        raise InsufficientPnlError(f"insufficient pnl: {pnl_usd} < {delta_usd}")
    realized = compute_realize_profit(delta_usd, fee_usd, assets[profit_asset_id], profit_asset_price)
    account = shift_entry_price(account, delta_usd, sid.is_long)
    _check_post_state(account)

    after_trade = compute_sub_account(
        assets, sub_account_id, account, tp.collateral_price, tp.asset_price,
        clock=fixed_clock(now),
    )
    logger.debug(
        "withdraw profit: sub_account=%s amount=%s delta_usd=%s pnl_usd=%s",
        sub_account_id, amount, delta_usd, pnl_usd,
    )
    return WithdrawProfitResult(
        after_trade=after_trade,
        is_trade_safe=after_trade.computed.is_im_safe,
        fee_usd=fee_usd,
        profit_asset_transferred=realized.profit_asset_transferred,
        bitoro_token_transferred=realized.bitoro_token_transferred,
    )
