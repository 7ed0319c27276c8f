"""Dispatch-table engine over the trade simulations.

``simulate(assets, request)`` is the single entry point. It:

1. Dispatches ``request.action`` to the matching ``compute_*`` simulation.
2. Turns caller errors (bad arguments, insufficient pnl) into rejections.
3. Rejects results whose post-trade state is not safe.
4. Returns a ``StepResult`` (accepted or rejected with reason).

Bankruptcy and internal invariant errors are not rejections: they propagate.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, unique
from typing import Callable, Sequence, Union

from .clock import Clock, system_clock
from .errors import InsufficientPnlError, InvalidArgumentError, TradeRejectedError
from .math import ZERO
from .trade import (
    compute_close_position,
    compute_open_position,
    compute_withdraw_collateral,
    compute_withdraw_profit,
)
from .types import (
    Asset,
    ClosePositionResult,
    OpenPositionResult,
    PriceDict,
    SubAccount,
    WithdrawCollateralResult,
    WithdrawProfitResult,
)

TradeResult = Union[OpenPositionResult, ClosePositionResult, WithdrawCollateralResult, WithdrawProfitResult]


@unique
class Action(Enum):
    OPEN_POSITION = "open_position"
    CLOSE_POSITION = "close_position"
    WITHDRAW_COLLATERAL = "withdraw_collateral"
    WITHDRAW_PROFIT = "withdraw_profit"


@dataclass(frozen=True)
class TradeRequest:
    """Parameters for an action. Unused fields keep their defaults."""

    action: Action
    sub_account_id: str
    sub_account: SubAccount
    prices: PriceDict
    amount: Decimal
    broker_gas_fee: Decimal = ZERO   # open / close
    profit_asset_id: int = 0         # close / withdraw_profit


@dataclass(frozen=True)
class StepResult:
    """Result of a single simulated action."""

    accepted: bool
    result: TradeResult | None = None
    rejection: str | None = None


SimulateFn = Callable[[Sequence[Asset], TradeRequest, Clock], TradeResult]


def _open(assets: Sequence[Asset], r: TradeRequest, clock: Clock) -> TradeResult:
    return compute_open_position(
        assets, r.sub_account_id, r.sub_account, r.prices, r.amount, r.broker_gas_fee, clock=clock,
    )


def _close(assets: Sequence[Asset], r: TradeRequest, clock: Clock) -> TradeResult:
    return compute_close_position(
        assets, r.sub_account_id, r.sub_account, r.profit_asset_id, r.prices, r.amount,
        r.broker_gas_fee, clock=clock,
    )


def _withdraw_collateral(assets: Sequence[Asset], r: TradeRequest, clock: Clock) -> TradeResult:
    return compute_withdraw_collateral(
        assets, r.sub_account_id, r.sub_account, r.prices, r.amount, clock=clock,
    )


def _withdraw_profit(assets: Sequence[Asset], r: TradeRequest, clock: Clock) -> TradeResult:
    return compute_withdraw_profit(
        assets, r.sub_account_id, r.sub_account, r.profit_asset_id, r.prices, r.amount, clock=clock,
    )


_DISPATCH: dict[Action, SimulateFn] = {
    Action.OPEN_POSITION: _open,
    Action.CLOSE_POSITION: _close,
    Action.WITHDRAW_COLLATERAL: _withdraw_collateral,
    Action.WITHDRAW_PROFIT: _withdraw_profit,
}


def simulate(
    assets: Sequence[Asset],
    request: TradeRequest,
    *,
    clock: Clock = system_clock,
) -> StepResult:
    """Simulate one action.

    Returns ``StepResult`` with ``accepted=True`` on a safe trade, or
    ``accepted=False`` with a ``rejection`` reason string.
    """
    fn = _DISPATCH.get(request.action)
    if fn is None:
        return StepResult(accepted=False, rejection=f"unknown_action:{request.action}")

    try:
        result = fn(assets, request, clock)
    except InvalidArgumentError as exc:
        return StepResult(accepted=False, rejection=f"invalid_argument:{exc}")
    except InsufficientPnlError:
        return StepResult(accepted=False, rejection="insufficient_pnl")

    if not result.is_trade_safe:
        return StepResult(accepted=False, result=result, rejection="unsafe")
    return StepResult(accepted=True, result=result)


def simulate_or_raise(
    assets: Sequence[Asset],
    request: TradeRequest,
    *,
    clock: Clock = system_clock,
) -> TradeResult:
    """Like ``simulate()`` but raises on rejection and returns the trade result.

    Raises:
        InvalidArgumentError: Malformed request or asset state.
        InsufficientPnlError: Profit withdrawal exceeds realized pnl.
        TradeRejectedError: Post-trade state is not safe.
    """
    fn = _DISPATCH.get(request.action)
    if fn is None:
        raise InvalidArgumentError(f"unknown_action:{request.action}")
    result = fn(assets, request, clock)
    if not result.is_trade_safe:
        raise TradeRejectedError(f"unsafe {request.action.value}: {request.sub_account_id}")
    return result
