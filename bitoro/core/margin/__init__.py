"""`margin`: position valuation and trade simulation for the bitoro margin protocol.

This package is a pure functional core:
- exact `Decimal` arithmetic under one shared context (see `math.py`),
- immutable snapshots (frozen dataclasses),
- fail-closed guards and post-state invariant checks.

Prices, configuration, sub-account ids and the clock are supplied by the
caller; nothing here performs I/O.

Public API:
- `compute_sub_account(...) -> SubAccountDetails`
- `compute_open_position / compute_close_position / compute_withdraw_collateral / compute_withdraw_profit`
- `simulate(assets, request) -> StepResult`
- `simulate_or_raise(assets, request)` (raises on rejection)
"""

from .clock import Clock, fixed_clock, system_clock
from .engine import Action, StepResult, TradeRequest, simulate, simulate_or_raise
from .errors import (
    BankruptError,
    BugError,
    InsufficientLiquidityError,
    InsufficientLiquidityType,
    InsufficientPnlError,
    InvalidArgumentError,
    MarginError,
    MarginInvariantError,
    TradeRejectedError,
)
from .funding import compute_funding_rate_8h, compute_single_funding_rate_8h
from .liquidity import compute_liquidity_fee_rate
from .pricing import compute_liquidity_price, compute_price_with_spread, compute_trading_price
from .state import (
    asset_from_dict,
    assets_from_list,
    pool_from_dict,
    sub_account_from_dict,
    sub_account_to_dict,
)
from .subaccount_id import SubAccountId, decode_sub_account_id, encode_sub_account_id
from .trade import (
    compute_close_position,
    compute_open_position,
    compute_realize_profit,
    compute_withdraw_collateral,
    compute_withdraw_profit,
)
from .types import (
    Asset,
    ClosePositionResult,
    FundingRate8H,
    LiquidityPool,
    OpenPositionResult,
    PositionPnl,
    PriceDict,
    RealizeProfitResult,
    SpreadType,
    SubAccount,
    SubAccountComputed,
    SubAccountDetails,
    TradingPrice,
    WithdrawCollateralResult,
    WithdrawProfitResult,
)
from .updates import compute_realize_loss
from .valuation import (
    compute_funding_fee_usd,
    compute_position_pnl_usd,
    compute_sub_account,
    update_entry_funding,
)

__all__ = [
    "Clock",
    "fixed_clock",
    "system_clock",
    "Action",
    "StepResult",
    "TradeRequest",
    "simulate",
    "simulate_or_raise",
    "BankruptError",
    "BugError",
    "InsufficientLiquidityError",
    "InsufficientLiquidityType",
    "InsufficientPnlError",
    "InvalidArgumentError",
    "MarginError",
    "MarginInvariantError",
    "TradeRejectedError",
    "compute_funding_rate_8h",
    "compute_single_funding_rate_8h",
    "compute_liquidity_fee_rate",
    "compute_liquidity_price",
    "compute_price_with_spread",
    "compute_trading_price",
    "asset_from_dict",
    "assets_from_list",
    "pool_from_dict",
    "sub_account_from_dict",
    "sub_account_to_dict",
    "SubAccountId",
    "decode_sub_account_id",
    "encode_sub_account_id",
    "compute_close_position",
    "compute_open_position",
    "compute_realize_profit",
    "compute_withdraw_collateral",
    "compute_withdraw_profit",
    "Asset",
    "ClosePositionResult",
    "FundingRate8H",
    "LiquidityPool",
    "OpenPositionResult",
    "PositionPnl",
    "PriceDict",
    "RealizeProfitResult",
    "SpreadType",
    "SubAccount",
    "SubAccountComputed",
    "SubAccountDetails",
    "TradingPrice",
    "WithdrawCollateralResult",
    "WithdrawProfitResult",
    "compute_realize_loss",
    "compute_funding_fee_usd",
    "compute_position_pnl_usd",
    "compute_sub_account",
    "update_entry_funding",
]
