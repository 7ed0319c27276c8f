"""Data types for the margin engine.

All types are frozen dataclasses (immutable). Monetary and ratio fields are
``Decimal``; constructors accept ``int``/``str`` and coerce, and reject floats.

Units/conventions:
- `*_usd` values are USD.
- `size`, `collateral`, `spot_liquidity` are native asset units.
- `*_rate` fields are plain ratios (0.01 == 1%).
- `*_time` fields are unix seconds.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from enum import Enum, unique
from typing import Mapping

from .math import ZERO, to_decimal

PriceDict = Mapping[str, Decimal]


@unique
class SpreadType(Enum):
    BID = "bid"
    ASK = "ask"


def _coerce_decimal_fields(obj: object) -> None:
    for f in fields(obj):  # type: ignore[arg-type]
        if f.type in ("Decimal", Decimal):
            object.__setattr__(obj, f.name, to_decimal(f.name, getattr(obj, f.name)))


def _require_int(name: str, value: object) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


def _require_bool(name: str, value: object) -> None:
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be a bool")


@dataclass(frozen=True)
class Asset:
    """Static per-market configuration."""

    symbol: str

    # Flags
    is_stable: bool = False
    is_tradable: bool = False
    is_openable: bool = False
    is_shortable: bool = False
    is_enabled: bool = False
    use_stable_token_for_profit: bool = False

    # Margin + fees
    initial_margin_rate: Decimal = ZERO
    maintenance_margin_rate: Decimal = ZERO
    position_fee_rate: Decimal = ZERO
    min_profit_time: int = 0
    min_profit_rate: Decimal = ZERO
    half_spread: Decimal = ZERO

    # Funding
    long_cumulative_funding_rate: Decimal = ZERO
    short_cumulative_funding: Decimal = ZERO
    long_funding_base_rate_8h: Decimal = ZERO
    long_funding_limit_rate_8h: Decimal = ZERO

    # Pool balance available for immediate profit payout
    spot_liquidity: Decimal = ZERO

    def __post_init__(self) -> None:
        if not isinstance(self.symbol, str) or not self.symbol:
            raise TypeError("symbol must be a non-empty string")
        for name in (
            "is_stable", "is_tradable", "is_openable",
            "is_shortable", "is_enabled", "use_stable_token_for_profit",
        ):
            _require_bool(name, getattr(self, name))
        _require_int("min_profit_time", self.min_profit_time)
        _coerce_decimal_fields(self)


@dataclass(frozen=True)
class LiquidityPool:
    """Pool-wide configuration."""

    liquidity_base_fee_rate: Decimal = ZERO
    liquidity_dynamic_fee_rate: Decimal = ZERO
    short_funding_base_rate_8h: Decimal = ZERO
    short_funding_limit_rate_8h: Decimal = ZERO

    def __post_init__(self) -> None:
        _coerce_decimal_fields(self)


@dataclass(frozen=True)
class SubAccount:
    """Position state of one sub-account. ``size == 0`` means flat."""

    collateral: Decimal = ZERO
    size: Decimal = ZERO
    entry_price: Decimal = ZERO
    entry_funding: Decimal = ZERO
    last_increased_time: int = 0

    def __post_init__(self) -> None:
        _require_int("last_increased_time", self.last_increased_time)
        _coerce_decimal_fields(self)
        if self.size < 0:
            raise ValueError(f"size must be non-negative: {self.size}")


@dataclass(frozen=True)
class SubAccountComputed:
    """Derived risk metrics of a sub-account at given prices."""

    position_value_usd: Decimal
    funding_fee_usd: Decimal
    pending_pnl_usd: Decimal
    pending_pnl_after_funding_usd: Decimal
    pnl_usd: Decimal
    pnl_after_funding_usd: Decimal
    margin_balance_usd: Decimal
    is_im_safe: bool
    is_mm_safe: bool
    is_margin_safe: bool
    leverage: Decimal
    effective_leverage: Decimal
    pending_roe: Decimal
    liquidation_price: Decimal
    withdrawable_collateral: Decimal
    withdrawable_profit: Decimal


@dataclass(frozen=True)
class SubAccountDetails:
    sub_account: SubAccount
    computed: SubAccountComputed


@dataclass(frozen=True)
class TradingPrice:
    asset_price: Decimal
    collateral_price: Decimal


@dataclass(frozen=True)
class PositionPnl:
    pending_pnl_usd: Decimal
    pnl_usd: Decimal


@dataclass(frozen=True)
class RealizeProfitResult:
    deduct_usd: Decimal
    profit_asset_transferred: Decimal
    bitoro_token_transferred: Decimal


@dataclass(frozen=True)
class OpenPositionResult:
    after_trade: SubAccountDetails
    is_trade_safe: bool
    funding_fee_usd: Decimal
    fee_usd: Decimal


@dataclass(frozen=True)
class ClosePositionResult:
    after_trade: SubAccountDetails
    is_trade_safe: bool
    fee_usd: Decimal
    profit_asset_transferred: Decimal
    bitoro_token_transferred: Decimal


@dataclass(frozen=True)
class WithdrawCollateralResult:
    after_trade: SubAccountDetails
    is_trade_safe: bool
    fee_usd: Decimal


@dataclass(frozen=True)
class WithdrawProfitResult:
    after_trade: SubAccountDetails
    is_trade_safe: bool
    fee_usd: Decimal
    profit_asset_transferred: Decimal
    bitoro_token_transferred: Decimal


@dataclass(frozen=True)
class FundingRate8H:
    long_funding_rate_8h: Decimal
    short_funding_rate_8h: Decimal
