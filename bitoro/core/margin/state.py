"""Snapshot construction and serialization.

Configuration snapshots (`Asset`, `LiquidityPool`) and account state
(`SubAccount`) arrive from the caller as plain dicts (e.g. decoded JSON).
Decimal fields are written out as plain decimal strings so a round trip is
exact: `sub_account_from_dict(sub_account_to_dict(s)) == s`.
"""

from __future__ import annotations

from dataclasses import fields
from decimal import Decimal
from typing import Any, Mapping, Sequence, TypeVar

from .types import Asset, LiquidityPool, SubAccount

T = TypeVar("T")

# Auto-derived from dataclass field definitions (single source of truth).
ASSET_KEYS: tuple[str, ...] = tuple(Asset.__dataclass_fields__)
LIQUIDITY_POOL_KEYS: tuple[str, ...] = tuple(LiquidityPool.__dataclass_fields__)
SUB_ACCOUNT_KEYS: tuple[str, ...] = tuple(SubAccount.__dataclass_fields__)


def _from_dict(cls: type[T], d: Mapping[str, Any], *, partial: bool) -> T:
    """Build *cls* from *d*. Raises KeyError on missing fields unless *partial*."""
    kwargs: dict[str, Any] = {}
    for f in fields(cls):  # type: ignore[arg-type]
        if f.name not in d:
            if partial:
                continue
            raise KeyError(f.name)
        kwargs[f.name] = d[f.name]
    return cls(**kwargs)


def _to_dict(obj: Any) -> dict[str, bool | int | str]:
    out: dict[str, bool | int | str] = {}
    for f in fields(obj):
        val = getattr(obj, f.name)
        out[f.name] = format(val, "f") if isinstance(val, Decimal) else val
    return out


def asset_from_dict(d: Mapping[str, Any]) -> Asset:
    """Unspecified flags and rates take their (disabled/zero) defaults; ``symbol`` is required."""
    if "symbol" not in d:
        raise KeyError("symbol")
    return _from_dict(Asset, d, partial=True)


def assets_from_list(items: Sequence[Mapping[str, Any]]) -> list[Asset]:
    """Asset list in index order (the index is the asset id)."""
    return [asset_from_dict(d) for d in items]


def asset_to_dict(asset: Asset) -> dict[str, bool | int | str]:
    return _to_dict(asset)


def pool_from_dict(d: Mapping[str, Any]) -> LiquidityPool:
    return _from_dict(LiquidityPool, d, partial=True)


def pool_to_dict(pool: LiquidityPool) -> dict[str, bool | int | str]:
    return _to_dict(pool)


def sub_account_from_dict(d: Mapping[str, Any]) -> SubAccount:
    """Account state must be complete. Raises KeyError on missing fields."""
    return _from_dict(SubAccount, d, partial=False)


def sub_account_to_dict(sub_account: SubAccount) -> dict[str, bool | int | str]:
    return _to_dict(sub_account)
