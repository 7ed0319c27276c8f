"""Tests for bitoro/core/margin/engine.py: dispatch table + simulate.

Tests cover accept/reject classification and short action sequences
threaded through the engine.
"""

from dataclasses import replace
from decimal import Decimal as D

import pytest

from bitoro.core.margin import (
    Action,
    Asset,
    InsufficientPnlError,
    InvalidArgumentError,
    MarginInvariantError,
    OpenPositionResult,
    StepResult,
    SubAccount,
    TradeRejectedError,
    TradeRequest,
    encode_sub_account_id,
    fixed_clock,
    simulate,
    simulate_or_raise,
)

NOW = 1_700_000_000
CLOCK = fixed_clock(NOW)

ASSETS = [
    Asset(symbol="USDC", is_stable=True, is_enabled=True, spot_liquidity=D(1000)),
    Asset(
        symbol="ETH",
        is_tradable=True,
        is_openable=True,
        is_shortable=True,
        is_enabled=True,
        initial_margin_rate=D("0.1"),
        maintenance_margin_rate=D("0.05"),
        position_fee_rate=D("0.001"),
        spot_liquidity=D(100),
    ),
]
LONG_ID = encode_sub_account_id("0x" + "44" * 20, 0, 1, True)


def _request(action: Action, sub_account: SubAccount, amount: str, eth: str = "100", **kwargs) -> TradeRequest:
    return TradeRequest(
        action=action,
        sub_account_id=LONG_ID,
        sub_account=sub_account,
        prices={"USDC": D(1), "ETH": D(eth)},
        amount=D(amount),
        **kwargs,
    )


FLAT = SubAccount(collateral=D(1000))
OPEN = SubAccount(collateral=D(1000), size=D(10), entry_price=D(100))


class TestSimulate:
    def test_accepted_open(self):
        r = simulate(ASSETS, _request(Action.OPEN_POSITION, FLAT, "10"), clock=CLOCK)
        assert isinstance(r, StepResult)
        assert r.accepted
        assert r.rejection is None
        assert isinstance(r.result, OpenPositionResult)
        assert r.result.after_trade.sub_account.size == D(10)

    def test_invalid_argument_rejected(self):
        r = simulate(ASSETS, _request(Action.OPEN_POSITION, FLAT, "0"), clock=CLOCK)
        assert not r.accepted
        assert r.result is None
        assert r.rejection == "invalid_argument:invalid amount 0"

    @pytest.mark.parametrize("amount", [1.5, "abc", D("NaN")])
    def test_malformed_amount_rejected(self, amount):
        req = TradeRequest(
            action=Action.OPEN_POSITION,
            sub_account_id=LONG_ID,
            sub_account=FLAT,
            prices={"USDC": D(1), "ETH": D(100)},
            amount=amount,
        )
        r = simulate(ASSETS, req, clock=CLOCK)
        assert not r.accepted
        assert r.result is None
        assert r.rejection.startswith("invalid_argument:invalid amount")

    @pytest.mark.parametrize("price", [100.0, "abc", D("NaN")])
    def test_malformed_price_rejected(self, price):
        req = TradeRequest(
            action=Action.CLOSE_POSITION,
            sub_account_id=LONG_ID,
            sub_account=OPEN,
            prices={"USDC": D(1), "ETH": price},
            amount=D(10),
        )
        r = simulate(ASSETS, req, clock=CLOCK)
        assert not r.accepted
        assert r.rejection.startswith("invalid_argument:invalid price[ETH]")

    def test_malformed_gas_fee_rejected(self):
        r = simulate(ASSETS, _request(Action.OPEN_POSITION, FLAT, "1", broker_gas_fee=0.5), clock=CLOCK)
        assert not r.accepted
        assert r.rejection.startswith("invalid_argument:invalid gas_fee")

    def test_insufficient_pnl_rejected(self):
        r = simulate(ASSETS, _request(Action.WITHDRAW_PROFIT, OPEN, "1", eth="110"), clock=CLOCK)
        assert not r.accepted
        assert r.rejection == "insufficient_pnl"

    def test_unsafe_rejected_with_result(self):
        r = simulate(ASSETS, _request(Action.OPEN_POSITION, SubAccount(collateral=D(50)), "10"), clock=CLOCK)
        assert not r.accepted
        assert r.rejection == "unsafe"
        assert r.result is not None
        assert r.result.is_trade_safe is False

    def test_withdraw_collateral_dispatch(self):
        r = simulate(ASSETS, _request(Action.WITHDRAW_COLLATERAL, FLAT, "250"), clock=CLOCK)
        assert r.accepted
        assert r.result.after_trade.sub_account.collateral == D(750)

    def test_close_dispatch_uses_gas_fee(self):
        req = _request(Action.CLOSE_POSITION, OPEN, "10", broker_gas_fee=D(2))
        r = simulate(ASSETS, req, clock=CLOCK)
        assert r.accepted
        assert r.result.after_trade.sub_account.collateral == D(997)

    def test_invariant_error_propagates(self):
        malformed = SubAccount(collateral=D(1000), size=D(10))
        with pytest.raises(MarginInvariantError):
            simulate(ASSETS, _request(Action.CLOSE_POSITION, malformed, "5"), clock=CLOCK)

    def test_sequence(self):
        r = simulate(ASSETS, _request(Action.OPEN_POSITION, FLAT, "10"), clock=CLOCK)
        assert r.accepted
        s = r.result.after_trade.sub_account
        assert s.collateral == D(999)

        r = simulate(ASSETS, _request(Action.WITHDRAW_PROFIT, s, "0.5", eth="110"), clock=CLOCK)
        assert r.accepted
        s = r.result.after_trade.sub_account
        assert s.entry_price == D("105.5")

        r = simulate(ASSETS, _request(Action.CLOSE_POSITION, s, "10", eth="110"), clock=CLOCK)
        assert r.accepted
        s = r.result.after_trade.sub_account
        assert s.size == 0
        assert s.collateral == D(999)
        # (45 - 1.1) / 110
        assert r.result.profit_asset_transferred == D("0.39909090909090909091")


class TestSimulateOrRaise:
    def test_returns_result(self):
        result = simulate_or_raise(ASSETS, _request(Action.OPEN_POSITION, FLAT, "10"), clock=CLOCK)
        assert result.after_trade.sub_account.last_increased_time == NOW

    def test_unsafe_raises(self):
        with pytest.raises(TradeRejectedError):
            simulate_or_raise(ASSETS, _request(Action.WITHDRAW_COLLATERAL, OPEN, "950"), clock=CLOCK)

    def test_invalid_argument_raises(self):
        assets = [ASSETS[0], replace(ASSETS[1], is_enabled=False)]
        with pytest.raises(InvalidArgumentError, match="not tradable"):
            simulate_or_raise(assets, _request(Action.OPEN_POSITION, FLAT, "1"), clock=CLOCK)

    def test_insufficient_pnl_raises(self):
        with pytest.raises(InsufficientPnlError):
            simulate_or_raise(ASSETS, _request(Action.WITHDRAW_PROFIT, OPEN, "1", eth="110"), clock=CLOCK)

    def test_malformed_amount_raises_invalid_argument(self):
        req = replace(_request(Action.WITHDRAW_COLLATERAL, FLAT, "1"), amount=1.5)
        with pytest.raises(InvalidArgumentError, match="invalid amount"):
            simulate_or_raise(ASSETS, req, clock=CLOCK)
