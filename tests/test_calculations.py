from __future__ import annotations

import pytest

from tradejournal.calculations import calculate_pnl, calculate_risk_reward_ratio, default_pip_value
from tradejournal.models import Commodity, Crypto, Forex


def test_long_equity_with_commission(trade_factory):
    trade = trade_factory(entry_price=100, exit_price=110, size=10, commission=5)
    assert calculate_pnl(trade) == pytest.approx(95)


def test_short_equity_without_commission(trade_factory):
    trade = trade_factory(direction="short", entry_price=100, exit_price=90, size=10)
    assert calculate_pnl(trade) == pytest.approx(100)


@pytest.mark.parametrize("direction,expected", [("long", -37.5), ("short", 37.5)])
def test_crypto_priced_like_equity(trade_factory, direction, expected):
    trade = trade_factory(
        symbol="BTCUSD", direction=direction, entry_price=60000, exit_price=59250, size=0.05, instrument=Crypto()
    )
    assert calculate_pnl(trade) == pytest.approx(expected)


def test_open_trade_has_zero_pnl(trade_factory):
    trade = trade_factory()
    assert trade.exit_price is None
    assert calculate_pnl(trade) == 0


def test_forex_explicit_pip_value(trade_factory):
    trade = trade_factory(
        symbol="EURUSD", entry_price=1.1000, exit_price=1.1050, size=200000,
        instrument=Forex(lots=2, pip_value=10), commission=4,
    )
    # 50 pips * 10 * 2 lots - 4
    assert calculate_pnl(trade) == pytest.approx(996)


def test_forex_default_pip_value_is_ten_per_standard_lot(trade_factory):
    assert default_pip_value("EURUSD", 100000) == pytest.approx(10)
    trade = trade_factory(
        symbol="GBPUSD", direction="short", entry_price=1.2700, exit_price=1.2650, size=100000,
        instrument=Forex(lots=1),
    )
    assert calculate_pnl(trade) == pytest.approx(500)


def test_forex_jpy_pairs_use_two_decimal_pips(trade_factory):
    trade = trade_factory(
        symbol="USDJPY", entry_price=150.00, exit_price=150.50, size=100000,
        instrument=Forex(lots=1, pip_value=6.5),
    )
    # 50 pips at 6.5 per pip
    assert calculate_pnl(trade) == pytest.approx(325)


def test_forex_default_pip_value_convention(trade_factory):
    """Known ambiguity: the default pip value is lot_size * pip size and the
    P&L is NOT divided by lot_size * lots. Revisit if product decides otherwise."""
    trade = trade_factory(
        symbol="EURUSD", entry_price=1.1000, exit_price=1.1010, size=50000,
        instrument=Forex(lots=0.5, lot_size=100000),
    )
    # 10 pips * 10 per pip * 0.5 lots
    assert calculate_pnl(trade) == pytest.approx(50)


def test_commodity_ticks(trade_factory):
    trade = trade_factory(
        symbol="ES", entry_price=5000.00, exit_price=5002.50, size=2,
        instrument=Commodity(lots=2, tick_size=0.25, tick_value=12.5), commission=5,
    )
    # 10 ticks * 12.5 * 2 contracts - 5
    assert calculate_pnl(trade) == pytest.approx(245)


def test_commodity_short_loss(trade_factory):
    trade = trade_factory(
        symbol="CL", direction="short", entry_price=80.00, exit_price=80.50, size=1,
        instrument=Commodity(lots=1, tick_size=0.01, tick_value=10),
    )
    assert calculate_pnl(trade) == pytest.approx(-500)


def test_risk_reward_ratio():
    assert calculate_risk_reward_ratio(100, 250) == pytest.approx(2.5)
    assert calculate_risk_reward_ratio(0, 250) == 0
    assert calculate_risk_reward_ratio(-5, 250) == 0


def test_trade_risk_reward_property(trade_factory):
    assert trade_factory(risk=50, reward=150).risk_reward_ratio == pytest.approx(3)
    assert trade_factory(risk=0, reward=150).risk_reward_ratio == 0
