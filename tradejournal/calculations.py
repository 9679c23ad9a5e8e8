"""
calculations.py
---------------

Realized profit/loss for a single trade. The formula depends on the
instrument the trade is priced under:

- stock / crypto: price difference times size
- forex: price difference converted to pips, times pip value and lots
- commodity: price difference converted to ticks, times tick value and lots

Commission is subtracted in every case. These functions are pure; they are
used when a trade is added or closed and never touch storage.
"""

from .models import Commodity, Forex, Trade

STANDARD_PIP = 0.0001
JPY_PIP = 0.01


def pip_size(symbol: str) -> float:
    """Pip increment for a pair: 0.01 for JPY quotes, 0.0001 otherwise."""
    return JPY_PIP if "JPY" in symbol.upper() else STANDARD_PIP


def pips_per_unit(symbol: str) -> int:
    return 100 if "JPY" in symbol.upper() else 10000


def default_pip_value(symbol: str, lot_size: float) -> float:
    """Value of one pip for one lot when the user did not supply it.

    ``lot_size * pip_size``: 10 per pip for a 100000 unit lot on a
    USD-quoted pair. For JPY pairs the result is in yen per pip.
    """
    return lot_size * pip_size(symbol)


def _signed_difference(trade: Trade) -> float:
    if trade.direction == "long":
        return trade.exit_price - trade.entry_price
    return trade.entry_price - trade.exit_price


def forex_pnl(trade: Trade, instrument: Forex) -> float:
    pips = _signed_difference(trade) * pips_per_unit(trade.symbol)
    lots = instrument.lots or 1.0
    pip_value = instrument.pip_value or default_pip_value(trade.symbol, instrument.lot_size)
    return pips * pip_value * lots


def commodity_pnl(trade: Trade, instrument: Commodity) -> float:
    tick_size = instrument.tick_size or 0.25
    ticks = _signed_difference(trade) / tick_size
    return ticks * (instrument.tick_value or 50.0) * (instrument.lots or 1.0)


def calculate_pnl(trade: Trade) -> float:
    """Compute the realized P&L of a closed trade.

    Returns 0 when the trade has no exit price yet.
    """
    if not trade.exit_price:
        return 0.0

    instrument = trade.instrument
    if isinstance(instrument, Forex):
        pnl = forex_pnl(trade, instrument)
    elif isinstance(instrument, Commodity):
        pnl = commodity_pnl(trade, instrument)
    else:
        pnl = _signed_difference(trade) * trade.size

    return pnl - trade.commission


def calculate_risk_reward_ratio(risk: float, reward: float) -> float:
    if risk <= 0:
        return 0.0
    return reward / risk
