"""
models.py
---------

Defines the core data model of the journal: trades, the instrument variants
a trade can be priced under, journal entries and the derived records used
for performance reporting. Keeping the model separate lets the storage
layer, the importers and the web app share one definition.

The persisted JSON layout uses camelCase keys (``entryPrice``,
``isOpen``...). ``to_dict`` / ``from_dict`` are the only places that know
about it.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

# -------------------------
# small parse helpers
# -------------------------
def to_float(x: Any, default: float = 0.0) -> float:
    """Parse a number, falling back to ``default`` for blanks and garbage."""
    if x is None or x == "":
        return default
    try:
        value = float(x)
    except (ValueError, TypeError):
        return default
    if math.isnan(value):
        return default
    return value


def to_optional_float(x: Any) -> Optional[float]:
    if x is None or x == "":
        return None
    try:
        value = float(x)
    except (ValueError, TypeError):
        return None
    return None if math.isnan(value) else value


def to_bool(x: Any, default: bool = False) -> bool:
    """Parse a flag from JSON or form input. ``"false"``, ``"0"`` and ``"no"`` are False."""
    if x is None or x == "":
        return default
    if isinstance(x, str):
        value = x.strip().lower()
        if value in ("true", "1", "yes", "on"):
            return True
        if value in ("false", "0", "no", "off"):
            return False
        return default
    return bool(x)


def parse_dt(s: Any) -> Optional[datetime]:
    """Parse an ISO timestamp (``Z`` suffix allowed). Returns None if blank or invalid."""
    if isinstance(s, datetime):
        return s
    if not s:
        return None
    s = str(s).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def format_dt(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def new_id() -> str:
    return uuid.uuid4().hex


# =========================================
# Instrument variants (one class per type)
# =========================================
@dataclass
class Equity:
    """Shares; P&L is price difference times share count."""

    instrument_type = "stock"


@dataclass
class Crypto:
    """Coins/units; priced exactly like equities."""

    instrument_type = "crypto"


@dataclass
class Forex:
    """Currency pair sized in lots.

    Attributes
    ----------
    lots: float
        Number of lots traded.
    lot_size: float
        Units per lot (100000 for a standard lot).
    pip_value: Optional[float]
        Account-currency value of one pip per lot. None means derive it
        from ``lot_size`` (see ``calculations.default_pip_value``).
    """

    lots: float = 1.0
    lot_size: float = 100000.0
    pip_value: Optional[float] = None

    instrument_type = "forex"


@dataclass
class Commodity:
    """Futures/commodity contracts priced in ticks."""

    lots: float = 1.0
    tick_size: float = 0.25
    tick_value: float = 50.0

    instrument_type = "commodity"


Instrument = Union[Equity, Crypto, Forex, Commodity]


def instrument_from_dict(d: Dict[str, Any]) -> Instrument:
    kind = str(d.get("instrumentType") or "stock").lower()
    if kind == "forex":
        return Forex(
            lots=to_float(d.get("lots"), 1.0),
            lot_size=to_float(d.get("lotSize"), 100000.0),
            pip_value=to_optional_float(d.get("pipValue")),
        )
    if kind == "commodity":
        return Commodity(
            lots=to_float(d.get("lots"), 1.0),
            tick_size=to_float(d.get("tickSize"), 0.25),
            tick_value=to_float(d.get("tickValue"), 50.0),
        )
    if kind == "crypto":
        return Crypto()
    return Equity()


def instrument_to_dict(instrument: Instrument) -> Dict[str, Any]:
    out: Dict[str, Any] = {"instrumentType": instrument.instrument_type}
    if isinstance(instrument, Forex):
        out.update(lots=instrument.lots, lotSize=instrument.lot_size)
        if instrument.pip_value is not None:
            out["pipValue"] = instrument.pip_value
    elif isinstance(instrument, Commodity):
        out.update(lots=instrument.lots, tickSize=instrument.tick_size, tickValue=instrument.tick_value)
    return out


# =========================================
# Trade
# =========================================
@dataclass
class Trade:
    """Represents a single position, open or closed.

    Attributes
    ----------
    id: str
        Opaque unique identifier.
    symbol: str
        Ticker or pair, e.g. 'AAPL', 'EURUSD'.
    instrument: Instrument
        Pricing variant; carries lots/pip/tick details where relevant.
    direction: str
        Either 'long' or 'short'. Determines the sign of the P&L.
    entry_price: float
        Price at which the position was opened.
    size: float
        Share/unit count. For imported forex trades this is the raw unit count.
    entry_date: datetime
        When the position was opened.
    exit_price, exit_date: Optional
        Present only once the position is closed.
    is_open: bool
        True while the position is running.
    pnl: Optional[float]
        Realized P&L, None while open.
    commission: float
        Fees, subtracted from the P&L.
    risk, reward: float
        Planned risk and reward amounts.
    """

    id: str
    symbol: str
    direction: str
    entry_price: float
    size: float
    entry_date: datetime
    instrument: Instrument = field(default_factory=Equity)
    exit_price: Optional[float] = None
    exit_date: Optional[datetime] = None
    is_open: bool = True
    pnl: Optional[float] = None
    commission: float = 0.0
    notes: str = ""
    tags: List[str] = field(default_factory=list)
    screenshots: List[str] = field(default_factory=list)
    setup: str = ""
    risk: float = 0.0
    reward: float = 0.0

    @property
    def instrument_type(self) -> str:
        return self.instrument.instrument_type

    @property
    def risk_reward_ratio(self) -> float:
        if self.risk <= 0:
            return 0.0
        return self.reward / self.risk

    @property
    def is_closed(self) -> bool:
        return not self.is_open and self.pnl is not None

    def to_dict(self) -> Dict[str, Any]:
        """Flat camelCase dict, the layout used for storage and JSON export."""
        out: Dict[str, Any] = {
            "id": self.id,
            "symbol": self.symbol,
            "entryPrice": self.entry_price,
            "exitPrice": self.exit_price,
            "size": self.size,
        }
        out.update(instrument_to_dict(self.instrument))
        out.update(
            {
                "direction": self.direction,
                "entryDate": format_dt(self.entry_date),
                "exitDate": format_dt(self.exit_date),
                "notes": self.notes,
                "tags": list(self.tags),
                "screenshots": list(self.screenshots),
                "pnl": self.pnl,
                "commission": self.commission,
                "isOpen": self.is_open,
                "setup": self.setup,
                "risk": self.risk,
                "reward": self.reward,
                "riskRewardRatio": self.risk_reward_ratio,
            }
        )
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Trade":
        direction = str(d.get("direction") or "long").lower()
        exit_price = to_optional_float(d.get("exitPrice"))
        return cls(
            id=str(d.get("id") or new_id()),
            symbol=str(d.get("symbol") or ""),
            direction="short" if direction == "short" else "long",
            entry_price=to_float(d.get("entryPrice")),
            size=to_float(d.get("size")),
            entry_date=parse_dt(d.get("entryDate")) or datetime.now(timezone.utc),
            instrument=instrument_from_dict(d),
            exit_price=exit_price,
            exit_date=parse_dt(d.get("exitDate")),
            is_open=to_bool(d.get("isOpen"), default=exit_price is None),
            pnl=to_optional_float(d.get("pnl")),
            commission=to_float(d.get("commission")),
            notes=str(d.get("notes") or ""),
            tags=[str(t) for t in (d.get("tags") or [])],
            screenshots=[str(s) for s in (d.get("screenshots") or [])],
            setup=str(d.get("setup") or ""),
            risk=to_float(d.get("risk")),
            reward=to_float(d.get("reward")),
        )


# =========================================
# Journal
# =========================================
class Mood(str, Enum):
    """Ordered best to worst."""

    EXCELLENT = "excellent"
    GOOD = "good"
    NEUTRAL = "neutral"
    BAD = "bad"
    TERRIBLE = "terrible"

    @property
    def rank(self) -> int:
        return list(Mood).index(self)

    @classmethod
    def parse(cls, value: Any) -> "Mood":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.NEUTRAL


@dataclass
class JournalEntry:
    """A free-text reflection, not linked to any trade."""

    id: str
    date: str
    title: str
    content: str = ""
    mood: Mood = Mood.NEUTRAL
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "title": self.title,
            "content": self.content,
            "mood": self.mood.value,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "JournalEntry":
        return cls(
            id=str(d.get("id") or new_id()),
            date=str(d.get("date") or ""),
            title=str(d.get("title") or ""),
            content=str(d.get("content") or ""),
            mood=Mood.parse(d.get("mood")),
            tags=[str(t) for t in (d.get("tags") or [])],
        )


# =========================================
# Derived records
# =========================================
@dataclass
class PerformanceMetrics:
    total_trades: int = 0
    win_rate: float = 0.0
    total_pnl: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    profit_factor: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    consecutive_wins: int = 0
    consecutive_losses: int = 0
    risk_reward_ratio: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalTrades": self.total_trades,
            "winRate": self.win_rate,
            "totalPnL": self.total_pnl,
            "averageWin": self.average_win,
            "averageLoss": self.average_loss,
            "profitFactor": self.profit_factor,
            "largestWin": self.largest_win,
            "largestLoss": self.largest_loss,
            "consecutiveWins": self.consecutive_wins,
            "consecutiveLosses": self.consecutive_losses,
            "riskRewardRatio": self.risk_reward_ratio,
        }


@dataclass
class EquityPoint:
    date: str
    pnl: float
    trade: str

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "pnl": self.pnl, "trade": self.trade}
