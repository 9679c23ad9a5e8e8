"""
analytics.py
-------------

This module contains functions to compute performance metrics and chart
series from a list of Trade objects. Splitting analytics into its own
module makes it easy to reuse these functions in different contexts
(web app, scripts, tests) without coupling them to UI or storage concerns.

Only closed trades with a realized P&L take part in any calculation.
"""

from __future__ import annotations

import calendar
from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List

import pandas as pd

from .models import EquityPoint, PerformanceMetrics, Trade


def closed_trades(trades: Iterable[Trade]) -> List[Trade]:
    """Closed trades with a P&L, in the order they were given (storage order)."""
    return [t for t in trades if not t.is_open and t.pnl is not None]


def calculate_metrics(trades: List[Trade]) -> PerformanceMetrics:
    """Compute performance statistics for the given trades.

    Parameters
    ----------
    trades: List[Trade]
        Full trade list; open trades are ignored.

    Returns
    -------
    PerformanceMetrics
        Every field is 0 when there are no closed trades. Break-even trades
        (pnl == 0) count toward ``total_trades`` and ``total_pnl`` but are
        neither wins nor losses. ``largest_loss`` is reported as a negative
        number.
    """
    closed = closed_trades(trades)
    if not closed:
        return PerformanceMetrics()

    pnls = [trade.pnl for trade in closed]
    wins = [pnl for pnl in pnls if pnl > 0]
    losses = [pnl for pnl in pnls if pnl < 0]
    total_trades = len(closed)
    total_pnl = sum(pnls)
    total_wins = sum(wins)
    total_losses = abs(sum(losses))

    win_rate = len(wins) / total_trades * 100
    average_win = total_wins / len(wins) if wins else 0.0
    average_loss = total_losses / len(losses) if losses else 0.0
    profit_factor = total_wins / total_losses if total_losses > 0 else 0.0
    largest_win = max(wins) if wins else 0.0
    largest_loss = min(losses) if losses else 0.0

    # Streaks follow storage order, not exit date. A break-even trade
    # extends the losing streak.
    consecutive_wins = consecutive_losses = 0
    current_wins = current_losses = 0
    for pnl in pnls:
        if pnl > 0:
            current_wins += 1
            current_losses = 0
            consecutive_wins = max(consecutive_wins, current_wins)
        else:
            current_losses += 1
            current_wins = 0
            consecutive_losses = max(consecutive_losses, current_losses)

    risk_reward_ratio = average_win / average_loss if average_loss > 0 else 0.0

    return PerformanceMetrics(
        total_trades=total_trades,
        win_rate=win_rate,
        total_pnl=total_pnl,
        average_win=average_win,
        average_loss=average_loss,
        profit_factor=profit_factor,
        largest_win=largest_win,
        largest_loss=largest_loss,
        consecutive_wins=consecutive_wins,
        consecutive_losses=consecutive_losses,
        risk_reward_ratio=risk_reward_ratio,
    )


def _exit_sort_key(trade: Trade) -> float:
    # timestamp() works for naive (local) and aware datetimes alike
    return trade.exit_date.timestamp() if trade.exit_date else float("-inf")


def generate_equity_curve(trades: List[Trade]) -> List[EquityPoint]:
    """Cumulative P&L over closed trades, ordered by exit date.

    ``sorted`` is stable, so trades closing at the same instant keep their
    storage order.
    """
    ordered = sorted(closed_trades(trades), key=_exit_sort_key)
    running_total = 0.0
    out: List[EquityPoint] = []
    for trade in ordered:
        running_total += trade.pnl
        out.append(
            EquityPoint(
                date=trade.exit_date.strftime("%Y-%m-%d") if trade.exit_date else "",
                pnl=running_total,
                trade=trade.symbol,
            )
        )
    return out


# ---------- calendar ----------
@dataclass
class CalendarDay:
    day: date
    pnl: float = 0.0
    trades: int = 0
    win_rate: float = 0.0
    is_current_month: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "pnl": self.pnl,
            "trades": self.trades,
            "winRate": self.win_rate,
            "isCurrentMonth": self.is_current_month,
        }


@dataclass
class WeekSummary:
    week_number: int
    pnl: float
    days: int

    @property
    def label(self) -> str:
        return f"Week {self.week_number}"

    def to_dict(self) -> Dict[str, Any]:
        return {"weekNumber": self.week_number, "pnl": self.pnl, "days": self.days, "label": self.label}


@dataclass
class MonthlyStats:
    total_pnl: float = 0.0
    total_trades: int = 0
    trading_days: int = 0
    profitable_days: int = 0
    win_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPnL": self.total_pnl,
            "totalTrades": self.total_trades,
            "tradingDays": self.trading_days,
            "profitableDays": self.profitable_days,
            "winRate": self.win_rate,
        }


DAILY_COLUMNS = ["date", "pnl", "trades", "wins", "win_rate"]


def daily_pnl(trades: List[Trade]) -> pd.DataFrame:
    """One row per exit day: summed P&L, trade count, wins and win rate."""
    rows = [
        {"date": t.exit_date.date(), "pnl": t.pnl, "win": t.pnl > 0}
        for t in closed_trades(trades)
        if t.exit_date is not None
    ]
    if not rows:
        return pd.DataFrame(columns=DAILY_COLUMNS)

    df = pd.DataFrame(rows)
    grouped = (
        df.groupby("date", sort=True)
        .agg(pnl=("pnl", "sum"), trades=("pnl", "size"), wins=("win", "sum"))
        .reset_index()
    )
    grouped["wins"] = grouped["wins"].astype(int)
    grouped["win_rate"] = grouped["wins"] / grouped["trades"] * 100
    return grouped[DAILY_COLUMNS]


def calendar_month(trades: List[Trade], year: int, month: int) -> List[CalendarDay]:
    """Sunday-to-Saturday grid covering ``month``, padded with adjacent days."""
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    # date.weekday(): Monday=0; shift so the grid starts on Sunday
    start = first - timedelta(days=(first.weekday() + 1) % 7)
    end = last + timedelta(days=6 - (last.weekday() + 1) % 7)

    by_day = {row.date: row for row in daily_pnl(trades).itertuples(index=False)}
    days: List[CalendarDay] = []
    current = start
    while current <= end:
        row = by_day.get(current)
        if row is not None:
            days.append(
                CalendarDay(
                    day=current,
                    pnl=float(row.pnl),
                    trades=int(row.trades),
                    win_rate=float(row.win_rate),
                    is_current_month=current.month == month,
                )
            )
        else:
            days.append(CalendarDay(day=current, is_current_month=current.month == month))
        current += timedelta(days=1)
    return days


def weekly_totals(days: List[CalendarDay]) -> List[WeekSummary]:
    """Per-row totals of a calendar grid, counting only days that had trades."""
    weeks: List[WeekSummary] = []
    for i in range(0, len(days), 7):
        week = [d for d in days[i:i + 7] if d.trades > 0]
        weeks.append(WeekSummary(week_number=i // 7 + 1, pnl=sum(d.pnl for d in week), days=len(week)))
    return weeks


def monthly_stats(days: List[CalendarDay]) -> MonthlyStats:
    active = [d for d in days if d.is_current_month and d.trades > 0]
    if not active:
        return MonthlyStats()
    profitable = sum(1 for d in active if d.pnl > 0)
    return MonthlyStats(
        total_pnl=sum(d.pnl for d in active),
        total_trades=sum(d.trades for d in active),
        trading_days=len(active),
        profitable_days=profitable,
        win_rate=profitable / len(active) * 100,
    )


# ---------- chart series ----------
def monthly_pnl(trades: List[Trade]) -> List[Dict[str, Any]]:
    """P&L per exit month, e.g. ``{"month": "Jan 2024", "pnl": 120.0}``, in first-seen order."""
    totals: Dict[str, float] = {}
    for t in closed_trades(trades):
        if t.exit_date is None:
            continue
        month = t.exit_date.strftime("%b %Y")
        totals[month] = totals.get(month, 0.0) + t.pnl
    return [{"month": m, "pnl": pnl} for m, pnl in totals.items()]


def symbol_distribution(trades: List[Trade], limit: int = 10) -> List[Dict[str, Any]]:
    # most_common keeps first-seen order among equal counts
    ordered = Counter(t.symbol for t in closed_trades(trades)).most_common(limit)
    return [{"symbol": symbol, "count": int(count)} for symbol, count in ordered]


def win_loss_split(trades: List[Trade]) -> Dict[str, int]:
    closed = closed_trades(trades)
    wins = sum(1 for t in closed if t.pnl > 0)
    return {"wins": wins, "losses": len(closed) - wins}


def summarize(trades: List[Trade]) -> Dict[str, Any]:
    """Everything the analytics page shows, as plain JSON-friendly data."""
    return {
        "metrics": calculate_metrics(trades).to_dict(),
        "equityCurve": [p.to_dict() for p in generate_equity_curve(trades)],
        "monthlyPnL": monthly_pnl(trades),
        "symbols": symbol_distribution(trades),
        "winLoss": win_loss_split(trades),
    }
