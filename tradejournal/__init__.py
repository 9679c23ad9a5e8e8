"""Trading journal: trade records, P&L, performance metrics and imports."""

from .analytics import calculate_metrics, generate_equity_curve
from .calculations import calculate_pnl, calculate_risk_reward_ratio
from .models import Commodity, Crypto, Equity, Forex, JournalEntry, Mood, PerformanceMetrics, Trade

__all__ = [
    "calculate_metrics",
    "generate_equity_curve",
    "calculate_pnl",
    "calculate_risk_reward_ratio",
    "Commodity",
    "Crypto",
    "Equity",
    "Forex",
    "JournalEntry",
    "Mood",
    "PerformanceMetrics",
    "Trade",
]
