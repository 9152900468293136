"""
Performance metrics and evaluation.

This module provides the dashboard statistics (win rate, profit factor,
streak, best/worst trade) computed from a date-filtered trade set, plus the
tabular view of trades the other engines group over.
"""
from typing import List

import pandas as pd

from tradejournal.types import Metrics, Trade, TradeSummary

__all__ = [
    "trades_to_frame",
    "compute_metrics",
    "current_streak",
    "summarize_trades",
]

TRADE_COLUMNS = ["id", "account_id", "symbol", "setup", "entry_date", "exit_date", "pnl", "commission"]


def trades_to_frame(trades: List[Trade]) -> pd.DataFrame:
    """
    Converts trades into a DataFrame, one row per trade in input order.

    Args:
        trades: A list of Trade objects.

    Returns:
        A DataFrame with the columns in TRADE_COLUMNS. An empty input yields
        an empty frame that still carries those columns, so callers can
        filter and aggregate without special-casing.
    """
    records = [
        {
            "id": t.id,
            "account_id": t.account_id,
            "symbol": t.symbol,
            "setup": t.setup,
            "entry_date": t.entry_date,
            "exit_date": t.exit_date,
            "pnl": t.pnl,
            "commission": t.commission,
        }
        for t in trades
    ]
    df = pd.DataFrame(records, columns=TRADE_COLUMNS)
    df["entry_date"] = pd.to_datetime(df["entry_date"])
    df["exit_date"] = pd.to_datetime(df["exit_date"])
    df["pnl"] = df["pnl"].astype(float)
    return df


def current_streak(trades: List[Trade]) -> int:
    """Counts consecutive winning trades back from the most recent exit."""
    streak = 0
    for trade in sorted(trades, key=lambda t: t.exit_date, reverse=True):
        if trade.pnl <= 0:
            break
        streak += 1
    return streak


def compute_metrics(all_trades: List[Trade], filtered_trades: List[Trade]) -> Metrics:
    """
    Calculates dashboard metrics.

    Args:
        all_trades: The unfiltered trade set. Only used for the streak, which
            tracks momentum regardless of the dashboard date filter.
        filtered_trades: The trades selected by the active date filter.

    Returns:
        A Metrics object. Break-even trades count as losses in the win/loss
        tally. When there is no gross loss, profit factor is the gross
        profit itself rather than infinity.
    """
    pnl = trades_to_frame(filtered_trades)["pnl"]

    total_trades = int(pnl.size)
    wins = int((pnl > 0).sum())
    losses = int((pnl <= 0).sum())
    gross_profit = float(pnl[pnl > 0].sum())
    gross_loss = abs(float(pnl[pnl < 0].sum()))

    return Metrics(
        total_trades=total_trades,
        wins=wins,
        losses=losses,
        win_rate=round(wins / total_trades * 100, 1) if total_trades > 0 else 0.0,
        net_pnl=float(pnl.sum()),
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        profit_factor=gross_profit / gross_loss if gross_loss > 0 else gross_profit,
        avg_win=gross_profit / wins if wins > 0 else 0.0,
        avg_loss=gross_loss / losses if losses > 0 else 0.0,
        best_day=max(float(pnl.max()), 0.0) if total_trades else 0.0,
        worst_day=min(float(pnl.min()), 0.0) if total_trades else 0.0,
        current_streak=current_streak(all_trades),
    )


def summarize_trades(trades: List[Trade]) -> TradeSummary:
    """Headline numbers for a journal view (day, week or month of trades)."""
    pnl = trades_to_frame(trades)["pnl"]
    total = int(pnl.size)
    wins = int((pnl > 0).sum())
    return TradeSummary(
        total=total,
        wins=wins,
        net_pnl=float(pnl.sum()),
        win_rate=wins / total * 100 if total > 0 else 0.0,
    )
