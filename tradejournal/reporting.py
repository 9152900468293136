"""
Chart series, strategy breakdowns and report files.
"""
import calendar
import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from rich.console import Console

from tradejournal.config import Config
from tradejournal.expenses import compute_expense_accrual, count_by_status
from tradejournal.metrics import compute_metrics, trades_to_frame
from tradejournal.periods import ReportRange, filter_trades, report_range_predicate
from tradejournal.types import CalendarDay, ChartPoint, PropAccount, SetupStats, Trade

__all__ = [
    "Timeframe",
    "NO_SETUP",
    "build_equity_curve",
    "downsample_curve",
    "build_setup_breakdown",
    "build_calendar_month",
    "generate_all_reports",
]

NO_SETUP = "No Setup"


class Timeframe(str, Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


def build_equity_curve(trades: List[Trade]) -> List[ChartPoint]:
    """
    Builds the cumulative P&L series, one point per calendar day.

    Trades are ordered by entry date and bucketed under an "M/D" label;
    trades from different years that share a label merge into one bucket.
    """
    df = trades_to_frame(trades)
    if df.empty:
        return []

    df = df.sort_values("entry_date", kind="stable")
    labels = df["entry_date"].map(lambda d: f"{d.month}/{d.day}")
    daily = df.groupby(labels, sort=False)["pnl"].sum()
    cumulative = daily.cumsum()

    return [
        ChartPoint(date=label, pnl=float(pnl), cumulative_pnl=float(total))
        for label, pnl, total in zip(daily.index, daily.values, cumulative.values)
    ]


def downsample_curve(points: List[ChartPoint], timeframe: Timeframe) -> List[ChartPoint]:
    """
    Thins the daily series for coarser chart views.

    Weekly keeps every 5th point and Monthly every 20th, always including the
    last one. This is a display stride, not a weekly/monthly re-aggregation.
    """
    if timeframe is Timeframe.WEEKLY:
        stride = 5
    elif timeframe is Timeframe.MONTHLY:
        stride = 20
    else:
        return list(points)
    return [p for i, p in enumerate(points) if i % stride == 0 or i == len(points) - 1]


def build_setup_breakdown(trades: List[Trade]) -> List[SetupStats]:
    """
    Groups trades by setup and ranks the groups by total P&L, best first.

    Trades without a setup are grouped under "No Setup". Groups with equal
    P&L keep the order in which they first appear.
    """
    df = trades_to_frame(trades)
    if df.empty:
        return []

    df = df.assign(setup=df["setup"].replace("", NO_SETUP), win=df["pnl"] > 0)
    grouped = df.groupby("setup", sort=False).agg(
        count=("pnl", "size"), wins=("win", "sum"), pnl=("pnl", "sum")
    )
    grouped = grouped.sort_values("pnl", ascending=False, kind="stable")

    breakdown = []
    for name, row in grouped.iterrows():
        count = int(row["count"])
        pnl = float(row["pnl"])
        breakdown.append(
            SetupStats(
                name=str(name),
                count=count,
                win_rate=int(row["wins"]) / count * 100,
                pnl=pnl,
                expectancy=pnl / count,
            )
        )
    return breakdown


def build_calendar_month(trades: List[Trade], year: int, month: int) -> List[CalendarDay]:
    """Per-day trade count and P&L for every day of a calendar month."""
    df = trades_to_frame(trades)
    in_month = df[(df["entry_date"].dt.year == year) & (df["entry_date"].dt.month == month)]
    by_day = in_month.groupby(in_month["entry_date"].dt.day)["pnl"].agg(["size", "sum"])

    days_in_month = calendar.monthrange(year, month)[1]
    days = []
    for day in range(1, days_in_month + 1):
        if day in by_day.index:
            days.append(CalendarDay(day=day, trade_count=int(by_day.loc[day, "size"]), pnl=float(by_day.loc[day, "sum"])))
        else:
            days.append(CalendarDay(day=day, trade_count=0, pnl=0.0))
    return days


# impure
def _generate_trade_ledger_csv(trades: List[Trade], output_dir: Path) -> None:
    """Generates a CSV file with all trade details."""
    if trades:
        ledger = pd.DataFrame([t.model_dump(mode="json", by_alias=True) for t in trades])
        ledger["mistakes"] = ledger["mistakes"].map(lambda tags: "; ".join(tags))
        ledger.to_csv(output_dir / "trade_ledger.csv", index=False)


# impure
def _generate_summary_json(summary: Dict[str, Any], output_dir: Path) -> None:
    """Generates a JSON file with summary metrics."""
    with (output_dir / "summary.json").open("w") as f:
        json.dump(summary, f, indent=2)


# impure
def _generate_summary_markdown(summary: Dict[str, Any], output_dir: Path) -> None:
    """Generates a Markdown file with a human-readable summary."""
    metrics = summary["metrics"]
    expenses = summary["expenses"]

    md = f"# Journal Report: {summary['user']} ({summary['range']})\n\n"
    md += "## Key Metrics\n\n"
    md += f"- **Net P&L**: {metrics['net_pnl']:.2f}\n"
    md += f"- **Total Trades**: {metrics['total_trades']}\n"
    md += f"- **Win Rate [%]**: {metrics['win_rate']:.1f}\n"
    md += f"- **Profit Factor**: {metrics['profit_factor']:.2f}\n"
    md += f"- **Current Streak**: {metrics['current_streak']}\n\n"

    md += "## Prop Accounts\n\n"
    md += f"- **Total Cost**: {expenses['total_cost']:.2f}\n"
    md += f"- **Total Payouts**: {expenses['total_payouts']:.2f}\n"
    md += f"- **Net ROI [%]**: {expenses['net_roi']:.1f}\n\n"

    if summary["setups"]:
        md += "## Setups\n\n"
        md += "| Setup | Trades | Win Rate [%] | P&L | Expectancy |\n"
        md += "|---|---|---|---|---|\n"
        for s in summary["setups"]:
            md += f"| {s['name']} | {s['count']} | {s['win_rate']:.1f} | {s['pnl']:.2f} | {s['expectancy']:.2f} |\n"

    (output_dir / "summary.md").write_text(md)


# impure
def generate_all_reports(
    config: Config,
    trades: List[Trade],
    accounts: List[PropAccount],
    run_dir: Path,
    console: Console,
    report_range: ReportRange = ReportRange.ALL,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Orchestrates the generation of all output reports.
    #impure: Writes to the filesystem.

    Returns the summary that was written, as plain JSON-compatible data.
    """
    predicate = report_range_predicate(report_range, now)
    period_trades = filter_trades(trades, predicate)

    summary = {
        "user": config.storage.user,
        "range": report_range.value,
        "metrics": compute_metrics(trades, period_trades).model_dump(mode="json"),
        "expenses": compute_expense_accrual(
            accounts, predicate, now, config.expenses.days_per_month
        ).model_dump(mode="json"),
        "accounts": count_by_status(accounts),
        "setups": [s.model_dump(mode="json") for s in build_setup_breakdown(period_trades)],
        "equity_curve": [p.model_dump(mode="json") for p in build_equity_curve(period_trades)],
    }

    formats = config.reporting.output_formats

    if "csv" in formats:
        console.print("Generating trade ledger CSV...")
        _generate_trade_ledger_csv(period_trades, run_dir)

    if "json" in formats:
        console.print("Generating summary JSON...")
        _generate_summary_json(summary, run_dir)

    if "markdown" in formats:
        console.print("Generating summary Markdown...")
        _generate_summary_markdown(summary, run_dir)

    console.print("All reports generated.")
    return summary
