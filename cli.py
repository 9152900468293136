"""
CLI entry point for the trade journal application.
"""
import base64
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tradejournal.accounts import (
    find_account,
    open_account,
    record_payout,
    remove_account,
    replace_account,
    transition_status,
)
from tradejournal.coach import ChatAttachment, CoachClient
from tradejournal.config import Config, load_config
from tradejournal.copier import TradeTicket, expand_ticket, merge_trades, remove_trade
from tradejournal.evaluation import compute_evaluation_progress
from tradejournal.expenses import account_cost_to_date, compute_expense_accrual, count_by_status
from tradejournal.metrics import compute_metrics, summarize_trades
from tradejournal.periods import (
    AccountPeriod,
    DashboardFilter,
    ReportRange,
    account_period_predicate,
    dashboard_predicate,
    filter_trades,
    report_range_predicate,
    utc_now,
)
from tradejournal.reporting import (
    Timeframe,
    build_calendar_month,
    build_equity_curve,
    downsample_curve,
    generate_all_reports,
)
from tradejournal.store import JsonFileRepository
from tradejournal.types import AccountStatus, Direction, PropAccount, Session, Trade

# Console is created once and passed down.
# Log to stderr to separate from potential data output to stdout.
app = typer.Typer(pretty_exceptions_show_locals=False, help="Personal trading journal and prop-account tracker.")
console = Console(stderr=True)

def _load_config_or_exit(config_path: Path) -> Config:
    """Helper to load config and exit on failure."""
    try:
        return load_config(config_path)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        raise typer.Exit(code=1)


def _repository(config: Config) -> JsonFileRepository:
    return JsonFileRepository(config.storage.data_dir, config.storage.user)


def _find_account_or_exit(accounts: List[PropAccount], account_id: str) -> PropAccount:
    try:
        return find_account(accounts, account_id)
    except KeyError:
        console.print(f"[bold red]Error:[/bold red] No account with id '{account_id}'.")
        raise typer.Exit(code=1)


def _find_trade_or_exit(trades: List[Trade], trade_id: str) -> Trade:
    for trade in trades:
        if trade.id == trade_id:
            return trade
    console.print(f"[bold red]Error:[/bold red] No trade with id '{trade_id}'.")
    raise typer.Exit(code=1)


def _parse_status(value: str) -> AccountStatus:
    """Accepts either the member name (FUNDED) or the display value (Funded)."""
    key = value.strip().upper().replace(" ", "_")
    if key in AccountStatus.__members__:
        return AccountStatus[key]
    for status in AccountStatus:
        if status.value.lower() == value.strip().lower():
            return status
    valid = ", ".join(AccountStatus.__members__)
    console.print(f"[bold red]Error:[/bold red] Unknown status '{value}'. Choose one of: {valid}.")
    raise typer.Exit(code=1)


def _money(value: float) -> str:
    color = "green" if value > 0 else "red" if value < 0 else "white"
    return f"[{color}]{value:,.2f}[/{color}]"


@app.command()
def dashboard(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    date_filter: DashboardFilter = typer.Option(DashboardFilter.ALL, "--filter", "-f", help="Date window for the metrics."),
):
    """Show performance metrics and evaluation progress."""
    config = _load_config_or_exit(config_path)
    repo = _repository(config)
    trades = repo.load_trades()
    accounts = repo.load_accounts()

    filtered = filter_trades(trades, dashboard_predicate(date_filter))
    metrics = compute_metrics(trades, filtered)

    table = Table(title=f"Dashboard ({date_filter.value})")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Net P&L", _money(metrics.net_pnl))
    table.add_row("Trades", str(metrics.total_trades))
    table.add_row("Win Rate [%]", f"{metrics.win_rate:.1f}")
    table.add_row("Profit Factor", f"{metrics.profit_factor:.2f}")
    table.add_row("Avg Win", f"{metrics.avg_win:,.2f}")
    table.add_row("Avg Loss", f"{metrics.avg_loss:,.2f}")
    table.add_row("Best Trade", _money(metrics.best_day))
    table.add_row("Worst Trade", _money(metrics.worst_day))
    table.add_row("Win Streak", str(metrics.current_streak))
    console.print(table)

    progress = compute_evaluation_progress(
        accounts, trades, config.evaluation.phase_1_target_pct, config.evaluation.phase_2_target_pct
    )
    if not progress:
        console.print("No accounts in evaluation.")
        return

    evals = Table(title="Evaluation Progress")
    evals.add_column("Account")
    evals.add_column("Phase")
    evals.add_column("P&L", justify="right")
    evals.add_column("Target", justify="right")
    evals.add_column("Progress [%]", justify="right")
    for p in progress:
        evals.add_row(p.firm_name, p.status.value, _money(p.current_pnl), f"{p.target_pnl:,.2f}", f"{p.progress:.1f}")
    console.print(evals)


@app.command()
def accounts(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    period: AccountPeriod = typer.Option(AccountPeriod.ALL, "--period", "-p", help="Period for costs and payouts."),
):
    """Show prop-account expenses, payouts and ROI."""
    config = _load_config_or_exit(config_path)
    prop_accounts = _repository(config).load_accounts()
    now = utc_now()

    summary = compute_expense_accrual(
        prop_accounts, account_period_predicate(period, now), now, config.expenses.days_per_month
    )
    counts = count_by_status(prop_accounts)

    table = Table(title="Prop Accounts")
    table.add_column("ID")
    table.add_column("Firm")
    table.add_column("Size", justify="right")
    table.add_column("Status")
    table.add_column("Cost to Date", justify="right")
    table.add_column("Payouts", justify="right")
    for a in prop_accounts:
        table.add_row(
            a.id,
            a.firm_name,
            f"{a.account_size:,.0f}",
            a.status.value,
            f"{account_cost_to_date(a, now, config.expenses.days_per_month):,.2f}",
            f"{a.total_payouts:,.2f}",
        )
    console.print(table)

    console.print(f"Period: {period.value}")
    console.print(f"Total cost: {summary.total_cost:,.2f}")
    console.print(f"Total payouts: {summary.total_payouts:,.2f} ({summary.payout_count} payouts)")
    console.print(f"Net ROI: {_money(summary.net_roi)}%")
    console.print(f"Evals: {counts['evals']}  Funded: {counts['funded']}  Ended: {counts['ended']}")


@app.command()
def report(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    report_range: ReportRange = typer.Option(ReportRange.ALL, "--range", "-r", help="Date range of the report."),
    timeframe: Timeframe = typer.Option(Timeframe.DAILY, "--timeframe", "-t", help="Equity curve resolution."),
):
    """Write report files and show the setup breakdown and equity curve."""
    config = _load_config_or_exit(config_path)
    repo = _repository(config)
    trades = repo.load_trades()
    now = utc_now()

    try:
        run_dir = Path(config.reporting.output_dir)
        run_dir.mkdir(parents=True, exist_ok=True)
        console.print(f"Report files will be saved to: [cyan]{run_dir}[/cyan]")
        summary = generate_all_reports(config, trades, repo.load_accounts(), run_dir, console, report_range, now)
    except OSError as e:
        console.print(f"[bold red]Failed to write reports:[/bold red] {e}")
        raise typer.Exit(code=1)

    if summary["setups"]:
        setups = Table(title="Setups")
        setups.add_column("Setup")
        setups.add_column("Trades", justify="right")
        setups.add_column("Win Rate [%]", justify="right")
        setups.add_column("P&L", justify="right")
        setups.add_column("Expectancy", justify="right")
        for s in summary["setups"]:
            setups.add_row(s["name"], str(s["count"]), f"{s['win_rate']:.1f}", _money(s["pnl"]), f"{s['expectancy']:,.2f}")
        console.print(setups)

    period_trades = filter_trades(trades, report_range_predicate(report_range, now))
    curve = downsample_curve(build_equity_curve(period_trades), timeframe)
    if curve:
        equity = Table(title=f"Equity Curve ({timeframe.value})")
        equity.add_column("Date")
        equity.add_column("P&L", justify="right")
        equity.add_column("Cumulative", justify="right")
        for point in curve:
            equity.add_row(point.date, _money(point.pnl), _money(point.cumulative_pnl))
        console.print(equity)

    console.print("[bold green]Report command finished.[/bold green]")


@app.command(name="set-status")
def set_status(
    account_id: str = typer.Argument(..., help="ID of the prop account."),
    status: str = typer.Argument(..., help="New status, e.g. FUNDED or 'Eval Phase 2'."),
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
):
    """Move a prop account to a new status."""
    config = _load_config_or_exit(config_path)
    repo = _repository(config)
    prop_accounts = repo.load_accounts()

    new_status = _parse_status(status)
    account = _find_account_or_exit(prop_accounts, account_id)
    updated = transition_status(account, new_status)
    repo.save_accounts(replace_account(prop_accounts, updated))

    console.print(f"[bold green]{updated.firm_name} is now {new_status.value}.[/bold green]")


@app.command()
def payout(
    account_id: str = typer.Argument(..., help="ID of the prop account."),
    amount: float = typer.Argument(..., help="Payout amount."),
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    date: Optional[datetime] = typer.Option(None, "--date", help="Payout date; defaults to now.", formats=["%Y-%m-%d"]),
    note: str = typer.Option("Manual Payout Log", "--note", help="Free-text note."),
):
    """Record a payout received from a prop account."""
    config = _load_config_or_exit(config_path)
    repo = _repository(config)
    prop_accounts = repo.load_accounts()

    if amount <= 0:
        console.print("[bold red]Error:[/bold red] Payout amount must be positive.")
        raise typer.Exit(code=1)

    account = _find_account_or_exit(prop_accounts, account_id)
    updated = record_payout(account, amount, date, note)
    repo.save_accounts(replace_account(prop_accounts, updated))

    console.print(
        f"[bold green]Recorded {amount:,.2f} for {updated.firm_name}[/bold green] "
        f"(total {updated.total_payouts:,.2f} over {updated.payout_count} payouts)."
    )


@app.command(name="add-account")
def add_account(
    firm_name: str = typer.Argument(..., help="Prop firm name."),
    account_size: float = typer.Argument(..., help="Nominal account size."),
    cost: float = typer.Argument(..., help="Purchase price of the evaluation."),
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    status: str = typer.Option("EVAL_PHASE_1", "--status", "-s", help="Initial status."),
    date_added: Optional[datetime] = typer.Option(
        None, "--date", help="Purchase date; defaults to now.", formats=["%Y-%m-%d"]
    ),
    is_subscription: bool = typer.Option(False, "--subscription", help="Billed monthly instead of once."),
    monthly_fee: Optional[float] = typer.Option(None, "--monthly-fee", help="Monthly fee of a subscription."),
    activation_fee: Optional[float] = typer.Option(None, "--activation-fee", help="One-off fee paid on funding."),
    target_profit: Optional[float] = typer.Option(None, "--target", help="Evaluation profit target."),
):
    """Add a newly purchased prop account."""
    config = _load_config_or_exit(config_path)
    repo = _repository(config)
    prop_accounts = repo.load_accounts()

    if account_size < 0 or cost < 0:
        console.print("[bold red]Error:[/bold red] Account size and cost cannot be negative.")
        raise typer.Exit(code=1)

    account = open_account(
        firm_name,
        account_size,
        cost,
        status=_parse_status(status),
        date_added=date_added,
        is_subscription=is_subscription,
        monthly_fee=monthly_fee,
        activation_fee=activation_fee,
        target_profit=target_profit,
    )
    repo.save_accounts([*prop_accounts, account])

    console.print(f"[bold green]Added {account.firm_name} ({account.status.value}).[/bold green] ID: {account.id}")


@app.command(name="delete-account")
def delete_account(
    account_id: str = typer.Argument(..., help="ID of the prop account."),
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
):
    """Delete a prop account. Its trades stay in the journal."""
    config = _load_config_or_exit(config_path)
    repo = _repository(config)
    prop_accounts = repo.load_accounts()

    account = _find_account_or_exit(prop_accounts, account_id)
    if not yes:
        typer.confirm(f"Delete {account.firm_name} ({account.id})?", abort=True)
    repo.save_accounts(remove_account(prop_accounts, account_id))

    console.print(f"[bold green]Deleted {account.firm_name}.[/bold green]")


@app.command(name="log-trade")
def log_trade(
    symbol: str = typer.Argument(..., help="Instrument symbol, e.g. NQ."),
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    account_ids: List[str] = typer.Option(
        ..., "--account", "-a", help="Account to book the trade on; repeat to copy across accounts."
    ),
    entry_date: Optional[datetime] = typer.Option(None, "--entry", help="Entry time; defaults to now."),
    exit_date: Optional[datetime] = typer.Option(None, "--exit", help="Exit time; defaults to the entry time."),
    pnl: float = typer.Option(0.0, "--pnl", help="Realized P&L (single account only)."),
    direction: Direction = typer.Option(Direction.LONG, "--direction", "-d"),
    session: Session = typer.Option(Session.OTHER, "--session"),
    commission: float = typer.Option(0.0, "--commission"),
    risk_percentage: float = typer.Option(0.0, "--risk", help="Risk as a percent of account size."),
    r_multiple: float = typer.Option(0.0, "--r-multiple", help="Result in units of risk."),
    entry_price: float = typer.Option(0.0, "--entry-price"),
    exit_price: float = typer.Option(0.0, "--exit-price"),
    size: float = typer.Option(0.0, "--size", help="Position size."),
    setup: str = typer.Option("", "--setup"),
    mistakes: Optional[List[str]] = typer.Option(None, "--mistake", help="Mistake tag; repeatable."),
    notes: str = typer.Option("", "--notes"),
    edit: Optional[str] = typer.Option(None, "--edit", help="ID of an existing trade to replace."),
):
    """Log a trade, or copy one across several accounts."""
    config = _load_config_or_exit(config_path)
    repo = _repository(config)
    trades = repo.load_trades()
    prop_accounts = repo.load_accounts()

    if edit is not None:
        _find_trade_or_exit(trades, edit)
        if len(account_ids) > 1:
            console.print("[bold red]Error:[/bold red] An edit applies to a single account.")
            raise typer.Exit(code=1)

    entry = entry_date or utc_now()
    try:
        ticket = TradeTicket(
            account_ids=account_ids,
            symbol=symbol,
            direction=direction,
            session=session,
            entry_date=entry,
            exit_date=exit_date or entry,
            pnl=pnl,
            commission=commission,
            risk_percentage=risk_percentage,
            r_multiple=r_multiple,
            entry_price=entry_price,
            exit_price=exit_price,
            size=size,
            setup=setup,
            mistakes=mistakes or [],
            notes=notes,
            trade_id=edit,
        )
    except ValidationError as e:
        console.print(f"[bold red]Invalid trade:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)

    new_trades = expand_ticket(ticket, prop_accounts)
    if not new_trades:
        console.print("[bold red]Error:[/bold red] None of the selected accounts exist.")
        raise typer.Exit(code=1)
    repo.save_trades(merge_trades(trades, new_trades))

    for t in new_trades:
        console.print(f"{t.id}  {t.symbol} {t.direction.value} on {t.account_id}: {_money(t.pnl)}")
    verb = "Updated" if edit else "Logged"
    console.print(f"[bold green]{verb} {len(new_trades)} trade(s).[/bold green]")


@app.command(name="delete-trade")
def delete_trade(
    trade_id: str = typer.Argument(..., help="ID of the trade."),
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
):
    """Delete a trade from the journal."""
    config = _load_config_or_exit(config_path)
    repo = _repository(config)
    trades = repo.load_trades()

    trade = _find_trade_or_exit(trades, trade_id)
    if not yes:
        typer.confirm(f"Delete {trade.symbol} trade {trade.id}?", abort=True)
    repo.save_trades(remove_trade(trades, trade_id))

    console.print(f"[bold green]Deleted trade {trade.id}.[/bold green]")


@app.command(name="calendar")
def calendar_view(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    year: Optional[int] = typer.Option(None, "--year", help="Defaults to the current year."),
    month: Optional[int] = typer.Option(None, "--month", min=1, max=12, help="Defaults to the current month."),
):
    """Show daily P&L for one calendar month."""
    config = _load_config_or_exit(config_path)
    trades = _repository(config).load_trades()
    now = utc_now()
    year = year or now.year
    month = month or now.month

    days = build_calendar_month(trades, year, month)
    table = Table(title=f"Calendar {year}-{month:02d}")
    table.add_column("Day", justify="right")
    table.add_column("Trades", justify="right")
    table.add_column("P&L", justify="right")
    for d in days:
        if d.trade_count:
            table.add_row(str(d.day), str(d.trade_count), _money(d.pnl))
    console.print(table)

    month_trades = [t for t in trades if t.entry_date.year == year and t.entry_date.month == month]
    summary = summarize_trades(month_trades)
    console.print(
        f"Month: {summary.total} trades, {summary.wins} wins, "
        f"win rate {summary.win_rate:.1f}%, net {_money(summary.net_pnl)}"
    )


@app.command(name="review-trade")
def review_trade(
    trade_id: str = typer.Argument(..., help="ID of the trade."),
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
):
    """Ask the AI coach to rate a single trade."""
    config = _load_config_or_exit(config_path)
    trade = _find_trade_or_exit(_repository(config).load_trades(), trade_id)

    coach = CoachClient.from_config(config.coach)
    with console.status("Asking the coach..."):
        review = coach.analyze_trade(trade)

    console.print(f"[bold]Rating:[/bold] {review.rating:g}/10")
    console.print(review.analysis)
    console.print(f"[bold]Advice:[/bold] {review.advice}")


@app.command()
def ask(
    message: str = typer.Argument(..., help="Question for the coach."),
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    image: Optional[Path] = typer.Option(
        None, "--image", "-i", help="Chart screenshot to attach.", exists=True, dir_okay=False
    ),
):
    """Chat with the AI coach about your journal."""
    config = _load_config_or_exit(config_path)
    repo = _repository(config)

    attachments = []
    if image is not None:
        mime_type = mimetypes.guess_type(image.name)[0] or "image/png"
        data = base64.b64encode(image.read_bytes()).decode("ascii")
        attachments.append(ChatAttachment(mime_type=mime_type, data=data))

    coach = CoachClient.from_config(config.coach)
    with console.status("Asking the coach..."):
        text = coach.chat([], message, repo.load_trades(), repo.load_accounts(), attachments=attachments)
    console.print(text)


@app.command()
def analyze(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    report_range: ReportRange = typer.Option(ReportRange.ALL, "--range", "-r", help="Date range to analyze."),
):
    """Ask the AI coach for a strategy summary of the selected trades."""
    config = _load_config_or_exit(config_path)
    trades = filter_trades(_repository(config).load_trades(), report_range_predicate(report_range))

    if not trades:
        console.print("[yellow]Warning: No trades in the selected range.[/yellow]")
        raise typer.Exit()

    coach = CoachClient.from_config(config.coach)
    with console.status("Asking the coach..."):
        text = coach.strategy_summary(trades, report_range.value)
    console.print(text)


if __name__ == "__main__":
    app()
