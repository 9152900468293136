"""
Prop-account expense accrual and return on investment.

Cost-to-date for an account is its one-time signup cost, plus the
activation fee once the account has been funded, plus subscription months
elapsed between purchase and the end of billing.
"""
import logging
import math
from datetime import datetime
from typing import Dict, List, Optional

from tradejournal.periods import DatePredicate, utc_now
from tradejournal.types import AccountStatus, ExpenseSummary, PropAccount

__all__ = [
    "DAYS_PER_MONTH",
    "elapsed_months",
    "billing_end",
    "account_cost_to_date",
    "account_roi",
    "net_roi",
    "compute_expense_accrual",
    "count_by_status",
]

log = logging.getLogger(__name__)

DAYS_PER_MONTH = 30.44
ENDED_STATUSES = (AccountStatus.FAILED, AccountStatus.BREACHED)
EVAL_STATUSES = (AccountStatus.EVAL_PHASE_1, AccountStatus.EVAL_PHASE_2)


def elapsed_months(start: datetime, end: datetime, days_per_month: float = DAYS_PER_MONTH) -> int:
    """Whole billing months between two instants, order-insensitive."""
    seconds = abs((end - start).total_seconds())
    return math.floor(seconds / (86400 * days_per_month))


def billing_end(account: PropAccount, now: datetime) -> datetime:
    """
    The instant subscription billing stops for an account.

    A recorded end date stops billing whether or not the status is still
    terminal; without one, billing runs until `now`.
    """
    if account.date_ended is not None:
        return account.date_ended
    return now


def account_cost_to_date(
    account: PropAccount,
    now: Optional[datetime] = None,
    days_per_month: float = DAYS_PER_MONTH,
) -> float:
    now = now or utc_now()
    cost = account.cost

    # Activation is only paid once the account actually got funded.
    if account.activation_fee and account.date_funded is not None:
        cost += account.activation_fee

    if account.is_subscription and account.monthly_fee:
        months = elapsed_months(account.date_added, billing_end(account, now), days_per_month)
        if months > 0:
            cost += account.monthly_fee * months

    return cost


def net_roi(total_payouts: float, total_cost: float) -> float:
    """(payouts - cost) / cost as a percentage; 0 when nothing was spent."""
    if total_cost > 0:
        return (total_payouts - total_cost) / total_cost * 100
    return 0.0


def account_roi(account: PropAccount) -> float:
    """Payout return on the signup cost alone, as quoted in the coach context."""
    return net_roi(account.total_payouts, account.cost)


def compute_expense_accrual(
    accounts: List[PropAccount],
    period_predicate: Optional[DatePredicate] = None,
    now: Optional[datetime] = None,
    days_per_month: float = DAYS_PER_MONTH,
) -> ExpenseSummary:
    """
    Aggregates cost-to-date and payouts over a set of accounts.

    Args:
        accounts: Prop accounts to aggregate.
        period_predicate: Optional date filter. Costs count for accounts whose
            purchase date passes it; payouts count by their own date,
            independent of whether the owning account is in the period.
        now: Reference time for open subscriptions. Defaults to current UTC.
        days_per_month: Length of a billing month in days.

    Returns:
        An ExpenseSummary with total cost, total payouts, payout count and
        net ROI in percent.
    """
    now = now or utc_now()
    in_period = period_predicate or (lambda d: True)

    total_cost = 0.0
    total_payouts = 0.0
    payout_count = 0
    for account in accounts:
        if in_period(account.date_added):
            total_cost += account_cost_to_date(account, now, days_per_month)
        for payout in account.payouts:
            if in_period(payout.date):
                total_payouts += payout.amount
                payout_count += 1

    log.debug(f"Accrued {total_cost:.2f} cost and {total_payouts:.2f} payouts over {len(accounts)} accounts.")
    return ExpenseSummary(
        total_cost=total_cost,
        total_payouts=total_payouts,
        payout_count=payout_count,
        net_roi=net_roi(total_payouts, total_cost),
    )


def count_by_status(accounts: List[PropAccount]) -> Dict[str, int]:
    """Counts accounts still in evaluation, funded, and ended."""
    return {
        "evals": sum(1 for a in accounts if a.status in EVAL_STATUSES),
        "funded": sum(1 for a in accounts if a.status is AccountStatus.FUNDED),
        "ended": sum(1 for a in accounts if a.status in ENDED_STATUSES),
    }
