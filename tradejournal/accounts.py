"""
Prop-account lifecycle: opening, status changes and payouts.

Any status may move to any other by explicit user action; there is no
enforced transition graph. Status changes carry date side effects that
drive subscription billing (see `tradejournal.expenses`). All functions
return updated copies and leave their inputs untouched.
"""
import logging
from datetime import datetime
from typing import List, Optional

from tradejournal.periods import utc_now
from tradejournal.types import AccountStatus, Payout, PropAccount, new_record_id, to_naive_utc

__all__ = [
    "open_account",
    "transition_status",
    "record_payout",
    "find_account",
    "replace_account",
    "remove_account",
]

log = logging.getLogger(__name__)


def open_account(
    firm_name: str,
    account_size: float,
    cost: float,
    status: AccountStatus = AccountStatus.EVAL_PHASE_1,
    date_added: Optional[datetime] = None,
    is_subscription: bool = False,
    monthly_fee: Optional[float] = None,
    activation_fee: Optional[float] = None,
    target_profit: Optional[float] = None,
    account_id: Optional[str] = None,
) -> PropAccount:
    """
    Creates a new account. One bought directly as FUNDED is stamped funded
    on its purchase date.
    """
    added = to_naive_utc(date_added) if date_added else utc_now()
    return PropAccount(
        id=account_id or new_record_id(),
        firm_name=firm_name,
        account_size=account_size,
        cost=cost,
        status=status,
        date_added=added,
        date_funded=added if status is AccountStatus.FUNDED else None,
        is_subscription=is_subscription,
        monthly_fee=monthly_fee if is_subscription else None,
        activation_fee=activation_fee,
        target_profit=target_profit,
    )


def transition_status(
    account: PropAccount, new_status: AccountStatus, now: Optional[datetime] = None
) -> PropAccount:
    """
    Moves an account to a new status.

    - FUNDED: stamps date_funded if unset and clears date_ended.
    - FAILED / BREACHED: stamps date_ended if unset.
    - Any eval phase: clears date_ended, so subscription billing resumes.
    """
    now = now or utc_now()
    update = {"status": new_status}

    if new_status in (AccountStatus.FAILED, AccountStatus.BREACHED):
        if account.date_ended is None:
            update["date_ended"] = now
    elif new_status is AccountStatus.FUNDED:
        if account.date_funded is None:
            update["date_funded"] = now
        update["date_ended"] = None
    else:
        update["date_ended"] = None

    log.info(f"Account {account.id} moved from '{account.status.value}' to '{new_status.value}'.")
    return account.model_copy(update=update)


def record_payout(
    account: PropAccount,
    amount: float,
    date: Optional[datetime] = None,
    note: str = "Manual Payout Log",
) -> PropAccount:
    """Appends a payout; the account's payout totals follow from the history."""
    payout = Payout(id=new_record_id(), amount=amount, date=date or utc_now(), note=note)
    return account.model_copy(update={"payouts": [*account.payouts, payout]})


def find_account(accounts: List[PropAccount], account_id: str) -> PropAccount:
    for account in accounts:
        if account.id == account_id:
            return account
    raise KeyError(f"No account with id '{account_id}'")


def replace_account(accounts: List[PropAccount], updated: PropAccount) -> List[PropAccount]:
    return [updated if a.id == updated.id else a for a in accounts]


def remove_account(accounts: List[PropAccount], account_id: str) -> List[PropAccount]:
    return [a for a in accounts if a.id != account_id]
