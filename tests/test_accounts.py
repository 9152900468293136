"""
Tests for the prop-account lifecycle.
"""
from datetime import datetime

import pytest

from tradejournal.accounts import (
    find_account,
    open_account,
    record_payout,
    remove_account,
    replace_account,
    transition_status,
)
from tradejournal.types import AccountStatus

ADDED = datetime(2025, 1, 1, 10)
NOW = datetime(2025, 3, 1, 9)


def test_open_account_defaults() -> None:
    account = open_account("Apex", 50000, 40.0, date_added=ADDED)
    assert account.status is AccountStatus.EVAL_PHASE_1
    assert account.date_added == ADDED
    assert account.date_funded is None
    assert account.payouts == []
    assert len(account.id) == 9


def test_open_account_directly_funded_is_stamped_on_purchase() -> None:
    account = open_account("Topstep", 100000, 150.0, status=AccountStatus.FUNDED, date_added=ADDED)
    assert account.date_funded == ADDED


def test_open_account_drops_monthly_fee_without_subscription() -> None:
    account = open_account("Apex", 50000, 40.0, date_added=ADDED, monthly_fee=160.0)
    assert account.monthly_fee is None
    sub = open_account("Apex", 50000, 40.0, date_added=ADDED, is_subscription=True, monthly_fee=160.0)
    assert sub.monthly_fee == 160.0


def test_transition_to_funded_stamps_date_and_clears_end() -> None:
    account = open_account("Apex", 50000, 40.0, date_added=ADDED).model_copy(update={"date_ended": ADDED})
    funded = transition_status(account, AccountStatus.FUNDED, NOW)
    assert funded.status is AccountStatus.FUNDED
    assert funded.date_funded == NOW
    assert funded.date_ended is None


def test_transition_to_funded_keeps_existing_funded_date() -> None:
    account = open_account("Apex", 50000, 40.0, status=AccountStatus.FUNDED, date_added=ADDED)
    again = transition_status(account, AccountStatus.FUNDED, NOW)
    assert again.date_funded == ADDED


@pytest.mark.parametrize("status", [AccountStatus.FAILED, AccountStatus.BREACHED])
def test_transition_to_ended_stamps_end_once(status: AccountStatus) -> None:
    account = open_account("Apex", 50000, 40.0, date_added=ADDED)
    ended = transition_status(account, status, NOW)
    assert ended.date_ended == NOW

    later = transition_status(ended, AccountStatus.BREACHED, datetime(2025, 4, 1))
    assert later.date_ended == NOW


def test_returning_to_eval_clears_end_date() -> None:
    account = open_account("Apex", 50000, 40.0, date_added=ADDED)
    failed = transition_status(account, AccountStatus.FAILED, NOW)
    revived = transition_status(failed, AccountStatus.EVAL_PHASE_2, NOW)
    assert revived.status is AccountStatus.EVAL_PHASE_2
    assert revived.date_ended is None


def test_transition_leaves_input_untouched() -> None:
    account = open_account("Apex", 50000, 40.0, date_added=ADDED)
    transition_status(account, AccountStatus.FAILED, NOW)
    assert account.status is AccountStatus.EVAL_PHASE_1
    assert account.date_ended is None


def test_record_payout_updates_aggregates() -> None:
    account = open_account("Apex", 50000, 40.0, status=AccountStatus.FUNDED, date_added=ADDED)
    paid = record_payout(account, 1200.0, datetime(2025, 2, 1))
    paid = record_payout(paid, 800.0, datetime(2025, 3, 1), note="Second")

    assert paid.total_payouts == 2000.0
    assert paid.payout_count == 2
    assert paid.payouts[0].note == "Manual Payout Log"
    assert paid.payouts[1].note == "Second"
    assert account.payout_count == 0


def test_find_replace_remove() -> None:
    a = open_account("Apex", 50000, 40.0, date_added=ADDED, account_id="a")
    b = open_account("Topstep", 50000, 49.0, date_added=ADDED, account_id="b")
    accounts = [a, b]

    assert find_account(accounts, "b") is b
    with pytest.raises(KeyError):
        find_account(accounts, "zzz")

    updated = transition_status(b, AccountStatus.FUNDED, NOW)
    replaced = replace_account(accounts, updated)
    assert replaced[1].status is AccountStatus.FUNDED
    assert replaced[0] is a

    assert [x.id for x in remove_account(accounts, "a")] == ["b"]
