"""
Tests for prop-account expense accrual and ROI.
"""
from datetime import datetime

import pytest

from tradejournal.expenses import (
    account_cost_to_date,
    account_roi,
    compute_expense_accrual,
    count_by_status,
    elapsed_months,
    net_roi,
)
from tradejournal.periods import AccountPeriod, account_period_predicate
from tradejournal.types import AccountStatus, Payout, PropAccount

NOW = datetime(2025, 6, 15, 12)


def make_account(**overrides) -> PropAccount:
    fields = dict(id="a1", firm_name="Apex", account_size=50000, cost=40.0, date_added=datetime(2025, 1, 1))
    fields.update(overrides)
    return PropAccount(**fields)


@pytest.fixture
def subscription_account() -> PropAccount:
    """Signup 40, activation 140, 160/month, ended after 90 days."""
    return make_account(
        activation_fee=140.0,
        is_subscription=True,
        monthly_fee=160.0,
        status=AccountStatus.FAILED,
        date_funded=datetime(2025, 2, 1),
        date_ended=datetime(2025, 4, 1),
    )


def test_elapsed_months_floors_and_ignores_order() -> None:
    assert elapsed_months(datetime(2025, 1, 1), datetime(2025, 4, 1)) == 2
    assert elapsed_months(datetime(2025, 4, 1), datetime(2025, 1, 1)) == 2
    assert elapsed_months(datetime(2025, 1, 1), datetime(2025, 1, 31)) == 0


def test_cost_to_date_example(subscription_account: PropAccount) -> None:
    assert account_cost_to_date(subscription_account, NOW) == pytest.approx(500.0)


def test_activation_fee_requires_funding(subscription_account: PropAccount) -> None:
    unfunded = subscription_account.model_copy(update={"date_funded": None})
    assert account_cost_to_date(unfunded, NOW) == pytest.approx(360.0)


def test_open_subscription_bills_until_now() -> None:
    account = make_account(is_subscription=True, monthly_fee=100.0)
    # 2025-01-01 to 2025-06-15 is 165.5 days -> 5 months.
    assert account_cost_to_date(account, NOW) == pytest.approx(40.0 + 500.0)


def test_end_date_stops_billing_even_after_status_change() -> None:
    account = make_account(
        is_subscription=True, monthly_fee=100.0, status=AccountStatus.FUNDED, date_ended=datetime(2025, 3, 5)
    )
    assert account_cost_to_date(account, NOW) == pytest.approx(40.0 + 200.0)


def test_monthly_fee_ignored_without_subscription() -> None:
    account = make_account(is_subscription=False, monthly_fee=100.0)
    assert account_cost_to_date(account, NOW) == 40.0


def test_net_roi() -> None:
    assert net_roi(1500.0, 500.0) == pytest.approx(200.0)
    assert net_roi(0.0, 500.0) == pytest.approx(-100.0)
    assert net_roi(1000.0, 0.0) == 0.0


def test_account_roi_uses_signup_cost() -> None:
    account = make_account(cost=100.0, payouts=[Payout(id="p", amount=300.0, date=datetime(2025, 2, 1))])
    assert account_roi(account) == pytest.approx(200.0)


def test_expense_accrual_all_time(subscription_account: PropAccount) -> None:
    funded = make_account(
        id="a2",
        cost=150.0,
        status=AccountStatus.FUNDED,
        date_funded=datetime(2025, 2, 1),
        payouts=[
            Payout(id="p1", amount=1000.0, date=datetime(2025, 3, 1)),
            Payout(id="p2", amount=500.0, date=datetime(2025, 6, 1)),
        ],
    )
    summary = compute_expense_accrual([subscription_account, funded], now=NOW)

    assert summary.total_cost == pytest.approx(650.0)
    assert summary.total_payouts == pytest.approx(1500.0)
    assert summary.payout_count == 2
    assert summary.net_roi == pytest.approx((1500.0 - 650.0) / 650.0 * 100)


def test_expense_accrual_filters_costs_and_payouts_independently() -> None:
    # Bought last year, paid out this month.
    old = make_account(
        date_added=datetime(2024, 11, 1),
        payouts=[Payout(id="p1", amount=800.0, date=datetime(2025, 6, 2))],
    )
    new = make_account(id="a2", cost=90.0, date_added=datetime(2025, 6, 10))

    month = account_period_predicate(AccountPeriod.MONTH, NOW)
    summary = compute_expense_accrual([old, new], month, NOW)

    assert summary.total_cost == pytest.approx(90.0)
    assert summary.total_payouts == pytest.approx(800.0)
    assert summary.payout_count == 1


def test_expense_accrual_empty() -> None:
    summary = compute_expense_accrual([], now=NOW)
    assert summary.total_cost == 0.0
    assert summary.total_payouts == 0.0
    assert summary.net_roi == 0.0


def test_count_by_status() -> None:
    accounts = [
        make_account(id="1", status=AccountStatus.EVAL_PHASE_1),
        make_account(id="2", status=AccountStatus.EVAL_PHASE_2),
        make_account(id="3", status=AccountStatus.FUNDED),
        make_account(id="4", status=AccountStatus.BREACHED),
        make_account(id="5", status=AccountStatus.FAILED),
    ]
    assert count_by_status(accounts) == {"evals": 2, "funded": 1, "ended": 2}
