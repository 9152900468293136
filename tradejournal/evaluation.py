"""
Evaluation-phase progress toward the profit target.
"""
import logging
from typing import List

import numpy as np

from tradejournal.metrics import trades_to_frame
from tradejournal.types import AccountStatus, EvaluationProgress, PropAccount, Trade

__all__ = ["PHASE_1_TARGET_PCT", "PHASE_2_TARGET_PCT", "target_pnl", "compute_evaluation_progress"]

log = logging.getLogger(__name__)

PHASE_1_TARGET_PCT = 0.10
PHASE_2_TARGET_PCT = 0.05


def target_pnl(
    account: PropAccount,
    phase_1_pct: float = PHASE_1_TARGET_PCT,
    phase_2_pct: float = PHASE_2_TARGET_PCT,
) -> float:
    """Manual target when one is set, else a percentage of the account size by phase."""
    if account.target_profit and account.target_profit > 0:
        return account.target_profit
    pct = phase_1_pct if account.status is AccountStatus.EVAL_PHASE_1 else phase_2_pct
    return account.account_size * pct


def compute_evaluation_progress(
    accounts: List[PropAccount],
    trades: List[Trade],
    phase_1_pct: float = PHASE_1_TARGET_PCT,
    phase_2_pct: float = PHASE_2_TARGET_PCT,
) -> List[EvaluationProgress]:
    """
    Computes progress-to-target for every account in an evaluation phase.

    Args:
        accounts: All prop accounts; funded and ended ones are skipped.
        trades: All trades. Each account sums the P&L of trades linked to it.
        phase_1_pct: Default target as a fraction of account size in phase 1.
        phase_2_pct: Default target as a fraction of account size in phase 2.

    Returns:
        One EvaluationProgress per evaluating account, in input order, with
        progress clamped to [0, 100]. A non-positive target yields 0 progress.
    """
    pnl_by_account = trades_to_frame(trades).groupby("account_id")["pnl"].sum()

    results = []
    for account in accounts:
        if account.status not in (AccountStatus.EVAL_PHASE_1, AccountStatus.EVAL_PHASE_2):
            continue

        current = float(pnl_by_account.get(account.id, 0.0))
        target = target_pnl(account, phase_1_pct, phase_2_pct)
        if target > 0:
            progress = float(np.clip(current / target * 100, 0, 100))
        else:
            log.warning(f"Account {account.id} has no positive profit target; progress set to 0.")
            progress = 0.0

        results.append(
            EvaluationProgress(
                account_id=account.id,
                firm_name=account.firm_name,
                status=account.status,
                current_pnl=current,
                target_pnl=target,
                progress=progress,
            )
        )
    return results
