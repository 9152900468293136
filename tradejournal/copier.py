"""
Trade entry: a single ticket that expands into one trade per selected account.

With one account selected the ticket's P&L is recorded as entered. With
several (the "trade copier"), each account's P&L is derived from the shared
risk percentage and R-multiple, scaled by that account's size, and every
resulting trade carries the same batch tag.
"""
import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from tradejournal.types import Direction, PropAccount, Session, Trade, new_record_id

__all__ = ["TradeTicket", "expand_ticket", "merge_trades", "remove_trade"]

log = logging.getLogger(__name__)

DEFAULT_SETUP = "Discretionary"


class TradeTicket(BaseModel):
    """What the user entered on the journal form."""

    account_ids: List[str] = Field(..., min_length=1)
    symbol: str
    direction: Direction = Direction.LONG
    session: Session = Session.OTHER
    entry_date: datetime
    exit_date: datetime
    pnl: float = 0.0
    commission: float = Field(0.0, ge=0)
    risk_percentage: float = 0.0
    r_multiple: float = 0.0
    entry_price: float = 0.0
    exit_price: float = 0.0
    size: float = 0.0
    setup: str = ""
    mistakes: List[str] = Field(default_factory=list)
    notes: str = ""
    trade_id: Optional[str] = Field(None, description="Set when the ticket edits an existing trade.")


def expand_ticket(
    ticket: TradeTicket, accounts: List[PropAccount], batch_id: Optional[str] = None
) -> List[Trade]:
    """
    Expands a ticket into trades, one per selected account.

    Args:
        ticket: The journal form contents.
        accounts: Known accounts; selected ids that are not found are skipped.
        batch_id: Optional provenance tag for a copier batch. Defaults to the
            generated base id.

    Returns:
        The new trades. An edit keeps the original trade id; new entries get
        "<base>-<index>" ids.
    """
    by_id = {a.id: a for a in accounts}
    is_copier = len(ticket.account_ids) > 1
    base_id = ticket.trade_id or new_record_id()
    batch = (batch_id or base_id) if is_copier else None

    trades = []
    for index, account_id in enumerate(ticket.account_ids):
        account = by_id.get(account_id)
        if account is None:
            log.warning(f"Skipping unknown account '{account_id}' in trade ticket.")
            continue

        if is_copier:
            risk_amount = account.account_size * (ticket.risk_percentage / 100)
            pnl = risk_amount * ticket.r_multiple
            notes = f"[Trade Copier] Executed on {len(ticket.account_ids)} accounts."
        else:
            pnl = ticket.pnl
            notes = ticket.notes

        trades.append(
            Trade(
                id=ticket.trade_id or f"{base_id}-{index}",
                account_id=account.id,
                symbol=ticket.symbol.upper(),
                direction=ticket.direction,
                session=ticket.session,
                entry_date=ticket.entry_date,
                exit_date=ticket.exit_date,
                pnl=pnl,
                commission=ticket.commission,
                risk_percentage=ticket.risk_percentage,
                r_multiple=ticket.r_multiple,
                entry_price=ticket.entry_price,
                exit_price=ticket.exit_price,
                size=ticket.size,
                setup=ticket.setup or DEFAULT_SETUP,
                mistakes=ticket.mistakes,
                notes=notes,
                copier_batch=batch,
            )
        )

    log.info(f"Ticket for {ticket.symbol.upper()} expanded into {len(trades)} trade(s).")
    return trades


def merge_trades(existing: List[Trade], incoming: List[Trade]) -> List[Trade]:
    """
    Applies saved trades to the journal. A single trade whose id already
    exists replaces it in place; anything else is prepended, newest first.
    """
    if len(incoming) == 1 and any(t.id == incoming[0].id for t in existing):
        return [incoming[0] if t.id == incoming[0].id else t for t in existing]
    return [*incoming, *existing]


def remove_trade(trades: List[Trade], trade_id: str) -> List[Trade]:
    return [t for t in trades if t.id != trade_id]
