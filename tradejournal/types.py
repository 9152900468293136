"""
Shared data structures for the application.

Records (trades, prop accounts, payouts) are validated here, at the storage
boundary. Serialized records use camelCase keys; Python code uses snake_case
attributes. The computation engines take these models as given and never
re-validate them.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "Direction",
    "Session",
    "TradeStatus",
    "Outcome",
    "AccountStatus",
    "Trade",
    "Payout",
    "PropAccount",
    "Metrics",
    "TradeSummary",
    "ExpenseSummary",
    "EvaluationProgress",
    "ChartPoint",
    "SetupStats",
    "CalendarDay",
    "new_record_id",
    "to_naive_utc",
]


class Direction(str, Enum):
    LONG = "Long"
    SHORT = "Short"
    CALL = "Call Options"
    PUT = "Put Options"


class Session(str, Enum):
    ASIA = "Asia"
    LONDON = "London"
    NY_AM = "NY AM"
    NY_LUNCH = "NY Lunch"
    NY_PM = "NY PM"
    OTHER = "Other"


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    PENDING = "PENDING"


class Outcome(str, Enum):
    WIN = "WIN"
    LOSS = "LOSS"
    BREAK_EVEN = "BREAK_EVEN"


class AccountStatus(str, Enum):
    EVAL_PHASE_1 = "Eval Phase 1"
    EVAL_PHASE_2 = "Eval Phase 2"
    FUNDED = "Funded"
    FAILED = "Failed"
    BREACHED = "Breached"


def new_record_id() -> str:
    """Short random identifier for new trades, accounts and payouts."""
    return uuid.uuid4().hex[:9]


def to_naive_utc(value: datetime) -> datetime:
    """Converts aware datetimes to naive UTC; naive values are taken as UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class _Record(BaseModel):
    """Base for stored records: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# §1. Stored Records
# --------------------------------------------------------------------------------------


class Trade(_Record):
    """
    A single journal entry. Trades are immutable: an edit replaces the whole record.

    `pnl` is the gross realized amount. `commission` is kept as a separate
    display field and is never netted into `pnl`.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., description="Unique trade identity.")
    account_id: Optional[str] = Field(None, description="Weak reference to a PropAccount.")
    symbol: str
    direction: Direction = Direction.LONG
    session: Session = Session.OTHER
    entry_date: datetime
    exit_date: datetime
    status: TradeStatus = TradeStatus.CLOSED
    pnl: float = 0.0
    commission: float = Field(0.0, ge=0)
    risk_percentage: Optional[float] = None
    r_multiple: Optional[float] = None
    entry_price: float = 0.0
    exit_price: float = 0.0
    size: float = 0.0
    setup: str = ""
    mistakes: List[str] = Field(default_factory=list)
    notes: str = ""
    copier_batch: Optional[str] = Field(None, description="Shared tag of a multi-account copier batch.")

    @field_validator("entry_date", "exit_date")
    @classmethod
    def _normalize_dates(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("mistakes")
    @classmethod
    def _dedupe_mistakes(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))

    @computed_field(alias="outcome")  # type: ignore[prop-decorator]
    @property
    def outcome(self) -> Outcome:
        if self.pnl > 0:
            return Outcome.WIN
        if self.pnl < 0:
            return Outcome.LOSS
        return Outcome.BREAK_EVEN


class Payout(_Record):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    amount: float
    date: datetime
    note: str = ""

    @field_validator("date")
    @classmethod
    def _normalize_date(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class PropAccount(_Record):
    """
    A prop-firm evaluation or funded account tracked for cost/payout accounting.

    `total_payouts` and `payout_count` are derived from `payouts`, so they can
    never drift from the payout history. Stored values for them are ignored.
    """

    id: str
    firm_name: str
    account_size: float = 0.0
    cost: float = 0.0
    activation_fee: Optional[float] = None
    is_subscription: bool = False
    monthly_fee: Optional[float] = None
    target_profit: Optional[float] = None
    status: AccountStatus = AccountStatus.EVAL_PHASE_1
    date_added: datetime
    date_funded: Optional[datetime] = None
    date_ended: Optional[datetime] = None
    payouts: List[Payout] = Field(default_factory=list)
    certificate: Optional[str] = None

    @field_validator("date_added", "date_funded", "date_ended")
    @classmethod
    def _normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value) if value is not None else None

    @computed_field(alias="totalPayouts")  # type: ignore[prop-decorator]
    @property
    def total_payouts(self) -> float:
        return sum(p.amount for p in self.payouts)

    @computed_field(alias="payoutCount")  # type: ignore[prop-decorator]
    @property
    def payout_count(self) -> int:
        return len(self.payouts)


# §2. Computed Results
# --------------------------------------------------------------------------------------


class Metrics(BaseModel):
    """Dashboard performance statistics."""

    model_config = ConfigDict(frozen=True)

    total_trades: int
    wins: int
    losses: int
    win_rate: float
    net_pnl: float
    gross_profit: float
    gross_loss: float
    profit_factor: float
    avg_win: float
    avg_loss: float
    best_day: float
    worst_day: float
    current_streak: int


class TradeSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    wins: int
    net_pnl: float
    win_rate: float


class ExpenseSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_cost: float
    total_payouts: float
    payout_count: int
    net_roi: float


class EvaluationProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: str
    firm_name: str
    status: AccountStatus
    current_pnl: float
    target_pnl: float
    progress: float


class ChartPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    pnl: float
    cumulative_pnl: float


class SetupStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    count: int
    win_rate: float
    pnl: float
    expectancy: float


class CalendarDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: int
    trade_count: int
    pnl: float
