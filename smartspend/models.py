"""Record types shared by the aggregation, reconciliation and UI layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Optional

import pandas as pd


def coerce_datetime(value: Any) -> Optional[datetime]:
    """Parse a date or date-time value into a naive local ``datetime``.

    Accepts ``datetime``/``date`` objects, pandas timestamps and strings
    such as ``2024-01-05``, ``2024-01-05T10:30:00Z`` or ``1/5/2024``.
    Timezone-aware values are converted to local time before the zone is
    dropped so that the calendar date matches what the user sees.

    Returns:
        The parsed value, or ``None`` when it cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    try:
        ts = pd.to_datetime(value, errors='coerce')
    except (TypeError, ValueError):
        return None
    if ts is None or pd.isna(ts):
        return None
    result = ts.to_pydatetime()
    if result.tzinfo is not None:
        result = result.astimezone().replace(tzinfo=None)
    return result


@dataclass(frozen=True)
class Expense:
    """A single logged expense as held in the session."""
    id: str
    amount: float
    category: str
    description: str
    date: datetime

    @property
    def calendar_date(self) -> date:
        return self.date.date()


@dataclass(frozen=True)
class Budget:
    """Monthly cap for one category. ``limit`` of 0 means "not set"."""
    category: str
    limit: float


@dataclass(frozen=True)
class ExpenseDraft:
    """An expense that has not been saved yet.

    Produced by the free-text extractor or by the manual entry form.
    """
    amount: float
    category: str
    description: str
    date: Optional[date] = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Expense amount cannot be negative")


@dataclass(frozen=True)
class CategoryBreakdownEntry:
    category: str
    limit: float
    spent: float
    remaining: float
    percentage: float

    @property
    def exceeded(self) -> bool:
        return self.remaining < 0


@dataclass
class MonthlySummary:
    """Everything the dashboard shows for one calendar month."""
    month: int
    year: int
    expenses: List[Expense]
    total_spent: float
    total_budget: float
    balance: float
    breakdown: List[CategoryBreakdownEntry]
    usage_percentage: float
    orphan_categories: List[str] = field(default_factory=list)

    @property
    def log_count(self) -> int:
        return len(self.expenses)

    @property
    def available(self) -> float:
        """Balance clamped at zero for display."""
        return max(0.0, self.balance)

    @property
    def over_budget(self) -> bool:
        return self.total_spent > self.total_budget


@dataclass
class AppState:
    expenses: List[Expense]
    budgets: List[Budget]


@dataclass(frozen=True)
class SessionUser:
    id: str
    name: str
