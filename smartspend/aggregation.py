"""Monthly budget aggregation.

This module turns the session's expense and budget lists into the figures
shown on the dashboard: the current month's expenses, total spent, total
budget, the signed balance and a per-category breakdown.  Every function
is pure: inputs are never mutated and no I/O is performed.

Expenses whose category has no budget entry still count towards
``total_spent`` but do not appear in the breakdown; ``orphan_categories``
lists them so the UI can point this out.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from .models import Budget, CategoryBreakdownEntry, Expense, MonthlySummary


def filter_by_month(expenses: Iterable[Expense], month: int, year: int) -> List[Expense]:
    """Return the expenses dated in ``month``/``year`` in their input order.

    Args:
        expenses: Expenses in creation order
        month: Calendar month, 1-12
        year: Four digit year

    Returns:
        New list holding the matching expenses

    Example:
        >>> feb = filter_by_month(expenses, 2, 2024)
        >>> filter_by_month(feb, 2, 2024) == feb
        True
    """
    return [e for e in expenses if e.date.month == month and e.date.year == year]


def total_spent(expenses: Iterable[Expense]) -> float:
    """Sum of expense amounts; ``0.0`` for an empty list."""
    return float(sum(e.amount for e in expenses))


def total_budget(budgets: Iterable[Budget]) -> float:
    """Sum of budget limits; ``0.0`` for an empty list."""
    return float(sum(b.limit for b in budgets))


def balance(budget_total: float, spent_total: float) -> float:
    """Signed remaining amount. Negative means the month is over budget."""
    return budget_total - spent_total


def percentage_of(spent: float, limit: float) -> float:
    """Percent of ``limit`` used by ``spent``; ``0.0`` when no limit is set.

    Example:
        >>> percentage_of(500, 2000)
        25.0
        >>> percentage_of(500, 0)
        0.0
    """
    if limit <= 0:
        return 0.0
    return spent / limit * 100.0


def breakdown(budgets: Sequence[Budget], expenses: Iterable[Expense]) -> List[CategoryBreakdownEntry]:
    """Build one breakdown entry per budget, largest spend first.

    Spend is matched on the exact (case-sensitive) category name.  The sort
    is stable, so categories with equal spend keep the budgets' order.

    Args:
        budgets: Budgets in catalog order
        expenses: Expenses already narrowed to the month of interest

    Returns:
        List of ``CategoryBreakdownEntry`` with the same length as ``budgets``
    """
    spent_by_category: dict = {}
    for expense in expenses:
        spent_by_category[expense.category] = spent_by_category.get(expense.category, 0.0) + expense.amount

    entries = []
    for budget in budgets:
        spent = float(spent_by_category.get(budget.category, 0.0))
        entries.append(CategoryBreakdownEntry(
            category=budget.category,
            limit=budget.limit,
            spent=spent,
            remaining=budget.limit - spent,
            percentage=percentage_of(spent, budget.limit),
        ))
    # sorted() is guaranteed stable
    return sorted(entries, key=lambda entry: entry.spent, reverse=True)


def orphan_categories(budgets: Iterable[Budget], expenses: Iterable[Expense]) -> List[str]:
    """Categories that appear in ``expenses`` but have no budget, first-seen order."""
    budgeted = {b.category for b in budgets}
    orphans: List[str] = []
    for expense in expenses:
        if expense.category not in budgeted and expense.category not in orphans:
            orphans.append(expense.category)
    return orphans


def summarize(
    expenses: Sequence[Expense],
    budgets: Sequence[Budget],
    month: int,
    year: int,
) -> MonthlySummary:
    """Compute the full dashboard view model for one month."""
    monthly = filter_by_month(expenses, month, year)
    spent = total_spent(monthly)
    limit_total = total_budget(budgets)
    return MonthlySummary(
        month=month,
        year=year,
        expenses=monthly,
        total_spent=spent,
        total_budget=limit_total,
        balance=balance(limit_total, spent),
        breakdown=breakdown(budgets, monthly),
        usage_percentage=spent / (limit_total or 1) * 100.0,
        orphan_categories=orphan_categories(budgets, monthly),
    )


def current_month_summary(
    expenses: Sequence[Expense],
    budgets: Sequence[Budget],
    today: Optional[date] = None,
) -> MonthlySummary:
    """``summarize`` for the month containing ``today`` (defaults to now)."""
    reference = today or date.today()
    return summarize(expenses, budgets, reference.month, reference.year)


def breakdown_frame(entries: Sequence[CategoryBreakdownEntry]) -> pd.DataFrame:
    """Tabular form of a breakdown for ``st.dataframe`` and Plotly.

    Returns:
        DataFrame with columns: Category, Limit, Spent, Remaining,
        Percent Used, Status (``Over`` when remaining is negative)
    """
    columns = ['Category', 'Limit', 'Spent', 'Remaining', 'Percent Used', 'Status']
    if not entries:
        return pd.DataFrame(columns=columns)

    rows = []
    for entry in entries:
        rows.append({
            'Category': entry.category,
            'Limit': entry.limit,
            'Spent': entry.spent,
            'Remaining': entry.remaining,
            'Percent Used': round(entry.percentage, 1),
            'Status': 'Over' if entry.exceeded else 'Under',
        })
    return pd.DataFrame(rows, columns=columns)


def expenses_frame(expenses: Sequence[Expense]) -> pd.DataFrame:
    """Tabular form of an expense list, newest first."""
    columns = ['id', 'Date', 'Category', 'Description', 'Amount']
    if not expenses:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame([
        {
            'id': e.id,
            'Date': pd.Timestamp(e.date),
            'Category': e.category,
            'Description': e.description,
            'Amount': e.amount,
        }
        for e in expenses
    ], columns=columns)
    # Reverse of creation order, matching the history list
    return df.iloc[::-1].reset_index(drop=True)
