"""CSV export of a user's expense history."""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

from .config import CURRENCY_CODE, EXPORT_PREFIX
from .models import Expense

DELIMITER = ','
HEADERS = ['User', 'Date', 'Category', f'Amount ({CURRENCY_CODE})', 'Description']


def quote(value: str) -> str:
    """Always quote, doubling any embedded quote characters."""
    return '"' + value.replace('"', '""') + '"'


def quote_if_needed(value: str) -> str:
    """Quote only when the value holds the delimiter, a quote or a newline."""
    if any(ch in value for ch in (DELIMITER, '"', '\n', '\r')):
        return quote(value)
    return value


def format_export_date(value: date) -> str:
    """``M/D/YYYY`` without zero padding, e.g. ``1/5/2024``."""
    return f"{value.month}/{value.day}/{value.year}"


def format_export_amount(amount: float) -> str:
    """Plain number without a trailing ``.0`` for whole amounts."""
    value = float(amount)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def expense_row(expense: Expense, user_name: str) -> List[str]:
    return [
        quote(user_name),
        format_export_date(expense.calendar_date),
        quote_if_needed(expense.category),
        format_export_amount(expense.amount),
        quote(expense.description),
    ]


def expenses_to_csv(expenses: Sequence[Expense], user_name: str) -> str:
    """Serialize the full expense list as CSV text.

    Args:
        expenses: Expenses in the order they should appear
        user_name: Display name written into the User column

    Returns:
        CSV text with a header row and ``\\n`` line endings

    Raises:
        ValueError: If there are no expenses to export
    """
    if not expenses:
        raise ValueError("No transaction data to export.")
    lines = [DELIMITER.join(HEADERS)]
    lines.extend(DELIMITER.join(expense_row(e, user_name)) for e in expenses)
    return '\n'.join(lines)


def export_filename(today: Optional[date] = None) -> str:
    """Download name embedding the export date."""
    reference = today or date.today()
    return f"{EXPORT_PREFIX}-{reference.isoformat()}.csv"
