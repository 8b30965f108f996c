"""Fixed catalog of spending categories.

The catalog is the single source of the category set, the default monthly
limit per category and the colour used to draw it.  Its order matters: it
is the display order of the settings page and the tie-break order of the
category breakdown.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from .models import Budget

# (category, default monthly limit in INR)
_DEFAULT_LIMITS: Tuple[Tuple[str, float], ...] = (
    ('Grocery', 10000.0),
    ('Household Help', 5000.0),
    ('Medical', 2000.0),
    ('Shopping', 5000.0),
    ('Transport', 3000.0),
    ('Education', 5000.0),
    ('Entertainment', 3000.0),
    ('Medical Insurance', 2000.0),
    ('Property Tax', 1000.0),
    ('Electricity', 3000.0),
    ('Mobile', 1000.0),
    ('Home Maintenance', 2000.0),
    ('Petrol', 5000.0),
    ('Food & Drinks', 5000.0),
)

CATEGORY_COLORS: Dict[str, str] = {
    'Grocery': '#4ADE80',
    'Household Help': '#60A5FA',
    'Medical': '#F87171',
    'Shopping': '#A78BFA',
    'Education': '#FBBF24',
    'Entertainment': '#F472B6',
    'Medical Insurance': '#2DD4BF',
    'Property Tax': '#94A3B8',
    'Electricity': '#FB923C',
    'Mobile': '#38BDF8',
    'Home Maintenance': '#818CF8',
    'Petrol': '#FACC15',
    'Transport': '#4ade80',
    'Food & Drinks': '#F97316',
}

DEFAULT_COLOR = '#6366F1'
OVER_LIMIT_COLOR = '#EF4444'

DEFAULT_BUDGETS: Tuple[Budget, ...] = tuple(
    Budget(category=name, limit=limit) for name, limit in _DEFAULT_LIMITS
)


def category_names() -> List[str]:
    """Return the category names in catalog order."""
    return [name for name, _ in _DEFAULT_LIMITS]


def default_budgets() -> List[Budget]:
    """Return a fresh list of the default budgets.

    ``Budget`` is frozen, so handing out the instances is safe; the list
    itself is new on every call so callers may reorder or extend it.
    """
    return list(DEFAULT_BUDGETS)


def default_limit(category: str) -> float:
    """Return the catalog limit for ``category`` or ``0.0`` when unknown."""
    return dict(_DEFAULT_LIMITS).get(category, 0.0)


def is_known_category(category: str) -> bool:
    return category in dict(_DEFAULT_LIMITS)


def get_category_color(category: str) -> str:
    """Return the display colour for a category.

    Example:
        >>> get_category_color('Grocery')
        '#4ADE80'
        >>> get_category_color('Gifts')
        '#6366F1'
    """
    return CATEGORY_COLORS.get(category, DEFAULT_COLOR)
