"""Bridge between UI intents and the record store.

The :class:`Reconciler` is the only writer to the store and the only source
of records merged back into the session's expense and budget lists.  Store
errors stop here: reads fall back to the default state, creates and updates
return ``None``, housekeeping deletes are logged, and only a failed budget
save is raised (as :class:`BudgetSaveError`) because the user is waiting on
it.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .catalog import default_budgets
from .db import ExpenseKey, RecordStore, to_iso_timestamp
from .models import AppState, Budget, Expense, ExpenseDraft, SessionUser, coerce_datetime

logger = logging.getLogger(__name__)

UserProvider = Callable[[], Optional[SessionUser]]

STORE_ERRORS = (sqlite3.Error, OSError)

# Expense fields the edit form may change, mapped to store columns
_UPDATE_FIELDS = {
    'amount': 'amount',
    'category': 'category',
    'description': 'description',
    'date': 'created_at',
}


class ReconciliationError(Exception):
    """Base class for failures reported to the UI."""


class BudgetSaveError(ReconciliationError):
    """Raised when budget limits could not be written."""


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def row_to_expense(row: Mapping[str, Any]) -> Expense:
    """Normalize a store row into an :class:`Expense`.

    Raises:
        ValueError: If the row has no parseable ``created_at`` or amount
    """
    when = coerce_datetime(row.get('created_at'))
    if when is None:
        raise ValueError(f"Expense {row.get('id')} has an invalid created_at: {row.get('created_at')!r}")
    try:
        amount = float(row.get('amount'))
    except (TypeError, ValueError) as e:
        raise ValueError(f"Expense {row.get('id')} has an invalid amount") from e
    return Expense(
        id=str(row.get('id')),
        amount=amount,
        category=str(row.get('category') or ''),
        description=str(row.get('description') or ''),
        date=when,
    )


def overrides_from_rows(rows: Iterable[Mapping[str, Any]]) -> Dict[str, float]:
    """Map stored override rows to ``{category: limit}``, skipping bad values."""
    overrides: Dict[str, float] = {}
    for row in rows:
        category = row.get('category')
        if not category:
            continue
        try:
            overrides[category] = float(row.get('budget_amount'))
        except (TypeError, ValueError):
            logger.warning("Ignoring budget override for %s with invalid amount %r",
                           category, row.get('budget_amount'))
    return overrides


def merge_budgets(defaults: Sequence[Budget], overrides: Mapping[str, float]) -> List[Budget]:
    """Lay per-user overrides over the catalog defaults.

    The result always has exactly one entry per default, in the defaults'
    order.  Overrides for categories outside ``defaults`` are ignored.

    Example:
        >>> merge_budgets([Budget('Grocery', 10000), Budget('Mobile', 1000)], {'Mobile': 800})
        [Budget(category='Grocery', limit=10000), Budget(category='Mobile', limit=800)]
    """
    return [
        Budget(category=b.category, limit=overrides[b.category]) if b.category in overrides else b
        for b in defaults
    ]


def id_match_candidates(expense_id: Union[str, int]) -> List[ExpenseKey]:
    """Ordered keys to try when matching a stored expense.

    An id that is the canonical decimal spelling of an integer is tried as an
    int first and then as the original string.  Any other id has only its
    string form.

    Example:
        >>> id_match_candidates('42')
        [42, '42']
        >>> id_match_candidates('a1b2')
        ['a1b2']
    """
    text = str(expense_id).strip()
    try:
        numeric = int(text)
    except ValueError:
        return [text]
    if str(numeric) != text:
        return [text]
    return [numeric, text]


def build_update_payload(updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate a partial expense update into store columns.

    Only the fields present (and not ``None``) are included.  A date that
    cannot be parsed is dropped rather than failing the whole update.

    Raises:
        ValueError: If ``amount`` is not a non-negative number
    """
    payload: Dict[str, Any] = {}
    for field_name, column in _UPDATE_FIELDS.items():
        if field_name not in updates or updates[field_name] is None:
            continue
        value = updates[field_name]
        if field_name == 'amount':
            amount = float(value)
            if amount < 0:
                raise ValueError("Expense amount cannot be negative")
            payload[column] = amount
        elif field_name == 'date':
            timestamp = to_iso_timestamp(value)
            if timestamp is None:
                logger.warning("Dropping unparseable date %r from expense update", value)
                continue
            payload[column] = timestamp
        else:
            payload[column] = str(value)
    return payload


def merge_expense(expenses: Sequence[Expense], confirmed: Expense) -> List[Expense]:
    """Return a new list with ``confirmed`` in place of the record with its id.

    Records not yet in the list are appended.
    """
    merged = list(expenses)
    for index, existing in enumerate(merged):
        if existing.id == confirmed.id:
            merged[index] = confirmed
            return merged
    merged.append(confirmed)
    return merged


def update_budget_limit(budgets: Sequence[Budget], category: str, limit: float) -> List[Budget]:
    """Return a new budget list with ``category`` set to ``limit``."""
    return [replace(b, limit=float(limit)) if b.category == category else b for b in budgets]


# ---------------------------------------------------------------------------
# Store-facing operations
# ---------------------------------------------------------------------------


class Reconciler:
    """Executes expense and budget intents for the signed-in user."""

    def __init__(self, store: RecordStore, user_provider: UserProvider):
        """Initialize the reconciler.

        Args:
            store: Record store holding expenses and budget overrides
            user_provider: Callable returning the signed-in user or None
        """
        self.store = store
        self.user_provider = user_provider

    def _user(self) -> Optional[SessionUser]:
        return self.user_provider()

    @staticmethod
    def default_state() -> AppState:
        return AppState(expenses=[], budgets=default_budgets())

    def fetch_all(self) -> AppState:
        """Load the user's expenses and budgets.

        Unauthenticated callers and failed expense queries get the default
        state (no expenses, catalog budgets).
        """
        user = self._user()
        if user is None:
            return self.default_state()

        try:
            rows = self.store.fetch_expenses(user.id)
        except STORE_ERRORS:
            logger.exception("Failed to fetch expenses for user %s", user.id)
            return self.default_state()

        expenses: List[Expense] = []
        for row in rows:
            try:
                expenses.append(row_to_expense(row))
            except ValueError as e:
                logger.warning("Skipping malformed expense row: %s", e)

        try:
            overrides = overrides_from_rows(self.store.fetch_budget_overrides(user.id))
        except STORE_ERRORS:
            logger.exception("Failed to fetch budget overrides for user %s", user.id)
            overrides = {}

        return AppState(expenses=expenses, budgets=merge_budgets(default_budgets(), overrides))

    def create_expense(self, draft: ExpenseDraft, explicit_date: Any = None) -> Optional[Expense]:
        """Persist a new expense and return the stored record, or None on failure.

        Args:
            draft: Amount, category and description to save
            explicit_date: Optional date overriding the store timestamp;
                           falls back to ``draft.date`` when omitted
        """
        user = self._user()
        if user is None:
            logger.warning("Refusing to create an expense without a signed-in user")
            return None

        created_at = None
        requested = explicit_date if explicit_date is not None else draft.date
        if requested is not None:
            created_at = to_iso_timestamp(requested)
            if created_at is None:
                logger.warning("Ignoring unparseable expense date %r", requested)

        try:
            row = self.store.insert_expense(
                user.id,
                amount=draft.amount,
                category=draft.category,
                description=draft.description,
                created_at=created_at,
            )
            return row_to_expense(row)
        except STORE_ERRORS:
            logger.exception("Failed to save expense for user %s", user.id)
        except ValueError as e:
            logger.error("Store returned an unusable expense row: %s", e)
        return None

    def update_expense(self, expense_id: Union[str, int], updates: Mapping[str, Any]) -> Optional[Expense]:
        """Apply a partial update and return the confirmed record, or None.

        The id is matched with each key from :func:`id_match_candidates` in
        turn; the second key is only tried when the first matched no rows.
        """
        user = self._user()
        if user is None:
            return None

        try:
            payload = build_update_payload(updates)
        except (TypeError, ValueError) as e:
            logger.warning("Rejected update for expense %s: %s", expense_id, e)
            return None
        if not payload:
            logger.info("Nothing to update for expense %s", expense_id)
            return None

        for key in id_match_candidates(expense_id):
            try:
                rows = self.store.update_expense(user.id, key, payload)
            except STORE_ERRORS:
                logger.exception("Failed to update expense %s", expense_id)
                return None
            if rows:
                try:
                    return row_to_expense(rows[0])
                except ValueError as e:
                    logger.error("Store returned an unusable expense row: %s", e)
                    return None

        logger.warning("No expense %s found for user %s", expense_id, user.id)
        return None

    def save_budgets(self, budgets: Sequence[Budget]) -> bool:
        """Upsert every budget as a per-user override.

        Returns:
            True when written, False when nobody is signed in

        Raises:
            BudgetSaveError: If a limit is negative or the store write fails
        """
        user = self._user()
        if user is None:
            return False

        for budget in budgets:
            if budget.limit < 0:
                raise BudgetSaveError(f"Budget for {budget.category} cannot be negative")

        try:
            self.store.upsert_budgets(user.id, [(b.category, b.limit) for b in budgets])
        except STORE_ERRORS as e:
            logger.exception("Failed to save budgets for user %s", user.id)
            raise BudgetSaveError("Failed to save budgets") from e
        return True

    def delete_budget_override(self, category: str) -> None:
        """Revert one category to its catalog default. Best effort."""
        user = self._user()
        if user is None:
            return
        try:
            self.store.delete_budget(user.id, category)
        except STORE_ERRORS:
            logger.exception("Failed to delete budget override %s for user %s", category, user.id)

    def clear_all_user_data(self) -> None:
        """Delete every expense and budget override of the user. Best effort."""
        user = self._user()
        if user is None:
            return
        try:
            self.store.delete_expenses(user.id)
        except STORE_ERRORS:
            logger.exception("Failed to delete expenses for user %s", user.id)
        try:
            self.store.delete_budgets(user.id)
        except STORE_ERRORS:
            logger.exception("Failed to delete budgets for user %s", user.id)
