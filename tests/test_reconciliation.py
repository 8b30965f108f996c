"""Tests for smartspend.reconciliation against a real SQLite store and fakes."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

import pytest

from smartspend.catalog import DEFAULT_BUDGETS, default_budgets
from smartspend.db import RecordStore
from smartspend.models import Budget, Expense, ExpenseDraft, SessionUser
from smartspend.reconciliation import (
    BudgetSaveError,
    Reconciler,
    build_update_payload,
    id_match_candidates,
    merge_budgets,
    merge_expense,
    row_to_expense,
    update_budget_limit,
)

ASHA = SessionUser(id='asha-1', name='Asha')


def _reconciler(tmp_path, user=ASHA):
    return Reconciler(RecordStore(tmp_path / 'test.db'), lambda: user)


class FakeStore:
    """Store double recording calls; behaviour set per test."""

    def __init__(self, update_results=None, fail=()):
        self.update_results = update_results or {}
        self.fail = set(fail)
        self.calls = []

    def _maybe_fail(self, name):
        self.calls.append(name)
        if name in self.fail:
            raise sqlite3.OperationalError(f"{name} unavailable")

    def fetch_expenses(self, user_id):
        self._maybe_fail('fetch_expenses')
        return [{'id': 1, 'amount': '10.5', 'category': 'Mobile', 'description': 'Top-up',
                 'created_at': '2024-01-02T10:00:00'}]

    def fetch_budget_overrides(self, user_id):
        self._maybe_fail('fetch_budget_overrides')
        return [{'category': 'Mobile', 'budget_amount': '750'}]

    def update_expense(self, user_id, key, payload):
        self._maybe_fail('update_expense')
        self.calls.append(('update', key, dict(payload)))
        return self.update_results.get(key, [])

    def upsert_budgets(self, user_id, entries):
        self._maybe_fail('upsert_budgets')
        return len(list(entries))

    def delete_budget(self, user_id, category):
        self._maybe_fail('delete_budget')

    def delete_expenses(self, user_id):
        self._maybe_fail('delete_expenses')

    def delete_budgets(self, user_id):
        self._maybe_fail('delete_budgets')


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def test_id_match_candidates_order():
    assert id_match_candidates('42') == [42, '42']
    assert id_match_candidates(42) == [42, '42']
    assert id_match_candidates('007') == ['007']
    assert id_match_candidates('9f1c-uuid') == ['9f1c-uuid']


def test_merge_budgets_keeps_catalog_order_and_length():
    merged = merge_budgets(default_budgets(), {'Mobile': 800.0, 'Grocery': 12000.0, 'Gifts': 50.0})
    assert [b.category for b in merged] == [b.category for b in DEFAULT_BUDGETS]
    assert merged[0] == Budget('Grocery', 12000.0)
    assert Budget('Mobile', 800.0) in merged
    assert 'Gifts' not in [b.category for b in merged]


def test_build_update_payload_sends_only_present_fields():
    assert build_update_payload({'amount': 5}) == {'amount': 5.0}
    assert build_update_payload({'description': None, 'category': 'Mobile'}) == {'category': 'Mobile'}


def test_build_update_payload_drops_bad_date():
    payload = build_update_payload({'amount': 5, 'date': '31/31/2024 banana'})
    assert payload == {'amount': 5.0}


def test_build_update_payload_rejects_negative_amount():
    with pytest.raises(ValueError):
        build_update_payload({'amount': -1})


def test_row_to_expense_normalizes_types():
    expense = row_to_expense({'id': 7, 'amount': '12.50', 'category': 'Mobile',
                              'description': 'Recharge', 'created_at': '2024-01-05T08:15:00'})
    assert expense == Expense('7', 12.5, 'Mobile', 'Recharge', datetime(2024, 1, 5, 8, 15))


def test_row_to_expense_rejects_bad_timestamp():
    with pytest.raises(ValueError):
        row_to_expense({'id': 7, 'amount': 1, 'category': 'Mobile', 'description': '', 'created_at': None})


def test_merge_expense_replaces_in_place_or_appends():
    a = Expense('1', 1.0, 'Mobile', 'a', datetime(2024, 1, 1))
    b = Expense('2', 2.0, 'Mobile', 'b', datetime(2024, 1, 2))
    edited = Expense('1', 9.0, 'Mobile', 'a', datetime(2024, 1, 1))
    fresh = Expense('3', 3.0, 'Mobile', 'c', datetime(2024, 1, 3))

    original = [a, b]
    assert merge_expense(original, edited) == [edited, b]
    assert merge_expense(original, fresh) == [a, b, fresh]
    assert original == [a, b]


def test_update_budget_limit_is_pure():
    budgets = default_budgets()
    updated = update_budget_limit(budgets, 'Mobile', 0)
    assert Budget('Mobile', 0.0) in updated
    assert Budget('Mobile', 1000.0) in budgets


# ---------------------------------------------------------------------------
# Reconciler against SQLite
# ---------------------------------------------------------------------------


def test_fetch_all_unauthenticated_returns_defaults(tmp_path):
    state = _reconciler(tmp_path, user=None).fetch_all()
    assert state.expenses == []
    assert state.budgets == list(DEFAULT_BUDGETS)


def test_create_then_fetch(tmp_path):
    reconciler = _reconciler(tmp_path)
    saved = reconciler.create_expense(ExpenseDraft(250, 'Food & Drinks', 'Lunch'), explicit_date='2024-01-05')

    assert saved is not None
    assert saved.date == datetime(2024, 1, 5)
    state = reconciler.fetch_all()
    assert state.expenses == [saved]
    assert len(state.budgets) == len(DEFAULT_BUDGETS)


def test_create_uses_draft_date_when_no_explicit_date(tmp_path):
    from datetime import date
    saved = _reconciler(tmp_path).create_expense(ExpenseDraft(10, 'Mobile', 'Top-up', date=date(2024, 2, 29)))
    assert saved.calendar_date == date(2024, 2, 29)


def test_create_requires_user(tmp_path):
    assert _reconciler(tmp_path, user=None).create_expense(ExpenseDraft(1, 'Mobile', 'x')) is None


def test_update_round_trip_changes_only_amount(tmp_path):
    reconciler = _reconciler(tmp_path)
    saved = reconciler.create_expense(ExpenseDraft(100, 'Grocery', 'Rice'), explicit_date='2024-01-05')

    updated = reconciler.update_expense(saved.id, {'amount': 180})

    assert updated is not None
    assert updated.amount == 180
    [fetched] = reconciler.fetch_all().expenses
    assert fetched.amount == 180
    assert (fetched.id, fetched.category, fetched.description, fetched.date) == \
        (saved.id, saved.category, saved.description, saved.date)


def test_update_with_bad_date_still_applies_other_fields(tmp_path):
    reconciler = _reconciler(tmp_path)
    saved = reconciler.create_expense(ExpenseDraft(100, 'Grocery', 'Rice'), explicit_date='2024-01-05')

    updated = reconciler.update_expense(saved.id, {'description': 'Basmati', 'date': 'not-a-date'})

    assert updated.description == 'Basmati'
    assert updated.date == saved.date


def test_update_nonexistent_id_fails_without_side_effects(tmp_path):
    reconciler = _reconciler(tmp_path)
    saved = reconciler.create_expense(ExpenseDraft(100, 'Grocery', 'Rice'), explicit_date='2024-01-05')

    assert reconciler.update_expense('999', {'amount': 1}) is None
    assert reconciler.fetch_all().expenses == [saved]


def test_update_other_users_expense_fails(tmp_path):
    store = RecordStore(tmp_path / 'test.db')
    saved = Reconciler(store, lambda: ASHA).create_expense(ExpenseDraft(100, 'Grocery', 'Rice'))
    intruder = Reconciler(store, lambda: SessionUser(id='other', name='Other'))
    assert intruder.update_expense(saved.id, {'amount': 1}) is None


def test_save_budgets_upserts_per_category(tmp_path):
    reconciler = _reconciler(tmp_path)
    budgets = update_budget_limit(default_budgets(), 'Grocery', 12000)

    assert reconciler.save_budgets(budgets) is True
    assert reconciler.save_budgets(update_budget_limit(budgets, 'Grocery', 11000)) is True

    state = reconciler.fetch_all()
    assert state.budgets[0] == Budget('Grocery', 11000.0)
    assert len(reconciler.store.fetch_budget_overrides(ASHA.id)) == len(DEFAULT_BUDGETS)


def test_delete_budget_override_reverts_to_default(tmp_path):
    reconciler = _reconciler(tmp_path)
    reconciler.save_budgets([Budget('Mobile', 400)])
    reconciler.delete_budget_override('Mobile')
    assert Budget('Mobile', 1000.0) in reconciler.fetch_all().budgets


def test_clear_all_user_data(tmp_path):
    reconciler = _reconciler(tmp_path)
    reconciler.create_expense(ExpenseDraft(5, 'Mobile', 'Top-up'))
    reconciler.save_budgets([Budget('Mobile', 400)])

    reconciler.clear_all_user_data()

    state = reconciler.fetch_all()
    assert state.expenses == []
    assert state.budgets == list(DEFAULT_BUDGETS)


# ---------------------------------------------------------------------------
# Reconciler against fakes
# ---------------------------------------------------------------------------


def test_fetch_all_falls_back_when_expense_query_fails(caplog):
    reconciler = Reconciler(FakeStore(fail={'fetch_expenses'}), lambda: ASHA)
    with caplog.at_level(logging.ERROR, logger='smartspend.reconciliation'):
        state = reconciler.fetch_all()
    assert state.expenses == []
    assert state.budgets == list(DEFAULT_BUDGETS)
    assert 'Failed to fetch expenses' in caplog.text


def test_fetch_all_keeps_expenses_when_budget_query_fails():
    state = Reconciler(FakeStore(fail={'fetch_budget_overrides'}), lambda: ASHA).fetch_all()
    assert [e.amount for e in state.expenses] == [10.5]
    assert state.budgets == list(DEFAULT_BUDGETS)


def test_fetch_all_applies_overrides():
    state = Reconciler(FakeStore(), lambda: ASHA).fetch_all()
    assert Budget('Mobile', 750.0) in state.budgets


def test_update_retries_with_string_key():
    row = {'id': '7', 'amount': 3, 'category': 'Mobile', 'description': 'x', 'created_at': '2024-01-01'}
    store = FakeStore(update_results={'7': [row]})

    updated = Reconciler(store, lambda: ASHA).update_expense('7', {'amount': 3})

    assert updated.id == '7'
    attempts = [call[1] for call in store.calls if isinstance(call, tuple)]
    assert attempts == [7, '7']


def test_update_does_not_retry_after_first_match():
    row = {'id': 7, 'amount': 3, 'category': 'Mobile', 'description': 'x', 'created_at': '2024-01-01'}
    store = FakeStore(update_results={7: [row]})

    Reconciler(store, lambda: ASHA).update_expense('7', {'amount': 3})

    assert [call[1] for call in store.calls if isinstance(call, tuple)] == [7]


def test_update_non_numeric_id_tries_once():
    store = FakeStore()
    assert Reconciler(store, lambda: ASHA).update_expense('abc', {'amount': 3}) is None
    assert [call[1] for call in store.calls if isinstance(call, tuple)] == ['abc']


def test_update_store_error_returns_none():
    store = FakeStore(fail={'update_expense'})
    assert Reconciler(store, lambda: ASHA).update_expense('1', {'amount': 3}) is None


def test_update_with_nothing_to_send_skips_store():
    store = FakeStore()
    assert Reconciler(store, lambda: ASHA).update_expense('1', {'date': 'garbage'}) is None
    assert store.calls == []


def test_save_budgets_propagates_store_failure():
    reconciler = Reconciler(FakeStore(fail={'upsert_budgets'}), lambda: ASHA)
    with pytest.raises(BudgetSaveError):
        reconciler.save_budgets(default_budgets())


def test_save_budgets_rejects_negative_limit():
    with pytest.raises(BudgetSaveError):
        Reconciler(FakeStore(), lambda: ASHA).save_budgets([Budget('Mobile', -1)])


def test_save_budgets_unauthenticated_returns_false():
    store = FakeStore()
    assert Reconciler(store, lambda: None).save_budgets(default_budgets()) is False
    assert store.calls == []


def test_housekeeping_deletes_swallow_failures():
    store = FakeStore(fail={'delete_budget', 'delete_expenses', 'delete_budgets'})
    reconciler = Reconciler(store, lambda: ASHA)
    reconciler.delete_budget_override('Mobile')
    reconciler.clear_all_user_data()
    assert store.calls == ['delete_budget', 'delete_expenses', 'delete_budgets']
