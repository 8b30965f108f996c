"""SQLite record store for expenses and per-user budget overrides.

Every query is scoped by ``user_id``.  Errors raised by ``sqlite3`` are not
caught here; :mod:`smartspend.reconciliation` decides whether a failure is
surfaced to the user or only logged.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .config import DB_PATH, ensure_data_directories
from .models import coerce_datetime

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS expenses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    amount REAL NOT NULL,
    category TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_expenses_user_created ON expenses (user_id, created_at);

CREATE TABLE IF NOT EXISTS expense_budgets (
    user_id TEXT NOT NULL,
    category TEXT NOT NULL,
    budget_amount REAL NOT NULL,
    updated_at TEXT,
    PRIMARY KEY (user_id, category)
);
"""

EXPENSE_COLUMNS = "id, amount, category, description, created_at"

# Columns a caller may change through update_expense
UPDATABLE_COLUMNS = ('amount', 'category', 'description', 'created_at')

ExpenseKey = Union[int, str]


def to_iso_timestamp(value: Any) -> Optional[str]:
    """Serialize a date/date-time value the way ``created_at`` stores it."""
    parsed = coerce_datetime(value)
    if parsed is None:
        return None
    return parsed.isoformat(timespec='seconds')


class RecordStore:
    """Handles the ``expenses`` and ``expense_budgets`` tables."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize the store and create the schema if needed.

        Args:
            db_path: Optional custom database file.
                     Defaults to DB_PATH from config.
        """
        self.db_path = Path(db_path) if db_path is not None else DB_PATH
        if db_path is None:
            ensure_data_directories()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.init_db()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def fetch_expenses(self, user_id: str) -> List[Dict[str, Any]]:
        """Return the user's expense rows, oldest first."""
        sql = (
            f"SELECT {EXPENSE_COLUMNS} FROM expenses WHERE user_id = ? "
            "ORDER BY created_at ASC, id ASC"
        )
        with self.connect() as conn:
            rows = conn.execute(sql, (user_id,)).fetchall()
        return [dict(row) for row in rows]

    def insert_expense(
        self,
        user_id: str,
        amount: float,
        category: str,
        description: str,
        created_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Insert one expense and return the stored row.

        ``created_at`` defaults to the current local time.
        """
        timestamp = created_at or datetime.now().isoformat(timespec='seconds')
        with self.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO expenses (user_id, amount, category, description, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (user_id, float(amount), category, description, timestamp),
            )
            conn.commit()
            row = conn.execute(
                f"SELECT {EXPENSE_COLUMNS} FROM expenses WHERE id = ?",
                (cursor.lastrowid,),
            ).fetchone()
        return dict(row)

    def update_expense(
        self,
        user_id: str,
        expense_id: ExpenseKey,
        updates: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """Apply ``updates`` to the matching expense and return the updated rows.

        Args:
            user_id: Owner of the row
            expense_id: Key to match, as an int or a str
            updates: Column -> value, restricted to UPDATABLE_COLUMNS

        Returns:
            The rows after the update; empty when nothing matched

        Raises:
            ValueError: If ``updates`` is empty or names an unknown column
        """
        if not updates:
            raise ValueError("No fields to update")
        unknown = set(updates) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")

        assignments = [f"{column} = ?" for column in updates]
        params: List[Any] = list(updates.values())
        params.extend([expense_id, user_id])
        sql = f"UPDATE expenses SET {', '.join(assignments)} WHERE id = ? AND user_id = ?"

        with self.connect() as conn:
            cursor = conn.execute(sql, params)
            conn.commit()
            if cursor.rowcount <= 0:
                return []
            rows = conn.execute(
                f"SELECT {EXPENSE_COLUMNS} FROM expenses WHERE id = ? AND user_id = ?",
                (expense_id, user_id),
            ).fetchall()
        return [dict(row) for row in rows]

    def delete_expenses(self, user_id: str) -> int:
        with self.connect() as conn:
            cursor = conn.execute("DELETE FROM expenses WHERE user_id = ?", (user_id,))
            conn.commit()
            return cursor.rowcount

    # ------------------------------------------------------------------
    # Budget overrides
    # ------------------------------------------------------------------

    def fetch_budget_overrides(self, user_id: str) -> List[Dict[str, Any]]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT category, budget_amount FROM expense_budgets WHERE user_id = ?",
                (user_id,),
            ).fetchall()
        return [dict(row) for row in rows]

    def upsert_budgets(self, user_id: str, entries: Iterable[Tuple[str, float]]) -> int:
        """Insert or overwrite one override per ``(user_id, category)``.

        Returns:
            Number of rows written
        """
        updated_at = datetime.now(timezone.utc).isoformat()
        records = [(user_id, category, float(amount), updated_at) for category, amount in entries]
        if not records:
            return 0
        sql = (
            "INSERT INTO expense_budgets (user_id, category, budget_amount, updated_at) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT(user_id, category) DO UPDATE SET "
            "budget_amount = excluded.budget_amount, updated_at = excluded.updated_at"
        )
        with self.connect() as conn:
            conn.executemany(sql, records)
            conn.commit()
        return len(records)

    def delete_budget(self, user_id: str, category: str) -> int:
        with self.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM expense_budgets WHERE user_id = ? AND category = ?",
                (user_id, category),
            )
            conn.commit()
            return cursor.rowcount

    def delete_budgets(self, user_id: str) -> int:
        with self.connect() as conn:
            cursor = conn.execute("DELETE FROM expense_budgets WHERE user_id = ?", (user_id,))
            conn.commit()
            return cursor.rowcount

_default_store: Optional[RecordStore] = None


def get_store() -> RecordStore:
    """Return the process-wide store backed by DB_PATH, creating it on first use."""
    global _default_store
    if _default_store is None:
        _default_store = RecordStore()
    return _default_store
