"""SmartSpend dashboard - monthly summary, budget insights and history."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

import pandas as pd
import streamlit as st

from . import aggregation
from .catalog import category_names, get_category_color
from .formatting import format_date_label, format_inr, format_month_label
from .logging_setup import configure_logging
from .models import CategoryBreakdownEntry, Expense, MonthlySummary
from .reconciliation import Reconciler, merge_expense
from .shared_sidebar import EXPENSES_KEY, render_shared_sidebar, rerun
from .visualization import create_budget_usage_chart, create_spending_pie_chart

logger = logging.getLogger(__name__)

UPDATE_FAILED_MESSAGE = "Failed to update expense. Please check your network and try again."


def main() -> None:
    """Main entry point for the dashboard page."""
    st.set_page_config(
        page_title="SmartSpend",
        page_icon="💸",
        layout="wide",
        initial_sidebar_state="expanded",
    )
    configure_logging()

    sidebar = render_shared_sidebar()
    if sidebar['user'] is None:
        _render_welcome_screen()
        return

    summary = aggregation.current_month_summary(sidebar['expenses'], sidebar['budgets'])
    _render_monthly_header(summary)

    insights_tab, history_tab = st.tabs(["📊 Budget Insights", "🧾 Transactions"])
    with insights_tab:
        _render_budget_insights(summary)
    with history_tab:
        _render_history(summary.expenses, sidebar['reconciler'])


def _render_welcome_screen() -> None:
    st.markdown("""
    # Welcome to SmartSpend! 💸

    - ✍️ **Log expenses** by typing them the way you'd say them
    - 📋 **Set monthly caps** for each spending category
    - 📊 **See where the month stands** against those caps
    - 📥 **Export** your history as CSV

    Sign in from the sidebar to get started.
    """)


def _render_monthly_header(summary: MonthlySummary) -> None:
    st.header(f"Monthly Expenses · {format_month_label(summary.month, summary.year)}")

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric(
            "Spent",
            format_inr(summary.total_spent),
            delta=f"{round(summary.usage_percentage)}% of cap",
            delta_color="inverse" if summary.over_budget else "off",
        )
    with col2:
        st.metric("Remaining", format_inr(summary.available))
        if summary.balance < 0:
            st.error(f"Over budget by {format_inr(abs(summary.balance))}")
    with col3:
        st.metric("Cap", format_inr(summary.total_budget))

    st.progress(min(100, int(summary.usage_percentage)) / 100)
    st.caption(f"{summary.log_count} logs this month")


def _render_breakdown_entry(entry: CategoryBreakdownEntry) -> None:
    color = get_category_color(entry.category)
    if entry.exceeded:
        status = f":red[Exceeded by {format_inr(abs(entry.remaining))}]"
    else:
        status = f":green[{format_inr(entry.remaining)} Left]"
    st.markdown(
        f"<span style='color:{color}'>●</span> **{entry.category}** · "
        f"{format_inr(entry.spent)} / {format_inr(entry.limit)}",
        unsafe_allow_html=True,
    )
    st.caption(status)
    st.progress(min(100, int(entry.percentage)) / 100)


def _render_budget_insights(summary: MonthlySummary) -> None:
    frame = aggregation.breakdown_frame(summary.breakdown)

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(create_budget_usage_chart(frame), use_container_width=True)
    with col2:
        st.plotly_chart(create_spending_pie_chart(frame), use_container_width=True)

    for entry in summary.breakdown:
        _render_breakdown_entry(entry)

    if summary.orphan_categories:
        st.info(
            "Spending in " + ", ".join(summary.orphan_categories)
            + " counts towards the monthly total but has no budget of its own."
        )

    col1, col2 = st.columns(2)
    col1.metric("Total Available", format_inr(summary.available))
    col2.metric("Total Limit", format_inr(summary.total_budget))


def history_table(expenses: List[Expense]) -> pd.DataFrame:
    """Transaction table for the history tab, newest first and without ids."""
    return aggregation.expenses_frame(expenses).drop(columns=['id'])


def _render_history(expenses: List[Expense], reconciler: Reconciler) -> None:
    if not expenses:
        st.info("No history found for this month.")
        return

    st.dataframe(
        history_table(expenses),
        hide_index=True,
        use_container_width=True,
        column_config={
            'Date': st.column_config.DateColumn('Date', format="MMM D, YYYY"),
            'Amount': st.column_config.NumberColumn('Amount (INR)', format="₹%.2f"),
        },
    )

    st.caption("Open an entry to edit it.")
    for expense in reversed(expenses):
        label = (
            f"{expense.description} · {format_inr(expense.amount)} · "
            f"{format_date_label(expense.date)} · {expense.category}"
        )
        with st.expander(label):
            _render_edit_form(expense, reconciler)


def _render_edit_form(expense: Expense, reconciler: Reconciler) -> None:
    options = category_names()
    if expense.category not in options:
        options.append(expense.category)

    with st.form(key=f"edit_{expense.id}"):
        amount = st.number_input("Amount (INR)", min_value=0.0, value=float(expense.amount), step=1.0)
        description = st.text_input("Description", value=expense.description)
        col1, col2 = st.columns(2)
        with col1:
            category = st.selectbox("Category", options=options, index=options.index(expense.category))
        with col2:
            when = st.date_input("Date", value=expense.calendar_date)
        submitted = st.form_submit_button("Save changes")

    if not submitted:
        return
    if not description.strip():
        st.warning("Description cannot be empty.")
        return

    updated = save_expense_edit(reconciler, expense, amount, description, category, when)
    if updated is None:
        st.error(UPDATE_FAILED_MESSAGE)
        return
    rerun()


def save_expense_edit(
    reconciler: Reconciler,
    expense: Expense,
    amount: float,
    description: str,
    category: str,
    when: date,
) -> Optional[Expense]:
    """Send an edit to the store and merge the confirmed record into the session.

    The date keeps the original time of day when only the day changes so the
    history order stays stable.
    """
    new_date = datetime.combine(when, expense.date.time())
    confirmed = reconciler.update_expense(expense.id, {
        'amount': amount,
        'description': description.strip(),
        'category': category,
        'date': new_date,
    })
    if confirmed is not None:
        st.session_state[EXPENSES_KEY] = merge_expense(st.session_state[EXPENSES_KEY], confirmed)
    return confirmed
