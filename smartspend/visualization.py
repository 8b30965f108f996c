"""Plotly visualisation helpers for the SmartSpend dashboard.

Each function accepts a DataFrame produced by
:func:`smartspend.aggregation.breakdown_frame` and returns a
``plotly.graph_objects.Figure`` that Streamlit renders via
``st.plotly_chart``.
"""

from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .catalog import OVER_LIMIT_COLOR, get_category_color


def _empty_figure(message: str = "No data to display") -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=message)
    return fig


def create_budget_usage_chart(breakdown: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Horizontal bars of percent used per category, capped at 100.

    Parameters
    ----------
    breakdown : pandas.DataFrame
        Output of ``breakdown_frame``.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Bars coloured by category, red once the limit is reached.
    """
    if breakdown.empty:
        return _empty_figure()
    df = breakdown.copy()
    df['Shown'] = df['Percent Used'].clip(upper=100)
    colors = [
        OVER_LIMIT_COLOR if pct >= 100 else get_category_color(cat)
        for cat, pct in zip(df['Category'], df['Percent Used'])
    ]
    fig = go.Figure(go.Bar(
        x=df['Shown'],
        y=df['Category'],
        orientation='h',
        marker_color=colors,
        customdata=df[['Spent', 'Limit']].values,
        hovertemplate="%{y}: ₹%{customdata[0]:,.0f} of ₹%{customdata[1]:,.0f}<extra></extra>",
    ))
    fig.update_layout(
        title=title or "Budget used (%)",
        xaxis=dict(range=[0, 100], title="Percent used"),
        yaxis=dict(autorange="reversed", title=None),
        height=max(300, 32 * len(df)),
    )
    return fig


def create_spending_pie_chart(breakdown: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Donut of this month's spend by category (categories with spend only)."""
    if breakdown.empty:
        return _empty_figure()
    df = breakdown[breakdown['Spent'] > 0]
    if df.empty:
        return _empty_figure("No spending this month")
    fig = px.pie(
        df,
        names="Category",
        values="Spent",
        hole=0.5,
        color="Category",
        color_discrete_map={cat: get_category_color(cat) for cat in df['Category']},
    )
    fig.update_layout(title=title or "Spending by category")
    return fig
