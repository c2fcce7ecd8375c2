# dashboard.py: charts and KPI tiles for the Streamlit client

import streamlit as st
import plotly.express as px
import plotly.graph_objects as go
import pandas as pd
from typing import Iterable, List

from models import BudgetAnalysis, DashboardSummary, Goal, Investment, SpendingTrends, Transaction

STATUS_COLORS = {"good": "#4CAF50", "warning": "#FFB300", "over": "#FF5252"}


def _prep(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """
    Flattens transactions into a table for display, newest first.
    """
    rows = [
        {
            "ID": t.id,
            "Date": t.date,
            "Description": t.description,
            "Merchant": t.merchant or "",
            "Amount": float(t.amount),
            "Category": t.category,
            "AI": t.ai_categorized,
            "IsIncome": t.is_income,
        }
        for t in transactions
    ]
    if not rows:
        return pd.DataFrame(columns=["ID", "Date", "Description", "Merchant", "Amount", "Category", "AI", "IsIncome"])

    df = pd.DataFrame(rows)
    df["Date"] = pd.to_datetime(df["Date"])
    return df.sort_values("Date", ascending=False).reset_index(drop=True)


def _kpis(summary: DashboardSummary):
    """
    Displays the four headline numbers from the dashboard summary.
    """
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("💰 Total Balance", f"${summary.total_balance:,.2f}")
    col2.metric("💸 Spent (30 days)", f"${summary.monthly_spending:,.2f}", delta_color="inverse")
    col3.metric("📈 Investments", f"${summary.total_investments:,.2f}")
    col4.metric("🏅 Credit Score", f"{summary.credit_score}", help="Placeholder until a credit bureau is connected.")


def spending_chart(trends: SpendingTrends):
    """
    Bar chart of spending per day over the trend window.
    """
    daily = pd.DataFrame(
        {"Date": list(trends.daily_spending.keys()), "Spent": list(trends.daily_spending.values())}
    )
    fig = go.Figure()
    fig.add_trace(go.Bar(x=daily["Date"], y=daily["Spent"], name="Spent", marker_color="#FF5252"))
    fig.update_layout(title=f"Daily Spending (total ${trends.total_spending:,.2f})", height=350)
    return fig


def cat_spend(trends: SpendingTrends):
    """
    Donut chart of spending by category.
    """
    by_cat = pd.DataFrame(
        {"Category": list(trends.category_spending.keys()), "Amount": list(trends.category_spending.values())}
    )
    fig = px.pie(by_cat, values="Amount", names="Category", hole=0.4, title="Spending by Category")
    fig.update_traces(textposition="inside", textinfo="percent+label")
    return fig


def budget_progress_chart(analysis: List[BudgetAnalysis]):
    """
    Horizontal bars of budget consumption, colored by status.
    """
    fig = go.Figure()
    fig.add_trace(
        go.Bar(
            y=[b.category for b in analysis],
            x=[b.percentage for b in analysis],
            orientation="h",
            marker_color=[STATUS_COLORS[b.status] for b in analysis],
            text=[f"${b.spent:,.0f} / ${float(b.amount):,.0f}" for b in analysis],
            textposition="auto",
        )
    )
    fig.update_layout(title="Budgets (This Month)", xaxis=dict(range=[0, 100], title="% used"), height=350)
    return fig


def goals_frame(goals: Iterable[Goal]) -> pd.DataFrame:
    rows = []
    for g in goals:
        target = float(g.target_amount)
        current = float(g.current_amount)
        rows.append({
            "Goal": g.name,
            "Category": g.category,
            "Saved": current,
            "Target": target,
            "Progress": min(1.0, current / target) if target > 0 else 0.0,
            "Target Date": g.target_date.date() if g.target_date else None,
        })
    return pd.DataFrame(rows, columns=["Goal", "Category", "Saved", "Target", "Progress", "Target Date"])


def investments_frame(investments: Iterable[Investment]) -> pd.DataFrame:
    rows = []
    for i in investments:
        value = float(i.quantity * i.current_price)
        cost = float(i.quantity * i.purchase_price)
        rows.append({
            "Symbol": i.symbol,
            "Name": i.name,
            "Type": i.type,
            "Value": value,
            "Gain": value - cost,
        })
    return pd.DataFrame(rows, columns=["Symbol", "Name", "Type", "Value", "Gain"])
