"""
Unit tests for the chart and table builders used by the Streamlit client.
"""

from datetime import datetime
from decimal import Decimal

import pandas as pd

from dashboard import STATUS_COLORS, _prep, budget_progress_chart, cat_spend, goals_frame, investments_frame, spending_chart
from models import BudgetAnalysis, Goal, Investment, SpendingTrends


def test_prep_sorts_newest_first(make_transaction):
    df = _prep([
        make_transaction(-5, date=datetime(2024, 6, 1), description="Older"),
        make_transaction(-7, date=datetime(2024, 6, 9), description="Newer"),
    ])

    assert list(df["Description"]) == ["Newer", "Older"]
    assert list(df["Amount"]) == [-7.0, -5.0]


def test_prep_empty_has_columns():
    df = _prep([])

    assert df.empty
    assert {"Date", "Description", "Amount", "Category"} <= set(df.columns)


def test_spending_charts():
    trends = SpendingTrends(
        daily_spending={"2024-06-12": 50.0, "2024-06-13": 30.0},
        category_spending={"Food & Dining": 60.0, "Transportation": 20.0},
        total_spending=80.0,
    )

    daily = spending_chart(trends)
    donut = cat_spend(trends)

    assert list(daily.data[0].y) == [50.0, 30.0]
    assert "80.00" in daily.layout.title.text
    assert set(donut.data[0].labels) == {"Food & Dining", "Transportation"}


def test_budget_progress_colors():
    analysis = [
        BudgetAnalysis(id="b1", user_id="u", category="Food & Dining", amount=Decimal("600"),
                       spent=847.0, remaining=0.0, percentage=100.0, status="over"),
        BudgetAnalysis(id="b2", user_id="u", category="Shopping", amount=Decimal("500"),
                       spent=10.0, remaining=490.0, percentage=2.0, status="good"),
    ]

    fig = budget_progress_chart(analysis)

    assert list(fig.data[0].marker.color) == [STATUS_COLORS["over"], STATUS_COLORS["good"]]


def test_goals_frame_progress():
    goals = [
        Goal(id="g1", user_id="u", name="House", target_amount=Decimal("50000"), current_amount=Decimal("34000"),
             category="savings"),
    ]

    df = goals_frame(goals)

    assert df.loc[0, "Progress"] == 0.68
    assert pd.isna(df.loc[0, "Target Date"])


def test_investments_frame_gain():
    investments = [
        Investment(id="i1", user_id="u", symbol="VTI", name="Total Market", quantity=Decimal("10"),
                   current_price=Decimal("250.50"), purchase_price=Decimal("200"),
                   purchase_date=datetime(2023, 3, 1), type="etf"),
    ]

    df = investments_frame(investments)

    assert df.loc[0, "Value"] == 2505.0
    assert df.loc[0, "Gain"] == 505.0
