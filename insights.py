"""
Spending analysis for the dashboard.

Budget consumption and spending trends are recomputed from the raw records on
every call; nothing here is cached or written back to the store. Sums are
taken in ``Decimal`` so bucket totals agree exactly and the status thresholds
are not subject to float rounding.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from config import (
    BUDGET_OVER_THRESHOLD,
    BUDGET_WARNING_THRESHOLD,
    CREDIT_SCORE_PLACEHOLDER,
    DASHBOARD_INSIGHT_LIMIT,
    DEFAULT_TREND_DAYS,
    MAX_INSIGHTS,
    MONTHLY_SPENDING_DAYS,
    RECENT_TRANSACTION_LIMIT,
)
from models import (
    Account,
    Budget,
    BudgetAnalysis,
    Dashboard,
    DashboardSummary,
    Investment,
    SpendingInsight,
    SpendingTrends,
    Transaction,
    to_naive_utc,
    utcnow,
)
from storage import Storage

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
HUNDRED = Decimal(100)


def _resolve_now(now: Optional[datetime]) -> datetime:
    return to_naive_utc(now) if now is not None else utcnow()


def month_start(now: datetime) -> datetime:
    """Midnight on the first day of ``now``'s calendar month."""
    return datetime(now.year, now.month, 1)


def spend_amount(transaction: Transaction) -> Decimal:
    # Sign conventions differ between sources; spending is a magnitude
    return abs(Decimal(transaction.amount))


def classify_budget_status(percentage: Decimal) -> str:
    if percentage > BUDGET_OVER_THRESHOLD:
        return "over"
    if percentage > BUDGET_WARNING_THRESHOLD:
        return "warning"
    return "good"


def analyze_budgets(
    budgets: Sequence[Budget],
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> List[BudgetAnalysis]:
    """
    Compute month-to-date spend against each budget.

    Only non-income transactions dated on or after the first of the current
    month count, and a transaction counts toward a budget only when its
    category equals the budget's category exactly (case and whitespace
    included). One record is returned per budget, in input order.

    ``percentage`` is capped at 100 for display; the uncapped ratio is
    ``spent / amount``. ``remaining`` never goes below zero. A budget with a
    zero or negative amount reports 0 %/good when nothing was spent and
    100 %/over otherwise.
    """
    now = _resolve_now(now)
    start = month_start(now)
    monthly = [t for t in transactions if t.date >= start and not t.is_income]

    analysis = []
    for budget in budgets:
        spent = sum((spend_amount(t) for t in monthly if t.category == budget.category), ZERO)
        budget_amount = Decimal(budget.amount)

        if budget_amount <= 0:
            status = "over" if spent > 0 else "good"
            percentage = HUNDRED if spent > 0 else ZERO
        else:
            percentage = spent / budget_amount * HUNDRED
            status = classify_budget_status(percentage)

        analysis.append(
            BudgetAnalysis(
                **budget.model_dump(),
                spent=float(spent),
                remaining=float(max(ZERO, budget_amount - spent)),
                percentage=float(min(HUNDRED, percentage)),
                status=status,
            )
        )
    return analysis


def aggregate_trends(
    transactions: Iterable[Transaction],
    window_days: int = DEFAULT_TREND_DAYS,
    now: Optional[datetime] = None,
) -> SpendingTrends:
    """
    Bucket spending over the trailing ``window_days`` by day and by category.

    Both groupings partition the same filtered set, so the daily totals, the
    category totals and ``total_spending`` always sum to the same figure.
    Day keys are ``YYYY-MM-DD`` taken from the stored date.
    """
    now = _resolve_now(now)
    cutoff = now - timedelta(days=window_days)

    daily = defaultdict(Decimal)
    by_category = defaultdict(Decimal)
    for t in transactions:
        if t.is_income or t.date < cutoff:
            continue
        amount = spend_amount(t)
        daily[t.date.date().isoformat()] += amount
        by_category[t.category] += amount

    total = sum(daily.values(), ZERO)
    return SpendingTrends(
        daily_spending={day: float(daily[day]) for day in sorted(daily)},
        category_spending={cat: float(value) for cat, value in by_category.items()},
        total_spending=float(total),
    )


def filter_transactions(
    transactions: Iterable[Transaction],
    category: Optional[str] = None,
    account_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[Transaction]:
    """Apply the transaction-list filters and sort newest first."""
    result = list(transactions)
    if category:
        result = [t for t in result if t.category == category]
    if account_id:
        result = [t for t in result if t.account_id == account_id]
    if start_date:
        start = to_naive_utc(start_date)
        result = [t for t in result if t.date >= start]
    if end_date:
        end = to_naive_utc(end_date)
        result = [t for t in result if t.date <= end]
    return sorted(result, key=lambda t: t.date, reverse=True)


def summarize_dashboard(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    investments: Iterable[Investment],
    now: Optional[datetime] = None,
) -> DashboardSummary:
    now = _resolve_now(now)
    cutoff = now - timedelta(days=MONTHLY_SPENDING_DAYS)

    total_balance = sum((Decimal(a.balance) for a in accounts), ZERO)
    monthly_spending = sum(
        (spend_amount(t) for t in transactions if not t.is_income and t.date > cutoff), ZERO
    )
    total_investments = sum((i.quantity * i.current_price for i in investments), ZERO)

    return DashboardSummary(
        total_balance=float(total_balance),
        monthly_spending=float(monthly_spending),
        total_investments=float(total_investments),
        credit_score=CREDIT_SCORE_PLACEHOLDER,
    )


def build_dashboard(storage: Storage, user_id: str, now: Optional[datetime] = None) -> Dashboard:
    """Assemble everything the dashboard page shows for one user."""
    accounts = storage.get_accounts_by_user_id(user_id)
    transactions = storage.get_transactions_by_user_id(user_id)
    investments = storage.get_investments_by_user_id(user_id)

    insights = sorted(storage.get_ai_insights_by_user_id(user_id), key=lambda i: i.created_at, reverse=True)
    unread = [i for i in insights if not i.is_read][:DASHBOARD_INSIGHT_LIMIT]

    return Dashboard(
        accounts=accounts,
        transactions=storage.get_recent_transactions(user_id, RECENT_TRANSACTION_LIMIT),
        budgets=storage.get_budgets_by_user_id(user_id),
        goals=storage.get_goals_by_user_id(user_id),
        investments=investments,
        insights=unread,
        summary=summarize_dashboard(accounts, transactions, investments, now),
    )


# --- Rule-based insights ---

def transactions_to_df(transactions: Iterable[Transaction]) -> pd.DataFrame:
    rows = [
        {
            "Date": t.date,
            "Amount": float(t.amount),
            "Category": t.category,
            "Description": t.description,
            "IsIncome": bool(t.is_income),
        }
        for t in transactions
    ]
    if not rows:
        return pd.DataFrame(columns=["Date", "Amount", "Category", "Description", "IsIncome", "Month", "Spend"])

    df = pd.DataFrame(rows)
    df["Date"] = pd.to_datetime(df["Date"])
    df["Month"] = df["Date"].dt.to_period("M").astype(str)
    df["Spend"] = df["Amount"].abs().where(~df["IsIncome"], 0.0)
    return df


def summarize_budget_watch(analysis: Iterable[BudgetAnalysis]) -> List[SpendingInsight]:
    """Turn over-budget and at-risk budgets into alerts."""
    alerts = []
    for entry in analysis:
        limit = float(entry.amount)
        if entry.status == "over":
            overage = entry.spent - limit
            alerts.append(
                SpendingInsight(
                    type="spending_alert",
                    title=f"{entry.category} Over Budget",
                    content=(
                        f"{entry.category} is over budget by ${overage:,.0f} "
                        f"(spent ${entry.spent:,.0f} of ${limit:,.0f})."
                    ),
                    priority="high",
                    metadata={"category": entry.category, "amount": overage},
                )
            )
        elif entry.status == "warning":
            alerts.append(
                SpendingInsight(
                    type="spending_alert",
                    title=f"{entry.category} Budget Alert",
                    content=(
                        f"{entry.category} is at {entry.percentage:.0f}% of its ${limit:,.0f} limit. "
                        "Slow down to avoid overruns."
                    ),
                    priority="medium",
                    metadata={"category": entry.category, "amount": entry.remaining},
                )
            )
    return alerts


def build_rule_based_insights(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    now: Optional[datetime] = None,
) -> List[SpendingInsight]:
    """
    Generate insights without a language model.

    Covers a month-over-month spending spike, budget overruns, the top
    spending category and a healthy savings rate, capped at five.
    """
    now = _resolve_now(now)
    df = transactions_to_df(transactions)
    if df.empty:
        return []

    insights = []
    current_month = now.strftime("%Y-%m")
    last_month = (pd.Period(current_month, freq="M") - 1).strftime("%Y-%m")
    month_df = df[df["Month"] == current_month]

    # 1. Spending spike versus last month
    curr_spend = float(month_df["Spend"].sum())
    last_spend = float(df.loc[df["Month"] == last_month, "Spend"].sum())
    if last_spend > 0 and curr_spend > last_spend * 1.2:
        pace = (curr_spend / last_spend - 1) * 100
        insights.append(
            SpendingInsight(
                type="spending_alert",
                title="Spending Alert",
                content=(
                    f"You're pacing {pace:.0f}% higher than last month. "
                    "Consider pausing discretionary spend this week."
                ),
                priority="high",
                metadata={"currentMonth": curr_spend, "lastMonth": last_spend},
            )
        )

    # 2. Budget watch
    insights.extend(summarize_budget_watch(analyze_budgets(budgets, transactions, now)))

    # 3. Top category
    expenses = month_df[~month_df["IsIncome"]]
    if not expenses.empty:
        by_cat = expenses.groupby("Category")["Spend"].sum().sort_values(ascending=False)
        top_cat = by_cat.index[0]
        top_val = float(by_cat.iloc[0])
        insights.append(
            SpendingInsight(
                type="savings_opportunity",
                title="Top Category",
                content=(
                    f"${top_val:,.0f} spent on {top_cat} this month. "
                    "Shift a single purchase to savings to stay on track."
                ),
                priority="low",
                metadata={"category": top_cat, "amount": top_val},
            )
        )

    # 4. Savings opportunity
    income = float(month_df.loc[month_df["IsIncome"], "Amount"].abs().sum())
    if income > 0 and curr_spend / income < 0.5:
        insights.append(
            SpendingInsight(
                type="investment_advice",
                title="Great Job",
                content=(
                    "You've saved 50%+ of income this month. "
                    "Move the surplus to your emergency fund or investments."
                ),
                priority="low",
                metadata={"income": income, "spend": curr_spend},
            )
        )

    logger.debug("Built %d rule-based insights", len(insights))
    return insights[:MAX_INSIGHTS]
