import streamlit as st
import pandas as pd
from datetime import datetime
from decimal import Decimal

from advisor import CATEGORIES, build_advisor
from config import DEFAULT_TREND_DAYS, DEMO_USER_ID, MAX_TREND_DAYS, configure_logging
from dashboard import _prep, _kpis, budget_progress_chart, cat_spend, goals_frame, investments_frame, spending_chart
from exceptions import FinanceAppError
from insights import aggregate_trends, analyze_budgets, build_dashboard, filter_transactions
from models import InsertBudget, InsertGoal, InsertTransaction
from process_transactions import recategorize_transaction, refresh_insights, save_receipt, save_transaction
from seed_db import build_storage

# --- Configuration ---
st.set_page_config(page_title="Finance Dashboard", layout="wide", page_icon="💰")
configure_logging()


@st.cache_resource
def get_storage():
    return build_storage()


@st.cache_resource
def get_advisor():
    return build_advisor()


storage = get_storage()
advisor = get_advisor()

with st.sidebar:
    st.title("💰 Finance Dashboard")
    user_id = st.text_input("User", value=DEMO_USER_ID)
    trend_days = st.slider("Trend window (days)", min_value=7, max_value=min(365, MAX_TREND_DAYS), value=DEFAULT_TREND_DAYS)
    st.caption(f"Advisor: {type(advisor).__name__}")

dashboard = build_dashboard(storage, user_id)
accounts = dashboard.accounts
budget_status = analyze_budgets(storage.get_budgets_by_user_id(user_id), storage.get_transactions_by_user_id(user_id))

tab1, tab2, tab3, tab4, tab5, tab6 = st.tabs(
    ["📊 Dashboard", "💳 Transactions", "🎯 Budgets", "📈 Goals & Investments", "🧠 Insights", "🧾 Receipts"]
)

with tab1:
    if not accounts:
        st.info("No accounts for this user.")
    else:
        _kpis(dashboard.summary)

        trends = aggregate_trends(storage.get_transactions_by_user_id(user_id), window_days=trend_days)
        col1, col2 = st.columns(2)
        with col1:
            st.plotly_chart(spending_chart(trends), use_container_width=True)
        with col2:
            st.plotly_chart(cat_spend(trends), use_container_width=True)

        st.subheader("Recent Transactions")
        recent = _prep(dashboard.transactions)
        st.dataframe(recent[["Date", "Description", "Amount", "Category"]], use_container_width=True, hide_index=True)

        if dashboard.insights:
            st.subheader("Unread Insights")
            for insight in dashboard.insights:
                st.info(f"**{insight.title}**: {insight.content}")

with tab2:
    st.subheader("Transaction Log")
    for b in budget_status:
        if b.status == "over":
            st.warning(f"{b.category} is over budget. Recent transactions in this category deserve a closer look.")

    all_txns = storage.get_transactions_by_user_id(user_id)
    col1, col2 = st.columns(2)
    with col1:
        cats = ["All"] + sorted({t.category for t in all_txns})
        sel_cat = st.selectbox("Category", cats)
    with col2:
        acct_names = {a.name: a.id for a in accounts}
        sel_acct = st.selectbox("Account", ["All"] + list(acct_names))

    filtered = filter_transactions(
        all_txns,
        category=None if sel_cat == "All" else sel_cat,
        account_id=None if sel_acct == "All" else acct_names[sel_acct],
    )
    df = _prep(filtered)
    if df.empty:
        st.info("No transactions.")
    else:
        st.dataframe(df[["Date", "Description", "Merchant", "Amount", "Category", "AI"]], use_container_width=True, hide_index=True)

    if accounts:
        with st.expander("➕ Add Transaction"):
            with st.form("add_transaction"):
                acct = st.selectbox("Account", list(acct_names))
                description = st.text_input("Description")
                merchant = st.text_input("Merchant")
                amount = st.number_input("Amount ($, negative for expenses)", step=1.0, format="%.2f")
                category = st.selectbox("Category", ["Let the advisor decide"] + CATEGORIES)
                txn_date = st.date_input("Date", value=datetime.now().date())

                if st.form_submit_button("Save Transaction"):
                    if not description.strip():
                        st.error("Please enter a description.")
                    else:
                        try:
                            saved = save_transaction(
                                storage,
                                advisor,
                                InsertTransaction(
                                    account_id=acct_names[acct],
                                    amount=Decimal(str(amount)),
                                    description=description.strip(),
                                    merchant=merchant.strip() or None,
                                    category=None if category == "Let the advisor decide" else category,
                                    date=txn_date,
                                    is_income=amount > 0,
                                ),
                            )
                            st.success(f"Saved as {saved.category}.")
                            st.rerun()
                        except FinanceAppError as e:
                            st.error(f"Error: {e.message}")

        if all_txns:
            with st.expander("✏️ Correct a Category"):
                with st.form("fix_category"):
                    options = {f"{t.date:%Y-%m-%d} {t.description} ({t.category})": t.id for t in filtered or all_txns}
                    picked = st.selectbox("Transaction", list(options))
                    new_cat = st.selectbox("New category", CATEGORIES)
                    if st.form_submit_button("Update"):
                        try:
                            recategorize_transaction(storage, options[picked], new_cat)
                        except FinanceAppError as e:
                            st.error(f"Error: {e.message}")
                        else:
                            st.success("Category updated.")
                            st.rerun()

with tab3:
    st.subheader("🎯 Budgets (This Month)")
    if budget_status:
        st.plotly_chart(budget_progress_chart(budget_status), use_container_width=True)
        for b in budget_status:
            st.markdown(f"**{b.category}**: ${b.spent:,.0f} / ${float(b.amount):,.0f} ({b.status})")
            st.progress(b.percentage / 100, text=f"Spent ${b.spent:,.0f} • Remaining ${b.remaining:,.0f}")
            if st.button("Remove", key=f"del_budget_{b.id}"):
                storage.deactivate_budget(b.id)
                st.rerun()
    else:
        st.info("No budgets configured yet.")

    with st.expander("➕ Add Budget"):
        with st.form("add_budget"):
            category_val = st.selectbox("Category", [c for c in CATEGORIES if c != "Income"])
            limit = st.number_input("Monthly limit ($)", min_value=0.0, step=50.0)
            if st.form_submit_button("Save Budget"):
                if limit <= 0:
                    st.error("Limit must be positive.")
                else:
                    storage.create_budget(InsertBudget(user_id=user_id, category=category_val, amount=Decimal(str(limit))))
                    st.success(f"Budget saved for {category_val}.")
                    st.rerun()

with tab4:
    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Goals")
        goals = goals_frame(dashboard.goals)
        if goals.empty:
            st.info("No goals yet.")
        else:
            st.dataframe(
                goals,
                column_config={"Progress": st.column_config.ProgressColumn("Progress", min_value=0, max_value=1)},
                use_container_width=True,
                hide_index=True,
            )
        with st.form("add_goal"):
            name = st.text_input("Goal name")
            target = st.number_input("Target ($)", min_value=0.0, step=100.0)
            goal_cat = st.text_input("Category", value="Savings")
            if st.form_submit_button("Add Goal"):
                if not name.strip() or target <= 0:
                    st.error("Name and a positive target are required.")
                else:
                    storage.create_goal(
                        InsertGoal(user_id=user_id, name=name.strip(), target_amount=Decimal(str(target)), category=goal_cat or "Savings")
                    )
                    st.rerun()
    with col2:
        st.subheader("Investments")
        holdings = investments_frame(dashboard.investments)
        if holdings.empty:
            st.info("No investments yet.")
        else:
            st.metric("Portfolio Value", f"${dashboard.summary.total_investments:,.2f}")
            st.dataframe(holdings, use_container_width=True, hide_index=True)

with tab5:
    st.header("🧠 Insights")
    if st.button("Generate Insights"):
        with st.spinner("Analyzing your spending..."):
            new = refresh_insights(storage, advisor, user_id)
        st.success(f"Generated {len(new)} insights.")

    insights = sorted(storage.get_ai_insights_by_user_id(user_id), key=lambda i: i.created_at, reverse=True)
    if not insights:
        st.caption("No insights yet. Generate some above.")
    for insight in insights:
        box = st.warning if insight.priority == "high" else st.info
        box(f"**{insight.title}** ({insight.type.replace('_', ' ')}): {insight.content}")
        if not insight.is_read and st.button("Mark as read", key=f"read_{insight.id}"):
            storage.mark_insight_as_read(insight.id)
            st.rerun()

with tab6:
    st.header("🧾 Receipt Upload")
    uploaded = st.file_uploader("Receipt image", type=["png", "jpg", "jpeg", "webp"])
    if uploaded is not None and st.button("Analyze Receipt"):
        with st.spinner("Reading receipt..."):
            try:
                analysis, txn = save_receipt(storage, advisor, uploaded.getvalue(), user_id)
            except FinanceAppError as e:
                st.error(f"Error: {e.message}")
            else:
                st.success(f"{analysis.merchant}: ${float(analysis.amount):,.2f} ({analysis.category})")
                if analysis.items:
                    st.dataframe(pd.DataFrame([i.model_dump() for i in analysis.items]), use_container_width=True)
                if txn is None:
                    st.warning("No account to book this receipt against.")
