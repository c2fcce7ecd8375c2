"""Load the demo user and sample records into a store."""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from config import DEMO_USER_ID, SEED_DEMO_DATA, configure_logging
from models import (
    InsertAccount,
    InsertBudget,
    InsertGoal,
    InsertInvestment,
    InsertTransaction,
    InsertUser,
    utcnow,
)
from storage import MemStorage, Storage

logger = logging.getLogger(__name__)


def seed_demo_data(storage: Storage, user_id: str = DEMO_USER_ID, now: Optional[datetime] = None) -> None:
    """
    Populate ``storage`` with the demo user's accounts, transactions,
    budgets, goals and investments.

    Transaction dates are relative to ``now`` so the current month always
    has activity to analyze.
    """
    if storage.get_user(user_id):
        logger.info("Demo user %s already exists. Skipping seed.", user_id)
        return

    now = now or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    storage.create_user(
        InsertUser(
            username=user_id,
            password="password",
            email="test@example.com",
            first_name="John",
            last_name="Doe",
        ),
        user_id=user_id,
    )

    checking = storage.create_account(InsertAccount(
        user_id=user_id, name="Chase Checking", type="checking", balance=Decimal("8247.52"),
        institution="Chase Bank", account_number="****1234",
    ))
    credit = storage.create_account(InsertAccount(
        user_id=user_id, name="Credit Card", type="credit", balance=Decimal("-1247.30"),
        institution="Chase Bank", account_number="****5678",
    ))
    storage.create_account(InsertAccount(
        user_id=user_id, name="Savings Account", type="savings", balance=Decimal("5847.30"),
        institution="Chase Bank", account_number="****9012",
    ))

    sample_transactions = [
        (checking.id, "-4.85", "Starbucks Coffee", "Starbucks", "Food & Dining", "Coffee", 0, False, True),
        (credit.id, "-42.30", "Shell Gas Station", "Shell", "Transportation", "Gas", 1, False, True),
        (checking.id, "3250.00", "Paycheck Deposit", "Acme Corp", "Income", "Salary", 2, True, False),
        (credit.id, "-89.99", "Amazon Purchase", "Amazon", "Shopping", "Online", 3, False, True),
    ]
    for account_id, amount, description, merchant, category, subcategory, days_ago, is_income, ai in sample_transactions:
        storage.create_transaction(InsertTransaction(
            account_id=account_id,
            amount=Decimal(amount),
            description=description,
            merchant=merchant,
            category=category,
            subcategory=subcategory,
            date=today - timedelta(days=days_ago),
            is_income=is_income,
            ai_categorized=ai,
        ))

    for category, amount in [
        ("Food & Dining", "600.00"),
        ("Transportation", "700.00"),
        ("Shopping", "500.00"),
        ("Entertainment", "300.00"),
    ]:
        storage.create_budget(InsertBudget(user_id=user_id, category=category, amount=Decimal(amount)))

    storage.create_goal(InsertGoal(
        user_id=user_id, name="House Down Payment", target_amount=Decimal("50000.00"),
        current_amount=Decimal("34000.00"), category="savings", target_date=datetime(now.year + 1, 12, 31),
    ))
    storage.create_goal(InsertGoal(
        user_id=user_id, name="Vacation Fund", target_amount=Decimal("5000.00"),
        current_amount=Decimal("2100.00"), category="travel", target_date=datetime(now.year + 1, 6, 30),
    ))

    storage.create_investment(InsertInvestment(
        user_id=user_id, symbol="401K", name="401(k) Plan", quantity=Decimal("1.0000"),
        current_price=Decimal("18492.31"), purchase_price=Decimal("17000.00"),
        purchase_date=datetime(now.year - 1, 1, 1), type="retirement",
    ))
    storage.create_investment(InsertInvestment(
        user_id=user_id, symbol="IRA", name="Roth IRA", quantity=Decimal("1.0000"),
        current_price=Decimal("7250.00"), purchase_price=Decimal("6500.00"),
        purchase_date=datetime(now.year - 1, 1, 1), type="retirement",
    ))
    logger.info("Store initialized with demo user %s.", user_id)


def build_storage(seed: Optional[bool] = None) -> MemStorage:
    """A fresh store, loaded with the demo data when seeding is on (``SEED_DEMO_DATA`` by default)."""
    storage = MemStorage()
    if SEED_DEMO_DATA if seed is None else seed:
        seed_demo_data(storage)
    return storage


if __name__ == "__main__":
    configure_logging()
    store = build_storage(seed=True)
    print(f"Seeded {len(store.transactions)} transactions for {DEMO_USER_ID}.")
