import os
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

# Keep test runs independent of a developer's .env
os.environ["SEED_DEMO_DATA"] = "false"
os.environ.pop("GEMINI_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from advisor import OfflineAdvisor
from models import Budget, Transaction
from seed_db import seed_demo_data
from server import create_app
from storage import MemStorage


@pytest.fixture
def storage():
    """Provide an empty in-memory store."""
    return MemStorage()


@pytest.fixture
def seeded_storage(storage):
    """Return a store holding the demo user's records."""
    seed_demo_data(storage)
    return storage


@pytest.fixture
def advisor():
    return OfflineAdvisor()


@pytest.fixture
def client(seeded_storage, advisor):
    """HTTP client for an app wired to the seeded store and offline advisor."""
    return TestClient(create_app(storage=seeded_storage, advisor=advisor))


@pytest.fixture
def make_transaction():
    """Factory for stored transactions with sensible defaults."""

    def _make(amount, category="Food & Dining", date=datetime(2024, 6, 10), is_income=False,
              account_id="acct-1", description="Test purchase"):
        return Transaction(
            id=str(uuid4()),
            account_id=account_id,
            amount=Decimal(str(amount)),
            description=description,
            category=category,
            date=date,
            is_income=is_income,
        )

    return _make


@pytest.fixture
def make_budget():
    """Factory for stored budgets."""

    def _make(category, amount, user_id="user-1"):
        return Budget(id=str(uuid4()), user_id=user_id, category=category, amount=Decimal(str(amount)))

    return _make
