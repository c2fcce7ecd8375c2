"""Storage interface and the in-memory store behind the API.

The API, the Streamlit client and the analysis code only ever see the
``Storage`` protocol, so a database-backed store can replace ``MemStorage``
without touching them. Unknown identifiers return ``None`` or an empty list.
"""

import logging
import threading
from typing import Dict, List, Optional, Protocol
from uuid import uuid4

from models import (
    Account,
    AiInsight,
    Budget,
    Goal,
    InsertAccount,
    InsertAiInsight,
    InsertBudget,
    InsertGoal,
    InsertInvestment,
    InsertTransaction,
    InsertUser,
    Investment,
    Transaction,
    User,
)

logger = logging.getLogger(__name__)


class Storage(Protocol):
    # Users
    def get_user(self, user_id: str) -> Optional[User]: ...
    def get_user_by_username(self, username: str) -> Optional[User]: ...
    def create_user(self, user: InsertUser, user_id: Optional[str] = None) -> User: ...

    # Accounts
    def get_accounts_by_user_id(self, user_id: str) -> List[Account]: ...
    def get_account(self, account_id: str) -> Optional[Account]: ...
    def create_account(self, account: InsertAccount) -> Account: ...
    def update_account_balance(self, account_id: str, balance) -> Optional[Account]: ...

    # Transactions
    def get_transactions_by_account_id(self, account_id: str) -> List[Transaction]: ...
    def get_transactions_by_user_id(self, user_id: str) -> List[Transaction]: ...
    def get_recent_transactions(self, user_id: str, limit: int = 10) -> List[Transaction]: ...
    def create_transaction(self, transaction: InsertTransaction) -> Transaction: ...
    def update_transaction(self, transaction_id: str, **updates) -> Optional[Transaction]: ...

    # Budgets
    def get_budgets_by_user_id(self, user_id: str) -> List[Budget]: ...
    def create_budget(self, budget: InsertBudget) -> Budget: ...
    def update_budget(self, budget_id: str, **updates) -> Optional[Budget]: ...
    def deactivate_budget(self, budget_id: str) -> Optional[Budget]: ...

    # Goals
    def get_goals_by_user_id(self, user_id: str) -> List[Goal]: ...
    def create_goal(self, goal: InsertGoal) -> Goal: ...
    def update_goal(self, goal_id: str, **updates) -> Optional[Goal]: ...

    # Investments
    def get_investments_by_user_id(self, user_id: str) -> List[Investment]: ...
    def create_investment(self, investment: InsertInvestment) -> Investment: ...
    def update_investment(self, investment_id: str, **updates) -> Optional[Investment]: ...

    # AI insights
    def get_ai_insights_by_user_id(self, user_id: str) -> List[AiInsight]: ...
    def create_ai_insight(self, insight: InsertAiInsight) -> AiInsight: ...
    def mark_insight_as_read(self, insight_id: str) -> Optional[AiInsight]: ...


def _new_id() -> str:
    return str(uuid4())


class MemStorage:
    """
    Dictionary-per-entity store.

    Records are immutable pydantic models; updates swap in a copy. A single
    lock makes every method atomic, nothing spans more than one call.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self.users: Dict[str, User] = {}
        self.accounts: Dict[str, Account] = {}
        self.transactions: Dict[str, Transaction] = {}
        self.budgets: Dict[str, Budget] = {}
        self.goals: Dict[str, Goal] = {}
        self.investments: Dict[str, Investment] = {}
        self.ai_insights: Dict[str, AiInsight] = {}

    @staticmethod
    def _update(table: Dict, record_id: str, updates: dict):
        record = table.get(record_id)
        if record is None:
            return None
        updated = record.model_copy(update=updates)
        table[record_id] = updated
        return updated

    # --- Users ---

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            return next((u for u in self.users.values() if u.username == username), None)

    def create_user(self, user: InsertUser, user_id: Optional[str] = None) -> User:
        record = User(id=user_id or _new_id(), **user.model_dump())
        with self._lock:
            self.users[record.id] = record
        logger.debug("Created user %s", record.id)
        return record

    # --- Accounts ---

    def get_accounts_by_user_id(self, user_id: str) -> List[Account]:
        with self._lock:
            return [a for a in self.accounts.values() if a.user_id == user_id]

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._lock:
            return self.accounts.get(account_id)

    def create_account(self, account: InsertAccount) -> Account:
        record = Account(id=_new_id(), **account.model_dump())
        with self._lock:
            self.accounts[record.id] = record
        return record

    def update_account_balance(self, account_id: str, balance) -> Optional[Account]:
        with self._lock:
            return self._update(self.accounts, account_id, {"balance": balance})

    # --- Transactions ---

    def get_transactions_by_account_id(self, account_id: str) -> List[Transaction]:
        with self._lock:
            return [t for t in self.transactions.values() if t.account_id == account_id]

    def get_transactions_by_user_id(self, user_id: str) -> List[Transaction]:
        with self._lock:
            account_ids = {a.id for a in self.accounts.values() if a.user_id == user_id}
            return [t for t in self.transactions.values() if t.account_id in account_ids]

    def get_recent_transactions(self, user_id: str, limit: int = 10) -> List[Transaction]:
        transactions = self.get_transactions_by_user_id(user_id)
        return sorted(transactions, key=lambda t: t.date, reverse=True)[:limit]

    def create_transaction(self, transaction: InsertTransaction) -> Transaction:
        record = Transaction(id=_new_id(), **transaction.model_dump())
        with self._lock:
            self.transactions[record.id] = record
        logger.debug("Created transaction %s in %s", record.id, record.category)
        return record

    def update_transaction(self, transaction_id: str, **updates) -> Optional[Transaction]:
        with self._lock:
            return self._update(self.transactions, transaction_id, updates)

    # --- Budgets ---

    def get_budgets_by_user_id(self, user_id: str) -> List[Budget]:
        with self._lock:
            return [b for b in self.budgets.values() if b.user_id == user_id and b.is_active]

    def create_budget(self, budget: InsertBudget) -> Budget:
        record = Budget(id=_new_id(), **budget.model_dump())
        with self._lock:
            self.budgets[record.id] = record
        return record

    def update_budget(self, budget_id: str, **updates) -> Optional[Budget]:
        with self._lock:
            return self._update(self.budgets, budget_id, updates)

    def deactivate_budget(self, budget_id: str) -> Optional[Budget]:
        return self.update_budget(budget_id, is_active=False)

    # --- Goals ---

    def get_goals_by_user_id(self, user_id: str) -> List[Goal]:
        with self._lock:
            return [g for g in self.goals.values() if g.user_id == user_id and g.is_active]

    def create_goal(self, goal: InsertGoal) -> Goal:
        record = Goal(id=_new_id(), **goal.model_dump())
        with self._lock:
            self.goals[record.id] = record
        return record

    def update_goal(self, goal_id: str, **updates) -> Optional[Goal]:
        with self._lock:
            return self._update(self.goals, goal_id, updates)

    # --- Investments ---

    def get_investments_by_user_id(self, user_id: str) -> List[Investment]:
        with self._lock:
            return [i for i in self.investments.values() if i.user_id == user_id]

    def create_investment(self, investment: InsertInvestment) -> Investment:
        record = Investment(id=_new_id(), **investment.model_dump())
        with self._lock:
            self.investments[record.id] = record
        return record

    def update_investment(self, investment_id: str, **updates) -> Optional[Investment]:
        with self._lock:
            return self._update(self.investments, investment_id, updates)

    # --- AI insights ---

    def get_ai_insights_by_user_id(self, user_id: str) -> List[AiInsight]:
        with self._lock:
            return [i for i in self.ai_insights.values() if i.user_id == user_id]

    def create_ai_insight(self, insight: InsertAiInsight) -> AiInsight:
        record = AiInsight(id=_new_id(), **insight.model_dump())
        with self._lock:
            self.ai_insights[record.id] = record
        return record

    def mark_insight_as_read(self, insight_id: str) -> Optional[AiInsight]:
        with self._lock:
            return self._update(self.ai_insights, insight_id, {"is_read": True})
