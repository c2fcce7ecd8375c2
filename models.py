"""Domain models shared by the store, the analysis code and the HTTP API.

Python code uses snake_case attributes; the JSON wire format is camelCase
(``isIncome``, ``accountId``), which is what the dashboard client expects.
Money is kept as ``Decimal`` and serialized as a decimal string.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the store's time convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO date or timestamp into a naive UTC datetime."""
    return to_naive_utc(_parse_timestamp(value))


def _parse_timestamp(value: Any) -> Any:
    # Accepts "2023-12-15", "2023-12-15T10:30:00Z" and plain dates
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    return value


Timestamp = Annotated[datetime, BeforeValidator(_parse_timestamp), AfterValidator(to_naive_utc)]

AccountType = Literal["checking", "savings", "credit", "investment"]
BudgetPeriod = Literal["monthly", "yearly"]
BudgetStatus = Literal["good", "warning", "over"]
InsightType = Literal["spending_alert", "savings_opportunity", "investment_advice"]
Priority = Literal["low", "medium", "high"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Users & accounts ---

class InsertUser(CamelModel):
    username: str = Field(..., min_length=1)
    password: str
    email: str
    first_name: str
    last_name: str


class User(InsertUser):
    id: str
    created_at: datetime = Field(default_factory=utcnow)


class InsertAccount(CamelModel):
    user_id: str = Field(..., min_length=1)
    name: str
    type: AccountType
    balance: Decimal
    institution: str
    account_number: Optional[str] = None
    is_active: bool = True


class Account(InsertAccount):
    id: str
    created_at: datetime = Field(default_factory=utcnow)


# --- Transactions ---

class InsertTransaction(CamelModel):
    account_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., description="Signed amount, negative for expenses")
    description: str = Field(..., min_length=1)
    merchant: Optional[str] = None
    category: Optional[str] = Field(None, description="Left empty to let the advisor categorize it")
    subcategory: Optional[str] = None
    date: Timestamp
    is_income: bool = False
    ai_categorized: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Transaction(InsertTransaction):
    id: str
    category: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)


class TransactionCategoryUpdate(CamelModel):
    category: str = Field(..., min_length=1, pattern=r"\S")
    subcategory: Optional[str] = None


# --- Budgets ---

class InsertBudget(CamelModel):
    user_id: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, description="Allotment for one period")
    period: BudgetPeriod = "monthly"
    is_active: bool = True


class Budget(InsertBudget):
    id: str
    # Stored budgets may hold degenerate amounts; analysis copes with them
    amount: Decimal
    created_at: datetime = Field(default_factory=utcnow)


class BudgetAnalysis(Budget):
    spent: float
    remaining: float
    percentage: float
    status: BudgetStatus


# --- Goals & investments ---

class InsertGoal(CamelModel):
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(Decimal("0"), ge=0)
    target_date: Optional[Timestamp] = None
    category: str = Field(..., min_length=1)
    is_active: bool = True


class Goal(InsertGoal):
    id: str
    created_at: datetime = Field(default_factory=utcnow)


class GoalUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    target_amount: Optional[Decimal] = Field(None, gt=0)
    current_amount: Optional[Decimal] = Field(None, ge=0)
    target_date: Optional[Timestamp] = None
    category: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None


class InsertInvestment(CamelModel):
    user_id: str = Field(..., min_length=1)
    account_id: Optional[str] = None
    symbol: str = Field(..., min_length=1)
    name: str
    quantity: Decimal = Field(..., ge=0)
    current_price: Decimal
    purchase_price: Decimal
    purchase_date: Timestamp
    type: str


class Investment(InsertInvestment):
    id: str
    created_at: datetime = Field(default_factory=utcnow)


# --- AI insights ---

class InsertAiInsight(CamelModel):
    user_id: str = Field(..., min_length=1)
    type: InsightType
    title: str
    content: str
    priority: Priority
    is_read: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AiInsight(InsertAiInsight):
    id: str
    created_at: datetime = Field(default_factory=utcnow)


# --- AI advisory results ---
# Model output is untrusted JSON; these are the shapes it must validate into.

class CategorizationResult(CamelModel):
    category: str = Field(..., min_length=1, pattern=r"\S")
    subcategory: Optional[str] = None
    confidence: float = Field(..., ge=0, le=1)
    is_income: bool = False
    reasoning: Optional[str] = None


class ReceiptItem(CamelModel):
    name: str
    price: float
    quantity: Optional[float] = None


class ReceiptAnalysis(CamelModel):
    merchant: str = Field(..., min_length=1)
    amount: Decimal
    date: Timestamp
    category: str = Field(..., min_length=1, pattern=r"\S")
    subcategory: Optional[str] = None
    description: Optional[str] = None
    items: List[ReceiptItem] = Field(default_factory=list)


class SpendingInsight(CamelModel):
    type: InsightType
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    priority: Priority = "medium"
    metadata: Dict[str, Any] = Field(default_factory=dict)


# --- Derived views ---

class SpendingTrends(CamelModel):
    daily_spending: Dict[str, float]
    category_spending: Dict[str, float]
    total_spending: float


class DashboardSummary(CamelModel):
    total_balance: float
    monthly_spending: float
    total_investments: float
    credit_score: int


class Dashboard(CamelModel):
    accounts: List[Account]
    transactions: List[Transaction]
    budgets: List[Budget]
    goals: List[Goal]
    investments: List[Investment]
    insights: List[AiInsight]
    summary: DashboardSummary
