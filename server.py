"""HTTP API for the finance dashboard, served with FastAPI.

The store and the advisor are created by the entry point and injected into
the app; handlers reach them through ``Depends``. Run with::

    uvicorn server:create_app --factory
"""

import functools
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from advisor import Advisor, build_advisor
from config import DEFAULT_TREND_DAYS, HOST, MAX_TREND_DAYS, PORT, configure_logging
from exceptions import FinanceAppError, NotFoundError, ValidationError
from insights import aggregate_trends, analyze_budgets, build_dashboard, filter_transactions
from models import (
    Account,
    AiInsight,
    Budget,
    BudgetAnalysis,
    CamelModel,
    Dashboard,
    Goal,
    GoalUpdate,
    InsertBudget,
    InsertGoal,
    InsertInvestment,
    InsertTransaction,
    Investment,
    ReceiptAnalysis,
    SpendingTrends,
    Transaction,
    TransactionCategoryUpdate,
    parse_timestamp,
)
from process_transactions import decode_image, recategorize_transaction, refresh_insights, save_receipt, save_transaction
from seed_db import build_storage
from storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter()


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_advisor(request: Request) -> Advisor:
    return request.app.state.advisor


def fails_with(message: str):
    """Report unexpected errors from a handler as a 500 carrying ``message``."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except (FinanceAppError, StarletteHTTPException):
                raise
            except Exception as exc:
                logger.exception(message)
                raise HTTPException(status_code=500, detail=message) from exc

        return wrapper

    return decorator


def _query_timestamp(name: str, value: Optional[str]):
    if not value:
        return None
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid {name}", details={name: value}, original_error=exc) from exc


# --- Request / response bodies ---

class ReceiptUpload(CamelModel):
    image: Optional[str] = None
    user_id: Optional[str] = None


class ReceiptResult(CamelModel):
    analysis: ReceiptAnalysis
    transaction: Optional[Transaction] = None


# --- Error handlers ---

async def finance_error_handler(request: Request, exc: FinanceAppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    message = "Invalid request payload"
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{message}: {field} {first.get('msg', '')}".strip()
    return JSONResponse(status_code=400, content={"message": message})


# --- Routes ---

@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/api/dashboard/{user_id}", response_model=Dashboard)
@fails_with("Failed to fetch dashboard data")
def get_dashboard(user_id: str, storage: Storage = Depends(get_storage)):
    return build_dashboard(storage, user_id)


@router.get("/api/accounts/{user_id}", response_model=List[Account])
@fails_with("Failed to fetch accounts")
def list_accounts(user_id: str, storage: Storage = Depends(get_storage)):
    return storage.get_accounts_by_user_id(user_id)


@router.get("/api/transactions/{user_id}", response_model=List[Transaction])
@fails_with("Failed to fetch transactions")
def list_transactions(
    user_id: str,
    category: Optional[str] = None,
    account_id: Optional[str] = Query(None, alias="accountId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    storage: Storage = Depends(get_storage),
):
    return filter_transactions(
        storage.get_transactions_by_user_id(user_id),
        category=category,
        account_id=account_id,
        start_date=_query_timestamp("startDate", start_date),
        end_date=_query_timestamp("endDate", end_date),
    )


@router.post("/api/transactions", response_model=Transaction)
@fails_with("Failed to create transaction")
def create_transaction(
    payload: InsertTransaction,
    storage: Storage = Depends(get_storage),
    advisor: Advisor = Depends(get_advisor),
):
    return save_transaction(storage, advisor, payload)


@router.patch("/api/transactions/{transaction_id}/category", response_model=Transaction)
@fails_with("Failed to update transaction")
def correct_category(
    transaction_id: str,
    body: TransactionCategoryUpdate,
    storage: Storage = Depends(get_storage),
):
    return recategorize_transaction(storage, transaction_id, body.category, body.subcategory)


@router.post("/api/receipts/analyze", response_model=ReceiptResult)
@fails_with("Failed to analyze receipt")
def analyze_receipt(
    body: ReceiptUpload,
    storage: Storage = Depends(get_storage),
    advisor: Advisor = Depends(get_advisor),
):
    if not body.image or not body.user_id:
        raise ValidationError("Image and userId are required")
    analysis, transaction = save_receipt(storage, advisor, decode_image(body.image), body.user_id)
    return ReceiptResult(analysis=analysis, transaction=transaction)


@router.get("/api/budgets/{user_id}", response_model=List[Budget])
@fails_with("Failed to fetch budgets")
def list_budgets(user_id: str, storage: Storage = Depends(get_storage)):
    return storage.get_budgets_by_user_id(user_id)


@router.post("/api/budgets", response_model=Budget)
@fails_with("Failed to create budget")
def create_budget(payload: InsertBudget, storage: Storage = Depends(get_storage)):
    return storage.create_budget(payload)


@router.delete("/api/budgets/{budget_id}", response_model=Budget)
@fails_with("Failed to delete budget")
def delete_budget(budget_id: str, storage: Storage = Depends(get_storage)):
    budget = storage.deactivate_budget(budget_id)
    if budget is None:
        raise NotFoundError("Budget not found", details={"id": budget_id})
    return budget


@router.get("/api/budgets/{user_id}/analysis", response_model=List[BudgetAnalysis])
@fails_with("Failed to analyze budgets")
def budget_analysis(user_id: str, storage: Storage = Depends(get_storage)):
    return analyze_budgets(
        storage.get_budgets_by_user_id(user_id),
        storage.get_transactions_by_user_id(user_id),
    )


@router.get("/api/goals/{user_id}", response_model=List[Goal])
@fails_with("Failed to fetch goals")
def list_goals(user_id: str, storage: Storage = Depends(get_storage)):
    return storage.get_goals_by_user_id(user_id)


@router.post("/api/goals", response_model=Goal)
@fails_with("Failed to create goal")
def create_goal(payload: InsertGoal, storage: Storage = Depends(get_storage)):
    return storage.create_goal(payload)


@router.patch("/api/goals/{goal_id}", response_model=Goal)
@fails_with("Failed to update goal")
def update_goal(goal_id: str, body: GoalUpdate, storage: Storage = Depends(get_storage)):
    goal = storage.update_goal(goal_id, **body.model_dump(exclude_unset=True, exclude_none=True))
    if goal is None:
        raise NotFoundError("Goal not found", details={"id": goal_id})
    return goal


@router.get("/api/investments/{user_id}", response_model=List[Investment])
@fails_with("Failed to fetch investments")
def list_investments(user_id: str, storage: Storage = Depends(get_storage)):
    return storage.get_investments_by_user_id(user_id)


@router.post("/api/investments", response_model=Investment)
@fails_with("Failed to create investment")
def create_investment(payload: InsertInvestment, storage: Storage = Depends(get_storage)):
    return storage.create_investment(payload)


@router.get("/api/insights/{user_id}", response_model=List[AiInsight])
@fails_with("Failed to fetch insights")
def list_insights(user_id: str, storage: Storage = Depends(get_storage)):
    return sorted(storage.get_ai_insights_by_user_id(user_id), key=lambda i: i.created_at, reverse=True)


@router.post("/api/insights/generate/{user_id}", response_model=List[AiInsight])
@fails_with("Failed to generate insights")
def generate_insights(
    user_id: str,
    storage: Storage = Depends(get_storage),
    advisor: Advisor = Depends(get_advisor),
):
    return refresh_insights(storage, advisor, user_id)


@router.patch("/api/insights/{insight_id}/read", response_model=AiInsight)
@fails_with("Failed to update insight")
def mark_insight_read(insight_id: str, storage: Storage = Depends(get_storage)):
    insight = storage.mark_insight_as_read(insight_id)
    if insight is None:
        raise NotFoundError("Insight not found", details={"id": insight_id})
    return insight


@router.get("/api/spending/trends/{user_id}", response_model=SpendingTrends)
@fails_with("Failed to fetch spending trends")
def spending_trends(
    user_id: str,
    days: int = Query(DEFAULT_TREND_DAYS, ge=1, le=MAX_TREND_DAYS, description="Trailing window in days"),
    storage: Storage = Depends(get_storage),
):
    return aggregate_trends(storage.get_transactions_by_user_id(user_id), window_days=days)


def create_app(storage: Optional[Storage] = None, advisor: Optional[Advisor] = None) -> FastAPI:
    """Build the API around an injected store and advisor."""
    if storage is None:
        storage = build_storage()
    if advisor is None:
        advisor = build_advisor()

    app = FastAPI(title="Finance Dashboard API", version="0.1.0")
    app.state.storage = storage
    app.state.advisor = advisor

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(FinanceAppError, finance_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    configure_logging()
    uvicorn.run(create_app(), host=HOST, port=PORT)
