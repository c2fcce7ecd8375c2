"""
process_transactions.py
-----------------------
Book new transactions into the store: entered by hand (categorized by the
advisor when no category is given) or read off a receipt image.
"""

from __future__ import annotations

import base64
import binascii
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from advisor import Advisor
from exceptions import NotFoundError, ValidationError
from models import AiInsight, InsertAiInsight, InsertTransaction, ReceiptAnalysis, Transaction
from storage import Storage

logger = logging.getLogger(__name__)


def classify_transaction(payload: InsertTransaction, advisor: Advisor) -> InsertTransaction:
    """Fill in the category from the advisor when the payload has none."""
    if payload.category and payload.category.strip():
        return payload

    result = advisor.categorize(payload.description, payload.merchant or None, float(payload.amount))
    logger.info(
        "Categorized %r as %s (confidence %.2f)", payload.description, result.category, result.confidence
    )
    return payload.model_copy(
        update={
            "category": result.category,
            "subcategory": result.subcategory,
            "ai_categorized": True,
        }
    )


def save_transaction(storage: Storage, advisor: Advisor, payload: InsertTransaction) -> Transaction:
    if storage.get_account(payload.account_id) is None:
        raise ValidationError("Unknown account", details={"accountId": payload.account_id})
    return storage.create_transaction(classify_transaction(payload, advisor))


def recategorize_transaction(
    storage: Storage, transaction_id: str, category: str, subcategory: Optional[str] = None
) -> Transaction:
    """Apply a user's category correction. The old subcategory is replaced, not kept."""
    if not category.strip():
        raise ValidationError("Category is required", details={"id": transaction_id})
    updated = storage.update_transaction(
        transaction_id, category=category, subcategory=subcategory, ai_categorized=False
    )
    if updated is None:
        raise NotFoundError("Transaction not found", details={"id": transaction_id})
    logger.info("Recategorized transaction %s as %s", transaction_id, category)
    return updated


def decode_image(data: str) -> bytes:
    """Decode a base64 image, with or without a ``data:image/...;base64,`` prefix."""
    if data.startswith("data:"):
        _, _, data = data.partition(",")
    try:
        image = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Image must be base64 encoded", original_error=exc) from exc
    if not image:
        raise ValidationError("Image is empty")
    return image


def save_receipt(
    storage: Storage, advisor: Advisor, image: bytes, user_id: str
) -> Tuple[ReceiptAnalysis, Optional[Transaction]]:
    """
    Analyze a receipt and book it as an expense.

    The expense goes to the user's checking account, or their first account
    when they have no checking account. Users without accounts get the
    analysis back with no transaction. Analysis failures propagate.
    """
    analysis = advisor.analyze_receipt(image)

    accounts = storage.get_accounts_by_user_id(user_id)
    account = next((a for a in accounts if a.type == "checking"), accounts[0] if accounts else None)
    if account is None:
        logger.info("No account for user %s; receipt not booked", user_id)
        return analysis, None

    transaction = storage.create_transaction(
        InsertTransaction(
            account_id=account.id,
            amount=-abs(Decimal(analysis.amount)),
            description=f"{analysis.merchant} - Receipt Upload",
            merchant=analysis.merchant,
            category=analysis.category,
            subcategory=analysis.subcategory,
            date=analysis.date,
            is_income=False,
            ai_categorized=True,
            metadata={"receiptAnalysis": analysis.model_dump(mode="json", by_alias=True)},
        )
    )
    logger.info("Booked receipt from %s as transaction %s", analysis.merchant, transaction.id)
    return analysis, transaction


def refresh_insights(storage: Storage, advisor: Advisor, user_id: str) -> List[AiInsight]:
    """Generate fresh insights for a user and store them as unread."""
    transactions = storage.get_transactions_by_user_id(user_id)
    budgets = storage.get_budgets_by_user_id(user_id)
    user = storage.get_user(user_id)

    saved = []
    for insight in advisor.generate_insights(transactions, budgets, user):
        saved.append(
            storage.create_ai_insight(
                InsertAiInsight(
                    user_id=user_id,
                    type=insight.type,
                    title=insight.title,
                    content=insight.content,
                    priority=insight.priority,
                    is_read=False,
                    metadata=insight.metadata,
                )
            )
        )
    logger.info("Stored %d insights for %s", len(saved), user_id)
    return saved
