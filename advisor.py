"""
AI advisory service: expense categorization, receipt reading and spending
insights.

Two implementations share the ``Advisor`` interface. ``GeminiAdvisor`` asks
a hosted Gemini model for JSON and validates the answer into typed results;
``OfflineAdvisor`` uses keyword rules and the rule-based insight generator
when no API key is configured.

Failure semantics differ on purpose: categorization falls back to "Other",
insight generation falls back to an empty list, receipt analysis raises
``ReceiptAnalysisError`` because there is no sensible default receipt.
"""

import json
import logging
import re
from datetime import timedelta
from typing import Any, List, Optional, Protocol, Sequence

from google import genai
from google.genai import types
from pydantic import ValidationError as PydanticValidationError

from config import GEMINI_API_KEY, GEMINI_MODEL, MAX_INSIGHTS
from exceptions import AdvisorError, ReceiptAnalysisError
from insights import build_rule_based_insights
from models import (
    Budget,
    CategorizationResult,
    ReceiptAnalysis,
    SpendingInsight,
    Transaction,
    User,
    utcnow,
)

logger = logging.getLogger(__name__)

CATEGORIES = [
    "Food & Dining",
    "Shopping",
    "Transportation",
    "Bills & Utilities",
    "Entertainment",
    "Health & Fitness",
    "Travel",
    "Education",
    "Business",
    "Income",
    "Other",
]

FALLBACK_CATEGORY = "Other"
FALLBACK_CONFIDENCE = 0.1
KEYWORD_CONFIDENCE = 0.35

# keyword -> (category, subcategory)
KEYWORD_CATEGORIES = {
    "grocery": ("Food & Dining", "Groceries"),
    "groceries": ("Food & Dining", "Groceries"),
    "coffee": ("Food & Dining", "Coffee"),
    "starbucks": ("Food & Dining", "Coffee"),
    "restaurant": ("Food & Dining", "Restaurants"),
    "mcdonald": ("Food & Dining", "Fast Food"),
    "uber": ("Transportation", "Rideshare"),
    "lyft": ("Transportation", "Rideshare"),
    "shell": ("Transportation", "Gas"),
    "gas": ("Transportation", "Gas"),
    "amazon": ("Shopping", "Online"),
    "target": ("Shopping", None),
    "walmart": ("Shopping", None),
    "netflix": ("Entertainment", "Streaming"),
    "spotify": ("Entertainment", "Streaming"),
    "rent": ("Bills & Utilities", "Rent"),
    "mortgage": ("Bills & Utilities", "Mortgage"),
    "electric": ("Bills & Utilities", "Electricity"),
    "electricity": ("Bills & Utilities", "Electricity"),
    "pharmacy": ("Health & Fitness", "Pharmacy"),
    "gym": ("Health & Fitness", "Gym"),
    "airline": ("Travel", "Flights"),
    "hotel": ("Travel", "Lodging"),
    "tuition": ("Education", "Tuition"),
    "paycheck": ("Income", "Salary"),
    "payroll": ("Income", "Salary"),
    "salary": ("Income", "Salary"),
}

CATEGORIZE_PROMPT = """Analyze this transaction and categorize it:
Description: "{description}"
{merchant_line}{amount_line}
Categorize this transaction and determine if it's income or an expense.
Respond with JSON in this exact format:
{{
  "category": "category_name",
  "subcategory": "subcategory_name_or_null",
  "confidence": 0.95,
  "isIncome": false,
  "reasoning": "short explanation"
}}

Use these main categories: {categories}

For subcategories, be specific but concise (e.g., "Groceries", "Gas", "Salary", "Freelance", etc.)"""

RECEIPT_PROMPT = """Analyze this receipt image and extract the transaction information.

Respond with JSON in this exact format:
{{
  "merchant": "Store/Restaurant Name",
  "amount": 29.99,
  "date": "2024-01-15",
  "category": "Food & Dining",
  "subcategory": "Groceries",
  "description": "Brief description of purchase",
  "items": [
    {{"name": "Item name", "price": 12.99, "quantity": 1}}
  ]
}}

Extract all visible items with their prices. Use YYYY-MM-DD format for dates.
Categories should match: {categories}"""

INSIGHTS_PROMPT = """Analyze this financial data{for_user} and provide 3-5 actionable spending insights:

TRANSACTIONS (Last 30 days):
{transactions}

BUDGETS:
{budgets}

Provide insights about spending patterns, budget adherence, potential savings, and financial recommendations.

Respond with a JSON array in this exact format:
[
  {{
    "type": "spending_alert",
    "title": "Budget Alert",
    "content": "You've exceeded your dining budget by $150 this month",
    "priority": "high",
    "metadata": {{"category": "Food & Dining", "amount": 150}}
  }}
]

Types: "spending_alert" (budget alerts, overspending), "savings_opportunity" (savings advice), "investment_advice" (investing recommendations)
Priorities: "high" (urgent action needed), "medium" (should consider), "low" (nice to know)"""


class Advisor(Protocol):
    def categorize(
        self, description: str, merchant: Optional[str] = None, amount: Optional[float] = None
    ) -> CategorizationResult: ...

    def analyze_receipt(self, image: bytes) -> ReceiptAnalysis: ...

    def generate_insights(
        self,
        transactions: Sequence[Transaction],
        budgets: Sequence[Budget],
        user: Optional[User] = None,
    ) -> List[SpendingInsight]: ...


def fallback_categorization(amount: Optional[float] = None) -> CategorizationResult:
    return CategorizationResult(
        category=FALLBACK_CATEGORY,
        subcategory=None,
        confidence=FALLBACK_CONFIDENCE,
        is_income=amount is not None and amount > 0,
    )


def guess_mime_type(image: bytes) -> str:
    if image.startswith(b"\x89PNG"):
        return "image/png"
    if image[:4] == b"RIFF" and image[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


class GeminiAdvisor:
    """Advisor backed by the Gemini API via the ``google-genai`` client."""

    def __init__(self, client: genai.Client, model: str = GEMINI_MODEL):
        self.client = client
        self.model = model

    def _generate_json(self, contents) -> Any:
        response = self.client.models.generate_content(
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(response_mime_type="application/json"),
        )
        raw = response.text
        if not raw:
            raise AdvisorError("Empty response from model", details={"model": self.model})
        return json.loads(raw)

    def categorize(
        self, description: str, merchant: Optional[str] = None, amount: Optional[float] = None
    ) -> CategorizationResult:
        prompt = CATEGORIZE_PROMPT.format(
            description=description,
            merchant_line=f"Merchant: {merchant}\n" if merchant else "",
            amount_line=f"Amount: ${amount}\n" if amount is not None else "",
            categories=", ".join(CATEGORIES),
        )
        try:
            data = self._generate_json(prompt)
            data["confidence"] = max(0.0, min(1.0, float(data.get("confidence", 0))))
            return CategorizationResult.model_validate(data)
        except Exception as exc:
            logger.warning("Failed to categorize expense %r: %s", description, exc)
            return fallback_categorization(amount)

    def analyze_receipt(self, image: bytes) -> ReceiptAnalysis:
        if not image:
            raise ReceiptAnalysisError("Receipt image is empty")

        contents = [
            types.Part.from_bytes(data=image, mime_type=guess_mime_type(image)),
            RECEIPT_PROMPT.format(categories=", ".join(c for c in CATEGORIES if c != "Income")),
        ]
        try:
            data = self._generate_json(contents)
            return ReceiptAnalysis.model_validate(data)
        except Exception as exc:
            logger.error("Failed to analyze receipt: %s", exc, exc_info=True)
            raise ReceiptAnalysisError("Failed to analyze receipt", original_error=exc) from exc

    def generate_insights(
        self,
        transactions: Sequence[Transaction],
        budgets: Sequence[Budget],
        user: Optional[User] = None,
    ) -> List[SpendingInsight]:
        cutoff = utcnow() - timedelta(days=30)
        recent = [t for t in transactions if t.date >= cutoff]
        prompt = INSIGHTS_PROMPT.format(
            for_user=f" for {user.first_name}" if user else "",
            transactions="\n".join(
                f"- {t.description}: ${t.amount} ({t.category}) on {t.date.date().isoformat()}" for t in recent
            ) or "- none",
            budgets="\n".join(f"- {b.category}: ${b.amount}/{b.period}" for b in budgets) or "- none",
        )
        try:
            data = self._generate_json(prompt)
        except Exception as exc:
            logger.warning("Failed to generate spending insights: %s", exc)
            return []

        if not isinstance(data, list):
            logger.warning("Insight response was not a list: %s", type(data).__name__)
            return []

        insights = []
        for entry in data:
            try:
                insights.append(SpendingInsight.model_validate(entry))
            except PydanticValidationError as exc:
                logger.warning("Dropping malformed insight: %s", exc.errors()[:1])
        return insights[:MAX_INSIGHTS]


class OfflineAdvisor:
    """Rule-based stand-in used when no model API key is configured."""

    def categorize(
        self, description: str, merchant: Optional[str] = None, amount: Optional[float] = None
    ) -> CategorizationResult:
        text = f"{description} {merchant or ''}".lower()
        for keyword, (category, subcategory) in KEYWORD_CATEGORIES.items():
            if re.search(rf"\b{re.escape(keyword)}(?:s|'s)?\b", text):
                return CategorizationResult(
                    category=category,
                    subcategory=subcategory,
                    confidence=KEYWORD_CONFIDENCE,
                    is_income=category == "Income",
                    reasoning=f"Matched keyword '{keyword}'",
                )
        return fallback_categorization(amount)

    def analyze_receipt(self, image: bytes) -> ReceiptAnalysis:
        raise ReceiptAnalysisError("Receipt analysis requires GEMINI_API_KEY to be configured")

    def generate_insights(
        self,
        transactions: Sequence[Transaction],
        budgets: Sequence[Budget],
        user: Optional[User] = None,
    ) -> List[SpendingInsight]:
        try:
            return build_rule_based_insights(transactions, budgets)
        except Exception as exc:
            logger.warning("Failed to build rule-based insights: %s", exc)
            return []


def build_advisor(api_key: Optional[str] = None, model: Optional[str] = None) -> Advisor:
    """Gemini when an API key is available, offline rules otherwise."""
    api_key = api_key or GEMINI_API_KEY
    if not api_key:
        logger.warning("GEMINI_API_KEY not set; using the offline advisor")
        return OfflineAdvisor()
    return GeminiAdvisor(genai.Client(api_key=api_key), model or GEMINI_MODEL)
