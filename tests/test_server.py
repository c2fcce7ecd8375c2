"""
Integration tests for the HTTP API using FastAPI's TestClient.

Each test gets a fresh app over the seeded demo store and the offline
advisor (see conftest.py).
"""

import base64
from datetime import datetime
from decimal import Decimal
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

import server
from advisor import OfflineAdvisor
from models import ReceiptAnalysis
from server import create_app

USER = "testuser"


def _account_id(client, account_type="checking"):
    accounts = client.get(f"/api/accounts/{USER}").json()
    return next(a["id"] for a in accounts if a["type"] == account_type)


class TestDashboard:
    """Dashboard and account endpoints."""

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_dashboard_for_demo_user(self, client):
        response = client.get(f"/api/dashboard/{USER}")

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"accounts", "transactions", "budgets", "goals", "investments", "insights", "summary"}
        assert body["summary"] == {
            "totalBalance": 12847.52,
            "monthlySpending": 137.14,
            "totalInvestments": 25742.31,
            "creditScore": 742,
        }
        assert len(body["transactions"]) == 4
        assert "isIncome" in body["transactions"][0]

    def test_dashboard_for_unknown_user_is_empty(self, client):
        body = client.get("/api/dashboard/nobody").json()

        assert body["accounts"] == []
        assert body["summary"]["totalBalance"] == 0.0

    def test_dashboard_failure_is_500(self, client, monkeypatch):
        monkeypatch.setattr(server, "build_dashboard", Mock(side_effect=RuntimeError("boom")))

        response = client.get(f"/api/dashboard/{USER}")

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to fetch dashboard data"}

    def test_accounts(self, client):
        accounts = client.get(f"/api/accounts/{USER}").json()

        assert sorted(a["type"] for a in accounts) == ["checking", "credit", "savings"]


class TestTransactions:
    """Listing, creating and correcting transactions."""

    def test_list_newest_first(self, client):
        transactions = client.get(f"/api/transactions/{USER}").json()

        assert len(transactions) == 4
        dates = [t["date"] for t in transactions]
        assert dates == sorted(dates, reverse=True)

    def test_filter_by_category_and_account(self, client):
        shopping = client.get(f"/api/transactions/{USER}", params={"category": "Shopping"}).json()
        checking = client.get(f"/api/transactions/{USER}", params={"accountId": _account_id(client)}).json()

        assert [t["merchant"] for t in shopping] == ["Amazon"]
        assert {t["merchant"] for t in checking} == {"Starbucks", "Acme Corp"}

    def test_filter_by_date_range(self, client):
        response = client.get(f"/api/transactions/{USER}", params={"startDate": "2000-01-01", "endDate": "2000-12-31"})

        assert response.status_code == 200
        assert response.json() == []

    def test_invalid_start_date(self, client):
        response = client.get(f"/api/transactions/{USER}", params={"startDate": "yesterday"})

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid startDate"}

    def test_create_with_category(self, client):
        response = client.post("/api/transactions", json={
            "accountId": _account_id(client),
            "amount": "-12.50",
            "description": "Lunch",
            "category": "Food & Dining",
            "date": "2024-01-15",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["id"]
        assert Decimal(str(body["amount"])) == Decimal("-12.50")
        assert body["category"] == "Food & Dining"
        assert body["aiCategorized"] is False
        assert body["date"].startswith("2024-01-15")

    def test_create_without_category_is_categorized(self, client):
        response = client.post("/api/transactions", json={
            "accountId": _account_id(client),
            "amount": -23.1,
            "description": "Uber ride downtown",
            "date": "2024-01-15T10:30:00Z",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["category"] == "Transportation"
        assert body["aiCategorized"] is True

    def test_create_with_missing_fields_is_400(self, client):
        response = client.post("/api/transactions", json={"accountId": _account_id(client), "amount": -1})

        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid request payload")

    def test_create_for_unknown_account_is_400(self, client):
        response = client.post("/api/transactions", json={
            "accountId": "missing", "amount": -1, "description": "x", "category": "Other", "date": "2024-01-15",
        })

        assert response.status_code == 400
        assert response.json() == {"message": "Unknown account"}

    def test_correct_category(self, client):
        txn = client.get(f"/api/transactions/{USER}", params={"category": "Shopping"}).json()[0]

        response = client.patch(f"/api/transactions/{txn['id']}/category", json={"category": "Business"})

        assert response.status_code == 200
        assert response.json()["category"] == "Business"
        assert response.json()["aiCategorized"] is False

    def test_correct_unknown_transaction_is_404(self, client):
        response = client.patch("/api/transactions/missing/category", json={"category": "Business"})

        assert response.status_code == 404
        assert response.json() == {"message": "Transaction not found"}

    def test_correct_with_blank_category_is_400(self, client):
        txn = client.get(f"/api/transactions/{USER}", params={"category": "Shopping"}).json()[0]

        response = client.patch(f"/api/transactions/{txn['id']}/category", json={"category": "   "})

        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid request payload")
        still = client.get(f"/api/transactions/{USER}", params={"category": "Shopping"}).json()
        assert txn["id"] in [t["id"] for t in still]


class TestReceipts:
    """Receipt upload endpoint."""

    def test_missing_fields_is_400(self, client):
        response = client.post("/api/receipts/analyze", json={"userId": USER})

        assert response.status_code == 400
        assert response.json() == {"message": "Image and userId are required"}

    def test_bad_base64_is_400(self, client):
        response = client.post("/api/receipts/analyze", json={"image": "%%%", "userId": USER})

        assert response.status_code == 400

    def test_offline_advisor_cannot_analyze(self, client):
        image = base64.b64encode(b"jpeg bytes").decode()

        response = client.post("/api/receipts/analyze", json={"image": image, "userId": USER})

        assert response.status_code == 500
        assert "Receipt analysis" in response.json()["message"]

    def test_receipt_booked(self, seeded_storage):
        mock_advisor = Mock(spec=OfflineAdvisor)
        mock_advisor.analyze_receipt.return_value = ReceiptAnalysis(
            merchant="Whole Foods", amount=Decimal("29.99"), date=datetime(2024, 1, 15), category="Food & Dining",
        )
        client = TestClient(create_app(storage=seeded_storage, advisor=mock_advisor))
        image = "data:image/jpeg;base64," + base64.b64encode(b"jpeg bytes").decode()

        response = client.post("/api/receipts/analyze", json={"image": image, "userId": USER})

        assert response.status_code == 200
        body = response.json()
        assert body["analysis"]["merchant"] == "Whole Foods"
        assert body["transaction"]["description"] == "Whole Foods - Receipt Upload"
        assert Decimal(str(body["transaction"]["amount"])) == Decimal("-29.99")
        mock_advisor.analyze_receipt.assert_called_once_with(b"jpeg bytes")

    def test_unexpected_failure_is_500(self, seeded_storage):
        mock_advisor = Mock(spec=OfflineAdvisor)
        mock_advisor.analyze_receipt.side_effect = RuntimeError("socket closed")
        client = TestClient(create_app(storage=seeded_storage, advisor=mock_advisor))
        image = base64.b64encode(b"jpeg bytes").decode()

        response = client.post("/api/receipts/analyze", json={"image": image, "userId": USER})

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to analyze receipt"}


class TestBudgets:
    """Budget CRUD and analysis."""

    def test_list_and_create(self, client):
        assert len(client.get(f"/api/budgets/{USER}").json()) == 4

        response = client.post("/api/budgets", json={"userId": USER, "category": "Travel", "amount": 250})

        assert response.status_code == 200
        assert response.json()["period"] == "monthly"
        assert len(client.get(f"/api/budgets/{USER}").json()) == 5

    def test_non_positive_amount_is_400(self, client):
        response = client.post("/api/budgets", json={"userId": USER, "category": "Travel", "amount": 0})

        assert response.status_code == 400

    def test_delete_is_soft(self, client, seeded_storage):
        budget = client.get(f"/api/budgets/{USER}").json()[0]

        response = client.delete(f"/api/budgets/{budget['id']}")

        assert response.status_code == 200
        assert response.json()["isActive"] is False
        assert budget["id"] not in {b["id"] for b in client.get(f"/api/budgets/{USER}").json()}
        assert budget["id"] in seeded_storage.budgets

    def test_delete_unknown_is_404(self, client):
        assert client.delete("/api/budgets/missing").status_code == 404

    def test_analysis(self, client):
        analysis = client.get(f"/api/budgets/{USER}/analysis").json()

        assert len(analysis) == 4
        by_category = {a["category"]: a for a in analysis}
        assert by_category["Food & Dining"]["spent"] == 4.85
        assert by_category["Food & Dining"]["status"] == "good"
        assert by_category["Entertainment"]["spent"] == 0.0
        assert by_category["Entertainment"]["percentage"] == 0.0
        assert by_category["Entertainment"]["remaining"] == 300.0

    def test_analysis_failure_is_500(self, client, monkeypatch):
        monkeypatch.setattr(server, "analyze_budgets", Mock(side_effect=RuntimeError("boom")))

        response = client.get(f"/api/budgets/{USER}/analysis")

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to analyze budgets"}


class TestGoalsAndInvestments:
    """Goal and investment endpoints."""

    def test_update_goal(self, client):
        goal = client.get(f"/api/goals/{USER}").json()[0]

        response = client.patch(f"/api/goals/{goal['id']}", json={"currentAmount": "40000"})

        assert response.status_code == 200
        assert Decimal(str(response.json()["currentAmount"])) == Decimal("40000")
        assert response.json()["name"] == goal["name"]

    def test_update_unknown_goal_is_404(self, client):
        assert client.patch("/api/goals/missing", json={"currentAmount": 1}).status_code == 404

    def test_create_goal(self, client):
        response = client.post("/api/goals", json={
            "userId": USER, "name": "Emergency Fund", "targetAmount": 10000, "category": "savings",
        })

        assert response.status_code == 200
        assert len(client.get(f"/api/goals/{USER}").json()) == 3

    def test_create_investment(self, client):
        response = client.post("/api/investments", json={
            "userId": USER, "symbol": "VTI", "name": "Total Market ETF", "quantity": 10,
            "currentPrice": 250.5, "purchasePrice": 200, "purchaseDate": "2023-03-01", "type": "etf",
        })

        assert response.status_code == 200
        assert len(client.get(f"/api/investments/{USER}").json()) == 3
        summary = client.get(f"/api/dashboard/{USER}").json()["summary"]
        assert summary["totalInvestments"] == 28247.31


class TestInsights:
    """Insight generation and read flags."""

    def test_generate_list_and_mark_read(self, client):
        generated = client.post(f"/api/insights/generate/{USER}")

        assert generated.status_code == 200
        insights = client.get(f"/api/insights/{USER}").json()
        assert len(insights) == len(generated.json())
        created = [i["createdAt"] for i in insights]
        assert created == sorted(created, reverse=True)

        assert insights
        response = client.patch(f"/api/insights/{insights[0]['id']}/read")
        assert response.status_code == 200
        assert response.json()["isRead"] is True

    def test_mark_unknown_insight_is_404(self, client):
        response = client.patch("/api/insights/missing/read")

        assert response.status_code == 404
        assert response.json() == {"message": "Insight not found"}


class TestSpendingTrends:
    """Spending trend endpoint."""

    def test_default_window(self, client):
        trends = client.get(f"/api/spending/trends/{USER}").json()

        assert trends["totalSpending"] == 137.14
        assert sum(trends["categorySpending"].values()) == pytest.approx(137.14)
        assert "Income" not in trends["categorySpending"]

    def test_custom_window(self, client):
        trends = client.get(f"/api/spending/trends/{USER}", params={"days": 7}).json()

        assert list(trends["dailySpending"]) == sorted(trends["dailySpending"])

    @pytest.mark.parametrize("days", ["0", "-5", "abc", "100000"])
    def test_invalid_window_is_400(self, client, days):
        response = client.get(f"/api/spending/trends/{USER}", params={"days": days})

        assert response.status_code == 400
        assert "message" in response.json()
