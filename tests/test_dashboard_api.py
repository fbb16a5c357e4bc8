"""
API tests for the user dashboard
"""

import pytest
import sys
import os
from datetime import datetime, timezone

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from conftest import create_investment


@pytest.fixture
def holdings(client, user_headers):
    """One active stock that gained 500 today and one sold bond"""
    stock = create_investment(client, user_headers, name="Index Fund", initial_amount=1000)
    create_investment(client, user_headers, name="Treasury Bond", type="Bonds", initial_amount=500, status="Sold")
    client.post("/api/transactions", headers=user_headers, json={
        "investment_id": stock["id"],
        "type": "Buy",
        "quantity": 5,
        "price_per_unit": 100,
        "transaction_date": datetime.now(timezone.utc).isoformat(),
    })
    return stock


class TestDashboard:
    """Test dashboard widgets"""

    def test_full_dashboard(self, client, user_headers, holdings):
        """Test the combined dashboard response"""
        response = client.get("/api/dashboard", headers=user_headers)
        data = response.json()["data"]

        assert response.status_code == 200
        assert set(data) >= {"summary_cards", "recent_transactions", "performance_chart",
                             "asset_allocation", "quick_stats", "generated_at"}
        assert len(data["performance_chart"]["labels"]) == 12

    def test_summary_cards(self, client, user_headers, holdings):
        """Test totals and performers"""
        cards = client.get("/api/dashboard/summary", headers=user_headers).json()["data"]

        assert abs(cards["total_investment_value"] - 2000) < 0.001
        assert abs(cards["total_invested"] - 1500) < 0.001
        assert abs(cards["total_gain_loss_percentage"] - 33.33) < 0.001
        assert cards["number_of_active_investments"] == 1
        assert cards["total_investments"] == 2
        assert cards["best_performing"]["name"] == "Index Fund"
        assert cards["worst_performing"]["name"] == "Treasury Bond"
        assert cards["total_transactions"] == 1
        assert cards["portfolio_count"] == 1

    def test_recent_transactions(self, client, user_headers, holdings):
        """Test recent transactions carry a relative time"""
        recent = client.get("/api/dashboard/recent-transactions", headers=user_headers).json()["data"]

        assert len(recent) == 1
        assert recent[0]["investment_name"] == "Index Fund"
        assert recent[0]["time_ago"] == "just now"

    def test_performance_chart(self, client, user_headers, holdings):
        """Test month-end values and the months clamp"""
        chart = client.get("/api/dashboard/performance-chart", headers=user_headers,
                           params={"months": 100}).json()["data"]

        assert chart["months_covered"] == 12
        assert len(chart["values"]) == 12
        assert abs(chart["current_value"] - 2000) < 0.001

    def test_monthly_performance(self, client, user_headers, holdings):
        """Test the current month shows this month's purchase"""
        months = client.get("/api/dashboard/monthly-performance", headers=user_headers,
                            params={"months": 3}).json()["data"]

        assert len(months) == 3
        assert months[-1]["transaction_count"] == 1
        assert abs(months[-1]["gain_loss"] - 500) < 0.001

    def test_asset_allocation_only_active(self, client, user_headers, holdings):
        """Test sold investments are excluded from allocation"""
        allocation = client.get("/api/dashboard/asset-allocation", headers=user_headers).json()["data"]

        assert allocation["total_investments"] == 1
        assert len(allocation["allocations"]) == 1
        item = allocation["allocations"][0]
        assert item["type"] == "Stocks"
        assert item["color"] == "#3b82f6"
        assert item["percentage"] == 100.0

    def test_quick_stats(self, client, user_headers, holdings):
        """Test today's change against yesterday"""
        stats = client.get("/api/dashboard/quick-stats", headers=user_headers).json()["data"]

        assert abs(stats["today_gain_loss"] - 500) < 0.001
        assert abs(stats["today_gain_loss_percentage"] - 33.33) < 0.001
        assert stats["transactions_this_month"] == 1
        assert abs(stats["investment_growth_this_month"] - 500) < 0.001

    def test_portfolio_breakdown(self, client, user_headers, holdings):
        """Test counts and values per status"""
        breakdown = client.get("/api/dashboard/portfolio-breakdown", headers=user_headers).json()["data"]

        assert breakdown["active_investments"] == 1
        assert breakdown["sold_investments"] == 1
        assert abs(breakdown["sold_value"] - 500) < 0.001

    def test_top_and_worst(self, client, user_headers, holdings):
        """Test performer lists are ordered by gain percentage"""
        top = client.get("/api/dashboard/top-performing", headers=user_headers).json()["data"]
        worst = client.get("/api/dashboard/worst-performing", headers=user_headers,
                           params={"count": 1}).json()["data"]

        assert [c["name"] for c in top] == ["Index Fund", "Treasury Bond"]
        assert [c["name"] for c in worst] == ["Treasury Bond"]

    def test_empty_dashboard(self, client, user_headers):
        """Test a new user gets zeros instead of errors"""
        cards = client.get("/api/dashboard/summary", headers=user_headers).json()["data"]

        assert cards["total_investments"] == 0
        assert cards["best_performing"] is None
        assert cards["total_gain_loss_percentage"] == 0
