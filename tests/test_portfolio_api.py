"""
API tests for portfolios and investments
"""

import pytest
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from datetime import datetime

from conftest import register, auth_headers, create_investment
from models.common import is_descending
from services.investments import sort_investments


class TestPortfolios:
    """Test portfolio CRUD and deletion rules"""

    def test_create_and_get(self, client, user_headers):
        """Test creating a portfolio and reading it back"""
        response = client.post("/api/portfolios", headers=user_headers,
                               json={"name": "Retirement", "description": "Long term"})
        assert response.status_code == 201
        created = response.json()["data"]

        fetched = client.get(f"/api/portfolios/{created['id']}", headers=user_headers).json()["data"]
        assert fetched["name"] == "Retirement"
        assert fetched["is_default"] is False
        assert fetched["total_investments"] == 0

    def test_summaries_sorted_by_name(self, client, user_headers):
        """Test summaries are ordered by name"""
        client.post("/api/portfolios", headers=user_headers, json={"name": "Zeta"})
        client.post("/api/portfolios", headers=user_headers, json={"name": "Alpha"})

        names = [p["name"] for p in client.get("/api/portfolios/summaries", headers=user_headers).json()["data"]]
        assert names == ["Alpha", "Default Portfolio", "Zeta"]

    def test_totals_include_investments(self, client, user_headers):
        """Test portfolio totals sum its investments"""
        create_investment(client, user_headers, initial_amount=1000)
        create_investment(client, user_headers, name="Bond Fund", type="Bonds", initial_amount=500)

        portfolio = client.get("/api/portfolios", headers=user_headers).json()["data"][0]
        assert portfolio["total_investments"] == 2
        assert abs(portfolio["total_invested"] - 1500) < 0.001
        assert abs(portfolio["current_value"] - 1500) < 0.001

    def test_other_users_portfolio_is_not_found(self, client, user_headers):
        """Test portfolios of other users are reported as missing"""
        other = auth_headers(register(client, email="bob@example.com", first_name="Bob")["access_token"])
        created = client.post("/api/portfolios", headers=other, json={"name": "Bob's"}).json()["data"]

        assert client.get(f"/api/portfolios/{created['id']}", headers=user_headers).status_code == 404

    def test_default_portfolio_cannot_be_deleted(self, client, user_headers):
        """Test deleting the default portfolio is refused"""
        default = client.get("/api/portfolios", headers=user_headers).json()["data"][0]

        check = client.get(f"/api/portfolios/{default['id']}/can-delete", headers=user_headers).json()["data"]
        assert check["can_delete"] is False

        assert client.delete(f"/api/portfolios/{default['id']}", headers=user_headers).status_code == 400

    def test_portfolio_with_investments_cannot_be_deleted(self, client, user_headers):
        """Test the exact message for non-empty portfolios"""
        portfolio = client.post("/api/portfolios", headers=user_headers, json={"name": "Growth"}).json()["data"]
        create_investment(client, user_headers, portfolio_id=portfolio["id"])

        response = client.delete(f"/api/portfolios/{portfolio['id']}", headers=user_headers)
        assert response.status_code == 400
        assert response.json()["message"] == (
            "Cannot delete portfolio. It contains 1 investment(s). "
            "Please move or delete all investments before deleting the portfolio."
        )

    def test_delete_empty_portfolio(self, client, user_headers):
        """Test an empty portfolio is deleted"""
        portfolio = client.post("/api/portfolios", headers=user_headers, json={"name": "Temp"}).json()["data"]

        assert client.delete(f"/api/portfolios/{portfolio['id']}", headers=user_headers).status_code == 200
        assert client.get(f"/api/portfolios/{portfolio['id']}", headers=user_headers).status_code == 404
        assert client.get("/api/portfolios/stats/my-count", headers=user_headers).json()["data"] == 1

    def test_detail_and_stats(self, client, user_headers):
        """Test breakdowns and best/worst performers"""
        winner = create_investment(client, user_headers, name="Winner", initial_amount=1000)
        loser = create_investment(client, user_headers, name="Loser", type="Crypto", initial_amount=1000)
        client.post("/api/transactions", headers=user_headers, json={
            "investment_id": winner["id"], "type": "Buy", "quantity": 1, "price_per_unit": 500,
            "transaction_date": "2024-02-01T00:00:00",
        })
        client.post("/api/transactions", headers=user_headers, json={
            "investment_id": loser["id"], "type": "Sell", "quantity": 1, "price_per_unit": 200,
            "transaction_date": "2024-02-01T00:00:00",
        })
        portfolio_id = winner["portfolio_id"]

        detail = client.get(f"/api/portfolios/{portfolio_id}/detail", headers=user_headers).json()["data"]
        assert abs(detail["total_gain_loss"] - 300) < 0.001
        assert detail["count_by_type"] == {"Stocks": 1, "Crypto": 1}
        assert detail["investments"][0]["name"] == "Winner"

        stats = client.get(f"/api/portfolios/{portfolio_id}/stats", headers=user_headers).json()["data"]
        assert stats["best_performing"]["name"] == "Winner"
        assert stats["worst_performing"]["name"] == "Loser"
        assert abs(stats["worst_performing"]["gain_loss_percentage"] - (-20.0)) < 0.001
        assert stats["asset_allocation"][0]["type"] == "Stocks"


class TestInvestments:
    """Test investment CRUD, filters and exports"""

    def test_create_uses_default_portfolio(self, client, user_headers):
        """Test missing portfolio falls back to the default and value starts at cost"""
        investment = create_investment(client, user_headers, type="stocks")

        assert investment["type"] == "Stocks"
        assert investment["portfolio_name"] == "Default Portfolio"
        assert investment["current_value"] == investment["initial_amount"]
        assert investment["gain_loss"] == 0
        assert investment["status"] == "Active"

    def test_foreign_portfolio_falls_back_to_default(self, client, user_headers):
        """Test another user's portfolio id is ignored"""
        other = auth_headers(register(client, email="bob@example.com", first_name="Bob")["access_token"])
        foreign = client.post("/api/portfolios", headers=other, json={"name": "Bob's"}).json()["data"]

        investment = create_investment(client, user_headers, portfolio_id=foreign["id"])
        assert investment["portfolio_id"] != foreign["id"]
        assert investment["portfolio_name"] == "Default Portfolio"

    def test_invalid_type(self, client, user_headers):
        """Test unknown investment types are rejected"""
        response = client.post("/api/investments", headers=user_headers, json={
            "name": "Mystery", "type": "Art", "initial_amount": 100,
            "purchase_date": "2024-01-15T00:00:00",
        })
        assert response.status_code == 400

    def test_short_name_is_validation_error(self, client, user_headers):
        """Test names need at least 3 characters"""
        response = client.post("/api/investments", headers=user_headers, json={
            "name": "AB", "type": "Stocks", "initial_amount": 100,
            "purchase_date": "2024-01-15T00:00:00",
        })
        assert response.status_code == 422

    def test_filter_sort_and_page(self, client, user_headers):
        """Test filters, sorting and paging metadata"""
        create_investment(client, user_headers, name="Apple Shares", initial_amount=300)
        create_investment(client, user_headers, name="Bitcoin", type="Crypto", initial_amount=100)
        create_investment(client, user_headers, name="Apple Bonds", type="Bonds", initial_amount=200)

        body = client.get("/api/investments", headers=user_headers, params={"search_term": "apple"}).json()
        assert body["total_count"] == 2

        body = client.get("/api/investments", headers=user_headers, params={"type": "crypto"}).json()
        assert [i["name"] for i in body["data"]] == ["Bitcoin"]

        body = client.get("/api/investments", headers=user_headers,
                          params={"sort_by": "currentvalue", "sort_order": "asc"}).json()
        assert [i["initial_amount"] for i in body["data"]] == [100, 200, 300]

        for order in ({}, {"sort_order": "DESC"}, {"sort_order": "sideways"}):
            body = client.get("/api/investments", headers=user_headers,
                              params={"sort_by": "currentvalue", **order}).json()
            assert [i["initial_amount"] for i in body["data"]] == [300, 200, 100]

        body = client.get("/api/investments", headers=user_headers, params={"page": 2, "page_size": 2}).json()
        assert len(body["data"]) == 1
        assert body["has_previous"] is True
        assert body["has_next"] is False

    def test_page_size_out_of_range_defaults(self, client, user_headers):
        """Test oversized pages fall back to 10"""
        body = client.get("/api/investments", headers=user_headers, params={"page": 0, "page_size": 500}).json()
        assert body["page"] == 1
        assert body["page_size"] == 10

    def test_update_keeps_current_value(self, client, user_headers):
        """Test updates do not touch the current value"""
        investment = create_investment(client, user_headers)
        client.post("/api/transactions", headers=user_headers, json={
            "investment_id": investment["id"], "type": "Buy", "quantity": 2, "price_per_unit": 50,
            "transaction_date": "2024-02-01T00:00:00",
        })

        response = client.put(f"/api/investments/{investment['id']}", headers=user_headers, json={
            "name": "Apple Inc", "type": "Stocks", "initial_amount": 900,
            "purchase_date": "2024-01-15T00:00:00", "status": "OnHold",
        })
        updated = response.json()["data"]

        assert updated["name"] == "Apple Inc"
        assert updated["status"] == "OnHold"
        assert abs(updated["current_value"] - 1100) < 0.001
        assert abs(updated["gain_loss"] - 200) < 0.001

    def test_other_users_investment_forbidden(self, client, user_headers):
        """Test reading another user's investment is forbidden"""
        other = auth_headers(register(client, email="bob@example.com", first_name="Bob")["access_token"])
        investment = create_investment(client, other)

        assert client.get(f"/api/investments/{investment['id']}", headers=user_headers).status_code == 403

    def test_delete(self, client, user_headers):
        """Test deleted investments disappear"""
        investment = create_investment(client, user_headers)

        assert client.delete(f"/api/investments/{investment['id']}", headers=user_headers).status_code == 200
        assert client.get(f"/api/investments/{investment['id']}", headers=user_headers).status_code == 404

    def test_bulk_delete_only_own(self, client, user_headers):
        """Test bulk delete skips investments of other users"""
        other = auth_headers(register(client, email="bob@example.com", first_name="Bob")["access_token"])
        foreign = create_investment(client, other)
        mine = create_investment(client, user_headers)

        refused = client.post("/api/investments/bulk-delete", headers=user_headers,
                              json={"investment_ids": [foreign["id"]]})
        assert refused.status_code == 400

        response = client.post("/api/investments/bulk-delete", headers=user_headers,
                               json={"investment_ids": [foreign["id"], mine["id"]]})
        assert response.json()["data"] == 1
        assert client.get(f"/api/investments/{foreign['id']}", headers=other).status_code == 200

    def test_detail_history(self, client, user_headers):
        """Test the performance history starts at the purchase"""
        investment = create_investment(client, user_headers)
        client.post("/api/transactions", headers=user_headers, json={
            "investment_id": investment["id"], "type": "Buy", "quantity": 1, "price_per_unit": 250,
            "transaction_date": "2024-03-01T00:00:00",
        })

        detail = client.get(f"/api/investments/{investment['id']}/detail", headers=user_headers).json()["data"]
        assert [p["value"] for p in detail["performance_history"]] == [1000, 250]
        assert len(detail["transactions"]) == 1

    def test_stats(self, client, user_headers):
        """Test aggregate investment statistics"""
        create_investment(client, user_headers, initial_amount=1000)
        create_investment(client, user_headers, name="Bond Fund", type="Bonds", initial_amount=500)

        stats = client.get("/api/investments/stats", headers=user_headers).json()["data"]
        assert stats["total_investments"] == 2
        assert stats["investments_by_type"] == {"Stocks": 1, "Bonds": 1}
        assert abs(stats["value_by_type"]["Bonds"] - 500) < 0.001

    def test_export_csv(self, client, user_headers):
        """Test the single and multi investment CSV exports"""
        investment = create_investment(client, user_headers)

        single = client.get(f"/api/investments/{investment['id']}/export", headers=user_headers)
        assert single.status_code == 200
        assert single.headers["content-type"].startswith("text/csv")
        assert "Apple Shares" in single.text
        assert "Transaction History" in single.text

        several = client.post("/api/investments/export", headers=user_headers,
                              json={"investment_ids": [investment["id"]]})
        assert "Portfolio" in several.text.splitlines()[3]
        assert "Default Portfolio" in several.text


class TestSortOrder:
    """Test the sort direction shared by the listing endpoints"""

    @pytest.mark.parametrize("sort_order, descending", [
        (None, True), ("", True), ("desc", True), ("DESC", True), ("sideways", True),
        ("asc", False), (" Asc ", False),
    ])
    def test_is_descending(self, sort_order, descending):
        """Test only an explicit asc sorts ascending"""
        assert is_descending(sort_order) is descending

    def test_sort_investments_without_order(self):
        rows = [
            {"id": 1, "current_value": 100.0, "created_at": datetime(2024, 1, 1)},
            {"id": 2, "current_value": 300.0, "created_at": datetime(2024, 1, 2)},
            {"id": 3, "current_value": 200.0, "created_at": datetime(2024, 1, 3)},
        ]

        assert [r["id"] for r in sort_investments(rows, "currentvalue", None)] == [2, 3, 1]
        assert [r["id"] for r in sort_investments(rows, "currentvalue", "asc")] == [1, 3, 2]
        assert [r["id"] for r in sort_investments(rows, None, "asc")] == [3, 2, 1]
