"""
API tests for reports and report exports
"""

import pytest
import sys
import os
from datetime import datetime, timedelta, timezone

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from conftest import create_investment
from services.reports import parse_preset_range, _annualized_return


@pytest.fixture
def history(client, user_headers):
    """
    Stock Fund: 1000 bought Mar 2023, +200 in Jun 2023 (now 1200, +20%)
    Coin: 500 bought Feb 2024, -100 in Mar 2024 (now 400, -20%)
    """
    stock = create_investment(client, user_headers, name="Stock Fund", initial_amount=1000,
                              purchase_date="2023-03-01T00:00:00")
    coin = create_investment(client, user_headers, name="Coin", type="Crypto", initial_amount=500,
                             purchase_date="2024-02-01T00:00:00")
    client.post("/api/transactions", headers=user_headers, json={
        "investment_id": stock["id"], "type": "Buy", "quantity": 2, "price_per_unit": 100,
        "transaction_date": "2023-06-01T00:00:00",
    })
    client.post("/api/transactions", headers=user_headers, json={
        "investment_id": coin["id"], "type": "Sell", "quantity": 1, "price_per_unit": 100,
        "transaction_date": "2024-03-01T00:00:00",
    })
    return stock, coin


class TestPresetRanges:
    """Test preset date range names"""

    def test_last_year(self):
        """Test last year covers the whole previous calendar year"""
        start, end = parse_preset_range("lastYear", datetime(2024, 6, 15))

        assert start == datetime(2023, 1, 1)
        assert end == datetime(2023, 12, 31, 23, 59, 59, 999999)

    def test_this_year(self):
        start, end = parse_preset_range("thisyear", datetime(2024, 6, 15, 10, 0))

        assert start == datetime(2024, 1, 1)
        assert end == datetime(2024, 6, 15, 10, 0)

    def test_last_three_months(self):
        start, _ = parse_preset_range("last3months", datetime(2024, 5, 31))
        assert start == datetime(2024, 2, 29)

    @pytest.mark.parametrize("preset", ["alltime", "unknown", None])
    def test_no_lower_bound(self, preset):
        """Test all time and unknown names are unbounded"""
        start, end = parse_preset_range(preset, datetime(2024, 6, 15))

        assert start is None
        assert end == datetime(2024, 6, 15)


class TestAnnualizedReturn:
    """Test compound yearly returns"""

    def test_one_year(self):
        result = _annualized_return({"name": "Fund", "initial_amount": 1000, "current_value": 1100}, 365)
        assert abs(result - 10.0) < 0.001

    def test_out_of_range_growth_is_zero(self):
        """Test growth too large to represent reports 0 instead of failing"""
        result = _annualized_return({"name": "Fund", "initial_amount": 100, "current_value": 1100}, 1)
        assert result == 0.0

    def test_total_loss(self):
        result = _annualized_return({"name": "Fund", "initial_amount": 100, "current_value": 0}, 30)
        assert result == -100.0

    def test_same_day(self):
        assert _annualized_return({"name": "Fund", "initial_amount": 100, "current_value": 500}, 0) == 0.0


class TestReports:
    """Test the generated reports"""

    def test_requires_auth(self, client):
        assert client.get("/api/reports/performance-summary").status_code == 401

    def test_performance_summary(self, client, user_headers, history):
        """Test totals, performers and the open period start"""
        report = client.get("/api/reports/performance-summary", headers=user_headers).json()["data"]

        assert report["period_start"] == "Beginning"
        assert abs(report["total_invested"] - 1500) < 0.001
        assert abs(report["current_value"] - 1600) < 0.001
        assert abs(report["total_gain_loss_percentage"] - 6.67) < 0.001
        assert report["total_transactions"] == 2
        assert abs(report["total_buy_volume"] - 200) < 0.001
        assert abs(report["total_sell_volume"] - 100) < 0.001
        assert report["top_performers"][0]["name"] == "Stock Fund"
        assert report["worst_performers"][0]["name"] == "Coin"
        assert report["performance_by_type"][0]["type"] == "Stocks"
        assert len(report["monthly_trend"]) == 6

    def test_performance_summary_date_range(self, client, user_headers, history):
        """Test a start date filters investments and transactions"""
        report = client.get("/api/reports/performance-summary", headers=user_headers,
                            params={"start_date": "2024-01-01T00:00:00"}).json()["data"]

        assert report["period_start"] == "Jan 01, 2024"
        assert report["total_investments"] == 1
        assert report["total_transactions"] == 1
        assert abs(report["total_invested"] - 500) < 0.001

    def test_explicit_dates_win_over_preset(self, client, user_headers, history):
        """Test a preset is ignored when dates are given"""
        report = client.get("/api/reports/performance-summary", headers=user_headers, params={
            "start_date": "2023-01-01T00:00:00", "preset": "last7days",
        }).json()["data"]

        assert report["total_investments"] == 2

    def test_investment_distribution(self, client, user_headers, history):
        """Test type, status and size buckets"""
        report = client.get("/api/reports/investment-distribution", headers=user_headers).json()["data"]

        assert report["total_investments"] == 2
        assert abs(report["total_portfolio_value"] - 1600) < 0.001
        assert report["distribution_by_type"][0]["category"] == "Stocks"
        assert report["distribution_by_type"][0]["color"] == "#3b82f6"
        assert report["distribution_by_type"][0]["percentage"] == 75.0
        assert report["distribution_by_status"][0]["category"] == "Active"
        assert [b["count"] for b in report["investment_size_distribution"]] == [1, 1, 0, 0, 0]
        assert report["investments"][0]["name"] == "Stock Fund"

    def test_size_buckets(self, client, user_headers):
        """Test bucket boundaries"""
        for amount in (500, 2000, 60000):
            create_investment(client, user_headers, name=f"Holding {amount}", initial_amount=amount)

        report = client.get("/api/reports/investment-distribution", headers=user_headers).json()["data"]
        assert [b["count"] for b in report["investment_size_distribution"]] == [1, 1, 0, 0, 1]

    def test_transaction_history(self, client, user_headers, history):
        """Test counts by type and month"""
        report = client.get("/api/reports/transaction-history", headers=user_headers).json()["data"]

        assert report["total_transactions"] == 2
        assert abs(report["total_volume"] - 300) < 0.001
        assert report["buy_transactions"] == 1
        assert report["sell_transactions"] == 1
        assert [t["type"] for t in report["transactions_by_type"]] == ["Buy", "Sell", "Update"]
        assert [m["month"] for m in report["transactions_by_month"]] == ["Mar 2024", "Jun 2023"]
        assert report["transactions"][0]["transaction_type"] == "Sell"

    def test_monthly_trend(self, client, user_headers, history):
        """Test the months parameter and its fallback"""
        report = client.get("/api/reports/monthly-performance-trend", headers=user_headers,
                            params={"months": 3}).json()["data"]
        assert report["months_covered"] == 3
        assert len(report["monthly_data"]) == 3
        assert len(report["chart_labels"]) == 3

        fallback = client.get("/api/reports/monthly-performance-trend", headers=user_headers,
                              params={"months": 0}).json()["data"]
        assert fallback["months_covered"] == 12

    def test_year_over_year(self, client, user_headers, history):
        """Test yearly summaries and comparisons"""
        report = client.get("/api/reports/year-over-year", headers=user_headers).json()["data"]

        assert report["years_covered"] == list(range(2023, datetime.now().year + 1))
        first, second = report["yearly_summaries"][:2]
        assert abs(first["ending_value"] - 1200) < 0.001
        assert first["growth_percentage"] == 0
        assert first["new_investments"] == 1
        assert abs(second["starting_value"] - 1200) < 0.001
        assert abs(second["ending_value"] - 1600) < 0.001
        assert abs(second["growth_percentage"] - 33.33) < 0.001

        comparison = report["year_over_year_growth"][0]
        assert comparison["comparison"] == "2024 vs 2023"
        assert abs(comparison["growth_difference"] - (-800)) < 0.001
        assert abs(comparison["growth_difference_percentage"] - (-66.67)) < 0.001

    def test_top_performing(self, client, user_headers, history):
        """Test rankings start at 1"""
        report = client.get("/api/reports/top-performing", headers=user_headers).json()["data"]

        assert report["total_investments_analyzed"] == 2
        assert [i["rank"] for i in report["top_by_percentage"]] == [1, 2]
        assert report["top_by_percentage"][0]["name"] == "Stock Fund"
        assert report["top_by_value"][0]["name"] == "Stock Fund"
        assert report["top_by_percentage"][0]["annualized_return"] > 0
        assert report["type_performance_summaries"][0]["type"] == "Stocks"
        assert report["type_performance_summaries"][0]["average_gain_loss_percentage"] == 20.0

    def test_top_performing_short_hold_large_gain(self, client, user_headers):
        """Test a tenfold gain held for a day does not break the rankings or exports"""
        bought = (datetime.now(timezone.utc) - timedelta(days=1, hours=1)).isoformat()
        investment = create_investment(client, user_headers, name="Moonshot", initial_amount=100,
                                       purchase_date=bought)
        client.post("/api/transactions", headers=user_headers, json={
            "investment_id": investment["id"], "type": "Buy", "quantity": 1, "price_per_unit": 1000,
            "transaction_date": bought,
        })

        response = client.get("/api/reports/top-performing", headers=user_headers)
        assert response.status_code == 200
        top = response.json()["data"]["top_by_percentage"][0]
        assert top["name"] == "Moonshot"
        assert top["annualized_return"] == 0

        html = client.get("/api/reports/export/html", headers=user_headers,
                          params={"report_type": "topPerforming"})
        assert html.status_code == 200
        exported = client.get("/api/reports/export/json", headers=user_headers,
                              params={"report_type": "topPerforming"})
        assert exported.status_code == 200

    def test_top_performing_count(self, client, user_headers, history):
        report = client.get("/api/reports/top-performing", headers=user_headers,
                            params={"top_count": 1}).json()["data"]
        assert len(report["top_by_percentage"]) == 1

    def test_types_and_presets(self, client, user_headers):
        """Test the report catalog endpoints"""
        types = client.get("/api/reports/types", headers=user_headers).json()["data"]
        presets = client.get("/api/reports/preset-ranges", headers=user_headers).json()["data"]

        assert types == ["performance", "distribution", "transactions", "monthly", "yearOverYear", "topPerforming"]
        assert len(presets) == 8
        assert {"value": "alltime", "label": "All Time"} in presets


class TestReportExports:
    """Test CSV, JSON, PDF and HTML exports"""

    def test_json_uses_camel_case(self, client, user_headers, history):
        """Test JSON exports are attachments with camelCase keys"""
        response = client.get("/api/reports/export/json", headers=user_headers,
                              params={"report_type": "performance"})
        body = response.json()

        assert response.status_code == 200
        assert "attachment" in response.headers["content-disposition"]
        assert body["reportTitle"] == "Performance Summary Report"
        assert abs(body["totalInvested"] - 1500) < 0.001
        assert body["topPerformers"][0]["gainLossPercentage"] == 20.0

    def test_json_unsupported_type(self, client, user_headers):
        response = client.get("/api/reports/export/json", headers=user_headers,
                              params={"report_type": "bogus"})
        assert response.json() == {"error": "Unsupported report type"}

    def test_csv_performance(self, client, user_headers, history):
        response = client.get("/api/reports/export/csv", headers=user_headers,
                              params={"report_type": "performance"})

        assert response.headers["content-type"].startswith("text/csv")
        assert response.text.splitlines()[0] == "Performance Summary Report"
        assert "Stock Fund" in response.text

    def test_csv_transactions(self, client, user_headers, history):
        response = client.get("/api/reports/export/csv", headers=user_headers,
                              params={"report_type": "Transactions"})

        assert response.text.splitlines()[0] == "Transaction History Report"
        assert "2024-03-01" in response.text

    def test_csv_unsupported_type(self, client, user_headers, history):
        """Test only performance and transactions export to CSV"""
        response = client.get("/api/reports/export/csv", headers=user_headers,
                              params={"report_type": "distribution"})
        assert response.text.strip() == "Unsupported report type for CSV export"

    def test_pdf_is_simulated(self, client, user_headers, history):
        """Test the PDF descriptor"""
        response = client.get("/api/reports/export/pdf", headers=user_headers, params={
            "report_type": "performance", "start_date": "2024-01-01T00:00:00",
        })
        descriptor = response.json()["data"]

        assert descriptor["format"] == "pdf"
        assert descriptor["simulated"] is True
        assert descriptor["filename"].startswith("performance_report_")
        assert descriptor["filename"].endswith(".pdf")
        assert descriptor["data"]["report_title"] == "Performance Summary Report"
        assert descriptor["metadata"]["date_range"]["start"] == "2024-01-01T00:00:00"
        assert descriptor["metadata"]["date_range"]["end"] is None

    def test_html(self, client, user_headers, history):
        """Test the printable page has a title and tables"""
        response = client.get("/api/reports/export/html", headers=user_headers,
                              params={"report_type": "topPerforming"})

        assert response.headers["content-type"].startswith("text/html")
        assert "<title>Top Performing Investments Report</title>" in response.text
        assert "Top By Percentage" in response.text
        assert "<table" in response.text

    def test_html_unsupported_type(self, client, user_headers):
        response = client.get("/api/reports/export/html", headers=user_headers,
                              params={"report_type": "bogus"})
        assert "Unsupported report type" in response.text

    def test_exports_are_logged(self, client, user_headers, history):
        """Test each export leaves an activity entry"""
        client.get("/api/reports/export/json", headers=user_headers, params={"report_type": "monthly"})

        activity = client.get("/api/activity-logs/my-activity", headers=user_headers).json()["data"]
        exports = [a for a in activity if a["action"] == "Export"]

        assert len(exports) == 1
        assert exports[0]["entity_type"] == "Report"
        assert exports[0]["details"] == "Exported monthly report as JSON"
