"""
Unit tests for valuation helpers
"""

import pytest
import sys
import os
from datetime import datetime, timedelta

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from services.valuation import (
    gain_loss,
    gain_loss_percentage,
    percentage,
    value_at,
    invested_at,
    month_windows,
    month_label,
    time_ago,
    filter_by_date,
    previous_day_end,
    end_of_day
)


def investment(id, initial, current=None, purchased=datetime(2024, 1, 10)):
    return {
        "id": id,
        "initial_amount": initial,
        "current_value": initial if current is None else current,
        "purchase_date": purchased,
    }


def transaction(investment_id, type, amount, when):
    return {"investment_id": investment_id, "type": type, "amount": amount, "transaction_date": when}


class TestGainLoss:
    """Test gain/loss and percentage helpers"""

    def test_gain_loss(self):
        """Test gain is current value minus initial amount"""
        assert gain_loss(investment(1, 1000, 1250)) == 250

    def test_gain_loss_percentage(self):
        """Test percentage gain over the initial amount"""
        assert abs(gain_loss_percentage(investment(1, 1000, 1250)) - 25.0) < 0.001

    def test_gain_loss_percentage_rounding(self):
        """Test optional rounding"""
        assert gain_loss_percentage(investment(1, 3, 4), 2) == 33.33

    def test_gain_loss_percentage_zero_initial(self):
        """Test zero initial amount yields 0 instead of dividing by zero"""
        assert gain_loss_percentage(investment(1, 0, 500)) == 0.0

    def test_percentage(self):
        """Test percentage is rounded to two decimals"""
        assert percentage(1, 3) == 33.33
        assert percentage(50, 0) == 0.0
        assert percentage(50, -10) == 0.0


class TestValueAt:
    """Test point-in-time valuation"""

    def test_value_before_purchase_is_zero(self):
        """Test investments bought after the date are ignored"""
        investments = [investment(1, 1000, purchased=datetime(2024, 3, 1))]
        assert value_at(investments, [], datetime(2024, 2, 1)) == 0.0

    def test_replays_transactions_in_date_order(self):
        """Test Buy adds, Sell subtracts and Update replaces"""
        investments = [investment(1, 1000)]
        transactions = [
            transaction(1, "Sell", 300, datetime(2024, 3, 1)),
            transaction(1, "Buy", 500, datetime(2024, 2, 1)),
            transaction(1, "Update", 2000, datetime(2024, 4, 1)),
        ]

        assert abs(value_at(investments, transactions, datetime(2024, 1, 31)) - 1000) < 0.001
        assert abs(value_at(investments, transactions, datetime(2024, 2, 15)) - 1500) < 0.001
        assert abs(value_at(investments, transactions, datetime(2024, 3, 15)) - 1200) < 0.001
        assert abs(value_at(investments, transactions, datetime(2024, 4, 15)) - 2000) < 0.001

    def test_update_then_buy(self):
        """Test a Buy after an Update adds to the replaced value"""
        investments = [investment(1, 1000)]
        transactions = [
            transaction(1, "Update", 800, datetime(2024, 2, 1)),
            transaction(1, "Buy", 100, datetime(2024, 2, 2)),
        ]
        assert abs(value_at(investments, transactions, datetime(2024, 3, 1)) - 900) < 0.001

    def test_sums_multiple_investments(self):
        """Test values of several investments are summed"""
        investments = [investment(1, 1000), investment(2, 500)]
        transactions = [transaction(2, "Buy", 250, datetime(2024, 2, 1))]
        assert abs(value_at(investments, transactions, datetime(2024, 6, 1)) - 1750) < 0.001

    def test_invested_at(self):
        """Test invested amount counts purchases on or before the date"""
        investments = [
            investment(1, 1000, purchased=datetime(2024, 1, 1)),
            investment(2, 500, purchased=datetime(2024, 5, 1)),
        ]
        assert invested_at(investments, datetime(2024, 3, 1)) == 1000
        assert invested_at(investments, datetime(2024, 5, 1)) == 1500


class TestMonthWindows:
    """Test calendar month windows"""

    def test_windows_oldest_first(self):
        """Test three windows ending with the current month"""
        windows = month_windows(3, datetime(2024, 3, 15, 12, 0))

        assert len(windows) == 3
        assert windows[0][0] == datetime(2024, 1, 1)
        assert windows[1][0] == datetime(2024, 2, 1)
        assert windows[2][0] == datetime(2024, 3, 1)

    def test_window_ends_at_last_moment_of_month(self):
        """Test leap-year February ends on the 29th"""
        windows = month_windows(2, datetime(2024, 3, 15))
        assert windows[0][1] == datetime(2024, 2, 29, 23, 59, 59, 999999)

    def test_windows_cross_year(self):
        """Test windows spanning a year boundary"""
        windows = month_windows(2, datetime(2024, 1, 20))
        assert [month_label(start) for start, _ in windows] == ["Dec 2023", "Jan 2024"]

    def test_previous_day_end(self):
        """Test last moment of the day before"""
        assert previous_day_end(datetime(2024, 3, 1, 9, 30)) == datetime(2024, 2, 29, 23, 59, 59, 999999)
        assert end_of_day(datetime(2024, 3, 1, 9, 30)) == datetime(2024, 3, 1, 23, 59, 59, 999999)


class TestTimeAgo:
    """Test human readable ages"""

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(seconds=30), "just now"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(minutes=5), "5 minutes ago"),
        (timedelta(hours=3), "3 hours ago"),
        (timedelta(days=1), "1 day ago"),
        (timedelta(days=45), "1 month ago"),
        (timedelta(days=800), "2 years ago"),
    ])
    def test_time_ago(self, delta, expected):
        """Test each unit boundary"""
        now = datetime(2024, 6, 1, 12, 0)
        assert time_ago(now - delta, now) == expected


class TestFilterByDate:
    """Test date range filtering"""

    def test_no_bounds_returns_everything(self):
        """Test nothing is filtered without bounds, even future records"""
        records = [{"d": datetime(2030, 1, 1)}]
        assert filter_by_date(records, "d", None, None, datetime(2024, 1, 1)) == records

    def test_start_only_caps_at_now(self):
        """Test a missing end bound means now"""
        now = datetime(2024, 6, 1)
        records = [{"d": datetime(2024, 1, 1)}, {"d": datetime(2024, 5, 1)}, {"d": datetime(2024, 7, 1)}]
        result = filter_by_date(records, "d", datetime(2024, 2, 1), None, now)
        assert result == [{"d": datetime(2024, 5, 1)}]
