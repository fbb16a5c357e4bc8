"""
Portfolio valuation helpers

Point-in-time portfolio values rebuilt from stored investments and their
transactions, month windows for charts and performance helpers shared by
the dashboard, report and investment services.
"""

import pandas as pd
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
from collections import defaultdict
import logging

logger = logging.getLogger(__name__)

TYPE_COLORS = {
    "Stocks": "#3b82f6",
    "Bonds": "#10b981",
    "RealEstate": "#f59e0b",
    "Crypto": "#8b5cf6",
    "MutualFunds": "#ec4899",
    "Other": "#6b7280",
}

STATUS_COLORS = {
    "Active": "#10b981",
    "Sold": "#6b7280",
    "OnHold": "#f59e0b",
}


def gain_loss(investment: Dict) -> float:
    return investment["current_value"] - investment["initial_amount"]


def gain_loss_percentage(investment: Dict, digits: Optional[int] = None) -> float:
    """Gain over initial amount in percent, 0 when nothing was invested"""
    initial = investment["initial_amount"]
    if initial <= 0:
        return 0.0
    pct = (investment["current_value"] - initial) / initial * 100
    return round(pct, digits) if digits is not None else pct


def percentage(part: float, whole: float) -> float:
    """part / whole in percent rounded to 2 decimals, 0 when whole is not positive"""
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


def value_at(investments: List[Dict], transactions: List[Dict], as_of: datetime) -> float:
    """
    Portfolio value at a point in time

    Every investment purchased on or before ``as_of`` starts from its
    initial amount; its transactions dated on or before ``as_of`` are then
    replayed in date order (Buy adds, Sell subtracts, Update replaces).

    Args:
        investments: Investment records
        transactions: Transaction records for those investments
        as_of: Valuation timestamp (naive UTC)

    Returns:
        Summed value
    """
    by_investment = defaultdict(list)
    for txn in transactions:
        if txn["transaction_date"] <= as_of:
            by_investment[txn["investment_id"]].append(txn)

    total = 0.0
    for investment in investments:
        if investment["purchase_date"] > as_of:
            continue

        value = investment["initial_amount"]
        for txn in sorted(by_investment.get(investment["id"], []), key=lambda t: t["transaction_date"]):
            if txn["type"] == "Buy":
                value += txn["amount"]
            elif txn["type"] == "Sell":
                value -= txn["amount"]
            elif txn["type"] == "Update":
                value = txn["amount"]
        total += value

    return total


def invested_at(investments: List[Dict], as_of: datetime) -> float:
    """Sum of initial amounts purchased on or before ``as_of``"""
    return sum(i["initial_amount"] for i in investments if i["purchase_date"] <= as_of)


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def month_windows(months: int, now: datetime) -> List[Tuple[datetime, datetime]]:
    """
    Calendar month windows ending with the month containing ``now``

    Returns:
        Oldest-first list of (month_start, month_end) where month_end is the
        last moment of the month's final day
    """
    windows = []
    current = pd.Timestamp(now)
    for i in range(months - 1, -1, -1):
        month_date = current - pd.DateOffset(months=i)
        month_start = pd.Timestamp(year=month_date.year, month=month_date.month, day=1)
        last_day = month_start + pd.DateOffset(months=1) - pd.DateOffset(days=1)
        windows.append((month_start.to_pydatetime(), end_of_day(last_day.to_pydatetime())))
    return windows


def month_label(moment: datetime) -> str:
    return moment.strftime("%b %Y")


def months_ago(now: datetime, months: int) -> datetime:
    return (pd.Timestamp(now) - pd.DateOffset(months=months)).to_pydatetime()


def time_ago(moment: datetime, now: datetime) -> str:
    """Human readable age such as '5 minutes ago' or '2 months ago'"""
    delta = now - moment
    minutes = delta.total_seconds() / 60
    hours = minutes / 60
    days = delta.total_seconds() / 86400

    def plural(n: int, unit: str) -> str:
        return f"{n} {unit}{'s' if n != 1 else ''} ago"

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return plural(int(minutes), "minute")
    if hours < 24:
        return plural(int(hours), "hour")
    if days < 30:
        return plural(int(days), "day")
    if days < 365:
        return plural(int(days / 30), "month")
    return plural(int(days / 365), "year")


def filter_by_date(records: List[Dict], field: str, start: Optional[datetime],
                   end: Optional[datetime], now: datetime) -> List[Dict]:
    """
    Keep records whose ``field`` lies within [start, end]

    When neither bound is given nothing is filtered. A missing start means
    no lower bound; a missing end means ``now``.
    """
    if start is None and end is None:
        return records
    upper = end if end is not None else now
    return [
        r for r in records
        if (start is None or r[field] >= start) and r[field] <= upper
    ]


def days_between(start: datetime, end: datetime) -> int:
    return (end - start).days


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def previous_day_end(moment: datetime) -> datetime:
    """Last moment of the day before ``moment``"""
    return end_of_day(start_of_day(moment) - timedelta(days=1))
