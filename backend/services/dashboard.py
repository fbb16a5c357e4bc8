"""
User dashboard service

Summary cards, recent activity and month-by-month performance built from
the user's stored investments and transactions
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional
import logging

import database
from models.dashboard import (
    InvestmentPerformanceCard, PortfolioSummaryCards, RecentTransaction, PerformanceChartData,
    MonthlyPerformanceSummary, AssetAllocationItem, AssetAllocationData, DashboardQuickStats,
    PortfolioBreakdown, UserDashboard
)
from services import valuation
from services.valuation import gain_loss, gain_loss_percentage, percentage, TYPE_COLORS

logger = logging.getLogger(__name__)


def _performance_card(investment: Dict) -> InvestmentPerformanceCard:
    return InvestmentPerformanceCard(
        id=investment["id"],
        name=investment["name"],
        type=investment["type"],
        current_value=investment["current_value"],
        initial_amount=investment["initial_amount"],
        gain_loss=gain_loss(investment),
        gain_loss_percentage=gain_loss_percentage(investment, 2),
        status=investment["status"],
        purchase_date=investment["purchase_date"]
    )


class DashboardService:
    """Aggregates a user's holdings into dashboard widgets"""

    def _load(self, user_id: str):
        return database.list_investments(user_id=user_id), database.list_transactions(user_id=user_id)

    def get_dashboard(self, user_id: str, now: Optional[datetime] = None) -> UserDashboard:
        now = now or database.utcnow()
        return UserDashboard(
            summary_cards=self.get_summary_cards(user_id),
            recent_transactions=self.get_recent_transactions(user_id, 10, now),
            performance_chart=self.get_performance_chart(user_id, 12, now),
            asset_allocation=self.get_asset_allocation(user_id),
            quick_stats=self.get_quick_stats(user_id, now),
            generated_at=now
        )

    def get_summary_cards(self, user_id: str) -> PortfolioSummaryCards:
        investments, transactions = self._load(user_id)

        total_invested = sum(i["initial_amount"] for i in investments)
        current_value = sum(i["current_value"] for i in investments)
        total_gain_loss = current_value - total_invested

        ranked = sorted(
            (i for i in investments if i["initial_amount"] > 0),
            key=lambda i: gain_loss_percentage(i),
            reverse=True
        )
        last_transaction = max((t["transaction_date"] for t in transactions), default=None)

        return PortfolioSummaryCards(
            total_investment_value=current_value,
            total_invested=total_invested,
            total_gain_loss=total_gain_loss,
            total_gain_loss_percentage=percentage(total_gain_loss, total_invested),
            number_of_active_investments=sum(1 for i in investments if i["status"] == "Active"),
            total_investments=len(investments),
            best_performing=_performance_card(ranked[0]) if ranked else None,
            worst_performing=_performance_card(ranked[-1]) if ranked else None,
            total_transactions=len(transactions),
            last_transaction_date=last_transaction,
            portfolio_count=database.count_portfolios(user_id)
        )

    def get_recent_transactions(self, user_id: str, count: int = 10,
                                now: Optional[datetime] = None) -> List[RecentTransaction]:
        now = now or database.utcnow()
        return [
            RecentTransaction(
                id=t["id"],
                investment_id=t["investment_id"],
                investment_name=t.get("investment_name") or "",
                investment_type=t.get("investment_type") or "",
                type=t["type"],
                amount=t["amount"],
                quantity=t["quantity"],
                price_per_unit=t["price_per_unit"],
                transaction_date=t["transaction_date"],
                notes=t.get("notes"),
                time_ago=valuation.time_ago(t["transaction_date"], now)
            )
            for t in database.list_transactions(user_id=user_id)[:count]
        ]

    def get_performance_chart(self, user_id: str, months: int = 12,
                              now: Optional[datetime] = None) -> PerformanceChartData:
        """
        Month-end portfolio values for the last ``months`` calendar months

        Args:
            user_id: Owner of the investments
            months: Number of months, the current month included
            now: Reference time (defaults to the current UTC time)

        Returns:
            PerformanceChartData with oldest-first labels and values
        """
        now = now or database.utcnow()
        investments, transactions = self._load(user_id)

        labels, values, invested = [], [], []
        for month_start, month_end in valuation.month_windows(months, now):
            labels.append(valuation.month_label(month_start))
            values.append(valuation.value_at(investments, transactions, month_end))
            invested.append(valuation.invested_at(investments, month_end))

        start_value = values[0] if values else 0.0
        current_value = values[-1] if values else 0.0
        total_growth = current_value - start_value

        return PerformanceChartData(
            labels=labels,
            values=values,
            invested_values=invested,
            current_value=current_value,
            start_value=start_value,
            total_growth=total_growth,
            total_growth_percentage=percentage(total_growth, start_value),
            months_covered=months,
            period_start=valuation.month_label(valuation.months_ago(now, months)),
            period_end=valuation.month_label(now)
        )

    def get_monthly_performance(self, user_id: str, months: int = 12,
                                now: Optional[datetime] = None) -> List[MonthlyPerformanceSummary]:
        now = now or database.utcnow()
        investments, transactions = self._load(user_id)

        summaries = []
        for month_start, month_end in valuation.month_windows(months, now):
            start_value = valuation.value_at(investments, transactions, valuation.previous_day_end(month_start))
            end_value = valuation.value_at(investments, transactions, month_end)
            change = end_value - start_value
            summaries.append(MonthlyPerformanceSummary(
                month=valuation.month_label(month_start),
                start_value=start_value,
                end_value=end_value,
                gain_loss=change,
                gain_loss_percentage=percentage(change, start_value),
                transaction_count=sum(
                    1 for t in transactions if month_start <= t["transaction_date"] <= month_end
                )
            ))
        return summaries

    def get_asset_allocation(self, user_id: str) -> AssetAllocationData:
        """Current value of active investments grouped by type"""
        active = [i for i in database.list_investments(user_id=user_id) if i["status"] == "Active"]
        total_value = sum(i["current_value"] for i in active)

        grouped = defaultdict(list)
        for i in active:
            grouped[i["type"]].append(i)

        allocations = []
        for type_name, items in grouped.items():
            value = sum(i["current_value"] for i in items)
            allocations.append(AssetAllocationItem(
                type=type_name,
                value=value,
                percentage=percentage(value, total_value),
                count=len(items),
                color=TYPE_COLORS.get(type_name, TYPE_COLORS["Other"])
            ))
        allocations.sort(key=lambda a: a.value, reverse=True)

        return AssetAllocationData(
            allocations=allocations,
            total_value=total_value,
            total_investments=len(active)
        )

    def get_quick_stats(self, user_id: str, now: Optional[datetime] = None) -> DashboardQuickStats:
        now = now or database.utcnow()
        investments, transactions = self._load(user_id)

        today_end = valuation.end_of_day(now)
        yesterday_end = valuation.previous_day_end(now)
        start_of_month = valuation.start_of_day(now.replace(day=1))

        value_today = valuation.value_at(investments, transactions, today_end)
        value_yesterday = valuation.value_at(investments, transactions, yesterday_end)
        value_month_start = valuation.value_at(
            investments, transactions, valuation.previous_day_end(start_of_month)
        )

        today_change = value_today - value_yesterday
        month_change = value_today - value_month_start

        return DashboardQuickStats(
            today_gain_loss=today_change,
            today_gain_loss_percentage=percentage(today_change, value_yesterday),
            transactions_this_month=sum(1 for t in transactions if t["transaction_date"] >= start_of_month),
            investment_growth_this_month=month_change,
            investment_growth_this_month_percentage=percentage(month_change, value_month_start)
        )

    def get_portfolio_breakdown(self, user_id: str) -> PortfolioBreakdown:
        investments = database.list_investments(user_id=user_id)

        def by_status(status: str):
            return [i for i in investments if i["status"] == status]

        return PortfolioBreakdown(
            active_investments=len(by_status("Active")),
            sold_investments=len(by_status("Sold")),
            on_hold_investments=len(by_status("OnHold")),
            active_value=sum(i["current_value"] for i in by_status("Active")),
            sold_value=sum(i["current_value"] for i in by_status("Sold")),
            on_hold_value=sum(i["current_value"] for i in by_status("OnHold"))
        )

    def get_top_performing(self, user_id: str, count: int = 5) -> List[InvestmentPerformanceCard]:
        cards = [_performance_card(i) for i in database.list_investments(user_id=user_id) if i["initial_amount"] > 0]
        cards.sort(key=lambda c: c.gain_loss_percentage, reverse=True)
        return cards[:count]

    def get_worst_performing(self, user_id: str, count: int = 5) -> List[InvestmentPerformanceCard]:
        cards = [_performance_card(i) for i in database.list_investments(user_id=user_id) if i["initial_amount"] > 0]
        cards.sort(key=lambda c: c.gain_loss_percentage)
        return cards[:count]


dashboard_service = DashboardService()
