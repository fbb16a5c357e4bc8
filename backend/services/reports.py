"""
Report generation service

Builds the performance, distribution, transaction history, monthly trend,
year-over-year and top performer reports for a single user.
"""

import math
import pandas as pd
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
import logging

import database
from models.reports import (
    PerformanceSummaryReport, TopPerformerItem, PerformanceByTypeItem, MonthlyTrendItem,
    InvestmentDistributionReport, DistributionItem, InvestmentSizeRange, InvestmentDetailItem,
    TransactionHistoryReport, TransactionsByTypeItem, TransactionsByMonthItem, TransactionDetailItem,
    MonthlyPerformanceTrendReport, MonthPerformanceItem,
    YearOverYearReport, YearSummaryItem, YearOverYearGrowthItem,
    TopPerformingInvestmentsReport, TopInvestmentItem, TypePerformanceSummary
)
from models.common import ActivityAction, EntityType
from services import valuation
from services.activity_log import activity_log_service
from services.csv_export import csv_exporter
from services.report_export import report_exporter
from services.valuation import (
    gain_loss, gain_loss_percentage, percentage, TYPE_COLORS, STATUS_COLORS
)

logger = logging.getLogger(__name__)

REPORT_TYPES = ["performance", "distribution", "transactions", "monthly", "yearOverYear", "topPerforming"]

PRESET_RANGES = [
    {"value": "last7days", "label": "Last 7 Days"},
    {"value": "last30days", "label": "Last 30 Days"},
    {"value": "last3months", "label": "Last 3 Months"},
    {"value": "last6months", "label": "Last 6 Months"},
    {"value": "last12months", "label": "Last 12 Months"},
    {"value": "thisyear", "label": "This Year"},
    {"value": "lastyear", "label": "Last Year"},
    {"value": "alltime", "label": "All Time"},
]

SIZE_BUCKETS = [
    ("< $1,000", 0.0, 1000.0),
    ("$1,000 - $5,000", 1000.0, 5000.0),
    ("$5,000 - $10,000", 5000.0, 10000.0),
    ("$10,000 - $50,000", 10000.0, 50000.0),
    ("$50,000+", 50000.0, float("inf")),
]


def parse_preset_range(preset: Optional[str], now: datetime) -> Tuple[Optional[datetime], datetime]:
    """
    Resolve a preset name into (start, end)

    Unknown names and 'alltime' give no lower bound.
    """
    key = (preset or "").strip().lower()
    end = now
    if key == "last7days":
        start = now - timedelta(days=7)
    elif key == "last30days":
        start = now - timedelta(days=30)
    elif key == "last3months":
        start = valuation.months_ago(now, 3)
    elif key == "last6months":
        start = valuation.months_ago(now, 6)
    elif key == "last12months":
        start = valuation.months_ago(now, 12)
    elif key == "thisyear":
        start = datetime(now.year, 1, 1)
    elif key == "lastyear":
        start = datetime(now.year - 1, 1, 1)
        end = valuation.end_of_day(datetime(now.year - 1, 12, 31))
    else:
        start = None
    return start, end


def _period_labels(start: Optional[datetime], end: Optional[datetime], now: datetime) -> Tuple[str, str]:
    period_start = start.strftime("%b %d, %Y") if start else "Beginning"
    period_end = (end or now).strftime("%b %d, %Y")
    return period_start, period_end


def _top_performer(investment: Dict) -> TopPerformerItem:
    return TopPerformerItem(
        name=investment["name"],
        type=investment["type"],
        initial_amount=investment["initial_amount"],
        current_value=investment["current_value"],
        gain_loss=gain_loss(investment),
        gain_loss_percentage=gain_loss_percentage(investment, 2)
    )


def _annualized_return(investment: Dict, days_held: int) -> float:
    """
    Compound yearly return in percent

    Holdings too short-lived for the growth to be expressed as a float
    report 0.
    """
    years = days_held / 365.0
    if years <= 0 or investment["initial_amount"] <= 0:
        return 0.0
    ratio = investment["current_value"] / investment["initial_amount"]
    if ratio <= 0:
        return -100.0
    try:
        annualized = math.exp(math.log(ratio) / years) - 1
    except OverflowError:
        logger.info(f"Annualized return out of range for {investment['name']} ({days_held} days held)")
        return 0.0
    return round(annualized, 4) * 100


class ReportsService:
    """Per-user investment reports"""

    def _load(self, user_id: str):
        return database.list_investments(user_id=user_id), database.list_transactions(user_id=user_id)

    def _monthly_trend(self, investments: List[Dict], transactions: List[Dict], months: int,
                       now: datetime) -> List[MonthlyTrendItem]:
        trend = []
        for month_start, month_end in valuation.month_windows(months, now):
            value = valuation.value_at(investments, transactions, month_end)
            invested = valuation.invested_at(investments, month_end)
            trend.append(MonthlyTrendItem(
                month=valuation.month_label(month_start),
                value=value,
                invested_amount=invested,
                gain_loss=value - invested,
                gain_loss_percentage=percentage(value - invested, invested)
            ))
        return trend

    def _performance_by_type(self, investments: List[Dict]) -> List[PerformanceByTypeItem]:
        if not investments:
            return []
        df = pd.DataFrame(investments, columns=["type", "initial_amount", "current_value"])
        grouped = df.groupby("type").agg(
            n=("current_value", "count"),
            invested=("initial_amount", "sum"),
            current=("current_value", "sum"),
        ).reset_index()

        items = []
        for row in grouped.to_dict("records"):
            invested = float(row["invested"])
            current = float(row["current"])
            items.append(PerformanceByTypeItem(
                type=row["type"],
                count=int(row["n"]),
                total_invested=invested,
                current_value=current,
                gain_loss=current - invested,
                gain_loss_percentage=percentage(current - invested, invested)
            ))
        items.sort(key=lambda p: p.gain_loss_percentage, reverse=True)
        return items

    def performance_summary(self, user_id: str, start_date: Optional[datetime] = None,
                            end_date: Optional[datetime] = None,
                            now: Optional[datetime] = None) -> PerformanceSummaryReport:
        """
        Overall performance, optionally restricted to a date range

        When a bound is given, investments are filtered by purchase date and
        transactions by transaction date.
        """
        now = now or database.utcnow()
        start_date, end_date = database.to_naive_utc(start_date), database.to_naive_utc(end_date)
        investments, transactions = self._load(user_id)
        investments = valuation.filter_by_date(investments, "purchase_date", start_date, end_date, now)
        transactions = valuation.filter_by_date(transactions, "transaction_date", start_date, end_date, now)

        total_invested = sum(i["initial_amount"] for i in investments)
        current_value = sum(i["current_value"] for i in investments)
        total_gain_loss = current_value - total_invested

        ranked = sorted(
            (i for i in investments if i["initial_amount"] > 0),
            key=lambda i: gain_loss_percentage(i),
            reverse=True
        )
        period_start, period_end = _period_labels(start_date, end_date, now)

        return PerformanceSummaryReport(
            generated_at=now,
            period_start=period_start,
            period_end=period_end,
            total_invested=total_invested,
            current_value=current_value,
            total_gain_loss=total_gain_loss,
            total_gain_loss_percentage=percentage(total_gain_loss, total_invested),
            total_investments=len(investments),
            active_investments=sum(1 for i in investments if i["status"] == "Active"),
            sold_investments=sum(1 for i in investments if i["status"] == "Sold"),
            on_hold_investments=sum(1 for i in investments if i["status"] == "OnHold"),
            total_transactions=len(transactions),
            total_buy_volume=sum(t["amount"] for t in transactions if t["type"] == "Buy"),
            total_sell_volume=sum(t["amount"] for t in transactions if t["type"] == "Sell"),
            top_performers=[_top_performer(i) for i in ranked[:5]],
            worst_performers=[_top_performer(i) for i in list(reversed(ranked))[:5]],
            performance_by_type=self._performance_by_type(investments),
            monthly_trend=self._monthly_trend(investments, transactions, 6, now)
        )

    def investment_distribution(self, user_id: str, now: Optional[datetime] = None) -> InvestmentDistributionReport:
        now = now or database.utcnow()
        investments = database.list_investments(user_id=user_id)
        total_value = sum(i["current_value"] for i in investments)

        def distribution(field: str, colors: Dict[str, str]) -> List[DistributionItem]:
            groups: Dict[str, List[Dict]] = {}
            for i in investments:
                groups.setdefault(i[field], []).append(i)
            items = []
            for category, members in groups.items():
                value = sum(i["current_value"] for i in members)
                items.append(DistributionItem(
                    category=category,
                    count=len(members),
                    value=value,
                    percentage=percentage(value, total_value),
                    color=colors.get(category, "#6b7280")
                ))
            return items

        by_type = sorted(distribution("type", TYPE_COLORS), key=lambda d: d.value, reverse=True)
        by_status = sorted(distribution("status", STATUS_COLORS), key=lambda d: d.count, reverse=True)

        sizes = []
        for label, low, high in SIZE_BUCKETS:
            members = [
                i for i in investments
                if (low == 0.0 or i["current_value"] >= low) and i["current_value"] < high
            ]
            sizes.append(InvestmentSizeRange(
                range=label,
                count=len(members),
                total_value=sum(i["current_value"] for i in members)
            ))

        details = [
            InvestmentDetailItem(
                name=i["name"],
                type=i["type"],
                status=i["status"],
                initial_amount=i["initial_amount"],
                current_value=i["current_value"],
                gain_loss=gain_loss(i),
                gain_loss_percentage=gain_loss_percentage(i, 2),
                purchase_date=i["purchase_date"]
            )
            for i in sorted(investments, key=lambda i: i["current_value"], reverse=True)
        ]

        return InvestmentDistributionReport(
            generated_at=now,
            total_portfolio_value=total_value,
            total_investments=len(investments),
            distribution_by_type=by_type,
            distribution_by_status=by_status,
            investment_size_distribution=sizes,
            investments=details
        )

    def transaction_history(self, user_id: str, start_date: Optional[datetime] = None,
                            end_date: Optional[datetime] = None,
                            now: Optional[datetime] = None) -> TransactionHistoryReport:
        now = now or database.utcnow()
        start_date, end_date = database.to_naive_utc(start_date), database.to_naive_utc(end_date)
        transactions = valuation.filter_by_date(
            database.list_transactions(user_id=user_id), "transaction_date", start_date, end_date, now
        )
        total_volume = sum(t["amount"] for t in transactions)

        by_type = []
        for type_name in ("Buy", "Sell", "Update"):
            members = [t for t in transactions if t["type"] == type_name]
            volume = sum(t["amount"] for t in members)
            by_type.append(TransactionsByTypeItem(
                type=type_name,
                count=len(members),
                volume=volume,
                percentage=percentage(volume, total_volume)
            ))

        by_month = []
        if transactions:
            df = pd.DataFrame(transactions, columns=["transaction_date", "amount"])
            df["month"] = pd.to_datetime(df["transaction_date"]).dt.to_period("M")
            monthly = df.groupby("month").agg(n=("amount", "count"), volume=("amount", "sum"))
            for period, row in monthly.sort_index(ascending=False).iterrows():
                by_month.append(TransactionsByMonthItem(
                    month=period.strftime("%b %Y"),
                    count=int(row["n"]),
                    volume=float(row["volume"])
                ))

        details = [
            TransactionDetailItem(
                date=t["transaction_date"],
                investment_name=t.get("investment_name") or "Unknown",
                investment_type=t.get("investment_type") or "Unknown",
                transaction_type=t["type"],
                quantity=t["quantity"],
                price_per_unit=t["price_per_unit"],
                amount=t["amount"],
                notes=t.get("notes")
            )
            for t in sorted(transactions, key=lambda t: t["transaction_date"], reverse=True)
        ]

        period_start, period_end = _period_labels(start_date, end_date, now)
        return TransactionHistoryReport(
            generated_at=now,
            period_start=period_start,
            period_end=period_end,
            total_transactions=len(transactions),
            total_volume=total_volume,
            buy_transactions=by_type[0].count,
            buy_volume=by_type[0].volume,
            sell_transactions=by_type[1].count,
            sell_volume=by_type[1].volume,
            update_transactions=by_type[2].count,
            transactions_by_type=by_type,
            transactions_by_month=by_month,
            transactions=details
        )

    def monthly_performance_trend(self, user_id: str, months: int = 12,
                                  now: Optional[datetime] = None) -> MonthlyPerformanceTrendReport:
        now = now or database.utcnow()
        investments, transactions = self._load(user_id)

        monthly, labels, values, invested = [], [], [], []
        for month_start, month_end in valuation.month_windows(months, now):
            start_value = valuation.value_at(investments, transactions, valuation.previous_day_end(month_start))
            end_value = valuation.value_at(investments, transactions, month_end)
            month_txns = [t for t in transactions if month_start <= t["transaction_date"] <= month_end]
            label = valuation.month_label(month_start)

            monthly.append(MonthPerformanceItem(
                month=label,
                start_value=start_value,
                end_value=end_value,
                growth=end_value - start_value,
                growth_percentage=percentage(end_value - start_value, start_value),
                transaction_count=len(month_txns),
                transaction_volume=sum(t["amount"] for t in month_txns)
            ))
            labels.append(label)
            values.append(end_value)
            invested.append(valuation.invested_at(investments, month_end))

        starting_value = monthly[0].start_value if monthly else 0.0
        ending_value = monthly[-1].end_value if monthly else 0.0
        total_growth = ending_value - starting_value

        return MonthlyPerformanceTrendReport(
            generated_at=now,
            months_covered=months,
            starting_value=starting_value,
            ending_value=ending_value,
            total_growth=total_growth,
            total_growth_percentage=percentage(total_growth, starting_value),
            best_month=max(monthly, key=lambda m: m.growth_percentage) if monthly else None,
            worst_month=min(monthly, key=lambda m: m.growth_percentage) if monthly else None,
            average_monthly_growth=sum(m.growth for m in monthly) / len(monthly) if monthly else 0.0,
            average_monthly_growth_percentage=round(
                sum(m.growth_percentage for m in monthly) / len(monthly), 2
            ) if monthly else 0.0,
            monthly_data=monthly,
            chart_labels=labels,
            chart_values=values,
            chart_invested_values=invested
        )

    def year_over_year(self, user_id: str, now: Optional[datetime] = None) -> YearOverYearReport:
        """
        Calendar-year summaries from the first purchase year to the current year

        A year's starting value is the portfolio value at the end of the
        previous year; its ending value is the value at Dec 31.
        """
        now = now or database.utcnow()
        investments, transactions = self._load(user_id)

        first_year = min((i["purchase_date"].year for i in investments), default=now.year)
        years = list(range(first_year, now.year + 1))

        summaries = []
        for year in years:
            year_end = valuation.end_of_day(datetime(year, 12, 31))
            prior_year_end = valuation.end_of_day(datetime(year - 1, 12, 31))
            start_value = valuation.value_at(investments, transactions, prior_year_end)
            end_value = valuation.value_at(investments, transactions, year_end)
            year_txns = [t for t in transactions if t["transaction_date"].year == year]

            summaries.append(YearSummaryItem(
                year=year,
                starting_value=start_value,
                ending_value=end_value,
                total_invested=valuation.invested_at(investments, year_end),
                growth=end_value - start_value,
                growth_percentage=percentage(end_value - start_value, start_value),
                total_transactions=len(year_txns),
                transaction_volume=sum(t["amount"] for t in year_txns),
                new_investments=sum(1 for i in investments if i["purchase_date"].year == year)
            ))

        comparisons = []
        for previous, current in zip(summaries, summaries[1:]):
            difference = current.growth - previous.growth
            comparisons.append(YearOverYearGrowthItem(
                comparison=f"{current.year} vs {previous.year}",
                growth_difference=difference,
                growth_difference_percentage=round(difference / abs(previous.growth) * 100, 2)
                if previous.growth != 0 else 0.0,
                transaction_count_difference=current.total_transactions - previous.total_transactions
            ))

        return YearOverYearReport(
            generated_at=now,
            years_covered=years,
            yearly_summaries=summaries,
            year_over_year_growth=comparisons,
            best_year=max(summaries, key=lambda y: y.growth_percentage) if summaries else None,
            worst_year=min(summaries, key=lambda y: y.growth_percentage) if summaries else None,
            chart_labels=[str(y) for y in years],
            chart_ending_values=[s.ending_value for s in summaries],
            chart_growth_percentages=[s.growth_percentage for s in summaries]
        )

    def top_performing(self, user_id: str, start_date: Optional[datetime] = None,
                       end_date: Optional[datetime] = None, top_count: int = 10,
                       now: Optional[datetime] = None) -> TopPerformingInvestmentsReport:
        now = now or database.utcnow()
        start_date, end_date = database.to_naive_utc(start_date), database.to_naive_utc(end_date)
        investments = valuation.filter_by_date(
            database.list_investments(user_id=user_id), "purchase_date", start_date, end_date, now
        )

        def item(i: Dict) -> TopInvestmentItem:
            days_held = valuation.days_between(i["purchase_date"], now)
            return TopInvestmentItem(
                rank=0,
                name=i["name"],
                type=i["type"],
                status=i["status"],
                initial_amount=i["initial_amount"],
                current_value=i["current_value"],
                gain_loss=gain_loss(i),
                gain_loss_percentage=gain_loss_percentage(i, 2),
                purchase_date=i["purchase_date"],
                days_held=days_held,
                annualized_return=_annualized_return(i, days_held)
            )

        def ranked(items: List[TopInvestmentItem], key) -> List[TopInvestmentItem]:
            top = sorted(items, key=key, reverse=True)[:top_count]
            for position, entry in enumerate(top, start=1):
                entry.rank = position
            return top

        with_cost = [i for i in investments if i["initial_amount"] > 0]

        type_summaries = []
        if with_cost:
            df = pd.DataFrame({
                "type": [i["type"] for i in with_cost],
                "pct": [gain_loss_percentage(i) for i in with_cost],
            })
            stats = df.groupby("type")["pct"].agg(["count", "mean", "max", "min"])
            for type_name, row in stats.iterrows():
                type_summaries.append(TypePerformanceSummary(
                    type=type_name,
                    count=int(row["count"]),
                    average_gain_loss_percentage=round(float(row["mean"]), 2),
                    best_performance_percentage=round(float(row["max"]), 2),
                    worst_performance_percentage=round(float(row["min"]), 2)
                ))
            type_summaries.sort(key=lambda t: t.average_gain_loss_percentage, reverse=True)

        period_start, period_end = _period_labels(start_date, end_date, now)
        return TopPerformingInvestmentsReport(
            generated_at=now,
            period_start=period_start,
            period_end=period_end,
            total_investments_analyzed=len(investments),
            top_by_percentage=ranked([item(i) for i in with_cost], lambda x: x.gain_loss_percentage),
            top_by_absolute_gain=ranked([item(i) for i in with_cost], lambda x: x.gain_loss),
            top_by_value=ranked([item(i) for i in investments], lambda x: x.current_value),
            type_performance_summaries=type_summaries
        )

    def generate(self, user_id: str, report_type: str, start_date: Optional[datetime] = None,
                 end_date: Optional[datetime] = None, now: Optional[datetime] = None):
        """Build a report by type name; None for unsupported types"""
        kind = (report_type or "").lower()
        if kind == "performance":
            return self.performance_summary(user_id, start_date, end_date, now)
        if kind == "distribution":
            return self.investment_distribution(user_id, now)
        if kind == "transactions":
            return self.transaction_history(user_id, start_date, end_date, now)
        if kind == "monthly":
            return self.monthly_performance_trend(user_id, 12, now)
        if kind == "yearoveryear":
            return self.year_over_year(user_id, now)
        if kind == "topperforming":
            return self.top_performing(user_id, start_date, end_date, 10, now)
        return None

    def _log_export(self, user_id: str, report_type: str, export_format: str) -> None:
        activity_log_service.log_activity(
            user_id, ActivityAction.EXPORT, EntityType.REPORT, None,
            f"Exported {report_type} report as {export_format}"
        )

    def export_csv(self, user_id: str, report_type: str, start_date: Optional[datetime] = None,
                   end_date: Optional[datetime] = None) -> str:
        kind = (report_type or "").lower()
        report = self.generate(user_id, kind, start_date, end_date) if kind in ("performance", "transactions") else None
        content = csv_exporter.export_report(kind, report)
        self._log_export(user_id, report_type, "CSV")
        return content

    def export_json(self, user_id: str, report_type: str, start_date: Optional[datetime] = None,
                    end_date: Optional[datetime] = None) -> str:
        content = report_exporter.to_json(self.generate(user_id, report_type, start_date, end_date))
        self._log_export(user_id, report_type, "JSON")
        return content

    def export_pdf(self, user_id: str, report_type: str, start_date: Optional[datetime] = None,
                   end_date: Optional[datetime] = None) -> Dict:
        now = database.utcnow()
        report = self.generate(user_id, report_type, start_date, end_date, now)
        date_range = None
        if start_date is not None or end_date is not None:
            date_range = {
                "start": start_date.isoformat() if start_date else None,
                "end": end_date.isoformat() if end_date else None,
            }
        descriptor = report_exporter.to_pdf_descriptor(report_type, report, user_id, now, date_range)
        self._log_export(user_id, report_type, "PDF")
        return descriptor

    def export_html(self, user_id: str, report_type: str, start_date: Optional[datetime] = None,
                    end_date: Optional[datetime] = None) -> str:
        content = report_exporter.to_html(self.generate(user_id, report_type, start_date, end_date))
        self._log_export(user_id, report_type, "HTML")
        return content

    @staticmethod
    def available_types() -> List[str]:
        return list(REPORT_TYPES)

    @staticmethod
    def preset_ranges() -> List[Dict[str, str]]:
        return [dict(r) for r in PRESET_RANGES]


reports_service = ReportsService()
