"""
Report data models

Performance summaries, distributions, transaction history and
period-over-period comparisons
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class TopPerformerItem(BaseModel):
    name: str
    type: str
    initial_amount: float
    current_value: float
    gain_loss: float
    gain_loss_percentage: float


class PerformanceByTypeItem(BaseModel):
    type: str
    count: int
    total_invested: float
    current_value: float
    gain_loss: float
    gain_loss_percentage: float


class MonthlyTrendItem(BaseModel):
    month: str
    value: float
    invested_amount: float
    gain_loss: float
    gain_loss_percentage: float


class PerformanceSummaryReport(BaseModel):
    report_title: str = "Performance Summary Report"
    generated_at: datetime
    period_start: str
    period_end: str
    total_invested: float
    current_value: float
    total_gain_loss: float
    total_gain_loss_percentage: float
    total_investments: int
    active_investments: int
    sold_investments: int
    on_hold_investments: int
    total_transactions: int
    total_buy_volume: float
    total_sell_volume: float
    top_performers: List[TopPerformerItem] = Field(default_factory=list)
    worst_performers: List[TopPerformerItem] = Field(default_factory=list)
    performance_by_type: List[PerformanceByTypeItem] = Field(default_factory=list)
    monthly_trend: List[MonthlyTrendItem] = Field(default_factory=list)


class DistributionItem(BaseModel):
    category: str
    count: int
    value: float
    percentage: float
    color: str


class InvestmentSizeRange(BaseModel):
    range: str
    count: int
    total_value: float


class InvestmentDetailItem(BaseModel):
    name: str
    type: str
    status: str
    initial_amount: float
    current_value: float
    gain_loss: float
    gain_loss_percentage: float
    purchase_date: datetime


class InvestmentDistributionReport(BaseModel):
    report_title: str = "Investment Distribution Report"
    generated_at: datetime
    total_portfolio_value: float
    total_investments: int
    distribution_by_type: List[DistributionItem] = Field(default_factory=list)
    distribution_by_status: List[DistributionItem] = Field(default_factory=list)
    investment_size_distribution: List[InvestmentSizeRange] = Field(default_factory=list)
    investments: List[InvestmentDetailItem] = Field(default_factory=list)


class TransactionsByTypeItem(BaseModel):
    type: str
    count: int
    volume: float
    percentage: float


class TransactionsByMonthItem(BaseModel):
    month: str
    count: int
    volume: float


class TransactionDetailItem(BaseModel):
    date: datetime
    investment_name: str
    investment_type: str
    transaction_type: str
    quantity: float
    price_per_unit: float
    amount: float
    notes: Optional[str] = None


class TransactionHistoryReport(BaseModel):
    report_title: str = "Transaction History Report"
    generated_at: datetime
    period_start: str
    period_end: str
    total_transactions: int
    total_volume: float
    buy_transactions: int
    buy_volume: float
    sell_transactions: int
    sell_volume: float
    update_transactions: int
    transactions_by_type: List[TransactionsByTypeItem] = Field(default_factory=list)
    transactions_by_month: List[TransactionsByMonthItem] = Field(default_factory=list)
    transactions: List[TransactionDetailItem] = Field(default_factory=list)


class MonthPerformanceItem(BaseModel):
    month: str
    start_value: float
    end_value: float
    growth: float
    growth_percentage: float
    transaction_count: int
    transaction_volume: float


class MonthlyPerformanceTrendReport(BaseModel):
    report_title: str = "Monthly Performance Trend Report"
    generated_at: datetime
    months_covered: int
    starting_value: float
    ending_value: float
    total_growth: float
    total_growth_percentage: float
    best_month: Optional[MonthPerformanceItem] = None
    worst_month: Optional[MonthPerformanceItem] = None
    average_monthly_growth: float
    average_monthly_growth_percentage: float
    monthly_data: List[MonthPerformanceItem] = Field(default_factory=list)
    chart_labels: List[str] = Field(default_factory=list)
    chart_values: List[float] = Field(default_factory=list)
    chart_invested_values: List[float] = Field(default_factory=list)


class YearSummaryItem(BaseModel):
    year: int
    starting_value: float
    ending_value: float
    total_invested: float
    growth: float
    growth_percentage: float
    total_transactions: int
    transaction_volume: float
    new_investments: int


class YearOverYearGrowthItem(BaseModel):
    comparison: str = Field(..., description="e.g. '2024 vs 2023'")
    growth_difference: float
    growth_difference_percentage: float
    transaction_count_difference: int


class YearOverYearReport(BaseModel):
    report_title: str = "Year-over-Year Report"
    generated_at: datetime
    years_covered: List[int] = Field(default_factory=list)
    yearly_summaries: List[YearSummaryItem] = Field(default_factory=list)
    year_over_year_growth: List[YearOverYearGrowthItem] = Field(default_factory=list)
    best_year: Optional[YearSummaryItem] = None
    worst_year: Optional[YearSummaryItem] = None
    chart_labels: List[str] = Field(default_factory=list)
    chart_ending_values: List[float] = Field(default_factory=list)
    chart_growth_percentages: List[float] = Field(default_factory=list)


class TopInvestmentItem(BaseModel):
    rank: int
    name: str
    type: str
    status: str
    initial_amount: float
    current_value: float
    gain_loss: float
    gain_loss_percentage: float
    purchase_date: datetime
    days_held: int
    annualized_return: float


class TypePerformanceSummary(BaseModel):
    type: str
    count: int
    average_gain_loss_percentage: float
    best_performance_percentage: float
    worst_performance_percentage: float


class TopPerformingInvestmentsReport(BaseModel):
    report_title: str = "Top Performing Investments Report"
    generated_at: datetime
    period_start: str
    period_end: str
    total_investments_analyzed: int
    top_by_percentage: List[TopInvestmentItem] = Field(default_factory=list)
    top_by_absolute_gain: List[TopInvestmentItem] = Field(default_factory=list)
    top_by_value: List[TopInvestmentItem] = Field(default_factory=list)
    type_performance_summaries: List[TypePerformanceSummary] = Field(default_factory=list)
