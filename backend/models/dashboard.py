"""
Dashboard data models

Summary cards, charts and quick statistics for the signed-in user
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class InvestmentPerformanceCard(BaseModel):
    id: int
    name: str
    type: str
    current_value: float
    initial_amount: float
    gain_loss: float
    gain_loss_percentage: float = Field(..., description="Rounded to 2 decimals")
    status: str
    purchase_date: datetime


class PortfolioSummaryCards(BaseModel):
    total_investment_value: float
    total_invested: float
    total_gain_loss: float
    total_gain_loss_percentage: float
    number_of_active_investments: int
    total_investments: int
    best_performing: Optional[InvestmentPerformanceCard] = None
    worst_performing: Optional[InvestmentPerformanceCard] = None
    total_transactions: int
    last_transaction_date: Optional[datetime] = None
    portfolio_count: int


class RecentTransaction(BaseModel):
    id: int
    investment_id: int
    investment_name: str
    investment_type: str
    type: str
    amount: float
    quantity: float
    price_per_unit: float
    transaction_date: datetime
    notes: Optional[str] = None
    time_ago: str


class PerformanceChartData(BaseModel):
    """Month-end portfolio values for a line chart"""
    labels: List[str] = Field(default_factory=list, description="Month labels, e.g. 'Jan 2024'")
    values: List[float] = Field(default_factory=list)
    invested_values: List[float] = Field(default_factory=list)
    current_value: float = 0.0
    start_value: float = 0.0
    total_growth: float = 0.0
    total_growth_percentage: float = 0.0
    months_covered: int
    period_start: str
    period_end: str


class MonthlyPerformanceSummary(BaseModel):
    month: str
    start_value: float
    end_value: float
    gain_loss: float
    gain_loss_percentage: float
    transaction_count: int


class AssetAllocationItem(BaseModel):
    type: str
    value: float
    percentage: float
    count: int
    color: str


class AssetAllocationData(BaseModel):
    allocations: List[AssetAllocationItem] = Field(default_factory=list)
    total_value: float = 0.0
    total_investments: int = 0


class DashboardQuickStats(BaseModel):
    today_gain_loss: float
    today_gain_loss_percentage: float
    transactions_this_month: int
    investment_growth_this_month: float
    investment_growth_this_month_percentage: float


class PortfolioBreakdown(BaseModel):
    active_investments: int
    sold_investments: int
    on_hold_investments: int
    active_value: float
    sold_value: float
    on_hold_value: float


class UserDashboard(BaseModel):
    summary_cards: PortfolioSummaryCards
    recent_transactions: List[RecentTransaction] = Field(default_factory=list)
    performance_chart: PerformanceChartData
    asset_allocation: AssetAllocationData
    quick_stats: DashboardQuickStats
    generated_at: datetime
