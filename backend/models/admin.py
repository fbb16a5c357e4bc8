from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class SystemStatistics(BaseModel):
    total_users: int
    active_users: int
    inactive_users: int
    total_portfolios: int
    total_investments_value: float
    total_investments: int
    active_transactions_today: int
    total_transactions_today: int
    transaction_volume_today: float
    total_transactions: int
    new_users_this_week: int
    new_users_this_month: int
    investment_growth_percentage: float = 0.0


class RecentActivity(BaseModel):
    id: int
    user_id: str
    user_name: str
    user_email: str
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    details: Optional[str] = None
    created_at: datetime
    time_ago: str


class UserSummary(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    portfolio_count: int
    investment_count: int
    total_investment_value: float
    created_at: datetime
    member_since: str


class AdminDashboard(BaseModel):
    statistics: SystemStatistics
    recent_activities: List[RecentActivity] = Field(default_factory=list)
    recent_users: List[UserSummary] = Field(default_factory=list)
    generated_at: datetime


class UserManagement(BaseModel):
    """User row in the admin search grid"""
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    is_deleted: bool
    email_confirmed: bool
    portfolio_count: int
    investment_count: int
    transaction_count: int
    total_investment_value: float
    total_gain_loss: float
    created_at: datetime
    updated_at: Optional[datetime] = None


class AdminPortfolioSummary(BaseModel):
    id: int
    name: str
    investment_count: int
    total_value: float
    created_at: datetime


class UserDetail(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    is_deleted: bool
    email_confirmed: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    portfolios: List[AdminPortfolioSummary] = Field(default_factory=list)
    total_investments: int
    total_invested: float
    current_value: float
    total_gain_loss: float
    gain_loss_percentage: float
    total_transactions: int
    last_transaction_date: Optional[datetime] = None
    recent_activities: List[RecentActivity] = Field(default_factory=list)


class UserStats(BaseModel):
    user_id: str
    portfolio_count: int
    investment_count: int
    active_investment_count: int
    transaction_count: int
    total_invested: float
    current_value: float
    total_gain_loss: float
    gain_loss_percentage: float


class BulkUserAction(BaseModel):
    user_ids: List[str] = Field(..., min_length=1)
    action: Optional[str] = None


class BulkActionResult(BaseModel):
    action: str
    requested: int
    affected: int


class ActivityLogDto(BaseModel):
    id: int
    user_id: str
    user_name: str
    user_email: str
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    details: Optional[str] = None
    created_at: datetime
