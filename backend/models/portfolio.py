from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field


# Portfolios

class PortfolioCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class PortfolioUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class PortfolioDto(BaseModel):
    """Portfolio with totals over its non-deleted investments"""
    id: int
    user_id: str
    name: str
    description: Optional[str] = None
    is_default: bool = False
    total_invested: float = 0.0
    current_value: float = 0.0
    total_investments: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None


class PortfolioSummary(BaseModel):
    """Lightweight portfolio row for pickers"""
    id: int
    name: str
    is_default: bool = False
    investment_count: int = 0
    total_value: float = 0.0


class PortfolioInvestmentSummary(BaseModel):
    id: int
    name: str
    type: str
    status: str
    initial_amount: float
    current_value: float
    gain_loss: float
    gain_loss_percentage: float
    purchase_date: datetime


class PortfolioDetail(BaseModel):
    """Portfolio with breakdowns by type and status"""
    id: int
    user_id: str
    user_name: str = ""
    name: str
    description: Optional[str] = None
    is_default: bool = False
    total_invested: float
    current_value: float
    total_gain_loss: float
    total_gain_loss_percentage: float
    total_investments: int
    active_investments: int
    value_by_type: Dict[str, float] = Field(default_factory=dict)
    count_by_type: Dict[str, int] = Field(default_factory=dict)
    count_by_status: Dict[str, int] = Field(default_factory=dict)
    investments: List[PortfolioInvestmentSummary] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None


class InvestmentPerformance(BaseModel):
    id: int
    name: str
    type: str
    gain_loss: float
    gain_loss_percentage: float


class AssetAllocation(BaseModel):
    type: str
    value: float
    percentage: float
    count: int


class PortfolioStats(BaseModel):
    portfolio_id: int
    portfolio_name: str
    total_invested: float
    current_value: float
    total_gain_loss: float
    total_gain_loss_percentage: float
    total_investments: int
    active_investments: int
    sold_investments: int
    on_hold_investments: int
    best_performing: Optional[InvestmentPerformance] = None
    worst_performing: Optional[InvestmentPerformance] = None
    asset_allocation: List[AssetAllocation] = Field(default_factory=list)


class CanDeleteResult(BaseModel):
    can_delete: bool
    investment_count: int
    reason: Optional[str] = None


# Investments

class InvestmentCreate(BaseModel):
    portfolio_id: Optional[int] = Field(None, description="Falls back to the default portfolio")
    name: str = Field(..., min_length=3, max_length=200)
    type: str = Field(..., description="Stocks, Bonds, RealEstate, Crypto, MutualFunds or Other")
    initial_amount: float = Field(..., ge=0.01)
    quantity: Optional[float] = Field(None, ge=0)
    average_price_per_unit: Optional[float] = Field(None, ge=0)
    purchase_date: datetime
    broker_platform: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)
    status: str = "Active"


class InvestmentUpdate(BaseModel):
    name: str = Field(..., min_length=3, max_length=200)
    type: str
    initial_amount: float = Field(..., ge=0.01)
    quantity: Optional[float] = Field(None, ge=0)
    average_price_per_unit: Optional[float] = Field(None, ge=0)
    purchase_date: datetime
    broker_platform: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)
    status: str


class InvestmentDto(BaseModel):
    id: int
    user_id: str
    portfolio_id: int
    portfolio_name: Optional[str] = None
    name: str
    type: str
    initial_amount: float
    current_value: float
    quantity: Optional[float] = None
    average_price_per_unit: Optional[float] = None
    gain_loss: float
    gain_loss_percentage: float
    purchase_date: datetime
    broker_platform: Optional[str] = None
    notes: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class PerformancePoint(BaseModel):
    date: datetime
    value: float


class TransactionSummary(BaseModel):
    id: int
    type: str
    quantity: float
    price_per_unit: float
    amount: float
    transaction_date: datetime
    notes: Optional[str] = None


class InvestmentDetail(InvestmentDto):
    """Investment with its value history and transactions"""
    performance_history: List[PerformancePoint] = Field(default_factory=list)
    transactions: List[TransactionSummary] = Field(default_factory=list)


class InvestmentSummary(BaseModel):
    id: int
    name: str
    gain_loss: float
    gain_loss_percentage: float


class InvestmentStats(BaseModel):
    total_investments: int
    total_invested: float
    current_value: float
    total_gain_loss: float
    total_gain_loss_percentage: float
    best_performing: Optional[InvestmentSummary] = None
    worst_performing: Optional[InvestmentSummary] = None
    investments_by_type: Dict[str, int] = Field(default_factory=dict)
    value_by_type: Dict[str, float] = Field(default_factory=dict)


class InvestmentIdsRequest(BaseModel):
    investment_ids: List[int] = Field(..., min_length=1)


# Transactions

class TransactionCreate(BaseModel):
    investment_id: int
    type: str = Field(..., description="Buy, Sell or Update")
    quantity: float = Field(..., gt=0)
    price_per_unit: float = Field(..., gt=0)
    transaction_date: datetime
    notes: Optional[str] = Field(None, max_length=1000)


class TransactionPreviewRequest(BaseModel):
    investment_id: int
    type: str
    quantity: float = Field(..., gt=0)
    price_per_unit: float = Field(..., gt=0)


class TransactionPreview(BaseModel):
    """Effect a transaction would have, computed without saving it"""
    investment_name: str
    current_value: float
    transaction_amount: float
    new_total_value: float
    value_change: float
    value_change_percentage: float
    is_valid: bool
    validation_message: Optional[str] = None
    new_quantity: Optional[float] = None
    new_average_price_per_unit: Optional[float] = None


class TransactionDto(BaseModel):
    id: int
    investment_id: int
    investment_name: str = ""
    type: str
    quantity: float
    price_per_unit: float
    amount: float
    transaction_date: datetime
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class InvestmentOption(BaseModel):
    """Investment entry for transaction form dropdowns"""
    id: int
    name: str
    type: str
    current_value: float
    status: str
