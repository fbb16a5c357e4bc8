import math
from enum import Enum
from typing import Any, List, Optional
from pydantic import BaseModel, Field


class Role(str, Enum):
    ADMIN = "Admin"
    USER = "User"


class InvestmentType(str, Enum):
    STOCKS = "Stocks"
    BONDS = "Bonds"
    REAL_ESTATE = "RealEstate"
    CRYPTO = "Crypto"
    MUTUAL_FUNDS = "MutualFunds"
    OTHER = "Other"


class InvestmentStatus(str, Enum):
    ACTIVE = "Active"
    SOLD = "Sold"
    ON_HOLD = "OnHold"


class TransactionType(str, Enum):
    BUY = "Buy"
    SELL = "Sell"
    UPDATE = "Update"


class ActivityAction(str, Enum):
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    LOGIN = "Login"
    LOGOUT = "Logout"
    EXPORT = "Export"
    SEED = "Seed"
    ACTIVATE = "Activate"
    DEACTIVATE = "Deactivate"
    PASSWORD_CHANGE = "PasswordChange"


class EntityType(str, Enum):
    USER = "User"
    PORTFOLIO = "Portfolio"
    INVESTMENT = "Investment"
    TRANSACTION = "Transaction"
    REPORT = "Report"


def parse_enum(enum_cls, value: str):
    """Case-insensitive lookup of an enum member by value

    Raises:
        ValueError: if the value matches no member
    """
    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if member.value.lower() == str(value).strip().lower():
            return member
    valid = ", ".join(member.value for member in enum_cls)
    raise ValueError(f"Invalid {enum_cls.__name__} '{value}'. Must be one of: {valid}")


def is_descending(sort_order: Optional[str]) -> bool:
    """Only an explicit 'asc' sorts ascending; missing or unknown orders are descending"""
    return (sort_order or "").strip().lower() != "asc"


class ApiResponse(BaseModel):
    """Standard response envelope"""
    success: bool = True
    message: str = ""
    data: Optional[Any] = None
    errors: Optional[List[str]] = None

    @classmethod
    def ok(cls, data: Any = None, message: str = "Success") -> "ApiResponse":
        return cls(success=True, message=message, data=data)

    @classmethod
    def error(cls, message: str, errors: Optional[List[str]] = None) -> "ApiResponse":
        return cls(success=False, message=message, errors=errors)


class PagedResponse(BaseModel):
    """Paged list envelope"""
    success: bool = True
    message: str = "Data retrieved successfully"
    data: List[Any] = Field(default_factory=list)
    page: int
    page_size: int
    total_count: int
    total_pages: int
    has_previous: bool
    has_next: bool

    @classmethod
    def create(cls, data: List[Any], page: int, page_size: int, total_count: int) -> "PagedResponse":
        total_pages = math.ceil(total_count / page_size) if page_size > 0 else 0
        return cls(
            data=data,
            page=page,
            page_size=page_size,
            total_count=total_count,
            total_pages=total_pages,
            has_previous=page > 1,
            has_next=page < total_pages
        )


def normalize_paging(page: int, page_size: int, max_page_size: int = 100):
    """Clamp paging inputs: page below 1 becomes 1, bad page sizes become 10"""
    if page < 1:
        page = 1
    if page_size < 1 or page_size > max_page_size:
        page_size = 10
    return page, page_size


def paginate(items: List[Any], page: int, page_size: int) -> PagedResponse:
    start = (page - 1) * page_size
    return PagedResponse.create(items[start:start + page_size], page, page_size, len(items))
