from .common import (
    Role,
    InvestmentType,
    InvestmentStatus,
    TransactionType,
    ActivityAction,
    EntityType,
    ApiResponse,
    PagedResponse,
    parse_enum,
)
from .auth import AuthResponse, CurrentUser, UserDto
from .portfolio import (
    PortfolioDto,
    PortfolioDetail,
    PortfolioStats,
    InvestmentDto,
    InvestmentDetail,
    InvestmentStats,
    TransactionDto,
)

__all__ = [
    "Role",
    "InvestmentType",
    "InvestmentStatus",
    "TransactionType",
    "ActivityAction",
    "EntityType",
    "ApiResponse",
    "PagedResponse",
    "parse_enum",
    "AuthResponse",
    "CurrentUser",
    "UserDto",
    "PortfolioDto",
    "PortfolioDetail",
    "PortfolioStats",
    "InvestmentDto",
    "InvestmentDetail",
    "InvestmentStats",
    "TransactionDto",
]
