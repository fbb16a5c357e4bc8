from .activity_log import activity_log_service
from .portfolios import portfolio_service
from .auth import auth_service
from .users import user_service
from .investments import investment_service
from .transactions import transaction_service
from .dashboard import dashboard_service
from .reports import reports_service
from .admin import admin_service

__all__ = [
    "activity_log_service",
    "portfolio_service",
    "auth_service",
    "user_service",
    "investment_service",
    "transaction_service",
    "dashboard_service",
    "reports_service",
    "admin_service",
]
