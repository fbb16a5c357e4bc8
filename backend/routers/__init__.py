from . import (
    auth,
    users,
    portfolios,
    investments,
    transactions,
    dashboard,
    reports,
    admin,
    activity_logs,
)

__all__ = [
    "auth",
    "users",
    "portfolios",
    "investments",
    "transactions",
    "dashboard",
    "reports",
    "admin",
    "activity_logs",
]
