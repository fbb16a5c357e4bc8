"""
Administration service

System statistics, user search and user lifecycle actions for admins.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional
import logging

import database
from models.admin import (
    SystemStatistics, UserSummary, AdminDashboard, UserManagement, AdminPortfolioSummary,
    UserDetail, UserStats, BulkActionResult
)
from models.auth import CurrentUser
from models.common import ActivityAction, EntityType, PagedResponse, is_descending, parse_enum, Role
from services.activity_log import activity_log_service
from services.exceptions import NotFoundError, InvalidOperationError
from services.valuation import percentage

logger = logging.getLogger(__name__)

USER_SORT_KEYS = {
    "email": lambda u: u["email"].lower(),
    "lastname": lambda u: u["last_name"].lower(),
    "investmentvalue": lambda u: u["total_investment_value"],
    "createdat": lambda u: u["created_at"],
}


def _member_since(created_at: datetime, now: datetime) -> str:
    days = (now - created_at).days
    if days < 1:
        return "Today"
    if days < 30:
        return f"{days} day{'s' if days != 1 else ''}"
    if days < 365:
        months = days // 30
        return f"{months} month{'s' if months != 1 else ''}"
    years = days // 365
    return f"{years} year{'s' if years != 1 else ''}"


class AdminService:
    """Cross-user views and user management"""

    def _holdings_by_user(self) -> Dict[str, Dict]:
        """Per-user portfolio, investment and transaction totals"""
        totals = defaultdict(lambda: {
            "portfolio_count": 0, "investment_count": 0, "active_investment_count": 0,
            "transaction_count": 0, "total_invested": 0.0, "current_value": 0.0,
        })
        for p in database.list_portfolios():
            totals[p["user_id"]]["portfolio_count"] += 1
        for i in database.list_investments():
            entry = totals[i["user_id"]]
            entry["investment_count"] += 1
            entry["active_investment_count"] += 1 if i["status"] == "Active" else 0
            entry["total_invested"] += i["initial_amount"]
            entry["current_value"] += i["current_value"]
        for t in database.list_transactions():
            totals[t["user_id"]]["transaction_count"] += 1
        return totals

    def _get_user(self, user_id: str) -> Dict:
        user = database.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def get_dashboard(self) -> AdminDashboard:
        return AdminDashboard(
            statistics=self.get_statistics(),
            recent_activities=activity_log_service.get_recent(20),
            recent_users=self.get_recent_users(10),
            generated_at=database.utcnow()
        )

    def get_statistics(self, now: Optional[datetime] = None) -> SystemStatistics:
        """
        System-wide counts and today's transaction activity

        Growth is not tracked historically, so investment_growth_percentage
        stays at 0.
        """
        now = now or database.utcnow()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        tomorrow = today + timedelta(days=1)
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)

        users = database.list_users()
        investments = database.list_investments()
        transactions = database.list_transactions()
        today_txns = [t for t in transactions if today <= t["transaction_date"] < tomorrow]
        active_users = sum(1 for u in users if u["is_active"])

        return SystemStatistics(
            total_users=len(users),
            active_users=active_users,
            inactive_users=len(users) - active_users,
            total_portfolios=database.count_portfolios(),
            total_investments_value=sum(i["current_value"] for i in investments),
            total_investments=len(investments),
            active_transactions_today=len(today_txns),
            total_transactions_today=len(today_txns),
            transaction_volume_today=sum(t["amount"] for t in today_txns),
            total_transactions=len(transactions),
            new_users_this_week=sum(1 for u in users if u["created_at"] >= week_ago),
            new_users_this_month=sum(1 for u in users if u["created_at"] >= month_ago)
        )

    def get_recent_users(self, count: int = 10) -> List[UserSummary]:
        now = database.utcnow()
        holdings = self._holdings_by_user()
        return [
            UserSummary(
                id=u["id"],
                email=u["email"],
                first_name=u["first_name"],
                last_name=u["last_name"],
                role=u["role"],
                is_active=u["is_active"],
                portfolio_count=holdings[u["id"]]["portfolio_count"],
                investment_count=holdings[u["id"]]["investment_count"],
                total_investment_value=holdings[u["id"]]["current_value"],
                created_at=u["created_at"],
                member_since=_member_since(u["created_at"], now)
            )
            for u in database.list_users()[:count]
        ]

    def search_users(self, search_term: Optional[str] = None, is_active: Optional[bool] = None,
                     role: Optional[str] = None, registered_after: Optional[datetime] = None,
                     registered_before: Optional[datetime] = None, sort_by: Optional[str] = None,
                     sort_order: Optional[str] = "desc", page: int = 1, page_size: int = 10) -> PagedResponse:
        """
        Filtered, sorted and paged user grid

        Args:
            search_term: Case-insensitive match on email, first or last name
            is_active: Only active or only inactive users
            role: Admin or User
            registered_after: Lower bound on created_at
            registered_before: Upper bound on created_at
            sort_by: email, lastname, investmentvalue or createdat
            sort_order: asc or desc
            page: 1-based page number
            page_size: Rows per page

        Returns:
            PagedResponse of UserManagement
        """
        holdings = self._holdings_by_user()
        rows = []
        for u in database.list_users():
            h = holdings[u["id"]]
            rows.append({**u, **h, "total_investment_value": h["current_value"]})

        registered_after = database.to_naive_utc(registered_after)
        registered_before = database.to_naive_utc(registered_before)
        if search_term and search_term.strip():
            needle = search_term.strip().lower()
            rows = [
                r for r in rows
                if needle in r["email"].lower()
                or needle in r["first_name"].lower()
                or needle in r["last_name"].lower()
            ]
        if is_active is not None:
            rows = [r for r in rows if r["is_active"] == is_active]
        if role and role.strip():
            role_value = parse_enum(Role, role).value
            rows = [r for r in rows if r["role"] == role_value]
        if registered_after is not None:
            rows = [r for r in rows if r["created_at"] >= registered_after]
        if registered_before is not None:
            rows = [r for r in rows if r["created_at"] <= registered_before]

        key = USER_SORT_KEYS.get((sort_by or "").lower())
        if key is None:
            rows.sort(key=lambda r: r["created_at"], reverse=True)
        else:
            rows.sort(key=key, reverse=is_descending(sort_order))

        start = (page - 1) * page_size
        items = [
            UserManagement(
                id=r["id"],
                email=r["email"],
                first_name=r["first_name"],
                last_name=r["last_name"],
                role=r["role"],
                is_active=r["is_active"],
                is_deleted=r["is_deleted"],
                email_confirmed=r["email_confirmed"],
                portfolio_count=r["portfolio_count"],
                investment_count=r["investment_count"],
                transaction_count=r["transaction_count"],
                total_investment_value=r["current_value"],
                total_gain_loss=r["current_value"] - r["total_invested"],
                created_at=r["created_at"],
                updated_at=r.get("updated_at")
            )
            for r in rows[start:start + page_size]
        ]
        return PagedResponse.create(items, page, page_size, len(rows))

    def get_user_detail(self, user_id: str) -> UserDetail:
        user = self._get_user(user_id)
        investments = database.list_investments(user_id=user_id)
        transactions = database.list_transactions(user_id=user_id)

        total_invested = sum(i["initial_amount"] for i in investments)
        current_value = sum(i["current_value"] for i in investments)

        return UserDetail(
            id=user["id"],
            email=user["email"],
            first_name=user["first_name"],
            last_name=user["last_name"],
            role=user["role"],
            is_active=user["is_active"],
            is_deleted=user["is_deleted"],
            email_confirmed=user["email_confirmed"],
            created_at=user["created_at"],
            updated_at=user.get("updated_at"),
            portfolios=[
                AdminPortfolioSummary(
                    id=p["id"],
                    name=p["name"],
                    investment_count=p["total_investments"],
                    total_value=p["current_value"],
                    created_at=p["created_at"]
                )
                for p in database.list_portfolios(user_id=user_id)
            ],
            total_investments=len(investments),
            total_invested=total_invested,
            current_value=current_value,
            total_gain_loss=current_value - total_invested,
            gain_loss_percentage=percentage(current_value - total_invested, total_invested),
            total_transactions=len(transactions),
            last_transaction_date=max((t["transaction_date"] for t in transactions), default=None),
            recent_activities=activity_log_service.get_recent_for_user(user_id, 10)
        )

    def get_user_stats(self, user_id: str) -> UserStats:
        self._get_user(user_id)
        h = self._holdings_by_user()[user_id]
        gain = h["current_value"] - h["total_invested"]
        return UserStats(
            user_id=user_id,
            portfolio_count=h["portfolio_count"],
            investment_count=h["investment_count"],
            active_investment_count=h["active_investment_count"],
            transaction_count=h["transaction_count"],
            total_invested=h["total_invested"],
            current_value=h["current_value"],
            total_gain_loss=gain,
            gain_loss_percentage=percentage(gain, h["total_invested"])
        )

    def set_active(self, user_id: str, active: bool, admin: CurrentUser) -> bool:
        """
        Activate or deactivate a user; repeating the current state is a no-op

        Returns:
            True when the stored state changed
        """
        user = self._get_user(user_id)
        if not active and user_id == admin.id:
            raise InvalidOperationError("You cannot deactivate your own account")
        if user["is_active"] == active:
            return False

        fields = {"is_active": active}
        if not active:
            fields.update({"refresh_token": None, "refresh_token_expiry_time": None})
        database.update_user(user_id, fields)
        activity_log_service.log_activity(
            admin.id,
            ActivityAction.ACTIVATE if active else ActivityAction.DEACTIVATE,
            EntityType.USER,
            user_id,
            f"{'Activated' if active else 'Deactivated'} user {user['email']}"
        )
        logger.info(f"User {user_id} {'activated' if active else 'deactivated'} by {admin.id}")
        return True

    def delete_user(self, user_id: str, admin: CurrentUser) -> None:
        if user_id == admin.id:
            raise InvalidOperationError("You cannot delete your own account")
        user = self._get_user(user_id)
        database.update_user(user_id, {
            "is_deleted": True,
            "is_active": False,
            "refresh_token": None,
            "refresh_token_expiry_time": None,
        })
        activity_log_service.log_activity(
            admin.id, ActivityAction.DELETE, EntityType.USER, user_id, f"Deleted user {user['email']}"
        )
        logger.info(f"User {user_id} deleted by {admin.id}")

    def bulk_action(self, action: str, user_ids: List[str], admin: CurrentUser) -> BulkActionResult:
        """
        Apply activate, deactivate or delete to several users

        The calling admin is skipped for deactivate and delete. Unknown
        users are ignored.
        """
        unique_ids = list(dict.fromkeys(user_ids))
        affected = 0
        for user_id in unique_ids:
            if action != "activate" and user_id == admin.id:
                continue
            if database.get_user_by_id(user_id) is None:
                continue
            if action == "activate":
                affected += 1 if self.set_active(user_id, True, admin) else 0
            elif action == "deactivate":
                affected += 1 if self.set_active(user_id, False, admin) else 0
            elif action == "delete":
                self.delete_user(user_id, admin)
                affected += 1
            else:
                raise ValueError(f"Unknown bulk action: {action}")

        logger.info(f"Bulk {action} by {admin.id}: {affected} of {len(unique_ids)} users")
        return BulkActionResult(action=action, requested=len(unique_ids), affected=affected)


admin_service = AdminService()
