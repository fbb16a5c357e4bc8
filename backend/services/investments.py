from collections import Counter, defaultdict
from datetime import datetime
from typing import Dict, List, Optional
import logging

import database
from models.auth import CurrentUser
from models.common import (
    ActivityAction, EntityType, InvestmentStatus, InvestmentType, PagedResponse, is_descending, parse_enum
)
from models.portfolio import (
    InvestmentCreate, InvestmentUpdate, InvestmentDto, InvestmentDetail, InvestmentStats,
    InvestmentSummary, PerformancePoint, TransactionSummary
)
from services.activity_log import activity_log_service
from services.csv_export import csv_exporter
from services.exceptions import NotFoundError, ForbiddenError
from services.portfolios import portfolio_service
from services.valuation import gain_loss, gain_loss_percentage, percentage

logger = logging.getLogger(__name__)

SORT_KEYS = {
    "name": lambda i: i["name"].lower(),
    "amount": lambda i: i["initial_amount"],
    "currentvalue": lambda i: i["current_value"],
    "gainloss": gain_loss,
    "purchasedate": lambda i: i["purchase_date"],
}


def to_investment_dto(row: Dict) -> InvestmentDto:
    return InvestmentDto(
        id=row["id"],
        user_id=row["user_id"],
        portfolio_id=row["portfolio_id"],
        portfolio_name=row.get("portfolio_name"),
        name=row["name"],
        type=row["type"],
        initial_amount=row["initial_amount"],
        current_value=row["current_value"],
        quantity=row.get("quantity"),
        average_price_per_unit=row.get("average_price_per_unit"),
        gain_loss=gain_loss(row),
        gain_loss_percentage=gain_loss_percentage(row),
        purchase_date=row["purchase_date"],
        broker_platform=row.get("broker_platform"),
        notes=row.get("notes"),
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row.get("updated_at")
    )


def filter_investments(
    investments: List[Dict],
    search_term: Optional[str] = None,
    type: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    min_gain_loss: Optional[float] = None,
    max_gain_loss: Optional[float] = None,
    portfolio_id: Optional[int] = None,
) -> List[Dict]:
    """Apply the investment list filters; text comparisons ignore case"""
    result = investments
    start_date = database.to_naive_utc(start_date)
    end_date = database.to_naive_utc(end_date)
    if search_term and search_term.strip():
        needle = search_term.strip().lower()
        result = [i for i in result if needle in i["name"].lower()]
    if type and type.strip():
        result = [i for i in result if i["type"].lower() == type.strip().lower()]
    if status and status.strip():
        result = [i for i in result if i["status"].lower() == status.strip().lower()]
    if start_date is not None:
        result = [i for i in result if i["purchase_date"] >= start_date]
    if end_date is not None:
        result = [i for i in result if i["purchase_date"] <= end_date]
    if min_gain_loss is not None:
        result = [i for i in result if gain_loss(i) >= min_gain_loss]
    if max_gain_loss is not None:
        result = [i for i in result if gain_loss(i) <= max_gain_loss]
    if portfolio_id is not None:
        result = [i for i in result if i["portfolio_id"] == portfolio_id]
    return result


def sort_investments(investments: List[Dict], sort_by: Optional[str], sort_order: Optional[str]) -> List[Dict]:
    """Sort by a known key, or newest first when the key is missing or unknown"""
    key = SORT_KEYS.get((sort_by or "").lower())
    if key is None:
        return sorted(investments, key=lambda i: (i["created_at"], i["id"]), reverse=True)
    return sorted(investments, key=key, reverse=is_descending(sort_order))


class InvestmentService:
    """Investment CRUD, statistics and exports"""

    def _get_accessible(self, investment_id: int, user: CurrentUser) -> Dict:
        investment = database.get_investment(investment_id)
        if investment is None:
            raise NotFoundError("Investment not found")
        if investment["user_id"] != user.id and not user.is_admin:
            raise ForbiddenError("You do not have access to this investment")
        return investment

    def get_filtered(self, user: CurrentUser, page: int = 1, page_size: int = 10,
                     sort_by: Optional[str] = None, sort_order: Optional[str] = "desc",
                     **filters) -> PagedResponse:
        """
        Filtered, sorted and paged investments for the caller

        Admins see every user's investments.

        Args:
            user: Caller
            page: 1-based page number
            page_size: Rows per page
            sort_by: name, amount, currentvalue, gainloss or purchasedate
            sort_order: asc or desc
            **filters: Keyword filters accepted by filter_investments

        Returns:
            PagedResponse of InvestmentDto
        """
        rows = database.list_investments(user_id=None if user.is_admin else user.id)
        rows = filter_investments(rows, **filters)
        rows = sort_investments(rows, sort_by, sort_order)

        total = len(rows)
        start = (page - 1) * page_size
        items = [to_investment_dto(r) for r in rows[start:start + page_size]]
        return PagedResponse.create(items, page, page_size, total)

    def get_by_id(self, investment_id: int, user: CurrentUser) -> InvestmentDto:
        return to_investment_dto(self._get_accessible(investment_id, user))

    def get_detail(self, investment_id: int, user: CurrentUser) -> InvestmentDetail:
        investment = self._get_accessible(investment_id, user)
        transactions = database.list_transactions(investment_id=investment_id)

        history = [PerformancePoint(date=investment["purchase_date"], value=investment["initial_amount"])]
        for txn in sorted(transactions, key=lambda t: t["transaction_date"]):
            history.append(PerformancePoint(date=txn["transaction_date"], value=txn["amount"]))

        summaries = [
            TransactionSummary(
                id=t["id"],
                type=t["type"],
                quantity=t["quantity"],
                price_per_unit=t["price_per_unit"],
                amount=t["amount"],
                transaction_date=t["transaction_date"],
                notes=t.get("notes")
            )
            for t in sorted(transactions, key=lambda t: t["transaction_date"], reverse=True)
        ]

        return InvestmentDetail(
            **to_investment_dto(investment).model_dump(),
            performance_history=history,
            transactions=summaries
        )

    def create(self, user_id: str, request: InvestmentCreate) -> InvestmentDto:
        """
        Create an investment; its current value starts at the initial amount

        An unknown or foreign portfolio falls back to the user's default portfolio.
        """
        investment_type = parse_enum(InvestmentType, request.type)
        status = parse_enum(InvestmentStatus, request.status or "Active")

        portfolio = None
        if request.portfolio_id is not None:
            portfolio = database.get_portfolio(request.portfolio_id)
            if portfolio is not None and portfolio["user_id"] != user_id:
                portfolio = None
        if portfolio is None:
            portfolio = portfolio_service.get_or_create_default(user_id)

        row = database.create_investment({
            "portfolio_id": portfolio["id"],
            "user_id": user_id,
            "name": request.name.strip(),
            "type": investment_type.value,
            "initial_amount": request.initial_amount,
            "current_value": request.initial_amount,
            "quantity": request.quantity,
            "average_price_per_unit": request.average_price_per_unit,
            "purchase_date": database.to_naive_utc(request.purchase_date),
            "broker_platform": request.broker_platform,
            "notes": request.notes,
            "status": status.value,
        })

        activity_log_service.log_activity(
            user_id, ActivityAction.CREATE, EntityType.INVESTMENT, row["id"],
            f"Created investment: {row['name']}"
        )
        return to_investment_dto(row)

    def update(self, investment_id: int, user: CurrentUser, request: InvestmentUpdate) -> InvestmentDto:
        """Update descriptive fields and amounts; current value is left to transactions"""
        investment = database.get_investment(investment_id)
        if investment is None:
            raise NotFoundError("Investment not found")
        if investment["user_id"] != user.id:
            raise ForbiddenError("You do not have access to this investment")

        database.update_investment(investment_id, {
            "name": request.name.strip(),
            "type": parse_enum(InvestmentType, request.type).value,
            "initial_amount": request.initial_amount,
            "quantity": request.quantity,
            "average_price_per_unit": request.average_price_per_unit,
            "purchase_date": database.to_naive_utc(request.purchase_date),
            "broker_platform": request.broker_platform,
            "notes": request.notes,
            "status": parse_enum(InvestmentStatus, request.status).value,
        })
        activity_log_service.log_activity(
            user.id, ActivityAction.UPDATE, EntityType.INVESTMENT, investment_id,
            f"Updated investment: {request.name.strip()}"
        )
        return to_investment_dto(database.get_investment(investment_id))

    def delete(self, investment_id: int, user: CurrentUser) -> None:
        investment = database.get_investment(investment_id)
        if investment is None:
            raise NotFoundError("Investment not found")
        if investment["user_id"] != user.id and not user.is_admin:
            raise ForbiddenError("You do not have access to this investment")

        database.soft_delete_investments([investment_id])
        activity_log_service.log_activity(
            user.id, ActivityAction.DELETE, EntityType.INVESTMENT, investment_id,
            f"Deleted investment: {investment['name']}"
        )

    def bulk_delete(self, investment_ids: List[int], user: CurrentUser) -> int:
        """Soft-delete the listed investments the caller may delete; returns the count"""
        rows = database.list_investments(investment_ids=list(set(investment_ids)))
        allowed = [r["id"] for r in rows if user.is_admin or r["user_id"] == user.id]
        deleted = database.soft_delete_investments(allowed)
        if deleted:
            activity_log_service.log_activity(
                user.id, ActivityAction.DELETE, EntityType.INVESTMENT, None,
                f"Bulk deleted {deleted} investment(s)"
            )
        return deleted

    def get_stats(self, user_id: str) -> InvestmentStats:
        investments = database.list_investments(user_id=user_id)

        total_invested = sum(i["initial_amount"] for i in investments)
        current_value = sum(i["current_value"] for i in investments)
        total_gain_loss = current_value - total_invested

        ranked = sorted(
            (i for i in investments if i["initial_amount"] > 0),
            key=lambda i: gain_loss_percentage(i),
            reverse=True
        )

        def summary(i: Dict) -> InvestmentSummary:
            return InvestmentSummary(
                id=i["id"],
                name=i["name"],
                gain_loss=gain_loss(i),
                gain_loss_percentage=gain_loss_percentage(i, 2)
            )

        value_by_type = defaultdict(float)
        for i in investments:
            value_by_type[i["type"]] += i["current_value"]

        return InvestmentStats(
            total_investments=len(investments),
            total_invested=total_invested,
            current_value=current_value,
            total_gain_loss=total_gain_loss,
            total_gain_loss_percentage=percentage(total_gain_loss, total_invested),
            best_performing=summary(ranked[0]) if ranked else None,
            worst_performing=summary(ranked[-1]) if ranked else None,
            investments_by_type=dict(Counter(i["type"] for i in investments)),
            value_by_type=dict(value_by_type)
        )

    def export_investment_csv(self, investment_id: int, user_id: str) -> str:
        investment = database.get_investment(investment_id)
        if investment is None or investment["user_id"] != user_id:
            raise ForbiddenError("Investment not found or access denied")

        transactions = database.list_transactions(investment_id=investment_id)
        content = csv_exporter.export_investment(investment, transactions, database.utcnow())
        activity_log_service.log_activity(
            user_id, ActivityAction.EXPORT, EntityType.INVESTMENT, investment_id,
            f"Exported investment to CSV: {investment['name']}"
        )
        return content

    def export_investments_csv(self, investment_ids: List[int], user_id: str) -> str:
        """Export the caller's investments among ``investment_ids``; others are skipped"""
        rows = [r for r in database.list_investments(investment_ids=investment_ids) if r["user_id"] == user_id]
        order = {investment_id: n for n, investment_id in enumerate(investment_ids)}
        rows.sort(key=lambda r: order.get(r["id"], len(order)))

        content = csv_exporter.export_investments(rows, database.utcnow())
        activity_log_service.log_activity(
            user_id, ActivityAction.EXPORT, EntityType.INVESTMENT, None,
            f"Exported {len(rows)} investment(s) to CSV"
        )
        return content


investment_service = InvestmentService()
