from collections import Counter, defaultdict
from typing import Dict, List
import logging

import database
from models.auth import CurrentUser
from models.common import ActivityAction, EntityType
from models.portfolio import (
    PortfolioCreate, PortfolioUpdate, PortfolioDto, PortfolioSummary, PortfolioDetail,
    PortfolioInvestmentSummary, PortfolioStats, InvestmentPerformance, AssetAllocation,
    CanDeleteResult
)
from services.activity_log import activity_log_service
from services.exceptions import NotFoundError, InvalidOperationError
from services.valuation import gain_loss, gain_loss_percentage, percentage

logger = logging.getLogger(__name__)

DEFAULT_PORTFOLIO_NAME = "Default Portfolio"
DEFAULT_PORTFOLIO_DESCRIPTION = "Your default investment portfolio"


def _to_dto(row: Dict) -> PortfolioDto:
    return PortfolioDto(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        description=row.get("description"),
        is_default=row.get("is_default", False),
        total_invested=row.get("total_invested", 0.0),
        current_value=row.get("current_value", 0.0),
        total_investments=row.get("total_investments", 0),
        created_at=row["created_at"],
        updated_at=row.get("updated_at")
    )


class PortfolioService:
    """Portfolio management scoped to the owning user"""

    def _get_owned(self, portfolio_id: int, user_id: str) -> Dict:
        portfolio = database.get_portfolio(portfolio_id)
        if portfolio is None or portfolio["user_id"] != user_id:
            raise NotFoundError("Portfolio not found")
        return portfolio

    def get_all(self, user_id: str) -> List[PortfolioDto]:
        return [_to_dto(row) for row in database.list_portfolios(user_id)]

    def get_summaries(self, user_id: str) -> List[PortfolioSummary]:
        rows = sorted(database.list_portfolios(user_id), key=lambda p: p["name"].lower())
        return [
            PortfolioSummary(
                id=row["id"],
                name=row["name"],
                is_default=row["is_default"],
                investment_count=row["total_investments"],
                total_value=row["current_value"]
            )
            for row in rows
        ]

    def get_by_id(self, portfolio_id: int, user_id: str) -> PortfolioDto:
        return _to_dto(self._get_owned(portfolio_id, user_id))

    def get_detail(self, portfolio_id: int, user: CurrentUser) -> PortfolioDetail:
        """
        Portfolio with its investments broken down by type and status

        Args:
            portfolio_id: Portfolio to describe
            user: Caller, who must own the portfolio

        Returns:
            PortfolioDetail with investments ordered by current value
        """
        portfolio = self._get_owned(portfolio_id, user.id)
        investments = database.list_investments(portfolio_id=portfolio_id)

        total_invested = sum(i["initial_amount"] for i in investments)
        current_value = sum(i["current_value"] for i in investments)
        total_gain_loss = current_value - total_invested

        value_by_type = defaultdict(float)
        for i in investments:
            value_by_type[i["type"]] += i["current_value"]

        summaries = [
            PortfolioInvestmentSummary(
                id=i["id"],
                name=i["name"],
                type=i["type"],
                status=i["status"],
                initial_amount=i["initial_amount"],
                current_value=i["current_value"],
                gain_loss=gain_loss(i),
                gain_loss_percentage=gain_loss_percentage(i, 2),
                purchase_date=i["purchase_date"]
            )
            for i in sorted(investments, key=lambda i: i["current_value"], reverse=True)
        ]

        return PortfolioDetail(
            id=portfolio["id"],
            user_id=portfolio["user_id"],
            user_name=user.full_name,
            name=portfolio["name"],
            description=portfolio.get("description"),
            is_default=portfolio["is_default"],
            total_invested=total_invested,
            current_value=current_value,
            total_gain_loss=total_gain_loss,
            total_gain_loss_percentage=percentage(total_gain_loss, total_invested),
            total_investments=len(investments),
            active_investments=sum(1 for i in investments if i["status"] == "Active"),
            value_by_type=dict(value_by_type),
            count_by_type=dict(Counter(i["type"] for i in investments)),
            count_by_status=dict(Counter(i["status"] for i in investments)),
            investments=summaries,
            created_at=portfolio["created_at"],
            updated_at=portfolio.get("updated_at")
        )

    def get_stats(self, portfolio_id: int, user_id: str) -> PortfolioStats:
        portfolio = self._get_owned(portfolio_id, user_id)
        investments = database.list_investments(portfolio_id=portfolio_id)

        total_invested = sum(i["initial_amount"] for i in investments)
        current_value = sum(i["current_value"] for i in investments)
        total_gain_loss = current_value - total_invested
        statuses = Counter(i["status"] for i in investments)

        ranked = sorted(
            (i for i in investments if i["initial_amount"] > 0),
            key=lambda i: gain_loss_percentage(i),
            reverse=True
        )

        def performance(i: Dict) -> InvestmentPerformance:
            return InvestmentPerformance(
                id=i["id"],
                name=i["name"],
                type=i["type"],
                gain_loss=gain_loss(i),
                gain_loss_percentage=gain_loss_percentage(i, 2)
            )

        grouped = defaultdict(list)
        for i in investments:
            grouped[i["type"]].append(i)
        allocation = sorted(
            (
                AssetAllocation(
                    type=type_name,
                    value=sum(i["current_value"] for i in items),
                    percentage=percentage(sum(i["current_value"] for i in items), current_value),
                    count=len(items)
                )
                for type_name, items in grouped.items()
            ),
            key=lambda a: a.value,
            reverse=True
        )

        return PortfolioStats(
            portfolio_id=portfolio["id"],
            portfolio_name=portfolio["name"],
            total_invested=total_invested,
            current_value=current_value,
            total_gain_loss=total_gain_loss,
            total_gain_loss_percentage=percentage(total_gain_loss, total_invested),
            total_investments=len(investments),
            active_investments=statuses.get("Active", 0),
            sold_investments=statuses.get("Sold", 0),
            on_hold_investments=statuses.get("OnHold", 0),
            best_performing=performance(ranked[0]) if ranked else None,
            worst_performing=performance(ranked[-1]) if ranked else None,
            asset_allocation=allocation
        )

    def create(self, user_id: str, request: PortfolioCreate) -> PortfolioDto:
        portfolio = database.create_portfolio(user_id, request.name.strip(), request.description)
        activity_log_service.log_activity(
            user_id, ActivityAction.CREATE, EntityType.PORTFOLIO, portfolio["id"],
            f"Created portfolio: {portfolio['name']}"
        )
        return _to_dto(portfolio)

    def update(self, portfolio_id: int, user_id: str, request: PortfolioUpdate) -> PortfolioDto:
        self._get_owned(portfolio_id, user_id)
        database.update_portfolio(portfolio_id, {
            "name": request.name.strip(),
            "description": request.description,
        })
        activity_log_service.log_activity(
            user_id, ActivityAction.UPDATE, EntityType.PORTFOLIO, portfolio_id,
            f"Updated portfolio: {request.name.strip()}"
        )
        return self.get_by_id(portfolio_id, user_id)

    def can_delete(self, portfolio_id: int, user_id: str) -> CanDeleteResult:
        portfolio = self._get_owned(portfolio_id, user_id)
        count = database.count_investments(portfolio_id)
        if portfolio["is_default"]:
            return CanDeleteResult(can_delete=False, investment_count=count,
                                   reason="The default portfolio cannot be deleted.")
        if count > 0:
            return CanDeleteResult(can_delete=False, investment_count=count,
                                   reason=f"Portfolio contains {count} investment(s).")
        return CanDeleteResult(can_delete=True, investment_count=0)

    def delete(self, portfolio_id: int, user_id: str) -> None:
        """
        Soft-delete an empty, non-default portfolio

        Raises:
            NotFoundError: portfolio missing or owned by someone else
            InvalidOperationError: portfolio is the default or still holds investments
        """
        portfolio = self._get_owned(portfolio_id, user_id)
        if portfolio["is_default"]:
            raise InvalidOperationError("The default portfolio cannot be deleted.")

        count = database.count_investments(portfolio_id)
        if count > 0:
            raise InvalidOperationError(
                f"Cannot delete portfolio. It contains {count} investment(s). "
                "Please move or delete all investments before deleting the portfolio."
            )

        database.update_portfolio(portfolio_id, {"is_deleted": True})
        activity_log_service.log_activity(
            user_id, ActivityAction.DELETE, EntityType.PORTFOLIO, portfolio_id,
            f"Deleted portfolio: {portfolio['name']}"
        )
        logger.info(f"User {user_id} deleted portfolio {portfolio_id}")

    def get_investment_count(self, portfolio_id: int, user_id: str) -> int:
        self._get_owned(portfolio_id, user_id)
        return database.count_investments(portfolio_id)

    def count_for_user(self, user_id: str) -> int:
        return database.count_portfolios(user_id)

    def count_all(self) -> int:
        return database.count_portfolios()

    def get_or_create_default(self, user_id: str) -> Dict:
        portfolio = database.get_default_portfolio(user_id)
        if portfolio is not None:
            return portfolio
        logger.info(f"Creating default portfolio for user {user_id}")
        return database.create_portfolio(
            user_id, DEFAULT_PORTFOLIO_NAME, DEFAULT_PORTFOLIO_DESCRIPTION, is_default=True
        )


portfolio_service = PortfolioService()
