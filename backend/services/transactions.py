from datetime import datetime, timedelta
from typing import Dict, List, Optional
import logging

import database
from models.auth import CurrentUser
from models.common import (
    ActivityAction, EntityType, PagedResponse, TransactionType, is_descending, parse_enum
)
from models.portfolio import (
    TransactionCreate, TransactionDto, TransactionPreviewRequest, TransactionPreview,
    InvestmentOption
)
from services.activity_log import activity_log_service
from services.exceptions import NotFoundError, ForbiddenError, InvalidOperationError

logger = logging.getLogger(__name__)

SELL_EXCEEDS_VALUE = "Cannot sell more than the current investment value."


def to_transaction_dto(row: Dict) -> TransactionDto:
    return TransactionDto(
        id=row["id"],
        investment_id=row["investment_id"],
        investment_name=row.get("investment_name") or "",
        type=row["type"],
        quantity=row["quantity"],
        price_per_unit=row["price_per_unit"],
        amount=row["amount"],
        transaction_date=row["transaction_date"],
        notes=row.get("notes"),
        created_at=row["created_at"],
        updated_at=row.get("updated_at")
    )


def apply_transaction(investment: Dict, txn_type: TransactionType, quantity: float,
                      price_per_unit: float) -> Dict:
    """
    Investment field changes caused by a transaction

    Buy adds quantity * price to the current value, Sell subtracts it and
    Update replaces the value, quantity and average price.

    Raises:
        InvalidOperationError: a sale larger than the current value
    """
    amount = quantity * price_per_unit
    if txn_type == TransactionType.BUY:
        return {"current_value": investment["current_value"] + amount}
    if txn_type == TransactionType.SELL:
        if investment["current_value"] < amount:
            raise InvalidOperationError(SELL_EXCEEDS_VALUE)
        return {"current_value": investment["current_value"] - amount}
    return {
        "current_value": amount,
        "quantity": quantity,
        "average_price_per_unit": price_per_unit,
    }


class TransactionService:
    """Transactions and their effect on investment values"""

    def _get_owned_investment(self, investment_id: int, user_id: str) -> Dict:
        investment = database.get_investment(investment_id)
        if investment is None or investment["user_id"] != user_id:
            raise ForbiddenError("Investment not found or unauthorized.")
        return investment

    def get_filtered(self, user_id: str, page: int = 1, page_size: int = 10,
                     investment_id: Optional[int] = None, type: Optional[str] = None,
                     start_date: Optional[datetime] = None, end_date: Optional[datetime] = None,
                     search_term: Optional[str] = None, sort_by: Optional[str] = None,
                     sort_order: Optional[str] = "desc") -> PagedResponse:
        """Paged transactions of the caller's investments"""
        rows = database.list_transactions(user_id=user_id)
        start_date = database.to_naive_utc(start_date)
        end_date = database.to_naive_utc(end_date)

        if investment_id is not None:
            rows = [r for r in rows if r["investment_id"] == investment_id]
        if type and type.strip():
            rows = [r for r in rows if r["type"].lower() == type.strip().lower()]
        if start_date is not None:
            rows = [r for r in rows if r["transaction_date"] >= start_date]
        if end_date is not None:
            rows = [r for r in rows if r["transaction_date"] <= end_date]
        if search_term and search_term.strip():
            needle = search_term.strip().lower()
            rows = [r for r in rows if needle in (r.get("investment_name") or "").lower()]

        descending = is_descending(sort_order)
        if (sort_by or "").lower() == "amount":
            rows = sorted(rows, key=lambda r: r["amount"], reverse=descending)
        else:
            rows = sorted(rows, key=lambda r: (r["transaction_date"], r["id"]), reverse=descending)

        start = (page - 1) * page_size
        items = [to_transaction_dto(r) for r in rows[start:start + page_size]]
        return PagedResponse.create(items, page, page_size, len(rows))

    def get_by_id(self, transaction_id: int, user: CurrentUser) -> TransactionDto:
        transaction = database.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction not found")
        if transaction["user_id"] != user.id:
            raise ForbiddenError("You do not have access to this transaction")
        return to_transaction_dto(transaction)

    def get_by_investment(self, investment_id: int, user_id: str) -> List[TransactionDto]:
        investment = database.get_investment(investment_id)
        if investment is None or investment["user_id"] != user_id:
            raise NotFoundError("Investment not found")
        return [to_transaction_dto(r) for r in database.list_transactions(investment_id=investment_id)]

    def get_recent(self, user_id: str, count: int = 10) -> List[TransactionDto]:
        return [to_transaction_dto(r) for r in database.list_transactions(user_id=user_id)[:count]]

    def get_investment_options(self, user_id: str) -> List[InvestmentOption]:
        rows = sorted(database.list_investments(user_id=user_id), key=lambda i: i["name"].lower())
        return [
            InvestmentOption(
                id=i["id"], name=i["name"], type=i["type"],
                current_value=i["current_value"], status=i["status"]
            )
            for i in rows
        ]

    def preview(self, user_id: str, request: TransactionPreviewRequest) -> TransactionPreview:
        """Compute what a transaction would do to its investment without saving it"""
        investment = self._get_owned_investment(request.investment_id, user_id)
        txn_type = parse_enum(TransactionType, request.type)
        amount = request.quantity * request.price_per_unit
        current = investment["current_value"]

        try:
            changes = apply_transaction(investment, txn_type, request.quantity, request.price_per_unit)
            is_valid, message = True, None
        except InvalidOperationError as e:
            changes = {"current_value": current}
            is_valid, message = False, e.message

        new_value = changes["current_value"]
        change = new_value - current
        return TransactionPreview(
            investment_name=investment["name"],
            current_value=current,
            transaction_amount=amount,
            new_total_value=new_value,
            value_change=change,
            value_change_percentage=round(change / current * 100, 2) if current > 0 else 0.0,
            is_valid=is_valid,
            validation_message=message,
            new_quantity=changes.get("quantity"),
            new_average_price_per_unit=changes.get("average_price_per_unit")
        )

    def create(self, user_id: str, request: TransactionCreate) -> TransactionDto:
        """
        Record a transaction and update its investment in one database transaction

        Raises:
            ForbiddenError: investment missing or owned by someone else
            InvalidOperationError: sale larger than the current value
            ValueError: unknown transaction type
        """
        investment = self._get_owned_investment(request.investment_id, user_id)
        txn_type = parse_enum(TransactionType, request.type)

        def changes(current: Optional[Dict]) -> Dict:
            # Row as read under the write lock
            if current is None or current["user_id"] != user_id:
                raise ForbiddenError("Investment not found or unauthorized.")
            return apply_transaction(current, txn_type, request.quantity, request.price_per_unit)

        row = database.create_transaction({
            "investment_id": investment["id"],
            "type": txn_type.value,
            "quantity": request.quantity,
            "price_per_unit": request.price_per_unit,
            "amount": request.quantity * request.price_per_unit,
            "transaction_date": database.to_naive_utc(request.transaction_date),
            "notes": request.notes,
        }, changes)

        activity_log_service.log_activity(
            user_id, ActivityAction.CREATE, EntityType.TRANSACTION, row["id"],
            f"{txn_type.value} transaction of {row['amount']:.2f} on {investment['name']}"
        )
        return to_transaction_dto(row)

    def count_today(self, user_id: str) -> int:
        today = database.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        tomorrow = today + timedelta(days=1)
        return sum(
            1 for r in database.list_transactions(user_id=user_id)
            if today <= r["transaction_date"] < tomorrow
        )

    def count_total(self, user_id: str) -> int:
        return len(database.list_transactions(user_id=user_id))


transaction_service = TransactionService()
