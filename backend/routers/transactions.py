from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from models.auth import CurrentUser
from models.common import ApiResponse, normalize_paging
from models.portfolio import TransactionCreate, TransactionPreviewRequest
from services.transactions import transaction_service
from services.exceptions import ServiceError
from routers.deps import get_current_user, service_error, clamp

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_transactions(
    investment_id: Optional[int] = Query(default=None),
    type: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    search_term: Optional[str] = Query(default=None, description="Matches the investment name"),
    sort_by: Optional[str] = Query(default=None, description="transactiondate or amount"),
    sort_order: Optional[str] = Query(default="desc"),
    page: int = Query(default=1),
    page_size: int = Query(default=10),
    user: CurrentUser = Depends(get_current_user)
):
    """Paged transactions of the caller's investments"""
    try:
        page, page_size = normalize_paging(page, page_size)
        return transaction_service.get_filtered(
            user.id, page, page_size, investment_id, type, start_date, end_date,
            search_term, sort_by, sort_order
        )
    except Exception as e:
        logger.error(f"Error fetching transactions: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/recent", response_model=ApiResponse)
async def get_recent_transactions(count: int = Query(default=10), user: CurrentUser = Depends(get_current_user)):
    try:
        count = clamp(count, 1, 100, 10)
        return ApiResponse.ok(transaction_service.get_recent(user.id, count), "Recent transactions retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching recent transactions: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/investments", response_model=ApiResponse)
async def get_investment_options(user: CurrentUser = Depends(get_current_user)):
    """Investments the caller can record transactions against"""
    try:
        return ApiResponse.ok(transaction_service.get_investment_options(user.id), "Investments retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching investment options: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stats/today", response_model=ApiResponse)
async def get_today_count(user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(transaction_service.count_today(user.id), "Today's transaction count retrieved successfully")
    except Exception as e:
        logger.error(f"Error counting today's transactions: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stats/total", response_model=ApiResponse)
async def get_total_count(user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(transaction_service.count_total(user.id), "Total transaction count retrieved successfully")
    except Exception as e:
        logger.error(f"Error counting transactions: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/investment/{investment_id}", response_model=ApiResponse)
async def get_transactions_by_investment(investment_id: int, user: CurrentUser = Depends(get_current_user)):
    try:
        result = transaction_service.get_by_investment(investment_id, user.id)
        return ApiResponse.ok(result, "Transactions retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching transactions for investment {investment_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/preview", response_model=ApiResponse)
async def preview_transaction(request: TransactionPreviewRequest, user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(transaction_service.preview(user.id, request), "Transaction preview calculated")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error previewing transaction: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{transaction_id}", response_model=ApiResponse)
async def get_transaction(transaction_id: int, user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(transaction_service.get_by_id(transaction_id, user), "Transaction retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching transaction {transaction_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=ApiResponse, status_code=201)
async def create_transaction(request: TransactionCreate, user: CurrentUser = Depends(get_current_user)):
    """Record a transaction and apply it to the investment"""
    try:
        return ApiResponse.ok(transaction_service.create(user.id, request), "Transaction created successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating transaction: {e}")
        raise HTTPException(status_code=500, detail=str(e))
