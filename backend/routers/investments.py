from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

import database
from models.auth import CurrentUser
from models.common import ApiResponse, normalize_paging
from models.portfolio import InvestmentCreate, InvestmentUpdate, InvestmentIdsRequest
from services.investments import investment_service
from services.exceptions import ServiceError
from routers.deps import get_current_user, service_error

logger = logging.getLogger(__name__)

router = APIRouter()


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.get("")
async def get_investments(
    search_term: Optional[str] = Query(default=None),
    type: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None, description="Purchased on or after"),
    end_date: Optional[datetime] = Query(default=None, description="Purchased on or before"),
    min_gain_loss: Optional[float] = Query(default=None),
    max_gain_loss: Optional[float] = Query(default=None),
    portfolio_id: Optional[int] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, description="name, amount, currentvalue, gainloss or purchasedate"),
    sort_order: Optional[str] = Query(default="desc"),
    page: int = Query(default=1),
    page_size: int = Query(default=10),
    user: CurrentUser = Depends(get_current_user)
):
    """Filtered, sorted and paged investments"""
    try:
        page, page_size = normalize_paging(page, page_size)
        return investment_service.get_filtered(
            user, page, page_size, sort_by, sort_order,
            search_term=search_term, type=type, status=status,
            start_date=start_date, end_date=end_date,
            min_gain_loss=min_gain_loss, max_gain_loss=max_gain_loss,
            portfolio_id=portfolio_id
        )
    except Exception as e:
        logger.error(f"Error fetching investments: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stats", response_model=ApiResponse)
async def get_investment_stats(user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(investment_service.get_stats(user.id), "Investment statistics retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching investment stats: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/bulk-delete", response_model=ApiResponse)
async def bulk_delete_investments(request: InvestmentIdsRequest, user: CurrentUser = Depends(get_current_user)):
    try:
        deleted = investment_service.bulk_delete(request.investment_ids, user)
        if deleted == 0:
            raise HTTPException(status_code=400, detail="No investments were deleted")
        return ApiResponse.ok(deleted, f"{deleted} investment(s) deleted successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error bulk deleting investments: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/export")
async def export_investments(request: InvestmentIdsRequest, user: CurrentUser = Depends(get_current_user)):
    """CSV of several investments"""
    try:
        content = investment_service.export_investments_csv(request.investment_ids, user.id)
        return _csv_response(content, f"investments_export_{database.utcnow():%Y%m%d_%H%M%S}.csv")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error exporting investments: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{investment_id}", response_model=ApiResponse)
async def get_investment(investment_id: int, user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(investment_service.get_by_id(investment_id, user), "Investment retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching investment {investment_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{investment_id}/detail", response_model=ApiResponse)
async def get_investment_detail(investment_id: int, user: CurrentUser = Depends(get_current_user)):
    try:
        result = investment_service.get_detail(investment_id, user)
        return ApiResponse.ok(result, "Investment detail retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching investment detail {investment_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{investment_id}/export")
async def export_investment(investment_id: int, user: CurrentUser = Depends(get_current_user)):
    """CSV of one investment with its transaction history"""
    try:
        content = investment_service.export_investment_csv(investment_id, user.id)
        return _csv_response(content, f"investment_{investment_id}_{database.utcnow():%Y%m%d_%H%M%S}.csv")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error exporting investment {investment_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=ApiResponse, status_code=201)
async def create_investment(request: InvestmentCreate, user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(investment_service.create(user.id, request), "Investment created successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating investment: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{investment_id}", response_model=ApiResponse)
async def update_investment(investment_id: int, request: InvestmentUpdate,
                            user: CurrentUser = Depends(get_current_user)):
    try:
        result = investment_service.update(investment_id, user, request)
        return ApiResponse.ok(result, "Investment updated successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating investment {investment_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{investment_id}", response_model=ApiResponse)
async def delete_investment(investment_id: int, user: CurrentUser = Depends(get_current_user)):
    try:
        investment_service.delete(investment_id, user)
        return ApiResponse.ok(None, "Investment deleted successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error deleting investment {investment_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
