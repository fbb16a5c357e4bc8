from fastapi import APIRouter, Depends, HTTPException
import logging

from models.auth import CurrentUser
from models.common import ApiResponse
from models.portfolio import PortfolioCreate, PortfolioUpdate
from services.portfolios import portfolio_service
from services.exceptions import ServiceError
from routers.deps import get_current_user, require_admin, service_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ApiResponse)
async def get_portfolios(user: CurrentUser = Depends(get_current_user)):
    """All of the caller's portfolios, newest first"""
    try:
        return ApiResponse.ok(portfolio_service.get_all(user.id), "Portfolios retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching portfolios: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/summaries", response_model=ApiResponse)
async def get_portfolio_summaries(user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(portfolio_service.get_summaries(user.id), "Portfolio summaries retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching portfolio summaries: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stats/my-count", response_model=ApiResponse)
async def get_my_portfolio_count(user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(portfolio_service.count_for_user(user.id), "Portfolio count retrieved successfully")
    except Exception as e:
        logger.error(f"Error counting portfolios: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stats/total", response_model=ApiResponse)
async def get_total_portfolio_count(admin: CurrentUser = Depends(require_admin)):
    try:
        return ApiResponse.ok(portfolio_service.count_all(), "Total portfolio count retrieved successfully")
    except Exception as e:
        logger.error(f"Error counting all portfolios: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{portfolio_id}", response_model=ApiResponse)
async def get_portfolio(portfolio_id: int, user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(portfolio_service.get_by_id(portfolio_id, user.id), "Portfolio retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching portfolio {portfolio_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{portfolio_id}/detail", response_model=ApiResponse)
async def get_portfolio_detail(portfolio_id: int, user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(portfolio_service.get_detail(portfolio_id, user), "Portfolio detail retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching portfolio detail {portfolio_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{portfolio_id}/stats", response_model=ApiResponse)
async def get_portfolio_stats(portfolio_id: int, user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(portfolio_service.get_stats(portfolio_id, user.id), "Portfolio stats retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching portfolio stats {portfolio_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{portfolio_id}/can-delete", response_model=ApiResponse)
async def can_delete_portfolio(portfolio_id: int, user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(portfolio_service.can_delete(portfolio_id, user.id), "Delete check completed")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error checking portfolio {portfolio_id} deletion: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{portfolio_id}/investment-count", response_model=ApiResponse)
async def get_portfolio_investment_count(portfolio_id: int, user: CurrentUser = Depends(get_current_user)):
    try:
        count = portfolio_service.get_investment_count(portfolio_id, user.id)
        return ApiResponse.ok(count, "Investment count retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error counting investments for portfolio {portfolio_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=ApiResponse, status_code=201)
async def create_portfolio(request: PortfolioCreate, user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(portfolio_service.create(user.id, request), "Portfolio created successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error creating portfolio: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{portfolio_id}", response_model=ApiResponse)
async def update_portfolio(portfolio_id: int, request: PortfolioUpdate, user: CurrentUser = Depends(get_current_user)):
    try:
        result = portfolio_service.update(portfolio_id, user.id, request)
        return ApiResponse.ok(result, "Portfolio updated successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error updating portfolio {portfolio_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{portfolio_id}", response_model=ApiResponse)
async def delete_portfolio(portfolio_id: int, user: CurrentUser = Depends(get_current_user)):
    """Delete an empty, non-default portfolio"""
    try:
        portfolio_service.delete(portfolio_id, user.id)
        return ApiResponse.ok(None, "Portfolio deleted successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error deleting portfolio {portfolio_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
