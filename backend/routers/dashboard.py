from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from models.auth import CurrentUser
from models.common import ApiResponse
from services.dashboard import dashboard_service
from routers.deps import get_current_user, clamp

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ApiResponse)
async def get_dashboard(user: CurrentUser = Depends(get_current_user)):
    """Everything the dashboard page shows in one response"""
    try:
        return ApiResponse.ok(dashboard_service.get_dashboard(user.id), "Dashboard data retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching dashboard: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/summary", response_model=ApiResponse)
async def get_summary(user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(dashboard_service.get_summary_cards(user.id), "Summary retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching dashboard summary: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/recent-transactions", response_model=ApiResponse)
async def get_recent_transactions(count: int = Query(default=10), user: CurrentUser = Depends(get_current_user)):
    try:
        result = dashboard_service.get_recent_transactions(user.id, clamp(count, 1, 50, 10))
        return ApiResponse.ok(result, "Recent transactions retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching recent transactions: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/performance-chart", response_model=ApiResponse)
async def get_performance_chart(months: int = Query(default=12), user: CurrentUser = Depends(get_current_user)):
    try:
        result = dashboard_service.get_performance_chart(user.id, clamp(months, 1, 36, 12))
        return ApiResponse.ok(result, "Performance chart retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching performance chart: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/monthly-performance", response_model=ApiResponse)
async def get_monthly_performance(months: int = Query(default=12), user: CurrentUser = Depends(get_current_user)):
    try:
        result = dashboard_service.get_monthly_performance(user.id, clamp(months, 1, 36, 12))
        return ApiResponse.ok(result, "Monthly performance retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching monthly performance: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/asset-allocation", response_model=ApiResponse)
async def get_asset_allocation(user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(dashboard_service.get_asset_allocation(user.id), "Asset allocation retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching asset allocation: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/quick-stats", response_model=ApiResponse)
async def get_quick_stats(user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(dashboard_service.get_quick_stats(user.id), "Quick stats retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching quick stats: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/portfolio-breakdown", response_model=ApiResponse)
async def get_portfolio_breakdown(user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(dashboard_service.get_portfolio_breakdown(user.id), "Portfolio breakdown retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching portfolio breakdown: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/top-performing", response_model=ApiResponse)
async def get_top_performing(count: int = Query(default=5), user: CurrentUser = Depends(get_current_user)):
    try:
        result = dashboard_service.get_top_performing(user.id, clamp(count, 1, 20, 5))
        return ApiResponse.ok(result, "Top performing investments retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching top performers: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/worst-performing", response_model=ApiResponse)
async def get_worst_performing(count: int = Query(default=5), user: CurrentUser = Depends(get_current_user)):
    try:
        result = dashboard_service.get_worst_performing(user.id, clamp(count, 1, 20, 5))
        return ApiResponse.ok(result, "Worst performing investments retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching worst performers: {e}")
        raise HTTPException(status_code=500, detail=str(e))
