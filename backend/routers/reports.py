from datetime import datetime
from typing import Optional, Tuple
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse, Response

import database
from models.auth import CurrentUser
from models.common import ApiResponse
from services.reports import reports_service, parse_preset_range
from routers.deps import get_current_user, clamp

logger = logging.getLogger(__name__)

router = APIRouter()


def _date_range(start_date: Optional[datetime], end_date: Optional[datetime],
                preset: Optional[str]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Explicit dates win; otherwise a preset such as 'last30days' is expanded"""
    if start_date is None and end_date is None and preset:
        return parse_preset_range(preset, database.utcnow())
    return start_date, end_date


@router.get("/performance-summary", response_model=ApiResponse)
async def get_performance_summary(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    preset: Optional[str] = Query(default=None),
    user: CurrentUser = Depends(get_current_user)
):
    try:
        start_date, end_date = _date_range(start_date, end_date, preset)
        result = reports_service.performance_summary(user.id, start_date, end_date)
        return ApiResponse.ok(result, "Performance summary report generated successfully")
    except Exception as e:
        logger.error(f"Error generating performance summary: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/investment-distribution", response_model=ApiResponse)
async def get_investment_distribution(user: CurrentUser = Depends(get_current_user)):
    try:
        result = reports_service.investment_distribution(user.id)
        return ApiResponse.ok(result, "Investment distribution report generated successfully")
    except Exception as e:
        logger.error(f"Error generating distribution report: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/transaction-history", response_model=ApiResponse)
async def get_transaction_history(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    preset: Optional[str] = Query(default=None),
    user: CurrentUser = Depends(get_current_user)
):
    try:
        start_date, end_date = _date_range(start_date, end_date, preset)
        result = reports_service.transaction_history(user.id, start_date, end_date)
        return ApiResponse.ok(result, "Transaction history report generated successfully")
    except Exception as e:
        logger.error(f"Error generating transaction history: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/monthly-performance-trend", response_model=ApiResponse)
async def get_monthly_performance_trend(months: int = Query(default=12), user: CurrentUser = Depends(get_current_user)):
    try:
        result = reports_service.monthly_performance_trend(user.id, clamp(months, 1, 36, 12))
        return ApiResponse.ok(result, "Monthly performance trend report generated successfully")
    except Exception as e:
        logger.error(f"Error generating monthly trend: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/year-over-year", response_model=ApiResponse)
async def get_year_over_year(user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(reports_service.year_over_year(user.id), "Year-over-year report generated successfully")
    except Exception as e:
        logger.error(f"Error generating year-over-year report: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/top-performing", response_model=ApiResponse)
async def get_top_performing(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    preset: Optional[str] = Query(default=None),
    top_count: int = Query(default=10),
    user: CurrentUser = Depends(get_current_user)
):
    try:
        start_date, end_date = _date_range(start_date, end_date, preset)
        result = reports_service.top_performing(user.id, start_date, end_date, clamp(top_count, 1, 50, 10))
        return ApiResponse.ok(result, "Top performing investments report generated successfully")
    except Exception as e:
        logger.error(f"Error generating top performers report: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/export/csv")
async def export_csv(
    report_type: str = Query(default="performance"),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    user: CurrentUser = Depends(get_current_user)
):
    try:
        content = reports_service.export_csv(user.id, report_type, start_date, end_date)
        filename = f"{report_type}_report_{database.utcnow():%Y%m%d_%H%M%S}.csv"
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"}
        )
    except Exception as e:
        logger.error(f"Error exporting {report_type} report to CSV: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/export/json")
async def export_json(
    report_type: str = Query(default="performance"),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    user: CurrentUser = Depends(get_current_user)
):
    try:
        content = reports_service.export_json(user.id, report_type, start_date, end_date)
        filename = f"{report_type}_report_{database.utcnow():%Y%m%d_%H%M%S}.json"
        return Response(
            content=content,
            media_type="application/json",
            headers={"Content-Disposition": f"attachment; filename={filename}"}
        )
    except Exception as e:
        logger.error(f"Error exporting {report_type} report to JSON: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/export/pdf", response_model=ApiResponse)
async def export_pdf(
    report_type: str = Query(default="performance"),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    user: CurrentUser = Depends(get_current_user)
):
    """Simulated PDF export; use /export/html and print it for a real document"""
    try:
        descriptor = reports_service.export_pdf(user.id, report_type, start_date, end_date)
        return ApiResponse.ok(descriptor, "PDF export prepared")
    except Exception as e:
        logger.error(f"Error exporting {report_type} report to PDF: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/export/html", response_class=HTMLResponse)
async def export_html(
    report_type: str = Query(default="performance"),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    user: CurrentUser = Depends(get_current_user)
):
    try:
        return HTMLResponse(content=reports_service.export_html(user.id, report_type, start_date, end_date))
    except Exception as e:
        logger.error(f"Error exporting {report_type} report to HTML: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/types", response_model=ApiResponse)
async def get_report_types(user: CurrentUser = Depends(get_current_user)):
    return ApiResponse.ok(reports_service.available_types(), "Report types retrieved successfully")


@router.get("/preset-ranges", response_model=ApiResponse)
async def get_preset_ranges(user: CurrentUser = Depends(get_current_user)):
    return ApiResponse.ok(reports_service.preset_ranges(), "Preset date ranges retrieved successfully")
