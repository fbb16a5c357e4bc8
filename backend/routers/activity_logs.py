from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from models.auth import CurrentUser
from models.common import ApiResponse, normalize_paging
from services.activity_log import activity_log_service
from routers.deps import get_current_user, require_admin, clamp

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/recent", response_model=ApiResponse)
async def get_recent_activity(count: int = Query(default=20), admin: CurrentUser = Depends(require_admin)):
    try:
        result = activity_log_service.get_recent(clamp(count, 1, 100, 20))
        return ApiResponse.ok(result, "Recent activity retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching recent activity: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/my-activity")
async def get_my_activity(
    page: int = Query(default=1),
    page_size: int = Query(default=20),
    user: CurrentUser = Depends(get_current_user)
):
    """The caller's own audit trail, newest first"""
    try:
        page, page_size = normalize_paging(page, page_size)
        return activity_log_service.get_for_user(user.id, page, page_size)
    except Exception as e:
        logger.error(f"Error fetching activity for {user.id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/user/{user_id}")
async def get_user_activity(
    user_id: str,
    page: int = Query(default=1),
    page_size: int = Query(default=20),
    admin: CurrentUser = Depends(require_admin)
):
    try:
        page, page_size = normalize_paging(page, page_size)
        return activity_log_service.get_for_user(user_id, page, page_size)
    except Exception as e:
        logger.error(f"Error fetching activity for {user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
