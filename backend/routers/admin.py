from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from models.admin import BulkUserAction
from models.auth import CurrentUser
from models.common import ApiResponse, normalize_paging
from services.admin import admin_service
from services.activity_log import activity_log_service
from services.exceptions import ServiceError
from routers.deps import require_admin, service_error, clamp

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/dashboard", response_model=ApiResponse)
async def get_admin_dashboard(admin: CurrentUser = Depends(require_admin)):
    try:
        return ApiResponse.ok(admin_service.get_dashboard(), "Admin dashboard retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching admin dashboard: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/dashboard/stats", response_model=ApiResponse)
async def get_system_statistics(admin: CurrentUser = Depends(require_admin)):
    try:
        return ApiResponse.ok(admin_service.get_statistics(), "System statistics retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching system statistics: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/dashboard/recent-activity", response_model=ApiResponse)
async def get_recent_activity(count: int = Query(default=20), admin: CurrentUser = Depends(require_admin)):
    try:
        result = activity_log_service.get_recent(clamp(count, 1, 100, 20))
        return ApiResponse.ok(result, "Recent activity retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching recent activity: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/dashboard/recent-users", response_model=ApiResponse)
async def get_recent_users(count: int = Query(default=10), admin: CurrentUser = Depends(require_admin)):
    try:
        result = admin_service.get_recent_users(clamp(count, 1, 100, 10))
        return ApiResponse.ok(result, "Recent users retrieved successfully")
    except Exception as e:
        logger.error(f"Error fetching recent users: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/users")
async def search_users(
    search_term: Optional[str] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    role: Optional[str] = Query(default=None),
    registered_after: Optional[datetime] = Query(default=None),
    registered_before: Optional[datetime] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, description="email, lastname, investmentvalue or createdat"),
    sort_order: Optional[str] = Query(default="desc"),
    page: int = Query(default=1),
    page_size: int = Query(default=10),
    admin: CurrentUser = Depends(require_admin)
):
    """Search and page through users"""
    try:
        page, page_size = normalize_paging(page, page_size)
        return admin_service.search_users(
            search_term, is_active, role, registered_after, registered_before,
            sort_by, sort_order, page, page_size
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error searching users: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/users/bulk-activate", response_model=ApiResponse)
async def bulk_activate(request: BulkUserAction, admin: CurrentUser = Depends(require_admin)):
    try:
        result = admin_service.bulk_action("activate", request.user_ids, admin)
        return ApiResponse.ok(result, f"{result.affected} user(s) activated")
    except Exception as e:
        logger.error(f"Error bulk activating users: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/users/bulk-deactivate", response_model=ApiResponse)
async def bulk_deactivate(request: BulkUserAction, admin: CurrentUser = Depends(require_admin)):
    try:
        result = admin_service.bulk_action("deactivate", request.user_ids, admin)
        return ApiResponse.ok(result, f"{result.affected} user(s) deactivated")
    except Exception as e:
        logger.error(f"Error bulk deactivating users: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/users/bulk-delete", response_model=ApiResponse)
async def bulk_delete(request: BulkUserAction, admin: CurrentUser = Depends(require_admin)):
    try:
        result = admin_service.bulk_action("delete", request.user_ids, admin)
        return ApiResponse.ok(result, f"{result.affected} user(s) deleted")
    except Exception as e:
        logger.error(f"Error bulk deleting users: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/users/{user_id}", response_model=ApiResponse)
async def get_user_detail(user_id: str, admin: CurrentUser = Depends(require_admin)):
    try:
        return ApiResponse.ok(admin_service.get_user_detail(user_id), "User detail retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching user detail {user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/users/{user_id}/stats", response_model=ApiResponse)
async def get_user_stats(user_id: str, admin: CurrentUser = Depends(require_admin)):
    try:
        return ApiResponse.ok(admin_service.get_user_stats(user_id), "User statistics retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching user stats {user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/users/{user_id}/activate", response_model=ApiResponse)
async def activate_user(user_id: str, admin: CurrentUser = Depends(require_admin)):
    try:
        changed = admin_service.set_active(user_id, True, admin)
        return ApiResponse.ok(changed, "User activated successfully" if changed else "User is already active")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error activating user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/users/{user_id}/deactivate", response_model=ApiResponse)
async def deactivate_user(user_id: str, admin: CurrentUser = Depends(require_admin)):
    try:
        changed = admin_service.set_active(user_id, False, admin)
        return ApiResponse.ok(changed, "User deactivated successfully" if changed else "User is already inactive")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error deactivating user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/users/{user_id}", response_model=ApiResponse)
async def delete_user(user_id: str, admin: CurrentUser = Depends(require_admin)):
    try:
        admin_service.delete_user(user_id, admin)
        return ApiResponse.ok(None, "User deleted successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error deleting user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
