from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from models.auth import CurrentUser, UpdateUserRequest
from models.common import ApiResponse, normalize_paging
from services.users import user_service
from services.exceptions import ServiceError
from routers.deps import get_current_user, require_admin, service_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_users(
    page: int = Query(default=1),
    page_size: int = Query(default=10),
    admin: CurrentUser = Depends(require_admin)
):
    """Paged list of all users (admin)"""
    try:
        page, page_size = normalize_paging(page, page_size)
        return user_service.get_all(page, page_size)
    except Exception as e:
        logger.error(f"Error fetching users: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/profile", response_model=ApiResponse)
async def get_profile(user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(user_service.get_by_id(user.id, user), "Profile retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching profile: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stats/count", response_model=ApiResponse)
async def get_user_count(admin: CurrentUser = Depends(require_admin)):
    try:
        return ApiResponse.ok(user_service.count(), "User count retrieved successfully")
    except Exception as e:
        logger.error(f"Error counting users: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{user_id}", response_model=ApiResponse)
async def get_user(user_id: str, user: CurrentUser = Depends(get_current_user)):
    try:
        return ApiResponse.ok(user_service.get_by_id(user_id, user), "User retrieved successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{user_id}", response_model=ApiResponse)
async def update_user(user_id: str, request: UpdateUserRequest, user: CurrentUser = Depends(get_current_user)):
    try:
        result = user_service.update(user_id, request, user)
        return ApiResponse.ok(result, "User updated successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{user_id}", response_model=ApiResponse)
async def delete_user(user_id: str, admin: CurrentUser = Depends(require_admin)):
    try:
        user_service.delete(user_id, admin)
        return ApiResponse.ok(None, "User deleted successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error deleting user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/{user_id}/toggle-active", response_model=ApiResponse)
async def toggle_user_active(user_id: str, admin: CurrentUser = Depends(require_admin)):
    try:
        result = user_service.toggle_active(user_id, admin)
        state = "activated" if result.is_active else "deactivated"
        return ApiResponse.ok(result, f"User {state} successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error toggling user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
