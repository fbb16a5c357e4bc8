from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from models.auth import (
    RegisterRequest, LoginRequest, RefreshTokenRequest, PasswordResetRequest,
    ChangePasswordRequest, CurrentUser
)
from models.common import ApiResponse
from services.auth import auth_service
from services.exceptions import ServiceError
from routers.deps import get_current_user, service_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=ApiResponse)
def register(request: RegisterRequest):
    """
    Create an account and return tokens

    Plain def so password hashing runs in the threadpool, off the event loop
    """
    try:
        result = auth_service.register(request)
        return ApiResponse.ok(result, "Registration successful")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error registering user: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/login", response_model=ApiResponse)
def login(request: LoginRequest):
    try:
        result = auth_service.login(request)
        return ApiResponse.ok(result, "Login successful")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error logging in: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/refresh-token", response_model=ApiResponse)
async def refresh_token(request: RefreshTokenRequest):
    """Exchange a refresh token for a new token pair"""
    try:
        result = auth_service.refresh(request.refresh_token)
        return ApiResponse.ok(result, "Token refreshed successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error refreshing token: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/logout", response_model=ApiResponse)
async def logout(user: CurrentUser = Depends(get_current_user)):
    try:
        auth_service.logout(user.id)
        return ApiResponse.ok(None, "Logout successful")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error logging out: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/password-reset-request", response_model=ApiResponse)
async def password_reset_request(request: PasswordResetRequest):
    """Always succeeds so the response does not reveal whether the account exists"""
    try:
        auth_service.request_password_reset(request.email)
        return ApiResponse.ok(None, "If the email exists, a password reset link has been sent")
    except Exception as e:
        logger.error(f"Error requesting password reset: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/change-password", response_model=ApiResponse)
def change_password(request: ChangePasswordRequest, user: CurrentUser = Depends(get_current_user)):
    try:
        auth_service.change_password(user.id, request)
        return ApiResponse.ok(None, "Password changed successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error changing password: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/verify-email", response_model=ApiResponse)
async def verify_email(token: str = Query(default="")):
    try:
        auth_service.verify_email(token)
        return ApiResponse.ok(None, "Email verified successfully")
    except HTTPException:
        raise
    except ServiceError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error verifying email: {e}")
        raise HTTPException(status_code=500, detail=str(e))
