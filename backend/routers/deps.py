"""
Shared router dependencies and helpers
"""

from typing import Optional
import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from models.auth import CurrentUser
from services.auth import auth_service
from services.exceptions import ServiceError, UnauthorizedError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> CurrentUser:
    """Resolve the bearer token into the calling user or answer 401"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authenticated",
                            headers={"WWW-Authenticate": "Bearer"})
    try:
        return auth_service.resolve_user(credentials.credentials)
    except UnauthorizedError as e:
        raise HTTPException(status_code=401, detail=e.message,
                            headers={"WWW-Authenticate": "Bearer"})


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def service_error(e: ServiceError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


def clamp(value: int, low: int, high: int, default: int) -> int:
    """Return ``value`` when it lies in [low, high], otherwise ``default``"""
    return value if low <= value <= high else default
