import sqlite3
from datetime import timedelta
from typing import Dict
import logging

import database
from config import settings
from models.auth import (
    RegisterRequest, LoginRequest, ChangePasswordRequest, AuthResponse, CurrentUser
)
from models.common import ActivityAction, EntityType, Role
from services.activity_log import activity_log_service
from services.exceptions import UnauthorizedError, InvalidOperationError
from services.portfolios import portfolio_service
from services import security

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, login and token lifecycle"""

    def _issue_tokens(self, user: Dict) -> AuthResponse:
        """Create an access token and rotate the stored refresh token"""
        access_token, expires_at = security.create_access_token(user)
        refresh_token = security.generate_refresh_token()
        database.update_user(user["id"], {
            "refresh_token": refresh_token,
            "refresh_token_expiry_time": database.utcnow() + timedelta(days=settings.refresh_token_expiry_days),
        })
        return AuthResponse(
            user_id=user["id"],
            email=user["email"],
            first_name=user["first_name"],
            last_name=user["last_name"],
            role=user["role"],
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at
        )

    def register(self, request: RegisterRequest) -> AuthResponse:
        """
        Create a user account with the User role and a default portfolio

        Raises:
            ValueError: password rule or confirmation mismatch
            InvalidOperationError: email already registered
        """
        security.validate_password_strength(request.password)
        if request.password != request.confirm_password:
            raise ValueError("Passwords do not match")

        if database.get_user_by_email(request.email) is not None:
            raise InvalidOperationError("Registration failed. Email may already be in use.")

        try:
            user = database.create_user(
                email=request.email,
                first_name=request.first_name.strip(),
                last_name=request.last_name.strip(),
                password_hash=security.hash_password(request.password),
                role=Role.USER.value,
                email_confirmed=True
            )
        except sqlite3.IntegrityError:
            # Lost a race with a concurrent registration of the same address
            raise InvalidOperationError("Registration failed. Email may already be in use.")
        portfolio_service.get_or_create_default(user["id"])

        activity_log_service.log_activity(
            user["id"], ActivityAction.CREATE, EntityType.USER, user["id"], "User registered"
        )
        logger.info(f"Registered user {user['email']}")
        return self._issue_tokens(user)

    def login(self, request: LoginRequest) -> AuthResponse:
        user = database.get_user_by_email(request.email)
        if (
            user is None
            or user["is_deleted"]
            or not user["is_active"]
            or not security.verify_password(request.password, user["password_hash"])
        ):
            logger.info(f"Failed login for {request.email}")
            raise UnauthorizedError("Invalid email or password")

        activity_log_service.log_activity(
            user["id"], ActivityAction.LOGIN, EntityType.USER, user["id"], "User logged in"
        )
        return self._issue_tokens(user)

    def refresh(self, refresh_token: str) -> AuthResponse:
        user = database.get_user_by_refresh_token(refresh_token)
        if (
            user is None
            or not user["is_active"]
            or user["refresh_token_expiry_time"] is None
            or user["refresh_token_expiry_time"] <= database.utcnow()
        ):
            raise UnauthorizedError("Invalid or expired refresh token")
        return self._issue_tokens(user)

    def logout(self, user_id: str) -> None:
        user = database.get_user_by_id(user_id)
        if user is None:
            raise InvalidOperationError("Logout failed")
        database.update_user(user_id, {"refresh_token": None, "refresh_token_expiry_time": None})
        activity_log_service.log_activity(
            user_id, ActivityAction.LOGOUT, EntityType.USER, user_id, "User logged out"
        )

    def request_password_reset(self, email: str) -> None:
        """Email delivery is simulated; the outcome never reveals whether the account exists"""
        user = database.get_user_by_email(email)
        if user is not None and not user["is_deleted"]:
            logger.info(f"Password reset requested for user {user['id']} (email delivery simulated)")
        else:
            logger.info("Password reset requested for unknown email")

    def change_password(self, user_id: str, request: ChangePasswordRequest) -> None:
        user = database.get_user_by_id(user_id)
        if user is None:
            raise InvalidOperationError("User not found")
        if not security.verify_password(request.current_password, user["password_hash"]):
            raise InvalidOperationError("Current password is incorrect")
        security.validate_password_strength(request.new_password)
        if request.new_password != request.confirm_password:
            raise ValueError("Passwords do not match")

        database.update_user(user_id, {
            "password_hash": security.hash_password(request.new_password),
            "refresh_token": None,
            "refresh_token_expiry_time": None,
        })
        activity_log_service.log_activity(
            user_id, ActivityAction.PASSWORD_CHANGE, EntityType.USER, user_id, "Password changed"
        )

    def verify_email(self, token: str) -> None:
        if not token or not token.strip():
            raise InvalidOperationError("Invalid verification token")
        logger.info("Email verification accepted (simulated)")

    def resolve_user(self, token: str) -> CurrentUser:
        """
        Turn a bearer token into the calling user

        Raises:
            UnauthorizedError: invalid token or missing, inactive or deleted user
        """
        claims = security.decode_access_token(token)
        if claims is None or not claims.get("sub"):
            raise UnauthorizedError("Could not validate credentials")

        user = database.get_user_by_id(claims["sub"])
        if user is None or not user["is_active"]:
            raise UnauthorizedError("Could not validate credentials")

        return CurrentUser(
            id=user["id"],
            email=user["email"],
            first_name=user["first_name"],
            last_name=user["last_name"],
            role=user["role"]
        )


auth_service = AuthService()
