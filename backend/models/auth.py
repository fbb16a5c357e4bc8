from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    """New account registration"""
    email: EmailStr
    password: str = Field(..., min_length=6, description="At least 6 chars with upper, lower and digit")
    confirm_password: str
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)
    confirm_password: str


class AuthResponse(BaseModel):
    """Tokens issued on login, registration and refresh"""
    user_id: str
    email: str
    first_name: str
    last_name: str
    role: str
    access_token: str
    refresh_token: str
    expires_at: datetime = Field(..., description="Access token expiry (UTC)")


class CurrentUser(BaseModel):
    """Authenticated caller resolved from the bearer token"""
    id: str
    email: str
    first_name: str
    last_name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "Admin"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class UserDto(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class UpdateUserRequest(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: Optional[EmailStr] = None
