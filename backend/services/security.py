"""
Password hashing and token handling

bcrypt for password hashes, HS256 JWTs for access tokens and random
opaque strings for refresh tokens.
"""

import base64
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple
import logging

import bcrypt
from jose import jwt, JWTError

from config import settings

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a password with bcrypt using the configured work factor"""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError as e:
        logger.warning(f"Malformed password hash: {e}")
        return False


def validate_password_strength(password: str) -> None:
    """
    Enforce the password rule: at least 6 characters with one upper-case
    letter, one lower-case letter and one digit.

    Raises:
        ValueError: describing the first rule the password breaks
    """
    if len(password) < 6:
        raise ValueError("Password must be at least 6 characters long")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        raise ValueError("Password must contain at least one digit")


def create_access_token(user: Dict) -> Tuple[str, datetime]:
    """
    Issue a signed access token for a user

    Args:
        user: User record with id, email, first_name, last_name and role

    Returns:
        Tuple of (encoded token, naive UTC expiry)
    """
    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(minutes=settings.jwt_expiry_minutes)
    claims = {
        "sub": user["id"],
        "email": user["email"],
        "name": f"{user['first_name']} {user['last_name']}",
        "jti": str(uuid.uuid4()),
        "role": user["role"],
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return token, expires_at.replace(tzinfo=None)


def decode_access_token(token: str) -> Optional[Dict]:
    """Validate signature, issuer, audience and expiry; None when invalid"""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"leeway": 0},
        )
    except JWTError as e:
        logger.info(f"Rejected access token: {e}")
        return None


def generate_refresh_token() -> str:
    return base64.b64encode(secrets.token_bytes(64)).decode("ascii")
