"""
PeopleDesk HRM - Security Utilities

Password hashing and JWT token management.

Access tokens carry the user id (sub), tenant id and role. The role in a
token is informational; get_current_user re-reads it from the database.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign an access token.

    Args:
        claims: Payload; "exp" and "type" are added here
        expires_delta: Lifetime, settings.access_token_expire_minutes by default
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        **claims,
        "exp": datetime.now(timezone.utc) + lifetime,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_user_token(user_id: uuid.UUID, tenant_id: uuid.UUID, role: str) -> str:
    """Access token carrying the caller's identity, tenant and role."""
    return create_access_token({"sub": str(user_id), "tenant_id": str(tenant_id), "role": role})


def verify_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Payload of a valid, unexpired access token.

    Returns None for a bad signature, an expired token or a token of
    another type.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return payload
