"""
PeopleDesk HRM - Authentication Schemas

Pydantic schemas for authentication requests and responses.
"""

from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from app.schemas.base import CamelModel


# ===========================================
# REQUEST SCHEMAS
# ===========================================

class TenantRegisterRequest(CamelModel):
    """Create a tenant together with its first administrator."""
    company_name: str = Field(..., min_length=1, max_length=255)
    company_email: EmailStr
    tenant_code: str = Field(..., min_length=2, max_length=50)
    admin_name: str = Field(..., min_length=1, max_length=255)
    admin_email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)

    @field_validator("tenant_code")
    @classmethod
    def normalize_tenant_code(cls, v: str) -> str:
        code = v.strip().upper()
        if not code.replace("-", "").replace("_", "").isalnum():
            raise ValueError("Tenant code may only contain letters, digits, '-' and '_'")
        return code


class LoginRequest(CamelModel):
    """Email and password login."""
    email: EmailStr
    password: str = Field(..., min_length=1)


# ===========================================
# RESPONSE SCHEMAS
# ===========================================

class UserResponse(CamelModel):
    """Authenticated user."""
    id: UUID
    tenant_id: UUID
    name: str
    email: str
    role: str


class TokenResponse(CamelModel):
    """Login / registration result."""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
