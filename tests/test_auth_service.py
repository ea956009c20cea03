"""
PeopleDesk HRM - Auth Service Tests

Unit tests for tenant registration and login.
"""

import pytest
from datetime import timedelta
from uuid import uuid4
from sqlalchemy import select

from app.models.tenant import Subscription
from app.models.user import UserRole
from app.services.auth_service import AuthService
from app.utils.error_handling import DuplicateEntryException, InvalidCredentialsException
from app.utils.security import (
    create_access_token,
    create_user_token,
    get_password_hash,
    verify_access_token,
    verify_password,
)


class TestAuthService:
    """Test cases for AuthService."""

    @pytest.mark.asyncio
    async def test_register_tenant(self, db_session):
        """Registration creates tenant, admin and trial subscription."""
        service = AuthService(db_session)

        tenant, admin = await service.register_tenant(
            company_name="Initech",
            company_email="HR@Initech.example.com",
            tenant_code="INITECH",
            admin_name="Bill Lumbergh",
            admin_email="Bill@Initech.example.com",
            password="SecurePassword123!",
        )

        assert tenant.email == "hr@initech.example.com"
        assert admin.email == "bill@initech.example.com"
        assert admin.role == UserRole.ADMIN
        assert admin.tenant_id == tenant.id
        assert admin.hashed_password != "SecurePassword123!"  # Should be hashed

        result = await db_session.execute(select(Subscription).where(Subscription.tenant_id == tenant.id))
        assert result.scalar_one() is not None

    @pytest.mark.asyncio
    async def test_register_duplicate_tenant_code(self, db_session, test_tenant):
        service = AuthService(db_session)

        with pytest.raises(DuplicateEntryException):
            await service.register_tenant(
                company_name="Acme Again",
                company_email="other@acme.example.com",
                tenant_code="ACME",
                admin_name="Someone",
                admin_email="someone@acme.example.com",
                password="SecurePassword123!",
            )

    @pytest.mark.asyncio
    async def test_register_duplicate_admin_email(self, db_session, admin_user):
        service = AuthService(db_session)

        with pytest.raises(DuplicateEntryException):
            await service.register_tenant(
                company_name="Hooli",
                company_email="hr@hooli.example.com",
                tenant_code="HOOLI",
                admin_name="Alice Again",
                admin_email="ADMIN@acme.example.com",
                password="SecurePassword123!",
            )

    @pytest.mark.asyncio
    async def test_authenticate_user_success(self, db_session, admin_user):
        """Test successful user authentication."""
        service = AuthService(db_session)

        user = await service.authenticate_user(
            email="Admin@Acme.example.com",
            password="AdminPassword123!",
        )

        assert user is not None
        assert user.id == admin_user.id

    @pytest.mark.asyncio
    async def test_authenticate_user_wrong_password(self, db_session, admin_user):
        """Test authentication with wrong password."""
        service = AuthService(db_session)

        user = await service.authenticate_user(
            email="admin@acme.example.com",
            password="WrongPassword!",
        )

        assert user is None

    @pytest.mark.asyncio
    async def test_inactive_user_cannot_authenticate(self, db_session, admin_user):
        admin_user.is_active = False
        await db_session.commit()

        user = await AuthService(db_session).authenticate_user(
            email="admin@acme.example.com",
            password="AdminPassword123!",
        )

        assert user is None

    @pytest.mark.asyncio
    async def test_login_issues_token_with_tenant_and_role(self, db_session, admin_user):
        user, token = await AuthService(db_session).login("admin@acme.example.com", "AdminPassword123!")

        payload = verify_access_token(token)
        assert payload["sub"] == str(user.id)
        assert payload["tenant_id"] == str(admin_user.tenant_id)
        assert payload["role"] == "ADMIN"

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, db_session):
        with pytest.raises(InvalidCredentialsException):
            await AuthService(db_session).login("nobody@example.com", "Password123!")

    @pytest.mark.asyncio
    async def test_get_user_by_id(self, db_session, admin_user):
        """Test getting user by ID."""
        service = AuthService(db_session)

        assert (await service.get_user_by_id(admin_user.id)).email == "admin@acme.example.com"
        assert await service.get_user_by_id(uuid4()) is None


class TestAccessTokens:
    """Token signing and verification."""

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": str(uuid4())}, expires_delta=timedelta(seconds=-1))
        assert verify_access_token(token) is None

    def test_tampered_token_rejected(self):
        token = create_user_token(uuid4(), uuid4(), "EMPLOYEE")
        assert verify_access_token(token[:-2] + ("A" if token[-2] != "A" else "B") + token[-1]) is None

    def test_password_hash_round_trip(self):
        hashed = get_password_hash("EmployeePassword123!")
        assert verify_password("EmployeePassword123!", hashed)
        assert not verify_password("employeepassword123!", hashed)
