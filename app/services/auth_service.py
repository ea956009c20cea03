"""
PeopleDesk HRM - Authentication Service

Business logic for tenant registration and login.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.audit import ActivityAction
from app.models.tenant import Tenant, Subscription, SubscriptionStatus
from app.models.user import User, UserRole
from app.services.audit_service import AuditService
from app.utils.error_handling import (
    ConflictException,
    DuplicateEntryException,
    InvalidCredentialsException,
)
from app.utils.security import (
    get_password_hash,
    verify_password,
    create_user_token,
)

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email address."""
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get user by ID."""
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def register_tenant(
        self,
        company_name: str,
        company_email: str,
        tenant_code: str,
        admin_name: str,
        admin_email: str,
        password: str,
    ) -> Tuple[Tenant, User]:
        """
        Create a tenant, its first ADMIN user and a trial subscription.

        All three rows are committed together or not at all.

        Raises:
            DuplicateEntryException: tenant email, tenant code or admin email already used
        """
        company_email = company_email.lower()
        admin_email = admin_email.lower()

        existing = await self.db.execute(
            select(Tenant).where(
                or_(Tenant.email == company_email, Tenant.tenant_code == tenant_code)
            )
        )
        clash = existing.scalars().first()
        if clash:
            if clash.tenant_code == tenant_code:
                raise DuplicateEntryException("Tenant", "tenantCode", tenant_code)
            raise DuplicateEntryException("Tenant", "email", company_email)

        if await self.get_user_by_email(admin_email):
            raise DuplicateEntryException("User", "email", admin_email)

        now = datetime.now(timezone.utc)
        tenant = Tenant(
            name=company_name,
            email=company_email,
            tenant_code=tenant_code,
        )
        self.db.add(tenant)
        await self.db.flush()

        admin = User(
            tenant_id=tenant.id,
            name=admin_name,
            email=admin_email,
            hashed_password=get_password_hash(password),
            role=UserRole.ADMIN,
            is_active=True,
        )
        subscription = Subscription(
            tenant_id=tenant.id,
            plan_name=settings.trial_plan_name,
            status=SubscriptionStatus.ACTIVE,
            start_date=now,
            end_date=now + timedelta(days=settings.trial_period_days),
        )
        self.db.add_all([admin, subscription])
        await self.db.flush()

        AuditService(self.db).log_action(
            tenant_id=tenant.id,
            action=ActivityAction.TENANT_REGISTERED,
            description=f"Tenant {company_name} registered by {admin_email}",
            performed_by_id=admin.id,
        )

        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent registration
            await self.db.rollback()
            raise ConflictException(
                "Tenant or user already exists",
                resource_type="Tenant",
            ) from e

        logger.info(f"Registered tenant {tenant.tenant_code} ({tenant.id})")
        return tenant, admin

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate user with email and password.

        Returns:
            User if credentials are valid and the account is active, None otherwise
        """
        user = await self.get_user_by_email(email)

        if not user:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        if not user.is_active:
            return None

        return user

    async def login(self, email: str, password: str) -> Tuple[User, str]:
        """
        Authenticate and issue an access token.

        Raises:
            InvalidCredentialsException: unknown email, wrong password or inactive account
        """
        user = await self.authenticate_user(email, password)
        if not user:
            logger.warning(f"Failed login for {email.lower()}")
            raise InvalidCredentialsException()
        return user, self.create_token(user)

    @staticmethod
    def create_token(user: User) -> str:
        return create_user_token(user.id, user.tenant_id, user.role.value)
