"""
PeopleDesk HRM - Employee Service

Onboarding and salary structure management.
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import ActivityAction
from app.models.payroll import Offer
from app.models.user import User, UserRole, EmployeeProfile
from app.services.audit_service import AuditService
from app.utils.error_handling import (
    ConflictException,
    DuplicateEntryException,
    EmployeeNotFoundException,
    NotFoundException,
)
from app.utils.security import get_password_hash

logger = logging.getLogger(__name__)


OFFER_FIELDS = (
    "annual_ctc", "role_title", "basic", "hra", "da", "special_allowance",
    "gross_salary", "pf_deduction", "tax", "net_salary", "is_signed",
)


class EmployeeService:
    """Service for employee profiles and offers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # LOOKUPS
    # ===========================================

    async def get_profile_by_code(
        self,
        tenant_id: uuid.UUID,
        employee_code: str,
    ) -> EmployeeProfile:
        """
        Resolve the tenant-visible employee code.

        Raises:
            EmployeeNotFoundException: no such code in this tenant
        """
        result = await self.db.execute(
            select(EmployeeProfile).where(
                and_(
                    EmployeeProfile.tenant_id == tenant_id,
                    EmployeeProfile.employee_id == employee_code,
                )
            )
        )
        profile = result.scalar_one_or_none()
        if not profile:
            raise EmployeeNotFoundException(employee_code)
        return profile

    async def get_profile_by_user(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Optional[EmployeeProfile]:
        result = await self.db.execute(
            select(EmployeeProfile).where(
                and_(
                    EmployeeProfile.tenant_id == tenant_id,
                    EmployeeProfile.user_id == user_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_profile(
        self,
        tenant_id: uuid.UUID,
        profile_id: uuid.UUID,
    ) -> EmployeeProfile:
        result = await self.db.execute(
            select(EmployeeProfile).where(
                and_(
                    EmployeeProfile.tenant_id == tenant_id,
                    EmployeeProfile.id == profile_id,
                )
            )
        )
        profile = result.scalar_one_or_none()
        if not profile:
            raise NotFoundException("Employee profile", profile_id)
        return profile

    async def list_profiles(self, tenant_id: uuid.UUID) -> List[EmployeeProfile]:
        result = await self.db.execute(
            select(EmployeeProfile)
            .where(EmployeeProfile.tenant_id == tenant_id)
            .order_by(EmployeeProfile.first_name, EmployeeProfile.last_name)
        )
        return list(result.scalars().all())

    # ===========================================
    # ONBOARDING
    # ===========================================

    async def onboard_employee(
        self,
        tenant_id: uuid.UUID,
        data: Dict[str, Any],
        performed_by_id: Optional[uuid.UUID] = None,
    ) -> Tuple[User, EmployeeProfile]:
        """
        Create the EMPLOYEE login and HR profile in one transaction.

        A user that already exists in the same tenant without a profile is
        completed rather than duplicated.

        Raises:
            ConflictException: email belongs to another tenant, or user already onboarded
            DuplicateEntryException: employee code already used in this tenant
        """
        email = data["email"].lower()
        employee_code = data["employee_id"]

        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user and user.tenant_id != tenant_id:
            raise ConflictException(
                "User exists in a different organization.",
                resource_type="User",
            )

        clash = await self.db.execute(
            select(EmployeeProfile.id).where(
                and_(
                    EmployeeProfile.tenant_id == tenant_id,
                    EmployeeProfile.employee_id == employee_code,
                )
            )
        )
        if clash.scalar_one_or_none():
            raise DuplicateEntryException("Employee", "employeeId", employee_code)

        if user is None:
            user = User(
                tenant_id=tenant_id,
                name=data["name"],
                email=email,
                hashed_password=get_password_hash(data["password"]),
                role=UserRole.EMPLOYEE,
                is_active=True,
            )
            self.db.add(user)
            await self.db.flush()
        elif await self.get_profile_by_user(tenant_id, user.id):
            raise ConflictException("Employee is already onboarded.", resource_type="EmployeeProfile")

        profile = EmployeeProfile(
            tenant_id=tenant_id,
            user_id=user.id,
            employee_id=employee_code,
            first_name=data["first_name"],
            last_name=data["last_name"],
            personal_email=data.get("personal_email"),
            phone=data.get("phone"),
            designation=data.get("designation"),
            employee_type=data.get("employee_type"),
            joining_date=data.get("joining_date") or date.today(),
            date_of_birth=data.get("date_of_birth"),
        )
        self.db.add(profile)
        await self.db.flush()

        AuditService(self.db).log_action(
            tenant_id=tenant_id,
            action=ActivityAction.EMPLOYEE_ONBOARDED,
            description=f"Onboarded {profile.full_name} ({employee_code})",
            performed_by_id=performed_by_id,
            target_user_id=user.id,
            reference=str(profile.id),
        )

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictException("Employee already exists.", resource_type="EmployeeProfile") from e

        logger.info(f"Onboarded employee {employee_code} in tenant {tenant_id}")
        return user, profile

    # ===========================================
    # SALARY STRUCTURE
    # ===========================================

    async def get_offer(self, tenant_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Offer]:
        result = await self.db.execute(
            select(Offer).where(
                and_(Offer.tenant_id == tenant_id, Offer.user_id == user_id)
            )
        )
        return result.scalar_one_or_none()

    async def upsert_offer(
        self,
        tenant_id: uuid.UUID,
        profile_id: uuid.UUID,
        data: Dict[str, Any],
        performed_by_id: Optional[uuid.UUID] = None,
    ) -> Offer:
        """Create or replace the salary structure of an employee."""
        profile = await self.get_profile(tenant_id, profile_id)
        offer = await self.get_offer(tenant_id, profile.user_id)

        values = {field: data[field] for field in OFFER_FIELDS if field in data}
        if offer is None:
            offer = Offer(tenant_id=tenant_id, user_id=profile.user_id, **values)
            self.db.add(offer)
        else:
            for field, value in values.items():
                setattr(offer, field, value)

        AuditService(self.db).log_action(
            tenant_id=tenant_id,
            action=ActivityAction.OFFER_UPDATED,
            description=f"Salary structure set for {profile.full_name}: gross {values.get('gross_salary')}",
            performed_by_id=performed_by_id,
            target_user_id=profile.user_id,
            reference=str(profile.id),
        )

        await self.db.commit()
        await self.db.refresh(offer)
        return offer
