"""
PeopleDesk HRM - Employee Service Tests
"""

from decimal import Decimal

import pytest

from app.models.user import UserRole
from app.services.employee_service import EmployeeService
from app.utils.error_handling import (
    ConflictException,
    DuplicateEntryException,
    EmployeeNotFoundException,
)


def _onboarding(code="EMP-002", email="carol@acme.example.com"):
    return {
        "name": "Carol King",
        "email": email,
        "password": "EmployeePassword123!",
        "employee_id": code,
        "first_name": "Carol",
        "last_name": "King",
        "designation": "Designer",
    }


class TestEmployeeService:

    @pytest.mark.asyncio
    async def test_onboard_creates_user_and_profile(self, db_session, test_tenant, admin_user):
        user, profile = await EmployeeService(db_session).onboard_employee(
            test_tenant.id, _onboarding(email="Carol@Acme.example.com"), performed_by_id=admin_user.id
        )

        assert user.role == UserRole.EMPLOYEE
        assert user.email == "carol@acme.example.com"
        assert profile.user_id == user.id
        assert profile.full_name == "Carol King"
        assert profile.joining_date is not None

    @pytest.mark.asyncio
    async def test_duplicate_employee_code_rejected(self, db_session, test_tenant, employee_profile):
        with pytest.raises(DuplicateEntryException):
            await EmployeeService(db_session).onboard_employee(test_tenant.id, _onboarding(code="EMP-001"))

    @pytest.mark.asyncio
    async def test_email_of_other_tenant_conflicts(self, db_session, test_tenant, other_tenant, employee_factory):
        await employee_factory(other_tenant, "EMP-777", "Olga", "Outsider")

        with pytest.raises(ConflictException):
            await EmployeeService(db_session).onboard_employee(
                test_tenant.id, _onboarding(email="emp-777@globex.example.com")
            )

    @pytest.mark.asyncio
    async def test_profile_lookup_is_tenant_scoped(self, db_session, other_tenant, employee_profile):
        service = EmployeeService(db_session)

        found = await service.get_profile_by_code(employee_profile.tenant_id, "EMP-001")
        assert found.id == employee_profile.id
        with pytest.raises(EmployeeNotFoundException):
            await service.get_profile_by_code(other_tenant.id, "EMP-001")

    @pytest.mark.asyncio
    async def test_upsert_offer_replaces_structure(self, db_session, test_tenant, employee_profile, employee_offer):
        offer = await EmployeeService(db_session).upsert_offer(
            test_tenant.id,
            employee_profile.id,
            {"gross_salary": Decimal("36000.00"), "net_salary": Decimal("33000.00")},
        )

        assert offer.id == employee_offer.id
        assert offer.gross_salary == Decimal("36000.00")
        assert offer.tax == Decimal("1200.00")
