"""
PeopleDesk HRM - Employees Router

Onboarding and salary structures. Admin only.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import CurrentUser, require_admin
from app.schemas.employee import (
    EmployeeProfileResponse,
    OfferRequest,
    OfferResponse,
    OnboardingRequest,
    OnboardingResponse,
)
from app.services.employee_service import EmployeeService


router = APIRouter()


@router.get(
    "",
    response_model=List[EmployeeProfileResponse],
    summary="List employees",
)
async def list_employees(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    profiles = await EmployeeService(db).list_profiles(current_user.tenant_id)
    return [EmployeeProfileResponse.model_validate(p) for p in profiles]


@router.post(
    "/onboarding",
    response_model=OnboardingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Onboard an employee",
    description="Create the employee login and HR profile together.",
)
async def onboard_employee(
    request: OnboardingRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    user, profile = await EmployeeService(db).onboard_employee(
        tenant_id=current_user.tenant_id,
        data=request.model_dump(),
        performed_by_id=current_user.user_id,
    )
    return OnboardingResponse(
        message="Employee onboarded successfully",
        user_id=user.id,
        profile=EmployeeProfileResponse.model_validate(profile),
    )


@router.put(
    "/{profile_id}/offer",
    response_model=OfferResponse,
    summary="Set salary structure",
    description="Create or replace the monthly salary structure used by payroll.",
)
async def upsert_offer(
    profile_id: UUID,
    request: OfferRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    offer = await EmployeeService(db).upsert_offer(
        tenant_id=current_user.tenant_id,
        profile_id=profile_id,
        data=request.model_dump(),
        performed_by_id=current_user.user_id,
    )
    return OfferResponse.model_validate(offer)
