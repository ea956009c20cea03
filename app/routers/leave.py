"""
PeopleDesk HRM - Leave Router

Employee leave overview and applications, admin approval queue and
leave policy management.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import CurrentUser, get_current_user, require_admin
from app.models.leave import LeaveStatus
from app.schemas.base import MessageResponse
from app.schemas.leave import (
    AdminLeaveRequestResponse,
    LeaveApplyRequest,
    LeaveDecisionRequest,
    LeaveOverviewResponse,
    LeavePolicyCreate,
    LeavePolicyResponse,
    LeavePolicyUpdate,
    LeaveRequestResponse,
)
from app.services.leave_service import LeaveService, leave_request_to_dict


router = APIRouter()


# ===========================================
# EMPLOYEE
# ===========================================

@router.get(
    "/getLeave",
    response_model=LeaveOverviewResponse,
    summary="Leave balances and requests of the caller",
    description="Missing balances for the year are created from each policy's default allotment.",
)
async def get_leave(
    year: Optional[int] = Query(None, ge=2000, le=9999),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    return await LeaveService(db).get_leave_overview(
        current_user.tenant_id, current_user.user_id, year
    )


@router.post(
    "/apply",
    response_model=LeaveRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply for leave",
)
async def apply_leave(
    request: LeaveApplyRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    leave_request = await LeaveService(db).apply_leave(
        tenant_id=current_user.tenant_id,
        user_id=current_user.user_id,
        policy_id=request.policy_id,
        start_date=request.start_date,
        end_date=request.end_date,
        days=request.days,
        reason=request.reason,
        days_lwp=request.days_lwp,
    )
    return leave_request_to_dict(leave_request)


@router.post(
    "/requests/{request_id}/cancel",
    response_model=LeaveRequestResponse,
    summary="Cancel own pending request",
)
async def cancel_request(
    request_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    leave_request = await LeaveService(db).cancel_request(
        current_user.tenant_id, request_id, current_user.user_id
    )
    return leave_request_to_dict(leave_request)


# ===========================================
# ADMIN: REQUESTS
# ===========================================

@router.get(
    "/requests",
    response_model=List[AdminLeaveRequestResponse],
    summary="List tenant leave requests",
)
async def list_requests(
    status_filter: Optional[LeaveStatus] = Query(None, alias="status"),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    return await LeaveService(db).list_requests_for_admin(current_user.tenant_id, status_filter)


@router.post(
    "/requests/{request_id}/approve",
    response_model=LeaveRequestResponse,
    summary="Approve a leave request",
    description="Marks the request approved and adds its paid days to the balance in one transaction.",
)
async def approve_request(
    request_id: UUID,
    request: Optional[LeaveDecisionRequest] = None,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    leave_request = await LeaveService(db).approve_request(
        tenant_id=current_user.tenant_id,
        request_id=request_id,
        approver_id=current_user.user_id,
        admin_notes=request.admin_notes if request else None,
    )
    return leave_request_to_dict(leave_request)


@router.post(
    "/requests/{request_id}/reject",
    response_model=LeaveRequestResponse,
    summary="Reject a leave request",
)
async def reject_request(
    request_id: UUID,
    request: LeaveDecisionRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    leave_request = await LeaveService(db).reject_request(
        tenant_id=current_user.tenant_id,
        request_id=request_id,
        approver_id=current_user.user_id,
        admin_notes=request.admin_notes,
    )
    return leave_request_to_dict(leave_request)


# ===========================================
# ADMIN: POLICIES
# ===========================================

@router.get("/policies", response_model=List[LeavePolicyResponse], summary="List leave policies")
async def list_policies(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    policies = await LeaveService(db).list_policies(current_user.tenant_id)
    return [LeavePolicyResponse.model_validate(p) for p in policies]


@router.post(
    "/policies",
    response_model=LeavePolicyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create leave policy",
)
async def create_policy(
    request: LeavePolicyCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    policy = await LeaveService(db).create_policy(
        current_user.tenant_id, request.name, request.default_days
    )
    return LeavePolicyResponse.model_validate(policy)


@router.put(
    "/policies/{policy_id}",
    response_model=LeavePolicyResponse,
    summary="Update leave policy",
    description="Existing balances keep their allotment; the new default applies to balances created afterwards.",
)
async def update_policy(
    policy_id: UUID,
    request: LeavePolicyUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    policy = await LeaveService(db).update_policy(
        current_user.tenant_id,
        policy_id,
        name=request.name,
        default_days=request.default_days,
    )
    return LeavePolicyResponse.model_validate(policy)


@router.delete(
    "/policies/{policy_id}",
    response_model=MessageResponse,
    summary="Delete unused leave policy",
)
async def delete_policy(
    policy_id: UUID,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    await LeaveService(db).delete_policy(current_user.tenant_id, policy_id)
    return MessageResponse(message="Leave policy deleted")
