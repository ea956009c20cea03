"""
PeopleDesk HRM - Leave Service

Leave policies, lazily created yearly balances and the request/approval
workflow.

Balance rows are created on first read. Two first reads can race; the
unique (tenant, user, policy, year) constraint lets exactly one insert win
and the loser re-reads the winner's row instead of failing.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sqlalchemy import select, update, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import ActivityAction
from app.models.leave import LeavePolicy, LeaveBalance, LeaveRequest, LeaveStatus
from app.models.user import EmployeeProfile
from app.services.audit_service import AuditService
from app.utils.error_handling import (
    ConflictException,
    DuplicateEntryException,
    InsufficientLeaveBalanceException,
    NotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)


# ===========================================
# BALANCE STORE
# ===========================================

class DuplicateBalanceError(Exception):
    """A balance row for the same (tenant, user, policy, year) already exists."""


class PolicyLike(Protocol):
    id: uuid.UUID
    name: str
    default_days: int


class BalanceLike(Protocol):
    days_allotted: int
    days_used: int


class LeaveBalanceStore(Protocol):
    """Backend for balance rows."""

    async def find_balance(
        self, tenant_id: uuid.UUID, user_id: uuid.UUID, policy_id: uuid.UUID, year: int
    ) -> Optional[BalanceLike]:
        ...

    async def create_balance(
        self, tenant_id: uuid.UUID, user_id: uuid.UUID, policy_id: uuid.UUID, year: int, days_allotted: int
    ) -> BalanceLike:
        """Insert a fresh row with days_used = 0. Raises DuplicateBalanceError on conflict."""
        ...


class SQLAlchemyLeaveBalanceStore:
    """Balance store on the request's session. Inserts run in a SAVEPOINT."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_balance(
        self, tenant_id: uuid.UUID, user_id: uuid.UUID, policy_id: uuid.UUID, year: int
    ) -> Optional[LeaveBalance]:
        result = await self.db.execute(
            select(LeaveBalance).where(
                and_(
                    LeaveBalance.tenant_id == tenant_id,
                    LeaveBalance.user_id == user_id,
                    LeaveBalance.policy_id == policy_id,
                    LeaveBalance.year == year,
                )
            )
        )
        return result.scalar_one_or_none()

    async def create_balance(
        self, tenant_id: uuid.UUID, user_id: uuid.UUID, policy_id: uuid.UUID, year: int, days_allotted: int
    ) -> LeaveBalance:
        balance = LeaveBalance(
            tenant_id=tenant_id,
            user_id=user_id,
            policy_id=policy_id,
            year=year,
            days_allotted=days_allotted,
            days_used=0,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(balance)
        except IntegrityError as e:
            raise DuplicateBalanceError(
                f"Balance exists for user {user_id}, policy {policy_id}, year {year}"
            ) from e
        return balance


def _balance_row(policy: PolicyLike, year: int, balance: BalanceLike) -> Dict[str, Any]:
    return {
        "policy_id": policy.id,
        "policy_name": policy.name,
        "year": year,
        "days_allotted": balance.days_allotted,
        "days_used": balance.days_used,
        # Over-use shows as a negative number
        "days_remaining": balance.days_allotted - balance.days_used,
    }


async def ensure_leave_balance(
    store: LeaveBalanceStore,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    policy: PolicyLike,
    year: int,
) -> BalanceLike:
    """
    Return the balance row, creating it from the policy default if missing.

    A create that loses a race is followed by exactly one re-read. Any
    other failure propagates.
    """
    balance = await store.find_balance(tenant_id, user_id, policy.id, year)
    if balance is not None:
        return balance

    try:
        return await store.create_balance(tenant_id, user_id, policy.id, year, policy.default_days)
    except DuplicateBalanceError:
        logger.info(f"Leave balance race for user {user_id}, policy {policy.id}, year {year}; re-reading")
        balance = await store.find_balance(tenant_id, user_id, policy.id, year)
        if balance is None:
            raise
        return balance


async def ensure_leave_balances(
    store: LeaveBalanceStore,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    policies: Sequence[PolicyLike],
    year: int,
) -> List[Dict[str, Any]]:
    """One balance row per policy, in policy order."""
    rows = []
    for policy in policies:
        balance = await ensure_leave_balance(store, tenant_id, user_id, policy, year)
        rows.append(_balance_row(policy, year, balance))
    return rows


# ===========================================
# LEAVE SERVICE
# ===========================================

class LeaveService:
    """Service for leave policies, balances and requests."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.balance_store = SQLAlchemyLeaveBalanceStore(db)

    # ===========================================
    # POLICIES
    # ===========================================

    async def list_policies(self, tenant_id: uuid.UUID) -> List[LeavePolicy]:
        result = await self.db.execute(
            select(LeavePolicy)
            .where(LeavePolicy.tenant_id == tenant_id)
            .order_by(LeavePolicy.name)
        )
        return list(result.scalars().all())

    async def get_policy(self, tenant_id: uuid.UUID, policy_id: uuid.UUID) -> LeavePolicy:
        result = await self.db.execute(
            select(LeavePolicy).where(
                and_(LeavePolicy.tenant_id == tenant_id, LeavePolicy.id == policy_id)
            )
        )
        policy = result.scalar_one_or_none()
        if not policy:
            raise NotFoundException("Leave policy", policy_id)
        return policy

    async def _ensure_policy_name_free(
        self, tenant_id: uuid.UUID, name: str, exclude_id: Optional[uuid.UUID] = None
    ) -> None:
        query = select(LeavePolicy.id).where(
            and_(LeavePolicy.tenant_id == tenant_id, LeavePolicy.name == name)
        )
        if exclude_id is not None:
            query = query.where(LeavePolicy.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise DuplicateEntryException("Leave policy", "name", name)

    async def create_policy(self, tenant_id: uuid.UUID, name: str, default_days: int) -> LeavePolicy:
        await self._ensure_policy_name_free(tenant_id, name)
        policy = LeavePolicy(tenant_id=tenant_id, name=name, default_days=default_days)
        self.db.add(policy)
        await self.db.commit()
        logger.info(f"Created leave policy '{name}' ({default_days} days) in tenant {tenant_id}")
        return policy

    async def update_policy(
        self,
        tenant_id: uuid.UUID,
        policy_id: uuid.UUID,
        name: Optional[str] = None,
        default_days: Optional[int] = None,
    ) -> LeavePolicy:
        """
        Rename a policy or change its default allotment.

        Existing balances keep their days_allotted; only balances created
        after the edit use the new default.
        """
        policy = await self.get_policy(tenant_id, policy_id)
        if name is not None and name != policy.name:
            await self._ensure_policy_name_free(tenant_id, name, exclude_id=policy.id)
            policy.name = name
        if default_days is not None:
            policy.default_days = default_days
        await self.db.commit()
        return policy

    async def delete_policy(self, tenant_id: uuid.UUID, policy_id: uuid.UUID) -> None:
        """Delete a policy that no balance or request references yet."""
        policy = await self.get_policy(tenant_id, policy_id)

        balances = await self.db.execute(
            select(func.count(LeaveBalance.id)).where(LeaveBalance.policy_id == policy.id)
        )
        requests = await self.db.execute(
            select(func.count(LeaveRequest.id)).where(LeaveRequest.policy_id == policy.id)
        )
        if balances.scalar_one() or requests.scalar_one():
            raise ConflictException(
                "Leave policy is in use and cannot be deleted.",
                resource_type="LeavePolicy",
            )

        await self.db.delete(policy)
        await self.db.commit()

    # ===========================================
    # BALANCES
    # ===========================================

    async def get_balances(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        year: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Balances for every tenant policy, creating missing rows."""
        year = year or date.today().year
        policies = await self.list_policies(tenant_id)
        rows = await ensure_leave_balances(self.balance_store, tenant_id, user_id, policies, year)
        await self.db.commit()
        return rows

    async def get_leave_overview(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        year: Optional[int] = None,
    ) -> Dict[str, Any]:
        balances = await self.get_balances(tenant_id, user_id, year)
        result = await self.db.execute(
            select(LeaveRequest, LeavePolicy.name)
            .join(LeavePolicy, LeavePolicy.id == LeaveRequest.policy_id)
            .where(
                and_(LeaveRequest.tenant_id == tenant_id, LeaveRequest.user_id == user_id)
            )
            .order_by(LeaveRequest.start_date.desc())
        )
        requests = [leave_request_to_dict(request, policy_name) for request, policy_name in result.all()]
        return {"balances": balances, "requests": requests}

    # ===========================================
    # REQUESTS
    # ===========================================

    async def apply_leave(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        policy_id: uuid.UUID,
        start_date: date,
        end_date: date,
        days: int,
        reason: str,
        days_lwp: int = 0,
    ) -> LeaveRequest:
        """
        File a PENDING request against the balance of the start date's year.

        Only the paid part (days - days_lwp) has to fit in the remaining balance.

        Raises:
            NotFoundException: unknown policy
            ValidationException: bad range or day counts
            InsufficientLeaveBalanceException: paid days exceed remaining days
        """
        if end_date < start_date:
            raise ValidationException("endDate cannot be before startDate.", field="endDate")
        if days <= 0:
            raise ValidationException("days must be positive.", field="days")
        if not 0 <= days_lwp <= days:
            raise ValidationException("daysLwp must be between 0 and days.", field="daysLwp")

        policy = await self.get_policy(tenant_id, policy_id)
        balance = await ensure_leave_balance(
            self.balance_store, tenant_id, user_id, policy, start_date.year
        )

        paid_days = days - days_lwp
        remaining = balance.days_allotted - balance.days_used
        if paid_days > remaining:
            await self.db.commit()
            raise InsufficientLeaveBalanceException(days_remaining=remaining, days_requested=paid_days)

        request = LeaveRequest(
            tenant_id=tenant_id,
            user_id=user_id,
            policy_id=policy.id,
            start_date=start_date,
            end_date=end_date,
            days=days,
            days_lwp=days_lwp,
            reason=reason,
            status=LeaveStatus.PENDING,
            applied_date=datetime.now(timezone.utc),
        )
        self.db.add(request)
        await self.db.commit()
        logger.info(f"Leave request {request.id} filed by {user_id}: {days} days ({days_lwp} LWP)")
        return request

    async def _get_request(self, tenant_id: uuid.UUID, request_id: uuid.UUID) -> LeaveRequest:
        result = await self.db.execute(
            select(LeaveRequest).where(
                and_(LeaveRequest.tenant_id == tenant_id, LeaveRequest.id == request_id)
            )
        )
        request = result.scalar_one_or_none()
        if not request:
            raise NotFoundException("Leave request", request_id)
        return request

    async def _transition(
        self,
        request: LeaveRequest,
        new_status: LeaveStatus,
        **values: Any,
    ) -> None:
        # Conditional on PENDING so a request is decided once
        result = await self.db.execute(
            update(LeaveRequest)
            .where(
                and_(
                    LeaveRequest.id == request.id,
                    LeaveRequest.status == LeaveStatus.PENDING,
                )
            )
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise ValidationException("Leave request is not pending.", field="status")

    async def approve_request(
        self,
        tenant_id: uuid.UUID,
        request_id: uuid.UUID,
        approver_id: uuid.UUID,
        admin_notes: Optional[str] = None,
    ) -> LeaveRequest:
        """
        Approve a pending request and draw its paid days from the balance.

        Request status, balance and activity log are committed together.
        """
        request = await self._get_request(tenant_id, request_id)
        if request.status != LeaveStatus.PENDING:
            raise ValidationException("Leave request is not pending.", field="status")

        policy = await self.get_policy(tenant_id, request.policy_id)
        await self._transition(
            request,
            LeaveStatus.APPROVED,
            approved_by_id=approver_id,
            admin_notes=admin_notes,
        )

        balance = await ensure_leave_balance(
            self.balance_store, tenant_id, request.user_id, policy, request.start_date.year
        )
        if request.paid_days:
            await self.db.execute(
                update(LeaveBalance)
                .where(LeaveBalance.id == balance.id)
                .values(days_used=LeaveBalance.days_used + request.paid_days)
                .execution_options(synchronize_session=False)
            )

        AuditService(self.db).log_action(
            tenant_id=tenant_id,
            action=ActivityAction.LEAVE_APPROVED,
            description=(
                f"Approved {request.days} day(s) of {policy.name} "
                f"({request.days_lwp} LWP) from {request.start_date.isoformat()}"
            ),
            performed_by_id=approver_id,
            target_user_id=request.user_id,
            reference=str(request.id),
        )

        await self.db.commit()
        await self.db.refresh(request)
        await self.db.refresh(balance)
        logger.info(f"Leave request {request.id} approved by {approver_id}")
        return request

    async def reject_request(
        self,
        tenant_id: uuid.UUID,
        request_id: uuid.UUID,
        approver_id: uuid.UUID,
        admin_notes: Optional[str],
    ) -> LeaveRequest:
        """Reject a pending request. A reason is mandatory; balances are untouched."""
        if not admin_notes or not admin_notes.strip():
            raise ValidationException("A reason (adminNotes) is required to reject.", field="adminNotes")

        request = await self._get_request(tenant_id, request_id)
        if request.status != LeaveStatus.PENDING:
            raise ValidationException("Leave request is not pending.", field="status")

        await self._transition(
            request,
            LeaveStatus.REJECTED,
            approved_by_id=approver_id,
            admin_notes=admin_notes.strip(),
        )
        AuditService(self.db).log_action(
            tenant_id=tenant_id,
            action=ActivityAction.LEAVE_REJECTED,
            description=f"Rejected leave from {request.start_date.isoformat()}: {admin_notes.strip()}",
            performed_by_id=approver_id,
            target_user_id=request.user_id,
            reference=str(request.id),
        )

        await self.db.commit()
        await self.db.refresh(request)
        return request

    async def cancel_request(
        self,
        tenant_id: uuid.UUID,
        request_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> LeaveRequest:
        """Withdraw one's own pending request."""
        request = await self._get_request(tenant_id, request_id)
        if request.user_id != user_id:
            raise NotFoundException("Leave request", request_id)
        if request.status != LeaveStatus.PENDING:
            raise ValidationException("Leave request is not pending.", field="status")

        await self._transition(request, LeaveStatus.CANCELLED)
        await self.db.commit()
        await self.db.refresh(request)
        return request

    async def list_requests_for_admin(
        self,
        tenant_id: uuid.UUID,
        status: Optional[LeaveStatus] = None,
    ) -> List[Dict[str, Any]]:
        """All tenant requests, newest first, with the requester's current balance."""
        query = (
            select(LeaveRequest, LeavePolicy, EmployeeProfile)
            .join(LeavePolicy, LeavePolicy.id == LeaveRequest.policy_id)
            .outerjoin(
                EmployeeProfile,
                and_(
                    EmployeeProfile.user_id == LeaveRequest.user_id,
                    EmployeeProfile.tenant_id == LeaveRequest.tenant_id,
                ),
            )
            .where(LeaveRequest.tenant_id == tenant_id)
            .order_by(LeaveRequest.applied_date.desc())
        )
        if status is not None:
            query = query.where(LeaveRequest.status == status)

        rows = []
        for request, policy, profile in (await self.db.execute(query)).all():
            year = request.start_date.year
            balance = await self.balance_store.find_balance(tenant_id, request.user_id, policy.id, year)
            row = leave_request_to_dict(request, policy.name)
            row["employee_name"] = profile.full_name if profile else ""
            row["employee_code"] = profile.employee_id if profile else None
            row["balance"] = _balance_row(policy, year, balance) if balance else None
            rows.append(row)
        return rows


def leave_request_to_dict(request: LeaveRequest, policy_name: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": request.id,
        "user_id": request.user_id,
        "policy_id": request.policy_id,
        "policy_name": policy_name,
        "start_date": request.start_date,
        "end_date": request.end_date,
        "days": request.days,
        "days_lwp": request.days_lwp,
        "reason": request.reason,
        "status": request.status.value,
        "applied_date": request.applied_date,
        "approved_by_id": request.approved_by_id,
        "admin_notes": request.admin_notes,
    }
