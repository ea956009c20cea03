"""
PeopleDesk HRM - Leave Service Tests

Lazy balance creation, the request workflow and policy management.
"""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import date

import pytest
from sqlalchemy import func, select

from app.models.audit import ActivityAction, ActivityLog
from app.models.leave import LeaveBalance, LeaveStatus
from app.services.leave_service import (
    DuplicateBalanceError,
    LeaveService,
    SQLAlchemyLeaveBalanceStore,
    ensure_leave_balance,
    ensure_leave_balances,
)
from app.utils.error_handling import (
    ConflictException,
    DuplicateEntryException,
    InsufficientLeaveBalanceException,
    NotFoundException,
    ValidationException,
)


@dataclass
class FakePolicy:
    id: uuid.UUID
    name: str
    default_days: int


@dataclass
class FakeBalance:
    days_allotted: int
    days_used: int = 0


class RacingBalanceStore:
    """Every caller misses on its first read, then all of them try to insert."""

    def __init__(self, racers: int = 2):
        self.rows = {}
        self.racers = racers
        self.first_reads = 0
        self.create_calls = 0
        self.all_missed = asyncio.Event()

    async def find_balance(self, tenant_id, user_id, policy_id, year):
        key = (tenant_id, user_id, policy_id, year)
        if self.all_missed.is_set():
            return self.rows.get(key)

        row = self.rows.get(key)
        self.first_reads += 1
        if self.first_reads >= self.racers:
            self.all_missed.set()
        await self.all_missed.wait()
        return row

    async def create_balance(self, tenant_id, user_id, policy_id, year, days_allotted):
        self.create_calls += 1
        key = (tenant_id, user_id, policy_id, year)
        await asyncio.sleep(0)
        if key in self.rows:
            raise DuplicateBalanceError(str(key))
        self.rows[key] = FakeBalance(days_allotted=days_allotted)
        return self.rows[key]


class VanishingBalanceStore:
    """Reports a duplicate but never returns a row."""

    async def find_balance(self, tenant_id, user_id, policy_id, year):
        return None

    async def create_balance(self, tenant_id, user_id, policy_id, year, days_allotted):
        raise DuplicateBalanceError("duplicate")


class BrokenBalanceStore:
    async def find_balance(self, tenant_id, user_id, policy_id, year):
        return None

    async def create_balance(self, tenant_id, user_id, policy_id, year, days_allotted):
        raise RuntimeError("database unavailable")


class TestEnsureLeaveBalance:
    """Get-or-create semantics of yearly balances."""

    @pytest.mark.asyncio
    async def test_concurrent_first_reads_converge_on_one_row(self):
        store = RacingBalanceStore()
        policy = FakePolicy(uuid.uuid4(), "Casual Leave", 12)
        tenant_id, user_id = uuid.uuid4(), uuid.uuid4()

        first, second = await asyncio.gather(
            ensure_leave_balance(store, tenant_id, user_id, policy, 2025),
            ensure_leave_balance(store, tenant_id, user_id, policy, 2025),
        )

        assert first is second
        assert len(store.rows) == 1
        assert store.create_calls == 2
        assert first.days_allotted == 12
        assert first.days_used == 0

    @pytest.mark.asyncio
    async def test_existing_row_is_returned_without_insert(self):
        store = RacingBalanceStore(racers=1)
        policy = FakePolicy(uuid.uuid4(), "Sick Leave", 6)
        tenant_id, user_id = uuid.uuid4(), uuid.uuid4()
        existing = FakeBalance(days_allotted=4, days_used=1)
        store.rows[(tenant_id, user_id, policy.id, 2025)] = existing

        balance = await ensure_leave_balance(store, tenant_id, user_id, policy, 2025)

        assert balance is existing
        assert store.create_calls == 0

    @pytest.mark.asyncio
    async def test_duplicate_without_row_reraises(self):
        policy = FakePolicy(uuid.uuid4(), "Casual Leave", 12)
        with pytest.raises(DuplicateBalanceError):
            await ensure_leave_balance(VanishingBalanceStore(), uuid.uuid4(), uuid.uuid4(), policy, 2025)

    @pytest.mark.asyncio
    async def test_other_store_errors_propagate(self):
        policy = FakePolicy(uuid.uuid4(), "Casual Leave", 12)
        with pytest.raises(RuntimeError):
            await ensure_leave_balance(BrokenBalanceStore(), uuid.uuid4(), uuid.uuid4(), policy, 2025)

    @pytest.mark.asyncio
    async def test_over_use_reported_as_negative_remaining(self):
        store = RacingBalanceStore(racers=1)
        policy = FakePolicy(uuid.uuid4(), "Casual Leave", 12)
        tenant_id, user_id = uuid.uuid4(), uuid.uuid4()
        store.rows[(tenant_id, user_id, policy.id, 2025)] = FakeBalance(days_allotted=12, days_used=14)

        rows = await ensure_leave_balances(store, tenant_id, user_id, [policy], 2025)

        assert rows[0]["days_remaining"] == -2


class TestSQLAlchemyBalanceStore:
    """Duplicate inserts against the unique constraint."""

    @pytest.mark.asyncio
    async def test_duplicate_insert_raises_and_session_survives(
        self, db_session, test_tenant, employee_profile, leave_policy
    ):
        store = SQLAlchemyLeaveBalanceStore(db_session)
        args = (test_tenant.id, employee_profile.user_id, leave_policy.id, 2025)

        first = await store.create_balance(*args, days_allotted=12)
        with pytest.raises(DuplicateBalanceError):
            await store.create_balance(*args, days_allotted=12)

        assert await store.find_balance(*args) is first
        count = await db_session.execute(select(func.count(LeaveBalance.id)))
        assert count.scalar_one() == 1


class TestLeaveWorkflow:
    """Apply, approve, reject and cancel against the database."""

    @pytest.mark.asyncio
    async def test_balances_created_lazily_once(self, db_session, test_tenant, employee_profile, leave_policy):
        service = LeaveService(db_session)

        first = await service.get_balances(test_tenant.id, employee_profile.user_id, 2025)
        second = await service.get_balances(test_tenant.id, employee_profile.user_id, 2025)

        assert first == second
        assert first[0]["days_allotted"] == 12
        assert first[0]["days_remaining"] == 12
        count = await db_session.execute(select(func.count(LeaveBalance.id)))
        assert count.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_apply_creates_pending_request(self, db_session, test_tenant, employee_profile, leave_policy):
        request = await LeaveService(db_session).apply_leave(
            test_tenant.id, employee_profile.user_id, leave_policy.id,
            date(2025, 3, 3), date(2025, 3, 4), days=2, reason="Family visit",
        )

        assert request.status == LeaveStatus.PENDING
        assert request.days_lwp == 0

    @pytest.mark.asyncio
    async def test_apply_beyond_balance_rejected(self, db_session, test_tenant, employee_profile, leave_policy):
        with pytest.raises(InsufficientLeaveBalanceException) as exc_info:
            await LeaveService(db_session).apply_leave(
                test_tenant.id, employee_profile.user_id, leave_policy.id,
                date(2025, 3, 3), date(2025, 3, 18), days=13, reason="Long trip",
            )
        assert exc_info.value.details["days_remaining"] == 12

    @pytest.mark.asyncio
    async def test_lwp_days_do_not_need_balance(self, db_session, test_tenant, employee_profile, leave_policy):
        """13 days with 5 unpaid only needs 8 paid days."""
        request = await LeaveService(db_session).apply_leave(
            test_tenant.id, employee_profile.user_id, leave_policy.id,
            date(2025, 3, 3), date(2025, 3, 18), days=13, reason="Long trip", days_lwp=5,
        )
        assert request.paid_days == 8

    @pytest.mark.asyncio
    async def test_invalid_ranges_rejected(self, db_session, test_tenant, employee_profile, leave_policy):
        service = LeaveService(db_session)
        with pytest.raises(ValidationException):
            await service.apply_leave(
                test_tenant.id, employee_profile.user_id, leave_policy.id,
                date(2025, 3, 5), date(2025, 3, 4), days=1, reason="Backwards",
            )
        with pytest.raises(ValidationException):
            await service.apply_leave(
                test_tenant.id, employee_profile.user_id, leave_policy.id,
                date(2025, 3, 5), date(2025, 3, 5), days=1, reason="Too much LWP", days_lwp=2,
            )

    @pytest.mark.asyncio
    async def test_unknown_policy_not_found(self, db_session, test_tenant, employee_profile):
        with pytest.raises(NotFoundException):
            await LeaveService(db_session).apply_leave(
                test_tenant.id, employee_profile.user_id, uuid.uuid4(),
                date(2025, 3, 5), date(2025, 3, 5), days=1, reason="Ghost policy",
            )

    @pytest.mark.asyncio
    async def test_approve_draws_paid_days_from_balance(
        self, db_session, test_tenant, admin_user, employee_profile, leave_policy
    ):
        service = LeaveService(db_session)
        request = await service.apply_leave(
            test_tenant.id, employee_profile.user_id, leave_policy.id,
            date(2025, 3, 3), date(2025, 3, 5), days=3, reason="Trip", days_lwp=1,
        )

        approved = await service.approve_request(test_tenant.id, request.id, admin_user.id, "Enjoy")

        assert approved.status == LeaveStatus.APPROVED
        assert approved.approved_by_id == admin_user.id
        balances = await service.get_balances(test_tenant.id, employee_profile.user_id, 2025)
        assert balances[0]["days_used"] == 2
        assert balances[0]["days_remaining"] == 10

        logs = await db_session.execute(
            select(func.count(ActivityLog.id)).where(ActivityLog.action == ActivityAction.LEAVE_APPROVED)
        )
        assert logs.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_request_decided_only_once(
        self, db_session, test_tenant, admin_user, employee_profile, leave_policy
    ):
        service = LeaveService(db_session)
        request = await service.apply_leave(
            test_tenant.id, employee_profile.user_id, leave_policy.id,
            date(2025, 3, 3), date(2025, 3, 3), days=1, reason="Errand",
        )
        await service.approve_request(test_tenant.id, request.id, admin_user.id)

        with pytest.raises(ValidationException):
            await service.approve_request(test_tenant.id, request.id, admin_user.id)
        with pytest.raises(ValidationException):
            await service.reject_request(test_tenant.id, request.id, admin_user.id, "Too late")

        balances = await service.get_balances(test_tenant.id, employee_profile.user_id, 2025)
        assert balances[0]["days_used"] == 1

    @pytest.mark.asyncio
    async def test_reject_requires_reason_and_keeps_balance(
        self, db_session, test_tenant, admin_user, employee_profile, leave_policy
    ):
        service = LeaveService(db_session)
        request = await service.apply_leave(
            test_tenant.id, employee_profile.user_id, leave_policy.id,
            date(2025, 3, 3), date(2025, 3, 4), days=2, reason="Trip",
        )

        with pytest.raises(ValidationException):
            await service.reject_request(test_tenant.id, request.id, admin_user.id, "   ")

        rejected = await service.reject_request(test_tenant.id, request.id, admin_user.id, " Month end close ")

        assert rejected.status == LeaveStatus.REJECTED
        assert rejected.admin_notes == "Month end close"
        balances = await service.get_balances(test_tenant.id, employee_profile.user_id, 2025)
        assert balances[0]["days_used"] == 0

    @pytest.mark.asyncio
    async def test_cancel_own_pending_request(self, db_session, test_tenant, employee_profile, leave_policy):
        service = LeaveService(db_session)
        request = await service.apply_leave(
            test_tenant.id, employee_profile.user_id, leave_policy.id,
            date(2025, 3, 3), date(2025, 3, 3), days=1, reason="Errand",
        )

        with pytest.raises(NotFoundException):
            await service.cancel_request(test_tenant.id, request.id, uuid.uuid4())

        cancelled = await service.cancel_request(test_tenant.id, request.id, employee_profile.user_id)
        assert cancelled.status == LeaveStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_admin_listing_includes_balance(
        self, db_session, test_tenant, employee_profile, leave_policy
    ):
        service = LeaveService(db_session)
        await service.apply_leave(
            test_tenant.id, employee_profile.user_id, leave_policy.id,
            date(2025, 3, 3), date(2025, 3, 3), days=1, reason="Errand",
        )

        rows = await service.list_requests_for_admin(test_tenant.id, LeaveStatus.PENDING)

        assert len(rows) == 1
        assert rows[0]["employee_name"] == "Bob Builder"
        assert rows[0]["balance"]["days_remaining"] == 12
        assert await service.list_requests_for_admin(test_tenant.id, LeaveStatus.APPROVED) == []

    @pytest.mark.asyncio
    async def test_overview_lists_requests_with_policy_name(
        self, db_session, test_tenant, employee_profile, leave_policy
    ):
        service = LeaveService(db_session)
        await service.apply_leave(
            test_tenant.id, employee_profile.user_id, leave_policy.id,
            date(2025, 3, 3), date(2025, 3, 3), days=1, reason="Errand",
        )

        overview = await service.get_leave_overview(test_tenant.id, employee_profile.user_id, 2025)

        assert overview["balances"][0]["policy_name"] == "Casual Leave"
        assert overview["requests"][0]["policy_name"] == "Casual Leave"
        assert overview["requests"][0]["status"] == "PENDING"


class TestLeavePolicies:
    """Policy management."""

    @pytest.mark.asyncio
    async def test_duplicate_policy_name_rejected(self, db_session, test_tenant, leave_policy):
        with pytest.raises(DuplicateEntryException):
            await LeaveService(db_session).create_policy(test_tenant.id, "Casual Leave", 10)

    @pytest.mark.asyncio
    async def test_default_change_does_not_touch_existing_balances(
        self, db_session, test_tenant, employee_profile, leave_policy
    ):
        service = LeaveService(db_session)
        await service.get_balances(test_tenant.id, employee_profile.user_id, 2025)

        await service.update_policy(test_tenant.id, leave_policy.id, default_days=20)

        existing = await service.get_balances(test_tenant.id, employee_profile.user_id, 2025)
        next_year = await service.get_balances(test_tenant.id, employee_profile.user_id, 2026)
        assert existing[0]["days_allotted"] == 12
        assert next_year[0]["days_allotted"] == 20

    @pytest.mark.asyncio
    async def test_policy_in_use_cannot_be_deleted(
        self, db_session, test_tenant, employee_profile, leave_policy
    ):
        service = LeaveService(db_session)
        await service.get_balances(test_tenant.id, employee_profile.user_id, 2025)

        with pytest.raises(ConflictException):
            await service.delete_policy(test_tenant.id, leave_policy.id)

    @pytest.mark.asyncio
    async def test_unused_policy_deleted(self, db_session, test_tenant):
        service = LeaveService(db_session)
        policy = await service.create_policy(test_tenant.id, "Study Leave", 3)

        await service.delete_policy(test_tenant.id, policy.id)

        assert await service.list_policies(test_tenant.id) == []
