"""
PeopleDesk HRM - Test Configuration

Pytest fixtures and configuration.
"""

import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("APP_ENV", "testing")
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")
os.environ["DATABASE_URL_ASYNC"] = TEST_DATABASE_URL

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base, get_async_session
from app.models.leave import LeavePolicy
from app.models.payroll import Offer
from app.models.tenant import Tenant
from app.models.user import EmployeeProfile, User, UserRole
from app.utils.security import create_user_token, get_password_hash
from main import app


ADMIN_PASSWORD = "AdminPassword123!"
EMPLOYEE_PASSWORD = "EmployeePassword123!"


def _create_test_engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
        @event.listens_for(engine.sync_engine, "connect")
        def do_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def do_begin(conn):
            conn.exec_driver_sql("BEGIN")

        return engine

    return create_async_engine(TEST_DATABASE_URL, echo=False, pool_pre_ping=True)


# Create test engine
test_engine = _create_test_engine()

# Create test session factory
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

@pytest_asyncio.fixture
async def test_tenant(db_session: AsyncSession) -> Tenant:
    """Create a test tenant."""
    tenant = Tenant(
        name="Acme Corp",
        email="hr@acme.example.com",
        tenant_code="ACME",
    )
    db_session.add(tenant)
    await db_session.commit()
    return tenant


@pytest_asyncio.fixture
async def other_tenant(db_session: AsyncSession) -> Tenant:
    """A second tenant for isolation checks."""
    tenant = Tenant(
        name="Globex",
        email="hr@globex.example.com",
        tenant_code="GLOBEX",
    )
    db_session.add(tenant)
    await db_session.commit()
    return tenant


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession, test_tenant: Tenant) -> User:
    """Create a tenant administrator."""
    user = User(
        tenant_id=test_tenant.id,
        name="Alice Admin",
        email="admin@acme.example.com",
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    return user


async def make_employee(
    db_session: AsyncSession,
    tenant: Tenant,
    code: str,
    first_name: str,
    last_name: str,
    designation: str = "Engineer",
) -> EmployeeProfile:
    """Create an employee user with profile."""
    user = User(
        tenant_id=tenant.id,
        name=f"{first_name} {last_name}",
        email=f"{code.lower()}@{tenant.tenant_code.lower()}.example.com",
        hashed_password=get_password_hash(EMPLOYEE_PASSWORD),
        role=UserRole.EMPLOYEE,
        is_active=True,
    )
    db_session.add(user)
    await db_session.flush()

    profile = EmployeeProfile(
        tenant_id=tenant.id,
        user_id=user.id,
        employee_id=code,
        first_name=first_name,
        last_name=last_name,
        designation=designation,
        joining_date=date(2024, 4, 1),
    )
    db_session.add(profile)
    await db_session.commit()
    return profile


async def make_offer(
    db_session: AsyncSession,
    profile: EmployeeProfile,
    gross: str = "30000.00",
    pf: str = "1800.00",
    tax: str = "1200.00",
) -> Offer:
    """Attach a monthly salary structure to an employee."""
    gross_amount = Decimal(gross)
    offer = Offer(
        tenant_id=profile.tenant_id,
        user_id=profile.user_id,
        annual_ctc=gross_amount * 12,
        role_title=profile.designation or "Staff",
        basic=(gross_amount * Decimal("0.5")).quantize(Decimal("0.01")),
        hra=(gross_amount * Decimal("0.2")).quantize(Decimal("0.01")),
        da=(gross_amount * Decimal("0.1")).quantize(Decimal("0.01")),
        special_allowance=(gross_amount * Decimal("0.2")).quantize(Decimal("0.01")),
        gross_salary=gross_amount,
        pf_deduction=Decimal(pf),
        tax=Decimal(tax),
        net_salary=gross_amount - Decimal(pf) - Decimal(tax),
        is_signed=True,
    )
    db_session.add(offer)
    await db_session.commit()
    return offer


@pytest_asyncio.fixture
async def employee_profile(db_session: AsyncSession, test_tenant: Tenant) -> EmployeeProfile:
    """Create an employee with profile."""
    return await make_employee(db_session, test_tenant, "EMP-001", "Bob", "Builder")


@pytest_asyncio.fixture
async def employee_offer(db_session: AsyncSession, employee_profile: EmployeeProfile) -> Offer:
    """Salary structure for the default employee (gross 30000)."""
    return await make_offer(db_session, employee_profile)


@pytest_asyncio.fixture
async def leave_policy(db_session: AsyncSession, test_tenant: Tenant) -> LeavePolicy:
    """Create a 12-day casual leave policy."""
    policy = LeavePolicy(
        tenant_id=test_tenant.id,
        name="Casual Leave",
        default_days=12,
    )
    db_session.add(policy)
    await db_session.commit()
    return policy


def bearer(user_id, tenant_id, role: UserRole) -> Dict[str, str]:
    token = create_user_token(user_id, tenant_id, role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> Dict[str, str]:
    """Authorization headers for the tenant admin."""
    return bearer(admin_user.id, admin_user.tenant_id, UserRole.ADMIN)


@pytest.fixture
def employee_headers(employee_profile: EmployeeProfile) -> Dict[str, str]:
    """Authorization headers for the default employee."""
    return bearer(employee_profile.user_id, employee_profile.tenant_id, UserRole.EMPLOYEE)


@pytest.fixture
def employee_factory(db_session: AsyncSession):
    """Create extra employees: await employee_factory(tenant, code, first, last)."""

    async def _create(tenant: Tenant, code: str, first_name: str, last_name: str, designation: str = "Engineer"):
        return await make_employee(db_session, tenant, code, first_name, last_name, designation)

    return _create


@pytest.fixture
def offer_factory(db_session: AsyncSession):
    """Attach salary structures: await offer_factory(profile, gross="30000.00")."""

    async def _create(profile: EmployeeProfile, gross: str = "30000.00", pf: str = "1800.00", tax: str = "1200.00"):
        return await make_offer(db_session, profile, gross, pf, tax)

    return _create
