"""Initial HRM schema

Revision ID: 20260301_0900_initial_hrm_schema
Revises:
Create Date: 2026-03-01 09:00:00.000000

Creates the multi-tenant HR tables:
- tenants, subscriptions, users, employee_profiles
- offers (salary structures), payroll_runs, payroll_run_items
- leave_policies, leave_balances, leave_requests
- attendance_records, activity_logs
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '20260301_0900_initial_hrm_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _tenant_fk():
    return sa.Column(
        'tenant_id', postgresql.UUID(as_uuid=True),
        sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False,
    )


def _money(name, nullable=False):
    return sa.Column(name, sa.Numeric(precision=12, scale=2), nullable=nullable)


def upgrade() -> None:
    """Create HRM tables."""

    subscription_status = sa.Enum('ACTIVE', 'EXPIRED', 'CANCELLED', name='subscriptionstatus')
    user_role = sa.Enum('ADMIN', 'EMPLOYEE', name='userrole')
    payroll_run_status = sa.Enum('PROCESSED', name='payrollrunstatus')
    leave_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED', name='leavestatus')
    attendance_status = sa.Enum('PRESENT', 'HALF_DAY', 'ABSENT', 'LEAVE', name='attendancestatus')
    activity_action = sa.Enum(
        'TENANT_REGISTERED', 'EMPLOYEE_ONBOARDED', 'OFFER_UPDATED',
        'LEAVE_APPROVED', 'LEAVE_REJECTED', 'PAYROLL_PROCESSED',
        name='activityaction',
    )

    # ===========================================
    # TENANCY & IDENTITY
    # ===========================================

    op.create_table(
        'tenants',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('tenant_code', sa.String(50), nullable=False,
                  comment='Short public code chosen at registration'),
        *_timestamps(),
        sa.UniqueConstraint('email', name='uq_tenants_email'),
        sa.UniqueConstraint('tenant_code', name='uq_tenants_tenant_code'),
    )

    op.create_table(
        'subscriptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_fk(),
        sa.Column('plan_name', sa.String(100), nullable=False),
        sa.Column('status', subscription_status, nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_subscriptions_tenant_id', 'subscriptions', ['tenant_id'])

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_fk(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'employee_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_fk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.String(50), nullable=False,
                  comment='Tenant-visible employee code e.g. EMP-0001'),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('personal_email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('designation', sa.String(150), nullable=True),
        sa.Column('employee_type', sa.String(50), nullable=True),
        sa.Column('joining_date', sa.Date(), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('user_id', name='uq_employee_profiles_user_id'),
        sa.UniqueConstraint('tenant_id', 'employee_id', name='uq_employee_profile_tenant_code'),
    )
    op.create_index('ix_employee_profiles_tenant_id', 'employee_profiles', ['tenant_id'])

    # ===========================================
    # PAYROLL
    # ===========================================

    op.create_table(
        'offers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_fk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('annual_ctc', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('role_title', sa.String(150), nullable=False),
        _money('basic'),
        _money('hra'),
        _money('da'),
        _money('special_allowance'),
        _money('gross_salary'),
        _money('pf_deduction'),
        _money('tax'),
        _money('net_salary'),
        sa.Column('is_signed', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('user_id', name='uq_offers_user_id'),
        sa.CheckConstraint('gross_salary >= 0', name='ck_offers_offer_gross_non_negative'),
    )
    op.create_index('ix_offers_tenant_id', 'offers', ['tenant_id'])

    op.create_table(
        'payroll_runs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_fk(),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('status', payroll_run_status, nullable=False),
        sa.Column('total_employees', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_gross', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('total_deductions', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('total_net', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('processed_by_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('tenant_id', 'month', 'year', name='uq_payroll_run_tenant_period'),
        sa.CheckConstraint('month >= 1 AND month <= 12', name='ck_payroll_runs_payroll_run_month_range'),
    )
    op.create_index('ix_payroll_runs_tenant_id', 'payroll_runs', ['tenant_id'])

    op.create_table(
        'payroll_run_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_fk(),
        sa.Column('payroll_run_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('payroll_runs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_code', sa.String(50), nullable=False),
        sa.Column('employee_name', sa.String(255), nullable=False),
        sa.Column('department', sa.String(150), nullable=False),
        _money('basic_salary'),
        _money('hra'),
        _money('allowances'),
        _money('gross_salary'),
        sa.Column('lwp_days', sa.Integer(), nullable=False, server_default='0'),
        _money('lwp_deduction'),
        _money('pf_deduction'),
        _money('tax_deduction'),
        _money('other_deductions'),
        _money('total_deductions'),
        _money('net_salary'),
        *_timestamps(),
        sa.UniqueConstraint('payroll_run_id', 'user_id', name='uq_payroll_run_item_user'),
    )
    op.create_index('ix_payroll_run_items_tenant_id', 'payroll_run_items', ['tenant_id'])
    op.create_index('ix_payroll_run_items_payroll_run_id', 'payroll_run_items', ['payroll_run_id'])

    # ===========================================
    # LEAVE
    # ===========================================

    op.create_table(
        'leave_policies',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_fk(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('default_days', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('tenant_id', 'name', name='uq_leave_policy_tenant_name'),
        sa.CheckConstraint('default_days >= 0', name='ck_leave_policies_leave_policy_default_days_non_negative'),
    )
    op.create_index('ix_leave_policies_tenant_id', 'leave_policies', ['tenant_id'])

    op.create_table(
        'leave_balances',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_fk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('policy_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('leave_policies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('days_allotted', sa.Integer(), nullable=False),
        sa.Column('days_used', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint(
            'tenant_id', 'user_id', 'policy_id', 'year',
            name='uq_leave_balance_tenant_user_policy_year',
        ),
    )
    op.create_index('ix_leave_balances_tenant_id', 'leave_balances', ['tenant_id'])
    op.create_index('ix_leave_balances_user_id', 'leave_balances', ['user_id'])

    op.create_table(
        'leave_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_fk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('policy_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('leave_policies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('days', sa.Integer(), nullable=False),
        sa.Column('days_lwp', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', leave_status, nullable=False),
        sa.Column('applied_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('approved_by_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            'days_lwp >= 0 AND days_lwp <= days',
            name='ck_leave_requests_leave_request_lwp_within_days',
        ),
    )
    op.create_index('ix_leave_requests_tenant_id', 'leave_requests', ['tenant_id'])
    op.create_index('ix_leave_requests_user_id', 'leave_requests', ['user_id'])
    op.create_index('ix_leave_requests_status', 'leave_requests', ['status'])

    # ===========================================
    # ATTENDANCE & ACTIVITY
    # ===========================================

    op.create_table(
        'attendance_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_fk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('check_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('check_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('hours_worked', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('status', attendance_status, nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('tenant_id', 'user_id', 'work_date', name='uq_attendance_tenant_user_date'),
    )
    op.create_index('ix_attendance_records_tenant_id', 'attendance_records', ['tenant_id'])
    op.create_index('ix_attendance_records_user_id', 'attendance_records', ['user_id'])
    op.create_index('ix_attendance_records_work_date', 'attendance_records', ['work_date'])

    op.create_table(
        'activity_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_fk(),
        sa.Column('action', activity_action, nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('performed_by_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('target_user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reference', sa.String(100), nullable=True,
                  comment='Id of the affected row (run, request, profile)'),
        *_timestamps(),
    )
    op.create_index('ix_activity_logs_tenant_id', 'activity_logs', ['tenant_id'])
    op.create_index('ix_activity_logs_action', 'activity_logs', ['action'])


def downgrade() -> None:
    """Drop HRM tables."""
    op.drop_table('activity_logs')
    op.drop_table('attendance_records')
    op.drop_table('leave_requests')
    op.drop_table('leave_balances')
    op.drop_table('leave_policies')
    op.drop_table('payroll_run_items')
    op.drop_table('payroll_runs')
    op.drop_table('offers')
    op.drop_table('employee_profiles')
    op.drop_table('users')
    op.drop_table('subscriptions')
    op.drop_table('tenants')

    for enum_name in (
        'activityaction', 'attendancestatus', 'leavestatus',
        'payrollrunstatus', 'userrole', 'subscriptionstatus',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
