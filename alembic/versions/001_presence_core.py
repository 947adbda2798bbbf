"""Presence core: employees, leave requests, office settings, audit logs,
attendance days with punch events and out-of-office periods

Revision ID: 001_presence_core
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_presence_core'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

attendance_status = sa.Enum(
    'NOT_PUNCHED_IN', 'INSIDE_OFFICE', 'OUT_OF_OFFICE', 'PRESENT', 'HALF_DAY', 'ABSENT', 'INCOMPLETE',
    name='attendancestatus',
)
out_reason = sa.Enum('GEO_FENCE_EXIT', 'IP_CHANGE', 'MANUAL', 'HEARTBEAT_TIMEOUT', name='outreason')


def _timestamps():
    # CURRENT_TIMESTAMP so defaults work on SQLite and Postgres
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('emp_code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='EMPLOYEE'),
        sa.Column('password_hash', sa.String(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_employees_id'), 'employees', ['id'], unique=False)
    op.create_index(op.f('ix_employees_emp_code'), 'employees', ['emp_code'], unique=True)

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('leave_type', sa.String(), nullable=False),
        sa.Column('from_date', sa.Date(), nullable=False),
        sa.Column('to_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='PENDING'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_leave_requests_id'), 'leave_requests', ['id'], unique=False)
    op.create_index(op.f('ix_leave_requests_employee_id'), 'leave_requests', ['employee_id'], unique=False)
    op.create_index('ix_leave_requests_employee_dates', 'leave_requests', ['employee_id', 'from_date', 'to_date'], unique=False)

    op.create_table(
        'office_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('radius_meters', sa.Integer(), nullable=False),
        sa.Column('office_public_ip', sa.String(), nullable=False),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['updated_by'], ['employees.id'], ),
        sa.CheckConstraint('radius_meters > 0', name='ck_office_settings_radius_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_office_settings_id'), 'office_settings', ['id'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('meta_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)

    op.create_table(
        'attendance_days',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('active_punch_event_id', sa.Integer(), nullable=True),
        sa.Column('first_punch_in_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_punch_in_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_punch_out_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_out_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('out_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_heartbeat_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', attendance_status, nullable=False, server_default='NOT_PUNCHED_IN'),
        sa.Column('is_auto_punched_out', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_latitude', sa.Float(), nullable=True),
        sa.Column('last_longitude', sa.Float(), nullable=True),
        sa.Column('last_ip_address', sa.String(), nullable=True),
        sa.Column('last_distance_meters', sa.Float(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id', 'work_date', name='uq_attendance_days_employee_work_date'),
    )
    op.create_index(op.f('ix_attendance_days_id'), 'attendance_days', ['id'], unique=False)
    op.create_index(op.f('ix_attendance_days_employee_id'), 'attendance_days', ['employee_id'], unique=False)
    op.create_index(op.f('ix_attendance_days_work_date'), 'attendance_days', ['work_date'], unique=False)
    op.create_index(op.f('ix_attendance_days_last_heartbeat_at'), 'attendance_days', ['last_heartbeat_at'], unique=False)

    op.create_table(
        'punch_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('attendance_day_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('punch_in_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('ip_address', sa.String(), nullable=True),
        sa.Column('distance_meters', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('punched_out_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_auto_closed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['attendance_day_id'], ['attendance_days.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_punch_events_id'), 'punch_events', ['id'], unique=False)
    op.create_index(op.f('ix_punch_events_attendance_day_id'), 'punch_events', ['attendance_day_id'], unique=False)
    op.create_index(op.f('ix_punch_events_employee_id'), 'punch_events', ['employee_id'], unique=False)
    op.create_index(
        'uq_punch_events_one_active_per_day',
        'punch_events',
        ['attendance_day_id'],
        unique=True,
        sqlite_where=sa.text('is_active = 1'),
        postgresql_where=sa.text('is_active'),
    )

    op.create_table(
        'out_periods',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('attendance_day_id', sa.Integer(), nullable=False),
        sa.Column('out_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('in_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('reason', out_reason, nullable=False),
        sa.ForeignKeyConstraint(['attendance_day_id'], ['attendance_days.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_out_periods_id'), 'out_periods', ['id'], unique=False)
    op.create_index(op.f('ix_out_periods_attendance_day_id'), 'out_periods', ['attendance_day_id'], unique=False)
    op.create_index(
        'uq_out_periods_one_open_per_day',
        'out_periods',
        ['attendance_day_id'],
        unique=True,
        sqlite_where=sa.text('in_time IS NULL'),
        postgresql_where=sa.text('in_time IS NULL'),
    )


def downgrade() -> None:
    op.drop_index('uq_out_periods_one_open_per_day', table_name='out_periods')
    op.drop_table('out_periods')
    op.drop_index('uq_punch_events_one_active_per_day', table_name='punch_events')
    op.drop_table('punch_events')
    op.drop_table('attendance_days')
    op.drop_table('audit_logs')
    op.drop_table('office_settings')
    op.drop_table('leave_requests')
    op.drop_table('employees')
    bind = op.get_bind()
    out_reason.drop(bind, checkfirst=True)
    attendance_status.drop(bind, checkfirst=True)
