"""initial payroll schema: users, employees, attendance, cycle ledgers, daily salary

Revision ID: 3f1a9c2d7e10
Revises:
Create Date: 2025-11-20 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TXN_TYPES = (
    'increment', 'decrement', 'bonus_amount', 'bonus_percentage', 'attendance_bonus',
    'attendance_bonus_auto', 'overtime', 'absent', 'early_leave',
)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(160), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('designation', sa.String(120), nullable=False),
        sa.Column('phone_no', sa.String(32), nullable=False),
        sa.Column('job_shift', sa.String(60), nullable=False),
        sa.Column('joining_date', sa.Date(), nullable=True),
        sa.Column('referred_by', sa.String(160), nullable=False, server_default=''),
        sa.Column('salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('salary_per_hour', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('salary_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_employee', sa.String(40), nullable=False, server_default='Active Employee'),
        sa.Column('iban_number', sa.String(64), nullable=False, server_default=''),
        sa.Column('account_title', sa.String(160), nullable=False, server_default=''),
        sa.Column('bank_name', sa.String(160), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_employees_employee_id', 'employees', ['employee_id'], unique=True)

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.String(64), nullable=False),
        sa.Column('attendance_date', sa.String(10), nullable=False),
        sa.Column('status', sa.String(40), nullable=False),
        sa.Column('note', sa.String(500), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('employee_id', 'attendance_date', name='uq_attendance_employee_date'),
    )
    op.create_index('ix_attendance_records_employee_id', 'attendance_records', ['employee_id'])
    op.create_index('ix_attendance_records_attendance_date', 'attendance_records', ['attendance_date'])

    op.create_table(
        'attendance_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('record_id', sa.Integer(), sa.ForeignKey('attendance_records.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(40), nullable=False),
        sa.Column('note', sa.String(500), nullable=False, server_default=''),
        sa.Column('extra_note', sa.String(500), nullable=False, server_default=''),
        sa.Column('changed_by', sa.String(120), nullable=False, server_default='system'),
        sa.Column('changed_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_attendance_history_record_id', 'attendance_history', ['record_id'])

    op.create_table(
        'salary_cycle_ledgers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_pk', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('employee_id', sa.String(64), nullable=False),
        sa.Column('cycle_key', sa.String(21), nullable=False),
        sa.Column('cycle_start', sa.DateTime(), nullable=False),
        sa.Column('cycle_end', sa.DateTime(), nullable=False),
        sa.Column('base_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('salary_per_hour', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('payable_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('attendance_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('attendance_bonus_awarded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.Enum('unpaid', 'paid', name='salary_ledger_status_enum'), nullable=False, server_default='unpaid'),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('paid_counted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_action_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('employee_id', 'cycle_key', name='uq_salary_ledger_employee_cycle'),
    )
    op.create_index('ix_salary_cycle_ledgers_employee_pk', 'salary_cycle_ledgers', ['employee_pk'])
    op.create_index('ix_salary_cycle_ledgers_employee_id', 'salary_cycle_ledgers', ['employee_id'])
    op.create_index('ix_salary_cycle_ledgers_cycle_key', 'salary_cycle_ledgers', ['cycle_key'])
    op.create_index('ix_salary_ledger_employee_start', 'salary_cycle_ledgers', ['employee_id', 'cycle_start'])

    op.create_table(
        'salary_transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ledger_id', sa.Integer(), sa.ForeignKey('salary_cycle_ledgers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('type', sa.Enum(*TXN_TYPES, name='salary_txn_type_enum'), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=False),
        sa.Column('note', sa.String(500), nullable=False, server_default=''),
        sa.Column('action_date', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('ledger_id', 'seq', name='uq_salary_txn_ledger_seq'),
    )
    op.create_index('ix_salary_transactions_ledger_id', 'salary_transactions', ['ledger_id'])

    op.create_table(
        'salary_daily',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.String(64), nullable=False),
        sa.Column('salary_date', sa.String(10), nullable=False),
        sa.Column('base_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('increment', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('deduction', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('payable_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('note', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('employee_id', 'salary_date', name='uq_salary_daily_employee_date'),
    )
    op.create_index('ix_salary_daily_employee_id', 'salary_daily', ['employee_id'])
    op.create_index('ix_salary_daily_salary_date', 'salary_daily', ['salary_date'])

    op.create_table(
        'salary_daily_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.String(64), nullable=False),
        sa.Column('salary_date', sa.String(10), nullable=False),
        sa.Column('type', sa.Enum('increment', 'deduction', name='salary_daily_event_type_enum'), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('note', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_salary_daily_events_employee_id', 'salary_daily_events', ['employee_id'])
    op.create_index('ix_salary_daily_events_salary_date', 'salary_daily_events', ['salary_date'])
    op.create_index('ix_salary_daily_events_emp_date_created', 'salary_daily_events',
                    ['employee_id', 'salary_date', 'created_at'])


def downgrade() -> None:
    for table in (
        'salary_daily_events', 'salary_daily', 'salary_transactions', 'salary_cycle_ledgers',
        'attendance_history', 'attendance_records', 'employees', 'user_roles', 'roles', 'users',
    ):
        op.drop_table(table)
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in ('salary_daily_event_type_enum', 'salary_txn_type_enum', 'salary_ledger_status_enum'):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)
