"""create queue tables

Revision ID: 4c1d2a9e7b10
Revises: 
Create Date: 2026-10-19 10:42:13.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1d2a9e7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PRIORITIES = ('NORMAL', 'SENIOR_CITIZEN', 'PREGNANT', 'EMERGENCY')
STATUSES = ('WAITING', 'CALLED', 'IN_CONSULTATION', 'COMPLETED', 'CANCELLED', 'NO_SHOW')


def upgrade() -> None:
    op.create_table(
        'departments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('code', sa.String(length=10), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('floor_number', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_departments_code'), 'departments', ['code'], unique=True)

    op.create_table(
        'doctors',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('employee_id', sa.String(length=20), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('specialization', sa.String(length=100), nullable=True),
        sa.Column('department_id', sa.Integer(), nullable=False),
        sa.Column('room_number', sa.String(length=20), nullable=True),
        sa.Column('consultation_duration_minutes', sa.Integer(), nullable=False),
        sa.Column('max_patients_per_day', sa.Integer(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id'),
    )

    op.create_table(
        'patients',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=True),
        sa.Column('phone', sa.String(length=15), nullable=False),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('gender', sa.String(length=10), nullable=True),
        sa.Column('is_senior_citizen', sa.Boolean(), nullable=False),
        sa.Column('is_pregnant', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_patients_phone'), 'patients', ['phone'], unique=True)

    op.create_table(
        'tokens',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('token_number', sa.String(length=32), nullable=False),
        sa.Column('token_date', sa.Date(), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('department_id', sa.Integer(), nullable=False),
        sa.Column('doctor_id', sa.Integer(), nullable=True),
        sa.Column('priority', sa.Enum(*PRIORITIES, name='tokenpriority'), nullable=False),
        sa.Column('status', sa.Enum(*STATUSES, name='tokenstatus'), nullable=False),
        sa.Column('generated_at', sa.DateTime(), nullable=False),
        sa.Column('called_at', sa.DateTime(), nullable=True),
        sa.Column('consultation_started_at', sa.DateTime(), nullable=True),
        sa.Column('consultation_ended_at', sa.DateTime(), nullable=True),
        sa.Column('queued_at', sa.DateTime(), nullable=False),
        sa.Column('requeue_serial', sa.Integer(), nullable=False),
        sa.Column('skip_count', sa.Integer(), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctors.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_number', 'token_date', name='uq_token_number_date'),
    )
    op.create_index('ix_tokens_doctor_date_status', 'tokens', ['doctor_id', 'token_date', 'status'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_tokens_doctor_date_status', table_name='tokens')
    op.drop_table('tokens')
    op.drop_index(op.f('ix_patients_phone'), table_name='patients')
    op.drop_table('patients')
    op.drop_table('doctors')
    op.drop_index(op.f('ix_departments_code'), table_name='departments')
    op.drop_table('departments')

    # Drop the enum types
    sa.Enum(name='tokenstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='tokenpriority').drop(op.get_bind(), checkfirst=True)
