"""Initial schema - users, cases, case files and case history

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-16

Portable DDL (Postgres in production, SQLite for local development).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CASE_STATUSES = ("Pending", "In Review", "In Mediation", "Resolved", "Closed")


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('department', sa.String(50), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('organization', sa.String(255), nullable=True),
        sa.Column('license_number', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )

    # ==========================================================================
    # Cases
    # ==========================================================================
    statuses = ", ".join(f"'{s}'" for s in CASE_STATUSES)
    op.create_table(
        'cases',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('case_type', sa.String(20), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('amount', sa.Numeric(15, 2), nullable=True),
        sa.Column('preferred_resolution', sa.String(255), nullable=True),
        sa.Column('urgency', sa.String(10), nullable=False, server_default='medium'),
        sa.Column('status', sa.String(20), nullable=False, server_default='Pending'),
        sa.Column('assigned_department', sa.String(50), nullable=False),
        sa.Column('respondent_name', sa.String(255), nullable=True),
        sa.Column('respondent_email', sa.String(255), nullable=True),
        sa.Column('respondent_phone', sa.String(20), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_cases'),
        sa.ForeignKeyConstraint(
            ['owner_id'], ['users.id'], ondelete='CASCADE',
            name='fk_cases_owner_id_users',
        ),
        sa.ForeignKeyConstraint(
            ['resolved_by'], ['users.id'], ondelete='SET NULL',
            name='fk_cases_resolved_by_users',
        ),
        sa.CheckConstraint(f"status IN ({statuses})", name='ck_cases_status_valid'),
        sa.CheckConstraint('amount IS NULL OR amount >= 0', name='ck_cases_amount_non_negative'),
    )
    op.create_index('idx_cases_owner_created', 'cases', ['owner_id', 'created_at'])
    op.create_index('idx_cases_department_status', 'cases', ['assigned_department', 'status'])

    # ==========================================================================
    # Case files
    # ==========================================================================
    op.create_table(
        'case_files',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('case_id', sa.Uuid(), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('storage_path', sa.String(500), nullable=False),
        sa.Column('uploaded_by', sa.Uuid(), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_case_files'),
        sa.ForeignKeyConstraint(
            ['case_id'], ['cases.id'], ondelete='CASCADE',
            name='fk_case_files_case_id_cases',
        ),
        sa.ForeignKeyConstraint(
            ['uploaded_by'], ['users.id'], name='fk_case_files_uploaded_by_users',
        ),
    )
    op.create_index('idx_case_files_case', 'case_files', ['case_id'])

    # ==========================================================================
    # Case history
    # ==========================================================================
    op.create_table(
        'case_updates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('case_id', sa.Uuid(), nullable=False),
        sa.Column('updated_by', sa.Uuid(), nullable=False),
        sa.Column('update_type', sa.String(40), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_case_updates'),
        sa.ForeignKeyConstraint(
            ['case_id'], ['cases.id'], ondelete='CASCADE',
            name='fk_case_updates_case_id_cases',
        ),
        sa.ForeignKeyConstraint(
            ['updated_by'], ['users.id'], name='fk_case_updates_updated_by_users',
        ),
    )
    op.create_index('idx_case_updates_case_created', 'case_updates', ['case_id', 'created_at'])


def downgrade() -> None:
    op.drop_table('case_updates')
    op.drop_table('case_files')
    op.drop_table('cases')
    op.drop_table('users')
