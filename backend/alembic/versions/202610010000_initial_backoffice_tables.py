"""Users, user data, organizations and memberships

Revision ID: 202610010000
Revises: 
Create Date: 2026-10-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '202610010000'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _sync_tracking():
    return [
        sa.Column('sync_status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('last_sync_attempt', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sync_error', sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    # ------------------------------
    # users
    # ------------------------------
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('clerk_id', sa.String(255), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('image_url', sa.String(1024), nullable=True),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('role', sa.String(50), nullable=False, server_default='user'),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('last_sign_in_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        *_sync_tracking(),
    )
    op.create_index('ix_users_clerk_id', 'users', ['clerk_id'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_sync_status', 'users', ['sync_status'])

    # ------------------------------
    # user_data
    # ------------------------------
    op.create_table(
        'user_data',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('key', sa.String(255), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'key', name='uq_user_data_user_id_key'),
    )
    op.create_index('ix_user_data_user_id', 'user_data', ['user_id'])

    # ------------------------------
    # organizations
    # ------------------------------
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('clerk_id', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('metadata', sa.Text(), nullable=True),
        *_timestamps(),
        *_sync_tracking(),
    )
    op.create_index('ix_organizations_clerk_id', 'organizations', ['clerk_id'], unique=True)
    op.create_index('ix_organizations_slug', 'organizations', ['slug'], unique=True)
    op.create_index('ix_organizations_sync_status', 'organizations', ['sync_status'])

    # ------------------------------
    # members
    # ------------------------------
    op.create_table(
        'members',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='member'),
        *_timestamps(),
        sa.UniqueConstraint('organization_id', 'user_id', name='uq_members_organization_user'),
    )
    op.create_index('ix_members_organization_id', 'members', ['organization_id'])
    op.create_index('ix_members_user_id', 'members', ['user_id'])


def downgrade() -> None:
    op.drop_table('members')
    op.drop_table('organizations')
    op.drop_table('user_data')
    op.drop_table('users')
