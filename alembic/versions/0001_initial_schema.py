"""initial_schema

Revision ID: 4c1e9a7b2d30
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

from gatekeep.infrastructure.persistence.models.audit_log import (
    POSTGRESQL_IMMUTABILITY_TRIGGERS,
    SQLITE_IMMUTABILITY_TRIGGERS,
)

# revision identifiers, used by Alembic.
revision: str = '4c1e9a7b2d30'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('external_users',
        sa.Column('id', sa.String(length=36), nullable=False, comment='User ID (UUID)'),
        sa.Column('email', sa.String(length=255), nullable=False, comment='User email address'),
        sa.Column('password_hash', sa.String(length=255), nullable=True, comment='Argon2 password hash (NULL disables password login)'),
        sa.Column('name', sa.String(length=255), nullable=True, comment='Display name'),
        sa.Column('is_active', sa.Boolean(), nullable=False, comment='Whether the user has verified their email'),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True, comment='Soft-delete timestamp'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True, comment='Timestamp of last successful login'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('external_users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_external_users_email'), ['email'], unique=False)
        batch_op.create_index(
            'uq_external_users_email_live',
            ['email'],
            unique=True,
            sqlite_where=sa.text('deleted_at IS NULL'),
            postgresql_where=sa.text('deleted_at IS NULL'),
        )

    op.create_table('internal_users',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Staff user ID (UUID)'),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Staff email address'),
        sa.Column('password_hash', sa.String(length=255), nullable=True, comment='Argon2 password hash (NULL disables password login)'),
        sa.Column('name', sa.String(length=255), nullable=True, comment='Display name'),
        sa.Column('role', sa.String(length=50), nullable=False, comment='Staff role label'),
        sa.Column('is_active', sa.Boolean(), nullable=False, comment='Whether the staff user can log in'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True, comment='Timestamp of last successful login'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('internal_users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_internal_users_email'), ['email'], unique=True)

    op.create_table('sessions',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Session ID (UUID)'),
        sa.Column('external_user_id', sa.String(length=36), nullable=True),
        sa.Column('internal_user_id', sa.String(length=36), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True, comment='User agent string from login request'),
        sa.Column('ip_address', sa.String(length=45), nullable=True, comment='Client IP address (IPv4 or IPv6)'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True, comment='Timestamp when the session was revoked'),
        sa.CheckConstraint('(external_user_id IS NULL) <> (internal_user_id IS NULL)', name='ck_sessions_single_owner'),
        sa.ForeignKeyConstraint(['external_user_id'], ['external_users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['internal_user_id'], ['internal_users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('sessions', schema=None) as batch_op:
        batch_op.create_index('ix_sessions_created_at', ['created_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_sessions_external_user_id'), ['external_user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sessions_internal_user_id'), ['internal_user_id'], unique=False)

    op.create_table('refresh_tokens',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('external_user_id', sa.String(length=36), nullable=True),
        sa.Column('internal_user_id', sa.String(length=36), nullable=True),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rotated_from_id', sa.String(length=36), nullable=True, comment='Refresh token this one replaced'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('(external_user_id IS NULL) <> (internal_user_id IS NULL)', name='ck_refresh_tokens_single_owner'),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['external_user_id'], ['external_users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['internal_user_id'], ['internal_users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['rotated_from_id'], ['refresh_tokens.id']),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('refresh_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_refresh_tokens_session_id'), ['session_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_refresh_tokens_token_hash'), ['token_hash'], unique=True)
        batch_op.create_index('ix_refresh_tokens_external_user', ['external_user_id'], unique=False)
        batch_op.create_index('ix_refresh_tokens_internal_user', ['internal_user_id'], unique=False)

    op.create_table('password_reset_tokens',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Token ID (UUID)'),
        sa.Column('external_user_id', sa.String(length=36), nullable=False, comment='Foreign key to external_users table'),
        sa.Column('token_hash', sa.String(length=64), nullable=False, comment='SHA-256 hash of the reset token'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when the token expires'),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True, comment='Timestamp when the token was used'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False, comment='Timestamp when the token was created'),
        sa.ForeignKeyConstraint(['external_user_id'], ['external_users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('password_reset_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_password_reset_tokens_expires_at'), ['expires_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_password_reset_tokens_external_user_id'), ['external_user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_password_reset_tokens_token_hash'), ['token_hash'], unique=True)

    op.create_table('email_verification_tokens',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Token ID (UUID)'),
        sa.Column('external_user_id', sa.String(length=36), nullable=False, comment='Foreign key to external_users table'),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Email address to verify'),
        sa.Column('token_hash', sa.String(length=64), nullable=False, comment='SHA-256 hash of the verification token'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when the token expires'),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True, comment='Timestamp when the token was used'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False, comment='Timestamp when the token was created'),
        sa.ForeignKeyConstraint(['external_user_id'], ['external_users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('email_verification_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_email_verification_tokens_external_user_id'), ['external_user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_email_verification_tokens_token_hash'), ['token_hash'], unique=True)

    op.create_table('audit_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='Sequence number'),
        sa.Column('action', sa.String(length=32), nullable=False, comment='Lifecycle action'),
        sa.Column('external_user_id', sa.String(length=36), nullable=True, comment='Acting external user'),
        sa.Column('internal_user_id', sa.String(length=36), nullable=True, comment='Acting internal user'),
        sa.Column('organization_id', sa.String(length=36), nullable=True, comment='Organization scope'),
        sa.Column('ip_address', sa.String(length=45), nullable=True, comment='Client IP address (IPv4 or IPv6)'),
        sa.Column('user_agent', sa.String(length=500), nullable=True, comment='User agent string from request'),
        sa.Column('request_id', sa.String(length=64), nullable=True, comment='Correlation ID for the request'),
        sa.Column('details', sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql'), nullable=True, comment='Additional context as JSON'),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when the transition occurred (UTC)'),
        sa.Column('checksum', sa.String(length=64), nullable=True, comment='SHA-256 hash of this audit entry'),
        sa.Column('previous_hash', sa.String(length=64), nullable=True, comment='Checksum of the previous audit entry'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('audit_log', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_audit_log_action'), ['action'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_log_external_user_id'), ['external_user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_log_internal_user_id'), ['internal_user_id'], unique=False)
        batch_op.create_index('ix_audit_log_occurred_at_desc', [sa.text('occurred_at DESC')], unique=False)

    dialect = op.get_bind().dialect.name
    if dialect == 'sqlite':
        triggers = SQLITE_IMMUTABILITY_TRIGGERS
    elif dialect == 'postgresql':
        triggers = POSTGRESQL_IMMUTABILITY_TRIGGERS
    else:
        triggers = ()
    for statement in triggers:
        op.execute(statement)


def downgrade() -> None:
    """Downgrade schema."""
    dialect = op.get_bind().dialect.name
    if dialect == 'sqlite':
        op.execute('DROP TRIGGER IF EXISTS prevent_audit_log_update')
        op.execute('DROP TRIGGER IF EXISTS prevent_audit_log_delete')
    elif dialect == 'postgresql':
        op.execute('DROP TRIGGER IF EXISTS prevent_audit_log_change ON audit_log')
        op.execute('DROP FUNCTION IF EXISTS prevent_audit_log_change()')

    op.drop_table('audit_log')
    op.drop_table('email_verification_tokens')
    op.drop_table('password_reset_tokens')
    op.drop_table('refresh_tokens')
    op.drop_table('sessions')
    op.drop_table('internal_users')
    op.drop_table('external_users')
