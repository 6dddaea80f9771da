"""Baseline: accounts, profiles, investigation requests, matches, audit logs.

Revision ID: 0001_moderation_baseline
Revises:
Create Date: 2026-10-18

Creates:
- users (partial unique index on live emails)
- customer_profiles, investigator_profiles (version columns)
- investigation_requests, investigator_matches
- audit_logs
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_moderation_baseline'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ==========================================================================
    # users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index(
        'uq_users_email_live', 'users', ['email'], unique=True,
        postgresql_where=sa.text('deleted_at IS NULL'),
        sqlite_where=sa.text('deleted_at IS NULL'),
    )
    op.create_index('ix_users_deleted_at', 'users', ['deleted_at'])

    # ==========================================================================
    # profiles
    # ==========================================================================
    op.create_table(
        'customer_profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_customer_profiles_user_id_users', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_customer_profiles'),
        sa.UniqueConstraint('user_id', name='uq_customer_profiles_user_id'),
    )
    op.create_index('ix_customer_profiles_deleted_at', 'customer_profiles', ['deleted_at'])

    op.create_table(
        'investigator_profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('specialties', sa.Text(), nullable=True),
        sa.Column('experience_years', sa.Integer(), nullable=True),
        sa.Column('review_note', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by_id', sa.Integer(), nullable=True),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_investigator_profiles_user_id_users', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewed_by_id'], ['users.id'], name='fk_investigator_profiles_reviewed_by_id_users', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_investigator_profiles'),
        sa.UniqueConstraint('user_id', name='uq_investigator_profiles_user_id'),
    )
    op.create_index('ix_investigator_profiles_status', 'investigator_profiles', ['status'])
    op.create_index('ix_investigator_profiles_deleted_at', 'investigator_profiles', ['deleted_at'])

    # ==========================================================================
    # investigation_requests / investigator_matches
    # ==========================================================================
    op.create_table(
        'investigation_requests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('investigator_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('details', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_investigation_requests_user_id_users', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['investigator_id'], ['investigator_profiles.id'], name='fk_investigation_requests_investigator_id_investigator_profiles', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_investigation_requests'),
    )
    op.create_index('ix_investigation_requests_user_id', 'investigation_requests', ['user_id'])
    op.create_index('ix_investigation_requests_investigator_id', 'investigation_requests', ['investigator_id'])
    op.create_index('ix_investigation_requests_status', 'investigation_requests', ['status'])

    op.create_table(
        'investigator_matches',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('request_id', sa.Integer(), nullable=False),
        sa.Column('investigator_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['request_id'], ['investigation_requests.id'], name='fk_investigator_matches_request_id_investigation_requests', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['investigator_id'], ['investigator_profiles.id'], name='fk_investigator_matches_investigator_id_investigator_profiles', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_investigator_matches'),
        sa.UniqueConstraint('request_id', 'investigator_id', name='uq_match_request_investigator'),
    )
    op.create_index('ix_investigator_matches_investigator_id', 'investigator_matches', ['investigator_id'])

    # ==========================================================================
    # audit_logs (no FK on actor: archived actors keep their trail)
    # ==========================================================================
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('target_type', sa.String(50), nullable=False),
        sa.Column('target_id', sa.Integer(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_audit_logs'),
    )
    op.create_index('idx_audit_created', 'audit_logs', ['created_at'])
    op.create_index('idx_audit_target', 'audit_logs', ['target_type', 'target_id'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('investigator_matches')
    op.drop_table('investigation_requests')
    op.drop_table('investigator_profiles')
    op.drop_table('customer_profiles')
    op.drop_index('uq_users_email_live', table_name='users')
    op.drop_table('users')
