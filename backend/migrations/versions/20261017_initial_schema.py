"""Initial schema: resources, usage sessions, audit events, products, settings, admin tokens

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17

This migration adds:
1. Resource (seats and lockers, one tagged table with an optimistic-lock version)
2. UsageSession (one row per check-in / locker assignment)
3. AuditEvent (append-only JSON payload log)
4. Product (time packages, read-only to the session lifecycle)
5. AppSetting (key/value runtime settings)
6. AdminToken (hashed admin bearer tokens)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261017_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. PRODUCTS TABLE
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_is_active'), ['is_active'], unique=False)

    # ==========================================================================
    # 2. RESOURCES TABLE
    # ==========================================================================
    op.create_table('resources',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('code', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='AVAILABLE'),
        sa.Column('row_label', sa.String(length=2), nullable=True),
        sa.Column('col_number', sa.Integer(), nullable=True),
        sa.Column('linked_resource_id', sa.Integer(), nullable=True),
        sa.Column('current_session_id', sa.Integer(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['linked_resource_id'], ['resources.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kind', 'code', name='uq_resources_kind_code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('resources', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_resources_kind'), ['kind'], unique=False)
        batch_op.create_index(batch_op.f('ix_resources_current_session_id'), ['current_session_id'], unique=False)
        batch_op.create_index('ix_resources_kind_status', ['kind', 'status'], unique=False)

    # ==========================================================================
    # 3. USAGE SESSIONS TABLE
    # ==========================================================================
    op.create_table('usage_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=False),
        sa.Column('resource_kind', sa.String(length=16), nullable=False),
        sa.Column('user_tag', sa.String(length=8), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        sa.Column('ended_reason', sa.String(length=16), nullable=True),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('usage_sessions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_usage_sessions_resource_id'), ['resource_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_usage_sessions_status'), ['status'], unique=False)
        batch_op.create_index('ix_usage_sessions_status_end', ['status', 'end_at'], unique=False)

    # ==========================================================================
    # 4. AUDIT EVENTS TABLE (append-only)
    # ==========================================================================
    op.create_table('audit_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=16), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('actor_role', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('audit_events', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_audit_events_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_audit_events_type_created', ['event_type', 'created_at'], unique=False)

    # ==========================================================================
    # 5. APP SETTINGS TABLE
    # ==========================================================================
    op.create_table('app_settings',
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('key')
    )

    # ==========================================================================
    # 6. ADMIN TOKENS TABLE
    # ==========================================================================
    op.create_table('admin_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('admin_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_admin_tokens_token_hash'), ['token_hash'], unique=True)


def downgrade():
    with op.batch_alter_table('admin_tokens', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_admin_tokens_token_hash'))
    op.drop_table('admin_tokens')

    op.drop_table('app_settings')

    with op.batch_alter_table('audit_events', schema=None) as batch_op:
        batch_op.drop_index('ix_audit_events_type_created')
        batch_op.drop_index(batch_op.f('ix_audit_events_created_at'))
    op.drop_table('audit_events')

    with op.batch_alter_table('usage_sessions', schema=None) as batch_op:
        batch_op.drop_index('ix_usage_sessions_status_end')
        batch_op.drop_index(batch_op.f('ix_usage_sessions_status'))
        batch_op.drop_index(batch_op.f('ix_usage_sessions_resource_id'))
    op.drop_table('usage_sessions')

    with op.batch_alter_table('resources', schema=None) as batch_op:
        batch_op.drop_index('ix_resources_kind_status')
        batch_op.drop_index(batch_op.f('ix_resources_current_session_id'))
        batch_op.drop_index(batch_op.f('ix_resources_kind'))
    op.drop_table('resources')

    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_products_is_active'))
    op.drop_table('products')
