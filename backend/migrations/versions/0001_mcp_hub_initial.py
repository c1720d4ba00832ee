"""create service token, audit, event queue and router target tables

Revision ID: 0001_mcp_hub_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '0001_mcp_hub_initial'
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade():
    op.create_table(
        'service_tokens',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('service_id', sa.String(length=32), nullable=False),
        sa.Column('client_id', sa.String(length=255), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('token_type', sa.String(length=16), nullable=False),
        sa.Column('jti', sa.String(length=64), nullable=True),
        sa.Column('scope', sa.JSON(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=64), nullable=True),
        sa.Column('used', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        _created_at(),
        sa.CheckConstraint("token_type IN ('access', 'refresh')", name=op.f('ck_service_tokens_token_type')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_service_tokens')),
        sa.UniqueConstraint('token_hash', name=op.f('uq_service_tokens_token_hash')),
    )
    op.create_index('ix_service_tokens_service_type', 'service_tokens', ['service_id', 'token_type'])
    op.create_index('ix_service_tokens_expires_at', 'service_tokens', ['expires_at'])

    op.create_table(
        'mcp_audit_logs',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('endpoint', sa.String(length=128), nullable=False),
        sa.Column('method', sa.String(length=8), nullable=False),
        sa.Column('service_id', sa.String(length=32), nullable=True),
        sa.Column('client_id', sa.String(length=255), nullable=True),
        sa.Column('status_code', sa.Integer(), nullable=False),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('error_code', sa.String(length=64), nullable=True),
        sa.Column('request_id', sa.String(length=64), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('response_time_ms', sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_mcp_audit_logs')),
    )
    op.create_index('ix_mcp_audit_logs_service_created', 'mcp_audit_logs', ['service_id', 'created_at'])
    op.create_index('ix_mcp_audit_logs_error_code', 'mcp_audit_logs', ['error_code'])

    op.create_table(
        'event_queue',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('event_type', sa.String(length=128), nullable=False),
        sa.Column('source_service', sa.String(length=32), nullable=False),
        sa.Column('target_service', sa.String(length=32), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('priority', sa.String(length=16), server_default='normal', nullable=False),
        sa.Column('status', sa.String(length=16), server_default='pending', nullable=False),
        sa.Column('retry_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('max_retries', sa.Integer(), server_default='3', nullable=False),
        sa.Column('next_retry_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('idempotency_key', sa.String(length=255), nullable=True),
        sa.Column('target_ref', sa.String(length=36), nullable=True),
        sa.Column('correlation_id', sa.String(length=128), nullable=True),
        sa.Column('request_id', sa.String(length=64), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint(
            "priority IN ('critical', 'high', 'normal', 'low')", name=op.f('ck_event_queue_priority')
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')", name=op.f('ck_event_queue_status')
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_event_queue')),
        sa.UniqueConstraint('idempotency_key', name=op.f('uq_event_queue_idempotency_key')),
    )
    op.create_index('ix_event_queue_status_priority', 'event_queue', ['status', 'priority', 'created_at'])
    op.create_index('ix_event_queue_source_service', 'event_queue', ['source_service'])

    op.create_table(
        'service_health',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('service_id', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('last_ping', sa.DateTime(timezone=True), nullable=False),
        sa.Column('metrics', sa.JSON(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_service_health')),
        sa.UniqueConstraint('service_id', name=op.f('uq_service_health_service_id')),
    )

    op.create_table(
        'service_issues',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('service_id', sa.String(length=32), nullable=False),
        sa.Column('severity', sa.String(length=16), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('project_id', sa.String(length=64), nullable=True),
        sa.Column('reported_by', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_service_issues')),
    )
    op.create_index('ix_service_issues_service_status', 'service_issues', ['service_id', 'status'])

    op.create_table(
        'service_events',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('service_id', sa.String(length=32), nullable=False),
        sa.Column('event_type', sa.String(length=128), nullable=False),
        sa.Column('project_id', sa.String(length=64), nullable=True),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_service_events')),
    )
    op.create_index('ix_service_events_service_created', 'service_events', ['service_id', 'created_at'])

    # Owned by the platform; created here only when missing (local/dev databases)
    bind = op.get_bind()
    if not sa.inspect(bind).has_table('profiles'):
        op.create_table(
            'profiles',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=True),
            sa.Column('role', sa.String(length=32), nullable=False),
            _created_at(),
            sa.PrimaryKeyConstraint('id', name=op.f('pk_profiles')),
        )
        op.create_index('ix_profiles_role', 'profiles', ['role'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('read', sa.Boolean(), server_default=sa.false(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(
            ['user_id'], ['profiles.id'], name=op.f('fk_notifications_user_id_profiles'), ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_notifications')),
    )
    op.create_index('ix_notifications_user_read', 'notifications', ['user_id', 'read'])


def downgrade():
    op.drop_index('ix_notifications_user_read', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_service_events_service_created', table_name='service_events')
    op.drop_table('service_events')
    op.drop_index('ix_service_issues_service_status', table_name='service_issues')
    op.drop_table('service_issues')
    op.drop_table('service_health')
    op.drop_index('ix_event_queue_source_service', table_name='event_queue')
    op.drop_index('ix_event_queue_status_priority', table_name='event_queue')
    op.drop_table('event_queue')
    op.drop_index('ix_mcp_audit_logs_error_code', table_name='mcp_audit_logs')
    op.drop_index('ix_mcp_audit_logs_service_created', table_name='mcp_audit_logs')
    op.drop_table('mcp_audit_logs')
    op.drop_index('ix_service_tokens_expires_at', table_name='service_tokens')
    op.drop_index('ix_service_tokens_service_type', table_name='service_tokens')
    op.drop_table('service_tokens')
