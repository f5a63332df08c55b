"""create orchestration tables

Revision ID: 20250601_0001
Revises:
Create Date: 2025-06-01 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


# revision identifiers, used by Alembic.
revision = '20250601_0001'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(JSONB(), 'postgresql')


def upgrade() -> None:
    """Create sessions, messages, context items, session links and jobs."""

    op.create_table(
        'agent_sessions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True, comment='Soft delete timestamp'),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('session_type', sa.String(length=20), nullable=False, comment='code, terminal or hybrid'),
        sa.Column('title', sa.String(length=500), nullable=True),
        sa.Column(
            'status',
            sa.String(length=20),
            nullable=False,
            comment='active, paused, completed or error',
        ),
        sa.Column('shared_context', JSON_TYPE, nullable=True),
        sa.Column('context_hash', sa.String(length=64), nullable=True),
        sa.Column('metadata', JSON_TYPE, nullable=True),
        sa.Column('last_activity_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_agent_sessions_created_at', 'agent_sessions', ['created_at'])
    op.create_index('ix_agent_sessions_deleted_at', 'agent_sessions', ['deleted_at'])
    op.create_index('ix_agent_sessions_project_id', 'agent_sessions', ['project_id'])
    op.create_index('ix_agent_sessions_user_id', 'agent_sessions', ['user_id'])
    op.create_index(
        'ix_agent_sessions_project_activity',
        'agent_sessions',
        ['project_id', 'last_activity_at'],
    )
    op.create_index(
        'ix_agent_sessions_project_type',
        'agent_sessions',
        ['project_id', 'session_type'],
    )

    op.create_table(
        'agent_messages',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column(
            'session_id',
            sa.Integer(),
            sa.ForeignKey('agent_sessions.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('agent_type', sa.String(length=20), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('content_type', sa.String(length=20), nullable=False),
        sa.Column('tool_name', sa.String(length=255), nullable=True),
        sa.Column('tool_input', JSON_TYPE, nullable=True),
        sa.Column('tool_output', JSON_TYPE, nullable=True),
        sa.Column('tool_status', sa.String(length=20), nullable=True),
        sa.Column('context_snapshot', JSON_TYPE, nullable=True),
        sa.Column('metadata', JSON_TYPE, nullable=True),
    )
    op.create_index('ix_agent_messages_created_at', 'agent_messages', ['created_at'])
    op.create_index('ix_agent_messages_session_id', 'agent_messages', ['session_id'])
    op.create_index(
        'ix_agent_messages_session_order',
        'agent_messages',
        ['session_id', 'created_at', 'id'],
    )
    op.create_index(
        'ix_agent_messages_agent_type',
        'agent_messages',
        ['agent_type', 'created_at'],
    )

    op.create_table(
        'context_items',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('item_type', sa.String(length=50), nullable=False),
        sa.Column('item_key', sa.String(length=1024), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('content_hash', sa.String(length=64), nullable=True),
        sa.Column('metadata', JSON_TYPE, nullable=True),
        sa.Column('last_accessed_at', sa.DateTime(), nullable=False),
        sa.Column('access_count', sa.Integer(), nullable=False),
        sa.UniqueConstraint('project_id', 'item_type', 'item_key', name='uq_context_items_key'),
    )
    op.create_index('ix_context_items_created_at', 'context_items', ['created_at'])
    op.create_index('ix_context_items_project_id', 'context_items', ['project_id'])
    op.create_index(
        'ix_context_items_project_type_accessed',
        'context_items',
        ['project_id', 'item_type', 'last_accessed_at'],
    )

    op.create_table(
        'session_context_links',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column(
            'session_id',
            sa.Integer(),
            sa.ForeignKey('agent_sessions.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'context_item_id',
            sa.Integer(),
            sa.ForeignKey('context_items.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('relevance_score', sa.Float(), nullable=False),
        sa.Column('added_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('session_id', 'context_item_id', name='uq_session_context_links_pair'),
    )
    op.create_index('ix_session_context_links_created_at', 'session_context_links', ['created_at'])
    op.create_index('ix_session_context_links_session_id', 'session_context_links', ['session_id'])
    op.create_index(
        'ix_session_context_links_context_item_id',
        'session_context_links',
        ['context_item_id'],
    )

    op.create_table(
        'agent_jobs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column(
            'session_id',
            sa.Integer(),
            sa.ForeignKey('agent_sessions.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('job_type', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('input_data', JSON_TYPE, nullable=True),
        sa.Column('output_data', JSON_TYPE, nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('progress_percentage', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_agent_jobs_created_at', 'agent_jobs', ['created_at'])
    op.create_index('ix_agent_jobs_session_id', 'agent_jobs', ['session_id'])
    op.create_index('ix_agent_jobs_status', 'agent_jobs', ['status'])
    op.create_index('ix_agent_jobs_session_created', 'agent_jobs', ['session_id', 'created_at'])


def downgrade() -> None:
    """Drop the orchestration tables, dependents first."""
    op.drop_table('agent_jobs')
    op.drop_table('session_context_links')
    op.drop_table('context_items')
    op.drop_table('agent_messages')
    op.drop_table('agent_sessions')
