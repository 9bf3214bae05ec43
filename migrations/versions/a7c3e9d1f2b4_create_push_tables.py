"""create users, push_subscriptions, push_notification_log, app_secrets tables

Revision ID: a7c3e9d1f2b4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a7c3e9d1f2b4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('role', sa.String(50), nullable=False, index=True),
        sa.Column('hospital_id', sa.String(36), nullable=True, index=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'push_subscriptions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('hospital_id', sa.String(36), nullable=True, index=True),
        sa.Column('endpoint', sa.Text(), nullable=False, unique=True),
        sa.Column('p256dh', sa.Text(), nullable=False),
        sa.Column('auth', sa.Text(), nullable=False),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('preferences', postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('last_used_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_push_subscriptions_is_active', 'push_subscriptions', ['is_active'])

    op.create_table(
        'push_notification_log',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'subscription_id', sa.String(36),
            sa.ForeignKey('push_subscriptions.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('user_id', sa.String(36), nullable=True, index=True),
        sa.Column('notification_type', sa.String(64), nullable=False, index=True),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('data', postgresql.JSONB(), nullable=True),
        sa.Column('sent_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )

    op.create_table(
        'app_secrets',
        sa.Column('key', sa.String(128), primary_key=True),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('app_secrets')
    op.drop_table('push_notification_log')
    op.drop_index('ix_push_subscriptions_is_active', table_name='push_subscriptions')
    op.drop_table('push_subscriptions')
    op.drop_table('users')
