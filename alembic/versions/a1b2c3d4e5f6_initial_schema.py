"""initial_schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('username', sa.String(length=50), nullable=True, unique=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'polls',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('question', sa.String(length=200), nullable=False),
        sa.Column('created_by', sa.String(length=64), nullable=False),
        sa.Column('creator_username', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_votes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('push_count', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('idx_polls_status_created', 'polls', ['status', 'created_at'])
    op.create_index('idx_polls_created_by', 'polls', ['created_by'])

    op.create_table(
        'poll_options',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('poll_id', sa.Integer(), sa.ForeignKey('polls.id', ondelete='CASCADE'), nullable=False),
        sa.Column('option_text', sa.String(length=100), nullable=False),
        sa.Column('votes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_poll_options_poll', 'poll_options', ['poll_id'])

    op.create_table(
        'user_votes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('poll_id', sa.Integer(), sa.ForeignKey('polls.id', ondelete='CASCADE'), nullable=False),
        sa.Column('option_id', sa.Integer(), sa.ForeignKey('poll_options.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('voted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('poll_id', 'user_id', name='uq_user_votes_poll_user'),
    )
    op.create_index('idx_user_votes_poll_option', 'user_votes', ['poll_id', 'option_id'])
    op.create_index('idx_user_votes_user', 'user_votes', ['user_id'])

    op.create_table(
        'button_holds',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('owner_id', sa.String(length=64), nullable=True),
        sa.Column('target_kind', sa.String(length=20), nullable=False),
        sa.Column('target_id', sa.Integer(), sa.ForeignKey('poll_options.id', ondelete='CASCADE'), nullable=True),
        sa.Column('device_id', sa.String(length=64), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_heartbeat_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_seconds', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('location_label', sa.String(length=100), nullable=True),
    )
    op.create_index('idx_button_holds_live', 'button_holds', ['target_kind', 'is_active'])
    op.create_index('idx_button_holds_owner', 'button_holds', ['owner_id'])
    op.create_index(
        'uq_button_holds_active_owner',
        'button_holds',
        ['owner_id', 'target_kind'],
        unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active = 1'),
    )

    op.create_table(
        'saved_polls',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('poll_id', sa.Integer(), sa.ForeignKey('polls.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('saved_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('poll_id', 'user_id', name='uq_saved_polls_poll_user'),
    )
    op.create_index('ix_saved_polls_user_id', 'saved_polls', ['user_id'])

    op.create_table(
        'hidden_polls',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('poll_id', sa.Integer(), sa.ForeignKey('polls.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('hidden_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('poll_id', 'user_id', name='uq_hidden_polls_poll_user'),
    )
    op.create_index('ix_hidden_polls_user_id', 'hidden_polls', ['user_id'])

    op.create_table(
        'user_pushes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('poll_id', sa.Integer(), sa.ForeignKey('polls.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('pushed_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('poll_id', 'user_id', name='uq_user_pushes_poll_user'),
    )
    op.create_index('ix_user_pushes_user_id', 'user_pushes', ['user_id'])

    op.create_table(
        'daily_push_limits',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('push_date', sa.Date(), nullable=False),
        sa.Column('push_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_pushes', sa.Integer(), nullable=False, server_default='3'),
        sa.UniqueConstraint('user_id', 'push_date', name='uq_daily_push_limits_user_date'),
    )


def downgrade():
    op.drop_table('daily_push_limits')
    op.drop_table('user_pushes')
    op.drop_table('hidden_polls')
    op.drop_table('saved_polls')
    op.drop_index('uq_button_holds_active_owner', table_name='button_holds')
    op.drop_table('button_holds')
    op.drop_table('user_votes')
    op.drop_table('poll_options')
    op.drop_table('polls')
    op.drop_table('profiles')
