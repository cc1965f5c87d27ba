"""Initial migration - clubs, events, hidden_events

Revision ID: 001_initial
Revises:
Create Date: 2025-03-02

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create clubs table
    op.create_table(
        'clubs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('strava_club_id', sa.String(32), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('strava_club_url', sa.String(512), nullable=False),
        sa.Column('admin_email', sa.String(255), nullable=True),
        sa.Column('website', sa.String(512), nullable=True),
        sa.Column('pace_categories', sa.JSON(), nullable=False),
        sa.Column('distance_ranges', sa.JSON(), nullable=False),
        sa.Column('meeting_frequency', sa.String(32), nullable=False),
        sa.Column('approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('strava_access_token', sa.Text(), nullable=True),
        sa.Column('strava_refresh_token', sa.Text(), nullable=True),
        sa.Column('strava_token_expires_at', sa.DateTime(), nullable=True),
        sa.Column('events_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('avg_participants', sa.Float(), nullable=False, server_default='0'),
        sa.Column('participants_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_event_date', sa.DateTime(), nullable=True),
        sa.Column('club_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_clubs_strava_club_id', 'clubs', ['strava_club_id'], unique=True)

    # Create events table
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('strava_event_id', sa.String(32), nullable=False),
        sa.Column('club_id', sa.Integer(), sa.ForeignKey('clubs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('location', sa.String(500), nullable=True),
        sa.Column('distance', sa.Integer(), nullable=True),
        sa.Column('distance_range', sa.String(16), nullable=True),
        sa.Column('pace', sa.String(8), nullable=True),
        sa.Column('pace_category', sa.String(16), nullable=True),
        sa.Column('beginner_friendly', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_interval_training', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('participant_count', sa.Integer(), nullable=True),
        sa.Column('strava_event_url', sa.String(512), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_events_strava_event_id', 'events', ['strava_event_id'], unique=True)
    op.create_index('ix_events_club_id', 'events', ['club_id'])
    op.create_index('ix_events_start_time', 'events', ['start_time'])

    # Create hidden_events table
    op.create_table(
        'hidden_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('user_id', 'event_id', name='uq_hidden_events_user_event'),
    )
    op.create_index('ix_hidden_events_user_id', 'hidden_events', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_hidden_events_user_id', table_name='hidden_events')
    op.drop_table('hidden_events')
    op.drop_index('ix_events_start_time', table_name='events')
    op.drop_index('ix_events_club_id', table_name='events')
    op.drop_index('ix_events_strava_event_id', table_name='events')
    op.drop_table('events')
    op.drop_index('ix_clubs_strava_club_id', table_name='clubs')
    op.drop_table('clubs')
