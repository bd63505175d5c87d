"""create matches and match_events tables

Revision ID: 3b9d0c51e7aa
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3b9d0c51e7aa'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(  # type: ignore
        'matches',
        sa.Column('id', sa.String(length=32), primary_key=True, nullable=False),
        sa.Column('team_a', sa.String(), nullable=False),
        sa.Column('team_b', sa.String(), nullable=False),
        sa.Column('location', sa.String(), nullable=False),
        sa.Column('competition', sa.String(), nullable=False),
        sa.Column('scheduled_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='scheduled'),
        sa.Column('elapsed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('score_a', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('score_b', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('team_a', 'team_b', 'scheduled_at', name='uq_matches_fixture'),
    )
    op.create_table(  # type: ignore
        'match_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column('match_id', sa.String(length=32), sa.ForeignKey('matches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('team', sa.String(length=8), nullable=False),
        sa.Column('player', sa.String(), nullable=False),
        sa.Column('minute', sa.Integer(), nullable=False),
    )
    op.create_index('ix_match_events_match_id', 'match_events', ['match_id'])  # type: ignore


def downgrade():
    op.drop_index('ix_match_events_match_id', table_name='match_events')  # type: ignore
    op.drop_table('match_events')  # type: ignore
    op.drop_table('matches')  # type: ignore
