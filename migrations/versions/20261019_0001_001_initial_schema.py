"""Initial schema - Matchday catalog and saved tournament tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- fields: Fields (stadiums) matches are played on
- teams: Teams that can be entered into a tournament
- key_values: Saved state of the active tournament
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ### Fields table ###
    op.create_table(
        'fields',
        sa.Column('id', sa.String(50), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
    )

    # ### Teams table ###
    op.create_table(
        'teams',
        sa.Column('id', sa.String(50), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('ai_skill', sa.Integer(), server_default='1'),
        sa.Column('home_field_id', sa.String(50), sa.ForeignKey('fields.id'), nullable=True),
    )

    # ### Key-value table ###
    op.create_table(
        'key_values',
        sa.Column('key', sa.String(100), primary_key=True),
        sa.Column('value_type', sa.Enum(
            'STRING', 'INT', 'BOOL',
            name='valuetype'
        ), nullable=False),
        sa.Column('value', sa.Text(), nullable=False, server_default=''),
    )

    op.create_index('ix_teams_home_field_id', 'teams', ['home_field_id'])


def downgrade() -> None:
    op.drop_index('ix_teams_home_field_id', 'teams')

    # Drop tables in reverse order of creation
    op.drop_table('key_values')
    op.drop_table('teams')
    op.drop_table('fields')
