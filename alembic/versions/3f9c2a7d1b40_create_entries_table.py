"""create entries table

Revision ID: 3f9c2a7d1b40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d1b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Short-lived share entries
    op.create_table(
        'entries',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('created', sa.Integer(), nullable=False),
        sa.Column('type', sa.Integer(), nullable=False),
        sa.Column('password_hash', sa.LargeBinary(), nullable=True),
        sa.Column('data', sa.LargeBinary(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    # Index for expiry sweeps by creation time
    op.create_index('ix_entries_created', 'entries', ['created'])


def downgrade() -> None:
    op.drop_index('ix_entries_created', table_name='entries')
    op.drop_table('entries')
