"""add version to students for compare-and-swap ledger writes

Revision ID: 8b4e6d2c1a55
Revises: 3f1c2a9d7b10
Create Date: 2026-03-09 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b4e6d2c1a55'
down_revision: str = '3f1c2a9d7b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('students', sa.Column('version', sa.Integer(), nullable=False, server_default='0'))


def downgrade() -> None:
    op.drop_column('students', 'version')
