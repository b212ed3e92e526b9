"""add patient email

Revision ID: 8e3f5b21c6d4
Revises: 4c1d2a9e7b10
Create Date: 2026-10-19 15:08:41.203377

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8e3f5b21c6d4'
down_revision: Union[str, None] = '4c1d2a9e7b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('patients', sa.Column('email', sa.String(length=255), nullable=True))


def downgrade() -> None:
    op.drop_column('patients', 'email')
