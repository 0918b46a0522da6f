"""member soft delete

Revision ID: 0002b7c8d9e0
Revises: 0001a2b3c4d5
Create Date: 2026-10-20 10:03:17.552901

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0002b7c8d9e0'
down_revision: Union[str, Sequence[str], None] = '0001a2b3c4d5'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Keep member rows (and their payment history) when a member is removed."""
    with op.batch_alter_table("members") as batch_op:
        batch_op.add_column(sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()))


def downgrade() -> None:
    with op.batch_alter_table("members") as batch_op:
        batch_op.drop_column("is_deleted")
