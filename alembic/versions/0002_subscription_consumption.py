"""remember subscription state consumed by a draw

Revision ID: 0002_subscription_consumption
Revises: 0001_initial
Create Date: 2026-10-19 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002_subscription_consumption"
down_revision: Union[str, None] = "0001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("subscriptions") as batch_op:
        batch_op.add_column(
            sa.Column("consumed_from_status", sa.String(length=20), nullable=True)
        )
        batch_op.add_column(
            sa.Column("consumed_draws_remaining", sa.Integer(), nullable=True)
        )


def downgrade() -> None:
    with op.batch_alter_table("subscriptions") as batch_op:
        batch_op.drop_column("consumed_draws_remaining")
        batch_op.drop_column("consumed_from_status")
