"""Add orders.usage_recorded

Revision ID: 7d5a9e3c1b62
Revises: 3b7e1c9a2f40
Create Date: 2026-10-19 10:30:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "7d5a9e3c1b62"
down_revision: Union[str, None] = "3b7e1c9a2f40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "orders",
        sa.Column("usage_recorded", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    # Completed orders before this revision already had their usage counted
    op.execute("UPDATE orders SET usage_recorded = is_completed")
    op.alter_column("orders", "usage_recorded", server_default=None)


def downgrade() -> None:
    op.drop_column("orders", "usage_recorded")
