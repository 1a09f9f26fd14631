"""add user_paste_permissions table

Revision ID: c4e5f6a7b8c9
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "c4e5f6a7b8c9"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the per-(user, paste) permission bitmask table."""
    op.create_table(
        "user_paste_permissions",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("paste_id", sa.String(length=64), nullable=False),
        sa.Column("permissions", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("permissions > 0", name="ck_user_paste_permissions_nonzero"),
        sa.PrimaryKeyConstraint("user_id", "paste_id"),
    )
    op.create_index(
        "ix_user_paste_permissions_paste_id",
        "user_paste_permissions",
        ["paste_id"],
    )


def downgrade() -> None:
    """Drop user_paste_permissions table."""
    op.drop_index("ix_user_paste_permissions_paste_id", table_name="user_paste_permissions")
    op.drop_table("user_paste_permissions")
