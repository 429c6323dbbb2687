"""Create news table"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "news",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            primary_key=True,
            autoincrement=True,
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("published", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("link", sa.Text(), server_default="", nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("image", sa.Text(), server_default="", nullable=False),
        sa.UniqueConstraint("link", name="uq_news_link"),
    )
    op.create_index("ix_news_published", "news", ["published"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_news_published", table_name="news")
    op.drop_table("news")
