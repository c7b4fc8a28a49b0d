"""Create creations table

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Creates `creations`, one row per successful AI operation.
How:   Integer identity key, TIMESTAMP WITH TIME ZONE, two indexes for the
       user history and the published feed.

Rollback: downgrade() drops the table (all creations are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "creations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "user_id",
            sa.String(255),
            nullable=False,
            comment="Owner identity from the identity service",
        ),
        sa.Column(
            "prompt",
            sa.Text(),
            nullable=False,
            comment="Input prompt or description of the operation",
        ),
        sa.Column(
            "content",
            sa.Text(),
            nullable=False,
            comment="Generated text or URL of the stored asset",
        ),
        sa.Column(
            "type",
            sa.String(32),
            nullable=False,
            comment="article, blog-title, image, resume-review",
        ),
        sa.Column(
            "publish",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
            comment="Whether the image is shown in the public feed",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this creation was recorded (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "type IN ('article', 'blog-title', 'image', 'resume-review')",
            name="ck_creations_type",
        ),
    )

    # "My creations, newest first"
    op.create_index(
        "idx_creations_user_created",
        "creations",
        ["user_id", sa.text("created_at DESC")],
    )
    # Public feed
    op.create_index("idx_creations_publish", "creations", ["publish"])


def downgrade() -> None:
    op.drop_index("idx_creations_publish", table_name="creations")
    op.drop_index("idx_creations_user_created", table_name="creations")
    op.drop_table("creations")
