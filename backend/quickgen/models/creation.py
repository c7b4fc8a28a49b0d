"""
QuickGen Backend: Creation SQLAlchemy Model
===========================================

What:  ORM model for the `creations` table: one row per successful AI
       operation (generated text, or a URL to a hosted image).
Who:   Written by CreationService; read by the user creations endpoints;
       tracked by Alembic.

Lifecycle:
    Inserted once, right after the vendor call succeeds. Never updated and
    never deleted by this service (retention is handled elsewhere). Failed
    operations leave no row behind.

Indexes:
    idx_creations_user_created   → "my creations, newest first"
    idx_creations_publish        → community feed of published images
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from quickgen.database import Base


class CreationType(str, enum.Enum):
    """
    Type tag stored in `creations.type`.

    Background and object removal are recorded as IMAGE, the same as
    generated images.
    """

    ARTICLE = "article"
    BLOG_TITLE = "blog-title"
    IMAGE = "image"
    RESUME_REVIEW = "resume-review"


class Creation(Base):
    """A persisted outcome of one generation or transformation."""

    __tablename__ = "creations"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Opaque identity-service user id (e.g. Clerk "user_...")
    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Owner identity from the identity service",
    )

    # The effective prompt; fixed descriptions for file-based operations
    prompt: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Input prompt or description of the operation",
    )

    # Generated text, or a hosted asset URL for image operations
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Generated text or URL of the stored asset",
    )

    type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="article, blog-title, image, resume-review",
    )

    # Only meaningful for generated images; everything else stays False
    publish: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
        comment="Whether the image is shown in the public feed",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When this creation was recorded (UTC)",
    )

    __table_args__ = (
        Index("idx_creations_user_created", user_id, created_at.desc()),
        Index("idx_creations_publish", publish),
        CheckConstraint(
            "type IN ('article', 'blog-title', 'image', 'resume-review')",
            name="ck_creations_type",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Creation(id={self.id}, user_id='{self.user_id}', "
            f"type='{self.type}', publish={self.publish})>"
        )
