"""Image storage models."""

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Table, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import JSON


Base = declarative_base()


def now_utc_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Users who liked an image. Populated by clients of the data model only;
# the API exposes the set read-only.
image_likes = Table(
    "image_likes",
    Base.metadata,
    Column("image_id", UUID(as_uuid=True), ForeignKey("images.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Image(Base):
    """An image pin owned by exactly one user.

    ``image_url`` points either at a third-party host or at this server's
    ``/uploads`` directory. ``storage_key`` is the stored filename of an
    upload and NULL for remote URLs; only rows carrying one own a file on
    disk. ``search_text`` is a denormalized lowercase document of title,
    description and tags kept in sync at creation time and used by text
    search.
    """

    __tablename__ = "images"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    image_url = Column(Text, nullable=False)
    storage_key = Column(String(255), nullable=True)
    title = Column(String(100), nullable=False, default="")
    description = Column(String(500), nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    search_text = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=now_utc_naive, index=True)

    owner = relationship("User", lazy="joined")
    liked_by = relationship("User", secondary=image_likes, lazy="selectin")

    __table_args__ = (
        Index("ix_images_user_created", "user_id", "created_at"),
    )

    @property
    def like_count(self) -> int:
        return len(self.liked_by or [])

    def __repr__(self) -> str:
        return f"<Image(id={self.id}, user_id={self.user_id}, url={self.image_url})>"
