"""
Media attached to an item.

The partial unique index allows at most one primary row per item. The
upload path swaps primaries inside one transaction; the index is what
makes a concurrent swap fail loudly instead of leaving two primaries.
"""

from sqlalchemy import Column, Integer, String, BigInteger, Boolean, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from barter.db.base import Base, utcnow

VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".avi"})
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif"})
ALLOWED_EXTENSIONS = IMAGE_EXTENSIONS | VIDEO_EXTENSIONS


class Media(Base):
    __tablename__ = "media"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    content_type = Column(String(100), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    media_type = Column(String(20), nullable=False)  # Image, Video
    is_primary = Column(Boolean, nullable=False, default=False)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    item = relationship("Item", back_populates="media")

    __table_args__ = (
        Index(
            "uq_media_item_primary",
            "item_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Media(id={self.id}, item={self.item_id}, primary={self.is_primary})>"
