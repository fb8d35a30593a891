"""
Item model: a listing offered for barter.

Key design decisions:
- `is_approved` gates visibility; any non-admin edit resets it
- "bookable" is derived (approved AND no active booking), never stored,
  so there is no denormalized flag to drift out of sync with bookings
- Composite index serves the public listing: approved items, newest first
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship

from barter.db.base import Base, TimestampMixin


class Item(Base, TimestampMixin):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    description = Column(String(500), nullable=False)
    request = Column(String(500), nullable=False)
    is_approved = Column(Boolean, nullable=False, default=False)

    # Relationships
    owner = relationship("User", back_populates="items")
    category = relationship("Category", back_populates="items")
    media = relationship("Media", back_populates="item", order_by="Media.uploaded_at")
    bookings = relationship("Booking", back_populates="item")

    __table_args__ = (
        Index("ix_items_approved_created", "is_approved", "created_at"),
    )

    @property
    def is_booked(self) -> bool:
        """True while the item has an active booking. Needs `bookings` loaded."""
        return any(b.is_active for b in self.bookings)

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, name={self.name}, approved={self.is_approved})>"
