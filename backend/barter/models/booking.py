"""
Booking model: a claim on an item by a user other than its owner.

Key design decisions:
- Partial unique index on item_id WHERE is_active: the database, not the
  application, guarantees at most one active booking per item
- Cancellation flips is_active and stamps cancelled_at; rows are never
  deleted so both parties keep their history
- Booker FK has no cascade: a user with bookings cannot be removed
"""

from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from barter.db.base import Base, utcnow


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    booker_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    booked_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_active = Column(Boolean, nullable=False, default=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    item = relationship("Item", back_populates="bookings")
    booker = relationship("User", back_populates="bookings")

    __table_args__ = (
        # One active booking per item
        Index(
            "uq_bookings_item_active",
            "item_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, item={self.item_id}, booker={self.booker_id}, active={self.is_active})>"
