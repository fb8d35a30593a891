"""
User model: identity, role and points balance.

Key design decisions:
- Role is a closed enum stored by value ("Admin" / "User")
- CHECK constraint keeps the balance non-negative even if a debit path
  forgets its conditional WHERE clause
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Enum, CheckConstraint
from sqlalchemy.orm import relationship

from barter.db.base import Base, utcnow


class Role(str, enum.Enum):
    ADMIN = "Admin"
    USER = "User"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(20), unique=True, index=True, nullable=False)
    email = Column(String(50), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(50), nullable=False)
    address = Column(String(50), nullable=False)
    phone_number = Column(String(20), unique=True, nullable=False)
    role = Column(
        Enum(Role, name="user_role", values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=Role.USER,
    )
    points = Column(Integer, nullable=False, default=2)
    registered_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    items = relationship("Item", back_populates="owner")
    bookings = relationship("Booking", back_populates="booker")

    __table_args__ = (
        CheckConstraint("points >= 0", name="check_user_points_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
