"""
Event model with ticket inventory tracking.

Key design decisions:
- `available_tickets` is the only capacity counter; it is decremented in place
  by the purchase statement and never recomputed from the tickets table
- CHECK constraint keeps the counter non-negative even if application code is wrong
- Index on (status, event_date) serves the public listing (active events by date)
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ticketing.db.base import Base, TimestampMixin

EVENT_STATUSES = ("active", "cancelled", "completed")


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(255), nullable=False)
    event_date = Column(DateTime(timezone=True), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    available_tickets = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="active")
    is_featured = Column(Boolean, nullable=False, default=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    category = relationship("Category", back_populates="events")
    organizer = relationship("User", back_populates="events")
    tickets = relationship("Ticket", back_populates="event")

    __table_args__ = (
        CheckConstraint("available_tickets >= 0", name="check_available_tickets_non_negative"),
        CheckConstraint("price >= 0", name="check_event_price_non_negative"),
        CheckConstraint(
            "status IN ('active', 'cancelled', 'completed')", name="check_event_status"
        ),
        Index("ix_events_status_date", "status", "event_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, title={self.title}, "
            f"available={self.available_tickets}, status={self.status})>"
        )
