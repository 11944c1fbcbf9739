"""
Ticket model: one purchase of `quantity` admission units for an event.

`total_price` is frozen at purchase time from the price read in the same
statement that decremented the event's counter. Later price changes on the
event never touch existing rows.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import relationship

from ticketing.db.base import Base

TICKET_STATUSES = ("confirmed", "cancelled", "used")


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="confirmed")
    purchase_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("User", back_populates="tickets")
    event = relationship("Event", back_populates="tickets")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_ticket_quantity_positive"),
        CheckConstraint("total_price >= 0", name="check_ticket_total_non_negative"),
        CheckConstraint(
            "status IN ('confirmed', 'cancelled', 'used')", name="check_ticket_status"
        ),
        # "My tickets" query: WHERE user_id = ? ORDER BY purchase_date DESC
        Index("ix_tickets_user_purchase_date", "user_id", "purchase_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Ticket(id={self.id}, user={self.user_id}, event={self.event_id}, "
            f"quantity={self.quantity}, status={self.status})>"
        )
