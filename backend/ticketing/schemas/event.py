"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1, max_length=255)
    event_date: datetime
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    available_tickets: int = Field(..., gt=0, le=1_000_000)
    category_id: int
    is_featured: bool = False


class EventUpdate(BaseModel):
    """Partial update. The capacity counter is deliberately absent."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    event_date: Optional[datetime] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    category_id: Optional[int] = None
    is_featured: Optional[bool] = None
    status: Optional[Literal["active", "cancelled", "completed"]] = None

    model_config = {"extra": "forbid"}


class EventResponse(BaseModel):
    id: int
    title: str
    description: str
    location: str
    event_date: datetime
    price: float
    available_tickets: int
    status: str
    is_featured: bool
    category_id: int
    category_name: Optional[str] = None
    organizer_id: int
    organizer_first_name: Optional[str] = None
    organizer_last_name: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_event(cls, event) -> "EventResponse":
        """Build from an Event loaded with its category and organizer."""
        return cls(
            id=event.id,
            title=event.title,
            description=event.description,
            location=event.location,
            event_date=event.event_date,
            price=event.price,
            available_tickets=event.available_tickets,
            status=event.status,
            is_featured=event.is_featured,
            category_id=event.category_id,
            category_name=event.category.name if event.category else None,
            organizer_id=event.organizer_id,
            organizer_first_name=event.organizer.first_name if event.organizer else None,
            organizer_last_name=event.organizer.last_name if event.organizer else None,
            created_at=event.created_at,
        )


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class EventListResponse(BaseModel):
    events: list[EventResponse]
    pagination: Pagination
    cached: bool = False
