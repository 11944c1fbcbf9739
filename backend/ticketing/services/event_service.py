"""
Event service handling catalog CRUD.

None of these functions write `available_tickets` after creation; the
purchase statement in ticket_service is its only writer.
"""

import math
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from ticketing.core.exceptions import InvalidInputError, NotFoundError, PermissionDeniedError
from ticketing.core.logging import get_logger
from ticketing.core.permissions import EVENTS_MANAGE_ANY, has_capability
from ticketing.core.security import Identity
from ticketing.db.base import MAX_COLUMN_INT
from ticketing.models.category import Category
from ticketing.models.event import Event
from ticketing.models.ticket import Ticket
from ticketing.schemas.event import EventCreate, EventUpdate

logger = get_logger(__name__)


def _with_relations(query):
    return query.options(joinedload(Event.category), joinedload(Event.organizer))


async def _ensure_category(db: AsyncSession, category_id: int) -> None:
    if await db.get(Category, category_id) is None:
        raise InvalidInputError(f"Category {category_id} does not exist")


async def create_event(db: AsyncSession, event_data: EventCreate, organizer: Identity) -> Event:
    """Create a new active event with its full ticket allocation."""
    await _ensure_category(db, event_data.category_id)

    event = Event(
        title=event_data.title,
        description=event_data.description,
        location=event_data.location,
        event_date=event_data.event_date,
        price=event_data.price,
        available_tickets=event_data.available_tickets,
        category_id=event_data.category_id,
        is_featured=event_data.is_featured,
        status="active",
        organizer_id=organizer.id,
    )
    db.add(event)
    await db.flush()

    logger.info(
        "event_created",
        event_id=event.id,
        title=event.title,
        tickets=event.available_tickets,
        organizer_id=organizer.id,
    )
    return await get_event(db, event.id)


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID, any status, always re-read from the database."""
    if not 1 <= event_id <= MAX_COLUMN_INT:
        raise NotFoundError("Event not found")
    result = await db.execute(
        _with_relations(select(Event))
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()

    if not event:
        raise NotFoundError("Event not found")
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    category: Optional[int] = None,
    search: Optional[str] = None,
    featured: bool = False,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> tuple[list[Event], int]:
    """
    List active events with filters and pagination, soonest first.
    Uses the ix_events_status_date index for the status filter and ordering.
    """
    query = select(Event).where(Event.status == "active")

    if category is not None:
        query = query.where(Event.category_id == category)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Event.title.ilike(pattern), Event.description.ilike(pattern)))
    if featured:
        query = query.where(Event.is_featured.is_(True))
    if start_date is not None:
        query = query.where(Event.event_date >= start_date)
    if end_date is not None:
        query = query.where(Event.event_date <= end_date)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        _with_relations(query)
        .order_by(Event.event_date.asc(), Event.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().unique().all())

    return events, total


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def _ensure_can_manage(event: Event, identity: Identity) -> None:
    if event.organizer_id != identity.id and not has_capability(identity.role, EVENTS_MANAGE_ANY):
        raise PermissionDeniedError("You can only manage events you organize")


async def update_event(
    db: AsyncSession,
    event_id: int,
    event_data: EventUpdate,
    identity: Identity,
) -> Event:
    """Partial update of descriptive fields, price, category, featured flag and status."""
    event = await get_event(db, event_id)
    _ensure_can_manage(event, identity)

    changes = event_data.model_dump(exclude_unset=True)
    if changes.get("category_id") is not None:
        await _ensure_category(db, changes["category_id"])

    for field, value in changes.items():
        if value is None:
            continue
        setattr(event, field, value)
    await db.flush()

    logger.info("event_updated", event_id=event_id, fields=sorted(changes), by=identity.id)
    return await get_event(db, event_id)


async def delete_event(db: AsyncSession, event_id: int, identity: Identity) -> None:
    """Delete an event together with its tickets."""
    event = await get_event(db, event_id)
    _ensure_can_manage(event, identity)

    await db.execute(delete(Ticket).where(Ticket.event_id == event_id))
    await db.execute(delete(Event).where(Event.id == event.id))

    logger.info("event_deleted", event_id=event_id, by=identity.id)
