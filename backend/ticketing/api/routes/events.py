"""
Event endpoints with Redis caching on list operations.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.config import get_settings
from ticketing.core.logging import get_logger
from ticketing.core.permissions import EVENTS_MANAGE, require_capability
from ticketing.core.security import Identity
from ticketing.db.session import get_db
from ticketing.schemas.event import (
    EventCreate,
    EventListResponse,
    EventResponse,
    EventUpdate,
    Pagination,
)
from ticketing.schemas.user import MessageResponse
from ticketing.services import event_service
from ticketing.services.cache_service import (
    get_cached_events,
    invalidate_event_cache,
    set_cached_events,
)

settings = get_settings()
logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    identity: Identity = Depends(require_capability(EVENTS_MANAGE)),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event. Requires organizer or admin role."""
    event = await event_service.create_event(db, event_data, identity)
    # Commit first so a concurrent listing cannot re-cache the old rows
    await db.commit()
    await invalidate_event_cache()
    return EventResponse.from_event(event)


@router.get("/", response_model=EventListResponse)
async def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.EVENTS_PAGE_SIZE, ge=1, le=settings.EVENTS_MAX_PAGE_SIZE),
    category: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    featured: bool = Query(False),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    """
    List active events with pagination and filters.
    Results are cached in Redis; the cache is cleared whenever an event
    changes or tickets are sold.
    """
    params = {
        "page": page,
        "limit": limit,
        "category": category,
        "search": search,
        "featured": featured,
        "start": start_date.isoformat() if start_date else None,
        "end": end_date.isoformat() if end_date else None,
    }

    cached = await get_cached_events(params)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return EventListResponse(**cached)

    events, total = await event_service.list_events(
        db,
        page=page,
        limit=limit,
        category=category,
        search=search,
        featured=featured,
        start_date=start_date,
        end_date=end_date,
    )

    response = EventListResponse(
        events=[EventResponse.from_event(e) for e in events],
        pagination=Pagination(
            current_page=page,
            total_pages=event_service.total_pages(total, limit),
            total_items=total,
            items_per_page=limit,
        ),
        cached=False,
    )

    await set_cached_events(params, response.model_dump(mode="json"))
    return response


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(event_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single event by ID. Not cached (needs real-time ticket counts)."""
    event = await event_service.get_event(db, event_id)
    return EventResponse.from_event(event)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: int,
    event_data: EventUpdate,
    identity: Identity = Depends(require_capability(EVENTS_MANAGE)),
    db: AsyncSession = Depends(get_db),
):
    """Update an event you organize (admins: any event). Capacity is not editable."""
    event = await event_service.update_event(db, event_id, event_data, identity)
    await db.commit()
    await invalidate_event_cache()
    return EventResponse.from_event(event)


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: int,
    identity: Identity = Depends(require_capability(EVENTS_MANAGE)),
    db: AsyncSession = Depends(get_db),
):
    await event_service.delete_event(db, event_id, identity)
    await db.commit()
    await invalidate_event_cache()
    return MessageResponse(message="Event deleted successfully")
