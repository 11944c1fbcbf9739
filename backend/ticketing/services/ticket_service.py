"""
Ticket reservation service: concurrency-safe purchase against event capacity.

CONCURRENCY STRATEGY: Single Conditional Update
===============================================

Problem:
  Two buyers ask for the last 10 tickets at the same instant.
  Both read available_tickets=10, both insert a ticket, both decrement.
  Result: available_tickets=-10 and 20 tickets sold for 10 seats.

Solution:
  The availability check, the decrement and the price read are one statement:

    UPDATE events
       SET available_tickets = available_tickets - :quantity
     WHERE id = :event_id
       AND status = 'active'
       AND available_tickets >= :quantity
    RETURNING price

  The database evaluates the WHERE clause against the row it is about to
  write, under that row's write lock. A second purchase racing the first
  blocks on the lock, then re-evaluates the predicate against the committed
  value, so it either fits in what is left or matches zero rows.

  The ticket insert happens in the same transaction (`unit_of_work`): both
  become visible at commit or neither does.

  When the update matches nothing we read the row, purely to tell "no such /
  inactive event" apart from "not enough tickets" and to report the current
  count, then roll the unit back. That read never feeds a write.

  There is no retry loop: a purchase that loses the race for the last
  tickets gets a capacity error with the real remaining count, and the
  client decides whether to resubmit a smaller quantity.

  CHECK (available_tickets >= 0) on the table is the final safety net.
"""

import time
from decimal import Decimal
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import (
    DomainError,
    EventUnavailableError,
    InsufficientCapacityError,
    InvalidInputError,
    TicketNotFoundError,
)
from ticketing.core.logging import get_logger
from ticketing.core.metrics import purchase_latency, record_db_operation, record_purchase_attempt
from ticketing.core.security import Identity
from ticketing.db.base import MAX_COLUMN_INT
from ticketing.db.session import unit_of_work
from ticketing.models.category import Category
from ticketing.models.event import Event
from ticketing.models.ticket import Ticket
from ticketing.schemas.ticket import TicketPurchase

logger = get_logger(__name__)

INVALID_PURCHASE_MESSAGE = "Event ID and valid quantity are required"


def parse_purchase_request(payload: Any) -> tuple[Any, Any]:
    """Turn a decoded request body into (event_id, quantity) or raise InvalidInputError."""
    if not isinstance(payload, dict):
        raise InvalidInputError(INVALID_PURCHASE_MESSAGE)
    try:
        data = TicketPurchase.model_validate(payload)
    except ValidationError:
        raise InvalidInputError(INVALID_PURCHASE_MESSAGE)
    return data.event_id, data.quantity


def _is_positive_int(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 1 <= value <= MAX_COLUMN_INT


async def purchase(
    db: AsyncSession,
    identity: Identity,
    event_id: Any,
    quantity: Any,
) -> Ticket:
    """
    Reserve `quantity` tickets for `identity` on `event_id`.

    Raises InvalidInputError before touching the database when the input is
    malformed, EventUnavailableError when the event is missing or not active,
    InsufficientCapacityError when fewer than `quantity` tickets remain.
    Any other failure rolls the whole unit back and propagates.
    """
    if not _is_positive_int(event_id) or not _is_positive_int(quantity):
        record_purchase_attempt("invalid")
        raise InvalidInputError(INVALID_PURCHASE_MESSAGE)

    started = time.perf_counter()
    try:
        async with unit_of_work(db):
            reserved = await db.execute(
                update(Event)
                .where(
                    Event.id == event_id,
                    Event.status == "active",
                    Event.available_tickets >= quantity,
                )
                .values(available_tickets=Event.available_tickets - quantity)
                .returning(Event.price)
            )
            price = reserved.scalar_one_or_none()

            if price is None:
                # Raises; the unit rolls back the no-op update
                await _reject(db, event_id, quantity)

            ticket = Ticket(
                user_id=identity.id,
                event_id=event_id,
                quantity=quantity,
                total_price=Decimal(price) * quantity,
                status="confirmed",
            )
            db.add(ticket)
            await db.flush()
    except DomainError:
        raise
    except Exception as e:
        record_purchase_attempt("error")
        logger.error("ticket_purchase_failed", event_id=event_id, quantity=quantity, error=str(e))
        raise
    finally:
        purchase_latency.observe(time.perf_counter() - started)

    record_purchase_attempt("success", quantity)
    logger.info(
        "ticket_purchased",
        ticket_id=ticket.id,
        user_id=identity.id,
        event_id=event_id,
        quantity=quantity,
        total_price=str(ticket.total_price),
    )
    return ticket


async def _reject(db: AsyncSession, event_id: int, quantity: int) -> None:
    """Classify a purchase the conditional update refused, and raise."""
    result = await db.execute(
        select(Event.status, Event.available_tickets).where(Event.id == event_id)
    )
    row = result.one_or_none()
    record_db_operation("read")

    if row is None or row.status != "active":
        record_purchase_attempt("not_found")
        logger.warning("purchase_rejected_unavailable", event_id=event_id)
        raise EventUnavailableError()

    record_purchase_attempt("capacity")
    logger.warning(
        "purchase_rejected_capacity",
        event_id=event_id,
        requested=quantity,
        available=row.available_tickets,
    )
    raise InsufficientCapacityError(row.available_tickets)


def _ticket_detail_query():
    return (
        select(
            Ticket.id,
            Ticket.user_id,
            Ticket.event_id,
            Ticket.quantity,
            Ticket.total_price,
            Ticket.status,
            Ticket.purchase_date,
            Event.title.label("event_title"),
            Event.description.label("event_description"),
            Event.location.label("event_location"),
            Event.event_date,
            Event.status.label("event_status"),
            Category.name.label("category_name"),
        )
        .join(Event, Ticket.event_id == Event.id)
        .outerjoin(Category, Event.category_id == Category.id)
    )


async def list_for_identity(db: AsyncSession, identity: Identity) -> list[dict]:
    """All tickets owned by `identity`, newest purchase first."""
    result = await db.execute(
        _ticket_detail_query()
        .where(Ticket.user_id == identity.id)
        # id breaks ties between purchases in the same timestamp tick
        .order_by(Ticket.purchase_date.desc(), Ticket.id.desc())
    )
    record_db_operation("read")
    return [dict(row._mapping) for row in result.all()]


async def get_by_id(db: AsyncSession, ticket_id: int, identity: Identity) -> dict:
    """
    A single ticket, only if `identity` owns it.

    Ownership is part of the WHERE clause, so someone else's ticket and a
    nonexistent id take the same path and produce the same error.
    """
    if not _is_positive_int(ticket_id):
        raise TicketNotFoundError()
    result = await db.execute(
        _ticket_detail_query().where(Ticket.id == ticket_id, Ticket.user_id == identity.id)
    )
    record_db_operation("read")
    row = result.one_or_none()
    if row is None:
        raise TicketNotFoundError()
    return dict(row._mapping)
