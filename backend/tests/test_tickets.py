"""
Tests for ticket purchase and ticket views, including concurrency scenarios.
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from conftest import available_tickets, identity_of, make_event
from ticketing.core.exceptions import (
    EventUnavailableError,
    InsufficientCapacityError,
    InvalidInputError,
    TicketNotFoundError,
)
from ticketing.core.security import Identity
from ticketing.models.event import Event
from ticketing.models.ticket import Ticket
from ticketing.services import ticket_service


async def ticket_count(session_factory, event_id: int) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(func.count(Ticket.id)).where(Ticket.event_id == event_id)
        )
        return result.scalar()


# --- HTTP surface -----------------------------------------------------------


@pytest.mark.asyncio
async def test_purchase_tickets(client: AsyncClient, auth_headers, test_event, session_factory):
    """100 tickets at 50.00, buy 5: total 250.00 and 95 left."""
    event_id = test_event.id
    response = await client.post(
        "/api/v1/tickets/",
        json={"event_id": event_id, "quantity": 5},
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["event_id"] == event_id
    assert data["quantity"] == 5
    assert Decimal(data["total_price"]) == Decimal("250.00")
    assert isinstance(data["total_price"], str)  # exact decimal, not a float
    assert "ticket_id" in data

    event_response = await client.get(f"/api/v1/events/{event_id}")
    assert event_response.json()["available_tickets"] == 95
    assert await available_tickets(session_factory, event_id) == 95


@pytest.mark.asyncio
async def test_purchase_unauthenticated(client: AsyncClient, test_event):
    response = await client.post(
        "/api/v1/tickets/",
        json={"event_id": test_event.id, "quantity": 1},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Access denied. No token provided."


@pytest.mark.asyncio
async def test_purchase_with_invalid_token(client: AsyncClient, test_event):
    response = await client.post(
        "/api/v1/tickets/",
        json={"event_id": test_event.id, "quantity": 1},
        headers={"Authorization": "Bearer not-a-real-token"},
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Invalid or expired token."


@pytest.mark.asyncio
async def test_purchase_more_than_available(
    client: AsyncClient, auth_headers, small_event, session_factory
):
    """10 left, ask for 15: capacity error naming the real count, nothing changes."""
    event_id = small_event.id
    response = await client.post(
        "/api/v1/tickets/",
        json={"event_id": event_id, "quantity": 15},
        headers=auth_headers,
    )
    assert response.status_code == 400
    body = response.json()
    assert body["detail"] == "Only 10 tickets available"
    assert body["available_tickets"] == 10

    assert await available_tickets(session_factory, event_id) == 10
    assert await ticket_count(session_factory, event_id) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"event_id": 1, "quantity": 0},
        {"event_id": 1, "quantity": -3},
        {"event_id": 1, "quantity": 2.5},
        {"event_id": 1, "quantity": "two"},
        {"event_id": 1},
        {"quantity": 1},
        {},
        {"event_id": 1, "quantity": 2**31},
        {"event_id": 1, "quantity": 2**64},
        {"event_id": 2**64, "quantity": 1},
        [1, 2],
        "x",
        42,
        None,
    ],
)
async def test_purchase_invalid_input(client: AsyncClient, auth_headers, payload):
    response = await client.post("/api/v1/tickets/", json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Event ID and valid quantity are required"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"{bad json", b"", b"\xff\xfe"])
async def test_purchase_unparseable_body(client: AsyncClient, auth_headers, body):
    response = await client.post(
        "/api/v1/tickets/",
        content=body,
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Event ID and valid quantity are required"


@pytest.mark.asyncio
async def test_purchase_largest_quantity_is_a_capacity_error(
    client: AsyncClient, auth_headers, small_event, session_factory
):
    event_id = small_event.id
    response = await client.post(
        "/api/v1/tickets/",
        json={"event_id": event_id, "quantity": 2**31 - 1},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Only 10 tickets available"
    assert await available_tickets(session_factory, event_id) == 10


@pytest.mark.asyncio
async def test_out_of_range_ids_are_not_found(client: AsyncClient, auth_headers):
    ticket = await client.get(f"/api/v1/tickets/{2**40}", headers=auth_headers)
    assert ticket.status_code == 404
    assert ticket.json() == {"detail": "Ticket not found"}

    event = await client.get(f"/api/v1/events/{2**40}")
    assert event.status_code == 404


@pytest.mark.asyncio
async def test_purchase_nonexistent_event(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/tickets/",
        json={"event_id": 99999, "quantity": 1},
        headers=auth_headers,
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Event not found or not available"


@pytest.mark.asyncio
async def test_purchase_cancelled_event_looks_like_missing(
    client: AsyncClient, auth_headers, cancelled_event
):
    response = await client.post(
        "/api/v1/tickets/",
        json={"event_id": cancelled_event.id, "quantity": 1},
        headers=auth_headers,
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Event not found or not available"


@pytest.mark.asyncio
async def test_any_role_can_purchase(client: AsyncClient, admin_headers, organizer_headers, test_event):
    event_id = test_event.id
    for headers in (admin_headers, organizer_headers):
        response = await client.post(
            "/api/v1/tickets/",
            json={"event_id": event_id, "quantity": 1},
            headers=headers,
        )
        assert response.status_code == 201


@pytest.mark.asyncio
async def test_list_user_tickets_newest_first(
    client: AsyncClient, auth_headers, test_event, small_event, other_headers
):
    first_event, second_event = test_event.id, small_event.id
    await client.post(
        "/api/v1/tickets/", json={"event_id": first_event, "quantity": 1}, headers=auth_headers
    )
    await client.post(
        "/api/v1/tickets/", json={"event_id": second_event, "quantity": 2}, headers=auth_headers
    )
    # Someone else's purchase must not show up
    await client.post(
        "/api/v1/tickets/", json={"event_id": first_event, "quantity": 3}, headers=other_headers
    )

    response = await client.get("/api/v1/tickets/user", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert [t["event_id"] for t in data] == [second_event, first_event]
    assert data[0]["event_title"] == "Small Club Night"
    assert data[0]["category_name"] == "Concerts"
    assert data[0]["event_status"] == "active"
    assert data[0]["event_location"] == "Test Venue"
    assert Decimal(data[0]["total_price"]) == Decimal("100.00")


@pytest.mark.asyncio
async def test_list_user_tickets_empty(client: AsyncClient, auth_headers):
    response = await client.get("/api/v1/tickets/user", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_get_own_ticket(client: AsyncClient, auth_headers, test_event):
    bought = await client.post(
        "/api/v1/tickets/", json={"event_id": test_event.id, "quantity": 2}, headers=auth_headers
    )
    ticket_id = bought.json()["ticket_id"]

    response = await client.get(f"/api/v1/tickets/{ticket_id}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == ticket_id
    assert data["quantity"] == 2
    assert data["status"] == "confirmed"
    assert data["event_title"] == "Test Concert"


@pytest.mark.asyncio
async def test_foreign_ticket_is_indistinguishable_from_missing(
    client: AsyncClient, auth_headers, other_headers, test_event
):
    bought = await client.post(
        "/api/v1/tickets/", json={"event_id": test_event.id, "quantity": 1}, headers=auth_headers
    )
    ticket_id = bought.json()["ticket_id"]

    foreign = await client.get(f"/api/v1/tickets/{ticket_id}", headers=other_headers)
    missing = await client.get("/api/v1/tickets/99999", headers=other_headers)

    assert foreign.status_code == missing.status_code == 404
    assert foreign.json() == missing.json() == {"detail": "Ticket not found"}


# --- Reservation service ----------------------------------------------------


@pytest.mark.asyncio
async def test_invalid_quantity_never_touches_store():
    db = AsyncMock()
    identity = Identity(id=1, email="a@example.com", role="user")

    with pytest.raises(InvalidInputError) as exc_info:
        await ticket_service.purchase(db, identity, 1, 0)

    assert exc_info.value.message == "Event ID and valid quantity are required"
    db.execute.assert_not_called()
    db.commit.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("event_id,quantity", [(1, 2**31), (2**31, 1), (True, 1)])
async def test_out_of_range_input_never_touches_store(event_id, quantity):
    db = AsyncMock()
    identity = Identity(id=1, email="a@example.com", role="user")

    with pytest.raises(InvalidInputError):
        await ticket_service.purchase(db, identity, event_id, quantity)

    db.execute.assert_not_called()


@pytest.mark.asyncio
async def test_price_is_frozen_at_purchase(session_factory, test_user, test_event):
    identity = identity_of(test_user)
    event_id = test_event.id

    async with session_factory() as session:
        ticket = await ticket_service.purchase(session, identity, event_id, 3)
        ticket_id = ticket.id
    assert ticket.total_price == Decimal("150.00")

    async with session_factory() as session:
        event = await session.get(Event, event_id)
        event.price = Decimal("80.00")
        await session.commit()

    async with session_factory() as session:
        detail = await ticket_service.get_by_id(session, ticket_id, identity)
    assert detail["total_price"] == Decimal("150.00")


@pytest.mark.asyncio
async def test_failed_insert_rolls_back_decrement(
    session_factory, test_user, test_event, monkeypatch
):
    """A store error after the decrement leaves no ticket and the counter intact."""
    identity = identity_of(test_user)
    event_id = test_event.id

    async with session_factory() as session:
        monkeypatch.setattr(session, "flush", AsyncMock(side_effect=RuntimeError("disk full")))
        with pytest.raises(RuntimeError):
            await ticket_service.purchase(session, identity, event_id, 4)

    assert await available_tickets(session_factory, event_id) == 100
    assert await ticket_count(session_factory, event_id) == 0


@pytest.mark.asyncio
async def test_service_rejects_inactive_event(session_factory, test_user, cancelled_event):
    async with session_factory() as session:
        with pytest.raises(EventUnavailableError):
            await ticket_service.purchase(session, identity_of(test_user), cancelled_event.id, 1)


@pytest.mark.asyncio
async def test_get_by_id_checks_ownership(session_factory, test_user, other_user, test_event):
    async with session_factory() as session:
        ticket = await ticket_service.purchase(session, identity_of(test_user), test_event.id, 1)

    async with session_factory() as session:
        with pytest.raises(TicketNotFoundError):
            await ticket_service.get_by_id(session, ticket.id, identity_of(other_user))


@pytest.mark.asyncio
async def test_concurrent_purchases_both_fit(
    session_factory, db_session, category, organizer, test_user, other_user
):
    """50 tickets; 10 and 15 bought at the same time from separate workers: 25 left."""
    event = await make_event(db_session, category, organizer, available_tickets=50)
    event_id = event.id

    async def buy(user, quantity):
        async with session_factory() as session:
            return await ticket_service.purchase(session, identity_of(user), event_id, quantity)

    first, second = await asyncio.gather(buy(test_user, 10), buy(other_user, 15))

    assert {first.quantity, second.quantity} == {10, 15}
    assert await available_tickets(session_factory, event_id) == 25
    assert await ticket_count(session_factory, event_id) == 2


@pytest.mark.asyncio
async def test_concurrent_purchases_never_oversell(
    session_factory, db_session, category, organizer, test_user
):
    """20 workers racing for 5 tickets: exactly 5 succeed, counter ends at 0."""
    capacity = 5
    event = await make_event(db_session, category, organizer, available_tickets=capacity)
    event_id = event.id
    identity = identity_of(test_user)

    async def buy():
        async with session_factory() as session:
            try:
                await ticket_service.purchase(session, identity, event_id, 1)
                return True
            except InsufficientCapacityError as e:
                assert e.available_tickets >= 0
                return False

    results = await asyncio.gather(*(buy() for _ in range(20)))

    assert sum(results) == capacity
    assert await available_tickets(session_factory, event_id) == 0
    async with session_factory() as session:
        sold = await session.execute(
            select(func.sum(Ticket.quantity)).where(Ticket.event_id == event_id)
        )
        assert sold.scalar() == capacity
