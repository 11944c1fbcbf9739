"""
Ticket endpoints: purchase and the caller's own tickets.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.permissions import TICKETS_PURCHASE, require_capability
from ticketing.core.security import Identity, get_current_identity
from ticketing.db.session import get_db
from ticketing.schemas.ticket import TicketDetail, TicketPurchase, TicketPurchaseResponse
from ticketing.services import ticket_service
from ticketing.services.cache_service import invalidate_event_cache

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post(
    "/",
    response_model=TicketPurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    # The body is parsed by hand so every malformed request gets the same 400
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": TicketPurchase.model_json_schema()}},
        }
    },
)
async def purchase_tickets(
    request: Request,
    identity: Identity = Depends(require_capability(TICKETS_PURCHASE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Buy `quantity` tickets for `event_id`.

    The capacity check and decrement are a single conditional update, so
    concurrent purchases can never oversell. A capacity failure reports the
    remaining count in `available_tickets`.
    """
    try:
        payload = await request.json()
    except ValueError:
        # Empty or malformed body
        payload = None
    event_id, quantity = ticket_service.parse_purchase_request(payload)
    ticket = await ticket_service.purchase(db, identity, event_id, quantity)
    # Listings show available_tickets
    await invalidate_event_cache()
    return TicketPurchaseResponse(
        ticket_id=ticket.id,
        event_id=ticket.event_id,
        quantity=ticket.quantity,
        total_price=ticket.total_price,
    )


@router.get("/user", response_model=list[TicketDetail])
async def list_my_tickets(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """All tickets of the authenticated user, newest purchase first."""
    return await ticket_service.list_for_identity(db, identity)


@router.get("/{ticket_id}", response_model=TicketDetail)
async def get_ticket(
    ticket_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """A ticket owned by the caller; 404 otherwise."""
    return await ticket_service.get_by_id(db, ticket_id, identity)
