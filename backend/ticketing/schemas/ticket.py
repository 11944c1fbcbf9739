"""
Pydantic schemas for ticket purchase and ticket views.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, StrictInt


class TicketPurchase(BaseModel):
    # Both optional here: absence and range are checked by the reservation
    # service so every malformed request gets the same 400 message.
    event_id: Optional[StrictInt] = None
    quantity: Optional[StrictInt] = None


class TicketPurchaseResponse(BaseModel):
    ticket_id: int
    event_id: int
    quantity: int
    # Exact frozen amount; serialized as a decimal string, e.g. "250.00"
    total_price: Decimal


class TicketDetail(BaseModel):
    id: int
    user_id: int
    event_id: int
    quantity: int
    total_price: Decimal
    status: str
    purchase_date: datetime
    event_title: str
    event_description: str
    event_location: str
    event_date: datetime
    event_status: str
    category_name: Optional[str]
