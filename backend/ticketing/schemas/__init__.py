from ticketing.schemas.user import (
    UserCreate, UserLogin, UserResponse, AuthResponse, ProfileUpdate, RoleUpdate,
)
from ticketing.schemas.category import CategoryCreate, CategoryResponse
from ticketing.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from ticketing.schemas.ticket import TicketPurchase, TicketPurchaseResponse, TicketDetail

__all__ = [
    "UserCreate", "UserLogin", "UserResponse", "AuthResponse", "ProfileUpdate", "RoleUpdate",
    "CategoryCreate", "CategoryResponse",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse",
    "TicketPurchase", "TicketPurchaseResponse", "TicketDetail",
]
