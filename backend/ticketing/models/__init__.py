from ticketing.models.user import User
from ticketing.models.category import Category
from ticketing.models.event import Event
from ticketing.models.ticket import Ticket

__all__ = ["User", "Category", "Event", "Ticket"]
