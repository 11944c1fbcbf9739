"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from ticketing.api.routes import auth, categories, events, tickets, users

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(events.router)
api_router.include_router(categories.router)
api_router.include_router(tickets.router)
api_router.include_router(users.router)
