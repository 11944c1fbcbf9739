"""
User endpoints: own profile for everyone, account management for admins.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.permissions import USERS_MANAGE, require_capability
from ticketing.core.security import get_current_user_id
from ticketing.db.session import get_db
from ticketing.schemas.user import ProfileUpdate, RoleUpdate, UserResponse
from ticketing.services import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "/",
    response_model=list[UserResponse],
    dependencies=[Depends(require_capability(USERS_MANAGE))],
)
async def list_users(db: AsyncSession = Depends(get_db)):
    return await user_service.list_users(db)


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_user(db, user_id)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: ProfileUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_profile(db, user_id, data)


@router.put(
    "/{user_id}/role",
    response_model=UserResponse,
    dependencies=[Depends(require_capability(USERS_MANAGE))],
)
async def update_role(user_id: int, data: RoleUpdate, db: AsyncSession = Depends(get_db)):
    return await user_service.set_role(db, user_id, data.role)
