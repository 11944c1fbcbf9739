"""
User account service: profiles and admin account management.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import AuthenticationError, InvalidInputError, NotFoundError
from ticketing.core.logging import get_logger
from ticketing.core.security import hash_password, verify_password
from ticketing.models.user import ROLES, User
from ticketing.schemas.user import ProfileUpdate

logger = get_logger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


async def update_profile(db: AsyncSession, user_id: int, data: ProfileUpdate) -> User:
    """
    Update names and phone; optionally rotate the password.
    A new password is only accepted together with the correct current one.
    """
    if not data.first_name or not data.last_name:
        raise InvalidInputError("First name and last name are required")

    user = await get_user(db, user_id)

    if data.new_password:
        if not data.current_password:
            raise InvalidInputError("Current password is required to set a new password")
        if not verify_password(data.current_password, user.hashed_password):
            logger.warning("password_change_rejected", user_id=user_id)
            raise AuthenticationError("Current password is incorrect")
        user.hashed_password = hash_password(data.new_password)
        logger.info("password_changed", user_id=user_id)

    user.first_name = data.first_name
    user.last_name = data.last_name
    user.phone = data.phone
    await db.flush()
    await db.refresh(user)

    logger.info("profile_updated", user_id=user_id)
    return user


async def set_role(db: AsyncSession, user_id: int, role: str | None) -> User:
    if role not in ROLES:
        raise InvalidInputError("Invalid role")

    user = await get_user(db, user_id)
    previous = user.role
    user.role = role
    await db.flush()
    await db.refresh(user)

    # Existing tokens keep the old role until they expire
    logger.info("user_role_changed", user_id=user_id, previous=previous, role=role)
    return user
