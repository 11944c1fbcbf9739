"""
Authentication service handling user registration and login.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.models.user import User
from ticketing.schemas.user import UserCreate, UserLogin
from ticketing.core.exceptions import AuthenticationError, ConflictError, PermissionDeniedError
from ticketing.core.security import hash_password, verify_password, create_token_for_user
from ticketing.core.logging import get_logger

logger = get_logger(__name__)


async def register_user(db: AsyncSession, user_data: UserCreate) -> tuple[User, str]:
    """
    Register a new user with hashed password and the default `user` role.
    Raises 409 if the email already exists.
    """
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="email_exists", email=user_data.email)
        raise ConflictError("Email already registered")

    user = User(
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        phone=user_data.phone,
        role="user",
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email)
    return user, create_token_for_user(user)


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> tuple[User, str]:
    """
    Authenticate user and return it with a JWT access token.
    Raises 401 if credentials are invalid, 403 if the account is deactivated.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        raise PermissionDeniedError("Account is deactivated")

    token = create_token_for_user(user)
    logger.info("user_logged_in", user_id=user.id, role=user.role)
    return user, token


async def ensure_account(
    db: AsyncSession,
    email: str,
    password: str,
    role: str,
    first_name: str = "Admin",
    last_name: str = "User",
) -> tuple[User, bool]:
    """
    Create a privileged account if the email is free; otherwise promote the
    existing one to `role`. Returns the user and whether it was created.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user:
        user.role = role
        await db.flush()
        logger.info("account_promoted", user_id=user.id, role=role)
        return user, False

    user = User(
        email=email,
        hashed_password=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("account_created", user_id=user.id, role=role)
    return user, True
