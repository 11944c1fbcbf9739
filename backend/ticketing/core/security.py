"""
Password hashing (bcrypt) and bearer-token identity (python-jose JWT).

The token is self-contained: `sub`, `email` and `role` are read straight from
the claims, so authorizing a request costs no database round-trip.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ticketing.core.config import get_settings
from ticketing.core.exceptions import AuthenticationError, PermissionDeniedError

settings = get_settings()
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    id: int
    email: str
    role: str


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash or an over-long password
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_token_for_user(user) -> str:
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role}
    )


def decode_access_token(token: str) -> Identity:
    """Verify signature and expiry; raise PermissionDeniedError on any failure."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return Identity(
            id=int(claims["sub"]),
            email=claims.get("email", ""),
            role=claims.get("role", "user"),
        )
    except (JWTError, KeyError, TypeError, ValueError):
        raise PermissionDeniedError("Invalid or expired token.")


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access denied. No token provided.")
    return decode_access_token(credentials.credentials)


async def get_current_user_id(identity: Identity = Depends(get_current_identity)) -> int:
    return identity.id
