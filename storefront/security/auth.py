"""
Bearer token authentication

Verifies the JWT issued at sign-in and exposes the user to routes.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import HTTPException, Request

from ..core.config import get_settings
from ..models.user import User

logger = logging.getLogger(__name__)


def create_access_token(user: User, expires_minutes: int = 60) -> str:
    """Issue a signed token for a user"""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "id": user.id,
        "email": user.email,
        "isAdmin": user.is_admin,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class BearerAuth:
    """
    FastAPI dependency resolving the signed-in user.

    Raises 401 without a valid token.
    """

    async def __call__(self, request: Request) -> User:
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="No token provided")

        token = auth_header.split(" ", 1)[1]
        settings = get_settings()

        try:
            payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        except jwt.PyJWTError as e:
            logger.info(f"Error validating token: {e}")
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user_id = payload.get("id") or payload.get("sub")
        if not user_id:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user = User(
            id=str(user_id),
            email=payload.get("email"),
            is_admin=bool(payload.get("isAdmin", False)),
        )

        return user


# Dependency instance
require_user = BearerAuth()
