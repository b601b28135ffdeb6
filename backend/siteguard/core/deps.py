"""FastAPI dependencies for caller identity.

A request is authenticated by, in order: an ``X-API-Key`` header, a bearer
JWT, or a JWT in the ``token`` cookie. The resolved ``User`` carries the
id and role the sync services need.
"""

import logging
import uuid
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from siteguard.core.security import decode_access_token
from siteguard.database import get_db
from siteguard.models.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)
api_key_scheme = APIKeyHeader(name="X-API-Key", auto_error=False)

TOKEN_COOKIE = "token"


async def _user_from_api_key(db: AsyncSession, api_key: str) -> User | None:
    result = await db.execute(
        select(User).where(
            User.api_key == api_key,
            User.key_enabled == True,  # noqa: E712
            User.is_active == True,  # noqa: E712
        )
    )
    return result.scalar_one_or_none()


async def _user_from_token(db: AsyncSession, token: str) -> User | None:
    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please log in again.",
        )
    except (jwt.PyJWTError, KeyError, ValueError):
        return None

    result = await db.execute(
        select(User).where(
            User.id == user_id,
            User.is_active == True,  # noqa: E712
        )
    )
    return result.scalar_one_or_none()


async def get_current_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    api_key: Annotated[str | None, Depends(api_key_scheme)],
) -> User:
    """Resolve the caller from API key, bearer token, or session cookie."""
    user = None
    auth_method = None

    if api_key:
        user = await _user_from_api_key(db, api_key)
        auth_method = "api_key"

    if user is None and credentials is not None:
        user = await _user_from_token(db, credentials.credentials)
        auth_method = "jwt"

    cookie_token = request.cookies.get(TOKEN_COOKIE)
    if user is None and cookie_token:
        user = await _user_from_token(db, cookie_token)
        auth_method = "cookie"

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Provide a valid JWT token, API key, or session cookie.",
        )

    request.state.current_user = user
    request.state.auth_method = auth_method
    return user
