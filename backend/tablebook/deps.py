from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .domain.services import Identity
from .infrastructure.locks import SlotLockRegistry
from .models import User
from .utils.auth import decode_access_token


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.database.session() as session:
        yield session


def get_slot_locks(request: Request) -> SlotLockRegistry:
    return request.app.state.slot_locks


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_identity(
    authorization: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> Identity:
    if authorization is None:
        raise _unauthorized("Authorization header required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Bearer token required")

    settings = get_settings()
    try:
        claimed = decode_access_token(
            token.strip(),
            secret=settings.auth_secret,
            algorithms=[settings.auth_algorithm],
        )
    except ValueError as exc:
        raise _unauthorized("Invalid token") from exc

    try:
        async with session.begin():
            exists = await session.scalar(select(User.id).where(User.id == claimed.user_id))
    except ProgrammingError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="user store unavailable",
        ) from exc
    if exists is None:
        raise _unauthorized("Unknown user")
    return claimed
