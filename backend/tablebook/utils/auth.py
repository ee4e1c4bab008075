from datetime import datetime, timedelta, timezone
from typing import Sequence

import jwt
from jwt import InvalidTokenError

from ..domain.services import Identity
from ..models import UserRole

DEFAULT_TOKEN_TTL = timedelta(minutes=30)


def create_access_token(
    *,
    user_id: int,
    role: UserRole,
    secret: str,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role.value,
        "iat": issued_at,
        "exp": issued_at + (expires_delta or DEFAULT_TOKEN_TTL),
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def decode_access_token(token: str, *, secret: str, algorithms: Sequence[str]) -> Identity:
    """Verify a bearer token and return the identity it carries.

    Raises ValueError for bad signatures, expired tokens and malformed claims.
    """
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=list(algorithms),
            options={"require": ["sub", "exp"]},
        )
    except InvalidTokenError as exc:
        raise ValueError("invalid token") from exc

    try:
        user_id = int(claims["sub"])
        role = UserRole(claims.get("role"))
    except (TypeError, ValueError) as exc:
        raise ValueError("malformed token claims") from exc
    return Identity(user_id=user_id, role=role)
