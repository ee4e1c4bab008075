from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from typing import Optional

MAX_REQUEST_ID_LENGTH = 128

_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    """Generate a random request id."""
    return uuid.uuid4().hex


def resolve_request_id(incoming: Optional[str]) -> str:
    """Keep a caller-supplied id if it is short printable ASCII, else mint one."""
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isascii() and incoming.isprintable():
        return incoming
    return generate_request_id()


def set_request_id(request_id: str | None) -> Token[str | None]:
    """Bind a request id to the current context and return the reset token."""
    return _request_id_ctx.set(request_id)


def reset_request_id(token: Token[str | None]) -> None:
    _request_id_ctx.reset(token)


def get_request_id() -> Optional[str]:
    """Return current request id if set."""
    return _request_id_ctx.get()
