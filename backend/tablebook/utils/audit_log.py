from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, Optional

from .request_id import get_request_id

if TYPE_CHECKING:
    from ..models import Reservation

AuditAction = Literal[
    "reservation.created",
    "reservation.cancelled",
]
AuditInitiator = Literal["customer", "owner"]

_audit_logger = logging.getLogger("tablebook.audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(_handler)
_audit_logger.propagate = False


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def audit_payload(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    reservation: "Reservation",
    actor_id: int,
    status_from: Optional[Any] = None,
) -> dict[str, Any]:
    """Flatten a reservation transition into the audit record fields."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "initiator": initiator,
        "request_id": get_request_id(),
        "actor_id": actor_id,
        "reservation_id": reservation.id,
        "restaurant_id": reservation.restaurant_id,
        "user_id": reservation.user_id,
        "date": reservation.date.isoformat() if reservation.date is not None else None,
        "time_slot": reservation.time_slot,
        "party_size": reservation.party_size,
        "total_price": reservation.total_price,
        "status_from": _plain(status_from),
        "status_to": _plain(reservation.status),
    }
    return {key: value for key, value in payload.items() if value is not None}


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    reservation: "Reservation",
    actor_id: int,
    status_from: Optional[Any] = None,
    message: Optional[str] = None,
) -> None:
    """Write one JSON line per reservation state change.

    Raises RuntimeError if the record cannot be written, so callers running
    inside a transaction roll the change back.
    """
    payload = audit_payload(
        action=action,
        initiator=initiator,
        reservation=reservation,
        actor_id=actor_id,
        status_from=status_from,
    )
    if message is not None:
        payload["message"] = message
    try:
        _audit_logger.info(json.dumps(payload, ensure_ascii=True, default=str))
    except Exception as exc:
        raise RuntimeError("failed to emit audit log") from exc
