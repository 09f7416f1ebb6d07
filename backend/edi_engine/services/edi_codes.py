"""Fixed EDI enumerations and the small rules that hang off them."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

TRANSACTION_TYPES: tuple[str, ...] = ("204", "210", "214", "990", "997")
DIRECTIONS: tuple[str, ...] = ("INBOUND", "OUTBOUND")
MESSAGE_STATUSES: tuple[str, ...] = (
    "PENDING",
    "QUEUED",
    "SENT",
    "DELIVERED",
    "ACKNOWLEDGED",
    "ERROR",
    "REJECTED",
)
VALIDATION_STATUSES: tuple[str, ...] = ("VALID", "ERROR")
CONTROL_TYPES: tuple[str, ...] = ("ISA", "GS", "ST")
PROTOCOLS: tuple[str, ...] = ("FTP", "SFTP", "AS2")
PARTNER_TYPES: tuple[str, ...] = ("CUSTOMER", "CARRIER", "VENDOR", "FACTORING", "OTHER")
ACK_STATUSES: tuple[str, ...] = ("ACCEPTED", "REJECTED", "PARTIAL")
COMM_ACTIONS: tuple[str, ...] = ("SEND", "CONNECT")
COMM_STATUSES: tuple[str, ...] = ("SUCCESS", "FAILED")

QUEUE_VISIBLE_STATUSES: tuple[str, ...] = ("PENDING", "QUEUED", "ERROR")
QUEUE_PROCESSABLE_STATUSES: tuple[str, ...] = ("PENDING", "QUEUED")

_ENTITY_TYPE_BY_TRANSACTION: dict[str, str] = {
    "210": "INVOICE",
    "204": "LOAD",
    "214": "LOAD",
    "990": "LOAD",
}

# Lookup order matters: downstream event payloads depend on it.
ENTITY_ID_LOOKUP_FIELDS: tuple[str, ...] = ("invoiceId", "loadId", "orderId")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def resolve_entity_type(transaction_type: str) -> str | None:
    return _ENTITY_TYPE_BY_TRANSACTION.get(transaction_type)


def infer_entity_id(parsed_content: Mapping[str, Any] | None) -> str | None:
    """Return the first string-valued id field found in parsed payload."""
    if not isinstance(parsed_content, Mapping):
        return None
    for field in ENTITY_ID_LOOKUP_FIELDS:
        value = parsed_content.get(field)
        if isinstance(value, str) and value:
            return value
    return None


def format_control_number(number: int, *, prefix: str | None = None, suffix: str | None = None) -> str:
    return f"{prefix or ''}{number:09d}{suffix or ''}"
