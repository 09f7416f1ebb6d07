"""Domain event publishing through the transactional outbox."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Callable, Protocol
from uuid import UUID

import requests
from sqlalchemy.orm import Session

from ..config import settings
from ..models import EdiEventOutbox
from .edi_codes import now_utc

logger = logging.getLogger(__name__)

DOCUMENT_RECEIVED = "edi.document.received"
DOCUMENT_ERROR = "edi.document.error"
TENDER_204_RECEIVED = "edi.204.received"
TENDER_204_PROCESSED = "edi.204.processed"
INVOICE_210_SENT = "edi.210.sent"
STATUS_214_SENT = "edi.214.sent"
RESPONSE_990_SENT = "edi.990.sent"
ACK_997_SENT = "edi.997.sent"
PARTNER_CONNECTED = "edi.partner.connected"
PARTNER_ERROR = "edi.partner.error"


class EventPublisher(Protocol):
    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        ...


def _jsonable(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


class OutboxEventPublisher:
    """Stage events in ``edi_event_outbox`` inside the caller's transaction."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        body = _jsonable(payload)
        self._db.add(
            EdiEventOutbox(
                tenant_id=body.get("tenantId"),
                event_name=event_name,
                payload=body,
                status="pending",
                attempts=0,
            )
        )
        logger.debug(f"Staged event {event_name}: {body}")


def post_event_to_webhook(url: str, event: EdiEventOutbox) -> tuple[bool, str | None]:
    """POST one event; return (delivered, error)."""
    try:
        response = requests.post(
            url,
            json={"id": str(event.id), "event": event.event_name, "payload": event.payload},
            timeout=10,
        )
    except requests.RequestException as exc:
        return False, f"EXCEPTION: {exc}"

    if 200 <= response.status_code < 300:
        return True, None
    return False, f"HTTP_{response.status_code}: {response.text[:200]}"


def dispatch_pending_events(
    db: Session,
    *,
    batch_size: int = 100,
    webhook_url: str | None = None,
    post: Callable[[str, EdiEventOutbox], tuple[bool, str | None]] = post_event_to_webhook,
) -> dict[str, int]:
    """Deliver due outbox rows; rows locked by another worker are skipped."""
    url = webhook_url if webhook_url is not None else settings.EDI_EVENTS_WEBHOOK_URL
    now = now_utc()

    events = (
        db.query(EdiEventOutbox)
        .filter(
            EdiEventOutbox.status == "pending",
            (EdiEventOutbox.next_retry_at.is_(None)) | (EdiEventOutbox.next_retry_at <= now),
        )
        .order_by(EdiEventOutbox.created_at)
        .limit(batch_size)
        .with_for_update(skip_locked=True)
        .all()
    )

    sent = 0
    for event in events:
        if not url:
            event.status = "skipped"
            event.last_error = "No webhook configured"
            continue

        delivered, error = post(url, event)
        if delivered:
            event.status = "sent"
            event.sent_at = now
            event.last_error = None
            sent += 1
            continue

        event.attempts += 1
        event.last_error = error
        if event.attempts >= settings.EDI_EVENTS_MAX_ATTEMPTS:
            event.status = "failed"
            logger.error(f"Event {event.id} ({event.event_name}) failed after {event.attempts} attempts: {error}")
        else:
            backoff_seconds = 2 ** event.attempts * 60  # 2min, 4min, 8min
            event.next_retry_at = now + timedelta(seconds=backoff_seconds)
            logger.warning(f"Retry {event.attempts} for event {event.id} in {backoff_seconds}s: {error}")

    db.commit()
    return {"sent": sent, "total_locked": len(events)}
