"""Document lifecycle use-cases: ingestion, reprocessing, acknowledgment, queries."""
from __future__ import annotations

import logging
import math
import uuid
from typing import Any
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import ParseError
from ..models import EdiAcknowledgment, EdiMessage
from ..schemas import (
    AcknowledgeDocumentRequest,
    DocumentQuery,
    ImportEdiDocumentRequest,
    ReprocessDocumentRequest,
)
from ..services import events as edi_events
from ..services.control_numbers import ControlNumberAllocator
from ..services.edi_codes import infer_entity_id, now_utc, resolve_entity_type
from ..services.events import EventPublisher
from ..services.payload_parser import PayloadParser, get_parser
from .lookups import get_message_or_404, get_partner_or_404

logger = logging.getLogger(__name__)


def _live_messages(db: Session, tenant_id: str):
    return db.query(EdiMessage).filter(
        EdiMessage.tenant_id == tenant_id,
        EdiMessage.deleted_at.is_(None),
    )


def import_document_use_case(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    data: ImportEdiDocumentRequest,
    allocator: ControlNumberAllocator,
    events: EventPublisher,
    parser: PayloadParser | None = None,
) -> EdiMessage:
    """Ingest raw content; a malformed payload yields an ERROR message, not an exception."""
    get_partner_or_404(db=db, partner_id=data.trading_partner_id, tenant_id=tenant_id)
    parser = parser or get_parser(settings.EDI_PARSER_FORMAT)
    control_numbers = allocator.allocate_triple(tenant_id, data.trading_partner_id, data.transaction_type)

    parsed_content: dict[str, Any] | None = None
    parse_error: str | None = None
    try:
        parsed_content = parser.parse(data.raw_content)
    except ParseError as exc:
        parse_error = exc.message
    except ValueError as exc:
        parse_error = str(exc)

    now = now_utc()
    delivered = parse_error is None
    entity_id = data.entity_id if data.entity_id is not None else infer_entity_id(parsed_content)

    message = EdiMessage(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        trading_partner_id=data.trading_partner_id,
        message_id=f"IN-{uuid.uuid4().hex}",
        transaction_type=data.transaction_type,
        direction=data.direction or "INBOUND",
        status="DELIVERED" if delivered else "ERROR",
        isa_control_number=control_numbers.isa,
        gs_control_number=control_numbers.gs,
        st_control_number=control_numbers.st,
        entity_type=data.entity_type or resolve_entity_type(data.transaction_type),
        entity_id=entity_id,
        raw_content=data.raw_content,
        parsed_content=parsed_content,
        validation_status="VALID" if delivered else "ERROR",
        validation_errors=None if delivered else [{"message": parse_error}],
        retry_count=0,
        processed_at=now if delivered else None,
        created_by_id=user_id,
        updated_by_id=user_id,
    )
    db.add(message)
    db.flush()

    if delivered:
        events.emit(
            edi_events.DOCUMENT_RECEIVED,
            {
                "tenantId": tenant_id,
                "documentId": message.id,
                "documentType": message.transaction_type,
            },
        )
        if message.transaction_type == "204":
            events.emit(
                edi_events.TENDER_204_RECEIVED,
                {"tenantId": tenant_id, "documentId": message.id, "loadId": message.entity_id},
            )
        logger.info(f"Imported EDI {message.transaction_type} {message.message_id} for tenant {tenant_id}")
    else:
        events.emit(
            edi_events.DOCUMENT_ERROR,
            {"tenantId": tenant_id, "documentId": message.id, "error": parse_error},
        )
        logger.warning(f"EDI {message.transaction_type} {message.message_id} failed to parse: {parse_error}")

    db.commit()
    return message


def reprocess_document_use_case(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    message_id: UUID,
    data: ReprocessDocumentRequest,
) -> EdiMessage:
    """Put a message back to PENDING for the external ingestion process to pick up."""
    message = get_message_or_404(db=db, message_id=message_id, tenant_id=tenant_id)

    message.status = "PENDING"
    message.validation_status = None
    message.validation_errors = [{"reason": data.reason}] if data.reason else None
    message.retry_count = (message.retry_count or 0) + 1
    message.last_retry_at = now_utc()
    message.updated_by_id = user_id

    db.commit()
    logger.info(f"Reprocess requested for {message.message_id} (attempt {message.retry_count})")
    return message


def acknowledge_document_use_case(
    *,
    db: Session,
    tenant_id: str,
    message_id: UUID,
    data: AcknowledgeDocumentRequest,
    events: EventPublisher,
) -> EdiAcknowledgment:
    """Record a functional acknowledgment and link it to the original message."""
    message = get_message_or_404(db=db, message_id=message_id, tenant_id=tenant_id)
    now = now_utc()

    ack = EdiAcknowledgment(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        original_message_id=message.id,
        ack_control_number=data.ack_control_number,
        ack_status=data.ack_status,
        error_codes=data.error_codes,
        received_at=now,
    )
    db.add(ack)
    db.flush()

    message.status = "ACKNOWLEDGED"
    message.functional_ack_id = ack.id
    message.processed_at = now

    events.emit(
        edi_events.ACK_997_SENT,
        {"tenantId": tenant_id, "documentId": ack.id, "originalDocId": message.id},
    )
    db.commit()
    return ack


def list_documents_use_case(*, db: Session, tenant_id: str, query: DocumentQuery) -> dict[str, Any]:
    filters = []
    if query.transaction_type:
        filters.append(EdiMessage.transaction_type == query.transaction_type)
    if query.direction:
        filters.append(EdiMessage.direction == query.direction)
    if query.status:
        filters.append(EdiMessage.status == query.status)
    if query.trading_partner_id:
        filters.append(EdiMessage.trading_partner_id == query.trading_partner_id)
    if query.entity_id:
        filters.append(EdiMessage.entity_id == query.entity_id)

    base = _live_messages(db, tenant_id).filter(*filters)
    total = base.count()
    data = (
        base.order_by(EdiMessage.created_at.desc())
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
        .all()
    )
    return {
        "data": data,
        "total": total,
        "page": query.page,
        "limit": query.limit,
        "total_pages": math.ceil(total / query.limit),
    }


def list_errors_use_case(*, db: Session, tenant_id: str) -> list[EdiMessage]:
    return (
        _live_messages(db, tenant_id)
        .filter(or_(EdiMessage.validation_status == "ERROR", EdiMessage.status == "ERROR"))
        .order_by(EdiMessage.created_at.desc())
        .all()
    )


def _list_by_entity(db: Session, tenant_id: str, entity_type: str, entity_id: str) -> list[EdiMessage]:
    return (
        _live_messages(db, tenant_id)
        .filter(EdiMessage.entity_type == entity_type, EdiMessage.entity_id == entity_id)
        .order_by(EdiMessage.created_at.desc())
        .all()
    )


def list_by_order_use_case(*, db: Session, tenant_id: str, order_id: str) -> list[EdiMessage]:
    return _list_by_entity(db, tenant_id, "ORDER", order_id)


def list_by_load_use_case(*, db: Session, tenant_id: str, load_id: str) -> list[EdiMessage]:
    return _list_by_entity(db, tenant_id, "LOAD", load_id)


def delete_document_use_case(*, db: Session, tenant_id: str, user_id: str | None, message_id: UUID) -> None:
    """Soft-delete; the row stays for the audit trail."""
    message = get_message_or_404(db=db, message_id=message_id, tenant_id=tenant_id)
    message.deleted_at = now_utc()
    message.updated_by_id = user_id
    db.commit()
