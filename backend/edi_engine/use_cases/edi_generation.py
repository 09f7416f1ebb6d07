"""Outbound generation use-cases: build, persist and deliver X12 documents."""
from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import ConflictError
from ..models import CommunicationLog, EdiMessage, TradingPartner
from ..schemas import (
    Generate204Request,
    Generate210Request,
    Generate214Request,
    Generate990Request,
    Generate997Request,
    GenerateRequestBase,
)
from ..services import events as edi_events
from ..services.control_numbers import ControlNumberAllocator
from ..services.edi_codes import now_utc, resolve_entity_type
from ..services.events import EventPublisher
from ..services.generators import EnvelopeParties, get_generator
from ..services.transports import DeliveryTransport, get_transport, target_for_partner
from .lookups import get_message_or_404, get_partner_or_404

logger = logging.getLogger(__name__)


def _parties_for(partner: TradingPartner) -> EnvelopeParties:
    return EnvelopeParties(
        sender_isa_id=settings.EDI_SENDER_ISA_ID,
        sender_gs_id=settings.EDI_SENDER_GS_ID,
        receiver_isa_id=partner.isa_id,
        receiver_gs_id=partner.gs_id,
        test_mode=bool(partner.test_mode),
    )


def _generate_outbound(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    transaction_type: str,
    data: GenerateRequestBase,
    payload: dict[str, Any],
    entity_id: str | None,
    allocator: ControlNumberAllocator,
) -> EdiMessage:
    """Shared path: partner -> control numbers -> render -> OUTBOUND message (flushed, not committed)."""
    partner = get_partner_or_404(db=db, partner_id=data.trading_partner_id, tenant_id=tenant_id)
    control_numbers = allocator.allocate_triple(tenant_id, partner.id, transaction_type)
    raw_content = get_generator(transaction_type).generate(payload, control_numbers, _parties_for(partner))

    now = now_utc()
    message = EdiMessage(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        trading_partner_id=partner.id,
        message_id=f"OUT-{uuid.uuid4().hex}",
        transaction_type=transaction_type,
        direction="OUTBOUND",
        status="SENT" if data.send_immediately else "QUEUED",
        isa_control_number=control_numbers.isa,
        gs_control_number=control_numbers.gs,
        st_control_number=control_numbers.st,
        entity_type=resolve_entity_type(transaction_type),
        entity_id=entity_id,
        raw_content=raw_content,
        parsed_content=payload,
        validation_status="VALID",
        retry_count=0,
        processed_at=now if data.send_immediately else None,
        created_by_id=user_id,
        updated_by_id=user_id,
    )
    db.add(message)
    db.flush()
    logger.info(
        f"Generated EDI {transaction_type} {message.message_id} for partner {partner.isa_id} "
        f"(ISA {control_numbers.isa}, status {message.status})"
    )
    return message


def _request_payload(data: GenerateRequestBase) -> dict[str, Any]:
    return data.model_dump(
        by_alias=True,
        mode="json",
        exclude={"trading_partner_id", "send_immediately"},
    )


def generate_204_use_case(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    data: Generate204Request,
    allocator: ControlNumberAllocator,
    events: EventPublisher,
) -> EdiMessage:
    message = _generate_outbound(
        db=db,
        tenant_id=tenant_id,
        user_id=user_id,
        transaction_type="204",
        data=data,
        payload=_request_payload(data),
        entity_id=data.load_id,
        allocator=allocator,
    )
    events.emit(
        edi_events.TENDER_204_PROCESSED,
        {"tenantId": tenant_id, "documentId": message.id, "loadId": data.load_id},
    )
    db.commit()
    return message


def generate_210_use_case(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    data: Generate210Request,
    allocator: ControlNumberAllocator,
    events: EventPublisher,
) -> EdiMessage:
    message = _generate_outbound(
        db=db,
        tenant_id=tenant_id,
        user_id=user_id,
        transaction_type="210",
        data=data,
        payload=_request_payload(data),
        entity_id=data.invoice_id,
        allocator=allocator,
    )
    events.emit(
        edi_events.INVOICE_210_SENT,
        {"tenantId": tenant_id, "documentId": message.id, "invoiceId": data.invoice_id},
    )
    db.commit()
    return message


def generate_214_use_case(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    data: Generate214Request,
    allocator: ControlNumberAllocator,
    events: EventPublisher,
) -> EdiMessage:
    message = _generate_outbound(
        db=db,
        tenant_id=tenant_id,
        user_id=user_id,
        transaction_type="214",
        data=data,
        payload=_request_payload(data),
        entity_id=data.load_id,
        allocator=allocator,
    )
    events.emit(
        edi_events.STATUS_214_SENT,
        {
            "tenantId": tenant_id,
            "documentId": message.id,
            "loadId": data.load_id,
            "statusCode": data.status_code,
        },
    )
    db.commit()
    return message


def generate_990_use_case(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    data: Generate990Request,
    allocator: ControlNumberAllocator,
    events: EventPublisher,
) -> EdiMessage:
    message = _generate_outbound(
        db=db,
        tenant_id=tenant_id,
        user_id=user_id,
        transaction_type="990",
        data=data,
        payload=_request_payload(data),
        entity_id=data.load_id,
        allocator=allocator,
    )
    events.emit(
        edi_events.RESPONSE_990_SENT,
        {
            "tenantId": tenant_id,
            "documentId": message.id,
            "loadId": data.load_id,
            "accepted": data.accepted,
        },
    )
    db.commit()
    return message


def generate_997_use_case(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    data: Generate997Request,
    allocator: ControlNumberAllocator,
    events: EventPublisher,
) -> EdiMessage:
    """Acknowledge a received transaction; AK1/AK2 echo its GS/ST control numbers."""
    original = get_message_or_404(db=db, message_id=data.original_message_id, tenant_id=tenant_id)
    payload = _request_payload(data)
    payload.update(
        {
            "originalTransactionType": original.transaction_type,
            "originalGsControlNumber": original.gs_control_number,
            "originalStControlNumber": original.st_control_number,
        }
    )

    message = _generate_outbound(
        db=db,
        tenant_id=tenant_id,
        user_id=user_id,
        transaction_type="997",
        data=data,
        payload=payload,
        entity_id=original.message_id,
        allocator=allocator,
    )
    events.emit(
        edi_events.ACK_997_SENT,
        {"tenantId": tenant_id, "documentId": message.id, "originalDocId": original.id},
    )
    db.commit()
    return message


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def send_document_use_case(
    *,
    db: Session,
    tenant_id: str,
    message_id: UUID,
    transport_resolver: Callable[[str | None], DeliveryTransport] = get_transport,
) -> dict[str, Any]:
    """Deliver a generated document over the partner's protocol and log the attempt."""
    message = get_message_or_404(db=db, message_id=message_id, tenant_id=tenant_id)
    if message.status == "REJECTED":
        raise ConflictError(
            "Cancelled EDI documents cannot be sent",
            code="EDI_DOCUMENT_REJECTED",
            details={"messageId": message.message_id},
        )

    partner = db.query(TradingPartner).filter(
        TradingPartner.id == message.trading_partner_id,
        TradingPartner.tenant_id == tenant_id,
        TradingPartner.deleted_at.is_(None),
    ).first()
    transport = transport_resolver(partner.protocol if partner else None)
    file_name = f"{message.transaction_type}-{message.message_id}.edi"

    started_at = now_utc()
    started = time.monotonic()
    log = CommunicationLog(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        trading_partner_id=message.trading_partner_id,
        edi_message_id=message.id,
        direction="OUTBOUND",
        protocol=transport.protocol,
        action="SEND",
        file_name=file_name,
        message_count=1,
        started_at=started_at,
    )

    try:
        transport.send(message.raw_content, target_for_partner(partner, file_name=file_name))
    except Exception as exc:
        error = getattr(exc, "message", None) or str(exc) or type(exc).__name__
        log.status = "FAILED"
        log.error_message = error
        log.completed_at = now_utc()
        log.duration_ms = _elapsed_ms(started)
        message.status = "ERROR"
        db.add(log)
        db.commit()
        logger.error(f"❌ Sending {message.message_id} via {transport.protocol} failed: {error}")
        raise

    message.status = "SENT"
    message.processed_at = now_utc()
    log.status = "SUCCESS"
    log.completed_at = message.processed_at
    log.duration_ms = _elapsed_ms(started)
    db.add(log)
    db.commit()
    logger.info(f"✅ Sent {message.message_id} via {transport.protocol} as {file_name}")
    return {"success": True, "protocol": transport.protocol, "file_name": file_name}
