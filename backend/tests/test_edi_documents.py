from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from edi_engine.domain_errors import NotFoundError
from edi_engine.models import EdiAcknowledgment, EdiEventOutbox, EdiMessage
from edi_engine.schemas import (
    AcknowledgeDocumentRequest,
    DocumentQuery,
    ImportEdiDocumentRequest,
    ReprocessDocumentRequest,
)
from edi_engine.services.events import OutboxEventPublisher
from edi_engine.use_cases.edi_documents import (
    acknowledge_document_use_case,
    delete_document_use_case,
    import_document_use_case,
    list_by_load_use_case,
    list_by_order_use_case,
    list_documents_use_case,
    list_errors_use_case,
    reprocess_document_use_case,
)
from edi_engine.use_cases.lookups import get_message_or_404

from conftest import OTHER_TENANT_ID, TENANT_ID, make_partner


def _import(db, allocator, events, partner, raw_content, transaction_type="204", **extra):
    return import_document_use_case(
        db=db,
        tenant_id=TENANT_ID,
        user_id="user-1",
        data=ImportEdiDocumentRequest(
            trading_partner_id=partner.id,
            transaction_type=transaction_type,
            raw_content=raw_content,
            **extra,
        ),
        allocator=allocator,
        events=events,
    )


def test_import_valid_tender_is_delivered_and_emits_received_events(db, allocator, events, partner) -> None:
    message = _import(db, allocator, events, partner, '{"loadId": "L-100", "orderId": "O-1"}')

    assert message.status == "DELIVERED"
    assert message.direction == "INBOUND"
    assert message.validation_status == "VALID"
    assert message.validation_errors is None
    assert message.processed_at is not None
    assert message.message_id.startswith("IN-")
    assert message.entity_type == "LOAD"
    assert message.entity_id == "L-100"
    assert message.parsed_content == {"loadId": "L-100", "orderId": "O-1"}
    assert (message.isa_control_number, message.gs_control_number, message.st_control_number) == (
        "000000001",
        "000000001",
        "000000001",
    )

    assert events.names() == ["edi.document.received", "edi.204.received"]
    assert events.emitted[0][1] == {"tenantId": TENANT_ID, "documentId": message.id, "documentType": "204"}
    assert events.emitted[1][1]["loadId"] == "L-100"


def test_import_malformed_payload_is_stored_as_error_without_raising(db, allocator, events, partner) -> None:
    message = _import(db, allocator, events, partner, "garbage without pairs", transaction_type="214")

    assert message.status == "ERROR"
    assert message.validation_status == "ERROR"
    assert message.parsed_content is None
    assert message.processed_at is None
    assert message.validation_errors == [
        {"message": "Unable to parse EDI payload: expected a JSON object or key=value lines"}
    ]
    assert events.names() == ["edi.document.error"]
    assert db.query(EdiMessage).count() == 1


def test_import_infers_invoice_entity_and_lookup_order(db, allocator, events, partner) -> None:
    message = _import(
        db,
        allocator,
        events,
        partner,
        "loadId=L-7\ninvoiceId=INV-7",
        transaction_type="210",
    )

    assert message.entity_type == "INVOICE"
    assert message.entity_id == "INV-7"
    assert events.names() == ["edi.document.received"]


def test_import_respects_explicit_direction_and_entity(db, allocator, events, partner) -> None:
    message = _import(
        db,
        allocator,
        events,
        partner,
        "orderId=O-55",
        transaction_type="997",
        direction="OUTBOUND",
        entity_type="ORDER",
        entity_id="O-override",
    )

    assert message.direction == "OUTBOUND"
    assert message.entity_type == "ORDER"
    assert message.entity_id == "O-override"


def test_import_requires_existing_partner(db, allocator, events) -> None:
    with pytest.raises(NotFoundError):
        _import(db, allocator, events, make_partner(db, tenant_id=OTHER_TENANT_ID), "loadId=L-1")

    assert db.query(EdiMessage).count() == 0


def test_import_stages_events_in_outbox_with_the_message(db, allocator, partner) -> None:
    message = _import(db, allocator, OutboxEventPublisher(db), partner, "loadId=L-1")

    rows = db.query(EdiEventOutbox).order_by(EdiEventOutbox.event_name).all()
    assert [row.event_name for row in rows] == ["edi.204.received", "edi.document.received"]
    assert all(row.tenant_id == TENANT_ID for row in rows)
    assert rows[1].payload["documentId"] == str(message.id)


def test_consecutive_imports_get_increasing_control_numbers(db, allocator, events, partner) -> None:
    first = _import(db, allocator, events, partner, "loadId=L-1")
    second = _import(db, allocator, events, partner, "loadId=L-2")

    assert first.isa_control_number == "000000001"
    assert second.isa_control_number == "000000002"


def test_reprocess_resets_to_pending_and_counts_retry(db, allocator, events, partner) -> None:
    message = _import(db, allocator, events, partner, "nothing here", transaction_type="214")

    result = reprocess_document_use_case(
        db=db,
        tenant_id=TENANT_ID,
        user_id="user-2",
        message_id=message.id,
        data=ReprocessDocumentRequest(reason="partner resent"),
    )

    assert result.status == "PENDING"
    assert result.validation_status is None
    assert result.validation_errors == [{"reason": "partner resent"}]
    assert result.retry_count == 1
    assert result.last_retry_at is not None
    assert result.updated_by_id == "user-2"


def test_reprocess_without_reason_clears_errors(db, allocator, events, partner) -> None:
    message = _import(db, allocator, events, partner, "nothing here", transaction_type="214")

    result = reprocess_document_use_case(
        db=db,
        tenant_id=TENANT_ID,
        user_id=None,
        message_id=message.id,
        data=ReprocessDocumentRequest(),
    )

    assert result.validation_errors is None


def test_acknowledge_links_ack_and_marks_acknowledged(db, allocator, events, partner) -> None:
    message = _import(db, allocator, events, partner, "loadId=L-1")
    events.emitted.clear()

    ack = acknowledge_document_use_case(
        db=db,
        tenant_id=TENANT_ID,
        message_id=message.id,
        data=AcknowledgeDocumentRequest(ack_control_number="000000099", ack_status="PARTIAL", error_codes=["E7"]),
        events=events,
    )

    db.refresh(message)
    assert message.status == "ACKNOWLEDGED"
    assert message.functional_ack_id == ack.id
    assert ack.original_message_id == message.id
    assert ack.error_codes == ["E7"]
    assert db.query(EdiAcknowledgment).count() == 1
    assert events.emitted == [
        ("edi.997.sent", {"tenantId": TENANT_ID, "documentId": ack.id, "originalDocId": message.id})
    ]


def test_operations_on_other_tenant_or_deleted_messages_raise_not_found(db, allocator, events, partner) -> None:
    message = _import(db, allocator, events, partner, "loadId=L-1")

    with pytest.raises(NotFoundError):
        get_message_or_404(db=db, message_id=message.id, tenant_id=OTHER_TENANT_ID)
    with pytest.raises(NotFoundError):
        reprocess_document_use_case(
            db=db,
            tenant_id=TENANT_ID,
            user_id=None,
            message_id=uuid4(),
            data=ReprocessDocumentRequest(),
        )

    delete_document_use_case(db=db, tenant_id=TENANT_ID, user_id="user-1", message_id=message.id)

    with pytest.raises(NotFoundError) as exc:
        get_message_or_404(db=db, message_id=message.id, tenant_id=TENANT_ID)
    assert exc.value.code == "EDI_DOCUMENT_NOT_FOUND"
    assert db.get(EdiMessage, message.id).deleted_at is not None


def test_list_documents_filters_and_paginates(db, allocator, events, partner) -> None:
    other_partner = make_partner(db, isa_id="OTHERPRT")
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    created = []
    for index in range(5):
        message = _import(db, allocator, events, partner, f"loadId=L-{index}")
        message.created_at = base + timedelta(minutes=index)
        created.append(message)
    _import(db, allocator, events, other_partner, "loadId=L-other", transaction_type="214")
    db.commit()

    page = list_documents_use_case(
        db=db,
        tenant_id=TENANT_ID,
        query=DocumentQuery(page=2, limit=2, trading_partner_id=partner.id),
    )

    assert page["total"] == 5
    assert page["total_pages"] == 3
    assert [m.entity_id for m in page["data"]] == ["L-2", "L-1"]

    by_type = list_documents_use_case(
        db=db, tenant_id=TENANT_ID, query=DocumentQuery(transaction_type="214")
    )
    assert [m.entity_id for m in by_type["data"]] == ["L-other"]

    other_tenant = list_documents_use_case(db=db, tenant_id=OTHER_TENANT_ID, query=DocumentQuery())
    assert other_tenant["total"] == 0


def test_error_and_entity_listings(db, allocator, events, partner) -> None:
    good = _import(db, allocator, events, partner, "loadId=L-42")
    bad = _import(db, allocator, events, partner, "???", transaction_type="214")
    order_doc = _import(
        db, allocator, events, partner, "orderId=O-1", transaction_type="997", entity_type="ORDER"
    )

    assert [m.id for m in list_errors_use_case(db=db, tenant_id=TENANT_ID)] == [bad.id]
    assert [m.id for m in list_by_load_use_case(db=db, tenant_id=TENANT_ID, load_id="L-42")] == [good.id]
    assert [m.id for m in list_by_order_use_case(db=db, tenant_id=TENANT_ID, order_id="O-1")] == [order_doc.id]
    assert list_by_load_use_case(db=db, tenant_id=OTHER_TENANT_ID, load_id="L-42") == []
