from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from edi_engine.domain_errors import ConflictError, NotFoundError
from edi_engine.models import EdiMessage
from edi_engine.use_cases.edi_queue import (
    cancel_message_use_case,
    list_queue_use_case,
    process_queue_use_case,
    queue_stats_use_case,
    retry_message_use_case,
)

from conftest import OTHER_TENANT_ID, TENANT_ID

BASE_TIME = datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)


def _message(db, partner, *, status, minutes=0, tenant_id=TENANT_ID, deleted=False):
    message = EdiMessage(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        trading_partner_id=partner.id,
        message_id=f"OUT-{uuid.uuid4().hex}",
        transaction_type="214",
        direction="OUTBOUND",
        status=status,
        isa_control_number="000000001",
        gs_control_number="000000001",
        st_control_number="000000001",
        raw_content="ISA*...~",
        retry_count=0,
        created_at=BASE_TIME + timedelta(minutes=minutes),
        deleted_at=BASE_TIME if deleted else None,
    )
    db.add(message)
    db.commit()
    return message


def test_queue_lists_pending_queued_and_error_by_status_then_age(db, partner) -> None:
    error = _message(db, partner, status="ERROR", minutes=0)
    queued_late = _message(db, partner, status="QUEUED", minutes=5)
    pending = _message(db, partner, status="PENDING", minutes=9)
    queued_early = _message(db, partner, status="QUEUED", minutes=1)
    _message(db, partner, status="SENT", minutes=2)
    _message(db, partner, status="QUEUED", minutes=3, deleted=True)
    _message(db, partner, status="QUEUED", minutes=4, tenant_id=OTHER_TENANT_ID)

    queue = list_queue_use_case(db=db, tenant_id=TENANT_ID)

    assert [m.id for m in queue] == [pending.id, queued_early.id, queued_late.id, error.id]


def test_retry_requeues_and_counts(db, partner) -> None:
    message = _message(db, partner, status="ERROR")

    result = retry_message_use_case(db=db, tenant_id=TENANT_ID, user_id="ops", message_id=message.id)
    result = retry_message_use_case(db=db, tenant_id=TENANT_ID, user_id="ops", message_id=message.id)

    assert result.status == "QUEUED"
    assert result.retry_count == 2
    assert result.last_retry_at is not None


def test_cancel_is_terminal_and_excluded_from_processing(db, partner) -> None:
    message = _message(db, partner, status="QUEUED")

    cancelled = cancel_message_use_case(db=db, tenant_id=TENANT_ID, user_id="ops", message_id=message.id)
    processed = process_queue_use_case(db=db, tenant_id=TENANT_ID)

    assert cancelled.status == "REJECTED"
    assert cancelled.processed_at is not None
    assert processed == 0
    db.refresh(message)
    assert message.status == "REJECTED"


def test_process_sends_oldest_batch_first(db, partner) -> None:
    messages = [_message(db, partner, status="PENDING" if i % 2 else "QUEUED", minutes=i) for i in range(5)]
    error = _message(db, partner, status="ERROR", minutes=-1)
    foreign = _message(db, partner, status="QUEUED", minutes=-2, tenant_id=OTHER_TENANT_ID)

    assert process_queue_use_case(db=db, tenant_id=TENANT_ID, batch_size=3) == 3

    for message in (*messages, error, foreign):
        db.refresh(message)
    assert [m.status for m in messages] == ["SENT", "SENT", "SENT", "PENDING", "QUEUED"]
    assert all(m.processed_at is not None for m in messages[:3])
    assert error.status == "ERROR"
    assert foreign.status == "QUEUED"

    assert process_queue_use_case(db=db, tenant_id=TENANT_ID, batch_size=3) == 2
    assert process_queue_use_case(db=db, tenant_id=TENANT_ID, batch_size=3) == 0


def test_process_default_batch_size_comes_from_settings(db, partner, monkeypatch) -> None:
    from edi_engine.config import settings

    monkeypatch.setattr(settings, "EDI_QUEUE_BATCH_SIZE", 2)
    for i in range(3):
        _message(db, partner, status="QUEUED", minutes=i)

    assert process_queue_use_case(db=db, tenant_id=TENANT_ID) == 2


def test_stats_are_zero_filled_per_status(db, partner) -> None:
    _message(db, partner, status="QUEUED")
    _message(db, partner, status="QUEUED", minutes=1)
    _message(db, partner, status="ERROR", minutes=2)
    _message(db, partner, status="SENT", minutes=3, deleted=True)
    _message(db, partner, status="SENT", minutes=4, tenant_id=OTHER_TENANT_ID)

    stats = queue_stats_use_case(db=db, tenant_id=TENANT_ID)

    assert stats == {
        "total": 3,
        "by_status": {
            "PENDING": 0,
            "QUEUED": 2,
            "SENT": 0,
            "DELIVERED": 0,
            "ACKNOWLEDGED": 0,
            "ERROR": 1,
            "REJECTED": 0,
        },
    }


def test_queue_actions_on_unknown_message_raise_not_found(db) -> None:
    with pytest.raises(NotFoundError):
        retry_message_use_case(db=db, tenant_id=TENANT_ID, user_id=None, message_id=uuid.uuid4())
    with pytest.raises(NotFoundError):
        cancel_message_use_case(db=db, tenant_id=TENANT_ID, user_id=None, message_id=uuid.uuid4())


def test_cancelled_message_cannot_be_retried(db, partner) -> None:
    message = _message(db, partner, status="QUEUED")
    cancel_message_use_case(db=db, tenant_id=TENANT_ID, user_id="ops", message_id=message.id)

    with pytest.raises(ConflictError) as exc:
        retry_message_use_case(db=db, tenant_id=TENANT_ID, user_id="ops", message_id=message.id)

    assert exc.value.code == "EDI_DOCUMENT_REJECTED"
    assert process_queue_use_case(db=db, tenant_id=TENANT_ID) == 0
    db.refresh(message)
    assert message.status == "REJECTED"
    assert message.retry_count == 0
