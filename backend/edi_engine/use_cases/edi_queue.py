"""Queue/retry use-cases over documents awaiting transmission."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import case, func, update
from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import ConflictError
from ..models import EdiMessage
from ..services.edi_codes import (
    MESSAGE_STATUSES,
    QUEUE_PROCESSABLE_STATUSES,
    QUEUE_VISIBLE_STATUSES,
    now_utc,
)
from .lookups import get_message_or_404

logger = logging.getLogger(__name__)


def list_queue_use_case(*, db: Session, tenant_id: str) -> list[EdiMessage]:
    status_order = case(
        {status: index for index, status in enumerate(QUEUE_VISIBLE_STATUSES)},
        value=EdiMessage.status,
    )
    return (
        db.query(EdiMessage)
        .filter(
            EdiMessage.tenant_id == tenant_id,
            EdiMessage.deleted_at.is_(None),
            EdiMessage.status.in_(QUEUE_VISIBLE_STATUSES),
        )
        .order_by(status_order, EdiMessage.created_at.asc())
        .all()
    )


def retry_message_use_case(*, db: Session, tenant_id: str, user_id: str | None, message_id: UUID) -> EdiMessage:
    message = get_message_or_404(db=db, message_id=message_id, tenant_id=tenant_id)
    if message.status == "REJECTED":
        raise ConflictError(
            "Cancelled EDI documents cannot be retried",
            code="EDI_DOCUMENT_REJECTED",
            details={"messageId": message.message_id},
        )
    message.retry_count = (message.retry_count or 0) + 1
    message.status = "QUEUED"
    message.last_retry_at = now_utc()
    message.updated_by_id = user_id
    db.commit()
    logger.info(f"🔄 Requeued {message.message_id} (retry {message.retry_count})")
    return message


def cancel_message_use_case(*, db: Session, tenant_id: str, user_id: str | None, message_id: UUID) -> EdiMessage:
    """REJECTED is terminal; processing never picks the message up again."""
    message = get_message_or_404(db=db, message_id=message_id, tenant_id=tenant_id)
    message.status = "REJECTED"
    message.processed_at = now_utc()
    message.updated_by_id = user_id
    db.commit()
    logger.info(f"🚫 Cancelled {message.message_id}")
    return message


def process_queue_use_case(*, db: Session, tenant_id: str, batch_size: int | None = None) -> int:
    """Mark up to one batch of pending/queued messages SENT, oldest first.

    Candidate rows are locked with SKIP LOCKED so concurrent processors
    never pick the same message.
    """
    limit = batch_size or settings.EDI_QUEUE_BATCH_SIZE
    ids = [
        row.id
        for row in db.query(EdiMessage.id)
        .filter(
            EdiMessage.tenant_id == tenant_id,
            EdiMessage.deleted_at.is_(None),
            EdiMessage.status.in_(QUEUE_PROCESSABLE_STATUSES),
        )
        .order_by(EdiMessage.created_at.asc())
        .limit(limit)
        .with_for_update(skip_locked=True)
        .all()
    ]
    if not ids:
        db.rollback()
        return 0

    db.execute(
        update(EdiMessage)
        .where(EdiMessage.id.in_(ids))
        .values(status="SENT", processed_at=now_utc()),
        execution_options={"synchronize_session": False},
    )
    db.commit()
    db.expire_all()
    logger.info(f"📤 Processed {len(ids)} queued EDI messages for tenant {tenant_id}")
    return len(ids)


def queue_stats_use_case(*, db: Session, tenant_id: str) -> dict:
    rows = (
        db.query(EdiMessage.status, func.count(EdiMessage.id))
        .filter(EdiMessage.tenant_id == tenant_id, EdiMessage.deleted_at.is_(None))
        .group_by(EdiMessage.status)
        .all()
    )
    by_status = {status: 0 for status in MESSAGE_STATUSES}
    for status, count in rows:
        by_status[status] = count
    return {"total": sum(by_status.values()), "by_status": by_status}
