"""EDI transmission queue endpoints."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import EdiMessageResponse, QueueProcessResponse, QueueStats
from ..tenancy import RequestContext, get_request_context
from ..use_cases.edi_queue import (
    cancel_message_use_case,
    list_queue_use_case,
    process_queue_use_case,
    queue_stats_use_case,
    retry_message_use_case,
)

router = APIRouter(prefix="/edi/queue", tags=["edi-queue"])


@router.get("", response_model=list[EdiMessageResponse])
def list_queue(
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return list_queue_use_case(db=db, tenant_id=ctx.tenant_id)


@router.get("/stats", response_model=QueueStats)
def queue_stats(
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return queue_stats_use_case(db=db, tenant_id=ctx.tenant_id)


@router.post("/process", response_model=QueueProcessResponse)
def process_queue(
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Mark the next batch of pending/queued messages as sent."""
    return {"processed": process_queue_use_case(db=db, tenant_id=ctx.tenant_id)}


@router.post("/{document_id}/retry", response_model=EdiMessageResponse)
def retry_message(
    document_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return retry_message_use_case(db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, message_id=document_id)


@router.post("/{document_id}/cancel", response_model=EdiMessageResponse)
def cancel_message(
    document_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return cancel_message_use_case(db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, message_id=document_id)
