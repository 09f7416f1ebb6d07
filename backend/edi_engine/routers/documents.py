"""EDI document endpoints."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import (
    AcknowledgeDocumentRequest,
    Direction,
    DocumentQuery,
    EdiAcknowledgmentResponse,
    EdiMessagePage,
    EdiMessageResponse,
    ImportEdiDocumentRequest,
    MessageStatus,
    ReprocessDocumentRequest,
    TransactionType,
)
from ..services.control_numbers import ControlNumberAllocator
from ..services.events import OutboxEventPublisher
from ..tenancy import RequestContext, get_allocator, get_event_publisher, get_request_context
from ..use_cases.edi_documents import (
    acknowledge_document_use_case,
    delete_document_use_case,
    import_document_use_case,
    list_by_load_use_case,
    list_by_order_use_case,
    list_documents_use_case,
    list_errors_use_case,
    reprocess_document_use_case,
)
from ..use_cases.lookups import get_message_or_404

router = APIRouter(prefix="/edi/documents", tags=["edi-documents"])


@router.get("", response_model=EdiMessagePage)
def list_documents(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    transaction_type: Optional[TransactionType] = Query(None, alias="transactionType"),
    direction: Optional[Direction] = Query(None),
    status: Optional[MessageStatus] = Query(None),
    trading_partner_id: Optional[UUID] = Query(None, alias="tradingPartnerId"),
    entity_id: Optional[str] = Query(None, alias="entityId"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """List documents, newest first."""
    query = DocumentQuery(
        page=page,
        limit=limit,
        transaction_type=transaction_type,
        direction=direction,
        status=status,
        trading_partner_id=trading_partner_id,
        entity_id=entity_id,
    )
    result = list_documents_use_case(db=db, tenant_id=ctx.tenant_id, query=query)
    return EdiMessagePage(
        data=[EdiMessageResponse.model_validate(message) for message in result["data"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        total_pages=result["total_pages"],
    )


@router.get("/errors", response_model=list[EdiMessageResponse])
def list_errors(
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return list_errors_use_case(db=db, tenant_id=ctx.tenant_id)


@router.get("/orders/{order_id}", response_model=list[EdiMessageResponse])
def list_by_order(
    order_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return list_by_order_use_case(db=db, tenant_id=ctx.tenant_id, order_id=order_id)


@router.get("/loads/{load_id}", response_model=list[EdiMessageResponse])
def list_by_load(
    load_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return list_by_load_use_case(db=db, tenant_id=ctx.tenant_id, load_id=load_id)


@router.post("/import", response_model=EdiMessageResponse, status_code=201)
def import_document(
    data: ImportEdiDocumentRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    allocator: ControlNumberAllocator = Depends(get_allocator),
    events: OutboxEventPublisher = Depends(get_event_publisher),
):
    """Ingest raw EDI content. Unparseable payloads are stored with status ERROR."""
    return import_document_use_case(
        db=db,
        tenant_id=ctx.tenant_id,
        user_id=ctx.user_id,
        data=data,
        allocator=allocator,
        events=events,
    )


@router.get("/{document_id}", response_model=EdiMessageResponse)
def get_document(
    document_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return get_message_or_404(db=db, message_id=document_id, tenant_id=ctx.tenant_id)


@router.get("/{document_id}/raw", response_class=PlainTextResponse)
def get_raw_content(
    document_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    message = get_message_or_404(db=db, message_id=document_id, tenant_id=ctx.tenant_id)
    return PlainTextResponse(message.raw_content, media_type="application/edi-x12")


@router.get("/{document_id}/parsed")
def get_parsed_content(
    document_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    message = get_message_or_404(db=db, message_id=document_id, tenant_id=ctx.tenant_id)
    return {
        "id": str(message.id),
        "parsedContent": message.parsed_content,
        "validationStatus": message.validation_status,
        "validationErrors": message.validation_errors,
    }


@router.post("/{document_id}/reprocess", response_model=EdiMessageResponse)
def reprocess_document(
    document_id: UUID,
    data: ReprocessDocumentRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return reprocess_document_use_case(
        db=db,
        tenant_id=ctx.tenant_id,
        user_id=ctx.user_id,
        message_id=document_id,
        data=data,
    )


@router.post("/{document_id}/acknowledge", response_model=EdiAcknowledgmentResponse, status_code=201)
def acknowledge_document(
    document_id: UUID,
    data: AcknowledgeDocumentRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    events: OutboxEventPublisher = Depends(get_event_publisher),
):
    return acknowledge_document_use_case(
        db=db,
        tenant_id=ctx.tenant_id,
        message_id=document_id,
        data=data,
        events=events,
    )


@router.delete("/{document_id}", status_code=204)
def delete_document(
    document_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    delete_document_use_case(db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, message_id=document_id)
