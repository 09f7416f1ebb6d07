"""Outbound EDI generation and delivery endpoints."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import (
    EdiMessageResponse,
    Generate204Request,
    Generate210Request,
    Generate214Request,
    Generate990Request,
    Generate997Request,
    SendDocumentResponse,
)
from ..services.control_numbers import ControlNumberAllocator
from ..services.events import OutboxEventPublisher
from ..tenancy import RequestContext, get_allocator, get_event_publisher, get_request_context
from ..use_cases.edi_generation import (
    generate_204_use_case,
    generate_210_use_case,
    generate_214_use_case,
    generate_990_use_case,
    generate_997_use_case,
    send_document_use_case,
)

router = APIRouter(prefix="/edi", tags=["edi-generation"])


@router.post("/generate/204", response_model=EdiMessageResponse, status_code=201)
def generate_204(
    data: Generate204Request,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    allocator: ControlNumberAllocator = Depends(get_allocator),
    events: OutboxEventPublisher = Depends(get_event_publisher),
):
    """Generate a load tender."""
    return generate_204_use_case(
        db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, data=data, allocator=allocator, events=events
    )


@router.post("/generate/210", response_model=EdiMessageResponse, status_code=201)
def generate_210(
    data: Generate210Request,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    allocator: ControlNumberAllocator = Depends(get_allocator),
    events: OutboxEventPublisher = Depends(get_event_publisher),
):
    """Generate a freight invoice."""
    return generate_210_use_case(
        db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, data=data, allocator=allocator, events=events
    )


@router.post("/generate/214", response_model=EdiMessageResponse, status_code=201)
def generate_214(
    data: Generate214Request,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    allocator: ControlNumberAllocator = Depends(get_allocator),
    events: OutboxEventPublisher = Depends(get_event_publisher),
):
    """Generate a shipment status message."""
    return generate_214_use_case(
        db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, data=data, allocator=allocator, events=events
    )


@router.post("/generate/990", response_model=EdiMessageResponse, status_code=201)
def generate_990(
    data: Generate990Request,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    allocator: ControlNumberAllocator = Depends(get_allocator),
    events: OutboxEventPublisher = Depends(get_event_publisher),
):
    """Generate a tender response."""
    return generate_990_use_case(
        db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, data=data, allocator=allocator, events=events
    )


@router.post("/generate/997", response_model=EdiMessageResponse, status_code=201)
def generate_997(
    data: Generate997Request,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    allocator: ControlNumberAllocator = Depends(get_allocator),
    events: OutboxEventPublisher = Depends(get_event_publisher),
):
    """Generate a functional acknowledgment for a received document."""
    return generate_997_use_case(
        db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, data=data, allocator=allocator, events=events
    )


@router.post("/send/{document_id}", response_model=SendDocumentResponse)
def send_document(
    document_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Deliver a document over the trading partner's protocol."""
    return send_document_use_case(db=db, tenant_id=ctx.tenant_id, message_id=document_id)
