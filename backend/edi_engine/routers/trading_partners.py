"""Trading partner directory endpoints."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import (
    CommProtocol,
    CommunicationLogResponse,
    ConnectionTestResponse,
    PartnerType,
    TradingPartnerCreate,
    TradingPartnerPage,
    TradingPartnerQuery,
    TradingPartnerResponse,
    TradingPartnerUpdate,
)
from ..services.events import OutboxEventPublisher
from ..tenancy import RequestContext, get_event_publisher, get_request_context
from ..use_cases.lookups import get_partner_or_404
from ..use_cases.trading_partners import (
    check_partner_connection_use_case,
    create_partner_use_case,
    list_partners_use_case,
    partner_activity_use_case,
    remove_partner_use_case,
    toggle_partner_status_use_case,
    update_partner_use_case,
)

router = APIRouter(prefix="/edi/trading-partners", tags=["edi-trading-partners"])


@router.post("", response_model=TradingPartnerResponse, status_code=201)
def create_partner(
    data: TradingPartnerCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return create_partner_use_case(db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, data=data)


@router.get("", response_model=TradingPartnerPage)
def list_partners(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    protocol: Optional[CommProtocol] = Query(None),
    partner_type: Optional[PartnerType] = Query(None, alias="partnerType"),
    search: Optional[str] = Query(None),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    query = TradingPartnerQuery(
        page=page,
        limit=limit,
        is_active=is_active,
        protocol=protocol,
        partner_type=partner_type,
        search=search,
    )
    result = list_partners_use_case(db=db, tenant_id=ctx.tenant_id, query=query)
    return TradingPartnerPage(
        data=[TradingPartnerResponse.model_validate(partner) for partner in result["data"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        total_pages=result["total_pages"],
    )


@router.get("/{partner_id}", response_model=TradingPartnerResponse)
def get_partner(
    partner_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return get_partner_or_404(db=db, partner_id=partner_id, tenant_id=ctx.tenant_id)


@router.patch("/{partner_id}", response_model=TradingPartnerResponse)
def update_partner(
    partner_id: UUID,
    data: TradingPartnerUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return update_partner_use_case(
        db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, partner_id=partner_id, data=data
    )


@router.patch("/{partner_id}/status", response_model=TradingPartnerResponse)
def toggle_partner_status(
    partner_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Flip is_active."""
    return toggle_partner_status_use_case(
        db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, partner_id=partner_id
    )


@router.delete("/{partner_id}", status_code=204)
def remove_partner(
    partner_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    remove_partner_use_case(db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, partner_id=partner_id)


@router.post("/{partner_id}/test", response_model=ConnectionTestResponse)
def check_connection(
    partner_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    events: OutboxEventPublisher = Depends(get_event_publisher),
):
    """Check the partner's endpoint over its configured protocol."""
    return check_partner_connection_use_case(
        db=db, tenant_id=ctx.tenant_id, partner_id=partner_id, events=events
    )


@router.get("/{partner_id}/activity", response_model=list[CommunicationLogResponse])
def partner_activity(
    partner_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return partner_activity_use_case(db=db, tenant_id=ctx.tenant_id, partner_id=partner_id)
