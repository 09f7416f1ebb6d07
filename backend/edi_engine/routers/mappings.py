"""Transaction mapping endpoints."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..domain_errors import NotFoundError
from ..schemas import (
    TransactionMappingCreate,
    TransactionMappingResponse,
    TransactionMappingUpdate,
    TransactionType,
)
from ..tenancy import RequestContext, get_request_context
from ..use_cases.lookups import get_mapping_or_404
from ..use_cases.transaction_mappings import (
    create_mapping_use_case,
    get_active_mapping_use_case,
    list_mappings_use_case,
    remove_mapping_use_case,
    update_mapping_use_case,
)

router = APIRouter(prefix="/edi/mappings", tags=["edi-mappings"])


@router.post("", response_model=TransactionMappingResponse, status_code=201)
def create_mapping(
    data: TransactionMappingCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return create_mapping_use_case(db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, data=data)


@router.get("", response_model=list[TransactionMappingResponse])
def list_mappings(
    trading_partner_id: Optional[UUID] = Query(None, alias="tradingPartnerId"),
    transaction_type: Optional[TransactionType] = Query(None, alias="transactionType"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return list_mappings_use_case(
        db=db,
        tenant_id=ctx.tenant_id,
        trading_partner_id=trading_partner_id,
        transaction_type=transaction_type,
        is_active=is_active,
    )


@router.get("/active", response_model=TransactionMappingResponse)
def get_active_mapping(
    trading_partner_id: UUID = Query(..., alias="tradingPartnerId"),
    transaction_type: TransactionType = Query(..., alias="transactionType"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """The mapping currently applied for a partner and transaction type."""
    mapping = get_active_mapping_use_case(
        db=db,
        tenant_id=ctx.tenant_id,
        trading_partner_id=trading_partner_id,
        transaction_type=transaction_type,
    )
    if mapping is None:
        raise NotFoundError("No active mapping for this partner and transaction type", code="EDI_MAPPING_NOT_FOUND")
    return mapping


@router.get("/{mapping_id}", response_model=TransactionMappingResponse)
def get_mapping(
    mapping_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return get_mapping_or_404(db=db, mapping_id=mapping_id, tenant_id=ctx.tenant_id)


@router.patch("/{mapping_id}", response_model=TransactionMappingResponse)
def update_mapping(
    mapping_id: UUID,
    data: TransactionMappingUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return update_mapping_use_case(
        db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, mapping_id=mapping_id, data=data
    )


@router.delete("/{mapping_id}", status_code=204)
def remove_mapping(
    mapping_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    remove_mapping_use_case(db=db, tenant_id=ctx.tenant_id, user_id=ctx.user_id, mapping_id=mapping_id)
