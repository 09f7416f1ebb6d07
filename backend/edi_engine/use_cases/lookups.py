"""Tenant-scoped entity lookups shared by EDI use-cases."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from ..domain_errors import NotFoundError
from ..models import EdiMessage, TradingPartner, TransactionMapping


def get_message_or_404(*, db: Session, message_id: UUID, tenant_id: str) -> EdiMessage:
    message = db.query(EdiMessage).filter(
        EdiMessage.id == message_id,
        EdiMessage.tenant_id == tenant_id,
        EdiMessage.deleted_at.is_(None),
    ).first()
    if not message:
        raise NotFoundError("EDI document not found", code="EDI_DOCUMENT_NOT_FOUND")
    return message


def get_partner_or_404(*, db: Session, partner_id: UUID, tenant_id: str) -> TradingPartner:
    partner = db.query(TradingPartner).filter(
        TradingPartner.id == partner_id,
        TradingPartner.tenant_id == tenant_id,
        TradingPartner.deleted_at.is_(None),
    ).first()
    if not partner:
        raise NotFoundError("Trading partner not found", code="EDI_PARTNER_NOT_FOUND")
    return partner


def get_mapping_or_404(*, db: Session, mapping_id: UUID, tenant_id: str) -> TransactionMapping:
    mapping = db.query(TransactionMapping).filter(
        TransactionMapping.id == mapping_id,
        TransactionMapping.tenant_id == tenant_id,
        TransactionMapping.deleted_at.is_(None),
    ).first()
    if not mapping:
        raise NotFoundError("Transaction mapping not found", code="EDI_MAPPING_NOT_FOUND")
    return mapping
