"""Transaction mapping registry use-cases. Rule sets are stored, never executed here."""
from __future__ import annotations

import logging
import uuid
from uuid import UUID

from sqlalchemy.orm import Session

from ..domain_errors import ConflictError
from ..models import TransactionMapping
from ..schemas import TransactionMappingCreate, TransactionMappingUpdate
from ..services.edi_codes import now_utc
from .lookups import get_mapping_or_404, get_partner_or_404

logger = logging.getLogger(__name__)


def _active_mapping_query(db: Session, tenant_id: str, trading_partner_id: UUID, transaction_type: str):
    return db.query(TransactionMapping).filter(
        TransactionMapping.tenant_id == tenant_id,
        TransactionMapping.trading_partner_id == trading_partner_id,
        TransactionMapping.transaction_type == transaction_type,
        TransactionMapping.is_active.is_(True),
        TransactionMapping.deleted_at.is_(None),
    )


def _ensure_key_free(
    db: Session,
    tenant_id: str,
    trading_partner_id: UUID,
    transaction_type: str,
    exclude_id: UUID | None = None,
) -> None:
    query = _active_mapping_query(db, tenant_id, trading_partner_id, transaction_type)
    if exclude_id is not None:
        query = query.filter(TransactionMapping.id != exclude_id)
    if query.first():
        raise ConflictError(
            "An active mapping already exists for this partner and transaction type",
            code="EDI_MAPPING_CONFLICT",
            details={"tradingPartnerId": str(trading_partner_id), "transactionType": transaction_type},
        )


def create_mapping_use_case(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    data: TransactionMappingCreate,
) -> TransactionMapping:
    get_partner_or_404(db=db, partner_id=data.trading_partner_id, tenant_id=tenant_id)
    if data.is_active:
        _ensure_key_free(db, tenant_id, data.trading_partner_id, data.transaction_type)

    mapping = TransactionMapping(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        **data.model_dump(),
        created_by_id=user_id,
        updated_by_id=user_id,
    )
    db.add(mapping)
    db.commit()
    logger.info(f"Created {mapping.transaction_type} mapping for partner {mapping.trading_partner_id}")
    return mapping


def list_mappings_use_case(
    *,
    db: Session,
    tenant_id: str,
    trading_partner_id: UUID | None = None,
    transaction_type: str | None = None,
    is_active: bool | None = None,
) -> list[TransactionMapping]:
    query = db.query(TransactionMapping).filter(
        TransactionMapping.tenant_id == tenant_id,
        TransactionMapping.deleted_at.is_(None),
    )
    if trading_partner_id:
        query = query.filter(TransactionMapping.trading_partner_id == trading_partner_id)
    if transaction_type:
        query = query.filter(TransactionMapping.transaction_type == transaction_type)
    if is_active is not None:
        query = query.filter(TransactionMapping.is_active.is_(is_active))
    return query.order_by(TransactionMapping.transaction_type, TransactionMapping.created_at.desc()).all()


def get_active_mapping_use_case(
    *, db: Session, tenant_id: str, trading_partner_id: UUID, transaction_type: str
) -> TransactionMapping | None:
    return _active_mapping_query(db, tenant_id, trading_partner_id, transaction_type).first()


def update_mapping_use_case(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    mapping_id: UUID,
    data: TransactionMappingUpdate,
) -> TransactionMapping:
    mapping = get_mapping_or_404(db=db, mapping_id=mapping_id, tenant_id=tenant_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("is_active") and not mapping.is_active:
        _ensure_key_free(
            db, tenant_id, mapping.trading_partner_id, mapping.transaction_type, exclude_id=mapping.id
        )

    for field, value in changes.items():
        setattr(mapping, field, value)
    mapping.updated_by_id = user_id

    db.commit()
    return mapping


def remove_mapping_use_case(*, db: Session, tenant_id: str, user_id: str | None, mapping_id: UUID) -> None:
    mapping = get_mapping_or_404(db=db, mapping_id=mapping_id, tenant_id=tenant_id)
    mapping.deleted_at = now_utc()
    mapping.updated_by_id = user_id
    db.commit()
