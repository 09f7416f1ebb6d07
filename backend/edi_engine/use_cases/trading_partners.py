"""Trading partner directory use-cases."""
from __future__ import annotations

import logging
import math
import time
import uuid
from typing import Any, Callable
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import ConflictError
from ..models import CommunicationLog, TradingPartner
from ..schemas import TradingPartnerCreate, TradingPartnerQuery, TradingPartnerUpdate
from ..services import events as edi_events
from ..services.edi_codes import now_utc
from ..services.events import EventPublisher
from ..services.transports import DeliveryTransport, get_transport, target_for_partner
from .lookups import get_partner_or_404

logger = logging.getLogger(__name__)


def _ensure_isa_id_available(db: Session, tenant_id: str, isa_id: str, exclude_id: UUID | None = None) -> None:
    query = db.query(TradingPartner.id).filter(
        TradingPartner.tenant_id == tenant_id,
        TradingPartner.isa_id == isa_id,
        TradingPartner.deleted_at.is_(None),
    )
    if exclude_id is not None:
        query = query.filter(TradingPartner.id != exclude_id)
    if query.first():
        raise ConflictError(
            "Trading partner with this ISA ID already exists",
            code="EDI_PARTNER_ISA_ID_CONFLICT",
            details={"isaId": isa_id},
        )


def create_partner_use_case(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    data: TradingPartnerCreate,
) -> TradingPartner:
    _ensure_isa_id_available(db, tenant_id, data.isa_id)

    partner = TradingPartner(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        **data.model_dump(),
        is_active=True,
        created_by_id=user_id,
        updated_by_id=user_id,
    )
    db.add(partner)
    db.commit()
    logger.info(f"Created trading partner {partner.partner_name} ({partner.isa_id}) for tenant {tenant_id}")
    return partner


def list_partners_use_case(*, db: Session, tenant_id: str, query: TradingPartnerQuery) -> dict[str, Any]:
    base = db.query(TradingPartner).filter(
        TradingPartner.tenant_id == tenant_id,
        TradingPartner.deleted_at.is_(None),
    )
    if query.is_active is not None:
        base = base.filter(TradingPartner.is_active == query.is_active)
    if query.protocol:
        base = base.filter(TradingPartner.protocol == query.protocol)
    if query.partner_type:
        base = base.filter(TradingPartner.partner_type == query.partner_type)
    if query.search:
        pattern = f"%{query.search.lower()}%"
        base = base.filter(
            or_(
                func.lower(TradingPartner.partner_name).like(pattern),
                func.lower(TradingPartner.isa_id).like(pattern),
                func.lower(TradingPartner.gs_id).like(pattern),
            )
        )

    total = base.count()
    data = (
        base.order_by(TradingPartner.created_at.desc())
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
        .all()
    )
    return {
        "data": data,
        "total": total,
        "page": query.page,
        "limit": query.limit,
        "total_pages": math.ceil(total / query.limit),
    }


def update_partner_use_case(
    *,
    db: Session,
    tenant_id: str,
    user_id: str | None,
    partner_id: UUID,
    data: TradingPartnerUpdate,
) -> TradingPartner:
    partner = get_partner_or_404(db=db, partner_id=partner_id, tenant_id=tenant_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("isa_id") and changes["isa_id"] != partner.isa_id:
        _ensure_isa_id_available(db, tenant_id, changes["isa_id"], exclude_id=partner.id)

    for field, value in changes.items():
        setattr(partner, field, value)
    partner.updated_by_id = user_id

    db.commit()
    return partner


def toggle_partner_status_use_case(
    *, db: Session, tenant_id: str, user_id: str | None, partner_id: UUID
) -> TradingPartner:
    partner = get_partner_or_404(db=db, partner_id=partner_id, tenant_id=tenant_id)
    partner.is_active = not partner.is_active
    partner.updated_by_id = user_id
    db.commit()
    return partner


def remove_partner_use_case(*, db: Session, tenant_id: str, user_id: str | None, partner_id: UUID) -> None:
    """Soft delete; frees the ISA id for a new partner."""
    partner = get_partner_or_404(db=db, partner_id=partner_id, tenant_id=tenant_id)
    partner.deleted_at = now_utc()
    partner.is_active = False
    partner.updated_by_id = user_id
    db.commit()
    logger.info(f"Removed trading partner {partner.isa_id} for tenant {tenant_id}")


def check_partner_connection_use_case(
    *,
    db: Session,
    tenant_id: str,
    partner_id: UUID,
    events: EventPublisher,
    transport_resolver: Callable[[str | None], DeliveryTransport] = get_transport,
) -> dict[str, Any]:
    """Check the partner's endpoint and append a CONNECT log row with the outcome."""
    partner = get_partner_or_404(db=db, partner_id=partner_id, tenant_id=tenant_id)
    transport = transport_resolver(partner.protocol)

    started_at = now_utc()
    started = time.monotonic()
    log = CommunicationLog(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        trading_partner_id=partner.id,
        direction="OUTBOUND",
        protocol=partner.protocol,
        action="CONNECT",
        message_count=0,
        started_at=started_at,
    )
    db.add(log)

    try:
        result = transport.test_connection(target_for_partner(partner))
    except Exception as exc:
        error = getattr(exc, "message", None) or str(exc) or type(exc).__name__
        log.status = "FAILED"
        log.error_message = error
        log.completed_at = now_utc()
        log.duration_ms = int((time.monotonic() - started) * 1000)
        events.emit(
            edi_events.PARTNER_ERROR,
            {"tenantId": tenant_id, "partnerId": partner.id, "error": error},
        )
        db.commit()
        logger.error(f"❌ Connection test for partner {partner.isa_id} failed: {error}")
        raise

    log.completed_at = now_utc()
    log.duration_ms = int((time.monotonic() - started) * 1000)
    if result.success:
        log.status = "SUCCESS"
        events.emit(edi_events.PARTNER_CONNECTED, {"tenantId": tenant_id, "partnerId": partner.id})
        logger.info(f"✅ Connection test for partner {partner.isa_id} via {partner.protocol} succeeded")
    else:
        log.status = "FAILED"
        log.error_message = result.error
        events.emit(
            edi_events.PARTNER_ERROR,
            {"tenantId": tenant_id, "partnerId": partner.id, "error": result.error},
        )
        logger.warning(f"⚠️ Connection test for partner {partner.isa_id} returned {result.error}")
    db.commit()
    return {"success": result.success, "protocol": partner.protocol, "error": result.error}


def partner_activity_use_case(*, db: Session, tenant_id: str, partner_id: UUID) -> list[CommunicationLog]:
    get_partner_or_404(db=db, partner_id=partner_id, tenant_id=tenant_id)
    return (
        db.query(CommunicationLog)
        .filter(
            CommunicationLog.tenant_id == tenant_id,
            CommunicationLog.trading_partner_id == partner_id,
        )
        .order_by(CommunicationLog.started_at.desc())
        .limit(settings.EDI_PARTNER_ACTIVITY_LIMIT)
        .all()
    )
