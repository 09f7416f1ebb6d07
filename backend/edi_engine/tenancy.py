"""Request context and service dependencies for EDI routes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .database import SessionLocal, get_db
from .services.control_numbers import ControlNumberAllocator
from .services.events import OutboxEventPublisher


@dataclass(frozen=True)
class RequestContext:
    tenant_id: str
    user_id: Optional[str] = None


def get_request_context(
    x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-ID"),
    x_user_id: Optional[str] = Header(None, alias="X-User-ID"),
) -> RequestContext:
    """Tenant scope comes from the gateway; authentication happens upstream."""
    if not x_tenant_id or not x_tenant_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required",
        )
    return RequestContext(tenant_id=x_tenant_id.strip(), user_id=(x_user_id or "").strip() or None)


_allocator = ControlNumberAllocator(SessionLocal)


def get_allocator() -> ControlNumberAllocator:
    return _allocator


def get_event_publisher(db: Session = Depends(get_db)) -> OutboxEventPublisher:
    return OutboxEventPublisher(db)
