"""RFC 7807 Problem Details helpers."""
from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from .domain_errors import ConflictError, DomainError

logger = logging.getLogger(__name__)

PROBLEM_TYPE_BASE = "https://api.edi-engine.local/problems"


def build_problem_details_response(exc: DomainError, *, instance: str | None = None) -> JSONResponse:
    """Render DomainError as RFC 7807 payload with stable domain code."""
    try:
        title = HTTPStatus(exc.http_status).phrase
    except ValueError:
        title = "Domain Error"

    payload: dict[str, object] = {
        "type": f"{PROBLEM_TYPE_BASE}/{exc.code.lower()}",
        "title": title,
        "status": exc.http_status,
        "detail": exc.message,
        "code": exc.code,
    }
    if instance:
        payload["instance"] = instance
    if exc.details is not None:
        payload["details"] = exc.details

    return JSONResponse(
        status_code=exc.http_status,
        content=payload,
        media_type="application/problem+json",
    )


def integrity_conflict(exc: IntegrityError) -> ConflictError:
    """A concurrent write won the race for a unique partner ISA id or active mapping key."""
    constraint = (str(getattr(exc, "orig", exc)).splitlines() or ["unknown"])[0]
    return ConflictError(
        "Write conflicts with an existing EDI record",
        code="EDI_INTEGRITY_CONFLICT",
        details={"constraint": constraint},
    )


async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    return build_problem_details_response(exc, instance=request.url.path)


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning(f"⚠️ Integrity conflict on {request.method} {request.url.path}: {exc.orig}")
    return build_problem_details_response(integrity_conflict(exc), instance=request.url.path)


def register_problem_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, handle_domain_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
