"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class NotFoundError(DomainError):
    """Referenced message, partner or mapping does not exist for the tenant."""

    def __init__(self, message: str, *, code: str = "NOT_FOUND", details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=404, message=message, details=details)


class ConflictError(DomainError):
    """Write would violate a uniqueness or lifecycle rule."""

    def __init__(self, message: str, *, code: str = "CONFLICT", details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=409, message=message, details=details)


class RangeExceededError(DomainError):
    """Control number counter is exhausted; operator must raise the range or rotate the key."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="CONTROL_NUMBER_RANGE_EXCEEDED",
            http_status=409,
            message=message,
            details=details,
        )


class ParseError(DomainError):
    """Payload could not be interpreted by the configured parser."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(code="EDI_PARSE_ERROR", http_status=422, message=message, details=details)


class TransportError(DomainError):
    """Delivery or connectivity failure reported by a transport."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(code="EDI_TRANSPORT_ERROR", http_status=502, message=message, details=details)
