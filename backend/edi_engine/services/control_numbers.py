"""Envelope control number allocation (ISA / GS / ST).

Each (tenant, control type, partner, transaction type) key owns one row in
``edi_control_numbers``. Allocation is a single upsert statement:

    INSERT ... VALUES (min_value)
    ON CONFLICT (key) DO UPDATE
        SET current_number = current_number + 1
        WHERE current_number < max_value
    RETURNING current_number

so concurrent callers for the same key are serialized by the row lock and
each observes a distinct value. A counter already sitting at ``max_value``
matches no row in the guarded update: nothing is written and the call fails
with ``RangeExceededError``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from ..config import settings
from ..domain_errors import RangeExceededError
from ..models import ControlNumberCounter
from .edi_codes import CONTROL_TYPES, format_control_number

logger = logging.getLogger(__name__)

_KEY_COLUMNS = ("tenant_id", "control_type", "trading_partner_id", "transaction_type")


@dataclass(frozen=True)
class ControlNumberTriple:
    """Envelope numbers assigned to one transaction."""

    isa: str
    gs: str
    st: str


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Atomic control number upsert is not supported on dialect: {dialect}")


def next_control_number(
    db: Session,
    *,
    tenant_id: str,
    control_type: str,
    trading_partner_id: UUID,
    transaction_type: str,
    min_value: int | None = None,
    max_value: int | None = None,
) -> str:
    """Increment-and-read the counter for one key inside ``db``'s transaction."""
    if control_type not in CONTROL_TYPES:
        raise ValueError(f"Unknown control type: {control_type}")

    start = settings.EDI_CONTROL_NUMBER_MIN if min_value is None else min_value
    ceiling = settings.EDI_CONTROL_NUMBER_MAX if max_value is None else max_value

    insert = _insert_for(db)
    table = ControlNumberCounter.__table__
    stmt = insert(ControlNumberCounter).values(
        tenant_id=tenant_id,
        control_type=control_type,
        trading_partner_id=trading_partner_id,
        transaction_type=transaction_type,
        current_number=start,
        min_value=start,
        max_value=ceiling,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=list(_KEY_COLUMNS),
        set_={
            "current_number": table.c.current_number + 1,
            "updated_at": func.now(),
        },
        where=table.c.current_number < table.c.max_value,
    ).returning(
        table.c.current_number,
        table.c.max_value,
        table.c.prefix,
        table.c.suffix,
    )

    row = db.execute(stmt).first()
    if row is None:
        raise RangeExceededError(
            f"{control_type} control number range exhausted for transaction {transaction_type}",
            details={
                "tenantId": tenant_id,
                "controlType": control_type,
                "tradingPartnerId": str(trading_partner_id),
                "transactionType": transaction_type,
            },
        )

    return format_control_number(row.current_number, prefix=row.prefix, suffix=row.suffix)


class ControlNumberAllocator:
    """Issues control numbers, committing each increment in its own session."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def allocate(
        self,
        tenant_id: str,
        control_type: str,
        trading_partner_id: UUID,
        transaction_type: str,
    ) -> str:
        db = self._session_factory()
        try:
            number = next_control_number(
                db,
                tenant_id=tenant_id,
                control_type=control_type,
                trading_partner_id=trading_partner_id,
                transaction_type=transaction_type,
            )
            db.commit()
            return number
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def allocate_triple(
        self,
        tenant_id: str,
        trading_partner_id: UUID,
        transaction_type: str,
    ) -> ControlNumberTriple:
        """Allocate ISA, GS and ST numbers concurrently (independent keys).

        A failure on one key does not roll back the others.
        """
        with ThreadPoolExecutor(max_workers=len(CONTROL_TYPES)) as pool:
            futures = {
                control_type: pool.submit(
                    self.allocate,
                    tenant_id,
                    control_type,
                    trading_partner_id,
                    transaction_type,
                )
                for control_type in CONTROL_TYPES
            }
            numbers = {control_type: future.result() for control_type, future in futures.items()}

        logger.info(
            f"Allocated control numbers ISA={numbers['ISA']} GS={numbers['GS']} ST={numbers['ST']} "
            f"for tenant={tenant_id} partner={trading_partner_id} type={transaction_type}"
        )
        return ControlNumberTriple(isa=numbers["ISA"], gs=numbers["GS"], st=numbers["ST"])
