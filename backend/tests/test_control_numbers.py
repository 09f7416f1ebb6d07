from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from uuid import uuid4

import pytest

from edi_engine.domain_errors import RangeExceededError
from edi_engine.models import ControlNumberCounter
from edi_engine.services.control_numbers import next_control_number
from edi_engine.services.edi_codes import format_control_number

from conftest import TENANT_ID


def test_format_control_number_pads_to_nine_digits_with_prefix_and_suffix() -> None:
    assert format_control_number(42) == "000000042"
    assert format_control_number(7, prefix="T", suffix="X") == "T000000007X"


def test_first_allocation_for_a_key_starts_at_one_and_then_increments(db, allocator) -> None:
    partner_id = uuid4()

    first = allocator.allocate(TENANT_ID, "ISA", partner_id, "204")
    second = allocator.allocate(TENANT_ID, "ISA", partner_id, "204")

    assert first == "000000001"
    assert second == "000000002"


def test_counters_are_independent_per_key(db, allocator) -> None:
    partner_id = uuid4()

    allocator.allocate(TENANT_ID, "ISA", partner_id, "204")
    allocator.allocate(TENANT_ID, "ISA", partner_id, "204")

    assert allocator.allocate(TENANT_ID, "GS", partner_id, "204") == "000000001"
    assert allocator.allocate(TENANT_ID, "ISA", partner_id, "210") == "000000001"
    assert allocator.allocate(TENANT_ID, "ISA", uuid4(), "204") == "000000001"
    assert allocator.allocate("tenant-other", "ISA", partner_id, "204") == "000000001"


def test_allocate_triple_returns_isa_gs_st_numbers(db, allocator) -> None:
    partner_id = uuid4()

    first = allocator.allocate_triple(TENANT_ID, partner_id, "214")
    second = allocator.allocate_triple(TENANT_ID, partner_id, "214")

    assert (first.isa, first.gs, first.st) == ("000000001", "000000001", "000000001")
    assert (second.isa, second.gs, second.st) == ("000000002", "000000002", "000000002")


def test_concurrent_allocations_never_hand_out_duplicates(db, allocator) -> None:
    partner_id = uuid4()

    with ThreadPoolExecutor(max_workers=8) as pool:
        numbers = list(
            pool.map(lambda _: allocator.allocate(TENANT_ID, "ST", partner_id, "990"), range(20))
        )

    assert len(set(numbers)) == 20
    assert sorted(numbers) == [format_control_number(n) for n in range(1, 21)]


def test_range_exhaustion_raises_without_persisting_an_overflow(db) -> None:
    partner_id = uuid4()
    key = dict(tenant_id=TENANT_ID, control_type="GS", trading_partner_id=partner_id, transaction_type="210")

    assert next_control_number(db, max_value=2, **key) == "000000001"
    assert next_control_number(db, max_value=2, **key) == "000000002"
    db.commit()

    with pytest.raises(RangeExceededError) as exc:
        next_control_number(db, max_value=2, **key)
    db.rollback()

    assert exc.value.code == "CONTROL_NUMBER_RANGE_EXCEEDED"
    assert exc.value.http_status == 409
    assert exc.value.details["controlType"] == "GS"

    counter = db.query(ControlNumberCounter).filter_by(**key).one()
    assert counter.current_number == 2


def test_allocator_propagates_range_exhaustion(db, allocator) -> None:
    partner_id = uuid4()
    db.add(
        ControlNumberCounter(
            tenant_id=TENANT_ID,
            control_type="ISA",
            trading_partner_id=partner_id,
            transaction_type="997",
            current_number=5,
            min_value=1,
            max_value=5,
        )
    )
    db.commit()

    with pytest.raises(RangeExceededError):
        allocator.allocate(TENANT_ID, "ISA", partner_id, "997")


def test_counter_prefix_and_suffix_are_applied(db, allocator) -> None:
    partner_id = uuid4()
    db.add(
        ControlNumberCounter(
            tenant_id=TENANT_ID,
            control_type="ST",
            trading_partner_id=partner_id,
            transaction_type="204",
            current_number=1,
            min_value=1,
            max_value=999_999_999,
            prefix="A",
            suffix="Z",
        )
    )
    db.commit()

    assert allocator.allocate(TENANT_ID, "ST", partner_id, "204") == "A000000002Z"


def test_unknown_control_type_is_rejected(db) -> None:
    with pytest.raises(ValueError, match="Unknown control type"):
        next_control_number(
            db,
            tenant_id=TENANT_ID,
            control_type="XX",
            trading_partner_id=uuid4(),
            transaction_type="204",
        )
