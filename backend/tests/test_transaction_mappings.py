from __future__ import annotations

import pytest
from pydantic import ValidationError

from edi_engine.domain_errors import ConflictError, NotFoundError
from edi_engine.schemas import TransactionMappingCreate, TransactionMappingUpdate
from edi_engine.use_cases.transaction_mappings import (
    create_mapping_use_case,
    get_active_mapping_use_case,
    list_mappings_use_case,
    remove_mapping_use_case,
    update_mapping_use_case,
)

from conftest import OTHER_TENANT_ID, TENANT_ID, make_partner


def _create(db, partner, transaction_type="204", **fields):
    return create_mapping_use_case(
        db=db,
        tenant_id=TENANT_ID,
        user_id="mapper",
        data=TransactionMappingCreate(
            trading_partner_id=partner.id,
            transaction_type=transaction_type,
            field_mappings={"B2.04": "loadId"},
            **fields,
        ),
    )


def test_create_and_resolve_active_mapping(db, partner) -> None:
    mapping = _create(db, partner, name="Tender v1", default_values={"scac": "ACME"})

    active = get_active_mapping_use_case(
        db=db, tenant_id=TENANT_ID, trading_partner_id=partner.id, transaction_type="204"
    )

    assert active.id == mapping.id
    assert active.field_mappings == {"B2.04": "loadId"}
    assert active.default_values == {"scac": "ACME"}
    assert get_active_mapping_use_case(
        db=db, tenant_id=TENANT_ID, trading_partner_id=partner.id, transaction_type="210"
    ) is None


def test_second_active_mapping_for_same_key_conflicts(db, partner) -> None:
    _create(db, partner)

    with pytest.raises(ConflictError) as exc:
        _create(db, partner)
    assert exc.value.code == "EDI_MAPPING_CONFLICT"

    inactive = _create(db, partner, is_active=False)
    assert inactive.is_active is False


def test_reactivating_onto_occupied_key_conflicts(db, partner) -> None:
    _create(db, partner)
    draft = _create(db, partner, is_active=False)

    with pytest.raises(ConflictError):
        update_mapping_use_case(
            db=db,
            tenant_id=TENANT_ID,
            user_id=None,
            mapping_id=draft.id,
            data=TransactionMappingUpdate(is_active=True),
        )


def test_removed_mapping_frees_the_key(db, partner) -> None:
    first = _create(db, partner)
    remove_mapping_use_case(db=db, tenant_id=TENANT_ID, user_id="mapper", mapping_id=first.id)

    assert get_active_mapping_use_case(
        db=db, tenant_id=TENANT_ID, trading_partner_id=partner.id, transaction_type="204"
    ) is None
    second = _create(db, partner)
    assert second.id != first.id


def test_update_changes_rules(db, partner) -> None:
    mapping = _create(db, partner)

    updated = update_mapping_use_case(
        db=db,
        tenant_id=TENANT_ID,
        user_id="mapper-2",
        mapping_id=mapping.id,
        data=TransactionMappingUpdate(validation_rules=[{"field": "loadId", "required": True}]),
    )

    assert updated.validation_rules == [{"field": "loadId", "required": True}]
    assert updated.field_mappings == {"B2.04": "loadId"}
    assert updated.updated_by_id == "mapper-2"


def test_list_filters(db, partner) -> None:
    other_partner = make_partner(db, isa_id="OTHERPRT")
    _create(db, partner, "204")
    _create(db, partner, "210", is_active=False)
    _create(db, other_partner, "204")

    assert len(list_mappings_use_case(db=db, tenant_id=TENANT_ID)) == 3
    assert [m.transaction_type for m in list_mappings_use_case(
        db=db, tenant_id=TENANT_ID, trading_partner_id=partner.id
    )] == ["204", "210"]
    assert len(list_mappings_use_case(db=db, tenant_id=TENANT_ID, transaction_type="204")) == 2
    assert len(list_mappings_use_case(db=db, tenant_id=TENANT_ID, is_active=False)) == 1
    assert list_mappings_use_case(db=db, tenant_id=OTHER_TENANT_ID) == []


def test_mapping_requires_partner_of_the_tenant(db) -> None:
    foreign = make_partner(db, tenant_id=OTHER_TENANT_ID)

    with pytest.raises(NotFoundError):
        _create(db, foreign)


def test_update_rejects_null_active_flag_and_rules() -> None:
    with pytest.raises(ValidationError):
        TransactionMappingUpdate.model_validate({"isActive": None})
    with pytest.raises(ValidationError):
        TransactionMappingUpdate.model_validate({"fieldMappings": None})
