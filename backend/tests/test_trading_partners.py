from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from edi_engine.domain_errors import ConflictError, NotFoundError, TransportError
from edi_engine.models import CommunicationLog, TradingPartner
from edi_engine.schemas import TradingPartnerCreate, TradingPartnerQuery, TradingPartnerUpdate
from edi_engine.services.transports import TransportResult
from edi_engine.use_cases.trading_partners import (
    check_partner_connection_use_case,
    create_partner_use_case,
    list_partners_use_case,
    partner_activity_use_case,
    remove_partner_use_case,
    toggle_partner_status_use_case,
    update_partner_use_case,
)

from conftest import OTHER_TENANT_ID, TENANT_ID


class _ConnectionStub:
    def __init__(self, *, result=None, error=None):
        self.result = result
        self.error = error
        self.targets = []

    def test_connection(self, target):
        self.targets.append(target)
        if self.error:
            raise TransportError(self.error)
        return self.result


def _create(db, tenant_id=TENANT_ID, **fields):
    values = {"partner_name": "Acme Shipping", "isa_id": "ACMESHIP"}
    values.update(fields)
    return create_partner_use_case(
        db=db, tenant_id=tenant_id, user_id="admin", data=TradingPartnerCreate(**values)
    )


def test_create_partner_defaults(db) -> None:
    partner = _create(db, gs_id="ACMEGS", protocol="SFTP", ftp_username="acme")

    assert partner.tenant_id == TENANT_ID
    assert partner.is_active is True
    assert partner.partner_type == "CUSTOMER"
    assert partner.protocol == "SFTP"
    assert partner.send_functional_ack is True
    assert partner.test_mode is False
    assert partner.created_by_id == "admin"


def test_create_accepts_camel_case_payload(db) -> None:
    data = TradingPartnerCreate.model_validate(
        {"partnerName": "Rail Freight", "isaId": "RRFREIGHT", "partnerType": "CARRIER", "ftpHost": "sftp.rr.example"}
    )
    partner = create_partner_use_case(db=db, tenant_id=TENANT_ID, user_id=None, data=data)

    assert partner.partner_type == "CARRIER"
    assert partner.ftp_host == "sftp.rr.example"


def test_duplicate_isa_id_conflicts_within_tenant_only(db) -> None:
    _create(db)

    with pytest.raises(ConflictError) as exc:
        _create(db, partner_name="Copycat")
    assert exc.value.code == "EDI_PARTNER_ISA_ID_CONFLICT"
    assert exc.value.http_status == 409

    other = _create(db, tenant_id=OTHER_TENANT_ID)
    assert other.isa_id == "ACMESHIP"


def test_isa_id_is_reusable_after_soft_delete(db) -> None:
    first = _create(db)
    remove_partner_use_case(db=db, tenant_id=TENANT_ID, user_id="admin", partner_id=first.id)

    second = _create(db, partner_name="Acme Shipping II")

    assert second.id != first.id
    db.refresh(first)
    assert first.deleted_at is not None
    assert first.is_active is False


def test_update_rejects_isa_id_taken_by_another_partner(db) -> None:
    _create(db)
    other = _create(db, partner_name="Other", isa_id="OTHERPRT")

    with pytest.raises(ConflictError):
        update_partner_use_case(
            db=db,
            tenant_id=TENANT_ID,
            user_id="admin",
            partner_id=other.id,
            data=TradingPartnerUpdate(isa_id="ACMESHIP"),
        )


def test_update_applies_only_provided_fields(db) -> None:
    partner = _create(db, gs_id="ACMEGS", scac="ACME")

    updated = update_partner_use_case(
        db=db,
        tenant_id=TENANT_ID,
        user_id="editor",
        partner_id=partner.id,
        data=TradingPartnerUpdate(isa_id="ACMESHIP", test_mode=True),
    )

    assert updated.test_mode is True
    assert updated.gs_id == "ACMEGS"
    assert updated.scac == "ACME"
    assert updated.updated_by_id == "editor"


def test_toggle_flips_active_flag(db) -> None:
    partner = _create(db)

    assert toggle_partner_status_use_case(
        db=db, tenant_id=TENANT_ID, user_id=None, partner_id=partner.id
    ).is_active is False
    assert toggle_partner_status_use_case(
        db=db, tenant_id=TENANT_ID, user_id=None, partner_id=partner.id
    ).is_active is True


def test_list_partners_searches_and_paginates(db) -> None:
    _create(db, partner_name="Acme Shipping", isa_id="ACMESHIP", protocol="FTP")
    _create(db, partner_name="Rail Freight", isa_id="RRFREIGHT", protocol="SFTP", gs_id="RAILGS")
    inactive = _create(db, partner_name="Factor Port", isa_id="FACTORPRT", protocol="AS2")
    toggle_partner_status_use_case(db=db, tenant_id=TENANT_ID, user_id=None, partner_id=inactive.id)
    _create(db, tenant_id=OTHER_TENANT_ID, partner_name="Acme Elsewhere")

    assert [p.isa_id for p in list_partners_use_case(
        db=db, tenant_id=TENANT_ID, query=TradingPartnerQuery(search="acme")
    )["data"]] == ["ACMESHIP"]
    assert [p.isa_id for p in list_partners_use_case(
        db=db, tenant_id=TENANT_ID, query=TradingPartnerQuery(search="railgs")
    )["data"]] == ["RRFREIGHT"]

    active = list_partners_use_case(db=db, tenant_id=TENANT_ID, query=TradingPartnerQuery(is_active=True))
    assert active["total"] == 2

    by_protocol = list_partners_use_case(db=db, tenant_id=TENANT_ID, query=TradingPartnerQuery(protocol="AS2"))
    assert [p.isa_id for p in by_protocol["data"]] == ["FACTORPRT"]

    page = list_partners_use_case(db=db, tenant_id=TENANT_ID, query=TradingPartnerQuery(page=2, limit=2))
    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert len(page["data"]) == 1


def test_connection_success_logs_and_emits_connected(db, events) -> None:
    partner = _create(db, ftp_host="ftp.acme.example")
    stub = _ConnectionStub(result=TransportResult(success=True, protocol="FTP"))

    result = check_partner_connection_use_case(
        db=db, tenant_id=TENANT_ID, partner_id=partner.id, events=events, transport_resolver=lambda _: stub
    )

    assert result == {"success": True, "protocol": "FTP", "error": None}
    assert stub.targets[0].host == "ftp.acme.example"
    log = db.query(CommunicationLog).one()
    assert (log.action, log.status, log.message_count) == ("CONNECT", "SUCCESS", 0)
    assert log.completed_at is not None
    assert events.emitted == [("edi.partner.connected", {"tenantId": TENANT_ID, "partnerId": partner.id})]


def test_connection_unhealthy_result_is_reported_not_raised(db, events) -> None:
    partner = _create(db, protocol="AS2", as2_url="https://as2.acme.example")
    stub = _ConnectionStub(result=TransportResult(success=False, protocol="AS2", error="HTTP_503"))

    result = check_partner_connection_use_case(
        db=db, tenant_id=TENANT_ID, partner_id=partner.id, events=events, transport_resolver=lambda _: stub
    )

    assert result == {"success": False, "protocol": "AS2", "error": "HTTP_503"}
    log = db.query(CommunicationLog).one()
    assert (log.status, log.error_message) == ("FAILED", "HTTP_503")
    assert events.names() == ["edi.partner.error"]


def test_connection_failure_is_logged_once_and_reraised(db, events) -> None:
    partner = _create(db)
    stub = _ConnectionStub(error="FTP host is not configured for this trading partner")

    with pytest.raises(TransportError):
        check_partner_connection_use_case(
            db=db, tenant_id=TENANT_ID, partner_id=partner.id, events=events, transport_resolver=lambda _: stub
        )

    log = db.query(CommunicationLog).one()
    assert log.status == "FAILED"
    assert "not configured" in log.error_message
    assert events.emitted[0][0] == "edi.partner.error"
    assert events.emitted[0][1]["partnerId"] == partner.id


def test_activity_is_newest_first_and_capped(db, monkeypatch) -> None:
    from edi_engine.config import settings

    partner = _create(db)
    base = datetime(2026, 2, 1, tzinfo=timezone.utc)
    for minute in range(4):
        db.add(
            CommunicationLog(
                id=uuid.uuid4(),
                tenant_id=TENANT_ID,
                trading_partner_id=partner.id,
                protocol="FTP",
                action="SEND",
                status="SUCCESS",
                message_count=1,
                started_at=base + timedelta(minutes=minute),
                duration_ms=5,
            )
        )
    db.commit()
    monkeypatch.setattr(settings, "EDI_PARTNER_ACTIVITY_LIMIT", 3)

    activity = partner_activity_use_case(db=db, tenant_id=TENANT_ID, partner_id=partner.id)

    assert len(activity) == 3
    assert [log.started_at.minute for log in activity] == [3, 2, 1]


def test_partner_of_another_tenant_is_not_found(db) -> None:
    partner = _create(db, tenant_id=OTHER_TENANT_ID)

    with pytest.raises(NotFoundError) as exc:
        toggle_partner_status_use_case(db=db, tenant_id=TENANT_ID, user_id=None, partner_id=partner.id)
    assert exc.value.code == "EDI_PARTNER_NOT_FOUND"
    assert db.get(TradingPartner, partner.id).is_active is True


def test_connection_failure_outside_domain_errors_is_still_logged(db, events) -> None:
    partner = _create(db)

    class _RefusingTransport:
        def test_connection(self, target):
            raise ConnectionRefusedError("socket refused")

    with pytest.raises(ConnectionRefusedError):
        check_partner_connection_use_case(
            db=db,
            tenant_id=TENANT_ID,
            partner_id=partner.id,
            events=events,
            transport_resolver=lambda _: _RefusingTransport(),
        )

    log = db.query(CommunicationLog).one()
    assert (log.action, log.status, log.error_message) == ("CONNECT", "FAILED", "socket refused")
    assert events.emitted == [
        ("edi.partner.error", {"tenantId": TENANT_ID, "partnerId": partner.id, "error": "socket refused"})
    ]


@pytest.mark.parametrize("field", ["isaId", "partnerName", "protocol", "partnerType", "testMode"])
def test_update_rejects_null_for_required_fields(field) -> None:
    with pytest.raises(ValidationError):
        TradingPartnerUpdate.model_validate({field: None})


def test_update_with_omitted_fields_keeps_identity(db) -> None:
    partner = _create(db)

    updated = update_partner_use_case(
        db=db,
        tenant_id=TENANT_ID,
        user_id=None,
        partner_id=partner.id,
        data=TradingPartnerUpdate.model_validate({"gsId": None}),
    )

    assert updated.isa_id == "ACMESHIP"
    assert updated.gs_id is None
