"""Outbound X12 document generators.

Generators are pure: transaction fields + envelope control numbers in,
raw interchange text out. No database access, no delivery.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Protocol

from .control_numbers import ControlNumberTriple
from .edi_codes import now_utc

ELEMENT_SEPARATOR = "*"
SEGMENT_TERMINATOR = "~"
SUB_ELEMENT_SEPARATOR = ":"
X12_VERSION = "00401"
GS_VERSION = "004010"

# GS01 functional identifier code per transaction set.
FUNCTIONAL_ID_CODES: dict[str, str] = {
    "204": "SM",
    "210": "IM",
    "214": "QM",
    "990": "GF",
    "997": "FA",
}

Segment = tuple[str, ...]


@dataclass(frozen=True)
class EnvelopeParties:
    """Interchange sender/receiver identity for ISA06/ISA08 and GS02/GS03."""

    sender_isa_id: str
    receiver_isa_id: str
    sender_gs_id: str | None = None
    receiver_gs_id: str | None = None
    test_mode: bool = False


class DocumentGenerator(Protocol):
    transaction_type: str

    def generate(
        self,
        payload: Mapping[str, Any],
        control_numbers: ControlNumberTriple,
        parties: EnvelopeParties,
        *,
        at: datetime | None = None,
    ) -> str:
        ...


def _pad(value: str, length: int) -> str:
    return str(value)[:length].ljust(length)


def _interchange_number(value: str) -> str:
    """ISA13/IEA02 are fixed-width 9 digits; counter prefix/suffix stays out."""
    digits = "".join(ch for ch in str(value) if ch.isdigit())
    return digits[-9:].zfill(9)


def _clean(value: Any) -> str:
    """Strip characters that would break segment framing."""
    if value is None:
        return ""
    text = str(value)
    for reserved in (ELEMENT_SEPARATOR, SEGMENT_TERMINATOR, SUB_ELEMENT_SEPARATOR, "\n", "\r"):
        text = text.replace(reserved, " ")
    return text.strip()


def _amount(value: Any) -> str:
    if value is None or value == "":
        return ""
    return f"{Decimal(str(value)).quantize(Decimal('0.01'))}"


def _cents(value: Any) -> str:
    if value is None or value == "":
        return ""
    return str(int((Decimal(str(value)) * 100).quantize(Decimal("1"))))


def _edi_date(value: Any, at: datetime) -> str:
    if isinstance(value, datetime):
        return value.strftime("%Y%m%d")
    if isinstance(value, str) and value:
        return value[:10].replace("-", "")
    return at.strftime("%Y%m%d")


def _edi_time(value: Any, at: datetime) -> str:
    if isinstance(value, datetime):
        return value.strftime("%H%M")
    if isinstance(value, str) and len(value) >= 16 and value[10] in ("T", " "):
        return value[11:16].replace(":", "")
    return at.strftime("%H%M")


def render_interchange(
    transaction_type: str,
    body: Iterable[Segment],
    control_numbers: ControlNumberTriple,
    parties: EnvelopeParties,
    *,
    at: datetime | None = None,
) -> str:
    """Wrap transaction body segments in ISA/GS/ST ... SE/GE/IEA."""
    now = at or now_utc()
    body = [tuple(_clean(element) if index else element for index, element in enumerate(segment)) for segment in body]
    functional_code = FUNCTIONAL_ID_CODES[transaction_type]
    sender_isa = _clean(parties.sender_isa_id)
    receiver_isa = _clean(parties.receiver_isa_id)
    sender_gs = _clean(parties.sender_gs_id) or sender_isa
    receiver_gs = _clean(parties.receiver_gs_id) or receiver_isa
    isa_number = _interchange_number(control_numbers.isa)

    segments: list[Segment] = [
        (
            "ISA",
            "00",
            _pad("", 10),
            "00",
            _pad("", 10),
            "ZZ",
            _pad(sender_isa, 15),
            "ZZ",
            _pad(receiver_isa, 15),
            now.strftime("%y%m%d"),
            now.strftime("%H%M"),
            "U",
            X12_VERSION,
            isa_number,
            "0",
            "T" if parties.test_mode else "P",
            SUB_ELEMENT_SEPARATOR,
        ),
        (
            "GS",
            functional_code,
            sender_gs,
            receiver_gs,
            now.strftime("%Y%m%d"),
            now.strftime("%H%M"),
            control_numbers.gs,
            "X",
            GS_VERSION,
        ),
        ("ST", transaction_type, control_numbers.st),
        *body,
        # SE01 counts ST through SE inclusive.
        ("SE", str(len(body) + 2), control_numbers.st),
        ("GE", "1", control_numbers.gs),
        ("IEA", "1", isa_number),
    ]
    return "\n".join(ELEMENT_SEPARATOR.join(segment) + SEGMENT_TERMINATOR for segment in segments)


def _stop_segments(stops: Iterable[Mapping[str, Any]], at: datetime) -> list[Segment]:
    segments: list[Segment] = []
    for index, stop in enumerate(stops, start=1):
        reason = "LD" if str(stop.get("stopType", "PICKUP")).upper() == "PICKUP" else "UL"
        segments.append(("S5", str(stop.get("sequence") or index), reason, _amount(stop.get("weight"))))
        if stop.get("scheduledAt"):
            qualifier = "37" if reason == "LD" else "53"
            segments.append(
                ("G62", qualifier, _edi_date(stop["scheduledAt"], at), "Y", _edi_time(stop["scheduledAt"], at))
            )
        entity_code = "SF" if reason == "LD" else "ST"
        segments.append(("N1", entity_code, stop.get("name") or stop.get("facilityName") or ""))
        if stop.get("address"):
            segments.append(("N3", stop["address"]))
        if stop.get("city") or stop.get("state") or stop.get("postalCode"):
            segments.append(
                ("N4", stop.get("city") or "", stop.get("state") or "", stop.get("postalCode") or "", stop.get("country") or "US")
            )
    return segments


class Edi204Generator:
    """Motor carrier load tender."""

    transaction_type = "204"

    def generate(self, payload, control_numbers, parties, *, at=None) -> str:
        now = at or now_utc()
        shipment_id = payload.get("shipmentId") or payload.get("loadId")
        body: list[Segment] = [
            ("B2", "", payload.get("scac") or "", "", shipment_id, "", payload.get("paymentMethod") or "PP"),
            ("B2A", "04" if payload.get("purpose") == "CANCEL" else "00", "LT"),
            ("L11", payload["loadId"], "LO"),
        ]
        if payload.get("orderId"):
            body.append(("L11", payload["orderId"], "PO"))
        if payload.get("equipmentType"):
            body.append(("N7", "", "", "", "", "", "", "", "", "", "", payload["equipmentType"]))
        body.extend(_stop_segments(payload.get("stops") or [], now))
        body.append(
            (
                "L3",
                _amount(payload.get("totalWeight")),
                "G" if payload.get("totalWeight") is not None else "",
                "",
                "",
                _cents(payload.get("totalCharges")),
            )
        )
        return render_interchange(self.transaction_type, body, control_numbers, parties, at=now)


class Edi210Generator:
    """Motor carrier freight details and invoice."""

    transaction_type = "210"

    def generate(self, payload, control_numbers, parties, *, at=None) -> str:
        now = at or now_utc()
        line_items = payload.get("lineItems") or []
        total = payload.get("totalAmount")
        if total is None:
            total = sum((Decimal(str(item.get("amount") or 0)) for item in line_items), Decimal("0"))

        body: list[Segment] = [
            (
                "B3",
                "",
                payload.get("invoiceNumber") or payload["invoiceId"],
                payload.get("shipmentId") or payload.get("loadId") or "",
                payload.get("paymentMethod") or "PP",
                "",
                _edi_date(payload.get("invoiceDate"), now),
                _cents(total),
            ),
            ("C3", payload.get("currency") or "USD"),
        ]
        if payload.get("loadId"):
            body.append(("N9", "LO", payload["loadId"]))
        if payload.get("billToName"):
            body.append(("N1", "BT", payload["billToName"]))
        for index, item in enumerate(line_items, start=1):
            body.append(("LX", str(index)))
            body.append(("L5", str(index), item.get("description") or ""))
            body.append(
                ("L1", str(index), _amount(item.get("rate")), item.get("rateQualifier") or "FR", _cents(item.get("amount")))
            )
        body.append(("L3", "", "", "", "", _cents(total)))
        return render_interchange(self.transaction_type, body, control_numbers, parties, at=now)


class Edi214Generator:
    """Transportation carrier shipment status message."""

    transaction_type = "214"

    def generate(self, payload, control_numbers, parties, *, at=None) -> str:
        now = at or now_utc()
        status_at = payload.get("statusAt")
        body: list[Segment] = [
            ("B10", payload.get("referenceId") or payload["loadId"], payload.get("shipmentId") or payload["loadId"], payload.get("scac") or ""),
            ("L11", payload["loadId"], "LO"),
            ("LX", "1"),
            (
                "AT7",
                payload["statusCode"],
                payload.get("reasonCode") or "NS",
                "",
                "",
                _edi_date(status_at, now),
                _edi_time(status_at, now),
            ),
        ]
        if payload.get("city") or payload.get("state"):
            body.append(("MS1", payload.get("city") or "", payload.get("state") or "", payload.get("country") or "US"))
        return render_interchange(self.transaction_type, body, control_numbers, parties, at=now)


class Edi990Generator:
    """Response to a load tender."""

    transaction_type = "990"

    def generate(self, payload, control_numbers, parties, *, at=None) -> str:
        now = at or now_utc()
        body: list[Segment] = [
            (
                "B1",
                payload.get("scac") or "",
                payload.get("shipmentId") or payload["loadId"],
                now.strftime("%Y%m%d"),
                "A" if payload.get("accepted", True) else "D",
            ),
            ("N9", "CN", payload["loadId"]),
        ]
        if payload.get("reason"):
            body.append(("K1", payload["reason"]))
        return render_interchange(self.transaction_type, body, control_numbers, parties, at=now)


_ACK_CODES = {"ACCEPTED": "A", "REJECTED": "R", "PARTIAL": "P"}


class Edi997Generator:
    """Functional acknowledgment of a previously received transaction."""

    transaction_type = "997"

    def generate(self, payload, control_numbers, parties, *, at=None) -> str:
        now = at or now_utc()
        ack_code = _ACK_CODES.get(str(payload.get("ackStatus") or "ACCEPTED").upper(), "A")
        original_type = payload.get("originalTransactionType") or ""
        body: list[Segment] = [
            ("AK1", FUNCTIONAL_ID_CODES.get(original_type, ""), payload.get("originalGsControlNumber") or ""),
            ("AK2", original_type, payload.get("originalStControlNumber") or ""),
        ]
        for code in payload.get("errorCodes") or []:
            body.append(("AK3", str(code)))
        # Partial acceptance still accepts the transaction set itself.
        transaction_code = "R" if ack_code == "R" else "A"
        accepted = "0" if ack_code == "R" else "1"
        body.append(("AK5", transaction_code))
        body.append(("AK9", ack_code, "1", "1", accepted))
        return render_interchange(self.transaction_type, body, control_numbers, parties, at=now)


GENERATORS: dict[str, DocumentGenerator] = {
    generator.transaction_type: generator
    for generator in (
        Edi204Generator(),
        Edi210Generator(),
        Edi214Generator(),
        Edi990Generator(),
        Edi997Generator(),
    )
}


def get_generator(transaction_type: str) -> DocumentGenerator:
    try:
        return GENERATORS[transaction_type]
    except KeyError:
        raise ValueError(f"No generator registered for transaction type {transaction_type}") from None
