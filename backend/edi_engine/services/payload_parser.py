"""Inbound payload parsers.

A parser turns raw interchange content into a structured dict or raises
``ParseError`` carrying a human-readable reason. Ingestion looks parsers up
by format name so a richer grammar can be registered without touching the
document lifecycle.
"""

from __future__ import annotations

import json
from typing import Any, Protocol

from ..domain_errors import ParseError


class PayloadParser(Protocol):
    format_name: str

    def parse(self, raw_content: str) -> dict[str, Any]:
        ...


class JsonKeyValueParser:
    """JSON object, else newline-delimited ``key=value`` pairs."""

    format_name = "json-kv"

    def parse(self, raw_content: str) -> dict[str, Any]:
        if raw_content is None or not raw_content.strip():
            raise ParseError("EDI payload is empty")

        try:
            decoded = json.loads(raw_content)
        except ValueError:
            decoded = None
        if isinstance(decoded, dict):
            return decoded

        pairs: dict[str, Any] = {}
        for line in raw_content.splitlines():
            line = line.strip()
            if not line or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            if key:
                pairs[key] = value.strip()

        if not pairs:
            raise ParseError("Unable to parse EDI payload: expected a JSON object or key=value lines")
        return pairs


class X12SegmentParser:
    """Split an ISA-enveloped X12 interchange into segments.

    Separators are read from the fixed-width ISA header: the element
    separator is the 4th character, the segment terminator follows ISA16.
    """

    format_name = "x12-segments"

    _ISA_LENGTH = 106

    def parse(self, raw_content: str) -> dict[str, Any]:
        content = (raw_content or "").lstrip()
        if not content.startswith("ISA") or len(content) < self._ISA_LENGTH:
            raise ParseError("Unable to parse X12 payload: missing ISA interchange header")

        element_sep = content[3]
        segment_term = content[self._ISA_LENGTH - 1]
        segments: list[dict[str, Any]] = []
        for chunk in content.split(segment_term):
            chunk = chunk.strip()
            if not chunk:
                continue
            parts = chunk.split(element_sep)
            segments.append({"id": parts[0], "elements": parts[1:]})

        by_id: dict[str, list[str]] = {}
        for segment in segments:
            by_id.setdefault(segment["id"], segment["elements"])

        for required in ("ISA", "GS", "ST"):
            if required not in by_id:
                raise ParseError(f"Unable to parse X12 payload: {required} segment not found")

        isa, gs, st = by_id["ISA"], by_id["GS"], by_id["ST"]
        if len(isa) < 13 or len(gs) < 6 or len(st) < 2:
            raise ParseError("Unable to parse X12 payload: truncated envelope segment")

        return {
            "senderId": isa[5].strip(),
            "receiverId": isa[7].strip(),
            "isaControlNumber": isa[12].strip(),
            "gsControlNumber": gs[5].strip(),
            "transactionSetId": st[0].strip(),
            "stControlNumber": st[1].strip(),
            "segments": segments,
        }


_PARSERS: dict[str, PayloadParser] = {
    JsonKeyValueParser.format_name: JsonKeyValueParser(),
    X12SegmentParser.format_name: X12SegmentParser(),
}


def get_parser(format_name: str) -> PayloadParser:
    try:
        return _PARSERS[format_name]
    except KeyError:
        raise ValueError(f"Unknown EDI payload format: {format_name}") from None


def register_parser(parser: PayloadParser) -> None:
    _PARSERS[parser.format_name] = parser
