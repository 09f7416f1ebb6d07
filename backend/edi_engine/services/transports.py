"""Delivery transports keyed by communication protocol.

Every transport implements ``test_connection(target)`` and
``send(payload, target)``. Callers pick one with ``get_transport(protocol)``
and never branch on protocol themselves.

FTP-like and SFTP-like transports deliver into a local mailbox tree
(``EDI_MAILBOX_DIR/<protocol>/<host>/<outbound path>``) that a file-transfer
agent mirrors to the partner. The AS2-like transport posts over HTTP.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import requests

from ..config import settings
from ..domain_errors import TransportError

logger = logging.getLogger(__name__)

_SAFE_SEGMENT_RE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class TransportTarget:
    """Connection parameters resolved from a trading partner record."""

    partner_isa_id: str | None = None
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    inbound_path: str | None = None
    outbound_path: str | None = None
    as2_url: str | None = None
    as2_identifier: str | None = None
    file_name: str | None = None


@dataclass(frozen=True)
class TransportResult:
    success: bool
    protocol: str
    detail: str | None = None
    error: str | None = None


class DeliveryTransport(Protocol):
    protocol: str

    def test_connection(self, target: TransportTarget) -> TransportResult:
        ...

    def send(self, payload: str, target: TransportTarget) -> TransportResult:
        ...


def target_for_partner(partner, *, file_name: str | None = None) -> TransportTarget:
    """Build a transport target from a TradingPartner.

    Without a partner record the document goes to the default mailbox host.
    """
    if partner is None:
        return TransportTarget(host=settings.EDI_DEFAULT_MAILBOX_HOST, file_name=file_name)
    return TransportTarget(
        partner_isa_id=partner.isa_id,
        host=partner.ftp_host,
        port=partner.ftp_port,
        username=partner.ftp_username,
        password=partner.ftp_password,
        inbound_path=partner.ftp_inbound_path,
        outbound_path=partner.ftp_outbound_path,
        as2_url=partner.as2_url,
        as2_identifier=partner.as2_identifier,
        file_name=file_name,
    )


def _safe_segment(value: str) -> str:
    cleaned = _SAFE_SEGMENT_RE.sub("_", value.strip()).strip("._")
    if not cleaned:
        raise TransportError(f"Invalid mailbox path segment: {value!r}")
    return cleaned


def _mailbox_dir(protocol: str, target: TransportTarget) -> Path:
    if not target.host:
        raise TransportError(f"{protocol} host is not configured for this trading partner")

    root = Path(settings.EDI_MAILBOX_DIR) / protocol.lower() / _safe_segment(target.host)
    # Partner paths are relative to the mailbox root; no traversal.
    for part in (target.outbound_path or "outbound").replace("\\", "/").split("/"):
        if part and part not in (".", ".."):
            root = root / _safe_segment(part)
    return root


def _check_mailbox(protocol: str, target: TransportTarget) -> TransportResult:
    mailbox = _mailbox_dir(protocol, target)
    try:
        mailbox.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise TransportError(f"{protocol} mailbox unavailable: {exc}") from exc
    if not os.access(mailbox, os.W_OK):
        raise TransportError(f"{protocol} mailbox is not writable: {mailbox}")
    return TransportResult(success=True, protocol=protocol, detail=str(mailbox))


def _deliver_to_mailbox(protocol: str, payload: str, target: TransportTarget) -> TransportResult:
    if not target.file_name:
        raise TransportError(f"{protocol} delivery requires a file name")

    mailbox = Path(_check_mailbox(protocol, target).detail)
    destination = mailbox / _safe_segment(target.file_name)
    temp_path = destination.with_suffix(destination.suffix + ".part")
    try:
        temp_path.write_text(payload, encoding="utf-8")
        # Rename so pickup agents never see a partial file.
        temp_path.replace(destination)
    except OSError as exc:
        raise TransportError(f"{protocol} delivery failed: {exc}") from exc

    logger.info(f"Delivered {target.file_name} via {protocol} to {destination}")
    return TransportResult(success=True, protocol=protocol, detail=str(destination))


class FtpTransport:
    protocol = "FTP"

    def test_connection(self, target: TransportTarget) -> TransportResult:
        return _check_mailbox(self.protocol, target)

    def send(self, payload: str, target: TransportTarget) -> TransportResult:
        return _deliver_to_mailbox(self.protocol, payload, target)


class SftpTransport:
    protocol = "SFTP"

    def test_connection(self, target: TransportTarget) -> TransportResult:
        if not target.username:
            raise TransportError("SFTP username is not configured for this trading partner")
        return _check_mailbox(self.protocol, target)

    def send(self, payload: str, target: TransportTarget) -> TransportResult:
        if not target.username:
            raise TransportError("SFTP username is not configured for this trading partner")
        return _deliver_to_mailbox(self.protocol, payload, target)


class As2Transport:
    protocol = "AS2"

    def _require_url(self, target: TransportTarget) -> str:
        if not target.as2_url:
            raise TransportError("AS2 URL is not configured for this trading partner")
        return target.as2_url

    def test_connection(self, target: TransportTarget) -> TransportResult:
        url = self._require_url(target)
        try:
            response = requests.head(url, timeout=settings.EDI_AS2_TIMEOUT_SECONDS, allow_redirects=True)
        except requests.RequestException as exc:
            raise TransportError(f"AS2 endpoint unreachable: {exc}") from exc

        if response.status_code >= 500:
            return TransportResult(
                success=False,
                protocol=self.protocol,
                error=f"HTTP_{response.status_code}",
            )
        return TransportResult(success=True, protocol=self.protocol, detail=f"HTTP_{response.status_code}")

    def send(self, payload: str, target: TransportTarget) -> TransportResult:
        url = self._require_url(target)
        headers = {
            "AS2-Version": "1.2",
            "AS2-From": settings.EDI_SENDER_ISA_ID,
            "AS2-To": target.as2_identifier or target.partner_isa_id or "",
            "Message-ID": f"<{target.file_name or 'edi'}@{settings.EDI_SENDER_ISA_ID}>",
            "Content-Type": "application/edi-x12",
        }
        try:
            response = requests.post(
                url,
                data=payload.encode("utf-8"),
                headers=headers,
                timeout=settings.EDI_AS2_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise TransportError(f"AS2 delivery failed: {exc}") from exc

        if response.status_code >= 400:
            raise TransportError(
                f"AS2 delivery rejected: HTTP_{response.status_code}",
                details={"body": response.text[:200]},
            )
        logger.info(f"Delivered {target.file_name} via AS2 to {url}")
        return TransportResult(success=True, protocol=self.protocol, detail=f"HTTP_{response.status_code}")


_TRANSPORTS: dict[str, DeliveryTransport] = {
    transport.protocol: transport
    for transport in (FtpTransport(), SftpTransport(), As2Transport())
}


def get_transport(protocol: str | None) -> DeliveryTransport:
    """Resolve a transport; unknown or missing protocols fall back to the default."""
    return _TRANSPORTS.get(protocol or "", _TRANSPORTS[settings.EDI_DEFAULT_PROTOCOL])


def register_transport(transport: DeliveryTransport) -> None:
    _TRANSPORTS[transport.protocol] = transport
