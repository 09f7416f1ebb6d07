from __future__ import annotations

import os
import tempfile
import uuid
from pathlib import Path

import pytest

# Settings are read once at import; point them at a throwaway SQLite file first.
_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="edi-engine-tests-"))
os.environ["DATABASE_URL"] = os.environ.get(
    "EDI_TEST_DATABASE_URL", f"sqlite:///{_TEST_DB_DIR / 'edi_engine.db'}"
)
os.environ.setdefault("EDI_EVENTS_WEBHOOK_URL", "")

from edi_engine.config import settings  # noqa: E402
from edi_engine.database import Base, SessionLocal, engine  # noqa: E402
from edi_engine import models  # noqa: E402,F401
from edi_engine.models import TradingPartner  # noqa: E402
from edi_engine.services.control_numbers import ControlNumberAllocator  # noqa: E402

TENANT_ID = "tenant-a"
OTHER_TENANT_ID = "tenant-b"


class RecordingPublisher:
    """Collects emitted events instead of writing outbox rows."""

    def __init__(self):
        self.emitted: list[tuple[str, dict]] = []

    def emit(self, event_name, payload):
        self.emitted.append((event_name, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.emitted]


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def allocator():
    return ControlNumberAllocator(SessionLocal)


@pytest.fixture
def events():
    return RecordingPublisher()


@pytest.fixture
def mailbox_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "EDI_MAILBOX_DIR", str(tmp_path / "mailboxes"))
    return tmp_path / "mailboxes"


def make_partner(db, *, tenant_id: str = TENANT_ID, isa_id: str = "ACMESHIP", **overrides) -> TradingPartner:
    values = {
        "id": uuid.uuid4(),
        "tenant_id": tenant_id,
        "partner_name": f"Partner {isa_id}",
        "partner_type": "CUSTOMER",
        "isa_id": isa_id,
        "protocol": "FTP",
        "ftp_host": "ftp.partner.example",
        "send_functional_ack": True,
        "require_functional_ack": True,
        "test_mode": False,
        "is_active": True,
    }
    values.update(overrides)
    partner = TradingPartner(**values)
    db.add(partner)
    db.commit()
    return partner


@pytest.fixture
def partner(db):
    return make_partner(db)
