"""SQLAlchemy models for the EDI interchange engine."""
from sqlalchemy import (
    JSON, Boolean, Column, String, Integer, DateTime, Text, Uuid,
    ForeignKey, CheckConstraint, Index, UniqueConstraint, text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from .database import Base
from .services.edi_codes import (
    ACK_STATUSES,
    COMM_ACTIONS,
    COMM_STATUSES,
    CONTROL_TYPES,
    DIRECTIONS,
    MESSAGE_STATUSES,
    PARTNER_TYPES,
    PROTOCOLS,
    TRANSACTION_TYPES,
    VALIDATION_STATUSES,
)

# JSONB on PostgreSQL, generic JSON elsewhere (SQLite test databases).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class TradingPartner(Base):
    """External counterparty exchanging EDI documents with a tenant."""
    __tablename__ = "edi_trading_partners"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    partner_name = Column(String(255), nullable=False)
    partner_type = Column(String(20), nullable=False, default="CUSTOMER")
    isa_id = Column(String(15), nullable=False, index=True)
    gs_id = Column(String(15), nullable=True)
    duns = Column(String(20), nullable=True)
    scac = Column(String(10), nullable=True)
    protocol = Column(String(10), nullable=False, default="FTP")

    # FTP / SFTP mailbox
    ftp_host = Column(String(255), nullable=True)
    ftp_port = Column(Integer, nullable=True)
    ftp_username = Column(String(255), nullable=True)
    ftp_password = Column(String(255), nullable=True)
    ftp_inbound_path = Column(String(500), nullable=True)
    ftp_outbound_path = Column(String(500), nullable=True)

    # AS2
    as2_url = Column(String(500), nullable=True)
    as2_identifier = Column(String(128), nullable=True)
    van_mailbox = Column(String(128), nullable=True)

    send_functional_ack = Column(Boolean, nullable=False, default=True)
    require_functional_ack = Column(Boolean, nullable=False, default=True)
    test_mode = Column(Boolean, nullable=False, default=False)
    field_mappings = Column(JSONType, nullable=True)
    external_id = Column(String(255), nullable=True)
    source_system = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_by_id = Column(String(64), nullable=True)
    updated_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    __table_args__ = (
        CheckConstraint(protocol.in_(PROTOCOLS), name="chk_edi_partner_protocol"),
        CheckConstraint(partner_type.in_(PARTNER_TYPES), name="chk_edi_partner_type"),
        Index(
            "uq_edi_partner_tenant_isa_live",
            "tenant_id",
            "isa_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    # Relationships
    messages = relationship("EdiMessage", back_populates="trading_partner")


class ControlNumberCounter(Base):
    """Per-key envelope counter; mutated only by atomic increment-and-read."""
    __tablename__ = "edi_control_numbers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False)
    control_type = Column(String(3), nullable=False)
    trading_partner_id = Column(Uuid, nullable=False)
    transaction_type = Column(String(3), nullable=False)
    current_number = Column(Integer, nullable=False, default=1)
    min_value = Column(Integer, nullable=False, default=1)
    max_value = Column(Integer, nullable=False, default=999_999_999)
    prefix = Column(String(10), nullable=True)
    suffix = Column(String(10), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "control_type", "trading_partner_id", "transaction_type",
            name="uq_edi_control_number_key",
        ),
        CheckConstraint(control_type.in_(CONTROL_TYPES), name="chk_edi_control_type"),
        CheckConstraint(current_number >= 1, name="chk_edi_control_number_positive"),
        CheckConstraint(current_number <= max_value, name="chk_edi_control_number_in_range"),
    )


class EdiMessage(Base):
    """One inbound or outbound interchange transaction ("document")."""
    __tablename__ = "edi_messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    trading_partner_id = Column(Uuid, ForeignKey("edi_trading_partners.id"), nullable=False, index=True)
    message_id = Column(String(64), nullable=False, unique=True)
    transaction_type = Column(String(3), nullable=False, index=True)
    direction = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING", index=True)

    isa_control_number = Column(String(32), nullable=False)
    gs_control_number = Column(String(32), nullable=False)
    st_control_number = Column(String(32), nullable=False)

    entity_type = Column(String(20), nullable=True)
    entity_id = Column(String(128), nullable=True, index=True)

    raw_content = Column(Text, nullable=False)
    parsed_content = Column(JSONType, nullable=True)
    validation_status = Column(String(10), nullable=True)
    validation_errors = Column(JSONType, nullable=True)

    retry_count = Column(Integer, nullable=False, default=0)
    last_retry_at = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    functional_ack_id = Column(Uuid, nullable=True)

    created_by_id = Column(String(64), nullable=True)
    updated_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    __table_args__ = (
        CheckConstraint(transaction_type.in_(TRANSACTION_TYPES), name="chk_edi_message_transaction_type"),
        CheckConstraint(direction.in_(DIRECTIONS), name="chk_edi_message_direction"),
        CheckConstraint(status.in_(MESSAGE_STATUSES), name="chk_edi_message_status"),
        CheckConstraint(
            validation_status.in_(VALIDATION_STATUSES),
            name="chk_edi_message_validation_status",
        ),
        CheckConstraint(retry_count >= 0, name="chk_edi_message_retry_count_non_negative"),
        Index("idx_edi_messages_queue", "tenant_id", "status", "created_at"),
    )

    # Relationships
    trading_partner = relationship("TradingPartner", back_populates="messages")


class EdiAcknowledgment(Base):
    """Functional acknowledgment (997) received for an original message. Immutable."""
    __tablename__ = "edi_acknowledgments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    original_message_id = Column(Uuid, ForeignKey("edi_messages.id"), nullable=False, index=True)
    ack_control_number = Column(String(32), nullable=False)
    ack_status = Column(String(10), nullable=False)
    error_codes = Column(JSONType, nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(ack_status.in_(ACK_STATUSES), name="chk_edi_ack_status"),
    )


class TransactionMapping(Base):
    """Per-partner field mapping / transform / validation rule sets."""
    __tablename__ = "edi_transaction_mappings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    trading_partner_id = Column(Uuid, ForeignKey("edi_trading_partners.id"), nullable=False, index=True)
    transaction_type = Column(String(3), nullable=False)
    name = Column(String(255), nullable=True)
    field_mappings = Column(JSONType, nullable=False, default=dict)
    default_values = Column(JSONType, nullable=True)
    transform_rules = Column(JSONType, nullable=True)
    validation_rules = Column(JSONType, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by_id = Column(String(64), nullable=True)
    updated_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(transaction_type.in_(TRANSACTION_TYPES), name="chk_edi_mapping_transaction_type"),
        Index(
            "uq_edi_mapping_active_key",
            "tenant_id",
            "trading_partner_id",
            "transaction_type",
            unique=True,
            postgresql_where=text("is_active AND deleted_at IS NULL"),
            sqlite_where=text("is_active AND deleted_at IS NULL"),
        ),
    )


class CommunicationLog(Base):
    """Append-only record of a delivery attempt or connectivity test."""
    __tablename__ = "edi_communication_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    trading_partner_id = Column(Uuid, ForeignKey("edi_trading_partners.id"), nullable=True, index=True)
    edi_message_id = Column(Uuid, ForeignKey("edi_messages.id"), nullable=True)
    direction = Column(String(10), nullable=False, default="OUTBOUND")
    protocol = Column(String(10), nullable=False)
    action = Column(String(10), nullable=False)
    status = Column(String(10), nullable=False)
    file_name = Column(String(255), nullable=True)
    message_count = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_ms = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(action.in_(COMM_ACTIONS), name="chk_edi_comm_action"),
        CheckConstraint(status.in_(COMM_STATUSES), name="chk_edi_comm_status"),
        Index("idx_edi_comm_logs_partner_started", "tenant_id", "trading_partner_id", "started_at"),
    )


class EdiEventOutbox(Base):
    """
    Domain event outbox - ONE ROW PER EVENT.
    Written in the same transaction as the state change; drained by Celery
    with SELECT FOR UPDATE SKIP LOCKED.
    """
    __tablename__ = "edi_event_outbox"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=True, index=True)
    event_name = Column(String(64), nullable=False, index=True)
    payload = Column(JSONType, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending/sent/failed/skipped
    attempts = Column(Integer, nullable=False, default=0)
    next_retry_at = Column(DateTime(timezone=True), nullable=True, index=True)
    last_error = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(
            status.in_(["pending", "sent", "failed", "skipped"]),
            name="chk_edi_event_outbox_status",
        ),
    )
