"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Literal, Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID


TransactionType = Literal["204", "210", "214", "990", "997"]
Direction = Literal["INBOUND", "OUTBOUND"]
MessageStatus = Literal["PENDING", "QUEUED", "SENT", "DELIVERED", "ACKNOWLEDGED", "ERROR", "REJECTED"]
CommProtocol = Literal["FTP", "SFTP", "AS2"]
PartnerType = Literal["CUSTOMER", "CARRIER", "VENDOR", "FACTORING", "OTHER"]
AckStatus = Literal["ACCEPTED", "REJECTED", "PARTIAL"]


class CamelModel(BaseModel):
    """EDI payloads travel camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CamelResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class PageMeta(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


# Document schemas
class ImportEdiDocumentRequest(CamelModel):
    trading_partner_id: UUID
    transaction_type: TransactionType
    raw_content: str
    direction: Optional[Direction] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None


class ReprocessDocumentRequest(CamelModel):
    reason: Optional[str] = None


class AcknowledgeDocumentRequest(CamelModel):
    ack_control_number: str = Field(min_length=1, max_length=32)
    ack_status: AckStatus
    error_codes: Optional[list[str]] = None


class DocumentQuery(CamelModel):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    transaction_type: Optional[TransactionType] = None
    direction: Optional[Direction] = None
    status: Optional[MessageStatus] = None
    trading_partner_id: Optional[UUID] = None
    entity_id: Optional[str] = None


class EdiMessageResponse(CamelResponse):
    id: UUID
    tenant_id: str
    trading_partner_id: UUID
    message_id: str
    transaction_type: str
    direction: str
    status: str
    isa_control_number: str
    gs_control_number: str
    st_control_number: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    validation_status: Optional[str] = None
    validation_errors: Optional[Any] = None
    retry_count: int
    last_retry_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    functional_ack_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EdiAcknowledgmentResponse(CamelResponse):
    id: UUID
    original_message_id: UUID
    ack_control_number: str
    ack_status: str
    error_codes: Optional[Any] = None
    received_at: datetime


# Generation schemas
class GenerateRequestBase(CamelModel):
    trading_partner_id: UUID
    send_immediately: bool = False


class TenderStop(CamelModel):
    sequence: Optional[int] = None
    stop_type: Literal["PICKUP", "DELIVERY"] = "PICKUP"
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    weight: Optional[Decimal] = None


class Generate204Request(GenerateRequestBase):
    load_id: str
    order_id: Optional[str] = None
    shipment_id: Optional[str] = None
    scac: Optional[str] = None
    payment_method: Optional[str] = None
    purpose: Optional[Literal["ORIGINAL", "CANCEL"]] = None
    equipment_type: Optional[str] = None
    stops: list[TenderStop] = Field(default_factory=list)
    total_weight: Optional[Decimal] = None
    total_charges: Optional[Decimal] = None


class InvoiceLineItem(CamelModel):
    description: Optional[str] = None
    rate: Optional[Decimal] = None
    rate_qualifier: Optional[str] = None
    amount: Decimal


class Generate210Request(GenerateRequestBase):
    invoice_id: str
    invoice_number: Optional[str] = None
    load_id: Optional[str] = None
    shipment_id: Optional[str] = None
    payment_method: Optional[str] = None
    invoice_date: Optional[datetime] = None
    currency: Optional[str] = None
    bill_to_name: Optional[str] = None
    total_amount: Optional[Decimal] = None
    line_items: list[InvoiceLineItem] = Field(default_factory=list)


class Generate214Request(GenerateRequestBase):
    load_id: str
    status_code: str
    reason_code: Optional[str] = None
    reference_id: Optional[str] = None
    shipment_id: Optional[str] = None
    scac: Optional[str] = None
    status_at: Optional[datetime] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


class Generate990Request(GenerateRequestBase):
    load_id: str
    shipment_id: Optional[str] = None
    scac: Optional[str] = None
    accepted: bool = True
    reason: Optional[str] = None


class Generate997Request(GenerateRequestBase):
    original_message_id: UUID
    ack_status: AckStatus = "ACCEPTED"
    error_codes: Optional[list[str]] = None


class SendDocumentResponse(CamelModel):
    success: bool
    protocol: str
    file_name: str


# Queue schemas
class QueueStats(CamelModel):
    total: int
    by_status: dict[str, int]


class QueueProcessResponse(CamelModel):
    processed: int


# Trading partner schemas
class TradingPartnerBase(CamelModel):
    partner_name: str = Field(min_length=1, max_length=255)
    partner_type: PartnerType = "CUSTOMER"
    isa_id: str = Field(min_length=1, max_length=15)
    gs_id: Optional[str] = Field(None, max_length=15)
    duns: Optional[str] = None
    scac: Optional[str] = None
    protocol: CommProtocol = "FTP"
    ftp_host: Optional[str] = None
    ftp_port: Optional[int] = Field(None, ge=1, le=65535)
    ftp_username: Optional[str] = None
    ftp_password: Optional[str] = None
    ftp_inbound_path: Optional[str] = None
    ftp_outbound_path: Optional[str] = None
    as2_url: Optional[str] = None
    as2_identifier: Optional[str] = None
    van_mailbox: Optional[str] = None
    send_functional_ack: bool = True
    require_functional_ack: bool = True
    test_mode: bool = False
    field_mappings: Optional[dict[str, Any]] = None
    external_id: Optional[str] = None
    source_system: Optional[str] = None


class TradingPartnerCreate(TradingPartnerBase):
    pass


class TradingPartnerUpdate(CamelModel):
    partner_name: Optional[str] = Field(None, min_length=1, max_length=255)
    partner_type: Optional[PartnerType] = None
    isa_id: Optional[str] = Field(None, min_length=1, max_length=15)
    gs_id: Optional[str] = Field(None, max_length=15)
    duns: Optional[str] = None
    scac: Optional[str] = None
    protocol: Optional[CommProtocol] = None
    ftp_host: Optional[str] = None
    ftp_port: Optional[int] = Field(None, ge=1, le=65535)
    ftp_username: Optional[str] = None
    ftp_password: Optional[str] = None
    ftp_inbound_path: Optional[str] = None
    ftp_outbound_path: Optional[str] = None
    as2_url: Optional[str] = None
    as2_identifier: Optional[str] = None
    van_mailbox: Optional[str] = None
    send_functional_ack: Optional[bool] = None
    require_functional_ack: Optional[bool] = None
    test_mode: Optional[bool] = None
    field_mappings: Optional[dict[str, Any]] = None

    @field_validator(
        "partner_name", "partner_type", "isa_id", "protocol",
        "send_functional_ack", "require_functional_ack", "test_mode",
        mode="before",
    )
    @classmethod
    def reject_null(cls, value):
        """Omit a field to keep it; these columns cannot be cleared."""
        if value is None:
            raise ValueError("must not be null")
        return value


class TradingPartnerQuery(CamelModel):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    is_active: Optional[bool] = None
    protocol: Optional[CommProtocol] = None
    partner_type: Optional[PartnerType] = None
    search: Optional[str] = None


class TradingPartnerResponse(CamelResponse):
    id: UUID
    partner_name: str
    partner_type: str
    isa_id: str
    gs_id: Optional[str] = None
    duns: Optional[str] = None
    scac: Optional[str] = None
    protocol: str
    ftp_host: Optional[str] = None
    ftp_port: Optional[int] = None
    ftp_username: Optional[str] = None
    ftp_inbound_path: Optional[str] = None
    ftp_outbound_path: Optional[str] = None
    as2_url: Optional[str] = None
    as2_identifier: Optional[str] = None
    van_mailbox: Optional[str] = None
    send_functional_ack: bool
    require_functional_ack: bool
    test_mode: bool
    is_active: bool
    created_at: Optional[datetime] = None


class ConnectionTestResponse(CamelModel):
    success: bool
    protocol: str
    error: Optional[str] = None


class CommunicationLogResponse(CamelResponse):
    id: UUID
    protocol: str
    action: str
    status: str
    direction: str
    file_name: Optional[str] = None
    message_count: int
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_ms: int
    error_message: Optional[str] = None


# Transaction mapping schemas
class TransactionMappingCreate(CamelModel):
    trading_partner_id: UUID
    transaction_type: TransactionType
    name: Optional[str] = None
    field_mappings: dict[str, Any] = Field(default_factory=dict)
    default_values: Optional[dict[str, Any]] = None
    transform_rules: Optional[Any] = None
    validation_rules: Optional[Any] = None
    is_active: bool = True


class TransactionMappingUpdate(CamelModel):
    name: Optional[str] = None
    field_mappings: Optional[dict[str, Any]] = None
    default_values: Optional[dict[str, Any]] = None
    transform_rules: Optional[Any] = None
    validation_rules: Optional[Any] = None
    is_active: Optional[bool] = None

    @field_validator("field_mappings", "is_active", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class TransactionMappingResponse(CamelResponse):
    id: UUID
    trading_partner_id: UUID
    transaction_type: str
    name: Optional[str] = None
    field_mappings: dict[str, Any]
    default_values: Optional[dict[str, Any]] = None
    transform_rules: Optional[Any] = None
    validation_rules: Optional[Any] = None
    is_active: bool
    created_at: Optional[datetime] = None


class EdiMessagePage(PageMeta):
    data: list[EdiMessageResponse]


class TradingPartnerPage(PageMeta):
    data: list[TradingPartnerResponse]
