"""edi engine schema

Revision ID: 001_edi_engine_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_edi_engine_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*, soft_delete: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    ]
    if soft_delete:
        columns.append(sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True))
    return columns


def upgrade() -> None:
    op.create_table(
        'edi_trading_partners',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column('partner_name', sa.String(255), nullable=False),
        sa.Column('partner_type', sa.String(20), nullable=False, server_default='CUSTOMER'),
        sa.Column('isa_id', sa.String(15), nullable=False),
        sa.Column('gs_id', sa.String(15)),
        sa.Column('duns', sa.String(20)),
        sa.Column('scac', sa.String(10)),
        sa.Column('protocol', sa.String(10), nullable=False, server_default='FTP'),
        sa.Column('ftp_host', sa.String(255)),
        sa.Column('ftp_port', sa.Integer()),
        sa.Column('ftp_username', sa.String(255)),
        sa.Column('ftp_password', sa.String(255)),
        sa.Column('ftp_inbound_path', sa.String(500)),
        sa.Column('ftp_outbound_path', sa.String(500)),
        sa.Column('as2_url', sa.String(500)),
        sa.Column('as2_identifier', sa.String(128)),
        sa.Column('van_mailbox', sa.String(128)),
        sa.Column('send_functional_ack', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('require_functional_ack', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('test_mode', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('field_mappings', postgresql.JSONB()),
        sa.Column('external_id', sa.String(255)),
        sa.Column('source_system', sa.String(100)),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by_id', sa.String(64)),
        sa.Column('updated_by_id', sa.String(64)),
        *_timestamps(),
        sa.CheckConstraint("protocol IN ('FTP', 'SFTP', 'AS2')", name='chk_edi_partner_protocol'),
        sa.CheckConstraint(
            "partner_type IN ('CUSTOMER', 'CARRIER', 'VENDOR', 'FACTORING', 'OTHER')",
            name='chk_edi_partner_type',
        ),
    )
    op.create_index('ix_edi_trading_partners_tenant_id', 'edi_trading_partners', ['tenant_id'])
    op.create_index('ix_edi_trading_partners_isa_id', 'edi_trading_partners', ['isa_id'])
    op.create_index('ix_edi_trading_partners_deleted_at', 'edi_trading_partners', ['deleted_at'])
    # ISA ids are unique per tenant among live partners only.
    op.create_index(
        'uq_edi_partner_tenant_isa_live',
        'edi_trading_partners',
        ['tenant_id', 'isa_id'],
        unique=True,
        postgresql_where=sa.text('deleted_at IS NULL'),
    )

    op.create_table(
        'edi_control_numbers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column('control_type', sa.String(3), nullable=False),
        sa.Column('trading_partner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('transaction_type', sa.String(3), nullable=False),
        sa.Column('current_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('min_value', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('max_value', sa.Integer(), nullable=False, server_default='999999999'),
        sa.Column('prefix', sa.String(10)),
        sa.Column('suffix', sa.String(10)),
        *_timestamps(soft_delete=False),
        sa.UniqueConstraint(
            'tenant_id', 'control_type', 'trading_partner_id', 'transaction_type',
            name='uq_edi_control_number_key',
        ),
        sa.CheckConstraint("control_type IN ('ISA', 'GS', 'ST')", name='chk_edi_control_type'),
        sa.CheckConstraint('current_number >= 1', name='chk_edi_control_number_positive'),
        sa.CheckConstraint('current_number <= max_value', name='chk_edi_control_number_in_range'),
    )

    op.create_table(
        'edi_messages',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column(
            'trading_partner_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('edi_trading_partners.id'),
            nullable=False,
        ),
        sa.Column('message_id', sa.String(64), nullable=False, unique=True),
        sa.Column('transaction_type', sa.String(3), nullable=False),
        sa.Column('direction', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('isa_control_number', sa.String(32), nullable=False),
        sa.Column('gs_control_number', sa.String(32), nullable=False),
        sa.Column('st_control_number', sa.String(32), nullable=False),
        sa.Column('entity_type', sa.String(20)),
        sa.Column('entity_id', sa.String(128)),
        sa.Column('raw_content', sa.Text(), nullable=False),
        sa.Column('parsed_content', postgresql.JSONB()),
        sa.Column('validation_status', sa.String(10)),
        sa.Column('validation_errors', postgresql.JSONB()),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_retry_at', sa.DateTime(timezone=True)),
        sa.Column('processed_at', sa.DateTime(timezone=True)),
        sa.Column('functional_ack_id', postgresql.UUID(as_uuid=True)),
        sa.Column('created_by_id', sa.String(64)),
        sa.Column('updated_by_id', sa.String(64)),
        *_timestamps(),
        sa.CheckConstraint(
            "transaction_type IN ('204', '210', '214', '990', '997')",
            name='chk_edi_message_transaction_type',
        ),
        sa.CheckConstraint("direction IN ('INBOUND', 'OUTBOUND')", name='chk_edi_message_direction'),
        sa.CheckConstraint(
            "status IN ('PENDING', 'QUEUED', 'SENT', 'DELIVERED', 'ACKNOWLEDGED', 'ERROR', 'REJECTED')",
            name='chk_edi_message_status',
        ),
        sa.CheckConstraint(
            "validation_status IN ('VALID', 'ERROR')",
            name='chk_edi_message_validation_status',
        ),
        sa.CheckConstraint('retry_count >= 0', name='chk_edi_message_retry_count_non_negative'),
    )
    op.create_index('ix_edi_messages_tenant_id', 'edi_messages', ['tenant_id'])
    op.create_index('ix_edi_messages_trading_partner_id', 'edi_messages', ['trading_partner_id'])
    op.create_index('ix_edi_messages_transaction_type', 'edi_messages', ['transaction_type'])
    op.create_index('ix_edi_messages_status', 'edi_messages', ['status'])
    op.create_index('ix_edi_messages_entity_id', 'edi_messages', ['entity_id'])
    op.create_index('ix_edi_messages_created_at', 'edi_messages', ['created_at'])
    op.create_index('ix_edi_messages_deleted_at', 'edi_messages', ['deleted_at'])
    op.create_index('idx_edi_messages_queue', 'edi_messages', ['tenant_id', 'status', 'created_at'])

    op.create_table(
        'edi_acknowledgments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column(
            'original_message_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('edi_messages.id'),
            nullable=False,
        ),
        sa.Column('ack_control_number', sa.String(32), nullable=False),
        sa.Column('ack_status', sa.String(10), nullable=False),
        sa.Column('error_codes', postgresql.JSONB()),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.CheckConstraint("ack_status IN ('ACCEPTED', 'REJECTED', 'PARTIAL')", name='chk_edi_ack_status'),
    )
    op.create_index('ix_edi_acknowledgments_tenant_id', 'edi_acknowledgments', ['tenant_id'])
    op.create_index('ix_edi_acknowledgments_original_message_id', 'edi_acknowledgments', ['original_message_id'])

    op.create_table(
        'edi_transaction_mappings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column(
            'trading_partner_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('edi_trading_partners.id'),
            nullable=False,
        ),
        sa.Column('transaction_type', sa.String(3), nullable=False),
        sa.Column('name', sa.String(255)),
        sa.Column('field_mappings', postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('default_values', postgresql.JSONB()),
        sa.Column('transform_rules', postgresql.JSONB()),
        sa.Column('validation_rules', postgresql.JSONB()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by_id', sa.String(64)),
        sa.Column('updated_by_id', sa.String(64)),
        *_timestamps(),
        sa.CheckConstraint(
            "transaction_type IN ('204', '210', '214', '990', '997')",
            name='chk_edi_mapping_transaction_type',
        ),
    )
    op.create_index('ix_edi_transaction_mappings_tenant_id', 'edi_transaction_mappings', ['tenant_id'])
    op.create_index(
        'ix_edi_transaction_mappings_trading_partner_id', 'edi_transaction_mappings', ['trading_partner_id']
    )
    # At most one active mapping per (tenant, partner, transaction type).
    op.create_index(
        'uq_edi_mapping_active_key',
        'edi_transaction_mappings',
        ['tenant_id', 'trading_partner_id', 'transaction_type'],
        unique=True,
        postgresql_where=sa.text('is_active AND deleted_at IS NULL'),
    )

    op.create_table(
        'edi_communication_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column('trading_partner_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('edi_trading_partners.id')),
        sa.Column('edi_message_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('edi_messages.id')),
        sa.Column('direction', sa.String(10), nullable=False, server_default='OUTBOUND'),
        sa.Column('protocol', sa.String(10), nullable=False),
        sa.Column('action', sa.String(10), nullable=False),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('file_name', sa.String(255)),
        sa.Column('message_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        sa.Column('duration_ms', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.CheckConstraint("action IN ('SEND', 'CONNECT')", name='chk_edi_comm_action'),
        sa.CheckConstraint("status IN ('SUCCESS', 'FAILED')", name='chk_edi_comm_status'),
    )
    op.create_index('ix_edi_communication_logs_tenant_id', 'edi_communication_logs', ['tenant_id'])
    op.create_index(
        'ix_edi_communication_logs_trading_partner_id', 'edi_communication_logs', ['trading_partner_id']
    )
    op.create_index(
        'idx_edi_comm_logs_partner_started',
        'edi_communication_logs',
        ['tenant_id', 'trading_partner_id', 'started_at'],
    )

    op.create_table(
        'edi_event_outbox',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', sa.String(64)),
        sa.Column('event_name', sa.String(64), nullable=False),
        sa.Column('payload', postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('next_retry_at', sa.DateTime(timezone=True)),
        sa.Column('last_error', sa.Text()),
        sa.Column('sent_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.CheckConstraint(
            "status IN ('pending', 'sent', 'failed', 'skipped')",
            name='chk_edi_event_outbox_status',
        ),
    )
    op.create_index('ix_edi_event_outbox_tenant_id', 'edi_event_outbox', ['tenant_id'])
    op.create_index('ix_edi_event_outbox_event_name', 'edi_event_outbox', ['event_name'])
    op.create_index('ix_edi_event_outbox_status', 'edi_event_outbox', ['status'])
    op.create_index('ix_edi_event_outbox_next_retry_at', 'edi_event_outbox', ['next_retry_at'])
    op.create_index('ix_edi_event_outbox_created_at', 'edi_event_outbox', ['created_at'])


def downgrade() -> None:
    op.drop_table('edi_event_outbox')
    op.drop_table('edi_communication_logs')
    op.drop_table('edi_transaction_mappings')
    op.drop_table('edi_acknowledgments')
    op.drop_table('edi_messages')
    op.drop_table('edi_control_numbers')
    op.drop_table('edi_trading_partners')
