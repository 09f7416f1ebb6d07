"""Seed database with demo trading partners and mappings."""
from edi_engine.database import Base, SessionLocal, engine
from edi_engine.models import TradingPartner, TransactionMapping
import uuid

DEMO_TENANT_ID = "demo-tenant"


def seed():
    """Seed database with demo data."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        partners_data = [
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000201'),
                'partner_name': 'Acme Shipper',
                'partner_type': 'CUSTOMER',
                'isa_id': 'ACMESHIP',
                'gs_id': 'ACMESHIP',
                'protocol': 'FTP',
                'ftp_host': 'ftp.acme.example',
                'ftp_outbound_path': 'inbox',
                'test_mode': True,
            },
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000202'),
                'partner_name': 'Roadrunner Freight',
                'partner_type': 'CARRIER',
                'isa_id': 'RRFREIGHT',
                'scac': 'RRFT',
                'protocol': 'SFTP',
                'ftp_host': 'sftp.roadrunner.example',
                'ftp_username': 'tms',
                'ftp_outbound_path': 'edi/in',
            },
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000203'),
                'partner_name': 'Factoring Partners',
                'partner_type': 'FACTORING',
                'isa_id': 'FACTORPRT',
                'protocol': 'AS2',
                'as2_url': 'https://as2.factoring.example/receive',
                'as2_identifier': 'FACTORAS2',
            },
        ]

        for partner_data in partners_data:
            if db.get(TradingPartner, partner_data['id']):
                print(f"⏭️ Partner {partner_data['isa_id']} already exists")
                continue
            db.add(TradingPartner(tenant_id=DEMO_TENANT_ID, **partner_data))
        db.flush()

        mapping_id = uuid.UUID('00000000-0000-0000-0000-000000000301')
        if not db.get(TransactionMapping, mapping_id):
            db.add(
                TransactionMapping(
                    id=mapping_id,
                    tenant_id=DEMO_TENANT_ID,
                    trading_partner_id=partners_data[0]['id'],
                    transaction_type='204',
                    name='Acme load tender',
                    field_mappings={'loadId': 'L11.LO', 'orderId': 'L11.PO'},
                    default_values={'paymentMethod': 'PP'},
                    is_active=True,
                )
            )

        db.commit()
        print("✅ Database seeded successfully!")
        print(f"\nDemo tenant: {DEMO_TENANT_ID}")
        for partner_data in partners_data:
            print(f"  {partner_data['isa_id']} ({partner_data['protocol']})")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
