"""
Celery worker: drains transmission queues and the domain event outbox.
Both tasks lock rows with SELECT FOR UPDATE SKIP LOCKED so workers can run concurrently.
"""
from celery import Celery
import logging
from .config import settings
from .database import SessionLocal
from .models import EdiMessage
from .services.edi_codes import QUEUE_PROCESSABLE_STATUSES
from .services.events import dispatch_pending_events
from .use_cases.edi_queue import process_queue_use_case

logger = logging.getLogger(__name__)

celery_app = Celery(
    "edi_engine",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)


@celery_app.task(name="process_edi_queue")
def process_edi_queue(batch_size: int | None = None):
    """
    Run one queue batch for every tenant with pending or queued messages.
    """
    db = SessionLocal()
    processed: dict[str, int] = {}

    try:
        tenant_ids = [
            row.tenant_id
            for row in db.query(EdiMessage.tenant_id)
            .filter(
                EdiMessage.status.in_(QUEUE_PROCESSABLE_STATUSES),
                EdiMessage.deleted_at.is_(None),
            )
            .distinct()
            .all()
        ]
        db.rollback()

        for tenant_id in tenant_ids:
            count = process_queue_use_case(db=db, tenant_id=tenant_id, batch_size=batch_size)
            if count:
                processed[tenant_id] = count

        logger.info(f"📤 Processed EDI queues for {len(processed)}/{len(tenant_ids)} tenants")

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error processing EDI queue: {e}", exc_info=True)
        raise

    finally:
        db.close()

    return {"processed": processed}


@celery_app.task(name="dispatch_edi_events")
def dispatch_edi_events(batch_size: int = 100):
    """
    Deliver pending outbox events to the configured webhook.
    """
    db = SessionLocal()

    try:
        result = dispatch_pending_events(db, batch_size=batch_size)
        logger.info(f"✅ Dispatched {result['sent']}/{result['total_locked']} EDI events")

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error dispatching EDI events: {e}", exc_info=True)
        raise

    finally:
        db.close()

    return result


# Schedule periodic processing
celery_app.conf.beat_schedule = {
    'process-edi-queue': {
        'task': 'process_edi_queue',
        'schedule': settings.EDI_QUEUE_PROCESS_INTERVAL_SECONDS,
    },
    'dispatch-edi-events': {
        'task': 'dispatch_edi_events',
        'schedule': settings.EDI_EVENTS_DISPATCH_INTERVAL_SECONDS,
    },
}
