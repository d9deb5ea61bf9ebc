"""
Tareas en segundo plano para documentos de factura

La generación del PDF después del commit es de mejor esfuerzo. Estas tareas
dan una segunda oportunidad a los documentos faltantes sin tocar las facturas.
"""
from billing.common.exceptions import ArtifactGenerationFailure, ResourceNotFound
from billing.core.celery import celery_app
from billing.core.config import settings
from billing.database.database import SessionLocal
from billing.modules.bills.service import BillService
from billing.modules.invoices.service import get_invoice_service
import logging

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def regenerate_invoice(self, bill_id: int):
    """
    Regenerar el documento de una factura confirmada
    """
    db = SessionLocal()
    try:
        bill = BillService(db).get_bill(bill_id)
        location = get_invoice_service().generate_for_bill(bill)
        return {"status": "generated", "bill_id": bill_id, "url": location.url}

    except ResourceNotFound:
        logger.warning(f"Bill {bill_id} no longer exists; skipping invoice regeneration")
        return {"status": "missing_bill", "bill_id": bill_id}

    except ArtifactGenerationFailure as e:
        logger.error(f"Invoice regeneration failed for bill {bill_id}, retrying")
        raise self.retry(exc=e, countdown=60)

    finally:
        db.close()


def enqueue_missing_invoices(db, invoice_service, limit: int, enqueue=None) -> dict:
    """Encola la regeneración de cada factura reciente sin documento guardado"""
    bills = BillService(db).list_bills(limit=limit)
    missing = invoice_service.find_missing(bills)
    enqueue = enqueue or regenerate_invoice.delay
    for bill_id in missing:
        enqueue(bill_id)

    if missing:
        logger.info(f"Queued invoice regeneration for bills: {missing}")
    return {"checked": len(bills), "enqueued": missing}


@celery_app.task
def reconcile_missing_invoices():
    """
    Tarea periódica: buscar facturas sin documento
    """
    db = SessionLocal()
    try:
        return enqueue_missing_invoices(db, get_invoice_service(), settings.INVOICE_RECONCILE_LIMIT)
    finally:
        db.close()
