"""
Endpoints de documentos de factura

- GET  /bills/{bill_id}/invoice: descarga (local) o redirección al URL firmado (MinIO)
- POST /bills/{bill_id}/invoice: regenera el documento de una factura existente
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse, RedirectResponse

from billing.common.exceptions import ResourceNotFound
from billing.dependencies.dbDependencies import db_dependency
from billing.modules.invoices.schemas import InvoiceOut
from billing.modules.bills.service import BillService
from billing.modules.invoices.service import InvoiceService, get_invoice_service
from billing.modules.invoices.storage import LocalInvoiceStorage

invoices_router = APIRouter(prefix="/bills", tags=["Invoices"])


@invoices_router.get("/{bill_id}/invoice")
def download_invoice(
    bill_id: int,
    db: db_dependency,
    invoices: InvoiceService = Depends(get_invoice_service)
):
    """Obtener el PDF de una factura."""
    BillService(db).get_bill(bill_id)
    location = invoices.locate(bill_id)
    if location is None:
        raise ResourceNotFound(f"invoice for bill {bill_id} not found", bill_id=bill_id)

    if isinstance(invoices.storage, LocalInvoiceStorage):
        return FileResponse(
            invoices.storage.path(location.filename),
            media_type="application/pdf",
            filename=location.filename
        )
    return RedirectResponse(location.url)


@invoices_router.post("/{bill_id}/invoice", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED)
def regenerate_invoice(
    bill_id: int,
    db: db_dependency,
    invoices: InvoiceService = Depends(get_invoice_service)
):
    """
    Regenerar el PDF de una factura

    Útil cuando la generación falló después del commit.
    """
    bill = BillService(db).get_bill(bill_id)
    location = invoices.generate_for_bill(bill)
    return InvoiceOut(bill_id=location.bill_id, filename=location.filename, invoice_url=location.url)
