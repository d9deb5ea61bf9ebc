"""
Routers FastAPI para facturas de venta (Bills)

- POST /bills: crea la factura (transacción atómica) y luego genera el PDF
- GET  /bills: lista de facturas con sus líneas
- GET  /bills/{bill_id}: detalle de una factura
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List

from billing.dependencies.dbDependencies import db_dependency
from billing.modules.bills.schemas import BillCreate, BillCreatedOut, BillOut
from billing.modules.bills.service import BillService
from billing.modules.invoices.service import InvoiceService, get_invoice_service

bills_router = APIRouter(prefix="/bills", tags=["Bills"])


@bills_router.post("", response_model=BillCreatedOut, status_code=status.HTTP_201_CREATED)
def create_bill(
    bill_data: BillCreate,
    db: db_dependency,
    invoices: InvoiceService = Depends(get_invoice_service)
):
    """
    Crear una factura de venta

    El stock de cada producto se valida y descuenta bajo lock dentro de una
    única transacción. El PDF se genera después del commit: si falla, la
    respuesta es 500 con el id de la factura, que queda confirmada igualmente.
    """
    bill = BillService(db).create_bill(bill_data)
    location = invoices.generate_for_bill(bill)
    return BillCreatedOut(**BillOut.model_validate(bill).model_dump(), invoice_url=location.url)


@bills_router.get("", response_model=List[BillOut])
def list_bills(
    db: db_dependency,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0)
):
    """Listar facturas con sus líneas, más recientes primero."""
    return BillService(db).list_bills(limit=limit, offset=offset)


@bills_router.get("/{bill_id}", response_model=BillOut)
def get_bill(bill_id: int, db: db_dependency):
    return BillService(db).get_bill(bill_id)
