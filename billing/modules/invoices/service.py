"""
Generación de documentos de factura (post-commit)

Corre siempre después del commit de la factura y fuera de su transacción.
Un fallo aquí se informa como ArtifactGenerationFailure, pero nunca revierte
la factura ya confirmada: la factura existe con o sin documento.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional
import logging

from billing.common.exceptions import ArtifactGenerationFailure
from billing.modules.invoices.renderer import invoice_filename, render_invoice_pdf
from billing.modules.invoices.storage import build_invoice_storage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvoiceLocation:
    bill_id: int
    filename: str
    url: str


class InvoiceService:
    """Servicio para generar y ubicar documentos de factura"""

    def __init__(self, storage, renderer=render_invoice_pdf):
        self.storage = storage
        self.renderer = renderer

    def generate_for_bill(self, bill) -> InvoiceLocation:
        """
        Renderiza y guarda el PDF de una factura confirmada

        Raises:
            ArtifactGenerationFailure: error de render o de almacenamiento
        """
        filename = invoice_filename(bill.id)
        try:
            data = self.renderer(bill)
            url = self.storage.save(filename, data)
        except Exception as e:
            logger.exception(f"Invoice generation failed for bill {bill.id}: {e}")
            raise ArtifactGenerationFailure(bill.id) from e

        logger.info(f"Invoice generated for bill {bill.id}: {filename}")
        return InvoiceLocation(bill_id=bill.id, filename=filename, url=url)

    def locate(self, bill_id: int) -> Optional[InvoiceLocation]:
        """Ubicación del documento si existe"""
        filename = invoice_filename(bill_id)
        if not self.storage.exists(filename):
            return None
        return InvoiceLocation(bill_id=bill_id, filename=filename, url=self.storage.url(filename))

    def find_missing(self, bills: Iterable) -> List[int]:
        """IDs de facturas sin documento recuperable"""
        return [bill.id for bill in bills if not self.storage.exists(invoice_filename(bill.id))]


def get_invoice_service() -> InvoiceService:
    """Dependencia FastAPI"""
    return InvoiceService(build_invoice_storage())
