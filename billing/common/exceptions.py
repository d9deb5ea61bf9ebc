"""
Errores de dominio del sistema de facturación

Todas las excepciones heredan de HTTPException para que los servicios puedan
lanzarlas directamente y FastAPI las convierta en respuestas. El ``detail``
siempre es un diccionario con un ``code`` estable y un ``message`` legible:

- BillValidationError: datos de entrada incompletos (400, sin mutaciones)
- ProductNotFound / InsufficientStock: validación de stock (400, rollback)
- PersistenceFailure: error inesperado de almacenamiento (500, rollback)
- ArtifactGenerationFailure: la factura quedó confirmada pero el PDF no (500)
- NegativeStock: edición del catálogo que dejaría stock de cierre negativo (400)
"""

from decimal import Decimal
from typing import Any, Optional

from fastapi import HTTPException, status


class BillingError(HTTPException):
    """Base de los errores de dominio"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "billing_error"

    def __init__(self, message: str, **extra: Any):
        self.message = message
        detail = {"code": self.code, "message": message}
        detail.update(extra)
        super().__init__(status_code=self.status_code, detail=detail)


class BillValidationError(BillingError):
    code = "validation_error"

    def __init__(self, message: str = "customer name and items are required", **extra: Any):
        super().__init__(message, **extra)


class ProductNotFound(BillingError):
    code = "product_not_found"

    def __init__(self, product_code: str):
        self.product_code = product_code
        super().__init__(f"product {product_code} not found", product_code=product_code)


class InsufficientStock(BillingError):
    code = "insufficient_stock"

    def __init__(self, product_code: str, product_name: str, available: Decimal):
        self.product_code = product_code
        self.available = available
        amount = f"{Decimal(available):.2f}"
        super().__init__(
            f"insufficient stock for {product_name}. Available: {amount}",
            product_code=product_code,
            available=amount
        )


class DuplicateProductCode(BillingError):
    code = "duplicate_product_code"

    def __init__(self, product_code: Optional[str] = None):
        extra = {"product_code": product_code} if product_code else {}
        super().__init__("product code already exists", **extra)


class ResourceNotFound(BillingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class PersistenceFailure(BillingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "persistence_failure"

    def __init__(self, message: str = "error creating bill"):
        super().__init__(message)


class ArtifactGenerationFailure(BillingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "invoice_generation_failed"

    def __init__(self, bill_id: int):
        self.bill_id = bill_id
        super().__init__(
            f"bill {bill_id} was created but its invoice could not be generated",
            bill_id=bill_id
        )


class NegativeStock(BillingError):
    code = "negative_stock"

    def __init__(self, product_code: str):
        self.product_code = product_code
        super().__init__(f"closing stock of {product_code} cannot be negative", product_code=product_code)
