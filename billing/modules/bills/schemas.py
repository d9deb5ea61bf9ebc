"""
Esquemas Pydantic para facturas de venta

El cliente web envía camelCase (customerName, productCode, discountPerc...);
también se acepta snake_case. Las respuestas se serializan en camelCase.
"""

from pydantic import Field, field_validator
from decimal import Decimal
from typing import Optional, List
from datetime import datetime

from billing.common.schemas import CamelModel


# ===== REQUEST SCHEMAS =====

class BillItemCreate(CamelModel):
    product_code: str = Field(..., min_length=1, max_length=50, description="Código del producto")
    quantity: Decimal = Field(..., gt=0, decimal_places=2, description="Cantidad solicitada")
    rate: Decimal = Field(..., ge=0, decimal_places=2, description="Precio unitario cotizado")
    discount_perc: Decimal = Field(Decimal("0"), ge=0, le=100, decimal_places=2, description="Descuento de línea (%)")
    gst_perc: Optional[Decimal] = Field(None, ge=0, decimal_places=2, description="GST (%); por defecto 18")

    @field_validator("product_code")
    @classmethod
    def strip_code(cls, v):
        return v.strip()

    @field_validator("discount_perc", mode="before")
    @classmethod
    def null_discount(cls, v):
        return Decimal("0") if v is None else v


class BillCreate(CamelModel):
    # Vacíos permitidos aquí: el coordinador responde con un error de validación propio
    customer_name: Optional[str] = Field(None, max_length=200)
    items: List[BillItemCreate] = Field(default_factory=list)
    discount: Decimal = Field(Decimal("0"), ge=0, le=100, decimal_places=2, description="Descuento global (%) sobre el subtotal")

    @field_validator("discount", mode="before")
    @classmethod
    def null_discount(cls, v):
        return Decimal("0") if v is None else v

    @field_validator("items", mode="before")
    @classmethod
    def null_items(cls, v):
        return [] if v is None else v


# ===== RESPONSE SCHEMAS =====

class BillItemOut(CamelModel):
    id: int
    product_code: str
    product_name: str
    rate: Decimal
    quantity: Decimal
    discount_perc: Decimal
    gst_perc: Decimal
    line_total: Decimal


class BillOut(CamelModel):
    id: int
    customer_name: str
    subtotal: Decimal
    gst_amount: Decimal
    discount: Decimal
    net_amount: Decimal
    created_at: Optional[datetime] = None
    items: List[BillItemOut]


class BillCreatedOut(BillOut):
    invoice_url: str
