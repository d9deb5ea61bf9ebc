from pydantic import Field, field_validator
from decimal import Decimal
from typing import Optional
from datetime import datetime

from billing.common.schemas import CamelModel


def _strip_required(v):
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


class ProductBase(CamelModel):
    code: str = Field(..., min_length=1, max_length=50, description="Código único del producto")
    name: str = Field(..., min_length=1, max_length=200)
    opening_stock: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    purchases: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    sales: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    rate: Decimal = Field(Decimal("0"), ge=0, decimal_places=2, description="Precio unitario")
    gst_perc: Decimal = Field(Decimal("0"), ge=0, decimal_places=2, description="Porcentaje de GST")

    @field_validator("code", "name")
    @classmethod
    def strip_text(cls, v):
        return _strip_required(v)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(CamelModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    opening_stock: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    purchases: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    sales: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    gst_perc: Optional[Decimal] = Field(None, ge=0, decimal_places=2)

    @field_validator("code", "name")
    @classmethod
    def strip_text(cls, v):
        return None if v is None else _strip_required(v)


class ProductOut(ProductBase):
    id: int
    closing_stock: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
