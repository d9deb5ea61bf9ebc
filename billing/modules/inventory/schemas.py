from pydantic import Field
from decimal import Decimal

from billing.common.schemas import CamelModel


class StockOut(CamelModel):
    code: str
    name: str
    opening_stock: Decimal
    purchases: Decimal
    sales: Decimal
    closing_stock: Decimal


class PurchaseCreate(CamelModel):
    quantity: Decimal = Field(..., gt=0, decimal_places=2, description="Cantidad comprada")
