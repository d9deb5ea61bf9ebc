from fastapi import APIRouter, status
from typing import List

from billing.dependencies.dbDependencies import db_dependency
from billing.modules.inventory.schemas import PurchaseCreate, StockOut
from billing.modules.inventory.service import InventoryService

stock_router = APIRouter(prefix="/inventory/stock", tags=["Inventory"])


@stock_router.get("", response_model=List[StockOut])
def list_stock(db: db_dependency):
    """Stock de cierre de todos los productos."""
    return InventoryService(db).list_stock()


@stock_router.get("/{code}", response_model=StockOut)
def get_stock(code: str, db: db_dependency):
    return InventoryService(db).get_stock(code)


@stock_router.post("/{code}/purchases", response_model=StockOut, status_code=status.HTTP_201_CREATED)
def record_purchase(code: str, data: PurchaseCreate, db: db_dependency):
    """Registrar una compra (incrementa purchases y el stock de cierre)."""
    return InventoryService(db).record_purchase(code, data.quantity)
