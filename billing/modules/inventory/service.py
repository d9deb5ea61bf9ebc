"""
Servicio de inventario (Stock Ledger)

Responsabilidades:
- Bloquear las filas de producto referenciadas por una factura
  (SELECT ... FOR UPDATE) y validar el stock de cierre antes de mutar
- Aplicar ventas sobre filas ya bloqueadas
- Registrar compras y consultar el stock de cierre

Los locks obtenidos en la validación se conservan durante la mutación y el
commit: las filas nunca se vuelven a leer con un lock nuevo.
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from decimal import Decimal
from typing import Dict, List, Mapping, Optional
import logging

from billing.common.exceptions import (
    InsufficientStock, PersistenceFailure, ProductNotFound, ResourceNotFound
)
from billing.modules.inventory.locks import LockTimeout, ProductLockRegistry, product_locks
from billing.modules.products.models import Product

logger = logging.getLogger(__name__)


class StockLedger:
    """Validación y mutación de stock dentro de la transacción del llamador"""

    def __init__(self, db: Session):
        self.db = db

    def lock_product(self, code: str) -> Optional[Product]:
        """Lee la fila del producto con lock exclusivo hasta el fin de la transacción"""
        return (
            self.db.query(Product)
            .filter(Product.code == code)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def lock_and_validate(self, requests: Mapping[str, Decimal]) -> Dict[str, Product]:
        """
        Bloquea y valida todos los productos de una factura

        Args:
            requests: cantidad total solicitada por código de producto

        Returns:
            Productos bloqueados indexados por código

        Raises:
            ProductNotFound: si algún código no existe
            InsufficientStock: si la cantidad pedida supera el stock de cierre
        """
        locked: Dict[str, Product] = {}
        for code in sorted(requests):
            product = self.lock_product(code)
            if product is None:
                raise ProductNotFound(code)

            available = product.closing_stock
            requested = Decimal(requests[code])
            if requested > available:
                logger.info(f"Insufficient stock for {code}: requested {requested}, available {available}")
                raise InsufficientStock(code, product.name, available)

            locked[code] = product
        return locked

    def apply_sale(self, product: Product, quantity: Decimal) -> Product:
        """Incrementa las ventas de un producto ya bloqueado"""
        product.sales = Decimal(product.sales or 0) + Decimal(quantity)
        if product.closing_stock < 0:
            # La validación previa lo impide; si ocurre, la transacción debe abortarse
            raise RuntimeError(f"Closing stock of {product.code} would become negative")
        return product

    def apply_purchase(self, product: Product, quantity: Decimal) -> Product:
        product.purchases = Decimal(product.purchases or 0) + Decimal(quantity)
        return product


class InventoryService:
    """Consultas de stock y registro de compras"""

    def __init__(self, db: Session, locks: ProductLockRegistry = product_locks):
        self.db = db
        self.locks = locks
        self.ledger = StockLedger(db)

    def list_stock(self) -> List[Product]:
        return self.db.query(Product).order_by(Product.code).all()

    def get_stock(self, code: str) -> Product:
        product = self.db.query(Product).filter(Product.code == code).first()
        if not product:
            raise ResourceNotFound(f"product {code} not found", product_code=code)
        return product

    def record_purchase(self, code: str, quantity: Decimal) -> Product:
        """Suma una compra al producto bajo el mismo lock que usa la facturación"""
        try:
            with self.locks.hold([code]):
                product = self.ledger.lock_product(code)
                if product is None:
                    raise ResourceNotFound(f"product {code} not found", product_code=code)
                self.ledger.apply_purchase(product, quantity)
                self.db.commit()
                self.db.refresh(product)
        except ResourceNotFound:
            self.db.rollback()
            raise
        except (LockTimeout, SQLAlchemyError) as e:
            self.db.rollback()
            logger.error(f"Error recording purchase for {code}: {e}")
            raise PersistenceFailure("error recording purchase")

        logger.info(f"Purchase recorded for {code}: +{quantity} (closing {product.closing_stock})")
        return product
