from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from fastapi import HTTPException
from typing import List
import logging

from .models import Product
from .schemas import ProductCreate, ProductUpdate
from billing.common.exceptions import (
    DuplicateProductCode, NegativeStock, PersistenceFailure, ResourceNotFound
)
from billing.modules.inventory.locks import LockTimeout, ProductLockRegistry, product_locks
from billing.modules.inventory.service import StockLedger

logger = logging.getLogger(__name__)


def list_products(db: Session) -> List[Product]:
    return db.query(Product).order_by(Product.code).all()


def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise ResourceNotFound(f"product {product_id} not found")
    return product


def create_product(db: Session, data: ProductCreate) -> Product:
    """Crea un producto; el código debe ser único"""
    if db.query(Product).filter(Product.code == data.code).first():
        raise DuplicateProductCode(data.code)

    product = Product(**data.model_dump())
    if product.closing_stock < 0:
        raise NegativeStock(product.code)

    db.add(product)
    try:
        db.commit()
    except IntegrityError:
        # Otro request insertó el mismo código entre la consulta y el commit
        db.rollback()
        raise DuplicateProductCode(data.code)
    db.refresh(product)
    logger.info(f"Product created: {product.code}")
    return product


def update_product(
    db: Session,
    product_id: int,
    data: ProductUpdate,
    locks: ProductLockRegistry = product_locks
) -> Product:
    """
    Actualiza un producto bajo el mismo lock que usa la facturación, para que
    una edición del catálogo no pise una venta en curso. Se rechaza cualquier
    cambio que deje el stock de cierre negativo.
    """
    current = get_product(db, product_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    new_code = changes.get("code")
    if new_code and new_code != current.code:
        if db.query(Product).filter(Product.code == new_code).first():
            raise DuplicateProductCode(new_code)

    codes = {current.code} | ({new_code} if new_code else set())
    try:
        with locks.hold(codes):
            product = StockLedger(db).lock_product(current.code)
            if product is None:
                raise ResourceNotFound(f"product {product_id} not found")

            for field, value in changes.items():
                setattr(product, field, value)

            if product.closing_stock < 0:
                raise NegativeStock(product.code)

            db.commit()
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError:
        db.rollback()
        raise DuplicateProductCode(new_code)
    except (LockTimeout, SQLAlchemyError) as e:
        db.rollback()
        logger.error(f"Error updating product {product_id}: {e}")
        raise PersistenceFailure("error updating product")

    db.refresh(product)
    return product


def delete_product(db: Session, product_id: int) -> None:
    """Elimina un producto; las facturas históricas conservan su snapshot"""
    product = get_product(db, product_id)
    db.delete(product)
    db.commit()
    logger.info(f"Product deleted: {product.code}")
