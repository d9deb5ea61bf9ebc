from fastapi import APIRouter, status
from typing import List

from billing.dependencies.dbDependencies import db_dependency
from billing.modules.products import service
from billing.modules.products.schemas import ProductCreate, ProductOut, ProductUpdate

product_router = APIRouter(prefix="/products", tags=["Products"])


@product_router.get("", response_model=List[ProductOut])
def list_products(db: db_dependency):
    """Lista el catálogo ordenado por código."""
    return service.list_products(db)


@product_router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: db_dependency):
    return service.get_product(db, product_id)


@product_router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(data: ProductCreate, db: db_dependency):
    """Create a new product. The code must be unique."""
    return service.create_product(db, data)


@product_router.put("/{product_id}", response_model=ProductOut)
def update_product(product_id: int, data: ProductUpdate, db: db_dependency):
    return service.update_product(db, product_id, data)


@product_router.delete("/{product_id}")
def delete_product(product_id: int, db: db_dependency):
    service.delete_product(db, product_id)
    return {"message": "Product deleted successfully"}
