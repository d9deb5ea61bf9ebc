from billing.database.database import Base
from sqlalchemy import Column, Integer, String, Numeric, CheckConstraint
from decimal import Decimal
from billing.common.mixins import TimestampMixin


class Product(Base, TimestampMixin):
    """
    Producto del catálogo con sus contadores de inventario

    El stock de cierre nunca se persiste: siempre se recalcula como
    opening_stock + purchases - sales.
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)

    opening_stock = Column(Numeric(12, 2), nullable=False, default=0)
    purchases = Column(Numeric(12, 2), nullable=False, default=0)
    sales = Column(Numeric(12, 2), nullable=False, default=0)

    rate = Column(Numeric(12, 2), nullable=False, default=0)  # Precio unitario
    gst_perc = Column(Numeric(5, 2), nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("opening_stock >= 0", name="ck_products_opening_stock"),
        CheckConstraint("purchases >= 0", name="ck_products_purchases"),
        CheckConstraint("sales >= 0", name="ck_products_sales"),
        CheckConstraint("rate >= 0", name="ck_products_rate"),
        CheckConstraint("gst_perc >= 0", name="ck_products_gst_perc"),
    )

    @property
    def closing_stock(self) -> Decimal:
        return (
            Decimal(self.opening_stock or 0)
            + Decimal(self.purchases or 0)
            - Decimal(self.sales or 0)
        )

    def __repr__(self):
        return f"<Product {self.code} closing={self.closing_stock}>"
