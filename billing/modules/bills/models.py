"""
Modelos SQLAlchemy para facturas de venta (Bills)

- Bill: cabecera con totales; inmutable una vez confirmada
- BillItem: líneas con snapshot del producto al momento de facturar

BillItem no tiene FK hacia products: guarda el código como referencia de
trazabilidad y copia nombre, tarifa y tasas, de modo que las ediciones
posteriores del catálogo no alteran facturas históricas.
"""

from billing.database.database import Base
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from billing.common.mixins import CreatedAtMixin
import enum


class BillTransactionState(enum.Enum):
    """Estados de la transacción de creación de una factura"""
    STARTED = "started"
    VALIDATING = "validating"       # Locks + validación de stock
    MUTATING = "mutating"           # sales += cantidad, cálculo de montos
    COMMITTING = "committing"       # Persistencia atómica
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Bill(Base, CreatedAtMixin):
    __tablename__ = "bills"
    # created_at se lee en el flush: la factura se devuelve sin recargarla
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_name = Column(String(200), nullable=False)

    # Totales calculados
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    gst_amount = Column(Numeric(14, 2), nullable=False, default=0)
    discount = Column(Numeric(14, 2), nullable=False, default=0)  # Monto absoluto, no porcentaje
    net_amount = Column(Numeric(14, 2), nullable=False, default=0)

    # Relationships
    items = relationship(
        "BillItem",
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillItem.id",
        lazy="selectin"
    )


class BillItem(Base):
    __tablename__ = "bill_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bill_id = Column(Integer, ForeignKey("bills.id", ondelete="CASCADE"), nullable=False, index=True)

    # Snapshot del producto
    product_code = Column(String(50), nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    rate = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    discount_perc = Column(Numeric(5, 2), nullable=False, default=0)
    gst_perc = Column(Numeric(5, 2), nullable=False)

    # Calculado
    line_total = Column(Numeric(14, 2), nullable=False)

    # Relationships
    bill = relationship("Bill", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_bill_items_quantity"),
        CheckConstraint("discount_perc >= 0 AND discount_perc <= 100", name="ck_bill_items_discount"),
        CheckConstraint("gst_perc >= 0", name="ck_bill_items_gst"),
    )
