"""
Módulo de Facturas de venta (Bills)

FLUJO DE CREACIÓN:
1. Validar cliente y líneas
2. Bloquear los productos referenciados y validar stock de cierre
3. Descontar stock (sales += cantidad) y calcular montos
4. Confirmar Bill + BillItems + productos en una sola transacción
5. Generar el PDF fuera de la transacción (módulo invoices)

Las facturas son inmutables una vez confirmadas.
"""

from .models import Bill, BillItem, BillTransactionState
from .schemas import BillCreate, BillItemCreate, BillOut, BillItemOut, BillCreatedOut
from .service import BillService, BillTransaction

__all__ = [
    # Models
    "Bill", "BillItem", "BillTransactionState",

    # Schemas
    "BillCreate", "BillItemCreate", "BillOut", "BillItemOut", "BillCreatedOut",

    # Services
    "BillService", "BillTransaction",
]
