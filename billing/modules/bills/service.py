"""
Servicios de negocio para facturas de venta (Bills)

BillService.create_bill es el coordinador transaccional:

    STARTED -> VALIDATING -> MUTATING -> COMMITTING -> COMMITTED | ROLLED_BACK

1. STARTED: cliente no vacío y al menos una línea (BillValidationError).
2. VALIDATING: toma los locks de todos los productos referenciados y valida
   existencia y stock de cierre antes de cualquier mutación.
3. MUTATING: sales += cantidad sobre las filas bloqueadas y cálculo de montos.
4. COMMITTING: Bill + BillItems + productos actualizados en un solo commit.

Cualquier error hace rollback completo: ni la factura ni los cambios de stock
sobreviven. Los locks se mantienen desde la validación hasta el commit.

La generación del PDF no ocurre aquí: corre después del commit
(ver billing.modules.invoices.service).
"""

from sqlalchemy.orm import Session
from decimal import Decimal
from typing import Dict, List
import logging

from billing.common.exceptions import (
    BillingError, BillValidationError, PersistenceFailure, ResourceNotFound
)
from billing.core.config import settings
from billing.modules.bills.models import Bill, BillItem, BillTransactionState
from billing.modules.bills.schemas import BillCreate
from billing.modules.inventory.locks import LockTimeout, ProductLockRegistry, product_locks
from billing.modules.inventory.service import StockLedger
from billing.modules.pricing.calculator import calculate_bill, calculate_line, check_net_identity
from billing.modules.products.models import Product

logger = logging.getLogger(__name__)


class BillTransaction:
    """Registro de estados de una creación de factura"""

    def __init__(self, customer_name: str):
        self.customer_name = customer_name
        self.state = BillTransactionState.STARTED
        self.history: List[BillTransactionState] = [self.state]

    def advance(self, state: BillTransactionState):
        logger.debug(f"Bill for '{self.customer_name}': {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)


class BillService:
    """Servicio para creación y consulta de facturas de venta"""

    def __init__(
        self,
        db: Session,
        locks: ProductLockRegistry = product_locks,
        default_gst_perc: Decimal = settings.DEFAULT_GST_PERC
    ):
        self.db = db
        self.locks = locks
        self.default_gst_perc = default_gst_perc
        self.ledger = StockLedger(db)
        self.last_transaction = None

    @staticmethod
    def requested_quantities(data: BillCreate) -> Dict[str, Decimal]:
        """Cantidad total pedida por código (líneas repetidas se suman)"""
        requests: Dict[str, Decimal] = {}
        for item in data.items:
            requests[item.product_code] = requests.get(item.product_code, Decimal("0")) + item.quantity
        return requests

    def create_bill(self, data: BillCreate) -> Bill:
        """
        Crear factura validando y descontando stock de forma atómica

        Raises:
            BillValidationError: cliente vacío o sin líneas
            ProductNotFound / InsufficientStock: validación de stock fallida
            PersistenceFailure: error inesperado; la transacción se revierte
        """
        customer_name = (data.customer_name or "").strip()
        tx = BillTransaction(customer_name)
        self.last_transaction = tx

        if not customer_name or not data.items:
            tx.advance(BillTransactionState.ROLLED_BACK)
            raise BillValidationError()

        requests = self.requested_quantities(data)

        try:
            with self.locks.hold(requests.keys()):
                try:
                    tx.advance(BillTransactionState.VALIDATING)
                    products = self.ledger.lock_and_validate(requests)

                    tx.advance(BillTransactionState.MUTATING)
                    bill = self._build_bill(customer_name, data, products)

                    tx.advance(BillTransactionState.COMMITTING)
                    self.db.add(bill)
                    self.db.flush()
                    self.db.commit()
                    tx.advance(BillTransactionState.COMMITTED)

                except BillingError as e:
                    self._rollback(tx)
                    logger.warning(f"Bill for '{customer_name}' rejected: {e.message}")
                    raise
                except Exception as e:
                    self._rollback(tx)
                    logger.exception(f"Error creating bill for '{customer_name}': {e}")
                    raise PersistenceFailure() from e

        except LockTimeout as e:
            self._rollback(tx)
            logger.error(f"Bill for '{customer_name}' aborted: {e}")
            raise PersistenceFailure() from e

        logger.info(
            f"Bill {bill.id} committed for '{bill.customer_name}': "
            f"{len(bill.items)} items, net {bill.net_amount}"
        )
        return bill

    def _build_bill(self, customer_name: str, data: BillCreate, products: Dict[str, Product]) -> Bill:
        """Aplica las ventas sobre las filas bloqueadas y arma la factura con sus líneas"""
        lines = []
        items = []
        for item_data in data.items:
            product = products[item_data.product_code]
            self.ledger.apply_sale(product, item_data.quantity)

            amounts = calculate_line(
                rate=item_data.rate,
                quantity=item_data.quantity,
                discount_perc=item_data.discount_perc,
                gst_perc=item_data.gst_perc,
                default_gst_perc=self.default_gst_perc
            )
            lines.append(amounts)

            # Snapshot: el nombre sale de la fila bloqueada, no del cliente
            items.append(BillItem(
                product_code=product.code,
                product_name=product.name,
                rate=amounts.rate,
                quantity=amounts.quantity,
                discount_perc=amounts.discount_perc,
                gst_perc=amounts.gst_perc,
                line_total=amounts.line_total
            ))

        totals = calculate_bill(lines, data.discount)
        if not check_net_identity(totals.subtotal, totals.discount, totals.gst_amount, totals.net_amount):
            raise RuntimeError("net amount does not match subtotal - discount + gst")

        return Bill(
            customer_name=customer_name,
            subtotal=totals.subtotal,
            gst_amount=totals.gst_amount,
            discount=totals.discount,
            net_amount=totals.net_amount,
            items=items
        )

    def _rollback(self, tx: BillTransaction):
        self.db.rollback()
        tx.advance(BillTransactionState.ROLLED_BACK)

    def list_bills(self, limit: int = 100, offset: int = 0) -> List[Bill]:
        """Listar facturas con sus líneas, más recientes primero"""
        return (
            self.db.query(Bill)
            .order_by(Bill.created_at.desc(), Bill.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def get_bill(self, bill_id: int) -> Bill:
        bill = self.db.get(Bill, bill_id)
        if not bill:
            raise ResourceNotFound(f"bill {bill_id} not found", bill_id=bill_id)
        return bill
