"""
Cálculo de montos de facturas de venta

Funciones puras sobre Decimal, sin acceso a base de datos. Por línea:

    base_amount     = rate * quantity
    discount_amount = base_amount * discount_perc / 100
    taxable_amount  = base_amount - discount_amount
    line_gst        = taxable_amount * gst_perc / 100
    line_total      = taxable_amount + line_gst

Totales de la factura: subtotal = Σ taxable_amount, gst_amount = Σ line_gst.
El descuento global (porcentaje) se aplica solo sobre el subtotal:

    discount   = subtotal * overall_discount_perc / 100
    net_amount = subtotal - discount + gst_amount

Los montos se redondean a centavos (ROUND_HALF_UP) en cada línea y en el
descuento global; los totales son sumas de valores ya redondeados, de modo que
net_amount == subtotal - discount + gst_amount se cumple exactamente.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


def to_money(value) -> Decimal:
    """Redondea a 2 decimales con ROUND_HALF_UP"""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _as_decimal(value, name: str) -> Decimal:
    if isinstance(value, float):
        # Evita arrastrar el error binario del float
        value = str(value)
    try:
        return Decimal(value)
    except Exception:
        raise ValueError(f"{name} must be a number")


@dataclass(frozen=True)
class LineAmounts:
    rate: Decimal
    quantity: Decimal
    discount_perc: Decimal
    gst_perc: Decimal
    base_amount: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    line_gst: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class BillTotals:
    subtotal: Decimal
    gst_amount: Decimal
    discount: Decimal
    net_amount: Decimal
    overall_discount_perc: Decimal
    lines: List[LineAmounts] = field(default_factory=list)


def calculate_line(
    rate,
    quantity,
    discount_perc=ZERO,
    gst_perc=None,
    default_gst_perc=Decimal("18")
) -> LineAmounts:
    """
    Calcula los montos de una línea

    Args:
        rate: precio unitario (>= 0)
        quantity: cantidad (> 0)
        discount_perc: descuento de línea en porcentaje (0..100)
        gst_perc: GST en porcentaje (>= 0); None usa default_gst_perc
        default_gst_perc: tasa aplicada cuando la línea no especifica GST

    Raises:
        ValueError: si algún valor está fuera de rango
    """
    rate = _as_decimal(rate, "rate")
    quantity = _as_decimal(quantity, "quantity")
    discount_perc = _as_decimal(discount_perc if discount_perc is not None else ZERO, "discount_perc")
    gst_perc = _as_decimal(gst_perc if gst_perc is not None else default_gst_perc, "gst_perc")

    if rate < 0:
        raise ValueError("rate must be >= 0")
    if quantity <= 0:
        raise ValueError("quantity must be > 0")
    if not ZERO <= discount_perc <= HUNDRED:
        raise ValueError("discount_perc must be between 0 and 100")
    if gst_perc < 0:
        raise ValueError("gst_perc must be >= 0")

    base_amount = rate * quantity
    discount_amount = base_amount * discount_perc / HUNDRED
    taxable_amount = to_money(base_amount - discount_amount)
    line_gst = to_money(taxable_amount * gst_perc / HUNDRED)

    return LineAmounts(
        rate=rate,
        quantity=quantity,
        discount_perc=discount_perc,
        gst_perc=gst_perc,
        base_amount=to_money(base_amount),
        discount_amount=to_money(discount_amount),
        taxable_amount=taxable_amount,
        line_gst=line_gst,
        line_total=taxable_amount + line_gst
    )


def calculate_bill(lines: Iterable[LineAmounts], overall_discount_perc=ZERO) -> BillTotals:
    """Agrega las líneas y aplica el descuento global sobre el subtotal"""
    lines = list(lines)
    if not lines:
        raise ValueError("a bill needs at least one line")

    overall = _as_decimal(overall_discount_perc if overall_discount_perc is not None else ZERO, "discount")
    if not ZERO <= overall <= HUNDRED:
        raise ValueError("discount must be between 0 and 100")

    subtotal = sum((line.taxable_amount for line in lines), ZERO)
    gst_amount = sum((line.line_gst for line in lines), ZERO)
    discount = to_money(subtotal * overall / HUNDRED)

    return BillTotals(
        subtotal=subtotal,
        gst_amount=gst_amount,
        discount=discount,
        net_amount=subtotal - discount + gst_amount,
        overall_discount_perc=overall,
        lines=lines
    )


def check_net_identity(subtotal, discount, gst_amount, net_amount) -> bool:
    """True si net_amount == subtotal - discount + gst_amount (al centavo)"""
    expected = to_money(Decimal(subtotal) - Decimal(discount) + Decimal(gst_amount))
    return expected == to_money(net_amount)
