"""
Render del PDF de una factura con reportlab

El documento incluye: nombre de la tienda, número de factura, cliente, fecha,
tabla de líneas (código, producto, cantidad, tarifa, GST %, total de línea)
y el resumen subtotal / GST / descuento / neto.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from xml.sax.saxutils import escape
import io

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from billing.core.config import settings

ITEM_HEADER = ["Code", "Product", "Qty", "Rate", "GST %", "Line Total"]


def invoice_filename(bill_id: int) -> str:
    """Nombre determinístico del documento de una factura"""
    return f"invoice_{bill_id}.pdf"


def _fmt(value) -> str:
    return f"{Decimal(value):.2f}"


def item_rows(bill) -> List[List[str]]:
    """Filas de la tabla de líneas, encabezado incluido"""
    rows = [list(ITEM_HEADER)]
    for item in bill.items:
        rows.append([
            item.product_code,
            item.product_name,
            _fmt(item.quantity),
            _fmt(item.rate),
            _fmt(item.gst_perc),
            _fmt(item.line_total),
        ])
    return rows


def summary_rows(bill, currency: Optional[str] = None) -> List[List[str]]:
    currency = currency or settings.CURRENCY_SYMBOL
    return [
        ["Subtotal", f"{currency} {_fmt(bill.subtotal)}"],
        ["GST", f"{currency} {_fmt(bill.gst_amount)}"],
        ["Discount", f"{currency} {_fmt(bill.discount)}"],
        ["Net Amount", f"{currency} {_fmt(bill.net_amount)}"],
    ]


def render_invoice_pdf(bill, shop_name: Optional[str] = None, currency: Optional[str] = None) -> bytes:
    """Genera el PDF de una factura confirmada y devuelve sus bytes"""
    shop_name = shop_name or settings.SHOP_NAME
    issued_at = bill.created_at or datetime.now()

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=30,
        leftMargin=30,
        topMargin=24,
        bottomMargin=18,
        title=f"Invoice {bill.id}"
    )
    styles = getSampleStyleSheet()
    story = []

    story.append(Paragraph(f"<b>{escape(shop_name)}</b>", styles["Title"]))
    story.append(Spacer(1, 8))
    story.append(Paragraph(f"<b>Bill ID:</b> {bill.id}", styles["Normal"]))
    story.append(Paragraph(f"<b>Customer:</b> {escape(bill.customer_name)}", styles["Normal"]))
    story.append(Paragraph(f"<b>Date:</b> {issued_at.strftime('%d-%m-%Y %I:%M %p')}", styles["Normal"]))
    story.append(Spacer(1, 10))

    items_table = Table(
        item_rows(bill),
        colWidths=[25 * mm, 60 * mm, 18 * mm, 25 * mm, 18 * mm, 30 * mm],
        hAlign="LEFT",
        repeatRows=1
    )
    items_table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#222222")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("ALIGN", (2, 1), (-1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.4, colors.grey),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
    ]))
    story.append(items_table)
    story.append(Spacer(1, 12))

    totals_table = Table(summary_rows(bill, currency), colWidths=[40 * mm, 40 * mm], hAlign="RIGHT")
    totals_table.setStyle(TableStyle([
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("LINEABOVE", (0, -1), (-1, -1), 0.8, colors.black),
    ]))
    story.append(totals_table)

    doc.build(story)
    return buffer.getvalue()
