"""
Rapports : état du stock (CSV) et bon de commande (PDF).

Lecture seule. Les chiffres dérivés viennent de services.inventory.stock_metrics,
rien n'est recalculé ici.
"""

from __future__ import annotations

import pandas as pd
from fpdf import FPDF
from fpdf.enums import XPos, YPos
from sqlalchemy.orm import Session

from sitestock.app.db.models.core_types import StockHealth
from sitestock.app.db.models.models_v1 import PurchaseOrder
from sitestock.services.inventory import list_items, stock_metrics

REPORT_COLUMNS = [
    "sku",
    "product_name",
    "in_stock",
    "allocated",
    "on_order_total",
    "projected_stock",
    "daily_consumption",
    "days_left",
    "status",
    "recommended_order",
    "stock_value",
]

# critique d'abord
STATUS_RANK = {StockHealth.critical.value: 0, StockHealth.reorder.value: 1, StockHealth.healthy.value: 2}


def inventory_frame(db: Session, *, status: StockHealth | None = None) -> pd.DataFrame:
    rows = []
    for item in list_items(db):
        m = stock_metrics(item)
        rows.append(
            {
                "sku": item.sku,
                "product_name": item.product_name,
                "in_stock": item.in_stock,
                "allocated": item.allocated,
                "on_order_total": m.on_order_total,
                "projected_stock": m.projected_stock,
                "daily_consumption": m.daily_consumption,
                "days_left": m.days_left,
                "status": m.status.value,
                "recommended_order": m.recommended_order,
                "stock_value": float(item.in_stock * item.unit_cost),
            }
        )

    df = pd.DataFrame(rows, columns=REPORT_COLUMNS)
    if df.empty:
        return df

    # days_left None = conso nulle : pas de tri numérique possible, on met ces lignes en dernier
    df["days_left"] = df["days_left"].astype("Int64")
    if status is not None:
        df = df[df["status"] == status.value]

    df = (
        df.assign(_rank=df["status"].map(STATUS_RANK))
        .sort_values(["_rank", "days_left", "sku"], na_position="last")
        .drop(columns="_rank")
        .reset_index(drop=True)
    )
    return df


def inventory_csv(db: Session, *, status: StockHealth | None = None) -> str:
    return inventory_frame(db, status=status).to_csv(index=False)


def _latin1(text: str) -> str:
    # polices PDF de base : latin-1 uniquement
    return text.encode("latin-1", "replace").decode("latin-1")


def purchase_order_pdf(po: PurchaseOrder) -> bytes:
    pdf = FPDF()
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 10, _latin1(f"PURCHASE ORDER {po.po_number}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT, align="C")
    pdf.ln(6)

    pdf.set_font("Helvetica", size=11)
    header = [
        f"Vendor : {po.vendor.name}",
        f"Status : {po.status.value}",
        f"Channel : {po.channel.value}",
        f"Order date : {po.order_date:%Y-%m-%d}" if po.order_date else "Order date : -",
        f"Expected delivery : {po.expected_delivery_date}" if po.expected_delivery_date else "Expected delivery : -",
        f"Issued by : {po.created_by or '-'}",
    ]
    for line in header:
        pdf.cell(0, 7, _latin1(line), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)

    widths = (40, 70, 25, 25, 30)
    pdf.set_font("Helvetica", "B", 10)
    for w, title in zip(widths, ("SKU", "Product", "Ordered", "Unit cost", "Line total")):
        pdf.cell(w, 8, title, border=1)
    pdf.ln()

    pdf.set_font("Helvetica", size=10)
    for it in po.items:
        values = (
            it.product.sku,
            it.product.product_name[:38],
            str(it.quantity_ordered),
            f"{it.unit_cost:.2f}",
            f"{it.quantity_ordered * it.unit_cost:.2f}",
        )
        for w, value in zip(widths, values):
            pdf.cell(w, 7, _latin1(value), border=1)
        pdf.ln()

    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(sum(widths[:-1]), 8, "Total", border=1)
    pdf.cell(widths[-1], 8, f"{po.total_amount:.2f}", border=1)
    pdf.ln(14)

    if po.notes:
        pdf.set_font("Helvetica", "I", 10)
        pdf.multi_cell(0, 6, _latin1(po.notes))

    return bytes(pdf.output())
