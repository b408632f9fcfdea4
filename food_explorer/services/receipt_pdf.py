from __future__ import annotations

import os
from typing import Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from food_explorer.cart.models import Order
from food_explorer.config import settings
from food_explorer.constants import UNIT_PRICE
from food_explorer.services.pricing import calc_totals, line_total


def generate_receipt_pdf(order: Order, export_dir: Optional[str] = None) -> str:
    export_dir = export_dir or settings.export_dir
    os.makedirs(export_dir, exist_ok=True)

    filename = f"receipt_{order.id}.pdf"
    path = os.path.join(export_dir, filename)
    totals = calc_totals(order.items)

    c = canvas.Canvas(path, pagesize=A4)
    w, h = A4

    y = h - 50
    c.setFont("Helvetica-Bold", 14)
    c.drawString(40, y, f"ORDER {order.id}")
    y -= 20

    c.setFont("Helvetica", 11)
    c.drawString(40, y, f"Email: {order.email}")
    y -= 16
    c.drawString(40, y, f"Date: {order.date} {order.time}")
    y -= 16
    c.drawString(40, y, f"Currency: {settings.currency}")
    y -= 24

    # header
    c.setFont("Helvetica-Bold", 10)
    c.drawString(40, y, "Item")
    c.drawString(310, y, "Qty")
    c.drawString(360, y, "Price")
    c.drawString(440, y, "Total")
    y -= 10
    c.line(40, y, 550, y)
    y -= 16

    c.setFont("Helvetica", 10)
    for it in order.items:
        item_name = f"{it.brand} - {it.name}" if it.brand else it.name
        c.drawString(40, y, item_name[:45])
        c.drawRightString(340, y, str(it.quantity))
        c.drawRightString(420, y, f"{UNIT_PRICE:.2f}")
        c.drawRightString(550, y, f"{line_total(it):.2f}")
        y -= 14
        if y < 120:
            c.showPage()
            y = h - 50
            c.setFont("Helvetica", 10)

    y -= 10
    c.line(40, y, 550, y)
    y -= 16
    c.drawRightString(550, y, f"Subtotal: {totals.subtotal:.2f}")
    y -= 14
    c.drawRightString(550, y, f"Tax: {totals.tax:.2f}")
    y -= 14
    c.drawRightString(550, y, "Shipping: FREE" if not totals.shipping else f"Shipping: {totals.shipping:.2f}")
    y -= 18
    c.setFont("Helvetica-Bold", 12)
    # stored total, not the recomputed one
    c.drawRightString(550, y, f"TOTAL: {order.total:.2f} {settings.currency}")

    c.save()
    return path
