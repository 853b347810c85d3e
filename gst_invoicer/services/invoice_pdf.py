from __future__ import annotations

import logging
from io import BytesIO
from typing import List

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from gst_invoicer.services.invoice_document import InvoiceDocument

logger = logging.getLogger(__name__)

LEFT = 20 * mm
BOTTOM_MARGIN = 30 * mm
ROW_H = 8 * mm


def _draw_header(c: canvas.Canvas, doc: InvoiceDocument) -> float:
    width, height = A4
    top = height - 18 * mm
    right_x = width - 20 * mm

    if doc.logo_path is not None:
        try:
            c.drawImage(
                ImageReader(str(doc.logo_path)),
                LEFT,
                top - 14 * mm,
                width=28 * mm,
                height=18 * mm,
                preserveAspectRatio=True,
                mask="auto",
            )
        except (OSError, ValueError):
            logger.warning("invoice_logo_unreadable", extra={"invoice_number": doc.invoice_number})

    c.setFont("Helvetica-Bold", 16)
    c.drawCentredString(width / 2, top, doc.title)

    c.setFont("Helvetica-Bold", 10)
    c.drawRightString(right_x, top, "Invoice No.")
    c.setFont("Helvetica", 10)
    c.drawRightString(right_x, top - 5 * mm, doc.invoice_number)

    c.setFont("Helvetica-Bold", 10)
    c.drawRightString(right_x, top - 11 * mm, "Invoice Date")
    c.setFont("Helvetica", 10)
    c.drawRightString(right_x, top - 16 * mm, doc.invoice_date)

    y = top - 22 * mm
    if doc.due_date:
        c.setFont("Helvetica-Bold", 10)
        c.drawRightString(right_x, y, "Due Date")
        c.setFont("Helvetica", 10)
        c.drawRightString(right_x, y - 5 * mm, doc.due_date)
        y -= 11 * mm
    return y - 4 * mm


def _draw_party_block(c: canvas.Canvas, doc: InvoiceDocument, start_y: float) -> float:
    width, _height = A4
    buyer_x = width / 2 + 5 * mm

    c.setFont("Helvetica-Bold", 10)
    c.drawString(LEFT, start_y, "From")
    c.drawString(buyer_x, start_y, "To")

    def column(x: float, lines: List[str]) -> float:
        y = start_y - 6 * mm
        for idx, line in enumerate(lines):
            c.setFont("Helvetica-Bold" if idx == 0 else "Helvetica", 10 if idx == 0 else 9)
            c.drawString(x, y, line[:60])
            y -= 4.5 * mm
        return y

    seller_bottom = column(LEFT, doc.seller_lines)
    buyer_bottom = column(buyer_x, doc.buyer_lines)
    return min(seller_bottom, buyer_bottom) - 6 * mm


def _table_columns(right: float) -> List[float]:
    # S.No | Description | HSN/SAC | Qty | Rate | Amount
    return [LEFT, LEFT + 12 * mm, right - 95 * mm, right - 70 * mm, right - 52 * mm, right - 28 * mm, right]


def _draw_table_header(c: canvas.Canvas, cols: List[float], y: float) -> float:
    c.setLineWidth(1)
    c.setFillColor(colors.HexColor("#EEEEEE"))
    c.rect(cols[0], y - ROW_H, cols[-1] - cols[0], ROW_H, stroke=1, fill=1)
    c.setFillColor(colors.black)

    c.setFont("Helvetica-Bold", 9)
    headers = ["S.No", "Description", "HSN/SAC", "Qty", "Rate", "Amount"]
    for idx, header in enumerate(headers):
        c.drawCentredString((cols[idx] + cols[idx + 1]) / 2, y - 5.5 * mm, header)
    return y - ROW_H


def _draw_items_table(c: canvas.Canvas, doc: InvoiceDocument, start_y: float) -> float:
    width, height = A4
    right = width - 20 * mm
    cols = _table_columns(right)

    y = _draw_table_header(c, cols, start_y)
    c.setLineWidth(0.5)
    for row in doc.rows:
        if y - ROW_H < BOTTOM_MARGIN:
            c.showPage()
            y = _draw_table_header(c, cols, height - 20 * mm)
            c.setLineWidth(0.5)

        c.line(cols[0], y - ROW_H, right, y - ROW_H)
        for x in cols:
            c.line(x, y, x, y - ROW_H)

        c.setFont("Helvetica", 9)
        baseline = y - 5.5 * mm
        c.drawCentredString((cols[0] + cols[1]) / 2, baseline, row.serial)
        c.drawString(cols[1] + 2 * mm, baseline, row.description[:48])
        c.drawCentredString((cols[2] + cols[3]) / 2, baseline, row.hsn_sac_code)
        c.drawRightString(cols[4] - 2 * mm, baseline, row.quantity)
        c.drawRightString(cols[5] - 2 * mm, baseline, row.rate)
        c.drawRightString(right - 2 * mm, baseline, row.amount)
        y -= ROW_H
    return y - 4 * mm


def _draw_totals(c: canvas.Canvas, doc: InvoiceDocument, start_y: float) -> float:
    width, height = A4
    right = width - 20 * mm
    label_x = right - 40 * mm

    y = start_y
    if y - len(doc.totals) * 6 * mm < BOTTOM_MARGIN:
        c.showPage()
        y = height - 20 * mm

    for idx, (label, value) in enumerate(doc.totals):
        is_total = idx == len(doc.totals) - 1
        if is_total:
            c.setLineWidth(0.8)
            c.line(label_x - 30 * mm, y + 4 * mm, right, y + 4 * mm)
        c.setFont("Helvetica-Bold" if is_total else "Helvetica", 10 if is_total else 9)
        c.drawRightString(label_x, y, label)
        c.drawRightString(right - 2 * mm, y, value)
        y -= 6 * mm
    return y - 4 * mm


def _draw_footer(c: canvas.Canvas, doc: InvoiceDocument, start_y: float) -> None:
    width, height = A4
    y = start_y
    needed = (12 + 5 * len(doc.bank_lines) + (10 if doc.notes else 0)) * mm
    if y - needed < BOTTOM_MARGIN:
        c.showPage()
        y = height - 20 * mm

    c.setFont("Helvetica-Bold", 9)
    c.drawString(LEFT, y, "Amount Chargeable (in words)")
    y -= 5 * mm
    c.setFont("Helvetica", 9)
    c.drawString(LEFT, y, doc.amount_words[:110])
    y -= 8 * mm

    if doc.bank_lines:
        c.setFont("Helvetica-Bold", 9)
        c.drawString(LEFT, y, "Bank Details")
        y -= 5 * mm
        c.setFont("Helvetica", 9)
        for line in doc.bank_lines:
            c.drawString(LEFT, y, line)
            y -= 5 * mm
        y -= 3 * mm

    if doc.notes:
        c.setFont("Helvetica-Bold", 9)
        c.drawString(LEFT, y, "Notes")
        y -= 5 * mm
        c.setFont("Helvetica", 9)
        for line in doc.notes.splitlines()[:6]:
            c.drawString(LEFT, y, line[:110])
            y -= 4.5 * mm

    signature_x = width - 70 * mm
    c.setFont("Helvetica", 9)
    c.drawString(signature_x, BOTTOM_MARGIN, f"for {doc.seller_lines[0]}"[:45])
    c.drawString(signature_x, BOTTOM_MARGIN - 6 * mm, "Authorised Signatory")

    c.setFont("Helvetica-Oblique", 8)
    c.drawCentredString(width / 2, 12 * mm, "This is a computer generated invoice")


def render_invoice_pdf(doc: InvoiceDocument) -> bytes:
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(f"Invoice {doc.invoice_number}")

    y = _draw_header(c, doc)
    y = _draw_party_block(c, doc, y)
    y = _draw_items_table(c, doc, y)
    y = _draw_totals(c, doc, y)
    _draw_footer(c, doc, y)

    c.showPage()
    c.save()
    return buffer.getvalue()
