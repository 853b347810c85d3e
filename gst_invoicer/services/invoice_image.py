from __future__ import annotations

import logging
from io import BytesIO
from typing import List, Tuple

from PIL import Image, ImageDraw, ImageFont

from gst_invoicer.services.invoice_document import InvoiceDocument

logger = logging.getLogger(__name__)

WIDTH = 1240
MARGIN = 60
LINE_H = 22
ROW_H = 30

# x positions for S.No, Description, HSN/SAC, Qty, Rate, Amount (right edge last)
COLUMNS = [MARGIN, MARGIN + 60, 700, 820, 940, 1060, WIDTH - MARGIN]


def _fonts() -> Tuple[ImageFont.ImageFont, ImageFont.ImageFont]:
    try:
        return ImageFont.truetype("DejaVuSans.ttf", 16), ImageFont.truetype("DejaVuSans-Bold.ttf", 16)
    except OSError:
        default = ImageFont.load_default()
        return default, default


def _canvas_height(doc: InvoiceDocument) -> int:
    party_lines = max(len(doc.seller_lines), len(doc.buyer_lines))
    note_lines = len(doc.notes.splitlines()[:6]) + 1 if doc.notes else 0
    lines = 10 + party_lines + len(doc.totals) + len(doc.bank_lines) + note_lines + 8
    return MARGIN * 2 + lines * LINE_H + (len(doc.rows) + 1) * ROW_H + 120


def _right(draw: ImageDraw.ImageDraw, x: float, y: float, text: str, font) -> None:
    draw.text((x - draw.textlength(text, font=font), y), text, font=font, fill="black")


def _paste_logo(img: Image.Image, doc: InvoiceDocument) -> None:
    if doc.logo_path is None:
        return
    try:
        with Image.open(doc.logo_path) as logo:
            logo = logo.convert("RGBA")
            logo.thumbnail((160, 100))
            img.paste(logo, (MARGIN, MARGIN), logo)
    except OSError:
        logger.warning("invoice_logo_unreadable", extra={"invoice_number": doc.invoice_number})


def render_invoice_jpeg(doc: InvoiceDocument, *, quality: int = 95) -> bytes:
    img = Image.new("RGB", (WIDTH, _canvas_height(doc)), "white")
    draw = ImageDraw.Draw(img)
    font, font_bold = _fonts()
    right_edge = WIDTH - MARGIN

    _paste_logo(img, doc)

    y = MARGIN
    title_w = draw.textlength(doc.title, font=font_bold)
    draw.text(((WIDTH - title_w) / 2, y), doc.title, font=font_bold, fill="black")

    _right(draw, right_edge, y, f"Invoice No.: {doc.invoice_number}", font_bold)
    y += LINE_H
    _right(draw, right_edge, y, f"Invoice Date: {doc.invoice_date}", font)
    if doc.due_date:
        y += LINE_H
        _right(draw, right_edge, y, f"Due Date: {doc.due_date}", font)
    y += LINE_H * 4

    # Parties
    buyer_x = WIDTH // 2 + 20
    draw.text((MARGIN, y), "From", font=font_bold, fill="black")
    draw.text((buyer_x, y), "To", font=font_bold, fill="black")
    y += LINE_H
    for column_x, lines in ((MARGIN, doc.seller_lines), (buyer_x, doc.buyer_lines)):
        line_y = y
        for idx, line in enumerate(lines):
            draw.text((column_x, line_y), line[:55], font=font_bold if idx == 0 else font, fill="black")
            line_y += LINE_H
    y += LINE_H * (max(len(doc.seller_lines), len(doc.buyer_lines)) + 1)

    # Items
    draw.rectangle([COLUMNS[0], y, COLUMNS[-1], y + ROW_H], fill="#EEEEEE", outline="black")
    headers = ["S.No", "Description", "HSN/SAC", "Qty", "Rate", "Amount"]
    for idx, header in enumerate(headers):
        draw.text((COLUMNS[idx] + 6, y + 6), header, font=font_bold, fill="black")
    y += ROW_H

    for row in doc.rows:
        draw.rectangle([COLUMNS[0], y, COLUMNS[-1], y + ROW_H], outline="black")
        cells: List[Tuple[str, bool]] = [
            (row.serial, False),
            (row.description[:48], False),
            (row.hsn_sac_code, False),
            (row.quantity, True),
            (row.rate, True),
            (row.amount, True),
        ]
        for idx, (text, align_right) in enumerate(cells):
            if align_right:
                _right(draw, COLUMNS[idx + 1] - 6, y + 6, text, font)
            else:
                draw.text((COLUMNS[idx] + 6, y + 6), text, font=font, fill="black")
        y += ROW_H
    y += LINE_H

    # Totals
    label_x = COLUMNS[4]
    for idx, (label, value) in enumerate(doc.totals):
        is_total = idx == len(doc.totals) - 1
        if is_total:
            draw.line([label_x - 120, y - 4, right_edge, y - 4], fill="black", width=1)
        active = font_bold if is_total else font
        _right(draw, label_x, y, label, active)
        _right(draw, right_edge - 6, y, value, active)
        y += LINE_H
    y += LINE_H

    draw.text((MARGIN, y), "Amount Chargeable (in words)", font=font_bold, fill="black")
    y += LINE_H
    draw.text((MARGIN, y), doc.amount_words, font=font, fill="black")
    y += LINE_H * 2

    if doc.bank_lines:
        draw.text((MARGIN, y), "Bank Details", font=font_bold, fill="black")
        y += LINE_H
        for line in doc.bank_lines:
            draw.text((MARGIN, y), line, font=font, fill="black")
            y += LINE_H
        y += LINE_H

    if doc.notes:
        draw.text((MARGIN, y), "Notes", font=font_bold, fill="black")
        y += LINE_H
        for line in doc.notes.splitlines()[:6]:
            draw.text((MARGIN, y), line[:100], font=font, fill="black")
            y += LINE_H

    footer = "This is a computer generated invoice"
    footer_w = draw.textlength(footer, font=font)
    draw.text(((WIDTH - footer_w) / 2, img.height - MARGIN), footer, font=font, fill="black")

    buffer = BytesIO()
    img.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
