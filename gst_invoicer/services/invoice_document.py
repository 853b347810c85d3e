"""
Presentation model shared by the PDF and JPEG renderers.

Renderers never recompute money: every figure comes from the invoice's stored
snapshot, formatted here once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Tuple

from num2words import num2words

from gst_invoicer.models.invoice import Invoice
from gst_invoicer.services.calculator import Number, quantize_money, to_decimal


def format_inr(value: Number) -> str:
    """Indian digit grouping: 1234567.5 -> '12,34,567.50'."""
    amount = quantize_money(to_decimal(value))
    sign = "-" if amount < 0 else ""
    whole, frac = f"{abs(amount):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups: List[str] = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{sign}{whole}.{frac}"


def format_rate(rate: Number) -> str:
    value = to_decimal(rate).normalize()
    return format(value, "f")


def format_quantity(quantity: Number) -> str:
    return format_rate(quantity)


def amount_in_words(amount: Number) -> str:
    value = quantize_money(to_decimal(amount))
    prefix = "minus " if value < 0 else ""
    value = abs(value)
    rupees = int(value)
    paise = int((value - rupees) * 100)

    words = f"{num2words(rupees, lang='en_IN')} rupees"
    if paise:
        words += f" and {num2words(paise, lang='en_IN')} paise"
    return f"{prefix}{words} only".capitalize()


@dataclass
class DocumentRow:
    serial: str
    description: str
    hsn_sac_code: str
    quantity: str
    rate: str
    amount: str


@dataclass
class InvoiceDocument:
    title: str
    invoice_number: str
    invoice_date: str
    due_date: Optional[str]
    seller_lines: List[str]
    buyer_lines: List[str]
    rows: List[DocumentRow]
    totals: List[Tuple[str, str]]
    amount_words: str
    bank_lines: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    logo_path: Optional[Path] = None


def _party_lines(name: Optional[str], *details: Tuple[str, Optional[str]]) -> List[str]:
    lines = [name or "-"]
    for label, value in details:
        if not value:
            continue
        if label:
            lines.append(f"{label}: {value}")
        else:
            lines.extend(part.strip() for part in value.splitlines() if part.strip())
    return lines


def _tax_lines(invoice: Invoice, currency: str) -> List[Tuple[str, str]]:
    lines: List[Tuple[str, str]] = []
    components = (
        ("GST", invoice.gst_rate, invoice.gst_amount),
        ("IGST", invoice.igst_rate, invoice.igst_amount),
        ("SGST", invoice.sgst_rate, invoice.sgst_amount),
        ("CGST", invoice.cgst_rate, invoice.cgst_amount),
    )
    for label, rate, amount in components:
        if Decimal(rate or 0) == 0:
            continue
        lines.append((f"{label} ({format_rate(rate)}%)", f"{currency} {format_inr(amount)}"))
    return lines


def build_invoice_document(invoice: Invoice, *, currency: str = "Rs.") -> InvoiceDocument:
    company = invoice.company
    client = invoice.client

    seller_lines = _party_lines(
        company.name if company else None,
        ("", company.address if company else None),
        ("Phone", company.phone if company else None),
        ("Email", company.email if company else None),
        ("GSTIN", company.gst_number if company else None),
        ("PAN", company.pan_number if company else None),
    )
    buyer_lines = _party_lines(
        client.display_name if client else None,
        ("Attn", client.name if client and client.company_name else None),
        ("", client.address if client else None),
        ("Phone", client.phone if client else None),
        ("Email", client.email if client else None),
        ("GSTIN", client.gst_number if client else None),
    )

    rows = [
        DocumentRow(
            serial=str(idx),
            description=item.description,
            hsn_sac_code=item.hsn_sac_code or "",
            quantity=format_quantity(item.quantity),
            rate=format_inr(item.rate),
            amount=format_inr(item.amount),
        )
        for idx, item in enumerate(invoice.items, start=1)
    ]

    totals = [("Subtotal", f"{currency} {format_inr(invoice.subtotal)}")]
    totals.extend(_tax_lines(invoice, currency))
    totals.append(("Total", f"{currency} {format_inr(invoice.total_amount)}"))

    bank_lines: List[str] = []
    if company and (company.bank_name or company.account_number):
        bank_lines = [
            f"Bank Name: {company.bank_name or '-'}",
            f"A/c No.: {company.account_number or '-'}",
            f"IFSC: {company.ifsc_code or '-'}",
            f"Branch: {company.branch or '-'}",
        ]

    logo_path = None
    if company and company.logo_path:
        candidate = Path(company.logo_path)
        if candidate.exists():
            logo_path = candidate

    return InvoiceDocument(
        title="TAX INVOICE",
        invoice_number=invoice.invoice_number,
        invoice_date=invoice.invoice_date.strftime("%d %b %Y"),
        due_date=invoice.due_date.strftime("%d %b %Y") if invoice.due_date else None,
        seller_lines=seller_lines,
        buyer_lines=buyer_lines,
        rows=rows,
        totals=totals,
        amount_words=amount_in_words(invoice.total_amount),
        bank_lines=bank_lines,
        notes=invoice.notes,
        logo_path=logo_path,
    )


def safe_filename(name: str) -> str:
    cleaned = "".join(ch if ch.isalnum() or ch in {"-", "_", "."} else "-" for ch in name)
    return cleaned.strip("-") or "invoice"
