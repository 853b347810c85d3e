from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session, selectinload

from gst_invoicer.models.client import Client
from gst_invoicer.models.company import Company
from gst_invoicer.models.enums import InvoiceStatus
from gst_invoicer.models.invoice import Invoice, InvoiceItem
from gst_invoicer.services.calculator import (
    InvoiceTotals,
    LineItem,
    TaxConfiguration,
    build_line_item,
    calculate_totals,
    quantize_money,
)
from gst_invoicer.services.numbering import InvoiceNumberConflict, invoice_number_taken

logger = logging.getLogger(__name__)

ZERO_MONEY = Decimal("0.00")


def tax_config_for(
    *,
    gst_rate: Optional[Decimal] = None,
    igst_rate: Optional[Decimal] = None,
    sgst_rate: Optional[Decimal] = None,
    cgst_rate: Optional[Decimal] = None,
) -> TaxConfiguration:
    if any(rate is not None for rate in (igst_rate, sgst_rate, cgst_rate)):
        return TaxConfiguration.split(igst_rate=igst_rate, sgst_rate=sgst_rate, cgst_rate=cgst_rate)
    return TaxConfiguration.single(gst_rate)


def tax_config_of(invoice: Invoice) -> TaxConfiguration:
    if invoice.is_split_tax:
        return TaxConfiguration.split(
            igst_rate=invoice.igst_rate,
            sgst_rate=invoice.sgst_rate,
            cgst_rate=invoice.cgst_rate,
        )
    return TaxConfiguration.single(invoice.gst_rate)


def line_items_from_payload(items_payload: Iterable[dict]) -> List[LineItem]:
    return [
        build_line_item(
            description=str(item.get("description") or ""),
            quantity=item.get("quantity"),
            rate=item.get("rate"),
            hsn_sac_code=item.get("hsn_sac_code"),
        )
        for item in items_payload
    ]


def line_items_of(invoice: Invoice) -> List[LineItem]:
    return [
        build_line_item(item.description, item.quantity, item.rate, item.hsn_sac_code)
        for item in invoice.items
    ]


def replace_invoice_items(invoice: Invoice, line_items: Sequence[LineItem]) -> List[InvoiceItem]:
    # No flush here: the first flush happens in commit_invoice so a number
    # collision surfaces in one place.
    invoice.items.clear()

    created: List[InvoiceItem] = []
    for idx, line in enumerate(line_items):
        invoice_item = InvoiceItem(
            description=line.description,
            hsn_sac_code=line.hsn_sac_code,
            quantity=line.quantity,
            rate=line.rate,
            amount=quantize_money(line.amount),
            order_index=idx,
        )
        invoice.items.append(invoice_item)
        created.append(invoice_item)
    return created


def apply_totals(invoice: Invoice, totals: InvoiceTotals, tax_config: TaxConfiguration) -> Invoice:
    """Copy a rounded totals snapshot and the rates that produced it onto the invoice."""
    snapshot = totals.rounded()
    invoice.subtotal = snapshot.subtotal
    invoice.gst_amount = snapshot.gst_amount
    invoice.igst_amount = snapshot.igst_amount
    invoice.sgst_amount = snapshot.sgst_amount
    invoice.cgst_amount = snapshot.cgst_amount
    invoice.total_amount = snapshot.total

    if tax_config.is_split:
        invoice.gst_rate = ZERO_MONEY
        invoice.igst_rate = tax_config.igst_rate
        invoice.sgst_rate = tax_config.sgst_rate
        invoice.cgst_rate = tax_config.cgst_rate
    else:
        invoice.gst_rate = tax_config.gst_rate
        invoice.igst_rate = ZERO_MONEY
        invoice.sgst_rate = ZERO_MONEY
        invoice.cgst_rate = ZERO_MONEY
    return invoice


def set_invoice_lines(
    invoice: Invoice,
    line_items: Sequence[LineItem],
    tax_config: TaxConfiguration,
) -> Invoice:
    """Replace the items and recompute the stored totals from them in one step."""
    replace_invoice_items(invoice, line_items)
    return apply_totals(invoice, calculate_totals(line_items, tax_config), tax_config)


def commit_invoice(db: Session, invoice: Invoice) -> Invoice:
    """Commit, translating a per-user invoice number collision into InvoiceNumberConflict."""
    # Rollback expires persistent instances, so read the attempted values first.
    user_id = invoice.user_id
    invoice_number = invoice.invoice_number
    invoice_id = invoice.id
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if invoice_number_taken(
            db,
            user_id=user_id,
            invoice_number=invoice_number,
            exclude_invoice_id=invoice_id,
        ):
            raise InvoiceNumberConflict(user_id, invoice_number)
        logger.exception("invoice_commit_failed", extra={"user_id": user_id, "invoice_number": invoice_number})
        raise
    db.refresh(invoice)
    return invoice


def get_owned_invoice(db: Session, *, user_id: int, invoice_id: int) -> Optional[Invoice]:
    return (
        db.query(Invoice)
        .options(
            selectinload(Invoice.items),
            selectinload(Invoice.company),
            selectinload(Invoice.client),
        )
        .filter(Invoice.id == invoice_id, Invoice.user_id == user_id)
        .first()
    )


def ledger_query(
    db: Session,
    *,
    user_id: int,
    status: Optional[InvoiceStatus] = None,
    client_id: Optional[int] = None,
    company_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
) -> Query:
    query = db.query(Invoice).join(Client, Invoice.client_id == Client.id).filter(Invoice.user_id == user_id)

    if status:
        query = query.filter(Invoice.status == status)
    if client_id:
        query = query.filter(Invoice.client_id == client_id)
    if company_id:
        query = query.filter(Invoice.company_id == company_id)
    if date_from:
        query = query.filter(Invoice.invoice_date >= date_from)
    if date_to:
        query = query.filter(Invoice.invoice_date <= date_to)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Invoice.invoice_number).like(term),
                func.lower(Client.name).like(term),
                func.lower(Client.company_name).like(term),
            )
        )
    return query


@dataclass(frozen=True)
class LedgerSummary:
    invoice_count: int
    total_amount: Decimal
    total_gst: Decimal
    received_amount: Decimal
    pending_amount: Decimal


def summarize_ledger(invoices: Iterable[Invoice]) -> LedgerSummary:
    count = 0
    total = ZERO_MONEY
    gst = ZERO_MONEY
    received = ZERO_MONEY
    for invoice in invoices:
        count += 1
        amount = Decimal(invoice.total_amount or ZERO_MONEY)
        total += amount
        gst += invoice.total_tax
        if invoice.status == InvoiceStatus.PAID:
            received += amount
    return LedgerSummary(
        invoice_count=count,
        total_amount=quantize_money(total),
        total_gst=quantize_money(gst),
        received_amount=quantize_money(received),
        pending_amount=quantize_money(total - received),
    )


def _month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def dashboard_stats(db: Session, *, user_id: int, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    month_start = _month_start(now)

    total_invoices = db.query(func.count(Invoice.id)).filter(Invoice.user_id == user_id).scalar() or 0
    clients = db.query(func.count(Client.id)).filter(Client.user_id == user_id).scalar() or 0
    companies = db.query(func.count(Company.id)).filter(Company.user_id == user_id).scalar() or 0
    this_month = (
        db.query(func.coalesce(func.sum(Invoice.total_amount), 0))
        .filter(Invoice.user_id == user_id, Invoice.created_at >= month_start)
        .scalar()
    )
    recent = (
        db.query(Invoice)
        .options(selectinload(Invoice.client), selectinload(Invoice.company))
        .filter(Invoice.user_id == user_id)
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .limit(5)
        .all()
    )
    return {
        "total_invoices": int(total_invoices),
        "clients": int(clients),
        "companies": int(companies),
        "this_month_total": quantize_money(Decimal(str(this_month or 0))),
        "recent_invoices": recent,
    }
