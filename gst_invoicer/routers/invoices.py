from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session, selectinload

from gst_invoicer.core.deps import get_current_user
from gst_invoicer.core.logging import annotate_request
from gst_invoicer.core.observability import (
    invoice_documents_rendered_total,
    invoice_number_conflicts_total,
    invoices_created_total,
)
from gst_invoicer.core.settings import settings
from gst_invoicer.db.session import get_db
from gst_invoicer.models.client import Client
from gst_invoicer.models.company import Company
from gst_invoicer.models.enums import InvoiceStatus
from gst_invoicer.models.invoice import Invoice
from gst_invoicer.models.template import InvoiceTemplate
from gst_invoicer.models.user import User
from gst_invoicer.schemas.invoice import (
    CalculatedItem,
    CalculateRequest,
    CalculateResponse,
    InvoiceCreate,
    InvoiceLedgerRow,
    InvoiceListResponse,
    InvoiceRead,
    InvoiceStatusUpdate,
    InvoiceUpdate,
    LedgerSummaryRead,
    NextInvoiceNumber,
)
from gst_invoicer.services.activity import log_activity
from gst_invoicer.services.calculator import TaxConfiguration, build_line_item, calculate_totals, quantize_money
from gst_invoicer.services.invoice_document import build_invoice_document, safe_filename
from gst_invoicer.services.invoice_export import build_zip, iter_ledger_csv, jpeg_archive_name
from gst_invoicer.services.invoice_image import render_invoice_jpeg
from gst_invoicer.services.invoice_pdf import render_invoice_pdf
from gst_invoicer.services.invoices import (
    commit_invoice,
    get_owned_invoice,
    ledger_query,
    line_items_from_payload,
    set_invoice_lines,
    summarize_ledger,
    tax_config_for,
)
from gst_invoicer.services.numbering import (
    InvoiceNumberConflict,
    claim_invoice_number,
    suggest_invoice_number,
)
from gst_invoicer.services.parties import get_owned

router = APIRouter(prefix="/api/invoices", tags=["invoices"])
logger = logging.getLogger(__name__)


def _get_invoice_or_404(db: Session, *, user: User, invoice_id: int) -> Invoice:
    invoice = get_owned_invoice(db, user_id=user.id, invoice_id=invoice_id)
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


def _resolve_parties(db: Session, *, user: User, payload: InvoiceCreate) -> tuple[Company, Client]:
    company = get_owned(db, Company, user_id=user.id, record_id=payload.company_id)
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    client = get_owned(db, Client, user_id=user.id, record_id=payload.client_id)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    if payload.template_id is not None:
        template = get_owned(db, InvoiceTemplate, user_id=user.id, record_id=payload.template_id)
        if not template:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return company, client


def _tax_config(payload: InvoiceCreate, company: Company, client: Client) -> TaxConfiguration:
    if payload.split_by_place_of_supply and payload.gst_rate is not None:
        return TaxConfiguration.for_place_of_supply(payload.gst_rate, company.state, client.state)
    return tax_config_for(
        gst_rate=payload.gst_rate,
        igst_rate=payload.igst_rate,
        sgst_rate=payload.sgst_rate,
        cgst_rate=payload.cgst_rate,
    )


def _commit_or_409(request: Request, db: Session, invoice: Invoice) -> Invoice:
    try:
        return commit_invoice(db, invoice)
    except InvoiceNumberConflict as exc:
        invoice_number_conflicts_total.inc()
        annotate_request(request, user_id=exc.user_id, invoice_number=exc.invoice_number)
        logger.info(
            "invoice_number_conflict",
            extra={"user_id": exc.user_id, "invoice_number": exc.invoice_number},
        )
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


def _ledger_filters(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    client_id: Optional[int] = Query(None),
    company_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
) -> dict:
    return {
        "status": status_filter,
        "client_id": client_id,
        "company_id": company_id,
        "date_from": date_from,
        "date_to": date_to,
        "search": search,
    }


def _document_filename(invoice: Invoice, extension: str) -> str:
    return safe_filename(f"Invoice-{invoice.invoice_number}.{extension}")


@router.get("", response_model=InvoiceListResponse)
def list_invoices(
    filters: dict = Depends(_ledger_filters),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> InvoiceListResponse:
    query = ledger_query(db, user_id=current_user.id, **filters)
    total = query.count()
    invoices = (
        query.options(selectinload(Invoice.client), selectinload(Invoice.company))
        .order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return InvoiceListResponse(
        items=[InvoiceLedgerRow.model_validate(invoice) for invoice in invoices],
        total=total,
        page=page,
        page_size=page_size,
        has_more=page * page_size < total,
    )


@router.get("/summary", response_model=LedgerSummaryRead)
def ledger_summary(
    filters: dict = Depends(_ledger_filters),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> LedgerSummaryRead:
    invoices = ledger_query(db, user_id=current_user.id, **filters).all()
    return LedgerSummaryRead.model_validate(summarize_ledger(invoices))


@router.get("/next-number", response_model=NextInvoiceNumber)
def next_number(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NextInvoiceNumber:
    return NextInvoiceNumber(invoice_number=suggest_invoice_number(db, user_id=current_user.id))


@router.post("/calculate", response_model=CalculateResponse)
def calculate(
    payload: CalculateRequest,
    current_user: User = Depends(get_current_user),
) -> CalculateResponse:
    line_items = [
        build_line_item(item.description, item.quantity, item.rate, item.hsn_sac_code)
        for item in payload.items
    ]
    tax_config = tax_config_for(
        gst_rate=payload.gst_rate,
        igst_rate=payload.igst_rate,
        sgst_rate=payload.sgst_rate,
        cgst_rate=payload.cgst_rate,
    )
    totals = calculate_totals(line_items, tax_config).rounded()
    return CalculateResponse(
        items=[
            CalculatedItem(
                description=line.description,
                hsn_sac_code=line.hsn_sac_code,
                quantity=line.quantity,
                rate=line.rate,
                amount=quantize_money(line.amount),
            )
            for line in line_items
        ],
        is_split=tax_config.is_split,
        gst_rate=tax_config.gst_rate,
        igst_rate=tax_config.igst_rate,
        sgst_rate=tax_config.sgst_rate,
        cgst_rate=tax_config.cgst_rate,
        subtotal=totals.subtotal,
        gst_amount=totals.gst_amount,
        igst_amount=totals.igst_amount,
        sgst_amount=totals.sgst_amount,
        cgst_amount=totals.cgst_amount,
        total_tax=totals.total_tax,
        total_amount=totals.total,
    )


@router.get("/export.csv")
def export_invoices_csv(
    request: Request,
    filters: dict = Depends(_ledger_filters),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> StreamingResponse:
    invoices = (
        ledger_query(db, user_id=current_user.id, **filters)
        .options(selectinload(Invoice.client))
        .order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
        .all()
    )
    annotate_request(request, user_id=current_user.id, export_format="csv", invoice_count=len(invoices))
    filename = f"invoices_export_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M')}.csv"
    return StreamingResponse(
        iter_ledger_csv(invoices),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/export/jpeg.zip")
def export_invoices_jpeg_zip(
    request: Request,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    if date_from is None or date_to is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="date_from and date_to are required")

    invoices = (
        ledger_query(db, user_id=current_user.id, date_from=date_from, date_to=date_to)
        .options(
            selectinload(Invoice.items),
            selectinload(Invoice.company),
            selectinload(Invoice.client),
        )
        .order_by(Invoice.invoice_date.asc(), Invoice.id.asc())
        .all()
    )
    if not invoices:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No invoices found in the selected range")

    entries = []
    for invoice in invoices:
        doc = build_invoice_document(invoice, currency=settings.currency_symbol)
        entries.append((jpeg_archive_name(invoice.invoice_number), render_invoice_jpeg(doc, quality=settings.jpeg_quality)))
        invoice_documents_rendered_total.labels(format="jpeg").inc()
    annotate_request(request, user_id=current_user.id, export_format="zip", invoice_count=len(invoices))

    filename = f"invoices_{date_from.isoformat()}_{date_to.isoformat()}.zip"
    return Response(
        content=build_zip(entries),
        media_type="application/zip",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
def create_invoice(
    request: Request,
    invoice_in: InvoiceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Invoice:
    company, client = _resolve_parties(db, user=current_user, payload=invoice_in)
    tax_config = _tax_config(invoice_in, company, client)
    line_items = line_items_from_payload(item.model_dump() for item in invoice_in.items)

    invoice_number = invoice_in.invoice_number or claim_invoice_number(db, user_id=current_user.id)
    invoice = Invoice(
        user_id=current_user.id,
        company=company,
        client=client,
        template_id=invoice_in.template_id,
        invoice_number=invoice_number,
        invoice_date=invoice_in.invoice_date,
        due_date=invoice_in.due_date,
        status=invoice_in.status,
        notes=invoice_in.notes,
    )
    set_invoice_lines(invoice, line_items, tax_config)
    db.add(invoice)
    invoice = _commit_or_409(request, db, invoice)
    annotate_request(request, invoice_id=invoice.id, invoice_number=invoice.invoice_number)

    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="INVOICE_CREATED",
        message=f"Invoice {invoice.invoice_number} created",
        payload={"invoice_id": invoice.id, "total_amount": str(invoice.total_amount)},
    )
    db.commit()
    invoices_created_total.inc()
    logger.info(
        "invoice_created",
        extra={"user_id": current_user.id, "invoice_id": invoice.id, "invoice_number": invoice.invoice_number},
    )
    return invoice


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Invoice:
    return _get_invoice_or_404(db, user=current_user, invoice_id=invoice_id)


@router.put("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(
    request: Request,
    invoice_id: int,
    invoice_update: InvoiceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Invoice:
    invoice = _get_invoice_or_404(db, user=current_user, invoice_id=invoice_id)
    company, client = _resolve_parties(db, user=current_user, payload=invoice_update)
    tax_config = _tax_config(invoice_update, company, client)
    line_items = line_items_from_payload(item.model_dump() for item in invoice_update.items)

    # No queries past this point until commit: autoflush would surface a
    # number collision outside commit_invoice.
    invoice.company = company
    invoice.client = client
    invoice.template_id = invoice_update.template_id
    if invoice_update.invoice_number:
        invoice.invoice_number = invoice_update.invoice_number
    invoice.invoice_date = invoice_update.invoice_date
    invoice.due_date = invoice_update.due_date
    if invoice_update.status is not None:
        invoice.status = invoice_update.status
    invoice.notes = invoice_update.notes
    set_invoice_lines(invoice, line_items, tax_config)
    invoice = _commit_or_409(request, db, invoice)
    annotate_request(request, invoice_id=invoice.id, invoice_number=invoice.invoice_number)

    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="INVOICE_UPDATED",
        message=f"Invoice {invoice.invoice_number} updated",
        payload={"invoice_id": invoice.id, "total_amount": str(invoice.total_amount)},
    )
    db.commit()
    return invoice


@router.patch("/{invoice_id}/status", response_model=InvoiceRead)
def update_invoice_status(
    invoice_id: int,
    payload: InvoiceStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Invoice:
    invoice = _get_invoice_or_404(db, user=current_user, invoice_id=invoice_id)
    previous = invoice.status
    invoice.status = payload.status
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="INVOICE_STATUS_CHANGED",
        message=f"Invoice {invoice.invoice_number}: {previous.value} -> {payload.status.value}",
        payload={"invoice_id": invoice.id, "from": previous.value, "to": payload.status.value},
    )
    db.commit()
    db.refresh(invoice)
    return invoice


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    invoice = _get_invoice_or_404(db, user=current_user, invoice_id=invoice_id)
    invoice_number = invoice.invoice_number
    db.delete(invoice)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="INVOICE_DELETED",
        message=f"Invoice {invoice_number} deleted",
        payload={"invoice_id": invoice_id},
    )
    db.commit()


@router.get("/{invoice_id}/pdf")
def download_invoice_pdf(
    request: Request,
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    invoice = _get_invoice_or_404(db, user=current_user, invoice_id=invoice_id)
    content = render_invoice_pdf(build_invoice_document(invoice, currency=settings.currency_symbol))
    invoice_documents_rendered_total.labels(format="pdf").inc()
    annotate_request(request, invoice_id=invoice.id, invoice_number=invoice.invoice_number, export_format="pdf")
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={_document_filename(invoice, 'pdf')}"},
    )


@router.get("/{invoice_id}/jpeg")
def download_invoice_jpeg(
    request: Request,
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    invoice = _get_invoice_or_404(db, user=current_user, invoice_id=invoice_id)
    doc = build_invoice_document(invoice, currency=settings.currency_symbol)
    content = render_invoice_jpeg(doc, quality=settings.jpeg_quality)
    invoice_documents_rendered_total.labels(format="jpeg").inc()
    annotate_request(request, invoice_id=invoice.id, invoice_number=invoice.invoice_number, export_format="jpeg")
    return Response(
        content=content,
        media_type="image/jpeg",
        headers={"Content-Disposition": f"attachment; filename={_document_filename(invoice, 'jpg')}"},
    )
