from __future__ import annotations

import csv
import zipfile
from io import BytesIO, StringIO
from typing import Iterable, Iterator, Sequence, Tuple

from gst_invoicer.models.invoice import Invoice
from gst_invoicer.services.calculator import quantize_money
from gst_invoicer.services.invoice_document import safe_filename

LEDGER_CSV_HEADER = ["Date", "Invoice #", "Client", "Amount", "GST Amount", "Status"]


def ledger_csv_row(invoice: Invoice) -> list:
    return [
        invoice.invoice_date.strftime("%d %b %Y"),
        invoice.invoice_number,
        invoice.client_name or "",
        f"{quantize_money(invoice.total_amount):.2f}",
        f"{quantize_money(invoice.total_tax):.2f}",
        invoice.status.value,
    ]


def iter_ledger_csv(invoices: Iterable[Invoice]) -> Iterator[str]:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(LEDGER_CSV_HEADER)
    yield buffer.getvalue()
    buffer.seek(0)
    buffer.truncate(0)

    for invoice in invoices:
        writer.writerow(ledger_csv_row(invoice))
        yield buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)


def jpeg_archive_name(invoice_number: str) -> str:
    return safe_filename(f"Invoice-{invoice_number}.jpg")


def build_zip(entries: Sequence[Tuple[str, bytes]]) -> bytes:
    """Pack (name, payload) pairs. A name already in the archive gets -2, -3, ... appended."""
    buffer = BytesIO()
    written: set = set()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, payload in entries:
            unique = name
            stem, dot, ext = name.rpartition(".")
            if not dot:
                stem, ext = name, ""
            suffix = 2
            while unique in written:
                unique = f"{stem}-{suffix}{dot}{ext}"
                suffix += 1
            written.add(unique)
            archive.writestr(unique, payload)
    return buffer.getvalue()
