from __future__ import annotations

import io
import zipfile
from decimal import Decimal

from PIL import Image

from factories import invoice_payload
from gst_invoicer.services.invoice_document import amount_in_words, format_inr, format_rate
from gst_invoicer.services.invoice_export import build_zip, jpeg_archive_name


def _create(client, company, buyer, **overrides):
    response = client.post("/api/invoices", json=invoice_payload(company["id"], buyer["id"], **overrides))
    assert response.status_code == 201, response.text
    return response.json()


def test_indian_digit_grouping():
    assert format_inr(Decimal("1234567.891")) == "12,34,567.89"
    assert format_inr(Decimal("999")) == "999.00"
    assert format_inr(Decimal("1000")) == "1,000.00"
    assert format_inr(Decimal("123456789")) == "12,34,56,789.00"
    assert format_inr(Decimal("-150000.5")) == "-1,50,000.50"


def test_rate_formatting_drops_trailing_zeros():
    assert format_rate(Decimal("18.00")) == "18"
    assert format_rate(Decimal("2.50")) == "2.5"
    assert format_rate(Decimal("100")) == "100"


def test_amount_in_words():
    words = amount_in_words(Decimal("1180"))
    assert words.startswith("One thousand")
    assert words.endswith("eighty rupees only")
    assert "lakh" in amount_in_words(Decimal("1234567"))
    assert amount_in_words(Decimal("10.50")).endswith("rupees and fifty paise only")


def test_build_zip_disambiguates_names():
    archive = zipfile.ZipFile(io.BytesIO(build_zip([("Invoice-1.jpg", b"a"), ("Invoice-1.jpg", b"b")])))
    assert archive.namelist() == ["Invoice-1.jpg", "Invoice-1-2.jpg"]


def test_build_zip_never_reuses_a_written_name():
    numbers = ["A/1", "A 1", "A-1-2", "A-1"]
    entries = [(jpeg_archive_name(number), number.encode()) for number in numbers]

    archive = zipfile.ZipFile(io.BytesIO(build_zip(entries)))
    names = archive.namelist()

    assert len(names) == len(set(names)) == 4
    assert names[0] == "Invoice-A-1.jpg"
    assert sorted(archive.read(name) for name in names) == sorted(number.encode() for number in numbers)


def test_invoice_pdf(client, parties):
    company, buyer = parties
    invoice = _create(client, company, buyer, notes="Payment within 15 days")

    response = client.get(f"/api/invoices/{invoice['id']}/pdf")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert "Invoice-1.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_invoice_pdf_with_many_items_and_logo(client, parties):
    company, buyer = parties
    logo = io.BytesIO()
    Image.new("RGB", (60, 30), "teal").save(logo, format="PNG")
    client.post(f"/api/companies/{company['id']}/logo", files={"file": ("logo.png", logo.getvalue(), "image/png")})

    items = [{"description": f"Line {idx}", "quantity": "1", "rate": "10"} for idx in range(60)]
    invoice = _create(client, company, buyer, items=items)

    response = client.get(f"/api/invoices/{invoice['id']}/pdf")
    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")


def test_invoice_jpeg(client, parties):
    company, buyer = parties
    invoice = _create(client, company, buyer, gst_rate=None, igst_rate="0", sgst_rate="9", cgst_rate="9")

    response = client.get(f"/api/invoices/{invoice['id']}/jpeg")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"

    image = Image.open(io.BytesIO(response.content))
    assert image.format == "JPEG"
    assert image.width == 1240


def test_jpeg_zip_export(client, parties):
    company, buyer = parties
    _create(client, company, buyer, invoice_number="101", invoice_date="2026-03-01")
    _create(client, company, buyer, invoice_number="102", invoice_date="2026-03-20")
    _create(client, company, buyer, invoice_number="103", invoice_date="2026-05-01")

    response = client.get("/api/invoices/export/jpeg.zip", params={"date_from": "2026-03-01", "date_to": "2026-03-31"})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"

    archive = zipfile.ZipFile(io.BytesIO(response.content))
    assert sorted(archive.namelist()) == ["Invoice-101.jpg", "Invoice-102.jpg"]
    assert Image.open(io.BytesIO(archive.read("Invoice-101.jpg"))).format == "JPEG"


def test_jpeg_zip_requires_dates(client):
    assert client.get("/api/invoices/export/jpeg.zip", params={"date_from": "2026-03-01"}).status_code == 400


def test_jpeg_zip_empty_range(client, parties):
    company, buyer = parties
    _create(client, company, buyer, invoice_date="2026-03-01")

    response = client.get("/api/invoices/export/jpeg.zip", params={"date_from": "2025-01-01", "date_to": "2025-12-31"})
    assert response.status_code == 404
