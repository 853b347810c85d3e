from __future__ import annotations

import csv
import io
from decimal import Decimal

from factories import create_client, create_company, invoice_payload, make_user
from gst_invoicer.models.audit import ActivityLog
from gst_invoicer.services.calculator import quantize_money


def _create(client, company, buyer, **overrides):
    return client.post("/api/invoices", json=invoice_payload(company["id"], buyer["id"], **overrides))


def _money(value) -> Decimal:
    return Decimal(str(value))


def test_create_invoice_assigns_number_and_totals(client, parties, db_session):
    company, buyer = parties

    response = _create(client, company, buyer)
    assert response.status_code == 201, response.text
    data = response.json()

    assert data["invoice_number"] == "1"
    assert data["status"] == "draft"
    assert _money(data["subtotal"]) == Decimal("250.00")
    assert _money(data["gst_amount"]) == Decimal("45.00")
    assert _money(data["total_tax"]) == Decimal("45.00")
    assert _money(data["total_amount"]) == Decimal("295.00")
    assert _money(data["igst_rate"]) == 0
    assert [item["order_index"] for item in data["items"]] == [0, 1]
    assert [_money(item["amount"]) for item in data["items"]] == [Decimal("200.00"), Decimal("50.00")]
    assert data["client_name"] == "Kumar Textiles"
    assert data["company_name"] == "Sharma Traders"

    logged = db_session.query(ActivityLog).filter(ActivityLog.type == "INVOICE_CREATED").one()
    assert logged.payload_json["invoice_id"] == data["id"]


def test_split_tax_invoice(client, parties):
    company, buyer = parties

    response = _create(
        client,
        company,
        buyer,
        gst_rate=None,
        igst_rate="18",
        sgst_rate="0",
        cgst_rate="0",
        items=[{"description": "Audit", "quantity": "1", "rate": "1000"}],
    )
    assert response.status_code == 201, response.text
    data = response.json()

    assert _money(data["subtotal"]) == Decimal("1000.00")
    assert _money(data["igst_amount"]) == Decimal("180.00")
    assert _money(data["gst_amount"]) == 0
    assert _money(data["gst_rate"]) == 0
    assert _money(data["total_amount"]) == Decimal("1180.00")


def test_place_of_supply_split(client):
    company = create_company(client, state="Maharashtra")
    buyer = create_client(client, state="Maharashtra")

    response = _create(client, company, buyer, split_by_place_of_supply=True)
    assert response.status_code == 201, response.text
    data = response.json()

    assert _money(data["cgst_rate"]) == Decimal("9")
    assert _money(data["sgst_rate"]) == Decimal("9")
    assert _money(data["cgst_amount"]) == Decimal("22.50")
    assert _money(data["sgst_amount"]) == Decimal("22.50")
    assert _money(data["total_amount"]) == Decimal("295.00")


def test_mixing_tax_modes_is_rejected(client, parties):
    company, buyer = parties
    response = _create(client, company, buyer, gst_rate="18", igst_rate="18")
    assert response.status_code == 422


def test_item_validation(client, parties):
    company, buyer = parties

    assert _create(client, company, buyer, items=[]).status_code == 422
    zero_qty = [{"description": "Nothing", "quantity": "0", "rate": "10"}]
    assert _create(client, company, buyer, items=zero_qty).status_code == 422
    negative_rate = [{"description": "Refund", "quantity": "1", "rate": "-5"}]
    assert _create(client, company, buyer, items=negative_rate).status_code == 422
    assert _create(client, company, buyer, gst_rate="120").status_code == 422


def test_submitted_totals_are_ignored(client, parties):
    company, buyer = parties
    response = _create(client, company, buyer, total_amount="1.00", subtotal="1.00")
    assert response.status_code == 201
    assert _money(response.json()["total_amount"]) == Decimal("295.00")


def test_next_number_follows_numeric_invoices(client, parties):
    company, buyer = parties
    _create(client, company, buyer, invoice_number="7")
    _create(client, company, buyer, invoice_number="ACME-2026-1")
    _create(client, company, buyer, invoice_number="3")

    response = client.get("/api/invoices/next-number")
    assert response.status_code == 200
    assert response.json() == {"invoice_number": "8"}

    auto = _create(client, company, buyer)
    assert auto.json()["invoice_number"] == "8"


def test_duplicate_number_for_same_user_conflicts(client, parties):
    company, buyer = parties
    assert _create(client, company, buyer, invoice_number="5").status_code == 201

    duplicate = _create(client, company, buyer, invoice_number="5")
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "Invoice number 5 already exists"

    listing = client.get("/api/invoices").json()
    assert listing["total"] == 1


def test_same_number_for_another_user_is_accepted(client, parties, acting, db_session):
    company, buyer = parties
    assert _create(client, company, buyer, invoice_number="5").status_code == 201

    acting["user"] = make_user(db_session, "second@example.com")
    other_company = create_company(client, name="Second Co")
    other_buyer = create_client(client, name="Second Buyer", company_name=None)

    response = _create(client, other_company, other_buyer, invoice_number="5")
    assert response.status_code == 201, response.text


def test_update_recomputes_totals_and_replaces_items(client, parties):
    company, buyer = parties
    created = _create(client, company, buyer).json()

    payload = invoice_payload(
        company["id"],
        buyer["id"],
        gst_rate="5",
        items=[{"description": "Silk", "quantity": "4", "rate": "250"}],
    )
    response = client.put(f"/api/invoices/{created['id']}", json=payload)
    assert response.status_code == 200, response.text
    data = response.json()

    assert data["invoice_number"] == created["invoice_number"]
    assert [item["description"] for item in data["items"]] == ["Silk"]
    assert _money(data["subtotal"]) == Decimal("1000.00")
    assert _money(data["gst_amount"]) == Decimal("50.00")
    assert _money(data["total_amount"]) == Decimal("1050.00")


def test_update_to_existing_number_conflicts(client, parties):
    company, buyer = parties
    _create(client, company, buyer, invoice_number="1")
    second = _create(client, company, buyer, invoice_number="2").json()

    response = client.put(
        f"/api/invoices/{second['id']}",
        json=invoice_payload(company["id"], buyer["id"], invoice_number="1"),
    )
    assert response.status_code == 409

    unchanged = client.get(f"/api/invoices/{second['id']}").json()
    assert unchanged["invoice_number"] == "2"


def test_update_keeps_own_number(client, parties):
    company, buyer = parties
    created = _create(client, company, buyer, invoice_number="9").json()

    response = client.put(
        f"/api/invoices/{created['id']}",
        json=invoice_payload(company["id"], buyer["id"], invoice_number="9", notes="Thanks"),
    )
    assert response.status_code == 200
    assert response.json()["notes"] == "Thanks"


def test_status_update(client, parties):
    company, buyer = parties
    created = _create(client, company, buyer).json()

    response = client.patch(f"/api/invoices/{created['id']}/status", json={"status": "paid"})
    assert response.status_code == 200
    assert response.json()["status"] == "paid"

    bad = client.patch(f"/api/invoices/{created['id']}/status", json={"status": "void"})
    assert bad.status_code == 422


def test_delete_invoice(client, parties):
    company, buyer = parties
    created = _create(client, company, buyer).json()

    assert client.delete(f"/api/invoices/{created['id']}").status_code == 204
    assert client.get(f"/api/invoices/{created['id']}").status_code == 404


def test_foreign_records_are_not_found(client, parties, acting, db_session):
    company, buyer = parties
    created = _create(client, company, buyer).json()

    acting["user"] = make_user(db_session, "intruder@example.com")

    assert client.get(f"/api/invoices/{created['id']}").status_code == 404
    assert client.get(f"/api/invoices/{created['id']}/pdf").status_code == 404
    assert client.delete(f"/api/invoices/{created['id']}").status_code == 404
    assert _create(client, company, buyer).status_code == 404
    assert client.get("/api/invoices").json()["total"] == 0


def test_calculate_does_not_persist(client, parties):
    response = client.post(
        "/api/invoices/calculate",
        json={
            "gst_rate": "18",
            "items": [
                {"description": "A", "quantity": "2", "rate": "100"},
                {"description": "B", "quantity": "1", "rate": "50"},
            ],
        },
    )
    assert response.status_code == 200, response.text
    data = response.json()

    assert data["is_split"] is False
    assert [_money(item["amount"]) for item in data["items"]] == [Decimal("200.00"), Decimal("50.00")]
    assert _money(data["subtotal"]) == Decimal("250.00")
    assert _money(data["total_tax"]) == Decimal("45.00")
    assert _money(data["total_amount"]) == Decimal("295.00")
    assert client.get("/api/invoices").json()["total"] == 0


def test_calculate_empty_items(client):
    response = client.post("/api/invoices/calculate", json={"igst_rate": "18"})
    assert response.status_code == 200
    data = response.json()
    assert data["is_split"] is True
    assert _money(data["total_amount"]) == 0


def test_ledger_filters_and_pagination(client, parties):
    company, buyer = parties
    other_buyer = create_client(client, name="Anita Desai", company_name=None)

    _create(client, company, buyer, invoice_date="2026-01-10")
    _create(client, company, buyer, invoice_date="2026-02-10", status="paid")
    _create(client, company, other_buyer, invoice_date="2026-03-10")

    everything = client.get("/api/invoices", params={"page_size": 2}).json()
    assert everything["total"] == 3
    assert len(everything["items"]) == 2
    assert everything["has_more"] is True
    assert everything["items"][0]["invoice_date"] == "2026-03-10"

    second_page = client.get("/api/invoices", params={"page_size": 2, "page": 2}).json()
    assert len(second_page["items"]) == 1
    assert second_page["has_more"] is False

    paid = client.get("/api/invoices", params={"status": "paid"}).json()
    assert [row["invoice_date"] for row in paid["items"]] == ["2026-02-10"]

    by_client = client.get("/api/invoices", params={"client_id": other_buyer["id"]}).json()
    assert by_client["total"] == 1

    by_date = client.get("/api/invoices", params={"date_from": "2026-02-01", "date_to": "2026-03-31"}).json()
    assert by_date["total"] == 2

    by_search = client.get("/api/invoices", params={"search": "anita"}).json()
    assert [row["client_name"] for row in by_search["items"]] == ["Anita Desai"]


def test_summary(client, parties):
    company, buyer = parties
    _create(client, company, buyer)
    _create(client, company, buyer, status="paid")

    data = client.get("/api/invoices/summary").json()
    assert data["invoice_count"] == 2
    assert _money(data["total_amount"]) == Decimal("590.00")
    assert _money(data["total_gst"]) == Decimal("90.00")
    assert _money(data["received_amount"]) == Decimal("295.00")
    assert _money(data["pending_amount"]) == Decimal("295.00")


def test_export_csv(client, parties):
    company, buyer = parties
    _create(client, company, buyer, invoice_number="12", invoice_date="2026-03-05")

    response = client.get("/api/invoices/export.csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["Date", "Invoice #", "Client", "Amount", "GST Amount", "Status"]
    assert rows[1] == ["05 Mar 2026", "12", "Kumar Textiles", "295.00", "45.00", "draft"]


def test_dashboard_stats(client, parties):
    company, buyer = parties
    for _ in range(6):
        _create(client, company, buyer)

    data = client.get("/api/dashboard/stats").json()
    assert data["total_invoices"] == 6
    assert data["clients"] == 1
    assert data["companies"] == 1
    assert _money(data["this_month_total"]) == Decimal("1770.00")
    assert len(data["recent_invoices"]) == 5
    assert data["recent_invoices"][0]["invoice_number"] == "6"


def test_inputs_finer_than_storage_are_rejected(client, parties):
    company, buyer = parties

    fine_quantity = [{"description": "Yarn", "quantity": "1.0005", "rate": "1000"}]
    assert _create(client, company, buyer, items=fine_quantity).status_code == 422
    fine_rate = [{"description": "Yarn", "quantity": "1", "rate": "1000.005"}]
    assert _create(client, company, buyer, items=fine_rate).status_code == 422
    assert _create(client, company, buyer, gst_rate="18.555").status_code == 422
    assert _create(client, company, buyer, gst_rate=None, igst_rate="12.345").status_code == 422
    assert client.get("/api/invoices").json()["total"] == 0


def test_saved_items_reproduce_their_amounts(client, parties):
    company, buyer = parties
    items = [
        {"description": "Cotton", "quantity": "1.5", "rate": "33.33"},
        {"description": "Silk", "quantity": "2.125", "rate": "99.99"},
    ]
    created = _create(client, company, buyer, items=items).json()

    data = client.get(f"/api/invoices/{created['id']}").json()
    exact_subtotal = Decimal("0")
    for item in data["items"]:
        exact = _money(item["quantity"]) * _money(item["rate"])
        assert quantize_money(exact) == _money(item["amount"])
        exact_subtotal += exact
    assert [_money(item["quantity"]) for item in data["items"]] == [Decimal("1.5"), Decimal("2.125")]
    assert _money(data["subtotal"]) == quantize_money(exact_subtotal)


def test_stored_rate_matches_stored_tax(client, parties):
    company, buyer = parties
    items = [{"description": "Machinery", "quantity": "1", "rate": "100000"}]
    data = _create(client, company, buyer, gst_rate="18.55", items=items).json()

    assert _money(data["gst_rate"]) == Decimal("18.55")
    assert _money(data["gst_amount"]) == Decimal("18550.00")
    assert _money(data["gst_amount"]) == quantize_money(_money(data["subtotal"]) * _money(data["gst_rate"]) / 100)


def test_place_of_supply_half_rate_is_stored_exactly(client):
    company = create_company(client, state="Gujarat")
    buyer = create_client(client, state="gujarat")
    items = [{"description": "Gold coin", "quantity": "1", "rate": "10000"}]

    data = _create(client, company, buyer, gst_rate="0.25", split_by_place_of_supply=True, items=items).json()

    assert _money(data["cgst_rate"]) == Decimal("0.125")
    assert _money(data["sgst_rate"]) == Decimal("0.125")
    assert _money(data["cgst_amount"]) == Decimal("12.50")
    assert _money(data["sgst_amount"]) == Decimal("12.50")
    assert _money(data["total_amount"]) == Decimal("10025.00")


def test_auto_number_ignores_existing_non_numeric_numbers(client, parties):
    company, buyer = parties
    _create(client, company, buyer, invoice_number="INV-7")
    _create(client, company, buyer, invoice_number="2026/15")

    first = _create(client, company, buyer)
    assert first.status_code == 201
    assert first.json()["invoice_number"] == "1"

    _create(client, company, buyer, invoice_number="5")
    assert _create(client, company, buyer).json()["invoice_number"] == "6"
