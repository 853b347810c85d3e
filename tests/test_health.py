from __future__ import annotations

import logging

from factories import invoice_payload


def test_healthz(api):
    response = api.get("/healthz")
    assert response.status_code == 200
    assert response.json()["database"] == "ok"
    assert response.headers["x-request-id"]


def test_request_id_is_echoed(api):
    response = api.get("/version", headers={"X-Request-Id": "abc-123"})
    assert response.status_code == 200
    assert response.headers["x-request-id"] == "abc-123"
    assert response.json()["version"] == "1.0.0"


def test_metrics_exposes_invoice_counters(api):
    response = api.get("/metrics")
    assert response.status_code == 200
    assert "invoices_created_total" in response.text
    assert "http_server_requests_total" in response.text


def _request_records(caplog, path):
    return [record for record in caplog.records if record.name == "request" and record.path == path]


def test_number_collision_is_logged_on_request_record(client, parties, caplog):
    company, buyer = parties
    payload = invoice_payload(company["id"], buyer["id"], invoice_number="21")
    assert client.post("/api/invoices", json=payload).status_code == 201

    caplog.clear()
    caplog.set_level(logging.INFO, logger="request")
    assert client.post("/api/invoices", json=payload).status_code == 409

    (record,) = _request_records(caplog, "/api/invoices")
    assert record.levelno == logging.WARNING
    assert record.status_code == 409
    assert record.invoice_number == "21"


def test_export_is_logged_with_format_and_count(client, parties, caplog):
    company, buyer = parties
    client.post("/api/invoices", json=invoice_payload(company["id"], buyer["id"]))

    caplog.set_level(logging.INFO, logger="request")
    assert client.get("/api/invoices/export.csv").status_code == 200

    (record,) = _request_records(caplog, "/api/invoices/export.csv")
    assert record.levelno == logging.INFO
    assert record.export_format == "csv"
    assert record.invoice_count == 1
