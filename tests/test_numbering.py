from __future__ import annotations

from datetime import date
from decimal import Decimal

from factories import make_user
from gst_invoicer.models.client import Client
from gst_invoicer.models.company import Company
from gst_invoicer.models.invoice import Invoice
from gst_invoicer.services.numbering import (
    invoice_number_taken,
    next_invoice_number,
    suggest_invoice_number,
)


def test_next_number_skips_non_numeric():
    assert next_invoice_number(["3", "7", "abc", "10"]) == "11"


def test_next_number_starts_at_one():
    assert next_invoice_number([]) == "1"
    assert next_invoice_number(["INV-1", "draft"]) == "1"


def test_next_number_counts_leading_zeros_but_not_whitespace():
    assert next_invoice_number(["007", " 12 ", "12\n", None, "4a"]) == "8"


def _invoice(db, user, number: str) -> Invoice:
    company = Company(user_id=user.id, name=f"Co {user.id}")
    client = Client(user_id=user.id, name=f"Client {user.id}")
    db.add_all([company, client])
    db.flush()
    invoice = Invoice(
        user_id=user.id,
        company_id=company.id,
        client_id=client.id,
        invoice_number=number,
        invoice_date=date(2026, 1, 1),
        total_amount=Decimal("0.00"),
    )
    db.add(invoice)
    db.commit()
    return invoice


def test_suggestion_is_scoped_per_user(db_session):
    alice = make_user(db_session, "alice@example.com")
    bob = make_user(db_session, "bob@example.com")
    _invoice(db_session, alice, "41")
    _invoice(db_session, alice, "SPECIAL-9")
    _invoice(db_session, bob, "3")

    assert suggest_invoice_number(db_session, user_id=alice.id) == "42"
    assert suggest_invoice_number(db_session, user_id=bob.id) == "4"


def test_invoice_number_taken_excludes_self(db_session):
    alice = make_user(db_session, "alice@example.com")
    invoice = _invoice(db_session, alice, "5")

    assert invoice_number_taken(db_session, user_id=alice.id, invoice_number="5")
    assert not invoice_number_taken(db_session, user_id=alice.id, invoice_number="5", exclude_invoice_id=invoice.id)
    assert not invoice_number_taken(db_session, user_id=alice.id, invoice_number="6")
