"""
Per-user sequential invoice numbering.

The suggested number is advisory. Uniqueness is only guaranteed by the
``(user_id, invoice_number)`` constraint on ``invoices``; a save that loses a
race surfaces as ``InvoiceNumberConflict``.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from gst_invoicer.models.invoice import Invoice
from gst_invoicer.models.user import User

logger = logging.getLogger(__name__)

NUMERIC_INVOICE_NUMBER = re.compile(r"^[0-9]+$")


class InvoiceNumberConflict(Exception):
    def __init__(self, user_id: int, invoice_number: str) -> None:
        super().__init__(f"Invoice number {invoice_number} already exists")
        self.user_id = user_id
        self.invoice_number = invoice_number


def next_invoice_number(existing: Iterable[Optional[str]]) -> str:
    """Highest purely numeric value plus one. Non-numeric numbers are ignored."""
    highest = 0
    for raw in existing:
        # Matched on the stored value as is; padded numbers such as " 12 " do not count.
        if raw is None or not NUMERIC_INVOICE_NUMBER.fullmatch(raw):
            continue
        highest = max(highest, int(raw))
    return str(highest + 1)


def existing_invoice_numbers(db: Session, *, user_id: int) -> List[str]:
    rows = db.query(Invoice.invoice_number).filter(Invoice.user_id == user_id).all()
    return [row[0] for row in rows]


def suggest_invoice_number(db: Session, *, user_id: int) -> str:
    return next_invoice_number(existing_invoice_numbers(db, user_id=user_id))


def claim_invoice_number(db: Session, *, user_id: int) -> str:
    """Pick the next number inside the caller's transaction.

    The owning user row is locked first so concurrent claims for the same user
    serialise on databases with row locks. SQLite ignores the lock; the unique
    constraint still rejects a duplicate.
    """
    db.query(User).filter(User.id == user_id).with_for_update().first()
    number = suggest_invoice_number(db, user_id=user_id)
    logger.debug("invoice_number_claimed", extra={"user_id": user_id, "invoice_number": number})
    return number


def invoice_number_taken(
    db: Session,
    *,
    user_id: int,
    invoice_number: str,
    exclude_invoice_id: Optional[int] = None,
) -> bool:
    query = db.query(Invoice.id).filter(
        Invoice.user_id == user_id,
        Invoice.invoice_number == invoice_number,
    )
    if exclude_invoice_id is not None:
        query = query.filter(Invoice.id != exclude_invoice_id)
    return query.first() is not None
