from __future__ import annotations

from decimal import Decimal
from typing import List

from gst_invoicer.schemas.base import ORMModel
from gst_invoicer.schemas.invoice import InvoiceLedgerRow


class DashboardStats(ORMModel):
    total_invoices: int
    clients: int
    companies: int
    this_month_total: Decimal
    recent_invoices: List[InvoiceLedgerRow]
