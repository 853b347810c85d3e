"""Import all models so SQLAlchemy metadata is fully registered."""

from gst_invoicer.db.base import Base

from gst_invoicer.models.audit import ActivityLog
from gst_invoicer.models.client import Client
from gst_invoicer.models.company import Company
from gst_invoicer.models.enums import InvoiceStatus
from gst_invoicer.models.invoice import Invoice, InvoiceItem
from gst_invoicer.models.revoked_token import RevokedToken
from gst_invoicer.models.template import InvoiceTemplate
from gst_invoicer.models.user import User

__all__ = [
    "Base",
    "ActivityLog",
    "Client",
    "Company",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "InvoiceTemplate",
    "RevokedToken",
    "User",
]
