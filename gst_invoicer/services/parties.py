"""
Ownership lookups and lifecycle rules for companies, clients and templates.
"""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Optional, Type, TypeVar

from PIL import Image, UnidentifiedImageError
from sqlalchemy.orm import Session

from gst_invoicer.core.settings import settings
from gst_invoicer.models.client import Client
from gst_invoicer.models.company import Company
from gst_invoicer.models.invoice import Invoice
from gst_invoicer.models.template import InvoiceTemplate

logger = logging.getLogger(__name__)

OwnedT = TypeVar("OwnedT", Company, Client, InvoiceTemplate)

LOGO_FORMATS = {"PNG": ".png", "JPEG": ".jpg"}


class ResourceInUse(Exception):
    def __init__(self, resource: str, resource_id: int, invoice_count: int) -> None:
        super().__init__(f"{resource} is used by {invoice_count} invoice(s)")
        self.resource = resource
        self.resource_id = resource_id
        self.invoice_count = invoice_count


class InvalidLogo(ValueError):
    pass


def get_owned(db: Session, model: Type[OwnedT], *, user_id: int, record_id: int) -> Optional[OwnedT]:
    return db.query(model).filter(model.id == record_id, model.user_id == user_id).first()


def ensure_unreferenced(db: Session, record: Company | Client) -> None:
    column = Invoice.company_id if isinstance(record, Company) else Invoice.client_id
    count = db.query(Invoice.id).filter(column == record.id).count()
    if count:
        raise ResourceInUse(type(record).__name__, record.id, count)


def clear_other_defaults(db: Session, *, user_id: int, keep_id: Optional[int] = None) -> None:
    query = db.query(InvoiceTemplate).filter(
        InvoiceTemplate.user_id == user_id,
        InvoiceTemplate.is_default.is_(True),
    )
    if keep_id is not None:
        query = query.filter(InvoiceTemplate.id != keep_id)
    for template in query.all():
        template.is_default = False


def logo_dir(user_id: int) -> Path:
    path = settings.ensure_uploads_dir() / "logos" / str(user_id)
    path.mkdir(parents=True, exist_ok=True)
    return path


def store_company_logo(company: Company, payload: bytes) -> Path:
    """Validate an uploaded PNG/JPEG with Pillow and write it under the owner's logo dir."""
    if not payload:
        raise InvalidLogo("Logo file is empty")
    if len(payload) > settings.max_logo_bytes:
        raise InvalidLogo(f"Logo exceeds {settings.max_logo_bytes} bytes")
    try:
        with Image.open(BytesIO(payload)) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise InvalidLogo("Logo must be a PNG or JPEG image") from exc
    if image_format not in LOGO_FORMATS:
        raise InvalidLogo("Logo must be a PNG or JPEG image")

    target = logo_dir(company.user_id) / f"company-{company.id}{LOGO_FORMATS[image_format]}"
    for stale in target.parent.glob(f"company-{company.id}.*"):
        if stale != target:
            stale.unlink(missing_ok=True)
    target.write_bytes(payload)
    company.logo_path = str(target)
    logger.info("company_logo_stored", extra={"user_id": company.user_id})
    return target
