from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from gst_invoicer.schemas.base import ORMModel


class InvoiceTemplateCreate(ORMModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    template_data: Dict[str, Any] = Field(default_factory=dict)
    is_default: bool = False


class InvoiceTemplateRead(InvoiceTemplateCreate):
    id: int
    created_at: datetime
