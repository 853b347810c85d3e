from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gst_invoicer.db.base import Base, IDMixin, TimestampMixin


class InvoiceTemplate(IDMixin, TimestampMixin, Base):
    __tablename__ = "invoice_templates"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    template_data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    owner: Mapped["User"] = relationship(back_populates="templates")
    invoices: Mapped[List["Invoice"]] = relationship(back_populates="template")
