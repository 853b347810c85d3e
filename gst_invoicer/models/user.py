from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gst_invoicer.db.base import Base, IDMixin, TimestampMixin


class User(IDMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    companies: Mapped[List["Company"]] = relationship(back_populates="owner", cascade="all, delete-orphan")
    clients: Mapped[List["Client"]] = relationship(back_populates="owner", cascade="all, delete-orphan")
    invoices: Mapped[List["Invoice"]] = relationship(back_populates="owner", cascade="all, delete-orphan")
    templates: Mapped[List["InvoiceTemplate"]] = relationship(back_populates="owner", cascade="all, delete-orphan")
    activities: Mapped[List["ActivityLog"]] = relationship(back_populates="actor")
