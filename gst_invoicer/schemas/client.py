from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from gst_invoicer.schemas.base import ORMModel


class ClientBase(ORMModel):
    name: str = Field(..., min_length=1, max_length=255)
    company_name: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)
    gst_number: Optional[str] = Field(default=None, max_length=50)
    pan_number: Optional[str] = Field(default=None, max_length=50)
    state: Optional[str] = Field(default=None, max_length=100)


class ClientCreate(ClientBase):
    pass


class ClientUpdate(ORMModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    company_name: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)
    gst_number: Optional[str] = Field(default=None, max_length=50)
    pan_number: Optional[str] = Field(default=None, max_length=50)
    state: Optional[str] = Field(default=None, max_length=100)


class ClientRead(ClientBase):
    id: int
    display_name: str
    created_at: datetime
    updated_at: datetime
