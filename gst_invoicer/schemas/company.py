from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from gst_invoicer.schemas.base import ORMModel


class CompanyBase(ORMModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)
    gst_number: Optional[str] = Field(default=None, max_length=50)
    pan_number: Optional[str] = Field(default=None, max_length=50)
    state: Optional[str] = Field(default=None, max_length=100)
    bank_name: Optional[str] = Field(default=None, max_length=255)
    account_number: Optional[str] = Field(default=None, max_length=100)
    ifsc_code: Optional[str] = Field(default=None, max_length=50)
    branch: Optional[str] = Field(default=None, max_length=255)


class CompanyCreate(CompanyBase):
    pass


class CompanyUpdate(ORMModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)
    gst_number: Optional[str] = Field(default=None, max_length=50)
    pan_number: Optional[str] = Field(default=None, max_length=50)
    state: Optional[str] = Field(default=None, max_length=100)
    bank_name: Optional[str] = Field(default=None, max_length=255)
    account_number: Optional[str] = Field(default=None, max_length=100)
    ifsc_code: Optional[str] = Field(default=None, max_length=50)
    branch: Optional[str] = Field(default=None, max_length=255)


class CompanyRead(CompanyBase):
    id: int
    has_logo: bool
    created_at: datetime
    updated_at: datetime
