from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from gst_invoicer.models.enums import InvoiceStatus
from gst_invoicer.schemas.base import ORMModel

Rate = Optional[Decimal]


class InvoiceItemCreate(ORMModel):
    description: str = Field(..., min_length=1, max_length=500)
    hsn_sac_code: Optional[str] = Field(default=None, max_length=20)
    # Same scale as the invoice_items columns so the stored row reproduces its amount.
    quantity: Decimal = Field(default=Decimal("1"), gt=Decimal("0"), decimal_places=3)
    rate: Decimal = Field(default=Decimal("0.00"), ge=Decimal("0"), decimal_places=2)


class InvoiceItemRead(ORMModel):
    id: int
    description: str
    hsn_sac_code: Optional[str] = None
    quantity: Decimal
    rate: Decimal
    amount: Decimal
    order_index: int


class TaxRates(ORMModel):
    """Either ``gst_rate`` alone or any of the split rates, never both."""

    gst_rate: Rate = Field(default=None, ge=Decimal("0"), le=Decimal("100"), decimal_places=2)
    igst_rate: Rate = Field(default=None, ge=Decimal("0"), le=Decimal("100"), decimal_places=2)
    sgst_rate: Rate = Field(default=None, ge=Decimal("0"), le=Decimal("100"), decimal_places=2)
    cgst_rate: Rate = Field(default=None, ge=Decimal("0"), le=Decimal("100"), decimal_places=2)

    @model_validator(mode="after")
    def check_single_tax_mode(self):
        split = (self.igst_rate, self.sgst_rate, self.cgst_rate)
        if self.gst_rate is not None and any(rate is not None for rate in split):
            raise ValueError("Use either gst_rate or igst_rate/sgst_rate/cgst_rate, not both")
        return self


class InvoiceCreate(TaxRates):
    company_id: int
    client_id: int
    template_id: Optional[int] = None
    invoice_number: Optional[str] = Field(default=None, max_length=50)
    invoice_date: date = Field(default_factory=date.today)
    due_date: Optional[date] = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: Optional[str] = None
    # With gst_rate set, derive CGST+SGST or IGST from the company and client states.
    split_by_place_of_supply: bool = False
    items: List[InvoiceItemCreate] = Field(..., min_length=1)

    @field_validator("invoice_number", mode="before")
    @classmethod
    def blank_number_is_auto(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class InvoiceUpdate(InvoiceCreate):
    """Full edit. Items are replaced and totals recomputed; a missing number keeps the current one."""

    status: Optional[InvoiceStatus] = None


class InvoiceStatusUpdate(ORMModel):
    status: InvoiceStatus


class CalculateItem(ORMModel):
    description: str = ""
    hsn_sac_code: Optional[str] = None
    quantity: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), decimal_places=3)
    rate: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), decimal_places=2)


class CalculateRequest(TaxRates):
    items: List[CalculateItem] = Field(default_factory=list)


class CalculatedItem(ORMModel):
    description: str
    hsn_sac_code: Optional[str] = None
    quantity: Decimal
    rate: Decimal
    amount: Decimal


class CalculateResponse(ORMModel):
    items: List[CalculatedItem]
    is_split: bool
    gst_rate: Decimal
    igst_rate: Decimal
    sgst_rate: Decimal
    cgst_rate: Decimal
    subtotal: Decimal
    gst_amount: Decimal
    igst_amount: Decimal
    sgst_amount: Decimal
    cgst_amount: Decimal
    total_tax: Decimal
    total_amount: Decimal


class InvoiceLedgerRow(ORMModel):
    id: int
    invoice_number: str
    invoice_date: date
    due_date: Optional[date] = None
    status: InvoiceStatus
    company_id: int
    company_name: Optional[str] = None
    client_id: int
    client_name: Optional[str] = None
    subtotal: Decimal
    total_tax: Decimal
    total_amount: Decimal
    created_at: datetime


class InvoiceRead(InvoiceLedgerRow):
    template_id: Optional[int] = None
    notes: Optional[str] = None
    gst_rate: Decimal
    gst_amount: Decimal
    igst_rate: Decimal
    igst_amount: Decimal
    sgst_rate: Decimal
    sgst_amount: Decimal
    cgst_rate: Decimal
    cgst_amount: Decimal
    items: List[InvoiceItemRead] = Field(default_factory=list)
    updated_at: datetime


class InvoiceListResponse(ORMModel):
    items: List[InvoiceLedgerRow]
    total: int
    page: int
    page_size: int
    has_more: bool


class LedgerSummaryRead(ORMModel):
    invoice_count: int
    total_amount: Decimal
    total_gst: Decimal
    received_amount: Decimal
    pending_amount: Decimal


class NextInvoiceNumber(ORMModel):
    invoice_number: str
