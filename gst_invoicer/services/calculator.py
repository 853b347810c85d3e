"""
GST tax and totals arithmetic for invoices.

Everything here is pure: no database access, no mutation of inputs. The
functions are cheap enough to run on every edit of a draft invoice.

Two tax modes are supported:

- single rate: one ``gst_rate`` applied to the subtotal
- split rates: independent IGST, SGST and CGST rates, each applied to the
  subtotal. Nothing stops more than one being non-zero.

Money is ``Decimal`` end to end. ``calculate_totals`` returns exact values;
``InvoiceTotals.rounded`` produces the paise-quantised snapshot that gets
persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional, Union

Number = Union[Decimal, int, float, str, None]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWOPLACES = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """Coerce form input to Decimal. Blank, missing or malformed input is 0."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return ZERO
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        return ZERO
    return result if result.is_finite() else ZERO


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineItem:
    description: str
    quantity: Decimal
    rate: Decimal
    hsn_sac_code: Optional[str] = None

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.rate

    def with_quantity(self, quantity: Number) -> "LineItem":
        return replace(self, quantity=to_decimal(quantity))

    def with_rate(self, rate: Number) -> "LineItem":
        return replace(self, rate=to_decimal(rate))


def build_line_item(
    description: str,
    quantity: Number,
    rate: Number,
    hsn_sac_code: Optional[str] = None,
) -> LineItem:
    return LineItem(
        description=description or "",
        quantity=to_decimal(quantity),
        rate=to_decimal(rate),
        hsn_sac_code=hsn_sac_code or None,
    )


def _same_state(seller_state: Optional[str], buyer_state: Optional[str]) -> Optional[bool]:
    if not seller_state or not buyer_state:
        return None
    return seller_state.strip().lower() == buyer_state.strip().lower()


@dataclass(frozen=True)
class TaxConfiguration:
    gst_rate: Decimal = ZERO
    igst_rate: Decimal = ZERO
    sgst_rate: Decimal = ZERO
    cgst_rate: Decimal = ZERO
    is_split: bool = False

    @classmethod
    def single(cls, gst_rate: Number) -> "TaxConfiguration":
        return cls(gst_rate=to_decimal(gst_rate))

    @classmethod
    def split(cls, igst_rate: Number = None, sgst_rate: Number = None, cgst_rate: Number = None) -> "TaxConfiguration":
        return cls(
            igst_rate=to_decimal(igst_rate),
            sgst_rate=to_decimal(sgst_rate),
            cgst_rate=to_decimal(cgst_rate),
            is_split=True,
        )

    @classmethod
    def for_place_of_supply(
        cls,
        gst_rate: Number,
        seller_state: Optional[str],
        buyer_state: Optional[str],
    ) -> "TaxConfiguration":
        """Intra-state supply splits the rate into CGST + SGST, inter-state is IGST.

        Falls back to single-rate mode when either state is unknown.
        """
        rate = to_decimal(gst_rate)
        same = _same_state(seller_state, buyer_state)
        if same is None:
            return cls.single(rate)
        if same:
            half = rate / Decimal("2")
            return cls.split(igst_rate=ZERO, sgst_rate=half, cgst_rate=half)
        return cls.split(igst_rate=rate, sgst_rate=ZERO, cgst_rate=ZERO)


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal = ZERO
    gst_amount: Decimal = ZERO
    igst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO
    cgst_amount: Decimal = ZERO

    @property
    def total_tax(self) -> Decimal:
        return self.gst_amount + self.igst_amount + self.sgst_amount + self.cgst_amount

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.total_tax

    def rounded(self) -> "InvoiceTotals":
        """Quantise each component to paise; total_tax and total follow from the parts."""
        return InvoiceTotals(
            subtotal=quantize_money(self.subtotal),
            gst_amount=quantize_money(self.gst_amount),
            igst_amount=quantize_money(self.igst_amount),
            sgst_amount=quantize_money(self.sgst_amount),
            cgst_amount=quantize_money(self.cgst_amount),
        )


def _percent_of(base: Decimal, rate: Decimal) -> Decimal:
    return base * rate / HUNDRED


def calculate_totals(items: Iterable[LineItem], tax_config: TaxConfiguration) -> InvoiceTotals:
    subtotal = sum((item.amount for item in items), start=ZERO)

    if tax_config.is_split:
        return InvoiceTotals(
            subtotal=subtotal,
            igst_amount=_percent_of(subtotal, tax_config.igst_rate),
            sgst_amount=_percent_of(subtotal, tax_config.sgst_rate),
            cgst_amount=_percent_of(subtotal, tax_config.cgst_rate),
        )
    return InvoiceTotals(
        subtotal=subtotal,
        gst_amount=_percent_of(subtotal, tax_config.gst_rate),
    )
