"""
Quote schemas — the Quote aggregate, transient discount / shipping inputs
and the display-ready QuoteViewModel.

Line items are immutable: editing a product means replacing it. Discount and
shipping are never stored on the Quote so what-if recalculation cannot touch
persisted state.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from makercalc.config import DEFAULT_CURRENCY
from makercalc.models.costing_models import (
    CostInputs,
    CostingResult,
    MaterialLine,
    NonNegative,
    VatSettings,
    normalize_currency,
)
from makercalc.models.errors import CalculationSignal

CustomerType = Literal["private", "business"]
QuoteStatus = Literal["draft", "finalized"]
ShippingVatPolicy = Literal["standard", "zero_rated"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

class Product(_Frozen):
    """One priced line item. unit_price is gross (VAT-inclusive)."""
    id: str
    product_name: str = ""
    quantity: NonNegative = Decimal("1")
    unit_price: NonNegative = Decimal("0")
    vat_settings: VatSettings = VatSettings()
    currency: str = DEFAULT_CURRENCY
    costing_snapshot: Optional[CostingResult] = None
    materials_snapshot: tuple[MaterialLine, ...] = ()
    costing_inputs: Optional[CostInputs] = None
    added_at: Optional[datetime] = None

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v):
        return normalize_currency(v)


class Quote(_Frozen):
    id: str
    quote_number: str = ""
    project_name: str = ""
    client_name: str = ""
    currency: str = DEFAULT_CURRENCY
    products: tuple[Product, ...] = ()
    status: QuoteStatus = "draft"
    delivery_date: Optional[date] = None
    payment_terms: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v):
        return normalize_currency(v)

    @property
    def is_finalized(self) -> bool:
        return self.status == "finalized"


class DiscountInfo(_Frozen):
    kind: Literal["percentage", "fixed"] = "percentage"
    value: NonNegative = Decimal("0")


class ShippingInfo(_Frozen):
    amount: NonNegative = Decimal("0")   # gross charge to the customer
    is_free: bool = False


# ---------------------------------------------------------------------------
# View model
# ---------------------------------------------------------------------------

class QuoteLineView(_Frozen):
    product_id: str
    product_name: str
    quantity: Decimal
    vat_rate: Decimal
    unit_price_net: Decimal
    unit_price_gross: Decimal
    line_total_net: Decimal
    line_total_gross: Decimal
    discount_net: Decimal
    discount_gross: Decimal
    discounted_total_net: Decimal
    discounted_total_gross: Decimal


class ShippingLineView(_Frozen):
    amount_entered: Decimal
    charge_net: Decimal
    charge_gross: Decimal
    is_free: bool
    vat_policy: ShippingVatPolicy


class DiscountView(_Frozen):
    kind: Literal["percentage", "fixed"]
    value: Decimal
    requested_gross: Decimal
    amount_gross: Decimal
    amount_net: Decimal
    capped: bool


class QuoteTotalsView(_Frozen):
    subtotal_net: Decimal
    subtotal_gross: Decimal
    discount_net: Decimal
    discount_gross: Decimal
    shipping_net: Decimal
    shipping_gross: Decimal
    grand_total_net: Decimal
    grand_total_gross: Decimal
    vat_amount: Decimal


class PresentationLine(_Frozen):
    key: str
    label: str
    amount: Decimal
    formatted: str
    primary: bool = False


class PresentationView(_Frozen):
    """What the customer sees first (headline) and the supporting lines."""
    customer_type: CustomerType
    headline_label: str
    headline_amount: Decimal
    headline_formatted: str
    lines: tuple[PresentationLine, ...]


class QuoteViewModel(_Frozen):
    quote_id: str
    quote_number: str
    currency: str
    customer_type: CustomerType
    nominal_vat_rate: Decimal
    lines: tuple[QuoteLineView, ...]
    shipping_line: Optional[ShippingLineView] = None
    discount: Optional[DiscountView] = None
    totals: QuoteTotalsView
    presentation: PresentationView
    warnings: tuple[CalculationSignal, ...] = ()
