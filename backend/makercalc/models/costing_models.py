"""
Costing schemas — immutable inputs and the CostingResult snapshot.

All monetary and percentage fields are Decimals; pydantic coerces ints,
floats and numeric strings and rejects NaN / infinity. Models are frozen and
collections are tuples so a snapshot captured on a Product can never drift.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from makercalc.config import CURRENCY_ALIASES, DEFAULT_CURRENCY
from makercalc.models.errors import CalculationSignal

NonNegative = Annotated[Decimal, Field(ge=0, allow_inf_nan=False)]
Percent = Annotated[Decimal, Field(ge=0, allow_inf_nan=False)]

MaterialCategory = Literal["main", "packaging", "decoration"]
MATERIAL_CATEGORIES: tuple[str, ...] = ("main", "packaging", "decoration")


def normalize_currency(value: str) -> str:
    code = str(value or "").strip().upper()
    code = CURRENCY_ALIASES.get(code, code)
    if len(code) != 3 or not code.isalpha():
        raise ValueError(f"currency must be a 3-letter ISO code, got {value!r}")
    return code


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class MaterialLine(_Frozen):
    name: str = ""
    quantity: NonNegative = Decimal("0")
    unit: str = "pieces"
    unit_cost: NonNegative = Decimal("0")
    category: MaterialCategory = "main"
    cost_type: Literal["per_unit", "total_cost"] = "per_unit"
    total_cost: NonNegative = Decimal("0")     # only read when cost_type == "total_cost"
    waste_percentage: Percent = Decimal("0")   # uplift applied to main materials only

    @field_validator("category", mode="before")
    @classmethod
    def _plural_category(cls, v):
        # older payloads used "decorations"
        return "decoration" if v == "decorations" else v


class MachineUsage(_Frozen):
    name: str = ""
    usage_hours: NonNegative = Decimal("0")
    hourly_rate: NonNegative = Decimal("0")


class MachineOwnership(_Frozen):
    """Ownership costs of a machine, used to derive its hourly rate."""
    purchase_price: NonNegative = Decimal("0")
    depreciation_percentage: Percent = Decimal("0")   # per year, of purchase price
    hours_per_year: Annotated[Decimal, Field(gt=0, allow_inf_nan=False)] = Decimal("1000")
    maintenance_cost_per_year: NonNegative = Decimal("0")
    power_consumption_kw: NonNegative = Decimal("0")
    electricity_included_in_overhead: bool = False


class LaborInput(_Frozen):
    hours: NonNegative = Decimal("0")
    rate_per_hour: NonNegative = Decimal("0")


class DepreciationInput(_Frozen):
    amount: NonNegative = Decimal("0")
    description: Optional[str] = None


class OverheadInput(_Frozen):
    # multiplied by labor hours, never machine hours
    rate_per_hour: NonNegative = Decimal("0")


class CostParameters(_Frozen):
    machines: tuple[MachineUsage, ...] = ()
    labor: LaborInput = LaborInput()
    depreciation: DepreciationInput = DepreciationInput()
    overhead: OverheadInput = OverheadInput()


class ProductionInput(_Frozen):
    units_produced: int = Field(1, ge=1)
    target_profit_margin: Percent = Decimal("0")


class SalePriceInput(_Frozen):
    amount: NonNegative = Decimal("0")
    is_per_unit: bool = False
    units_count: int = Field(1, ge=1)
    fixed_charge: NonNegative = Decimal("0")


class VatSettings(_Frozen):
    rate: Percent = Decimal("0")
    is_inclusive: bool = True


class CostInputs(_Frozen):
    """Everything needed to price one product, passed by value."""
    materials: tuple[MaterialLine, ...] = ()
    cost_parameters: CostParameters = CostParameters()
    production: ProductionInput = ProductionInput()
    sale_price: SalePriceInput = SalePriceInput()
    vat_settings: VatSettings = VatSettings()
    currency: str = DEFAULT_CURRENCY

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v):
        return normalize_currency(v)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

class CostingResult(_Frozen):
    """Cost / margin snapshot captured when a product is priced."""
    currency: str

    total_material_cost: Decimal
    material_cost_by_category: dict[str, Decimal]
    total_labor_cost: Decimal
    total_machine_cost: Decimal
    depreciation_cost: Decimal
    overhead_cost: Decimal
    total_cost: Decimal
    cost_per_unit: Decimal

    # P&L ladder: net revenue - fixed charge (net) - COGS = gross profit;
    # gross profit - operating expenses = operating profit
    cogs_total: Decimal
    operating_expenses: Decimal

    gross_revenue: Decimal
    net_revenue: Decimal
    vat_amount: Decimal
    sale_price_per_unit: Decimal
    fixed_charge: Decimal
    fixed_charge_net: Decimal
    fixed_charge_vat: Decimal

    profit: Decimal
    profit_per_unit: Decimal
    gross_profit: Decimal
    operating_profit: Decimal
    margin_percent: Decimal
    percent_of_net_revenue: dict[str, Decimal]
    per_sale_unit: dict[str, Decimal]   # divided by sale_price.units_count

    target_profit_margin: Decimal
    suggested_net_revenue: Optional[Decimal] = None
    suggested_gross_revenue: Optional[Decimal] = None

    warnings: tuple[CalculationSignal, ...] = ()

    @property
    def margin_achievable(self) -> bool:
        return self.suggested_net_revenue is not None


# ---------------------------------------------------------------------------
# What-if matrix
# ---------------------------------------------------------------------------

class WhatIfCell(_Frozen):
    price_change_pct: int
    quantity_change_pct: int
    units: int
    sale_amount: Decimal
    profit: Decimal
    margin_percent: Decimal
    profit_delta: Decimal
    is_base: bool = False


class WhatIfMatrix(_Frozen):
    """Profit sensitivity grid: rows are quantity changes, columns price changes."""
    currency: str
    base_profit: Decimal
    price_changes: tuple[int, ...]
    quantity_changes: tuple[int, ...]
    rows: tuple[tuple[WhatIfCell, ...], ...]

    def cell(self, price_change_pct: int, quantity_change_pct: int) -> WhatIfCell:
        r = self.quantity_changes.index(quantity_change_pct)
        c = self.price_changes.index(price_change_pct)
        return self.rows[r][c]
