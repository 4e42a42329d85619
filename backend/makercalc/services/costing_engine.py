"""
Costing engine — turns raw cost inputs into unit economics for one product.

Covers:
  - Material costing (per-unit or flat total, waste uplift on main materials)
  - Machine, labor, overhead (anchored to labor hours) and depreciation costs
  - Sale price resolution (per-unit × count + fixed charge) and VAT split
  - Profit, margin and per-unit figures
  - P&L ladder: COGS, gross profit, operating expenses, operating profit,
    fixed-charge VAT split and per-sale-unit figures
  - Margin-target suggested price (UnachievableMargin signal at ≥ 100 %)
  - Machine hourly rate and overhead rate helpers

compute_costing() is pure: identical inputs give identical outputs, nothing is
cached, and invalid input comes back as an InvalidInputError value.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Mapping, Union

from pydantic import ValidationError

from makercalc.models.costing_models import (
    MATERIAL_CATEGORIES,
    CostInputs,
    CostingResult,
    MachineOwnership,
    MaterialLine,
)
from makercalc.models.errors import (
    UNACHIEVABLE_MARGIN,
    CalculationSignal,
    InvalidInputError,
    first_validation_issue,
)
from makercalc.services.money import (
    HUNDRED,
    ZERO,
    gross_from_net,
    quantize_money,
    quantize_percent,
    safe_ratio,
    split_vat,
    to_decimal,
)

logger = logging.getLogger("makercalc-engine")


# ---------------------------------------------------------------------------
# 1. Line costs
# ---------------------------------------------------------------------------

def material_line_cost(material: MaterialLine) -> Decimal:
    """
    Cost of one material line.

    per_unit   → quantity × unit_cost
    total_cost → total_cost as entered
    Main materials are uplifted by their waste percentage.
    """
    if material.cost_type == "total_cost":
        cost = material.total_cost
    else:
        cost = material.quantity * material.unit_cost

    if material.category == "main" and material.waste_percentage:
        cost = cost * (Decimal("1") + material.waste_percentage / HUNDRED)
    return cost


def material_cost_by_category(materials) -> Dict[str, Decimal]:
    totals: Dict[str, Decimal] = {c: ZERO for c in MATERIAL_CATEGORIES}
    for m in materials:
        totals[m.category] += material_line_cost(m)
    return totals


def machine_hourly_rate(ownership: Union[MachineOwnership, Mapping[str, Any]],
                        power_cost_per_kwh=Decimal("1.00")) -> Decimal:
    """
    Derive an hourly machine rate from ownership costs.

    rate = purchase_price × depreciation% / hours_per_year
         + maintenance_per_year / hours_per_year
         + power_kw × power_cost_per_kwh   (unless electricity sits in overhead)
    """
    if not isinstance(ownership, MachineOwnership):
        ownership = MachineOwnership.model_validate(ownership)

    hours = ownership.hours_per_year
    depreciation = ownership.purchase_price * ownership.depreciation_percentage / HUNDRED / hours
    maintenance = ownership.maintenance_cost_per_year / hours
    electricity = ZERO
    if not ownership.electricity_included_in_overhead:
        electricity = ownership.power_consumption_kw * to_decimal(power_cost_per_kwh)
    return quantize_money(depreciation + maintenance + electricity)


def overhead_rate_per_hour(monthly_expenses: Mapping[str, Any], monthly_hours) -> Decimal:
    """
    Overhead rate from monthly fixed expenses (rent, utilities, software...)
    spread over the productive hours of the month. 0 when hours is 0.
    """
    hours = to_decimal(monthly_hours)
    total = sum((to_decimal(v or 0) for v in monthly_expenses.values()), ZERO)
    if hours <= 0:
        return quantize_money(ZERO)
    return quantize_money(total / hours)


# ---------------------------------------------------------------------------
# 2. Revenue
# ---------------------------------------------------------------------------

def resolve_sale_revenue(inputs: CostInputs) -> Decimal:
    """Nominal revenue as entered: amount (× units when per-unit) + fixed charge."""
    sp = inputs.sale_price
    if sp.is_per_unit:
        return sp.amount * sp.units_count + sp.fixed_charge
    return sp.amount + sp.fixed_charge


# ---------------------------------------------------------------------------
# 3. Entry point
# ---------------------------------------------------------------------------

def coerce_cost_inputs(raw: Union[CostInputs, Mapping[str, Any]]) -> Union[CostInputs, InvalidInputError]:
    if isinstance(raw, CostInputs):
        return raw
    if not isinstance(raw, Mapping):
        return InvalidInputError(f"cost inputs must be a mapping, got {type(raw).__name__}")
    try:
        return CostInputs.model_validate(raw)
    except ValidationError as exc:
        message, field = first_validation_issue(exc)
        return InvalidInputError(message=message, field=field)


def compute_costing(inputs: Union[CostInputs, Mapping[str, Any]]) -> Union[CostingResult, InvalidInputError]:
    """
    Compute the CostingResult for one product.

    Args:
        inputs: CostInputs, or a raw mapping validated into one.

    Returns:
        CostingResult, or InvalidInputError for negative / non-finite values,
        malformed structure or units_produced < 1.
    """
    inputs = coerce_cost_inputs(inputs)
    if isinstance(inputs, InvalidInputError):
        logger.warning("costing rejected: %s (field=%s)", inputs.message, inputs.field)
        return inputs

    params = inputs.cost_parameters
    units = Decimal(inputs.production.units_produced)

    by_category = material_cost_by_category(inputs.materials)
    material_cost = sum(by_category.values(), ZERO)
    machine_cost = sum((m.usage_hours * m.hourly_rate for m in params.machines), ZERO)
    labor_cost = params.labor.hours * params.labor.rate_per_hour
    overhead_cost = params.overhead.rate_per_hour * params.labor.hours
    depreciation_cost = params.depreciation.amount
    total_cost = material_cost + machine_cost + labor_cost + overhead_cost + depreciation_cost

    vat = inputs.vat_settings
    net, gross = split_vat(resolve_sale_revenue(inputs), vat.rate, vat.is_inclusive)

    profit = net - total_cost
    margin = safe_ratio(profit, net) * HUNDRED

    # P&L view: the fixed charge (net) is deducted above gross profit
    fixed_net, fixed_gross = split_vat(inputs.sale_price.fixed_charge, vat.rate, vat.is_inclusive)
    cogs = material_cost
    operating_expenses = machine_cost + labor_cost + overhead_cost + depreciation_cost
    gross_profit = net - fixed_net - cogs
    operating_profit = gross_profit - operating_expenses

    warnings = []
    target = inputs.production.target_profit_margin
    suggested_net = suggested_gross = None
    if target >= HUNDRED:
        warnings.append(CalculationSignal(
            code=UNACHIEVABLE_MARGIN,
            message=f"target margin {target}% leaves no room for cost; no suggested price",
        ))
        logger.warning("unachievable target margin %s%%", target)
    else:
        suggested_net = total_cost / (Decimal("1") - target / HUNDRED)
        suggested_gross = gross_from_net(suggested_net, vat.rate)

    shares = {
        "materials": material_cost,
        "machines": machine_cost,
        "labor": labor_cost,
        "overhead": overhead_cost,
        "depreciation": depreciation_cost,
        "profit": profit,
        "fixed_charge": fixed_net,
        "cogs": cogs,
        "gross_profit": gross_profit,
        "operating_expenses": operating_expenses,
        "operating_profit": operating_profit,
    }
    sale_units = inputs.sale_price.units_count
    per_sale_unit = {
        "sale_price": gross,
        "vat_amount": gross - net,
        "net_sale_price": net,
        "fixed_charge": inputs.sale_price.fixed_charge,
        "fixed_charge_net": fixed_net,
        "cogs": cogs,
        "gross_profit": gross_profit,
        "operating_expenses": operating_expenses,
        "operating_profit": operating_profit,
        "profit": profit,
    }

    result = CostingResult(
        currency=inputs.currency,
        total_material_cost=quantize_money(material_cost),
        material_cost_by_category={k: quantize_money(v) for k, v in by_category.items()},
        total_labor_cost=quantize_money(labor_cost),
        total_machine_cost=quantize_money(machine_cost),
        depreciation_cost=quantize_money(depreciation_cost),
        overhead_cost=quantize_money(overhead_cost),
        total_cost=quantize_money(total_cost),
        cost_per_unit=quantize_money(total_cost / units),
        cogs_total=quantize_money(cogs),
        operating_expenses=quantize_money(operating_expenses),
        gross_revenue=quantize_money(gross),
        net_revenue=quantize_money(net),
        vat_amount=quantize_money(gross) - quantize_money(net),
        sale_price_per_unit=quantize_money(gross / sale_units),
        fixed_charge=quantize_money(inputs.sale_price.fixed_charge),
        fixed_charge_net=quantize_money(fixed_net),
        fixed_charge_vat=quantize_money(fixed_gross) - quantize_money(fixed_net),
        profit=quantize_money(profit),
        profit_per_unit=quantize_money(profit / units),
        gross_profit=quantize_money(gross_profit),
        operating_profit=quantize_money(operating_profit),
        margin_percent=quantize_percent(margin),
        percent_of_net_revenue={
            k: quantize_percent(safe_ratio(v, net) * HUNDRED) for k, v in shares.items()
        },
        per_sale_unit={k: quantize_money(v / sale_units) for k, v in per_sale_unit.items()},
        target_profit_margin=target,
        suggested_net_revenue=quantize_money(suggested_net) if suggested_net is not None else None,
        suggested_gross_revenue=quantize_money(suggested_gross) if suggested_gross is not None else None,
        warnings=tuple(warnings),
    )
    logger.debug(
        "costing computed: total_cost=%s net=%s margin=%s%%",
        result.total_cost, result.net_revenue, result.margin_percent,
    )
    return result
