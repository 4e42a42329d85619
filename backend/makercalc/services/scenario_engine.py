"""
What-if engine — profit sensitivity to sale price and production volume.

Each cell re-runs compute_costing with the sale price moved by a percentage
and every volume-driven input (units produced and sold, material quantities,
labor hours, machine hours, a lump-sum sale price) scaled by the new/old unit
ratio. Fixed costs (depreciation, fixed charge, overhead rate) stay as
entered.
"""
from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, Optional, Sequence, Union

from makercalc.config import WHAT_IF_PRICE_CHANGES, WHAT_IF_QUANTITY_CHANGES
from makercalc.models.costing_models import CostInputs, WhatIfCell, WhatIfMatrix
from makercalc.models.errors import InvalidInputError
from makercalc.services.costing_engine import coerce_cost_inputs, compute_costing
from makercalc.services.money import HUNDRED, quantize_money

logger = logging.getLogger("makercalc-engine")


def scaled_units(base_units: int, quantity_change_pct: int) -> int:
    """max(1, round(base × (1 + change/100))), halves rounded up."""
    scaled = (Decimal(base_units) * (1 + Decimal(quantity_change_pct) / HUNDRED))
    return max(1, int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))


def _scale_count(count: int, ratio: Decimal) -> int:
    return max(1, int((Decimal(count) * ratio).quantize(Decimal("1"), rounding=ROUND_HALF_UP)))


def scenario_inputs(inputs: CostInputs, price_change_pct: int, quantity_change_pct: int) -> CostInputs:
    """CostInputs for one cell of the matrix."""
    base_units = inputs.production.units_produced
    units = scaled_units(base_units, quantity_change_pct)
    ratio = Decimal(units) / Decimal(base_units)
    params = inputs.cost_parameters

    materials = tuple(
        m.model_copy(update={"quantity": m.quantity * ratio, "total_cost": m.total_cost * ratio})
        for m in inputs.materials
    )
    machines = tuple(
        m.model_copy(update={"usage_hours": m.usage_hours * ratio}) for m in params.machines
    )
    labor = params.labor.model_copy(update={"hours": params.labor.hours * ratio})
    price_factor = 1 + Decimal(price_change_pct) / HUNDRED
    if not inputs.sale_price.is_per_unit:
        # a lump-sum price covers the whole batch, so it scales with volume
        # here rather than staying at the entered amount
        price_factor *= ratio
    sale_price = inputs.sale_price.model_copy(update={
        "amount": inputs.sale_price.amount * price_factor,
        "units_count": _scale_count(inputs.sale_price.units_count, ratio),
    })
    return inputs.model_copy(update={
        "materials": materials,
        "cost_parameters": params.model_copy(update={"machines": machines, "labor": labor}),
        "production": inputs.production.model_copy(update={"units_produced": units}),
        "sale_price": sale_price,
    })


def compute_what_if_matrix(
    inputs: Union[CostInputs, Mapping[str, Any]],
    price_changes: Optional[Sequence[int]] = None,
    quantity_changes: Optional[Sequence[int]] = None,
) -> Union[WhatIfMatrix, InvalidInputError]:
    """
    Build the price × quantity profit matrix.

    Returns:
        WhatIfMatrix, or the InvalidInputError of the base inputs.
    """
    inputs = coerce_cost_inputs(inputs)
    if isinstance(inputs, InvalidInputError):
        return inputs
    base = compute_costing(inputs)
    if isinstance(base, InvalidInputError):
        return base

    prices = tuple(price_changes if price_changes is not None else WHAT_IF_PRICE_CHANGES)
    quantities = tuple(quantity_changes if quantity_changes is not None else WHAT_IF_QUANTITY_CHANGES)

    rows = []
    for q in quantities:
        row = []
        for p in prices:
            scenario = scenario_inputs(inputs, p, q)
            result = compute_costing(scenario)
            row.append(WhatIfCell(
                price_change_pct=p,
                quantity_change_pct=q,
                units=scenario.production.units_produced,
                sale_amount=quantize_money(scenario.sale_price.amount),
                profit=result.profit,
                margin_percent=result.margin_percent,
                profit_delta=result.profit - base.profit,
                is_base=(p == 0 and q == 0),
            ))
        rows.append(tuple(row))

    logger.debug("what-if matrix computed: %d x %d", len(quantities), len(prices))
    return WhatIfMatrix(
        currency=inputs.currency,
        base_profit=base.profit,
        price_changes=prices,
        quantity_changes=quantities,
        rows=tuple(rows),
    )
