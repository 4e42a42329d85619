"""
Calculator API Routes — thin HTTP adapter over the pure engines.

POST /api/calculator/costing     — CostInputs → CostingResult
POST /api/calculator/what-if     — CostInputs → price × quantity profit matrix
POST /api/calculator/quote-view  — Quote + discount/shipping → QuoteViewModel

Engine error values map to HTTP 422 with {code, message, field}.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel

from makercalc.models.errors import InvalidInputError, QuoteComputationError
from makercalc.services.costing_engine import compute_costing
from makercalc.services.quote_engine import compute_quote_view
from makercalc.services.scenario_engine import compute_what_if_matrix

router = APIRouter(prefix="/api/calculator", tags=["Calculator"])
logger = logging.getLogger("makercalc-api")


# ── Pydantic Models ─────────────────────────────────────────────────────────

class WhatIfRequest(BaseModel):
    inputs: Dict[str, Any]
    price_changes: Optional[List[int]] = None
    quantity_changes: Optional[List[int]] = None


class QuoteViewRequest(BaseModel):
    quote: Dict[str, Any]
    customer_type: str = "private"
    discount: Optional[Dict[str, Any]] = None
    shipping: Optional[Dict[str, Any]] = None
    shipping_vat_policy: Optional[str] = None


def _unwrap(result):
    if isinstance(result, (InvalidInputError, QuoteComputationError)):
        raise HTTPException(status_code=422, detail=result.to_dict())
    return result.model_dump(mode="json")


# ── Routes ──────────────────────────────────────────────────────────────────

@router.post("/costing")
async def costing(payload: Dict[str, Any] = Body(...)):
    return _unwrap(compute_costing(payload))


@router.post("/what-if")
async def what_if(req: WhatIfRequest):
    return _unwrap(compute_what_if_matrix(req.inputs, req.price_changes, req.quantity_changes))


@router.post("/quote-view")
async def quote_view(req: QuoteViewRequest):
    result = compute_quote_view(
        req.quote,
        req.customer_type,
        req.discount,
        req.shipping,
        shipping_vat_policy=req.shipping_vat_policy,
    )
    return _unwrap(result)
