"""
Quote lifecycle — commands on the Quote aggregate.

State machine:
    draft --add/remove/replace product--> draft
    draft --finalize--> finalized   (terminal for pricing changes)

Every command returns a new Quote; the one passed in is never modified.
Identity and time come from injected callables so callers (and tests) control
them. Violations raise QuoteStateError.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from makercalc.models.costing_models import CostInputs, CostingResult
from makercalc.models.errors import QuoteStateError
from makercalc.models.quote_models import Product, Quote

logger = logging.getLogger("makercalc-engine")

IdSource = Callable[[], str]
Clock = Callable[[], datetime]

# Fields that may still change after a quote is finalized
_METADATA_FIELDS = {"project_name", "client_name", "delivery_date", "payment_terms"}


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def quote_number_for(quote_id: str, created_at: datetime) -> str:
    """Q{yymmdd}-{nnn}; the serial is derived from the quote id."""
    digits = "".join(ch for ch in quote_id if ch.isalnum())
    try:
        serial = int(digits, 16) % 1000
    except ValueError:
        serial = sum(ord(ch) for ch in quote_id) % 1000
    return f"Q{created_at:%y%m%d}-{serial:03d}"


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def create_quote(
    project_name: str,
    client_name: str,
    currency: str,
    *,
    delivery_date=None,
    payment_terms: Optional[str] = None,
    id_source: IdSource = new_id,
    clock: Clock = utc_now,
) -> Quote:
    quote_id = id_source()
    now = clock()
    quote = Quote(
        id=quote_id,
        quote_number=quote_number_for(quote_id, now),
        project_name=project_name,
        client_name=client_name,
        currency=currency,
        delivery_date=delivery_date,
        payment_terms=payment_terms,
        status="draft",
        created_at=now,
        updated_at=now,
    )
    logger.info("quote %s created (%s)", quote.quote_number, quote.currency)
    return quote


def product_from_costing(
    product_name: str,
    inputs: CostInputs,
    costing: CostingResult,
    *,
    id_source: IdSource = new_id,
    clock: Clock = utc_now,
) -> Product:
    """
    Build a quote line from a priced product.

    quantity   = sale_price.units_count
    unit_price = gross revenue / units_count   (gross, VAT-inclusive)

    The costing result, the materials and the inputs are captured as
    snapshots; later changes to shared defaults never reach this line.
    """
    if costing.currency != inputs.currency:
        raise QuoteStateError(
            f"costing currency {costing.currency} does not match inputs currency {inputs.currency}"
        )
    units = inputs.sale_price.units_count
    return Product(
        id=id_source(),
        product_name=product_name.strip(),
        quantity=units,
        unit_price=costing.gross_revenue / units,
        vat_settings=inputs.vat_settings,
        currency=inputs.currency,
        costing_snapshot=costing,
        materials_snapshot=inputs.materials,
        costing_inputs=inputs,
        added_at=clock(),
    )


# ---------------------------------------------------------------------------
# Product commands (draft only)
# ---------------------------------------------------------------------------

def _require_draft(quote: Quote, action: str) -> None:
    if quote.is_finalized:
        raise QuoteStateError(f"cannot {action}: quote {quote.quote_number or quote.id} is finalized")


def _index_of(quote: Quote, product_id: str) -> int:
    for i, p in enumerate(quote.products):
        if p.id == product_id:
            return i
    raise QuoteStateError(f"product {product_id!r} is not on quote {quote.quote_number or quote.id}")


def add_product(quote: Quote, product: Product, *, clock: Clock = utc_now) -> Quote:
    _require_draft(quote, "add a product")
    if any(p.id == product.id for p in quote.products):
        raise QuoteStateError(f"product {product.id!r} is already on the quote")
    if product.currency != quote.currency:
        raise QuoteStateError(
            f"product is priced in {product.currency}, quote is in {quote.currency}"
        )
    return quote.model_copy(update={"products": quote.products + (product,), "updated_at": clock()})


def remove_product(quote: Quote, product_id: str, *, clock: Clock = utc_now) -> Quote:
    _require_draft(quote, "remove a product")
    idx = _index_of(quote, product_id)
    products = quote.products[:idx] + quote.products[idx + 1:]
    return quote.model_copy(update={"products": products, "updated_at": clock()})


def replace_product(quote: Quote, product_id: str, product: Product, *, clock: Clock = utc_now) -> Quote:
    """Swap a line for a re-priced one, keeping its position."""
    _require_draft(quote, "replace a product")
    idx = _index_of(quote, product_id)
    if product.currency != quote.currency:
        raise QuoteStateError(
            f"product is priced in {product.currency}, quote is in {quote.currency}"
        )
    products = quote.products[:idx] + (product,) + quote.products[idx + 1:]
    return quote.model_copy(update={"products": products, "updated_at": clock()})


# ---------------------------------------------------------------------------
# Finalization & metadata
# ---------------------------------------------------------------------------

def finalize_quote(quote: Quote, *, clock: Clock = utc_now) -> Quote:
    _require_draft(quote, "finalize")
    if not quote.products:
        raise QuoteStateError("cannot finalize a quote without products")
    for p in quote.products:
        if not p.product_name.strip():
            raise QuoteStateError(f"product {p.id!r} has no name")
        if p.costing_snapshot is None:
            raise QuoteStateError(f"product {p.id!r} has no costing snapshot")
    now = clock()
    logger.info("quote %s finalized with %d products", quote.quote_number, len(quote.products))
    return quote.model_copy(update={"status": "finalized", "finalized_at": now, "updated_at": now})


def update_quote_details(quote: Quote, *, clock: Clock = utc_now, **changes) -> Quote:
    """Change non-pricing metadata; allowed on drafts and finalized quotes."""
    unknown = set(changes) - _METADATA_FIELDS
    if unknown:
        raise QuoteStateError(f"not a metadata field: {', '.join(sorted(unknown))}")
    return quote.model_copy(update={**changes, "updated_at": clock()})
