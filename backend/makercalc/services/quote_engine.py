"""
Quote engine — aggregates priced line items into a tax-correct quote view.

Pipeline:
  1. Line totals: gross = unit_price × quantity, net via the product's own VAT rate
  2. Subtotals as sums of the rounded line totals
  3. Discount resolved against the gross subtotal, capped at the subtotal
  4. Proportional discount allocation (last line absorbs the rounding remainder)
  5. Shipping line (always emitted when shipping is given, 0 when waived)
  6. Grand totals and VAT amount
  7. Presentation ladder for private (gross-first) or business (net-first) customers

compute_quote_view() is pure and returns a QuoteComputationError value for a
quote it cannot aggregate; it never raises for bad input.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from makercalc.config import SHIPPING_VAT_POLICY
from makercalc.models.errors import (
    DISCOUNT_CAPPED,
    CalculationSignal,
    QuoteComputationError,
    first_validation_issue,
)
from makercalc.models.quote_models import (
    DiscountInfo,
    DiscountView,
    PresentationLine,
    PresentationView,
    Product,
    Quote,
    QuoteLineView,
    QuoteTotalsView,
    QuoteViewModel,
    ShippingInfo,
    ShippingLineView,
)
from makercalc.services.money import (
    HUNDRED,
    ZERO,
    allocate_proportionally,
    format_currency as default_format_currency,
    net_from_gross,
    quantize_money,
    remainder_index,
    settle_remainder,
)

logger = logging.getLogger("makercalc-engine")

CurrencyFormatter = Callable[[Decimal, str], str]

_CUSTOMER_TYPES = ("private", "business")
_SHIPPING_POLICIES = ("standard", "zero_rated")


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------

def _coerce(model, raw, label: str):
    if raw is None or isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        message, field = first_validation_issue(exc)
        path = f"{label}.{field}" if field else label
        return QuoteComputationError(message=message, field=path)


def _check_products(quote: Quote) -> Optional[QuoteComputationError]:
    for i, p in enumerate(quote.products):
        rate = p.vat_settings.rate
        # validated models cannot hold such a rate; model_construct() ones can
        if not isinstance(rate, Decimal) or not rate.is_finite() or rate < 0:
            return QuoteComputationError(
                message=f"product {p.id!r} has a malformed VAT rate {rate!r}",
                field=f"products.{i}.vat_settings.rate",
            )
        if p.currency != quote.currency:
            return QuoteComputationError(
                message=f"product {p.id!r} is priced in {p.currency}, quote is in {quote.currency}",
                field=f"products.{i}.currency",
            )
    return None


def nominal_vat_rate(quote: Quote) -> Decimal:
    """VAT rate used for order-level amounts: the first product's rate, 0 when empty."""
    if not quote.products:
        return ZERO
    return quote.products[0].vat_settings.rate


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

def _line_totals(product: Product) -> Tuple[Decimal, Decimal, Decimal, Decimal]:
    """(unit_net, unit_gross, line_net, line_gross) for one product."""
    rate = product.vat_settings.rate
    unit_gross = quantize_money(product.unit_price)
    unit_net = quantize_money(net_from_gross(product.unit_price, rate))
    line_gross = quantize_money(product.unit_price * product.quantity)
    line_net = quantize_money(net_from_gross(line_gross, rate))
    return unit_net, unit_gross, line_net, line_gross


def resolve_discount(discount: Optional[DiscountInfo], subtotal_gross: Decimal) -> Tuple[Decimal, Decimal, bool]:
    """
    Resolve the order-level discount against the gross subtotal.

    Returns (requested, applied, capped). The applied amount never exceeds the
    subtotal, so no total can go negative.
    """
    if discount is None:
        return ZERO, ZERO, False
    if discount.kind == "percentage":
        requested = quantize_money(subtotal_gross * discount.value / HUNDRED)
    else:
        requested = quantize_money(discount.value)
    if requested > subtotal_gross:
        return requested, subtotal_gross, True
    return requested, requested, False


def allocate_discount(
    discount_gross: Decimal,
    discount_net: Decimal,
    line_gross: Sequence[Decimal],
    line_net: Sequence[Decimal],
) -> Tuple[List[Decimal], List[Decimal]]:
    """
    Split the discount across lines in proportion to their gross totals.

    Gross shares come from allocate_proportionally, capped at each line's
    gross total. Each line's net share keeps that line's own net/gross ratio,
    except the remainder line, which takes whatever is left so the net shares
    sum exactly to discount_net. Net shares are capped at the line's net
    total, so no discounted line goes below zero.
    """
    gross_shares = allocate_proportionally(discount_gross, line_gross, caps=line_gross)
    absorber = remainder_index(line_gross)
    net_shares = [ZERO for _ in line_gross]
    if absorber < 0:
        return gross_shares, [quantize_money(s) for s in net_shares]

    for i, (share, g, n) in enumerate(zip(gross_shares, line_gross, line_net)):
        if i == absorber or g <= 0:
            continue
        net_shares[i] = quantize_money(share * n / g)
    return gross_shares, settle_remainder(net_shares, discount_net, absorber, caps=line_net)


def build_shipping_line(
    shipping: Optional[ShippingInfo], vat_rate: Decimal, policy: str
) -> Optional[ShippingLineView]:
    """A waived shipping charge still produces a line, with a 0 charge."""
    if shipping is None:
        return None
    entered = quantize_money(shipping.amount)
    if shipping.is_free:
        gross = net = quantize_money(ZERO)
    else:
        gross = entered
        net = gross if policy == "zero_rated" else quantize_money(net_from_gross(gross, vat_rate))
    return ShippingLineView(
        amount_entered=entered,
        charge_net=net,
        charge_gross=gross,
        is_free=shipping.is_free,
        vat_policy=policy,
    )


def _rate_label(rate: Decimal) -> str:
    return f"{rate.normalize():f}"


def build_presentation(
    customer_type: str,
    totals: QuoteTotalsView,
    currency: str,
    vat_rate: Decimal,
    has_discount: bool,
    has_shipping: bool,
    fmt: CurrencyFormatter,
) -> PresentationView:
    """
    private  → gross headline; subtotal/discount/shipping gross, then net and
               VAT as informational lines.
    business → net → VAT → gross ladder; every line is signed so the ladder
               adds up to the grand total.
    """
    rows: List[Tuple[str, str, Decimal, bool]] = []
    vat_label = f"VAT ({_rate_label(vat_rate)}%)"

    if customer_type == "private":
        rows.append(("subtotal_gross", "Subtotal (incl. VAT)", totals.subtotal_gross, False))
        if has_discount:
            rows.append(("discount_gross", "Discount", -totals.discount_gross, False))
        if has_shipping:
            rows.append(("shipping_gross", "Shipping", totals.shipping_gross, False))
        rows.append(("grand_total_gross", "Total (incl. VAT)", totals.grand_total_gross, True))
        rows.append(("grand_total_net", "Net amount", totals.grand_total_net, False))
        rows.append(("vat_amount", f"Includes {vat_label}", totals.vat_amount, False))
        headline_label = "Total (incl. VAT)"
    else:
        rows.append(("subtotal_net", "Subtotal (excl. VAT)", totals.subtotal_net, False))
        if has_discount:
            rows.append(("discount_net", "Discount", -totals.discount_net, False))
        if has_shipping:
            rows.append(("shipping_net", "Shipping", totals.shipping_net, False))
        rows.append(("grand_total_net", "Net total", totals.grand_total_net, False))
        rows.append(("vat_amount", vat_label, totals.vat_amount, False))
        rows.append(("grand_total_gross", "Total (incl. VAT)", totals.grand_total_gross, True))
        headline_label = "Total (incl. VAT)"

    lines = tuple(
        PresentationLine(key=k, label=label, amount=amount, formatted=fmt(amount, currency), primary=primary)
        for k, label, amount, primary in rows
    )
    return PresentationView(
        customer_type=customer_type,
        headline_label=headline_label,
        headline_amount=totals.grand_total_gross,
        headline_formatted=fmt(totals.grand_total_gross, currency),
        lines=lines,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def compute_quote_view(
    quote: Union[Quote, Mapping[str, Any]],
    customer_type: str,
    discount: Union[DiscountInfo, Mapping[str, Any], None] = None,
    shipping: Union[ShippingInfo, Mapping[str, Any], None] = None,
    *,
    shipping_vat_policy: Optional[str] = None,
    format_currency: CurrencyFormatter = default_format_currency,
) -> Union[QuoteViewModel, QuoteComputationError]:
    """
    Compute every figure a quote display needs, in net and gross form.

    Args:
        quote:               Quote (or raw mapping) with already-priced products.
        customer_type:       "private" or "business"; selects the presentation only.
        discount:            Optional order-level discount (transient).
        shipping:            Optional shipping charge (transient).
        shipping_vat_policy: "standard" | "zero_rated"; defaults to configuration.
        format_currency:     Injected formatter used for the presentation strings.

    Returns:
        QuoteViewModel, or QuoteComputationError.
    """
    quote = _coerce(Quote, quote, "quote")
    discount = _coerce(DiscountInfo, discount, "discount")
    shipping = _coerce(ShippingInfo, shipping, "shipping")
    for value in (quote, discount, shipping):
        if isinstance(value, QuoteComputationError):
            logger.warning("quote view rejected: %s (field=%s)", value.message, value.field)
            return value

    if customer_type not in _CUSTOMER_TYPES:
        return QuoteComputationError(
            message=f"customer_type must be one of {_CUSTOMER_TYPES}, got {customer_type!r}",
            field="customer_type",
        )
    policy = (shipping_vat_policy or SHIPPING_VAT_POLICY).lower()
    if policy not in _SHIPPING_POLICIES:
        return QuoteComputationError(
            message=f"shipping_vat_policy must be one of {_SHIPPING_POLICIES}, got {policy!r}",
            field="shipping_vat_policy",
        )

    problem = _check_products(quote)
    if problem is not None:
        logger.warning("quote view rejected: %s", problem.message)
        return problem

    # 1–2. Lines and subtotals
    computed = [_line_totals(p) for p in quote.products]
    line_net = [c[2] for c in computed]
    line_gross = [c[3] for c in computed]
    subtotal_net = sum(line_net, quantize_money(ZERO))
    subtotal_gross = sum(line_gross, quantize_money(ZERO))

    # 3. Discount (order level, gross first; net via the subtotal's VAT ratio)
    warnings: List[CalculationSignal] = []
    requested, discount_gross, capped = resolve_discount(discount, subtotal_gross)
    if capped:
        warnings.append(CalculationSignal(
            code=DISCOUNT_CAPPED,
            message=f"discount {requested} exceeds subtotal {subtotal_gross}; capped at subtotal",
        ))
        logger.warning("quote %s: discount %s capped at subtotal %s", quote.id, requested, subtotal_gross)
    if subtotal_gross > 0:
        discount_net = quantize_money(discount_gross * subtotal_net / subtotal_gross)
    else:
        discount_net = quantize_money(ZERO)

    # 4. Allocation
    alloc_gross, alloc_net = allocate_discount(discount_gross, discount_net, line_gross, line_net)

    lines = tuple(
        QuoteLineView(
            product_id=p.id,
            product_name=p.product_name,
            quantity=p.quantity,
            vat_rate=p.vat_settings.rate,
            unit_price_net=unit_net,
            unit_price_gross=unit_gross,
            line_total_net=l_net,
            line_total_gross=l_gross,
            discount_net=d_net,
            discount_gross=d_gross,
            discounted_total_net=l_net - d_net,
            discounted_total_gross=l_gross - d_gross,
        )
        for p, (unit_net, unit_gross, l_net, l_gross), d_net, d_gross
        in zip(quote.products, computed, alloc_net, alloc_gross)
    )

    # 5. Shipping
    vat_rate = nominal_vat_rate(quote)
    shipping_line = build_shipping_line(shipping, vat_rate, policy)
    shipping_net = shipping_line.charge_net if shipping_line else quantize_money(ZERO)
    shipping_gross = shipping_line.charge_gross if shipping_line else quantize_money(ZERO)

    # 6. Grand totals
    grand_gross = subtotal_gross - discount_gross + shipping_gross
    grand_net = subtotal_net - discount_net + shipping_net
    totals = QuoteTotalsView(
        subtotal_net=subtotal_net,
        subtotal_gross=subtotal_gross,
        discount_net=discount_net,
        discount_gross=discount_gross,
        shipping_net=shipping_net,
        shipping_gross=shipping_gross,
        grand_total_net=grand_net,
        grand_total_gross=grand_gross,
        vat_amount=grand_gross - grand_net,
    )

    # 7. Presentation
    presentation = build_presentation(
        customer_type, totals, quote.currency, vat_rate,
        has_discount=discount is not None,
        has_shipping=shipping_line is not None,
        fmt=format_currency,
    )

    discount_view = None
    if discount is not None:
        discount_view = DiscountView(
            kind=discount.kind,
            value=discount.value,
            requested_gross=requested,
            amount_gross=discount_gross,
            amount_net=discount_net,
            capped=capped,
        )

    logger.debug(
        "quote %s view: lines=%d subtotal_gross=%s grand_total_gross=%s",
        quote.id, len(lines), subtotal_gross, grand_gross,
    )
    return QuoteViewModel(
        quote_id=quote.id,
        quote_number=quote.quote_number,
        currency=quote.currency,
        customer_type=customer_type,
        nominal_vat_rate=vat_rate,
        lines=lines,
        shipping_line=shipping_line,
        discount=discount_view,
        totals=totals,
        presentation=presentation,
        warnings=tuple(warnings),
    )
