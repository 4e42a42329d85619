"""
Money helpers shared by the costing and quote engines.

Covers:
  - Decimal coercion and currency-precision rounding (ROUND_HALF_UP)
  - VAT split between net and gross for inclusive / exclusive amounts
  - Proportional allocation with last-line remainder absorption
  - Locale-style currency formatting (default formatter for view models)
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from makercalc.config import (
    CURRENCY_ALIASES,
    CURRENCY_FORMATS,
    DEFAULT_CURRENCY,
    MONEY_PRECISION,
    MONEY_ROUNDING,
    PERCENT_PRECISION,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


# ---------------------------------------------------------------------------
# Coercion & rounding
# ---------------------------------------------------------------------------

def to_decimal(value) -> Decimal:
    """Coerce int / float / str / Decimal to Decimal (floats via their repr)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(MONEY_PRECISION, rounding=MONEY_ROUNDING)


def quantize_percent(value) -> Decimal:
    return to_decimal(value).quantize(PERCENT_PRECISION, rounding=MONEY_ROUNDING)


def safe_ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator, 0 when the denominator is 0."""
    if denominator == 0:
        return ZERO
    return numerator / denominator


# ---------------------------------------------------------------------------
# VAT
# ---------------------------------------------------------------------------

def vat_factor(rate: Decimal) -> Decimal:
    """1 + rate/100 for a percent rate."""
    return Decimal("1") + to_decimal(rate) / HUNDRED


def net_from_gross(gross, rate) -> Decimal:
    return to_decimal(gross) / vat_factor(rate)


def gross_from_net(net, rate) -> Decimal:
    return to_decimal(net) * vat_factor(rate)


def split_vat(amount, rate, is_inclusive: bool) -> Tuple[Decimal, Decimal]:
    """
    Split an entered amount into (net, gross), unrounded.

    is_inclusive=True  → the amount already contains VAT (amount is gross).
    is_inclusive=False → the amount is net and VAT is added on top.
    """
    amount = to_decimal(amount)
    if is_inclusive:
        return net_from_gross(amount, rate), amount
    return amount, gross_from_net(amount, rate)


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------

def remainder_index(weights: Sequence[Decimal]) -> int:
    """Index of the line absorbing the rounding remainder: the last positive weight."""
    for i in range(len(weights) - 1, -1, -1):
        if weights[i] > 0:
            return i
    return -1


def settle_remainder(
    shares: Sequence[Decimal],
    total: Decimal,
    absorber: int,
    caps: Optional[Sequence[Decimal]] = None,
) -> List[Decimal]:
    """
    Give the absorber line ``total`` minus every other share, keeping it
    within [0, cap].

    Whatever the absorber cannot hold is moved backwards onto earlier lines:
    an excess fills lines that are below their cap, a shortfall is taken
    from lines that hold a positive share. With ``total`` between 0 and
    ``sum(caps)`` every share ends inside [0, cap] and the sum is exact.
    """
    shares = [quantize_money(s) for s in shares]
    others = sum((s for i, s in enumerate(shares) if i != absorber), ZERO)
    share = quantize_money(total) - others

    overflow = ZERO
    if share < 0:
        overflow, share = share, ZERO
    elif caps is not None and share > caps[absorber]:
        overflow, share = share - caps[absorber], quantize_money(caps[absorber])
    shares[absorber] = share

    order = [i for i in range(len(shares) - 1, -1, -1) if i != absorber]
    for i in order:
        if overflow == 0:
            break
        if overflow > 0:
            if caps is None:
                break
            moved = min(overflow, max(ZERO, caps[i] - shares[i]))
        else:
            moved = -min(-overflow, shares[i])
        if moved:
            shares[i] += moved
            overflow -= moved
    return [quantize_money(s) for s in shares]


def allocate_proportionally(total, weights: Iterable, caps: Optional[Sequence] = None) -> List[Decimal]:
    """
    Distribute ``total`` across ``weights`` in proportion to each weight.

    Every share except one is rounded to currency precision independently;
    the last line with a positive weight absorbs the remainder, so the
    returned shares always sum to ``quantize_money(total)`` exactly.
    Zero weights always receive 0. When ``caps`` is given no share exceeds
    its cap (see settle_remainder).
    """
    weights = [to_decimal(w) for w in weights]
    if caps is not None:
        caps = [to_decimal(c) for c in caps]
    total = quantize_money(total)
    shares = [ZERO for _ in weights]
    base = sum(weights, ZERO)
    absorber = remainder_index(weights)
    if not weights or base <= 0 or total == 0 or absorber < 0:
        return [quantize_money(s) for s in shares]

    for i, w in enumerate(weights):
        if i == absorber or w <= 0:
            continue
        shares[i] = quantize_money(total * w / base)
    return settle_remainder(shares, total, absorber, caps)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_currency(amount, currency_code: str = DEFAULT_CURRENCY) -> str:
    """
    Format an amount for display.

    1234.5, "USD" -> "$1,234.50"
    1234.5, "EUR" -> "1.234,50 €"
    Unknown codes fall back to "<CODE> 1,234.50".
    """
    code = str(currency_code or DEFAULT_CURRENCY).upper()
    code = CURRENCY_ALIASES.get(code, code)
    symbol, thousands, decimal_sep, decimals, symbol_after = CURRENCY_FORMATS.get(
        code, (f"{code} ", ",", ".", 2, False)
    )

    value = to_decimal(amount).quantize(Decimal(1).scaleb(-decimals), rounding=MONEY_ROUNDING)
    sign = "-" if value < 0 else ""
    whole, _, frac = f"{abs(value):.{decimals}f}".partition(".")

    groups = []
    while whole:
        groups.append(whole[-3:])
        whole = whole[:-3]
    body = thousands.join(reversed(groups)) or "0"
    if frac:
        body = f"{body}{decimal_sep}{frac}"

    if symbol_after:
        return f"{sign}{body} {symbol}"
    return f"{sign}{symbol}{body}"
