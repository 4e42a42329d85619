"""
Engine configuration — single source of truth for money precision,
shipping VAT policy, what-if axes and currency formatting.

Import from here in all services rather than hardcoding values.
"""
from __future__ import annotations

import os
from decimal import Decimal, ROUND_HALF_UP

# ── Money ──────────────────────────────────────────────────────────────────────

# Smallest currency unit used for every monetary output
MONEY_PRECISION: Decimal = Decimal("0.01")
MONEY_ROUNDING: str = ROUND_HALF_UP

# Margin / share percentages are reported with two decimals
PERCENT_PRECISION: Decimal = Decimal("0.01")

DEFAULT_CURRENCY: str = os.getenv("MAKERCALC_DEFAULT_CURRENCY", "USD").upper()


# ── Shipping ───────────────────────────────────────────────────────────────────

# "standard":   shipping is VAT-rated at the quote's nominal rate
# "zero_rated": shipping carries no VAT (net == gross)
SHIPPING_VAT_POLICY: str = os.getenv("MAKERCALC_SHIPPING_VAT_POLICY", "standard").lower()


# ── What-if matrix axes (percent changes) ─────────────────────────────────────

WHAT_IF_PRICE_CHANGES: list[int] = [-25, -20, -15, -10, -5, 0, 5, 10, 15, 20, 25]
WHAT_IF_QUANTITY_CHANGES: list[int] = [-50, -40, -30, -20, -10, 0, 10, 20, 30, 40, 50]


# ── Currency formatting ────────────────────────────────────────────────────────
# code: (symbol, thousands separator, decimal separator, decimals, symbol_after)

CURRENCY_FORMATS: dict[str, tuple[str, str, str, int, bool]] = {
    "USD": ("$", ",", ".", 2, False),
    "EUR": ("€", ".", ",", 2, True),
    "GBP": ("£", ",", ".", 2, False),
    "ILS": ("₪", ",", ".", 2, False),
    "CAD": ("C$", ",", ".", 2, False),
    "AUD": ("A$", ",", ".", 2, False),
    "JPY": ("¥", ",", ".", 0, False),
    "CHF": ("CHF ", "'", ".", 2, False),
    "CNY": ("¥", ",", ".", 2, False),
    "INR": ("₹", ",", ".", 2, False),
    "BRL": ("R$ ", ".", ",", 2, False),
    "MXN": ("$", ",", ".", 2, False),
    "KRW": ("₩", ",", ".", 0, False),
    "SEK": ("kr", " ", ",", 2, True),
    "NOK": ("kr", " ", ",", 2, True),
}

# Legacy shekel code still produced by older clients
CURRENCY_ALIASES: dict[str, str] = {"NIS": "ILS"}


# ── Logging / HTTP ─────────────────────────────────────────────────────────────

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON: bool = os.getenv("LOG_FORMAT", "json").lower() != "text"

CORS_ORIGINS: list[str] = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:8000").split(",")
    if o.strip()
]
