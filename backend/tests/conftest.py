"""
conftest.py — Shared pytest fixtures for the MakerCalc engine test suite.

No database or external service fixtures are defined here.  The engines are
pure functions, so every fixture is plain input data or a deterministic
id/clock source for the quote lifecycle commands.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``makercalc.*`` imports resolve correctly regardless of where pytest is
    invoked.
"""

import sys
import os
from datetime import datetime, timezone

import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any makercalc imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Costing input fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def basic_cost_inputs():
    """
    Raw cost inputs with a hand-checkable result.

    Costs:   materials 2 × 10 = 20, machine 1 h × 10 = 10, labor 2 h × 15 = 30
             → total 60
    Revenue: 100 VAT-inclusive at 10 % → net 90.91, VAT 9.09
    Profit:  30.91, margin 34.00 %
    """
    return {
        "materials": [
            {"name": "Soy wax", "quantity": 2, "unit": "kg", "unit_cost": 10, "category": "main"},
        ],
        "cost_parameters": {
            "machines": [{"name": "Melter", "usage_hours": 1, "hourly_rate": 10}],
            "labor": {"hours": 2, "rate_per_hour": 15},
        },
        "production": {"units_produced": 1},
        "sale_price": {"amount": 100, "units_count": 1},
        "vat_settings": {"rate": 10, "is_inclusive": True},
        "currency": "USD",
    }


@pytest.fixture
def per_unit_cost_inputs():
    """
    10 units sold at 10 each (VAT 0 %), 10 × 2 of material → profit 80.
    Used by the what-if tests where every cell is hand-computable.
    """
    return {
        "materials": [
            {"name": "Blank", "quantity": 10, "unit_cost": 2, "category": "main"},
        ],
        "production": {"units_produced": 10},
        "sale_price": {"amount": 10, "is_per_unit": True, "units_count": 10},
        "vat_settings": {"rate": 0},
        "currency": "USD",
    }


# ---------------------------------------------------------------------------
# Quote fixtures
# ---------------------------------------------------------------------------

def make_product(pid, unit_price, quantity=1, rate=0, currency="USD", name=None):
    from makercalc.models.quote_models import Product
    return Product(
        id=pid,
        product_name=name or f"Product {pid}",
        quantity=quantity,
        unit_price=unit_price,
        vat_settings={"rate": rate, "is_inclusive": True},
        currency=currency,
    )


def make_quote(*products, currency="USD"):
    from makercalc.models.quote_models import Quote
    return Quote(id="quote-1", quote_number="Q260305-001", currency=currency, products=tuple(products))


@pytest.fixture
def two_line_quote():
    """Lines of 100.00 and 50.00, VAT 0 %: subtotal 150.00."""
    return make_quote(make_product("p1", 100), make_product("p2", 50))


@pytest.fixture
def fixed_clock():
    moment = datetime(2026, 3, 5, 9, 30, tzinfo=timezone.utc)
    return lambda: moment


@pytest.fixture
def sequential_ids():
    """id_source yielding id-1, id-2, ... in call order."""
    counter = {"n": 0}

    def _next():
        counter["n"] += 1
        return f"id-{counter['n']}"
    return _next
