"""MakerCalc cost & quote calculation engine."""
from makercalc.services.costing_engine import compute_costing
from makercalc.services.quote_engine import compute_quote_view

__all__ = ["compute_costing", "compute_quote_view"]
