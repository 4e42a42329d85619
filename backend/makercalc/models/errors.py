"""
Error values and informational signals returned by the calculation engines.

The two computation entry points never raise for bad input: they return one
of the frozen error values below so they can be re-run inside reactive
recomputation loops without try/except at every call site.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError


# Signal / error codes
INVALID_INPUT = "InvalidInput"
UNACHIEVABLE_MARGIN = "UnachievableMargin"
DISCOUNT_CAPPED = "DiscountCapped"
QUOTE_COMPUTATION_ERROR = "QuoteComputationError"


@dataclass(frozen=True)
class CalculationSignal:
    """Informational, non-fatal condition attached to a successful result."""
    code: str
    message: str


@dataclass(frozen=True)
class InvalidInputError:
    """Structurally invalid costing input (negative value, missing field, units < 1)."""
    message: str
    field: Optional[str] = None
    code: str = INVALID_INPUT

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "field": self.field}


@dataclass(frozen=True)
class QuoteComputationError:
    """A quote that cannot be aggregated (malformed VAT payload, currency mismatch)."""
    message: str
    field: Optional[str] = None
    code: str = QUOTE_COMPUTATION_ERROR

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "field": self.field}


class QuoteStateError(ValueError):
    """Raised by lifecycle commands that would break the quote state machine."""


def first_validation_issue(exc: ValidationError) -> tuple[str, Optional[str]]:
    """Return (message, dotted field path) of the first pydantic validation error."""
    errors = exc.errors()
    if not errors:
        return str(exc), None
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return first.get("msg", "invalid value"), loc or None
