"""Error taxonomy for the calculation engine.

Hard failures are raised at the function boundary:
- InvalidInput: negative/NaN amounts, rates outside [0, 1), bad enum values
- InvalidModel: unrecognized billing model name (changes what a customer owes)

Recoverable conditions are not raised by the tax context resolver. They
become a zero-tax fallback plus a Diagnostic so a batch over many companies
keeps going:
- MissingParameters: no tax-year row, no withholding table, no state row
- UnsupportedJurisdiction: state row exists but its method is undefined

Calculators never log or retry; the batch layer (billing.py) logs and
carries on.
"""

import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class BenefitCalcError(Exception):
    """Base class for engine errors."""
    pass


class InvalidInput(BenefitCalcError, ValueError):
    """Raised when an input amount, rate or enum value is out of range."""
    pass


class InvalidModel(BenefitCalcError, ValueError):
    """Raised when a billing model name is not in the model table."""

    def __init__(self, model, known=()):
        self.model = model
        self.known = tuple(known)
        message = f"Unknown billing model: {model!r}"
        if self.known:
            message += f". Must be one of: {', '.join(self.known)}"
        super().__init__(message)


class MissingParameters(BenefitCalcError, LookupError):
    """Raised by strict parameter lookups when a key has no data."""
    pass


class UnsupportedJurisdiction(BenefitCalcError):
    """Raised by strict state lookups when the state's method is undefined."""
    pass


DiagnosticCode = Literal["missing_parameters", "unsupported_jurisdiction"]


class Diagnostic(BaseModel):
    """A recoverable condition reported alongside a zero-tax fallback."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    code: DiagnosticCode
    message: str = Field(..., description="Human-readable detail for reports")

    @classmethod
    def from_error(cls, error: BenefitCalcError) -> "Diagnostic":
        code = "unsupported_jurisdiction" if isinstance(error, UnsupportedJurisdiction) else "missing_parameters"
        return cls(code=code, message=str(error))


def require_amount(name: str, value: float) -> float:
    """Reject negative, NaN or non-numeric amounts."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{name} must be a number, got: {value!r}")
    if math.isnan(value) or math.isinf(value) or value < 0:
        raise InvalidInput(f"{name} must be a non-negative finite number, got: {value}")
    return float(value)


def require_rate(name: str, value: float) -> float:
    """Reject rates outside [0, 1)."""
    require_amount(name, value)
    if value >= 1:
        raise InvalidInput(f"{name} must be a decimal fraction in [0, 1), got: {value}")
    return float(value)


def require_count(name: str, value: int) -> int:
    """Reject negative or non-integer counts (e.g. dependents)."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidInput(f"{name} must be a non-negative integer, got: {value!r}")
    return value
