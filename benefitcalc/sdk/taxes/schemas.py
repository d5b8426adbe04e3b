"""Pydantic schemas for tax parameter snapshots.

These schemas validate the tax_params/*.yaml files and provide typed access
to federal rates, the Pub 15-T percentage-method schedules and state
withholding rules. A TaxParameterSet is one published tax year; it is frozen
so results computed against it stay reproducible.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..errors import MissingParameters, UnsupportedJurisdiction
from ..tables import FilingStatus

STATE_METHODS = ("none", "flat", "brackets")

# Continuity tolerance for published tables (half a cent)
CONTINUITY_TOLERANCE = 0.005


class FederalTaxParams(BaseModel):
    """Federal payroll tax parameters for one tax year."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    ss_rate: float = Field(..., ge=0, lt=1, description="Social Security rate (each side)")
    med_rate: float = Field(..., ge=0, lt=1, description="Medicare rate (each side)")
    ss_wage_base: float = Field(..., gt=0, description="Annual SS wage base")
    addl_medicare_threshold: float = Field(..., ge=0, description="Additional Medicare withholding threshold")
    addl_medicare_rate: float = Field(default=0.009, ge=0, lt=1)
    dependent_credit: float = Field(default=2000, ge=0, description="Annual W-4 Step 3 credit per dependent")


class WithholdingBracketRow(BaseModel):
    """One row of an IRS percentage-method table: base_tax + pct * (wages - over)."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    over: float = Field(..., ge=0)
    base_tax: float = Field(..., ge=0)
    pct: float = Field(..., ge=0, lt=1)


def validate_table(rows: Sequence[WithholdingBracketRow], label: str = "table") -> None:
    """Check a percentage-method table is sorted and continuous at every boundary.

    Raises:
        ValueError: If rows are out of order or a row's base_tax does not equal
            the cumulative tax at its threshold under the preceding row.
    """
    for prev, row in zip(rows, rows[1:]):
        if row.over <= prev.over:
            raise ValueError(f"{label}: rows must be sorted ascending by 'over' ({prev.over} then {row.over})")
        expected = prev.base_tax + prev.pct * (row.over - prev.over)
        if abs(expected - row.base_tax) > CONTINUITY_TOLERANCE:
            raise ValueError(
                f"{label}: base_tax {row.base_tax} at over={row.over} breaks continuity "
                f"(preceding row gives {expected:.2f})"
            )


class StateBracketRow(BaseModel):
    """State bracket row in either of the two stored shapes.

    - marginal: {over, rate}
    - schedule: {max, rate, base} where max is null on the open top row
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    over: Optional[float] = Field(default=None, ge=0)
    max: Optional[float] = Field(default=None, gt=0)
    rate: float = Field(..., ge=0, lt=1)
    base: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_shape(self) -> "StateBracketRow":
        if self.over is not None and (self.max is not None or self.base is not None):
            raise ValueError("bracket row must be {over, rate} or {max, rate, base}, not both")
        if self.over is None and self.base is None:
            raise ValueError("bracket row needs 'over' (marginal) or 'base' (schedule)")
        return self

    @property
    def is_marginal(self) -> bool:
        return self.over is not None


class StateTaxParams(BaseModel):
    """State withholding rules for one (state, tax year).

    method is kept as free text so a state with an undefined method loads and
    is reported as unsupported instead of failing the whole year.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    method: Optional[str] = None
    flat_rate: Optional[float] = Field(default=None, ge=0, lt=1)
    brackets: Optional[Tuple[StateBracketRow, ...]] = None
    standard_deduction: float = Field(default=0, ge=0, description="Annual, subtracted by the caller")

    @model_validator(mode="after")
    def check_method(self) -> "StateTaxParams":
        if self.method == "flat":
            if self.flat_rate is None:
                raise ValueError("method 'flat' requires flat_rate")
            if self.brackets:
                raise ValueError("method 'flat' must not define brackets")
        elif self.method == "brackets":
            if not self.brackets:
                raise ValueError("method 'brackets' requires a non-empty brackets list")
            if self.flat_rate is not None:
                raise ValueError("method 'brackets' must not define flat_rate")
            shapes = {row.is_marginal for row in self.brackets}
            if len(shapes) > 1:
                raise ValueError("brackets must all use the same row shape")
            validate_table(self.withholding_rows(), label="state brackets")
        elif self.method == "none":
            if self.flat_rate is not None or self.brackets:
                raise ValueError("method 'none' must not define flat_rate or brackets")
        return self

    @property
    def is_supported(self) -> bool:
        return self.method in STATE_METHODS

    def withholding_rows(self) -> List[WithholdingBracketRow]:
        """Convert stored brackets to continuous percentage-method rows (annual)."""
        rows: List[WithholdingBracketRow] = []
        if not self.brackets:
            return rows

        if self.brackets[0].is_marginal:
            base_tax = 0.0
            prev = None
            for b in self.brackets:
                if prev is not None:
                    base_tax += prev.rate * (b.over - prev.over)
                rows.append(WithholdingBracketRow(over=b.over, base_tax=base_tax, pct=b.rate))
                prev = b
        else:
            floor = 0.0
            for b in self.brackets:
                rows.append(WithholdingBracketRow(over=floor, base_tax=b.base, pct=b.rate))
                if b.max is None:
                    break
                floor = b.max

        if rows and rows[0].over != 0:
            raise ValueError("state brackets must start at 0")
        return rows


class TaxParameterSet(BaseModel):
    """Complete, published tax parameters for one year."""
    model_config = ConfigDict(extra="ignore", frozen=True)  # Allow unknown fields for forward compat

    tax_year: int = Field(..., ge=2000, le=2100)
    federal: FederalTaxParams
    # Annual Pub 15-T percentage-method schedules by filing status
    withholding: Dict[FilingStatus, Tuple[WithholdingBracketRow, ...]] = Field(default_factory=dict)
    states: Dict[str, StateTaxParams] = Field(default_factory=dict)

    @field_validator("withholding")
    @classmethod
    def check_withholding(cls, tables):
        for status, rows in tables.items():
            validate_table(rows, label=f"withholding[{status}]")
        return tables

    @field_validator("states", mode="before")
    @classmethod
    def upper_state_keys(cls, states):
        if isinstance(states, dict):
            return {str(k).strip().upper(): v for k, v in states.items()}
        return states

    def annual_schedule(self, filing_status: str) -> Tuple[WithholdingBracketRow, ...]:
        """Get the annual percentage-method schedule for a filing status.

        Raises:
            MissingParameters: If the year has no schedule for the status.
        """
        rows = self.withholding.get(filing_status)
        if not rows:
            raise MissingParameters(
                f"No federal withholding table for tax year {self.tax_year}, filing status {filing_status!r}"
            )
        return rows

    def state_params(self, state: str) -> StateTaxParams:
        """Get state rules.

        Raises:
            MissingParameters: If the state has no row for this year.
            UnsupportedJurisdiction: If the row's method is undefined.
        """
        key = (state or "").strip().upper()
        params = self.states.get(key)
        if params is None:
            raise MissingParameters(f"No state tax parameters for {key or '(blank)'} in tax year {self.tax_year}")
        if not params.is_supported:
            raise UnsupportedJurisdiction(
                f"State {key} has undefined withholding method {params.method!r} for tax year {self.tax_year}"
            )
        return params
