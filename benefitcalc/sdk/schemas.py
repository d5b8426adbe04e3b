"""Pydantic schemas for calculation inputs, results and company configuration.

Input schemas use extra='forbid' so typos in census or config files cause
clear errors rather than silent ignoring, and reject NaN/inf amounts.
Result schemas carry un-rounded amounts; cents rounding is the invoicing
layer's job.
"""

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import Diagnostic
from .tables import normalize_filing_status, normalize_pay_frequency

ProfitShareMode = Literal["none", "percent_er_savings", "percent_bb_profit"]


# =============================================================================
# Inputs
# =============================================================================


class PretaxDeduction(BaseModel):
    """A per-pay pre-tax benefit tagged by the taxes it reduces.

    Section 125 cafeteria plan benefits reduce both FIT and FICA. Traditional
    401k reduces FIT only.
    """
    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)

    name: str = "section_125"
    per_pay_amount: float = Field(..., ge=0)
    reduces_fit: bool = True
    reduces_fica: bool = True


class CalculationInput(BaseModel):
    """One employee's inputs for an optimizer preview."""
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    gross_per_pay: float = Field(..., ge=0)
    filing_status: str = "single"
    dependents: int = Field(default=0, ge=0)
    state: str = ""
    pay_frequency: str = "biweekly"
    deductions: List[PretaxDeduction] = Field(default_factory=list)
    safety_cap_percent: float = Field(default=50, ge=0, le=100)
    model: str = "5/3"

    @field_validator("filing_status")
    @classmethod
    def check_status(cls, v):
        return normalize_filing_status(v)

    @field_validator("pay_frequency")
    @classmethod
    def check_frequency(cls, v):
        return normalize_pay_frequency(v)

    @property
    def pre_fit_per_pay(self) -> float:
        return sum(d.per_pay_amount for d in self.deductions if d.reduces_fit)

    @property
    def pre_fica_per_pay(self) -> float:
        return sum(d.per_pay_amount for d in self.deductions if d.reduces_fica)

    @property
    def pretax_per_pay(self) -> float:
        return sum(d.per_pay_amount for d in self.deductions)


class ProfitShareConfig(BaseModel):
    """Company profit-share setting. percent is a fraction capped at 50%."""
    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)

    mode: ProfitShareMode = "none"
    percent: float = Field(default=0, ge=0, le=0.5)


class EmployeeRecord(BaseModel):
    """Census row for one employee (snapshot from the data store)."""
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    id: str
    first_name: str = ""
    last_name: str = ""
    filing_status: str = "single"
    dependents: int = Field(default=0, ge=0)
    gross_pay: float = Field(default=0, ge=0, description="Gross pay per period")
    pay_frequency: Optional[str] = Field(default=None, description="Falls back to the company's")
    state: Optional[str] = Field(default=None, description="Falls back to the company's")
    safety_cap_percent: Optional[float] = Field(default=None, ge=0, le=100)
    consent_status: str = "elect"
    active: bool = True
    benefits: List[PretaxDeduction] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v

    @field_validator("filing_status")
    @classmethod
    def check_status(cls, v):
        return normalize_filing_status(v)

    @field_validator("pay_frequency")
    @classmethod
    def check_frequency(cls, v):
        return normalize_pay_frequency(v) if v is not None else None

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.id


class CompanyBillingConfig(BaseModel):
    """Company billing configuration (snapshot from the data store)."""
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    id: str
    name: str = ""
    model: str = "5/3"
    tier: str = "2025"
    state: str = ""
    pay_frequency: str = "biweekly"
    tax_year: int = Field(default=2025, ge=2000, le=2100)
    safety_cap_percent: Optional[float] = Field(default=None, ge=0, le=100)
    profit_share: ProfitShareConfig = Field(default_factory=ProfitShareConfig)
    base_fee_cents: int = Field(default=0, ge=0)
    per_employee_active_cents: int = Field(default=0, ge=0)
    maintenance_cents: int = Field(default=0, ge=0)
    tax_rate_percent: float = Field(default=0, ge=0, le=100)

    @field_validator("id", "model", "tier", mode="before")
    @classmethod
    def coerce_str(cls, v):
        # YAML reads tier: 2025 and model: 8 as ints
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v

    @field_validator("pay_frequency")
    @classmethod
    def check_frequency(cls, v):
        return normalize_pay_frequency(v)


class CompanyCensus(BaseModel):
    """A company plus its employee census, as read from a YAML file."""
    model_config = ConfigDict(extra="forbid")

    company: CompanyBillingConfig
    employees: List[EmployeeRecord] = Field(default_factory=list)


# =============================================================================
# Results
# =============================================================================


class TaxSnapshot(BaseModel):
    """Employee-side withholding for one pay period."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    fit: float = 0
    sit: float = 0
    ss: float = 0
    medicare: float = 0
    fica: float = 0

    @property
    def total(self) -> float:
        return self.fit + self.sit + self.fica


class CalculationResult(BaseModel):
    """Before/after comparison for one employee, per-pay and monthly/annual."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    periods_per_year: int
    pretax_per_pay: float
    pretax_monthly: float
    before: TaxSnapshot
    after: TaxSnapshot
    employee_tax_savings_per_pay: float
    employer_fica_savings_per_pay: float
    employee_tax_savings_monthly: float
    employer_fica_savings_monthly: float
    model: str
    fees_label: str
    employee_fee_monthly: float
    employer_fee_monthly: float
    employee_net_savings_monthly: float
    employer_net_savings_monthly: float
    employee_net_savings_annual: float
    employer_net_savings_annual: float
    diagnostics: Tuple[Diagnostic, ...] = ()


class ProposalMetrics(BaseModel):
    """Proposal figures for one employee."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    gross_benefit_allotment: float = Field(..., description="Monthly safe Section 125 amount")
    deduction_per_pay: float
    ideal_deduction_per_pay: float
    employee_net_increase_monthly: float
    employee_net_increase_annual: float
    employer_net_savings_monthly: float
    employer_net_savings_annual: float
    is_capped: bool
    detail: CalculationResult
    diagnostics: Tuple[Diagnostic, ...] = ()
