"""Batch orchestration: month-end billing close and company proposals.

Tax parameters are fetched once per batch and one PayrollTaxContext is
resolved per (filing status, pay frequency, state), then reused across the
employee loop. A bad employee row is recorded as an error outcome and a bad
company as a failed result; neither aborts the batch.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Literal, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .config import get_setting
from .errors import BenefitCalcError, Diagnostic, InvalidInput
from .fees import BillingFees, ProfitShare, compute_all_models, compute_fees_for_pretax_monthly, compute_profit_share, resolve_billing_model
from .money import round_half_up, to_cents
from .proposal import check_eligibility, calculate_proposal_metrics
from .schemas import CompanyBillingConfig, CompanyCensus, EmployeeRecord, ProposalMetrics
from .taxes.params import PayrollTaxContext, TaxParameterStore, resolve_tax_context_for_year

logger = logging.getLogger(__name__)

# Models shown side by side on a proposal
COMPARISON_MODELS: Tuple[str, ...] = ("5/3", "3/4", "5/1", "4/4")

OutcomeStatus = Literal["ok", "excluded", "error"]


def load_census(path: Path) -> CompanyCensus:
    """Load a company census YAML file ({company: ..., employees: [...]}).

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the file violates the schema
    """
    path = Path(path)
    logger.debug(f"Loading census from {path}")
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return CompanyCensus.model_validate(data)


class TaxContextCache:
    """One resolved tax context per (status, frequency, state) for a tax year."""

    def __init__(self, store: TaxParameterStore, tax_year: int):
        self.store = store
        self.tax_year = tax_year
        self._contexts: Dict[Tuple[str, str, str], PayrollTaxContext] = {}

    def get(self, filing_status: str, pay_frequency: str, state: str) -> PayrollTaxContext:
        key = (filing_status, pay_frequency, (state or "").strip().upper())
        if key not in self._contexts:
            context = resolve_tax_context_for_year(self.store, self.tax_year, *key)
            for d in context.diagnostics:
                logger.warning(f"{self.tax_year} {key}: {d.code}: {d.message}")
            self._contexts[key] = context
        return self._contexts[key]

    def __len__(self) -> int:
        return len(self._contexts)

    @property
    def diagnostics(self) -> Tuple[Diagnostic, ...]:
        """Distinct diagnostics across every context resolved so far."""
        seen: List[Diagnostic] = []
        for context in self._contexts.values():
            for d in context.diagnostics:
                if d not in seen:
                    seen.append(d)
        return tuple(seen)


class EmployeeOutcome(BaseModel):
    """Billing-close line for one employee."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    employee_id: str
    name: str
    status: OutcomeStatus
    reason: Optional[str] = None
    section125_per_pay: float = 0
    section125_monthly: float = 0
    employee_fee_monthly: float = 0
    employer_fee_monthly: float = 0
    employer_fica_savings_monthly: float = 0
    allowable_benefit_monthly: float = Field(default=0, description="Net pay increase after the employee fee")
    is_capped: bool = False


class InvoiceTotals(BaseModel):
    """Invoice lines in cents. The profit share is a credit subtracted from the subtotal."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    bb_fees_cents: int
    base_fee_cents: int
    per_employee_cents: int
    maintenance_cents: int
    profit_share_cents: int
    subtotal_cents: int
    tax_cents: int
    total_cents: int


class CompanyBillingResult(BaseModel):
    """Billing close for one company, or the reason it failed."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    company_id: str
    company_name: str
    status: Literal["ok", "failed"] = "ok"
    error: Optional[str] = None
    model: Optional[str] = None
    tax_year: Optional[int] = None
    employees: List[EmployeeOutcome] = Field(default_factory=list)
    active_count: int = 0
    enrolled_count: int = 0
    section125_monthly_total: float = 0
    employee_fee_monthly: float = 0
    employer_fee_monthly: float = 0
    employer_fica_savings_monthly: float = 0
    allowable_benefit_monthly: float = 0
    profit_share: Optional[ProfitShare] = None
    invoice: Optional[InvoiceTotals] = None
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def error_count(self) -> int:
        return sum(1 for e in self.employees if e.status == "error")


def _employee_settings(
    employee: EmployeeRecord,
    company: CompanyBillingConfig,
    default_cap: float,
) -> Tuple[str, str, float]:
    """(pay_frequency, state, safety_cap_percent) with company fallbacks."""
    frequency = employee.pay_frequency or company.pay_frequency
    state = employee.state or company.state
    if employee.safety_cap_percent is not None:
        cap = employee.safety_cap_percent
    elif company.safety_cap_percent is not None:
        cap = company.safety_cap_percent
    else:
        cap = default_cap
    return frequency, state, cap


def _resolve_defaults(min_gross_pay: Optional[float], default_cap: Optional[float]) -> Tuple[float, float]:
    if min_gross_pay is None:
        min_gross_pay = float(get_setting("min_gross_pay"))
    if default_cap is None:
        default_cap = float(get_setting("default_safety_cap_percent"))
    return min_gross_pay, default_cap


def _employee_metrics(
    employee: EmployeeRecord,
    company: CompanyBillingConfig,
    cache: TaxContextCache,
    default_cap: float,
) -> ProposalMetrics:
    frequency, state, cap = _employee_settings(employee, company, default_cap)
    taxes = cache.get(employee.filing_status, frequency, state)
    return calculate_proposal_metrics(
        employee.gross_pay,
        frequency,
        employee.filing_status,
        employee.dependents,
        state,
        company.model,
        company.tier,
        cap,
        taxes=taxes,
    )


def _invoice(company: CompanyBillingConfig, fees: BillingFees, profit_share: ProfitShare, active_count: int) -> InvoiceTotals:
    bb_fees_cents = to_cents(fees.total_fee_monthly)
    per_employee_cents = company.per_employee_active_cents * active_count
    profit_share_cents = to_cents(profit_share.profit_share_amount)
    subtotal = (
        bb_fees_cents
        + company.base_fee_cents
        + per_employee_cents
        + company.maintenance_cents
        - profit_share_cents
    )
    # A credit larger than the charges zeroes the invoice, never refunds
    subtotal = max(0, subtotal)
    tax_cents = round_half_up(subtotal * company.tax_rate_percent / 100)
    return InvoiceTotals(
        bb_fees_cents=bb_fees_cents,
        base_fee_cents=company.base_fee_cents,
        per_employee_cents=per_employee_cents,
        maintenance_cents=company.maintenance_cents,
        profit_share_cents=profit_share_cents,
        subtotal_cents=subtotal,
        tax_cents=tax_cents,
        total_cents=subtotal + tax_cents,
    )


def close_company_billing(
    company: CompanyBillingConfig,
    employees: Iterable[EmployeeRecord],
    store: TaxParameterStore,
    min_gross_pay: Optional[float] = None,
    default_cap: Optional[float] = None,
) -> CompanyBillingResult:
    """Month-end billing close for one company.

    Args:
        company: Company billing configuration
        employees: Census snapshot
        store: Tax parameter store (snapshots shared across the batch)
        min_gross_pay: Eligibility threshold (default: settings)
        default_cap: Safety cap when neither employee nor company sets one

    Returns:
        CompanyBillingResult with per-employee outcomes and invoice cents

    Raises:
        InvalidModel: The company's billing model is unknown
    """
    min_gross_pay, default_cap = _resolve_defaults(min_gross_pay, default_cap)
    model = resolve_billing_model(company.tier, company.model)
    cache = TaxContextCache(store, company.tax_year)

    outcomes: List[EmployeeOutcome] = []
    active_count = 0
    for employee in employees:
        if employee.active:
            active_count += 1

        eligibility = check_eligibility(employee, min_gross_pay)
        if not eligibility.eligible:
            outcomes.append(EmployeeOutcome(
                employee_id=employee.id, name=employee.name, status="excluded", reason=eligibility.reason,
            ))
            continue

        try:
            metrics = _employee_metrics(employee, company, cache, default_cap)
        except InvalidInput as e:
            logger.warning(f"{company.id}/{employee.id}: {e}")
            outcomes.append(EmployeeOutcome(
                employee_id=employee.id, name=employee.name, status="error", reason=str(e),
            ))
            continue

        detail = metrics.detail
        outcomes.append(EmployeeOutcome(
            employee_id=employee.id,
            name=employee.name,
            status="ok",
            section125_per_pay=metrics.deduction_per_pay,
            section125_monthly=metrics.gross_benefit_allotment,
            employee_fee_monthly=detail.employee_fee_monthly,
            employer_fee_monthly=detail.employer_fee_monthly,
            employer_fica_savings_monthly=detail.employer_fica_savings_monthly,
            allowable_benefit_monthly=metrics.employee_net_increase_monthly,
            is_capped=metrics.is_capped,
        ))

    ok = [o for o in outcomes if o.status == "ok"]
    section125_total = sum(o.section125_monthly for o in ok)
    fica_savings = sum(o.employer_fica_savings_monthly for o in ok)

    # Fees are linear in volume: company total == sum of employee fees
    fees = compute_fees_for_pretax_monthly(section125_total, model)
    profit_share = compute_profit_share(
        company.profit_share.mode,
        company.profit_share.percent,
        employer_fica_savings_monthly=fica_savings,
        bb_profit_monthly=fees.total_fee_monthly,
    )

    logger.info(
        f"{company.id}: {len(ok)} enrolled, {len(outcomes) - len(ok)} not billed, "
        f"section 125 ${section125_total:,.2f}/mo"
    )

    return CompanyBillingResult(
        company_id=company.id,
        company_name=company.name or company.id,
        model=model,
        tax_year=company.tax_year,
        employees=outcomes,
        active_count=active_count,
        enrolled_count=len(ok),
        section125_monthly_total=section125_total,
        employee_fee_monthly=fees.employee_fee_monthly,
        employer_fee_monthly=fees.employer_fee_monthly,
        employer_fica_savings_monthly=fica_savings,
        allowable_benefit_monthly=sum(o.allowable_benefit_monthly for o in ok),
        profit_share=profit_share,
        invoice=_invoice(company, fees, profit_share, active_count),
        diagnostics=cache.diagnostics,
    )


def run_billing_close(
    censuses: Iterable[CompanyCensus],
    store: Optional[TaxParameterStore] = None,
    min_gross_pay: Optional[float] = None,
    default_cap: Optional[float] = None,
) -> List[CompanyBillingResult]:
    """Billing close over many companies. One result per company, failures included."""
    store = store if store is not None else TaxParameterStore()
    results = []
    for census in censuses:
        company = census.company
        try:
            result = close_company_billing(company, census.employees, store, min_gross_pay, default_cap)
        except (BenefitCalcError, ValueError) as e:
            logger.error(f"Billing close failed for {company.id}: {e}")
            result = CompanyBillingResult(
                company_id=company.id,
                company_name=company.name or company.id,
                status="failed",
                error=str(e),
            )
        results.append(result)
    return results


class ProposalRow(BaseModel):
    """Proposal line for one employee (metrics is None when not qualified)."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    employee_id: str
    name: str
    status: OutcomeStatus
    reason: Optional[str] = None
    metrics: Optional[ProposalMetrics] = None


class ProposalSummary(BaseModel):
    """Company proposal: per-employee metrics and company totals."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    company_id: str
    company_name: str
    model: str
    tier: str
    rows: List[ProposalRow] = Field(default_factory=list)
    qualified_count: int = 0
    capped_count: int = 0
    total_monthly_allotment: float = 0
    employee_net_increase_monthly: float = 0
    employee_net_increase_annual: float = 0
    employer_net_savings_monthly: float = 0
    employer_net_savings_annual: float = 0
    model_comparison: List[BillingFees] = Field(default_factory=list)
    diagnostics: Tuple[Diagnostic, ...] = ()


def build_proposal(
    census: CompanyCensus,
    store: Optional[TaxParameterStore] = None,
    min_gross_pay: Optional[float] = None,
    default_cap: Optional[float] = None,
    comparison_models: Iterable[str] = COMPARISON_MODELS,
) -> ProposalSummary:
    """Proposal for a prospective company from its census.

    Raises:
        InvalidModel: The company's billing model is unknown
    """
    store = store if store is not None else TaxParameterStore()
    min_gross_pay, default_cap = _resolve_defaults(min_gross_pay, default_cap)
    company = census.company
    model = resolve_billing_model(company.tier, company.model)
    cache = TaxContextCache(store, company.tax_year)

    rows: List[ProposalRow] = []
    for employee in census.employees:
        eligibility = check_eligibility(employee, min_gross_pay)
        if not eligibility.eligible:
            rows.append(ProposalRow(
                employee_id=employee.id, name=employee.name, status="excluded", reason=eligibility.reason,
            ))
            continue
        try:
            metrics = _employee_metrics(employee, company, cache, default_cap)
        except InvalidInput as e:
            logger.warning(f"{company.id}/{employee.id}: {e}")
            rows.append(ProposalRow(employee_id=employee.id, name=employee.name, status="error", reason=str(e)))
            continue
        rows.append(ProposalRow(employee_id=employee.id, name=employee.name, status="ok", metrics=metrics))

    qualified = [r.metrics for r in rows if r.metrics is not None]
    total_allotment = sum(m.gross_benefit_allotment for m in qualified)

    return ProposalSummary(
        company_id=company.id,
        company_name=company.name or company.id,
        model=model,
        tier=company.tier,
        rows=rows,
        qualified_count=len(qualified),
        capped_count=sum(1 for m in qualified if m.is_capped),
        total_monthly_allotment=total_allotment,
        employee_net_increase_monthly=sum(m.employee_net_increase_monthly for m in qualified),
        employee_net_increase_annual=sum(m.employee_net_increase_annual for m in qualified),
        employer_net_savings_monthly=sum(m.employer_net_savings_monthly for m in qualified),
        employer_net_savings_annual=sum(m.employer_net_savings_annual for m in qualified),
        model_comparison=compute_all_models(total_allotment, comparison_models),
        diagnostics=cache.diagnostics,
    )
