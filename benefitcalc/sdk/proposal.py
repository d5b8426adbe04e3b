"""Proposal metrics and optimizer preview.

Composes the tax calculators, the Section 125 safe deduction and the fee
model for one employee. Order matters: the safe deduction feeds the
before/after tax comparison, whose savings feed the fee netting.

    periods -> safe deduction -> taxes with/without -> per-pay savings
            -> monthly/annual -> fees -> net figures
"""

from typing import Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from .errors import InvalidInput, require_amount, require_count
from .fees import compute_fees_for_pretax_monthly, get_model_rates, resolve_billing_model
from .schemas import CalculationInput, CalculationResult, EmployeeRecord, PretaxDeduction, ProposalMetrics, TaxSnapshot
from .section125 import calculate_safe_deduction, per_pay_to_monthly
from .tables import get_pay_periods, normalize_filing_status
from .taxes.params import PayrollTaxContext
from .taxes.payroll import calc_employee_taxes

MIN_GROSS_PAY = 500.0


class Eligibility(BaseModel):
    """Whether an employee takes part in proposals and billing."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    eligible: bool
    reason: Optional[str] = None


def check_eligibility(employee: EmployeeRecord, min_gross_pay: float = MIN_GROSS_PAY) -> Eligibility:
    """The one disqualification rule used by every batch caller.

    An employee is excluded (not priced at zero) when inactive, not enrolled
    (consent_status other than "elect"), or paid below min_gross_pay per period.
    """
    if not employee.active:
        return Eligibility(eligible=False, reason="Inactive")
    if employee.consent_status != "elect":
        return Eligibility(eligible=False, reason="Not enrolled")
    if employee.gross_pay < min_gross_pay:
        return Eligibility(eligible=False, reason=f"Gross pay below ${min_gross_pay:,.0f}")
    return Eligibility(eligible=True)


def compare_taxes(
    gross_per_pay: float,
    deductions: Sequence[PretaxDeduction],
    taxes: Optional[PayrollTaxContext],
    dependents: int = 0,
) -> Tuple[TaxSnapshot, TaxSnapshot]:
    """Employee taxes for a period without and with the pretax deductions.

    Returns:
        (before, after)
    """
    pre_fit = sum(d.per_pay_amount for d in deductions if d.reduces_fit)
    pre_fica = sum(d.per_pay_amount for d in deductions if d.reduces_fica)
    before = calc_employee_taxes(gross_per_pay, 0.0, 0.0, taxes, dependents)
    after = calc_employee_taxes(gross_per_pay, pre_fit, pre_fica, taxes, dependents)
    return before, after


def _check_context(filing_status: str, pay_frequency: str, state: str, taxes: PayrollTaxContext) -> int:
    if normalize_filing_status(filing_status) != taxes.filing_status:
        raise InvalidInput(f"filing_status {filing_status!r} does not match tax context ({taxes.filing_status})")
    periods = get_pay_periods(pay_frequency)
    if periods != taxes.periods:
        raise InvalidInput(f"pay_frequency {pay_frequency!r} does not match tax context ({taxes.pay_frequency})")
    if (state or "").strip().upper() != taxes.state:
        raise InvalidInput(f"state {state!r} does not match tax context ({taxes.state!r})")
    return periods


def calculate(inp: CalculationInput, taxes: PayrollTaxContext) -> CalculationResult:
    """Optimizer preview: before/after taxes, savings and fees for one employee.

    Args:
        inp: Employee inputs with tagged pretax deductions
        taxes: Context resolved for the employee's status, frequency and state

    Returns:
        CalculationResult with un-rounded per-pay, monthly and annual figures

    Raises:
        InvalidInput: Filing status, frequency or state do not match the tax context
        InvalidModel: Unknown billing model
    """
    periods = _check_context(inp.filing_status, inp.pay_frequency, inp.state, taxes)

    before, after = compare_taxes(inp.gross_per_pay, inp.deductions, taxes, inp.dependents)

    employee_savings = before.total - after.total
    # Employer FICA matches the employee's at the same rates
    employer_savings = before.fica - after.fica

    pretax_monthly = inp.pretax_per_pay * periods / 12
    fees = compute_fees_for_pretax_monthly(pretax_monthly, inp.model)

    employee_savings_monthly = employee_savings * periods / 12
    employer_savings_monthly = employer_savings * periods / 12

    return CalculationResult(
        periods_per_year=periods,
        pretax_per_pay=inp.pretax_per_pay,
        pretax_monthly=pretax_monthly,
        before=before,
        after=after,
        employee_tax_savings_per_pay=employee_savings,
        employer_fica_savings_per_pay=employer_savings,
        employee_tax_savings_monthly=employee_savings_monthly,
        employer_fica_savings_monthly=employer_savings_monthly,
        model=fees.model,
        fees_label=fees.fees_label,
        employee_fee_monthly=fees.employee_fee_monthly,
        employer_fee_monthly=fees.employer_fee_monthly,
        employee_net_savings_monthly=employee_savings_monthly - fees.employee_fee_monthly,
        employer_net_savings_monthly=employer_savings_monthly - fees.employer_fee_monthly,
        employee_net_savings_annual=employee_savings * periods - fees.employee_fee_monthly * 12,
        employer_net_savings_annual=employer_savings * periods - fees.employer_fee_monthly * 12,
        diagnostics=taxes.diagnostics,
    )


def calculate_proposal_metrics(
    gross_pay: float,
    pay_frequency: str,
    filing_status: str,
    dependents: int,
    state: str,
    model: Optional[str],
    tier: str,
    safety_cap_percent: float,
    *,
    taxes: PayrollTaxContext,
) -> ProposalMetrics:
    """Proposal figures for one employee at the safe Section 125 deduction.

    Args:
        gross_pay: Gross pay per period
        pay_frequency: Pay frequency (must match the tax context)
        filing_status: Filing status
        dependents: Number of dependents
        state: Two-letter state (must match the tax context)
        model: Company billing model (tier overrides apply)
        tier: Company pricing tier
        safety_cap_percent: Safety cap, 0-100
        taxes: Tax context resolved once per batch

    Returns:
        ProposalMetrics with monthly/annual net figures and the is_capped flag

    Raises:
        InvalidInput: Bad amounts, enums, or a context mismatch
        InvalidModel: Unknown billing model
    """
    gross = require_amount("gross_pay", gross_pay)
    require_count("dependents", dependents)
    _check_context(filing_status, pay_frequency, state, taxes)

    # Resolve the model first so an unknown model fails before any math
    model_name = resolve_billing_model(tier, model)
    employee_rate, _ = get_model_rates(model_name)

    safe = calculate_safe_deduction(
        tier,
        filing_status,
        dependents,
        gross,
        pay_frequency,
        safety_cap_percent,
        taxes=taxes,
        employee_fee_rate=employee_rate,
    )

    detail = calculate(
        CalculationInput(
            gross_per_pay=gross,
            filing_status=filing_status,
            dependents=dependents,
            state=state,
            pay_frequency=pay_frequency,
            deductions=[PretaxDeduction(per_pay_amount=safe.amount)],
            safety_cap_percent=safety_cap_percent,
            model=model_name,
        ),
        taxes,
    )

    return ProposalMetrics(
        gross_benefit_allotment=per_pay_to_monthly(safe.amount, pay_frequency),
        deduction_per_pay=safe.amount,
        ideal_deduction_per_pay=safe.ideal_amount,
        employee_net_increase_monthly=detail.employee_net_savings_monthly,
        employee_net_increase_annual=detail.employee_net_savings_annual,
        employer_net_savings_monthly=detail.employer_net_savings_monthly,
        employer_net_savings_annual=detail.employer_net_savings_annual,
        is_capped=safe.is_capped,
        detail=detail,
        diagnostics=taxes.diagnostics,
    )
