"""Section 125 safe-harbor deduction.

The per-pay deduction is the company tier's allowance (by filing status and
dependents) limited by the employee's safety cap: after the deduction, the
taxes it changes and the employee fee, net pay must stay at or above
gross * (1 - cap / 100).

The deduction changes the tax base, so the cap is a circular condition.
With percentage-method tables everything is piecewise linear in the
deduction D:

    net(D) = gross - D - taxes(gross - D) - fee_rate * D

net(D) is continuous and strictly decreasing (marginal tax rates are below
100%), and linear between breakpoints where some taxable wage crosses a
bracket threshold. The ceiling is found exactly by walking the breakpoints
and interpolating inside the segment that crosses the floor.
"""

from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from .errors import InvalidInput, require_amount, require_count, require_rate
from .tables import SECTION125_ALLOTMENTS, get_pay_periods, normalize_filing_status
from .taxes.params import PayrollTaxContext
from .taxes.payroll import calc_employee_taxes
from .taxes.withholding import taxable_for_tax


class SafeDeduction(BaseModel):
    """Result of the safe-harbor calculation (per pay period)."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    amount: float
    ideal_amount: float
    ceiling: float
    net_pay_floor: float
    is_capped: bool

    @classmethod
    def zero(cls) -> "SafeDeduction":
        return cls(amount=0.0, ideal_amount=0.0, ceiling=0.0, net_pay_floor=0.0, is_capped=False)


def calculate_section125_allotment(
    tier: str,
    filing_status: str,
    dependents: int,
    allotments: Mapping = SECTION125_ALLOTMENTS,
) -> float:
    """Monthly Section 125 allowance for the company tier and employee.

    Raises:
        InvalidInput: Unknown tier or filing status, negative dependents
    """
    status = normalize_filing_status(filing_status)
    dependents = require_count("dependents", dependents)
    if status == "head":
        status = "single"

    table = allotments.get(tier)
    if table is None:
        raise InvalidInput(f"Invalid company tier: {tier!r}. Must be one of {tuple(allotments)}")
    return table[(status, dependents > 0)]


def monthly_to_per_pay(monthly_amount: float, pay_frequency: str) -> float:
    return monthly_amount * 12 / get_pay_periods(pay_frequency)


def per_pay_to_monthly(per_pay_amount: float, pay_frequency: str) -> float:
    return per_pay_amount * get_pay_periods(pay_frequency) / 12


def annual_to_per_pay(annual_amount: float, pay_frequency: str) -> float:
    return annual_amount / get_pay_periods(pay_frequency)


def net_pay_after_deduction(
    gross_per_pay: float,
    deduction: float,
    taxes: Optional[PayrollTaxContext],
    dependents: int = 0,
    employee_fee_rate: float = 0.0,
) -> float:
    """Take-home pay with a Section 125 deduction that reduces FIT and FICA."""
    after = calc_employee_taxes(gross_per_pay, deduction, deduction, taxes, dependents)
    return gross_per_pay - deduction - after.total - employee_fee_rate * deduction


def _breakpoints(gross: float, taxes: Optional[PayrollTaxContext], dependents: int) -> List[float]:
    """Deduction amounts where net(D) may change slope, within [0, gross]."""
    points = {0.0, gross}
    if taxes is None:
        return sorted(points)

    # FIT taxable wage = gross - D crosses a table threshold
    thresholds = [row.over for row in taxes.fit_table]

    # Dependent credit floor: tentative FIT equals the per-period credit
    credit = dependents * taxes.dependent_credit / taxes.periods
    if credit > 0:
        x = taxable_for_tax(credit, taxes.fit_table)
        if x is not None:
            thresholds.append(x)

    # State taxable wage = gross - D - std deduction crosses zero or a bracket
    state_deduction = taxes.state_params.standard_deduction / taxes.periods
    thresholds.append(state_deduction)
    thresholds.extend(row.over + state_deduction for row in taxes.state_table_per_pay())

    # SS wage base reached within a single period
    if taxes.ss_wage_base is not None:
        thresholds.append(taxes.ss_wage_base)

    for t in thresholds:
        d = gross - t
        if 0 < d < gross:
            points.add(d)
    return sorted(points)


def calculate_safe_deduction(
    tier: str,
    filing_status: str,
    dependents: int,
    gross_per_pay: float,
    pay_frequency: str,
    safety_cap_percent: float,
    *,
    taxes: Optional[PayrollTaxContext] = None,
    employee_fee_rate: float = 0.0,
    allotments: Mapping = SECTION125_ALLOTMENTS,
) -> SafeDeduction:
    """Largest safe per-pay Section 125 deduction for an employee.

    Args:
        tier: Company pricing tier (state_school, 2025, pre_2025, original_6pct)
        filing_status: single, married or head
        dependents: Number of dependents
        gross_per_pay: Gross pay for the period
        pay_frequency: weekly, biweekly, semimonthly or monthly
        safety_cap_percent: Max share of gross (0-100) that deduction, tax
            changes and fee may take from net pay
        taxes: Resolved tax context. None evaluates the cap without taxes.
        employee_fee_rate: Employee fee rate charged on the deduction
        allotments: Tier allowance table (injectable)

    Returns:
        SafeDeduction. amount = min(ideal, ceiling); is_capped when the tier
        allowance had to be reduced to respect the cap. Zero when gross <= 0.

    Raises:
        InvalidInput: NaN gross, cap outside [0, 100], bad tier/status, or a
            tax context for another filing status or pay frequency
    """
    if gross_per_pay <= 0:
        return SafeDeduction.zero()

    gross = require_amount("gross_per_pay", gross_per_pay)
    cap = require_amount("safety_cap_percent", safety_cap_percent)
    if cap > 100:
        raise InvalidInput(f"safety_cap_percent must be between 0 and 100, got: {cap}")
    fee_rate = require_rate("employee_fee_rate", employee_fee_rate)
    if taxes is not None:
        if normalize_filing_status(filing_status) != taxes.filing_status:
            raise InvalidInput(f"filing_status {filing_status!r} does not match tax context ({taxes.filing_status})")
        if get_pay_periods(pay_frequency) != taxes.periods:
            raise InvalidInput(f"pay_frequency {pay_frequency!r} does not match tax context ({taxes.pay_frequency})")

    monthly = calculate_section125_allotment(tier, filing_status, dependents, allotments)
    ideal = min(monthly_to_per_pay(monthly, pay_frequency), gross)

    floor = gross * (1 - cap / 100)

    def net(d: float) -> float:
        return net_pay_after_deduction(gross, d, taxes, dependents, fee_rate)

    ceiling = _solve_ceiling(gross, floor, net, _breakpoints(gross, taxes, dependents))
    amount = min(ideal, ceiling)
    return SafeDeduction(
        amount=amount,
        ideal_amount=ideal,
        ceiling=ceiling,
        net_pay_floor=floor,
        is_capped=ideal > ceiling,
    )


def _solve_ceiling(gross: float, floor: float, net, points: List[float]) -> float:
    """Largest D in [0, gross] with net(D) >= floor, net piecewise linear between points."""
    if net(0.0) < floor:
        # Taxes alone already exceed the cap; no deduction is safe
        return 0.0

    lo, net_lo = points[0], net(points[0])
    for hi in points[1:]:
        net_hi = net(hi)
        if net_hi < floor:
            d = lo + (hi - lo) * (net_lo - floor) / (net_lo - net_hi)
            if net(d) < floor:
                # float residue at the crossing
                d = max(lo, d - 1e-9 * max(1.0, gross))
            return d
        lo, net_lo = hi, net_hi
    return gross
