"""Employee-side withholding for one pay period under a resolved tax context."""

from typing import Optional

from ..schemas import TaxSnapshot
from .fica import calc_fica
from .params import PayrollTaxContext
from .withholding import calc_fit_withholding, calc_sit, state_taxable_per_pay


def calc_employee_taxes(
    gross_per_pay: float,
    pre_fit_per_pay: float,
    pre_fica_per_pay: float,
    taxes: Optional[PayrollTaxContext],
    dependents: int = 0,
) -> TaxSnapshot:
    """Calculate FICA, FIT and SIT for a period.

    Args:
        gross_per_pay: Gross pay for the period
        pre_fit_per_pay: Pretax deductions that reduce FIT (and state) wages
        pre_fica_per_pay: Pretax deductions that reduce FICA wages
        taxes: Resolved tax context. None means no taxes (all zero).
        dependents: W-4 Step 3 dependents

    Returns:
        TaxSnapshot for the period

    Note:
        YTD wages are not threaded through, so the SS wage base only caps a
        single period larger than the whole base.
    """
    if taxes is None:
        return TaxSnapshot()

    fica = calc_fica(
        gross_per_pay,
        pre_fica_per_pay,
        taxes.ss_rate,
        taxes.med_rate,
        ss_wage_base=taxes.ss_wage_base,
    )

    fit_taxable = max(0.0, gross_per_pay - pre_fit_per_pay)
    fit = calc_fit_withholding(
        fit_taxable,
        taxes.fit_table,
        dependents=dependents,
        dependent_credit=taxes.dependent_credit,
        periods=taxes.periods,
    )

    sit_taxable = state_taxable_per_pay(fit_taxable, taxes.state_params, taxes.periods)
    sit = calc_sit(sit_taxable, taxes.state_params, periods_per_year=taxes.periods)

    return TaxSnapshot(fit=fit, sit=sit, ss=fica.ss, medicare=fica.medicare, fica=fica.fica)
