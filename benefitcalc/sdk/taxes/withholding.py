"""Federal and state income tax withholding calculations.

Implements the IRS Pub 15-T Percentage Method: a table is a list of rows
{over, base_tax, pct} sorted ascending by `over`, and the tax on wages W is
base_tax + pct * (W - over) for the last row whose `over` <= W.

The same stepped algorithm is used for state bracket withholding.
"""

from typing import List, Optional, Sequence

from ..errors import InvalidInput, UnsupportedJurisdiction, require_amount, require_count
from .schemas import StateTaxParams, WithholdingBracketRow


def _find_row(taxable: float, table: Sequence[WithholdingBracketRow]) -> Optional[WithholdingBracketRow]:
    """Last row whose `over` <= taxable, or None below the first row."""
    row = None
    for r in table:
        if taxable >= r.over:
            row = r
        else:
            break
    return row


def calc_fit_from_table(taxable_per_pay: float, table: Sequence[WithholdingBracketRow]) -> float:
    """Calculate tax for a period using a percentage-method table.

    Args:
        taxable_per_pay: Taxable wages for the period (gross minus FIT-reducing
            pretax deductions)
        table: Per-period rows sorted ascending by `over`

    Returns:
        Tax for the period. 0 for an empty table (missing data is reported by
        the caller, not fatal) or wages below the first row.
    """
    taxable = require_amount("taxable_per_pay", taxable_per_pay)
    if not table:
        return 0.0

    row = _find_row(taxable, table)
    if row is None:
        return 0.0
    return row.base_tax + row.pct * (taxable - row.over)


def taxable_for_tax(tax: float, table: Sequence[WithholdingBracketRow]) -> Optional[float]:
    """Smallest taxable wage at which the table produces `tax`.

    Inverse of calc_fit_from_table on its increasing part. Returns None if the
    table never reaches the tax (empty table, or all-zero rates).
    """
    if not table:
        return None
    if tax <= 0:
        return 0.0
    for i, row in enumerate(table):
        next_row = table[i + 1] if i + 1 < len(table) else None
        top = next_row.base_tax if next_row is not None else None
        if row.pct > 0 and row.base_tax <= tax and (top is None or tax <= top):
            return row.over + (tax - row.base_tax) / row.pct
    return None


def per_pay_table(annual_rows: Sequence[WithholdingBracketRow], periods: int) -> List[WithholdingBracketRow]:
    """Derive the per-period table from an annual percentage-method schedule.

    Dividing both `over` and `base_tax` by the period count keeps every
    boundary continuous.
    """
    if periods <= 0:
        raise InvalidInput(f"periods must be positive, got: {periods}")
    return [
        WithholdingBracketRow(over=r.over / periods, base_tax=r.base_tax / periods, pct=r.pct)
        for r in annual_rows
    ]


def calc_fit_withholding(
    taxable_per_pay: float,
    table: Sequence[WithholdingBracketRow],
    dependents: int = 0,
    dependent_credit: float = 0.0,
    periods: int = 1,
) -> float:
    """Federal withholding for a period after the W-4 Step 3 dependent credit.

    Args:
        taxable_per_pay: FIT taxable wages for the period
        table: Per-period percentage-method table
        dependents: Number of qualifying dependents
        dependent_credit: Annual credit per dependent
        periods: Pay periods per year (the credit is prorated)

    Returns:
        Withholding for the period, never negative
    """
    dependents = require_count("dependents", dependents)
    tentative = calc_fit_from_table(taxable_per_pay, table)
    credit_per_period = dependents * require_amount("dependent_credit", dependent_credit) / periods
    return max(0.0, tentative - credit_per_period)


def state_taxable_per_pay(fit_taxable_per_pay: float, params: StateTaxParams, periods: int) -> float:
    """Subtract the state's standard deduction (prorated) from FIT taxable wages.

    calc_sit never subtracts a deduction itself; this is the one place the
    engine does it.
    """
    return max(0.0, fit_taxable_per_pay - params.standard_deduction / periods)


def calc_sit(taxable_per_pay: float, params: StateTaxParams, periods_per_year: int = 1) -> float:
    """Calculate state income tax withholding for a period.

    Args:
        taxable_per_pay: State taxable wages for the period. Any standard
            deduction must already be subtracted (see state_taxable_per_pay).
        params: State rules
        periods_per_year: Used to annualize wages for annual bracket tables.
            Leave at 1 when the bracket rows are already per-period.

    Returns:
        State withholding for the period

    Raises:
        InvalidInput: Negative or NaN taxable wages
        UnsupportedJurisdiction: The state row has no defined method. Tax
            contexts already replace such rows with method none.
    """
    taxable = require_amount("taxable_per_pay", taxable_per_pay)

    if params.method == "none":
        return 0.0
    if params.method == "flat":
        return taxable * params.flat_rate
    if params.method == "brackets":
        annual = calc_fit_from_table(taxable * periods_per_year, params.withholding_rows())
        return annual / periods_per_year

    raise UnsupportedJurisdiction(f"Unsupported state withholding method: {params.method!r}")
