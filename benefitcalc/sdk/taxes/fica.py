"""Social Security and Medicare (FICA) calculations.

Amounts are returned un-rounded. Cents rounding belongs to the invoicing
boundary (see money.py), so repeated calls compose without drift.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import require_amount, require_rate


class FicaAmounts(BaseModel):
    """FICA for one side (employee or employer) of a single pay period."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    taxable: float = Field(..., ge=0, description="Gross net of FICA-reducing deductions")
    ss: float = Field(..., ge=0)
    medicare: float = Field(..., ge=0)
    fica: float = Field(..., ge=0)
    capped: bool = Field(default=False, description="SS wage base reached")


def calc_fica(
    gross_per_pay: float,
    pre_fica_deduction_per_pay: float,
    ss_rate: float,
    med_rate: float,
    *,
    ss_wage_base: Optional[float] = None,
    ytd_ss_wages: float = 0.0,
) -> FicaAmounts:
    """Calculate Social Security + Medicare for a pay period.

    Args:
        gross_per_pay: Gross pay for the period
        pre_fica_deduction_per_pay: Section 125 deductions that reduce FICA wages
        ss_rate: Social Security rate (e.g. 0.062)
        med_rate: Medicare rate (e.g. 0.0145)
        ss_wage_base: Annual SS wage base. None disables the cap.
        ytd_ss_wages: SS wages already taxed this year before this period.
            Callers that do not track YTD pass 0, which only caps a single
            period that exceeds the whole wage base.

    Returns:
        FicaAmounts with ss, medicare and fica (= ss + medicare)

    Raises:
        InvalidInput: Negative or NaN amounts, or a rate outside [0, 1)
    """
    gross = require_amount("gross_per_pay", gross_per_pay)
    deduction = require_amount("pre_fica_deduction_per_pay", pre_fica_deduction_per_pay)
    ss_rate = require_rate("ss_rate", ss_rate)
    med_rate = require_rate("med_rate", med_rate)
    ytd = require_amount("ytd_ss_wages", ytd_ss_wages)

    taxable = max(0.0, gross - deduction)

    ss_taxable = taxable
    capped = False
    if ss_wage_base is not None:
        remaining_cap = max(0.0, require_amount("ss_wage_base", ss_wage_base) - ytd)
        if taxable > remaining_cap:
            ss_taxable = remaining_cap
            capped = True

    ss = ss_taxable * ss_rate
    medicare = taxable * med_rate

    return FicaAmounts(
        taxable=taxable,
        ss=ss,
        medicare=medicare,
        fica=ss + medicare,
        capped=capped,
    )


def calc_additional_medicare(
    medicare_wages: float,
    ytd_medicare_wages: float,
    threshold: float,
    rate: float = 0.009,
) -> float:
    """Calculate employee-only Additional Medicare withholding for a period.

    Applies to wages above the per-employee withholding threshold. A period
    that crosses the threshold is only taxed on the portion above it.
    There is no employer match.
    """
    wages = require_amount("medicare_wages", medicare_wages)
    ytd = require_amount("ytd_medicare_wages", ytd_medicare_wages)
    threshold = require_amount("threshold", threshold)
    rate = require_rate("rate", rate)

    new_ytd = ytd + wages
    if new_ytd <= threshold:
        return 0.0

    if ytd >= threshold:
        # Already over threshold, all of this period is additional
        additional_wages = wages
    else:
        # Crossing threshold this period
        additional_wages = new_ytd - threshold
    return additional_wages * rate
