"""taxes - Payroll tax calculation and withholding logic.

Scope:
- FICA (Social Security with wage base, Medicare, additional Medicare)
- Federal income tax withholding (IRS Pub 15-T percentage method)
- State income tax withholding (none / flat / brackets)
- Tax parameter snapshots per tax year and the per-batch tax context

Constraints:
- Pure calculation - no company or census data (that's in billing)
- No logging except when loading parameter files
- Year-specific parameters loaded from tax_params/{year}.yaml

Modules:
- fica: calc_fica, calc_additional_medicare
- withholding: percentage-method tables, FIT and SIT
- schemas: TaxParameterSet and friends
- params: loading, TaxParameterStore, PayrollTaxContext
- payroll: employee taxes for a period under a context

Usage:
    from benefitcalc.sdk.taxes import TaxParameterStore, resolve_tax_context, calc_employee_taxes

    params = TaxParameterStore().get(2025)
    taxes = resolve_tax_context(params, "single", "biweekly", "MO")
    snapshot = calc_employee_taxes(2000, 200, 200, taxes, dependents=1)
"""

from .fica import FicaAmounts, calc_fica, calc_additional_medicare

from .withholding import (
    calc_fit_from_table,
    calc_fit_withholding,
    calc_sit,
    per_pay_table,
    state_taxable_per_pay,
    taxable_for_tax,
)

from .schemas import (
    FederalTaxParams,
    StateBracketRow,
    StateTaxParams,
    TaxParameterSet,
    WithholdingBracketRow,
)

from .params import (
    NO_STATE_TAX,
    PayrollTaxContext,
    TaxParameterStore,
    load_tax_parameters,
    resolve_tax_context,
    resolve_tax_context_for_year,
)

from .payroll import calc_employee_taxes

__all__ = [
    # FICA
    "FicaAmounts",
    "calc_fica",
    "calc_additional_medicare",
    # Withholding
    "calc_fit_from_table",
    "calc_fit_withholding",
    "calc_sit",
    "per_pay_table",
    "state_taxable_per_pay",
    "taxable_for_tax",
    # Parameters
    "FederalTaxParams",
    "StateBracketRow",
    "StateTaxParams",
    "TaxParameterSet",
    "WithholdingBracketRow",
    "NO_STATE_TAX",
    "PayrollTaxContext",
    "TaxParameterStore",
    "load_tax_parameters",
    "resolve_tax_context",
    "resolve_tax_context_for_year",
    "calc_employee_taxes",
]
