"""Benefit Calc SDK - Payroll tax and pre-tax benefit calculations."""

from .config import (
    get_config_dir,
    get_settings_path,
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    get_tax_params_dir,
)

from .errors import (
    BenefitCalcError,
    InvalidInput,
    InvalidModel,
    MissingParameters,
    UnsupportedJurisdiction,
    Diagnostic,
)

from .tables import (
    PAY_PERIODS,
    BILLING_MODELS,
    MODEL_ALIASES,
    SECTION125_ALLOTMENTS,
    get_pay_periods,
    normalize_pay_frequency,
    normalize_filing_status,
)

from .schemas import (
    PretaxDeduction,
    CalculationInput,
    CalculationResult,
    ProposalMetrics,
    ProfitShareConfig,
    EmployeeRecord,
    CompanyBillingConfig,
    CompanyCensus,
    TaxSnapshot,
)

from .taxes import (
    calc_fica,
    calc_fit_from_table,
    calc_sit,
    TaxParameterSet,
    TaxParameterStore,
    PayrollTaxContext,
    load_tax_parameters,
    resolve_tax_context,
)

from .section125 import (
    SafeDeduction,
    calculate_section125_allotment,
    calculate_safe_deduction,
    per_pay_to_monthly,
    monthly_to_per_pay,
)

from .fees import (
    BillingFees,
    ProfitShare,
    compute_fees_for_pretax_monthly,
    compute_all_models,
    compute_profit_share,
    get_model_rates,
    resolve_billing_model,
)

from .proposal import (
    Eligibility,
    check_eligibility,
    calculate,
    calculate_proposal_metrics,
)

from .billing import (
    CompanyBillingResult,
    ProposalSummary,
    close_company_billing,
    run_billing_close,
    build_proposal,
)

__all__ = [
    # Config
    "get_config_dir",
    "get_settings_path",
    "load_settings",
    "save_settings",
    "get_setting",
    "set_setting",
    "get_tax_params_dir",
    # Errors
    "BenefitCalcError",
    "InvalidInput",
    "InvalidModel",
    "MissingParameters",
    "UnsupportedJurisdiction",
    "Diagnostic",
    # Tables
    "PAY_PERIODS",
    "BILLING_MODELS",
    "MODEL_ALIASES",
    "SECTION125_ALLOTMENTS",
    "get_pay_periods",
    "normalize_pay_frequency",
    "normalize_filing_status",
    # Schemas
    "PretaxDeduction",
    "CalculationInput",
    "CalculationResult",
    "ProposalMetrics",
    "ProfitShareConfig",
    "EmployeeRecord",
    "CompanyBillingConfig",
    "CompanyCensus",
    "TaxSnapshot",
    # Taxes
    "calc_fica",
    "calc_fit_from_table",
    "calc_sit",
    "TaxParameterSet",
    "TaxParameterStore",
    "PayrollTaxContext",
    "load_tax_parameters",
    "resolve_tax_context",
    # Section 125
    "SafeDeduction",
    "calculate_section125_allotment",
    "calculate_safe_deduction",
    "per_pay_to_monthly",
    "monthly_to_per_pay",
    # Fees
    "BillingFees",
    "ProfitShare",
    "compute_fees_for_pretax_monthly",
    "compute_all_models",
    "compute_profit_share",
    "get_model_rates",
    "resolve_billing_model",
    # Proposal
    "Eligibility",
    "check_eligibility",
    "calculate",
    "calculate_proposal_metrics",
    # Billing
    "CompanyBillingResult",
    "ProposalSummary",
    "close_company_billing",
    "run_billing_close",
    "build_proposal",
]
