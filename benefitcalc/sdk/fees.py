"""Billing fees and profit-share credits.

Fees are a rate pair applied to the monthly pre-tax (Section 125) volume.
Model names read EMPLOYEE/EMPLOYER ("5/3" = employee 5%, employer 3%) but
are resolved through BILLING_MODELS, never parsed: an unknown name is an
InvalidModel error because a silent default would change a customer's bill.

All amounts are returned un-rounded.
"""

from typing import Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .errors import InvalidInput, InvalidModel, require_amount
from .tables import BILLING_MODELS, MODEL_ALIASES, TIER_MODEL_OVERRIDES


class BillingFees(BaseModel):
    """Monthly fees for one pre-tax volume under one model."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    model: str
    employee_fee_monthly: float
    employer_fee_monthly: float
    employee_rate: float
    employer_rate: float
    fees_label: str

    @property
    def total_fee_monthly(self) -> float:
        return self.employee_fee_monthly + self.employer_fee_monthly


class ProfitShare(BaseModel):
    """Profit-share credit. Always a non-negative magnitude; the invoice
    presents it as a negative line."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    profit_share_amount: float
    description: str


def canonical_model(
    model: Optional[str],
    models: Mapping[str, Tuple[float, float]] = BILLING_MODELS,
    aliases: Mapping[str, str] = MODEL_ALIASES,
) -> str:
    """Resolve a model name (or legacy alias) to its table key.

    Raises:
        InvalidModel: If the name is blank or not in the table
    """
    name = (model or "").strip()
    name = aliases.get(name, name)
    if name not in models:
        raise InvalidModel(model, known=models.keys())
    return name


def resolve_billing_model(tier: Optional[str], model: Optional[str]) -> str:
    """Model that actually applies to a company.

    State schools always bill 6/0 and original 6% clients 1/5; other tiers
    use the company's model field.
    """
    override = TIER_MODEL_OVERRIDES.get((tier or "").strip())
    if override is not None:
        return override
    return canonical_model(model)


def get_model_rates(
    model: Optional[str],
    models: Mapping[str, Tuple[float, float]] = BILLING_MODELS,
) -> Tuple[float, float]:
    """Return (employee_rate, employer_rate) as decimals."""
    return models[canonical_model(model, models)]


def format_rates(model: Optional[str], models: Mapping[str, Tuple[float, float]] = BILLING_MODELS) -> str:
    """Label in EMPLOYEE / EMPLOYER order, e.g. "5/3" -> "5.0% / 3.0%"."""
    employee_rate, employer_rate = get_model_rates(model, models)
    return f"{employee_rate * 100:.1f}% / {employer_rate * 100:.1f}%"


def compute_fees_for_pretax_monthly(
    pretax_monthly: float,
    model: Optional[str],
    models: Mapping[str, Tuple[float, float]] = BILLING_MODELS,
) -> BillingFees:
    """Compute monthly fees from the total monthly pre-tax amount.

    Args:
        pretax_monthly: Monthly pre-tax benefit volume
        model: Billing model name
        models: Model table (injectable)

    Returns:
        BillingFees, linear in pretax_monthly and un-rounded

    Raises:
        InvalidModel: Unknown model, no partial result
        InvalidInput: Negative or NaN volume
    """
    volume = require_amount("pretax_monthly", pretax_monthly)
    name = canonical_model(model, models)
    employee_rate, employer_rate = models[name]
    return BillingFees(
        model=name,
        employee_fee_monthly=volume * employee_rate,
        employer_fee_monthly=volume * employer_rate,
        employee_rate=employee_rate,
        employer_rate=employer_rate,
        fees_label=format_rates(name, models),
    )


def compute_all_models(
    pretax_monthly: float,
    models: Iterable[str],
    table: Mapping[str, Tuple[float, float]] = BILLING_MODELS,
) -> List[BillingFees]:
    """Fees under several models side by side (proposal comparison table)."""
    return [compute_fees_for_pretax_monthly(pretax_monthly, m, table) for m in models]


def compute_profit_share(
    mode: str,
    percent: float,
    employer_fica_savings_monthly: float,
    bb_profit_monthly: float,
) -> ProfitShare:
    """Convert employer FICA savings or provider profit into a billing credit.

    Args:
        mode: none, percent_er_savings or percent_bb_profit
        percent: Fraction of the base to credit (0.5 = 50%)
        employer_fica_savings_monthly: Base for percent_er_savings
        bb_profit_monthly: Base for percent_bb_profit (provider fee revenue)

    Returns:
        ProfitShare with a non-negative amount. A non-positive base yields 0.

    Raises:
        InvalidInput: Unknown mode, or percent outside [0, 1]
    """
    percent = require_amount("percent", percent)
    if percent > 1:
        raise InvalidInput(f"percent must be a fraction in [0, 1], got: {percent}")

    if mode == "none":
        return ProfitShare(profit_share_amount=0.0, description="No profit share")
    if mode == "percent_er_savings":
        base = employer_fica_savings_monthly
        label = "employer FICA savings"
    elif mode == "percent_bb_profit":
        base = bb_profit_monthly
        label = "Benefits Builder profit"
    else:
        raise InvalidInput(f"Invalid profit_share_mode: {mode!r}")

    amount = percent * base if percent > 0 and base > 0 else 0.0
    return ProfitShare(
        profit_share_amount=amount,
        description=f"Profit share credit ({percent * 100:g}% of {label})",
    )
