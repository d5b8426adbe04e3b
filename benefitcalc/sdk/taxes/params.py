"""Tax parameter snapshots: loading, write-once store, per-batch tax context.

Snapshots come from tax_params/{year}.yaml (or an injected TaxParameterSet).
Fetch a snapshot once per batch and resolve one PayrollTaxContext per
(filing status, pay frequency, state) before entering the per-employee loop.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field

from ..config import get_tax_params_dir
from ..errors import BenefitCalcError, Diagnostic, MissingParameters
from ..tables import PAY_PERIODS, normalize_filing_status, normalize_pay_frequency
from .schemas import StateTaxParams, TaxParameterSet, WithholdingBracketRow
from .withholding import per_pay_table

logger = logging.getLogger(__name__)

NO_STATE_TAX = StateTaxParams(method="none")


def _get_available_years(params_dir: Path) -> List[int]:
    """Get sorted list of available parameter years (descending)."""
    years = [int(p.stem) for p in params_dir.glob("*.yaml") if p.stem.isdigit()]
    return sorted(years, reverse=True)


def load_tax_parameters(year: int, params_dir: Optional[Path] = None) -> TaxParameterSet:
    """Load and validate the parameter snapshot for a tax year.

    Args:
        year: Tax year (e.g. 2025)
        params_dir: Directory of {year}.yaml files (default: get_tax_params_dir())

    Returns:
        Validated, frozen TaxParameterSet

    Raises:
        MissingParameters: If no file exists for the year
        pydantic.ValidationError: If the file violates the schema
    """
    params_dir = Path(params_dir) if params_dir is not None else get_tax_params_dir()
    config_file = params_dir / f"{year}.yaml"
    if not config_file.exists():
        available = ", ".join(str(y) for y in _get_available_years(params_dir)) or "none"
        raise MissingParameters(f"Tax parameters not found for year {year}: {config_file} (available: {available})")

    logger.debug(f"Loading tax parameters from {config_file}")
    with open(config_file, "r") as f:
        data = yaml.safe_load(f) or {}

    data.setdefault("tax_year", int(year))
    params = TaxParameterSet.model_validate(data)
    if params.tax_year != int(year):
        raise ValueError(f"{config_file} declares tax_year {params.tax_year}, expected {year}")
    return params


class TaxParameterStore:
    """Write-once cache of published snapshots, keyed by tax year.

    Once a year is published, a different snapshot for that year is rejected
    so historical results stay reproducible.
    """

    def __init__(self, params_dir: Optional[Path] = None):
        self.params_dir = params_dir
        self._snapshots: Dict[int, TaxParameterSet] = {}

    def publish(self, params: TaxParameterSet) -> TaxParameterSet:
        """Register a snapshot. Re-publishing an identical snapshot is a no-op.

        Raises:
            ValueError: If a different snapshot is already published for the year
        """
        existing = self._snapshots.get(params.tax_year)
        if existing is not None:
            if existing != params:
                raise ValueError(f"Tax year {params.tax_year} is already published and cannot be changed")
            return existing
        self._snapshots[params.tax_year] = params
        return params

    def get(self, year: int) -> TaxParameterSet:
        """Get a snapshot, loading and publishing it from disk on first use."""
        year = int(year)
        if year not in self._snapshots:
            self.publish(load_tax_parameters(year, self.params_dir))
        return self._snapshots[year]

    @property
    def years(self) -> List[int]:
        return sorted(self._snapshots)


class PayrollTaxContext(BaseModel):
    """Everything the calculators need for one (year, status, frequency, state).

    Built once per batch by resolve_tax_context. Missing pieces are replaced
    with zero-tax fallbacks and listed in `diagnostics`.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    tax_year: int
    filing_status: str
    pay_frequency: str
    periods: int = Field(..., gt=0)
    state: str
    ss_rate: float
    med_rate: float
    ss_wage_base: Optional[float] = None
    dependent_credit: float
    fit_table: Tuple[WithholdingBracketRow, ...] = ()
    state_params: StateTaxParams = NO_STATE_TAX
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def has_diagnostics(self) -> bool:
        return len(self.diagnostics) > 0

    def state_table_per_pay(self) -> List[WithholdingBracketRow]:
        """Per-period state bracket rows (empty unless method is brackets)."""
        if self.state_params.method != "brackets":
            return []
        return per_pay_table(self.state_params.withholding_rows(), self.periods)


def resolve_tax_context(
    params: TaxParameterSet,
    filing_status: str,
    pay_frequency: str,
    state: str,
) -> PayrollTaxContext:
    """Resolve the per-pay tax inputs for one employee profile.

    Missing withholding tables and missing/unsupported states do not raise:
    they resolve to zero tax with a Diagnostic, matching the product's
    convention that no-data states are billed as no-withholding.

    Raises:
        InvalidInput: Unknown filing status or pay frequency
    """
    status = normalize_filing_status(filing_status)
    frequency = normalize_pay_frequency(pay_frequency)
    periods = PAY_PERIODS[frequency]
    state_key = (state or "").strip().upper()
    diagnostics: List[Diagnostic] = []

    try:
        fit_table = tuple(per_pay_table(params.annual_schedule(status), periods))
    except MissingParameters as e:
        fit_table = ()
        diagnostics.append(Diagnostic.from_error(e))

    try:
        state_params = params.state_params(state_key)
    except BenefitCalcError as e:
        state_params = NO_STATE_TAX
        diagnostics.append(Diagnostic.from_error(e))

    federal = params.federal
    return PayrollTaxContext(
        tax_year=params.tax_year,
        filing_status=status,
        pay_frequency=frequency,
        periods=periods,
        state=state_key,
        ss_rate=federal.ss_rate,
        med_rate=federal.med_rate,
        ss_wage_base=federal.ss_wage_base,
        dependent_credit=federal.dependent_credit,
        fit_table=fit_table,
        state_params=state_params,
        diagnostics=tuple(diagnostics),
    )


def resolve_tax_context_for_year(
    store: TaxParameterStore,
    tax_year: int,
    filing_status: str,
    pay_frequency: str,
    state: str,
) -> PayrollTaxContext:
    """Like resolve_tax_context, but a year with no snapshot is also recoverable.

    A missing year resolves to zero rates and empty tables with a
    missing_parameters diagnostic instead of aborting the batch.
    """
    try:
        params = store.get(tax_year)
    except MissingParameters as e:
        frequency = normalize_pay_frequency(pay_frequency)
        return PayrollTaxContext(
            tax_year=int(tax_year),
            filing_status=normalize_filing_status(filing_status),
            pay_frequency=frequency,
            periods=PAY_PERIODS[frequency],
            state=(state or "").strip().upper(),
            ss_rate=0.0,
            med_rate=0.0,
            dependent_credit=0.0,
            diagnostics=(Diagnostic.from_error(e),),
        )
    return resolve_tax_context(params, filing_status, pay_frequency, state)
