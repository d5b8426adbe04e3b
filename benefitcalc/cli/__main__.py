"""Benefit Calc CLI - Section 125 proposals, previews and billing close."""

import json
import logging
import os

import click
from pydantic import ValidationError

from benefitcalc import __version__
from benefitcalc.sdk import (
    BILLING_MODELS,
    BenefitCalcError,
    MissingParameters,
    TaxParameterStore,
    build_proposal,
    calculate_proposal_metrics,
    compute_all_models,
    get_setting,
    resolve_tax_context,
    run_billing_close,
)
from benefitcalc.sdk.billing import load_census
from benefitcalc.sdk.money import from_cents
from benefitcalc.sdk.tables import COMPANY_TIERS

from .settings_commands import settings as settings_group


def _configure_logging():
    level = os.environ.get("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s.%(msecs)03d %(levelname)s: %(message)s",
        datefmt="%H:%M:%S"
    )


def _dump(model) -> str:
    return json.dumps(model.model_dump(mode="json"), indent=2)


def _load_censuses(paths):
    censuses = []
    for path in paths:
        try:
            censuses.append(load_census(path))
        except ValidationError as e:
            raise click.ClickException(f"{path}: invalid census\n{e}")
    return censuses


@click.group()
@click.version_option(version=__version__, prog_name="benefit-calc")
def cli():
    """Benefit Calc - Section 125 payroll tax and benefit calculations.

    Tax parameters are loaded from (in order):

    \b
    1. settings.json 'tax_params_dir' (set via 'settings set')
    2. tax_params/{year}.yaml packaged with benefitcalc

    Settings are read from BENEFIT_CALC_CONFIG_PATH or ~/.config/benefit-calc/.
    """
    pass


cli.add_command(settings_group)


@cli.command("params")
@click.argument("year", type=int)
def params_show(year):
    """Show the tax parameter snapshot for YEAR."""
    try:
        params = TaxParameterStore().get(year)
    except MissingParameters as e:
        raise click.ClickException(str(e))
    except ValidationError as e:
        raise click.ClickException(f"Invalid tax parameters for {year}\n{e}")

    fed = params.federal
    click.echo(f"Tax year {params.tax_year}")
    click.echo(f"  SS rate:          {fed.ss_rate:.4f} (wage base ${fed.ss_wage_base:,.0f})")
    click.echo(f"  Medicare rate:    {fed.med_rate:.4f} (additional {fed.addl_medicare_rate:.3f} over ${fed.addl_medicare_threshold:,.0f})")
    click.echo(f"  Dependent credit: ${fed.dependent_credit:,.0f}")
    click.echo(f"  Withholding:      {', '.join(params.withholding) or 'none'}")
    click.echo("  States:")
    for state, rules in sorted(params.states.items()):
        if rules.method == "flat":
            detail = f"flat {rules.flat_rate:.4f}"
        elif rules.method == "brackets":
            detail = f"{len(rules.brackets)} brackets"
        else:
            detail = rules.method or "undefined"
        if rules.standard_deduction:
            detail += f", std deduction ${rules.standard_deduction:,.0f}"
        click.echo(f"    {state}: {detail}")


@cli.command("fees")
@click.argument("volume", type=float)
@click.option("--model", "models", multiple=True, help="Billing model (repeatable, default: all)")
def fees(volume, models):
    """Compare monthly fees for a pre-tax VOLUME across billing models."""
    try:
        rows = compute_all_models(volume, models or tuple(BILLING_MODELS))
    except BenefitCalcError as e:
        raise click.ClickException(str(e))

    click.echo(f"{'Model':<7} {'EE / ER':<14} {'EE fee':>10} {'ER fee':>10} {'Total':>10}")
    for row in rows:
        click.echo(
            f"{row.model:<7} {row.fees_label:<14} {row.employee_fee_monthly:>10,.2f} "
            f"{row.employer_fee_monthly:>10,.2f} {row.total_fee_monthly:>10,.2f}"
        )


@cli.command("preview")
@click.option("--gross", type=float, required=True, help="Gross pay per period")
@click.option("--frequency", default="biweekly", show_default=True, help="Pay frequency")
@click.option("--status", "filing_status", default="single", show_default=True, help="single, married or head")
@click.option("--dependents", type=int, default=0, show_default=True)
@click.option("--state", default="", help="Two-letter state")
@click.option("--model", default="5/3", show_default=True, help="Billing model")
@click.option("--tier", type=click.Choice(COMPANY_TIERS), default="2025", show_default=True)
@click.option("--cap", "safety_cap", type=float, help="Safety cap percent (default: settings)")
@click.option("--year", type=int, default=2025, show_default=True, help="Tax year")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text",
              help="Output format (default: text)")
def preview(gross, frequency, filing_status, dependents, state, model, tier, safety_cap, year, output_format):
    """Proposal metrics for a single employee."""
    if safety_cap is None:
        safety_cap = float(get_setting("default_safety_cap_percent"))

    try:
        params = TaxParameterStore().get(year)
        taxes = resolve_tax_context(params, filing_status, frequency, state)
        metrics = calculate_proposal_metrics(
            gross, frequency, filing_status, dependents, state, model, tier, safety_cap, taxes=taxes,
        )
    except BenefitCalcError as e:
        raise click.ClickException(str(e))
    except ValidationError as e:
        raise click.ClickException(f"Invalid tax parameters for {year}\n{e}")

    if output_format == "json":
        click.echo(_dump(metrics))
        return

    d = metrics.detail
    click.echo(f"Section 125 deduction: ${metrics.deduction_per_pay:,.2f}/pay "
               f"(${metrics.gross_benefit_allotment:,.2f}/mo)")
    if metrics.is_capped:
        click.echo(click.style(
            f"  Capped by {safety_cap:g}% safety cap (tier allows ${metrics.ideal_deduction_per_pay:,.2f}/pay)",
            fg="yellow",
        ))
    click.echo(f"Taxes per pay:  before ${d.before.total:,.2f}  after ${d.after.total:,.2f}")
    click.echo(f"Fees ({d.model}, {d.fees_label}): EE ${d.employee_fee_monthly:,.2f}/mo  ER ${d.employer_fee_monthly:,.2f}/mo")
    click.echo(f"Employee net increase: ${metrics.employee_net_increase_monthly:,.2f}/mo "
               f"(${metrics.employee_net_increase_annual:,.2f}/yr)")
    click.echo(f"Employer net savings:  ${metrics.employer_net_savings_monthly:,.2f}/mo "
               f"(${metrics.employer_net_savings_annual:,.2f}/yr)")
    for diag in metrics.diagnostics:
        click.echo(click.style(f"Warning: {diag.message}", fg="yellow"))


@cli.command("proposal")
@click.argument("census_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text",
              help="Output format (default: text)")
def proposal(census_file, output_format):
    """Build a company proposal from CENSUS_FILE (YAML)."""
    census = _load_censuses([census_file])[0]
    try:
        summary = build_proposal(census)
    except BenefitCalcError as e:
        raise click.ClickException(str(e))
    except ValidationError as e:
        raise click.ClickException(f"Invalid tax parameters for {census.company.tax_year}\n{e}")

    if output_format == "json":
        click.echo(_dump(summary))
        return

    click.echo(f"Proposal: {summary.company_name} (model {summary.model}, tier {summary.tier})")
    click.echo()
    for row in summary.rows:
        if row.metrics is None:
            click.echo(f"  {row.name:<24} {row.status}: {row.reason}")
            continue
        m = row.metrics
        flag = " (capped)" if m.is_capped else ""
        click.echo(
            f"  {row.name:<24} ${m.gross_benefit_allotment:>9,.2f}/mo  "
            f"EE +${m.employee_net_increase_monthly:,.2f}  ER +${m.employer_net_savings_monthly:,.2f}{flag}"
        )
    click.echo()
    click.echo(f"Qualified: {summary.qualified_count}  Capped: {summary.capped_count}")
    click.echo(f"Monthly Section 125 volume: ${summary.total_monthly_allotment:,.2f}")
    click.echo(f"Employee net increase: ${summary.employee_net_increase_annual:,.2f}/yr")
    click.echo(f"Employer net savings:  ${summary.employer_net_savings_annual:,.2f}/yr")
    click.echo()
    click.echo("Model comparison (monthly fees):")
    for fees_row in summary.model_comparison:
        click.echo(f"  {fees_row.model:<5} {fees_row.fees_label:<14} ${fees_row.total_fee_monthly:,.2f}")
    for diag in summary.diagnostics:
        click.echo(click.style(f"Warning: {diag.message}", fg="yellow"))


@cli.command("billing")
@click.argument("census_files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text",
              help="Output format (default: text)")
def billing(census_files, output_format):
    """Month-end billing close for one or more company CENSUS_FILES."""
    results = run_billing_close(_load_censuses(census_files))

    if output_format == "json":
        click.echo(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
    else:
        for result in results:
            if result.status == "failed":
                click.echo(click.style(f"{result.company_name}: FAILED - {result.error}", fg="red"))
                continue
            inv = result.invoice
            click.echo(f"{result.company_name} (model {result.model}, {result.tax_year})")
            click.echo(f"  Enrolled: {result.enrolled_count} of {len(result.employees)}, "
                       f"section 125 ${result.section125_monthly_total:,.2f}/mo")
            click.echo(f"  Fees:          ${from_cents(inv.bb_fees_cents):>10,.2f}")
            click.echo(f"  Base fee:      ${from_cents(inv.base_fee_cents):>10,.2f}")
            click.echo(f"  Per employee:  ${from_cents(inv.per_employee_cents):>10,.2f}")
            click.echo(f"  Maintenance:   ${from_cents(inv.maintenance_cents):>10,.2f}")
            if inv.profit_share_cents:
                click.echo(f"  Profit share: -${from_cents(inv.profit_share_cents):>10,.2f}")
            click.echo(f"  Tax:           ${from_cents(inv.tax_cents):>10,.2f}")
            click.echo(f"  Total:         ${from_cents(inv.total_cents):>10,.2f}")
            for outcome in result.employees:
                if outcome.status == "error":
                    click.echo(click.style(f"  {outcome.name}: {outcome.reason}", fg="yellow"))

    failed = sum(1 for r in results if r.status == "failed")
    if failed:
        raise click.ClickException(f"{failed} of {len(results)} companies failed")


def main():
    """Entry point for the CLI."""
    _configure_logging()
    cli()


if __name__ == "__main__":
    main()
