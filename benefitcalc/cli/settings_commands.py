"""Settings CLI commands for Benefit Calc.

Manages settings.json - parameter directory, eligibility threshold, default cap.
"""

import click
from pathlib import Path

from benefitcalc.sdk import (
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    get_settings_path,
    get_tax_params_dir,
)
from benefitcalc.sdk.config import DEFAULT_SETTINGS

NUMERIC_SETTINGS = ("min_gross_pay", "default_safety_cap_percent")


@click.group()
def settings():
    """Manage settings (settings.json).

    Available settings:
    - tax_params_dir: directory of {year}.yaml tax parameter files
    - min_gross_pay: per-pay gross below which employees are excluded
    - default_safety_cap_percent: cap used when a company sets none
    """
    pass


@settings.command("show")
def settings_show():
    """Show current settings and their effective values."""
    settings_path = get_settings_path()
    current = load_settings()

    click.echo(f"Settings file: {settings_path}")
    click.echo(f"File exists: {settings_path.exists()}")
    click.echo()

    if current:
        click.echo("Current settings:")
        for key, value in current.items():
            click.echo(f"  {key}: {value}")
        click.echo()

    click.echo("Effective values:")
    click.echo(f"  tax_params_dir: {get_tax_params_dir()}")
    for key in DEFAULT_SETTINGS:
        suffix = "" if key in current else " (default)"
        click.echo(f"  {key}: {get_setting(key)}{suffix}")


@settings.command("set")
@click.argument("key", type=click.Choice(["tax_params_dir", *NUMERIC_SETTINGS]))
@click.argument("value")
def settings_set(key, value):
    """Set a setting value.

    Examples:
        benefit-calc settings set min_gross_pay 400
        benefit-calc settings set tax_params_dir ~/benefit-calc/tax_params
    """
    if key in NUMERIC_SETTINGS:
        try:
            stored = float(value)
        except ValueError:
            raise click.BadParameter(f"{key} must be a number, got '{value}'")
        if stored < 0 or (key == "default_safety_cap_percent" and stored > 100):
            raise click.BadParameter(f"{key} out of range: {value}")
    else:
        params_dir = Path(value).expanduser().resolve()
        if not params_dir.is_dir():
            raise click.ClickException(f"Not a directory: {params_dir}")
        stored = str(params_dir)

    path = set_setting(key, stored)
    click.echo(f"Set {key}: {stored}")
    click.echo(f"Saved to: {path}")


@settings.command("unset")
@click.argument("key")
def settings_unset(key):
    """Remove a setting, reverting to its default."""
    current = load_settings()
    if key not in current:
        click.echo(f"{key} was not set.")
        return
    del current[key]
    save_settings(current)
    click.echo(f"Cleared {key}.")
