"""Configuration management for Benefit Calc.

Machine-specific settings live in settings.json:
   - tax_params_dir: directory of {year}.yaml parameter files (optional,
     defaults to the files packaged with benefitcalc)
   - min_gross_pay: per-pay gross below which an employee is not eligible
   - default_safety_cap_percent: used when a company sets none

Config directory resolution:
1. BENEFIT_CALC_CONFIG_PATH environment variable (if set)
2. $XDG_CONFIG_HOME/benefit-calc/ (~/.config/benefit-calc/ fallback)
"""

import json
import os
from pathlib import Path
from typing import Any


APP_NAME = "benefit-calc"
SETTINGS_FILENAME = "settings.json"

DEFAULT_SETTINGS = {
    "min_gross_pay": 500.0,
    "default_safety_cap_percent": 50.0,
}


def get_config_dir() -> Path:
    """Directory holding settings.json.

    BENEFIT_CALC_CONFIG_PATH wins (tests and batch jobs point it at a scratch
    dir); otherwise $XDG_CONFIG_HOME/benefit-calc, defaulting to
    ~/.config/benefit-calc.
    """
    env_path = os.environ.get("BENEFIT_CALC_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg_config_home) / APP_NAME


def get_settings_path() -> Path:
    return get_config_dir() / SETTINGS_FILENAME


def load_settings() -> dict:
    """Settings explicitly stored in settings.json.

    Returns:
        Stored keys only ({} when the file is absent). Built-in values such
        as min_gross_pay=500 are applied by get_setting, not here.
    """
    settings_file = get_settings_path()
    if not settings_file.exists():
        return {}

    with open(settings_file, "r") as f:
        return json.load(f)


def save_settings(settings: dict) -> Path:
    """Replace settings.json with `settings`, creating the config dir if needed.

    Returns:
        Path written (shown by `benefit-calc settings set`)
    """
    settings_file = get_settings_path()
    settings_file.parent.mkdir(parents=True, exist_ok=True)

    with open(settings_file, "w") as f:
        json.dump(settings, f, indent=2)

    return settings_file


def get_setting(key: str, default: Any = None) -> Any:
    """Get a setting value, falling back to built-in defaults, then `default`."""
    settings = load_settings()
    if key in settings:
        return settings[key]
    return DEFAULT_SETTINGS.get(key, default)


def set_setting(key: str, value: Any) -> Path:
    """Set a setting value in settings.json."""
    settings = load_settings()
    settings[key] = value
    return save_settings(settings)


def get_packaged_tax_params_dir() -> Path:
    """Directory of the parameter files shipped with the package."""
    return Path(__file__).parent.parent / "tax_params"


def get_tax_params_dir() -> Path:
    """Get the directory holding {year}.yaml tax parameter files.

    Resolution order:
    1. settings.json "tax_params_dir"
    2. Packaged benefitcalc/tax_params/
    """
    custom = get_setting("tax_params_dir")
    if custom:
        return Path(custom).expanduser()
    return get_packaged_tax_params_dir()
