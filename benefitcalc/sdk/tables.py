"""Read-only lookup tables shared by the calculators.

Tables are exposed as mappingproxy objects. Calculators take them as keyword
arguments defaulting to these, so adding a billing model or tier is a data
change here (or an injected table), not a code change at call sites.
"""

from types import MappingProxyType
from typing import Literal, Mapping, Tuple

from .errors import InvalidInput


FilingStatus = Literal["single", "married", "head"]
PayFrequency = Literal["weekly", "biweekly", "semimonthly", "monthly"]
CompanyTier = Literal["state_school", "2025", "pre_2025", "original_6pct"]

FILING_STATUSES: Tuple[str, ...] = ("single", "married", "head")
COMPANY_TIERS: Tuple[str, ...] = ("state_school", "2025", "pre_2025", "original_6pct")

# Pay periods by frequency
PAY_PERIODS: Mapping[str, int] = MappingProxyType({
    "weekly": 52,
    "biweekly": 26,
    "semimonthly": 24,
    "monthly": 12,
})

_PAY_FREQUENCY_ALIASES = MappingProxyType({
    "w": "weekly",
    "b": "biweekly",
    "bi-weekly": "biweekly",
    "s": "semimonthly",
    "semi-monthly": "semimonthly",
    "m": "monthly",
})

_FILING_STATUS_ALIASES = MappingProxyType({
    "s": "single",
    "m": "married",
    "mfj": "married",
    "hoh": "head",
    "head_of_household": "head",
})

# (employee_rate, employer_rate) by model name.
# Model names read EMPLOYEE/EMPLOYER: "5/3" is employee 5%, employer 3%.
BILLING_MODELS: Mapping[str, Tuple[float, float]] = MappingProxyType({
    "5/3": (0.05, 0.03),
    "3/4": (0.03, 0.04),
    "5/1": (0.05, 0.01),
    "5/0": (0.05, 0.00),   # Schools
    "4/4": (0.04, 0.04),
    "6/0": (0.06, 0.00),   # State schools tier
    "1/5": (0.01, 0.05),   # Original 6% tier
})

# Legacy single-number models (total percent) stored on older companies
MODEL_ALIASES: Mapping[str, str] = MappingProxyType({
    "8": "5/3",
    "7": "3/4",
    "6": "1/5",
})

# Tiers whose fee split ignores the company's model field
TIER_MODEL_OVERRIDES: Mapping[str, str] = MappingProxyType({
    "state_school": "6/0",
    "original_6pct": "1/5",
})

# Monthly Section 125 allowance by tier, keyed by (status, has_dependents).
# Head of household is priced as single.
SECTION125_ALLOTMENTS: Mapping[str, Mapping[Tuple[str, bool], float]] = MappingProxyType({
    "state_school": MappingProxyType({
        ("single", False): 1300.0,
        ("single", True): 1300.0,
        ("married", False): 1300.0,
        ("married", True): 1300.0,
    }),
    "2025": MappingProxyType({
        ("single", False): 1300.0,
        ("single", True): 1700.0,
        ("married", False): 1700.0,
        ("married", True): 1700.0,
    }),
    "pre_2025": MappingProxyType({
        ("single", False): 800.0,
        ("single", True): 1200.0,
        ("married", False): 1200.0,
        ("married", True): 1600.0,
    }),
    "original_6pct": MappingProxyType({
        ("single", False): 700.0,
        ("single", True): 1100.0,
        ("married", False): 1500.0,
        ("married", True): 1500.0,
    }),
})


def normalize_pay_frequency(value: str) -> str:
    """Map a pay frequency or one of its product aliases to its canonical name.

    Raises:
        InvalidInput: If the value is not a known frequency. There is no
            silent biweekly default; periods-per-year is never guessed.
    """
    key = (value or "").strip().lower()
    key = _PAY_FREQUENCY_ALIASES.get(key, key)
    if key not in PAY_PERIODS:
        raise InvalidInput(f"Invalid pay_frequency: {value!r}. Must be one of {tuple(PAY_PERIODS)}")
    return key


def get_pay_periods(frequency: str, pay_periods: Mapping[str, int] = PAY_PERIODS) -> int:
    """Get number of pay periods per year for a frequency."""
    return pay_periods[normalize_pay_frequency(frequency)]


def normalize_filing_status(value: str) -> str:
    """Map a filing status or alias (S, M, HOH, mfj) to single/married/head."""
    key = (value or "").strip().lower()
    key = _FILING_STATUS_ALIASES.get(key, key)
    if key not in FILING_STATUSES:
        raise InvalidInput(f"Invalid filing_status: {value!r}. Must be one of {FILING_STATUSES}")
    return key
