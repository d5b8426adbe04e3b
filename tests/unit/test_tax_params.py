"""Tests for tax parameter loading, the write-once store and tax contexts.

Uses an isolated config dir (BENEFIT_CALC_CONFIG_PATH) so the packaged
tax_params/*.yaml files are read unless a test writes its own.
"""

import json

import pytest
import yaml
from pydantic import ValidationError

from benefitcalc.sdk.errors import InvalidInput, MissingParameters
from benefitcalc.sdk.taxes.params import (
    TaxParameterStore,
    load_tax_parameters,
    resolve_tax_context,
    resolve_tax_context_for_year,
)
from benefitcalc.sdk.taxes.payroll import calc_employee_taxes
from benefitcalc.sdk.taxes.schemas import TaxParameterSet


def make_params_dict(year=2025, **overrides):
    """Minimal valid parameter snapshot as a dict."""
    data = {
        "tax_year": year,
        "federal": {
            "ss_rate": 0.062,
            "med_rate": 0.0145,
            "ss_wage_base": 176100,
            "addl_medicare_threshold": 200000,
        },
        "withholding": {
            "single": [
                {"over": 0, "base_tax": 0, "pct": 0.0},
                {"over": 6400, "base_tax": 0, "pct": 0.10},
                {"over": 18325, "base_tax": 1192.5, "pct": 0.12},
            ],
        },
        "states": {
            "tx": {"method": "none"},
            "XX": {"method": "local"},
        },
    }
    data.update(overrides)
    return data


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    monkeypatch.setenv("BENEFIT_CALC_CONFIG_PATH", str(config_dir))
    return config_dir


@pytest.fixture
def params_dir(tmp_path):
    """A parameter directory holding a minimal 2030 snapshot."""
    path = tmp_path / "tax_params"
    path.mkdir()
    (path / "2030.yaml").write_text(yaml.safe_dump(make_params_dict(2030)))
    return path


class TestLoadTaxParameters:
    """Tests for load_tax_parameters."""

    def test_load_packaged_2025(self, isolated_config):
        params = load_tax_parameters(2025)

        assert params.tax_year == 2025
        assert params.federal.ss_wage_base == 176100
        assert set(params.withholding) == {"single", "married", "head"}
        assert params.states["MO"].method == "brackets"
        assert params.states["TX"].method == "none"

    def test_load_packaged_2026(self, isolated_config):
        params = load_tax_parameters(2026)

        assert params.federal.ss_wage_base == 184500
        assert params.states["MO"].method == "flat"

    def test_missing_year(self, isolated_config):
        with pytest.raises(MissingParameters, match="available: 2026, 2025"):
            load_tax_parameters(1999)

    def test_custom_dir_from_settings(self, isolated_config, params_dir):
        (isolated_config / "settings.json").write_text(json.dumps({"tax_params_dir": str(params_dir)}))

        params = load_tax_parameters(2030)

        assert params.tax_year == 2030
        assert params.states["TX"].method == "none"

    def test_year_mismatch_rejected(self, params_dir):
        (params_dir / "2031.yaml").write_text(yaml.safe_dump(make_params_dict(2030)))

        with pytest.raises(ValueError, match="declares tax_year 2030"):
            load_tax_parameters(2031, params_dir)

    def test_invalid_rate_rejected(self, params_dir):
        data = make_params_dict(2032)
        data["federal"]["ss_rate"] = 1.2
        (params_dir / "2032.yaml").write_text(yaml.safe_dump(data))

        with pytest.raises(ValidationError):
            load_tax_parameters(2032, params_dir)

    def test_snapshot_is_frozen(self, isolated_config):
        params = load_tax_parameters(2025)
        with pytest.raises(ValidationError):
            params.federal.ss_rate = 0.07


class TestTaxParameterStore:
    """Write-once semantics of TaxParameterStore."""

    def test_get_caches_snapshot(self, params_dir):
        store = TaxParameterStore(params_dir)

        assert store.get(2030) is store.get(2030)
        assert store.years == [2030]

    def test_publish_identical_is_noop(self, params_dir):
        store = TaxParameterStore(params_dir)
        first = store.get(2030)

        again = store.publish(TaxParameterSet.model_validate(make_params_dict(2030)))

        assert again is first

    def test_publish_different_snapshot_rejected(self, params_dir):
        store = TaxParameterStore(params_dir)
        store.get(2030)
        changed = make_params_dict(2030)
        changed["federal"]["ss_wage_base"] = 999999

        with pytest.raises(ValueError, match="already published"):
            store.publish(TaxParameterSet.model_validate(changed))
        assert store.get(2030).federal.ss_wage_base == 176100

    def test_publish_without_files(self, tmp_path):
        store = TaxParameterStore(tmp_path)
        store.publish(TaxParameterSet.model_validate(make_params_dict(2040)))

        assert store.get(2040).tax_year == 2040


class TestResolveTaxContext:
    """Tests for resolve_tax_context and its recoverable fallbacks."""

    @pytest.fixture
    def params(self):
        return TaxParameterSet.model_validate(make_params_dict())

    def test_resolves_per_pay_table(self, params):
        taxes = resolve_tax_context(params, "S", "b", "tx")

        assert taxes.filing_status == "single"
        assert taxes.pay_frequency == "biweekly"
        assert taxes.periods == 26
        assert taxes.state == "TX"
        assert taxes.fit_table[1].over == pytest.approx(6400 / 26)
        assert taxes.state_params.method == "none"
        assert not taxes.has_diagnostics

    def test_missing_state_falls_back_to_no_tax(self, params):
        taxes = resolve_tax_context(params, "single", "biweekly", "ZZ")

        assert taxes.state_params.method == "none"
        assert [d.code for d in taxes.diagnostics] == ["missing_parameters"]

    def test_unsupported_state_method(self, params):
        taxes = resolve_tax_context(params, "single", "biweekly", "XX")

        assert taxes.state_params.method == "none"
        assert [d.code for d in taxes.diagnostics] == ["unsupported_jurisdiction"]

    def test_missing_status_table(self, params):
        taxes = resolve_tax_context(params, "married", "weekly", "TX")

        assert taxes.fit_table == ()
        assert taxes.diagnostics[0].code == "missing_parameters"
        # Still computes FICA
        snapshot = calc_employee_taxes(1000, 0, 0, taxes)
        assert snapshot.fit == 0
        assert snapshot.fica == pytest.approx(76.5)

    def test_strict_lookups_raise(self, params):
        with pytest.raises(MissingParameters):
            params.annual_schedule("head")
        with pytest.raises(MissingParameters):
            params.state_params("ZZ")

    def test_invalid_frequency(self, params):
        with pytest.raises(InvalidInput):
            resolve_tax_context(params, "single", "fortnightly", "TX")

    def test_missing_year_is_recoverable(self, tmp_path):
        store = TaxParameterStore(tmp_path)

        taxes = resolve_tax_context_for_year(store, 1999, "single", "monthly", "TX")

        assert taxes.ss_rate == 0
        assert taxes.fit_table == ()
        assert taxes.diagnostics[0].code == "missing_parameters"
        assert calc_employee_taxes(5000, 0, 0, taxes).total == 0
