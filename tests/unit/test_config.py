"""Tests for settings.json handling and tax parameter directory resolution."""

import json

import pytest

from benefitcalc.sdk.config import (
    get_config_dir,
    get_packaged_tax_params_dir,
    get_setting,
    get_tax_params_dir,
    load_settings,
    set_setting,
)


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    config_dir = tmp_path / "config"
    monkeypatch.setenv("BENEFIT_CALC_CONFIG_PATH", str(config_dir))
    return config_dir


class TestConfigDir:
    """Config directory resolution."""

    def test_env_override(self, isolated_config):
        assert get_config_dir() == isolated_config

    def test_xdg_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv("BENEFIT_CALC_CONFIG_PATH", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert get_config_dir() == tmp_path / "benefit-calc"


class TestSettings:
    """Reading and writing settings.json."""

    def test_missing_file_uses_defaults(self, isolated_config):
        assert load_settings() == {}
        assert get_setting("min_gross_pay") == 500.0
        assert get_setting("default_safety_cap_percent") == 50.0
        assert get_setting("unknown", "fallback") == "fallback"

    def test_set_setting_creates_file(self, isolated_config):
        path = set_setting("min_gross_pay", 350.0)

        assert path == isolated_config / "settings.json"
        assert json.loads(path.read_text()) == {"min_gross_pay": 350.0}
        assert get_setting("min_gross_pay") == 350.0

    def test_set_keeps_other_keys(self, isolated_config):
        set_setting("min_gross_pay", 350.0)
        set_setting("default_safety_cap_percent", 40.0)

        assert load_settings() == {"min_gross_pay": 350.0, "default_safety_cap_percent": 40.0}


class TestTaxParamsDir:
    """Packaged vs configured parameter directory."""

    def test_packaged_default(self, isolated_config):
        assert get_tax_params_dir() == get_packaged_tax_params_dir()
        assert (get_packaged_tax_params_dir() / "2025.yaml").exists()

    def test_custom_dir(self, isolated_config, tmp_path):
        set_setting("tax_params_dir", str(tmp_path / "params"))

        assert get_tax_params_dir() == tmp_path / "params"
