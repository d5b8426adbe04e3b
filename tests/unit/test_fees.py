"""Tests for billing fees and profit-share credits."""

import pytest

from benefitcalc.sdk.errors import InvalidInput, InvalidModel
from benefitcalc.sdk.fees import (
    canonical_model,
    compute_all_models,
    compute_fees_for_pretax_monthly,
    compute_profit_share,
    format_rates,
    get_model_rates,
    resolve_billing_model,
)
from benefitcalc.sdk.tables import BILLING_MODELS


class TestComputeFees:
    """Tests for compute_fees_for_pretax_monthly."""

    def test_rates_come_from_table(self):
        """5/3 on 2500/mo: fees follow the table's (employee, employer) pair."""
        employee_rate, employer_rate = BILLING_MODELS["5/3"]

        fees = compute_fees_for_pretax_monthly(2500, "5/3")

        assert fees.employee_fee_monthly == pytest.approx(2500 * employee_rate)
        assert fees.employer_fee_monthly == pytest.approx(2500 * employer_rate)
        assert sorted([fees.employee_fee_monthly, fees.employer_fee_monthly]) == pytest.approx([75.0, 125.0])
        assert fees.total_fee_monthly == pytest.approx(200.0)

    @pytest.mark.parametrize("model", list(BILLING_MODELS))
    def test_additive_in_volume(self, model):
        a, b = 1234.56, 789.01
        fa = compute_fees_for_pretax_monthly(a, model)
        fb = compute_fees_for_pretax_monthly(b, model)
        fab = compute_fees_for_pretax_monthly(a + b, model)

        assert fa.employee_fee_monthly + fb.employee_fee_monthly == pytest.approx(fab.employee_fee_monthly)
        assert fa.employer_fee_monthly + fb.employer_fee_monthly == pytest.approx(fab.employer_fee_monthly)

    def test_results_are_unrounded(self):
        fees = compute_fees_for_pretax_monthly(333.333, "5/3")
        assert fees.employee_fee_monthly == pytest.approx(16.66665)

    @pytest.mark.parametrize("model", ["9/9", "", None, "5-3", "53"])
    def test_unknown_model_rejected(self, model):
        with pytest.raises(InvalidModel):
            compute_fees_for_pretax_monthly(2500, model)

    def test_unknown_model_message_lists_models(self):
        with pytest.raises(InvalidModel, match="Must be one of: 5/3"):
            compute_fees_for_pretax_monthly(2500, "9/9")

    def test_negative_volume(self):
        with pytest.raises(InvalidInput):
            compute_fees_for_pretax_monthly(-1, "5/3")

    def test_injected_table(self):
        models = {"2/2": (0.02, 0.02)}
        fees = compute_fees_for_pretax_monthly(100, "2/2", models)

        assert fees.employee_fee_monthly == pytest.approx(2.0)
        with pytest.raises(InvalidModel):
            compute_fees_for_pretax_monthly(100, "5/3", models)


class TestModelResolution:
    """Aliases, labels and tier overrides."""

    def test_legacy_alias(self):
        assert canonical_model("8") == "5/3"
        assert compute_fees_for_pretax_monthly(100, "7").model == "3/4"

    def test_format_rates_employee_first(self):
        assert format_rates("5/3") == "5.0% / 3.0%"
        assert format_rates("1/5") == "1.0% / 5.0%"

    def test_get_model_rates(self):
        assert get_model_rates(" 4/4 ") == (0.04, 0.04)

    def test_tier_overrides(self):
        assert resolve_billing_model("state_school", "5/3") == "6/0"
        assert resolve_billing_model("original_6pct", "9/9") == "1/5"
        assert resolve_billing_model("2025", "3/4") == "3/4"

    def test_unknown_model_without_override(self):
        with pytest.raises(InvalidModel):
            resolve_billing_model("2025", "9/9")


class TestComputeAllModels:
    """Side-by-side comparison."""

    def test_maps_each_model(self):
        rows = compute_all_models(1000, ["5/3", "3/4", "4/4"])

        assert [r.model for r in rows] == ["5/3", "3/4", "4/4"]
        assert [r.total_fee_monthly for r in rows] == pytest.approx([80.0, 70.0, 80.0])

    def test_no_state_between_calls(self):
        assert compute_all_models(500, ["5/1"]) == compute_all_models(500, ["5/1"])

    def test_unknown_model_fails_whole_comparison(self):
        with pytest.raises(InvalidModel):
            compute_all_models(500, ["5/3", "9/9"])


class TestProfitShare:
    """Tests for compute_profit_share."""

    def test_percent_of_employer_savings(self):
        result = compute_profit_share("percent_er_savings", 0.5, 191.25, 0)
        assert result.profit_share_amount == pytest.approx(95.625)

    def test_percent_of_provider_profit(self):
        result = compute_profit_share("percent_bb_profit", 0.25, 999, 400)

        assert result.profit_share_amount == pytest.approx(100.0)
        assert "25%" in result.description

    def test_none(self):
        assert compute_profit_share("none", 0.5, 191.25, 400).profit_share_amount == 0

    def test_zero_percent(self):
        assert compute_profit_share("percent_er_savings", 0, 191.25, 0).profit_share_amount == 0

    def test_non_positive_base_is_zero(self):
        """Never a surcharge."""
        assert compute_profit_share("percent_er_savings", 0.5, -40, 0).profit_share_amount == 0
        assert compute_profit_share("percent_bb_profit", 0.5, 0, 0).profit_share_amount == 0

    def test_percent_out_of_range(self):
        with pytest.raises(InvalidInput):
            compute_profit_share("percent_er_savings", 1.5, 100, 0)
        with pytest.raises(InvalidInput):
            compute_profit_share("percent_er_savings", -0.1, 100, 0)

    def test_unknown_mode(self):
        with pytest.raises(InvalidInput, match="profit_share_mode"):
            compute_profit_share("percent_revenue", 0.5, 100, 100)
