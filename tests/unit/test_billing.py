"""Tests for the billing close and proposal batch functions.

Company ACME (Texas, 2025 tier, model 5/3, biweekly) has two enrolled
employees, neither capped at the 50% default:
- single, 0 dependents: 1300/mo Section 125
- married, 1 dependent: 1700/mo Section 125
so fees are 8% of 3000 = 240 and employer FICA savings 7.65% of 3000 = 229.50.
"""

import json

import pytest
import yaml

from benefitcalc.sdk.billing import (
    TaxContextCache,
    build_proposal,
    close_company_billing,
    load_census,
    run_billing_close,
)
from benefitcalc.sdk.schemas import CompanyCensus
from benefitcalc.sdk.taxes.params import TaxParameterStore


def make_census_dict(**company_overrides):
    company = {
        "id": "acme",
        "name": "Acme Widgets",
        "model": "5/3",
        "tier": "2025",
        "state": "TX",
        "pay_frequency": "biweekly",
        "tax_year": 2025,
        "profit_share": {"mode": "percent_er_savings", "percent": 0.5},
        "base_fee_cents": 5000,
        "per_employee_active_cents": 300,
        "maintenance_cents": 1000,
    }
    company.update(company_overrides)
    return {
        "company": company,
        "employees": [
            {"id": "e1", "first_name": "Ana", "last_name": "Ruiz", "filing_status": "single", "gross_pay": 2000},
            {"id": "e2", "first_name": "Bo", "last_name": "Chen", "filing_status": "married", "dependents": 1,
             "gross_pay": 3000},
            {"id": "e3", "first_name": "Cy", "gross_pay": 400},
            {"id": "e4", "first_name": "Di", "gross_pay": 2500, "consent_status": "dont"},
            {"id": "e5", "first_name": "Ed", "gross_pay": 2500, "active": False},
        ],
    }


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    monkeypatch.setenv("BENEFIT_CALC_CONFIG_PATH", str(config_dir))
    return config_dir


@pytest.fixture
def store(isolated_config):
    return TaxParameterStore()


@pytest.fixture
def census():
    return CompanyCensus.model_validate(make_census_dict())


class TestCloseCompanyBilling:
    """Tests for close_company_billing."""

    def test_outcomes_per_employee(self, census, store):
        result = close_company_billing(census.company, census.employees, store)

        statuses = {o.employee_id: (o.status, o.reason) for o in result.employees}
        assert statuses == {
            "e1": ("ok", None),
            "e2": ("ok", None),
            "e3": ("excluded", "Gross pay below $500"),
            "e4": ("excluded", "Not enrolled"),
            "e5": ("excluded", "Inactive"),
        }
        assert result.enrolled_count == 2
        assert result.active_count == 4
        assert result.error_count == 0

    def test_totals(self, census, store):
        result = close_company_billing(census.company, census.employees, store)

        assert result.model == "5/3"
        assert result.section125_monthly_total == pytest.approx(3000)
        assert result.employee_fee_monthly == pytest.approx(150)
        assert result.employer_fee_monthly == pytest.approx(90)
        assert result.employer_fica_savings_monthly == pytest.approx(229.5)
        assert result.profit_share.profit_share_amount == pytest.approx(114.75)
        assert result.allowable_benefit_monthly > 0

    def test_invoice_cents(self, census, store):
        invoice = close_company_billing(census.company, census.employees, store).invoice

        assert invoice.bb_fees_cents == 24000
        assert invoice.per_employee_cents == 1200
        assert invoice.profit_share_cents == 11475
        assert invoice.subtotal_cents == 24000 + 5000 + 1200 + 1000 - 11475
        assert invoice.tax_cents == 0
        assert invoice.total_cents == invoice.subtotal_cents

    def test_sales_tax_rounds_half_up(self, store):
        census = CompanyCensus.model_validate(make_census_dict(tax_rate_percent=8.25))

        invoice = close_company_billing(census.company, census.employees, store).invoice

        # 19725 * 8.25% = 1627.3125
        assert invoice.tax_cents == 1627
        assert invoice.total_cents == 19725 + 1627

    def test_bad_tier_marks_employees_as_errors(self, store):
        census = CompanyCensus.model_validate(make_census_dict(tier="gold"))

        result = close_company_billing(census.company, census.employees, store)

        assert result.status == "ok"
        assert result.error_count == 2
        assert result.enrolled_count == 0
        assert result.invoice.bb_fees_cents == 0

    def test_missing_state_reports_diagnostic(self, store):
        census = CompanyCensus.model_validate(make_census_dict(state="ZZ"))

        result = close_company_billing(census.company, census.employees, store)

        assert result.enrolled_count == 2
        assert [d.code for d in result.diagnostics] == ["missing_parameters"]

    def test_missing_tax_year_is_not_fatal(self, store):
        census = CompanyCensus.model_validate(make_census_dict(tax_year=2001))

        result = close_company_billing(census.company, census.employees, store)

        assert result.status == "ok"
        assert result.employer_fica_savings_monthly == 0
        assert result.profit_share.profit_share_amount == 0
        assert result.diagnostics[0].code == "missing_parameters"

    def test_threshold_from_settings(self, census, store, isolated_config):
        (isolated_config / "settings.json").write_text(json.dumps({"min_gross_pay": 300}))

        result = close_company_billing(census.company, census.employees, store)

        assert result.enrolled_count == 3


class TestRunBillingClose:
    """A failing company is reported, not fatal."""

    def test_unknown_model_fails_only_that_company(self, store):
        good = CompanyCensus.model_validate(make_census_dict())
        bad = CompanyCensus.model_validate(make_census_dict(id="bad", name="Bad Co", model="9/9"))

        results = run_billing_close([good, bad], store)

        assert [r.status for r in results] == ["ok", "failed"]
        assert "Unknown billing model" in results[1].error
        assert results[1].invoice is None


class TestTaxContextCache:
    """One context per profile per batch."""

    def test_reuses_contexts(self, store):
        cache = TaxContextCache(store, 2025)

        first = cache.get("single", "biweekly", "tx")
        second = cache.get("single", "biweekly", "TX")
        cache.get("married", "biweekly", "TX")

        assert first is second
        assert len(cache) == 2
        assert store.years == [2025]


class TestBuildProposal:
    """Tests for build_proposal."""

    def test_summary(self, census, store):
        summary = build_proposal(census, store)

        assert summary.qualified_count == 2
        assert len(summary.rows) == 5
        assert summary.capped_count == 0
        assert summary.total_monthly_allotment == pytest.approx(3000)
        assert summary.employer_net_savings_monthly == pytest.approx(229.5 - 90)
        assert summary.employee_net_increase_annual == pytest.approx(summary.employee_net_increase_monthly * 12)

    def test_model_comparison(self, census, store):
        summary = build_proposal(census, store)

        by_model = {f.model: f.total_fee_monthly for f in summary.model_comparison}
        assert by_model["5/3"] == pytest.approx(240)
        assert by_model["3/4"] == pytest.approx(210)


class TestLoadCensus:
    """Census YAML loading."""

    def test_unquoted_numbers(self, tmp_path):
        path = tmp_path / "census.yaml"
        path.write_text(
            "company:\n"
            "  id: 42\n"
            "  tier: 2025\n"
            "  model: 8\n"
            "  state: TX\n"
            "employees:\n"
            "  - {id: 7, gross_pay: 1500, filing_status: M}\n"
        )

        census = load_census(path)

        assert census.company.id == "42"
        assert census.company.tier == "2025"
        assert census.company.model == "8"
        assert census.employees[0].id == "7"
        assert census.employees[0].filing_status == "married"

    def test_round_trip_through_yaml(self, tmp_path):
        path = tmp_path / "acme.yaml"
        path.write_text(yaml.safe_dump(make_census_dict()))

        assert load_census(path) == CompanyCensus.model_validate(make_census_dict())
