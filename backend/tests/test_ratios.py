# tests/test_ratios.py
"""
Tests for ratio analysis and period comparison.
"""

from datetime import date
from decimal import Decimal

import pytest

from accounting.results import ErrorCode
from reports.ratios import (
    RATIOS_BY_NAME,
    FinancialData,
    compare_values,
    comparative_analysis,
    compute_ratios,
    financial_ratios,
)


def _by_name(rows):
    return {row["name"]: row for row in rows}


def _by_code(rows):
    return {row["gl_code"]: row for row in rows}


class TestComputeRatios:

    def test_current_ratio_excellent(self):
        data = FinancialData(current_assets=Decimal("200"), current_liabilities=Decimal("100"))

        row = _by_name(compute_ratios(data))["current_ratio"]

        assert row["value"] == Decimal("2.00")
        assert row["band"] == "excellent"

    def test_band_uses_unrounded_ratio(self):
        data = FinancialData(current_assets=Decimal("19995"), current_liabilities=Decimal("10000"))

        row = _by_name(compute_ratios(data))["current_ratio"]

        assert row["value"] == Decimal("2.00")
        assert row["band"] == "good"

    def test_lower_is_better_band_uses_unrounded_ratio(self):
        data = FinancialData(total_liabilities=Decimal("3001"), total_equity=Decimal("10000"))

        row = _by_name(compute_ratios(data))["debt_to_equity"]

        assert row["value"] == Decimal("0.30")
        assert row["band"] == "good"

    def test_zero_denominator_is_undefined(self):
        row = _by_name(compute_ratios(FinancialData()))["current_ratio"]

        assert row["value"] is None
        assert row["band"] == "undefined"

    def test_every_ratio_is_reported(self):
        rows = compute_ratios(FinancialData())

        assert [row["name"] for row in rows] == list(RATIOS_BY_NAME)

    def test_values_round_half_up_to_cents(self):
        data = FinancialData(cash=Decimal("1"), current_liabilities=Decimal("3"))

        assert RATIOS_BY_NAME["cash_ratio"].value(data) == Decimal("0.33")

    def test_percentage_ratios_are_scaled(self):
        data = FinancialData(revenue=Decimal("1000"), total_expenses=Decimal("875"))

        assert RATIOS_BY_NAME["net_margin"].value(data) == Decimal("12.50")

    @pytest.mark.parametrize(
        "value,band",
        [
            (Decimal("0.20"), "excellent"),
            (Decimal("0.30"), "excellent"),
            (Decimal("0.50"), "good"),
            (Decimal("0.90"), "fair"),
            (Decimal("1.50"), "poor"),
        ],
    )
    def test_lower_is_better_bands(self, value, band):
        assert RATIOS_BY_NAME["debt_to_equity"].classify(value) == band

    def test_payables_turnover_has_no_excellent_band(self):
        ratio = RATIOS_BY_NAME["payables_turnover"]
        data = FinancialData(cost_of_goods_sold=Decimal("100"), payables=Decimal("10"))

        value = ratio.value(data)

        assert value == Decimal("10.00")
        assert ratio.classify(value) == "good"
        assert ratio.classify(Decimal("50")) == "good"


class TestCompareValues:

    def test_growth(self):
        result = compare_values(Decimal("120"), Decimal("100"))

        assert result["variance"] == Decimal("20")
        assert result["percentage_change"] == Decimal("20.00")

    def test_previous_zero(self):
        result = compare_values(Decimal("50"), Decimal("0"))

        assert result["variance"] == Decimal("50")
        assert result["percentage_change"] is None

    def test_smaller_loss_is_improvement(self):
        result = compare_values(Decimal("-50"), Decimal("-100"))

        assert result["percentage_change"] == Decimal("50.00")


@pytest.mark.django_db
class TestFinancialRatios:

    def test_ratios_from_ledger(self, actor, make_posted):
        make_posted(date(2024, 1, 5), ("1300", "500.00", "0"), ("2001", "0", "500.00"))
        make_posted(date(2024, 1, 10), ("1001", "1000.00", "0"), ("4001", "0", "1000.00"))

        result = financial_ratios(actor, date(2024, 1, 1), date(2024, 1, 31))

        assert result.success
        ratios = _by_name(result.data["ratios"])
        assert ratios["current_ratio"]["value"] == Decimal("3.00")
        assert ratios["current_ratio"]["band"] == "excellent"
        assert ratios["quick_ratio"]["value"] == Decimal("2.00")
        assert ratios["cash_ratio"]["value"] == Decimal("2.00")
        assert ratios["debt_to_equity"]["value"] == Decimal("0.50")
        assert ratios["debt_to_equity"]["band"] == "good"
        assert ratios["interest_coverage"]["band"] == "undefined"

        financial = result.data["financial_data"]
        assert financial["revenue"] == Decimal("1000.00")
        assert financial["total_equity"] == Decimal("1000.00")

    def test_invalid_range(self, actor, chart):
        result = financial_ratios(actor, "2024-02-01", "2024-01-01")

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR


@pytest.mark.django_db
class TestComparativeAnalysis:

    def test_month_over_month(self, actor, make_posted):
        make_posted(date(2024, 1, 10), ("1001", "1000.00", "0"), ("4001", "0", "1000.00"))
        make_posted(date(2024, 2, 10), ("1001", "1500.00", "0"), ("4001", "0", "1500.00"))

        result = comparative_analysis(
            actor,
            (date(2024, 2, 1), date(2024, 2, 29)),
            (date(2024, 1, 1), date(2024, 1, 31)),
        )

        assert result.success
        rows = _by_code(result.data["accounts"])
        revenue = rows["4001"]
        assert revenue["current"] == Decimal("1500.00")
        assert revenue["previous"] == Decimal("1000.00")
        assert revenue["variance"] == Decimal("500.00")
        assert revenue["percentage_change"] == Decimal("50.00")

        cash = rows["1001"]
        assert cash["current"] == Decimal("2500.00")
        assert cash["previous"] == Decimal("1000.00")
        assert cash["percentage_change"] == Decimal("150.00")

        summary = result.data["summary"]
        assert summary["net_income"]["current"] == Decimal("1500.00")
        assert summary["net_income"]["previous"] == Decimal("1000.00")

    def test_invalid_previous_period(self, actor, chart):
        result = comparative_analysis(
            actor,
            (date(2024, 2, 1), date(2024, 2, 29)),
            ("bad", date(2024, 1, 31)),
        )

        assert result.code == ErrorCode.VALIDATION_ERROR

