"""Tests for the annuity and NPV primitives."""

import math

import pytest

from macc.finance import annuity_factor, npv, discount_factors


class TestAnnuityFactor:
    @pytest.mark.parametrize('n', [1, 5, 10, 30])
    def test_zero_rate_is_straight_line(self, n):
        assert annuity_factor(0, n) == pytest.approx(1 / n)

    @pytest.mark.parametrize('r', [0.0, 0.07, -0.02, 1.5])
    def test_zero_periods(self, r):
        assert annuity_factor(r, 0) == 0

    def test_negative_periods(self):
        assert annuity_factor(0.07, -3) == 0

    def test_standard_amortization_constant(self):
        """7% over 10 years: 0.142378 per unit of principal."""
        assert abs(annuity_factor(0.07, 10) - 0.142378) < 1e-5

    def test_single_period_repays_principal_plus_interest(self):
        assert annuity_factor(0.10, 1) == pytest.approx(1.10)

    def test_garbage_inputs(self):
        assert annuity_factor(float('nan'), 10) == 0
        assert annuity_factor(0.05, float('inf')) == 0
        assert annuity_factor('abc', 10) == 0


class TestNPV:
    def test_single_flow_at_base_year(self):
        assert npv(0.1, [12345.67], [2025], 2025) == 12345.67

    def test_non_contiguous_years(self):
        result = npv(0.1, [100, 100], [2025, 2030], 2025)
        assert result == pytest.approx(100 + 100 / 1.1 ** 5)

    def test_zero_rate_sums_flows(self):
        assert npv(0.0, [-1000, 300, 300, 500], [2025, 2030, 2035, 2040], 2025) == pytest.approx(100)

    def test_years_before_base_are_not_discounted(self):
        assert npv(0.1, [50, 50], [2020, 2025], 2025) == pytest.approx(100)

    def test_missing_flows_count_as_zero(self):
        assert npv(0.1, [None, 110], [2025, 2026], 2025) == pytest.approx(100)
        assert npv(0.1, ['abc', 110], [2025, 2026], 2025) == pytest.approx(100)

    def test_missing_rate_counts_as_zero(self):
        assert npv(None, [100, 100], [2025, 2030], 2025) == pytest.approx(200)
        assert discount_factors(None, [2025, 2030], 2025) == [1, 1]

    def test_discount_factors(self):
        dfs = discount_factors(0.1, [2025, 2026, 2030], 2025)
        assert dfs[0] == 1
        assert dfs[1] == pytest.approx(1 / 1.1)
        assert math.isclose(dfs[2], 1 / 1.1 ** 5)
