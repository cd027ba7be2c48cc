"""Funding Amount Estimator tests."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from posc_sentinel.services.funding_estimator import estimate_funding_amount, recommend_funding


class TestEstimateFundingAmount:
    def test_both_multipliers_capped(self):
        assert estimate_funding_amount(10.0, 10_000_000) == 300_000

    def test_uncapped_values(self):
        # 50000 * 2.5 * 1.5
        assert estimate_funding_amount(0.25, 15_000) == 187_500

    def test_growth_cap_only(self):
        assert estimate_funding_amount(0.5, 10_000) == 150_000

    def test_zero_revenue(self):
        assert estimate_funding_amount(0.5, 0) == 0

    def test_negative_growth_is_not_floored(self):
        # 50000 * -5 * 2
        assert estimate_funding_amount(-0.5, 20_000) == -500_000

    def test_rounds_to_whole_units(self):
        amount = estimate_funding_amount(0.123, 3_333)
        assert isinstance(amount, int)
        assert amount == round(50_000 * 1.23 * 0.3333)


class TestRecommendFunding:
    def test_exposes_multipliers(self):
        rec = recommend_funding(0.25, 15_000)
        assert rec.growth_multiplier == 2.5
        assert rec.revenue_multiplier == 1.5
        assert rec.recommended_amount == estimate_funding_amount(0.25, 15_000)

    def test_negative_growth_multiplier_exposed(self):
        rec = recommend_funding(-0.2, 20_000)
        assert rec.growth_multiplier == -2.0
        assert rec.recommended_amount == -200_000
