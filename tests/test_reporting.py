"""Tests for plain-text report formatting."""

from __future__ import annotations

import pandas as pd
import pytest

from rsmsoil import (
    anova_rsm,
    canonical_analysis,
    compare_models,
    fit_first_order,
    fit_second_order,
    format_report,
    get_optimal_factors,
    steepest_path,
)

FACTORS = ["P_coded", "S_coded"]
LEVELS = {"P": (18, 180, 342), "S": (6, 60, 114)}


@pytest.fixture
def model():
    data = pd.DataFrame(
        {
            "Y": [6.66, 6.30, 6.32, 5.92, 6.09, 6.22, 5.29, 6.67, 5.67],
            "P_coded": [-1, -1, 1, 1, 0, -1.68, 1.68, 0, 0],
            "S_coded": [-1, 1, -1, 1, 0, 0, 0, -1.68, 1.68],
        }
    )
    return fit_second_order(data, "Y", FACTORS, encoding_levels=LEVELS)


class TestFormatReport:
    def test_model(self, model):
        text = format_report(model)
        assert "Response Surface Model (quadratic)" in text
        assert "P_coded*S_coded" in text
        assert "R-squared" in text

    def test_canonical(self, model):
        text = format_report(canonical_analysis(model))
        assert "Canonical Analysis of Response Surface" in text
        assert "Surface type: Saddle Point" in text
        assert "Stationary point (natural scale):" in text
        assert "lambda1" in text and "lambda2" in text

    def test_steepest_path(self, model):
        text = format_report(steepest_path(model, n_steps=3))
        assert "Path of Steepest Ascent" in text
        assert "P_coded_natural" in text
        text = format_report(steepest_path(model, direction="descent", n_steps=3))
        assert "Path of Steepest Descent" in text

    def test_optimization(self, model):
        text = format_report(get_optimal_factors(model, n_grid=5))
        assert "Grid Optimization (maximize)" in text
        assert "Points evaluated: 25" in text

    def test_anova(self, model):
        text = format_report(anova_rsm(model))
        assert "ANOVA for Response Surface Model" in text
        assert "Residuals" in text
        assert "Significant terms:" in text

    def test_comparison(self, model):
        data = pd.DataFrame({"Y": model.y, "P_coded": model.X[:, 0], "S_coded": model.X[:, 1]})
        text = format_report(compare_models(fit_first_order(data, "Y", FACTORS), model))
        assert "Nested Model Comparison" in text
        assert "Full model preferred at alpha = 0.05" in text

    def test_unknown_type(self):
        with pytest.raises(TypeError, match="No text format"):
            format_report(42)
