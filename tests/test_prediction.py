"""
Tests for prediction and grid optimization.

Covers:
- Point predictions and confidence bands
- Grid search against the analytic stationary point
- Boundary optima of saddle and first-order surfaces
- Bounds handling and argument errors
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from rsmsoil import (
    InvalidObjectiveError,
    RSMWarning,
    Term,
    canonical_analysis,
    fit_first_order,
    fit_second_order,
    get_optimal_factors,
    model_from_terms,
    predict_rsm,
    steepest_path,
)

# =========================================================================
# Helpers
# =========================================================================

FACTORS = ["P_coded", "S_coded"]
LEVELS = {"P": (18, 180, 342), "S": (6, 60, 114)}


def _soy_data():
    return pd.DataFrame(
        {
            "Y": [6.66, 6.30, 6.32, 5.92, 6.09, 6.22, 5.29, 6.67, 5.67],
            "P_coded": [-1, -1, 1, 1, 0, -1.68, 1.68, 0, 0],
            "S_coded": [-1, 1, -1, 1, 0, 0, 0, -1.68, 1.68],
        }
    )


def _peak():
    """y = 10 + x1 - 2*x1^2 - 3*x2^2 + x1*x2, maximum inside [-1.68, 1.68]^2."""
    return model_from_terms(
        "y",
        ["x1", "x2"],
        "quadratic",
        [
            (Term.intercept(), 10.0),
            (Term.linear("x1"), 1.0),
            (Term.linear("x2"), 0.0),
            (Term.squared("x1"), -2.0),
            (Term.squared("x2"), -3.0),
            (Term.interaction("x1", "x2"), 1.0),
        ],
    )


# =========================================================================
# Prediction
# =========================================================================


class TestPredictRSM:
    def test_fit_column(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS)
        new = pd.DataFrame({"P_coded": [0.0, 0.5], "S_coded": [0.0, -0.5]})
        result = predict_rsm(model, new)
        assert list(result.columns) == ["P_coded", "S_coded", "fit"]
        np.testing.assert_allclose(result["fit"], model.predict(new))

    def test_array_input(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS)
        result = predict_rsm(model, np.array([[0.0, 0.0]]))
        assert result["fit"].iloc[0] == pytest.approx(model.estimate(Term.intercept()))

    def test_confidence_band(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS)
        result = predict_rsm(model, np.array([[0.0, 0.0], [1.0, -1.0]]), se_fit=True)
        assert (result["se_fit"] > 0).all()
        assert (result["lower"] < result["fit"]).all()
        assert (result["fit"] < result["upper"]).all()
        np.testing.assert_allclose(
            result["fit"] - result["lower"], result["upper"] - result["fit"]
        )

    def test_leverages_sum_to_parameters(self):
        data = _soy_data()
        model = fit_second_order(data, "Y", FACTORS)
        result = predict_rsm(model, data, se_fit=True)
        leverage = result["se_fit"] ** 2 / model.sigma_sq
        assert leverage.sum() == pytest.approx(6.0)

    def test_wider_band_at_lower_alpha(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS)
        point = np.array([[0.5, 0.5]])
        narrow = predict_rsm(model, point, se_fit=True, alpha=0.10)
        wide = predict_rsm(model, point, se_fit=True, alpha=0.01)
        assert (wide["upper"] - wide["lower"]).iloc[0] > (narrow["upper"] - narrow["lower"]).iloc[0]

    def test_no_data_se_warns(self):
        with pytest.warns(RSMWarning):
            result = predict_rsm(_peak(), np.zeros((1, 2)), se_fit=True)
        assert np.isnan(result["se_fit"].iloc[0])
        assert result["fit"].iloc[0] == 10.0

    def test_missing_column_raises(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS)
        with pytest.raises(ValueError, match="not found"):
            predict_rsm(model, pd.DataFrame({"P_coded": [0.0]}))


# =========================================================================
# Grid optimization
# =========================================================================


class TestGetOptimalFactors:
    def test_interior_maximum(self):
        model = _peak()
        report = canonical_analysis(model)
        result = get_optimal_factors(model, n_grid=51)
        spacing = 3.36 / 50
        found = np.array([result.optimal_point["x1"], result.optimal_point["x2"]])
        assert np.all(np.abs(found - report.stationary_point) <= spacing)
        assert result.optimal_response <= report.predicted_response + 1e-12
        assert result.n_evaluated == 51**2

    def test_minimize_goes_to_corner(self):
        result = get_optimal_factors(_peak(), objective="minimize", n_grid=21)
        assert all(abs(v) == pytest.approx(1.68) for v in result.optimal_point.values())

    def test_soy_saddle_optimum_on_boundary(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS)
        result = get_optimal_factors(model, objective="maximize")
        assert abs(result.optimal_point["S_coded"]) == pytest.approx(1.68)

    def test_soy_optimum_agrees_with_ascent(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS)
        result = get_optimal_factors(model)
        direction = steepest_path(model).unit_direction
        optimum = np.array([result.optimal_point[f] for f in FACTORS])
        assert np.all(np.sign(optimum) == np.sign(direction))

    def test_first_order_optimum_at_corner(self):
        model = fit_first_order(_soy_data(), "Y", FACTORS)
        result = get_optimal_factors(model, n_grid=11)
        assert result.optimal_point == {"P_coded": -1.68, "S_coded": -1.68}

    def test_per_factor_bounds(self):
        result = get_optimal_factors(_peak(), n_grid=11, bounds=[(-1.0, -0.5), (0.5, 1.0)])
        assert -1.0 <= result.optimal_point["x1"] <= -0.5
        assert 0.5 <= result.optimal_point["x2"] <= 1.0
        assert result.bounds == [(-1.0, -0.5), (0.5, 1.0)]

    def test_objective_case_insensitive(self):
        assert get_optimal_factors(_peak(), objective="MAXIMIZE", n_grid=5).objective == "maximize"

    def test_natural_point(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS, encoding_levels=LEVELS)
        result = get_optimal_factors(model, n_grid=15)
        coded = result.optimal_point
        assert result.optimal_point_natural["P_coded"] == pytest.approx(180 + 162 * coded["P_coded"])
        frame = result.to_frame()
        assert list(frame.columns) == ["factor", "coded_value", "natural_value", "predicted_response"]

    def test_invalid_objective(self):
        with pytest.raises(InvalidObjectiveError, match="maximize"):
            get_optimal_factors(_peak(), objective="optimize")

    def test_invalid_objective_is_value_error(self):
        with pytest.raises(ValueError):
            get_optimal_factors(_peak(), objective="best")

    def test_bad_grid(self):
        with pytest.raises(ValueError, match="n_grid"):
            get_optimal_factors(_peak(), n_grid=1)

    def test_bad_bounds(self):
        with pytest.raises(ValueError, match="low < high"):
            get_optimal_factors(_peak(), bounds=(1.0, -1.0))
        with pytest.raises(ValueError, match="pairs"):
            get_optimal_factors(_peak(), bounds=[(-1, 1), (-1, 1), (-1, 1)])
