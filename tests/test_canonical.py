"""
Tests for quadratic-form extraction and canonical analysis.

Covers:
- Building b and B from structured terms
- Stationary point, Hessian eigenvalues and classification
- Singular and non-quadratic models
- Natural-scale stationary point
"""

from __future__ import annotations

import dataclasses

import numpy as np
import pandas as pd
import pytest

from rsmsoil import (
    MissingTermError,
    ModelOrder,
    NotQuadraticError,
    RSMWarning,
    SingularHessianError,
    SurfaceType,
    Term,
    canonical_analysis,
    classify_surface,
    extract_coefficients,
    fit_first_order,
    fit_first_order_interaction,
    fit_second_order,
    get_stationary_point,
    model_from_terms,
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


def _quadratic(b0, b1, b2, b11, b22, b12, levels=None):
    """Second-order model in factors x1, x2 with the given coefficients."""
    return model_from_terms(
        "y",
        ["x1", "x2"],
        "quadratic",
        [
            (Term.intercept(), b0),
            (Term.linear("x1"), b1),
            (Term.linear("x2"), b2),
            (Term.squared("x1"), b11),
            (Term.squared("x2"), b22),
            (Term.interaction("x1", "x2"), b12),
        ],
        encoding_levels=levels,
    )


# =========================================================================
# Coefficient extraction
# =========================================================================


class TestExtractCoefficients:
    def test_halved_second_order_terms(self):
        form = extract_coefficients(_quadratic(10, 1, 0, -2, -3, 1))
        assert form.intercept == 10
        np.testing.assert_allclose(form.b, [1.0, 0.0])
        np.testing.assert_allclose(form.B, [[-1.0, 0.5], [0.5, -1.5]])

    def test_symmetric(self):
        form = extract_coefficients(fit_second_order(_soy_data(), "Y", FACTORS))
        np.testing.assert_allclose(form.B, form.B.T)

    def test_quadratic_form_reproduces_model(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS)
        form = extract_coefficients(model)
        rng = np.random.RandomState(0)
        X = rng.uniform(-2, 2, size=(25, 2))
        np.testing.assert_allclose(form.evaluate(X), model.predict(X), rtol=1e-10)
        assert form.evaluate(X[0]) == pytest.approx(model.predict(X[:1])[0])

    def test_linear_model_has_zero_B(self):
        form = extract_coefficients(fit_first_order(_soy_data(), "Y", FACTORS))
        np.testing.assert_array_equal(form.B, np.zeros((2, 2)))

    def test_interaction_model_fills_off_diagonal(self):
        model = fit_first_order_interaction(_soy_data(), "Y", FACTORS)
        form = extract_coefficients(model)
        b12 = model.estimate(Term.interaction("P_coded", "S_coded"))
        assert form.B[0, 1] == pytest.approx(b12 / 2)
        assert form.B[0, 0] == 0.0

    def test_require_quadratic(self):
        with pytest.raises(NotQuadraticError):
            extract_coefficients(fit_first_order(_soy_data(), "Y", FACTORS), require_quadratic=True)

    def test_missing_squared_term_raises(self):
        model = model_from_terms(
            "y",
            ["x1", "x2"],
            "quadratic",
            [
                (Term.intercept(), 1.0),
                (Term.linear("x1"), 1.0),
                (Term.linear("x2"), 1.0),
                (Term.squared("x1"), -1.0),
            ],
        )
        with pytest.raises(MissingTermError, match="x2\\^2") as excinfo:
            extract_coefficients(model)
        assert excinfo.value.term == Term.squared("x2")

    def test_missing_intercept_raises(self):
        model = model_from_terms("y", ["x1"], "linear", [(Term.linear("x1"), 1.0)])
        with pytest.raises(MissingTermError, match="intercept"):
            extract_coefficients(model)

    def test_missing_interaction_taken_as_zero(self):
        model = model_from_terms(
            "y",
            ["x1", "x2"],
            "quadratic",
            [
                (Term.intercept(), 1.0),
                (Term.linear("x1"), 1.0),
                (Term.linear("x2"), 1.0),
                (Term.squared("x1"), -1.0),
                (Term.squared("x2"), -1.0),
            ],
        )
        with pytest.warns(RSMWarning, match="x1\\*x2"):
            form = extract_coefficients(model)
        assert form.B[0, 1] == 0.0
        assert form.B[1, 0] == 0.0

    def test_terms_beyond_model_order_raise(self):
        quadratic = fit_second_order(_soy_data(), "Y", FACTORS)
        relabelled = dataclasses.replace(quadratic, model_order=ModelOrder.LINEAR)
        with pytest.raises(ValueError, match="not allowed in a 'linear' model"):
            extract_coefficients(relabelled)

    def test_gradient(self):
        form = extract_coefficients(_quadratic(10, 1, 0, -2, -3, 1))
        x = np.array([0.5, -0.25])
        np.testing.assert_allclose(form.gradient(x), form.b + 2 * form.B @ x)


# =========================================================================
# Classification
# =========================================================================


class TestClassifySurface:
    @pytest.mark.parametrize(
        "eigenvalues, expected",
        [
            ([-1.0, -2.0], SurfaceType.MAXIMUM),
            ([3.0, 0.5], SurfaceType.MINIMUM),
            ([1.0, -1.0], SurfaceType.SADDLE_POINT),
            ([0.0, -1.0], SurfaceType.SADDLE_POINT),
            ([0.0, 2.0], SurfaceType.SADDLE_POINT),
        ],
    )
    def test_classification(self, eigenvalues, expected):
        assert classify_surface(eigenvalues) is expected

    def test_labels(self):
        assert SurfaceType.SADDLE_POINT.value == "Saddle Point"
        assert SurfaceType.MAXIMUM.value == "Maximum"


# =========================================================================
# Canonical analysis
# =========================================================================


class TestCanonicalAnalysis:
    def test_maximum(self):
        report = canonical_analysis(_quadratic(10, 1, 0, -2, -3, 1))
        B = np.array([[-1.0, 0.5], [0.5, -1.5]])
        expected = np.linalg.solve(B, -0.5 * np.array([1.0, 0.0]))

        np.testing.assert_allclose(report.stationary_point, expected, atol=1e-12)
        assert report.surface_type is SurfaceType.MAXIMUM
        np.testing.assert_allclose(report.hessian, 2 * B)
        np.testing.assert_allclose(
            report.eigenvalues, [(-5 + np.sqrt(5)) / 2, (-5 - np.sqrt(5)) / 2], atol=1e-12
        )

    def test_gradient_vanishes_at_stationary_point(self):
        model = _quadratic(10, 1, -0.4, -2, -3, 1)
        report = canonical_analysis(model)
        form = extract_coefficients(model)
        np.testing.assert_allclose(form.gradient(report.stationary_point), 0.0, atol=1e-12)

    def test_predicted_response(self):
        model = _quadratic(10, 1, -0.4, -2, -3, 1)
        report = canonical_analysis(model)
        assert report.predicted_response == pytest.approx(
            model.predict(report.stationary_point[None, :])[0]
        )

    def test_minimum(self):
        report = canonical_analysis(_quadratic(0, -1, 0.5, 2, 3, 1))
        assert report.surface_type is SurfaceType.MINIMUM
        assert np.all(report.eigenvalues > 0)

    def test_saddle(self):
        report = canonical_analysis(_quadratic(0, 0.2, 0.1, 1, -1, 0))
        assert report.surface_type is SurfaceType.SADDLE_POINT
        np.testing.assert_allclose(report.eigenvalues, [1.0, -1.0])

    def test_eigen_decomposition(self):
        report = canonical_analysis(_quadratic(10, 1, 0, -2, -3, 1))
        assert np.all(np.diff(report.eigenvalues) <= 0)
        for lam, v in zip(report.eigenvalues, report.eigenvectors.T):
            np.testing.assert_allclose(report.hessian @ v, lam * v, atol=1e-12)
            assert np.linalg.norm(v) == pytest.approx(1.0)
        np.testing.assert_allclose(report.canonical_coefficients, report.eigenvalues / 2)

    def test_soy_saddle_point(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS)
        report = canonical_analysis(model)
        assert report.surface_type is SurfaceType.SADDLE_POINT
        assert report.eigenvalues[0] > 0 > report.eigenvalues[1]
        assert report.factors == tuple(FACTORS)

    def test_first_order_rejected(self):
        with pytest.raises(NotQuadraticError, match="second-order model"):
            canonical_analysis(fit_first_order(_soy_data(), "Y", FACTORS))

    def test_interaction_model_rejected(self):
        with pytest.raises(NotQuadraticError):
            canonical_analysis(fit_first_order_interaction(_soy_data(), "Y", FACTORS))

    def test_singular_B(self):
        with pytest.raises(SingularHessianError, match="singular") as excinfo:
            canonical_analysis(_quadratic(1, 1, 1, 2, 2, 2))
        np.testing.assert_allclose(excinfo.value.matrix, [[1.0, 1.0], [1.0, 1.0]])

    def test_zero_second_order_terms_singular(self):
        with pytest.raises(SingularHessianError):
            canonical_analysis(_quadratic(1, 1, 1, 0, 0, 0))

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            canonical_analysis(_quadratic(1, 1, 1, 2, 2, 2))


class TestNaturalScale:
    def test_levels_on_model(self):
        levels = {"x1": (0, 10, 20), "x2": (1, 2, 3)}
        report = canonical_analysis(_quadratic(10, 1, 0, -2, -3, 1, levels=levels))
        xs = report.stationary_point
        np.testing.assert_allclose(report.stationary_point_natural, [10 + 10 * xs[0], 2 + xs[1]])

    def test_coded_suffix_lookup(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS, encoding_levels=LEVELS)
        report = canonical_analysis(model)
        xs = report.stationary_point
        np.testing.assert_allclose(
            report.stationary_point_natural, [180 + 162 * xs[0], 60 + 54 * xs[1]]
        )

    def test_explicit_levels_override(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS)
        assert canonical_analysis(model).stationary_point_natural is None
        report = canonical_analysis(model, encoding_levels=LEVELS)
        assert report.stationary_point_natural is not None
        assert set(report.stationary_point_natural_by_factor) == set(FACTORS)


class TestGetStationaryPoint:
    def test_columns_with_levels(self):
        model = fit_second_order(_soy_data(), "Y", FACTORS, encoding_levels=LEVELS)
        table = get_stationary_point(canonical_analysis(model))
        assert list(table.columns) == [
            "factor", "coded_value", "natural_value", "predicted_response", "surface_type",
        ]
        assert table["factor"].tolist() == FACTORS
        assert (table["surface_type"] == "Saddle Point").all()

    def test_columns_without_levels(self):
        report = canonical_analysis(_quadratic(10, 1, 0, -2, -3, 1))
        table = get_stationary_point(report)
        assert "natural_value" not in table.columns
        np.testing.assert_allclose(table["coded_value"], report.stationary_point)
