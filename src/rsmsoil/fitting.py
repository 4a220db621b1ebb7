"""
Least-squares fitting of response-surface models.

Fits first-order, first-order-with-interaction and second-order
polynomials on coded factors and returns an immutable
:class:`FittedSurfaceModel` holding the structured term list, coefficient
statistics and the data needed for ANOVA and prediction.

The regression itself is ordinary least squares solved with
``jax.numpy.linalg.lstsq`` in double precision.  Importing this module
(and so importing :mod:`rsmsoil`) sets ``jax_enable_x64`` for the whole
process, so other JAX code in the same interpreter also defaults to
64-bit arrays.
"""

from __future__ import annotations

import warnings
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

import jax

jax.config.update("jax_enable_x64", True)

import jax.numpy as jnp  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
from scipy import stats  # noqa: E402

from .coding import CodedData, EncodingLevels, as_levels_map  # noqa: E402
from .exceptions import RSMWarning  # noqa: E402
from .terms import Term, TermKind, build_terms  # noqa: E402


class ModelOrder(Enum):
    """Polynomial order of a response-surface model."""

    LINEAR = "linear"
    LINEAR_WITH_INTERACTION = "linear_with_interaction"
    QUADRATIC = "quadratic"

    @classmethod
    def coerce(cls, order) -> ModelOrder:
        """Accept a ModelOrder, its value, or 1 / 2 for first / second order."""
        if isinstance(order, cls):
            return order
        aliases = {
            1: cls.LINEAR,
            2: cls.QUADRATIC,
            "first_order": cls.LINEAR,
            "first_order_interaction": cls.LINEAR_WITH_INTERACTION,
            "second_order": cls.QUADRATIC,
        }
        if order in aliases:
            return aliases[order]
        try:
            return cls(order)
        except ValueError:
            valid = ", ".join(repr(m.value) for m in cls)
            raise ValueError(f"Unknown model order {order!r}; expected one of {valid}") from None


@dataclass(frozen=True)
class Coefficient:
    """Estimate and t-test of one regression term."""

    term: Term
    estimate: float
    std_error: float = float("nan")
    t_value: float = float("nan")
    p_value: float = float("nan")

    @property
    def label(self) -> str:
        return self.term.label


# =========================================================================
# OLS primitives
# =========================================================================


def ols_fit(Phi: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, float, int]:
    """
    Solve ordinary least squares.

    Parameters
    ----------
    Phi : np.ndarray of shape (n, p)
        Model matrix.
    y : np.ndarray of shape (n,)
        Responses.

    Returns
    -------
    coefficients : np.ndarray of shape (p,)
    rss : float
        Residual sum of squares.
    rank : int
        Numerical rank of *Phi*.
    """
    Phi_j = jnp.asarray(Phi, dtype=jnp.float64)
    y_j = jnp.asarray(y, dtype=jnp.float64)
    coeffs, _, rank, _ = jnp.linalg.lstsq(Phi_j, y_j, rcond=None)
    rss = float(jnp.sum((y_j - Phi_j @ coeffs) ** 2))
    return np.asarray(coeffs), rss, int(rank)


def xtx_pinv(Phi: np.ndarray) -> np.ndarray:
    """(Phi^T Phi)^{-1} computed from the SVD of *Phi*."""
    Phi_j = jnp.asarray(Phi, dtype=jnp.float64)
    _, s, Vt = jnp.linalg.svd(Phi_j, full_matrices=False)
    cutoff = jnp.finfo(Phi_j.dtype).eps * max(Phi_j.shape) * jnp.max(s)
    s_inv_sq = jnp.where(s > cutoff, 1.0 / (s**2), 0.0)
    return np.asarray(Vt.T @ jnp.diag(s_inv_sq) @ Vt)


# =========================================================================
# Fitted model
# =========================================================================


@dataclass(frozen=True, eq=False)
class FittedSurfaceModel:
    """
    Immutable result of fitting a response-surface model.

    Parameters
    ----------
    response : str
        Name of the response variable.
    factors : tuple of str
        Coded factor names; their order defines vector and matrix indices.
    model_order : ModelOrder
        Polynomial order of the model.
    coefficients : tuple of Coefficient
        Terms, estimates and t-tests, in model-matrix column order.
    X : np.ndarray of shape (n, k)
        Coded design used for the fit.
    y : np.ndarray of shape (n,)
        Observed responses.
    rank : int
        Numerical rank of the model matrix.
    encoding_levels : dict, optional
        ``{factor: EncodingLevels}`` for natural-scale reporting.
    """

    response: str
    factors: tuple[str, ...]
    model_order: ModelOrder
    coefficients: tuple[Coefficient, ...]
    X: np.ndarray
    y: np.ndarray
    rank: int
    encoding_levels: dict[str, EncodingLevels] | None = field(default=None)

    # -- term access ------------------------------------------------------

    @property
    def terms(self) -> list[tuple[Term, float]]:
        """Ordered ``(term, estimate)`` pairs."""
        return [(c.term, c.estimate) for c in self.coefficients]

    @property
    def term_list(self) -> list[Term]:
        return [c.term for c in self.coefficients]

    @property
    def estimates(self) -> np.ndarray:
        return np.array([c.estimate for c in self.coefficients])

    def estimate(self, term: Term) -> float:
        """Estimate of *term*; raises KeyError if the model lacks it."""
        for c in self.coefficients:
            if c.term == term:
                return c.estimate
        raise KeyError(term.label)

    @property
    def is_quadratic(self) -> bool:
        return self.model_order is ModelOrder.QUADRATIC

    # -- statistics -------------------------------------------------------

    @property
    def n_obs(self) -> int:
        return len(self.y)

    @property
    def n_params(self) -> int:
        return len(self.coefficients)

    @property
    def df_resid(self) -> int:
        return self.n_obs - self.rank

    @property
    def rss(self) -> float:
        return float(np.sum(self.residuals**2))

    @property
    def tss(self) -> float:
        return float(np.sum((self.y - np.mean(self.y)) ** 2))

    @property
    def r_squared(self) -> float:
        tss = self.tss
        if tss == 0:
            return float("nan")
        return 1.0 - self.rss / tss

    @property
    def adj_r_squared(self) -> float:
        if self.df_resid <= 0:
            return float("nan")
        return 1.0 - (1.0 - self.r_squared) * (self.n_obs - 1) / self.df_resid

    @property
    def sigma_sq(self) -> float:
        """Unbiased residual variance, RSS / (n - p)."""
        if self.df_resid <= 0:
            return float("nan")
        return self.rss / self.df_resid

    @property
    def residual_std_error(self) -> float:
        return float(np.sqrt(self.sigma_sq))

    # -- prediction -------------------------------------------------------

    def _as_design(self, X) -> np.ndarray:
        if isinstance(X, pd.DataFrame):
            missing = [f for f in self.factors if f not in X.columns]
            if missing:
                raise ValueError(f"Columns not found in new data: {missing}")
            X = X[list(self.factors)].to_numpy(dtype=float)
        X = np.atleast_2d(np.asarray(X, dtype=float))
        if X.shape[1] != len(self.factors):
            raise ValueError(f"X has {X.shape[1]} columns but model has {len(self.factors)} factors")
        return X

    def design_matrix(self, X) -> np.ndarray:
        """Model matrix of coded points *X* (array or DataFrame)."""
        X = self._as_design(X)
        return np.column_stack([t.evaluate(X, self.factors) for t in self.term_list])

    def predict(self, X) -> np.ndarray:
        """Predicted response at coded points *X*."""
        return self.design_matrix(X) @ self.estimates

    @property
    def fitted_values(self) -> np.ndarray:
        return self.predict(self.X)

    @property
    def residuals(self) -> np.ndarray:
        return self.y - self.fitted_values

    def coefficient_table(self) -> pd.DataFrame:
        """Coefficients as a DataFrame (term, estimate, std_error, t_value, p_value)."""
        return pd.DataFrame(
            {
                "term": [c.label for c in self.coefficients],
                "estimate": [c.estimate for c in self.coefficients],
                "std_error": [c.std_error for c in self.coefficients],
                "t_value": [c.t_value for c in self.coefficients],
                "p_value": [c.p_value for c in self.coefficients],
            }
        )

    def __repr__(self) -> str:
        return (
            f"FittedSurfaceModel(response={self.response!r}, factors={list(self.factors)}, "
            f"model_order={self.model_order.value!r}, n_obs={self.n_obs})"
        )


def get_residuals(model: FittedSurfaceModel) -> np.ndarray:
    """Residuals of the fit, in observation order."""
    return model.residuals


def get_fitted_values(model: FittedSurfaceModel) -> np.ndarray:
    """Fitted values of the fit, in observation order."""
    return model.fitted_values


# =========================================================================
# Fitting
# =========================================================================


def fit_response_surface(
    data: pd.DataFrame | CodedData,
    response: str,
    factors: list[str],
    order="quadratic",
    encoding_levels: Mapping | None = None,
) -> FittedSurfaceModel:
    """
    Fit a polynomial response-surface model by ordinary least squares.

    Parameters
    ----------
    data : pd.DataFrame or CodedData
        Experimental data with coded factor columns.  When a
        :class:`~rsmsoil.coding.CodedData` is given its encoding levels are
        attached to the model.
    response : str
        Response column.
    factors : list of str
        Coded factor columns, e.g. ``["P_coded", "S_coded"]``.
    order : ModelOrder, str or int
        ``"linear"`` (or 1), ``"linear_with_interaction"`` or
        ``"quadratic"`` (or 2).
    encoding_levels : dict, optional
        ``{factor: (low, center, high)}``; overrides the levels of a
        :class:`CodedData`.

    Returns
    -------
    FittedSurfaceModel

    Examples
    --------
    >>> model = fit_response_surface(df, "Y", ["P_coded", "S_coded"], order=2)
    >>> model.coefficient_table()
    """
    model_order = ModelOrder.coerce(order)
    factors = [str(f) for f in factors]
    if not factors:
        raise ValueError("At least one factor is required")
    if len(set(factors)) != len(factors):
        raise ValueError(f"Duplicate factor names: {factors}")

    if isinstance(data, CodedData):
        if encoding_levels is None:
            encoding_levels = data.levels
        frame = data.frame
    else:
        frame = data

    missing = [c for c in [response, *factors] if c not in frame.columns]
    if missing:
        raise ValueError(f"Columns not found in data: {missing}")

    subset = frame[[response, *factors]].apply(pd.to_numeric, errors="raise")
    n_dropped = int(subset.isna().any(axis=1).sum())
    if n_dropped:
        warnings.warn(f"Dropped {n_dropped} row(s) with missing values.", RSMWarning, stacklevel=2)
        subset = subset.dropna()

    X = subset[factors].to_numpy(dtype=float)
    y = subset[response].to_numpy(dtype=float)

    terms = build_terms(factors, model_order.value)
    Phi = np.column_stack([t.evaluate(X, factors) for t in terms])
    n, p = Phi.shape

    coeffs, rss, rank = ols_fit(Phi, y)
    if rank < p:
        warnings.warn(
            f"Model matrix is rank deficient (rank {rank} < {p} terms); "
            "the design cannot estimate every term.",
            RSMWarning,
            stacklevel=2,
        )

    dof = n - rank
    if dof <= 0:
        warnings.warn(
            f"Degrees of freedom ({dof}) <= 0. Cannot compute coefficient standard errors.",
            RSMWarning,
            stacklevel=2,
        )
        se = np.full(p, np.nan)
    else:
        sigma_sq = rss / dof
        se = np.sqrt(np.clip(np.diag(sigma_sq * xtx_pinv(Phi)), 0.0, None))

    with np.errstate(divide="ignore", invalid="ignore"):
        t_values = coeffs / se
    p_values = 2.0 * stats.t.sf(np.abs(t_values), dof) if dof > 0 else np.full(p, np.nan)

    coefficients = tuple(
        Coefficient(
            term=term,
            estimate=float(coeffs[i]),
            std_error=float(se[i]),
            t_value=float(t_values[i]),
            p_value=float(p_values[i]),
        )
        for i, term in enumerate(terms)
    )

    return FittedSurfaceModel(
        response=response,
        factors=tuple(factors),
        model_order=model_order,
        coefficients=coefficients,
        X=X,
        y=y,
        rank=rank,
        encoding_levels=as_levels_map(encoding_levels),
    )


def fit_first_order(data, response: str, factors: list[str], encoding_levels=None):
    """Fit ``Y = b0 + sum(bi xi)``."""
    return fit_response_surface(data, response, factors, ModelOrder.LINEAR, encoding_levels)


def fit_first_order_interaction(data, response: str, factors: list[str], encoding_levels=None):
    """Fit ``Y = b0 + sum(bi xi) + sum(bij xi xj)``."""
    return fit_response_surface(
        data, response, factors, ModelOrder.LINEAR_WITH_INTERACTION, encoding_levels
    )


def fit_second_order(data, response: str, factors: list[str], encoding_levels=None):
    """Fit the full quadratic ``Y = b0 + sum(bi xi) + sum(bii xi^2) + sum(bij xi xj)``."""
    return fit_response_surface(data, response, factors, ModelOrder.QUADRATIC, encoding_levels)


def model_from_terms(
    response: str,
    factors: list[str],
    model_order,
    terms: list[tuple[Term, float]],
    encoding_levels: Mapping | None = None,
) -> FittedSurfaceModel:
    """
    Build a model directly from ``(term, estimate)`` pairs.

    Useful when coefficients come from another regression tool.  The
    model carries no fit data, so only coefficient-based operations
    (canonical analysis, steepest path, prediction) are meaningful.
    """
    model_order = ModelOrder.coerce(model_order)
    allowed = set(build_terms(factors, model_order.value))
    seen = set()
    for term, _ in terms:
        if term in seen:
            raise ValueError(f"Duplicate term {term.label!r}")
        if term.kind is not TermKind.INTERCEPT and not set(term.factors) <= set(factors):
            raise ValueError(f"Term {term.label!r} involves a factor not in {list(factors)}")
        if term not in allowed:
            raise ValueError(f"Term {term.label!r} is not part of a {model_order.value!r} model")
        seen.add(term)

    return FittedSurfaceModel(
        response=response,
        factors=tuple(factors),
        model_order=model_order,
        coefficients=tuple(Coefficient(term=t, estimate=float(e)) for t, e in terms),
        X=np.empty((0, len(factors))),
        y=np.empty(0),
        rank=len(terms),
        encoding_levels=as_levels_map(encoding_levels),
    )
