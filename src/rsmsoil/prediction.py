"""
Prediction and grid optimization on a fitted response surface.
"""

from __future__ import annotations

import itertools
import warnings
from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy import stats

from .coding import as_levels_map, decode, levels_for_all
from .exceptions import InvalidObjectiveError, RSMWarning
from .fitting import FittedSurfaceModel, xtx_pinv

# Axial distance of a rotatable two-factor CCD
DEFAULT_BOUNDS = (-1.68, 1.68)
MAX_GRID_POINTS = 2_000_000


def predict_rsm(
    model: FittedSurfaceModel,
    new_data,
    se_fit: bool = False,
    alpha: float = 0.05,
) -> pd.DataFrame:
    """
    Predict the mean response at new coded points.

    Parameters
    ----------
    model : FittedSurfaceModel
        Fitted model.
    new_data : pd.DataFrame or array-like of shape (n, k)
        Coded factor values; a DataFrame must contain the model factors.
    se_fit : bool
        Also return the standard error and confidence band of the mean.
    alpha : float
        Significance level of the confidence band (0.05 gives 95%).

    Returns
    -------
    pd.DataFrame
        Factor columns and ``fit``; with *se_fit*, also ``se_fit``,
        ``lower`` and ``upper``.
    """
    X = model._as_design(new_data)
    frame = pd.DataFrame(X, columns=list(model.factors))
    frame["fit"] = model.predict(X)

    if se_fit:
        if model.n_obs == 0 or model.df_resid <= 0:
            warnings.warn(
                "Not enough degrees of freedom for prediction standard errors.",
                RSMWarning,
                stacklevel=2,
            )
            frame["se_fit"] = np.nan
            frame["lower"] = np.nan
            frame["upper"] = np.nan
            return frame

        Phi_train = model.design_matrix(model.X)
        Phi_new = model.design_matrix(X)
        # Leverage h(x) = x' (Phi' Phi)^{-1} x for each new point
        h_new = np.sum((Phi_new @ xtx_pinv(Phi_train)) * Phi_new, axis=1)
        se = np.sqrt(model.sigma_sq * h_new)
        t_crit = stats.t.ppf(1 - alpha / 2, model.df_resid)
        frame["se_fit"] = se
        frame["lower"] = frame["fit"] - t_crit * se
        frame["upper"] = frame["fit"] + t_crit * se

    return frame


@dataclass(frozen=True, eq=False)
class OptimizationResult:
    """Best grid point of :func:`get_optimal_factors`."""

    objective: str
    factors: tuple[str, ...]
    optimal_point: dict[str, float]
    optimal_point_natural: dict[str, float] | None
    optimal_response: float
    n_evaluated: int
    bounds: list[tuple[float, float]]

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(
            {"factor": list(self.factors), "coded_value": list(self.optimal_point.values())}
        )
        if self.optimal_point_natural is not None:
            frame["natural_value"] = list(self.optimal_point_natural.values())
        frame["predicted_response"] = self.optimal_response
        return frame


def _normalise_bounds(bounds, k: int) -> list[tuple[float, float]]:
    arr = np.asarray(bounds, dtype=float)
    if arr.shape == (2,):
        arr = np.tile(arr, (k, 1))
    if arr.shape != (k, 2):
        raise ValueError(f"bounds must be one (low, high) pair or {k} pairs, got shape {arr.shape}")
    if np.any(arr[:, 0] >= arr[:, 1]):
        raise ValueError("Each bound must satisfy low < high")
    return [(float(lo), float(hi)) for lo, hi in arr]


def get_optimal_factors(
    model: FittedSurfaceModel,
    objective: str = "maximize",
    n_grid: int = 50,
    bounds=DEFAULT_BOUNDS,
    encoding_levels: Mapping | None = None,
) -> OptimizationResult:
    """
    Find the best factor settings by a brute-force grid search.

    Parameters
    ----------
    model : FittedSurfaceModel
        Fitted model.
    objective : str
        ``"maximize"`` or ``"minimize"``.
    n_grid : int
        Grid points per factor (inclusive of both bounds).
    bounds : (float, float) or list of (float, float)
        Search region on the coded scale, shared or per factor.
    encoding_levels : dict, optional
        ``{factor: (low, center, high)}``; defaults to the model's levels.

    Returns
    -------
    OptimizationResult

    Raises
    ------
    InvalidObjectiveError
        If *objective* is not maximize or minimize.
    """
    objective_key = objective.lower() if isinstance(objective, str) else objective
    if objective_key not in ("maximize", "minimize"):
        raise InvalidObjectiveError(objective)
    if n_grid < 2:
        raise ValueError(f"n_grid must be at least 2, got {n_grid}")

    k = len(model.factors)
    bnds = _normalise_bounds(bounds, k)
    if n_grid**k > MAX_GRID_POINTS:
        raise ValueError(
            f"Grid of {n_grid}^{k} points is too large; reduce n_grid or the number of factors"
        )

    axes = [np.linspace(lo, hi, n_grid) for lo, hi in bnds]
    grid = np.array(list(itertools.product(*axes)))
    y = model.predict(grid)
    best = int(np.argmax(y) if objective_key == "maximize" else np.argmin(y))
    x_best = grid[best]

    levels = as_levels_map(encoding_levels) if encoding_levels is not None else model.encoding_levels
    lvl_list = levels_for_all(model.factors, levels)
    natural = None
    if lvl_list is not None:
        x_nat = decode(x_best, lvl_list)
        natural = dict(zip(model.factors, map(float, x_nat), strict=True))

    return OptimizationResult(
        objective=objective_key,
        factors=tuple(model.factors),
        optimal_point=dict(zip(model.factors, map(float, x_best), strict=True)),
        optimal_point_natural=natural,
        optimal_response=float(y[best]),
        n_evaluated=len(grid),
        bounds=bnds,
    )
