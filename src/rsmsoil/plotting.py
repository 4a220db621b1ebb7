"""
Visualization of fitted response surfaces.

All plots work on the coded scale and return matplotlib Axes so they can
be composed into larger figures.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np
from scipy import stats

from .canonical import canonical_analysis
from .exceptions import RSMError
from .fitting import ModelOrder, xtx_pinv
from .prediction import DEFAULT_BOUNDS, get_optimal_factors

if TYPE_CHECKING:
    from .fitting import FittedSurfaceModel
    from .steepest import SteepestPathReport


def _factor_index(model: FittedSurfaceModel, factor) -> int:
    if isinstance(factor, str):
        if factor not in model.factors:
            raise ValueError(f"Unknown factor {factor!r}; model factors are {list(model.factors)}")
        return model.factors.index(factor)
    idx = int(factor)
    if not 0 <= idx < len(model.factors):
        raise ValueError(f"Factor index {idx} out of range")
    return idx


def _surface_grid(model, factors, fixed, n_grid, bounds):
    """Predicted response on a 2D grid over two factors, others held fixed."""
    if len(model.factors) < 2:
        raise ValueError("Surface plots need a model with at least two factors")
    i = _factor_index(model, factors[0])
    j = _factor_index(model, factors[1])
    if i == j:
        raise ValueError("Choose two different factors to plot")

    fill = np.zeros(len(model.factors))
    for key, value in (fixed or {}).items():
        fill[_factor_index(model, key)] = float(value)

    lo, hi = bounds
    axis = np.linspace(lo, hi, n_grid)
    Xi, Xj = np.meshgrid(axis, axis)
    X_grid = np.tile(fill, (n_grid * n_grid, 1))
    X_grid[:, i] = Xi.ravel()
    X_grid[:, j] = Xj.ravel()
    Y = model.predict(X_grid).reshape(n_grid, n_grid)
    return i, j, Xi, Xj, Y


def plot_response_surface(
    model: FittedSurfaceModel,
    factors=(0, 1),
    fixed: dict | None = None,
    n_grid: int = 50,
    bounds: tuple[float, float] = DEFAULT_BOUNDS,
    levels: int = 15,
    show_stationary: bool = True,
    show_optimal: bool = False,
    ax: plt.Axes | None = None,
    figsize: tuple[int, int] = (8, 6),
) -> plt.Axes:
    """
    Filled contour plot of the fitted response over two factors.

    Parameters
    ----------
    model : FittedSurfaceModel
        Fitted model.
    factors : (int or str, int or str)
        Factors on the x and y axes.
    fixed : dict, optional
        Coded values of the remaining factors (default 0).
    n_grid : int
        Grid resolution per axis.
    bounds : (float, float)
        Coded range of both axes.
    levels : int
        Number of contour levels.
    show_stationary : bool
        Mark the stationary point of a quadratic model when it exists.
    show_optimal : bool
        Mark the maximum found by :func:`get_optimal_factors` over all
        factors within *bounds*, projected onto the plotted pair.
    ax : plt.Axes, optional
        Axes to draw on; a new figure is created if None.
    figsize : tuple
        Figure size for a new figure.

    Returns
    -------
    ax : plt.Axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    i, j, Xi, Xj, Y = _surface_grid(model, factors, fixed, n_grid, bounds)
    cs = ax.contourf(Xi, Xj, Y, levels=levels, cmap="viridis")
    plt.colorbar(cs, ax=ax, label=model.response)

    marked = False
    if show_stationary and model.model_order is ModelOrder.QUADRATIC:
        try:
            report = canonical_analysis(model)
        except RSMError:
            report = None
        if report is not None:
            xs = report.stationary_point
            ax.scatter(
                [xs[i]], [xs[j]], c="red", marker="*", s=200, zorder=5,
                label=f"Stationary point ({report.surface_type.value})",
            )
            marked = True

    if show_optimal:
        best = get_optimal_factors(model, objective="maximize", bounds=bounds)
        ax.scatter(
            [best.optimal_point[model.factors[i]]], [best.optimal_point[model.factors[j]]],
            c="white", edgecolors="black", marker="o", s=120, zorder=6,
            label=f"Grid optimum ({best.optimal_response:.3g})",
        )
        marked = True

    if marked:
        ax.legend(loc="best")

    ax.set_xlim(*bounds)
    ax.set_ylim(*bounds)
    ax.set_xlabel(model.factors[i])
    ax.set_ylabel(model.factors[j])
    ax.set_title(f"Response Surface: {model.response}")
    return ax


def plot_surface_3d(
    model: FittedSurfaceModel,
    factors=(0, 1),
    fixed: dict | None = None,
    n_grid: int = 30,
    bounds: tuple[float, float] = DEFAULT_BOUNDS,
    ax=None,
    figsize: tuple[int, int] = (10, 8),
):
    """
    Three-dimensional surface of the fitted response over two factors.

    Parameters are as for :func:`plot_response_surface`.  A supplied *ax*
    must use the ``"3d"`` projection.

    Returns
    -------
    ax : mpl_toolkits.mplot3d.Axes3D
    """
    if ax is None:
        fig = plt.figure(figsize=figsize)
        ax = fig.add_subplot(111, projection="3d")
    elif getattr(ax, "name", None) != "3d":
        raise ValueError("plot_surface_3d needs Axes with projection='3d'")

    i, j, Xi, Xj, Y = _surface_grid(model, factors, fixed, n_grid, bounds)
    ax.plot_surface(Xi, Xj, Y, cmap="viridis", alpha=0.8)
    ax.set_xlabel(model.factors[i])
    ax.set_ylabel(model.factors[j])
    ax.set_zlabel(model.response)
    ax.set_title(f"Response Surface: {model.response}")
    return ax


def plot_isoquants(
    model: FittedSurfaceModel,
    factors=(0, 1),
    fixed: dict | None = None,
    n_grid: int = 100,
    n_levels: int = 10,
    bounds: tuple[float, float] = DEFAULT_BOUNDS,
    ax: plt.Axes | None = None,
    figsize: tuple[int, int] = (8, 6),
) -> plt.Axes:
    """
    Labelled contour lines (isoquants) of the fitted response.

    Parameters are as for :func:`plot_response_surface`; *n_levels* sets
    the number of isoquant lines.

    Returns
    -------
    ax : plt.Axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    i, j, Xi, Xj, Y = _surface_grid(model, factors, fixed, n_grid, bounds)
    cs = ax.contour(Xi, Xj, Y, levels=n_levels, cmap="viridis")
    ax.clabel(cs, inline=True, fontsize=8, fmt="%.2f")
    ax.set_xlabel(model.factors[i])
    ax.set_ylabel(model.factors[j])
    ax.set_title(f"Isoquants: {model.response}")
    ax.grid(True, alpha=0.3)
    return ax


def plot_steepest_path(
    path: SteepestPathReport,
    model: FittedSurfaceModel,
    factors=(0, 1),
    bounds: tuple[float, float] | None = None,
    ax: plt.Axes | None = None,
    figsize: tuple[int, int] = (8, 6),
) -> plt.Axes:
    """
    Draw a steepest ascent/descent path over the response contours.

    The contour region is widened to contain the whole path.

    Returns
    -------
    ax : plt.Axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    i = _factor_index(model, factors[0])
    j = _factor_index(model, factors[1])
    coords = path.coordinates
    if bounds is None:
        extent = max(DEFAULT_BOUNDS[1], float(np.max(np.abs(coords[:, [i, j]]))) * 1.1)
        bounds = (-extent, extent)

    plot_isoquants(model, factors=(i, j), bounds=bounds, ax=ax, n_grid=60)
    ax.plot(coords[:, i], coords[:, j], "o-", color="red", label=f"Steepest {path.direction.value}")
    ax.scatter([coords[0, i]], [coords[0, j]], c="black", marker="s", s=60, zorder=5, label="Start")
    ax.legend(loc="best")
    ax.set_title(f"Path of Steepest {path.direction.value.capitalize()}: {model.response}")
    return ax


def plot_diagnostics(
    model: FittedSurfaceModel,
    figsize: tuple[int, int] = (12, 10),
) -> dict[str, plt.Axes]:
    """
    Standard regression diagnostic plots in a 2x2 figure.

    Returns
    -------
    axes : dict
        ``residuals_vs_fitted``, ``qq_plot``, ``scale_location`` and
        ``residuals_vs_leverage`` Axes.
    """
    if model.n_obs == 0:
        raise ValueError("Model has no training data to diagnose")

    fitted = model.fitted_values
    resid = model.residuals
    Phi = model.design_matrix(model.X)
    leverage = np.sum((Phi @ xtx_pinv(Phi)) * Phi, axis=1)
    sigma = model.residual_std_error
    with np.errstate(divide="ignore", invalid="ignore"):
        std_resid = resid / (sigma * np.sqrt(1.0 - leverage))

    fig, axes = plt.subplots(2, 2, figsize=figsize)
    ax_rf, ax_qq, ax_sl, ax_lev = axes.ravel()

    ax_rf.scatter(fitted, resid, c="steelblue")
    ax_rf.axhline(0.0, color="gray", linestyle="--")
    ax_rf.set_xlabel("Fitted values")
    ax_rf.set_ylabel("Residuals")
    ax_rf.set_title("Residuals vs Fitted")

    stats.probplot(std_resid[np.isfinite(std_resid)], dist="norm", plot=ax_qq)
    ax_qq.set_title("Normal Q-Q")

    ax_sl.scatter(fitted, np.sqrt(np.abs(std_resid)), c="steelblue")
    ax_sl.set_xlabel("Fitted values")
    ax_sl.set_ylabel("sqrt(|standardized residuals|)")
    ax_sl.set_title("Scale-Location")

    ax_lev.scatter(leverage, std_resid, c="steelblue")
    ax_lev.axhline(0.0, color="gray", linestyle="--")
    ax_lev.set_xlabel("Leverage")
    ax_lev.set_ylabel("Standardized residuals")
    ax_lev.set_title("Residuals vs Leverage")

    fig.tight_layout()
    return {
        "residuals_vs_fitted": ax_rf,
        "qq_plot": ax_qq,
        "scale_location": ax_sl,
        "residuals_vs_leverage": ax_lev,
    }
