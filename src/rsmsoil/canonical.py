"""
Canonical analysis of a fitted second-order response surface.

Locates the stationary point ``x_s = -0.5 B^{-1} b``, eigendecomposes the
Hessian ``H = 2B`` and classifies the surface from the eigenvalue signs:

* all eigenvalues negative: maximum
* all eigenvalues positive: minimum
* anything else: saddle point

A zero eigenvalue belongs to neither "all negative" nor "all positive",
so a ridge is reported as a saddle point rather than an error.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

import numpy as np
import pandas as pd

from .coding import as_levels_map, decode_value, levels_for_all
from .coefficients import extract_coefficients
from .exceptions import NotQuadraticError, SingularHessianError
from .fitting import FittedSurfaceModel, ModelOrder


class SurfaceType(Enum):
    """Nature of the stationary point."""

    MAXIMUM = "Maximum"
    MINIMUM = "Minimum"
    SADDLE_POINT = "Saddle Point"


def classify_surface(eigenvalues) -> SurfaceType:
    """Classify a quadratic surface from the eigenvalues of its Hessian."""
    eigenvalues = np.asarray(eigenvalues, dtype=float)
    if np.all(eigenvalues < 0):
        return SurfaceType.MAXIMUM
    if np.all(eigenvalues > 0):
        return SurfaceType.MINIMUM
    return SurfaceType.SADDLE_POINT


@dataclass(frozen=True, eq=False)
class CanonicalReport:
    """Result of canonical analysis on a fitted quadratic surface.

    Parameters
    ----------
    response : str
        Response variable name.
    factors : tuple of str
        Factor names, in the index order of every vector and matrix below.
    stationary_point : np.ndarray
        Stationary point on the coded scale.
    stationary_point_natural : np.ndarray or None
        Stationary point in natural units, when encoding levels are known.
    predicted_response : float
        Predicted response at the stationary point.
    hessian : np.ndarray
        Hessian matrix ``2B``.
    eigenvalues : np.ndarray
        Eigenvalues of the Hessian, in descending order.
    eigenvectors : np.ndarray
        Unit eigenvectors (columns) matching *eigenvalues*.
    surface_type : SurfaceType
        Classification of the stationary point.
    intercept : float
        Model intercept.
    b_vector : np.ndarray
        Linear coefficients.
    B_matrix : np.ndarray
        Symmetric matrix of halved second-order coefficients.
    """

    response: str
    factors: tuple[str, ...]
    stationary_point: np.ndarray
    stationary_point_natural: np.ndarray | None
    predicted_response: float
    hessian: np.ndarray
    eigenvalues: np.ndarray
    eigenvectors: np.ndarray
    surface_type: SurfaceType
    intercept: float
    b_vector: np.ndarray
    B_matrix: np.ndarray

    @property
    def stationary_point_by_factor(self) -> dict[str, float]:
        return dict(zip(self.factors, map(float, self.stationary_point), strict=True))

    @property
    def stationary_point_natural_by_factor(self) -> dict[str, float] | None:
        if self.stationary_point_natural is None:
            return None
        return dict(zip(self.factors, map(float, self.stationary_point_natural), strict=True))

    @property
    def canonical_coefficients(self) -> np.ndarray:
        """Coefficients of ``Y = Ys + sum(lambda_i w_i^2)`` (eigenvalues of B)."""
        return self.eigenvalues / 2.0

    @property
    def distance_from_center(self) -> float:
        """Euclidean distance of the stationary point from the design center (coded)."""
        return float(np.linalg.norm(self.stationary_point))


def canonical_analysis(
    model: FittedSurfaceModel,
    encoding_levels: Mapping | None = None,
) -> CanonicalReport:
    """
    Perform canonical analysis on a fitted second-order model.

    Parameters
    ----------
    model : FittedSurfaceModel
        A model with ``model_order == ModelOrder.QUADRATIC``.
    encoding_levels : dict, optional
        ``{factor: (low, center, high)}``.  Defaults to the levels
        attached to *model*; when neither is available the natural-scale
        stationary point is omitted.

    Returns
    -------
    CanonicalReport

    Raises
    ------
    NotQuadraticError
        If the model is not second order.
    MissingTermError
        If a linear or squared term is absent.
    SingularHessianError
        If ``B`` is singular, so no unique stationary point exists.

    Examples
    --------
    >>> model = fit_second_order(coded, "Y", ["P_coded", "S_coded"])
    >>> report = canonical_analysis(model)
    >>> report.surface_type
    <SurfaceType.SADDLE_POINT: 'Saddle Point'>
    """
    if model.model_order is not ModelOrder.QUADRATIC:
        raise NotQuadraticError(model.model_order)

    form = extract_coefficients(model, require_quadratic=True)
    k = form.n_factors
    B = form.B
    b = form.b

    # SVD rank: near-singular B counts as singular
    if np.linalg.matrix_rank(B) < k:
        raise SingularHessianError(B)
    try:
        x_s = np.linalg.solve(B, -0.5 * b)
    except np.linalg.LinAlgError:
        raise SingularHessianError(B) from None

    hessian = 2.0 * B
    eigenvalues, eigenvectors = np.linalg.eigh(hessian)
    order = np.argsort(eigenvalues)[::-1]
    eigenvalues = eigenvalues[order]
    eigenvectors = eigenvectors[:, order]

    predicted = form.intercept + float(b @ x_s) + float(x_s @ B @ x_s)

    levels = as_levels_map(encoding_levels) if encoding_levels is not None else model.encoding_levels
    lvl_list = levels_for_all(form.factors, levels)
    natural = None
    if lvl_list is not None:
        natural = np.array([decode_value(x, lvl) for x, lvl in zip(x_s, lvl_list, strict=True)])

    return CanonicalReport(
        response=model.response,
        factors=form.factors,
        stationary_point=x_s,
        stationary_point_natural=natural,
        predicted_response=float(predicted),
        hessian=hessian,
        eigenvalues=eigenvalues,
        eigenvectors=eigenvectors,
        surface_type=classify_surface(eigenvalues),
        intercept=form.intercept,
        b_vector=b,
        B_matrix=B,
    )


def get_stationary_point(report: CanonicalReport, include_natural: bool = True) -> pd.DataFrame:
    """
    Tabulate the stationary point of a canonical analysis.

    Parameters
    ----------
    report : CanonicalReport
        Result of :func:`canonical_analysis`.
    include_natural : bool
        Add a ``natural_value`` column when natural coordinates exist.

    Returns
    -------
    pd.DataFrame
        One row per factor with columns ``factor``, ``coded_value``,
        optionally ``natural_value``, ``predicted_response`` and
        ``surface_type``.
    """
    table = {
        "factor": list(report.factors),
        "coded_value": report.stationary_point.astype(float),
    }
    if include_natural and report.stationary_point_natural is not None:
        table["natural_value"] = report.stationary_point_natural.astype(float)
    table["predicted_response"] = report.predicted_response
    table["surface_type"] = report.surface_type.value
    return pd.DataFrame(table)
