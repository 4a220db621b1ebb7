"""
Classical response-surface designs on the coded scale.
"""

from __future__ import annotations

import itertools

import numpy as np
import pandas as pd

DESIGNS = ("ccd", "factorial", "box_behnken")


def _axial_distance(alpha, n_factors: int) -> float:
    if isinstance(alpha, str):
        if alpha == "rotatable":
            return float((2**n_factors) ** 0.25)
        if alpha == "face":
            return 1.0
        raise ValueError(f"Unknown alpha preset: {alpha!r}")
    value = float(alpha)
    if value <= 0:
        raise ValueError(f"alpha must be positive, got {alpha}")
    return value


def _ccd(k: int, alpha: float) -> list[tuple[str, np.ndarray]]:
    runs = [("factorial", np.array(p, dtype=float)) for p in itertools.product([-1, 1], repeat=k)]
    for i in range(k):
        for sign in (-1.0, 1.0):
            point = np.zeros(k)
            point[i] = sign * alpha
            runs.append(("axial", point))
    return runs


def _box_behnken(k: int) -> list[tuple[str, np.ndarray]]:
    runs = []
    for i, j in itertools.combinations(range(k), 2):
        for si, sj in itertools.product([-1.0, 1.0], repeat=2):
            point = np.zeros(k)
            point[i] = si
            point[j] = sj
            runs.append(("edge", point))
    return runs


def generate_design(
    n_factors: int,
    design: str = "ccd",
    alpha=1.68,
    n_center: int = 1,
    factor_names: list[str] | None = None,
    levels: int = 3,
) -> pd.DataFrame:
    """
    Generate a coded experimental design.

    Parameters
    ----------
    n_factors : int
        Number of factors *k*.
    design : str
        ``"ccd"`` (central composite: 2^k cube, 2k axial and center
        points), ``"factorial"`` (full factorial with *levels* levels per
        factor, no extra center points) or ``"box_behnken"`` (k >= 3).
    alpha : float or str
        Axial distance of a CCD, or ``"rotatable"`` / ``"face"``.
    n_center : int
        Center-point replicates (CCD and Box-Behnken).
    factor_names : list of str, optional
        Column names; defaults to ``x1 .. xk``.
    levels : int
        Levels per factor for a full factorial.

    Returns
    -------
    pd.DataFrame
        Columns ``run``, ``point_type`` and one coded column per factor.

    Examples
    --------
    >>> generate_design(2, "ccd", alpha=1.68, n_center=2).shape
    (10, 4)
    """
    if n_factors < 1:
        raise ValueError(f"n_factors must be positive, got {n_factors}")
    if n_center < 0:
        raise ValueError(f"n_center must be non-negative, got {n_center}")
    names = factor_names or [f"x{i + 1}" for i in range(n_factors)]
    if len(names) != n_factors:
        raise ValueError(f"Got {len(names)} factor names for {n_factors} factors")

    if design == "ccd":
        runs = _ccd(n_factors, _axial_distance(alpha, n_factors))
    elif design == "factorial":
        if levels < 2:
            raise ValueError(f"levels must be at least 2, got {levels}")
        axis = np.linspace(-1, 1, levels)
        runs = [("factorial", np.array(p)) for p in itertools.product(axis, repeat=n_factors)]
        n_center = 0
    elif design == "box_behnken":
        if n_factors < 3:
            raise ValueError("Box-Behnken design requires at least 3 factors")
        runs = _box_behnken(n_factors)
    else:
        raise ValueError(f"Unknown design {design!r}; expected one of {DESIGNS}")

    runs.extend(("center", np.zeros(n_factors)) for _ in range(n_center))

    frame = pd.DataFrame([point for _, point in runs], columns=names)
    frame.insert(0, "point_type", [kind for kind, _ in runs])
    frame.insert(0, "run", np.arange(1, len(runs) + 1))
    return frame
