"""
Path of steepest ascent / descent.

From a start point ``x0`` (the design center by default) the path follows
the normalised gradient ``d = (b + 2Bx0) / ||b + 2Bx0||``:

    x(t) = x0 + t d,   t = 0, step_size, 2 step_size, ...

The direction is evaluated once at ``x0`` and held fixed, which is the
classical Box-Wilson straight-line search for short-range exploration.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

import numpy as np
import pandas as pd

from .coding import NATURAL_SUFFIX, as_levels_map, decode, levels_for_all
from .coefficients import extract_coefficients
from .exceptions import ZeroGradientError
from .fitting import FittedSurfaceModel


class PathDirection(Enum):
    ASCENT = "ascent"
    DESCENT = "descent"


class PathStep(NamedTuple):
    """One point along a steepest path."""

    step: int
    distance: float
    coordinates: np.ndarray
    predicted_response: float


@dataclass(frozen=True, eq=False)
class SteepestPathReport:
    """Result of :func:`steepest_path`.

    Parameters
    ----------
    response : str
        Response variable name.
    factors : tuple of str
        Factor names.
    start_point : np.ndarray
        Coded start point.
    direction : PathDirection
        Ascent or descent.
    gradient_at_start : np.ndarray
        Gradient of the fitted surface at the start point.
    unit_direction : np.ndarray
        Unit vector followed by the path.
    step_size : float
        Distance between consecutive points (coded units).
    steps : tuple of PathStep
        Points along the path; ``steps[0]`` is the start point.
    natural_coordinates : np.ndarray or None
        Path points in natural units, shape (n_steps, k), when encoding
        levels are known.
    """

    response: str
    factors: tuple[str, ...]
    start_point: np.ndarray
    direction: PathDirection
    gradient_at_start: np.ndarray
    unit_direction: np.ndarray
    step_size: float
    steps: tuple[PathStep, ...]
    natural_coordinates: np.ndarray | None = None

    @property
    def n_steps(self) -> int:
        return len(self.steps)

    @property
    def coordinates(self) -> np.ndarray:
        """Coded path points, shape (n_steps, k)."""
        return np.array([s.coordinates for s in self.steps])

    @property
    def predicted_responses(self) -> np.ndarray:
        return np.array([s.predicted_response for s in self.steps])

    def to_frame(self) -> pd.DataFrame:
        """Path as a table: step, distance, predicted_response, then factor columns."""
        frame = pd.DataFrame(
            {
                "step": [s.step for s in self.steps],
                "distance": [s.distance for s in self.steps],
                "predicted_response": self.predicted_responses,
            }
        )
        coords = self.coordinates
        for i, name in enumerate(self.factors):
            frame[name] = coords[:, i]
        if self.natural_coordinates is not None:
            for i, name in enumerate(self.factors):
                frame[f"{name}{NATURAL_SUFFIX}"] = self.natural_coordinates[:, i]
        return frame


def steepest_path(
    model: FittedSurfaceModel,
    start_point=None,
    direction: PathDirection | str = PathDirection.ASCENT,
    n_steps: int = 10,
    step_size: float = 0.1,
    encoding_levels: Mapping | None = None,
) -> SteepestPathReport:
    """
    Compute the path of steepest ascent or descent.

    Parameters
    ----------
    model : FittedSurfaceModel
        Fitted model of any order.  First-order models have a constant
        gradient ``b``.
    start_point : array-like of shape (k,) or dict, optional
        Coded start point, or ``{factor: value}``.  Defaults to the
        origin (design center).
    direction : PathDirection or str
        ``"ascent"`` to maximise or ``"descent"`` to minimise.
    n_steps : int
        Number of points on the path, including the start point.
    step_size : float
        Distance between points on the coded scale.
    encoding_levels : dict, optional
        ``{factor: (low, center, high)}``; defaults to the model's levels.

    Returns
    -------
    SteepestPathReport

    Raises
    ------
    ZeroGradientError
        If the gradient vanishes at the start point.
    ValueError
        For a bad direction, step count, step size or start point.
    """
    try:
        direction = PathDirection(direction.lower() if isinstance(direction, str) else direction)
    except ValueError:
        raise ValueError(f"direction must be 'ascent' or 'descent', got {direction!r}") from None
    if int(n_steps) != n_steps or n_steps < 1:
        raise ValueError(f"n_steps must be a positive integer, got {n_steps!r}")
    if not step_size > 0:
        raise ValueError(f"step_size must be positive, got {step_size!r}")
    n_steps = int(n_steps)

    form = extract_coefficients(model)
    k = form.n_factors

    if start_point is None:
        x0 = np.zeros(k)
    elif isinstance(start_point, Mapping):
        missing = [f for f in form.factors if f not in start_point]
        if missing:
            raise ValueError(f"start_point is missing factors: {missing}")
        x0 = np.array([float(start_point[f]) for f in form.factors])
    else:
        x0 = np.array(start_point, dtype=float).ravel()
        if x0.shape != (k,):
            raise ValueError(f"start_point has {x0.size} values but model has {k} factors")

    gradient = form.gradient(x0)
    norm = float(np.linalg.norm(gradient))
    if norm == 0.0:
        raise ZeroGradientError(x0)

    unit = gradient / norm
    if direction is PathDirection.DESCENT:
        unit = -unit

    steps = []
    for i in range(n_steps):
        distance = i * step_size
        x = x0 + distance * unit
        steps.append(PathStep(i, float(distance), x, form.evaluate(x)))

    levels = as_levels_map(encoding_levels) if encoding_levels is not None else model.encoding_levels
    lvl_list = levels_for_all(form.factors, levels)
    natural = None
    if lvl_list is not None:
        natural = decode(np.array([s.coordinates for s in steps]), lvl_list)

    return SteepestPathReport(
        response=model.response,
        factors=form.factors,
        start_point=x0,
        direction=direction,
        gradient_at_start=gradient,
        unit_direction=unit,
        step_size=float(step_size),
        steps=tuple(steps),
        natural_coordinates=natural,
    )
