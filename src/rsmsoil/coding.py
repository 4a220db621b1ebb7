"""
Coded / natural variable conversion.

Factors are analysed on a coded scale where the low, center and high
levels of the experiment map to -1, 0 and +1 (axial points of rotatable
designs sit at +/-alpha).  The conversion is the affine map

    X = (x - center) / ((high - low) / 2)

Encoding levels are kept in an explicit :class:`CodedData` value rather
than attached to the data frame, so every downstream function receives
them as an ordinary argument.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

CODED_SUFFIX = "_coded"
NATURAL_SUFFIX = "_natural"


# =========================================================================
# Encoding levels
# =========================================================================


@dataclass(frozen=True)
class EncodingLevels:
    """Low, center and high levels of one factor in natural units.

    Parameters
    ----------
    low : float
        Natural value coded as -1.
    center : float
        Natural value coded as 0.
    high : float
        Natural value coded as +1.
    """

    low: float
    center: float
    high: float

    def __post_init__(self):
        if self.high == self.low:
            raise ValueError(f"high and low levels must differ (both are {self.low})")

    @property
    def half_range(self) -> float:
        return (self.high - self.low) / 2.0

    @classmethod
    def from_bounds(cls, low: float, high: float) -> EncodingLevels:
        """Levels with the center at the midpoint of *low* and *high*."""
        return cls(float(low), (float(low) + float(high)) / 2.0, float(high))


def _as_levels(levels) -> EncodingLevels:
    if isinstance(levels, EncodingLevels):
        return levels
    if isinstance(levels, Mapping):
        return EncodingLevels(float(levels["low"]), float(levels["center"]), float(levels["high"]))
    low, center, high = levels
    return EncodingLevels(float(low), float(center), float(high))


def as_levels_map(levels: Mapping | None) -> dict[str, EncodingLevels] | None:
    """Normalise ``{factor: (low, center, high)}`` into :class:`EncodingLevels`."""
    if levels is None:
        return None
    return {str(name): _as_levels(lvl) for name, lvl in levels.items()}


def levels_for(factor: str, levels: Mapping[str, EncodingLevels] | None) -> EncodingLevels | None:
    """
    Look up the encoding levels of a factor.

    Models are usually fitted on ``<name>_coded`` columns while levels are
    keyed by the natural column name, so a trailing ``_coded`` is dropped
    when the exact name is not found.
    """
    if not levels:
        return None
    if factor in levels:
        return levels[factor]
    if factor.endswith(CODED_SUFFIX):
        return levels.get(factor[: -len(CODED_SUFFIX)])
    return None


def levels_for_all(
    factors, levels: Mapping[str, EncodingLevels] | None
) -> list[EncodingLevels] | None:
    """Levels for every factor, or None unless all of them are known."""
    found = [levels_for(f, levels) for f in factors]
    if any(lvl is None for lvl in found):
        return None
    return found


# =========================================================================
# Array conversion
# =========================================================================


def encode_value(x, levels) -> np.ndarray | float:
    """Convert natural value(s) of one factor to the coded scale."""
    lvl = _as_levels(levels)
    coded = (np.asarray(x, dtype=float) - lvl.center) / lvl.half_range
    return float(coded) if coded.ndim == 0 else coded


def decode_value(x_coded, levels) -> np.ndarray | float:
    """Convert coded value(s) of one factor to natural units."""
    lvl = _as_levels(levels)
    natural = lvl.center + np.asarray(x_coded, dtype=float) * lvl.half_range
    return float(natural) if natural.ndim == 0 else natural


def encode(X: np.ndarray, levels: list) -> np.ndarray:
    """Convert natural-unit design points to coded variables.

    Parameters
    ----------
    X : array-like of shape (n, k) or (k,)
        Points in natural units.
    levels : list of EncodingLevels or (low, center, high)
        One entry per factor.

    Returns
    -------
    X_coded : np.ndarray
        Array of the same shape as *X*.
    """
    lvls = [_as_levels(lvl) for lvl in levels]
    centers = np.array([lvl.center for lvl in lvls])
    half_ranges = np.array([lvl.half_range for lvl in lvls])
    return (np.asarray(X, dtype=float) - centers) / half_ranges


def decode(X_coded: np.ndarray, levels: list) -> np.ndarray:
    """Convert coded design points to natural units.

    Parameters
    ----------
    X_coded : array-like of shape (n, k) or (k,)
        Points on the coded scale.
    levels : list of EncodingLevels or (low, center, high)
        One entry per factor.

    Returns
    -------
    X : np.ndarray
        Array of the same shape as *X_coded*.
    """
    lvls = [_as_levels(lvl) for lvl in levels]
    centers = np.array([lvl.center for lvl in lvls])
    half_ranges = np.array([lvl.half_range for lvl in lvls])
    return np.asarray(X_coded, dtype=float) * half_ranges + centers


# =========================================================================
# Data-frame conversion
# =========================================================================


@dataclass
class CodedData:
    """A data frame with coded factor columns and the levels used to code them.

    Parameters
    ----------
    frame : pd.DataFrame
        Original columns plus one ``<factor>_coded`` column per factor.
    levels : dict
        ``{factor: EncodingLevels}`` keyed by the natural column name.
    """

    frame: pd.DataFrame
    levels: dict[str, EncodingLevels] = field(default_factory=dict)

    @property
    def coded_columns(self) -> list[str]:
        return [f"{name}{CODED_SUFFIX}" for name in self.levels]

    def __len__(self) -> int:
        return len(self.frame)


def detect_levels(data: pd.DataFrame, factor_names: list[str]) -> dict[str, EncodingLevels]:
    """
    Detect encoding levels from the data.

    Uses the minimum as the low level, the mean as the center and the
    maximum as the high level, ignoring missing values.
    """
    levels = {}
    for name in factor_names:
        values = pd.to_numeric(data[name], errors="raise").dropna()
        levels[name] = EncodingLevels(float(values.min()), float(values.mean()), float(values.max()))
    return levels


def encode_variables(
    data: pd.DataFrame,
    factor_names: list[str],
    levels: Mapping | None = None,
) -> CodedData:
    """
    Add coded columns for the given factors.

    Parameters
    ----------
    data : pd.DataFrame
        Data with factor columns in natural units.
    factor_names : list of str
        Columns to encode.
    levels : dict, optional
        ``{factor: (low, center, high)}``.  Detected from the data with
        :func:`detect_levels` when omitted.

    Returns
    -------
    CodedData
        Copy of *data* with ``<factor>_coded`` columns and the levels used.

    Examples
    --------
    >>> coded = encode_variables(df, ["P", "S"],
    ...                          levels={"P": (18, 180, 342), "S": (6, 60, 114)})
    >>> coded.frame[["P_coded", "S_coded"]]
    """
    missing = [f for f in factor_names if f not in data.columns]
    if missing:
        raise ValueError(f"Columns not found in data: {missing}")

    if levels is None:
        lvl_map = detect_levels(data, factor_names)
    else:
        lvl_map = as_levels_map(levels)
        absent = [f for f in factor_names if f not in lvl_map]
        if absent:
            raise ValueError(f"No encoding levels given for: {absent}")

    frame = data.copy()
    for name in factor_names:
        frame[f"{name}{CODED_SUFFIX}"] = encode_value(frame[name].to_numpy(dtype=float), lvl_map[name])

    return CodedData(frame=frame, levels={name: lvl_map[name] for name in factor_names})


def decode_variables(
    data: pd.DataFrame | CodedData,
    factor_names: list[str],
    levels: Mapping | None = None,
) -> pd.DataFrame:
    """
    Add natural-unit columns for coded factors.

    Parameters
    ----------
    data : pd.DataFrame or CodedData
        Data holding ``<factor>_coded`` columns.
    factor_names : list of str
        Factor names without the ``_coded`` suffix.
    levels : dict, optional
        ``{factor: (low, center, high)}``.  Taken from *data* when it is a
        :class:`CodedData`.

    Returns
    -------
    pd.DataFrame
        Copy of the data with ``<factor>_natural`` columns.

    Raises
    ------
    ValueError
        If no levels are given and *data* does not carry any.
    """
    if isinstance(data, CodedData):
        frame = data.frame
        if levels is None:
            levels = data.levels
    else:
        frame = data
    if levels is None:
        raise ValueError("Levels not provided and not available from the data.")
    lvl_map = as_levels_map(levels)

    frame = frame.copy()
    for name in factor_names:
        coded_col = f"{name}{CODED_SUFFIX}"
        if coded_col not in frame.columns:
            raise ValueError(f"Column {coded_col!r} not found in data")
        lvl = levels_for(name, lvl_map)
        if lvl is None:
            raise ValueError(f"No encoding levels given for {name!r}")
        frame[f"{name}{NATURAL_SUFFIX}"] = decode_value(frame[coded_col].to_numpy(dtype=float), lvl)
    return frame
