"""
Plain-text reports.

Reports are plain data; :func:`format_report` renders any of them as
text, dispatching on the report type.
"""

from __future__ import annotations

from functools import singledispatch

import numpy as np
import pandas as pd

from .anova import AnovaReport, ModelComparisonReport
from .canonical import CanonicalReport
from .fitting import FittedSurfaceModel
from .prediction import OptimizationResult
from .steepest import SteepestPathReport

RULE = "-" * 50


def _vector(values, names) -> list[str]:
    width = max(len(n) for n in names)
    return [f"  {name:<{width}} = {float(v):.4f}" for name, v in zip(names, values, strict=True)]


def _frame(frame: pd.DataFrame) -> list[str]:
    return frame.to_string(index=False, float_format=lambda v: f"{v:.4f}").splitlines()


@singledispatch
def format_report(report) -> str:
    """Render a report as text."""
    raise TypeError(f"No text format for {type(report).__name__}")


@format_report.register
def _(report: FittedSurfaceModel) -> str:
    lines = [
        f"Response Surface Model ({report.model_order.value})",
        RULE,
        f"Response:           {report.response}",
        f"Factors:            {', '.join(report.factors)}",
        f"Observations:       {report.n_obs}",
        f"R-squared:          {report.r_squared:.4f}",
        f"Adj. R-squared:     {report.adj_r_squared:.4f}",
        f"Residual std error: {report.residual_std_error:.4f} on {report.df_resid} df",
        "",
        "Coefficients:",
    ]
    lines.extend(_frame(report.coefficient_table()))
    return "\n".join(lines)


@format_report.register
def _(report: CanonicalReport) -> str:
    lines = [
        "Canonical Analysis of Response Surface",
        RULE,
        f"Surface type: {report.surface_type.value}",
        "",
        "Stationary point (coded scale):",
        *_vector(report.stationary_point, report.factors),
    ]
    if report.stationary_point_natural is not None:
        lines += ["", "Stationary point (natural scale):"]
        lines += _vector(report.stationary_point_natural, report.factors)
    lines += [
        "",
        f"Predicted response at stationary point: {report.predicted_response:.4f}",
        "",
        "Eigenvalues of the Hessian:",
    ]
    for i, ev in enumerate(report.eigenvalues, start=1):
        sign = "negative" if ev < 0 else ("positive" if ev > 0 else "zero")
        lines.append(f"  lambda{i} = {ev: .6f}  ({sign})")
    lines += ["", "Hessian matrix:", np.array2string(report.hessian, precision=4)]
    return "\n".join(lines)


@format_report.register
def _(report: SteepestPathReport) -> str:
    lines = [
        f"Path of Steepest {report.direction.value.capitalize()}",
        RULE,
        "Start point:",
        *_vector(report.start_point, report.factors),
        "",
        "Direction (normalized gradient):",
        *_vector(report.unit_direction, report.factors),
        "",
        "Path:",
        *_frame(report.to_frame()),
    ]
    return "\n".join(lines)


@format_report.register
def _(report: OptimizationResult) -> str:
    lines = [
        f"Grid Optimization ({report.objective})",
        RULE,
        f"Points evaluated: {report.n_evaluated}",
        "",
        "Optimal point (coded scale):",
        *_vector(report.optimal_point.values(), report.factors),
    ]
    if report.optimal_point_natural is not None:
        lines += ["", "Optimal point (natural scale):"]
        lines += _vector(report.optimal_point_natural.values(), report.factors)
    lines += ["", f"Predicted response: {report.optimal_response:.4f}"]
    return "\n".join(lines)


@format_report.register
def _(report: AnovaReport) -> str:
    lines = [
        "ANOVA for Response Surface Model",
        RULE,
        f"Significance level (alpha): {report.alpha}",
        "",
        *_frame(report.anova_table),
        "",
        "Overall model significance:",
        f"  F = {report.f_statistic:.4f} on {report.df_reg} and {report.df_res} df",
        f"  p-value = {report.p_value:.4g}  ({'significant' if report.significant else 'not significant'})",
        "",
        "Coefficient tests:",
        *_frame(report.coefficient_tests),
        "",
        f"Significant terms: {', '.join(report.significant_terms) or 'none'}",
        f"R-squared: {report.r_squared:.4f}",
        f"Adj. R-squared: {report.adj_r_squared:.4f}",
    ]
    return "\n".join(lines)


@format_report.register
def _(report: ModelComparisonReport) -> str:
    lines = [
        "Nested Model Comparison",
        RULE,
        *_frame(report.table),
        "",
        f"F = {report.f_statistic:.4f}, p-value = {report.p_value:.4g}",
        f"Full model preferred at alpha = {report.alpha}: {'yes' if report.prefers_full else 'no'}",
    ]
    return "\n".join(lines)
