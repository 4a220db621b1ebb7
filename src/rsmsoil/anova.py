"""
Analysis of variance for response-surface models.

Provides the sequential (Type I) ANOVA table, the overall regression
F-test, t-tests and confidence intervals for each coefficient, and a
partial F-test comparing nested models (e.g. first- vs second-order).
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy import stats

from .exceptions import RSMWarning
from .fitting import FittedSurfaceModel, ols_fit


@dataclass(frozen=True, eq=False)
class AnovaReport:
    """ANOVA of a fitted response-surface model.

    Parameters
    ----------
    anova_table : pd.DataFrame
        Sequential ANOVA with columns ``term``, ``df``, ``sum_sq``,
        ``mean_sq``, ``f_value``, ``p_value``; the last row is the residual.
    coefficient_tests : pd.DataFrame
        Coefficient table with ``ci_lower``, ``ci_upper`` and
        ``significant`` columns added.
    f_statistic, p_value : float
        Overall regression F-test.
    df_reg, df_res : int
        Regression and residual degrees of freedom.
    significant : bool
        Whether the regression is significant at *alpha*.
    significant_terms : list of str
        Terms with ``p_value < alpha``.
    alpha : float
        Significance level.
    r_squared, adj_r_squared : float
        Coefficients of determination.
    """

    anova_table: pd.DataFrame
    coefficient_tests: pd.DataFrame
    f_statistic: float
    p_value: float
    df_reg: int
    df_res: int
    significant: bool
    significant_terms: list[str]
    alpha: float
    r_squared: float
    adj_r_squared: float


def _sequential_table(model: FittedSurfaceModel) -> pd.DataFrame:
    Phi = model.design_matrix(model.X)
    y = model.y
    rss_prev = model.tss
    rows = []
    for j in range(1, Phi.shape[1]):
        _, rss_j, _ = ols_fit(Phi[:, : j + 1], y)
        ss = max(rss_prev - rss_j, 0.0)
        rows.append({"term": model.coefficients[j].label, "df": 1, "sum_sq": ss})
        rss_prev = rss_j
    rows.append({"term": "Residuals", "df": model.df_resid, "sum_sq": model.rss})

    table = pd.DataFrame(rows)
    table["mean_sq"] = table["sum_sq"] / table["df"].where(table["df"] > 0)
    ms_res = model.sigma_sq
    f_values = table["mean_sq"] / ms_res
    f_values.iloc[-1] = np.nan
    table["f_value"] = f_values
    if model.df_resid > 0:
        table["p_value"] = stats.f.sf(table["f_value"], 1, model.df_resid)
    else:
        table["p_value"] = np.nan
    table.loc[table.index[-1], "p_value"] = np.nan
    return table


def anova_rsm(model: FittedSurfaceModel, alpha: float = 0.05) -> AnovaReport:
    """
    ANOVA and significance tests for a fitted model.

    Parameters
    ----------
    model : FittedSurfaceModel
        Fitted model with training data.
    alpha : float
        Significance level for the tests and confidence intervals.

    Returns
    -------
    AnovaReport

    Raises
    ------
    ValueError
        If *alpha* is not in (0, 1) or the model carries no fit data.
    """
    if not 0 < alpha < 1:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")
    if model.n_obs == 0:
        raise ValueError("Model has no training data; ANOVA needs a fitted model.")

    df_res = model.df_resid
    df_reg = model.rank - 1
    ss_res = model.rss
    ss_reg = model.tss - ss_res

    if df_res <= 0 or df_reg <= 0:
        warnings.warn(
            f"Not enough degrees of freedom for ANOVA (regression {df_reg}, residual {df_res}).",
            RSMWarning,
            stacklevel=2,
        )
        f_stat = float("nan")
        p_value = float("nan")
        t_crit = float("nan")
    else:
        ms_res = ss_res / df_res
        f_stat = (ss_reg / df_reg) / ms_res if ms_res > 0 else float("inf")
        p_value = float(stats.f.sf(f_stat, df_reg, df_res))
        t_crit = float(stats.t.ppf(1 - alpha / 2, df_res))

    tests = model.coefficient_table()
    tests["ci_lower"] = tests["estimate"] - t_crit * tests["std_error"]
    tests["ci_upper"] = tests["estimate"] + t_crit * tests["std_error"]
    tests["significant"] = tests["p_value"] < alpha

    return AnovaReport(
        anova_table=_sequential_table(model),
        coefficient_tests=tests,
        f_statistic=float(f_stat),
        p_value=p_value,
        df_reg=df_reg,
        df_res=df_res,
        significant=bool(p_value < alpha),
        significant_terms=tests.loc[tests["significant"], "term"].tolist(),
        alpha=alpha,
        r_squared=model.r_squared,
        adj_r_squared=model.adj_r_squared,
    )


# =========================================================================
# Nested model comparison
# =========================================================================


@dataclass(frozen=True, eq=False)
class ModelComparisonReport:
    """Partial F-test between a reduced and a full model."""

    table: pd.DataFrame
    f_statistic: float
    p_value: float
    df_diff: int
    ss_diff: float
    alpha: float = 0.05

    @property
    def prefers_full(self) -> bool:
        """True when the extra terms are significant at *alpha*."""
        return bool(self.p_value < self.alpha)


def compare_models(
    reduced: FittedSurfaceModel,
    full: FittedSurfaceModel,
    alpha: float = 0.05,
) -> ModelComparisonReport:
    """
    Compare nested models with a partial F-test.

    Parameters
    ----------
    reduced : FittedSurfaceModel
        Smaller model, e.g. first order.
    full : FittedSurfaceModel
        Larger model containing every term of *reduced*.
    alpha : float
        Significance level behind :attr:`ModelComparisonReport.prefers_full`.

    Returns
    -------
    ModelComparisonReport

    Raises
    ------
    ValueError
        If the models are not nested, were fitted on different data, or
        *alpha* is not in (0, 1).
    """
    if not 0 < alpha < 1:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")
    if reduced.response != full.response or reduced.factors != full.factors:
        raise ValueError("Models must share the response and factors to be compared")
    if reduced.n_obs != full.n_obs or not np.array_equal(reduced.y, full.y):
        raise ValueError("Models were fitted on different observations")
    if not set(reduced.term_list) <= set(full.term_list):
        raise ValueError("Reduced model terms must be a subset of the full model terms")
    df_diff = reduced.df_resid - full.df_resid
    if df_diff <= 0:
        raise ValueError("Full model must have more terms than the reduced model")

    ss_diff = reduced.rss - full.rss
    if full.df_resid > 0 and full.sigma_sq > 0:
        f_stat = (ss_diff / df_diff) / full.sigma_sq
        p_value = float(stats.f.sf(f_stat, df_diff, full.df_resid))
    else:
        f_stat = float("nan")
        p_value = float("nan")

    table = pd.DataFrame(
        {
            "model": [reduced.model_order.value, full.model_order.value],
            "df_resid": [reduced.df_resid, full.df_resid],
            "rss": [reduced.rss, full.rss],
            "df": [np.nan, df_diff],
            "sum_sq": [np.nan, ss_diff],
            "f_value": [np.nan, f_stat],
            "p_value": [np.nan, p_value],
        }
    )
    return ModelComparisonReport(
        table=table,
        f_statistic=float(f_stat),
        p_value=p_value,
        df_diff=df_diff,
        ss_diff=float(ss_diff),
        alpha=alpha,
    )
