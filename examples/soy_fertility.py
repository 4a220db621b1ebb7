"""
Soy Fertility Example for rsmsoil.

Phosphorus (P) and sulphur (S) doses were applied to soybean on a
two-factor central composite design.  This script fits first- and
second-order models, tests whether the curvature terms are needed,
characterizes the surface and suggests where to run the next trial.
"""

import pandas as pd

from rsmsoil import (
    anova_rsm,
    canonical_analysis,
    compare_models,
    encode_variables,
    fit_first_order,
    fit_second_order,
    format_report,
    get_optimal_factors,
    get_stationary_point,
    steepest_path,
)

LEVELS = {"P": (18, 180, 342), "S": (6, 60, 114)}
FACTORS = ["P_coded", "S_coded"]


def load_trial():
    """Soy yield (t/ha) against P and S doses (kg/ha)."""
    return pd.DataFrame(
        {
            "P": [108, 108, 252, 252, 180, 18, 342, 108, 252],
            "S": [36, 84, 36, 84, 60, 36, 84, 6, 114],
            "Y": [6.66, 6.30, 6.32, 5.92, 6.09, 6.22, 5.29, 6.67, 5.67],
        }
    )


def example_model_fit(coded):
    """Fit both model orders and compare them."""
    print("=" * 60)
    print("Example 1: Model Fitting and ANOVA")
    print("=" * 60)

    linear = fit_first_order(coded, "Y", FACTORS)
    quadratic = fit_second_order(coded, "Y", FACTORS)

    print(format_report(quadratic))
    print()
    print(format_report(anova_rsm(quadratic, alpha=0.10)))
    print()
    print(format_report(compare_models(linear, quadratic)))
    return linear, quadratic


def example_canonical(quadratic):
    """Locate and classify the stationary point."""
    print("\n" + "=" * 60)
    print("Example 2: Canonical Analysis")
    print("=" * 60)

    report = canonical_analysis(quadratic)
    print(format_report(report))
    print()
    print(get_stationary_point(report).to_string(index=False))


def example_next_trial(linear, quadratic):
    """Steepest ascent from the center and a bounded grid search."""
    print("\n" + "=" * 60)
    print("Example 3: Where to Run Next")
    print("=" * 60)

    path = steepest_path(linear, n_steps=6, step_size=0.25)
    print(format_report(path))
    print()
    print(format_report(get_optimal_factors(quadratic, objective="maximize", n_grid=41)))


def main():
    coded = encode_variables(load_trial(), ["P", "S"], levels=LEVELS)
    linear, quadratic = example_model_fit(coded)
    example_canonical(quadratic)
    example_next_trial(linear, quadratic)


if __name__ == "__main__":
    main()
