"""
rsmsoil: Response Surface Methodology for soil-fertility experiments

Fits first- and second-order polynomial models to designed-experiment
data, characterizes the fitted surface by canonical analysis (stationary
point, Hessian eigenvalues, maximum/minimum/saddle classification) and
navigates it along the path of steepest ascent or by grid search.

Follows the methodology of Alvarez V. (2008), "Avaliação da Fertilidade
do Solo: Superfícies de Resposta".
"""

from __future__ import annotations

__version__ = "0.1.0"

# ANOVA
from .anova import AnovaReport, ModelComparisonReport, anova_rsm, compare_models

# Canonical analysis
from .canonical import (
    CanonicalReport,
    SurfaceType,
    canonical_analysis,
    classify_surface,
    get_stationary_point,
)

# Variable coding
from .coding import (
    CodedData,
    EncodingLevels,
    decode,
    decode_value,
    decode_variables,
    detect_levels,
    encode,
    encode_value,
    encode_variables,
)
from .coefficients import QuadraticForm, extract_coefficients
from .design import generate_design
from .exceptions import (
    InvalidObjectiveError,
    MissingTermError,
    NotQuadraticError,
    RSMError,
    RSMWarning,
    SingularHessianError,
    ZeroGradientError,
)

# Model fitting
from .fitting import (
    Coefficient,
    FittedSurfaceModel,
    ModelOrder,
    fit_first_order,
    fit_first_order_interaction,
    fit_response_surface,
    fit_second_order,
    get_fitted_values,
    get_residuals,
    model_from_terms,
)

# Prediction and optimization
from .prediction import OptimizationResult, get_optimal_factors, predict_rsm
from .reporting import format_report

# Steepest path
from .steepest import PathDirection, PathStep, SteepestPathReport, steepest_path
from .terms import Term, TermKind


# Plotting (optional import to avoid matplotlib dependency issues)
def _get_plotting():
    from . import plotting

    return plotting


__all__ = [
    # Version
    "__version__",
    # Terms and models
    "Term",
    "TermKind",
    "ModelOrder",
    "Coefficient",
    "FittedSurfaceModel",
    "fit_response_surface",
    "fit_first_order",
    "fit_first_order_interaction",
    "fit_second_order",
    "model_from_terms",
    "get_residuals",
    "get_fitted_values",
    # Coding
    "EncodingLevels",
    "CodedData",
    "encode",
    "decode",
    "encode_value",
    "decode_value",
    "encode_variables",
    "decode_variables",
    "detect_levels",
    # Surface analysis
    "QuadraticForm",
    "extract_coefficients",
    "SurfaceType",
    "CanonicalReport",
    "canonical_analysis",
    "classify_surface",
    "get_stationary_point",
    "PathDirection",
    "PathStep",
    "SteepestPathReport",
    "steepest_path",
    # ANOVA, prediction, optimization
    "AnovaReport",
    "ModelComparisonReport",
    "anova_rsm",
    "compare_models",
    "OptimizationResult",
    "predict_rsm",
    "get_optimal_factors",
    # Designs and reports
    "generate_design",
    "format_report",
    # Errors
    "RSMError",
    "RSMWarning",
    "NotQuadraticError",
    "MissingTermError",
    "SingularHessianError",
    "ZeroGradientError",
    "InvalidObjectiveError",
]
