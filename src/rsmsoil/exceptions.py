"""
Exceptions and warnings raised by rsmsoil.

Every error is a local precondition violation: nothing is retried and no
partial result is returned.  All errors derive from :class:`RSMError`,
which is itself a :class:`ValueError`, so callers that only care about
"bad input" can catch ``ValueError``.
"""

from __future__ import annotations

import numpy as np


class RSMWarning(UserWarning):
    """Modeling concern that does not prevent the analysis from running."""

    pass


class RSMError(ValueError):
    """Base class for response-surface analysis errors."""

    pass


class NotQuadraticError(RSMError):
    """Raised when an operation needs a second-order model."""

    def __init__(self, model_order, operation: str = "canonical analysis"):
        self.model_order = model_order
        order = getattr(model_order, "value", model_order)
        super().__init__(f"{operation} requires a second-order model (got model order {order!r})")


class MissingTermError(RSMError):
    """Raised when a required term is absent from a fitted model."""

    def __init__(self, term, model_order=None):
        self.term = term
        self.model_order = model_order
        label = getattr(term, "label", term)
        msg = f"Fitted model has no {label!r} term"
        if model_order is not None:
            msg += f" (model order {getattr(model_order, 'value', model_order)!r})"
        super().__init__(msg)


class SingularHessianError(RSMError):
    """Raised when the quadratic coefficient matrix cannot be inverted."""

    def __init__(self, matrix):
        self.matrix = np.array(matrix, dtype=float)
        super().__init__(
            "Quadratic coefficient matrix B is singular; the surface is degenerate "
            "along at least one axis and has no unique stationary point.\n"
            f"B = {np.array2string(self.matrix, precision=6)}"
        )


class ZeroGradientError(RSMError):
    """Raised when no ascent/descent direction exists at the start point."""

    def __init__(self, point):
        self.point = np.array(point, dtype=float)
        super().__init__(
            "Gradient is exactly zero at start point "
            f"{np.array2string(self.point, precision=6)}; "
            "no steepest ascent/descent direction is defined."
        )


class InvalidObjectiveError(RSMError):
    """Raised for an optimization objective other than maximize/minimize."""

    def __init__(self, objective):
        self.objective = objective
        super().__init__(f"Unknown objective {objective!r}; use 'maximize' or 'minimize'.")
