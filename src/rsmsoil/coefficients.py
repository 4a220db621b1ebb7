"""
Extraction of the quadratic form from a fitted model.

A second-order model

    Y = b0 + sum(bi xi) + sum(bii xi^2) + sum_{i<j}(bij xi xj)

is rewritten as ``Y = b0 + b'x + x'Bx`` where ``b`` holds the linear
coefficients and ``B`` is symmetric with ``B[i, i] = bii / 2`` and
``B[i, j] = B[j, i] = bij / 2``.  Both the canonical analysis and the
steepest-path generator work from this form.
"""

from __future__ import annotations

import itertools
import warnings
from dataclasses import dataclass

import numpy as np

from .exceptions import MissingTermError, NotQuadraticError, RSMWarning
from .fitting import FittedSurfaceModel, ModelOrder
from .terms import Term, TermKind


@dataclass(frozen=True, eq=False)
class QuadraticForm:
    """
    Coefficients of ``Y = intercept + b'x + x'Bx``.

    Parameters
    ----------
    intercept : float
        Constant term.
    b : np.ndarray of shape (k,)
        Linear coefficients, index-aligned with *factors*.
    B : np.ndarray of shape (k, k)
        Symmetric matrix of halved squared / interaction coefficients.
        Zero for first-order models.
    factors : tuple of str
        Factor names.
    """

    intercept: float
    b: np.ndarray
    B: np.ndarray
    factors: tuple[str, ...]

    @property
    def n_factors(self) -> int:
        return len(self.factors)

    def evaluate(self, X) -> np.ndarray | float:
        """Response at coded point(s) *X* of shape (k,) or (n, k)."""
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            return float(self.intercept + self.b @ X + X @ self.B @ X)
        return self.intercept + X @ self.b + np.einsum("ni,ij,nj->n", X, self.B, X)

    def gradient(self, x) -> np.ndarray:
        """Gradient ``b + 2Bx`` at coded point *x*."""
        return self.b + 2.0 * self.B @ np.asarray(x, dtype=float)


def extract_coefficients(
    model: FittedSurfaceModel,
    require_quadratic: bool = False,
) -> QuadraticForm:
    """
    Extract ``(intercept, b, B)`` from a fitted model.

    Parameters
    ----------
    model : FittedSurfaceModel
        Fitted model of any order.
    require_quadratic : bool
        If True, raise :class:`NotQuadraticError` unless the model is
        second order.

    Returns
    -------
    QuadraticForm

    Raises
    ------
    NotQuadraticError
        If *require_quadratic* is set and the model is not quadratic.
    MissingTermError
        If the intercept, a linear term or (for quadratic models) a
        squared term is absent.
    ValueError
        If a term appears more than once.

    Notes
    -----
    A quadratic model lacking the interaction term for some pair gets
    ``B[i, j] = 0`` for that pair and an :class:`RSMWarning`.  First-order
    models with interactions contribute their interaction terms to ``B``;
    purely linear models yield ``B = 0``.
    """
    if require_quadratic and model.model_order is not ModelOrder.QUADRATIC:
        raise NotQuadraticError(model.model_order)

    estimates: dict[Term, float] = {}
    for term, estimate in model.terms:
        if term in estimates:
            raise ValueError(f"Term {term.label!r} appears more than once in the model")
        estimates[term] = float(estimate)

    factors = tuple(model.factors)
    k = len(factors)

    intercept_term = Term.intercept()
    if intercept_term not in estimates:
        raise MissingTermError(intercept_term, model.model_order)
    intercept = estimates[intercept_term]

    b = np.zeros(k)
    for i, f in enumerate(factors):
        term = Term.linear(f)
        if term not in estimates:
            raise MissingTermError(term, model.model_order)
        b[i] = estimates[term]

    B = np.zeros((k, k))
    if model.model_order is ModelOrder.QUADRATIC:
        for i, f in enumerate(factors):
            term = Term.squared(f)
            if term not in estimates:
                raise MissingTermError(term, model.model_order)
            B[i, i] = estimates[term] / 2.0

    if model.model_order is not ModelOrder.LINEAR:
        absent = []
        for i, j in itertools.combinations(range(k), 2):
            term = Term.interaction(factors[i], factors[j])
            if term not in estimates:
                absent.append(term.label)
                continue
            B[i, j] = B[j, i] = estimates[term] / 2.0
        if absent and model.model_order is ModelOrder.QUADRATIC:
            warnings.warn(
                f"Interaction terms absent from the model, taken as zero: {', '.join(absent)}",
                RSMWarning,
                stacklevel=2,
            )

    outside = [
        t.label
        for t in estimates
        if t.kind is not TermKind.INTERCEPT and not set(t.factors) <= set(factors)
    ]
    if outside:
        raise ValueError(f"Terms involve factors outside {list(factors)}: {outside}")

    # Every estimate must end up in (intercept, b, B)
    dropped = [
        t.label
        for t in estimates
        if (t.kind is TermKind.SQUARED and model.model_order is not ModelOrder.QUADRATIC)
        or (t.kind is TermKind.INTERACTION and model.model_order is ModelOrder.LINEAR)
    ]
    if dropped:
        raise ValueError(
            f"Terms not allowed in a {model.model_order.value!r} model: {dropped}"
        )

    return QuadraticForm(intercept=intercept, b=b, B=B, factors=factors)
