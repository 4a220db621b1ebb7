"""
Structured regression terms.

A fitted response-surface model is a list of ``(Term, estimate)`` pairs.
Terms carry their kind and the factors they involve, so the analysis code
never has to recognise a term from its printed label.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import Enum

import numpy as np


class TermKind(Enum):
    """Kinds of terms in a second-order polynomial."""

    INTERCEPT = "intercept"
    LINEAR = "linear"
    SQUARED = "squared"
    INTERACTION = "interaction"


@dataclass(frozen=True)
class Term:
    """
    A single polynomial term.

    Parameters
    ----------
    kind : TermKind
        Kind of term.
    factors : tuple of str
        Factors involved: none for the intercept, one for linear and
        squared terms, two for interactions.  Interaction pairs are
        unordered; use :meth:`interaction` to build them.
    """

    kind: TermKind
    factors: tuple[str, ...] = ()

    def __post_init__(self):
        expected = {
            TermKind.INTERCEPT: 0,
            TermKind.LINEAR: 1,
            TermKind.SQUARED: 1,
            TermKind.INTERACTION: 2,
        }[self.kind]
        if len(self.factors) != expected:
            raise ValueError(
                f"{self.kind.value} term takes {expected} factor(s), got {len(self.factors)}"
            )
        if self.kind is TermKind.INTERACTION and self.factors[0] == self.factors[1]:
            raise ValueError(
                f"Interaction of {self.factors[0]!r} with itself; use Term.squared instead"
            )

    # -- constructors -----------------------------------------------------

    @classmethod
    def intercept(cls) -> Term:
        return cls(TermKind.INTERCEPT)

    @classmethod
    def linear(cls, factor: str) -> Term:
        return cls(TermKind.LINEAR, (factor,))

    @classmethod
    def squared(cls, factor: str) -> Term:
        return cls(TermKind.SQUARED, (factor,))

    @classmethod
    def interaction(cls, first: str, second: str) -> Term:
        # Sorted so that interaction(a, b) == interaction(b, a)
        return cls(TermKind.INTERACTION, tuple(sorted((first, second))))

    # -- helpers ----------------------------------------------------------

    @property
    def label(self) -> str:
        """Display label, e.g. ``"P"``, ``"P^2"`` or ``"P*S"``."""
        if self.kind is TermKind.INTERCEPT:
            return "intercept"
        if self.kind is TermKind.LINEAR:
            return self.factors[0]
        if self.kind is TermKind.SQUARED:
            return f"{self.factors[0]}^2"
        return f"{self.factors[0]}*{self.factors[1]}"

    def involves(self, factor: str) -> bool:
        return factor in self.factors

    def evaluate(self, X: np.ndarray, factors: list[str] | tuple[str, ...]) -> np.ndarray:
        """
        Evaluate the term on coded design points.

        Parameters
        ----------
        X : np.ndarray of shape (n, k)
            Coded factor values, columns ordered as *factors*.
        factors : sequence of str
            Factor names giving the column order of *X*.

        Returns
        -------
        column : np.ndarray of shape (n,)
        """
        X = np.asarray(X, dtype=float)
        if self.kind is TermKind.INTERCEPT:
            return np.ones(X.shape[0])
        idx = [list(factors).index(f) for f in self.factors]
        if self.kind is TermKind.LINEAR:
            return X[:, idx[0]]
        if self.kind is TermKind.SQUARED:
            return X[:, idx[0]] ** 2
        return X[:, idx[0]] * X[:, idx[1]]

    def __str__(self) -> str:
        return self.label


def build_terms(factors: list[str] | tuple[str, ...], order: str) -> list[Term]:
    """
    Build the ordered term list for a model order.

    The order is intercept, linear terms, squared terms (quadratic only),
    then interactions in ``itertools.combinations`` order.

    Parameters
    ----------
    factors : sequence of str
        Factor names.
    order : str
        ``"linear"``, ``"linear_with_interaction"`` or ``"quadratic"``.

    Returns
    -------
    terms : list of Term
    """
    terms = [Term.intercept()]
    terms.extend(Term.linear(f) for f in factors)
    if order == "quadratic":
        terms.extend(Term.squared(f) for f in factors)
    if order in ("quadratic", "linear_with_interaction"):
        terms.extend(Term.interaction(f, g) for f, g in itertools.combinations(factors, 2))
    return terms
