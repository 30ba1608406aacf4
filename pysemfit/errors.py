#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 10:12:31 2026

@author: lukepinkel

Exceptions and warnings raised while specifying and fitting a model.

Hard failures derive from ``SEMError``.  Conditions that still produce a
usable result (iteration budget exhausted, singular information matrix) are
``SEMWarning`` subclasses; they are attached to the ``FitResult`` and
emitted through ``warnings.warn`` instead of being raised.
"""


class SEMError(Exception):
    """Base class for all pysemfit errors."""


class SpecificationError(SEMError, ValueError):
    """Raised when a model description cannot be turned into a model."""


class UnknownVariableError(SpecificationError):

    def __init__(self, name, statement=None):
        self.name = name
        self.statement = statement
        msg = f"Unknown variable '{name}'"
        if statement is not None:
            msg += f" in '{statement}'"
        msg += ": it is neither a latent variable nor an observed variable"
        super().__init__(msg)


class DuplicateParameterError(SpecificationError):

    def __init__(self, lhs, rel, rhs):
        self.lhs, self.rel, self.rhs = lhs, rel, rhs
        super().__init__(f"Parameter '{lhs} {rel} {rhs}' is declared more "
                         "than once with conflicting modifiers")


class VariableMismatchError(SpecificationError):

    def __init__(self, missing=(), extra=()):
        self.missing = tuple(missing)
        self.extra = tuple(extra)
        parts = []
        if self.missing:
            parts.append("in the model but not in the sample: "
                         + ", ".join(self.missing))
        if self.extra:
            parts.append("in the sample but not in the model: "
                         + ", ".join(self.extra))
        super().__init__("Observed variables do not match; " + "; ".join(parts))


class IdentificationError(SpecificationError):

    def __init__(self, message, variables=()):
        self.variables = tuple(variables)
        super().__init__(message)


class UnderidentifiedModelError(IdentificationError):

    def __init__(self, df, n_moments, n_free):
        self.df, self.n_moments, self.n_free = df, n_moments, n_free
        super().__init__(f"Model is underidentified: {n_free} free parameters "
                         f"but only {n_moments} sample moments (df={df})")


class NumericalError(SEMError, ArithmeticError):
    """Base class for numerical failures during estimation."""


class SingularStructuralMatrix(NumericalError):

    def __init__(self, rcond, tol):
        self.rcond, self.tol = rcond, tol
        super().__init__(f"I - B is numerically singular (rcond={rcond:.3e} "
                         f"< {tol:.1e})")


class OptimizationFailure(NumericalError):

    def __init__(self, message, iteration=None, names=()):
        self.iteration = iteration
        self.names = tuple(names)
        if iteration is not None:
            message = f"{message} (iteration {iteration})"
        super().__init__(message)


class SEMWarning(UserWarning):
    """Base class for non-fatal conditions attached to a fit result."""


class NonConvergence(SEMWarning):

    def __init__(self, message, n_iter=None):
        self.n_iter = n_iter
        super().__init__(message)


class SingularInformationMatrix(SEMWarning):

    def __init__(self, message, parameters=()):
        self.parameters = tuple(parameters)
        super().__init__(message)
