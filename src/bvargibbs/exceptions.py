"""
Exception hierarchy for the Gibbs samplers and response transforms.

Every error raised by the package derives from BvarError. The concrete
classes also derive from the builtin (or numpy) exception a caller would
naturally catch, so ``except ValueError`` keeps working for bad inputs and
``except np.linalg.LinAlgError`` for numerical failures.
"""

from typing import Optional
import numpy as np


class BvarError(Exception):
    """Base class for all package errors."""


class DimensionError(BvarError, ValueError):
    """Inputs whose shapes are not conformable."""


class ConfigurationError(BvarError, ValueError):
    """Unsupported option or hyperparameter outside its valid range."""


class SingularMatrixError(BvarError, np.linalg.LinAlgError):
    """
    A matrix failed a definiteness or invertibility check.

    Attributes
    ----------
    operation : str
        Tag of the operation that failed (e.g. "wishart scale").
    """

    def __init__(self, operation: str, detail: Optional[str] = None) -> None:
        self.operation = operation
        self.detail = detail
        message = f"{operation}: matrix is singular or not positive definite"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)

    def __reduce__(self):
        return (self.__class__, (self.operation, self.detail))


class ChainError(BvarError, RuntimeError):
    """
    A Gibbs iteration failed and the chain was aborted.

    The original exception is available as ``__cause__``.

    Attributes
    ----------
    iteration : int
        Zero-based iteration index at which the chain failed.
    sampler : str
        Name of the sampling block that raised.
    chain : int
        Index of the chain.
    """

    def __init__(self, iteration: int, sampler: str, chain: int = 0) -> None:
        self.iteration = iteration
        self.sampler = sampler
        self.chain = chain
        super().__init__(
            f"Chain {chain} failed at iteration {iteration} in the {sampler} sampler"
        )

    def __reduce__(self):
        return (self.__class__, (self.iteration, self.sampler, self.chain))
