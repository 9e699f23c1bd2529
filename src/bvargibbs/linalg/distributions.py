"""
Sampling primitives: Gaussians in precision form and the Wishart.

Conditional posteriors of linear systems come out in canonical form, with a
precision matrix Q and a linear term b:

    x ~ N(Q^{-1} b, Q^{-1})

With Q = L L^T (L lower triangular) a draw is

    x = Q^{-1} b + L^{-T} z,   z ~ N(0, I)

which never inverts Q explicitly.
"""

from typing import Tuple
import numpy as np
from numpy.typing import NDArray
from scipy.linalg import cho_solve, solve_triangular
from scipy.stats import wishart

from bvargibbs.exceptions import ConfigurationError, DimensionError
from bvargibbs.linalg.decompositions import check_square, cholesky_lower, symmetrize


def precision_moments(
    precision: NDArray[np.float64],
    rhs: NDArray[np.float64],
    operation: str = "posterior precision"
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Mean and Cholesky factor of a Gaussian in canonical form.

    Parameters
    ----------
    precision : NDArray[np.float64]
        Precision matrix Q, shape (m, m).
    rhs : NDArray[np.float64]
        Linear term b, shape (m,).
    operation : str
        Tag reported if Q is not positive definite.

    Returns
    -------
    mean : NDArray[np.float64]
        Q^{-1} b, shape (m,).
    factor : NDArray[np.float64]
        Lower Cholesky factor L of Q.
    """
    m = check_square(precision, operation)
    rhs = np.asarray(rhs, dtype=np.float64).reshape(-1)
    if rhs.size != m:
        raise DimensionError(
            f"{operation}: linear term of length {rhs.size} does not match "
            f"precision of shape {precision.shape}"
        )
    L = cholesky_lower(symmetrize(precision), operation)
    mean = cho_solve((L, True), rhs)
    return mean, L


def draw_from_factor(
    mean: NDArray[np.float64],
    factor: NDArray[np.float64],
    rng: np.random.Generator
) -> NDArray[np.float64]:
    """Draw mean + L^{-T} z for a precision factor L."""
    z = rng.standard_normal(mean.shape[0])
    return mean + solve_triangular(factor, z, lower=True, trans="T")


def draw_normal_from_precision(
    precision: NDArray[np.float64],
    rhs: NDArray[np.float64],
    rng: np.random.Generator,
    operation: str = "posterior precision"
) -> NDArray[np.float64]:
    """One draw from N(Q^{-1} b, Q^{-1})."""
    mean, L = precision_moments(precision, rhs, operation)
    return draw_from_factor(mean, L, rng)


def draw_wishart(
    df: float,
    scale: NDArray[np.float64],
    rng: np.random.Generator,
    operation: str = "wishart scale"
) -> NDArray[np.float64]:
    """
    One draw from a Wishart distribution W(df, scale).

    Parameters
    ----------
    df : float
        Degrees of freedom, must exceed K - 1.
    scale : NDArray[np.float64]
        Positive definite scale matrix, shape (K, K).
    rng : np.random.Generator
        Random number generator.

    Returns
    -------
    NDArray[np.float64]
        Symmetric positive definite draw, shape (K, K).
    """
    k = check_square(scale, operation)
    if df <= k - 1:
        raise ConfigurationError(
            f"Wishart degrees of freedom must exceed {k - 1}. Got {df}"
        )
    cholesky_lower(scale, operation)
    draw = wishart(df=df, scale=scale).rvs(random_state=rng)
    return symmetrize(np.atleast_2d(draw))
