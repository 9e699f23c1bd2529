"""
Conjugate Wishart draw of the residual precision matrix.

Given residuals U = Y - fitted values (K × T) and a Wishart prior with
degrees of freedom ν0 and scale S0:

    Σ^{-1} | U ~ Wishart(T + ν0, (S0 + U U^T)^{-1})
    Σ      = (Σ^{-1})^{-1}

A flat prior (ν0 = 0, S0 = 0) is valid as long as U U^T is positive
definite, i.e. T ≥ K and the residuals are not collinear.
"""

from typing import NamedTuple, Optional
import numpy as np
from numpy.typing import NDArray

from bvargibbs.exceptions import ConfigurationError, DimensionError
from bvargibbs.linalg import draw_wishart, inverse_pd


class CovarianceDraw(NamedTuple):
    """
    One draw of the residual precision and covariance.

    Attributes
    ----------
    sigma_i : NDArray[np.float64]
        Precision Σ^{-1}, shape (K, K).
    sigma : NDArray[np.float64]
        Covariance Σ, shape (K, K).
    """

    sigma_i: NDArray[np.float64]
    sigma: NDArray[np.float64]


def post_wishart(
    u: NDArray[np.float64],
    df_prior: float,
    scale_prior: Optional[NDArray[np.float64]],
    rng: np.random.Generator,
) -> CovarianceDraw:
    """
    Draw Σ^{-1} from its conjugate Wishart conditional posterior.

    Parameters
    ----------
    u : NDArray[np.float64]
        Residuals, shape (K, T).
    df_prior : float
        Prior degrees of freedom ν0 (>= 0).
    scale_prior : NDArray[np.float64] or None
        Prior scale S0, shape (K, K). None is treated as zeros.
    rng : np.random.Generator
        Random number generator.

    Returns
    -------
    CovarianceDraw
        Σ^{-1} and its inverse Σ, both symmetric positive definite.

    Raises
    ------
    SingularMatrixError
        If S0 + U U^T or the drawn precision is not positive definite.
    """
    u = np.asarray(u, dtype=np.float64)
    if u.ndim != 2:
        raise DimensionError(f"u must be a 2-D matrix. Got shape {u.shape}")
    k, t = u.shape
    if df_prior < 0:
        raise ConfigurationError(f"df_prior must be >= 0. Got {df_prior}")

    if scale_prior is None:
        scale_prior = np.zeros((k, k))
    scale_prior = np.asarray(scale_prior, dtype=np.float64)
    if scale_prior.shape != (k, k):
        raise DimensionError(
            f"scale_prior must have shape ({k}, {k}). Got {scale_prior.shape}"
        )

    scale_post = inverse_pd(scale_prior + u @ u.T, "wishart scale")
    sigma_i = draw_wishart(t + df_prior, scale_post, rng, "wishart scale")
    sigma = inverse_pd(sigma_i, "wishart draw")
    return CovarianceDraw(sigma_i=sigma_i, sigma=sigma)
