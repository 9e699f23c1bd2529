"""
Forecast error variance decompositions.

The share of the (h+1)-step forecast error variance of variable j that is
due to shock k:

    ω_{jk,h} = Σ_{i=0}^{h} (e_j^T Θ_i e_k)² / MSE_j(h)

For the orthogonal schemes (feir, oir, sir) MSE_j(h) is the sum of the
numerators over k, so each row sums to one. For the generalised schemes
(gir, sgir) Θ_i already carries the 1/σ_kk scaling of Pesaran and Shin and

    MSE_j(h) = Σ_{i=0}^{h} e_j^T Φ_i Σ_u Φ_i^T e_j

whose rows need not sum to one unless normalised.
"""

from typing import Optional, Union
import numpy as np
from numpy.typing import NDArray

from bvargibbs.models.draws import BVAR, BVEC
from bvargibbs.responses.identification import (
    ResponseType,
    impact_matrix,
    residual_covariance,
)
from bvargibbs.responses.irf import check_covariance, check_horizon, ma_coefficients, var_draws


def variance_decomposition(
    a: NDArray[np.float64],
    sigma: NDArray[np.float64],
    horizon: int,
    response_type: Union[str, ResponseType] = ResponseType.ORTHOGONALISED,
    a0: Optional[NDArray[np.float64]] = None,
    normalise_gir: bool = False,
) -> NDArray[np.float64]:
    """
    FEVD tensor of one VAR draw.

    Parameters
    ----------
    a : NDArray[np.float64]
        Lag coefficients, shape (K, K·p).
    sigma : NDArray[np.float64]
        Residual covariance (structural for "sir"/"sgir"), shape (K, K).
    horizon : int
        Last horizon H (>= 0).
    response_type : str or ResponseType
        Identification scheme. Default "oir".
    a0 : NDArray[np.float64], optional
        Structural matrix A0, required for "sir" and "sgir".
    normalise_gir : bool
        Rescale generalised decompositions so each row sums to one.

    Returns
    -------
    NDArray[np.float64]
        Shares indexed [response, horizon, impulse], shape (K, H+1, K).
    """
    response_type = ResponseType.parse(response_type)
    phi = ma_coefficients(a, horizon)
    sigma = check_covariance(sigma, a)
    theta = phi @ impact_matrix(sigma, response_type, a0)

    # numerator[h, j, k] = Σ_{i<=h} Θ_i[j, k]²
    numerator = np.cumsum(theta ** 2, axis=0)
    if response_type.generalised:
        sigma_u = residual_covariance(sigma, response_type, a0)
        mse = np.cumsum(np.einsum("hjk,kl,hjl->hj", phi, sigma_u, phi), axis=0)
    else:
        mse = numerator.sum(axis=2)
    shares = numerator / mse[:, :, None]

    if response_type.generalised and normalise_gir:
        shares = shares / shares.sum(axis=2, keepdims=True)
    return shares.transpose(1, 0, 2)


class DecompositionDraws:
    """Forecast error variance decomposition of one variable, per draw."""

    def __init__(
        self,
        draws: NDArray[np.float64],
        response: str,
        impulses: list,
        response_type: ResponseType,
    ) -> None:
        self.draws = draws
        self.response = response
        self.impulses = impulses
        self.response_type = response_type

    @property
    def horizon(self) -> int:
        return self.draws.shape[1] - 1

    def mean(self) -> NDArray[np.float64]:
        """Posterior mean shares, shape (H+1, K)."""
        return self.draws.mean(axis=0)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"DecompositionDraws(type={self.response_type.value}, response={self.response!r}, "
            f"draws={self.draws.shape[0]}, horizon={self.horizon})"
        )


def fevd(
    model: Union[BVAR, BVEC],
    response: Union[int, str],
    horizon: int = 5,
    type: Union[str, ResponseType] = "oir",
    normalise_gir: bool = False,
) -> DecompositionDraws:
    """
    Forecast error variance decomposition of `response` for every draw.

    Parameters
    ----------
    model : BVAR or BVEC
        Frozen draw store. VEC draws are converted to levels-form VARs.
    response : int or str
        Variable addressed by position or name.
    horizon : int
        Last horizon H (>= 0). Default 5.
    type : str or ResponseType
        Identification scheme. Default "oir".
    normalise_gir : bool
        Rescale generalised shares to sum to one. Default False.

    Returns
    -------
    DecompositionDraws
        Per-draw shares of shape (n_draws, H+1, K).
    """
    response_type = ResponseType.parse(type)
    horizon = check_horizon(horizon)
    var, lag_draws, sigma_draws, a0_draws = var_draws(model, response_type)
    j = var.variable_index(response)

    out = np.empty((var.n_draws, horizon + 1, var.k))
    for n in range(var.n_draws):
        a0 = None if a0_draws is None else a0_draws[n]
        shares = variance_decomposition(
            lag_draws[n], sigma_draws[n], horizon, response_type, a0, normalise_gir
        )
        out[n] = shares[j]
    return DecompositionDraws(out, var.names[j], list(var.names), response_type)
