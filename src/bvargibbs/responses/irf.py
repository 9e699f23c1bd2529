"""
Impulse responses of VAR posterior draws.

Forecast-error responses follow the moving-average recursion

    Φ_0 = I,    Φ_i = Σ_{j=1}^{min(i, p)} A_j Φ_{i-j}

and are identified through the impact matrix of the requested scheme
(see identification.py): Θ_i = Φ_i M.
"""

from typing import Optional, Union
import numpy as np
from numpy.typing import NDArray

from bvargibbs.exceptions import ConfigurationError, DimensionError
from bvargibbs.linalg import check_square
from bvargibbs.models.draws import BVAR, BVEC, bvec_to_bvar
from bvargibbs.responses.identification import ResponseType, impact_matrix


def check_horizon(horizon: int) -> int:
    if int(horizon) != horizon or horizon < 0:
        raise ConfigurationError(f"horizon must be a non-negative integer. Got {horizon}")
    return int(horizon)


def check_covariance(sigma: NDArray[np.float64], a: NDArray[np.float64]) -> NDArray[np.float64]:
    """Validate that sigma is (K, K) for lag coefficients a of shape (K, K·p)."""
    sigma = np.asarray(sigma, dtype=np.float64)
    k = check_square(sigma, "sigma")
    if k != np.shape(a)[0]:
        raise DimensionError(
            f"sigma of shape {sigma.shape} does not match a of shape {np.shape(a)}"
        )
    return sigma


def ma_coefficients(a: NDArray[np.float64], horizon: int) -> NDArray[np.float64]:
    """
    Forecast-error moving-average coefficients Φ_0..Φ_H.

    Parameters
    ----------
    a : NDArray[np.float64]
        Lag coefficients [A_1, ..., A_p], shape (K, K·p).
    horizon : int
        Last horizon H (>= 0).

    Returns
    -------
    NDArray[np.float64]
        Φ_i stacked on axis 0, shape (H+1, K, K).
    """
    horizon = check_horizon(horizon)
    a = np.asarray(a, dtype=np.float64)
    if a.ndim != 2 or a.shape[0] == 0 or a.shape[1] % a.shape[0] != 0:
        raise DimensionError(
            f"a must have shape (K, K*p). Got {a.shape}"
        )
    k = a.shape[0]
    p = a.shape[1] // k
    lags = a.reshape(k, p, k).transpose(1, 0, 2)  # lags[j-1] = A_j

    phi = np.zeros((horizon + 1, k, k))
    phi[0] = np.eye(k)
    for i in range(1, horizon + 1):
        for j in range(1, min(i, p) + 1):
            phi[i] += lags[j - 1] @ phi[i - j]
    return phi


def impulse_responses(
    a: NDArray[np.float64],
    sigma: NDArray[np.float64],
    horizon: int,
    response_type: Union[str, ResponseType] = ResponseType.FORECAST_ERROR,
    a0: Optional[NDArray[np.float64]] = None,
) -> NDArray[np.float64]:
    """
    Identified impulse responses of one VAR draw.

    Parameters
    ----------
    a : NDArray[np.float64]
        Lag coefficients, shape (K, K·p).
    sigma : NDArray[np.float64]
        Residual covariance, shape (K, K). Structural covariance for the
        structural schemes.
    horizon : int
        Last horizon H (>= 0).
    response_type : str or ResponseType
        "feir", "oir", "sir", "gir" or "sgir".
    a0 : NDArray[np.float64], optional
        Structural matrix A0, required for "sir" and "sgir".

    Returns
    -------
    NDArray[np.float64]
        Responses indexed [response, impulse, horizon], shape (K, K, H+1).
    """
    phi = ma_coefficients(a, horizon)
    sigma = check_covariance(sigma, a)
    theta = phi @ impact_matrix(sigma, response_type, a0)
    return np.moveaxis(theta, 0, -1)


def var_draws(model: Union[BVAR, BVEC], response_type: ResponseType):
    """
    Per-draw (A, Σ, A0) triples of a draw store in the form a scheme needs.

    Lag coefficients are always in reduced form. Structural schemes keep A0
    and the structural Σ; all others use the reduced-form covariance.
    """
    if isinstance(model, BVEC):
        model = bvec_to_bvar(model)
    lag_draws, sigma_draws = model.reduced_form()
    if not response_type.structural:
        return model, lag_draws, sigma_draws, None
    if model.A0 is None:
        raise ConfigurationError(
            f"Response type {response_type.value!r} requires draws of A0"
        )
    return model, lag_draws, model.Sigma, model.A0


class ResponseDraws:
    """Impulse response of one variable to one shock, per posterior draw."""

    def __init__(
        self,
        draws: NDArray[np.float64],
        impulse: str,
        response: str,
        response_type: ResponseType,
        ci: float = 0.95,
    ) -> None:
        """
        Initialize response draws.

        Parameters
        ----------
        draws : NDArray[np.float64]
            Responses, shape (n_draws, H+1).
        impulse : str
            Name of the shocked variable.
        response : str
            Name of the responding variable.
        response_type : ResponseType
            Identification scheme.
        ci : float
            Credible-interval probability mass in (0, 1).
        """
        if not 0.0 < ci < 1.0:
            raise ConfigurationError(f"ci must be in (0, 1). Got {ci}")
        self.draws = draws
        self.impulse = impulse
        self.response = response
        self.response_type = response_type
        self.ci = ci

    @property
    def horizon(self) -> int:
        return self.draws.shape[1] - 1

    def quantiles(self) -> NDArray[np.float64]:
        """Lower bound, median and upper bound per horizon, shape (H+1, 3)."""
        tail = 0.5 * (1.0 - self.ci)
        return np.quantile(self.draws, [tail, 0.5, 1.0 - tail], axis=0).T

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"ResponseDraws(type={self.response_type.value}, impulse={self.impulse!r}, "
            f"response={self.response!r}, draws={self.draws.shape[0]}, horizon={self.horizon})"
        )


def irf(
    model: Union[BVAR, BVEC],
    impulse: Union[int, str],
    response: Union[int, str],
    horizon: int = 5,
    type: Union[str, ResponseType] = "feir",
    ci: float = 0.95,
    shock: float = 1.0,
    cumulative: bool = False,
) -> ResponseDraws:
    """
    Impulse response of `response` to a shock in `impulse` for every draw.

    Parameters
    ----------
    model : BVAR or BVEC
        Frozen draw store. VEC draws are converted to levels-form VARs.
    impulse, response : int or str
        Variables addressed by position or name.
    horizon : int
        Last horizon H (>= 0). Default 5.
    type : str or ResponseType
        Identification scheme. Default "feir".
    ci : float
        Credible-interval probability mass. Default 0.95.
    shock : float
        Size of the shock; responses scale linearly. Default 1.0.
    cumulative : bool
        Accumulate responses over horizons. Default False.

    Returns
    -------
    ResponseDraws
        Per-draw responses of shape (n_draws, H+1).
    """
    response_type = ResponseType.parse(type)
    horizon = check_horizon(horizon)
    var, lag_draws, sigma_draws, a0_draws = var_draws(model, response_type)
    i = var.variable_index(impulse)
    j = var.variable_index(response)

    out = np.empty((var.n_draws, horizon + 1))
    for n in range(var.n_draws):
        a0 = None if a0_draws is None else a0_draws[n]
        theta = impulse_responses(lag_draws[n], sigma_draws[n], horizon, response_type, a0)
        out[n] = theta[j, i]
    out *= shock
    if cumulative:
        out = np.cumsum(out, axis=1)
    return ResponseDraws(out, var.names[i], var.names[j], response_type, ci)
