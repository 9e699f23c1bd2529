"""
Identification schemes for impulse responses.

Each response type maps the forecast-error responses Φ_i to identified
responses Θ_i = Φ_i M through an impact matrix M:

    feir   M = I
    oir    M = P,                      Σ = P P^T (lower Cholesky)
    sir    M = A0^{-1} Σ^{1/2}         (Σ structural)
    gir    M = Σ D^{-1/2},             D = diag(Σ)
    sgir   M = A0^{-1} Σ D^{-1/2}      (Σ structural)

The generalised variants follow Pesaran and Shin (1998): column k is the
response to a one standard deviation shock in variable k, integrating out
the other shocks with their historical correlation.
"""

from enum import Enum
from typing import Callable, Dict, Optional, Union
import numpy as np
from numpy.typing import NDArray
from scipy.linalg import inv

from bvargibbs.exceptions import ConfigurationError, DimensionError, SingularMatrixError
from bvargibbs.linalg import check_square, cholesky_lower, sqrtm_psd, symmetrize


class ResponseType(str, Enum):
    """Identification scheme of an impulse response."""

    FORECAST_ERROR = "feir"
    ORTHOGONALISED = "oir"
    STRUCTURAL = "sir"
    GENERALISED = "gir"
    STRUCTURAL_GENERALISED = "sgir"

    @classmethod
    def parse(cls, value: Union[str, "ResponseType"]) -> "ResponseType":
        """Convert a tag such as "oir" into a ResponseType."""
        try:
            return cls(value)
        except ValueError:
            tags = ", ".join(repr(member.value) for member in cls)
            raise ConfigurationError(
                f"Unknown response type {value!r}. Expected one of {tags}"
            ) from None

    @property
    def structural(self) -> bool:
        """True if the scheme requires the contemporaneous matrix A0."""
        return self in (ResponseType.STRUCTURAL, ResponseType.STRUCTURAL_GENERALISED)

    @property
    def generalised(self) -> bool:
        """True for the Pesaran-Shin generalised schemes."""
        return self in (ResponseType.GENERALISED, ResponseType.STRUCTURAL_GENERALISED)


def a0_inverse(a0: NDArray[np.float64]) -> NDArray[np.float64]:
    """Inverse of the structural matrix A0."""
    a0 = np.asarray(a0, dtype=np.float64)
    check_square(a0, "a0")
    if not np.all(np.isfinite(a0)) or np.linalg.cond(a0) > 1.0 / np.finfo(np.float64).eps:
        raise SingularMatrixError("a0 inverse", "matrix is singular to working precision")
    try:
        return inv(a0)
    except np.linalg.LinAlgError as exc:
        raise SingularMatrixError("a0 inverse", str(exc)) from exc


def residual_covariance(
    sigma: NDArray[np.float64],
    response_type: ResponseType,
    a0: Optional[NDArray[np.float64]] = None
) -> NDArray[np.float64]:
    """
    Reduced-form residual covariance Σ_u implied by the scheme.

    For structural schemes Σ_u = A0^{-1} Σ A0^{-T}; otherwise Σ itself.
    """
    if not response_type.structural:
        return sigma
    a0_i = a0_inverse(a0)
    return symmetrize(a0_i @ sigma @ a0_i.T)


def _scale_by_sd(sigma: NDArray[np.float64]) -> NDArray[np.float64]:
    cholesky_lower(sigma, "residual covariance")
    return sigma / np.sqrt(np.diag(sigma))


def _feir(sigma, a0):
    return np.eye(sigma.shape[0])


def _oir(sigma, a0):
    return cholesky_lower(sigma, "residual covariance")


def _sir(sigma, a0):
    return a0_inverse(a0) @ sqrtm_psd(sigma, "structural covariance")


def _gir(sigma, a0):
    return _scale_by_sd(sigma)


def _sgir(sigma, a0):
    return a0_inverse(a0) @ _scale_by_sd(sigma)


IMPACT_MATRICES: Dict[ResponseType, Callable] = {
    ResponseType.FORECAST_ERROR: _feir,
    ResponseType.ORTHOGONALISED: _oir,
    ResponseType.STRUCTURAL: _sir,
    ResponseType.GENERALISED: _gir,
    ResponseType.STRUCTURAL_GENERALISED: _sgir,
}


def impact_matrix(
    sigma: NDArray[np.float64],
    response_type: Union[str, ResponseType],
    a0: Optional[NDArray[np.float64]] = None
) -> NDArray[np.float64]:
    """
    Impact matrix M of an identification scheme.

    Parameters
    ----------
    sigma : NDArray[np.float64]
        Residual covariance, shape (K, K). Structural covariance for the
        structural schemes.
    response_type : str or ResponseType
        One of "feir", "oir", "sir", "gir", "sgir".
    a0 : NDArray[np.float64], optional
        Contemporaneous structural matrix, shape (K, K). Required for
        "sir" and "sgir".

    Returns
    -------
    NDArray[np.float64]
        Impact matrix, shape (K, K).

    Raises
    ------
    ConfigurationError
        If the type is unknown or a structural type lacks a0.
    SingularMatrixError
        If Σ is not positive definite or A0 is singular.
    """
    response_type = ResponseType.parse(response_type)
    sigma = np.asarray(sigma, dtype=np.float64)
    k = check_square(sigma, "sigma")
    if response_type.structural:
        if a0 is None:
            raise ConfigurationError(
                f"Response type {response_type.value!r} requires the structural matrix a0"
            )
        a0 = np.asarray(a0, dtype=np.float64)
        if a0.shape != (k, k):
            raise DimensionError(f"a0 must have shape ({k}, {k}). Got {a0.shape}")
    return IMPACT_MATRICES[response_type](sigma, a0)
