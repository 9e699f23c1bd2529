"""
Kronecker-structured products for stacked VAR coefficient vectors.

Coefficients of a system y = A x + u with A of shape (K, N) are stacked
column by column, a = vec(A). The Gaussian likelihood then involves the
Kronecker product (x x^T ⊗ Σ^{-1}), which is applied here through the
identity

    (L ⊗ R) vec(M) = vec(R M L^T)

instead of being formed explicitly whenever only a product is needed.

Residual precision is accepted either as a constant (K, K) matrix or in
stacked form, a (K·T, K) array whose t-th (K, K) block is Σ_t^{-1}.
"""

from typing import Optional
import numpy as np
from numpy.typing import NDArray

from bvargibbs.exceptions import DimensionError


def vec(m: NDArray[np.float64]) -> NDArray[np.float64]:
    """Column-major vectorisation of a matrix."""
    return np.asarray(m, dtype=np.float64).reshape(-1, order="F")


def unvec(v: NDArray[np.float64], rows: int) -> NDArray[np.float64]:
    """Inverse of vec: reshape a vector into a matrix with `rows` rows."""
    v = np.asarray(v, dtype=np.float64).reshape(-1)
    if rows <= 0 or v.size % rows != 0:
        raise DimensionError(
            f"Cannot reshape vector of length {v.size} into a matrix with {rows} rows"
        )
    return v.reshape((rows, -1), order="F")


def kron_matvec(
    left: NDArray[np.float64],
    right: NDArray[np.float64],
    v: NDArray[np.float64]
) -> NDArray[np.float64]:
    """
    Compute (left ⊗ right) @ v without forming the Kronecker product.

    Parameters
    ----------
    left : NDArray[np.float64]
        Matrix of shape (p, q).
    right : NDArray[np.float64]
        Matrix of shape (r, s).
    v : NDArray[np.float64]
        Vector of length q·s.

    Returns
    -------
    NDArray[np.float64]
        Vector of length p·r.
    """
    q = left.shape[1]
    s = right.shape[1]
    if v.size != q * s:
        raise DimensionError(
            f"Vector of length {v.size} does not conform with Kronecker factors "
            f"{left.shape} and {right.shape}"
        )
    return vec(right @ unvec(v, s) @ left.T)


def kron_precision(
    xx: NDArray[np.float64],
    sigma_i: NDArray[np.float64]
) -> NDArray[np.float64]:
    """Dense likelihood precision (x x^T ⊗ Σ^{-1}) for constant Σ."""
    return np.kron(xx, sigma_i)


def split_precision(
    sigma_i: NDArray[np.float64],
    k: int,
    t: int
) -> Optional[NDArray[np.float64]]:
    """
    Validate a residual precision argument.

    Returns
    -------
    NDArray[np.float64] or None
        None when sigma_i is a constant (K, K) matrix, otherwise the
        time-varying blocks as an array of shape (T, K, K).

    Raises
    ------
    DimensionError
        If sigma_i is neither (K, K) nor (K·T, K).
    """
    if sigma_i.shape == (k, k):
        return None
    if sigma_i.shape == (k * t, k):
        return sigma_i.reshape(t, k, k)
    raise DimensionError(
        f"sigma_i must have shape ({k}, {k}) or ({k * t}, {k}). Got {sigma_i.shape}"
    )


def mean_precision(sigma_i: NDArray[np.float64], k: int) -> NDArray[np.float64]:
    """Time average of a stacked (K·T, K) precision; (K, K) input is returned as is."""
    if sigma_i.shape == (k, k):
        return sigma_i
    if sigma_i.ndim != 2 or sigma_i.shape[1] != k or sigma_i.shape[0] % k != 0:
        raise DimensionError(
            f"sigma_i must have shape ({k}, {k}) or (K*T, {k}). Got {sigma_i.shape}"
        )
    return sigma_i.reshape(-1, k, k).mean(axis=0)


def stacked_kron_precision(
    x: NDArray[np.float64],
    blocks: NDArray[np.float64]
) -> NDArray[np.float64]:
    """
    Sum over t of (x_t x_t^T ⊗ Σ_t^{-1}).

    Parameters
    ----------
    x : NDArray[np.float64]
        Regressors, shape (N, T).
    blocks : NDArray[np.float64]
        Precision blocks, shape (T, K, K).

    Returns
    -------
    NDArray[np.float64]
        Precision of shape (N·K, N·K) ordered like vec of a (K, N) matrix.
    """
    n = x.shape[0]
    k = blocks.shape[1]
    return np.einsum("it,jt,tkl->ikjl", x, x, blocks).reshape(n * k, n * k)


def stacked_cross_moment(
    y: NDArray[np.float64],
    x: NDArray[np.float64],
    blocks: NDArray[np.float64]
) -> NDArray[np.float64]:
    """Sum over t of Σ_t^{-1} y_t x_t^T, shape (K, N)."""
    return np.einsum("tkl,lt,it->ki", blocks, y, x)
