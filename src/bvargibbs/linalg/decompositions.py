"""
Factorisations of symmetric positive (semi-)definite matrices.

All samplers reach their matrix factorisations through this module so that a
definiteness failure always surfaces as SingularMatrixError carrying the tag
of the operation that produced the matrix:

    A = L L^T                  # Cholesky, L lower triangular
    A^{1/2}  = V diag(√w) V^T  # symmetric square root from A = V diag(w) V^T
    A^{-1/2} = V diag(1/√w) V^T
"""

from typing import Tuple
import numpy as np
from numpy.typing import NDArray
from scipy.linalg import cho_solve, cholesky, eigh

from bvargibbs.exceptions import DimensionError, SingularMatrixError


def check_square(a: NDArray[np.float64], name: str) -> int:
    """Return the dimension of a square matrix or raise DimensionError."""
    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise DimensionError(f"{name} must be a square matrix. Got shape {a.shape}")
    return a.shape[0]


def symmetrize(a: NDArray[np.float64]) -> NDArray[np.float64]:
    """Average a matrix with its transpose to remove rounding asymmetry."""
    return 0.5 * (a + a.T)


def cholesky_lower(
    a: NDArray[np.float64],
    operation: str = "cholesky"
) -> NDArray[np.float64]:
    """
    Lower Cholesky factor of a symmetric positive definite matrix.

    Parameters
    ----------
    a : NDArray[np.float64]
        Symmetric matrix, shape (n, n).
    operation : str
        Tag reported if the factorisation fails.

    Returns
    -------
    NDArray[np.float64]
        Lower triangular L with a = L L^T.

    Raises
    ------
    SingularMatrixError
        If a is not positive definite or contains non-finite values.
    """
    check_square(a, operation)
    try:
        return cholesky(a, lower=True)
    except np.linalg.LinAlgError as exc:
        raise SingularMatrixError(operation, str(exc)) from exc
    except ValueError as exc:
        # scipy raises ValueError for NaN/inf entries
        raise SingularMatrixError(operation, str(exc)) from exc


def inverse_pd(
    a: NDArray[np.float64],
    operation: str = "inverse"
) -> NDArray[np.float64]:
    """
    Inverse of a symmetric positive definite matrix via its Cholesky factor.

    The result is symmetrised before it is returned.
    """
    L = cholesky_lower(a, operation)
    inv = cho_solve((L, True), np.eye(a.shape[0]))
    return symmetrize(inv)


def _eigen(a: NDArray[np.float64], operation: str) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    check_square(a, operation)
    if not np.all(np.isfinite(a)):
        raise SingularMatrixError(operation, "non-finite entries")
    return eigh(symmetrize(a))


def _tolerance(w: NDArray[np.float64]) -> float:
    return float(np.max(np.abs(w), initial=0.0) * len(w) * np.finfo(np.float64).eps)


def sqrtm_psd(
    a: NDArray[np.float64],
    operation: str = "matrix square root"
) -> NDArray[np.float64]:
    """
    Symmetric square root of a positive semi-definite matrix.

    Eigenvalues within rounding of zero are clipped to zero; clearly
    negative eigenvalues raise SingularMatrixError.
    """
    w, v = _eigen(a, operation)
    if np.any(w < -_tolerance(w)):
        raise SingularMatrixError(operation, f"negative eigenvalue {w.min():.3g}")
    w = np.clip(w, 0.0, None)
    return symmetrize((v * np.sqrt(w)) @ v.T)


def inv_sqrtm_pd(
    a: NDArray[np.float64],
    operation: str = "inverse matrix square root"
) -> NDArray[np.float64]:
    """
    Symmetric inverse square root a^{-1/2} of a positive definite matrix.

    Raises
    ------
    SingularMatrixError
        If any eigenvalue is not strictly positive.
    """
    w, v = _eigen(a, operation)
    if w.size == 0:
        raise SingularMatrixError(operation, "empty matrix")
    if np.any(w <= _tolerance(w)):
        raise SingularMatrixError(operation, f"smallest eigenvalue {w.min():.3g}")
    return symmetrize((v / np.sqrt(w)) @ v.T)

