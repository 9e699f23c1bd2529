"""
Gaussian conditional posterior of stacked VAR coefficients.

For a system y_t = A x_t + u_t with u_t ~ N(0, Σ_t), a = vec(A) and prior
a ~ N(μ0, V0), the conditional posterior given the residual precision is

    a | Σ, y ~ N(ā, V̄)
    V̄^{-1} = V0^{-1} + Σ_t (x_t x_t^T ⊗ Σ_t^{-1})
    ā      = V̄ [V0^{-1} μ0 + vec(Σ_t Σ_t^{-1} y_t x_t^T)]

For constant Σ the sum collapses to (X X^T ⊗ Σ^{-1}) and vec(Σ^{-1} Y X^T).
With a flat prior (V0^{-1} = 0) and constant Σ the posterior precision is a
pure Kronecker product, so the two small factors are decomposed separately:

    chol(X X^T ⊗ Σ^{-1}) = chol(X X^T) ⊗ chol(Σ^{-1})

The seemingly-unrelated-regressions form y_t = Z_t a + u_t with a stacked
(K·T, m) regressor matrix is handled by post_normal_sur.
"""

from typing import NamedTuple, Tuple
import numpy as np
from numpy.typing import NDArray
from scipy.linalg import cho_solve, solve_triangular

from bvargibbs.exceptions import DimensionError
from bvargibbs.linalg import (
    cholesky_lower,
    draw_from_factor,
    kron_matvec,
    kron_precision,
    precision_moments,
    split_precision,
    stacked_cross_moment,
    stacked_kron_precision,
    symmetrize,
    vec,
)

OPERATION = "coefficient posterior precision"


class NormalPosterior(NamedTuple):
    """
    Conditional posterior moments of a coefficient vector.

    Attributes
    ----------
    mean : NDArray[np.float64]
        Posterior mean ā, shape (m,).
    factor : NDArray[np.float64] or Tuple
        Lower Cholesky factor of V̄^{-1}, or the pair of factors
        (chol(X X^T), chol(Σ^{-1})) when the precision is a Kronecker product.
    kronecker : bool
        True if `factor` holds the two Kronecker factors.
    """

    mean: NDArray[np.float64]
    factor: object
    kronecker: bool

    def draw(self, rng: np.random.Generator) -> NDArray[np.float64]:
        """One draw from N(ā, V̄)."""
        if not self.kronecker:
            return draw_from_factor(self.mean, self.factor, rng)
        lx, ls = self.factor
        z = rng.standard_normal((ls.shape[0], lx.shape[0]))
        # (Lx^{-T} ⊗ Ls^{-T}) vec(Z) = vec(Ls^{-T} Z Lx^{-1})
        left = solve_triangular(ls, z, lower=True, trans="T")
        noise = solve_triangular(lx, left.T, lower=True, trans="T").T
        return self.mean + vec(noise)


def _as_matrix(a: NDArray[np.float64], name: str) -> NDArray[np.float64]:
    a = np.asarray(a, dtype=np.float64)
    if a.ndim != 2:
        raise DimensionError(f"{name} must be a 2-D matrix. Got shape {a.shape}")
    return a


def _prior_terms(
    mu_prior: NDArray[np.float64],
    v_i_prior: NDArray[np.float64],
    m: int
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    mu_prior = np.asarray(mu_prior, dtype=np.float64).reshape(-1)
    v_i_prior = np.asarray(v_i_prior, dtype=np.float64)
    if mu_prior.shape != (m,):
        raise DimensionError(
            f"mu_prior must have {m} elements. Got {mu_prior.size}"
        )
    if v_i_prior.shape != (m, m):
        raise DimensionError(
            f"v_i_prior must have shape ({m}, {m}). Got {v_i_prior.shape}"
        )
    return mu_prior, v_i_prior


def normal_posterior(
    y: NDArray[np.float64],
    x: NDArray[np.float64],
    sigma_i: NDArray[np.float64],
    mu_prior: NDArray[np.float64],
    v_i_prior: NDArray[np.float64],
) -> NormalPosterior:
    """
    Conditional posterior moments of a = vec(A) in y = A x + u.

    Parameters
    ----------
    y : NDArray[np.float64]
        Dependent variables, shape (K, T).
    x : NDArray[np.float64]
        Regressors, shape (N, T).
    sigma_i : NDArray[np.float64]
        Residual precision Σ^{-1}, shape (K, K), or stacked time-varying
        precision of shape (K·T, K).
    mu_prior : NDArray[np.float64]
        Prior mean, K·N elements.
    v_i_prior : NDArray[np.float64]
        Prior precision, shape (K·N, K·N). All zeros gives a flat prior.

    Returns
    -------
    NormalPosterior
        Posterior mean and precision factor.

    Raises
    ------
    DimensionError
        If the inputs are not conformable.
    SingularMatrixError
        If the posterior precision is not positive definite.
    """
    y = _as_matrix(y, "y")
    x = _as_matrix(x, "x")
    sigma_i = _as_matrix(sigma_i, "sigma_i")
    k, t = y.shape
    n = x.shape[0]
    if x.shape[1] != t:
        raise DimensionError(
            f"y and x must have the same number of columns. Got {y.shape} and {x.shape}"
        )
    blocks = split_precision(sigma_i, k, t)
    mu_prior, v_i_prior = _prior_terms(mu_prior, v_i_prior, k * n)

    if blocks is None:
        xx = x @ x.T
        if not np.any(v_i_prior):
            lx = cholesky_lower(symmetrize(xx), OPERATION)
            ls = cholesky_lower(symmetrize(sigma_i), OPERATION)
            # ā = vec(Y X^T (X X^T)^{-1})
            mean = vec(cho_solve((lx, True), x @ y.T).T)
            return NormalPosterior(mean=mean, factor=(lx, ls), kronecker=True)
        # vec(Σ^{-1} Y X^T) = (X ⊗ Σ^{-1}) vec(Y)
        data_term = kron_matvec(x, sigma_i, vec(y))
        precision = v_i_prior + kron_precision(xx, sigma_i)
    else:
        data_term = vec(stacked_cross_moment(y, x, blocks))
        precision = v_i_prior + stacked_kron_precision(x, blocks)

    rhs = v_i_prior @ mu_prior + data_term
    mean, L = precision_moments(precision, rhs, OPERATION)
    return NormalPosterior(mean=mean, factor=L, kronecker=False)


def post_normal(
    y: NDArray[np.float64],
    x: NDArray[np.float64],
    sigma_i: NDArray[np.float64],
    mu_prior: NDArray[np.float64],
    v_i_prior: NDArray[np.float64],
    rng: np.random.Generator,
) -> NDArray[np.float64]:
    """
    Draw a = vec(A) from its Gaussian conditional posterior.

    See normal_posterior for the parameters. The draw has K·N elements and
    is ordered column by column of the (K, N) coefficient matrix.
    """
    return normal_posterior(y, x, sigma_i, mu_prior, v_i_prior).draw(rng)


def sur_posterior(
    y: NDArray[np.float64],
    z: NDArray[np.float64],
    sigma_i: NDArray[np.float64],
    mu_prior: NDArray[np.float64],
    v_i_prior: NDArray[np.float64],
) -> NormalPosterior:
    """
    Conditional posterior moments for the stacked form y_t = Z_t a + u_t.

    Parameters
    ----------
    y : NDArray[np.float64]
        Dependent variables, shape (K, T).
    z : NDArray[np.float64]
        Stacked regressors, shape (K·T, m); rows t·K..(t+1)·K - 1 hold Z_t.
    sigma_i : NDArray[np.float64]
        Residual precision, shape (K, K) or (K·T, K).
    mu_prior : NDArray[np.float64]
        Prior mean, m elements.
    v_i_prior : NDArray[np.float64]
        Prior precision, shape (m, m).
    """
    y = _as_matrix(y, "y")
    z = _as_matrix(z, "z")
    sigma_i = _as_matrix(sigma_i, "sigma_i")
    k, t = y.shape
    if z.shape[0] != k * t:
        raise DimensionError(
            f"z must have {k * t} rows (K*T). Got shape {z.shape}"
        )
    m = z.shape[1]
    mu_prior, v_i_prior = _prior_terms(mu_prior, v_i_prior, m)

    zt = z.reshape(t, k, m)
    blocks = split_precision(sigma_i, k, t)
    if blocks is None:
        sz = np.einsum("kl,tlm->tkm", sigma_i, zt)
    else:
        sz = np.einsum("tkl,tlm->tkm", blocks, zt)

    precision = v_i_prior + np.einsum("tki,tkj->ij", zt, sz)
    rhs = v_i_prior @ mu_prior + np.einsum("tki,kt->i", sz, y)
    mean, L = precision_moments(precision, rhs, OPERATION)
    return NormalPosterior(mean=mean, factor=L, kronecker=False)


def post_normal_sur(
    y: NDArray[np.float64],
    z: NDArray[np.float64],
    sigma_i: NDArray[np.float64],
    mu_prior: NDArray[np.float64],
    v_i_prior: NDArray[np.float64],
    rng: np.random.Generator,
) -> NDArray[np.float64]:
    """Draw the coefficient vector of a stacked (SUR) system; see sur_posterior."""
    return sur_posterior(y, z, sigma_i, mu_prior, v_i_prior).draw(rng)


def coefficient_matrix(a: NDArray[np.float64], k: int) -> NDArray[np.float64]:
    """Reshape a stacked coefficient draw into its (K, N) matrix."""
    a = np.asarray(a, dtype=np.float64).reshape(-1)
    if a.size % k != 0:
        raise DimensionError(
            f"Coefficient vector of length {a.size} is not a multiple of K={k}"
        )
    return a.reshape((k, -1), order="F")

