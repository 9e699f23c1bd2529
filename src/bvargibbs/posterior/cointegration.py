"""
Cointegration-space sampler for vector error correction models.

The VEC system

    Δy_t = α β^T w_t + Γ x_t + u_t,    Π = α β^T

is sampled with the Koop-León-González-Strachan parameterisation. The
prior on the cointegration space is centred on P_τ and governed by a scalar
shrinkage precision v^{-1}:

    vec(α)  ~ N(0, [v^{-1} (β^T P_τ^{-1} β) ⊗ G^{-1}]^{-1})
    vec(B)  ~ N(0, [(A^T G^{-1} A) ⊗ v^{-1} P_τ^{-1}]^{-1})

where A = α (α^T α)^{-1/2} and B is the unrestricted counterpart of β. After
B is drawn, the factorisation is renormalised

    β = B (B^T B)^{-1/2},    α = A (B^T B)^{1/2}

so Π = A B^T is unchanged while β^T β = I_r.

Stacked (K·T, K) residual precision is reduced to its time average for the
α and β blocks; the Γ block uses the full time-varying form.
"""

from typing import NamedTuple, Optional, Tuple
import numpy as np
from numpy.typing import NDArray

from bvargibbs.exceptions import ConfigurationError, DimensionError
from bvargibbs.linalg import (
    draw_normal_from_precision,
    inv_sqrtm_pd,
    mean_precision,
    sqrtm_psd,
    split_precision,
    unvec,
    vec,
)
from bvargibbs.posterior.coefficients import coefficient_matrix, post_normal

OPERATION = "cointegration posterior precision"


class CointegrationDraw(NamedTuple):
    """
    One draw of the error correction parameters.

    Attributes
    ----------
    alpha : NDArray[np.float64]
        Loading matrix α, shape (K, r).
    beta : NDArray[np.float64]
        Cointegration matrix β with β^T β = I_r, shape (M, r).
    pi : NDArray[np.float64]
        Π = α β^T, shape (K, M).
    gamma : NDArray[np.float64] or None
        Non-cointegration coefficients Γ, shape (K, N), or None without x.
    """

    alpha: NDArray[np.float64]
    beta: NDArray[np.float64]
    pi: NDArray[np.float64]
    gamma: Optional[NDArray[np.float64]]


def _validate_inputs(
    y: NDArray[np.float64],
    beta: NDArray[np.float64],
    w: NDArray[np.float64],
    x: Optional[NDArray[np.float64]],
) -> Tuple[int, int, int, int]:
    if y.ndim != 2 or w.ndim != 2 or beta.ndim != 2:
        raise DimensionError(
            f"y, w and beta must be 2-D matrices. Got shapes {y.shape}, {w.shape}, {beta.shape}"
        )
    k, t = y.shape
    m = w.shape[0]
    if w.shape[1] != t:
        raise DimensionError(
            f"w must have {t} columns to match y. Got shape {w.shape}"
        )
    if beta.shape[0] != m:
        raise DimensionError(
            f"beta must have {m} rows to match w. Got shape {beta.shape}"
        )
    r = beta.shape[1]
    if not 0 < r <= min(k, m):
        raise ConfigurationError(
            f"Cointegration rank must satisfy 0 < r <= min(K, M) = {min(k, m)}. Got {r}"
        )
    if x is not None and (x.ndim != 2 or x.shape[1] != t):
        raise DimensionError(
            f"x must be a 2-D matrix with {t} columns. Got shape {x.shape}"
        )
    return k, t, m, r


def _square_prior(
    value: Optional[NDArray[np.float64]],
    size: int,
    name: str,
    default: NDArray[np.float64]
) -> NDArray[np.float64]:
    if value is None:
        return default
    value = np.asarray(value, dtype=np.float64)
    if value.shape != (size, size):
        raise DimensionError(
            f"{name} must have shape ({size}, {size}). Got {value.shape}"
        )
    return value


def _gamma_prior(
    mu: Optional[NDArray[np.float64]],
    v_i: Optional[NDArray[np.float64]],
    size: int
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    mu = np.zeros(size) if mu is None else np.asarray(mu, dtype=np.float64).reshape(-1)
    v_i = np.zeros((size, size)) if v_i is None else np.asarray(v_i, dtype=np.float64)
    if mu.shape != (size,) or v_i.shape != (size, size):
        raise DimensionError(
            f"Gamma prior must have mean of length {size} and precision of shape "
            f"({size}, {size}). Got {mu.shape} and {v_i.shape}"
        )
    return mu, v_i


def _alpha_prior_precision(
    beta: NDArray[np.float64],
    v_i: float,
    p_tau_i: NDArray[np.float64],
    g_i: NDArray[np.float64]
) -> NDArray[np.float64]:
    return v_i * np.kron(beta.T @ p_tau_i @ beta, g_i)


def _draw_beta(
    y_res: NDArray[np.float64],
    w: NDArray[np.float64],
    alpha: NDArray[np.float64],
    sigma_i: NDArray[np.float64],
    v_i: float,
    p_tau_i: NDArray[np.float64],
    g_i: NDArray[np.float64],
    rng: np.random.Generator
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Draw β through the rotated B and renormalise (α, β)."""
    m = w.shape[0]
    a = alpha @ inv_sqrtm_pd(alpha.T @ alpha, "alpha'alpha")
    precision = (
        np.kron(a.T @ g_i @ a, v_i * p_tau_i)
        + np.kron(a.T @ sigma_i @ a, w @ w.T)
    )
    rhs = vec(w @ y_res.T @ sigma_i @ a)
    b = unvec(draw_normal_from_precision(precision, rhs, rng, OPERATION), m)

    btb = b.T @ b
    beta = b @ inv_sqrtm_pd(btb, "B'B")
    alpha = a @ sqrtm_psd(btb, "B'B")
    return alpha, beta


def post_coint_kls(
    y: NDArray[np.float64],
    beta: NDArray[np.float64],
    w: NDArray[np.float64],
    sigma_i: NDArray[np.float64],
    v_i: float,
    p_tau_i: Optional[NDArray[np.float64]],
    g_i: Optional[NDArray[np.float64]],
    rng: np.random.Generator,
    x: Optional[NDArray[np.float64]] = None,
    gamma_mu_prior: Optional[NDArray[np.float64]] = None,
    gamma_v_i_prior: Optional[NDArray[np.float64]] = None,
    alpha: Optional[NDArray[np.float64]] = None,
) -> CointegrationDraw:
    """
    Draw (α, β, Π, Γ) of a VEC model given the residual precision.

    Parameters
    ----------
    y : NDArray[np.float64]
        Differenced dependent variables, shape (K, T).
    beta : NDArray[np.float64]
        Current cointegration matrix, shape (M, r).
    w : NDArray[np.float64]
        Regressors of the error correction term, shape (M, T).
    sigma_i : NDArray[np.float64]
        Residual precision, shape (K, K) or stacked (K·T, K).
    v_i : float
        Shrinkage precision v^{-1} of the cointegration space. 0 gives a
        flat prior.
    p_tau_i : NDArray[np.float64] or None
        Precision P_τ^{-1} centring the cointegration space, shape (M, M).
        May be singular. None gives the identity.
    g_i : NDArray[np.float64] or None
        Precision proxy G^{-1}, shape (K, K). None uses Σ^{-1}.
    rng : np.random.Generator
        Random number generator.
    x : NDArray[np.float64], optional
        Non-cointegration regressors, shape (N, T).
    gamma_mu_prior : NDArray[np.float64], optional
        Prior mean of vec(Γ), K·N elements. Default zeros.
    gamma_v_i_prior : NDArray[np.float64], optional
        Prior precision of vec(Γ), shape (K·N, K·N). Default zeros (flat).
    alpha : NDArray[np.float64], optional
        Current loading matrix, shape (K, r). When given, Γ and α are drawn
        in two separate conditional steps; when None they are drawn jointly
        as one Gaussian block given β.

    Returns
    -------
    CointegrationDraw
        New α, β (with β^T β = I_r), Π = α β^T and Γ.

    Raises
    ------
    ConfigurationError
        If the rank r = beta.shape[1] is outside (0, min(K, M)] or v_i < 0.
    DimensionError
        If the inputs are not conformable.
    SingularMatrixError
        If a posterior precision, α^T α or B^T B is not positive definite.
    """
    y = np.asarray(y, dtype=np.float64)
    beta = np.asarray(beta, dtype=np.float64)
    w = np.asarray(w, dtype=np.float64)
    sigma_i = np.asarray(sigma_i, dtype=np.float64)
    if x is not None:
        x = np.asarray(x, dtype=np.float64)
    k, t, m, r = _validate_inputs(y, beta, w, x)
    if v_i < 0:
        raise ConfigurationError(f"v_i must be >= 0. Got {v_i}")

    split_precision(sigma_i, k, t)
    sigma_bar = mean_precision(sigma_i, k)
    p_tau_i = _square_prior(p_tau_i, m, "p_tau_i", np.eye(m))
    g_i = _square_prior(g_i, k, "g_i", sigma_bar)

    n = 0 if x is None else x.shape[0]
    gamma_mu, gamma_v_i = _gamma_prior(gamma_mu_prior, gamma_v_i_prior, k * n)
    gamma = None

    if alpha is None:
        # (α, Γ) | β as one block with regressors [β^T W; X]
        regressors = beta.T @ w if x is None else np.vstack([beta.T @ w, x])
        prior_i = np.zeros((k * (r + n), k * (r + n)))
        prior_i[:k * r, :k * r] = _alpha_prior_precision(beta, v_i, p_tau_i, g_i)
        prior_i[k * r:, k * r:] = gamma_v_i
        prior_mu = np.concatenate([np.zeros(k * r), gamma_mu])
        coef = coefficient_matrix(
            post_normal(y, regressors, sigma_bar, prior_mu, prior_i, rng), k
        )
        alpha = coef[:, :r]
        if x is not None:
            gamma = coef[:, r:]
    else:
        alpha = np.asarray(alpha, dtype=np.float64)
        if alpha.shape != (k, r):
            raise DimensionError(
                f"alpha must have shape ({k}, {r}). Got {alpha.shape}"
            )
        if x is not None:
            y_gamma = y - alpha @ beta.T @ w
            gamma = coefficient_matrix(
                post_normal(y_gamma, x, sigma_i, gamma_mu, gamma_v_i, rng), k
            )
        y_alpha = y if gamma is None else y - gamma @ x
        alpha = coefficient_matrix(
            post_normal(
                y_alpha,
                beta.T @ w,
                sigma_bar,
                np.zeros(k * r),
                _alpha_prior_precision(beta, v_i, p_tau_i, g_i),
                rng,
            ),
            k,
        )

    y_res = y if gamma is None else y - gamma @ x
    alpha, beta = _draw_beta(y_res, w, alpha, sigma_bar, v_i, p_tau_i, g_i, rng)
    return CointegrationDraw(alpha=alpha, beta=beta, pi=alpha @ beta.T, gamma=gamma)
