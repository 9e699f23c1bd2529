"""
Prior specifications for the Gibbs samplers.

Coefficient priors are Gaussian in precision form so that a flat
(improper) prior is expressed exactly as a zero precision matrix:

    a ~ N(μ0, V0),   passed as (μ0, V0^{-1})
    Σ^{-1} ~ Wishart(ν0, S0^{-1})

SSVS hyperparameters can be set semi-automatically from the OLS standard
errors of the unrestricted model (George, Sun and Ni, 2008).
"""

from typing import Optional, Tuple
import numpy as np
from numpy.typing import NDArray

from bvargibbs.exceptions import ConfigurationError, DimensionError
from bvargibbs.linalg import inverse_pd


class NormalPrior:
    """Gaussian prior for a stacked coefficient vector."""

    def __init__(
        self,
        mean: NDArray[np.float64],
        precision: NDArray[np.float64],
    ) -> None:
        """
        Initialize a normal prior.

        Parameters
        ----------
        mean : NDArray[np.float64]
            Prior mean μ0, shape (m,).
        precision : NDArray[np.float64]
            Prior precision V0^{-1}, shape (m, m). Zeros give a flat prior.
        """
        mean = np.asarray(mean, dtype=np.float64).reshape(-1)
        precision = np.asarray(precision, dtype=np.float64)
        m = mean.size
        if precision.shape != (m, m):
            raise DimensionError(
                f"precision must have shape ({m}, {m}). Got {precision.shape}"
            )
        self.mean = mean
        self.precision = precision

    @classmethod
    def flat(cls, m: int) -> "NormalPrior":
        """Improper flat prior on m coefficients."""
        return cls(np.zeros(m), np.zeros((m, m)))

    @property
    def size(self) -> int:
        return self.mean.size

    @property
    def is_flat(self) -> bool:
        return not np.any(self.precision)

    def __repr__(self) -> str:
        """String representation."""
        return f"NormalPrior(size={self.size}, flat={self.is_flat})"


class WishartPrior:
    """Wishart prior for the residual precision matrix."""

    def __init__(
        self,
        df: float = 0.0,
        scale: Optional[NDArray[np.float64]] = None,
    ) -> None:
        """
        Initialize a Wishart prior.

        Parameters
        ----------
        df : float
            Prior degrees of freedom ν0 (>= 0). Default 0.
        scale : NDArray[np.float64], optional
            Prior scale S0, shape (K, K). None is treated as zeros of the
            dimension of the model it is used with.
        """
        if df < 0:
            raise ConfigurationError(f"df must be >= 0. Got {df}")
        if scale is not None:
            scale = np.asarray(scale, dtype=np.float64)
            if scale.ndim != 2 or scale.shape[0] != scale.shape[1]:
                raise DimensionError(f"scale must be a square matrix. Got shape {scale.shape}")
        self.df = df
        self.scale = scale

    @classmethod
    def flat(cls, k: int) -> "WishartPrior":
        """Uninformative prior ν0 = 0, S0 = 0 for a K-variable system."""
        return cls(0.0, np.zeros((k, k)))

    def scale_for(self, k: int) -> NDArray[np.float64]:
        """Prior scale for a K-variable system."""
        if self.scale is None:
            return np.zeros((k, k))
        if self.scale.shape != (k, k):
            raise DimensionError(
                f"Wishart scale must have shape ({k}, {k}). Got {self.scale.shape}"
            )
        return self.scale

    def __repr__(self) -> str:
        """String representation."""
        k = None if self.scale is None else self.scale.shape[0]
        return f"WishartPrior(df={self.df}, K={k})"


class SSVSPrior:
    """Spike-and-slab hyperparameters for stochastic search variable selection."""

    def __init__(
        self,
        tau0: NDArray[np.float64],
        tau1: NDArray[np.float64],
        prob: NDArray[np.float64] = 0.5,
        include: Optional[NDArray[np.int64]] = None,
    ) -> None:
        """
        Initialize SSVS hyperparameters.

        Parameters
        ----------
        tau0 : NDArray[np.float64]
            Prior standard deviations of excluded coefficients (scalar or (m,)).
        tau1 : NDArray[np.float64]
            Prior standard deviations of included coefficients (scalar or (m,)).
        prob : NDArray[np.float64]
            Prior inclusion probabilities. Default 0.5.
        include : NDArray[np.int64], optional
            Zero-based indices subject to selection. Default: all.
        """
        tau0 = np.asarray(tau0, dtype=np.float64)
        tau1 = np.asarray(tau1, dtype=np.float64)
        prob = np.asarray(prob, dtype=np.float64)
        if np.any(tau0 <= 0) or np.any(tau1 <= 0):
            raise ConfigurationError("tau0 and tau1 must be strictly positive")
        if np.any((prob < 0) | (prob > 1)):
            raise ConfigurationError("prob must be in [0, 1]")
        self.tau0 = tau0
        self.tau1 = tau1
        self.prob = prob
        self.include = None if include is None else np.asarray(include, dtype=np.int64)

    def initial_precision(self, m: int) -> NDArray[np.float64]:
        """Prior precision with every coefficient included, diag(1/τ1²)."""
        tau1 = np.broadcast_to(self.tau1.reshape(-1), (m,)) if self.tau1.size == 1 else self.tau1
        if tau1.shape != (m,):
            raise DimensionError(f"tau1 must be a scalar or have {m} elements. Got {self.tau1.size}")
        return np.diag(1.0 / tau1 ** 2)

    def __repr__(self) -> str:
        """String representation."""
        n_sel = "all" if self.include is None else len(self.include)
        return f"SSVSPrior(m={self.tau0.size}, selected={n_sel})"


class CointegrationPrior:
    """Prior on the cointegration space of a VEC model."""

    def __init__(
        self,
        v_i: float = 0.0,
        p_tau_i: Optional[NDArray[np.float64]] = None,
        g_i: Optional[NDArray[np.float64]] = None,
    ) -> None:
        """
        Initialize a cointegration-space prior.

        Parameters
        ----------
        v_i : float
            Shrinkage precision v^{-1} (>= 0). 0 gives a flat prior. Default 0.
        p_tau_i : NDArray[np.float64], optional
            Precision P_τ^{-1} centring the space, shape (M, M). Default identity.
        g_i : NDArray[np.float64], optional
            Precision proxy G^{-1}, shape (K, K). Default: the current Σ^{-1}
            draw of the chain.
        """
        if v_i < 0:
            raise ConfigurationError(f"v_i must be >= 0. Got {v_i}")
        self.v_i = float(v_i)
        self.p_tau_i = None if p_tau_i is None else np.asarray(p_tau_i, dtype=np.float64)
        self.g_i = None if g_i is None else np.asarray(g_i, dtype=np.float64)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"CointegrationPrior(v_i={self.v_i}, "
            f"p_tau_i={'identity' if self.p_tau_i is None else 'given'}, "
            f"g_i={'sigma_i' if self.g_i is None else 'given'})"
        )


def ssvs_prior(
    y: NDArray[np.float64],
    x: NDArray[np.float64],
    semiautomatic: Tuple[float, float] = (0.1, 10.0),
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Semi-automatic SSVS standard deviations from OLS standard errors.

    Parameters
    ----------
    y : NDArray[np.float64]
        Dependent variables, shape (K, T).
    x : NDArray[np.float64]
        Regressors, shape (N, T), with T > N.
    semiautomatic : Tuple[float, float]
        Multipliers (c0, c1) of the standard errors. Default (0.1, 10).

    Returns
    -------
    tau0, tau1 : NDArray[np.float64]
        c0 · se and c1 · se, each of length K·N, ordered like vec(A).
    """
    y = np.asarray(y, dtype=np.float64)
    x = np.asarray(x, dtype=np.float64)
    if y.ndim != 2 or x.ndim != 2 or y.shape[1] != x.shape[1]:
        raise DimensionError(
            f"y and x must be 2-D with the same number of columns. Got {y.shape} and {x.shape}"
        )
    c0, c1 = semiautomatic
    if not 0 < c0 < c1:
        raise ConfigurationError(f"semiautomatic must satisfy 0 < c0 < c1. Got {semiautomatic}")
    n, t = x.shape
    if t <= n:
        raise DimensionError(f"OLS needs more observations than regressors. Got T={t}, N={n}")

    xx_i = inverse_pd(x @ x.T, "ols cross moment")
    coef = y @ x.T @ xx_i
    u = y - coef @ x
    sigma = u @ u.T / (t - n)
    se = np.sqrt(np.kron(np.diag(xx_i), np.diag(sigma)))
    return c0 * se, c1 * se
