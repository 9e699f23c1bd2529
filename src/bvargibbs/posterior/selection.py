"""
Stochastic search variable selection (SSVS).

Each coefficient a_i carries a spike-and-slab Gaussian prior,

    a_i | λ_i ~ (1 - λ_i) N(0, τ0_i²) + λ_i N(0, τ1_i²)
    λ_i ~ Bernoulli(p_i)

with τ0_i small (excluded) and τ1_i large (included). Given the current
coefficient draw, the indicators are conditionally independent with

    P(λ_i = 1 | a_i) = p_i f1 / (p_i f1 + (1 - p_i) f0)

where f0, f1 are the two normal densities at a_i. The ratio is evaluated as
a logistic function of the log odds so that τ values spanning many orders of
magnitude never underflow. The returned prior precision is rebuilt from the
indicators and threaded into the next coefficient draw.
"""

from typing import NamedTuple, Optional, Tuple
import numpy as np
from numpy.typing import NDArray
from scipy.special import expit

from bvargibbs.exceptions import ConfigurationError, DimensionError


class SelectionDraw(NamedTuple):
    """
    One SSVS update.

    Attributes
    ----------
    lambda_ : NDArray[np.int64]
        Inclusion indicators (0/1), shape (m,).
    v_i : NDArray[np.float64]
        Diagonal prior precision implied by the indicators, shape (m, m).
    """

    lambda_: NDArray[np.int64]
    v_i: NDArray[np.float64]


def _expand(value: NDArray[np.float64], m: int, name: str) -> NDArray[np.float64]:
    value = np.asarray(value, dtype=np.float64).reshape(-1)
    if value.size not in (1, m):
        raise DimensionError(
            f"{name} must be a scalar or have {m} elements. Got {value.size}"
        )
    return np.broadcast_to(value, (m,))


def _validate(
    a: NDArray[np.float64],
    tau0: NDArray[np.float64],
    tau1: NDArray[np.float64],
    prob_prior: NDArray[np.float64],
) -> Tuple[NDArray[np.float64], ...]:
    a = np.asarray(a, dtype=np.float64).reshape(-1)
    m = a.size
    tau0 = _expand(tau0, m, "tau0")
    tau1 = _expand(tau1, m, "tau1")
    prob = _expand(prob_prior, m, "prob_prior")
    if np.any(tau0 <= 0) or np.any(tau1 <= 0):
        raise ConfigurationError("tau0 and tau1 must be strictly positive")
    if np.any((prob < 0) | (prob > 1)):
        raise ConfigurationError(f"prob_prior must be in [0, 1]. Got {prob.min()}..{prob.max()}")
    return a, tau0, tau1, prob


def _include_mask(include: Optional[NDArray[np.int64]], m: int) -> NDArray[np.bool_]:
    if include is None:
        return np.ones(m, dtype=bool)
    include = np.asarray(include, dtype=np.int64).reshape(-1)
    if np.any((include < 0) | (include >= m)):
        raise DimensionError(
            f"include indices must be in [0, {m - 1}]. Got {include}"
        )
    mask = np.zeros(m, dtype=bool)
    mask[include] = True
    return mask


def inclusion_probability(
    a: NDArray[np.float64],
    tau0: NDArray[np.float64],
    tau1: NDArray[np.float64],
    prob_prior: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Posterior inclusion probabilities P(λ_i = 1 | a_i).

    Parameters
    ----------
    a : NDArray[np.float64]
        Current coefficient draw, shape (m,).
    tau0 : NDArray[np.float64]
        Standard deviations of the excluded component (scalar or (m,)).
    tau1 : NDArray[np.float64]
        Standard deviations of the included component (scalar or (m,)).
    prob_prior : NDArray[np.float64]
        Prior inclusion probabilities (scalar or (m,)).

    Returns
    -------
    NDArray[np.float64]
        Probabilities in [0, 1], shape (m,).
    """
    a, tau0, tau1, prob = _validate(a, tau0, tau1, prob_prior)
    with np.errstate(divide="ignore", over="ignore", invalid="ignore"):
        # log N(a; 0, τ²) up to the shared constant -log √(2π)
        log_f0 = -np.log(tau0) - 0.5 * (a / tau0) ** 2
        log_f1 = -np.log(tau1) - 0.5 * (a / tau1) ** 2
        log_odds = np.log(prob) - np.log1p(-prob) + log_f1 - log_f0
    # p = 0 or 1 fixes the indicator regardless of the likelihood ratio
    log_odds = np.where(prob == 0.0, -np.inf, log_odds)
    log_odds = np.where(prob == 1.0, np.inf, log_odds)
    return expit(log_odds)


def ssvs(
    a: NDArray[np.float64],
    tau0: NDArray[np.float64],
    tau1: NDArray[np.float64],
    prob_prior: NDArray[np.float64],
    rng: np.random.Generator,
    include: Optional[NDArray[np.int64]] = None,
) -> SelectionDraw:
    """
    Draw inclusion indicators and rebuild the prior precision.

    Parameters
    ----------
    a : NDArray[np.float64]
        Current coefficient draw, shape (m,).
    tau0, tau1 : NDArray[np.float64]
        Excluded / included prior standard deviations (scalar or (m,)).
    prob_prior : NDArray[np.float64]
        Prior inclusion probabilities (scalar or (m,)).
    rng : np.random.Generator
        Random number generator.
    include : NDArray[np.int64], optional
        Zero-based indices subject to selection. Coefficients outside the
        subset are always included. Default: all coefficients.

    Returns
    -------
    SelectionDraw
        Indicators λ and the diagonal precision diag(1/τ_{λ_i, i}²).
    """
    a, tau0, tau1, prob = _validate(a, tau0, tau1, prob_prior)
    mask = _include_mask(include, a.size)

    lambda_ = np.ones(a.size, dtype=np.int64)
    if mask.any():
        prob_post = inclusion_probability(a[mask], tau0[mask], tau1[mask], prob[mask])
        lambda_[mask] = (rng.uniform(size=prob_post.size) < prob_post).astype(np.int64)

    tau = np.where(lambda_ == 1, tau1, tau0)
    return SelectionDraw(lambda_=lambda_, v_i=np.diag(1.0 / tau ** 2))
