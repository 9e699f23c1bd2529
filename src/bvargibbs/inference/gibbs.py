"""
Gibbs sampler driver for Bayesian VAR and VEC models.

One chain alternates the conditional posterior draws of posterior/:

    VAR:  a | Σ  →  Σ^{-1} | a  →  (λ, V0^{-1}) | a   (SSVS, optional)
    VEC:  (α, β, Π, Γ) | Σ  →  Σ^{-1} | α, β, Γ

Each iteration conditions on the state left by the previous one, so a chain
is strictly sequential. Independent chains share nothing and are seeded
from one SeedSequence; with cores > 1 they run in separate processes.

A numerical failure in any block aborts its chain with ChainError naming
the iteration and the block.
"""

import logging
import time
from concurrent.futures import ProcessPoolExecutor
from contextlib import contextmanager
from functools import partial
from typing import Iterator, List, Optional, Sequence, Union
import numpy as np
from numpy.typing import NDArray

from bvargibbs.exceptions import BvarError, ChainError, ConfigurationError, DimensionError
from bvargibbs.linalg import inverse_pd
from bvargibbs.models.draws import BVAR, BVEC, DrawStore, combine, summary_stats, to_inference_data
from bvargibbs.models.priors import CointegrationPrior, NormalPrior, SSVSPrior, WishartPrior
from bvargibbs.posterior import coefficient_matrix, post_coint_kls, post_normal, post_wishart
from bvargibbs.posterior.selection import ssvs as draw_selection

logger = logging.getLogger(__name__)

# Precision the VAR chain starts from
INITIAL_PRECISION = 1e-5


@contextmanager
def _stage(iteration: int, sampler: str, chain: int) -> Iterator[None]:
    """Re-raise package errors of one sampler block as ChainError."""
    try:
        yield
    except BvarError as exc:
        logger.error(
            f"Chain {chain} aborted at iteration {iteration} in the {sampler} sampler: {exc}"
        )
        raise ChainError(iteration, sampler, chain) from exc


def _report(iteration: int, every: int, chain: int, total: int) -> None:
    if every > 0 and (iteration + 1) % every == 0:
        logger.debug(f"Chain {chain}: iteration {iteration + 1}/{total}")


def _check_data(y: NDArray[np.float64], name: str, t: Optional[int] = None) -> NDArray[np.float64]:
    y = np.asarray(y, dtype=np.float64)
    if y.ndim != 2:
        raise DimensionError(f"{name} must be a 2-D matrix. Got shape {y.shape}")
    if t is not None and y.shape[1] != t:
        raise DimensionError(f"{name} must have {t} columns. Got shape {y.shape}")
    return y


class GibbsSampler:
    """
    Gibbs sampler for Bayesian VAR and VEC models.

    Holds the chain-length configuration and runs independent chains of
    run_var_chain / run_vec_chain.
    """

    def __init__(
        self,
        iterations: int,
        burnin: int = 0,
        thin: int = 1,
        report_every: int = 0,
    ) -> None:
        """
        Initialize sampler.

        Parameters
        ----------
        iterations : int
            Total iterations per chain, burn-in included.
        burnin : int
            Leading iterations discarded per chain. Default 0.
        thin : int
            Keep every thin-th draw after burn-in. Default 1.
        report_every : int
            Log progress at debug level every report_every iterations.
            0 disables progress messages. Default 0.
        """
        if iterations <= 0:
            raise ConfigurationError(f"iterations must be > 0. Got {iterations}")
        if not 0 <= burnin < iterations:
            raise ConfigurationError(
                f"burnin must be in [0, iterations). Got burnin={burnin}, iterations={iterations}"
            )
        if thin < 1:
            raise ConfigurationError(f"thin must be >= 1. Got {thin}")
        if report_every < 0:
            raise ConfigurationError(f"report_every must be >= 0. Got {report_every}")

        self.iterations = iterations
        self.burnin = burnin
        self.thin = thin
        self.report_every = report_every

    def new_store(self) -> DrawStore:
        return DrawStore(self.iterations, self.burnin, self.thin)

    @property
    def n_draws(self) -> int:
        """Stored draws per chain."""
        return self.new_store().capacity

    def sample_var(
        self,
        y: NDArray[np.float64],
        x: NDArray[np.float64],
        n_lags: int,
        coef_prior: Optional[NormalPrior] = None,
        sigma_prior: Optional[WishartPrior] = None,
        ssvs: Optional[SSVSPrior] = None,
        chains: int = 1,
        cores: int = 1,
        random_seed: Optional[int] = None,
        names: Optional[Sequence[str]] = None,
    ) -> "SamplingSummary":
        """
        Run independent VAR chains.

        Parameters
        ----------
        y : NDArray[np.float64]
            Dependent variables, shape (K, T).
        x : NDArray[np.float64]
            Regressors, shape (N, T): K·n_lags lags first, deterministic
            terms last.
        n_lags : int
            Lag order p.
        coef_prior : NormalPrior, optional
            Prior of vec(A, C). Default flat, or diag(1/τ1²) precision with SSVS.
        sigma_prior : WishartPrior, optional
            Prior of Σ^{-1}. Default flat.
        ssvs : SSVSPrior, optional
            Enables stochastic search variable selection.
        chains : int
            Number of independent chains. Default 1.
        cores : int
            Worker processes. Default 1 (sequential).
        random_seed : int, optional
            Seed of the SeedSequence the chain generators are spawned from.
        names : sequence of str, optional
            Variable names.

        Returns
        -------
        summary : SamplingSummary
            One BVAR per chain plus timing.
        """
        runner = partial(
            run_var_chain,
            y,
            x,
            n_lags,
            self,
            coef_prior,
            sigma_prior,
            ssvs=ssvs,
            names=names,
        )
        return self._run(runner, chains, cores, random_seed)

    def sample_vec(
        self,
        y: NDArray[np.float64],
        w: NDArray[np.float64],
        x: Optional[NDArray[np.float64]],
        n_lags: int,
        rank: int,
        coint_prior: Optional[CointegrationPrior] = None,
        gamma_prior: Optional[NormalPrior] = None,
        sigma_prior: Optional[WishartPrior] = None,
        chains: int = 1,
        cores: int = 1,
        random_seed: Optional[int] = None,
        names: Optional[Sequence[str]] = None,
    ) -> "SamplingSummary":
        """
        Run independent VEC chains.

        See run_vec_chain for the model arguments and sample_var for the
        chain arguments.
        """
        runner = partial(
            run_vec_chain,
            y,
            w,
            x,
            n_lags,
            rank,
            self,
            coint_prior,
            gamma_prior,
            sigma_prior,
            names=names,
        )
        return self._run(runner, chains, cores, random_seed)

    def _run(
        self,
        runner,
        chains: int,
        cores: int,
        random_seed: Optional[int],
    ) -> "SamplingSummary":
        if chains < 1:
            raise ConfigurationError(f"chains must be >= 1. Got {chains}")
        if cores < 1:
            raise ConfigurationError(f"cores must be >= 1. Got {cores}")

        seeds = np.random.SeedSequence(random_seed).spawn(chains)
        rngs = [np.random.default_rng(seed) for seed in seeds]

        start_time = time.time()
        if cores == 1 or chains == 1:
            models = [runner(rng, chain=i) for i, rng in enumerate(rngs)]
        else:
            with ProcessPoolExecutor(max_workers=min(cores, chains)) as pool:
                futures = [pool.submit(runner, rng, chain=i) for i, rng in enumerate(rngs)]
                models = [future.result() for future in futures]
        sampling_time = time.time() - start_time

        return SamplingSummary(
            models=models,
            n_iterations=self.iterations,
            n_burnin=self.burnin,
            sampling_time=sampling_time,
        )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"GibbsSampler(iterations={self.iterations}, burnin={self.burnin}, "
            f"thin={self.thin})"
        )


class SamplingSummary:
    """Draws and timing of a multi-chain Gibbs run."""

    def __init__(
        self,
        models: List[Union[BVAR, BVEC]],
        n_iterations: int,
        n_burnin: int,
        sampling_time: float,
    ) -> None:
        """
        Initialize sampling summary.

        Parameters
        ----------
        models : List[BVAR or BVEC]
            Frozen draws, one container per chain.
        n_iterations : int
            Iterations per chain, burn-in included.
        n_burnin : int
            Burn-in iterations per chain.
        sampling_time : float
            Wall-clock time of the run (seconds).
        """
        self.models = models
        self.n_iterations = n_iterations
        self.n_burnin = n_burnin
        self.n_chains = len(models)
        self.sampling_time = sampling_time
        self.n_draws = models[0].n_draws if models else 0
        self.total_samples = sum(m.n_draws for m in models)

    def combined(self) -> Union[BVAR, BVEC]:
        """All chains pooled into one container."""
        return combine(self.models)

    def to_inference_data(self):
        """arviz InferenceData with one chain per model."""
        return to_inference_data(self.models)

    def summary_stats(self, var_names: Optional[list] = None, hdi_prob: float = 0.95):
        """Posterior mean, std and HDI bounds per element."""
        return summary_stats(self.models, var_names=var_names, hdi_prob=hdi_prob)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"SamplingSummary(draws={self.n_draws}, burnin={self.n_burnin}, "
            f"chains={self.n_chains}, time={self.sampling_time:.1f}s)"
        )


def run_var_chain(
    y: NDArray[np.float64],
    x: NDArray[np.float64],
    n_lags: int,
    sampler: GibbsSampler,
    coef_prior: Optional[NormalPrior],
    sigma_prior: Optional[WishartPrior],
    rng: np.random.Generator,
    ssvs: Optional[SSVSPrior] = None,
    chain: int = 0,
    names: Optional[Sequence[str]] = None,
) -> BVAR:
    """
    Run one Gibbs chain of a VAR model y = [A, C] x + u.

    Parameters
    ----------
    y : NDArray[np.float64]
        Dependent variables, shape (K, T).
    x : NDArray[np.float64]
        Regressors, shape (N, T); the first K·n_lags rows are lags.
    n_lags : int
        Lag order p.
    sampler : GibbsSampler
        Chain length configuration.
    coef_prior : NormalPrior or None
        Prior of vec([A, C]); None gives a flat prior, or with SSVS a zero
        mean and precision diag(1/τ1²). With SSVS the precision is only the
        starting value and is replaced every iteration.
    sigma_prior : WishartPrior or None
        Prior of Σ^{-1}; None gives a flat prior.
    rng : np.random.Generator
        Random number generator of this chain.
    ssvs : SSVSPrior, optional
        Stochastic search variable selection hyperparameters.
    chain : int
        Chain index used in log and error messages.
    names : sequence of str, optional
        Variable names.

    Returns
    -------
    BVAR
        Frozen draws of A, C, Σ and, with SSVS, λ.

    Raises
    ------
    ChainError
        If a sampler block fails; the original error is the cause.
    """
    y = _check_data(y, "y")
    k, t = y.shape
    x = _check_data(x, "x", t)
    n = x.shape[0]
    if n_lags < 0 or k * n_lags > n:
        raise ConfigurationError(
            f"n_lags={n_lags} needs K*n_lags <= N. Got K={k}, N={n}"
        )
    m = k * n
    if coef_prior is None:
        coef_prior = (
            NormalPrior.flat(m) if ssvs is None
            else NormalPrior(np.zeros(m), ssvs.initial_precision(m))
        )
    if coef_prior.size != m:
        raise DimensionError(f"coef_prior must cover {m} coefficients. Got {coef_prior.size}")
    sigma_prior = WishartPrior() if sigma_prior is None else sigma_prior
    scale_prior = sigma_prior.scale_for(k)

    v_i_prior = coef_prior.precision
    sigma_i = np.diag(np.full(k, INITIAL_PRECISION))
    store = sampler.new_store()

    logger.info(f"Chain {chain}: VAR(K={k}, p={n_lags}) for {sampler.iterations} iterations")
    for iteration in range(sampler.iterations):
        with _stage(iteration, "coefficient", chain):
            a = post_normal(y, x, sigma_i, coef_prior.mean, v_i_prior, rng)
        coef = coefficient_matrix(a, k)

        with _stage(iteration, "covariance", chain):
            draw = post_wishart(y - coef @ x, sigma_prior.df, scale_prior, rng)
        sigma_i = draw.sigma_i

        lambda_ = None
        if ssvs is not None:
            with _stage(iteration, "ssvs", chain):
                selection = draw_selection(
                    a, ssvs.tau0, ssvs.tau1, ssvs.prob, rng, include=ssvs.include
                )
            v_i_prior = selection.v_i
            lambda_ = selection.lambda_

        store.record(
            iteration,
            A=coef[:, :k * n_lags],
            C=coef[:, k * n_lags:] if n > k * n_lags else None,
            Sigma=draw.sigma,
            lambda_=lambda_,
        )
        _report(iteration, sampler.report_every, chain, sampler.iterations)

    draws = store.freeze()
    logger.info(f"Chain {chain}: finished, {store.n_stored} draws stored")
    return BVAR(
        A=draws["A"],
        Sigma=draws["Sigma"],
        C=draws.get("C"),
        lambda_=draws.get("lambda_"),
        y=y,
        x=x,
        n_lags=n_lags,
        names=names,
    )


def _initial_precision(y: NDArray[np.float64], z: NDArray[np.float64]) -> NDArray[np.float64]:
    """Residual precision of the unrestricted least-squares fit of y on z."""
    t = y.shape[1]
    coef = y @ z.T @ inverse_pd(z @ z.T, "initial least squares")
    u = y - coef @ z
    return inverse_pd(u @ u.T / t, "initial residual covariance")


def run_vec_chain(
    y: NDArray[np.float64],
    w: NDArray[np.float64],
    x: Optional[NDArray[np.float64]],
    n_lags: int,
    rank: int,
    sampler: GibbsSampler,
    coint_prior: Optional[CointegrationPrior],
    gamma_prior: Optional[NormalPrior],
    sigma_prior: Optional[WishartPrior],
    rng: np.random.Generator,
    chain: int = 0,
    names: Optional[Sequence[str]] = None,
) -> BVEC:
    """
    Run one Gibbs chain of a VEC model Δy = α β^T w + Γ x + u.

    Parameters
    ----------
    y : NDArray[np.float64]
        Differenced dependent variables, shape (K, T).
    w : NDArray[np.float64]
        Error correction regressors, shape (M, T): y_{t-1} first, restricted
        deterministic terms last.
    x : NDArray[np.float64] or None
        Other regressors, shape (N, T): K·(n_lags - 1) lagged differences
        first, unrestricted deterministic terms last.
    n_lags : int
        Lag order p of the levels VAR (>= 1).
    rank : int
        Cointegration rank r, 0 < r <= min(K, M).
    sampler : GibbsSampler
        Chain length configuration.
    coint_prior : CointegrationPrior or None
        Cointegration-space prior; None gives a flat prior with G^{-1} = Σ^{-1}.
    gamma_prior : NormalPrior or None
        Prior of vec(Γ); None gives a flat prior.
    sigma_prior : WishartPrior or None
        Prior of Σ^{-1}; None gives a flat prior.
    rng : np.random.Generator
        Random number generator of this chain.
    chain : int
        Chain index used in log and error messages.
    names : sequence of str, optional
        Variable names.

    Returns
    -------
    BVEC
        Frozen draws of α, β, Π, Γ, C and Σ.

    Raises
    ------
    ChainError
        If a sampler block fails; the original error is the cause.
    """
    y = _check_data(y, "y")
    k, t = y.shape
    w = _check_data(w, "w", t)
    m = w.shape[0]
    x = None if x is None else _check_data(x, "x", t)
    n = 0 if x is None else x.shape[0]
    if n_lags < 1 or k * (n_lags - 1) > n:
        raise ConfigurationError(
            f"n_lags={n_lags} needs n_lags >= 1 and K*(n_lags-1) <= N. Got K={k}, N={n}"
        )
    if not 0 < rank <= min(k, m):
        raise ConfigurationError(
            f"Cointegration rank must satisfy 0 < r <= min(K, M) = {min(k, m)}. Got {rank}"
        )
    coint_prior = CointegrationPrior() if coint_prior is None else coint_prior
    gamma_prior = NormalPrior.flat(k * n) if gamma_prior is None else gamma_prior
    if gamma_prior.size != k * n:
        raise DimensionError(f"gamma_prior must cover {k * n} coefficients. Got {gamma_prior.size}")
    sigma_prior = WishartPrior() if sigma_prior is None else sigma_prior
    scale_prior = sigma_prior.scale_for(k)
    n_gamma = k * (n_lags - 1)

    beta = np.vstack([np.eye(rank), np.zeros((m - rank, rank))])
    alpha = None
    z = w if x is None else np.vstack([w, x])
    with _stage(0, "initialisation", chain):
        sigma_i = _initial_precision(y, z)
    store = sampler.new_store()

    logger.info(
        f"Chain {chain}: VEC(K={k}, p={n_lags}, r={rank}) for {sampler.iterations} iterations"
    )
    for iteration in range(sampler.iterations):
        g_i = sigma_i if coint_prior.g_i is None else coint_prior.g_i
        with _stage(iteration, "cointegration", chain):
            coint = post_coint_kls(
                y, beta, w, sigma_i, coint_prior.v_i, coint_prior.p_tau_i, g_i, rng,
                x=x,
                gamma_mu_prior=gamma_prior.mean,
                gamma_v_i_prior=gamma_prior.precision,
                alpha=alpha,
            )
        alpha, beta = coint.alpha, coint.beta

        u = y - coint.pi @ w
        if coint.gamma is not None:
            u = u - coint.gamma @ x
        with _stage(iteration, "covariance", chain):
            draw = post_wishart(u, sigma_prior.df, scale_prior, rng)
        sigma_i = draw.sigma_i

        gamma = coint.gamma
        store.record(
            iteration,
            alpha=alpha,
            beta=beta,
            Pi=coint.pi,
            Gamma=gamma[:, :n_gamma] if gamma is not None and n_gamma > 0 else None,
            C=gamma[:, n_gamma:] if gamma is not None and n > n_gamma else None,
            Sigma=draw.sigma,
        )
        _report(iteration, sampler.report_every, chain, sampler.iterations)

    draws = store.freeze()
    logger.info(f"Chain {chain}: finished, {store.n_stored} draws stored")
    return BVEC(
        alpha=draws["alpha"],
        beta=draws["beta"],
        Pi=draws["Pi"],
        Sigma=draws["Sigma"],
        Gamma=draws.get("Gamma"),
        C=draws.get("C"),
        y=y,
        w=w,
        x=x,
        n_lags=n_lags,
        names=names,
    )
