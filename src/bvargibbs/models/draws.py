"""
Draw store and frozen posterior containers.

A chain writes into a DrawStore while it runs; once the chain finishes the
store is frozen into read-only arrays with the draw index on axis 0 and
wrapped in a BVAR or BVEC container. Containers are never mutated after
assembly: thinning, combining chains and the VEC to VAR conversion all
return new containers.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union
import numpy as np
from numpy.typing import NDArray
import arviz as az

from bvargibbs.exceptions import ConfigurationError, DimensionError, SingularMatrixError

logger = logging.getLogger(__name__)


class DrawStore:
    """
    Append-only accumulator of chain draws.

    Draws of iteration i (zero-based) are kept if i >= burnin and
    (i - burnin) is a multiple of thin.
    """

    def __init__(self, iterations: int, burnin: int = 0, thin: int = 1) -> None:
        """
        Initialize an empty store.

        Parameters
        ----------
        iterations : int
            Total number of chain iterations.
        burnin : int
            Number of leading iterations to discard. Default 0.
        thin : int
            Keep every thin-th iteration after burn-in. Default 1.
        """
        if iterations <= 0:
            raise ConfigurationError(f"iterations must be > 0. Got {iterations}")
        if not 0 <= burnin < iterations:
            raise ConfigurationError(
                f"burnin must be in [0, iterations). Got burnin={burnin}, iterations={iterations}"
            )
        if thin < 1:
            raise ConfigurationError(f"thin must be >= 1. Got {thin}")

        self.iterations = iterations
        self.burnin = burnin
        self.thin = thin
        self._draws: Dict[str, List[NDArray[np.float64]]] = {}
        self._frozen = False

    @property
    def capacity(self) -> int:
        """Number of draws the store holds once the chain completes."""
        return len(range(self.burnin, self.iterations, self.thin))

    @property
    def n_stored(self) -> int:
        return max((len(v) for v in self._draws.values()), default=0)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def keeps(self, iteration: int) -> bool:
        """True if draws of `iteration` are stored."""
        return iteration >= self.burnin and (iteration - self.burnin) % self.thin == 0

    def record(self, iteration: int, **draws: Optional[NDArray[np.float64]]) -> bool:
        """
        Record the draws of one iteration.

        None values are skipped. Returns True if the draws were kept.
        """
        if self.frozen:
            raise ConfigurationError("Cannot record draws into a frozen store")
        if not 0 <= iteration < self.iterations:
            raise ConfigurationError(
                f"iteration must be in [0, {self.iterations}). Got {iteration}"
            )
        if not self.keeps(iteration):
            return False
        for name, value in draws.items():
            if value is not None:
                self._draws.setdefault(name, []).append(np.array(value, dtype=np.float64))
        return True

    def freeze(self) -> Dict[str, NDArray[np.float64]]:
        """Stack the stored draws into read-only arrays, one per name."""
        stacked = {}
        for name, values in self._draws.items():
            arr = np.stack(values)
            arr.flags.writeable = False
            stacked[name] = arr
        self._frozen = True
        return stacked

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"DrawStore(iterations={self.iterations}, burnin={self.burnin}, "
            f"thin={self.thin}, stored={self.n_stored}/{self.capacity})"
        )


def _readonly(value: Optional[NDArray[np.float64]]) -> Optional[NDArray[np.float64]]:
    if value is None:
        return None
    arr = np.array(value, dtype=np.float64)
    arr.flags.writeable = False
    return arr


def _check_draws(
    value: Optional[NDArray[np.float64]],
    name: str,
    n: int,
    shape: Tuple[Optional[int], ...]
) -> None:
    if value is None:
        return
    expected = (n,) + shape
    ok = value.ndim == len(expected) and all(
        e is None or e == s for e, s in zip(expected, value.shape)
    )
    if not ok:
        dims = ", ".join("*" if e is None else str(e) for e in expected)
        raise DimensionError(f"{name} must have shape ({dims}). Got {value.shape}")


class _PosteriorDraws:
    """Shared behaviour of the frozen posterior containers."""

    DRAW_FIELDS: Tuple[str, ...] = ()

    def _init_names(self, names: Optional[Sequence[str]], k: int) -> None:
        if names is None:
            names = [f"y{i + 1}" for i in range(k)]
        names = [str(name) for name in names]
        if len(names) != k:
            raise DimensionError(f"names must have {k} entries. Got {len(names)}")
        self.names = names

    @property
    def n_draws(self) -> int:
        return self.Sigma.shape[0]

    @property
    def k(self) -> int:
        return self.Sigma.shape[1]

    def draws(self) -> Dict[str, NDArray[np.float64]]:
        """Draw arrays by field name, skipping absent fields."""
        return {
            name: getattr(self, name)
            for name in self.DRAW_FIELDS
            if getattr(self, name) is not None
        }

    def variable_index(self, key: Union[int, str]) -> int:
        """Position of a variable addressed by index or name."""
        if isinstance(key, str):
            if key not in self.names:
                raise ConfigurationError(
                    f"Unknown variable {key!r}. Available: {', '.join(self.names)}"
                )
            return self.names.index(key)
        index = int(key)
        if not 0 <= index < self.k:
            raise ConfigurationError(f"Variable index must be in [0, {self.k}). Got {key}")
        return index


class BVAR(_PosteriorDraws):
    """
    Posterior draws of a (possibly structural) VAR model.

    The structural form is A0 y_t = A x_t + C d_t + ε_t with ε_t ~ N(0, Σ);
    without A0 the draws are already in reduced form.
    """

    DRAW_FIELDS = ("A", "C", "A0", "Sigma", "lambda_")

    def __init__(
        self,
        A: NDArray[np.float64],
        Sigma: NDArray[np.float64],
        C: Optional[NDArray[np.float64]] = None,
        A0: Optional[NDArray[np.float64]] = None,
        lambda_: Optional[NDArray[np.float64]] = None,
        y: Optional[NDArray[np.float64]] = None,
        x: Optional[NDArray[np.float64]] = None,
        n_lags: Optional[int] = None,
        names: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Initialize a VAR draw container.

        Parameters
        ----------
        A : NDArray[np.float64]
            Lag coefficients [A_1, ..., A_p] per draw, shape (n, K, K·p).
        Sigma : NDArray[np.float64]
            Residual covariance per draw, shape (n, K, K).
        C : NDArray[np.float64], optional
            Deterministic-term coefficients, shape (n, K, n_c).
        A0 : NDArray[np.float64], optional
            Contemporaneous structural matrix, shape (n, K, K).
        lambda_ : NDArray[np.float64], optional
            SSVS inclusion indicators, shape (n, m).
        y, x : NDArray[np.float64], optional
            Data the chain was run on, shapes (K, T) and (N, T).
        n_lags : int, optional
            Lag order p. Default K·p / K from A.
        names : sequence of str, optional
            Variable names. Default y1..yK.
        """
        self.A = _readonly(A)
        self.Sigma = _readonly(Sigma)
        self.C = _readonly(C)
        self.A0 = _readonly(A0)
        self.lambda_ = _readonly(lambda_)
        self.y = _readonly(y)
        self.x = _readonly(x)

        if self.Sigma.ndim != 3 or self.Sigma.shape[1] != self.Sigma.shape[2]:
            raise DimensionError(f"Sigma must have shape (n, K, K). Got {self.Sigma.shape}")
        n, k = self.Sigma.shape[:2]
        _check_draws(self.A, "A", n, (k, None))
        if self.A.shape[2] % k != 0:
            raise DimensionError(f"A must have K*p = multiple of {k} columns. Got {self.A.shape}")
        _check_draws(self.C, "C", n, (k, None))
        _check_draws(self.A0, "A0", n, (k, k))
        _check_draws(self.lambda_, "lambda_", n, (None,))
        if self.y is not None and self.y.shape[0] != k:
            raise DimensionError(f"y must have {k} rows. Got {self.y.shape}")

        self.n_lags = self.A.shape[2] // k if n_lags is None else int(n_lags)
        if self.n_lags * k != self.A.shape[2]:
            raise DimensionError(
                f"A with {self.A.shape[2]} columns does not match n_lags={self.n_lags}, K={k}"
            )
        self._init_names(names, k)

    @property
    def t(self) -> Optional[int]:
        return None if self.y is None else self.y.shape[1]

    def reduced_form(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Reduced-form lag coefficients and residual covariance per draw.

        Returns (A0^{-1} A, A0^{-1} Σ A0^{-T}) for structural draws and
        (A, Σ) otherwise.
        """
        if self.A0 is None:
            return self.A, self.Sigma
        try:
            a0_i = np.linalg.inv(self.A0)
        except np.linalg.LinAlgError as exc:
            raise SingularMatrixError("a0 inverse", str(exc)) from exc
        lags = a0_i @ self.A
        sigma = a0_i @ self.Sigma @ np.swapaxes(a0_i, 1, 2)
        return lags, 0.5 * (sigma + np.swapaxes(sigma, 1, 2))

    def _replace(self, **changes) -> "BVAR":
        fields = dict(
            A=self.A, Sigma=self.Sigma, C=self.C, A0=self.A0, lambda_=self.lambda_,
            y=self.y, x=self.x, n_lags=self.n_lags, names=self.names,
        )
        fields.update(changes)
        return BVAR(**fields)

    def __repr__(self) -> str:
        """String representation."""
        structural = ", structural" if self.A0 is not None else ""
        return f"BVAR(K={self.k}, p={self.n_lags}, draws={self.n_draws}{structural})"


class BVEC(_PosteriorDraws):
    """
    Posterior draws of a VEC model

        Δy_t = Π w_t + Γ_1 Δy_{t-1} + ... + Γ_{p-1} Δy_{t-p+1} + C d_t + u_t

    with Π = α β^T and w_t = (y_{t-1}, restricted deterministic terms).
    """

    DRAW_FIELDS = ("alpha", "beta", "Pi", "Gamma", "C", "Sigma")

    def __init__(
        self,
        alpha: NDArray[np.float64],
        beta: NDArray[np.float64],
        Pi: NDArray[np.float64],
        Sigma: NDArray[np.float64],
        Gamma: Optional[NDArray[np.float64]] = None,
        C: Optional[NDArray[np.float64]] = None,
        y: Optional[NDArray[np.float64]] = None,
        w: Optional[NDArray[np.float64]] = None,
        x: Optional[NDArray[np.float64]] = None,
        n_lags: int = 1,
        names: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Initialize a VEC draw container.

        Parameters
        ----------
        alpha : NDArray[np.float64]
            Loadings per draw, shape (n, K, r).
        beta : NDArray[np.float64]
            Cointegration vectors per draw, shape (n, M, r).
        Pi : NDArray[np.float64]
            α β^T per draw, shape (n, K, M). Columns beyond K belong to
            restricted deterministic terms.
        Sigma : NDArray[np.float64]
            Residual covariance per draw, shape (n, K, K).
        Gamma : NDArray[np.float64], optional
            Lagged-difference coefficients, shape (n, K, K·(p-1)).
        C : NDArray[np.float64], optional
            Unrestricted deterministic coefficients, shape (n, K, n_c).
        y, w, x : NDArray[np.float64], optional
            Data the chain was run on.
        n_lags : int
            Lag order p of the levels VAR. Default 1.
        names : sequence of str, optional
            Variable names. Default y1..yK.
        """
        self.alpha = _readonly(alpha)
        self.beta = _readonly(beta)
        self.Pi = _readonly(Pi)
        self.Sigma = _readonly(Sigma)
        self.Gamma = _readonly(Gamma)
        self.C = _readonly(C)
        self.y = _readonly(y)
        self.w = _readonly(w)
        self.x = _readonly(x)

        if self.Sigma.ndim != 3 or self.Sigma.shape[1] != self.Sigma.shape[2]:
            raise DimensionError(f"Sigma must have shape (n, K, K). Got {self.Sigma.shape}")
        n, k = self.Sigma.shape[:2]
        _check_draws(self.alpha, "alpha", n, (k, None))
        r = self.alpha.shape[2]
        _check_draws(self.beta, "beta", n, (None, r))
        m = self.beta.shape[1]
        if m < k:
            raise DimensionError(f"beta must have at least K={k} rows. Got {self.beta.shape}")
        _check_draws(self.Pi, "Pi", n, (k, m))
        self.n_lags = int(n_lags)
        if self.n_lags < 1:
            raise ConfigurationError(f"n_lags must be >= 1. Got {n_lags}")
        if self.Gamma is not None:
            _check_draws(self.Gamma, "Gamma", n, (k, k * (self.n_lags - 1)))
        elif self.n_lags > 1:
            raise DimensionError(f"Gamma draws are required for n_lags={self.n_lags}")
        _check_draws(self.C, "C", n, (k, None))
        self.rank = r
        self._init_names(names, k)

    def _replace(self, **changes) -> "BVEC":
        fields = dict(
            alpha=self.alpha, beta=self.beta, Pi=self.Pi, Sigma=self.Sigma,
            Gamma=self.Gamma, C=self.C, y=self.y, w=self.w, x=self.x,
            n_lags=self.n_lags, names=self.names,
        )
        fields.update(changes)
        return BVEC(**fields)

    def __repr__(self) -> str:
        """String representation."""
        return f"BVEC(K={self.k}, p={self.n_lags}, r={self.rank}, draws={self.n_draws})"


def bvec_to_bvar(model: BVEC) -> BVAR:
    """
    Levels-form VAR draws implied by VEC draws.

        A_1 = I + Π_y + Γ_1
        A_i = Γ_i - Γ_{i-1},   i = 2..p-1
        A_p = -Γ_{p-1}

    where Π_y are the first K columns of Π. Columns of Π that belong to
    restricted deterministic terms are appended to the deterministic
    coefficients C.
    """
    n, k, p = model.n_draws, model.k, model.n_lags
    pi_y = model.Pi[:, :, :k]
    gammas = [] if model.Gamma is None else [
        model.Gamma[:, :, i * k:(i + 1) * k] for i in range(p - 1)
    ]

    lags = np.zeros((n, k, k * p))
    lags[:, :, :k] = np.eye(k) + pi_y
    for i, gamma in enumerate(gammas):
        # Γ_{i+1} enters A_{i+1} with + and A_{i+2} with -
        lags[:, :, i * k:(i + 1) * k] += gamma
        lags[:, :, (i + 1) * k:(i + 2) * k] -= gamma

    deterministic = [c for c in (model.C, model.Pi[:, :, k:]) if c is not None and c.shape[2] > 0]
    c = np.concatenate(deterministic, axis=2) if deterministic else None
    return BVAR(A=lags, Sigma=model.Sigma, C=c, n_lags=p, names=model.names)


def thin(model: Union[BVAR, BVEC], every: int) -> Union[BVAR, BVEC]:
    """Keep every `every`-th draw of a container."""
    if every < 1:
        raise ConfigurationError(f"every must be >= 1. Got {every}")
    return model._replace(**{name: arr[::every] for name, arr in model.draws().items()})


def combine(models: Sequence[Union[BVAR, BVEC]]) -> Union[BVAR, BVEC]:
    """Concatenate the draws of several chains of the same model."""
    if not models:
        raise ConfigurationError("combine requires at least one model")
    first = models[0]
    if any(type(m) is not type(first) for m in models):
        raise ConfigurationError("Cannot combine BVAR and BVEC draws")
    merged = {}
    for name, arr in first.draws().items():
        parts = [m.draws().get(name) for m in models]
        if any(part is None for part in parts):
            raise DimensionError(f"Draws of {name!r} are missing from some chains")
        merged[name] = np.concatenate(parts, axis=0)
    return first._replace(**merged)


def to_inference_data(models: Union[BVAR, BVEC, Sequence[Union[BVAR, BVEC]]]):
    """
    Convert chains of draws to an arviz InferenceData object.

    Parameters
    ----------
    models : BVAR, BVEC or sequence of them
        One container per chain. All chains must hold the same number of
        draws.

    Returns
    -------
    arviz.InferenceData
        Posterior group with dimensions (chain, draw, ...).
    """
    if isinstance(models, _PosteriorDraws):
        models = [models]
    models = list(models)
    if not models:
        raise ConfigurationError("to_inference_data requires at least one model")
    n_draws = {m.n_draws for m in models}
    if len(n_draws) != 1:
        raise DimensionError(f"All chains must have the same number of draws. Got {sorted(n_draws)}")

    posterior = {}
    for name in models[0].draws():
        posterior[name] = np.stack([m.draws()[name] for m in models])
    logger.debug(f"Built InferenceData for {len(models)} chain(s), {n_draws.pop()} draws each")
    return az.from_dict(posterior=posterior)


def summary_stats(
    models,
    var_names: Optional[list] = None,
    hdi_prob: float = 0.95,
) -> Dict:
    """
    Posterior summary statistics.

    Parameters
    ----------
    models : BVAR, BVEC, sequence of them, or arviz.InferenceData
        Posterior draws.
    var_names : list, optional
        Variables to summarize, e.g. ["A", "Sigma"]. If None, use all.
    hdi_prob : float
        Probability mass of the highest density interval. Default 0.95.

    Returns
    -------
    stats : Dict
        Per element ("A[0, 1, 2]", ...): mean, std and HDI bounds.
    """
    if not 0.0 < hdi_prob < 1.0:
        raise ConfigurationError(f"hdi_prob must be in (0, 1). Got {hdi_prob}")
    idata = models if isinstance(models, az.InferenceData) else to_inference_data(models)
    summary_df = az.summary(idata, var_names=var_names, kind="stats", hdi_prob=hdi_prob)
    hdi_low, hdi_high = [c for c in summary_df.columns if c.startswith("hdi_")]

    stats = {}
    for var_name in summary_df.index:
        stats[var_name] = {
            "mean": float(summary_df.loc[var_name, "mean"]),
            "std": float(summary_df.loc[var_name, "sd"]),
            "hdi_low": float(summary_df.loc[var_name, hdi_low]),
            "hdi_high": float(summary_df.loc[var_name, hdi_high]),
        }
    return stats
