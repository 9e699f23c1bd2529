"""
Design matrices for VAR and VEC models from a (T, K) data array.

VAR(p):   y_t = A_1 y_{t-1} + ... + A_p y_{t-p} + C d_t + u_t
VEC(p):   Δy_t = Π w_t + Γ_1 Δy_{t-1} + ... + Γ_{p-1} Δy_{t-p+1} + C d_t + u_t

Both designs drop the first p observations, so the effective sample has
T - p columns. Lagged variables come first in the regressor matrices and
deterministic terms last.
"""

from typing import List, NamedTuple, Optional, Sequence
import numpy as np
from numpy.typing import NDArray

from bvargibbs.exceptions import ConfigurationError, DimensionError

VAR_DETERMINISTIC = ("none", "const", "trend", "both")
VEC_CONSTANT = ("none", "unrestricted", "restricted")


class VarDesign(NamedTuple):
    """Dependent variables y (K, T-p) and regressors x (K·p + n_d, T-p)."""

    y: NDArray[np.float64]
    x: NDArray[np.float64]
    n_lags: int
    names: List[str]


class VecDesign(NamedTuple):
    """
    Differenced dependent variables y (K, T-p), error correction regressors
    w (K [+ 1], T-p) and remaining regressors x, or None if there are none.
    """

    y: NDArray[np.float64]
    w: NDArray[np.float64]
    x: Optional[NDArray[np.float64]]
    n_lags: int
    names: List[str]


def _prepare(
    data: NDArray[np.float64],
    p: int,
    names: Optional[Sequence[str]],
    min_lag: int
) -> NDArray[np.float64]:
    data = np.asarray(data, dtype=np.float64)
    if data.ndim == 1:
        data = data[:, None]
    if data.ndim != 2:
        raise DimensionError(f"data must be a (T, K) array. Got shape {data.shape}")
    if int(p) != p or p < min_lag:
        raise ConfigurationError(f"Lag order p must be an integer >= {min_lag}. Got {p}")
    if data.shape[0] <= p:
        raise DimensionError(
            f"data must have more than p={p} observations. Got {data.shape[0]}"
        )
    if names is not None and len(names) != data.shape[1]:
        raise DimensionError(f"names must have {data.shape[1]} entries. Got {len(names)}")
    return data


def _names(names: Optional[Sequence[str]], k: int) -> List[str]:
    return [f"y{i + 1}" for i in range(k)] if names is None else [str(n) for n in names]


def _lags(series: NDArray[np.float64], start: int, lags: range) -> NDArray[np.float64]:
    """Rows [s_{t-l} for l in lags] for t = start..T-1, shape (K·len(lags), T-start)."""
    t = series.shape[0]
    blocks = [series[start - l:t - l].T for l in lags]
    if not blocks:
        return np.empty((0, t - start))
    return np.vstack(blocks)


def gen_var(
    data: NDArray[np.float64],
    p: int,
    deterministic: str = "const",
    names: Optional[Sequence[str]] = None,
) -> VarDesign:
    """
    VAR(p) design matrices.

    Parameters
    ----------
    data : NDArray[np.float64]
        Observations in levels, shape (T, K).
    p : int
        Lag order (>= 0).
    deterministic : str
        "none", "const", "trend" or "both". Default "const".
    names : sequence of str, optional
        Variable names. Default y1..yK.

    Returns
    -------
    VarDesign
        y of shape (K, T-p) and x of shape (K·p + n_d, T-p).
    """
    data = _prepare(data, p, names, 0)
    if deterministic not in VAR_DETERMINISTIC:
        raise ConfigurationError(
            f"deterministic must be one of {VAR_DETERMINISTIC}. Got {deterministic!r}"
        )
    t = data.shape[0]
    y = data[p:].T
    rows = [_lags(data, p, range(1, p + 1))]
    if deterministic in ("const", "both"):
        rows.append(np.ones((1, t - p)))
    if deterministic in ("trend", "both"):
        rows.append(np.arange(p + 1, t + 1, dtype=np.float64)[None, :])
    return VarDesign(y=y, x=np.vstack(rows), n_lags=int(p), names=_names(names, data.shape[1]))


def gen_vec(
    data: NDArray[np.float64],
    p: int,
    const: str = "unrestricted",
    names: Optional[Sequence[str]] = None,
) -> VecDesign:
    """
    VEC design matrices for a levels VAR of order p.

    Parameters
    ----------
    data : NDArray[np.float64]
        Observations in levels, shape (T, K).
    p : int
        Lag order of the levels VAR (>= 1); the VEC has p - 1 lagged
        differences.
    const : str
        "none", "unrestricted" (constant in x) or "restricted" (constant in
        the cointegration space, i.e. in w). Default "unrestricted".
    names : sequence of str, optional
        Variable names. Default y1..yK.

    Returns
    -------
    VecDesign
        y = Δy_t (K, T-p), w = [y_{t-1}; 1] and x = [Δy_{t-1}..Δy_{t-p+1}; 1].
    """
    data = _prepare(data, p, names, 1)
    if const not in VEC_CONSTANT:
        raise ConfigurationError(f"const must be one of {VEC_CONSTANT}. Got {const!r}")
    t = data.shape[0]
    n_obs = t - p

    # diff[s] = Δy_{s+1}
    diff = np.diff(data, axis=0)
    y = diff[p - 1:].T
    w = data[p - 1:t - 1].T
    if const == "restricted":
        w = np.vstack([w, np.ones((1, n_obs))])

    rows = [_lags(diff, p - 1, range(1, p))]
    if const == "unrestricted":
        rows.append(np.ones((1, n_obs)))
    x = np.vstack(rows)
    return VecDesign(
        y=y,
        w=w,
        x=x if x.shape[0] > 0 else None,
        n_lags=int(p),
        names=_names(names, data.shape[1]),
    )
