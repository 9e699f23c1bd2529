"""Shared fixtures: simulated VAR and cointegrated systems."""

import pytest
import numpy as np

from bvargibbs.models import gen_var, gen_vec


A1 = np.array([
    [0.5, 0.1, 0.0],
    [0.0, 0.4, 0.1],
    [0.1, 0.0, 0.3],
])
A2 = np.array([
    [0.1, 0.0, 0.0],
    [0.0, 0.1, 0.0],
    [0.0, 0.05, 0.1],
])
CONST = np.array([0.1, 0.2, -0.1])
SIGMA = np.array([
    [0.010, 0.002, 0.001],
    [0.002, 0.020, 0.003],
    [0.001, 0.003, 0.015],
])


def simulate_var(t: int, seed: int) -> np.ndarray:
    """Simulate the VAR(2) with constant above, returned as (T, K)."""
    rng = np.random.default_rng(seed)
    k = A1.shape[0]
    chol = np.linalg.cholesky(SIGMA)
    burn = 50
    data = np.zeros((t + burn, k))
    for s in range(2, t + burn):
        shock = chol @ rng.standard_normal(k)
        data[s] = CONST + A1 @ data[s - 1] + A2 @ data[s - 2] + shock
    return data[burn:]


def simulate_vec(t: int, seed: int) -> np.ndarray:
    """Two I(1) series sharing one stochastic trend: y2 - y1 is stationary."""
    rng = np.random.default_rng(seed)
    trend = np.cumsum(rng.normal(0.0, 1.0, t))
    spread = np.zeros(t)
    for s in range(1, t):
        spread[s] = 0.5 * spread[s - 1] + rng.normal(0.0, 0.3)
    y1 = trend + rng.normal(0.0, 0.2, t)
    y2 = trend + spread
    return np.column_stack([y1, y2])


@pytest.fixture
def var_design():
    """VAR(2) design with constant: y (3, 148), x (7, 148)."""
    return gen_var(simulate_var(150, seed=1234567), p=2, deterministic="const",
                   names=["invest", "income", "cons"])


@pytest.fixture
def short_var_design():
    """Shorter sample of the same VAR(2): y (3, 73), x (7, 73)."""
    return gen_var(simulate_var(75, seed=1234567), p=2, deterministic="const",
                   names=["invest", "income", "cons"])


@pytest.fixture
def vec_design():
    """VEC design of a cointegrated pair with one lagged difference."""
    return gen_vec(simulate_vec(200, seed=42), p=2, const="unrestricted")


@pytest.fixture
def rng():
    return np.random.default_rng(2024)
