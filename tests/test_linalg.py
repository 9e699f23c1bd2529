"""
Unit tests for the linear-algebra helpers.

Tests cover:
- vec / unvec and Kronecker products without materialisation
- Constant and stacked precision handling
- Cholesky, inverse and matrix square roots with tagged failures
- Gaussian draws in precision form and Wishart draws
"""

import pickle

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_almost_equal

from bvargibbs.exceptions import (
    ChainError,
    ConfigurationError,
    DimensionError,
    SingularMatrixError,
)
from bvargibbs.linalg import (
    cholesky_lower,
    draw_normal_from_precision,
    draw_wishart,
    inv_sqrtm_pd,
    inverse_pd,
    kron_matvec,
    mean_precision,
    precision_moments,
    split_precision,
    sqrtm_psd,
    stacked_cross_moment,
    stacked_kron_precision,
    unvec,
    vec,
)


def random_pd(k: int, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    m = rng.normal(size=(k, k))
    return m @ m.T + k * np.eye(k)


class TestKronecker:
    """Tests for vec and Kronecker products."""

    def test_vec_is_column_major(self) -> None:
        """vec stacks columns."""
        m = np.array([[1.0, 2.0], [3.0, 4.0]])
        assert_allclose(vec(m), [1.0, 3.0, 2.0, 4.0])

    def test_unvec_inverts_vec(self) -> None:
        """unvec restores the matrix."""
        m = np.arange(12.0).reshape(3, 4)
        assert_allclose(unvec(vec(m), 3), m)

    def test_unvec_bad_length_raises(self) -> None:
        """Vector length must be a multiple of the row count."""
        with pytest.raises(DimensionError, match="Cannot reshape"):
            unvec(np.arange(7.0), 3)

    def test_kron_matvec_matches_dense(self) -> None:
        """(L ⊗ R) v computed implicitly equals the dense product."""
        rng = np.random.default_rng(0)
        left = rng.normal(size=(3, 4))
        right = rng.normal(size=(2, 5))
        v = rng.normal(size=20)
        assert_allclose(kron_matvec(left, right, v), np.kron(left, right) @ v)

    def test_kron_matvec_shape_mismatch(self) -> None:
        """Non-conformable vector raises."""
        with pytest.raises(DimensionError, match="does not conform"):
            kron_matvec(np.eye(2), np.eye(3), np.ones(5))

    def test_stacked_precision_equals_constant_case(self) -> None:
        """Identical blocks reproduce X X^T ⊗ Σ^{-1} and Σ^{-1} Y X^T."""
        rng = np.random.default_rng(1)
        k, n, t = 2, 3, 10
        x = rng.normal(size=(n, t))
        y = rng.normal(size=(k, t))
        sigma_i = random_pd(k, 2)
        blocks = np.tile(sigma_i, (t, 1, 1))
        assert_allclose(stacked_kron_precision(x, blocks), np.kron(x @ x.T, sigma_i))
        assert_allclose(stacked_cross_moment(y, x, blocks), sigma_i @ y @ x.T)

    def test_split_precision(self) -> None:
        """Constant precision gives None, stacked gives (T, K, K)."""
        sigma_i = np.eye(2)
        assert split_precision(sigma_i, 2, 5) is None
        stacked = np.tile(sigma_i, (5, 1))
        assert split_precision(stacked, 2, 5).shape == (5, 2, 2)
        with pytest.raises(DimensionError, match="sigma_i must have shape"):
            split_precision(np.eye(3), 2, 5)

    def test_mean_precision(self) -> None:
        """Stacked precision reduces to its time average."""
        blocks = np.vstack([np.eye(2), 3.0 * np.eye(2)])
        assert_allclose(mean_precision(blocks, 2), 2.0 * np.eye(2))


class TestDecompositions:
    """Tests for factorisations of PD matrices."""

    def test_cholesky_lower(self) -> None:
        """L is lower triangular and reproduces the matrix."""
        a = random_pd(4, 3)
        L = cholesky_lower(a)
        assert_allclose(L @ L.T, a)
        assert_allclose(np.triu(L, 1), 0.0)

    def test_cholesky_not_pd_raises_tagged(self) -> None:
        """Failures carry the operation tag."""
        a = np.array([[1.0, 2.0], [2.0, 1.0]])
        with pytest.raises(SingularMatrixError, match="my operation") as info:
            cholesky_lower(a, "my operation")
        assert info.value.operation == "my operation"

    def test_cholesky_nan_raises(self) -> None:
        """Non-finite entries are reported as singular."""
        with pytest.raises(SingularMatrixError):
            cholesky_lower(np.array([[np.nan, 0.0], [0.0, 1.0]]))

    def test_singular_error_is_linalg_error(self) -> None:
        """SingularMatrixError can be caught as LinAlgError."""
        with pytest.raises(np.linalg.LinAlgError):
            cholesky_lower(-np.eye(2))

    def test_inverse_pd(self) -> None:
        """Inverse is exact and symmetric."""
        a = random_pd(3, 4)
        inv = inverse_pd(a)
        assert_allclose(inv @ a, np.eye(3), atol=1e-12)
        assert_allclose(inv, inv.T)

    def test_square_roots(self) -> None:
        """A^{1/2} A^{1/2} = A and A^{-1/2} A A^{-1/2} = I."""
        a = random_pd(3, 5)
        root = sqrtm_psd(a)
        inv_root = inv_sqrtm_pd(a)
        assert_allclose(root @ root, a, atol=1e-10)
        assert_allclose(inv_root @ a @ inv_root, np.eye(3), atol=1e-10)

    def test_sqrtm_of_semidefinite(self) -> None:
        """Rank-deficient PSD matrices have a square root."""
        v = np.array([[1.0], [2.0]])
        a = v @ v.T
        root = sqrtm_psd(a)
        assert_allclose(root @ root, a, atol=1e-12)

    def test_inv_sqrtm_singular_raises(self) -> None:
        """A singular matrix has no inverse square root."""
        v = np.array([[1.0], [2.0]])
        with pytest.raises(SingularMatrixError, match="B'B"):
            inv_sqrtm_pd(v @ v.T, "B'B")

    def test_sqrtm_negative_raises(self) -> None:
        """Clearly indefinite matrices are rejected."""
        with pytest.raises(SingularMatrixError, match="negative eigenvalue"):
            sqrtm_psd(np.diag([1.0, -1.0]))

    def test_non_square_raises(self) -> None:
        """Shape errors are reported before factorising."""
        with pytest.raises(DimensionError, match="square"):
            cholesky_lower(np.ones((2, 3)))


class TestDistributions:
    """Tests for sampling primitives."""

    def test_precision_moments(self) -> None:
        """Mean solves Q m = b."""
        q = random_pd(3, 6)
        b = np.array([1.0, -2.0, 0.5])
        mean, L = precision_moments(q, b)
        assert_allclose(q @ mean, b)
        assert_allclose(L @ L.T, q)

    def test_normal_draws_have_precision_covariance(self) -> None:
        """Empirical covariance of draws approaches Q^{-1}."""
        rng = np.random.default_rng(7)
        q = random_pd(2, 8)
        draws = np.array([
            draw_normal_from_precision(q, np.zeros(2), rng) for _ in range(20000)
        ])
        assert_allclose(np.cov(draws.T), np.linalg.inv(q), atol=0.02)

    def test_wishart_draw_is_pd(self) -> None:
        """Wishart draws are symmetric positive definite."""
        rng = np.random.default_rng(9)
        scale = random_pd(3, 10) / 10.0
        draw = draw_wishart(10.0, scale, rng)
        assert_allclose(draw, draw.T)
        assert np.all(np.linalg.eigvalsh(draw) > 0)

    def test_wishart_reproducible(self) -> None:
        """Same generator seed gives the same draw."""
        scale = np.eye(2)
        d1 = draw_wishart(5.0, scale, np.random.default_rng(3))
        d2 = draw_wishart(5.0, scale, np.random.default_rng(3))
        assert_array_almost_equal(d1, d2)

    def test_wishart_bad_df_raises(self) -> None:
        """Degrees of freedom must exceed K - 1."""
        with pytest.raises(ConfigurationError, match="degrees of freedom"):
            draw_wishart(1.0, np.eye(3), np.random.default_rng(0))

    def test_wishart_bad_scale_raises(self) -> None:
        """A non-PD scale is reported with its tag."""
        with pytest.raises(SingularMatrixError, match="wishart scale"):
            draw_wishart(5.0, np.diag([1.0, -1.0]), np.random.default_rng(0))


class TestExceptions:
    """Tests for exception attributes and pickling."""

    def test_chain_error_message(self) -> None:
        """ChainError names the iteration, sampler and chain."""
        err = ChainError(12, "covariance", chain=1)
        assert err.iteration == 12
        assert err.sampler == "covariance"
        assert "iteration 12" in str(err)
        assert "covariance" in str(err)

    def test_errors_survive_pickling(self) -> None:
        """Errors raised in worker processes can be sent back."""
        err = pickle.loads(pickle.dumps(ChainError(3, "coefficient", chain=2)))
        assert (err.iteration, err.sampler, err.chain) == (3, "coefficient", 2)
        sing = pickle.loads(pickle.dumps(SingularMatrixError("wishart scale", "detail")))
        assert sing.operation == "wishart scale"
