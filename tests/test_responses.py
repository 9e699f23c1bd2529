"""
Unit tests for impulse responses and variance decompositions.

Tests cover:
- Moving-average recursion
- Impact matrices of the five identification schemes
- FEVD shares and normalisation of generalised decompositions
- Per-draw responses from BVAR and BVEC containers
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from bvargibbs.exceptions import ConfigurationError, DimensionError, SingularMatrixError
from bvargibbs.models import BVAR, BVEC
from bvargibbs.responses import (
    ResponseType,
    fevd,
    impact_matrix,
    impulse_responses,
    irf,
    ma_coefficients,
    variance_decomposition,
)
from bvargibbs.responses.irf import ResponseDraws


A1 = np.array([[0.5, 0.1], [0.2, 0.3]])
A2 = np.array([[0.1, 0.0], [-0.1, 0.2]])
SIGMA = np.array([[1.0, 0.3], [0.3, 0.5]])


@pytest.fixture
def var_draws():
    """Container of four VAR(1) draws around A1 and SIGMA."""
    rng = np.random.default_rng(3)
    n = 4
    a = A1 + 0.01 * rng.standard_normal((n, 2, 2))
    sigma = np.stack([SIGMA * (1.0 + 0.1 * i) for i in range(n)])
    return BVAR(A=a, Sigma=sigma, names=["gdp", "infl"])


class TestMovingAverage:
    """Tests for Φ_0..Φ_H."""

    def test_var1_powers(self) -> None:
        """VAR(1): Φ_i = A^i."""
        phi = ma_coefficients(A1, 4)
        assert phi.shape == (5, 2, 2)
        for i in range(5):
            assert_allclose(phi[i], np.linalg.matrix_power(A1, i))

    def test_var2_recursion(self) -> None:
        """VAR(2): Φ_2 = A1² + A2, Φ_3 = A1 Φ_2 + A2 Φ_1."""
        phi = ma_coefficients(np.hstack([A1, A2]), 3)
        assert_allclose(phi[1], A1)
        assert_allclose(phi[2], A1 @ A1 + A2)
        assert_allclose(phi[3], A1 @ phi[2] + A2 @ phi[1])

    def test_horizon_zero(self) -> None:
        """H = 0 gives only the identity."""
        assert_allclose(ma_coefficients(A1, 0), np.eye(2)[None])

    def test_negative_horizon_raises(self) -> None:
        """Horizons must be non-negative integers."""
        with pytest.raises(ConfigurationError, match="horizon"):
            ma_coefficients(A1, -1)

    def test_bad_shape_raises(self) -> None:
        """Coefficients must be (K, K·p)."""
        with pytest.raises(DimensionError, match="K\\*p"):
            ma_coefficients(np.ones((2, 3)), 2)


class TestImpactMatrices:
    """Tests for the identification schemes."""

    def test_feir_is_identity(self) -> None:
        """Forecast-error responses use the identity impact matrix."""
        assert_allclose(impact_matrix(SIGMA, "feir"), np.eye(2))

    def test_oir_is_lower_cholesky(self) -> None:
        """M M^T = Σ with M lower triangular."""
        m = impact_matrix(SIGMA, "oir")
        assert_allclose(m @ m.T, SIGMA)
        assert m[0, 1] == 0.0

    def test_gir_columns(self) -> None:
        """Column k is Σ e_k / sqrt(σ_kk)."""
        m = impact_matrix(SIGMA, "gir")
        for k in range(2):
            assert_allclose(m[:, k], SIGMA[:, k] / np.sqrt(SIGMA[k, k]))

    def test_gir_equals_oir_for_diagonal_sigma(self) -> None:
        """Without correlation all shocks are already orthogonal."""
        sigma = np.diag([2.0, 0.5])
        assert_allclose(impact_matrix(sigma, "gir"), impact_matrix(sigma, "oir"))

    def test_sir_with_identity_a0(self) -> None:
        """With A0 = I the structural impact is Σ^{1/2}."""
        sigma = np.diag([4.0, 9.0])
        assert_allclose(impact_matrix(sigma, "sir", np.eye(2)), np.diag([2.0, 3.0]))

    def test_sgir_premultiplies_a0_inverse(self) -> None:
        """Structural generalised impact is A0^{-1} times the gir impact."""
        a0 = np.array([[1.0, 0.0], [-0.5, 1.0]])
        expected = np.linalg.inv(a0) @ impact_matrix(SIGMA, "gir")
        assert_allclose(impact_matrix(SIGMA, "sgir", a0), expected)

    def test_structural_without_a0_raises(self) -> None:
        """Structural schemes require a0."""
        with pytest.raises(ConfigurationError, match="a0"):
            impact_matrix(SIGMA, "sgir")

    def test_singular_a0_raises(self) -> None:
        """A singular a0 cannot be inverted."""
        with pytest.raises(SingularMatrixError, match="a0 inverse"):
            impact_matrix(SIGMA, "sir", np.ones((2, 2)))

    def test_unknown_type_raises(self) -> None:
        """Unrecognised response types are rejected."""
        with pytest.raises(ConfigurationError, match="Unknown response type"):
            impact_matrix(SIGMA, "xyz")

    def test_response_type_flags(self) -> None:
        """Parsed types report structural and generalised flags."""
        assert ResponseType.parse("sgir").structural
        assert ResponseType.parse("sgir").generalised
        assert not ResponseType.parse("oir").structural
        assert ResponseType.parse(ResponseType.GENERALISED) is ResponseType.GENERALISED


class TestImpulseResponses:
    """Tests for the response tensor of one draw."""

    def test_feir_matches_phi(self) -> None:
        """theta[j, k, h] = Φ_h[j, k]."""
        theta = impulse_responses(A1, SIGMA, 3, "feir")
        phi = ma_coefficients(A1, 3)
        assert theta.shape == (2, 2, 4)
        assert_allclose(theta[1, 0], phi[:, 1, 0])

    def test_oir_impact(self) -> None:
        """At h = 0 the responses are the Cholesky factor."""
        theta = impulse_responses(A1, SIGMA, 2, "oir")
        assert_allclose(theta[:, :, 0], np.linalg.cholesky(SIGMA))

    def test_sigma_shape_mismatch_raises(self) -> None:
        """Sigma must match the number of variables in a."""
        with pytest.raises(DimensionError):
            impulse_responses(A1, np.eye(3), 2, "oir")

    def test_sigma_shape_checked_before_factorisation(self) -> None:
        """A mis-sized indefinite sigma fails on shape, not on Cholesky."""
        with pytest.raises(DimensionError, match="sigma"):
            impulse_responses(np.eye(2), -np.eye(3), 2, "oir")

    def test_non_square_sigma_raises(self) -> None:
        """Sigma must be square."""
        with pytest.raises(DimensionError, match="sigma"):
            impulse_responses(A1, np.ones((2, 3)), 2, "feir")


class TestVarianceDecomposition:
    """Tests for FEVD shares."""

    @pytest.mark.parametrize("response_type", ["feir", "oir"])
    def test_orthogonal_shares_sum_to_one(self, response_type) -> None:
        """Orthogonal decompositions sum to one at every horizon."""
        shares = variance_decomposition(np.hstack([A1, A2]), SIGMA, 6, response_type)
        assert shares.shape == (2, 7, 2)
        assert_allclose(shares.sum(axis=2), 1.0)
        assert np.all(shares >= 0)

    def test_structural_shares_sum_to_one(self) -> None:
        """Structural decompositions sum to one at every horizon."""
        a0 = np.array([[1.0, 0.0], [0.4, 1.0]])
        shares = variance_decomposition(A1, np.diag([1.0, 0.5]), 5, "sir", a0)
        assert_allclose(shares.sum(axis=2), 1.0)

    def test_oir_first_variable_at_impact(self) -> None:
        """The first variable is driven only by its own shock at h = 0."""
        shares = variance_decomposition(A1, SIGMA, 3, "oir")
        assert_allclose(shares[0, 0], [1.0, 0.0])

    def test_gir_rows_exceed_one_with_correlation(self) -> None:
        """At impact, unnormalised generalised shares sum to 1 + ρ²."""
        shares = variance_decomposition(A1, SIGMA, 4, "gir")
        rho2 = SIGMA[0, 1] ** 2 / (SIGMA[0, 0] * SIGMA[1, 1])
        assert_allclose(shares[:, 0].sum(axis=1), 1.0 + rho2)

    def test_gir_normalised(self) -> None:
        """Normalised generalised shares sum to one."""
        shares = variance_decomposition(A1, SIGMA, 4, "gir", normalise_gir=True)
        assert_allclose(shares.sum(axis=2), 1.0)

    def test_sgir_normalised(self) -> None:
        """Normalised structural generalised shares sum to one."""
        a0 = np.array([[1.0, 0.0], [0.4, 1.0]])
        shares = variance_decomposition(A1, SIGMA, 4, "sgir", a0, normalise_gir=True)
        assert_allclose(shares.sum(axis=2), 1.0)

    def test_gir_equals_oir_for_diagonal_sigma(self) -> None:
        """Generalised and orthogonal shares coincide without correlation."""
        sigma = np.diag([2.0, 0.5])
        assert_allclose(
            variance_decomposition(A1, sigma, 4, "gir"),
            variance_decomposition(A1, sigma, 4, "oir"),
        )

    def test_sigma_shape_mismatch_raises(self) -> None:
        """Sigma must match the number of variables in a."""
        with pytest.raises(DimensionError, match="sigma"):
            variance_decomposition(np.eye(2), np.eye(3), 2, "oir")


class TestIrfFromDraws:
    """Tests for per-draw responses of a container."""

    def test_matches_single_draw_kernel(self, var_draws) -> None:
        """Each draw equals the single-draw response kernel."""
        result = irf(var_draws, "gdp", "infl", horizon=3, type="oir")
        assert result.draws.shape == (4, 4)
        assert result.horizon == 3
        for n in range(4):
            theta = impulse_responses(var_draws.A[n], var_draws.Sigma[n], 3, "oir")
            assert_allclose(result.draws[n], theta[1, 0])

    def test_index_and_name_agree(self, var_draws) -> None:
        """Variables can be selected by name or by index."""
        by_name = irf(var_draws, "gdp", "infl", horizon=2)
        by_index = irf(var_draws, 0, 1, horizon=2)
        assert_allclose(by_name.draws, by_index.draws)
        assert by_index.impulse == "gdp"
        assert by_index.response == "infl"

    def test_shock_and_cumulative(self, var_draws) -> None:
        """Responses scale with the shock and accumulate over horizons."""
        base = irf(var_draws, 0, 0, horizon=4)
        scaled = irf(var_draws, 0, 0, horizon=4, shock=2.0, cumulative=True)
        assert_allclose(scaled.draws, np.cumsum(2.0 * base.draws, axis=1))

    def test_quantiles(self, var_draws) -> None:
        """Credible bands are ordered lower, median, upper."""
        q = irf(var_draws, 0, 1, horizon=3, ci=0.9).quantiles()
        assert q.shape == (4, 3)
        assert np.all(q[:, 0] <= q[:, 1])
        assert np.all(q[:, 1] <= q[:, 2])

    def test_unknown_variable_raises(self, var_draws) -> None:
        """Unknown variable names are rejected."""
        with pytest.raises(ConfigurationError, match="Unknown variable"):
            irf(var_draws, "wages", "gdp")

    def test_structural_without_a0_draws_raises(self, var_draws) -> None:
        """Structural responses need A0 draws."""
        with pytest.raises(ConfigurationError, match="A0"):
            irf(var_draws, 0, 1, type="sir")

    def test_invalid_ci_raises(self) -> None:
        """Credible mass must lie in (0, 1)."""
        with pytest.raises(ConfigurationError, match="ci"):
            ResponseDraws(np.zeros((2, 3)), "a", "b", ResponseType.FORECAST_ERROR, ci=1.5)

    def test_structural_draws_use_reduced_form_lags(self) -> None:
        """Lags of A0 y = A x + ε enter the recursion as A0^{-1} A."""
        a0 = np.array([[[1.0, 0.0], [0.5, 1.0]]])
        a = a0[0] @ A1
        model = BVAR(A=a[None], Sigma=np.diag([1.0, 0.5])[None], A0=a0)
        result = irf(model, 0, 1, horizon=3, type="sir")
        expected = impulse_responses(A1, np.diag([1.0, 0.5]), 3, "sir", a0[0])
        assert_allclose(result.draws[0], expected[1, 0])

    def test_bvec_is_converted(self) -> None:
        """VEC draws with Π = 0 and no lags are a random walk."""
        n = 3
        model = BVEC(
            alpha=np.zeros((n, 2, 1)),
            beta=np.tile(np.array([[1.0], [0.0]]), (n, 1, 1)),
            Pi=np.zeros((n, 2, 2)),
            Sigma=np.tile(SIGMA, (n, 1, 1)),
        )
        result = irf(model, 0, 0, horizon=5, type="feir")
        assert_allclose(result.draws, 1.0)


class TestFevdFromDraws:
    """Tests for per-draw decompositions of a container."""

    def test_shapes_and_mean(self, var_draws) -> None:
        """Decomposition draws have one row of shares per horizon."""
        result = fevd(var_draws, "infl", horizon=4)
        assert result.draws.shape == (4, 5, 2)
        assert result.horizon == 4
        assert result.mean().shape == (5, 2)
        assert_allclose(result.mean().sum(axis=1), 1.0)
        assert result.impulses == ["gdp", "infl"]

    def test_negative_horizon_raises(self, var_draws) -> None:
        """Horizons must be non-negative."""
        with pytest.raises(ConfigurationError, match="horizon"):
            fevd(var_draws, 0, horizon=-2)

    def test_unknown_type_raises(self, var_draws) -> None:
        """Unrecognised response types are rejected."""
        with pytest.raises(ConfigurationError, match="Unknown response type"):
            fevd(var_draws, 0, type="bad")
