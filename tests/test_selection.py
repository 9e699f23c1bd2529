"""
Unit tests for stochastic search variable selection.

Tests cover:
- Limiting behaviour of the inclusion probability
- Numerical stability for extreme prior standard deviations
- Forced inclusion outside the selection subset
- Prior precision rebuilt from the indicators
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from bvargibbs.exceptions import ConfigurationError, DimensionError
from bvargibbs.models import ssvs_prior
from bvargibbs.posterior import inclusion_probability, ssvs


class TestInclusionProbability:
    """Tests for P(λ = 1 | a)."""

    def test_large_coefficient_is_included(self) -> None:
        """A coefficient far from zero has probability near one."""
        prob = inclusion_probability(np.array([5.0]), 0.01, 10.0, 0.5)
        assert prob[0] > 0.999

    def test_zero_coefficient_is_excluded(self) -> None:
        """A coefficient at zero favours the spike."""
        prob = inclusion_probability(np.array([0.0]), 0.01, 10.0, 0.5)
        assert prob[0] < 0.01

    def test_matches_density_ratio(self) -> None:
        """Agrees with the direct formula where it does not underflow."""
        a = np.array([0.05, 0.2, -0.3])
        tau0, tau1, p = 0.1, 2.0, 0.3

        def density(x, tau):
            return np.exp(-0.5 * (x / tau) ** 2) / tau

        f0 = density(a, tau0)
        f1 = density(a, tau1)
        expected = p * f1 / (p * f1 + (1 - p) * f0)
        assert_allclose(inclusion_probability(a, tau0, tau1, p), expected)

    def test_equal_tau_approaches_prior_probability(self) -> None:
        """As τ0 approaches τ1 the data are uninformative and P(λ = 1) tends to p."""
        a = np.array([1e-3])
        probs = np.array([
            inclusion_probability(a, tau0, 1.0, 0.5)[0] for tau0 in (0.5, 0.9, 0.999)
        ])
        assert np.all(np.diff(probs) > 0)
        assert np.all(probs < 0.5)
        assert abs(probs[-1] - 0.5) < 1e-3

    def test_extreme_tau_stays_finite(self) -> None:
        """τ spanning many orders of magnitude never yields NaN."""
        a = np.array([1e-3, 1.0, 50.0])
        prob = inclusion_probability(a, 1e-12, 1e6, 0.5)
        assert np.all(np.isfinite(prob))
        assert np.all((prob >= 0) & (prob <= 1))
        assert prob[2] == pytest.approx(1.0)

    def test_degenerate_prior_probabilities(self) -> None:
        """p = 0 and p = 1 fix the indicator."""
        a = np.array([0.5, 0.5])
        prob = inclusion_probability(a, 0.1, 1.0, np.array([0.0, 1.0]))
        assert_array_equal(prob, [0.0, 1.0])

    def test_invalid_tau_raises(self) -> None:
        """Standard deviations must be positive."""
        with pytest.raises(ConfigurationError, match="strictly positive"):
            inclusion_probability(np.ones(2), 0.0, 1.0, 0.5)

    def test_invalid_probability_raises(self) -> None:
        """Prior probabilities must lie in [0, 1]."""
        with pytest.raises(ConfigurationError, match="prob_prior"):
            inclusion_probability(np.ones(2), 0.1, 1.0, 1.5)

    def test_shape_mismatch_raises(self) -> None:
        """Vector hyperparameters must match the coefficient count."""
        with pytest.raises(DimensionError, match="tau0"):
            inclusion_probability(np.ones(3), np.ones(2), 1.0, 0.5)


class TestSSVS:
    """Tests for the indicator draw."""

    def test_precision_matches_indicators(self, rng) -> None:
        """V^{-1} is diag(1/τ0²) where excluded and diag(1/τ1²) where included."""
        a = np.array([0.0, 3.0, 0.001, -4.0])
        tau0 = np.full(4, 0.01)
        tau1 = np.full(4, 10.0)
        draw = ssvs(a, tau0, tau1, 0.5, rng)
        expected = np.where(draw.lambda_ == 1, 1.0 / tau1 ** 2, 1.0 / tau0 ** 2)
        assert_allclose(np.diag(draw.v_i), expected)
        assert_allclose(draw.v_i, np.diag(np.diag(draw.v_i)))

    def test_clear_cases(self, rng) -> None:
        """Large coefficients are included and null ones excluded."""
        a = np.array([0.0, 5.0, 0.0, -5.0])
        draw = ssvs(a, 1e-4, 10.0, 0.5, rng)
        assert_array_equal(draw.lambda_, [0, 1, 0, 1])

    def test_indices_outside_subset_forced_in(self, rng) -> None:
        """Coefficients not under selection are always included."""
        a = np.zeros(4)
        draw = ssvs(a, 1e-4, 10.0, 0.5, rng, include=np.array([0, 2]))
        assert draw.lambda_[1] == 1
        assert draw.lambda_[3] == 1
        assert draw.v_i[1, 1] == pytest.approx(1.0 / 100.0)
        assert draw.lambda_[0] == 0
        assert draw.lambda_[2] == 0

    def test_empty_subset_includes_all(self, rng) -> None:
        """An empty selection subset leaves every coefficient included."""
        draw = ssvs(np.zeros(3), 0.01, 10.0, 0.5, rng, include=np.array([], dtype=int))
        assert_array_equal(draw.lambda_, [1, 1, 1])

    def test_bernoulli_frequency(self) -> None:
        """Indicator frequencies match the inclusion probability."""
        rng = np.random.default_rng(8)
        a = np.array([0.15])
        expected = inclusion_probability(a, 0.1, 1.0, 0.5)[0]
        draws = [ssvs(a, 0.1, 1.0, 0.5, rng).lambda_[0] for _ in range(5000)]
        assert np.mean(draws) == pytest.approx(expected, abs=0.03)

    def test_out_of_range_include_raises(self, rng) -> None:
        """Selection indices must address existing coefficients."""
        with pytest.raises(DimensionError, match="include"):
            ssvs(np.zeros(3), 0.1, 1.0, 0.5, rng, include=np.array([3]))


class TestSemiautomaticPrior:
    """Tests for OLS-scaled SSVS standard deviations."""

    def test_scaled_standard_errors(self, var_design) -> None:
        """τ0 and τ1 are the OLS standard errors times (c0, c1)."""
        y, x = var_design.y, var_design.x
        tau0, tau1 = ssvs_prior(y, x, semiautomatic=(0.1, 10.0))
        m = y.shape[0] * x.shape[0]
        assert tau0.shape == (m,)
        assert np.all(tau0 > 0)
        assert_allclose(tau1, 100.0 * tau0)

    def test_matches_explicit_ols(self) -> None:
        """Standard errors agree with the textbook formula."""
        rng = np.random.default_rng(4)
        x = rng.normal(size=(2, 60))
        y = np.array([[1.0, -1.0]]) @ x + rng.normal(size=(1, 60))
        tau0, _ = ssvs_prior(y, x, semiautomatic=(1.0, 2.0))
        beta = np.linalg.lstsq(x.T, y.T, rcond=None)[0]
        resid = y.T - x.T @ beta
        s2 = (resid.T @ resid).item() / (60 - 2)
        se = np.sqrt(s2 * np.diag(np.linalg.inv(x @ x.T)))
        assert_allclose(tau0, se)

    def test_invalid_multipliers_raise(self, var_design) -> None:
        """c0 must be positive and smaller than c1."""
        with pytest.raises(ConfigurationError, match="semiautomatic"):
            ssvs_prior(var_design.y, var_design.x, semiautomatic=(10.0, 0.1))
