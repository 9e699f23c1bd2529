"""
Conditional posterior samplers for one Gibbs iteration.

**Coefficients (coefficients.py):**
- Gaussian draw of vec(A) given Σ^{-1}, with a Kronecker fast path
- Seemingly-unrelated-regressions form

**Cointegration space (cointegration.py):**
- (α, β, Π, Γ) draw with β^T β = I_r

**Variable selection (selection.py):**
- Spike-and-slab inclusion indicators in the log domain

**Covariance (covariance.py):**
- Conjugate Wishart draw of Σ^{-1}
"""

from bvargibbs.posterior.coefficients import (
    NormalPosterior,
    normal_posterior,
    post_normal,
    sur_posterior,
    post_normal_sur,
    coefficient_matrix,
)
from bvargibbs.posterior.cointegration import CointegrationDraw, post_coint_kls
from bvargibbs.posterior.selection import SelectionDraw, ssvs, inclusion_probability
from bvargibbs.posterior.covariance import CovarianceDraw, post_wishart

__all__ = [
    # Coefficients
    "NormalPosterior",
    "normal_posterior",
    "post_normal",
    "sur_posterior",
    "post_normal_sur",
    "coefficient_matrix",
    # Cointegration
    "CointegrationDraw",
    "post_coint_kls",
    # Selection
    "SelectionDraw",
    "ssvs",
    "inclusion_probability",
    # Covariance
    "CovarianceDraw",
    "post_wishart",
]
