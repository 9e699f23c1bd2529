"""
Linear-algebra utilities for the Gibbs samplers.

**Kronecker products (kronecker.py):**
- vec / unvec for column-stacked coefficient matrices
- Kronecker matrix-vector products without materialisation
- Constant and time-varying residual precision handling

**Factorisations (decompositions.py):**
- Cholesky factors and PD inverses with tagged failures
- Symmetric matrix square roots via eigendecomposition

**Sampling primitives (distributions.py):**
- Gaussians in precision (canonical) form
- Wishart draws driven by an explicit generator
"""

from bvargibbs.linalg.kronecker import (
    vec,
    unvec,
    kron_matvec,
    kron_precision,
    split_precision,
    mean_precision,
    stacked_kron_precision,
    stacked_cross_moment,
)
from bvargibbs.linalg.decompositions import (
    check_square,
    symmetrize,
    cholesky_lower,
    inverse_pd,
    sqrtm_psd,
    inv_sqrtm_pd,
)
from bvargibbs.linalg.distributions import (
    precision_moments,
    draw_from_factor,
    draw_normal_from_precision,
    draw_wishart,
)

__all__ = [
    # Kronecker products
    "vec",
    "unvec",
    "kron_matvec",
    "kron_precision",
    "split_precision",
    "mean_precision",
    "stacked_kron_precision",
    "stacked_cross_moment",
    # Factorisations
    "check_square",
    "symmetrize",
    "cholesky_lower",
    "inverse_pd",
    "sqrtm_psd",
    "inv_sqrtm_pd",
    # Sampling primitives
    "precision_moments",
    "draw_from_factor",
    "draw_normal_from_precision",
    "draw_wishart",
]
