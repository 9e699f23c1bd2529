"""
Gibbs posterior simulation for Bayesian VAR and VEC models.

Subpackages:
- linalg: Kronecker products, factorisations, Gaussian and Wishart draws
- posterior: conditional samplers for coefficients, cointegration space,
  variable selection and covariance
- models: priors, design matrices and frozen draw containers
- responses: impulse responses and variance decompositions
- inference: chain driver and multi-chain runs
"""

from bvargibbs.exceptions import (
    BvarError,
    ChainError,
    ConfigurationError,
    DimensionError,
    SingularMatrixError,
)
from bvargibbs.posterior import post_coint_kls, post_normal, post_normal_sur, post_wishart, ssvs
from bvargibbs.models import (
    BVAR,
    BVEC,
    CointegrationPrior,
    NormalPrior,
    SSVSPrior,
    WishartPrior,
    bvec_to_bvar,
    gen_var,
    gen_vec,
    ssvs_prior,
)
from bvargibbs.responses import ResponseType, fevd, irf
from bvargibbs.inference import GibbsSampler, SamplingSummary

__version__ = "0.1.0"

__all__ = [
    "BvarError",
    "ChainError",
    "ConfigurationError",
    "DimensionError",
    "SingularMatrixError",
    "post_normal",
    "post_normal_sur",
    "post_coint_kls",
    "ssvs",
    "post_wishart",
    "BVAR",
    "BVEC",
    "NormalPrior",
    "WishartPrior",
    "SSVSPrior",
    "CointegrationPrior",
    "bvec_to_bvar",
    "gen_var",
    "gen_vec",
    "ssvs_prior",
    "ResponseType",
    "irf",
    "fevd",
    "GibbsSampler",
    "SamplingSummary",
]
