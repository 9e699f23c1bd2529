"""
Model specification and posterior containers.

**Priors (priors.py):**
- Normal, Wishart, SSVS and cointegration-space priors
- Semi-automatic SSVS standard deviations

**Design matrices (design.py):**
- VAR and VEC regressors from a (T, K) data array

**Draws (draws.py):**
- DrawStore: burn-in and thinning while a chain runs
- BVAR / BVEC: frozen per-draw arrays
- VEC to VAR conversion, thinning, arviz export and summaries
"""

from bvargibbs.models.priors import (
    NormalPrior,
    WishartPrior,
    SSVSPrior,
    CointegrationPrior,
    ssvs_prior,
)
from bvargibbs.models.design import VarDesign, VecDesign, gen_var, gen_vec
from bvargibbs.models.draws import (
    DrawStore,
    BVAR,
    BVEC,
    bvec_to_bvar,
    thin,
    combine,
    to_inference_data,
    summary_stats,
)

__all__ = [
    # Priors
    "NormalPrior",
    "WishartPrior",
    "SSVSPrior",
    "CointegrationPrior",
    "ssvs_prior",
    # Design matrices
    "VarDesign",
    "VecDesign",
    "gen_var",
    "gen_vec",
    # Draws
    "DrawStore",
    "BVAR",
    "BVEC",
    "bvec_to_bvar",
    "thin",
    "combine",
    "to_inference_data",
    "summary_stats",
]
