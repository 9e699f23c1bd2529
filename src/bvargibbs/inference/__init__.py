"""
Gibbs sampling of Bayesian VAR and VEC models.

This module runs complete chains from the conditional samplers in posterior/:
1. run_var_chain: coefficients, covariance and optional SSVS
2. run_vec_chain: cointegration space and covariance
3. GibbsSampler: chain configuration and independent multi-chain runs
4. SamplingSummary: per-chain draws, pooling and arviz export

**Usage:**
```python
from bvargibbs.models import gen_var
from bvargibbs.inference import GibbsSampler

design = gen_var(data, p=2, deterministic="const")
sampler = GibbsSampler(iterations=5000, burnin=1000)
summary = sampler.sample_var(design.y, design.x, n_lags=2, chains=4, random_seed=42)

model = summary.combined()        # BVAR with all chains pooled
idata = summary.to_inference_data()
```
"""

from bvargibbs.inference.gibbs import (
    GibbsSampler,
    SamplingSummary,
    run_var_chain,
    run_vec_chain,
)

__all__ = [
    "GibbsSampler",
    "SamplingSummary",
    "run_var_chain",
    "run_vec_chain",
]
