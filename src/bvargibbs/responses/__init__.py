"""
Dynamic responses of VAR posterior draws.

**Identification (identification.py):**
- ResponseType: feir, oir, sir, gir, sgir
- Impact matrices per scheme

**Impulse responses (irf.py):**
- Moving-average recursion and identified response tensors
- Per-draw responses from a draw store

**Variance decompositions (fevd.py):**
- FEVD tensors with optional normalisation of generalised shares
"""

from bvargibbs.responses.identification import ResponseType, impact_matrix
from bvargibbs.responses.irf import (
    ResponseDraws,
    ma_coefficients,
    impulse_responses,
    irf,
)
from bvargibbs.responses.fevd import (
    DecompositionDraws,
    variance_decomposition,
    fevd,
)

__all__ = [
    "ResponseType",
    "impact_matrix",
    "ResponseDraws",
    "ma_coefficients",
    "impulse_responses",
    "irf",
    "DecompositionDraws",
    "variance_decomposition",
    "fevd",
]
