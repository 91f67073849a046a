#!/usr/bin/env python
"""Agreement between calculated and experimental couplings.

Comparing RDCs of a single structure with experiment is only meaningful
up to the (unknown) aligned fraction of molecules, so besides the
quality factor the correlation between the two sets is reported as
well.

- `q_factor_squared`: Q² = Σ(D - Dexp)² / ΣDexp².
- `q_factor`: Q = √Q².
- `correlation`: Pearson correlation coefficient.
- `r_squared`: coefficient of determination of `calculated` as a
  prediction of `experimental`.

>>> q_factor_squared([1.0, 2.0], [1.0, 2.0])
0.0
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike
from scipy.stats import pearsonr
from sklearn.metrics import r2_score


def _pair(calculated: ArrayLike, experimental: ArrayLike):
    calculated = np.asarray(calculated, dtype=float)
    experimental = np.asarray(experimental, dtype=float)
    if calculated.shape != experimental.shape:
        raise ValueError(
            f"Shape mismatch: {calculated.shape} calculated vs "
            f"{experimental.shape} experimental couplings."
        )
    return calculated, experimental


def q_factor_squared(calculated: ArrayLike, experimental: ArrayLike) -> float:
    """Squared quality factor.

    Args:
        calculated (ArrayLike): Calculated couplings.
        experimental (ArrayLike): Experimental couplings.

    Returns:
        float: Σ(D - Dexp)² / ΣDexp².
    """
    calculated, experimental = _pair(calculated, experimental)
    norm = np.sum(experimental**2)
    if norm == 0.0:
        raise ValueError("Experimental couplings are all zero; Q is undefined.")
    return float(np.sum((calculated - experimental) ** 2) / norm)


def q_factor(calculated: ArrayLike, experimental: ArrayLike) -> float:
    """Quality factor, the square root of `q_factor_squared`."""
    return float(np.sqrt(q_factor_squared(calculated, experimental)))


def correlation(calculated: ArrayLike, experimental: ArrayLike) -> float:
    """Pearson correlation coefficient of the two sets."""
    calculated, experimental = _pair(calculated, experimental)
    return float(pearsonr(calculated, experimental)[0])


def r_squared(calculated: ArrayLike, experimental: ArrayLike) -> float:
    """Coefficient of determination with `experimental` as ground truth."""
    calculated, experimental = _pair(calculated, experimental)
    return float(r2_score(experimental, calculated))
