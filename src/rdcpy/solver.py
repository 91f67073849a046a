#!/usr/bin/env python
"""Dense linear least squares through singular value decomposition.

The order tensor fit needs the least-squares solution of an over-determined
N x 5 system that may be rank deficient (e.g. all bond vectors in a plane).
Singular values below a relative cutoff are discarded before the solve,
which yields the minimum-norm solution instead of blowing up.

>>> A = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
>>> solution, singular_values, rank = svd_solve(A, np.array([1.0, 2.0, 3.0]))
>>> solution
array([1., 2.])
>>> rank
2
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .exceptions import ConfigurationError, FitError

try:
    import scipy.linalg

    IS_SCIPY_AVAILABLE = True
except ModuleNotFoundError:
    IS_SCIPY_AVAILABLE = False

MSG_SCIPY_NOT_INSTALLED = """
scipy is not installed.
The SVD back-calculation of RDCs needs a linear algebra backend.
Please install it with `pip install scipy`.
"""

logger = logging.getLogger(__name__)


def svd_solve(
    matrix: np.ndarray, rhs: np.ndarray, rcond: Optional[float] = None
) -> tuple[np.ndarray, np.ndarray, int]:
    """Least-squares solution of ``matrix @ x = rhs``.

    Args:
        matrix (np.ndarray): Design matrix, shape ``(N, M)``.
        rhs (np.ndarray): Right-hand side, shape ``(N,)``.
        rcond (float, optional): Singular values smaller than
            ``rcond * max(singular_values)`` are treated as zero.  Defaults
            to machine epsilon times ``max(N, M)``.

    Returns:
        (np.ndarray, np.ndarray, int): The solution ``x`` of shape
        ``(M,)``, the singular values and the effective rank.

    Raises:
        ConfigurationError: If scipy is not available.
        FitError: If the decomposition does not converge.
    """
    if not IS_SCIPY_AVAILABLE:
        raise ConfigurationError(MSG_SCIPY_NOT_INSTALLED)
    matrix = np.asarray(matrix, dtype=float)
    rhs = np.asarray(rhs, dtype=float)
    try:
        U, s, Vh = scipy.linalg.svd(matrix, full_matrices=False, lapack_driver="gesvd")
    except scipy.linalg.LinAlgError as exc:
        raise FitError(f"SVD of the {matrix.shape} design matrix did not converge") from exc

    if rcond is None:
        rcond = np.finfo(float).eps * max(matrix.shape)
    cutoff = rcond * s[0] if s.size else 0.0
    keep = s > cutoff
    rank = int(np.count_nonzero(keep))
    if rank < s.size:
        logger.warning(
            "Design matrix is rank deficient (rank %d of %d); "
            "discarding %d singular value(s).",
            rank,
            s.size,
            s.size - rank,
        )
    inverse = np.zeros_like(s)
    inverse[keep] = 1.0 / s[keep]
    solution = Vh.T @ (inverse * (U.T @ rhs))
    return solution, s, rank
