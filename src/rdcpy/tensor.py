#!/usr/bin/env python
"""Alignment (Saupe order) tensor.

The alignment tensor is a symmetric, traceless 3x3 matrix.  It has five
independent entries; `OrderTensor` stores exactly those five and derives
``Szz = -Sxx - Syy``, so the traceless constraint can never be violated.

>>> S = OrderTensor(0.5, 0.25, 0.0, 0.0, 0.0)
>>> S.szz
-0.75
>>> S
Order tensor
Sxx, Syy, Szz: [0.5, 0.25, -0.75]
Sxy, Sxz, Syz: [0.0, 0.0, 0.0]
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike

COMPONENTS = ("Sxx", "Syy", "Sxy", "Sxz", "Syz")
"""Order of the independent components in `OrderTensor.vector`."""


def design_matrix(directions: ArrayLike) -> np.ndarray:
    """Rows relating unit bond vectors to the five tensor components.

    For a unit vector μ the reduced coupling μᵀSμ expands, using
    ``Szz = -Sxx - Syy``, to the dot product of the row
    ``[μx²-μz², μy²-μz², 2μxμy, 2μxμz, 2μyμz]`` with `OrderTensor.vector`.

    Args:
        directions (ArrayLike): Unit bond vectors, shape ``(N, 3)``.

    Returns:
        np.ndarray: Design matrix, shape ``(N, 5)``.
    """
    mu = np.asarray(directions, dtype=float)
    mx, my, mz = mu[..., 0], mu[..., 1], mu[..., 2]
    return np.stack(
        [
            mx * mx - mz * mz,
            my * my - mz * mz,
            2.0 * mx * my,
            2.0 * mx * mz,
            2.0 * my * mz,
        ],
        axis=-1,
    )


class OrderTensor:
    """Symmetric traceless tensor with five independent components.

    Args:
        sxx, syy, sxy, sxz, syz (float): The independent components.
    """

    __slots__ = ("_vector",)

    def __init__(self, sxx: float, syy: float, sxy: float, sxz: float, syz: float):
        vector = np.array([sxx, syy, sxy, sxz, syz], dtype=float)
        vector.flags.writeable = False
        self._vector = vector

    @classmethod
    def from_vector(cls, vector: ArrayLike) -> "OrderTensor":
        """Build from ``[Sxx, Syy, Sxy, Sxz, Syz]``."""
        vector = np.asarray(vector, dtype=float)
        if vector.shape != (5,):
            raise ValueError(f"Order tensor needs 5 components, got shape {vector.shape}.")
        return cls(*vector)

    @classmethod
    def from_matrix(cls, matrix: ArrayLike, atol: float = 1e-10) -> "OrderTensor":
        """Build from a full 3x3 matrix.

        Raises:
            ValueError: If the matrix is not symmetric and traceless.
        """
        M = np.asarray(matrix, dtype=float)
        if M.shape != (3, 3):
            raise ValueError(f"Order tensor matrix must be 3x3, got {M.shape}.")
        if not np.allclose(M, M.T, atol=atol):
            raise ValueError("Order tensor matrix must be symmetric.")
        if not np.isclose(np.trace(M), 0.0, atol=atol):
            raise ValueError(f"Sxx + Syy + Szz = {np.trace(M)}; should be zero.")
        return cls(M[0, 0], M[1, 1], M[0, 1], M[0, 2], M[1, 2])

    def __repr__(self) -> str:
        diagonal = [self.sxx, self.syy, self.szz]
        off_diagonal = [self.sxy, self.sxz, self.syz]
        lines = [
            "Order tensor",
            f"Sxx, Syy, Szz: {diagonal}",
            f"Sxy, Sxz, Syz: {off_diagonal}",
        ]
        return "\n".join(lines)

    @property
    def vector(self) -> np.ndarray:
        """The independent components ``[Sxx, Syy, Sxy, Sxz, Syz]``."""
        return self._vector.copy()

    @property
    def sxx(self) -> float:
        return float(self._vector[0])

    @property
    def syy(self) -> float:
        return float(self._vector[1])

    @property
    def szz(self) -> float:
        """Derived from the traceless condition."""
        return float(-self._vector[0] - self._vector[1])

    @property
    def sxy(self) -> float:
        return float(self._vector[2])

    @property
    def sxz(self) -> float:
        return float(self._vector[3])

    @property
    def syz(self) -> float:
        return float(self._vector[4])

    @property
    def matrix(self) -> np.ndarray:
        """Full symmetric 3x3 matrix."""
        return np.array(
            [
                [self.sxx, self.sxy, self.sxz],
                [self.sxy, self.syy, self.syz],
                [self.sxz, self.syz, self.szz],
            ]
        )

    @property
    def principal_values(self) -> np.ndarray:
        """Eigenvalues ordered so that ``|Sxx| <= |Syy| <= |Szz|``."""
        values = np.linalg.eigvalsh(self.matrix)
        return values[np.argsort(np.abs(values), kind="stable")]

    @property
    def axial(self) -> float:
        """Axial component ``(Szz - (Sxx + Syy) / 2) / 3`` in the principal frame."""
        sxx, syy, szz = self.principal_values
        return float((szz - (sxx + syy) / 2.0) / 3.0)

    @property
    def rhombic(self) -> float:
        """Rhombic component ``(Sxx - Syy) / 3`` in the principal frame."""
        sxx, syy, _ = self.principal_values
        return float((sxx - syy) / 3.0)

    def reduced_couplings(self, directions: ArrayLike) -> np.ndarray:
        """μᵀSμ for every unit vector in `directions`."""
        return design_matrix(directions) @ self._vector
