#!/usr/bin/env python
"""Periodic boundary conditions and bond vectors.

The dipolar coupling only needs the displacement between the two atoms
of a bond.  `Box` returns that displacement under the minimum image
convention for open boundaries, orthorhombic cells and general
triclinic cells.

>>> box = Box([2.0, 2.0, 2.0])
>>> box.displacement([0.1, 0.0, 0.0], [1.9, 0.0, 0.0])
array([-0.2,  0. ,  0. ])
"""

from __future__ import annotations

import itertools
from typing import Optional

import numpy as np
from numpy.typing import ArrayLike

_NEIGHBOUR_SHIFTS = np.array(list(itertools.product((-1, 0, 1), repeat=3)), float)


class Box:
    """Simulation cell used to compute minimum image displacements.

    Args:
        cell (ArrayLike, optional): ``None`` for open boundaries, three
            box lengths for an orthorhombic cell, or a 3x3 matrix whose
            rows are the lattice vectors of a triclinic cell.  Lengths
            with value zero are treated as non-periodic directions.
    """

    def __init__(self, cell: Optional[ArrayLike] = None):
        if cell is None:
            self.cell = None
            self.orthorhombic = True
            return
        cell = np.asarray(cell, dtype=float)
        if cell.shape == (3,):
            self.cell = np.diag(cell)
            self.orthorhombic = True
        elif cell.shape == (3, 3):
            self.cell = cell
            self.orthorhombic = np.allclose(cell, np.diag(np.diag(cell)))
        else:
            raise ValueError(f"Box cell must have shape (3,) or (3, 3), got {cell.shape}")
        if not self.orthorhombic and np.isclose(np.linalg.det(cell), 0.0):
            raise ValueError("Triclinic box cell is singular.")

    def __repr__(self) -> str:
        if self.cell is None:
            return "Box: open boundaries"
        kind = "orthorhombic" if self.orthorhombic else "triclinic"
        return f"Box: {kind}\n{self.cell}"

    @property
    def periodic(self) -> bool:
        """Whether any direction is periodic."""
        return self.cell is not None and bool(np.any(self.cell))

    def displacement(self, a: ArrayLike, b: ArrayLike) -> np.ndarray:
        """Minimum image displacement ``b - a``.

        Args:
            a (ArrayLike): Position(s) of the first atom, shape ``(..., 3)``.
            b (ArrayLike): Position(s) of the second atom, shape ``(..., 3)``.

        Returns:
            np.ndarray: Displacement vector(s), shape ``(..., 3)``.
        """
        d = np.asarray(b, dtype=float) - np.asarray(a, dtype=float)
        if not self.periodic:
            return d
        if self.orthorhombic:
            lengths = np.diag(self.cell)
            periodic = lengths != 0
            shift = np.zeros_like(d)
            shift[..., periodic] = lengths[periodic] * np.round(
                d[..., periodic] / lengths[periodic]
            )
            return d - shift
        frac = d @ np.linalg.inv(self.cell)
        frac -= np.round(frac)
        wrapped = frac @ self.cell
        # A wrapped vector in a skewed cell is not necessarily the shortest
        # one; check the neighbouring images as well.
        images = wrapped[..., None, :] + _NEIGHBOUR_SHIFTS @ self.cell
        best = np.argmin(np.einsum("...ij,...ij->...i", images, images), axis=-1)
        return np.take_along_axis(images, best[..., None, None], axis=-2)[..., 0, :]
