#!/usr/bin/env python
"""Restraints that turn RDC components into forces.

A restraint is a bias ``U(s)`` on a single RDC component ``s``.  The
component's derivatives with respect to its two atoms and its virial
contribution are chained with ``dU/ds`` to give atomic forces and a
virial.  Components from the SVD mode carry no derivatives and are
rejected.

>>> restraint = HarmonicRestraint(at=10.0, kappa=2.0)
>>> restraint.energy(12.0)
4.0
>>> restraint.generalized_force(12.0)
-4.0
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import numpy as np

from .exceptions import RestraintError
from .rdc import Component, RDCResult

logger = logging.getLogger(__name__)


class HarmonicRestraint:
    """Harmonic plus linear bias ``0.5·kappa·(s - at)² + slope·(s - at)``.

    Args:
        at (float): Centre of the restraint (Hz).
        kappa (float): Force constant.
        slope (float): Linear term, default 0.
    """

    def __init__(self, at: float, kappa: float, slope: float = 0.0):
        self.at = at
        self.kappa = kappa
        self.slope = slope

    def __repr__(self) -> str:
        lines = [
            str(type(self).__name__),
            f"At: {self.at}",
            f"Kappa: {self.kappa}",
            f"Slope: {self.slope}",
        ]
        return "\n".join(lines)

    def energy(self, value: float) -> float:
        """Bias energy at `value`."""
        delta = value - self.at
        return 0.5 * self.kappa * delta * delta + self.slope * delta

    def generalized_force(self, value: float) -> float:
        """``-dU/ds`` at `value`."""
        return -(self.kappa * (value - self.at) + self.slope)

    def apply(self, component: Component, natoms: int):
        """Bias, atomic forces and virial from one component.

        Args:
            component (Component): A direct-mode RDC component.
            natoms (int): Number of atoms in the force array.

        Returns:
            (float, np.ndarray, np.ndarray): Bias energy, forces of shape
            ``(natoms, 3)`` and virial of shape ``(3, 3)``.

        Raises:
            RestraintError: If the component carries no derivatives.
        """
        if not component.has_derivatives:
            raise RestraintError(component.name)
        f = self.generalized_force(component.value)
        forces = np.zeros((natoms, 3))
        forces[component.bond.a] += f * component.derivatives[0]
        forces[component.bond.b] += f * component.derivatives[1]
        return self.energy(component.value), forces, f * component.virial


def restrain(result: RDCResult, restraints: Mapping[str, HarmonicRestraint], natoms: int):
    """Apply restraints to several components of one result.

    Args:
        result (RDCResult): Output of `rdcpy.rdc.RDC.calculate`.
        restraints (Mapping): Component name to restraint.
        natoms (int): Number of atoms in the force array.

    Returns:
        (float, np.ndarray, np.ndarray): Total bias, forces ``(natoms, 3)``
        and virial ``(3, 3)``.
    """
    bias = 0.0
    forces = np.zeros((natoms, 3))
    virial = np.zeros((3, 3))
    for name, restraint in restraints.items():
        energy, f, v = restraint.apply(result[name], natoms)
        bias += energy
        forces += f
        virial += v
    logger.debug("Restraint bias: %g over %d component(s).", bias, len(restraints))
    return bias, forces, virial
