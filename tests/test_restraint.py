#! /usr/bin/env python

import doctest
import unittest

import numpy as np

from rdcpy import restraint
from rdcpy.rdc import RDC
from rdcpy.restraint import HarmonicRestraint, restrain
from rdcpy.utils import numerical_gradient

NH = -72.5388


def load_tests(loader, tests, ignore):
    tests.addTests(doctest.DocTestSuite(restraint))
    return tests


class HarmonicRestraintTestCase(unittest.TestCase):
    """Forces from restrained RDC components."""

    def setUp(self):
        self.engine = RDC([(0, 1), (2, 1)], gyrom=[NH, 179.9319])
        self.positions = np.array(
            [[0.0, 0.0, 0.0], [0.05, 0.04, 0.08], [0.12, 0.11, 0.03]]
        )

    def test_energy_and_force(self):
        r = HarmonicRestraint(at=1.0, kappa=3.0, slope=0.5)
        self.assertEqual(r.energy(3.0), 0.5 * 3.0 * 4.0 + 0.5 * 2.0)
        self.assertEqual(r.generalized_force(3.0), -(3.0 * 2.0 + 0.5))
        self.assertEqual(r.energy(1.0), 0.0)

    def test_forces_match_energy_gradient(self):
        """Restraint forces are minus the gradient of the bias."""
        restraints = {"rdc_0": HarmonicRestraint(at=-5.0, kappa=1e-3), "rdc_1": HarmonicRestraint(at=20.0, kappa=2e-3, slope=0.1)}

        def bias(p):
            return restrain(self.engine.calculate(p), restraints, len(p))[0]

        _, forces, _ = restrain(self.engine.calculate(self.positions), restraints, 3)
        numeric = -numerical_gradient(bias, self.positions, step=1e-7)
        np.testing.assert_allclose(forces, numeric, rtol=1e-5, atol=1e-5 * np.abs(forces).max())

    def test_momentum_conservation(self):
        result = self.engine.calculate(self.positions)
        _, forces, _ = HarmonicRestraint(at=0.0, kappa=1.0).apply(result["rdc_1"], 3)
        np.testing.assert_allclose(forces.sum(axis=0), 0.0, atol=1e-9 * np.abs(forces).max())
        np.testing.assert_array_equal(forces[0], 0.0)

    def test_virial_scaled(self):
        result = self.engine.calculate(self.positions)
        r = HarmonicRestraint(at=10.0, kappa=0.5)
        _, _, virial = r.apply(result[0], 3)
        np.testing.assert_allclose(virial, r.generalized_force(result[0].value) * result[0].virial)

    def test_repr(self):
        self.assertEqual(
            repr(HarmonicRestraint(at=1.0, kappa=2.0)),
            "HarmonicRestraint\nAt: 1.0\nKappa: 2.0\nSlope: 0.0",
        )
