#! /usr/bin/env python

import doctest
import unittest
from unittest import mock

import numpy as np
import scipy.linalg

from rdcpy import solver, tensor
from rdcpy.exceptions import ConfigurationError, FitError, RestraintError
from rdcpy.parallel import run_workers
from rdcpy.rdc import RDC, maximal_coupling
from rdcpy.restraint import HarmonicRestraint
from rdcpy.tensor import OrderTensor, design_matrix
from rdcpy.utils import random_theta_phi, spherical_to_cartesian

NH = -72.5388
S_TRUE = np.array([3e-4, -5e-4, 1e-4, -2e-4, 4e-4])


def load_tests(loader, tests, ignore):
    tests.addTests(doctest.DocTestSuite(solver))
    tests.addTests(doctest.DocTestSuite(tensor))
    return tests


def aligned_system(nbonds, seed=0, planar=False):
    """Bonds, positions and the couplings produced by `S_TRUE`."""
    rng = np.random.default_rng(seed)
    theta, phi = random_theta_phi(nbonds, rng)
    if planar:
        theta = np.full(nbonds, np.pi / 2)
    directions = spherical_to_cartesian(theta, phi)
    if planar:
        directions[:, 2] = 0.0
    positions = np.empty((2 * nbonds, 3))
    positions[0::2] = rng.uniform(0.0, 2.0, size=(nbonds, 3))
    positions[1::2] = positions[0::2] + rng.uniform(0.1, 0.11, size=(nbonds, 1)) * directions
    if planar:
        positions[1::2, 2] = positions[0::2, 2]
    d = positions[1::2] - positions[0::2]
    r = np.linalg.norm(d, axis=1)
    couplings = maximal_coupling(r, NH) * (design_matrix(d / r[:, None]) @ S_TRUE)
    bonds = [(2 * i, 2 * i + 1) for i in range(nbonds)]
    return bonds, positions, couplings


class FitModeTestCase(unittest.TestCase):
    """Order tensor fit and back-calculation."""

    def test_recovers_tensor(self):
        bonds, positions, couplings = aligned_system(10)
        engine = RDC(bonds, gyrom=NH, coupling=couplings, svd=True)
        result = engine.calculate(positions)
        np.testing.assert_allclose(
            result.order_tensor.vector, S_TRUE, rtol=1e-8, atol=1e-14
        )
        np.testing.assert_allclose(result.values, couplings, rtol=1e-8, atol=1e-10)
        self.assertAlmostEqual(result.order_tensor.szz, -S_TRUE[0] - S_TRUE[1])

    def test_no_derivatives(self):
        bonds, positions, couplings = aligned_system(6)
        result = RDC(bonds, gyrom=NH, coupling=couplings, svd=True).calculate(positions)
        self.assertIsNone(result.derivatives)
        self.assertIsNone(result.virial)
        for component in result:
            self.assertFalse(component.has_derivatives)

    def test_restraint_rejected(self):
        bonds, positions, couplings = aligned_system(5)
        result = RDC(bonds, gyrom=NH, coupling=couplings, svd=True).calculate(positions)
        with self.assertRaises(RestraintError) as cm:
            HarmonicRestraint(at=0.0, kappa=1.0).apply(result["rdc_3"], len(positions))
        self.assertIn("rdc_3", cm.exception.message)

    def test_forces_serial(self):
        bonds, positions, couplings = aligned_system(5)
        engine = RDC(bonds, gyrom=NH, coupling=couplings, svd=True)
        self.assertTrue(engine.serial)
        results = run_workers(lambda ctx: engine.calculate(positions, context=ctx), 3)
        for result in results:
            np.testing.assert_array_equal(result.values, results[0].values)

    def test_rank_deficient(self):
        """Coplanar bonds leave Sxz and Syz undetermined but do not fail."""
        bonds, positions, couplings = aligned_system(8, seed=4, planar=True)
        engine = RDC(bonds, gyrom=NH, coupling=couplings, svd=True)
        with self.assertLogs("rdcpy.solver", level="WARNING"):
            result = engine.calculate(positions)
        vector = result.order_tensor.vector
        self.assertTrue(np.all(np.isfinite(vector)))
        np.testing.assert_allclose(vector[:3], S_TRUE[:3], rtol=1e-8, atol=1e-14)
        np.testing.assert_allclose(vector[3:], 0.0, atol=1e-12)
        np.testing.assert_allclose(result.values, couplings, rtol=1e-8, atol=1e-10)

    def test_too_few_bonds(self):
        bonds, positions, couplings = aligned_system(4)
        with self.assertRaises(ConfigurationError) as cm:
            RDC(bonds, gyrom=NH, coupling=couplings, svd=True)
        self.assertIn("at least 5", cm.exception.message)

    def test_vanishing_maximal_coupling(self):
        """A zero scale or gyromagnetic product cannot enter the fit."""
        bonds, positions, couplings = aligned_system(6)
        with self.assertRaises(ConfigurationError) as cm:
            RDC(bonds, gyrom=NH, scale=[1, 1, 0, 1, 1, 1], coupling=couplings, svd=True)
        self.assertIn("SCALE3", cm.exception.message)
        gyrom = [NH, NH, NH, NH, 0.0, NH]
        with self.assertRaises(ConfigurationError) as cm:
            RDC(bonds, gyrom=gyrom, coupling=couplings, svd=True)
        self.assertIn("GYROM5", cm.exception.message)
        # Direct mode has no such division.
        result = RDC(bonds, gyrom=gyrom).calculate(positions)
        self.assertEqual(result[4].value, 0.0)
        self.assertTrue(np.all(np.isfinite(result.values)))

    def test_coupling_count(self):
        bonds, positions, couplings = aligned_system(6)
        for coupling in (None, 1.0, couplings[:5]):
            with self.subTest(coupling=coupling):
                with self.assertRaises(ConfigurationError) as cm:
                    RDC(bonds, gyrom=NH, coupling=coupling, svd=True)
                self.assertIn("COUPLING", cm.exception.message)

    def test_backend_missing(self):
        bonds, positions, couplings = aligned_system(6)
        with mock.patch("rdcpy.rdc.IS_SCIPY_AVAILABLE", False):
            with self.assertRaises(ConfigurationError) as cm:
                RDC(bonds, gyrom=NH, coupling=couplings, svd=True)
        self.assertIn("scipy", cm.exception.message)

    def test_no_convergence(self):
        bonds, positions, couplings = aligned_system(6)
        engine = RDC(bonds, gyrom=NH, coupling=couplings, svd=True)
        failure = scipy.linalg.LinAlgError("SVD did not converge")
        with mock.patch("scipy.linalg.svd", side_effect=failure):
            with self.assertRaises(FitError) as cm:
                engine.calculate(positions)
        self.assertTrue(cm.exception.message.startswith("[Fatal]"))

    def test_from_keywords(self):
        bonds, positions, couplings = aligned_system(5)
        keywords = {"GYROM": NH, "SVD": True}
        for i, (bond, coupling) in enumerate(zip(bonds, couplings), start=1):
            keywords[f"ATOMS{i}"] = bond
            keywords[f"COUPLING{i}"] = coupling
        engine = RDC.from_keywords(keywords)
        self.assertTrue(engine.svd)
        np.testing.assert_array_equal(engine.coupling, couplings)
        result = engine.calculate(positions)
        np.testing.assert_allclose(result.values, couplings, rtol=1e-8, atol=1e-10)


class OrderTensorTestCase(unittest.TestCase):
    def test_traceless(self):
        S = OrderTensor.from_vector(S_TRUE)
        self.assertAlmostEqual(np.trace(S.matrix), 0.0)
        self.assertAlmostEqual(float(np.sum(S.principal_values)), 0.0)

    def test_from_matrix(self):
        M = np.array([[0.1, 0.2, 0.0], [0.2, 0.3, -0.1], [0.0, -0.1, -0.4]])
        S = OrderTensor.from_matrix(M)
        np.testing.assert_allclose(S.matrix, M)
        self.assertRaises(ValueError, OrderTensor.from_matrix, np.eye(3))
        self.assertRaises(ValueError, OrderTensor.from_matrix, [[0, 1, 0], [0, 0, 0], [0, 0, 0]])
        self.assertRaises(ValueError, OrderTensor.from_vector, [1.0, 2.0])

    def test_axial_rhombic(self):
        S = OrderTensor.from_matrix(np.diag([-0.5, -0.5, 1.0]))
        self.assertAlmostEqual(S.axial, 0.5)
        self.assertAlmostEqual(S.rhombic, 0.0)
        S = OrderTensor.from_matrix(np.diag([-0.2, -0.6, 0.8]))
        self.assertAlmostEqual(S.rhombic, (-0.2 + 0.6) / 3)

    def test_reduced_couplings(self):
        """μᵀSμ computed from the design matrix matches the full matrix."""
        S = OrderTensor.from_vector(S_TRUE)
        directions = spherical_to_cartesian(*random_theta_phi(6, np.random.default_rng(2)))
        expected = np.einsum("ni,ij,nj->n", directions, S.matrix, directions)
        np.testing.assert_allclose(S.reduced_couplings(directions), expected, atol=1e-15)

    def test_immutable(self):
        S = OrderTensor.from_vector(S_TRUE)
        vector = S.vector
        vector[0] = 1.0
        self.assertEqual(S.sxx, S_TRUE[0])
        with self.assertRaises(AttributeError):
            S.extra = 1.0
