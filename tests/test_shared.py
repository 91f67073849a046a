#! /usr/bin/env python

import doctest
import unittest

from rdcpy import shared


def load_tests(loader, tests, ignore):
    tests.addTests(doctest.DocTestSuite(shared))
    return tests


class ConstantTestCase(unittest.TestCase):
    """Test case for the `Constant` class."""

    def test_number_of_constants(self):
        """Check the number of constants to the previous state."""
        previous_number_of_constants = 5
        current_number_of_constants = len(vars(shared.constants))
        self.assertEqual(current_number_of_constants, previous_number_of_constants)

    def test_constants(self):
        """Test the values of all the constants."""
        C = shared.constants
        self.assertEqual(C.h, 6.6260693e-34)
        self.assertEqual(C.hbar, 1.05457168e-34)
        self.assertEqual(C.mu_0, 1.25663706212e-06)
        self.assertEqual(C.rdc_prefactor, 0.3356806)
        self.assertEqual(C.min_bond_length, 1e-08)

    def test_details(self):
        """Metadata survives next to the numeric value."""
        C = shared.constants
        self.assertEqual(C.mu_0.details.units, "N / A**2")
        self.assertFalse(hasattr(C.mu_0.details, "value"))
        self.assertIsInstance(C.rdc_prefactor, float)

    def test_quantity(self):
        length = shared.constants.min_bond_length.quantity
        self.assertAlmostEqual(length.to("angstrom").magnitude, 1e-07)

    def test_dipolar_prefactor(self):
        """The bundled prefactor is mu_0 h / (8 pi^3) in Hz nm^3."""
        self.assertAlmostEqual(
            shared.dipolar_prefactor(), shared.constants.rdc_prefactor, places=5
        )

    def test_unit_registry(self):
        length = shared.Q_(1.04, "angstrom").to("nm")
        self.assertAlmostEqual(length.magnitude, 0.104)
