#! /usr/bin/env python

import doctest
import unittest

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

from rdcpy import trajectory  # noqa: E402
from rdcpy.plot import rdc_correlation, rdc_timeseries  # noqa: E402
from rdcpy.rdc import RDC, maximal_coupling  # noqa: E402

NH = -72.5388


def load_tests(loader, tests, ignore):
    tests.addTests(doctest.DocTestSuite(trajectory))
    return tests


class TrajectoryTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = RDC([(0, 1)], gyrom=NH)
        # Bond along z, then along x.
        self.frames = np.array(
            [
                [[0.0, 0.0, 0.0], [0.0, 0.0, 0.104]],
                [[0.0, 0.0, 0.0], [0.104, 0.0, 0.0]],
            ]
        )

    def test_timeseries(self):
        series = trajectory.rdc_timeseries(self.engine, self.frames, progress=False)
        dmax = maximal_coupling(0.104, NH)
        np.testing.assert_allclose(series[:, 0], [dmax, -0.5 * dmax], rtol=1e-12)

    def test_ensemble_average(self):
        series = trajectory.rdc_timeseries(self.engine, self.frames, progress=False)
        dmax = maximal_coupling(0.104, NH)
        np.testing.assert_allclose(trajectory.ensemble_average(series), [0.25 * dmax])
        np.testing.assert_allclose(
            trajectory.ensemble_average(series, weights=[1.0, 0.0]), [dmax]
        )


class PlotTestCase(unittest.TestCase):
    def tearDown(self):
        plt.close("all")

    def test_correlation(self):
        experimental = np.array([-12.0, 3.5, 8.1, 15.2, -4.4])
        ax = rdc_correlation(experimental * 0.9, experimental, labels=list("ABCDE"))
        self.assertEqual(ax.get_xlabel(), "Experimental RDC (Hz)")
        self.assertTrue(ax.get_title().startswith("Q = 0.100"))

    def test_timeseries(self):
        series = np.array([[1.0, 2.0], [1.5, 2.5], [0.5, 3.0]])
        ax = rdc_timeseries(series)
        self.assertEqual(len(ax.get_lines()), 2)
        self.assertEqual(ax.get_xlabel(), "Frame")
        ax = rdc_timeseries(series, names=["N-H", "C-H"], time=[0.0, 0.1, 0.2])
        self.assertEqual(ax.get_xlabel(), "Time")
