#! /usr/bin/env python

import doctest
import unittest

import numpy as np

from rdcpy import parallel
from rdcpy.parallel import SerialContext, ThreadGroup, run_workers


def load_tests(loader, tests, ignore):
    tests.addTests(doctest.DocTestSuite(parallel))
    return tests


class SerialContextTestCase(unittest.TestCase):
    def test_identity(self):
        ctx = SerialContext()
        buffer = np.array([1.0, 2.0])
        self.assertIs(ctx.allreduce_sum(buffer), buffer)
        gathered = ctx.allgather(buffer)
        self.assertEqual(len(gathered), 1)
        np.testing.assert_array_equal(gathered[0], buffer)


class ThreadGroupTestCase(unittest.TestCase):
    """Collectives among in-process workers."""

    def test_allreduce_in_place(self):
        def work(ctx):
            buffer = np.zeros((4, 3))
            buffer[ctx.worker_index] = ctx.worker_index + 1
            out = ctx.allreduce_sum(buffer)
            self.assertIs(out, buffer)
            return buffer

        results = run_workers(work, 4)
        expected = np.repeat([[1.0], [2.0], [3.0], [4.0]], 3, axis=1)
        for result in results:
            np.testing.assert_array_equal(result, expected)

    def test_allgather_order(self):
        results = run_workers(lambda ctx: ctx.allgather(np.array([10 * ctx.worker_index])), 3)
        for gathered in results:
            self.assertEqual([int(g[0]) for g in gathered], [0, 10, 20])

    def test_repeated_collectives(self):
        def work(ctx):
            total = 0.0
            for step in range(20):
                total += ctx.allreduce_sum(np.array([float(step)]))[0]
            return total

        self.assertEqual(run_workers(work, 3), [570.0, 570.0, 570.0])

    def test_error_propagation(self):
        """A failing worker releases the others and its error surfaces."""

        def work(ctx):
            if ctx.worker_index == 1:
                raise KeyError("worker 1 failed")
            return ctx.allreduce_sum(np.ones(2))

        self.assertRaises(KeyError, run_workers, work, 3)

    def test_invalid_group(self):
        self.assertRaises(ValueError, ThreadGroup, 0)
        self.assertRaises(ValueError, ThreadGroup(2).context, 2)
