#! /usr/bin/env python

import numpy as np

from rdcpy.data import BOND_GYROMAGNETIC_PRODUCTS
from rdcpy.geometry import Box
from rdcpy.parallel import run_workers
from rdcpy.rdc import RDC
from rdcpy.restraint import HarmonicRestraint, restrain


def main():
    # The same configuration evaluated by one and by four workers.
    rng = np.random.default_rng(0)
    nbonds = 12
    box = Box([2.5, 2.5, 2.5])
    first = rng.uniform(0, 2.5, size=(nbonds, 3))
    d = rng.normal(size=(nbonds, 3))
    d *= 0.104 / np.linalg.norm(d, axis=1)[:, None]
    positions = np.empty((2 * nbonds, 3))
    positions[0::2] = first
    positions[1::2] = (first + d) % 2.5
    bonds = [(2 * i, 2 * i + 1) for i in range(nbonds)]

    engine = RDC(bonds, gyrom=BOND_GYROMAGNETIC_PRODUCTS["NH"])
    serial = engine.calculate(positions, box=box)
    results = run_workers(lambda ctx: engine.calculate(positions, box=box, context=ctx), 4)
    difference = max(np.abs(r.values - serial.values).max() for r in results)
    print(f"Largest difference between 1 and 4 workers: {difference:g} Hz")

    restraints = {name: HarmonicRestraint(at=0.0, kappa=1e-4) for name in serial.names}
    bias, forces, virial = restrain(serial, restraints, len(positions))
    print(f"Bias: {bias:.3f}")
    print(f"Net force: {forces.sum(axis=0)}")
    print(f"Virial:\n{virial}")


if __name__ == "__main__":
    main()
