#! /usr/bin/env python

import matplotlib.pyplot as plt
import numpy as np

from rdcpy.data import BOND_GYROMAGNETIC_PRODUCTS
from rdcpy.plot import rdc_correlation
from rdcpy.rdc import RDC, maximal_coupling
from rdcpy.statistics import q_factor
from rdcpy.tensor import OrderTensor
from rdcpy.utils import random_theta_phi, spherical_to_cartesian


def main():
    # Synthetic "experimental" couplings from a known alignment tensor,
    # perturbed by 1 Hz noise, are fitted back with the SVD mode.
    rng = np.random.default_rng(2024)
    nbonds = 40
    gyrom = BOND_GYROMAGNETIC_PRODUCTS["NH"]
    true_tensor = OrderTensor(4e-4, -6e-4, 1.5e-4, -2e-4, 3e-4)

    directions = spherical_to_cartesian(*random_theta_phi(nbonds, rng))
    positions = np.empty((2 * nbonds, 3))
    positions[0::2] = rng.uniform(0, 3, size=(nbonds, 3))
    positions[1::2] = positions[0::2] + 0.102 * directions
    bonds = [(2 * i, 2 * i + 1) for i in range(nbonds)]

    exact = maximal_coupling(0.102, gyrom) * true_tensor.reduced_couplings(directions)
    experimental = exact + rng.normal(0, 1.0, size=nbonds)

    engine = RDC(bonds, gyrom=gyrom, coupling=experimental, svd=True)
    result = engine.calculate(positions)
    print(result.order_tensor)
    print(f"Q = {q_factor(result.values, experimental):.3f}")

    ax = rdc_correlation(result.values, experimental)
    ax.figure.set_size_inches(5, 5)
    path = __file__[:-3] + f"_{0}.png"
    plt.savefig(path)


if __name__ == "__main__":
    main()
