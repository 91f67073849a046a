#! /usr/bin/env python

import matplotlib.pyplot as plt
import numpy as np

from rdcpy.data import gyromagnetic_product
from rdcpy.rdc import RDC, maximal_coupling
from rdcpy.utils import spherical_to_cartesian


def main():
    # A single N-H bond rotated from the field axis to the xy-plane.
    gyrom = gyromagnetic_product("15N", "1H")
    length = 0.104  # nm
    engine = RDC([(0, 1)], gyrom=gyrom)

    theta = np.linspace(0, np.pi, 181)
    couplings, forces = [], []
    for t in theta:
        positions = np.array([np.zeros(3), length * spherical_to_cartesian(t, 0.0)])
        result = engine.calculate(positions)
        couplings.append(result[0].value)
        forces.append(np.linalg.norm(result[0].derivatives[1]))

    dmax = maximal_coupling(length, gyrom)
    fig, axs = plt.subplots(2, sharex=True)
    fig.suptitle(rf"N-H dipolar coupling, $D_{{max}}$ = {dmax:.0f} Hz", size=14)
    axs[0].plot(np.degrees(theta), couplings, color="blue", linewidth=2)
    axs[0].axhline(0, color="k", linewidth=0.5)
    axs[1].plot(np.degrees(theta), forces, color="orange", linewidth=2)
    axs[1].set_xlabel(r"$\theta$ (degrees)", size=14)
    axs[0].set_ylabel("RDC (Hz)", size=14)
    axs[1].set_ylabel(r"$|\partial D / \partial r_2|$ (Hz/nm)", size=14)
    fig.set_size_inches(8, 6)
    path = __file__[:-3] + f"_{0}.png"
    plt.savefig(path)


if __name__ == "__main__":
    main()
