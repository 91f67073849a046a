#!/usr/bin/env python
"""
Physical constants with units, and the unit registry they live in.

Constants are plain floats as far as the numerical code is concerned, so
they can be used directly in numpy expressions, but each one remembers
where it came from:

- ``Constant``: ``float`` subclass with a ``details`` namespace (units,
  name, source) and a ``quantity`` property giving the same value as a
  `pint` quantity.

- ``Constant.fromjson(path)``: namespace of all constants in a JSON file.

- ``constants``: the constants bundled in ``data_files/constants.json``.

- ``ureg`` / ``Q_``: the package wide `pint` unit registry and its
  quantity constructor.

>>> constants.rdc_prefactor
0.3356806
>>> constants.mu_0.quantity.units
<Unit('newton / ampere ** 2')>
"""

import json
from pathlib import Path
from types import SimpleNamespace

import numpy as np
from pint import UnitRegistry

ureg = UnitRegistry()
Q_ = ureg.Quantity


class Constant(float):
    """A float that carries its units and provenance.

    Args:
        entry (dict): JSON entry with a ``value`` and arbitrary metadata;
            a ``units`` string must be understood by `pint`.
    """

    details: SimpleNamespace
    """Metadata of the constant (units, name, source, ...)."""

    def __new__(cls, entry: dict):  # noqa D102
        metadata = {k: v for k, v in entry.items() if k != "value"}
        obj = super().__new__(cls, entry["value"])
        obj.details = SimpleNamespace(**metadata)
        return obj

    @property
    def quantity(self):
        """The constant as a `pint` quantity."""
        return Q_(float(self), self.details.units)

    @staticmethod
    def fromjson(json_file: Path) -> SimpleNamespace:
        """Namespace of every constant defined in `json_file`."""
        with open(json_file, encoding="utf-8") as f:
            entries = json.load(f)
        return SimpleNamespace(**{name: Constant(e) for name, e in entries.items()})


constants = Constant.fromjson(Path(__file__).parent / "data_files" / "constants.json")


def dipolar_prefactor() -> float:
    """Dipolar coupling prefactor derived from the physical constants.

    Evaluates μ₀h/(8π³) for gyromagnetic ratios given in units of
    10⁷ rad s⁻¹ T⁻¹ and distances in nm, which is the convention of the
    bundled `constants.rdc_prefactor`.

    Returns:
        float: The prefactor in Hz nm³.
    """
    gamma_unit = Q_(1e7, "1 / (s * T)")
    prefactor = constants.mu_0.quantity * constants.h.quantity * gamma_unit**2
    prefactor /= 8 * np.pi**3
    return prefactor.to(constants.rdc_prefactor.details.units).magnitude
