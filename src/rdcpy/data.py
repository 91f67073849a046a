#!/usr/bin/env python
"""Gyromagnetic data for the nuclei that enter dipolar couplings.

Gyromagnetic ratios are stored in units of 10⁷ rad s⁻¹ T⁻¹, the
convention in which the products below are usually quoted for RDC
calculations (e.g. the N-H product is -72.5388).

>>> round(gyromagnetic_product("1H", "15N"), 4)
-72.5388
"""

from __future__ import annotations

import json
from functools import lru_cache

from importlib_resources import files
from importlib_resources.abc import Traversable

GAMMA_UNIT = 1e7
"""Unit of the tabulated gyromagnetic ratios in rad s⁻¹ T⁻¹."""

BOND_GYROMAGNETIC_PRODUCTS = {
    "NH": -72.5388,
    "CH": 179.9319,
    "CN": -18.2385,
    "CC": 45.2404,
}
"""Products of gyromagnetic ratios for common bond types (10¹⁴ rad² s⁻² T⁻²)."""


def data_file(name: str) -> Traversable:
    """Bundled data file `name`."""
    return files(__package__) / "data_files" / name


@lru_cache(maxsize=None)
def _nuclei() -> dict:
    with data_file("gyromagnetic.json").open(encoding="utf-8") as f:
        return json.load(f)


class Isotope:
    """A magnetic nucleus from the gyromagnetic database.

    Args:
        symbol (str): Mass number and element, e.g. "15N".

    Raises:
        ValueError: If `symbol` is not in the database.

    >>> Isotope("15N")
    Symbol: 15N
    Spin: 0.5
    Gyromagnetic ratio: -2.7116
    Details: {'name': 'Nitrogen-15', 'source': 'PLUMED RDC documentation (C.G.S.)'}
    """

    def __init__(self, symbol: str):
        nuclei = _nuclei()
        if symbol not in nuclei:
            raise ValueError(f"Isotope {symbol} not in database. See `Isotope.available()`")
        entry = dict(nuclei[symbol])
        self.symbol = symbol
        self.spin = (entry.pop("multiplicity") - 1) / 2
        self.gamma = entry.pop("gamma")
        self.details = entry

    def __repr__(self) -> str:
        lines = [
            f"Symbol: {self.symbol}",
            f"Spin: {self.spin}",
            f"Gyromagnetic ratio: {self.gamma}",
            f"Details: {self.details}",
        ]
        return "\n".join(lines)

    @staticmethod
    def available() -> list[str]:
        """Symbols in the database, lightest first.

        >>> Isotope.available()[:4]
        ['1H', '2H', '13C', '15N']
        """
        return list(_nuclei())

    @property
    def gamma_si(self) -> float:
        """Gyromagnetic ratio in rad s⁻¹ T⁻¹."""
        return self.gamma * GAMMA_UNIT


def gyromagnetic_product(first: str, second: str) -> float:
    """Product of the gyromagnetic ratios of two isotopes.

    Args:
        first (str): Symbol of the first isotope (e.g. "1H").
        second (str): Symbol of the second isotope (e.g. "15N").

    Returns:
        float: γ₁γ₂ in units of 10¹⁴ rad² s⁻² T⁻², ready to be used as
        a `GYROM` value.
    """
    return Isotope(first).gamma * Isotope(second).gamma
