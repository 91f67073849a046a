#!/usr/bin/env python
"""Per-bond parameters and numbered keywords.

Each per-bond quantity (gyromagnetic product, scaling factor,
experimental coupling) is given either once and broadcast to every bond,
or once per bond through numbered keywords (``GYROM1``, ``GYROM2``, ...).
`resolve_per_bond` is the single place where these two forms are
reconciled; anything in between is a configuration error that names the
offending keyword.

>>> resolve_per_bond("SCALE", None, 3, default=1.0)
array([1., 1., 1.])
>>> resolve_per_bond("GYROM", {1: -72.5388, 2: 179.9319}, 2)
array([-72.5388, 179.9319])
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import NamedTuple, Optional

import numpy as np

from .exceptions import ConfigurationError

NUMBERED_KEYWORD = re.compile(r"^([A-Z]+)(\d+)$")


class Bond(NamedTuple):
    """Ordered pair of atom identifiers.

    The bond vector points from `a` to `b`.
    """

    a: int
    b: int

    def swapped(self) -> "Bond":
        """The same bond with the atom order reversed."""
        return Bond(self.b, self.a)


def as_bonds(atoms) -> list[Bond]:
    """Validate a sequence of atom pairs.

    Args:
        atoms: Sequence of two-element sequences of atom identifiers.

    Returns:
        list[Bond]: One `Bond` per pair, in the order given.

    Raises:
        ConfigurationError: If a group does not hold exactly two atoms
            or holds a negative atom index; the message names the group
            as ``ATOMS<n>`` (1-based).
    """
    bonds = []
    for i, pair in enumerate(atoms, start=1):
        pair = tuple(pair)
        if len(pair) != 2:
            raise ConfigurationError(
                f"ATOMS{i} keyword has the wrong number of atoms "
                f"(expected 2, got {len(pair)})"
            )
        bond = Bond(int(pair[0]), int(pair[1]))
        if min(bond) < 0:
            raise ConfigurationError(
                f"ATOMS{i} keyword has a negative atom index ({bond.a} {bond.b})"
            )
        bonds.append(bond)
    return bonds


def resolve_per_bond(
    keyword: str,
    values,
    nbonds: int,
    default: Optional[float] = None,
) -> np.ndarray:
    """Broadcast a shared value or validate one value per bond.

    Args:
        keyword (str): Keyword name used in error messages (e.g. "GYROM").
        values: One of

            - ``None``: use `default` for every bond;
            - a number: shared by every bond;
            - a sequence: one value per bond, in bond order;
            - a mapping of 1-based bond index to value, as produced by
              numbered keywords.

        nbonds (int): Number of bonds.
        default (float, optional): Value used when `values` is ``None``.

    Returns:
        np.ndarray: Array of shape ``(nbonds,)``.

    Raises:
        ConfigurationError: If no value and no default is available, or
            if the per-bond values do not cover every bond exactly once.
    """
    if values is None:
        if default is None:
            raise ConfigurationError(f"{keyword} is required but was not given")
        return np.full(nbonds, float(default))
    if np.isscalar(values):
        return np.full(nbonds, float(values))
    if isinstance(values, Mapping):
        numbered = {int(k): float(v) for k, v in values.items()}
    elif isinstance(values, (Sequence, np.ndarray)):
        numbered = {i: float(v) for i, v in enumerate(values, start=1)}
    else:
        raise ConfigurationError(f"cannot interpret {keyword} values: {values!r}")

    if not numbered:
        return resolve_per_bond(keyword, None, nbonds, default)
    extra = sorted(k for k in numbered if not 1 <= k <= nbonds)
    if extra:
        raise ConfigurationError(
            f"found wrong number of {keyword} values: {keyword}{extra[0]} "
            f"given but there are only {nbonds} bonds"
        )
    missing = [i for i in range(1, nbonds + 1) if i not in numbered]
    if missing:
        raise ConfigurationError(
            f"found wrong number of {keyword} values: expected {nbonds}, "
            f"got {len(numbered)} ({keyword}{missing[0]} is missing)"
        )
    return np.array([numbered[i] for i in range(1, nbonds + 1)])


def split_keywords(keywords: Mapping) -> tuple[dict, dict]:
    """Separate plain keywords from numbered ones.

    Args:
        keywords (Mapping): Keyword name to value, e.g.
            ``{"GYROM": -72.5388, "ATOMS1": (20, 21)}``.  Names are
            case-insensitive.

    Returns:
        (dict, dict): Plain keywords (``name -> value``) and numbered
        keywords (``name -> {index: value}``).

    >>> plain, numbered = split_keywords({"svd": True, "COUPLING2": 1.0, "COUPLING1": 2.0})
    >>> plain
    {'SVD': True}
    >>> numbered
    {'COUPLING': {2: 1.0, 1: 2.0}}
    """
    plain: dict = {}
    numbered: dict = {}
    for key, value in keywords.items():
        name = str(key).upper()
        match = NUMBERED_KEYWORD.match(name)
        if match:
            group, index = match.group(1), int(match.group(2))
            if index == 0:
                raise ConfigurationError(f"numbered keywords start at 1, got {name}")
            numbered.setdefault(group, {})[index] = value
        else:
            plain[name] = value
    return plain, numbered


def contiguous_groups(keyword: str, groups: Mapping) -> list:
    """Values of a numbered keyword as a list ordered by index.

    The indices must run from 1 without gaps, as every index names one
    bond.

    >>> contiguous_groups("ATOMS", {2: (3, 4), 1: (1, 2)})
    [(1, 2), (3, 4)]
    """
    ordered = []
    for i in range(1, len(groups) + 1):
        if i not in groups:
            raise ConfigurationError(
                f"{keyword}{i} is missing; numbered {keyword} keywords must be contiguous"
            )
        ordered.append(groups[i])
    return ordered
