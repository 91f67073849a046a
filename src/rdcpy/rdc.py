#!/usr/bin/env python
"""Residual dipolar couplings from atomic coordinates.

The residual dipolar coupling (RDC) between two nuclei depends on the
angle θ between the inter-nuclear vector and the external magnetic field
(the laboratory z axis):

    D = D_max · 0.5 (3cos²θ - 1),    D_max = -μ₀γ₁γ₂h / (8π³r³).

In isotropic media RDCs average to zero; they become measurable once
rotational symmetry is broken, e.g. by an alignment medium.  RDCs report
only on the aligned fraction of molecules, which is why a per-bond
scaling factor is part of the model.

Two mutually exclusive modes are provided by `RDC`:

Direct mode
    Every coupling is evaluated from the formula above together with its
    exact analytic derivative with respect to both atoms and its virial
    contribution, so that a restraint can turn it into forces.  Bonds are
    dealt out to the workers of a `rdcpy.parallel.ParallelContext` in an
    interleaved fashion (worker ``w`` of ``W`` owns bonds ``w, w+W, ...``);
    derivative and virial buffers are sum-reduced, the couplings themselves
    are gathered from their owners.

SVD mode
    A single alignment tensor is fitted by least squares to a set of
    experimental couplings and the RDCs are back-calculated from it.  This
    mode runs serially and produces no derivatives.

Units & conventions:
        - Positions and bond lengths: nm.
        - Gyromagnetic products: 10¹⁴ rad² s⁻² T⁻² (see `rdcpy.data`).
        - Couplings: Hz.
        - Bond vectors point from the first to the second atom of a bond.
        - Output components are named ``rdc_0``, ``rdc_1``, ... in bond order.

Example:
        >>> engine = RDC([(0, 1)], gyrom=-72.5388)
        >>> result = engine.calculate([[0.0, 0.0, 0.0], [0.0, 0.0, 0.104]])
        >>> abs(result["rdc_0"].value - maximal_coupling(0.104, -72.5388)) < 1e-9
        True
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Optional, Union

import numpy as np
from numpy.typing import ArrayLike

from .exceptions import ConfigurationError, GeometryError
from .geometry import Box
from .parallel import ParallelContext, SerialContext
from .parameters import (
    Bond,
    as_bonds,
    contiguous_groups,
    resolve_per_bond,
    split_keywords,
)
from .shared import constants as C
from .solver import IS_SCIPY_AVAILABLE, MSG_SCIPY_NOT_INSTALLED, svd_solve
from .tensor import OrderTensor, design_matrix

logger = logging.getLogger(__name__)

MIN_FIT_BONDS = 5
"""Smallest number of couplings for which the 5-parameter fit is well posed."""

PLAIN_KEYWORDS = {"GYROM", "SCALE", "SERIAL", "SVD"}
NUMBERED_KEYWORDS = {"ATOMS", "GYROM", "SCALE", "COUPLING"}


def _checked_lengths(distance: np.ndarray, bonds=None, indices=None) -> np.ndarray:
    lengths = np.linalg.norm(distance, axis=-1)
    short = np.flatnonzero(np.atleast_1d(lengths) < C.min_bond_length)
    if short.size:
        k = int(short[0])
        index = int(indices[k]) if indices is not None else k
        atoms = tuple(bonds[index]) if bonds is not None else None
        raise GeometryError(index, float(np.atleast_1d(lengths)[k]), atoms)
    return lengths


def maximal_coupling(
    length: Union[float, np.ndarray],
    gyrom: Union[float, np.ndarray],
    scale: Union[float, np.ndarray] = 1.0,
) -> Union[float, np.ndarray]:
    """Maximal dipolar coupling ``D_max = -K·scale·γ₁γ₂ / r³``.

    Args:
        length (float | np.ndarray): Bond length(s) (nm).
        gyrom (float | np.ndarray): Gyromagnetic product(s).
        scale (float | np.ndarray): Scaling factor(s).

    Returns:
        float | np.ndarray: D_max (Hz).
    """
    return -C.rdc_prefactor * scale * gyrom / length**3


def dipolar_coupling(
    distance: ArrayLike,
    gyrom: Union[float, np.ndarray],
    scale: Union[float, np.ndarray] = 1.0,
) -> np.ndarray:
    """Residual dipolar coupling of one or more bond vectors.

    Args:
        distance (ArrayLike): Bond vector(s) ``d = b - a``, shape ``(..., 3)`` (nm).
        gyrom (float | np.ndarray): Gyromagnetic product(s).
        scale (float | np.ndarray): Scaling factor(s).

    Returns:
        np.ndarray: ``0.5·D_max·(3cos²θ - 1)`` with ``cosθ = d_z / |d|``.

    Raises:
        GeometryError: If a bond vector has (nearly) zero length.

    >>> bool(dipolar_coupling([0.0, 0.0, 1.0], gyrom=1.0) == maximal_coupling(1.0, 1.0))
    True
    """
    d = np.asarray(distance, dtype=float)
    r = _checked_lengths(d)
    cos_theta = d[..., 2] / r
    return 0.5 * maximal_coupling(r, gyrom, scale) * (3.0 * cos_theta**2 - 1.0)


def dipolar_coupling_gradient(
    distance: ArrayLike,
    gyrom: Union[float, np.ndarray],
    scale: Union[float, np.ndarray] = 1.0,
) -> np.ndarray:
    """Analytic derivative of `dipolar_coupling` with respect to ``d``.

    Since ``d = b - a`` this is the derivative with respect to the second
    atom of the bond; the first atom carries its negation.  With
    ``m = -K·scale·γ₁γ₂``:

    - ∂D/∂x = m x (1.5x² + 1.5y² - 6z²) / r⁷
    - ∂D/∂y = m y (1.5x² + 1.5y² - 6z²) / r⁷
    - ∂D/∂z = m z (4.5x⁴ + 4.5y⁴ + 1.5y²z² - 3z⁴ + x²(9y² + 1.5z²)) / r⁹

    Args:
        distance (ArrayLike): Bond vector(s), shape ``(..., 3)`` (nm).
        gyrom (float | np.ndarray): Gyromagnetic product(s).
        scale (float | np.ndarray): Scaling factor(s).

    Returns:
        np.ndarray: Gradient(s), shape ``(..., 3)`` (Hz/nm).

    Raises:
        GeometryError: If a bond vector has (nearly) zero length.
    """
    d = np.asarray(distance, dtype=float)
    r = _checked_lengths(d)
    x, y, z = d[..., 0], d[..., 1], d[..., 2]
    x2, y2, z2 = x * x, y * y, z * z
    inv = 1.0 / r
    id7 = inv**7
    id9 = id7 * inv * inv
    m = -C.rdc_prefactor * scale * gyrom
    prod = m * id7 * (1.5 * x2 + 1.5 * y2 - 6.0 * z2)
    dz = (
        m
        * id9
        * z
        * (4.5 * x2 * x2 + 4.5 * y2 * y2 + 1.5 * y2 * z2 - 3.0 * z2 * z2 + x2 * (9.0 * y2 + 1.5 * z2))
    )
    return np.stack([prod * x, prod * y, dz], axis=-1)


class Component:
    """One published RDC value.

    Args:
        name (str): Component name (``rdc_<index>``).
        bond (Bond): Atoms the coupling is computed from.
        value (float): The coupling (Hz).
        derivatives (np.ndarray, optional): Derivatives with respect to the
            two atoms of `bond`, shape ``(2, 3)``.  ``None`` in SVD mode.
        virial (np.ndarray, optional): Box derivative contribution,
            shape ``(3, 3)``.  ``None`` in SVD mode.
    """

    def __init__(
        self,
        name: str,
        bond: Bond,
        value: float,
        derivatives: Optional[np.ndarray] = None,
        virial: Optional[np.ndarray] = None,
    ):
        self.name = name
        self.bond = bond
        self.value = float(value)
        self.derivatives = derivatives
        self.virial = virial

    @property
    def has_derivatives(self) -> bool:
        """Whether the component can be turned into forces."""
        return self.derivatives is not None

    def __repr__(self) -> str:
        return f"{self.name}: {self.value} (atoms {self.bond.a} {self.bond.b})"


class RDCResult:
    """Components produced by one `RDC.calculate` call."""

    def __init__(self, components: list[Component], order_tensor: Optional[OrderTensor] = None):
        self.components = components
        self.order_tensor = order_tensor
        self._by_name = {c.name: c for c in components}

    def __len__(self) -> int:
        return len(self.components)

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components)

    def __getitem__(self, key: Union[int, str]) -> Component:
        if isinstance(key, str):
            return self._by_name[key]
        return self.components[key]

    def __repr__(self) -> str:
        lines = [repr(c) for c in self.components]
        if self.order_tensor is not None:
            lines.append(repr(self.order_tensor))
        return "\n".join(lines)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.components]

    @property
    def values(self) -> np.ndarray:
        """Couplings in bond order, shape ``(N_bonds,)``."""
        return np.array([c.value for c in self.components])

    @property
    def derivatives(self) -> Optional[np.ndarray]:
        """Per-bond atom derivatives, shape ``(N_bonds, 2, 3)``, or ``None``."""
        if not self.components or not self.components[0].has_derivatives:
            return None
        return np.stack([c.derivatives for c in self.components])

    @property
    def virial(self) -> Optional[np.ndarray]:
        """Per-bond virial contributions, shape ``(N_bonds, 3, 3)``, or ``None``."""
        if not self.components or not self.components[0].has_derivatives:
            return None
        return np.stack([c.virial for c in self.components])


class RDC:
    """Residual dipolar couplings for a set of bonds.

    Args:
        bonds (Sequence): Pairs of atom indices, one per bond.  The atom
            indices refer to rows of the positions passed to `calculate`.
        gyrom (float | Sequence | Mapping): Gyromagnetic product, shared by
            all bonds or one per bond (a mapping is keyed by 1-based bond
            index).
        scale (float | Sequence | Mapping): Scaling factor(s), default 1.
        coupling (Sequence | Mapping, optional): Experimental coupling of
            every bond; required in SVD mode only.
        serial (bool): Evaluate every bond on every worker, without
            communication.
        svd (bool): Back-calculate the couplings from a fitted alignment
            tensor instead of using the direct formula.

    Raises:
        ConfigurationError: For any inconsistency between bonds and
            per-bond parameters, or an SVD request that cannot be served.

    >>> RDC([(20, 21), (37, 38)], gyrom=-72.5388)
    Number of bonds: 2
    Mode: direct
    Serial: False
    Bonds: [(20, 21), (37, 38)]
    Gyromagnetic products: [-72.5388, -72.5388]
    Scaling factors: [1.0, 1.0]
    """

    def __init__(
        self,
        bonds,
        gyrom=None,
        scale=None,
        coupling=None,
        serial: bool = False,
        svd: bool = False,
    ):
        self.bonds = as_bonds(bonds)
        nbonds = len(self.bonds)
        if nbonds == 0:
            raise ConfigurationError("no bonds given (ATOMS1 is missing)")
        self.gyrom = resolve_per_bond("GYROM", gyrom, nbonds)
        self.scale = resolve_per_bond("SCALE", scale, nbonds, default=1.0)

        self.svd = bool(svd)
        self.coupling = None
        if self.svd:
            if not IS_SCIPY_AVAILABLE:
                raise ConfigurationError(MSG_SCIPY_NOT_INSTALLED)
            if coupling is None or np.isscalar(coupling):
                raise ConfigurationError(
                    f"found wrong number of COUPLING values: SVD needs one "
                    f"experimental coupling per bond ({nbonds})"
                )
            self.coupling = resolve_per_bond("COUPLING", coupling, nbonds)
            # The fit divides every coupling by its D_max.
            zero = np.flatnonzero(self.gyrom * self.scale == 0.0)
            if zero.size:
                i = int(zero[0])
                keyword = "GYROM" if self.gyrom[i] == 0.0 else "SCALE"
                raise ConfigurationError(
                    f"{keyword}{i + 1} is zero; SVD cannot fit a bond without "
                    "a dipolar coupling"
                )
            if nbonds < MIN_FIT_BONDS:
                raise ConfigurationError(
                    f"SVD needs at least {MIN_FIT_BONDS} bonds to fit the "
                    f"alignment tensor, got {nbonds}"
                )
        elif coupling is not None:
            raise ConfigurationError("COUPLING values are only used together with SVD")
        # The tensor fit is a single global solve.
        self.serial = bool(serial) or self.svd

        atoms = np.array(self.bonds, dtype=int)
        self._first = atoms[:, 0]
        self._second = atoms[:, 1]

        for i, bond in enumerate(self.bonds):
            logger.info(
                "The %dth Bond Dipolar Coupling is calculated from atoms: %d %d. "
                "Gyromagnetic moment is %f. Scaling factor is %f.",
                i + 1,
                bond.a,
                bond.b,
                self.gyrom[i],
                self.scale[i],
            )
        logger.info("DONE!")

    @classmethod
    def from_keywords(cls, keywords: Mapping) -> "RDC":
        """Build an engine from numbered keywords.

        Accepted keywords: ``ATOMS<n>`` (two atoms each), ``GYROM`` or
        ``GYROM<n>``, ``SCALE`` or ``SCALE<n>``, ``COUPLING<n>``, and the
        flags ``SERIAL`` and ``SVD``.

        >>> RDC.from_keywords({"GYROM": -72.5388, "ATOMS1": (20, 21), "SCALE1": 0.5}).scale
        array([0.5])
        """
        plain, numbered = split_keywords(keywords)
        unknown = sorted(set(plain) - PLAIN_KEYWORDS) + sorted(
            f"{name}<n>" for name in set(numbered) - NUMBERED_KEYWORDS
        )
        if unknown:
            raise ConfigurationError(f"unknown keyword(s): {', '.join(unknown)}")
        if "ATOMS" not in numbered:
            raise ConfigurationError("no bonds given (ATOMS1 is missing)")

        def shared_or_numbered(name):
            shared = plain.get(name)
            per_bond = numbered.get(name)
            if shared is not None and per_bond:
                raise ConfigurationError(
                    f"{name} and {name}<n> keywords cannot be used together"
                )
            return per_bond if per_bond else shared

        return cls(
            contiguous_groups("ATOMS", numbered["ATOMS"]),
            gyrom=shared_or_numbered("GYROM"),
            scale=shared_or_numbered("SCALE"),
            coupling=numbered.get("COUPLING"),
            serial=bool(plain.get("SERIAL", False)),
            svd=bool(plain.get("SVD", False)),
        )

    def __repr__(self) -> str:
        return "\n".join(
            [
                f"Number of bonds: {self.number_of_bonds}",
                f"Mode: {'SVD' if self.svd else 'direct'}",
                f"Serial: {self.serial}",
                f"Bonds: {[tuple(b) for b in self.bonds]}",
                f"Gyromagnetic products: {self.gyrom.tolist()}",
                f"Scaling factors: {self.scale.tolist()}",
            ]
        )

    @property
    def number_of_bonds(self) -> int:
        return len(self.bonds)

    @property
    def number_of_atoms(self) -> int:
        """Number of requested atoms (two per bond)."""
        return 2 * len(self.bonds)

    @property
    def component_names(self) -> list[str]:
        return [f"rdc_{i}" for i in range(self.number_of_bonds)]

    def distances(self, positions: ArrayLike, box=None, indices=None) -> np.ndarray:
        """Minimum image bond vectors ``b - a``.

        Args:
            positions (ArrayLike): Atomic positions, shape ``(n_atoms, 3)``.
            box: Object with a ``displacement(a, b)`` method, e.g. a
                `rdcpy.geometry.Box`.  Defaults to open boundaries.
            indices (ArrayLike, optional): Bond indices to evaluate.

        Returns:
            np.ndarray: Bond vectors, shape ``(len(indices), 3)``.
        """
        positions = np.asarray(positions, dtype=float)
        if positions.ndim != 2 or positions.shape[1] != 3:
            raise ValueError(f"Positions must have shape (n_atoms, 3), got {positions.shape}.")
        highest = max(self._first.max(), self._second.max())
        if highest >= len(positions):
            raise ValueError(
                f"Atom {highest} requested but only {len(positions)} positions given."
            )
        if indices is None:
            indices = np.arange(self.number_of_bonds)
        box = Box() if box is None else box
        return box.displacement(positions[self._first[indices]], positions[self._second[indices]])

    def calculate(
        self,
        positions: ArrayLike,
        box=None,
        context: Optional[ParallelContext] = None,
    ) -> RDCResult:
        """Evaluate all couplings for one configuration.

        Args:
            positions (ArrayLike): Atomic positions, shape ``(n_atoms, 3)`` (nm).
            box: Object with a ``displacement(a, b)`` method; defaults to
                open boundaries.
            context (ParallelContext, optional): Worker group the call is
                part of; defaults to a single worker.  Every worker of the
                group must call `calculate` with the same configuration.

        Returns:
            RDCResult: One component per bond, in bond order.

        Raises:
            GeometryError: If a bond has (nearly) zero length.
            FitError: If the SVD solve does not converge.
        """
        context = SerialContext() if context is None else context
        if self.svd:
            return self._calculate_fit(positions, box)
        return self._calculate_direct(positions, box, context)

    def _calculate_direct(self, positions, box, context: ParallelContext) -> RDCResult:
        nbonds = self.number_of_bonds
        rdc = np.zeros(nbonds)
        dRDC = np.zeros((self.number_of_atoms, 3))
        dervir = np.zeros((nbonds, 3, 3))

        if self.serial:
            stride, rank = 1, 0
        else:
            stride, rank = context.worker_count, context.worker_index
        owned = np.arange(rank, nbonds, stride)
        logger.debug("RDC (direct): worker %d of %d owns %d bond(s).", rank, stride, owned.size)

        if owned.size:
            distance = self.distances(positions, box, owned)
            _checked_lengths(distance, self.bonds, owned)
            gyrom, scale = self.gyrom[owned], self.scale[owned]
            rdc[owned] = dipolar_coupling(distance, gyrom, scale)
            gradient = dipolar_coupling_gradient(distance, gyrom, scale)
            dRDC[2 * owned] = -gradient
            dRDC[2 * owned + 1] = gradient
            dervir[owned] = np.einsum("ni,nj->nij", distance, -gradient)

        if stride > 1:
            context.allreduce_sum(dRDC)
            context.allreduce_sum(dervir)
            # Each value has exactly one owner; collect it instead of summing.
            gathered = context.allgather(rdc)
            rdc = np.array([gathered[i % stride][i] for i in range(nbonds)])

        components = [
            Component(name, bond, rdc[i], dRDC[2 * i : 2 * i + 2], dervir[i])
            for i, (name, bond) in enumerate(zip(self.component_names, self.bonds))
        ]
        return RDCResult(components)

    def _calculate_fit(self, positions, box) -> RDCResult:
        distance = self.distances(positions, box)
        lengths = _checked_lengths(distance, self.bonds)
        dmax = maximal_coupling(lengths, self.gyrom, self.scale)
        coef_mat = design_matrix(distance / lengths[:, None])
        solution, singular_values, rank = svd_solve(coef_mat, self.coupling / dmax)
        logger.debug(
            "RDC (SVD): singular values %s, rank %d.", np.array2string(singular_values), rank
        )
        tensor = OrderTensor.from_vector(solution)
        rdc = (coef_mat @ solution) * dmax
        components = [
            Component(name, bond, rdc[i])
            for i, (name, bond) in enumerate(zip(self.component_names, self.bonds))
        ]
        return RDCResult(components, order_tensor=tensor)
