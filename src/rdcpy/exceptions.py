"""
Custom exceptions for rdcpy.

Configuration problems are detected while an engine is built and are
reported as `ConfigurationError`.  Problems that only show up once
coordinates are known (collapsed bonds, a least-squares solve that does
not converge) are reported as `GeometryError` and `FitError`.
"""

from __future__ import annotations

__all__ = [
    "ConfigurationError",
    "FitError",
    "GeometryError",
    "RestraintError",
]


class ConfigurationError(ValueError):
    """Malformed or inconsistent engine configuration."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class GeometryError(ArithmeticError):
    """A bond vector is too short for the dipolar coupling to be defined."""

    def __init__(self, index: int, length: float, atoms: tuple | None = None) -> None:
        self.index = index
        self.atoms = atoms
        self.length = length
        where = f" between atoms {atoms[0]} and {atoms[1]}" if atoms else ""
        self.message = (
            f"Bond {index}{where} has length {length:g}; "
            "the dipolar coupling is undefined."
        )
        super().__init__(self.message)


class FitError(ArithmeticError):
    """The order tensor least-squares solve failed."""

    def __init__(self, message: str) -> None:
        self.message = f"[Fatal] {message}"
        super().__init__(self.message)


class RestraintError(ValueError):
    """A restraint was attached to a component without derivatives."""

    def __init__(self, name: str) -> None:
        self.message = (
            f"Component '{name}' carries no derivatives (SVD fit) and "
            "cannot be used as a restraint target."
        )
        super().__init__(self.message)
