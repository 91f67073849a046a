"""rdcpy package root."""

from . import plot  # noqa: F401 F403
from . import (
    data,
    exceptions,
    geometry,
    parallel,
    parameters,
    rdc,
    restraint,
    shared,
    solver,
    statistics,
    tensor,
    trajectory,
    utils,
)
from .rdc import RDC  # noqa: F401

# pylint: disable=unused-import wildcard-import

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("rdcpy")
except PackageNotFoundError:
    # Handle cases where the package is not installed or metadata is missing
    __version__ = "unknown"

ureg = shared.ureg
Q_ = shared.Q_
