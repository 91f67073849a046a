#!/usr/bin/env python
"""Small numerical helpers.

- `spherical_to_cartesian`: unit vectors from polar/azimuthal angles.
- `random_theta_phi`: directions sampled uniformly on the unit sphere.
- `numerical_gradient`: central finite-difference gradient, used to
  cross-check analytic derivatives.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np
from numpy.typing import ArrayLike

logger = logging.getLogger(__name__)


def spherical_to_cartesian(
    theta: float | np.ndarray, phi: float | np.ndarray
) -> np.ndarray:
    """Spherical coordinates to Cartesian coordinates.

    Args:
        theta (float or np.ndarray): The polar angle(s).
        phi (float or np.ndarray): The azimuthal angle(s).

    Returns:
        np.ndarray: The Cartesian coordinates.

    >>> spherical_to_cartesian(0.0, 0.0)
    array([0., 0., 1.])
    """
    return np.array(
        [
            np.sin(theta) * np.cos(phi),
            np.sin(theta) * np.sin(phi),
            np.cos(theta),
        ]
    ).T


def random_theta_phi(
    num_samples: int = 1, rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """Randomly sample polar (θ) and azimuthal (φ) angles.

    Samples directions uniformly over the unit sphere using inverse
    transform sampling.

    Args:
        num_samples (int, optional): Number of random angle pairs to
            generate. Defaults to 1.
        rng (np.random.Generator, optional): Random number generator.

    Returns:
        np.ndarray: Array of shape (2, num_samples) containing sampled
        angles in radians:
        - [0]: θ ∈ [0, π] (polar angle)
        - [1]: φ ∈ [0, 2π) (azimuthal angle)
    """
    rng = np.random.default_rng() if rng is None else rng
    phi = rng.uniform(0, 2 * np.pi, size=num_samples)
    theta = np.arccos(rng.uniform(-1, 1, size=num_samples))
    return np.array([theta, phi])


def numerical_gradient(
    function: Callable[[np.ndarray], float], x: ArrayLike, step: float = 1e-6
) -> np.ndarray:
    """Central finite-difference gradient of a scalar function.

    Args:
        function (Callable): Maps an array shaped like `x` to a scalar.
        x (ArrayLike): Point at which the gradient is evaluated.
        step (float): Displacement used for every coordinate.

    Returns:
        np.ndarray: Gradient, same shape as `x`.

    >>> numerical_gradient(lambda v: float(v @ v), np.array([1.0, 2.0])).round(6)
    array([2., 4.])
    """
    x = np.array(x, dtype=float)
    gradient = np.zeros_like(x)
    logger.debug("Gradient (numerical): Starting build (%s).", x.shape)
    for index in np.ndindex(x.shape):
        original = x[index]
        x[index] = original + step
        forward = function(x)
        x[index] = original - step
        backward = function(x)
        x[index] = original
        gradient[index] = (forward - backward) / (2.0 * step)
    logger.debug("Gradient (numerical): All finished.")
    return gradient
