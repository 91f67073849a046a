#!/usr/bin/env python
"""RDCs along trajectories and ensemble averages.

>>> engine = RDC([(0, 1)], gyrom=1.0)
>>> frames = [[[0, 0, 0], [0, 0, 1]], [[0, 0, 0], [1, 0, 0]]]
>>> series = rdc_timeseries(engine, frames, progress=False)
>>> series.shape
(2, 1)
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np
from numpy.typing import ArrayLike
from tqdm import tqdm

from .parallel import ParallelContext
from .rdc import RDC

logger = logging.getLogger(__name__)


def rdc_timeseries(
    engine: RDC,
    frames: Iterable[ArrayLike],
    box=None,
    context: Optional[ParallelContext] = None,
    progress: bool = True,
) -> np.ndarray:
    """Evaluate `engine` on every frame.

    Args:
        engine (RDC): The configured engine.
        frames (Iterable): Positions of every frame, each of shape
            ``(n_atoms, 3)``.
        box: Box shared by all frames (see `rdcpy.geometry.Box`).
        context (ParallelContext, optional): Worker group for direct mode.
        progress (bool): Show a progress bar.

    Returns:
        np.ndarray: Couplings, shape ``(n_frames, n_bonds)``.
    """
    series = [
        engine.calculate(positions, box=box, context=context).values
        for positions in tqdm(frames, disable=not progress, desc="RDC frames")
    ]
    logger.debug("Evaluated %d frame(s).", len(series))
    return np.array(series).reshape(len(series), engine.number_of_bonds)


def ensemble_average(values: ArrayLike, weights: Optional[ArrayLike] = None) -> np.ndarray:
    """(Weighted) average of per-frame couplings over frames.

    Args:
        values (ArrayLike): Couplings, shape ``(n_frames, n_bonds)``.
        weights (ArrayLike, optional): One weight per frame.

    Returns:
        np.ndarray: Averaged couplings, shape ``(n_bonds,)``.

    >>> ensemble_average([[1.0, 2.0], [3.0, 4.0]])
    array([2., 3.])
    """
    return np.average(np.asarray(values, dtype=float), axis=0, weights=weights)
