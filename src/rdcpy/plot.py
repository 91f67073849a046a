#!/usr/bin/env python
"""Plotting utilities for residual dipolar couplings.

Contents:

        - `rdc_correlation`: Calculated vs experimental couplings with the
          ideal diagonal and the Q factor / correlation in the title.

        - `rdc_timeseries`: Couplings of selected bonds along a trajectory.

Dependencies:

        - `numpy` for array operations.

        - `matplotlib` for plotting.
"""

import matplotlib.pyplot as plt
import numpy as np

from .statistics import correlation, q_factor


def rdc_correlation(calculated, experimental, ax=None, labels=None):
    """Correlation plot of calculated and experimental couplings.

    Args:
        calculated (np.ndarray): Calculated couplings (Hz).
        experimental (np.ndarray): Experimental couplings (Hz).
        ax (matplotlib.axes.Axes, optional): Target axes; a new figure
            is created when omitted.
        labels (Sequence[str], optional): Per-bond annotations.

    Returns:
        matplotlib.axes.Axes: The axes drawn on.
    """
    calculated = np.asarray(calculated, dtype=float)
    experimental = np.asarray(experimental, dtype=float)
    if ax is None:
        _, ax = plt.subplots(figsize=(5, 5))
    ax.scatter(experimental, calculated, color="tab:blue", zorder=3)
    lo = min(calculated.min(), experimental.min())
    hi = max(calculated.max(), experimental.max())
    ax.plot([lo, hi], [lo, hi], "k--", linewidth=1)
    if labels is not None:
        for label, x, y in zip(labels, experimental, calculated):
            ax.annotate(label, (x, y), textcoords="offset points", xytext=(4, 4))
    ax.set_xlabel("Experimental RDC (Hz)")
    ax.set_ylabel("Calculated RDC (Hz)")
    title = f"Q = {q_factor(calculated, experimental):.3f}"
    if calculated.size > 1:
        title += f", R = {correlation(calculated, experimental):.3f}"
    ax.set_title(title)
    return ax


def rdc_timeseries(series, names=None, ax=None, time=None):
    """Couplings along a trajectory.

    Args:
        series (np.ndarray): Couplings, shape (n_frames, n_bonds).
        names (Sequence[str], optional): Legend entry per bond.
        ax (matplotlib.axes.Axes, optional): Target axes.
        time (np.ndarray, optional): X-axis values; frame index if omitted.

    Returns:
        matplotlib.axes.Axes: The axes drawn on.
    """
    series = np.asarray(series, dtype=float)
    if ax is None:
        _, ax = plt.subplots()
    xlabel = "Frame" if time is None else "Time"
    time = np.arange(len(series)) if time is None else time
    names = names or [f"rdc_{i}" for i in range(series.shape[1])]
    for column, name in zip(series.T, names):
        ax.plot(time, column, label=name)
    ax.set_xlabel(xlabel)
    ax.set_ylabel("RDC (Hz)")
    ax.legend()
    return ax
