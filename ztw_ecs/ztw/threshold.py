"""Threshold schedule: initial value and per-pass decay."""

from __future__ import annotations

import numpy as np


def initial_threshold(coefficients: np.ndarray) -> float:
    """Half the largest coefficient magnitude.

    An all-zero grid yields 0.0; since significance is a strict ``>`` test,
    no coefficient is ever significant against it.

    Raises:
        ValueError: If the grid is empty
    """
    coefficients = np.asarray(coefficients)
    if coefficients.size == 0:
        raise ValueError("Cannot compute a threshold for an empty grid")
    return float(np.max(np.abs(coefficients))) / 2.0


def next_threshold(threshold: float) -> float:
    """Threshold for the following pass."""
    return threshold / 2.0


def threshold_for_pass(initial: float, pass_index: int) -> float:
    """Threshold used by pass ``pass_index`` (0-based)."""
    if pass_index < 0:
        raise ValueError(f"pass_index must be non-negative, got {pass_index}")
    threshold = initial
    for _ in range(pass_index):
        threshold = next_threshold(threshold)
    return threshold
