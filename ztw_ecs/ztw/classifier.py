"""Significance classifier over the resolution pyramid.

A cell is classified against the threshold of the current pass:

- ``POSITIVE`` / ``NEGATIVE``: its own magnitude exceeds the threshold.
- ``ZERO_ISOLATED``: insignificant, but some descendant is significant.
- ``ZERO_TREE_ROOT``: insignificant along with its whole subtree; the
  subtree is then marked ``SKIP`` so none of it is emitted this pass.

Classification is memoized in the pass-scoped label grid, so every cell is
classified at most once per pass even though parents classify their
children recursively.
"""

from __future__ import annotations

import numpy as np

from ztw_ecs.ztw.geometry import PyramidGeometry
from ztw_ecs.ztw.labels import Label


class PassState:
    """Label grid and threshold owned by a single pass.

    Attributes:
        geometry: Pyramid geometry shared by encoder and decoder
        threshold: Significance threshold of this pass
        labels: (H, W) uint8 grid of ``Label`` values
    """

    def __init__(
        self,
        geometry: PyramidGeometry,
        threshold: float,
        labels: np.ndarray | None = None,
    ) -> None:
        """Create pass state, zero-filling the label grid.

        Args:
            geometry: Pyramid geometry
            threshold: Threshold for this pass
            labels: Optional preallocated (H, W) uint8 buffer to reuse
        """
        shape = (geometry.height, geometry.width)
        if labels is None:
            labels = np.zeros(shape, dtype=np.uint8)
        else:
            if labels.shape != shape or labels.dtype != np.uint8:
                raise ValueError(
                    f"Label buffer must be uint8 with shape {shape}, "
                    f"got {labels.dtype} {labels.shape}"
                )
            labels.fill(Label.UNKNOWN)
        self.geometry = geometry
        self.threshold = threshold
        self.labels = labels

    def label(self, i: int, j: int) -> Label:
        return Label(int(self.labels[i, j]))

    def assign(self, i: int, j: int, label: Label) -> None:
        self.labels[i, j] = label

    def count(self, label: Label) -> int:
        """Number of cells holding ``label``."""
        return int(np.count_nonzero(self.labels == label))


def classify(
    coefficients: np.ndarray, state: PassState, i: int, j: int
) -> Label:
    """Label cell (i, j), classifying descendants as needed.

    Args:
        coefficients: (H, W) residual coefficients of the encoder
        state: Pass-scoped label grid, updated in place
        i: Row index
        j: Column index

    Returns:
        The label now stored for (i, j)
    """
    known = state.label(i, j)
    if known is not Label.UNKNOWN:
        return known

    value = coefficients[i, j]
    if abs(value) > state.threshold:
        label = Label.POSITIVE if value >= 0 else Label.NEGATIVE
        state.assign(i, j, label)
        return label

    # Every child is classified (no short-circuit) so that each one is
    # memoized before the scan reaches it.
    children = [
        classify(coefficients, state, ci, cj)
        for ci, cj in state.geometry.children(i, j)
    ]
    if any(child.covers_significance for child in children):
        state.assign(i, j, Label.ZERO_ISOLATED)
        return Label.ZERO_ISOLATED

    state.assign(i, j, Label.ZERO_TREE_ROOT)
    mark_zero_tree(state, i, j)
    return Label.ZERO_TREE_ROOT


def mark_zero_tree(state: PassState, i: int, j: int) -> None:
    """Mark every descendant of (i, j) as ``SKIP``.

    A cell that is already ``SKIP`` had its whole subtree marked by an
    earlier zero-tree root, so the walk does not descend below it.
    """
    labels = state.labels
    stack = list(state.geometry.children(i, j))
    while stack:
        ci, cj = stack.pop()
        if labels[ci, cj] == Label.SKIP:
            continue
        labels[ci, cj] = Label.SKIP
        stack.extend(state.geometry.children(ci, cj))
