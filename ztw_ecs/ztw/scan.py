"""Subband scan order shared by encoder and decoder.

One pass visits the lowest-frequency subband, then for each level from
coarsest to finest the horizontal, vertical and diagonal detail blocks.
Every block is visited row-major.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import NamedTuple

from ztw_ecs.ztw.geometry import PyramidGeometry


class Subband(NamedTuple):
    """Rectangular block of the coefficient grid.

    ``level`` is 0 for the lowest-frequency subband and counts detail levels
    from the coarsest (1) to the finest (levels - 1).
    """

    name: str
    level: int
    row_start: int
    row_stop: int
    col_start: int
    col_stop: int

    @property
    def shape(self) -> tuple[int, int]:
        return self.row_stop - self.row_start, self.col_stop - self.col_start

    def cells(self) -> Iterator[tuple[int, int]]:
        for i in range(self.row_start, self.row_stop):
            for j in range(self.col_start, self.col_stop):
                yield i, j


def iter_subbands(geometry: PyramidGeometry) -> Iterator[Subband]:
    """Yield subbands in scan order."""
    m, n = geometry.base_rows, geometry.base_cols
    yield Subband("LL", 0, 0, m, 0, n)

    level = 1
    while 2 * m <= geometry.height and 2 * n <= geometry.width:
        yield Subband(f"H{level}", level, 0, m, n, 2 * n)
        yield Subband(f"V{level}", level, m, 2 * m, 0, n)
        yield Subband(f"D{level}", level, m, 2 * m, n, 2 * n)
        m *= 2
        n *= 2
        level += 1


def iter_scan(geometry: PyramidGeometry) -> Iterator[tuple[int, int]]:
    """Yield every cell of the grid once, in scan order."""
    for subband in iter_subbands(geometry):
        yield from subband.cells()
