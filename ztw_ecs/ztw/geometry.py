"""Resolution pyramid geometry.

The coefficient grid is laid out in the Mallat arrangement: the
lowest-frequency subband occupies the top-left ``M x N`` block, and every
finer level adds horizontal, vertical and diagonal detail blocks at twice the
previous size:

    +-----+-----+-----------+
    | LL  |  H  |           |
    +-----+-----+     H     |
    |  V  |  D  |           |
    +-----+-----+-----------+
    |           |           |
    |     V     |     D     |
    |           |           |
    +-----------+-----------+

Example:
    >>> geom = PyramidGeometry(height=8, width=8, levels=3)
    >>> geom.base_rows, geom.base_cols
    (2, 2)
    >>> list(geom.children(0, 0))
    [(0, 2), (2, 0), (2, 2)]
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from ztw_ecs.ztw.errors import GeometryError


@dataclass(frozen=True)
class PyramidGeometry:
    """Subband layout derived from grid size and resolution-level count.

    Attributes:
        height: Number of grid rows
        width: Number of grid columns
        levels: Resolution levels (1 means no detail subbands)
    """

    height: int
    width: int
    levels: int

    def __post_init__(self) -> None:
        """Validate that the pyramid tiles the grid exactly."""
        if self.levels < 1:
            raise GeometryError(f"levels must be >= 1, got {self.levels}")
        if self.height <= 0 or self.width <= 0:
            raise GeometryError(
                f"Grid must be non-empty, got {self.height}x{self.width}"
            )
        scale = 1 << (self.levels - 1)
        if self.height % scale or self.width % scale:
            raise GeometryError(
                f"Grid {self.height}x{self.width} is not divisible by "
                f"2**(levels-1) = {scale} for levels={self.levels}"
            )

    @property
    def base_rows(self) -> int:
        """Rows of the lowest-frequency subband (M)."""
        return self.height >> (self.levels - 1)

    @property
    def base_cols(self) -> int:
        """Columns of the lowest-frequency subband (N)."""
        return self.width >> (self.levels - 1)

    @property
    def size(self) -> int:
        """Total number of cells."""
        return self.height * self.width

    def contains(self, i: int, j: int) -> bool:
        return 0 <= i < self.height and 0 <= j < self.width

    def is_lowest_band(self, i: int, j: int) -> bool:
        """True if (i, j) lies in the lowest-frequency subband."""
        return i < self.base_rows and j < self.base_cols

    def children(self, i: int, j: int) -> Iterator[tuple[int, int]]:
        """Yield the in-range children of (i, j).

        Cells of the lowest-frequency subband have up to three children, one
        in each detail block of the coarsest level. Every other cell has the
        2x2 block at double resolution. Children past the grid edge are
        dropped, so cells of the finest level have none.
        """
        if self.is_lowest_band(i, j):
            m, n = self.base_rows, self.base_cols
            candidates = ((i, j + n), (i + m, j), (i + m, j + n))
        else:
            candidates = (
                (2 * i, 2 * j),
                (2 * i, 2 * j + 1),
                (2 * i + 1, 2 * j),
                (2 * i + 1, 2 * j + 1),
            )
        for ci, cj in candidates:
            if ci < self.height and cj < self.width:
                yield ci, cj

    def descendants(self, i: int, j: int) -> Iterator[tuple[int, int]]:
        """Yield every descendant of (i, j), excluding (i, j) itself."""
        stack = list(self.children(i, j))
        while stack:
            ci, cj = stack.pop()
            yield ci, cj
            stack.extend(self.children(ci, cj))

    @classmethod
    def for_grid(cls, shape: tuple[int, ...], levels: int) -> PyramidGeometry:
        """Build geometry for a 2D array shape."""
        if len(shape) != 2:
            raise GeometryError(f"Expected a 2D grid, got shape {shape}")
        return cls(height=int(shape[0]), width=int(shape[1]), levels=levels)
