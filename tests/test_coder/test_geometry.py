"""Tests for pyramid geometry and parent/child relations."""

import pytest

from ztw_ecs.ztw.errors import GeometryError
from ztw_ecs.ztw.geometry import PyramidGeometry


class TestPyramidGeometry:
    """Tests for geometry validation and derived sizes."""

    def test_base_band(self) -> None:
        geom = PyramidGeometry(height=16, width=32, levels=3)
        assert (geom.base_rows, geom.base_cols) == (4, 8)
        assert geom.size == 512

    def test_single_level_is_all_base(self) -> None:
        geom = PyramidGeometry(height=5, width=7, levels=1)
        assert (geom.base_rows, geom.base_cols) == (5, 7)

    def test_levels_must_be_positive(self) -> None:
        with pytest.raises(GeometryError, match="levels must be >= 1"):
            PyramidGeometry(height=8, width=8, levels=0)

    def test_empty_grid(self) -> None:
        with pytest.raises(GeometryError, match="non-empty"):
            PyramidGeometry(height=0, width=8, levels=1)

    def test_not_divisible(self) -> None:
        with pytest.raises(GeometryError, match="not divisible"):
            PyramidGeometry(height=12, width=16, levels=4)

    def test_geometry_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            PyramidGeometry(height=3, width=8, levels=2)

    def test_for_grid(self) -> None:
        geom = PyramidGeometry.for_grid((8, 8), levels=3)
        assert geom == PyramidGeometry(8, 8, 3)
        with pytest.raises(GeometryError, match="2D grid"):
            PyramidGeometry.for_grid((8,), levels=1)

    def test_is_lowest_band_needs_both_coordinates(self) -> None:
        """Cells in the top detail row are not part of the lowest band."""
        geom = PyramidGeometry(height=8, width=8, levels=3)
        assert geom.is_lowest_band(1, 1)
        assert not geom.is_lowest_band(0, 2)
        assert not geom.is_lowest_band(2, 0)


class TestChildren:
    """Tests for the parent/child relation."""

    def test_lowest_band_children(self) -> None:
        geom = PyramidGeometry(height=8, width=8, levels=3)
        assert list(geom.children(0, 0)) == [(0, 2), (2, 0), (2, 2)]
        assert list(geom.children(1, 1)) == [(1, 3), (3, 1), (3, 3)]

    def test_detail_children(self) -> None:
        geom = PyramidGeometry(height=8, width=8, levels=3)
        assert list(geom.children(0, 2)) == [(0, 4), (0, 5), (1, 4), (1, 5)]
        assert list(geom.children(3, 3)) == [(6, 6), (6, 7), (7, 6), (7, 7)]

    def test_first_block_row_and_column_are_quadtree_nodes(self) -> None:
        """Cells sharing only a row or column with the lowest band get a 2x2 block."""
        geom = PyramidGeometry(height=8, width=8, levels=3)
        assert list(geom.children(0, 3)) == [(0, 6), (0, 7), (1, 6), (1, 7)]
        assert list(geom.children(2, 1)) == [(4, 2), (4, 3), (5, 2), (5, 3)]

    def test_finest_level_has_no_children(self) -> None:
        geom = PyramidGeometry(height=8, width=8, levels=3)
        assert list(geom.children(4, 4)) == []
        assert list(geom.children(7, 0)) == []

    def test_single_level_has_no_children(self) -> None:
        geom = PyramidGeometry(height=4, width=4, levels=1)
        assert all(not list(geom.children(i, j)) for i in range(4) for j in range(4))

    def test_children_stay_in_range(self) -> None:
        geom = PyramidGeometry(height=16, width=32, levels=4)
        for i in range(geom.height):
            for j in range(geom.width):
                for ci, cj in geom.children(i, j):
                    assert geom.contains(ci, cj)

    def test_every_non_base_cell_has_one_parent(self) -> None:
        """The pyramid is a forest rooted in the lowest band."""
        geom = PyramidGeometry(height=16, width=16, levels=4)
        parents: dict[tuple[int, int], int] = {}
        for i in range(geom.height):
            for j in range(geom.width):
                for child in geom.children(i, j):
                    parents[child] = parents.get(child, 0) + 1
        base = geom.base_rows * geom.base_cols
        assert len(parents) == geom.size - base
        assert set(parents.values()) == {1}

    def test_descendants(self) -> None:
        geom = PyramidGeometry(height=8, width=8, levels=3)
        assert len(list(geom.descendants(0, 0))) == 3 + 12
        assert sorted(geom.descendants(0, 2)) == [(0, 4), (0, 5), (1, 4), (1, 5)]
