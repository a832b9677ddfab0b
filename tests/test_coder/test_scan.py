"""Tests for the subband scan order."""

from ztw_ecs.ztw.geometry import PyramidGeometry
from ztw_ecs.ztw.scan import Subband, iter_scan, iter_subbands


class TestScan:
    """Tests for subband enumeration and cell order."""

    def test_subband_order(self) -> None:
        geom = PyramidGeometry(height=8, width=8, levels=3)
        bands = list(iter_subbands(geom))
        assert [b.name for b in bands] == ["LL", "H1", "V1", "D1", "H2", "V2", "D2"]
        assert bands[0] == Subband("LL", 0, 0, 2, 0, 2)
        assert bands[1] == Subband("H1", 1, 0, 2, 2, 4)
        assert bands[2] == Subband("V1", 1, 2, 4, 0, 2)
        assert bands[3] == Subband("D1", 1, 2, 4, 2, 4)
        assert bands[6].shape == (4, 4)

    def test_scan_starts_row_major_in_base(self) -> None:
        geom = PyramidGeometry(height=8, width=8, levels=3)
        cells = list(iter_scan(geom))
        assert cells[:4] == [(0, 0), (0, 1), (1, 0), (1, 1)]
        assert cells[4:8] == [(0, 2), (0, 3), (1, 2), (1, 3)]

    def test_scan_visits_every_cell_once(self) -> None:
        geom = PyramidGeometry(height=16, width=32, levels=4)
        cells = list(iter_scan(geom))
        assert len(cells) == geom.size
        assert len(set(cells)) == geom.size

    def test_single_level_scans_base_only(self) -> None:
        geom = PyramidGeometry(height=3, width=5, levels=1)
        assert [b.name for b in iter_subbands(geom)] == ["LL"]
        assert len(list(iter_scan(geom))) == 15

    def test_parents_precede_children(self) -> None:
        """Every cell is scanned after its parent."""
        geom = PyramidGeometry(height=16, width=16, levels=4)
        position = {cell: k for k, cell in enumerate(iter_scan(geom))}
        for cell, k in position.items():
            for child in geom.children(*cell):
                assert position[child] > k
