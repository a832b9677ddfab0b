"""Tests for the high-level compression API."""

import json
import struct
from pathlib import Path

import numpy as np
import pytest

from ztw_ecs import __version__
from ztw_ecs.api import (
    compress,
    compress_image,
    decompress,
    decompress_image,
    get_compression_info,
    get_compression_ratio,
)
from ztw_ecs.config import CONFIG_ENV
from ztw_ecs.core.serialization import MAGIC, VERSION_MAJOR, deserialize_bitstream
from ztw_ecs.ztw.errors import GeometryError


@pytest.fixture(autouse=True)
def no_config_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))


@pytest.fixture
def grid() -> np.ndarray:
    rng = np.random.default_rng(21)
    return rng.laplace(scale=20.0, size=(64, 64))


def _smooth_plane(size: int = 64) -> np.ndarray:
    y, x = np.mgrid[0:size, 0:size]
    return (127 + 100 * np.sin(x / 9.0) * np.cos(y / 13.0)).astype(np.uint8)


def _with_metadata(data: bytes, **changes: object) -> bytes:
    metadata, stream = deserialize_bitstream(data)
    metadata.update(changes)
    body = json.dumps(metadata).encode("utf-8")
    return struct.pack("<4sHII", MAGIC, VERSION_MAJOR << 8, len(body), 0) + body + stream


class TestCompress:
    """Tests for compress()/decompress() on coefficient grids."""

    def test_version(self) -> None:
        assert __version__ == "0.1.0"

    def test_spike_example(self) -> None:
        grid = np.zeros((8, 8))
        grid[0, 0] = 100.0
        data = compress(grid, levels=3, target_kbits=0.1)
        recon = decompress(data)
        assert recon[0, 0] == 87.5
        assert decompress(data, max_passes=2)[0, 0] == 75.0

    def test_input_not_modified(self, grid: np.ndarray) -> None:
        original = grid.copy()
        compress(grid, levels=4, target_kbits=4.0)
        np.testing.assert_array_equal(grid, original)

    def test_round_trip_shape_and_error(self, grid: np.ndarray) -> None:
        data = compress(grid, levels=4, target_kbits=8.0)
        recon = decompress(data)
        info = get_compression_info(data)

        assert recon.shape == grid.shape
        assert recon.dtype == np.float64
        final_threshold = info["initial_threshold"] / 2 ** info["passes"]
        assert np.abs(recon - grid).max() <= 2 * final_threshold

    def test_more_bits_less_error(self, grid: np.ndarray) -> None:
        coarse = decompress(compress(grid, levels=4, target_kbits=2.0))
        fine = decompress(compress(grid, levels=4, target_kbits=16.0))
        assert np.mean((fine - grid) ** 2) < np.mean((coarse - grid) ** 2)

    def test_max_passes(self, grid: np.ndarray) -> None:
        data = compress(grid, levels=4, target_kbits=100.0, max_passes=4)
        assert get_compression_info(data)["passes"] == 4

    def test_config_file(self, grid: np.ndarray, tmp_path: Path) -> None:
        path = tmp_path / "codec.toml"
        path.write_text("[codec]\nlevels = 5\ntarget_kbits = 3.0\n")
        info = get_compression_info(compress(grid, config_path=str(path)))
        assert info["levels"] == 5
        assert info["target_kbits"] == 3.0

    def test_rejects_non_array(self) -> None:
        with pytest.raises(TypeError, match="Expected ndarray"):
            compress([[1.0]], levels=1, target_kbits=1.0)  # type: ignore[arg-type]

    def test_rejects_3d(self) -> None:
        with pytest.raises(ValueError, match="shape"):
            compress(np.zeros((8, 8, 3)), levels=1, target_kbits=1.0)

    def test_rejects_bad_geometry(self) -> None:
        with pytest.raises(GeometryError):
            compress(np.zeros((12, 12)), levels=4, target_kbits=1.0)

    def test_decompress_garbage(self) -> None:
        with pytest.raises(ValueError):
            decompress(b"definitely not a container")

    @pytest.mark.parametrize(
        "changes",
        [{"height": None}, {"width": "wide"}, {"levels": 0}, {"height": -8}, {"passes": -1}],
    )
    def test_decompress_invalid_grid_metadata(self, changes: dict) -> None:
        grid = np.zeros((8, 8))
        grid[0, 0] = 100.0
        data = _with_metadata(compress(grid, levels=3, target_kbits=0.1), **changes)
        with pytest.raises(ValueError, match="Invalid grid metadata"):
            decompress(data)


class TestCompressImage:
    """Tests for compress_image()/decompress_image() on spatial planes."""

    def test_round_trip(self) -> None:
        plane = _smooth_plane()
        data = compress_image(plane, levels=4, target_kbits=24.0)
        recon = decompress_image(data)

        assert recon.shape == plane.shape
        assert get_compression_info(data)["wavelet"] == "haar"
        mse = np.mean((recon - plane.astype(np.float64)) ** 2)
        assert mse < np.var(plane.astype(np.float64))

    def test_preview_is_coarser(self) -> None:
        plane = _smooth_plane().astype(np.float64)
        data = compress_image(plane, levels=4, target_kbits=24.0)
        preview = decompress_image(data, max_passes=2)
        full = decompress_image(data)
        assert np.mean((full - plane) ** 2) <= np.mean((preview - plane) ** 2)

    def test_other_wavelet(self) -> None:
        data = compress_image(_smooth_plane(), levels=3, target_kbits=8.0, wavelet="db2")
        assert get_compression_info(data)["wavelet"] == "db2"
        assert decompress_image(data).shape == (64, 64)

    def test_decompress_image_invalid_grid_metadata(self) -> None:
        data = _with_metadata(compress_image(_smooth_plane(), levels=3, target_kbits=4.0), height=None)
        with pytest.raises(ValueError, match="Invalid grid metadata"):
            decompress_image(data)

    def test_decompress_image_needs_wavelet(self, grid: np.ndarray) -> None:
        data = compress(grid, levels=4, target_kbits=1.0)
        with pytest.raises(ValueError, match="bare coefficient grid"):
            decompress_image(data)


class TestInfo:
    """Tests for metadata helpers."""

    def test_compression_info(self, grid: np.ndarray) -> None:
        data = compress(grid, levels=4, target_kbits=2.0)
        info = get_compression_info(data)
        assert info["height"] == 64
        assert info["width"] == 64
        assert info["levels"] == 4
        assert info["num_bits"] >= 2000
        assert info["wavelet"] is None

    def test_compression_ratio(self, grid: np.ndarray) -> None:
        data = compress(grid, levels=4, target_kbits=2.0)
        assert get_compression_ratio(grid, data) == grid.nbytes / len(data)
        assert get_compression_ratio(grid, b"") == float("inf")
