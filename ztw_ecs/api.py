"""High-level API for coefficient and image compression.

Provides compress() and decompress() for wavelet coefficient grids and
compress_image() / decompress_image() for spatial-domain planes. Each call
builds a short-lived World, runs the ECS pipeline and returns a container
produced by ``ztw_ecs.core.serialization``.
"""

from __future__ import annotations

from typing import Any, cast

import numpy as np

from ztw_ecs.components.bitstream import ZTWBitstream
from ztw_ecs.components.coefficients import ReconCoefficients
from ztw_ecs.components.image import ReconPlane
from ztw_ecs.config import CodecConfig, load_config
from ztw_ecs.core.serialization import deserialize_bitstream, serialize_bitstream
from ztw_ecs.core.world import World
from ztw_ecs.systems.wavelet import WaveletHaar
from ztw_ecs.systems.ztw import ZTWDecode, ZTWEncode

# Headroom for alignment padding and the stream's final pass
_ARENA_SLACK = 1 << 20


def _arena_bytes(height: int, width: int, target_kbits: float = 0.0) -> int:
    """Arena size for one grid: a few float64 copies, labels and the stream."""
    cells = height * width
    return 6 * 8 * cells + cells + int(target_kbits * 125) + _ARENA_SLACK


def _check_plane(array: Any, what: str) -> None:
    if not isinstance(array, np.ndarray):
        raise TypeError(f"Expected ndarray, got {type(array)}")
    if array.ndim != 2:
        raise ValueError(f"Expected {what} with shape (H, W), got {array.shape}")


def _codec_config(
    config_path: str | None,
    levels: int | None,
    target_kbits: float | None,
    max_passes: int | None,
    wavelet: str | None = None,
) -> CodecConfig:
    return load_config(
        config_path,
        levels=levels,
        target_kbits=target_kbits,
        max_passes=max_passes,
        wavelet=wavelet,
    )


def compress(
    coefficients: np.ndarray,
    levels: int | None = None,
    target_kbits: float | None = None,
    max_passes: int | None = None,
    config_path: str | None = None,
) -> bytes:
    """Compress a wavelet coefficient grid to bytes.

    Arguments left as None are taken from ``ztw_ecs.toml`` (or the built-in
    defaults when no file is found).

    Args:
        coefficients: (H, W) real-valued coefficients in Mallat layout
        levels: Resolution levels of the pyramid
        target_kbits: Stream size at which encoding stops (kilobits)
        max_passes: Optional hard limit on the number of passes
        config_path: Path to ztw_ecs.toml (auto-detected if None)

    Returns:
        Serialized container as bytes

    Raises:
        TypeError: If coefficients is not a real-valued ndarray
        ValueError: If coefficients is not 2D or holds non-finite values
        GeometryError: If the grid and levels do not form a valid pyramid

    Example:
        >>> grid = np.zeros((8, 8))
        >>> grid[0, 0] = 100.0
        >>> data = compress(grid, levels=3, target_kbits=0.1)
        >>> decompress(data)[0, 0]
        87.5
    """
    _check_plane(coefficients, "coefficients")
    config = _codec_config(config_path, levels, target_kbits, max_passes)

    height, width = coefficients.shape
    world = World(arena_bytes=_arena_bytes(height, width, config.target_kbits))

    try:
        entity = world.spawn_coefficients(coefficients, levels=config.levels)
        bitstream = world.pipe(entity).to(ZTWEncode(config)).out(ZTWBitstream)
        return serialize_bitstream(
            bitstream, arena=world.arena, target_kbits=config.target_kbits
        )
    finally:
        world.clear()


def _grid_metadata(metadata: dict[str, Any]) -> tuple[int, int, int, int]:
    """Return (height, width, levels, passes) from container metadata."""
    try:
        grid = (
            int(metadata["height"]),
            int(metadata["width"]),
            int(metadata["levels"]),
            int(metadata["passes"]),
        )
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid grid metadata in container") from exc
    if min(grid[:3]) < 1 or grid[3] < 0:
        raise ValueError(f"Invalid grid metadata in container: {grid}")
    return grid


def _decode_container(
    world: World,
    metadata: dict[str, Any],
    stream: bytes,
    grid: tuple[int, int, int, int],
    max_passes: int | None,
) -> int:
    """Spawn an entity holding the container's stream as a ZTWBitstream."""
    height, width, levels, passes = grid
    entity = world.new_entity()
    world.add_component(
        entity,
        ZTWBitstream(
            data=world.arena.copy_bytes(stream),
            height=height,
            width=width,
            levels=levels,
            initial_threshold=float(metadata.get("initial_threshold") or 0.0),
            passes=passes,
            num_bits=int(metadata.get("num_bits") or 0),
        ),
    )
    decoder = ZTWDecode(CodecConfig(levels=levels, max_passes=max_passes))
    world.pipe(entity).to(decoder).execute()
    return entity


def decompress(data: bytes, max_passes: int | None = None) -> np.ndarray:
    """Decompress bytes to a reconstructed coefficient grid.

    Args:
        data: Container bytes from compress()
        max_passes: Apply at most this many passes (progressive preview)

    Returns:
        Reconstructed coefficients as (H, W) float64 array

    Raises:
        ValueError: If data format is invalid or corrupted
    """
    metadata, stream = deserialize_bitstream(data)
    grid = _grid_metadata(metadata)
    world = World(arena_bytes=_arena_bytes(grid[0], grid[1]) + len(data))

    try:
        entity = _decode_container(world, metadata, stream, grid, max_passes)
        recon = world.get_component(entity, ReconCoefficients)
        # Return copy before world is cleared
        return cast(np.ndarray, world.arena.view(recon.data).copy())
    finally:
        world.clear()


def compress_image(
    plane: np.ndarray,
    levels: int | None = None,
    target_kbits: float | None = None,
    max_passes: int | None = None,
    wavelet: str | None = None,
    config_path: str | None = None,
) -> bytes:
    """Wavelet-transform a single-channel plane and compress it.

    Args:
        plane: (H, W) uint8 or floating point image
        levels: Resolution levels of the pyramid
        target_kbits: Stream size at which encoding stops (kilobits)
        max_passes: Optional hard limit on the number of passes
        wavelet: PyWavelets wavelet name (default 'haar')
        config_path: Path to ztw_ecs.toml (auto-detected if None)

    Returns:
        Serialized container as bytes

    Raises:
        TypeError: If plane is not an ndarray
        ValueError: If plane has invalid shape or dtype
        GeometryError: If the plane cannot be split into ``levels`` levels
    """
    _check_plane(plane, "plane")
    config = _codec_config(config_path, levels, target_kbits, max_passes, wavelet)

    height, width = plane.shape
    world = World(arena_bytes=_arena_bytes(height, width, config.target_kbits))

    try:
        entity = world.spawn_plane(plane)
        bitstream = (
            world.pipe(entity)
            .to(WaveletHaar(levels=config.levels, mode="forward", wavelet=config.wavelet))
            .to(ZTWEncode(config))
            .out(ZTWBitstream)
        )
        return serialize_bitstream(
            bitstream,
            arena=world.arena,
            target_kbits=config.target_kbits,
            wavelet=config.wavelet,
        )
    finally:
        world.clear()


def decompress_image(data: bytes, max_passes: int | None = None) -> np.ndarray:
    """Decompress bytes from compress_image() to a spatial-domain plane.

    Args:
        data: Container bytes from compress_image()
        max_passes: Apply at most this many passes (progressive preview)

    Returns:
        Reconstructed plane as (H, W) float64 array

    Raises:
        ValueError: If data is invalid or was not produced from an image
    """
    metadata, stream = deserialize_bitstream(data)
    wavelet = metadata.get("wavelet")
    if not wavelet:
        raise ValueError("Container holds a bare coefficient grid; use decompress()")
    grid = _grid_metadata(metadata)

    world = World(arena_bytes=_arena_bytes(grid[0], grid[1]) + len(data))

    try:
        entity = _decode_container(world, metadata, stream, grid, max_passes)
        recon: ReconPlane = (
            world.pipe(entity)
            .to(WaveletHaar(levels=grid[2], mode="inverse", wavelet=wavelet))
            .out(ReconPlane)
        )
        return cast(np.ndarray, world.arena.view(recon.pix).copy())
    finally:
        world.clear()


def get_compression_info(data: bytes) -> dict[str, Any]:
    """Get metadata about a compressed grid without decoding it.

    Returns:
        Dictionary with keys: height, width, levels, passes, num_bits,
        initial_threshold, target_kbits, wavelet

    Raises:
        ValueError: If data format is invalid
    """
    metadata, _ = deserialize_bitstream(data)
    return metadata


def get_compression_ratio(
    original: np.ndarray,
    compressed_data: bytes,
) -> float:
    """Calculate compression ratio (original_size / compressed_size)."""
    original_bytes = original.nbytes
    compressed_bytes = len(compressed_data)
    return original_bytes / compressed_bytes if compressed_bytes > 0 else float("inf")
