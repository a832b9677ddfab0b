"""Pass driver: progressive encode and decode loops.

Encoding repeats one scan pass per threshold until the emitted size reaches
the target, updating the coefficient grid after each pass so it holds the
residual still to be coded. Decoding replays the same passes from the stream
and accumulates the reconstruction. After ``n`` passes the decoder's value
plus the encoder's residual equals the original coefficient exactly.

Example:
    >>> grid = np.zeros((8, 8))
    >>> grid[0, 0] = 100.0
    >>> report = ztw_encode(grid, 8, 8, levels=3, target_kbits=0.1, destination="out.ztw")
    >>> report.passes, grid[0, 0]
    (3, 12.5)
    >>> recon = np.empty((8, 8))
    >>> _ = ztw_decode(recon, 8, 8, levels=3, source="out.ztw", max_passes=2)
    >>> recon[0, 0]
    75.0
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Union

import numpy as np

from ztw_ecs.ztw.bitstream import BitstreamReader, BitstreamWriter
from ztw_ecs.ztw.classifier import PassState, classify, mark_zero_tree
from ztw_ecs.ztw.errors import EndOfStream, GeometryError
from ztw_ecs.ztw.geometry import PyramidGeometry
from ztw_ecs.ztw.labels import Label
from ztw_ecs.ztw.scan import iter_scan
from ztw_ecs.ztw.threshold import initial_threshold, next_threshold

logger = logging.getLogger(__name__)

StreamTarget = Union[str, "os.PathLike[str]", BinaryIO]
StopCallback = Callable[[int], bool]


@dataclass(frozen=True)
class CodingReport:
    """Outcome of an encode or decode run.

    Attributes:
        passes: Number of complete passes written or applied
        bits: Stream bits produced or consumed, header included
        initial_threshold: Threshold of the first pass
        final_threshold: Threshold the next pass would have used
    """

    passes: int
    bits: int
    initial_threshold: float
    final_threshold: float

    @property
    def kbits(self) -> float:
        return self.bits / 1000.0


@contextmanager
def _open_stream(target: StreamTarget, mode: str) -> Iterator[BinaryIO]:
    """Open a path, or pass an already open file object through unchanged."""
    if isinstance(target, (str, os.PathLike)):
        with open(target, mode) as f:
            yield f  # type: ignore[misc]
    else:
        yield target


def _check_grid(
    grid: np.ndarray, width: int, height: int, levels: int
) -> PyramidGeometry:
    if not isinstance(grid, np.ndarray):
        raise TypeError(f"Expected ndarray, got {type(grid)}")
    if not np.issubdtype(grid.dtype, np.floating):
        raise TypeError(f"Expected floating point grid, got {grid.dtype}")
    if grid.shape != (height, width):
        raise GeometryError(
            f"Grid shape {grid.shape} does not match height={height}, width={width}"
        )
    return PyramidGeometry(height=height, width=width, levels=levels)


def _label_grid(height: int, width: int, buffer: np.ndarray | None) -> np.ndarray:
    if buffer is None:
        return np.zeros((height, width), dtype=np.uint8)
    if buffer.shape != (height, width) or buffer.dtype != np.uint8:
        raise ValueError(
            f"label_buffer must be uint8 with shape {(height, width)}, "
            f"got {buffer.dtype} {buffer.shape}"
        )
    return buffer


def _check_max_passes(max_passes: int | None) -> None:
    if max_passes is not None and max_passes < 1:
        raise ValueError(f"max_passes must be >= 1, got {max_passes}")


def encode_pass(
    coefficients: np.ndarray, state: PassState, writer: BitstreamWriter
) -> int:
    """Classify and emit one pass in scan order.

    Returns:
        Number of codes emitted
    """
    emitted = 0
    for i, j in iter_scan(state.geometry):
        if state.labels[i, j] == Label.SKIP:
            continue
        writer.write_label(classify(coefficients, state, i, j))
        emitted += 1
    return emitted


def decode_pass(reader: BitstreamReader, state: PassState) -> int:
    """Read the labels of one pass in scan order.

    Returns:
        Number of codes read

    Raises:
        EndOfStream: If the stream ends before the pass is complete
    """
    read = 0
    for i, j in iter_scan(state.geometry):
        if state.labels[i, j] == Label.SKIP:
            continue
        label = reader.read_label()
        state.assign(i, j, label)
        read += 1
        if label is Label.ZERO_TREE_ROOT:
            mark_zero_tree(state, i, j)
    return read


def subtract_significant(values: np.ndarray, state: PassState) -> None:
    """Encoder update: move the residual toward zero by one threshold."""
    values[state.labels == Label.POSITIVE] -= state.threshold
    values[state.labels == Label.NEGATIVE] += state.threshold


def accumulate_significant(values: np.ndarray, state: PassState) -> None:
    """Decoder update: move the reconstruction toward the original."""
    values[state.labels == Label.POSITIVE] += state.threshold
    values[state.labels == Label.NEGATIVE] -= state.threshold


def ztw_encode(
    grid: np.ndarray,
    width: int,
    height: int,
    levels: int,
    target_kbits: float,
    destination: StreamTarget,
    *,
    max_passes: int | None = None,
    should_stop: StopCallback | None = None,
    fsync: bool = True,
    label_buffer: np.ndarray | None = None,
) -> CodingReport:
    """Encode a coefficient grid into a progressive ZTW stream.

    The grid is updated in place: on return it holds the residual left after
    the last pass.

    Args:
        grid: (height, width) floating point wavelet coefficients
        width: Grid width
        height: Grid height
        levels: Resolution levels used by the wavelet transform
        target_kbits: Stop once the stream reaches this size (1 kbit = 1000 bits)
        destination: Output path or writable binary file object
        max_passes: Optional hard limit on the number of passes
        should_stop: Optional callback ``f(passes_done) -> bool`` checked
            between passes
        fsync: Sync file-backed destinations to disk after every pass
        label_buffer: Optional (height, width) uint8 scratch reused as the
            label grid of every pass

    Returns:
        CodingReport for the written stream

    Raises:
        GeometryError: If the grid and levels do not form a valid pyramid
        TypeError: If the grid is not a floating point ndarray
        ValueError: If target_kbits or max_passes is invalid, or the grid
            holds non-finite values
        OSError: If the destination cannot be opened or written
    """
    geometry = _check_grid(grid, width, height, levels)
    if not target_kbits > 0:
        raise ValueError(f"target_kbits must be positive, got {target_kbits}")
    _check_max_passes(max_passes)
    if not np.all(np.isfinite(grid)):
        raise ValueError("Coefficient grid contains NaN or infinite values")

    threshold = initial_threshold(grid)
    t0 = threshold
    labels = _label_grid(height, width, label_buffer)
    passes = 0

    with _open_stream(destination, "wb") as stream:
        writer = BitstreamWriter(stream, fsync=fsync)
        writer.write_threshold(threshold)

        try:
            while True:
                state = PassState(geometry, threshold, labels)
                emitted = encode_pass(grid, state, writer)
                subtract_significant(grid, state)
                writer.end_pass()
                passes += 1
                logger.debug(
                    "encode pass %d: threshold=%g codes=%d significant=%d total_bits=%d",
                    passes,
                    threshold,
                    emitted,
                    state.count(Label.POSITIVE) + state.count(Label.NEGATIVE),
                    writer.bits_written,
                )
                threshold = next_threshold(threshold)

                if writer.kbits_written >= target_kbits:
                    break
                if max_passes is not None and passes >= max_passes:
                    break
                if should_stop is not None and should_stop(passes):
                    break
        finally:
            writer.close()

    logger.info(
        "Encoded %dx%d grid (levels=%d) in %d passes, %d bits",
        height,
        width,
        levels,
        passes,
        writer.bits_written,
    )
    return CodingReport(
        passes=passes,
        bits=writer.bits_written,
        initial_threshold=t0,
        final_threshold=threshold,
    )


def ztw_decode(
    grid: np.ndarray,
    width: int,
    height: int,
    levels: int,
    source: StreamTarget,
    *,
    max_passes: int | None = None,
    should_stop: StopCallback | None = None,
    label_buffer: np.ndarray | None = None,
) -> CodingReport:
    """Decode a ZTW stream into ``grid`` in place.

    The grid is zeroed first. Decoding stops when the stream is exhausted;
    a pass cut short by the end of the stream is discarded, so any truncation
    yields the reconstruction of the last complete pass.

    Zero padding in the final byte reads as ZERO_TREE_ROOT codes. When the
    lowest-frequency subband has at most three cells, that padding can form
    one or more whole extra passes: they leave the reconstruction unchanged
    but are counted in the returned ``passes`` and ``final_threshold``. Pass
    the encoded pass count as ``max_passes`` to get an exact report.

    Args:
        grid: (height, width) floating point destination, overwritten
        width: Grid width used at encode time
        height: Grid height used at encode time
        levels: Resolution levels used at encode time
        source: Input path or readable binary file object
        max_passes: Optional limit on the number of passes applied
        should_stop: Optional callback ``f(passes_done) -> bool`` checked
            between passes
        label_buffer: Optional (height, width) uint8 scratch reused as the
            label grid of every pass

    Returns:
        CodingReport for the applied passes

    Raises:
        GeometryError: If the grid and levels do not form a valid pyramid
        TypeError: If the grid is not a floating point ndarray
        BitstreamError: If the stream is too short to hold the header
        OSError: If the source cannot be opened or read
    """
    geometry = _check_grid(grid, width, height, levels)
    _check_max_passes(max_passes)

    grid[...] = 0.0
    labels = _label_grid(height, width, label_buffer)
    passes = 0

    with _open_stream(source, "rb") as stream:
        reader = BitstreamReader(stream)
        threshold = reader.read_threshold()
        t0 = threshold
        bits = reader.bits_read

        while not reader.at_end():
            if max_passes is not None and passes >= max_passes:
                break
            if should_stop is not None and should_stop(passes):
                break
            state = PassState(geometry, threshold, labels)
            try:
                read = decode_pass(reader, state)
            except EndOfStream:
                logger.debug(
                    "decode: stream ends inside pass %d, keeping %d complete passes",
                    passes + 1,
                    passes,
                )
                break
            accumulate_significant(grid, state)
            passes += 1
            bits = reader.bits_read
            logger.debug(
                "decode pass %d: threshold=%g codes=%d", passes, threshold, read
            )
            threshold = next_threshold(threshold)

    logger.info(
        "Decoded %dx%d grid (levels=%d) from %d passes", height, width, levels, passes
    )
    return CodingReport(
        passes=passes,
        bits=bits,
        initial_threshold=t0,
        final_threshold=threshold,
    )
