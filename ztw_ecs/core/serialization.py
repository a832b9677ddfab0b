"""Container file format wrapping a raw ZTW stream.

The raw stream carries no grid dimensions, so the container prepends what a
decoder needs.

File format:
  [Header: 14 bytes]
    - Magic: 4 bytes ('ZTW\\x00')
    - Version: 2 bytes (major, minor)
    - Metadata length: 4 bytes
    - Reserved: 4 bytes
  [Metadata: variable JSON]
    - height, width, levels, passes, num_bits, initial_threshold, target_kbits,
      wavelet (null for bare coefficient grids)
  [Stream: variable]
    - Raw ZTW stream (float64 threshold header + 2-bit codes)
"""

from __future__ import annotations

import json
import struct
from typing import TYPE_CHECKING, Any, Tuple, cast

from ztw_ecs.components.bitstream import ZTWBitstream
from ztw_ecs.ztw.bitstream import HEADER_SIZE as STREAM_HEADER_SIZE

if TYPE_CHECKING:
    from ztw_ecs.core.arena import Arena

# File format constants
MAGIC = b"ZTW\x00"
VERSION_MAJOR = 1
VERSION_MINOR = 0
HEADER_FORMAT = "<4sHII"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)

REQUIRED_KEYS = ("height", "width", "levels", "passes")


def serialize_bitstream(
    bitstream: ZTWBitstream,
    arena: Arena,
    target_kbits: float | None = None,
    wavelet: str | None = None,
) -> bytes:
    """Serialize a ZTWBitstream component to container bytes.

    Args:
        bitstream: ZTWBitstream component to serialize
        arena: Arena containing the stream data
        target_kbits: Target size the stream was encoded for (informational)
        wavelet: Wavelet the grid was produced with, if it came from an image

    Returns:
        Serialized container as bytes

    Raises:
        TypeError: If bitstream has the wrong type
        ValueError: If the stream is shorter than its threshold header
    """
    if not isinstance(bitstream, ZTWBitstream):
        raise TypeError(f"Expected ZTWBitstream, got {type(bitstream)}")

    stream_bytes = arena.view(bitstream.data).tobytes()
    if len(stream_bytes) < STREAM_HEADER_SIZE:
        raise ValueError(
            f"Stream too short: need at least {STREAM_HEADER_SIZE} bytes, "
            f"got {len(stream_bytes)}"
        )

    metadata: dict[str, Any] = {
        "height": bitstream.height,
        "width": bitstream.width,
        "levels": bitstream.levels,
        "passes": bitstream.passes,
        "num_bits": bitstream.num_bits,
        "initial_threshold": bitstream.initial_threshold,
        "target_kbits": target_kbits,
        "wavelet": wavelet,
    }
    metadata_bytes = json.dumps(metadata).encode("utf-8")

    if len(metadata_bytes) > 2**32 - 1:
        raise ValueError("Metadata too large (>4GB)")

    version = (VERSION_MAJOR << 8) | VERSION_MINOR
    header = struct.pack(HEADER_FORMAT, MAGIC, version, len(metadata_bytes), 0)

    return cast(bytes, header + metadata_bytes + stream_bytes)


def deserialize_bitstream(data: bytes) -> Tuple[dict[str, Any], bytes]:
    """Split container bytes into metadata and the raw ZTW stream.

    Args:
        data: Serialized container bytes

    Returns:
        Tuple of (metadata_dict, raw_stream_bytes)

    Raises:
        ValueError: If data format is invalid or corrupted
    """
    if len(data) < HEADER_SIZE:
        raise ValueError(f"Data too short: need {HEADER_SIZE} bytes, got {len(data)}")

    try:
        magic, version, meta_len, _ = struct.unpack(HEADER_FORMAT, data[:HEADER_SIZE])
    except struct.error as e:
        raise ValueError(f"Failed to parse header: {e}") from e

    if magic != MAGIC:
        raise ValueError(f"Invalid file format: expected {MAGIC!r}, got {magic!r}")

    ver_major = (version >> 8) & 0xFF
    ver_minor = version & 0xFF
    if ver_major != VERSION_MAJOR:
        raise ValueError(
            f"Unsupported version {ver_major}.{ver_minor}. "
            f"Expected {VERSION_MAJOR}.{VERSION_MINOR}"
        )

    meta_end = HEADER_SIZE + meta_len
    if meta_end > len(data):
        raise ValueError(
            f"Metadata region extends beyond data: need {meta_end} bytes, got {len(data)}"
        )

    try:
        metadata = cast(
            dict[str, Any], json.loads(data[HEADER_SIZE:meta_end].decode("utf-8"))
        )
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"Failed to parse metadata JSON: {e}") from e

    missing = [key for key in REQUIRED_KEYS if key not in metadata]
    if missing:
        raise ValueError(f"Metadata missing required keys: {missing}")

    stream = bytes(data[meta_end:])
    if len(stream) < STREAM_HEADER_SIZE:
        raise ValueError(
            f"Stream region too short: need at least {STREAM_HEADER_SIZE} bytes, "
            f"got {len(stream)}"
        )

    return metadata, stream


def get_serialized_size(stream_nbytes: int, metadata: dict[str, Any]) -> int:
    """Size in bytes of a container holding ``stream_nbytes`` of stream."""
    return HEADER_SIZE + len(json.dumps(metadata).encode("utf-8")) + stream_nbytes
