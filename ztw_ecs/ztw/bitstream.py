"""Persisted ZTW stream: float64 threshold header and dense 2-bit codes.

Stream layout:
  [Header: 8 bytes]
    - Initial threshold, big-endian IEEE-754 float64
  [Codes: variable]
    - 2 bits per emitted label, MSB-first, no pass delimiters
    - Trailing partial byte zero-padded at every pass boundary

Zero padding decodes as ``ZERO_TREE_ROOT`` codes, which never change a
reconstruction, and a pass cut short by the end of storage is discarded by
the decoder.
"""

from __future__ import annotations

import io
import os
import struct
from typing import BinaryIO

from bitarray import bitarray

from ztw_ecs.ztw.errors import BitstreamError, EndOfStream
from ztw_ecs.ztw.labels import CODE_BITS, Label

HEADER_FORMAT = ">d"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
HEADER_BITS = HEADER_SIZE * 8


class BitstreamWriter:
    """Append-only writer that makes every finished pass durable.

    Codes of the pass in progress stay in memory until ``end_pass()``, so an
    interrupted pass never reaches storage. At each pass boundary the bytes
    written so far, including a zero-padded trailing byte, decode to exactly
    the passes finished. On seekable streams the padded byte is rewritten
    with real bits when the next pass ends. Non-seekable streams cannot be
    rewound: there the trailing partial byte is held back until ``close()``,
    and the stored prefix may decode one pass short until then.

    Example:
        >>> buf = io.BytesIO()
        >>> writer = BitstreamWriter(buf)
        >>> writer.write_threshold(50.0)
        >>> writer.write_label(Label.POSITIVE)
        >>> writer.end_pass()
        >>> buf.getvalue()[8:]
        b'\\xc0'
        >>> writer.close()
    """

    def __init__(self, stream: BinaryIO, fsync: bool = True) -> None:
        """Wrap a binary stream.

        Args:
            stream: Writable binary file object
            fsync: Whether ``end_pass()`` also syncs file-backed streams to disk
        """
        self._stream = stream
        self._fsync = fsync
        seekable = getattr(stream, "seekable", None)
        self._seekable = bool(seekable()) if seekable is not None else False
        self._pending = bitarray(endian="big")
        self._committed = 0
        self._tail_on_disk = False
        self._bits_written = 0
        self._closed = False

    @property
    def seekable(self) -> bool:
        """True if the padded trailing byte is written at every pass boundary."""
        return self._seekable

    @property
    def bits_written(self) -> int:
        """Bits emitted so far, header included, padding excluded."""
        return self._bits_written

    @property
    def kbits_written(self) -> float:
        """Emitted size in kilobits (1 kbit = 1000 bits)."""
        return self._bits_written / 1000.0

    def write_threshold(self, threshold: float) -> None:
        """Write the initial threshold header. Must be the first write."""
        if self._bits_written:
            raise RuntimeError("Threshold header must be written first")
        self._stream.write(struct.pack(HEADER_FORMAT, threshold))
        self._bits_written += HEADER_BITS

    def write_label(self, label: Label) -> None:
        """Buffer the 2-bit code of an emitted label."""
        self._pending.extend(label.code)
        self._bits_written += CODE_BITS

    def end_pass(self) -> None:
        """Commit the finished pass to storage and flush."""
        if self._tail_on_disk:
            # Overwrite the padded byte left by the previous pass
            self._stream.seek(-1, io.SEEK_CUR)
            self._tail_on_disk = False
        whole = len(self._pending) - len(self._pending) % 8
        if whole:
            self._stream.write(self._pending[:whole].tobytes())
            del self._pending[:whole]
        if len(self._pending) and self._seekable:
            self._stream.write(self._pending.tobytes())
            self._tail_on_disk = True
        self._committed = len(self._pending)
        self._sync()

    def close(self) -> None:
        """Write any held-back partial byte (zero-padded) and flush.

        Codes of a pass that never reached ``end_pass()`` are dropped. The
        underlying stream is left open; its owner closes it.
        """
        if self._closed:
            return
        del self._pending[self._committed :]
        if len(self._pending) and not self._tail_on_disk:
            self._stream.write(self._pending.tobytes())
        self._pending.clear()
        self._committed = 0
        self._sync()
        self._closed = True

    def _sync(self) -> None:
        self._stream.flush()
        if not self._fsync:
            return
        try:
            fd = self._stream.fileno()
        except (AttributeError, io.UnsupportedOperation):
            return
        os.fsync(fd)


class BitstreamReader:
    """Strictly forward reader for a ZTW stream.

    Example:
        >>> reader = BitstreamReader(io.BytesIO(data))
        >>> threshold = reader.read_threshold()
        >>> label = reader.read_label()
    """

    def __init__(self, stream: BinaryIO, chunk_size: int = 4096) -> None:
        """Wrap a binary stream.

        Args:
            stream: Readable binary file object positioned at the header
            chunk_size: Bytes fetched from the stream per refill
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._stream = stream
        self._chunk_size = chunk_size
        self._bits = bitarray(endian="big")
        self._pos = 0
        self._bits_read = 0

    @property
    def bits_read(self) -> int:
        """Bits consumed so far, header included."""
        return self._bits_read

    def read_threshold(self) -> float:
        """Read the float64 threshold header.

        Raises:
            BitstreamError: If fewer than 8 bytes are available
        """
        header = self._stream.read(HEADER_SIZE)
        if len(header) < HEADER_SIZE:
            raise BitstreamError(
                f"Stream too short for threshold header: need {HEADER_SIZE} "
                f"bytes, got {len(header)}"
            )
        self._bits_read += HEADER_BITS
        return float(struct.unpack(HEADER_FORMAT, header)[0])

    def read_label(self) -> Label:
        """Read one 2-bit code.

        Raises:
            EndOfStream: If the stream ends before a complete code
        """
        if not self._ensure(CODE_BITS):
            raise EndOfStream("Stream exhausted in the middle of a pass")
        first = self._bits[self._pos]
        second = self._bits[self._pos + 1]
        self._pos += CODE_BITS
        self._bits_read += CODE_BITS
        return Label.from_code(first, second)

    def at_end(self) -> bool:
        """True once no further complete code can be read."""
        return not self._ensure(CODE_BITS)

    def _ensure(self, nbits: int) -> bool:
        while len(self._bits) - self._pos < nbits:
            chunk = self._stream.read(self._chunk_size)
            if not chunk:
                return False
            del self._bits[: self._pos]
            self._pos = 0
            self._bits.frombytes(chunk)
        return True
