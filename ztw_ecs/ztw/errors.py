"""Exceptions raised by the zero-tree wavelet coder."""

from __future__ import annotations


class GeometryError(ValueError):
    """Grid dimensions and resolution levels do not describe a valid pyramid."""


class BitstreamError(ValueError):
    """Persisted stream cannot be decoded at all (e.g. missing threshold header)."""


class EndOfStream(EOFError):
    """Underlying storage is exhausted while reading a code.

    Raised by the bitstream reader and consumed by the decode loop, which
    treats it as the end of the last complete pass.
    """
