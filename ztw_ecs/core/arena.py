"""Arena allocator and TensorRef handles for coefficient and label grids.

The Arena is one contiguous buffer with bump allocation. Components store
TensorRefs (offset, shape, dtype, strides) instead of arrays, so coefficient
grids, reconstructions and encoded streams all live in the same buffer and
are released together by ``reset()``.

Scratch allocations (such as the label grid reused by every pass of a run)
are scoped with ``mark()`` / ``release()``:

    >>> arena = Arena(size_bytes=1 << 20)
    >>> grid_ref = arena.alloc_tensor((64, 64), np.float64)
    >>> mark = arena.mark()
    >>> labels_ref = arena.alloc_tensor((64, 64), np.uint8)
    >>> arena.release(mark)  # labels_ref is now stale, grid_ref is not
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass(frozen=True)
class TensorRef:
    """Lightweight handle pointing to tensor data in an Arena.

    Attributes:
        offset: Byte offset into arena buffer
        shape: Tensor dimensions
        dtype: NumPy data type
        strides: Byte strides for each dimension
        generation: Arena generation counter (for staleness detection)
    """

    offset: int
    shape: tuple[int, ...]
    dtype: np.dtype[Any]
    strides: tuple[int, ...]
    generation: int

    def __post_init__(self) -> None:
        """Validate TensorRef fields."""
        if self.offset < 0:
            raise ValueError(f"offset must be non-negative, got {self.offset}")
        if len(self.shape) != len(self.strides):
            raise ValueError(
                f"shape and strides must have same length: "
                f"shape={self.shape}, strides={self.strides}"
            )
        if self.generation < 0:
            raise ValueError(f"generation must be non-negative, got {self.generation}")

    @property
    def ndim(self) -> int:
        """Number of dimensions."""
        return len(self.shape)

    @property
    def size(self) -> int:
        """Total number of elements."""
        return int(np.prod(self.shape))

    @property
    def nbytes(self) -> int:
        """Bytes spanned by the tensor."""
        if self.size == 0:
            return 0
        last_offset = sum((s - 1) * st for s, st in zip(self.shape, self.strides))
        return last_offset + self.dtype.itemsize


@dataclass(frozen=True)
class ArenaMark:
    """Allocation point returned by ``Arena.mark()``."""

    offset: int
    generation: int


class Arena:
    """Contiguous memory allocator with bump allocation strategy.

    Attributes:
        size: Total arena size in bytes
        offset: Current allocation offset (bump pointer)
        generation: Incremented on reset() to invalidate old TensorRefs

    Example:
        >>> arena = Arena(size_bytes=1 << 20)
        >>> ref = arena.copy_tensor(np.zeros((8, 8)))
        >>> arena.view(ref)[0, 0] = 100.0
    """

    def __init__(self, size_bytes: int):
        """Create arena with specified size.

        Args:
            size_bytes: Total size in bytes
        """
        if size_bytes <= 0:
            raise ValueError(f"size_bytes must be positive, got {size_bytes}")

        self._buffer = bytearray(size_bytes)
        self._size = size_bytes
        self._offset = 0
        self._generation = 0

    @property
    def size(self) -> int:
        """Total arena size in bytes."""
        return self._size

    @property
    def offset(self) -> int:
        """Current allocation offset (bytes used)."""
        return self._offset

    @property
    def generation(self) -> int:
        """Current generation counter."""
        return self._generation

    @property
    def available(self) -> int:
        """Remaining bytes available for allocation."""
        return self._size - self._offset

    def reset(self) -> None:
        """Reclaim the whole arena. Invalidates all existing TensorRefs."""
        self._offset = 0
        self._generation += 1

    def mark(self) -> ArenaMark:
        """Record the current allocation point for a later ``release()``."""
        return ArenaMark(offset=self._offset, generation=self._generation)

    def release(self, mark: ArenaMark) -> None:
        """Reclaim everything allocated after ``mark``.

        TensorRefs allocated before the mark remain valid. TensorRefs
        allocated after it are rejected by ``view()`` until the space is
        handed out again; holders must not keep them past the release.

        Raises:
            ValueError: If the mark predates a reset() or the current offset
        """
        if mark.generation != self._generation:
            raise ValueError(
                f"Stale ArenaMark: generation {mark.generation}, "
                f"arena is at generation {self._generation}"
            )
        if mark.offset > self._offset:
            raise ValueError(
                f"ArenaMark offset {mark.offset} is beyond current offset {self._offset}"
            )
        self._offset = mark.offset

    def alloc_tensor(
        self,
        shape: tuple[int, ...],
        dtype: np.dtype[Any] | type | str,
    ) -> TensorRef:
        """Allocate a C-contiguous tensor in the arena.

        Args:
            shape: Tensor dimensions
            dtype: NumPy data type

        Returns:
            TensorRef handle to the allocated tensor

        Raises:
            ValueError: If allocation would exceed arena size
        """
        dt = np.dtype(dtype)
        shape = tuple(int(s) for s in shape)

        size = int(np.prod(shape))
        nbytes = size * dt.itemsize

        alignment = dt.alignment
        aligned_offset = (self._offset + alignment - 1) // alignment * alignment

        end_offset = aligned_offset + nbytes
        if end_offset > self._size:
            raise ValueError(
                f"Arena out of memory: need {nbytes} bytes at offset {aligned_offset}, "
                f"but arena size is {self._size} (available: {self.available})"
            )

        strides = []
        stride = dt.itemsize
        for dim_size in reversed(shape):
            strides.append(stride)
            stride *= dim_size
        strides.reverse()

        ref = TensorRef(
            offset=aligned_offset,
            shape=shape,
            dtype=dt,
            strides=tuple(strides),
            generation=self._generation,
        )
        self._offset = end_offset
        return ref

    def view(self, ref: TensorRef) -> np.ndarray:
        """Get a NumPy array view of a TensorRef.

        Raises:
            ValueError: If TensorRef is stale or out of bounds
        """
        if ref.generation != self._generation:
            raise ValueError(
                f"Stale TensorRef: arena was reset (current generation {self._generation}, "
                f"ref is from generation {ref.generation})"
            )

        end_offset = ref.offset + ref.nbytes
        if end_offset > self._offset:
            raise ValueError(
                f"Stale TensorRef: offset={ref.offset}, nbytes={ref.nbytes} lies past "
                f"the allocation point {self._offset} (memory was released)"
            )

        return np.ndarray(
            shape=ref.shape,
            dtype=ref.dtype,
            buffer=self._buffer,
            offset=ref.offset,
            strides=ref.strides,
        )

    def copy_tensor(self, arr: np.ndarray) -> TensorRef:
        """Allocate tensor and copy data from array."""
        ref = self.alloc_tensor(arr.shape, arr.dtype)
        self.view(ref)[...] = arr
        return ref

    def copy_bytes(self, data: bytes) -> TensorRef:
        """Allocate a uint8 tensor holding ``data``."""
        return self.copy_tensor(np.frombuffer(data, dtype=np.uint8))

    def __repr__(self) -> str:
        return (
            f"Arena(size={self._size}, offset={self._offset}, "
            f"generation={self._generation}, available={self.available})"
        )
