"""Significance labels and their 2-bit codes.

Four labels are emitted into the stream; the first code bit says whether the
coefficient is significant, the second disambiguates sign (significant) or
isolation (insignificant):

    ZERO_TREE_ROOT  00
    ZERO_ISOLATED   01
    NEGATIVE        10
    POSITIVE        11

``UNKNOWN`` is the state of every cell at the start of a pass and ``SKIP``
marks descendants of an emitted zero-tree root. Neither is ever written.
"""

from __future__ import annotations

from enum import IntEnum


class Label(IntEnum):
    """Per-cell label for one pass, stored as uint8 in the label grid."""

    UNKNOWN = 0
    ZERO_TREE_ROOT = 1
    ZERO_ISOLATED = 2
    NEGATIVE = 3
    POSITIVE = 4
    SKIP = 5

    @property
    def is_emitted(self) -> bool:
        """True for the four labels that carry a code in the stream."""
        return self in _CODES

    @property
    def is_significant(self) -> bool:
        """True if the coefficient itself exceeded the threshold."""
        return self is Label.POSITIVE or self is Label.NEGATIVE

    @property
    def covers_significance(self) -> bool:
        """True if the cell or something below it is significant.

        A parent whose children all return False here is a zero-tree root.
        """
        return self.is_significant or self is Label.ZERO_ISOLATED

    @property
    def code(self) -> tuple[int, int]:
        """2-bit code, most significant bit first."""
        try:
            return _CODES[self]
        except KeyError:
            raise ValueError(f"{self.name} has no stream code") from None

    @classmethod
    def from_code(cls, first: int, second: int) -> Label:
        """Decode a 2-bit code read from the stream."""
        return _LABELS[(1 if first else 0, 1 if second else 0)]


_CODES: dict[Label, tuple[int, int]] = {
    Label.ZERO_TREE_ROOT: (0, 0),
    Label.ZERO_ISOLATED: (0, 1),
    Label.NEGATIVE: (1, 0),
    Label.POSITIVE: (1, 1),
}

_LABELS: dict[tuple[int, int], Label] = {code: label for label, code in _CODES.items()}

CODE_BITS = 2
