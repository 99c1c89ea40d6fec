"""Data models for version tokens."""

from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering
from typing import Optional, Tuple


class Ordering(Enum):
    """Result of comparing two version tokens."""
    LESS = -1
    EQUAL = 0
    GREATER = 1


@total_ordering
@dataclass(frozen=True)
class VersionToken:
    """A parsed version string.

    ``segments`` holds the leading numeric segments and ``qualifier`` the
    remainder starting at the first non-numeric run, if any. Equality and
    ordering use the normalized form (trailing zero segments dropped,
    qualifier lower-cased); ``raw`` keeps the original text.
    """
    raw: str = field(compare=False)
    segments: Tuple[int, ...] = field(compare=False)
    qualifier: Optional[str] = field(compare=False, default=None)

    @property
    def normalized_segments(self) -> Tuple[int, ...]:
        """Numeric segments without trailing zeros ("1.0.0" -> (1,))."""
        segs = list(self.segments)
        while segs and segs[-1] == 0:
            segs.pop()
        return tuple(segs)

    @property
    def major(self) -> int:
        """Leading numeric segment, 0 when there is none."""
        return self.segments[0] if self.segments else 0

    @property
    def sort_key(self) -> Tuple[Tuple[int, ...], int, str]:
        """Key realising the total order over versions."""
        if self.qualifier is None:
            return (self.normalized_segments, 1, "")
        return (self.normalized_segments, 0, self.qualifier.lower())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionToken):
            return NotImplemented
        return self.sort_key == other.sort_key

    def __lt__(self, other: "VersionToken") -> bool:
        if not isinstance(other, VersionToken):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __hash__(self) -> int:
        return hash(self.sort_key)

    def __str__(self) -> str:
        return self.raw
