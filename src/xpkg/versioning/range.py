"""Version ranges in interval notation.

Examples:
    [1.2.0,)            version 1.2.0 and higher
    (,2.0]              up to and including 2.0
    [1.0,2.0)           1.0 up to but excluding 2.0
    (,1.0],[2.0,)       everything outside the band (1.0, 2.0)
    1.5.0 or [1.5.0]    exactly 1.5.0

A range holds at most two intervals. Two rays facing each other collapse
into a single band, two rays facing away stay a union.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence, Tuple

from ..constants import Constants
from ..errors import FormatError
from .version import ComparableVersion


class RangeKind(Enum):
    """Shape of a version range."""

    UNIQUE_VERSION = "unique"
    VERSION_TO_UNBOUND = "version_to_unbound"  # X >= Version
    UNBOUND_TO_VERSION = "unbound_to_version"  # X <= Version
    VERSION_TO_VERSION = "version_to_version"  # X >= A AND X <= B
    UNBOUND_TO_VERSION_OR_VERSION_TO_UNBOUND = "outside_band"  # X <= A OR X >= B


@dataclass(frozen=True)
class Interval:
    """One contiguous interval; a null bound means unbounded on that side."""

    lower: ComparableVersion
    upper: ComparableVersion
    include_lower: bool
    include_upper: bool

    @property
    def is_unique(self) -> bool:
        return (
            not self.lower.is_null
            and self.lower == self.upper
            and self.include_lower
            and self.include_upper
        )

    @property
    def lower_unbounded(self) -> bool:
        return self.lower.is_null

    @property
    def upper_unbounded(self) -> bool:
        return self.upper.is_null

    def contains(self, version: ComparableVersion) -> bool:
        if version is None or version.is_null:
            return False
        if not self.lower_unbounded:
            if self.include_lower and version < self.lower:
                return False
            if not self.include_lower and version <= self.lower:
                return False
        if not self.upper_unbounded:
            if self.include_upper and version > self.upper:
                return False
            if not self.include_upper and version >= self.upper:
                return False
        return True

    def intersect(self, other: "Interval") -> Optional["Interval"]:
        """Return the overlap of two intervals or None when they are disjoint."""
        if self.lower_unbounded:
            lower, include_lower = other.lower, other.include_lower
        elif other.lower_unbounded or self.lower > other.lower:
            lower, include_lower = self.lower, self.include_lower
        elif self.lower < other.lower:
            lower, include_lower = other.lower, other.include_lower
        else:
            lower, include_lower = self.lower, self.include_lower and other.include_lower

        if self.upper_unbounded:
            upper, include_upper = other.upper, other.include_upper
        elif other.upper_unbounded or self.upper < other.upper:
            upper, include_upper = self.upper, self.include_upper
        elif self.upper > other.upper:
            upper, include_upper = other.upper, other.include_upper
        else:
            upper, include_upper = self.upper, self.include_upper and other.include_upper

        return make_interval(lower, upper, include_lower, include_upper)

    def sort_key(self) -> Tuple[int, ComparableVersion]:
        return (0 if self.lower_unbounded else 1, self.lower)

    def __str__(self) -> str:
        if self.is_unique:
            return f"[{self.lower}]"
        opening = "[" if self.include_lower else "("
        closing = "]" if self.include_upper else ")"
        return f"{opening}{self.lower},{self.upper}{closing}"


def make_interval(
    lower: ComparableVersion,
    upper: ComparableVersion,
    include_lower: bool,
    include_upper: bool,
) -> Optional[Interval]:
    """Normalize bounds, returning None for an empty interval."""
    if lower.is_null:
        include_lower = False
    if upper.is_null:
        include_upper = False
    if not lower.is_null and not upper.is_null:
        if lower > upper:
            return None
        if lower == upper and not (include_lower and include_upper):
            return None
    return Interval(lower, upper, include_lower, include_upper)


def _classify(intervals: Sequence[Interval]) -> Optional[RangeKind]:
    if len(intervals) == 1:
        only = intervals[0]
        if only.is_unique:
            return RangeKind.UNIQUE_VERSION
        if only.lower_unbounded and only.upper_unbounded:
            return None
        if only.upper_unbounded:
            return RangeKind.VERSION_TO_UNBOUND
        if only.lower_unbounded:
            return RangeKind.UNBOUND_TO_VERSION
        return RangeKind.VERSION_TO_VERSION
    if len(intervals) == 2:
        first, second = intervals
        if (
            first.lower_unbounded and not first.upper_unbounded
            and second.upper_unbounded and not second.lower_unbounded
        ):
            if first.upper < second.lower:
                return RangeKind.UNBOUND_TO_VERSION_OR_VERSION_TO_UNBOUND
            if first.upper == second.lower and not (first.include_upper or second.include_lower):
                return RangeKind.UNBOUND_TO_VERSION_OR_VERSION_TO_UNBOUND
    return None


class SplitResult(NamedTuple):
    """Outcome of VersionRange.split: bounded sub-ranges or a single pinned version."""

    ranges: List["VersionRange"]
    version: Optional[ComparableVersion]


class VersionRange:
    """Immutable range of ComparableVersion values."""

    __slots__ = ("_intervals", "_kind")

    def __init__(self, text: Optional[str] = None, *, intervals: Optional[Sequence[Interval]] = None):
        if intervals is None:
            if text is None:
                text = Constants.DEFAULT_VERSION_RANGE
            intervals = _parse_intervals(text)
        ordered = tuple(sorted(intervals, key=Interval.sort_key))
        kind = _classify(ordered)
        if kind is None:
            raise FormatError(f"Unsupported version range: {','.join(str(i) for i in ordered)}")
        self._intervals = ordered
        self._kind = kind

    @classmethod
    def parse(cls, text: str) -> "VersionRange":
        """Parse interval notation, raising FormatError on malformed input."""
        return cls(text)

    @classmethod
    def default(cls) -> "VersionRange":
        """The range used when nothing is requested: 1.0 and higher."""
        return cls(Constants.DEFAULT_VERSION_RANGE)

    @classmethod
    def unique(cls, version: ComparableVersion) -> "VersionRange":
        return cls(intervals=[Interval(version, version, True, True)])

    @classmethod
    def between(
        cls,
        lower: ComparableVersion,
        upper: ComparableVersion,
        include_lower: bool = True,
        include_upper: bool = True,
    ) -> "VersionRange":
        interval = make_interval(lower, upper, include_lower, include_upper)
        if interval is None:
            raise FormatError(f"Empty version range between {lower} and {upper}")
        return cls(intervals=[interval])

    @property
    def kind(self) -> RangeKind:
        return self._kind

    @property
    def intervals(self) -> Tuple[Interval, ...]:
        return self._intervals

    @property
    def lower(self) -> ComparableVersion:
        """Lower edge; for the union kind, the lower edge of the excluded band."""
        if self._kind == RangeKind.UNBOUND_TO_VERSION_OR_VERSION_TO_UNBOUND:
            return self._intervals[0].upper
        return self._intervals[0].lower

    @property
    def include_lower(self) -> bool:
        if self._kind == RangeKind.UNBOUND_TO_VERSION_OR_VERSION_TO_UNBOUND:
            return self._intervals[0].include_upper
        return self._intervals[0].include_lower

    @property
    def upper(self) -> ComparableVersion:
        """Upper edge; for the union kind, the upper edge of the excluded band."""
        if self._kind == RangeKind.UNBOUND_TO_VERSION_OR_VERSION_TO_UNBOUND:
            return self._intervals[1].lower
        return self._intervals[0].upper

    @property
    def include_upper(self) -> bool:
        if self._kind == RangeKind.UNBOUND_TO_VERSION_OR_VERSION_TO_UNBOUND:
            return self._intervals[1].include_lower
        return self._intervals[0].include_upper

    def is_in_range(self, version: ComparableVersion) -> bool:
        """Intervals are OR-ed: a version matches if any interval holds it."""
        return any(interval.contains(version) for interval in self._intervals)

    def __contains__(self, version: ComparableVersion) -> bool:
        return self.is_in_range(version)

    def split(self, lowest: ComparableVersion, highest: ComparableVersion) -> SplitResult:
        """Clamp the range to the versions actually available in a repository.

        Returns bounded sub-ranges inside ``[lowest, highest]``, or a pinned
        version when the range is unique or the clamp leaves a single point.
        An empty SplitResult means nothing in the corpus can match.
        """
        if self._kind == RangeKind.UNIQUE_VERSION:
            return SplitResult([], self._intervals[0].lower)
        if lowest.is_null or highest.is_null:
            raise FormatError("Split bounds must be concrete versions")
        if lowest > highest:
            lowest, highest = highest, lowest
        corpus = Interval(lowest, highest, True, True)
        pieces = [p for p in (i.intersect(corpus) for i in self._intervals) if p is not None]
        if len(pieces) == 1 and pieces[0].is_unique:
            return SplitResult([], pieces[0].lower)
        return SplitResult([VersionRange(intervals=[p]) for p in pieces], None)

    def merge(self, other: "VersionRange") -> Optional["VersionRange"]:
        """Intersect two ranges.

        Total over every pair of kinds. Returns None when no version satisfies
        both. When the exact intersection needs more than the supported shapes
        (e.g. two disjoint bands), the highest representable part is kept.
        """
        pieces: List[Interval] = []
        for mine in self._intervals:
            for theirs in other._intervals:
                overlap = mine.intersect(theirs)
                if overlap is not None:
                    pieces.append(overlap)
        if not pieces:
            return None
        pieces.sort(key=Interval.sort_key)
        for start in range(len(pieces)):
            if _classify(pieces[start:]) is not None:
                return VersionRange(intervals=pieces[start:])
        return None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionRange):
            return NotImplemented
        return self._intervals == other._intervals

    def __hash__(self) -> int:
        return hash(self._intervals)

    def __str__(self) -> str:
        return ",".join(str(interval) for interval in self._intervals)

    def __repr__(self) -> str:
        return f"VersionRange('{self}')"


def _scan_clauses(text: str) -> List[str]:
    clauses: List[str] = []
    i, n = 0, len(text)
    while i < n:
        while i < n and text[i].isspace():
            i += 1
        if i >= n:
            break
        if text[i] not in "[(":
            raise FormatError(f"Invalid version range '{text}': unexpected '{text[i]}' at {i}")
        j = i + 1
        while j < n and text[j] not in "])":
            if text[j] in "[(":
                raise FormatError(f"Invalid version range '{text}': nested bracket at {j}")
            j += 1
        if j >= n:
            raise FormatError(f"Invalid version range '{text}': unclosed bracket at {i}")
        clauses.append(text[i:j + 1])
        i = j + 1
        while i < n and text[i].isspace():
            i += 1
        if i < n:
            if text[i] != ",":
                raise FormatError(f"Invalid version range '{text}': expected ',' at {i}")
            i += 1
            if not text[i:].strip():
                raise FormatError(f"Invalid version range '{text}': trailing ','")
    return clauses


def _parse_clause(clause: str) -> Interval:
    opening, closing = clause[0], clause[-1]
    parts = clause[1:-1].split(",")
    if len(parts) == 1:
        bare = parts[0].strip()
        if not bare:
            raise FormatError(f"Invalid version range clause '{clause}': empty")
        if opening != "[" or closing != "]":
            raise FormatError(f"Invalid version range clause '{clause}': a single version needs '[' and ']'")
        version = ComparableVersion(bare)
        return Interval(version, version, True, True)
    if len(parts) != 2:
        raise FormatError(f"Invalid version range clause '{clause}': too many bounds")
    lower = ComparableVersion(parts[0])
    upper = ComparableVersion(parts[1])
    if lower.is_null and upper.is_null:
        raise FormatError(f"Invalid version range clause '{clause}': both bounds are unbounded")
    interval = make_interval(lower, upper, opening == "[", closing == "]")
    if interval is None:
        raise FormatError(f"Invalid version range clause '{clause}': empty interval")
    return interval


def _parse_intervals(text: str) -> List[Interval]:
    if not isinstance(text, str):
        raise FormatError(f"Version range must be a string, got {type(text).__name__}")
    text = text.strip()
    if not text:
        raise FormatError("Version range is empty")
    if text[0] not in "[(":
        if any(c in text for c in "[](),"):
            raise FormatError(f"Invalid version range '{text}'")
        version = ComparableVersion(text)
        return [Interval(version, version, True, True)]

    clauses = _scan_clauses(text)
    if not clauses or len(clauses) > 2:
        raise FormatError(f"Invalid version range '{text}': expected one or two clauses")
    intervals = [_parse_clause(c) for c in clauses]
    if len(intervals) == 2:
        first, second = intervals
        # [a,) combined with (,b] describes the band a..b
        if first.upper_unbounded and second.lower_unbounded and not first.lower_unbounded and not second.upper_unbounded:
            band = make_interval(first.lower, second.upper, first.include_lower, second.include_upper)
            if band is None:
                raise FormatError(f"Invalid version range '{text}': empty band")
            return [band]
        if _classify(sorted(intervals, key=Interval.sort_key)) is None:
            raise FormatError(f"Invalid version range '{text}': unsupported combination of clauses")
    return intervals
