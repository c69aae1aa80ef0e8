"""Dotted-integer version with a total ordering."""

from __future__ import annotations

from typing import List, Optional, Tuple, Union

from ..constants import Constants
from ..errors import FormatError


def _canonical(items: Tuple[int, ...]) -> Tuple[int, ...]:
    """Drop trailing zero components so 1.0 and 1.0.0 compare and hash alike."""
    end = len(items)
    while end > 0 and items[end - 1] == 0:
        end -= 1
    return items[:end]


class ComparableVersion:
    """Immutable version made of non-negative integer components.

    An empty string yields the null version, which stands for an absent
    range bound. Null sorts below every concrete version and is equal only
    to another null.
    """

    __slots__ = ("_items", "_canonical", "_null")

    def __init__(self, version: Union[str, "ComparableVersion", None] = ""):
        if isinstance(version, ComparableVersion):
            items: Tuple[int, ...] = version._items
            null = version._null
        else:
            items, null = self._parse(version)
        self._items = items
        self._null = null
        self._canonical = _canonical(items)

    @staticmethod
    def _parse(text: Optional[str]) -> Tuple[Tuple[int, ...], bool]:
        if text is None:
            return (), True
        if not isinstance(text, str):
            raise FormatError(f"Version must be a string, got {type(text).__name__}")
        text = text.strip()
        if not text:
            return (), True
        items: List[int] = []
        for segment in text.split("."):
            segment = segment.strip()
            if not (segment.isascii() and segment.isdigit()):
                raise FormatError(f"Invalid version '{text}': segment '{segment}' is not a non-negative integer")
            items.append(int(segment))
        return tuple(items), False

    @classmethod
    def parse(cls, text: str) -> "ComparableVersion":
        """Parse a dotted version string, raising FormatError on bad input."""
        return cls(text)

    @classmethod
    def null(cls) -> "ComparableVersion":
        """Return the null version."""
        return cls("")

    @classmethod
    def from_parts(cls, major: int, minor: int = 0, build: int = 0) -> "ComparableVersion":
        """Build a major.minor.build version."""
        for part in (major, minor, build):
            if part < 0:
                raise FormatError(f"Version components must be non-negative: {major}.{minor}.{build}")
        return cls(f"{major}.{minor}.{build}")

    @classmethod
    def from_int(cls, value: int) -> "ComparableVersion":
        """Decode ``major*1_000_000 + minor*1_000 + build``."""
        if value < 0:
            raise FormatError(f"Encoded version must be non-negative, got {value}")
        major, rest = divmod(value, Constants.VERSION_INT_MAJOR)
        minor, build = divmod(rest, Constants.VERSION_INT_MINOR)
        return cls.from_parts(major, minor, build)

    @property
    def is_null(self) -> bool:
        return self._null

    @property
    def components(self) -> Tuple[int, ...]:
        return self._items

    @property
    def major(self) -> int:
        return self._items[0] if self._items else 0

    @property
    def minor(self) -> int:
        return self._items[1] if len(self._items) > 1 else 0

    @property
    def build(self) -> int:
        return self._items[2] if len(self._items) > 2 else 0

    def to_int(self) -> int:
        """Encode as ``major*1_000_000 + minor*1_000 + build``.

        Components after the third are not encoded. Minor and build must fit
        in [0, 999]; anything else is rejected instead of being truncated.
        """
        if self._null:
            raise FormatError("Cannot encode the null version as an integer")
        limit = Constants.VERSION_COMPONENT_MAX
        if self.minor > limit or self.build > limit:
            raise FormatError(
                f"Version {self} cannot be encoded: minor and build must be within [0, {limit}]"
            )
        return self.major * Constants.VERSION_INT_MAJOR + self.minor * Constants.VERSION_INT_MINOR + self.build

    def to_strings(self, n: int) -> List[str]:
        """Return exactly ``n`` components as strings, zero padded."""
        strings = [str(item) for item in self._items[:n]]
        strings.extend("0" for _ in range(n - len(strings)))
        return strings

    @staticmethod
    def compare(a: Optional["ComparableVersion"], b: Optional["ComparableVersion"]) -> int:
        """Three-way comparison, treating None like the null version."""
        a_null = a is None or a.is_null
        b_null = b is None or b.is_null
        if a_null and b_null:
            return 0
        if a_null != b_null:
            return -1 if a_null else 1
        left, right = a._canonical, b._canonical
        if left == right:
            return 0
        return -1 if left < right else 1

    def less_than(self, other: "ComparableVersion", include: bool) -> bool:
        """``self <= other`` when ``include`` else ``self < other``."""
        return self <= other if include else self < other

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ComparableVersion):
            return NotImplemented
        return self.compare(self, other) == 0

    def __ne__(self, other: object) -> bool:
        if not isinstance(other, ComparableVersion):
            return NotImplemented
        return self.compare(self, other) != 0

    def __lt__(self, other: "ComparableVersion") -> bool:
        if not isinstance(other, ComparableVersion):
            return NotImplemented
        return self.compare(self, other) < 0

    def __le__(self, other: "ComparableVersion") -> bool:
        if not isinstance(other, ComparableVersion):
            return NotImplemented
        return self.compare(self, other) <= 0

    def __gt__(self, other: "ComparableVersion") -> bool:
        if not isinstance(other, ComparableVersion):
            return NotImplemented
        return self.compare(self, other) > 0

    def __ge__(self, other: "ComparableVersion") -> bool:
        if not isinstance(other, ComparableVersion):
            return NotImplemented
        return self.compare(self, other) >= 0

    def __hash__(self) -> int:
        return hash((self._null, self._canonical))

    def __str__(self) -> str:
        return ".".join(str(item) for item in self._items)

    def __repr__(self) -> str:
        return f"ComparableVersion('{self}')"
