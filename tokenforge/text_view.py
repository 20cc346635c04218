"""Zero-copy views over immutable strings.

A :class:`TextView` is a ``(source, offset, length)`` triple.  Slicing a
view produces another view over the same source string, so a pipeline
can split, look up and compare text without materializing substrings
until it really needs to (``str(view)`` or :meth:`TextView.apply`).
"""

from __future__ import annotations

from collections.abc import Iterator


def _is_high_surrogate(ch: str) -> bool:
    return "\ud800" <= ch <= "\udbff"


def _is_low_surrogate(ch: str) -> bool:
    return "\udc00" <= ch <= "\udfff"


class TextView:
    """Immutable slice of a source string.

    Raises
    ------
    IndexError
        If the requested range falls outside the source string.
    """

    __slots__ = ("_source", "_offset", "_length", "_hash")

    def __init__(self, source: str, offset: int = 0, length: int | None = None) -> None:
        if length is None:
            length = len(source) - offset
        if offset < 0 or length < 0 or offset + length > len(source):
            raise IndexError(
                f"View ({offset}, {length}) is out of range for a source "
                f"of length {len(source)}"
            )
        self._source = source
        self._offset = offset
        self._length = length
        self._hash: int | None = None

    @classmethod
    def from_to(cls, source: str, start: int, end: int) -> TextView:
        return cls(source, start, end - start)

    @classmethod
    def of(cls, text: str | TextView) -> TextView:
        """Return *text* as a view, wrapping plain strings."""
        return text if isinstance(text, TextView) else cls(text)

    # ── Geometry ───────────────────────────────────────────────────

    @property
    def source(self) -> str:
        return self._source

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def length(self) -> int:
        return self._length

    @property
    def end(self) -> int:
        return self._offset + self._length

    @property
    def is_applied(self) -> bool:
        """True when the view covers its whole source string."""
        return self._offset == 0 and self._length == len(self._source)

    @property
    def is_blank(self) -> bool:
        return all(ch.isspace() for ch in self)

    def __len__(self) -> int:
        return self._length

    def __bool__(self) -> bool:
        return self._length > 0

    # ── Slicing ────────────────────────────────────────────────────

    def sub(self, offset: int, length: int | None = None) -> TextView:
        """Sub-view starting *offset* characters into this view."""
        if length is None:
            length = self._length - offset
        if offset < 0 or length < 0 or offset + length > self._length:
            raise IndexError(
                f"Sub-view ({offset}, {length}) is out of range for a view "
                f"of length {self._length}"
            )
        return TextView(self._source, self._offset + offset, length)

    def _scalar_width(self, index: int) -> int:
        """Number of code units taken by the scalar starting at *index*."""
        src = self._source
        if (
            index + 1 < self.end
            and _is_high_surrogate(src[index])
            and _is_low_surrogate(src[index + 1])
        ):
            return 2
        return 1

    def _scalar_offset(self, count: int) -> int:
        """Absolute index reached after skipping *count* scalars."""
        index = self._offset
        for _ in range(count):
            if index >= self.end:
                raise IndexError(
                    f"Scalar offset {count} is past the end of the view"
                )
            index += self._scalar_width(index)
        return index

    def utf_sub(self, offset: int, length: int | None = None) -> TextView:
        """Sub-view with *offset* and *length* counted in Unicode scalars.

        A surrogate pair counts as a single scalar; unpaired surrogates
        count as one each.
        """
        if offset < 0 or (length is not None and length < 0):
            raise IndexError(f"Negative scalar range ({offset}, {length})")
        start = self._scalar_offset(offset)
        if length is None:
            return TextView.from_to(self._source, start, self.end)
        index = start
        for _ in range(length):
            if index >= self.end:
                raise IndexError(
                    f"Scalar range ({offset}, {length}) is past the end of the view"
                )
            index += self._scalar_width(index)
        return TextView.from_to(self._source, start, index)

    @property
    def utf_length(self) -> int:
        return sum(1 for _ in self.scalars())

    def scalars(self) -> Iterator[TextView]:
        """Yield one view per Unicode scalar value."""
        index = self._offset
        while index < self.end:
            width = self._scalar_width(index)
            yield TextView(self._source, index, width)
            index += width

    # ── Search and comparison ──────────────────────────────────────

    def startswith(self, prefix: str | TextView) -> bool:
        prefix = str(prefix)
        if len(prefix) > self._length:
            return False
        return self._source.startswith(prefix, self._offset, self.end)

    def index_of(self, sub: str | TextView, start: int = 0) -> int:
        """Position of *sub* relative to the view, or -1 when absent."""
        found = self._source.find(str(sub), self._offset + start, self.end)
        return -1 if found < 0 else found - self._offset

    def compare_to(self, other: str | TextView) -> int:
        """Ordinal comparison: negative, zero or positive."""
        a, b = str(self), str(other)
        return (a > b) - (a < b)

    def __lt__(self, other: str | TextView) -> bool:
        return self.compare_to(other) < 0

    def __le__(self, other: str | TextView) -> bool:
        return self.compare_to(other) <= 0

    def __gt__(self, other: str | TextView) -> bool:
        return self.compare_to(other) > 0

    def __ge__(self, other: str | TextView) -> bool:
        return self.compare_to(other) >= 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TextView):
            if other._length != self._length:
                return False
            return self._source.startswith(str(other), self._offset, self.end)
        if isinstance(other, str):
            return len(other) == self._length and self._source.startswith(
                other, self._offset, self.end
            )
        return NotImplemented

    def __hash__(self) -> int:
        # Matches hash(str(view)) so views can look up str-keyed dicts.
        if self._hash is None:
            self._hash = hash(str(self))
        return self._hash

    # ── Materialization ────────────────────────────────────────────

    def __getitem__(self, index: int) -> str:
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError(f"Index {index} out of range for a view of length {self._length}")
        return self._source[self._offset + index]

    def __iter__(self) -> Iterator[str]:
        src = self._source
        for i in range(self._offset, self.end):
            yield src[i]

    def __str__(self) -> str:
        if self.is_applied:
            return self._source
        return self._source[self._offset:self.end]

    def __repr__(self) -> str:
        return f"TextView({str(self)!r}, offset={self._offset}, length={self._length})"

    def apply(self) -> TextView:
        """Return a view over an independent copy of the covered text."""
        if self.is_applied:
            return self
        return TextView(str(self))
