"""Added tokens: literal strings carved out of the input before BPE.

Special tokens such as ``<|endoftext|>`` must map to a single id no
matter how the surrounding text would otherwise be split.  The
:class:`AddedVocabulary` finds them first; the remaining segments flow
through normalization, pre-tokenization and the model as usual.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import regex

from .normalizers import NoopNormalizer, Normalizer
from .text_view import TextView


@dataclass(frozen=True)
class AddedToken:
    content: str
    id: int
    single_word: bool = False
    lstrip: bool = False
    rstrip: bool = False
    normalized: bool = False
    special: bool = True


Segment = tuple[TextView, AddedToken | None]


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


class _Matcher:
    """Leftmost, then longest, match over a fixed set of tokens."""

    def __init__(self, tokens: Iterable[AddedToken]) -> None:
        self.tokens = {t.content: t for t in tokens if t.content}
        contents = sorted(self.tokens, key=len, reverse=True)
        self.pattern = (
            regex.compile("|".join(regex.escape(c) for c in contents)) if contents else None
        )

    def split(self, view: TextView) -> list[Segment]:
        if self.pattern is None or not len(view):
            return [(view, None)] if len(view) else []

        source = view.source
        segments: list[Segment] = []
        cursor = pos = view.offset
        while pos < view.end:
            match = self.pattern.search(source, pos, view.end)
            if match is None:
                break
            token = self.tokens[match.group()]
            start, end = match.start(), match.end()
            if token.single_word and not (
                (start == view.offset or not _is_word_char(source[start - 1]))
                and (end == view.end or not _is_word_char(source[end]))
            ):
                pos = start + 1
                continue
            if token.lstrip:
                while start > cursor and source[start - 1].isspace():
                    start -= 1
            if token.rstrip:
                while end < view.end and source[end].isspace():
                    end += 1
            if start > cursor:
                segments.append((TextView.from_to(source, cursor, start), None))
            segments.append((TextView.from_to(source, start, end), token))
            cursor = pos = end
        if cursor < view.end:
            segments.append((TextView.from_to(source, cursor, view.end), None))
        return segments


class AddedVocabulary:
    """Tokens matched verbatim in the input.

    Tokens with ``normalized=False`` are matched against the raw text;
    tokens with ``normalized=True`` are matched against the normalized
    remainder.
    """

    def __init__(self, tokens: Iterable[AddedToken] = ()) -> None:
        self.tokens = list(tokens)
        self._raw = _Matcher(t for t in self.tokens if not t.normalized)
        self._normalized = _Matcher(t for t in self.tokens if t.normalized)

    def __len__(self) -> int:
        return len(self.tokens)

    def __bool__(self) -> bool:
        return bool(self.tokens)

    def split(self, text: str | TextView, normalizer: Normalizer | None = None) -> list[Segment]:
        """Segments of *text*; non-token segments come back normalized."""
        normalizer = normalizer or NoopNormalizer()
        segments: list[Segment] = []
        for view, token in self._raw.split(TextView.of(text)):
            if token is not None:
                segments.append((view, token))
                continue
            segments.extend(self._normalized.split(normalizer.normalize(view)))
        return segments
