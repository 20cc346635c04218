"""Pre-tokenizers: split text into chunks that BPE merges never cross.

Regex splitting works on *spans*.  Every regex match becomes a content
span and every gap between matches becomes a synthesized delimiter
span, so together the spans cover the input exactly once.  A
:class:`SplitDelimiterBehavior` then decides what happens to delimiters.
"""

from __future__ import annotations

import enum
import logging
import unicodedata
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import NamedTuple

import regex

from .byte_level import encode_text
from .constants import GPT2_SPLIT_PATTERN, WHITESPACE_SPLIT_PATTERN
from .text_view import TextView

logger = logging.getLogger("tokenforge.pre_tokenizers")


class SplitDelimiterBehavior(str, enum.Enum):
    """Fate of the text between regex matches."""

    REMOVED = "removed"
    ISOLATED = "isolated"
    MERGED_WITH_PREVIOUS = "merged_with_previous"
    MERGED_WITH_NEXT = "merged_with_next"
    CONTIGUOUS = "contiguous"

    @classmethod
    def parse(cls, name: str) -> SplitDelimiterBehavior:
        """Accept ``"Isolated"``, ``"isolated"`` or ``"MergedWithPrevious"``."""
        normalized = regex.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown split delimiter behavior {name!r}") from None


class Span(NamedTuple):
    offset: int
    length: int
    is_content: bool

    @property
    def end(self) -> int:
        return self.offset + self.length


# ── Span logic ─────────────────────────────────────────────────────


def find_spans(pattern: regex.Pattern, view: TextView, invert: bool = False) -> list[Span]:
    """Content spans for every non-empty match, delimiter spans for gaps.

    With *invert* the roles swap: matches are delimiters and the gaps
    between them are content. Offsets are relative to *view*.
    """
    spans: list[Span] = []
    cursor = 0
    for match in pattern.finditer(view.source, view.offset, view.end):
        start, end = match.start() - view.offset, match.end() - view.offset
        if start == end:
            continue
        if start > cursor:
            spans.append(Span(cursor, start - cursor, invert))
        spans.append(Span(start, end - start, not invert))
        cursor = end
    if cursor < len(view):
        spans.append(Span(cursor, len(view) - cursor, invert))
    return spans


def apply_behavior(
    view: TextView,
    spans: Sequence[Span],
    behavior: SplitDelimiterBehavior,
) -> list[TextView]:
    """Turn covering spans into chunks according to *behavior*."""
    chunks: list[TextView] = []

    if behavior is SplitDelimiterBehavior.REMOVED:
        chunks = [view.sub(s.offset, s.length) for s in spans if s.is_content]

    elif behavior is SplitDelimiterBehavior.ISOLATED:
        chunks = [view.sub(s.offset, s.length) for s in spans]

    elif behavior is SplitDelimiterBehavior.MERGED_WITH_PREVIOUS:
        # A delimiter joins the content span right before it. Any other
        # delimiter (leading, or following another delimiter) stands alone.
        content: Span | None = None
        for span in spans:
            if span.is_content:
                if content is not None:
                    chunks.append(view.sub(content.offset, content.length))
                content = span
            elif content is not None:
                chunks.append(view.sub(content.offset, span.end - content.offset))
                content = None
            else:
                chunks.append(view.sub(span.offset, span.length))
        if content is not None:
            chunks.append(view.sub(content.offset, content.length))

    elif behavior is SplitDelimiterBehavior.MERGED_WITH_NEXT:
        # Only the delimiter right before a content span is prepended to it.
        pending: Span | None = None
        for span in spans:
            if span.is_content:
                start = span.offset if pending is None else pending.offset
                chunks.append(view.sub(start, span.end - start))
                pending = None
            else:
                if pending is not None:
                    chunks.append(view.sub(pending.offset, pending.length))
                pending = span
        if pending is not None:
            chunks.append(view.sub(pending.offset, pending.length))

    elif behavior is SplitDelimiterBehavior.CONTIGUOUS:
        # Runs of delimiters coalesce, then stand alone like content.
        run: Span | None = None
        for span in spans:
            if span.is_content:
                if run is not None:
                    chunks.append(view.sub(run.offset, run.length))
                    run = None
                chunks.append(view.sub(span.offset, span.length))
            elif run is None:
                run = span
            else:
                run = Span(run.offset, span.end - run.offset, False)
        if run is not None:
            chunks.append(view.sub(run.offset, run.length))

    else:  # pragma: no cover
        raise ValueError(f"Unsupported behavior {behavior!r}")

    return chunks


# ── Pre-tokenizers ─────────────────────────────────────────────────


class PreTokenizer(ABC):
    @abstractmethod
    def pre_tokenize(self, view: TextView) -> list[TextView]:
        """Split *view* into chunks."""

    def pre_tokenize_str(self, text: str) -> list[str]:
        return [str(chunk) for chunk in self.pre_tokenize(TextView(text))]


class DefaultPreTokenizer(PreTokenizer):
    """Pass-through: the whole input is one chunk."""

    def pre_tokenize(self, view: TextView) -> list[TextView]:
        return [view] if len(view) else []


class RegexSplitPreTokenizer(PreTokenizer):
    """Split on a regular expression (``regex`` module syntax).

    Matches are content by default; ``invert=True`` treats them as the
    delimiters instead.
    """

    def __init__(
        self,
        pattern: str | regex.Pattern,
        behavior: SplitDelimiterBehavior = SplitDelimiterBehavior.ISOLATED,
        invert: bool = False,
    ) -> None:
        self.pattern = regex.compile(pattern) if isinstance(pattern, str) else pattern
        self.behavior = SplitDelimiterBehavior(behavior)
        self.invert = invert

    def pre_tokenize(self, view: TextView) -> list[TextView]:
        spans = find_spans(self.pattern, view, self.invert)
        return apply_behavior(view, spans, self.behavior)


class WhitespacePreTokenizer(RegexSplitPreTokenizer):
    """Word and punctuation runs; whitespace is dropped."""

    def __init__(self) -> None:
        super().__init__(WHITESPACE_SPLIT_PATTERN, SplitDelimiterBehavior.REMOVED)


class BertPreTokenizer(PreTokenizer):
    """Split on whitespace and isolate every punctuation character."""

    def pre_tokenize(self, view: TextView) -> list[TextView]:
        chunks: list[TextView] = []
        start: int | None = None
        for i, ch in enumerate(view):
            if ch.isspace():
                if start is not None:
                    chunks.append(view.sub(start, i - start))
                    start = None
            elif _is_punctuation(ch):
                if start is not None:
                    chunks.append(view.sub(start, i - start))
                    start = None
                chunks.append(view.sub(i, 1))
            elif start is None:
                start = i
        if start is not None:
            chunks.append(view.sub(start, len(view) - start))
        return chunks


def _is_punctuation(ch: str) -> bool:
    cp = ord(ch)
    # ASCII symbols count as punctuation even where Unicode disagrees ("$", "^", "`").
    if 33 <= cp <= 47 or 58 <= cp <= 64 or 91 <= cp <= 96 or 123 <= cp <= 126:
        return True
    return unicodedata.category(ch).startswith("P")


class ByteLevelPreTokenizer(PreTokenizer):
    """Optional prefix space, optional GPT-2 split, then byte-level mapping.

    Output chunks are views over new strings made of byte-level
    characters (see :mod:`tokenforge.byte_level`).
    """

    def __init__(self, add_prefix_space: bool = True, use_regex: bool = True) -> None:
        self.add_prefix_space = add_prefix_space
        self.use_regex = use_regex
        self._splitter: PreTokenizer = (
            RegexSplitPreTokenizer(GPT2_SPLIT_PATTERN, SplitDelimiterBehavior.ISOLATED)
            if use_regex
            else DefaultPreTokenizer()
        )

    def pre_tokenize(self, view: TextView) -> list[TextView]:
        if self.add_prefix_space and len(view) and not view.startswith(" "):
            view = TextView(" " + str(view))
        return [TextView(encode_text(str(chunk))) for chunk in self._splitter.pre_tokenize(view)]


class SequencePreTokenizer(PreTokenizer):
    """Runs pre-tokenizers in order; each splits every chunk of the last."""

    def __init__(self, *pre_tokenizers: PreTokenizer) -> None:
        if not pre_tokenizers:
            raise ValueError("SequencePreTokenizer needs at least one pre-tokenizer")
        self.pre_tokenizers = list(pre_tokenizers)

    def pre_tokenize(self, view: TextView) -> list[TextView]:
        chunks = [view]
        for stage in self.pre_tokenizers:
            next_chunks: list[TextView] = []
            for chunk in chunks:
                next_chunks.extend(stage.pre_tokenize(chunk))
            chunks = next_chunks
        return chunks
