"""Truncation: fit sequences into a maximum length, keeping overflow.

A truncator returns *windows* per sequence.  The first window is the
part that is kept; any further windows are the overflow, produced by
sliding a window of the same size over the rest of the sequence with
``stride`` tokens of overlap.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import NamedTuple


class Range(NamedTuple):
    offset: int
    length: int

    @classmethod
    def from_to(cls, start: int, stop: int) -> Range:
        return cls(start, stop - start)

    @property
    def stop(self) -> int:
        return self.offset + self.length

    def slice(self, tokens: Sequence[int]) -> list[int]:
        return list(tokens[self.offset:self.stop])


def _validate(length: int, range_max_length: int, stride: int) -> None:
    if length < 0:
        raise ValueError(f"Sequence length must be >= 0, got {length}")
    if range_max_length <= 0:
        raise ValueError(f"Window length must be > 0, got {range_max_length}")
    if stride < 0:
        raise ValueError(f"Stride must be >= 0, got {stride}")
    if stride >= range_max_length:
        raise ValueError(
            f"Stride ({stride}) must be smaller than the window length ({range_max_length})"
        )


class RangeGenerator(ABC):
    @abstractmethod
    def get_ranges(self, length: int, range_max_length: int, stride: int) -> list[Range]:
        """Windows covering ``[0, length)``; the first one is kept.

        Raises
        ------
        ValueError
            If ``range_max_length <= 0``, ``stride < 0`` or
            ``stride >= range_max_length``.
        """


class RightDirectionRangeGenerator(RangeGenerator):
    """Keep the head; overflow windows walk towards the end."""

    def get_ranges(self, length, range_max_length, stride):
        _validate(length, range_max_length, stride)
        if length <= range_max_length:
            return [Range(0, length)]
        step = range_max_length - stride
        ranges = []
        for start in range(0, length, step):
            stop = min(start + range_max_length, length)
            ranges.append(Range.from_to(start, stop))
            if stop == length:
                break
        return ranges


class LeftDirectionRangeGenerator(RangeGenerator):
    """Keep the tail; overflow windows walk towards the start."""

    def get_ranges(self, length, range_max_length, stride):
        _validate(length, range_max_length, stride)
        if length <= range_max_length:
            return [Range(0, length)]
        step = range_max_length - stride
        ranges = []
        for stop in range(length, 0, -step):
            start = max(stop - range_max_length, 0)
            ranges.append(Range.from_to(start, stop))
            if start == 0:
                break
        return ranges


class TruncationDirection(str, enum.Enum):
    RIGHT = "right"
    LEFT = "left"

    def range_generator(self) -> RangeGenerator:
        if self is TruncationDirection.LEFT:
            return LeftDirectionRangeGenerator()
        return RightDirectionRangeGenerator()


Windows = list[list[int]]


class Truncator(ABC):
    @abstractmethod
    def truncate(
        self,
        tokens_a: Sequence[int],
        tokens_b: Sequence[int] | None,
        num_added_tokens: int,
    ) -> tuple[Windows, Windows | None]:
        """Windows for A and (when given) B."""


class DefaultTruncator(Truncator):
    """No truncation."""

    def truncate(self, tokens_a, tokens_b, num_added_tokens):
        return [list(tokens_a)], None if tokens_b is None else [list(tokens_b)]


class _LengthTruncator(Truncator):
    def __init__(
        self,
        max_length: int,
        stride: int = 0,
        direction: TruncationDirection | str = TruncationDirection.RIGHT,
    ) -> None:
        if max_length <= 0:
            raise ValueError(f"max_length must be > 0, got {max_length}")
        if stride < 0:
            raise ValueError(f"stride must be >= 0, got {stride}")
        if stride >= max_length:
            raise ValueError(f"stride ({stride}) must be smaller than max_length ({max_length})")
        self.max_length = max_length
        self.stride = stride
        self.direction = TruncationDirection(direction)
        self.ranges = self.direction.range_generator()

    def _windows(self, tokens: Sequence[int], target: int) -> Windows:
        if target <= self.stride:
            # The stride cannot fit, keep the window without overflow.
            return [self.ranges.get_ranges(len(tokens), target, 0)[0].slice(tokens)]
        return [r.slice(tokens) for r in self.ranges.get_ranges(len(tokens), target, self.stride)]

    def _budget(self, num_added_tokens: int) -> int:
        budget = self.max_length - num_added_tokens
        if budget <= 0:
            raise ValueError(
                f"max_length ({self.max_length}) leaves no room after "
                f"{num_added_tokens} added tokens"
            )
        return budget

    def _truncate_single(self, tokens_a, num_added_tokens):
        budget = self._budget(num_added_tokens)
        if len(tokens_a) <= budget:
            return [list(tokens_a)], None
        return self._windows(tokens_a, budget), None


class LongestFirstTruncator(_LengthTruncator):
    """Trim the longer sequence first until both fit together.

    With a pair, the shorter sequence keeps as much as possible: it is
    only cut (to half the budget) when it alone would not leave the
    longer one at least as many tokens.
    """

    def truncate(self, tokens_a, tokens_b, num_added_tokens):
        if tokens_b is None:
            return self._truncate_single(tokens_a, num_added_tokens)

        budget = self._budget(num_added_tokens)
        len_a, len_b = len(tokens_a), len(tokens_b)
        if len_a + len_b <= budget:
            return [list(tokens_a)], [list(tokens_b)]

        n1 = min(len_a, len_b)
        n2 = max(n1, budget - n1) if n1 <= budget else n1
        if n1 + n2 > budget:
            n1 = budget // 2
            n2 = n1 + budget % 2
        target_a, target_b = (n1, n2) if len_a <= len_b else (n2, n1)
        target_a, target_b = min(target_a, len_a), min(target_b, len_b)

        return self._pair_windows(tokens_a, target_a), self._pair_windows(tokens_b, target_b)

    def _pair_windows(self, tokens: Sequence[int], target: int) -> Windows:
        if len(tokens) <= target:
            return [list(tokens)]
        if target == 0:
            return [[]]
        return self._windows(tokens, target)


class OnlyFirstTruncator(_LengthTruncator):
    """Only sequence A is shortened."""

    def truncate(self, tokens_a, tokens_b, num_added_tokens):
        if tokens_b is None:
            return self._truncate_single(tokens_a, num_added_tokens)
        budget = self._budget(num_added_tokens) - len(tokens_b)
        if len(tokens_a) <= max(budget, 0):
            return [list(tokens_a)], [list(tokens_b)]
        if budget <= 0:
            raise ValueError(
                f"Sequence B ({len(tokens_b)} tokens) leaves no room to truncate sequence A"
            )
        return self._windows(tokens_a, budget), [list(tokens_b)]


class OnlySecondTruncator(_LengthTruncator):
    """Only sequence B is shortened."""

    def truncate(self, tokens_a, tokens_b, num_added_tokens):
        if tokens_b is None:
            return [list(tokens_a)], None
        budget = self._budget(num_added_tokens) - len(tokens_a)
        if len(tokens_b) <= max(budget, 0):
            return [list(tokens_a)], [list(tokens_b)]
        if budget <= 0:
            raise ValueError(
                f"Sequence A ({len(tokens_a)} tokens) leaves no room to truncate sequence B"
            )
        return [list(tokens_a)], self._windows(tokens_b, budget)
