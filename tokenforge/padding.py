"""Padding: bring a batch of sequences to a common length."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import NamedTuple


class PaddedSequence(NamedTuple):
    ids: list[int]
    attention_mask: list[int]
    type_ids: list[int]


# ── Size providers ─────────────────────────────────────────────────


class PaddingSizeProvider(ABC):
    @abstractmethod
    def padding_size(self, sizes: Sequence[int]) -> int:
        """Target length for a batch whose sequence lengths are *sizes*."""


class BatchLongestSizeProvider(PaddingSizeProvider):
    def padding_size(self, sizes: Sequence[int]) -> int:
        return max(sizes, default=0)


class FixedSizeProvider(PaddingSizeProvider):
    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ValueError(f"Fixed padding size must be > 0, got {size}")
        self.size = size

    def padding_size(self, sizes: Sequence[int]) -> int:
        return self.size


class MultipleOfSizeProvider(PaddingSizeProvider):
    """Rounds another provider's size up to a multiple of *multiple*."""

    def __init__(self, inner: PaddingSizeProvider, multiple: int) -> None:
        if multiple <= 0:
            raise ValueError(f"pad_to_multiple_of must be > 0, got {multiple}")
        self.inner = inner
        self.multiple = multiple

    def padding_size(self, sizes: Sequence[int]) -> int:
        size = self.inner.padding_size(sizes)
        return -(-size // self.multiple) * self.multiple


# ── Padding ────────────────────────────────────────────────────────


class PaddingDirection(str, enum.Enum):
    RIGHT = "right"
    LEFT = "left"


class Padding(ABC):
    @abstractmethod
    def pad(
        self,
        sequences: Sequence[Sequence[int]],
        type_ids: Sequence[Sequence[int]] | None = None,
    ) -> list[PaddedSequence]:
        """Pad every sequence of the batch.

        *type_ids* default to zeros.  Sequences already at or above the
        target length pass through unchanged with an all-ones mask.
        """


def _type_ids(sequences, type_ids) -> list[list[int]]:
    if type_ids is None:
        return [[0] * len(s) for s in sequences]
    if len(type_ids) != len(sequences):
        raise ValueError(
            f"Got {len(type_ids)} type id lists for {len(sequences)} sequences"
        )
    return [list(t) for t in type_ids]


class DefaultPadding(Padding):
    """No padding; every attention mask is all ones."""

    def pad(self, sequences, type_ids=None):
        return [
            PaddedSequence(list(s), [1] * len(s), t)
            for s, t in zip(sequences, _type_ids(sequences, type_ids))
        ]


class _DirectionalPadding(Padding):
    direction: PaddingDirection

    def __init__(
        self,
        size_provider: PaddingSizeProvider,
        pad_id: int,
        pad_type_id: int = 0,
        pad_token: str | None = None,
    ) -> None:
        self.size_provider = size_provider
        self.pad_id = pad_id
        self.pad_type_id = pad_type_id
        self.pad_token = pad_token

    def pad(self, sequences, type_ids=None):
        target = self.size_provider.padding_size([len(s) for s in sequences])
        padded = []
        for seq, types in zip(sequences, _type_ids(sequences, type_ids)):
            missing = target - len(seq)
            if missing <= 0:
                padded.append(PaddedSequence(list(seq), [1] * len(seq), types))
                continue
            fill = [self.pad_id] * missing
            zeros = [0] * missing
            fill_types = [self.pad_type_id] * missing
            if self.direction is PaddingDirection.RIGHT:
                padded.append(PaddedSequence(
                    list(seq) + fill, [1] * len(seq) + zeros, types + fill_types
                ))
            else:
                padded.append(PaddedSequence(
                    fill + list(seq), zeros + [1] * len(seq), fill_types + types
                ))
        return padded


class RightPadding(_DirectionalPadding):
    direction = PaddingDirection.RIGHT


class LeftPadding(_DirectionalPadding):
    direction = PaddingDirection.LEFT
