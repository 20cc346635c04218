"""The immutable result of encoding one input."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Encoding:
    """Ids, attention mask and type ids, plus an optional overflow chain.

    ``overflow`` links to the encoding of the next truncation window, so
    a long input yields a singly linked chain of encodings.
    """

    ids: tuple[int, ...]
    attention_mask: tuple[int, ...]
    type_ids: tuple[int, ...]
    overflow: Encoding | None = None

    def __post_init__(self) -> None:
        if not len(self.ids) == len(self.attention_mask) == len(self.type_ids):
            raise ValueError(
                f"ids ({len(self.ids)}), attention_mask ({len(self.attention_mask)}) "
                f"and type_ids ({len(self.type_ids)}) must have the same length"
            )

    @classmethod
    def chain(
        cls,
        parts: Sequence[tuple[Sequence[int], Sequence[int], Sequence[int]]],
    ) -> Encoding:
        """Build a chain from ``(ids, attention_mask, type_ids)`` parts."""
        if not parts:
            raise ValueError("Cannot build an encoding chain from zero parts")
        encoding = None
        for ids, mask, type_ids in reversed(parts):
            encoding = cls(tuple(ids), tuple(mask), tuple(type_ids), encoding)
        return encoding

    def __len__(self) -> int:
        return len(self.ids)

    @property
    def overflowing(self) -> list[Encoding]:
        """Every encoding after this one in the chain."""
        out = []
        node = self.overflow
        while node is not None:
            out.append(node)
            node = node.overflow
        return out

    def to_numpy(self) -> dict[str, np.ndarray]:
        return {
            "input_ids": np.asarray(self.ids, dtype=np.int64),
            "attention_mask": np.asarray(self.attention_mask, dtype=np.int64),
            "token_type_ids": np.asarray(self.type_ids, dtype=np.int64),
        }


def stack_encodings(encodings: Sequence[Encoding]) -> dict[str, np.ndarray]:
    """Stack equal-length encodings into ``(batch, seq_len)`` arrays.

    Raises
    ------
    ValueError
        If the encodings differ in length (enable padding first).
    """
    lengths = {len(e) for e in encodings}
    if len(lengths) > 1:
        raise ValueError(
            f"Cannot stack encodings of different lengths {sorted(lengths)}; "
            f"enable padding first"
        )
    width = lengths.pop() if lengths else 0
    shape = (len(encodings), width)
    return {
        "input_ids": np.array([e.ids for e in encodings], dtype=np.int64).reshape(shape),
        "attention_mask": np.array(
            [e.attention_mask for e in encodings], dtype=np.int64
        ).reshape(shape),
        "token_type_ids": np.array([e.type_ids for e in encodings], dtype=np.int64).reshape(shape),
    }
