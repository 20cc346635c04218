"""User-facing Tokenizer class.

Wraps a :class:`~tokenforge.pipeline.TokenizationPipeline` behind the
familiar HF-style surface (``__len__``, ``__call__``,
``convert_tokens_to_ids``, ``convert_ids_to_tokens``, ``get_vocab``) so
that training loops and ``datasets`` pipelines can use it without
``transformers`` as a dependency.

Usage::

    tok = Tokenizer.from_file("tokenizer_output/tokenizer.json")
    tok.enable_truncation(max_length=512)
    tok.enable_padding(pad_token="<|pad|>")
    batch = tok(["first document", "second document"])
"""

from __future__ import annotations

from pathlib import Path
from typing import overload

from .encoding import Encoding, stack_encodings
from .loader import load_pipeline, pipeline_from_dict
from .padding import (
    BatchLongestSizeProvider,
    FixedSizeProvider,
    LeftPadding,
    MultipleOfSizeProvider,
    PaddingSizeProvider,
    RightPadding,
)
from .pipeline import EncodeInput, TokenizationPipeline
from .truncation import (
    LongestFirstTruncator,
    OnlyFirstTruncator,
    OnlySecondTruncator,
    Truncator,
)

TRUNCATION_STRATEGIES: dict[str, type[Truncator]] = {
    "longest_first": LongestFirstTruncator,
    "only_first": OnlyFirstTruncator,
    "only_second": OnlySecondTruncator,
}


class Tokenizer:
    """Ready-to-use byte-level BPE tokenizer."""

    def __init__(self, pipeline: TokenizationPipeline) -> None:
        self._pipeline = pipeline

    @classmethod
    def from_file(cls, path: str | Path) -> Tokenizer:
        return cls(load_pipeline(path))

    @classmethod
    def from_dict(cls, data: dict) -> Tokenizer:
        return cls(pipeline_from_dict(data))

    # ── Vocabulary info ────────────────────────────────────────────

    @property
    def vocab_size(self) -> int:
        """Total vocabulary size (model + added tokens)."""
        return len(self._pipeline.vocabulary)

    @property
    def pipeline(self) -> TokenizationPipeline:
        """The underlying pipeline."""
        return self._pipeline

    def token_to_id(self, token: str) -> int | None:
        return self._pipeline.model.token_to_id(token)

    def id_to_token(self, token_id: int) -> str | None:
        return self._pipeline.model.id_to_token(token_id)

    # ── Truncation / padding ───────────────────────────────────────

    def enable_truncation(
        self,
        max_length: int,
        *,
        stride: int = 0,
        strategy: str = "longest_first",
        direction: str = "right",
    ) -> None:
        if strategy not in TRUNCATION_STRATEGIES:
            raise ValueError(
                f"Unknown truncation strategy {strategy!r}; "
                f"expected one of {sorted(TRUNCATION_STRATEGIES)}"
            )
        truncator = TRUNCATION_STRATEGIES[strategy](max_length, stride=stride, direction=direction)
        self._pipeline = self._pipeline.replace(truncator=truncator)

    def no_truncation(self) -> None:
        self._pipeline = self._pipeline.replace(truncator=None)

    def enable_padding(
        self,
        *,
        pad_token: str | None = None,
        pad_id: int | None = None,
        pad_type_id: int = 0,
        length: int | None = None,
        pad_to_multiple_of: int | None = None,
        direction: str = "right",
    ) -> None:
        """Pad to the batch's longest sequence, or to *length* when given.

        Raises
        ------
        ValueError
            If neither *pad_token* nor *pad_id* identifies a known token.
        """
        if pad_id is None:
            if pad_token is None:
                raise ValueError("enable_padding needs pad_token or pad_id")
            pad_id = self.token_to_id(pad_token)
            if pad_id is None:
                raise ValueError(f"Padding token {pad_token!r} is not in the vocabulary")
        elif pad_token is None:
            pad_token = self.id_to_token(pad_id)

        size: PaddingSizeProvider = (
            FixedSizeProvider(length) if length is not None else BatchLongestSizeProvider()
        )
        if pad_to_multiple_of:
            size = MultipleOfSizeProvider(size, pad_to_multiple_of)
        if direction not in ("right", "left"):
            raise ValueError(f"direction must be 'right' or 'left', got {direction!r}")
        padding_cls = RightPadding if direction == "right" else LeftPadding
        padding = padding_cls(size, pad_id, pad_type_id=pad_type_id, pad_token=pad_token)
        self._pipeline = self._pipeline.replace(padding=padding)

    def no_padding(self) -> None:
        self._pipeline = self._pipeline.replace(padding=None)

    # ── Encode / decode ────────────────────────────────────────────

    def encode(
        self,
        text: str,
        pair: str | None = None,
        *,
        add_special_tokens: bool = True,
    ) -> Encoding:
        """Encode *text* (and optionally *pair*) into an :class:`Encoding`."""
        return self._pipeline.encode(text, pair, add_special_tokens=add_special_tokens)

    def decode(self, ids: list[int], *, skip_special_tokens: bool = False) -> str:
        """Decode token *ids* back to text."""
        return self._pipeline.decode(ids, skip_special_tokens=skip_special_tokens)

    def encode_batch(
        self, inputs: list[EncodeInput], *, add_special_tokens: bool = True
    ) -> list[Encoding]:
        """Encode a batch of texts or ``(text, pair)`` tuples."""
        return self._pipeline.encode_batch(inputs, add_special_tokens=add_special_tokens)

    def decode_batch(
        self, id_lists: list[list[int]], *, skip_special_tokens: bool = False
    ) -> list[str]:
        """Decode a batch of token ID lists back to texts."""
        return self._pipeline.decode_batch(id_lists, skip_special_tokens=skip_special_tokens)

    # ── HF-compatible duck-typing ───────────────────────────────────

    def __len__(self) -> int:
        """Return vocab size (expected by HF training loops)."""
        return self.vocab_size

    @overload
    def __call__(
        self, text: str, *, add_special_tokens: bool = ..., return_tensors: str | None = ...
    ) -> dict[str, list[int]]: ...
    @overload
    def __call__(
        self, text: list[str], *, add_special_tokens: bool = ..., return_tensors: str | None = ...
    ) -> dict[str, list[list[int]]]: ...

    def __call__(
        self,
        text: str | list[str],
        *,
        add_special_tokens: bool = True,
        return_tensors: str | None = None,
    ):
        """Encode text(s) into ``input_ids`` and ``attention_mask``.

        Values are flat lists for a single string and lists of lists
        for a batch.  ``return_tensors="np"`` returns stacked numpy
        arrays instead (the batch must be padded to a common length).
        """
        if return_tensors not in (None, "np"):
            raise ValueError(f"Unsupported return_tensors {return_tensors!r}; use None or 'np'")
        if isinstance(text, str):
            encoding = self.encode(text, add_special_tokens=add_special_tokens)
            if return_tensors == "np":
                return stack_encodings([encoding])
            return {
                "input_ids": list(encoding.ids),
                "attention_mask": list(encoding.attention_mask),
            }
        encodings = self.encode_batch(text, add_special_tokens=add_special_tokens)
        if return_tensors == "np":
            return stack_encodings(encodings)
        return {
            "input_ids": [list(e.ids) for e in encodings],
            "attention_mask": [list(e.attention_mask) for e in encodings],
        }

    def get_vocab(self) -> dict[str, int]:
        """Return the full token-to-ID mapping."""
        return self._pipeline.vocabulary.get_vocab()

    @overload
    def convert_tokens_to_ids(self, tokens: str) -> int | None: ...
    @overload
    def convert_tokens_to_ids(self, tokens: list[str]) -> list[int | None]: ...

    def convert_tokens_to_ids(
        self, tokens: str | list[str]
    ) -> int | None | list[int | None]:
        """Convert token string(s) to their vocabulary IDs."""
        if isinstance(tokens, str):
            return self.token_to_id(tokens)
        return [self.token_to_id(t) for t in tokens]

    @overload
    def convert_ids_to_tokens(self, ids: int) -> str | None: ...
    @overload
    def convert_ids_to_tokens(self, ids: list[int]) -> list[str | None]: ...

    def convert_ids_to_tokens(
        self, ids: int | list[int]
    ) -> str | None | list[str | None]:
        """Convert token ID(s) to their string representations."""
        if isinstance(ids, int):
            return self.id_to_token(ids)
        return [self.id_to_token(i) for i in ids]
