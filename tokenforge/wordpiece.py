"""WordPiece model: greedy longest-prefix lookup against the vocabulary.

A chunk is cut into the longest vocabulary entry that starts it, then
the longest entry (looked up with ``continuing_subword_prefix``) that
starts the rest, and so on.  When any remainder has no match, or the
chunk is longer than ``max_input_chars_per_word``, the whole chunk
becomes the unknown token.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from functools import lru_cache

from .constants import (
    DEFAULT_CACHE_SIZE,
    WORDPIECE_MAX_INPUT_CHARS_PER_WORD,
    WORDPIECE_SUBWORD_PREFIX,
)
from .text_view import TextView
from .vocabulary import TokenDefinition, Vocabulary

logger = logging.getLogger("tokenforge.wordpiece")


class WordPieceModel:
    """Vocabulary + unknown token + subword prefix.

    Special tokens never match a piece; they only enter the output
    through the added-token splitter.

    Raises
    ------
    KeyError
        If ``unk_token`` is not in the vocabulary.
    ValueError
        If ``max_input_chars_per_word`` is not positive.
    """

    def __init__(
        self,
        vocabulary: Vocabulary,
        unk_token: str,
        continuing_subword_prefix: str = WORDPIECE_SUBWORD_PREFIX,
        max_input_chars_per_word: int = WORDPIECE_MAX_INPUT_CHARS_PER_WORD,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        if max_input_chars_per_word <= 0:
            raise ValueError(
                f"max_input_chars_per_word must be > 0, got {max_input_chars_per_word}"
            )
        unk_definition = vocabulary.get_token(unk_token)
        if unk_definition is None:
            raise KeyError(f"Unknown token {unk_token!r} is not in the vocabulary")

        self.vocabulary = vocabulary
        self.unknown = unk_definition
        self.continuing_subword_prefix = continuing_subword_prefix
        self.max_input_chars_per_word = max_input_chars_per_word
        if cache_size > 0:
            self._tokenize_key = lru_cache(maxsize=cache_size)(self._tokenize_key)

        logger.debug(
            "WordPiece model: %d tokens, unk=%r, prefix=%r",
            len(vocabulary), unk_token, continuing_subword_prefix,
        )

    @property
    def unk_token(self) -> TokenDefinition:
        return self.unknown

    def _lookup(self, piece: str, continuing: bool) -> TokenDefinition | None:
        prefix = self.continuing_subword_prefix if continuing else ""
        definition = self.vocabulary.get_token(piece, prefix=prefix)
        if definition is None or definition.is_special:
            return None
        return definition

    def _tokenize_key(self, chunk: str) -> tuple[int, ...]:
        if len(chunk) > self.max_input_chars_per_word:
            return (self.unknown.id,)

        ids: list[int] = []
        start = 0
        while start < len(chunk):
            end = len(chunk)
            while end > start:
                definition = self._lookup(chunk[start:end], start > 0)
                if definition is not None:
                    break
                end -= 1
            else:
                return (self.unknown.id,)
            ids.append(definition.id)
            start = end
        return tuple(ids)

    def tokenize_chunk(self, chunk: str | TextView) -> tuple[int, ...]:
        """Ids for a single pre-tokenized chunk."""
        return self._tokenize_key(str(chunk))

    def tokenize(self, chunks: Iterable[str | TextView]) -> list[int]:
        ids: list[int] = []
        for chunk in chunks:
            if len(chunk):
                ids.extend(self.tokenize_chunk(chunk))
        return ids

    def detokenize(self, ids: Iterable[int], skip_special_tokens: bool = False) -> list[str]:
        """Token values for *ids*; unknown ids are skipped."""
        values: list[str] = []
        for token_id in ids:
            definition = self.vocabulary.get_token_by_id(token_id)
            if definition is None:
                continue
            if skip_special_tokens and definition.is_special:
                continue
            values.append(definition.value)
        return values

    def token_to_id(self, token: str) -> int | None:
        definition = self.vocabulary.get_token(token)
        return None if definition is None else definition.id

    def id_to_token(self, token_id: int) -> str | None:
        definition = self.vocabulary.get_token_by_id(token_id)
        return None if definition is None else definition.key
