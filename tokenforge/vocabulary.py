"""Token definitions, the immutable vocabulary and word decoration.

A vocabulary maps both ways between integer ids and string keys.  It is
assembled with a :class:`VocabularyBuilder`, which rejects duplicates,
and is never mutated afterwards, so one instance can be shared freely.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from functools import lru_cache
from typing import NamedTuple

from .text_view import TextView

logger = logging.getLogger("tokenforge.vocabulary")


@dataclass(frozen=True)
class TokenDefinition:
    """A vocabulary entry.

    ``key`` is the string the model looks up (byte-level characters,
    decorated sub-words, ``<0x41>`` ...).  ``value`` is what the token
    decodes to.  Special tokens are never produced by ordinary
    character lookup.
    """

    id: int
    key: str
    value: str
    is_special: bool = False

    def __str__(self) -> str:
        marker = "*" if self.is_special else ""
        return f"{marker}{self.key}:{self.id}"


class Vocabulary:
    """Immutable bidirectional id <-> key index."""

    def __init__(self, definitions: Iterable[TokenDefinition]) -> None:
        self._by_id: dict[int, TokenDefinition] = {}
        self._by_key: dict[str, TokenDefinition] = {}
        for definition in definitions:
            self._by_id[definition.id] = definition
            self._by_key[definition.key] = definition

    def get_token(self, key: str | TextView, prefix: str = "") -> TokenDefinition | None:
        """Look up *key*, optionally decorated with *prefix*."""
        if prefix:
            return self._by_key.get(prefix + str(key))
        return self._by_key.get(key)  # type: ignore[call-overload]

    def get_token_by_id(self, token_id: int) -> TokenDefinition | None:
        return self._by_id.get(token_id)

    def __getitem__(self, key: str) -> TokenDefinition:
        return self._by_key[key]

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[TokenDefinition]:
        for token_id in sorted(self._by_id):
            yield self._by_id[token_id]

    def get_vocab(self) -> dict[str, int]:
        return {key: d.id for key, d in self._by_key.items()}

    def special_tokens(self) -> list[TokenDefinition]:
        return [d for d in self if d.is_special]


class VocabularyBuilder:
    """Collects definitions and produces an immutable :class:`Vocabulary`.

    Raises
    ------
    ValueError
        On a duplicate id or a duplicate key.
    """

    def __init__(self) -> None:
        self._definitions: dict[int, TokenDefinition] = {}
        self._keys: dict[str, int] = {}

    def add(
        self,
        token_id: int,
        key: str,
        value: str | None = None,
        special: bool = False,
    ) -> VocabularyBuilder:
        if token_id in self._definitions:
            raise ValueError(
                f"Duplicate token id {token_id}: {self._definitions[token_id].key!r} "
                f"and {key!r}"
            )
        if key in self._keys:
            raise ValueError(
                f"Duplicate token key {key!r}: ids {self._keys[key]} and {token_id}"
            )
        self._definitions[token_id] = TokenDefinition(
            token_id, key, key if value is None else value, special
        )
        self._keys[key] = token_id
        return self

    def add_all(self, vocab: dict[str, int], special: bool = False) -> VocabularyBuilder:
        for key, token_id in vocab.items():
            self.add(token_id, key, special=special)
        return self

    def __len__(self) -> int:
        return len(self._definitions)

    def build(self) -> Vocabulary:
        vocabulary = Vocabulary(self._definitions.values())
        logger.debug("Built vocabulary with %d tokens", len(vocabulary))
        return vocabulary

    def clear(self) -> None:
        self._definitions.clear()
        self._keys.clear()


class CharForms(NamedTuple):
    """Positional decorations of a single character."""

    single: str  # the whole word is this one character
    first: str
    last: str
    inner: str


class WordDecorator:
    """Applies sub-word prefix / end-of-word suffix decoration.

    For a character ``c`` with prefix ``p`` and suffix ``s``:
    ``first = c``, ``inner = p + c``, ``last = p + c + s`` and
    ``single = c + s``.  Forms are cached per character.
    """

    def __init__(self, sub_word_prefix: str = "", word_suffix: str = "") -> None:
        self.sub_word_prefix = sub_word_prefix
        self.word_suffix = word_suffix
        self.forms = lru_cache(maxsize=4096)(self._forms)

    @property
    def is_plain(self) -> bool:
        return not self.sub_word_prefix and not self.word_suffix

    def _forms(self, char: str) -> CharForms:
        p, s = self.sub_word_prefix, self.word_suffix
        return CharForms(single=char + s, first=char, last=p + char + s, inner=p + char)

    def key(self, char: str, first: bool, last: bool) -> str:
        if self.is_plain:
            return char
        forms = self.forms(char)
        if first:
            return forms.single if last else forms.first
        return forms.last if last else forms.inner

    def merged_key(self, left: str, right: str) -> str:
        """Key of the token produced by merging *left* and *right*."""
        prefix = self.sub_word_prefix
        if prefix and right.startswith(prefix):
            right = right[len(prefix):]
        return left + right
