"""Byte-pair-encoding model: character lookup plus rank-ordered merging.

Each pre-tokenized chunk is tokenized independently:

1. :class:`CharTokenizer` maps every Unicode scalar to a vocabulary entry
   (with positional decoration, byte fallback and unknown handling).
2. :class:`BpeMerger` repeatedly applies the lowest-ranked merge rule
   among adjacent symbol pairs, leftmost first on ties, until no rule
   applies.

Chunk results are memoized per model with :func:`functools.lru_cache`.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from functools import lru_cache

from .byte_level import byte_token, to_utf8
from .constants import DEFAULT_CACHE_SIZE
from .pool import ScratchPool, list_pool
from .text_view import TextView
from .vocabulary import TokenDefinition, Vocabulary, WordDecorator

logger = logging.getLogger("tokenforge.bpe")


# ── Merge engine ───────────────────────────────────────────────────


@dataclass(slots=True)
class Symbol:
    """Node of a doubly linked list embedded in a flat array.

    ``previous`` / ``next`` are array indices, -1 meaning none.
    """

    definition: TokenDefinition
    position: int
    previous: int
    next: int
    discarded: bool = False


@dataclass(order=True, slots=True)
class Mergeable:
    """Merge candidate for the symbol at ``position`` and its successor."""

    rank: int
    position: int
    definition: TokenDefinition = field(compare=False)


class MergeRuleTable:
    """Immutable ``(left_id, right_id) -> (rank, merged definition)`` table."""

    def __init__(self, rules: dict[tuple[int, int], tuple[int, TokenDefinition]]) -> None:
        self._rules = rules

    @classmethod
    def build(
        cls,
        vocabulary: Vocabulary,
        merges: Iterable[tuple[str, str]],
        decorator: WordDecorator | None = None,
    ) -> MergeRuleTable:
        """Resolve an ordered merge list against *vocabulary*.

        Earlier rules receive lower ranks and therefore higher priority.

        Raises
        ------
        ValueError
            If either side of a rule, or the merged key, is not an
            ordinary (non-special) vocabulary entry.
        """
        decorator = decorator or WordDecorator()
        rules: dict[tuple[int, int], tuple[int, TokenDefinition]] = {}
        for rank, (left_key, right_key) in enumerate(merges):
            left = vocabulary.get_token(left_key)
            right = vocabulary.get_token(right_key)
            for side, key, definition in (("left", left_key, left), ("right", right_key, right)):
                if definition is None or definition.is_special:
                    raise ValueError(
                        f"Merge rule {rank} ({left_key!r} {right_key!r}): {side} token "
                        f"{key!r} is not in the vocabulary"
                    )
            merged_key = decorator.merged_key(left_key, right_key)
            merged = vocabulary.get_token(merged_key)
            if merged is None:
                raise ValueError(
                    f"Merge rule {rank} ({left_key!r} {right_key!r}): merged token "
                    f"{merged_key!r} is not in the vocabulary"
                )
            # First occurrence wins when a pair is listed twice.
            rules.setdefault((left.id, right.id), (rank, merged))
        logger.debug("Resolved %d merge rules", len(rules))
        return cls(rules)

    def get(self, left_id: int, right_id: int) -> tuple[int, TokenDefinition] | None:
        return self._rules.get((left_id, right_id))

    def __len__(self) -> int:
        return len(self._rules)


class BpeMerger:
    """Applies merge rules to one chunk's initial token sequence."""

    def __init__(self, table: MergeRuleTable) -> None:
        self.table = table
        self._symbols: ScratchPool[list[Symbol]] = list_pool()
        self._queue: ScratchPool[list[Mergeable]] = list_pool()

    def merge(self, definitions: Sequence[TokenDefinition]) -> list[TokenDefinition]:
        if len(definitions) < 2 or not len(self.table):
            return list(definitions)

        with self._symbols.borrow() as symbols, self._queue.borrow() as queue:
            last = len(definitions) - 1
            for i, definition in enumerate(definitions):
                symbols.append(Symbol(definition, i, i - 1, -1 if i == last else i + 1))

            for i in range(last):
                self._push(queue, symbols, i)

            while queue:
                candidate = heapq.heappop(queue)
                a = symbols[candidate.position]
                if a.discarded or a.next == -1:
                    continue
                b = symbols[a.next]
                if b.discarded:
                    continue
                current = self.table.get(a.definition.id, b.definition.id)
                if current is None or current[1].id != candidate.definition.id:
                    continue

                # a absorbs b
                a.definition = candidate.definition
                b.discarded = True
                a.next = b.next
                if b.next != -1:
                    symbols[b.next].previous = a.position

                if a.previous != -1:
                    self._push(queue, symbols, a.previous)
                if a.next != -1:
                    self._push(queue, symbols, a.position)

            return [s.definition for s in symbols if not s.discarded]

    def _push(self, queue: list[Mergeable], symbols: list[Symbol], position: int) -> None:
        a = symbols[position]
        b = symbols[a.next]
        rule = self.table.get(a.definition.id, b.definition.id)
        if rule is not None:
            heapq.heappush(queue, Mergeable(rule[0], position, rule[1]))


# ── Initial symbols ────────────────────────────────────────────────


@dataclass(frozen=True)
class UnknownTokenPolicy:
    """What to emit for characters missing from the vocabulary.

    Byte fallback is tried first (only when every ``<0xXX>`` byte token
    exists), then the unknown token, fused across consecutive unknown
    characters when ``fuse`` is set.  With neither, the character is
    dropped.
    """

    token: TokenDefinition | None = None
    fuse: bool = False
    byte_fallback: bool = False


class CharTokenizer:
    """Maps each Unicode scalar of a chunk to its initial definition."""

    def __init__(
        self,
        vocabulary: Vocabulary,
        decorator: WordDecorator | None = None,
        unknown: UnknownTokenPolicy | None = None,
    ) -> None:
        self.vocabulary = vocabulary
        self.decorator = decorator or WordDecorator()
        self.unknown = unknown or UnknownTokenPolicy()

    def tokenize(
        self,
        chunk: TextView,
        output: list[TokenDefinition] | None = None,
    ) -> list[TokenDefinition]:
        output = [] if output is None else output
        scalars = [str(s) for s in chunk.scalars()]
        last = len(scalars) - 1
        previous_unknown = False

        for i, char in enumerate(scalars):
            key = self.decorator.key(char, first=i == 0, last=i == last)
            definition = self.vocabulary.get_token(key)
            if definition is not None and not definition.is_special:
                output.append(definition)
                previous_unknown = False
                continue

            if self.unknown.byte_fallback:
                fallback = self._byte_fallback(char)
                if fallback is not None:
                    output.extend(fallback)
                    previous_unknown = False
                    continue

            unk = self.unknown.token
            if unk is None:
                logger.debug("Dropping %r: no vocabulary entry and no unknown token", char)
                continue
            if not (self.unknown.fuse and previous_unknown):
                output.append(unk)
            previous_unknown = True

        return output

    def _byte_fallback(self, char: str) -> list[TokenDefinition] | None:
        tokens = []
        for b in to_utf8(char):
            definition = self.vocabulary.get_token(byte_token(b))
            if definition is None:
                return None
            tokens.append(definition)
        return tokens


# ── Model ──────────────────────────────────────────────────────────


class BpeModel:
    """Vocabulary + merge rules + unknown policy.

    Parameters
    ----------
    vocabulary
        Token index; must contain every key the merge list references.
    merges
        Ordered ``(left, right)`` key pairs, or None for a model that
        only does character lookup.
    unk_token
        Key of the token emitted for unknown characters.
    fuse_unk
        Collapse consecutive unknown characters into one unknown token.
    byte_fallback
        Emit ``<0xXX>`` byte tokens for unknown characters when the
        vocabulary has all of them.
    continuing_subword_prefix, end_of_word_suffix
        Decoration applied to non-initial / final characters.
    ignore_merges
        Emit a chunk that is itself a vocabulary key as one token without
        running the merges.
    cache_size
        Number of distinct chunks memoized; 0 disables the cache.

    Raises
    ------
    KeyError
        If ``unk_token`` is not in the vocabulary.
    ValueError
        If the merge list references missing tokens.
    """

    def __init__(
        self,
        vocabulary: Vocabulary,
        merges: Iterable[tuple[str, str]] | None = None,
        unk_token: str | None = None,
        fuse_unk: bool = False,
        byte_fallback: bool = False,
        continuing_subword_prefix: str = "",
        end_of_word_suffix: str = "",
        ignore_merges: bool = False,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        self.vocabulary = vocabulary
        self.ignore_merges = ignore_merges
        self.decorator = WordDecorator(continuing_subword_prefix, end_of_word_suffix)
        self.merge_table = MergeRuleTable.build(vocabulary, merges or (), self.decorator)

        unk_definition = None
        if unk_token is not None:
            unk_definition = vocabulary.get_token(unk_token)
            if unk_definition is None:
                raise KeyError(f"Unknown token {unk_token!r} is not in the vocabulary")
        self.unknown = UnknownTokenPolicy(unk_definition, fuse_unk, byte_fallback)

        self._chars = CharTokenizer(vocabulary, self.decorator, self.unknown)
        self._merger = BpeMerger(self.merge_table)
        self._initial: ScratchPool[list[TokenDefinition]] = list_pool()
        if cache_size > 0:
            self._tokenize_key = lru_cache(maxsize=cache_size)(self._tokenize_key)

        logger.debug(
            "BPE model: %d tokens, %d merges, unk=%r, fuse_unk=%s, byte_fallback=%s",
            len(vocabulary), len(self.merge_table), unk_token, fuse_unk, byte_fallback,
        )

    @property
    def unk_token(self) -> TokenDefinition | None:
        return self.unknown.token

    def _tokenize_key(self, chunk: str) -> tuple[int, ...]:
        if self.ignore_merges:
            whole = self.vocabulary.get_token(chunk)
            if whole is not None and not whole.is_special:
                return (whole.id,)
        with self._initial.borrow() as initial:
            self._chars.tokenize(TextView(chunk), initial)
            return tuple(d.id for d in self._merger.merge(initial))

    def tokenize_chunk(self, chunk: str | TextView) -> tuple[int, ...]:
        """Ids for a single pre-tokenized chunk."""
        return self._tokenize_key(str(chunk))

    def tokenize(self, chunks: Iterable[str | TextView]) -> list[int]:
        """Ids for a sequence of chunks, each merged independently."""
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
