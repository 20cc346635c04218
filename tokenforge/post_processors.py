"""Post-processors: add special tokens and type ids around sequences.

The :class:`TemplatePostProcessor` is driven by a small template
language::

    "<|bos|> $A <|eos|>"             single sequence
    "[CLS] $A [SEP] $B:1 [SEP]:1"    pair, second half with type id 1

``$A`` / ``$B`` name the input sequences, ``$N`` is sequence A with type
id N, and any other whitespace-separated word is a literal special
token with an optional ``:type_id`` suffix.
"""

from __future__ import annotations

import enum
import itertools
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from .vocabulary import TokenDefinition


class SequenceIdentifier(enum.Enum):
    A = "A"
    B = "B"


@dataclass(frozen=True)
class SequencePiece:
    identifier: SequenceIdentifier
    type_id: int = 0

    def __str__(self) -> str:
        return f"${self.identifier.value}:{self.type_id}"


@dataclass(frozen=True)
class SpecialTokenPiece:
    value: str
    type_id: int = 0

    def __str__(self) -> str:
        return f"{self.value}:{self.type_id}"


Piece = SequencePiece | SpecialTokenPiece


def parse_piece(word: str) -> Piece:
    """Parse one whitespace-separated template word.

    Raises
    ------
    ValueError
        If a ``:type_id`` suffix is not an integer or a ``$`` reference
        names neither A, B nor a type id.
    """
    if word.startswith("$"):
        body = word[1:]
        name, _, type_part = body.partition(":")
        if name.isdigit() and not type_part:
            return SequencePiece(SequenceIdentifier.A, int(name))
        if name not in ("A", "B"):
            raise ValueError(f"Invalid sequence reference {word!r}: expected $A, $B or $<type_id>")
        return SequencePiece(SequenceIdentifier(name), _parse_type_id(word, type_part))

    value, sep, type_part = word.rpartition(":")
    if not sep or not type_part.isdigit() or not value:
        return SpecialTokenPiece(word, 0)
    return SpecialTokenPiece(value, int(type_part))


def _parse_type_id(word: str, type_part: str) -> int:
    if not type_part:
        return 0
    if not type_part.isdigit():
        raise ValueError(f"Invalid type id in template word {word!r}")
    return int(type_part)


class Template:
    """An ordered list of pieces parsed from a template string."""

    def __init__(self, template: str | Iterable[Piece]) -> None:
        if isinstance(template, str):
            self.pieces: tuple[Piece, ...] = tuple(parse_piece(w) for w in template.split())
        else:
            self.pieces = tuple(template)

    def sequences(self) -> set[SequenceIdentifier]:
        return {p.identifier for p in self.pieces if isinstance(p, SequencePiece)}

    def special_tokens(self) -> list[SpecialTokenPiece]:
        return [p for p in self.pieces if isinstance(p, SpecialTokenPiece)]

    def __iter__(self):
        return iter(self.pieces)

    def __len__(self) -> int:
        return len(self.pieces)

    def __str__(self) -> str:
        return " ".join(str(p) for p in self.pieces)

    def __repr__(self) -> str:
        return f"Template({str(self)!r})"


class PostProcessor(ABC):
    """Combines sequence A (and optionally B) into final ids and type ids."""

    @abstractmethod
    def num_added_tokens(self, is_pair: bool) -> int:
        """Tokens :meth:`process` adds when special tokens are requested."""

    @abstractmethod
    def process(
        self,
        tokens_a: Sequence[int],
        tokens_b: Sequence[int] | None = None,
        add_special_tokens: bool = True,
    ) -> tuple[list[int], list[int]]:
        """Return ``(ids, type_ids)``."""

    def post_process(
        self,
        windows_a: Sequence[Sequence[int]],
        windows_b: Sequence[Sequence[int]] | None = None,
        add_special_tokens: bool = True,
    ) -> list[tuple[list[int], list[int]]]:
        """Process truncation windows pairwise.

        Window *i* of A is combined with window *i* of B; when one side
        has fewer windows, its missing windows are empty sequences.
        """
        if windows_b is None:
            return [self.process(a, None, add_special_tokens) for a in windows_a]
        return [
            self.process(a, b, add_special_tokens)
            for a, b in itertools.zip_longest(windows_a, windows_b, fillvalue=())
        ]


class DefaultPostProcessor(PostProcessor):
    """Concatenates A and B; type id 0 for A, 1 for B."""

    def num_added_tokens(self, is_pair: bool) -> int:
        return 0

    def process(self, tokens_a, tokens_b=None, add_special_tokens=True):
        ids = list(tokens_a)
        type_ids = [0] * len(ids)
        if tokens_b is not None:
            ids.extend(tokens_b)
            type_ids.extend([1] * len(tokens_b))
        return ids, type_ids


class ByteLevelPostProcessor(DefaultPostProcessor):
    """Byte-level post-processing; ids pass through unchanged.

    ``trim_offsets`` only affects character offsets, which this pipeline
    does not track, and is kept for configuration round-trips.
    """

    def __init__(self, trim_offsets: bool = False) -> None:
        self.trim_offsets = trim_offsets


def _special_token_ids(
    special_tokens: Mapping[str, int] | Iterable[TokenDefinition],
) -> dict[str, int]:
    if isinstance(special_tokens, Mapping):
        return dict(special_tokens)
    return {d.value: d.id for d in special_tokens}


class TemplatePostProcessor(PostProcessor):
    """Post-processor driven by single and pair templates.

    Raises
    ------
    ValueError
        If the single template lacks ``$A`` or references ``$B``, or
        the pair template lacks either.
    KeyError
        If a template literal is not among *special_tokens*.
    """

    def __init__(
        self,
        single: str | Template,
        pair: str | Template | None = None,
        special_tokens: Mapping[str, int] | Iterable[TokenDefinition] = (),
    ) -> None:
        self.single = single if isinstance(single, Template) else Template(single)
        if pair is None:
            pair = Template(list(self.single) + [SequencePiece(SequenceIdentifier.B, 1)])
        self.pair = pair if isinstance(pair, Template) else Template(pair)
        self.special_tokens = _special_token_ids(special_tokens)

        single_seqs = self.single.sequences()
        if SequenceIdentifier.A not in single_seqs:
            raise ValueError(f"Single template {str(self.single)!r} must contain $A")
        if SequenceIdentifier.B in single_seqs:
            raise ValueError(f"Single template {str(self.single)!r} must not contain $B")
        if self.pair.sequences() != {SequenceIdentifier.A, SequenceIdentifier.B}:
            raise ValueError(f"Pair template {str(self.pair)!r} must contain both $A and $B")

        for template in (self.single, self.pair):
            for piece in template.special_tokens():
                if piece.value not in self.special_tokens:
                    raise KeyError(
                        f"Template token {piece.value!r} is not a known special token"
                    )

    def num_added_tokens(self, is_pair: bool) -> int:
        return len((self.pair if is_pair else self.single).special_tokens())

    def process(self, tokens_a, tokens_b=None, add_special_tokens=True):
        template = self.single if tokens_b is None else self.pair
        ids: list[int] = []
        type_ids: list[int] = []
        for piece in template:
            if isinstance(piece, SpecialTokenPiece):
                if add_special_tokens:
                    ids.append(self.special_tokens[piece.value])
                    type_ids.append(piece.type_id)
                continue
            tokens = tokens_a if piece.identifier is SequenceIdentifier.A else tokens_b
            ids.extend(tokens)
            type_ids.extend([piece.type_id] * len(tokens))
        return ids, type_ids


class RobertaPostProcessor(TemplatePostProcessor):
    """``cls A sep`` and ``cls A sep sep B sep``.

    *sep* and *cls* are ``(token, id)`` pairs.
    """

    def __init__(self, sep: tuple[str, int], cls: tuple[str, int]) -> None:
        sep_token, cls_token = sep[0], cls[0]
        super().__init__(
            single=f"{cls_token} $A {sep_token}",
            pair=f"{cls_token} $A {sep_token} {sep_token} $B {sep_token}",
            special_tokens={sep_token: sep[1], cls_token: cls[1]},
        )
        self.sep = sep
        self.cls = cls
