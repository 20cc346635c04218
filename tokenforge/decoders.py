"""Decoders: turn token values back into text."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from .byte_level import decode_chars, parse_byte_token, to_utf8
from .constants import WORDPIECE_SUBWORD_PREFIX


class Decoder(ABC):
    @abstractmethod
    def decode_chain(self, tokens: list[str]) -> list[str]:
        """Transform token strings; decoders compose through this."""

    def decode(self, tokens: Sequence[str]) -> str:
        return "".join(self.decode_chain(list(tokens)))


class DefaultDecoder(Decoder):
    """Concatenation."""

    def decode_chain(self, tokens):
        return tokens


class ByteLevelDecoder(Decoder):
    """Map byte-level characters back to bytes and decode UTF-8.

    A token containing any character outside the byte alphabet (an added
    token such as ``<|endoftext|>``) contributes its own UTF-8 bytes.
    Invalid UTF-8 in the result becomes U+FFFD.
    """

    def decode_chain(self, tokens):
        data = bytearray()
        for token in tokens:
            raw = decode_chars(token)
            data.extend(to_utf8(token) if raw is None else raw)
        return [data.decode("utf-8", errors="replace")]


class ByteFallbackDecoder(Decoder):
    """Turn runs of ``<0xXX>`` tokens back into characters.

    A run that is not valid UTF-8 yields one U+FFFD per byte.
    """

    def decode_chain(self, tokens):
        output: list[str] = []
        pending = bytearray()

        def flush() -> None:
            if not pending:
                return
            try:
                output.append(pending.decode("utf-8"))
            except UnicodeDecodeError:
                output.extend("\ufffd" for _ in pending)
            pending.clear()

        for token in tokens:
            value = parse_byte_token(token)
            if value is None:
                flush()
                output.append(token)
            else:
                pending.append(value)
        flush()
        return output


class FuseDecoder(Decoder):
    """Join every token into one string."""

    def decode_chain(self, tokens):
        return ["".join(tokens)]


class ReplaceDecoder(Decoder):
    """Replace a literal *pattern* with *content* in every token."""

    def __init__(self, pattern: str, content: str) -> None:
        if not pattern:
            raise ValueError("ReplaceDecoder pattern must not be empty")
        self.pattern = pattern
        self.content = content

    def decode_chain(self, tokens):
        return [t.replace(self.pattern, self.content) for t in tokens]


class StripDecoder(Decoder):
    """Remove up to *start* leading and *stop* trailing *content* chars per token."""

    def __init__(self, content: str = " ", start: int = 0, stop: int = 0) -> None:
        if len(content) != 1:
            raise ValueError(f"StripDecoder content must be one character, got {content!r}")
        self.content = content
        self.start = start
        self.stop = stop

    def decode_chain(self, tokens):
        output = []
        for token in tokens:
            begin, end = 0, len(token)
            while begin < min(self.start, end) and token[begin] == self.content:
                begin += 1
            limit = max(begin, len(token) - self.stop)
            while end > limit and token[end - 1] == self.content:
                end -= 1
            output.append(token[begin:end])
        return output


# Spacing fixes applied by ``cleanup``, in order.
_CLEANUP_REPLACEMENTS = (
    (" .", "."),
    (" ?", "?"),
    (" !", "!"),
    (" ,", ","),
    (" ' ", "'"),
    (" n't", "n't"),
    (" 'm", "'m"),
    (" do not", " don't"),
    (" 's", "'s"),
    (" 've", "'ve"),
    (" 're", "'re"),
)


def cleanup_tokenization_spaces(text: str) -> str:
    for old, new in _CLEANUP_REPLACEMENTS:
        text = text.replace(old, new)
    return text


class WordPieceDecoder(Decoder):
    """Glue ``##`` continuations to the previous token, space the rest."""

    def __init__(self, prefix: str = WORDPIECE_SUBWORD_PREFIX, cleanup: bool = True) -> None:
        self.prefix = prefix
        self.cleanup = cleanup

    def decode_chain(self, tokens):
        output = []
        for i, token in enumerate(tokens):
            if i:
                if self.prefix and token.startswith(self.prefix):
                    token = token[len(self.prefix):]
                else:
                    token = " " + token
            if self.cleanup:
                token = cleanup_tokenization_spaces(token)
            output.append(token)
        return output


class SequenceDecoder(Decoder):
    def __init__(self, *decoders: Decoder) -> None:
        self.decoders = list(decoders)

    def decode_chain(self, tokens):
        for decoder in self.decoders:
            tokens = decoder.decode_chain(tokens)
        return tokens
