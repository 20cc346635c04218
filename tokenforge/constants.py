"""Central constants shared by the tokenization pipeline.

Split patterns, byte-fallback token naming, cache sizes and the default
special-token set used when training a fresh vocabulary all live here so
the other modules import from a single source of truth.
"""

from __future__ import annotations

# ── Pre-tokenization regexes ───────────────────────────────────────
# GPT-2 pattern used by the byte-level pre-tokenizer.
#
# Components:
#   1. 's|'t|'re|'ve|'m|'ll|'d   : English contractions
#   2.  ?\p{L}+                   : Words w/ optional leading space
#   3.  ?\p{N}+                   : Number runs w/ optional leading space
#   4.  ?[^\s\p{L}\p{N}]+         : Punctuation runs
#   5. \s+(?!\S)                  : Trailing whitespace
#   6. \s+                        : Fallback whitespace
GPT2_SPLIT_PATTERN: str = (
    r"'s|'t|'re|'ve|'m|'ll|'d"
    r"| ?\p{L}+"
    r"| ?\p{N}+"
    r"| ?[^\s\p{L}\p{N}]+"
    r"|\s+(?!\S)"
    r"|\s+"
)

# GPT-4 cl100k_base pattern with \p{N} (individual digits) instead of
# \p{N}{1,3}.  Default split for freshly trained vocabularies.
GPT4_SPLIT_PATTERN: str = (
    r"(?i:'s|'t|'re|'ve|'m|'ll|'d)"
    r"|[^\r\n\p{L}\p{N}]?\p{L}+"
    r"|\p{N}"
    r"| ?[^\s\p{L}\p{N}]+[\r\n]*"
    r"|\s*[\r\n]+"
    r"|\s+(?!\S)"
    r"|\s+"
)

# Words and punctuation runs, whitespace left to the delimiter logic.
WHITESPACE_SPLIT_PATTERN: str = r"\w+|[^\w\s]+"

# ── Byte fallback ──────────────────────────────────────────────────
BYTE_TOKEN_PREFIX: str = "<0x"
BYTE_TOKEN_SUFFIX: str = ">"
BYTE_TOKEN_FORMAT: str = "<0x{:02X}>"

# ── Caching ────────────────────────────────────────────────────────
# Per-model memo of chunk -> ids.  Chunks repeat heavily in natural text.
DEFAULT_CACHE_SIZE: int = 10_000

# ── WordPiece ──────────────────────────────────────────────────────
WORDPIECE_SUBWORD_PREFIX: str = "##"
WORDPIECE_MAX_INPUT_CHARS_PER_WORD: int = 100

# ── Training defaults ──────────────────────────────────────────────
DEFAULT_VOCAB_SIZE: int = 32_000
BYTE_ALPHABET_SIZE: int = 256

# Pipe-delimited <|name|> format, placed at the start of the vocabulary
# so their ids do not depend on how many merges training learns.
SPECIAL_TOKENS: dict[str, int] = {
    "<|endoftext|>": 0,
    "<|pad|>": 1,
    "<|bos|>": 2,
    "<|eos|>": 3,
    "<|unk|>": 4,
}

BOS_TOKEN: str = "<|bos|>"
EOS_TOKEN: str = "<|eos|>"
PAD_TOKEN: str = "<|pad|>"
UNK_TOKEN: str = "<|unk|>"
