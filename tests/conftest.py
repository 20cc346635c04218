"""Shared toy vocabularies for the tokenizer tests."""

from __future__ import annotations

import copy

import pytest

from tokenforge.byte_level import alphabet
from tokenforge.loader import pipeline_from_dict
from tokenforge.pipeline import TokenizationPipeline

# Byte-level merges learned for "hello" and " world".  Byte ids equal the
# byte value, so 'h' is 104 and the space marker 'Ġ' is 32.
TOY_MERGES: list[tuple[str, str]] = [
    ("h", "e"),
    ("l", "l"),
    ("he", "ll"),
    ("hell", "o"),
    ("Ġ", "w"),
    ("o", "r"),
    ("Ġw", "or"),
    ("Ġwor", "l"),
    ("Ġworl", "d"),
]

TOY_SPECIALS: list[str] = ["<|endoftext|>", "<|pad|>", "<|bos|>", "<|eos|>"]


def _toy_vocab() -> dict[str, int]:
    vocab = {ch: i for i, ch in enumerate(alphabet())}
    for left, right in TOY_MERGES:
        vocab.setdefault(left + right, len(vocab))
    return vocab


TOY_VOCAB: dict[str, int] = _toy_vocab()
TOY_SPECIAL_IDS: dict[str, int] = {
    token: len(TOY_VOCAB) + i for i, token in enumerate(TOY_SPECIALS)
}


def _special_piece(token: str, type_id: int = 0) -> dict:
    return {"SpecialToken": {"id": token, "type_id": type_id}}


def _sequence_piece(name: str, type_id: int = 0) -> dict:
    return {"Sequence": {"id": name, "type_id": type_id}}


TOY_TOKENIZER_JSON: dict = {
    "version": "1.0",
    "truncation": None,
    "padding": None,
    "added_tokens": [
        {
            "id": token_id,
            "content": token,
            "single_word": False,
            "lstrip": False,
            "rstrip": False,
            "normalized": False,
            "special": True,
        }
        for token, token_id in TOY_SPECIAL_IDS.items()
    ],
    "normalizer": None,
    "pre_tokenizer": {
        "type": "ByteLevel",
        "add_prefix_space": False,
        "trim_offsets": True,
        "use_regex": True,
    },
    "post_processor": {
        "type": "TemplateProcessing",
        "single": [
            _special_piece("<|bos|>"),
            _sequence_piece("A"),
            _special_piece("<|eos|>"),
        ],
        "pair": [
            _special_piece("<|bos|>"),
            _sequence_piece("A"),
            _special_piece("<|eos|>"),
            _sequence_piece("B", 1),
            _special_piece("<|eos|>", 1),
        ],
        "special_tokens": {
            token: {"id": token, "ids": [TOY_SPECIAL_IDS[token]], "tokens": [token]}
            for token in ("<|bos|>", "<|eos|>")
        },
    },
    "decoder": {
        "type": "ByteLevel",
        "add_prefix_space": True,
        "trim_offsets": True,
        "use_regex": True,
    },
    "model": {
        "type": "BPE",
        "dropout": None,
        "unk_token": None,
        "continuing_subword_prefix": None,
        "end_of_word_suffix": None,
        "fuse_unk": False,
        "byte_fallback": False,
        "ignore_merges": False,
        "vocab": TOY_VOCAB,
        "merges": [f"{left} {right}" for left, right in TOY_MERGES],
    },
}

BOS = TOY_SPECIAL_IDS["<|bos|>"]
EOS = TOY_SPECIAL_IDS["<|eos|>"]
PAD = TOY_SPECIAL_IDS["<|pad|>"]
EOT = TOY_SPECIAL_IDS["<|endoftext|>"]
HELLO = TOY_VOCAB["hello"]
SPACE_WORLD = TOY_VOCAB["Ġworld"]
COMMA = TOY_VOCAB[","]


@pytest.fixture()
def toy_json() -> dict:
    """A fresh copy of the toy ``tokenizer.json`` document."""
    return copy.deepcopy(TOY_TOKENIZER_JSON)


@pytest.fixture()
def toy_pipeline(toy_json: dict) -> TokenizationPipeline:
    return pipeline_from_dict(toy_json)
