"""End-to-end tests for the tokenization pipeline on the toy vocabulary."""

from __future__ import annotations

import pytest

from tokenforge.padding import BatchLongestSizeProvider, FixedSizeProvider, RightPadding
from tokenforge.pipeline import TokenizationPipeline
from tokenforge.truncation import LongestFirstTruncator

from conftest import BOS, COMMA, EOS, EOT, HELLO, PAD, SPACE_WORLD, TOY_VOCAB

SPACE = TOY_VOCAB["Ġ"]


class TestEncode:
    def test_hello_world(self, toy_pipeline: TokenizationPipeline) -> None:
        enc = toy_pipeline.encode("hello, world")
        assert enc.ids == (BOS, HELLO, COMMA, SPACE_WORLD, EOS)
        assert enc.attention_mask == (1, 1, 1, 1, 1)
        assert enc.type_ids == (0, 0, 0, 0, 0)
        assert enc.overflow is None

    def test_without_special_tokens(self, toy_pipeline: TokenizationPipeline) -> None:
        enc = toy_pipeline.encode("hello, world", add_special_tokens=False)
        assert enc.ids == (HELLO, COMMA, SPACE_WORLD)

    def test_tokenize_skips_post_processing(self, toy_pipeline: TokenizationPipeline) -> None:
        assert toy_pipeline.tokenize("hello, world") == [HELLO, COMMA, SPACE_WORLD]

    def test_special_token_is_single_id(self, toy_pipeline: TokenizationPipeline) -> None:
        ids = toy_pipeline.tokenize("hello<|endoftext|> world")
        assert ids == [HELLO, EOT, SPACE_WORLD]

    def test_partial_special_token_is_plain_text(self, toy_pipeline: TokenizationPipeline) -> None:
        ids = toy_pipeline.tokenize("<|endoftext")
        assert EOT not in ids
        assert toy_pipeline.decode(ids) == "<|endoftext"

    def test_pair_type_ids(self, toy_pipeline: TokenizationPipeline) -> None:
        enc = toy_pipeline.encode("hello", "world")
        world = toy_pipeline.tokenize("world")
        assert enc.ids == (BOS, HELLO, EOS, *world, EOS)
        assert enc.type_ids == (0, 0, 0) + (1,) * (len(world) + 1)

    def test_empty_input(self, toy_pipeline: TokenizationPipeline) -> None:
        assert toy_pipeline.encode("").ids == (BOS, EOS)
        assert toy_pipeline.encode("", add_special_tokens=False).ids == ()

    def test_deterministic(self, toy_pipeline: TokenizationPipeline) -> None:
        text = "hello world, hello again"
        assert toy_pipeline.encode(text) == toy_pipeline.encode(text)


class TestDecode:
    def test_roundtrip(self, toy_pipeline: TokenizationPipeline) -> None:
        for text in ("hello, world", "héllo wörld 🎉", "  tabs\tand\nnewlines  ", ""):
            ids = toy_pipeline.encode(text, add_special_tokens=False).ids
            assert toy_pipeline.decode(ids) == text

    def test_special_tokens_kept_or_skipped(self, toy_pipeline: TokenizationPipeline) -> None:
        ids = toy_pipeline.encode("hello, world").ids
        assert toy_pipeline.decode(ids) == "<|bos|>hello, world<|eos|>"
        assert toy_pipeline.decode(ids, skip_special_tokens=True) == "hello, world"

    def test_unknown_ids_skipped(self, toy_pipeline: TokenizationPipeline) -> None:
        assert toy_pipeline.decode([HELLO, 99_999, SPACE_WORLD]) == "hello world"

    def test_decode_batch(self, toy_pipeline: TokenizationPipeline) -> None:
        assert toy_pipeline.decode_batch([[HELLO], [SPACE_WORLD]]) == ["hello", " world"]


class TestTruncationAndPadding:
    def test_overflow_chain(self, toy_pipeline: TokenizationPipeline) -> None:
        pipeline = toy_pipeline.replace(truncator=LongestFirstTruncator(4))
        # "hello" then three " hello" chunks of two tokens each
        enc = pipeline.encode("hello hello hello hello")
        assert enc.ids == (BOS, HELLO, SPACE, EOS)
        overflow = enc.overflowing
        assert [e.ids for e in overflow] == [
            (BOS, HELLO, SPACE, EOS),
            (BOS, HELLO, SPACE, EOS),
            (BOS, HELLO, EOS),
        ]

    def test_stride_wider_than_budget(self, toy_pipeline: TokenizationPipeline) -> None:
        pipeline = toy_pipeline.replace(truncator=LongestFirstTruncator(4, stride=2))
        enc = pipeline.encode("hello, world")
        assert enc.ids == (BOS, HELLO, COMMA, EOS)
        assert enc.overflow is None

    def test_batch_padding(self, toy_pipeline: TokenizationPipeline) -> None:
        pipeline = toy_pipeline.replace(padding=RightPadding(BatchLongestSizeProvider(), PAD))
        short, long = pipeline.encode_batch(["hello", "hello, world"])
        assert short.ids == (BOS, HELLO, EOS, PAD, PAD)
        assert short.attention_mask == (1, 1, 1, 0, 0)
        assert long.attention_mask == (1, 1, 1, 1, 1)

    def test_padding_covers_overflow_windows(self, toy_pipeline: TokenizationPipeline) -> None:
        pipeline = toy_pipeline.replace(
            truncator=LongestFirstTruncator(4),
            padding=RightPadding(BatchLongestSizeProvider(), PAD),
        )
        enc = pipeline.encode("hello hello hello hello")
        last = enc.overflowing[-1]
        assert last.ids == (BOS, HELLO, EOS, PAD)
        assert last.attention_mask == (1, 1, 1, 0)

    def test_mask_marks_real_tokens(self, toy_pipeline: TokenizationPipeline) -> None:
        inputs = ["hello", ("hello", "world"), "hello, world"]
        pipeline = toy_pipeline.replace(padding=RightPadding(FixedSizeProvider(8), PAD))
        padded = pipeline.encode_batch(inputs)
        for enc, plain in zip(padded, toy_pipeline.encode_batch(inputs)):
            assert len(enc) == 8
            real = tuple(i for i, m in zip(enc.ids, enc.attention_mask) if m)
            assert real == plain.ids

    def test_batch_accepts_pairs(self, toy_pipeline: TokenizationPipeline) -> None:
        single, pair = toy_pipeline.encode_batch(["hello", ("hello", "world")])
        assert single.ids == (BOS, HELLO, EOS)
        assert pair == toy_pipeline.encode("hello", "world")

    def test_empty_batch(self, toy_pipeline: TokenizationPipeline) -> None:
        assert toy_pipeline.encode_batch([]) == []


class TestReplace:
    def test_shares_other_stages(self, toy_pipeline: TokenizationPipeline) -> None:
        replaced = toy_pipeline.replace(truncator=LongestFirstTruncator(8))
        assert replaced.model is toy_pipeline.model
        assert replaced.decoder is toy_pipeline.decoder
        assert replaced is not toy_pipeline

    def test_unknown_component(self, toy_pipeline: TokenizationPipeline) -> None:
        with pytest.raises(TypeError):
            toy_pipeline.replace(tokenizer=None)

    def test_defaults_to_vocabulary_specials(self, toy_pipeline: TokenizationPipeline) -> None:
        bare = TokenizationPipeline(toy_pipeline.model)
        assert bare.tokenize("<|endoftext|>") == [EOT]
