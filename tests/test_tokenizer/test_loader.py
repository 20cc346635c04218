"""Tests for building pipelines from tokenizer.json documents."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tokenforge.decoders import SequenceDecoder
from tokenforge.loader import (
    build_decoder,
    build_normalizer,
    build_post_processor,
    build_pre_tokenizer,
    load_pipeline,
    pipeline_from_dict,
    pipeline_from_str,
)
from tokenforge.post_processors import TemplatePostProcessor

from conftest import BOS, COMMA, EOS, HELLO, PAD, SPACE_WORLD, TOY_MERGES


class TestPipelineFromDict:
    def test_loads_toy_document(self, toy_json: dict) -> None:
        pipeline = pipeline_from_dict(toy_json)
        assert pipeline.encode("hello, world").ids == (BOS, HELLO, COMMA, SPACE_WORLD, EOS)

    def test_merges_as_pairs(self, toy_json: dict) -> None:
        toy_json["model"]["merges"] = [list(pair) for pair in TOY_MERGES]
        assert pipeline_from_dict(toy_json).tokenize(" world") == [SPACE_WORLD]

    def test_malformed_merge(self, toy_json: dict) -> None:
        toy_json["model"]["merges"] = ["h e l"]
        with pytest.raises(ValueError, match="exactly two parts"):
            pipeline_from_dict(toy_json)

    def test_from_str_and_file(self, toy_json: dict, tmp_path: Path) -> None:
        text = json.dumps(toy_json)
        assert pipeline_from_str(text).tokenize("hello") == [HELLO]
        path = tmp_path / "tokenizer.json"
        path.write_text(text, encoding="utf-8")
        assert load_pipeline(path).tokenize("hello") == [HELLO]

    def test_unsupported_model(self, toy_json: dict) -> None:
        toy_json["model"]["type"] = "Unigram"
        with pytest.raises(ValueError, match="Unigram"):
            pipeline_from_dict(toy_json)

    def test_added_token_id_conflict(self, toy_json: dict) -> None:
        toy_json["added_tokens"].append({"id": 9999, "content": "hello", "special": False})
        with pytest.raises(ValueError, match="hello"):
            pipeline_from_dict(toy_json)

    def test_added_token_matching_model_entry(self, toy_json: dict) -> None:
        toy_json["added_tokens"].append({"id": HELLO, "content": "hello", "special": False})
        pipeline = pipeline_from_dict(toy_json)
        assert pipeline.tokenize("xhellox")[1] == HELLO

    def test_truncation_section(self, toy_json: dict) -> None:
        toy_json["truncation"] = {
            "direction": "Right", "max_length": 4, "strategy": "LongestFirst", "stride": 0,
        }
        enc = pipeline_from_dict(toy_json).encode("hello, world")
        assert enc.ids == (BOS, HELLO, COMMA, EOS)
        assert enc.overflowing[0].ids == (BOS, SPACE_WORLD, EOS)

    def test_padding_section(self, toy_json: dict) -> None:
        toy_json["padding"] = {
            "strategy": {"Fixed": 6},
            "direction": "Left",
            "pad_to_multiple_of": None,
            "pad_id": PAD,
            "pad_type_id": 0,
            "pad_token": "<|pad|>",
        }
        enc = pipeline_from_dict(toy_json).encode("hello")
        assert enc.ids == (PAD, PAD, PAD, BOS, HELLO, EOS)
        assert enc.attention_mask == (0, 0, 0, 1, 1, 1)

    def test_unknown_truncation_strategy(self, toy_json: dict) -> None:
        toy_json["truncation"] = {"max_length": 4, "strategy": "Everything"}
        with pytest.raises(ValueError, match="Everything"):
            pipeline_from_dict(toy_json)


class TestComponentBuilders:
    def test_missing_components_are_none(self) -> None:
        assert build_normalizer(None) is None
        assert build_pre_tokenizer(None) is None
        assert build_post_processor(None) is None
        assert build_decoder(None) is None

    @pytest.mark.parametrize(
        ("builder", "kind"),
        [
            (build_normalizer, "Precompiled"),
            (build_pre_tokenizer, "Metaspace"),
            (build_post_processor, "Whatever"),
            (build_decoder, "CTC"),
        ],
    )
    def test_unsupported_type(self, builder, kind: str) -> None:
        with pytest.raises(ValueError, match=kind):
            builder({"type": kind})

    def test_normalizer_sequence(self) -> None:
        normalizer = build_normalizer({
            "type": "Sequence",
            "normalizers": [
                {"type": "NFKC"},
                {"type": "Lowercase"},
                {"type": "Replace", "pattern": {"String": " "}, "content": "_"},
            ],
        })
        assert normalizer.normalize_str("Hello World") == "hello_world"

    def test_split_string_pattern_is_literal(self) -> None:
        pre = build_pre_tokenizer({
            "type": "Split", "pattern": {"String": "."}, "behavior": "Isolated", "invert": False,
        })
        assert pre.pre_tokenize_str("a.b") == ["a", ".", "b"]

    @pytest.mark.parametrize(
        ("behavior", "expected"),
        [
            ("Removed", ["hello", "world"]),
            ("Isolated", ["hello", " ", "world"]),
            ("MergedWithPrevious", ["hello ", "world"]),
            ("MergedWithNext", ["hello", " world"]),
            ("Contiguous", ["hello", " ", "world"]),
        ],
    )
    def test_split_matches_are_delimiters(self, behavior: str, expected: list[str]) -> None:
        pre = build_pre_tokenizer({
            "type": "Split", "pattern": {"String": " "}, "behavior": behavior, "invert": False,
        })
        assert pre.pre_tokenize_str("hello world") == expected

    def test_inverted_split_keeps_matches(self) -> None:
        pre = build_pre_tokenizer({
            "type": "Split", "pattern": {"Regex": r"\w+"}, "behavior": "Removed", "invert": True,
        })
        assert pre.pre_tokenize_str("hello, world") == ["hello", "world"]


    def test_bert_processing(self) -> None:
        processor = build_post_processor(
            {"type": "BertProcessing", "sep": ["[SEP]", 102], "cls": ["[CLS]", 101]}
        )
        assert processor.process([7], [8]) == ([101, 7, 102, 8, 102], [0, 0, 0, 1, 1])

    def test_sequence_post_processor_keeps_template(self, toy_json: dict) -> None:
        processor = build_post_processor({
            "type": "Sequence",
            "processors": [{"type": "ByteLevel", "trim_offsets": False}, toy_json["post_processor"]],
        })
        assert isinstance(processor, TemplatePostProcessor)
        assert processor.num_added_tokens(is_pair=False) == 2

    def test_decoder_sequence(self) -> None:
        decoder = build_decoder({
            "type": "Sequence",
            "decoders": [
                {"type": "Replace", "pattern": {"String": "▁"}, "content": " "},
                {"type": "ByteFallback"},
                {"type": "Fuse"},
                {"type": "Strip", "content": " ", "start": 1, "stop": 0},
            ],
        })
        assert isinstance(decoder, SequenceDecoder)
        assert decoder.decode(["▁hi", "▁there", "<0x21>"]) == "hi there!"


class TestSplitMatchesHuggingFace:
    TEXTS = ["hello world", "a  b, c ", "  lead and trail  ", "no-delims"]

    @pytest.mark.parametrize(
        "behavior",
        ["removed", "isolated", "merged_with_previous", "merged_with_next", "contiguous"],
    )
    @pytest.mark.parametrize("invert", [False, True])
    def test_same_chunks(self, behavior: str, invert: bool) -> None:
        tokenizers = pytest.importorskip("tokenizers")
        if invert and behavior == "contiguous":
            pytest.skip("adjacent matches are only coalesced as delimiters")
        pattern = tokenizers.Regex(r"\s")
        reference = tokenizers.pre_tokenizers.Split(pattern, behavior, invert=invert)
        pre = build_pre_tokenizer({
            "type": "Split",
            "pattern": {"Regex": r"\s"},
            "behavior": "".join(p.capitalize() for p in behavior.split("_")),
            "invert": invert,
        })
        for text in self.TEXTS:
            expected = [piece for piece, _ in reference.pre_tokenize_str(text)]
            assert pre.pre_tokenize_str(text) == expected, text


WORDPIECE_VOCAB = {
    "[PAD]": 0, "[UNK]": 1, "[CLS]": 2, "[SEP]": 3,
    "hello": 4, ",": 5, "world": 6, "un": 7, "##aff": 8, "##able": 9,
}


@pytest.fixture()
def wordpiece_json() -> dict:
    return {
        "version": "1.0",
        "truncation": None,
        "padding": None,
        "added_tokens": [
            {"id": i, "content": token, "special": True}
            for token, i in WORDPIECE_VOCAB.items() if token.startswith("[")
        ],
        "normalizer": {"type": "BertNormalizer", "lowercase": True},
        "pre_tokenizer": {"type": "BertPreTokenizer"},
        "post_processor": {"type": "BertProcessing", "sep": ["[SEP]", 3], "cls": ["[CLS]", 2]},
        "decoder": {"type": "WordPiece", "prefix": "##", "cleanup": True},
        "model": {
            "type": "WordPiece",
            "unk_token": "[UNK]",
            "continuing_subword_prefix": "##",
            "max_input_chars_per_word": 100,
            "vocab": dict(WORDPIECE_VOCAB),
        },
    }


class TestWordPieceDocument:
    def test_encode(self, wordpiece_json: dict) -> None:
        pipeline = pipeline_from_dict(wordpiece_json)
        enc = pipeline.encode("Hello, unaffable world!")
        assert enc.ids == (2, 4, 5, 7, 8, 9, 6, 1, 3)

    def test_decode(self, wordpiece_json: dict) -> None:
        pipeline = pipeline_from_dict(wordpiece_json)
        ids = [2, 4, 5, 7, 8, 9, 6, 3]
        assert pipeline.decode(ids, skip_special_tokens=True) == "hello, unaffable world"

    def test_missing_unknown_token(self, wordpiece_json: dict) -> None:
        wordpiece_json["model"]["unk_token"] = "<unk>"
        with pytest.raises(KeyError):
            pipeline_from_dict(wordpiece_json)

    def test_same_ids_as_huggingface(self) -> None:
        tokenizers = pytest.importorskip("tokenizers")
        reference = tokenizers.Tokenizer(
            tokenizers.models.WordPiece(dict(WORDPIECE_VOCAB), unk_token="[UNK]")
        )
        reference.normalizer = tokenizers.normalizers.BertNormalizer(lowercase=True)
        reference.pre_tokenizer = tokenizers.pre_tokenizers.BertPreTokenizer()
        reference.post_processor = tokenizers.processors.BertProcessing(
            ("[SEP]", 3), ("[CLS]", 2)
        )
        reference.decoder = tokenizers.decoders.WordPiece()
        reference.add_special_tokens(["[PAD]", "[UNK]", "[CLS]", "[SEP]"])

        pipeline = pipeline_from_str(reference.to_str())
        for text in ["Hello, unaffable world!", "un world, hello", "xyz unable"]:
            expected = reference.encode(text).ids
            assert list(pipeline.encode(text).ids) == expected, text
            assert pipeline.decode(expected, skip_special_tokens=True) == reference.decode(
                expected
            ), text
