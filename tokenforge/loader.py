"""Build a :class:`TokenizationPipeline` from a ``tokenizer.json`` file.

The file format is the one written by HuggingFace ``tokenizers``
(``Tokenizer.save``), restricted to BPE and WordPiece models and the
component types this package implements.  Anything else is rejected with
a ``ValueError`` naming the unsupported type.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import regex

from .added_tokens import AddedToken, AddedVocabulary
from .bpe import BpeModel
from .constants import WORDPIECE_MAX_INPUT_CHARS_PER_WORD, WORDPIECE_SUBWORD_PREFIX
from .decoders import (
    ByteFallbackDecoder,
    ByteLevelDecoder,
    Decoder,
    FuseDecoder,
    ReplaceDecoder,
    SequenceDecoder,
    StripDecoder,
    WordPieceDecoder,
)
from .normalizers import (
    BertNormalizer,
    LowercaseNormalizer,
    Normalizer,
    PrependNormalizer,
    ReplaceNormalizer,
    SequenceNormalizer,
    UnicodeNormalizer,
)
from .padding import (
    BatchLongestSizeProvider,
    FixedSizeProvider,
    LeftPadding,
    MultipleOfSizeProvider,
    Padding,
    PaddingSizeProvider,
    RightPadding,
)
from .pipeline import Model, TokenizationPipeline
from .post_processors import (
    ByteLevelPostProcessor,
    PostProcessor,
    RobertaPostProcessor,
    SequenceIdentifier,
    SequencePiece,
    SpecialTokenPiece,
    Template,
    TemplatePostProcessor,
)
from .pre_tokenizers import (
    BertPreTokenizer,
    ByteLevelPreTokenizer,
    PreTokenizer,
    RegexSplitPreTokenizer,
    SequencePreTokenizer,
    SplitDelimiterBehavior,
    WhitespacePreTokenizer,
)
from .truncation import (
    LongestFirstTruncator,
    OnlyFirstTruncator,
    OnlySecondTruncator,
    Truncator,
)
from .vocabulary import Vocabulary, VocabularyBuilder
from .wordpiece import WordPieceModel

logger = logging.getLogger("tokenforge.loader")

Config = dict[str, Any]


def _unsupported(kind: str, config: Config) -> ValueError:
    return ValueError(f"Unsupported {kind} type {config.get('type')!r}")


def _pattern(config: Config) -> tuple[str, bool]:
    """``{"String": s}`` or ``{"Regex": r}`` -> (pattern, is_regex)."""
    if "Regex" in config:
        return config["Regex"], True
    if "String" in config:
        return config["String"], False
    raise ValueError(f"Pattern must have a 'String' or 'Regex' key, got {config!r}")


# ── Normalizers ────────────────────────────────────────────────────


def build_normalizer(config: Config | None) -> Normalizer | None:
    if config is None:
        return None
    kind = config.get("type")
    if kind in UnicodeNormalizer.FORMS:
        return UnicodeNormalizer(kind)
    if kind == "Lowercase":
        return LowercaseNormalizer()
    if kind == "BertNormalizer":
        return BertNormalizer(
            clean_text=config.get("clean_text", True),
            handle_chinese_chars=config.get("handle_chinese_chars", True),
            strip_accents=config.get("strip_accents"),
            lowercase=config.get("lowercase", True),
        )
    if kind == "Replace":
        pattern, is_regex = _pattern(config["pattern"])
        return ReplaceNormalizer(pattern, config["content"], is_regex=is_regex)
    if kind == "Prepend":
        return PrependNormalizer(config["prepend"])
    if kind == "Sequence":
        return SequenceNormalizer(*(build_normalizer(c) for c in config["normalizers"]))
    raise _unsupported("normalizer", config)


# ── Pre-tokenizers ─────────────────────────────────────────────────


def build_pre_tokenizer(config: Config | None) -> PreTokenizer | None:
    if config is None:
        return None
    kind = config.get("type")
    if kind == "ByteLevel":
        return ByteLevelPreTokenizer(
            add_prefix_space=config.get("add_prefix_space", True),
            use_regex=config.get("use_regex", True),
        )
    if kind == "Split":
        pattern, is_regex = _pattern(config["pattern"])
        # In tokenizer.json the matches are delimiters unless "invert" is set.
        return RegexSplitPreTokenizer(
            pattern if is_regex else regex.escape(pattern),
            SplitDelimiterBehavior.parse(config.get("behavior", "Isolated")),
            invert=not config.get("invert", False),
        )
    if kind == "BertPreTokenizer":
        return BertPreTokenizer()
    if kind == "Whitespace":
        return WhitespacePreTokenizer()
    if kind == "Sequence":
        return SequencePreTokenizer(*(build_pre_tokenizer(c) for c in config["pretokenizers"]))
    raise _unsupported("pre-tokenizer", config)


# ── Post-processors ────────────────────────────────────────────────


def _template(pieces: list[Config]) -> Template:
    parsed = []
    for piece in pieces:
        if "Sequence" in piece:
            body = piece["Sequence"]
            parsed.append(SequencePiece(SequenceIdentifier(body["id"]), body.get("type_id", 0)))
        elif "SpecialToken" in piece:
            body = piece["SpecialToken"]
            parsed.append(SpecialTokenPiece(body["id"], body.get("type_id", 0)))
        else:
            raise ValueError(f"Unknown template piece {piece!r}")
    return Template(parsed)


def _template_special_tokens(config: Config) -> dict[str, int]:
    tokens = {}
    for name, body in config.items():
        ids = body.get("ids", [])
        if len(ids) != 1:
            raise ValueError(
                f"Template special token {name!r} maps to {len(ids)} ids; exactly one is supported"
            )
        tokens[name] = ids[0]
    return tokens


def build_post_processor(config: Config | None) -> PostProcessor | None:
    if config is None:
        return None
    kind = config.get("type")
    if kind == "ByteLevel":
        return ByteLevelPostProcessor(trim_offsets=config.get("trim_offsets", False))
    if kind == "TemplateProcessing":
        return TemplatePostProcessor(
            single=_template(config["single"]),
            pair=_template(config["pair"]),
            special_tokens=_template_special_tokens(config.get("special_tokens", {})),
        )
    if kind == "RobertaProcessing":
        return RobertaPostProcessor(sep=tuple(config["sep"]), cls=tuple(config["cls"]))
    if kind == "BertProcessing":
        (sep, sep_id), (cls, cls_id) = config["sep"], config["cls"]
        return TemplatePostProcessor(
            single=f"{cls} $A {sep}",
            pair=f"{cls} $A {sep} $B:1 {sep}:1",
            special_tokens={sep: sep_id, cls: cls_id},
        )
    if kind == "Sequence":
        # ByteLevel steps only touch offsets; at most one step may change ids.
        steps = [build_post_processor(c) for c in config["processors"]]
        effective = [s for s in steps if not isinstance(s, ByteLevelPostProcessor)]
        if len(effective) > 1:
            raise ValueError(
                "Sequence post-processors with more than one template are not supported"
            )
        return effective[0] if effective else steps[0] if steps else None
    raise _unsupported("post-processor", config)


# ── Decoders ───────────────────────────────────────────────────────


def build_decoder(config: Config | None) -> Decoder | None:
    if config is None:
        return None
    kind = config.get("type")
    if kind == "ByteLevel":
        return ByteLevelDecoder()
    if kind == "ByteFallback":
        return ByteFallbackDecoder()
    if kind == "Fuse":
        return FuseDecoder()
    if kind == "Replace":
        pattern, is_regex = _pattern(config["pattern"])
        if is_regex:
            raise ValueError("Regex Replace decoders are not supported")
        return ReplaceDecoder(pattern, config["content"])
    if kind == "Strip":
        return StripDecoder(
            config.get("content", " "), config.get("start", 0), config.get("stop", 0)
        )
    if kind == "WordPiece":
        return WordPieceDecoder(
            config.get("prefix", WORDPIECE_SUBWORD_PREFIX), config.get("cleanup", True)
        )
    if kind == "Sequence":
        return SequenceDecoder(*(build_decoder(c) for c in config["decoders"]))
    raise _unsupported("decoder", config)


# ── Truncation / padding ───────────────────────────────────────────

_TRUNCATORS: dict[str, Callable[..., Truncator]] = {
    "LongestFirst": LongestFirstTruncator,
    "OnlyFirst": OnlyFirstTruncator,
    "OnlySecond": OnlySecondTruncator,
}


def build_truncator(config: Config | None) -> Truncator | None:
    if config is None:
        return None
    strategy = config.get("strategy", "LongestFirst")
    if strategy not in _TRUNCATORS:
        raise ValueError(f"Unsupported truncation strategy {strategy!r}")
    return _TRUNCATORS[strategy](
        max_length=config["max_length"],
        stride=config.get("stride", 0),
        direction=config.get("direction", "Right").lower(),
    )


def build_padding(config: Config | None) -> Padding | None:
    if config is None:
        return None
    strategy = config.get("strategy", "BatchLongest")
    size: PaddingSizeProvider
    if strategy == "BatchLongest":
        size = BatchLongestSizeProvider()
    elif isinstance(strategy, dict) and "Fixed" in strategy:
        size = FixedSizeProvider(strategy["Fixed"])
    else:
        raise ValueError(f"Unsupported padding strategy {strategy!r}")
    if config.get("pad_to_multiple_of"):
        size = MultipleOfSizeProvider(size, config["pad_to_multiple_of"])

    direction = config.get("direction", "Right").lower()
    if direction not in ("right", "left"):
        raise ValueError(f"Unsupported padding direction {direction!r}")
    cls = RightPadding if direction == "right" else LeftPadding
    return cls(
        size,
        pad_id=config.get("pad_id", 0),
        pad_type_id=config.get("pad_type_id", 0),
        pad_token=config.get("pad_token"),
    )


# ── Model ──────────────────────────────────────────────────────────


def _merge_pairs(merges: list[str | list[str]]) -> list[tuple[str, str]]:
    pairs = []
    for i, merge in enumerate(merges):
        parts = merge.split(" ") if isinstance(merge, str) else list(merge)
        if len(parts) != 2:
            raise ValueError(f"Merge {i} ({merge!r}) must have exactly two parts")
        pairs.append((parts[0], parts[1]))
    return pairs


def _added_tokens(config: list[Config]) -> list[AddedToken]:
    return [
        AddedToken(
            content=t["content"],
            id=t["id"],
            single_word=t.get("single_word", False),
            lstrip=t.get("lstrip", False),
            rstrip=t.get("rstrip", False),
            normalized=t.get("normalized", False),
            special=t.get("special", False),
        )
        for t in config
    ]


def _model_vocabulary(vocab: dict[str, int], added: list[AddedToken]) -> Vocabulary:
    entries: dict[str, tuple[int, bool]] = {k: (i, False) for k, i in vocab.items()}
    for token in added:
        existing = entries.get(token.content)
        if existing is not None and existing[0] != token.id:
            raise ValueError(
                f"Added token {token.content!r} has id {token.id} but the model "
                f"vocabulary maps it to {existing[0]}"
            )
        entries[token.content] = (token.id, token.special)

    builder = VocabularyBuilder()
    for key, (token_id, special) in entries.items():
        builder.add(token_id, key, special=special)
    return builder.build()


def build_model(config: Config, added: list[AddedToken]) -> Model:
    kind = config.get("type", "BPE")
    if kind == "WordPiece":
        return WordPieceModel(
            _model_vocabulary(config["vocab"], added),
            unk_token=config.get("unk_token", "[UNK]"),
            continuing_subword_prefix=config.get(
                "continuing_subword_prefix", WORDPIECE_SUBWORD_PREFIX
            ),
            max_input_chars_per_word=config.get(
                "max_input_chars_per_word", WORDPIECE_MAX_INPUT_CHARS_PER_WORD
            ),
        )
    if kind != "BPE":
        raise ValueError(f"Unsupported model type {kind!r}")

    return BpeModel(
        _model_vocabulary(config["vocab"], added),
        merges=_merge_pairs(config.get("merges", [])),
        unk_token=config.get("unk_token"),
        fuse_unk=config.get("fuse_unk", False),
        byte_fallback=config.get("byte_fallback", False),
        continuing_subword_prefix=config.get("continuing_subword_prefix") or "",
        end_of_word_suffix=config.get("end_of_word_suffix") or "",
        ignore_merges=config.get("ignore_merges", False),
    )


# ── Entry points ───────────────────────────────────────────────────


def pipeline_from_dict(data: Config) -> TokenizationPipeline:
    """Build a pipeline from a parsed ``tokenizer.json`` document.

    Raises
    ------
    ValueError
        For unsupported component types or inconsistent vocabularies.
    """
    added = _added_tokens(data.get("added_tokens") or [])
    model = build_model(data["model"], added)
    pipeline = TokenizationPipeline(
        model,
        normalizer=build_normalizer(data.get("normalizer")),
        pre_tokenizer=build_pre_tokenizer(data.get("pre_tokenizer")),
        post_processor=build_post_processor(data.get("post_processor")),
        truncator=build_truncator(data.get("truncation")),
        padding=build_padding(data.get("padding")),
        decoder=build_decoder(data.get("decoder")),
        added_tokens=AddedVocabulary(added),
    )
    logger.debug(
        "Loaded %s pipeline: %d tokens (%d added)",
        type(model).__name__, len(model.vocabulary), len(added),
    )
    return pipeline


def pipeline_from_str(text: str) -> TokenizationPipeline:
    return pipeline_from_dict(json.loads(text))


def load_pipeline(path: str | Path) -> TokenizationPipeline:
    """Read ``tokenizer.json`` at *path* and build its pipeline."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    logger.debug("Read tokenizer file %s", path)
    return pipeline_from_dict(data)
