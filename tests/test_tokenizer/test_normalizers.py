"""Tests for the text normalizers."""

from __future__ import annotations

import pytest

from tokenforge.normalizers import (
    AppendNormalizer,
    BertNormalizer,
    LowercaseNormalizer,
    NoopNormalizer,
    PrependNormalizer,
    ReplaceNormalizer,
    SequenceNormalizer,
    UnicodeNormalizer,
)
from tokenforge.text_view import TextView


class TestNormalizers:
    def test_noop_keeps_the_view(self) -> None:
        view = TextView("xhello", 1)
        assert NoopNormalizer().normalize(view) is view

    def test_unchanged_text_keeps_the_view(self) -> None:
        view = TextView("abc")
        assert LowercaseNormalizer().normalize(view) is view

    def test_unicode_forms(self) -> None:
        decomposed = "e\u0301"
        assert str(UnicodeNormalizer("NFC").normalize(decomposed)) == "\u00e9"
        assert str(UnicodeNormalizer("nfd").normalize("\u00e9")) == decomposed
        assert str(UnicodeNormalizer("NFKC").normalize("\ufb01")) == "fi"

    def test_unknown_form_rejected(self) -> None:
        with pytest.raises(ValueError):
            UnicodeNormalizer("NFX")

    def test_bert(self) -> None:
        normalizer = BertNormalizer()
        assert normalizer.normalize_str("Héllo\tWorld\x00") == "hello world"
        assert normalizer.normalize_str("中文") == " 中  文 "

    def test_bert_keeps_accents_when_not_lowercasing(self) -> None:
        normalizer = BertNormalizer(lowercase=False)
        assert normalizer.normalize_str("Héllo") == "Héllo"

    def test_replace(self) -> None:
        assert ReplaceNormalizer(" ", "▁").normalize_str("a b c") == "a▁b▁c"
        assert ReplaceNormalizer(r"\s+", " ", is_regex=True).normalize_str("a \t b") == "a b"
        assert ReplaceNormalizer(".", "!").normalize_str("a.b") == "a!b"

    def test_prepend_append(self) -> None:
        assert PrependNormalizer("▁").normalize_str("hi") == "▁hi"
        assert PrependNormalizer("▁").normalize_str("") == ""
        assert AppendNormalizer("</s>").normalize_str("hi") == "hi</s>"

    def test_sequence(self) -> None:
        seq = SequenceNormalizer(LowercaseNormalizer(), ReplaceNormalizer(" ", "_"))
        assert str(seq.normalize("Hello World")) == "hello_world"
