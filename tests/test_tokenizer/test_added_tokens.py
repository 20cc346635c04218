"""Tests for added-token extraction."""

from __future__ import annotations

from tokenforge.added_tokens import AddedToken, AddedVocabulary
from tokenforge.normalizers import LowercaseNormalizer


def render(segments) -> list[tuple[str, int | None]]:
    return [(str(view), None if token is None else token.id) for view, token in segments]


class TestAddedVocabulary:
    def test_splits_around_tokens(self) -> None:
        added = AddedVocabulary([AddedToken("<|eot|>", 10)])
        assert render(added.split("a<|eot|>b<|eot|>")) == [
            ("a", None), ("<|eot|>", 10), ("b", None), ("<|eot|>", 10),
        ]

    def test_longest_token_wins(self) -> None:
        added = AddedVocabulary([AddedToken("<a>", 1), AddedToken("<a><b>", 2)])
        assert render(added.split("x<a><b>y")) == [("x", None), ("<a><b>", 2), ("y", None)]

    def test_no_tokens(self) -> None:
        assert render(AddedVocabulary().split("plain")) == [("plain", None)]
        assert AddedVocabulary().split("") == []

    def test_single_word(self) -> None:
        added = AddedVocabulary([AddedToken("cat", 5, single_word=True)])
        assert render(added.split("cat concat cat.")) == [
            ("cat", 5), (" concat ", None), ("cat", 5), (".", None),
        ]

    def test_lstrip_rstrip(self) -> None:
        added = AddedVocabulary([AddedToken("<m>", 3, lstrip=True, rstrip=True)])
        assert render(added.split("a  <m>  b")) == [("a", None), ("  <m>  ", 3), ("b", None)]

    def test_normalized_tokens_match_after_normalization(self) -> None:
        added = AddedVocabulary([
            AddedToken("<RAW>", 1),
            AddedToken("hello", 2, normalized=True),
        ])
        segments = render(added.split("HELLO <RAW> Hi", LowercaseNormalizer()))
        assert segments == [("hello", 2), (" ", None), ("<RAW>", 1), (" hi", None)]

    def test_raw_tokens_are_not_normalized(self) -> None:
        added = AddedVocabulary([AddedToken("<RAW>", 1)])
        assert render(added.split("<raw>", LowercaseNormalizer())) == [("<raw>", None)]
