"""Text normalizers applied before pre-tokenization."""

from __future__ import annotations

import unicodedata
from abc import ABC, abstractmethod

import regex

from .text_view import TextView


class Normalizer(ABC):
    @abstractmethod
    def normalize_str(self, text: str) -> str:
        """Return the normalized form of *text*."""

    def normalize(self, text: str | TextView) -> TextView:
        view = TextView.of(text)
        normalized = self.normalize_str(str(view))
        if normalized == view:
            return view
        return TextView(normalized)


class NoopNormalizer(Normalizer):
    def normalize_str(self, text: str) -> str:
        return text

    def normalize(self, text: str | TextView) -> TextView:
        return TextView.of(text)


class UnicodeNormalizer(Normalizer):
    """NFC / NFD / NFKC / NFKD."""

    FORMS = ("NFC", "NFD", "NFKC", "NFKD")

    def __init__(self, form: str = "NFC") -> None:
        form = form.upper()
        if form not in self.FORMS:
            raise ValueError(
                f"Unicode normalization form must be one of {self.FORMS}, got {form!r}"
            )
        self.form = form

    def normalize_str(self, text: str) -> str:
        return unicodedata.normalize(self.form, text)


class LowercaseNormalizer(Normalizer):
    def normalize_str(self, text: str) -> str:
        return text.lower()


class BertNormalizer(Normalizer):
    """BERT-style cleanup.

    Parameters
    ----------
    clean_text
        Drop control characters and U+FFFD, map whitespace to a space.
    handle_chinese_chars
        Surround CJK ideographs with spaces.
    strip_accents
        Remove combining marks after NFD.  None follows ``lowercase``.
    lowercase
        Lowercase the text.
    """

    def __init__(
        self,
        clean_text: bool = True,
        handle_chinese_chars: bool = True,
        strip_accents: bool | None = None,
        lowercase: bool = True,
    ) -> None:
        self.clean_text = clean_text
        self.handle_chinese_chars = handle_chinese_chars
        self.strip_accents = lowercase if strip_accents is None else strip_accents
        self.lowercase = lowercase

    def normalize_str(self, text: str) -> str:
        if self.clean_text:
            text = "".join(
                " " if _is_whitespace(ch) else ch
                for ch in text
                if not (ch == "\x00" or ch == "\ufffd" or _is_control(ch))
            )
        if self.handle_chinese_chars:
            text = "".join(f" {ch} " if _is_chinese_char(ch) else ch for ch in text)
        if self.strip_accents:
            text = "".join(
                ch for ch in unicodedata.normalize("NFD", text)
                if unicodedata.category(ch) != "Mn"
            )
        if self.lowercase:
            text = text.lower()
        return text


def _is_whitespace(ch: str) -> bool:
    if ch in " \t\n\r":
        return True
    return unicodedata.category(ch) == "Zs"


def _is_control(ch: str) -> bool:
    if ch in "\t\n\r":
        return False
    return unicodedata.category(ch) in ("Cc", "Cf")


def _is_chinese_char(ch: str) -> bool:
    cp = ord(ch)
    return (
        0x4E00 <= cp <= 0x9FFF
        or 0x3400 <= cp <= 0x4DBF
        or 0x20000 <= cp <= 0x2A6DF
        or 0x2A700 <= cp <= 0x2B73F
        or 0x2B740 <= cp <= 0x2B81F
        or 0x2B820 <= cp <= 0x2CEAF
        or 0xF900 <= cp <= 0xFAFF
        or 0x2F800 <= cp <= 0x2FA1F
    )


class ReplaceNormalizer(Normalizer):
    """Replace every match of *pattern* with *content*.

    *pattern* is a literal string unless ``is_regex`` is set.
    """

    def __init__(self, pattern: str, content: str, is_regex: bool = False) -> None:
        self.pattern = regex.compile(pattern if is_regex else regex.escape(pattern))
        self.content = content

    def normalize_str(self, text: str) -> str:
        return self.pattern.sub(lambda _: self.content, text)


class PrependNormalizer(Normalizer):
    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def normalize_str(self, text: str) -> str:
        return self.prefix + text if text else text


class AppendNormalizer(Normalizer):
    def __init__(self, suffix: str) -> None:
        self.suffix = suffix

    def normalize_str(self, text: str) -> str:
        return text + self.suffix if text else text


class SequenceNormalizer(Normalizer):
    def __init__(self, *normalizers: Normalizer) -> None:
        self.normalizers = list(normalizers)

    def normalize_str(self, text: str) -> str:
        for normalizer in self.normalizers:
            text = normalizer.normalize_str(text)
        return text
