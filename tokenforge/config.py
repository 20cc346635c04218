"""Configuration dataclasses for building and training tokenizers.

Both dataclasses validate in ``__post_init__`` so misconfigurations are
caught before a tokenizer file is read or a corpus is scanned, and both
round-trip through YAML.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from .constants import (
    BOS_TOKEN,
    BYTE_ALPHABET_SIZE,
    DEFAULT_VOCAB_SIZE,
    EOS_TOKEN,
    GPT4_SPLIT_PATTERN,
    PAD_TOKEN,
    SPECIAL_TOKENS,
)

if TYPE_CHECKING:
    from .tokenizer import Tokenizer

_DIRECTIONS = ("right", "left")
_STRATEGIES = ("longest_first", "only_first", "only_second")


def _load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a YAML mapping, got {type(data).__name__}")
    return data


def _dump_yaml(data: dict[str, Any], path: str | Path) -> None:
    plain = {k: str(v) if isinstance(v, Path) else v for k, v in data.items()}
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(plain, f, default_flow_style=False, sort_keys=False)


def _check_keys(cls: type, data: dict[str, Any]) -> None:
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {sorted(unknown)}")


@dataclass
class PipelineConfig:
    """How to load a tokenizer file and which truncation / padding to apply."""

    # ── Source ─────────────────────────────────────────────────────
    tokenizer_path: Path | None = None

    # ── Truncation ─────────────────────────────────────────────────
    max_length: int | None = None  # None disables truncation
    stride: int = 0
    truncation_strategy: str = "longest_first"
    truncation_direction: str = "right"

    # ── Padding ────────────────────────────────────────────────────
    padding: bool = False
    pad_token: str = PAD_TOKEN
    pad_length: int | None = None  # None pads to the batch's longest
    pad_to_multiple_of: int | None = None
    padding_direction: str = "right"

    def __post_init__(self) -> None:
        if self.tokenizer_path is not None:
            self.tokenizer_path = Path(self.tokenizer_path)
        if self.max_length is not None:
            if self.max_length <= 0:
                raise ValueError(f"max_length must be > 0, got {self.max_length}")
            if not 0 <= self.stride < self.max_length:
                raise ValueError(
                    f"stride must be in [0, max_length), got {self.stride} "
                    f"with max_length {self.max_length}"
                )
        if self.truncation_strategy not in _STRATEGIES:
            raise ValueError(
                f"truncation_strategy must be one of {_STRATEGIES}, "
                f"got {self.truncation_strategy!r}"
            )
        for name in ("truncation_direction", "padding_direction"):
            if getattr(self, name) not in _DIRECTIONS:
                raise ValueError(
                    f"{name} must be one of {_DIRECTIONS}, got {getattr(self, name)!r}"
                )
        if self.pad_length is not None and self.pad_length <= 0:
            raise ValueError(f"pad_length must be > 0, got {self.pad_length}")
        if self.pad_to_multiple_of is not None and self.pad_to_multiple_of <= 0:
            raise ValueError(f"pad_to_multiple_of must be > 0, got {self.pad_to_multiple_of}")

    @classmethod
    def from_yaml(cls, path: str | Path) -> PipelineConfig:
        data = _load_yaml(path)
        _check_keys(cls, data)
        return cls(**data)

    def to_yaml(self, path: str | Path) -> None:
        _dump_yaml(asdict(self), path)

    def apply(self, tokenizer: Tokenizer) -> Tokenizer:
        """Configure truncation and padding on *tokenizer* in place."""
        if self.max_length is not None:
            tokenizer.enable_truncation(
                self.max_length,
                stride=self.stride,
                strategy=self.truncation_strategy,
                direction=self.truncation_direction,
            )
        if self.padding:
            tokenizer.enable_padding(
                pad_token=self.pad_token,
                length=self.pad_length,
                pad_to_multiple_of=self.pad_to_multiple_of,
                direction=self.padding_direction,
            )
        return tokenizer

    def build(self) -> Tokenizer:
        """Load ``tokenizer_path`` and apply this configuration."""
        from .tokenizer import Tokenizer

        if self.tokenizer_path is None:
            raise ValueError("PipelineConfig.tokenizer_path is not set")
        return self.apply(Tokenizer.from_file(self.tokenizer_path))


@dataclass
class TrainingConfig:
    """Configuration for learning a byte-level BPE vocabulary."""

    # ── Vocabulary ─────────────────────────────────────────────────
    vocab_size: int = DEFAULT_VOCAB_SIZE
    special_tokens: list[str] = field(default_factory=lambda: list(SPECIAL_TOKENS))
    min_frequency: int = 2

    # ── Training corpus ────────────────────────────────────────────
    corpus_paths: list[Path] = field(default_factory=list)

    # ── BPE algorithm ──────────────────────────────────────────────
    split_pattern: str = GPT4_SPLIT_PATTERN
    add_prefix_space: bool = False
    show_progress: bool = True

    # ── Post-processing ────────────────────────────────────────────
    bos_token: str | None = BOS_TOKEN
    eos_token: str | None = EOS_TOKEN

    # ── Output ─────────────────────────────────────────────────────
    output_dir: Path = Path("tokenizer_output")
    tokenizer_filename: str = "tokenizer.json"

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir)
        self.corpus_paths = [Path(p) for p in self.corpus_paths]
        minimum = BYTE_ALPHABET_SIZE + len(self.special_tokens)
        if self.vocab_size < minimum:
            raise ValueError(
                f"vocab_size ({self.vocab_size}) must be at least {minimum} "
                f"({BYTE_ALPHABET_SIZE} byte symbols + {len(self.special_tokens)} special tokens)"
            )
        if len(set(self.special_tokens)) != len(self.special_tokens):
            raise ValueError(f"special_tokens contains duplicates: {self.special_tokens}")
        if self.min_frequency < 1:
            raise ValueError(f"min_frequency must be >= 1, got {self.min_frequency}")
        for name in ("bos_token", "eos_token"):
            token = getattr(self, name)
            if token is not None and token not in self.special_tokens:
                raise ValueError(f"{name} {token!r} must be one of special_tokens")

    @property
    def output_path(self) -> Path:
        return self.output_dir / self.tokenizer_filename

    @classmethod
    def from_yaml(cls, path: str | Path) -> TrainingConfig:
        data = _load_yaml(path)
        _check_keys(cls, data)
        return cls(**data)

    def to_yaml(self, path: str | Path) -> None:
        data = asdict(self)
        data["corpus_paths"] = [str(p) for p in self.corpus_paths]
        _dump_yaml(data, path)
