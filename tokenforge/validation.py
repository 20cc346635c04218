"""Post-training validation for a tokenizer.

Checks compression ratio, roundtrip fidelity and which strings encode
to a single token.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .tokenizer import Tokenizer

# ── Default probes ─────────────────────────────────────────────────
ROUNDTRIP_SAMPLES: list[str] = [
    "Hello, world!",
    "    if x == 0:\n        return None\n",
    "naïve café – ünïcödé ✓",
    "数学 and 日本語",
    "emoji 🎉 and tabs\tand\nnewlines",
    "  \t  \n\n  ",
    "x = 3.14159265358979323846",
]

SINGLE_TOKEN_PROBES: list[str] = [" the", " and", "    ", "\n", " ="]


@dataclass
class ValidationReport:
    """Tokenizer validation results."""

    vocab_size: int = 0

    # Compression
    compression_ratio: float = 0.0
    compression_by_name: dict[str, float] = field(default_factory=dict)

    # Roundtrip
    roundtrip_ok: bool = True
    roundtrip_failures: list[str] = field(default_factory=list)

    # Single tokens
    single_tokens: dict[str, bool] = field(default_factory=dict)

    def summary(self) -> str:
        lines = [
            f"Vocab size: {self.vocab_size}",
            f"Compression ratio: {self.compression_ratio:.2f} bytes/token",
            f"Roundtrip fidelity: {self.roundtrip_ok} "
            f"({len(self.roundtrip_failures)} failures)",
        ]
        for name, ratio in self.compression_by_name.items():
            lines.append(f"  {name}: {ratio:.2f} bytes/token")
        for failure in self.roundtrip_failures:
            lines.append(f"  {failure}")
        if self.single_tokens:
            lines.append("Single-token probes:")
            for text, ok in self.single_tokens.items():
                lines.append(f"  {text!r}: {'single token' if ok else 'MULTI-TOKEN'}")
        return "\n".join(lines)


# ── Individual check functions ─────────────────────────────────────


def compute_compression_ratio(tokenizer: Tokenizer, text: str) -> float:
    """Compute bytes-per-token for *text* (special tokens excluded)."""
    encoded = tokenizer.encode(text, add_special_tokens=False)
    n_tokens = len(encoded.ids)
    if n_tokens == 0:
        return 0.0
    return len(text.encode("utf-8")) / n_tokens


def check_roundtrip(
    tokenizer: Tokenizer,
    samples: Iterable[str],
) -> tuple[bool, list[str]]:
    """Verify ``decode(encode(text)) == text`` for all *samples*."""
    failures: list[str] = []
    for sample in samples:
        encoded = tokenizer.encode(sample, add_special_tokens=False)
        decoded = tokenizer.decode(list(encoded.ids))
        if decoded != sample:
            failures.append(f"MISMATCH: {sample[:60]!r} -> {decoded[:60]!r}")
    return len(failures) == 0, failures


def check_single_token(tokenizer: Tokenizer, text: str) -> bool:
    """Return True if *text* encodes to exactly one token."""
    return len(tokenizer.encode(text, add_special_tokens=False).ids) == 1


# ── Orchestrator ───────────────────────────────────────────────────


def validate_tokenizer(
    tokenizer: Tokenizer,
    validation_texts: dict[str, str] | None = None,
    roundtrip_samples: Iterable[str] | None = None,
    single_token_probes: Iterable[str] | None = None,
) -> ValidationReport:
    """Run the validation suite.

    Parameters
    ----------
    tokenizer
        The tokenizer to check.
    validation_texts
        ``name -> text`` for per-text compression measurement.
    roundtrip_samples
        Strings for the encode/decode roundtrip; defaults to
        :data:`ROUNDTRIP_SAMPLES`.
    single_token_probes
        Strings expected to be single tokens; defaults to
        :data:`SINGLE_TOKEN_PROBES`.
    """
    report = ValidationReport(vocab_size=tokenizer.vocab_size)

    if validation_texts:
        all_text = "\n".join(validation_texts.values())
        report.compression_ratio = compute_compression_ratio(tokenizer, all_text)
        report.compression_by_name = {
            name: compute_compression_ratio(tokenizer, text)
            for name, text in validation_texts.items()
        }

    report.roundtrip_ok, report.roundtrip_failures = check_roundtrip(
        tokenizer, ROUNDTRIP_SAMPLES if roundtrip_samples is None else roundtrip_samples
    )

    probes = SINGLE_TOKEN_PROBES if single_token_probes is None else single_token_probes
    report.single_tokens = {text: check_single_token(tokenizer, text) for text in probes}
    return report
