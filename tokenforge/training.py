"""Vocabulary training using HuggingFace tokenizers.

Learns a byte-level BPE vocabulary and merge list with the ``tokenizers``
trainer, saves it as a single ``tokenizer.json`` file and loads the
result back through :mod:`tokenforge.loader`, so every trained file is
guaranteed to be consumable by the pure-Python pipeline.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

from tokenizers import Regex, models, trainers
from tokenizers import Tokenizer as HFTokenizer
from tokenizers.decoders import ByteLevel as ByteLevelDecoder
from tokenizers.pre_tokenizers import ByteLevel, Sequence, Split
from tokenizers.processors import TemplateProcessing

from .config import TrainingConfig
from .tokenizer import Tokenizer

logger = logging.getLogger("tokenforge.training")


def build_trainer_pipeline(
    config: TrainingConfig,
) -> tuple[HFTokenizer, trainers.BpeTrainer]:
    """Construct the tokenizer and trainer objects (before training).

    The pre-tokenizer is a two-stage sequence:

    1. **Split** with ``config.split_pattern``.  ``behavior="isolated"``
       keeps merges from crossing segment boundaries.
    2. **ByteLevel** maps every byte to a visible character so the BPE
       operates on a closed 256-symbol alphabet with no unknown token.

    Special tokens are handed to the trainer, which places them at the
    start of the vocabulary in the order given.

    Returns
    -------
    tuple[HFTokenizer, BpeTrainer]
        Ready to call ``tokenizer.train(files=..., trainer=trainer)``.
    """
    tokenizer = HFTokenizer(models.BPE())

    tokenizer.pre_tokenizer = Sequence(
        [
            Split(pattern=Regex(config.split_pattern), behavior="isolated"),
            ByteLevel(
                add_prefix_space=config.add_prefix_space,
                trim_offsets=True,
                use_regex=False,
            ),
        ]
    )
    tokenizer.decoder = ByteLevelDecoder()

    trainer = trainers.BpeTrainer(
        vocab_size=config.vocab_size,
        min_frequency=config.min_frequency,
        show_progress=config.show_progress,
        initial_alphabet=ByteLevel.alphabet(),
        special_tokens=list(config.special_tokens),
    )
    return tokenizer, trainer


def _configure_post_training(tokenizer: HFTokenizer, config: TrainingConfig) -> None:
    """Wrap sequences in the configured BOS / EOS tokens.

    Nothing is set when neither token is configured.  Truncation and
    padding are left to :class:`~tokenforge.config.PipelineConfig`
    because they depend on the consumer, not on the vocabulary.
    """
    bos, eos = config.bos_token, config.eos_token
    if bos is None and eos is None:
        return
    head = f"{bos} " if bos else ""
    tail = f" {eos}" if eos else ""
    specials = [(t, tokenizer.token_to_id(t)) for t in (bos, eos) if t]
    tokenizer.post_processor = TemplateProcessing(
        single=f"{head}$A{tail}",
        pair=f"{head}$A{tail} $B:1{tail}:1" if eos else f"{head}$A $B:1",
        special_tokens=specials,
    )


def _save_tokenizer(tokenizer: HFTokenizer, config: TrainingConfig) -> Path:
    """Atomically save tokenizer to disk (temp file + rename)."""
    config.output_dir.mkdir(parents=True, exist_ok=True)
    output_path = config.output_path
    fd, tmp_path = tempfile.mkstemp(dir=str(config.output_dir), suffix=".tmp")
    try:
        os.close(fd)
        tokenizer.save(tmp_path)
        Path(tmp_path).replace(output_path)
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise
    return output_path


def _finish(tokenizer: HFTokenizer, config: TrainingConfig) -> Tokenizer:
    _configure_post_training(tokenizer, config)
    path = _save_tokenizer(tokenizer, config)
    logger.info("Saved %d-token vocabulary to %s", tokenizer.get_vocab_size(), path)
    return Tokenizer.from_file(path)


def train_tokenizer(
    config: TrainingConfig,
    corpus_files: list[Path] | None = None,
) -> Tokenizer:
    """Full training pipeline: build -> train on files -> save -> load.

    Parameters
    ----------
    config
        Training configuration (vocab size, output path, etc.).
    corpus_files
        Override for ``config.corpus_paths``.

    Returns
    -------
    Tokenizer
        The trained vocabulary, loaded into a tokenforge pipeline.
    """
    tokenizer, trainer = build_trainer_pipeline(config)

    files = corpus_files if corpus_files is not None else config.corpus_paths
    if not files:
        raise ValueError(
            "No corpus files provided.  Pass corpus_files or set "
            "config.corpus_paths before calling train_tokenizer()."
        )

    logger.info("Training BPE (vocab_size=%d) on %d files", config.vocab_size, len(files))
    tokenizer.train(files=[str(p) for p in files], trainer=trainer)
    return _finish(tokenizer, config)


def train_tokenizer_from_iterator(
    config: TrainingConfig,
    iterator: Iterator[str],
    length: int | None = None,
) -> Tokenizer:
    """Full training pipeline using a text iterator.

    Parameters
    ----------
    config
        Training configuration (vocab size, output path, etc.).
    iterator
        Yields text strings for BPE training.
    length
        Optional hint for the progress bar (total number of items).
    """
    tokenizer, trainer = build_trainer_pipeline(config)
    logger.info("Training BPE (vocab_size=%d) from an iterator", config.vocab_size)
    tokenizer.train_from_iterator(iterator, trainer=trainer, length=length)
    return _finish(tokenizer, config)
