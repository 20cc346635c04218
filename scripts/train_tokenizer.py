"""Train a byte-level BPE vocabulary from local text files.

Trains with the HuggingFace ``tokenizers`` trainer, saves a
``tokenizer.json`` and reloads it through the tokenforge pipeline for
validation.

Usage:
    python -m scripts.train_tokenizer data/corpus/
    python -m scripts.train_tokenizer corpus.txt --vocab-size 8000 -o tok/
    python -m scripts.train_tokenizer --config configs/training.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tokenforge.config import TrainingConfig
from tokenforge.training import train_tokenizer
from tokenforge.validation import validate_tokenizer

TEXT_EXTENSIONS = {".txt", ".md", ".py", ".js", ".ts", ".java", ".c", ".h", ".cpp", ".go", ".rs"}


def collect_files(paths: list[str]) -> list[Path]:
    files: list[Path] = []
    for path_str in paths:
        path = Path(path_str)
        if path.is_file():
            files.append(path)
        elif path.is_dir():
            files.extend(sorted(p for p in path.rglob("*") if p.suffix in TEXT_EXTENSIONS))
    return files


def main() -> None:
    parser = argparse.ArgumentParser(description="Train a byte-level BPE tokenizer")
    parser.add_argument("corpus", nargs="*", help="Text files or directories to train on")
    parser.add_argument("--config", default=None, help="TrainingConfig YAML file")
    parser.add_argument("--output", "-o", default=None, help="Output directory")
    parser.add_argument("--vocab-size", type=int, default=None, help="Target vocabulary size")
    parser.add_argument("--min-frequency", type=int, default=None, help="Minimum merge frequency")
    parser.add_argument("--skip-validation", action="store_true", help="Skip post-training validation")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    config = TrainingConfig.from_yaml(args.config) if args.config else TrainingConfig()
    if args.output is not None:
        config.output_dir = Path(args.output)
    if args.vocab_size is not None:
        config.vocab_size = args.vocab_size
    if args.min_frequency is not None:
        config.min_frequency = args.min_frequency
    config.__post_init__()

    files = collect_files(args.corpus) if args.corpus else config.corpus_paths
    if not files:
        print("ERROR: no corpus files found")
        sys.exit(1)

    print("=" * 60)
    print("Tokenizer Training")
    print("=" * 60)
    print(f"  Vocab size:     {config.vocab_size:,}")
    print(f"  Special tokens: {', '.join(config.special_tokens)}")
    print(f"  Min frequency:  {config.min_frequency}")
    print(f"  Corpus files:   {len(files):,}")
    print(f"  Output:         {config.output_path}")
    print()

    t_start = time.time()
    tokenizer = train_tokenizer(config, corpus_files=files)
    print(f"\nTraining complete in {time.time() - t_start:.1f}s")
    print(f"Saved to: {config.output_path}")

    if not args.skip_validation:
        print("\n" + "=" * 60)
        print("Validation")
        print("=" * 60)
        sample = files[0].read_text(encoding="utf-8", errors="replace")[:20_000]
        report = validate_tokenizer(tokenizer, validation_texts={files[0].name: sample})
        print(report.summary())

        demo = "Hello, world! Tokenizers split text into pieces."
        encoding = tokenizer.encode(demo)
        print(f"\nInput:   {demo!r}")
        print(f"Tokens:  {tokenizer.convert_ids_to_tokens(list(encoding.ids))}")
        print(f"Decoded: {tokenizer.decode(list(encoding.ids), skip_special_tokens=True)!r}")

    print(f"\nTotal time: {time.time() - t_start:.1f}s")


if __name__ == "__main__":
    main()
