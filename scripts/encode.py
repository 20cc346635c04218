"""Encode text (or decode ids) with a tokenizer file and print JSON.

Usage:
    python -m scripts.encode tokenizer.json "Hello, world!"
    python -m scripts.encode tokenizer.json "question" --pair "context" --max-length 32
    python -m scripts.encode --config configs/pipeline.yaml "Hello" "World"
    python -m scripts.encode tokenizer.json --decode 15496 11 995
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tokenforge.config import PipelineConfig
from tokenforge.encoding import Encoding


def _encoding_to_dict(encoding: Encoding) -> dict:
    return {
        "ids": list(encoding.ids),
        "attention_mask": list(encoding.attention_mask),
        "type_ids": list(encoding.type_ids),
        "overflowing": [list(e.ids) for e in encoding.overflowing],
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Encode or decode with a tokenizer.json")
    parser.add_argument("inputs", nargs="*", help="Tokenizer file followed by texts (or ids with --decode)")
    parser.add_argument("--config", default=None, help="PipelineConfig YAML instead of a tokenizer file")
    parser.add_argument("--pair", default=None, help="Second sequence for pair encoding")
    parser.add_argument("--max-length", type=int, default=None, help="Enable truncation")
    parser.add_argument("--stride", type=int, default=0, help="Overflow window overlap")
    parser.add_argument("--pad", action="store_true", help="Pad the batch to its longest sequence")
    parser.add_argument("--no-special-tokens", action="store_true", help="Do not add template tokens")
    parser.add_argument("--decode", action="store_true", help="Treat inputs as ids and decode them")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    inputs = list(args.inputs)
    if args.config:
        config = PipelineConfig.from_yaml(args.config)
    else:
        if not inputs:
            parser.error("a tokenizer file or --config is required")
        config = PipelineConfig(tokenizer_path=Path(inputs.pop(0)))
    if args.max_length is not None:
        config.max_length = args.max_length
        config.stride = args.stride
    if args.pad:
        config.padding = True
    config.__post_init__()
    tokenizer = config.build()

    if args.decode:
        text = tokenizer.decode([int(i) for i in inputs], skip_special_tokens=args.no_special_tokens)
        print(json.dumps({"text": text}, ensure_ascii=False))
        return

    texts = inputs or [sys.stdin.read()]
    add_special = not args.no_special_tokens
    batch = [(t, args.pair) for t in texts] if args.pair is not None else texts
    encodings = tokenizer.encode_batch(batch, add_special_tokens=add_special)
    print(json.dumps([_encoding_to_dict(e) for e in encodings], indent=2))


if __name__ == "__main__":
    main()
