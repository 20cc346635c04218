"""tokenforge: byte-level BPE and WordPiece tokenization in pure Python.

Loads HuggingFace-format ``tokenizer.json`` files and runs the full
pipeline (added tokens, normalization, pre-tokenization, BPE or WordPiece,
truncation with overflow, template post-processing, padding and
decoding) without native extensions.  Training a new vocabulary is
available through :mod:`tokenforge.training` with the ``train`` extra.
"""

from __future__ import annotations

from .added_tokens import AddedToken, AddedVocabulary
from .bpe import BpeModel
from .config import PipelineConfig, TrainingConfig
from .encoding import Encoding, stack_encodings
from .loader import load_pipeline, pipeline_from_dict
from .pipeline import TokenizationPipeline
from .text_view import TextView
from .tokenizer import Tokenizer
from .validation import ValidationReport, validate_tokenizer
from .vocabulary import TokenDefinition, Vocabulary, VocabularyBuilder
from .wordpiece import WordPieceModel

__all__ = [
    "AddedToken",
    "AddedVocabulary",
    "BpeModel",
    "Encoding",
    "PipelineConfig",
    "TextView",
    "TokenDefinition",
    "TokenizationPipeline",
    "Tokenizer",
    "TrainingConfig",
    "ValidationReport",
    "Vocabulary",
    "VocabularyBuilder",
    "WordPieceModel",
    "load_pipeline",
    "pipeline_from_dict",
    "stack_encodings",
    "validate_tokenizer",
]

__version__ = "0.1.0"
