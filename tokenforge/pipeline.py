"""The end-to-end tokenization pipeline.

Encoding runs, per input::

    added tokens -> normalizer -> pre-tokenizer -> BPE model
        -> truncator -> post-processor -> padding -> Encoding

and decoding runs ``ids -> token values -> decoder -> text``.  Every
stage is pluggable; a missing stage falls back to its pass-through
implementation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .added_tokens import AddedToken, AddedVocabulary
from .bpe import BpeModel
from .decoders import Decoder, DefaultDecoder
from .encoding import Encoding
from .normalizers import NoopNormalizer, Normalizer
from .padding import DefaultPadding, Padding
from .post_processors import DefaultPostProcessor, PostProcessor
from .pre_tokenizers import DefaultPreTokenizer, PreTokenizer
from .text_view import TextView
from .truncation import DefaultTruncator, Truncator
from .vocabulary import Vocabulary
from .wordpiece import WordPieceModel

logger = logging.getLogger("tokenforge.pipeline")

EncodeInput = str | tuple[str, str | None]
Model = BpeModel | WordPieceModel


class TokenizationPipeline:
    """Composes the pipeline stages around a BPE or WordPiece model.

    When *added_tokens* is omitted, every special token of the model's
    vocabulary is matched verbatim in the raw input.

    Encoding reuses scratch storage inside the model, so a pipeline must
    not be used from several threads at once.
    """

    def __init__(
        self,
        model: Model,
        normalizer: Normalizer | None = None,
        pre_tokenizer: PreTokenizer | None = None,
        post_processor: PostProcessor | None = None,
        truncator: Truncator | None = None,
        padding: Padding | None = None,
        decoder: Decoder | None = None,
        added_tokens: AddedVocabulary | None = None,
    ) -> None:
        self.model = model
        self.normalizer = normalizer or NoopNormalizer()
        self.pre_tokenizer = pre_tokenizer or DefaultPreTokenizer()
        self.post_processor = post_processor or DefaultPostProcessor()
        self.truncator = truncator or DefaultTruncator()
        self.padding = padding or DefaultPadding()
        self.decoder = decoder or DefaultDecoder()
        if added_tokens is None:
            added_tokens = AddedVocabulary(
                AddedToken(d.key, d.id, special=True) for d in model.vocabulary.special_tokens()
            )
        self.added_tokens = added_tokens

        logger.debug(
            "Pipeline: normalizer=%s pre_tokenizer=%s post_processor=%s "
            "truncator=%s padding=%s decoder=%s added_tokens=%d",
            type(self.normalizer).__name__,
            type(self.pre_tokenizer).__name__,
            type(self.post_processor).__name__,
            type(self.truncator).__name__,
            type(self.padding).__name__,
            type(self.decoder).__name__,
            len(self.added_tokens),
        )

    @property
    def vocabulary(self) -> Vocabulary:
        return self.model.vocabulary

    def replace(self, **components) -> TokenizationPipeline:
        """New pipeline with some stages swapped; the rest are shared."""
        current = {
            "model": self.model,
            "normalizer": self.normalizer,
            "pre_tokenizer": self.pre_tokenizer,
            "post_processor": self.post_processor,
            "truncator": self.truncator,
            "padding": self.padding,
            "decoder": self.decoder,
            "added_tokens": self.added_tokens,
        }
        unknown = set(components) - set(current)
        if unknown:
            raise TypeError(f"Unknown pipeline components: {sorted(unknown)}")
        current.update(components)
        return TokenizationPipeline(**current)

    # ── Encode ─────────────────────────────────────────────────────

    def tokenize(self, text: str | TextView) -> list[int]:
        """Model ids for *text*, before truncation and post-processing."""
        ids: list[int] = []
        for segment, token in self.added_tokens.split(text, self.normalizer):
            if token is not None:
                ids.append(token.id)
            else:
                ids.extend(self.model.tokenize(self.pre_tokenizer.pre_tokenize(segment)))
        return ids

    def _encode_windows(
        self,
        text_a: str,
        text_b: str | None,
        add_special_tokens: bool,
    ) -> list[tuple[list[int], list[int]]]:
        ids_a = self.tokenize(text_a)
        ids_b = None if text_b is None else self.tokenize(text_b)
        num_added = (
            self.post_processor.num_added_tokens(ids_b is not None) if add_special_tokens else 0
        )
        windows_a, windows_b = self.truncator.truncate(ids_a, ids_b, num_added)
        return self.post_processor.post_process(windows_a, windows_b, add_special_tokens)

    def _assemble(self, batch: Sequence[list[tuple[list[int], list[int]]]]) -> list[Encoding]:
        flat = [window for windows in batch for window in windows]
        padded = self.padding.pad([ids for ids, _ in flat], [types for _, types in flat])
        encodings = []
        cursor = 0
        for windows in batch:
            parts = padded[cursor:cursor + len(windows)]
            cursor += len(windows)
            encodings.append(Encoding.chain(parts))
        return encodings

    def encode(
        self,
        text_a: str,
        text_b: str | None = None,
        add_special_tokens: bool = True,
    ) -> Encoding:
        return self._assemble([self._encode_windows(text_a, text_b, add_special_tokens)])[0]

    def encode_batch(
        self,
        inputs: Iterable[EncodeInput],
        add_special_tokens: bool = True,
    ) -> list[Encoding]:
        """Encode several inputs; padding targets the whole batch.

        Each input is a string or an ``(a, b)`` pair.
        """
        batch = []
        for item in inputs:
            if isinstance(item, str):
                batch.append(self._encode_windows(item, None, add_special_tokens))
            else:
                text_a, text_b = item
                batch.append(self._encode_windows(text_a, text_b, add_special_tokens))
        if not batch:
            return []
        return self._assemble(batch)

    # ── Decode ─────────────────────────────────────────────────────

    def decode(self, ids: Iterable[int], skip_special_tokens: bool = False) -> str:
        """Text for *ids*; ids missing from the vocabulary are skipped."""
        return self.decoder.decode(self.model.detokenize(ids, skip_special_tokens))

    def decode_batch(
        self,
        id_lists: Iterable[Iterable[int]],
        skip_special_tokens: bool = False,
    ) -> list[str]:
        return [self.decode(ids, skip_special_tokens) for ids in id_lists]
