"""Token counting strategies used by the chunker and the extractors.

Two implementations:

- :class:`HeuristicTokenCounter` counts word runs and individual
  punctuation marks.  Deterministic, offline, and additive over
  whitespace-joined text, which keeps chunk budgets exact.
- :class:`HuggingFaceTokenCounter` loads a fast tokenizer from the
  ``tokenizers`` library for counts that match a specific model.

:func:`build_token_counter` picks one from the ``tokenizer_name`` setting.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

import structlog
from tokenizers import Tokenizer

from docrag.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

_TOKEN_RE = re.compile(r"\w+|[^\w\s]")


class TokenCounter(ABC):
    """Counts tokens in a string."""

    @abstractmethod
    def count(self, text: str) -> int:
        """Return the number of tokens in *text* (0 for blank text)."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier logged with chunking results."""


class HeuristicTokenCounter(TokenCounter):
    """Counts ``\\w+`` runs and single punctuation characters."""

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(_TOKEN_RE.findall(text))

    @property
    def name(self) -> str:
        return "heuristic"


class HuggingFaceTokenCounter(TokenCounter):
    """Counts tokens with a Hugging Face fast tokenizer.

    Special tokens (``[CLS]``, ``</s>`` ...) are excluded so counts of
    concatenated pieces stay close to the sum of their parts.
    """

    def __init__(self, tokenizer_name: str) -> None:
        try:
            self._tokenizer = Tokenizer.from_pretrained(tokenizer_name)
        except Exception as exc:
            raise ConfigurationError(
                message=f"Could not load tokenizer {tokenizer_name!r}: {exc}",
                provider_name="tokenizers",
            ) from exc
        self._name = tokenizer_name
        logger.info("tokenizer_loaded", tokenizer=tokenizer_name)

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(self._tokenizer.encode(text, add_special_tokens=False).ids)

    @property
    def name(self) -> str:
        return self._name


def build_token_counter(tokenizer_name: str = "") -> TokenCounter:
    """Return the counter selected by *tokenizer_name* (empty = heuristic)."""
    if tokenizer_name:
        return HuggingFaceTokenCounter(tokenizer_name)
    return HeuristicTokenCounter()
