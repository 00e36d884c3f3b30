"""Token counting for file contents and summaries."""

from __future__ import annotations

import math

import tiktoken

from manifest_sync.config import DEFAULT_ENCODING, DEFAULT_TOKENIZER, TOKENIZERS, TokensConfig

_ENCODING_CACHE: dict[str, tiktoken.Encoding] = {}


def get_encoding(name: str) -> tiktoken.Encoding:
    encoding = _ENCODING_CACHE.get(name)
    if encoding is None:
        encoding = tiktoken.get_encoding(name)
        _ENCODING_CACHE[name] = encoding
    return encoding


def heuristic_tokens(text: str) -> int:
    """Approximate tokens as one per four characters."""
    return math.ceil(len(text) / 4)


class TokenCounter:
    """Counts tokens with a tiktoken encoding or the character heuristic."""

    def __init__(
        self, tokenizer: str = DEFAULT_TOKENIZER, encoding: str = DEFAULT_ENCODING
    ) -> None:
        if tokenizer not in TOKENIZERS:
            raise ValueError(f"Unknown tokenizer: {tokenizer}")
        if tokenizer == "tiktoken" and encoding not in tiktoken.list_encoding_names():
            raise ValueError(f"Unknown tiktoken encoding: {encoding}")
        self._tokenizer = tokenizer
        self._encoding_name = encoding

    @classmethod
    def from_config(cls, config: TokensConfig) -> TokenCounter:
        return cls(tokenizer=config.tokenizer, encoding=config.encoding)

    @property
    def tokenizer(self) -> str:
        return self._tokenizer

    def count(self, text: str) -> int:
        """Return the token count of ``text``; empty text counts as zero."""
        if not text:
            return 0
        if self._tokenizer == "heuristic":
            return heuristic_tokens(text)
        return len(get_encoding(self._encoding_name).encode(text, disallowed_special=()))
