"""Text helpers: tokenizing and pluggable term normalization."""

from __future__ import annotations

import re
from typing import Iterator, Protocol

from nltk.stem import PorterStemmer

_NON_ALPHA = re.compile(r"[^a-zA-Z]+")


def tokenize(text: str) -> Iterator[str]:
    """Split raw text on whitespace."""
    return iter(text.split())


def sanitize_term(token: str) -> str:
    """Strip every character outside ``[a-zA-Z]``.

    Terms end up inside SQL statements, so index time and query time must
    agree on this exact filter.
    """
    return _NON_ALPHA.sub("", token)


class Normalizer(Protocol):
    """Maps a raw token to a canonical term, or ``None`` when it has none."""

    name: str

    def normalize(self, token: str) -> str | None: ...


class IdentityNormalizer:
    """Keeps the token as written, minus non-letters."""

    name = "identity"

    def normalize(self, token: str) -> str | None:
        term = sanitize_term(token)
        return term or None


class StemmingNormalizer:
    """Lowercases and reduces tokens to their Porter stem."""

    name = "stem"

    def __init__(self) -> None:
        self._stemmer = PorterStemmer()

    def normalize(self, token: str) -> str | None:
        word = sanitize_term(token)
        if not word:
            return None
        term = sanitize_term(self._stemmer.stem(word))
        return term or None


NORMALIZERS: dict[str, type] = {
    IdentityNormalizer.name: IdentityNormalizer,
    StemmingNormalizer.name: StemmingNormalizer,
}


def get_normalizer(name: str) -> Normalizer:
    """Build the normalizer registered under ``name``."""
    try:
        factory = NORMALIZERS[name]
    except KeyError:
        choices = ", ".join(sorted(NORMALIZERS))
        raise ValueError(f"Unknown normalizer '{name}' (choose from: {choices})") from None
    return factory()
