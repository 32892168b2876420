"""Turns one file into a document term count."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from termfinder.models import Document
from termfinder.utils.files import normalize_document_path
from termfinder.utils.text import Normalizer, tokenize

LOGGER = logging.getLogger(__name__)


def count_terms(text: str, normalizer: Normalizer) -> Counter[str]:
    counts: Counter[str] = Counter()
    for token in tokenize(text):
        term = normalizer.normalize(token)
        # Tokens without a canonical form are dropped, never stored as ""
        if term:
            counts[term] += 1
    return counts


def process_file(path: Path, normalizer: Normalizer) -> Document | None:
    """Read ``path`` and count its normalized terms.

    Returns ``None`` when the file cannot be read or decoded.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.debug("Skipping unreadable file %s: %s", path, exc)
        return None
    return Document(name=normalize_document_path(path), terms=dict(count_terms(text, normalizer)))
