"""TF-IDF search interface."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Sequence

from termfinder.index.storage import SQLiteTermStore
from termfinder.utils.text import Normalizer

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ScoredDocument:
    document: str
    score: float


def term_frequency(frequency: int, size: int) -> float:
    """Occurrences of a term divided by the document's distinct-term count."""
    return frequency / size


def inverse_document_frequency(matching: int, total: int) -> float:
    """Return ``ln(matching / total)``.

    The ratio is taken as written, so any term missing from at least one
    document gets a negative weight and a term present everywhere gets 0.
    """
    return math.log(matching / total)


class Searcher:
    """Ranks registered documents against query terms."""

    def __init__(self, store: SQLiteTermStore, normalizer: Normalizer) -> None:
        self.store = store
        self.normalizer = normalizer

    def score(self, term: str) -> List[ScoredDocument]:
        """Score every registered document containing ``term``, best first."""
        total = self.store.document_count()
        if total == 0:
            return []

        normalized = self.normalizer.normalize(term)
        if not normalized:
            LOGGER.debug("Query term %r has no normalized form", term)
            return []

        postings = self.store.term_postings(normalized)
        if not postings:
            return []

        idf = inverse_document_frequency(len(postings), total)
        results = [
            ScoredDocument(
                document=posting.document,
                score=term_frequency(posting.frequency, posting.size) * idf,
            )
            for posting in postings
        ]
        results.sort(key=lambda result: result.score, reverse=True)
        return results

    def rank_many(self, terms: Sequence[str]) -> List[ScoredDocument]:
        """Rank the documents matching every term in ``terms``.

        Per-term scores are multiplied together. Ties keep the order of the
        first term's ranking.
        """
        if not terms:
            return []

        per_term: List[Dict[str, float]] = []
        order: List[str] = []
        for index, term in enumerate(terms):
            results = self.score(term)
            if index == 0:
                order = [result.document for result in results]
            per_term.append({result.document: result.score for result in results})

        candidates = set(per_term[0])
        for scores in per_term[1:]:
            candidates &= scores.keys()

        combined = []
        for document in order:
            if document not in candidates:
                continue
            measure = 1.0
            for scores in per_term:
                measure *= scores[document]
            combined.append(ScoredDocument(document=document, score=measure))

        combined.sort(key=lambda result: result.score, reverse=True)
        return combined

    def score_many(self, terms: Sequence[str]) -> List[str]:
        """Names of the documents matching every term, best first."""
        return [result.document for result in self.rank_many(terms)]
