"""Core TermFinder data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(slots=True)
class Document:
    """One indexed file summarized by its term counts.

    ``size`` is the number of distinct terms, not the token count; search
    uses it as the term frequency denominator.
    """

    name: str
    terms: Dict[str, int] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.terms)


@dataclass(slots=True)
class RegistryEntry:
    """Row of the document registry."""

    name: str
    size: int


@dataclass(slots=True)
class Posting:
    """Occurrences of one term in one registered document."""

    document: str
    size: int
    frequency: int
