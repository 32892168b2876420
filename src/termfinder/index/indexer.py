"""Document indexing pipeline."""

from __future__ import annotations

import logging
import multiprocessing
import os
import sqlite3
import threading
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Sequence

from termfinder.index.processor import process_file
from termfinder.index.storage import SQLiteTermStore
from termfinder.models import Document
from termfinder.utils.files import iter_text_paths
from termfinder.utils.text import Normalizer

LOGGER = logging.getLogger(__name__)


def find_documents(root: Path, extensions: Sequence[str] = ()) -> list[Path]:
    """Find all indexable files under ``root``."""
    return list(iter_text_paths([root], extensions))


class CorpusAccumulator:
    """Corpus-wide term counts, merged one document at a time."""

    def __init__(self) -> None:
        self._terms: Dict[str, int] = {}
        self._lock = threading.Lock()

    def add(self, document: Document) -> None:
        with self._lock:
            for term, frequency in document.terms.items():
                self._terms[term] = self._terms.get(term, 0) + frequency

    def merge(self, other: CorpusAccumulator) -> CorpusAccumulator:
        """Fold ``other`` into this accumulator and return it."""
        counts = other.snapshot()
        with self._lock:
            for term, frequency in counts.items():
                self._terms[term] = self._terms.get(term, 0) + frequency
        return self

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._terms)


@dataclass(slots=True)
class IndexReport:
    indexed: int = 0
    skipped: int = 0
    discovered: int = 0
    corpus_saved: bool = True
    failed: list[Path] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_success(self) -> None:
        with self._lock:
            self.indexed += 1

    def record_skip(self) -> None:
        with self._lock:
            self.skipped += 1

    def record_failure(self, path: Path) -> None:
        with self._lock:
            self.failed.append(path)


class Indexer:
    """Coordinates document processing and persistence."""

    def __init__(
        self,
        store: SQLiteTermStore,
        normalizer: Normalizer,
        *,
        workers: int | None = None,
        extensions: Sequence[str] = (),
    ) -> None:
        self.store = store
        self.normalizer = normalizer
        self.workers = workers or os.cpu_count() or 4
        self.extensions = tuple(extensions)

    def index(self, root: Path) -> IndexReport:
        """Index every file found under ``root``.

        Files are tokenized in a process pool; merging into the corpus and
        writes to the store happen here as results arrive.
        """
        paths = find_documents(Path(root), self.extensions)
        report = IndexReport(discovered=len(paths))
        corpus = CorpusAccumulator()

        if paths:
            LOGGER.info("Indexing %d files with %d workers", len(paths), self.workers)
            # workers must see the current directory at the time of this run
            context = multiprocessing.get_context("spawn")
            with ProcessPoolExecutor(max_workers=self.workers, mp_context=context) as executor:
                futures = {
                    executor.submit(process_file, path, self.normalizer): path for path in paths
                }
                for future in as_completed(futures):
                    self._store_document(futures[future], future.result(), corpus, report)
        else:
            LOGGER.warning("No files found under %s", root)

        try:
            self.store.replace_corpus_terms(corpus.snapshot())
            self.store.set_meta("normalizer", self.normalizer.name)
        except sqlite3.Error as exc:
            LOGGER.error("Failed to save corpus terms: %s", exc)
            report.corpus_saved = False

        return report

    def _store_document(
        self,
        path: Path,
        document: Document | None,
        corpus: CorpusAccumulator,
        report: IndexReport,
    ) -> None:
        if document is None:
            report.record_skip()
            return

        corpus.add(document)
        try:
            self.store.upsert_document(document)
        except sqlite3.Error as exc:
            LOGGER.error("Failed to store %s: %s", path, exc)
            report.record_failure(path)
            return

        report.record_success()
        LOGGER.debug("Indexed %s (%d distinct terms)", document.name, document.size)
