"""Tests for SQLiteTermStore."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

import pytest

from termfinder.index.storage import SCHEMA_VERSION, SQLiteTermStore
from termfinder.models import Document, Posting, RegistryEntry
from termfinder.utils.names import legacy_table_name


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database for testing."""
    store = SQLiteTermStore(tmp_path / "test.db")
    yield store
    store.close()


def _table_names(store: SQLiteTermStore) -> set[str]:
    rows = store.connection.execute("SELECT name FROM sqlite_master WHERE type='table'")
    return {row[0] for row in rows}


class TestSQLiteTermStore:
    """Test SQLiteTermStore initialization and schema."""

    def test_init_creates_database(self, tmp_path):
        db_path = tmp_path / "new.db"
        assert not db_path.exists()

        store = SQLiteTermStore(db_path)

        assert db_path.exists()
        assert store.db_path == db_path
        store.close()

    def test_schema_creation(self, temp_db):
        assert {"documents", "document_terms", "terms", "meta"} <= _table_names(temp_db)

        cursor = temp_db.connection.execute(
            "SELECT name FROM sqlite_master WHERE type='index' AND name='idx_document_terms_term'"
        )
        assert cursor.fetchone() is not None

    def test_schema_version_recorded(self, temp_db):
        assert temp_db.get_meta("schema_version") == SCHEMA_VERSION

    def test_pragma_settings(self, temp_db):
        result = temp_db.connection.execute("PRAGMA journal_mode").fetchone()
        assert result[0].lower() == "wal"

    def test_reopen_existing_database(self, tmp_path):
        db_path = tmp_path / "test.db"
        store = SQLiteTermStore(db_path)
        store.upsert_document(Document(name="a.txt", terms={"cat": 1}))
        store.close()

        reopened = SQLiteTermStore(db_path)
        assert reopened.document_count() == 1
        reopened.close()

    def test_open_failure_raises(self, tmp_path):
        with pytest.raises(sqlite3.Error):
            SQLiteTermStore(tmp_path / "missing" / "dir" / "test.db")


class TestUpsertDocument:
    """Test per-document writes."""

    def test_registers_document_with_distinct_term_count(self, temp_db):
        temp_db.upsert_document(Document(name="a.txt", terms={"cat": 2, "dog": 1}))

        assert temp_db.registry() == [RegistryEntry(name="a.txt", size=2)]
        assert temp_db.document_terms("a.txt") == {"cat": 2, "dog": 1}

    def test_reindex_is_idempotent(self, temp_db):
        document = Document(name="a.txt", terms={"cat": 2, "dog": 1})

        temp_db.upsert_document(document)
        first = (temp_db.registry(), temp_db.document_terms("a.txt"))
        temp_db.upsert_document(document)
        second = (temp_db.registry(), temp_db.document_terms("a.txt"))

        assert first == second

    def test_reindex_replaces_stale_terms(self, temp_db):
        temp_db.upsert_document(Document(name="a.txt", terms={"cat": 2, "dog": 1}))
        temp_db.upsert_document(Document(name="a.txt", terms={"bird": 4}))

        assert temp_db.document_terms("a.txt") == {"bird": 4}
        assert temp_db.registry() == [RegistryEntry(name="a.txt", size=1)]

    def test_empty_and_zero_terms_not_stored(self, temp_db):
        temp_db.upsert_document(Document(name="a.txt", terms={"cat": 1, "": 3, "dog": 0}))

        assert temp_db.document_terms("a.txt") == {"cat": 1}

    def test_terms_with_quotes_are_bound_safely(self, temp_db):
        temp_db.upsert_document(Document(name="it's.txt", terms={"o'clock": 1}))

        assert temp_db.document_terms("it's.txt") == {"o'clock": 1}

    def test_failed_write_rolls_back(self, temp_db):
        temp_db.connection.execute("DROP TABLE document_terms")
        temp_db.connection.commit()

        with pytest.raises(sqlite3.OperationalError):
            temp_db.upsert_document(Document(name="a.txt", terms={"cat": 1}))

        assert temp_db.document_count() == 0

    def test_concurrent_writers(self, temp_db):
        documents = [Document(name=f"doc{i}.txt", terms={"cat": i + 1}) for i in range(20)]
        threads = [
            threading.Thread(target=temp_db.upsert_document, args=(document,))
            for document in documents
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert temp_db.document_count() == 20


class TestCorpusTerms:
    def test_replace_corpus_terms(self, temp_db):
        temp_db.replace_corpus_terms({"cat": 2, "dog": 3})

        assert temp_db.top_terms() == [("dog", 3), ("cat", 2)]
        assert temp_db.corpus_term_count() == 2

    def test_rebuilt_wholesale(self, temp_db):
        temp_db.replace_corpus_terms({"cat": 2, "dog": 3})
        temp_db.replace_corpus_terms({"bird": 1})

        assert temp_db.top_terms() == [("bird", 1)]

    def test_top_terms_limit_and_tie_order(self, temp_db):
        temp_db.replace_corpus_terms({"b": 1, "a": 1, "c": 5})

        assert temp_db.top_terms(limit=2) == [("c", 5), ("a", 1)]


class TestReads:
    def test_term_postings(self, temp_db):
        temp_db.upsert_document(Document(name="b.txt", terms={"dog": 1, "bird": 1}))
        temp_db.upsert_document(Document(name="a.txt", terms={"cat": 2, "dog": 1}))

        assert temp_db.term_postings("dog") == [
            Posting(document="a.txt", size=2, frequency=1),
            Posting(document="b.txt", size=2, frequency=1),
        ]
        assert temp_db.term_postings("cat") == [Posting(document="a.txt", size=2, frequency=2)]
        assert temp_db.term_postings("fish") == []

    def test_unregistered_documents_are_invisible(self, temp_db):
        temp_db.upsert_document(Document(name="a.txt", terms={"cat": 1}))
        with temp_db.transaction() as conn:
            conn.execute(
                "INSERT INTO document_terms(document, term, frequency) VALUES ('ghost.txt', 'cat', 1)"
            )

        assert [p.document for p in temp_db.term_postings("cat")] == ["a.txt"]

    def test_document_count(self, temp_db):
        assert temp_db.document_count() == 0
        temp_db.upsert_document(Document(name="a.txt", terms={"cat": 1}))
        assert temp_db.document_count() == 1

    def test_meta_roundtrip(self, temp_db):
        assert temp_db.get_meta("normalizer") is None
        temp_db.set_meta("normalizer", "stem")
        assert temp_db.get_meta("normalizer") == "stem"


class TestMigrateLegacyTables:
    """Test import of per-document tables."""

    @staticmethod
    def _write_legacy_document(store: SQLiteTermStore, path: str, terms: dict[str, int]) -> str:
        table = legacy_table_name(path)
        with store.transaction() as conn:
            conn.execute(
                f'CREATE TABLE "{table}" (term TEXT PRIMARY KEY, frequency INTEGER NOT NULL)'
            )
            conn.executemany(
                f'INSERT INTO "{table}"(term, frequency) VALUES (?, ?)', list(terms.items())
            )
            conn.execute(
                "INSERT INTO documents(name, size) VALUES (?, ?)", (table, len(terms))
            )
        return table

    def test_migrates_documents(self, temp_db):
        table = self._write_legacy_document(temp_db, "./content/a.txt", {"cat": 2, "dog": 1})

        migrated = temp_db.migrate_legacy_tables()

        assert migrated == 1
        assert temp_db.registry() == [RegistryEntry(name="content/a.txt", size=2)]
        assert temp_db.document_terms("content/a.txt") == {"cat": 2, "dog": 1}
        assert table not in _table_names(temp_db)

    def test_leaves_current_documents_alone(self, temp_db):
        temp_db.upsert_document(Document(name="b.txt", terms={"bird": 1}))
        self._write_legacy_document(temp_db, "./content/a.txt", {"cat": 1})

        assert temp_db.migrate_legacy_tables() == 1
        assert {entry.name for entry in temp_db.registry()} == {"b.txt", "content/a.txt"}

    def test_nothing_to_migrate(self, temp_db):
        temp_db.upsert_document(Document(name="b.txt", terms={"bird": 1}))

        assert temp_db.migrate_legacy_tables() == 0
