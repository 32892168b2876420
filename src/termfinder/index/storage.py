"""SQLite term store."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Mapping

from termfinder.models import Document, Posting, RegistryEntry
from termfinder.utils.files import normalize_document_path
from termfinder.utils.names import is_legacy_name, restore_legacy_name

SCHEMA_VERSION = "2"


class SQLiteTermStore:
    """Persistence layer for the document registry and term frequencies.

    A single connection may be shared across threads. Writes are
    serialized through ``transaction()``, so only one writer touches the
    database at a time.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    name TEXT PRIMARY KEY,
                    size INTEGER NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS document_terms (
                    document TEXT NOT NULL,
                    term TEXT NOT NULL,
                    frequency INTEGER NOT NULL,
                    PRIMARY KEY (document, term)
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_document_terms_term ON document_terms(term)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_document_terms_document ON document_terms(document)"
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS terms (
                    term TEXT PRIMARY KEY,
                    frequency INTEGER NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )
            conn.execute(
                "INSERT OR REPLACE INTO meta(key, value) VALUES ('schema_version', ?)",
                (SCHEMA_VERSION,),
            )

    # Writes

    def upsert_document(self, document: Document) -> None:
        """Register ``document`` and replace its stored term frequencies."""
        rows = [
            (document.name, term, frequency)
            for term, frequency in document.terms.items()
            if term and frequency > 0
        ]
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO documents(name, size) VALUES (?, ?)",
                (document.name, document.size),
            )
            conn.execute("DELETE FROM document_terms WHERE document = ?", (document.name,))
            conn.executemany(
                """
                INSERT OR REPLACE INTO document_terms(document, term, frequency)
                VALUES (?, ?, ?)
                """,
                rows,
            )

    def replace_corpus_terms(self, terms: Mapping[str, int]) -> None:
        """Rebuild the global term table from ``terms``."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM terms")
            conn.executemany(
                "INSERT OR REPLACE INTO terms(term, frequency) VALUES (?, ?)",
                [(term, frequency) for term, frequency in terms.items() if term],
            )

    def set_meta(self, key: str, value: str) -> None:
        with self.transaction() as conn:
            conn.execute("INSERT OR REPLACE INTO meta(key, value) VALUES (?, ?)", (key, value))

    # Reads

    def get_meta(self, key: str) -> str | None:
        row = self._conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def registry(self) -> List[RegistryEntry]:
        rows = self._conn.execute("SELECT name, size FROM documents ORDER BY name").fetchall()
        return [RegistryEntry(name=row["name"], size=row["size"]) for row in rows]

    def document_count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]

    def term_postings(self, term: str) -> List[Posting]:
        """Return the registered documents containing ``term``."""
        rows = self._conn.execute(
            """
            SELECT d.name AS name, d.size AS size, t.frequency AS frequency
            FROM document_terms t
            JOIN documents d ON d.name = t.document
            WHERE t.term = ?
            ORDER BY d.name
            """,
            (term,),
        ).fetchall()
        return [
            Posting(document=row["name"], size=row["size"], frequency=row["frequency"])
            for row in rows
        ]

    def document_terms(self, name: str) -> Dict[str, int]:
        rows = self._conn.execute(
            "SELECT term, frequency FROM document_terms WHERE document = ?", (name,)
        ).fetchall()
        return {row["term"]: row["frequency"] for row in rows}

    def top_terms(self, limit: int = 20) -> List[tuple[str, int]]:
        rows = self._conn.execute(
            "SELECT term, frequency FROM terms ORDER BY frequency DESC, term LIMIT ?",
            (limit,),
        ).fetchall()
        return [(row["term"], row["frequency"]) for row in rows]

    def corpus_term_count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM terms").fetchone()[0]

    # Legacy layout

    def migrate_legacy_tables(self) -> int:
        """Import indexes written with one table per document.

        Registry rows whose name is a marker-encoded table name get their
        terms copied into ``document_terms`` and are renamed to the restored,
        normalized path. The old tables are dropped. Returns the number migrated.
        """
        tables = {
            row["name"]
            for row in self._conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        migrated = 0
        with self.transaction() as conn:
            for entry in self.registry():
                if entry.name not in tables or not is_legacy_name(entry.name):
                    continue
                name = normalize_document_path(restore_legacy_name(entry.name))
                quoted = '"' + entry.name.replace('"', '""') + '"'
                rows = conn.execute(f"SELECT term, frequency FROM {quoted}").fetchall()
                conn.execute("DELETE FROM documents WHERE name = ?", (entry.name,))
                conn.execute(
                    "INSERT OR REPLACE INTO documents(name, size) VALUES (?, ?)",
                    (name, entry.size),
                )
                conn.execute("DELETE FROM document_terms WHERE document = ?", (name,))
                conn.executemany(
                    """
                    INSERT OR REPLACE INTO document_terms(document, term, frequency)
                    VALUES (?, ?, ?)
                    """,
                    [
                        (name, row["term"], row["frequency"])
                        for row in rows
                        if row["term"] and row["frequency"] > 0
                    ],
                )
                conn.execute(f"DROP TABLE {quoted}")
                migrated += 1
        return migrated
