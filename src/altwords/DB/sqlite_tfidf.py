# altwords/DB/sqlite_tfidf.py
from __future__ import annotations
import sqlite3
import threading
from typing import Iterable, Optional

from ..errors import StorageUnavailable, UnknownDocument
from ..models import CorpusFrequencyRecord, DocumentFrequencyRecord
from ..normalize import normalize
from ..tfidf import DocumentCountCache, idf_formula, tf_formula, validate_record

_SCHEMA = """
CREATE TABLE IF NOT EXISTS word_document_pairs (
  word TEXT NOT NULL,
  occurrences INTEGER NOT NULL,
  doc_max_word_freq INTEGER NOT NULL,
  document INTEGER NOT NULL,
  PRIMARY KEY (word, document)
);
CREATE INDEX IF NOT EXISTS idx_pairs_document ON word_document_pairs(document);
CREATE TABLE IF NOT EXISTS document_frequency (
  word TEXT PRIMARY KEY,
  unique_documents INTEGER NOT NULL
);
"""


class SQLiteTFIDF:
    """TFIDF persisted in two tables: word_document_pairs and document_frequency."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._cache = DocumentCountCache()
        self._lock = threading.RLock()
        try:
            self.conn = sqlite3.connect(db_path, check_same_thread=False)
            self.conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"cannot open {db_path}: {exc}") from exc

    # ---- writes ----
    def _upsert(self, word: str, occurrences: int, doc_max_word_freq: int, document_id: int) -> bool:
        """Write one pair inside the caller's transaction. True when the pair is new."""
        exists = self.conn.execute(
            "SELECT 1 FROM word_document_pairs WHERE word=? AND document=?", (word, document_id)
        ).fetchone()
        self.conn.execute(
            "INSERT INTO word_document_pairs(word, occurrences, doc_max_word_freq, document) "
            "VALUES (?,?,?,?) ON CONFLICT(word, document) DO UPDATE SET "
            "occurrences=excluded.occurrences, doc_max_word_freq=excluded.doc_max_word_freq",
            (word, occurrences, doc_max_word_freq, document_id),
        )
        if exists is None:
            self.conn.execute(
                "INSERT INTO document_frequency(word, unique_documents) VALUES (?, 1) "
                "ON CONFLICT(word) DO UPDATE SET unique_documents = unique_documents + 1",
                (word,),
            )
        return exists is None

    def store(self, word: str, occurrences: int, doc_max_word_freq: int, document_id: int) -> None:
        self.store_many([DocumentFrequencyRecord(word, occurrences, doc_max_word_freq, document_id)])

    def store_many(self, records: Iterable[DocumentFrequencyRecord]) -> None:
        rows = [
            (validate_record(r.word, r.occurrences, r.doc_max_word_freq),
             int(r.occurrences), int(r.doc_max_word_freq), int(r.document))
            for r in records
        ]
        if not rows:
            return
        try:
            with self._lock:
                with self.conn:
                    changed = False
                    for row in rows:
                        changed = self._upsert(*row) or changed
                if changed:
                    self._cache.invalidate()
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"cannot store frequencies: {exc}") from exc

    # ---- reads ----
    def _one(self, sql: str, params: tuple) -> Optional[tuple]:
        try:
            with self._lock:
                return self.conn.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"frequency query failed: {exc}") from exc

    def term_frequency(self, word: str, document_id: int) -> float:
        document_id = int(document_id)
        row = self._one(
            "SELECT occurrences, doc_max_word_freq FROM word_document_pairs WHERE word=? AND document=?",
            (normalize(word), document_id),
        )
        if row is not None:
            return tf_formula(row[0], row[1])
        row = self._one(
            "SELECT doc_max_word_freq FROM word_document_pairs WHERE document=? ORDER BY rowid LIMIT 1",
            (document_id,),
        )
        if row is None:
            raise UnknownDocument(document_id)
        return tf_formula(0, row[0])

    def unique_documents(self, word: str) -> int:
        row = self._one(
            "SELECT unique_documents FROM document_frequency WHERE word=?", (normalize(word),)
        )
        return int(row[0]) if row else 0

    def total_documents(self) -> int:
        return self._cache.get(
            lambda: self._one("SELECT COUNT(DISTINCT document) FROM word_document_pairs", ())[0]
        )

    def inverse_document_frequency(self, word: str) -> float:
        return idf_formula(self.total_documents(), self.unique_documents(word))

    def score(self, word: str, document_id: int) -> float:
        return self.term_frequency(word, document_id) * self.inverse_document_frequency(word)

    def document_record(self, word: str, document_id: int) -> Optional[DocumentFrequencyRecord]:
        canonical = normalize(word)
        row = self._one(
            "SELECT occurrences, doc_max_word_freq FROM word_document_pairs WHERE word=? AND document=?",
            (canonical, int(document_id)),
        )
        if row is None:
            return None
        return DocumentFrequencyRecord(canonical, int(row[0]), int(row[1]), int(document_id))

    def corpus_record(self, word: str) -> CorpusFrequencyRecord:
        canonical = normalize(word)
        return CorpusFrequencyRecord(canonical, self.unique_documents(canonical))

    def close(self) -> None:
        with self._lock:
            self.conn.close()
        self._cache.invalidate()
