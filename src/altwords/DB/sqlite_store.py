# altwords/DB/sqlite_store.py
from __future__ import annotations
import logging
import sqlite3
import threading
from typing import FrozenSet, List, Optional

from ..errors import StorageUnavailable
from ..loader import process_paragraphs
from ..models import Paragraph, Publication
from ..normalize import canonical_words, normalize
from ..tfidf import TFIDF, index_document

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS publications (
  id INTEGER PRIMARY KEY,
  title TEXT NOT NULL,
  author TEXT NOT NULL DEFAULT '',
  editor TEXT NOT NULL DEFAULT '',
  date TEXT NOT NULL DEFAULT '',
  source_id TEXT UNIQUE,
  source_url TEXT NOT NULL DEFAULT '',
  encoding TEXT NOT NULL DEFAULT 'utf-8',
  type TEXT NOT NULL DEFAULT '',
  text TEXT NOT NULL,
  indexed INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS categories (
  publication INTEGER NOT NULL REFERENCES publications(id),
  category TEXT NOT NULL,
  PRIMARY KEY (publication, category)
);
CREATE INDEX IF NOT EXISTS idx_categories_category ON categories(category);
CREATE TABLE IF NOT EXISTS paragraphs (
  id INTEGER PRIMARY KEY,
  publication INTEGER NOT NULL REFERENCES publications(id),
  body TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS paragraph_words (
  word TEXT NOT NULL,
  paragraph INTEGER NOT NULL REFERENCES paragraphs(id),
  PRIMARY KEY (word, paragraph)
) WITHOUT ROWID;
"""


class SQLiteStorage:
    """SQLite-backed storage; paragraphs are found through the paragraph_words inverted table."""
    def __init__(self, db_path: str, tfidf: Optional[TFIDF] = None) -> None:
        self.db_path = db_path
        self._tfidf = tfidf
        self._lock = threading.Lock()
        try:
            self.conn = sqlite3.connect(db_path, check_same_thread=False)
            self.conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"cannot open {db_path}: {exc}") from exc

    # ---- Create ----
    def add_publication(self, publication: Publication) -> int:
        """
        Store a publication in two steps: its rows go in unindexed (invisible to
        readers), then its frequencies are scored and the rows are flagged as
        indexed. A failure in the second step deletes the rows again, so a retry
        with the same source_id starts from scratch.
        """
        bodies = process_paragraphs(publication.text)
        source_id = publication.source_id or None
        try:
            with self._lock, self.conn:
                if source_id is not None:
                    row = self.conn.execute(
                        "SELECT id, indexed FROM publications WHERE source_id=?", (source_id,)
                    ).fetchone()
                    if row is not None and row[1]:
                        log.debug("Publication %r already stored as %d", source_id, row[0])
                        return int(row[0])
                    if row is not None:
                        log.warning("Replacing unindexed publication %r (id %d)", source_id, row[0])
                        self._delete_rows(int(row[0]))
                pub_id = self._insert_rows(publication, source_id, bodies)

            try:
                # frequencies first: a paragraph must never be findable before its document is scored
                if self._tfidf is not None:
                    index_document(self._tfidf, pub_id, bodies)
                with self._lock, self.conn:
                    self.conn.execute("UPDATE publications SET indexed=1 WHERE id=?", (pub_id,))
            except Exception:
                with self._lock, self.conn:
                    self._delete_rows(pub_id)
                raise
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"cannot store publication {publication.title!r}: {exc}") from exc
        return pub_id

    def _insert_rows(self, publication: Publication, source_id: Optional[str], bodies: List[str]) -> int:
        cur = self.conn.execute(
            "INSERT INTO publications(title, author, editor, date, source_id, source_url, encoding, type, text) "
            "VALUES (?,?,?,?,?,?,?,?,?)",
            (
                publication.title, publication.author, publication.editor, publication.date,
                source_id, publication.source_url, publication.encoding, publication.type,
                publication.text,
            ),
        )
        pub_id = int(cur.lastrowid)
        self.conn.executemany(
            "INSERT OR IGNORE INTO categories(publication, category) VALUES (?,?)",
            [(pub_id, c) for c in publication.categories],
        )
        for body in bodies:
            pcur = self.conn.execute(
                "INSERT INTO paragraphs(publication, body) VALUES (?,?)", (pub_id, body)
            )
            self.conn.executemany(
                "INSERT OR IGNORE INTO paragraph_words(word, paragraph) VALUES (?,?)",
                [(w, pcur.lastrowid) for w in set(canonical_words(body))],
            )
        return pub_id

    def _delete_rows(self, pub_id: int) -> None:
        self.conn.execute(
            "DELETE FROM paragraph_words WHERE paragraph IN (SELECT id FROM paragraphs WHERE publication=?)",
            (pub_id,),
        )
        self.conn.execute("DELETE FROM paragraphs WHERE publication=?", (pub_id,))
        self.conn.execute("DELETE FROM categories WHERE publication=?", (pub_id,))
        self.conn.execute("DELETE FROM publications WHERE id=?", (pub_id,))

    # ---- Read ----
    def query_for_word(self, word: str, categories: Optional[FrozenSet[str]] = None) -> List[Paragraph]:
        sql = (
            "SELECT p.publication, p.body FROM paragraph_words w "
            "JOIN paragraphs p ON p.id = w.paragraph "
            "JOIN publications pb ON pb.id = p.publication AND pb.indexed = 1 "
            "WHERE w.word = ?"
        )
        params: list = [normalize(word)]
        if categories:
            cats = sorted(categories)
            sql += (
                " AND p.publication IN (SELECT publication FROM categories WHERE category IN (%s))"
                % ",".join("?" * len(cats))
            )
            params.extend(cats)
        sql += " ORDER BY p.id"
        try:
            with self._lock:
                rows = self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"paragraph query failed: {exc}") from exc
        return [Paragraph(int(pub), body) for pub, body in rows]

    def publication(self, publication_id: int) -> Publication:
        try:
            with self._lock:
                row = self.conn.execute(
                    "SELECT title, text, author, editor, date, source_id, source_url, encoding, type "
                    "FROM publications WHERE id=? AND indexed=1", (int(publication_id),)
                ).fetchone()
                cats = [c for (c,) in self.conn.execute(
                    "SELECT category FROM categories WHERE publication=? ORDER BY category",
                    (int(publication_id),),
                )]
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"publication lookup failed: {exc}") from exc
        if row is None:
            raise KeyError(publication_id)
        title, text, author, editor, date, source_id, source_url, encoding, type_ = row
        return Publication(
            title=title, text=text, author=author, editor=editor, date=date,
            source_id=source_id or "", source_url=source_url, encoding=encoding,
            type=type_, categories=cats,
        )

    def _scalar(self, sql: str) -> int:
        try:
            with self._lock:
                (n,) = self.conn.execute(sql).fetchone()
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"count failed: {exc}") from exc
        return int(n)

    def count(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM publications WHERE indexed=1")

    def paragraph_count(self) -> int:
        return self._scalar(
            "SELECT COUNT(*) FROM paragraphs p JOIN publications pb ON pb.id = p.publication WHERE pb.indexed=1"
        )

    # ---- lifecycle ----
    def close(self) -> None:
        with self._lock:
            self.conn.close()
