# altwords/DB/api.py
from __future__ import annotations
import os
from typing import FrozenSet, List, Optional, Protocol

from ..models import Paragraph, Publication
from ..tfidf import TFIDF, MemoryTFIDF


class Storage(Protocol):
    """Where paragraphs live and how they are found by word."""
    def add_publication(self, publication: Publication) -> int: ...
    def query_for_word(self, word: str, categories: Optional[FrozenSet[str]] = None) -> List[Paragraph]: ...
    def publication(self, publication_id: int) -> Publication: ...
    def count(self) -> int: ...
    def paragraph_count(self) -> int: ...
    def close(self) -> None: ...


def _sqlite_path(dsn: str) -> str:
    path = dsn.removeprefix("sqlite:///")
    if path != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(path)) or ".", exist_ok=True)
    return path


def make_storage(dsn: str, *, tfidf: Optional[TFIDF] = None) -> Storage:
    """
    Factory:
      - sqlite:///path -> SQLiteStorage (created if missing)
      - memory://      -> MemoryStorage
    When tfidf is given, every added publication is also fed into it.
    """
    if dsn.startswith("sqlite:///"):
        from .sqlite_store import SQLiteStorage
        return SQLiteStorage(_sqlite_path(dsn), tfidf=tfidf)

    if dsn.startswith("memory://"):
        from .memory_store import MemoryStorage
        return MemoryStorage(tfidf=tfidf)

    raise ValueError(f"Unsupported storage DSN: {dsn}")


def make_tfidf(dsn: str) -> TFIDF:
    """Same DSN scheme as make_storage, for the frequency tables."""
    if dsn.startswith("sqlite:///"):
        from .sqlite_tfidf import SQLiteTFIDF
        return SQLiteTFIDF(_sqlite_path(dsn))

    if dsn.startswith("memory://"):
        return MemoryTFIDF()

    raise ValueError(f"Unsupported tfidf DSN: {dsn}")
