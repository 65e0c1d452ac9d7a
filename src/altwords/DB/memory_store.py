# altwords/DB/memory_store.py
from __future__ import annotations
import logging
import threading
from typing import Dict, FrozenSet, List, Optional, Set

from ..loader import process_paragraphs
from ..models import Paragraph, Publication
from ..tfidf import TFIDF, index_document
from .index import WordIndex

log = logging.getLogger(__name__)


class MemoryStorage:
    """In-memory storage (useful for tests or ephemeral runs)."""
    def __init__(self, tfidf: Optional[TFIDF] = None) -> None:
        self._publications: Dict[int, Publication] = {}
        self._by_source: Dict[str, int] = {}
        self._paragraphs: Dict[int, Paragraph] = {}
        self._categories: Dict[int, Set[str]] = {}
        self._index = WordIndex()
        self._tfidf = tfidf
        self._lock = threading.Lock()

    def add_publication(self, publication: Publication) -> int:
        bodies = process_paragraphs(publication.text)
        with self._lock:
            if publication.source_id and publication.source_id in self._by_source:
                pub_id = self._by_source[publication.source_id]
                log.debug("Publication %r already stored as %d", publication.source_id, pub_id)
                return pub_id
            pub_id = len(self._publications) + 1
            first = len(self._paragraphs) + 1
            # frequencies first: if scoring fails nothing below has been recorded,
            # and a paragraph is never findable before its document is scored
            if self._tfidf is not None:
                index_document(self._tfidf, pub_id, bodies)
            self._publications[pub_id] = publication
            if publication.source_id:
                self._by_source[publication.source_id] = pub_id
            self._categories[pub_id] = set(publication.categories)
            for offset, body in enumerate(bodies):
                self._paragraphs[first + offset] = Paragraph(pub_id, body)
            self._index.add_many((first + offset, body) for offset, body in enumerate(bodies))
        return pub_id

    def query_for_word(self, word: str, categories: Optional[FrozenSet[str]] = None) -> List[Paragraph]:
        ids = self._index.lookup(word)
        with self._lock:
            out = [self._paragraphs[i] for i in ids]
            if categories:
                out = [p for p in out if self._categories.get(p.publication_id, set()) & categories]
        return out

    def publication(self, publication_id: int) -> Publication:
        try:
            return self._publications[int(publication_id)]
        except KeyError:
            raise KeyError(publication_id)

    def count(self) -> int:
        return len(self._publications)

    def paragraph_count(self) -> int:
        return len(self._paragraphs)

    def close(self) -> None:
        with self._lock:
            self._publications.clear()
            self._by_source.clear()
            self._paragraphs.clear()
            self._categories.clear()
        self._index.clear()
