# altwords/engine.py
from __future__ import annotations

import os
import logging
import threading
from collections import Counter
from typing import Callable, Iterable, List, Optional, Sequence

from . import config as CFG
from .config import Settings
from .errors import InvalidRange, QueryCancelled
from .loader import load_publications, load_wikipedia
from .models import Publication, WordVector
from .normalize import canonical_words, normalize, split_words
from .ranking import Ranker, SynonymProvider, select_top_k
from .tfidf import TFIDF
from .DB.api import Storage, make_storage, make_tfidf

log = logging.getLogger(__name__)

ImportantWords = Callable[[Sequence[str]], List[str]]


def pass_through(words: Sequence[str]) -> List[str]:
    """Default important-words filter: every token is important."""
    return list(words)


def idf_importance_filter(tfidf: TFIDF, threshold: float = 0.0) -> ImportantWords:
    """Keep only words rarer than `threshold` idf (common words score <= 0)."""
    def _filter(words: Sequence[str]) -> List[str]:
        return [w for w in words if tfidf.inverse_document_frequency(w) > threshold]
    return _filter


class Engine:
    """
    Thin orchestration layer that glues together:
      - paragraph storage via a Storage (SQLite or in-memory),
      - the TF-IDF frequency tables (optional),
      - the ranker (ranking.Ranker) and a synonym provider.

    Public API (used by CLI/Flask):
      * build(roots, ...):  ingest publications -> storage (+ tfidf)
      * load(...):          attach to an already-built SQLite storage
      * alternative_words / sentence_find_alternative_words / find_alternative_words
      * shutdown():         close underlying resources

    Storage DSNs (via altwords.DB.api.make_storage):
      - "sqlite:///path/to/corpus.sqlite"
      - "memory://"
    """

    # ------------- lifecycle -------------

    def __init__(
        self,
        storage: Optional[Storage] = None,
        tfidf: Optional[TFIDF] = None,
        settings: Optional[Settings] = None,
        synonyms: Optional[SynonymProvider] = None,
        important_words: Optional[ImportantWords] = None,
    ) -> None:
        self.settings = settings or Settings.default()
        self.synonyms = synonyms
        self.important_words: ImportantWords = important_words or pass_through
        self._storage: Optional[Storage] = None
        self._tfidf: Optional[TFIDF] = None
        self._ranker: Optional[Ranker] = None
        if storage is not None:
            self._attach(storage, tfidf)

    @property
    def storage(self) -> Optional[Storage]:
        return self._storage

    @property
    def tfidf(self) -> Optional[TFIDF]:
        return self._tfidf

    # /* ~~~ Ingest source folders (and/or a Wikipedia dump) into fresh storage ~~~ */
    def build(
        self,
        roots: Iterable[str] = (),
        *,
        db_dsn: Optional[str] = None,          # e.g., "sqlite:///./corpus.sqlite" or "memory://"
        tfidf_dsn: Optional[str] = None,       # frequency tables; defaults to the same kind as db_dsn
        unit: Optional[str] = None,            # "line" | "paragraph"
        wikipedia: Optional[str] = None,       # path to a MediaWiki XML dump
        wikipedia_limit: Optional[int] = None,
        verbose: bool = False,
    ) -> int:
        if verbose:
            logging.basicConfig(level=logging.INFO)
            CFG.VERBOSE = True

        roots = list(roots)
        if not roots and not wikipedia:
            raise ValueError("build(): at least one root folder or a wikipedia dump is required")

        dsn = db_dsn or CFG.DEFAULT_DB_DSN
        tdsn = tfidf_dsn or _companion_dsn(dsn)
        self._release()
        log.info("Initializing storage: %s (tfidf: %s)", dsn, tdsn)
        tfidf = make_tfidf(tdsn)
        self._attach(make_storage(dsn, tfidf=tfidf), tfidf)

        added = 0
        if roots:
            log.info("Loading publications from %s", roots)
            added += self._ingest(load_publications(roots, unit))
        if wikipedia:
            log.info("Loading wikipedia dump %s", wikipedia)
            added += self._ingest(load_wikipedia(wikipedia, wikipedia_limit))

        log.info("Engine build() complete: publications=%d paragraphs=%d",
                 self._storage.count(), self._storage.paragraph_count())
        return added

    # /* ~~~ Reopen storage that an earlier build() persisted ~~~ */
    def load(
        self,
        *,
        db_dsn: str,
        tfidf_dsn: Optional[str] = None,
        verbose: bool = False,
    ) -> None:
        if verbose:
            logging.basicConfig(level=logging.INFO)
            CFG.VERBOSE = True

        if not db_dsn.startswith("sqlite:///"):
            raise ValueError("load(): only sqlite:/// storage can be reopened")
        tdsn = tfidf_dsn or _companion_dsn(db_dsn)
        for d in (db_dsn, tdsn):
            path = d.removeprefix("sqlite:///")
            if not os.path.exists(path):
                raise FileNotFoundError(path)

        self._release()
        log.info("Opening storage: %s (tfidf: %s)", db_dsn, tdsn)
        tfidf = make_tfidf(tdsn)
        self._attach(make_storage(db_dsn, tfidf=tfidf), tfidf)
        log.info("Engine load() complete: publications=%d", self._storage.count())

    def add_publication(self, publication: Publication) -> int:
        """Store one publication (and its frequencies). Returns its id."""
        return self._require().add_publication(publication)

    # ------------- query -------------

    def rank(self, word: str, max_words: int = CFG.TOP_K, *, cancel: Optional[threading.Event] = None) -> List[WordVector]:
        self._require()
        return self._ranker.rank(word, max_words, cancel=cancel)

    def alternative_words(self, word: str, max_words: int = CFG.TOP_K, *, cancel: Optional[threading.Event] = None) -> List[str]:
        return [v.word for v in self.rank(word, max_words, cancel=cancel)]

    def sentence_find_alternative_words(
        self,
        sentence: str,
        query_start: int,
        query_end: int,
        max_words: int = CFG.TOP_K,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> List[str]:
        """
        Alternatives for sentence[query_start:query_end], using the rest of the
        sentence as context. Offsets are code-point (str) indices.
        """
        n = len(sentence)
        if not (0 <= query_start <= query_end <= n):
            raise InvalidRange(query_start, query_end, n)
        before = split_words(sentence[:query_start])
        after = split_words(sentence[query_end:])
        return self.find_alternative_words(
            before, after, sentence[query_start:query_end], max_words, cancel=cancel
        )

    def find_alternative_words(
        self,
        before_words: Sequence[str],
        after_words: Sequence[str],
        query_word: str,
        max_words: int = CFG.TOP_K,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> List[str]:
        """
        rank(query_word) over an oversampled candidate pool, boosted by how many
        of the sentence's important words each candidate shares a paragraph with.
        """
        storage = self._require()
        pool = max_words * max(1, self.settings.context_oversample)
        ranked = self._ranker.rank(query_word, pool, cancel=cancel)

        target = normalize(query_word)
        important: List[str] = []
        for w in self.important_words(list(before_words) + list(after_words)):
            c = normalize(w)
            if c and c != target and c not in important:
                important.append(c)
        if not ranked or not important:
            return [v.word for v in ranked[:max_words]]

        candidates = {v.word for v in ranked}
        support: Counter = Counter()
        for w in important:
            if cancel is not None and cancel.is_set():
                raise QueryCancelled("query abandoned by caller")
            co: set = set()
            for p in storage.query_for_word(w, self.settings.categories):
                co.update(canonical_words(p.body))
            for c in candidates & co:
                support[c] += 1

        boosted = [
            WordVector(v.word, v.score + abs(v.score) * support[v.word] / len(important))
            for v in ranked
        ]
        return [v.word for v in select_top_k(boosted, max_words)]

    # ------------- teardown -------------

    # /* ~~~ Close underlying resources (DB handles, etc.) ~~~ */
    def shutdown(self) -> None:
        self._release()
        log.info("Engine shutdown complete")

    # ------------- internals -------------

    def _release(self) -> None:
        try:
            if self._storage:
                self._storage.close()
        finally:
            try:
                if self._tfidf:
                    self._tfidf.close()
            finally:
                self._storage = None
                self._tfidf = None
                self._ranker = None

    def _attach(self, storage: Storage, tfidf: Optional[TFIDF]) -> None:
        self._storage = storage
        self._tfidf = tfidf
        self._ranker = Ranker(storage, tfidf, self.settings, self.synonyms)

    def _require(self) -> Storage:
        if self._storage is None or self._ranker is None:
            raise RuntimeError("Engine not initialized. Call build() or load() first.")
        return self._storage

    def _ingest(self, publications: Iterable[Publication]) -> int:
        n = 0
        for pub in publications:
            self._storage.add_publication(pub)
            n += 1
            if CFG.VERBOSE and n % 500 == 0:
                log.info("[ingested] publications=%d", n)
        return n


def _companion_dsn(dsn: str) -> str:
    """corpus.sqlite -> corpus.tfidf.sqlite; memory stays memory."""
    if dsn.startswith("sqlite:///") and not dsn.endswith(":memory:"):
        root, ext = os.path.splitext(dsn)
        return f"{root}.tfidf{ext or '.sqlite'}"
    return "memory://"
