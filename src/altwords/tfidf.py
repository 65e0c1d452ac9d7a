from __future__ import annotations
import math
import threading
from collections import Counter
from typing import Callable, Dict, Iterable, Optional, Protocol, Tuple

from .errors import MalformedInput, UnknownDocument
from .models import CorpusFrequencyRecord, DocumentFrequencyRecord
from .normalize import canonical_words, normalize


class TFIDF(Protocol):
    """Per-word/per-document frequency statistics and tf-idf scoring."""
    def store(self, word: str, occurrences: int, doc_max_word_freq: int, document_id: int) -> None: ...
    def store_many(self, records: Iterable[DocumentFrequencyRecord]) -> None: ...
    def term_frequency(self, word: str, document_id: int) -> float: ...
    def inverse_document_frequency(self, word: str) -> float: ...
    def score(self, word: str, document_id: int) -> float: ...
    def unique_documents(self, word: str) -> int: ...
    def total_documents(self) -> int: ...
    def close(self) -> None: ...


# ---- formulas ----

def tf_formula(occurrences: int, doc_max_word_freq: int) -> float:
    """0.5 + 0.5 * occurrences / max: 0.5 for an absent word, 1.0 for the most frequent one."""
    return 0.5 + 0.5 * occurrences / doc_max_word_freq

def idf_formula(total_documents: int, unique_documents: int) -> float:
    """
    log10(total / (1 + unique)). Negative once a word is in more than half the
    corpus. An empty corpus carries no information and scores 0.0.
    """
    if total_documents <= 0:
        return 0.0
    return math.log10(total_documents / (1 + unique_documents))

def validate_record(word: str, occurrences: int, doc_max_word_freq: int) -> str:
    canonical = normalize(word)
    if not canonical:
        raise MalformedInput(f"cannot store frequencies for empty word {word!r}")
    if occurrences < 0:
        raise MalformedInput(f"occurrences must be >= 0, got {occurrences}")
    if doc_max_word_freq < 1:
        raise MalformedInput(f"doc_max_word_freq must be >= 1, got {doc_max_word_freq}")
    return canonical


class DocumentCountCache:
    """
    Version-stamped cache of the corpus size (number of distinct documents).

    Writers call invalidate() when a new document becomes visible; readers call
    get(compute). A value computed while a writer bumped the version is returned
    to its reader but never cached, so a stale total cannot outlive the write
    that made it stale.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._version = 0
        self._value: Optional[int] = None
        self._value_version = -1

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def get(self, compute: Callable[[], int]) -> int:
        with self._lock:
            if self._value is not None and self._value_version == self._version:
                return self._value
            version = self._version
        value = int(compute())
        with self._lock:
            if version == self._version:
                self._value = value
                self._value_version = version
        return value

    def invalidate(self) -> int:
        with self._lock:
            self._version += 1
            self._value = None
            return self._version


class MemoryTFIDF:
    """In-process TFIDF (tests, ephemeral runs)."""

    def __init__(self) -> None:
        self._pairs: Dict[Tuple[str, int], DocumentFrequencyRecord] = {}
        self._unique: Dict[str, int] = {}
        self._doc_max: Dict[int, int] = {}   # document -> doc_max_word_freq of its first record
        self._cache = DocumentCountCache()
        self._lock = threading.RLock()

    # ---- writes ----
    def store(self, word: str, occurrences: int, doc_max_word_freq: int, document_id: int) -> None:
        canonical = validate_record(word, occurrences, doc_max_word_freq)
        with self._lock:
            self._put(canonical, int(occurrences), int(doc_max_word_freq), int(document_id))

    def _put(self, canonical: str, occurrences: int, doc_max_word_freq: int, document_id: int) -> None:
        # caller holds self._lock
        key = (canonical, document_id)
        is_new_pair = key not in self._pairs
        self._pairs[key] = DocumentFrequencyRecord(canonical, occurrences, doc_max_word_freq, document_id)
        self._doc_max.setdefault(document_id, doc_max_word_freq)
        if is_new_pair:
            self._unique[canonical] = self._unique.get(canonical, 0) + 1
            self._cache.invalidate()

    def store_many(self, records: Iterable[DocumentFrequencyRecord]) -> None:
        # validate the whole batch before any of it becomes visible
        rows = [(validate_record(r.word, r.occurrences, r.doc_max_word_freq), r) for r in records]
        with self._lock:
            for canonical, r in rows:
                self._put(canonical, int(r.occurrences), int(r.doc_max_word_freq), int(r.document))

    # ---- reads ----
    def term_frequency(self, word: str, document_id: int) -> float:
        document_id = int(document_id)
        with self._lock:
            rec = self._pairs.get((normalize(word), document_id))
            if rec is not None:
                return tf_formula(rec.occurrences, rec.doc_max_word_freq)
            max_freq = self._doc_max.get(document_id)
        if max_freq is None:
            raise UnknownDocument(document_id)
        return tf_formula(0, max_freq)

    def inverse_document_frequency(self, word: str) -> float:
        with self._lock:
            unique = self._unique.get(normalize(word), 0)
            total = self._cache.get(lambda: len(self._doc_max))
        return idf_formula(total, unique)

    def score(self, word: str, document_id: int) -> float:
        return self.term_frequency(word, document_id) * self.inverse_document_frequency(word)

    def unique_documents(self, word: str) -> int:
        with self._lock:
            return self._unique.get(normalize(word), 0)

    def total_documents(self) -> int:
        with self._lock:
            return self._cache.get(lambda: len(self._doc_max))

    def document_record(self, word: str, document_id: int) -> Optional[DocumentFrequencyRecord]:
        with self._lock:
            return self._pairs.get((normalize(word), int(document_id)))

    def corpus_record(self, word: str) -> CorpusFrequencyRecord:
        canonical = normalize(word)
        return CorpusFrequencyRecord(canonical, self.unique_documents(canonical))

    def close(self) -> None:
        with self._lock:
            self._pairs.clear()
            self._unique.clear()
            self._doc_max.clear()
            self._cache.invalidate()


def document_records(document_id: int, bodies: Iterable[str]) -> list[DocumentFrequencyRecord]:
    """Frequency rows for one document: every canonical word with the document's max frequency."""
    counts: Counter = Counter()
    for body in bodies:
        counts.update(canonical_words(body))
    if not counts:
        return []
    max_freq = max(counts.values())
    return [
        DocumentFrequencyRecord(word, occ, max_freq, int(document_id))
        for word, occ in counts.items()
    ]

def index_document(tfidf: TFIDF, document_id: int, bodies: Iterable[str]) -> int:
    """Feed a newly stored document into tfidf. Returns the number of distinct words stored."""
    records = document_records(document_id, bodies)
    if records:
        tfidf.store_many(records)
    return len(records)
