from __future__ import annotations
import logging
import math
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .config import Settings
from .context import extract_contexts
from .errors import MalformedInput, QueryCancelled
from .models import Paragraph, WordVector
from .normalize import fuzzy_string_equals, normalize
from .tfidf import TFIDF

log = logging.getLogger(__name__)

SynonymProvider = Callable[[str], Sequence[str]]


# ---- aggregation ----

def aggregate(contributions: Iterable[Tuple[str, float]], occurrences: int) -> List[WordVector]:
    """
    Sum (word, weight) contributions per word and divide by the number of target
    occurrences. Output keeps first-seen order; sums use math.fsum so the result
    does not depend on the order contributions arrive in.
    """
    if occurrences <= 0:
        return []
    parts: Dict[str, List[float]] = {}
    for word, weight in contributions:
        parts.setdefault(word, []).append(weight)
    return [WordVector(w, math.fsum(ws) / occurrences) for w, ws in parts.items()]


# ---- selection ----

def _quickselect(items: List[tuple], k: int) -> None:
    """Reorder items in place so the k smallest occupy items[:k] (in no particular order)."""
    target = k - 1
    lo, hi = 0, len(items) - 1
    while lo < hi:
        pivot = items[(lo + hi) // 2]
        i, j = lo, hi
        while i <= j:
            while items[i] < pivot:
                i += 1
            while items[j] > pivot:
                j -= 1
            if i <= j:
                items[i], items[j] = items[j], items[i]
                i += 1
                j -= 1
        if target <= j:
            hi = j
        elif target >= i:
            lo = i
        else:
            return

def select_top_k(vectors: Sequence[WordVector], k: int) -> List[WordVector]:
    """
    The k highest-scoring vectors, by descending score; ties keep input order.
    Partitions in linear time and only sorts the k survivors.
    """
    if k <= 0:
        return []
    # (-score, position) is a strict total order: highest first, then first seen
    keyed = [(-v.score, i, v) for i, v in enumerate(vectors)]
    if k < len(keyed):
        _quickselect(keyed, k)
        keyed = keyed[:k]
    keyed.sort(key=lambda t: (t[0], t[1]))
    return [v for _, _, v in keyed]


def _check(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise QueryCancelled("query abandoned by caller")


class Ranker:
    """
    Candidate aggregator: collects the context windows around a word (and its
    synonyms) across the corpus and scores the words found in them.
    """

    def __init__(
        self,
        storage,
        tfidf: Optional[TFIDF] = None,
        settings: Optional[Settings] = None,
        synonyms: Optional[SynonymProvider] = None,
    ) -> None:
        self.storage = storage
        self.tfidf = tfidf
        self.settings = settings or Settings.default()
        self.synonyms = synonyms

    def query_words(self, word: str) -> List[str]:
        """word followed by its synonyms, duplicates (by fuzzy equality) removed."""
        words = [word]
        if self.settings.enable_synonym_expansion and self.synonyms is not None:
            for syn in self.synonyms(word):
                if normalize(syn) and not any(fuzzy_string_equals(syn, w) for w in words):
                    words.append(syn)
        return words

    def fetch_paragraphs(self, words: Sequence[str], cancel: Optional[threading.Event] = None) -> List[Paragraph]:
        """
        Paragraphs containing any of words, in canonical (publication, body) order.
        A paragraph returned for several words is kept once.
        """
        categories = self.settings.categories
        results: List[List[Paragraph]] = []
        workers = max(1, int(self.settings.fetch_workers))

        if workers > 1 and len(words) > 1:
            with ThreadPoolExecutor(max_workers=min(workers, len(words))) as ex:
                futures = [ex.submit(self.storage.query_for_word, w, categories) for w in words]
                for fut in futures:
                    if cancel is not None and cancel.is_set():
                        for f in futures:
                            f.cancel()
                        _check(cancel)
                    results.append(fut.result())
        else:
            for w in words:
                _check(cancel)
                results.append(self.storage.query_for_word(w, categories))
        _check(cancel)

        merged: Counter = Counter()
        for found in results:
            merged |= Counter(found)
        return sorted(merged.elements(), key=lambda p: (p.publication_id, p.body))

    def _weight(self, word: str, document_id: int, cache: Dict[int, float]) -> float:
        if not self.settings.enable_tfidf_weighting or self.tfidf is None:
            return 1.0
        if document_id not in cache:
            cache[document_id] = self.tfidf.score(word, document_id)
        return cache[document_id]

    def rank(self, word: str, max_words: int, *, cancel: Optional[threading.Event] = None) -> List[WordVector]:
        """Top max_words context words for word, highest score first. [] when word never occurs."""
        if max_words < 0:
            raise MalformedInput(f"max_words must be >= 0, got {max_words}")
        target = normalize(word)
        if not target or max_words == 0:
            return []

        words = self.query_words(word)
        paragraphs = self.fetch_paragraphs(words, cancel)
        window = self.settings.words_to_capture

        contributions: List[Tuple[str, float]] = []
        occurrences = 0
        weights: Dict[int, float] = {}
        for p in paragraphs:
            for w in words:
                for ctx in extract_contexts(p.body, w, window):
                    occurrences += 1
                    weight = self._weight(word, p.publication_id, weights)
                    seen = set()
                    for tok in ctx.tokens:
                        cand = normalize(tok)
                        if not cand or cand == target or cand in seen:
                            continue
                        seen.add(cand)
                        contributions.append((cand, weight))

        log.debug("rank(%r): words=%s paragraphs=%d occurrences=%d",
                  word, words, len(paragraphs), occurrences)
        if occurrences == 0:
            return []
        return select_top_k(aggregate(contributions, occurrences), max_words)
