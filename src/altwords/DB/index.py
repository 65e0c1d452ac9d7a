from __future__ import annotations
import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Set

from ..normalize import canonical_words, normalize


class WordIndex:
    """
    Inverted index over canonical words: word -> ids of the paragraphs containing it.
    Postings are sets, so a word repeated inside one paragraph is listed once.
    """

    def __init__(self) -> None:
        self._postings: Dict[str, Set[int]] = defaultdict(set)
        self._lock = threading.Lock()

    def add(self, paragraph_id: int, body: str) -> None:
        words = set(canonical_words(body))
        with self._lock:
            for w in words:
                self._postings[w].add(int(paragraph_id))

    def add_many(self, items: Iterable[tuple[int, str]]) -> int:
        n = 0
        for pid, body in items:
            self.add(pid, body)
            n += 1
        return n

    def lookup(self, word: str) -> List[int]:
        """Paragraph ids for the word's canonical form, ascending."""
        key = normalize(word)
        with self._lock:
            ids = self._postings.get(key)
            return sorted(ids) if ids else []

    def vocabulary_size(self) -> int:
        with self._lock:
            return len(self._postings)

    def clear(self) -> None:
        with self._lock:
            self._postings.clear()
