from __future__ import annotations
import logging
import threading
from typing import Dict, Iterable, List, Mapping, Optional

import nltk
from nltk.data import find

from .normalize import fuzzy_string_equals, normalize

log = logging.getLogger(__name__)


def _ensure_resource(resource_name: str, download_name: Optional[str] = None) -> None:
    """Make sure an NLTK resource is present, downloading it on first use."""
    try:
        find(resource_name)
    except LookupError:
        log.info("Downloading NLTK resource %s", resource_name)
        nltk.download(download_name or resource_name.split("/")[-1], quiet=True)


class NoSynonyms:
    """Synonym provider that never expands."""
    def __call__(self, word: str) -> List[str]:
        return []


class StaticSynonyms:
    """Synonyms from a fixed mapping; keys are matched by canonical form."""

    def __init__(self, mapping: Mapping[str, Iterable[str]]) -> None:
        self._map: Dict[str, List[str]] = {}
        for key, values in mapping.items():
            self._map.setdefault(normalize(key), []).extend(values)

    def __call__(self, word: str) -> List[str]:
        return list(self._map.get(normalize(word), ()))


class WordNetSynonyms:
    """
    Single-word lemma names from every WordNet synset of the word.

    The corpus is loaded lazily; pass `wn` to use another object exposing
    synsets(word) (tests do).
    """

    def __init__(self, wn=None, max_synonyms: int = 10) -> None:
        self._wn = wn
        self.max_synonyms = max_synonyms
        self._lock = threading.Lock()

    def _corpus(self):
        with self._lock:
            if self._wn is None:
                _ensure_resource("corpora/wordnet", "wordnet")
                from nltk.corpus import wordnet
                self._wn = wordnet
            return self._wn

    def __call__(self, word: str) -> List[str]:
        out: List[str] = []
        for syn in self._corpus().synsets(word):
            for lemma in syn.lemmas():
                name = lemma.name().replace("_", " ")
                # multi-word lemmas cannot be looked up as one word
                if " " in name or "-" in name:
                    continue
                if fuzzy_string_equals(name, word) or any(fuzzy_string_equals(name, o) for o in out):
                    continue
                out.append(name)
                if len(out) >= self.max_synonyms:
                    return out
        return out
