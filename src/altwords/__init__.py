"""
Contextual word-alternative engine.

Suggests words that could replace a word inside a sentence, ranked by how
strongly they share context with it across an ingested corpus.

Example Usage:
    from altwords import Engine

    eng = Engine()
    eng.build(roots=["/path/to/texts"], db_dsn="memory://")
    print(eng.alternative_words("happy", 5))
    print(eng.sentence_find_alternative_words("a happy little tree", 2, 7, 5))
    eng.shutdown()
"""

# src/altwords/__init__.py
from .config import Settings
from .engine import Engine
from .errors import (
    AltWordsError, InvalidRange, MalformedInput, QueryCancelled, StorageUnavailable, UnknownDocument,
)
from .normalize import fuzzy_string_equals, normalize

__version__ = "1.0.0"
__all__ = [
    "Engine", "Settings", "normalize", "fuzzy_string_equals",
    "AltWordsError", "MalformedInput", "InvalidRange", "UnknownDocument",
    "StorageUnavailable", "QueryCancelled",
]
