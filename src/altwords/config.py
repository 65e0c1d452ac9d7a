from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

TOP_K: int = 5

# Context window half-width: tokens captured on each side of the target
WORDS_TO_CAPTURE: int = 3

# Weight each context occurrence by the target's tf-idf score in its document
ENABLE_TFIDF_WEIGHTING: bool = False

# Also search paragraphs that contain synonyms of the target
ENABLE_SYNONYM_EXPANSION: bool = True

# Threads used to fetch paragraphs for the target and its synonyms (1 = sequential)
FETCH_WORKERS: int = 1

# /* ~~~ how many extra candidates rank() yields before sentence-context re-ranking ~~~ */
CONTEXT_OVERSAMPLE: int = 4

# Text unit for ingestion: "line" (one paragraph per line) or "paragraph" (blank-line blocks)
TEXT_UNIT: str = "line"

# file types picked up by the loader
INCLUDE_EXTS = [".txt", ".md"]

# folders to skip while walking roots
EXCLUDE_DIRS = {".git", ".hg", ".svn", ".idea", ".vscode", "node_modules", "__pycache__"}

DEFAULT_DB_DSN: str = "memory://"

# Progress logging (set ALTWORDS_VERBOSE=1 to enable)
VERBOSE = os.environ.get("ALTWORDS_VERBOSE") == "1"


@dataclass(frozen=True)
class Settings:
    """Per-engine knobs; defaults mirror the module constants above."""
    words_to_capture: int = WORDS_TO_CAPTURE
    enable_tfidf_weighting: bool = ENABLE_TFIDF_WEIGHTING
    enable_synonym_expansion: bool = ENABLE_SYNONYM_EXPANSION
    fetch_workers: int = FETCH_WORKERS
    context_oversample: int = CONTEXT_OVERSAMPLE
    categories: Optional[FrozenSet[str]] = field(default=None)

    @classmethod
    def default(cls) -> "Settings":
        return cls()
