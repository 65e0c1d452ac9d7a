from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class Publication:
    """A book, article or page whose text feeds the corpus."""
    title: str
    text: str
    author: str = ""
    editor: str = ""
    date: str = ""
    source_id: str = ""       # unique per source; re-adding the same id is a no-op
    source_url: str = ""
    encoding: str = "utf-8"
    type: str = ""
    categories: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Paragraph:
    publication_id: int       # owning document
    body: str


@dataclass(frozen=True)
class WordVector:
    word: str                 # canonical form
    score: float


@dataclass(frozen=True)
class ContextWindow:
    before: Tuple[str, ...]   # up to N tokens preceding the occurrence, in text order
    after: Tuple[str, ...]    # up to N tokens following it

    @property
    def tokens(self) -> Tuple[str, ...]:
        return self.before + self.after


@dataclass(frozen=True)
class DocumentFrequencyRecord:
    word: str
    occurrences: int
    doc_max_word_freq: int    # count of the most frequent word in the document
    document: int


@dataclass(frozen=True)
class CorpusFrequencyRecord:
    word: str
    unique_documents: int
