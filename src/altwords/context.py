from __future__ import annotations
from typing import Iterable, Iterator, List

from .errors import MalformedInput
from .models import ContextWindow, Paragraph
from .normalize import normalize, split_words


def extract_contexts(paragraph: str, target_word: str, window_size: int) -> List[ContextWindow]:
    """
    Return one ContextWindow per occurrence of target_word in paragraph.

    Occurrences are matched with fuzzy equality (equal canonical forms). Each
    window holds up to window_size tokens on each side, clipped at the paragraph
    boundaries; the occurrence itself is never part of its window.
    """
    if window_size < 0:
        raise MalformedInput(f"window size must be >= 0, got {window_size}")
    tokens = split_words(paragraph)
    target = normalize(target_word)
    if not tokens or not target:
        return []

    windows: List[ContextWindow] = []
    for i, tok in enumerate(tokens):
        if normalize(tok) != target:
            continue
        before = tokens[max(0, i - window_size):i]
        after = tokens[i + 1:i + 1 + window_size]
        windows.append(ContextWindow(before=tuple(before), after=tuple(after)))
    return windows


def iter_paragraph_contexts(
    paragraphs: Iterable[Paragraph], target_word: str, window_size: int
) -> Iterator[tuple[Paragraph, ContextWindow]]:
    """Yield (paragraph, window) for every occurrence across paragraphs, in order."""
    for p in paragraphs:
        for w in extract_contexts(p.body, target_word, window_size):
            yield p, w
