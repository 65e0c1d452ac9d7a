from __future__ import annotations
import logging
import os
import re
import xml.etree.ElementTree as ET
from typing import Iterable, Iterator, List, Optional

from . import config as CFG
from .config import EXCLUDE_DIRS, INCLUDE_EXTS, TEXT_UNIT
from .models import Publication

log = logging.getLogger(__name__)

PROGRESS_EVERY_FILES = 500
PROGRESS_EVERY_PAGES = 1_000

# ---- wikitext cleanup (good enough for word statistics, not a renderer) ----
_WIKI_CATEGORY_RE = re.compile(r"\[\[Category:([^\]|]+)(?:\|[^\]]*)?\]\]", re.IGNORECASE)
_WIKI_REF_RE = re.compile(r"<ref[^>/]*/>|<ref[^>]*>.*?</ref>", re.DOTALL | re.IGNORECASE)
_WIKI_TEMPLATE_RE = re.compile(r"\{\{[^{}]*\}\}")
_WIKI_LINK_RE = re.compile(r"\[\[(?:[^\]|]*\|)?([^\]]*)\]\]")
_WIKI_EXTLINK_RE = re.compile(r"\[https?://[^\s\]]+\s*([^\]]*)\]")
_WIKI_TAG_RE = re.compile(r"<[^>]+>")
_WIKI_QUOTES_RE = re.compile(r"'{2,}")
_WIKI_HEADING_RE = re.compile(r"^=+\s*(.*?)\s*=+$", re.MULTILINE)


def process_paragraphs(text: str) -> List[str]:
    """Split publication text into paragraphs: one per line, trimmed, empty lines dropped."""
    out: List[str] = []
    for raw in text.split("\n"):
        body = raw.strip()
        if body:
            out.append(body)
    return out

def _join_blocks(text: str) -> str:
    """Turn blank-line separated blocks into single lines (TEXT_UNIT == "paragraph")."""
    blocks: List[str] = []
    block: List[str] = []
    for raw in text.splitlines():
        if raw.strip() == "":
            if block:
                blocks.append(" ".join(block))
                block = []
        else:
            block.append(raw.strip())
    if block:
        blocks.append(" ".join(block))
    return "\n".join(blocks)

def _iter_text_files(roots: Iterable[str]) -> Iterator[tuple[str, str]]:
    """Yield (root, path) for every included file, recursively, in a stable order."""
    exts = {e.lower() for e in INCLUDE_EXTS}
    for root in roots:
        root = os.path.abspath(root)
        if not os.path.isdir(root):
            raise FileNotFoundError(root)
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDE_DIRS)
            for fn in sorted(filenames):
                if os.path.splitext(fn)[1].lower() in exts:
                    yield root, os.path.join(dirpath, fn)

def _read_text(path: str) -> str:
    with open(path, "rb") as f:
        raw = f.read()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1", errors="ignore")

def load_publications(roots: List[str], unit: Optional[str] = None) -> Iterator[Publication]:
    """
    Scan roots for text files and yield one Publication per file.
    source_id is the path relative to its root; the category is the parent folder name.
    unit: "line" (default) or "paragraph" (blank-line separated blocks).
    """
    unit = (unit or TEXT_UNIT).lower()
    if unit not in ("line", "paragraph"):
        raise ValueError(f"unknown text unit: {unit!r}")

    n_files = 0
    for root, path in _iter_text_files(roots):
        try:
            text = _read_text(path)
        except OSError as exc:
            log.warning("Skipping unreadable file %s: %s", path, exc)
            continue
        if unit == "paragraph":
            text = _join_blocks(text)

        rel = os.path.relpath(path, root).replace("\\", "/")
        parent = os.path.basename(os.path.dirname(path))
        n_files += 1
        if CFG.VERBOSE and n_files % PROGRESS_EVERY_FILES == 0:
            log.info("[scanned] files=%d", n_files)
        yield Publication(
            title=os.path.splitext(os.path.basename(path))[0],
            text=text,
            source_id=rel,
            source_url=f"file://{path}",
            type="text",
            categories=[parent] if parent else [],
        )
    log.info("Loaded %d publications from %s", n_files, roots)


# ---- MediaWiki XML dumps ----

def clean_wikitext(text: str) -> str:
    """Drop markup from MediaWiki source, keeping the readable words."""
    text = _WIKI_CATEGORY_RE.sub("", text)
    text = _WIKI_REF_RE.sub("", text)
    # templates nest; peel innermost first
    prev = None
    while prev != text:
        prev = text
        text = _WIKI_TEMPLATE_RE.sub("", text)
    text = _WIKI_LINK_RE.sub(r"\1", text)
    text = _WIKI_EXTLINK_RE.sub(r"\1", text)
    text = _WIKI_TAG_RE.sub("", text)
    text = _WIKI_QUOTES_RE.sub("", text)
    text = _WIKI_HEADING_RE.sub(r"\1", text)
    return text

def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]

def _child_text(elem: ET.Element, name: str) -> str:
    for child in elem:
        if _local(child.tag) == name:
            return child.text or ""
    return ""

def load_wikipedia(path: str, limit: Optional[int] = None) -> Iterator[Publication]:
    """
    Stream article pages (namespace 0, not redirects) out of a MediaWiki XML dump.
    Elements are cleared as they are consumed so memory stays flat on large dumps.
    """
    n_pages = 0
    for _, elem in ET.iterparse(path, events=("end",)):
        if _local(elem.tag) != "page":
            continue
        try:
            ns = _child_text(elem, "ns") or "0"
            is_redirect = any(_local(c.tag) == "redirect" for c in elem)
            if ns.strip() != "0" or is_redirect:
                continue
            title = _child_text(elem, "title")
            page_id = _child_text(elem, "id")
            raw = ""
            for child in elem:
                if _local(child.tag) == "revision":
                    raw = _child_text(child, "text")
                    break
            categories = [c.strip() for c in _WIKI_CATEGORY_RE.findall(raw)]
            n_pages += 1
            yield Publication(
                title=title,
                text=clean_wikitext(raw),
                source_id=f"wikipedia:{page_id}",
                source_url="https://en.wikipedia.org/wiki/" + title.replace(" ", "_"),
                type="wikipedia",
                categories=categories,
            )
            if CFG.VERBOSE and n_pages % PROGRESS_EVERY_PAGES == 0:
                log.info("[wikipedia] pages=%d", n_pages)
            if limit is not None and n_pages >= limit:
                return
        finally:
            elem.clear()
