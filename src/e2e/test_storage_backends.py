from pathlib import Path
import pytest
from altwords.DB.api import make_storage
from altwords.DB.index import WordIndex
from altwords.DB.memory_store import MemoryStorage
from altwords.DB.sqlite_store import SQLiteStorage
from altwords.errors import StorageUnavailable
from altwords.models import Paragraph, Publication
from altwords.tfidf import MemoryTFIDF

@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path: Path):
    if request.param == "memory":
        s = make_storage("memory://")
    else:
        s = make_storage(f"sqlite:///{tmp_path / 'db' / 'corpus.sqlite'}")
    try:
        yield s
    finally:
        s.close()

def _pub(title, text, source_id="", categories=()):
    return Publication(title=title, text=text, source_id=source_id, categories=list(categories))

def test_add_and_query(storage):
    pid = storage.add_publication(_pub("a", "Foxes run\n\n  the hen sleeps  \n"))
    assert storage.count() == 1
    assert storage.paragraph_count() == 2
    assert storage.query_for_word("fox") == [Paragraph(pid, "Foxes run")]
    assert storage.query_for_word("HEN") == [Paragraph(pid, "the hen sleeps")]
    assert storage.query_for_word("zebra") == []

def test_paragraph_listed_once_per_word(storage):
    pid = storage.add_publication(_pub("a", "fox and fox and foxes"))
    assert storage.query_for_word("fox") == [Paragraph(pid, "fox and fox and foxes")]

def test_duplicate_source_id_is_a_noop(storage):
    first = storage.add_publication(_pub("a", "red fox", source_id="src/1"))
    again = storage.add_publication(_pub("a", "red fox", source_id="src/1"))
    other = storage.add_publication(_pub("b", "red fox"))
    assert first == again != other
    assert storage.count() == 2
    assert len(storage.query_for_word("red")) == 2

def test_categories_restrict_results(storage):
    p1 = storage.add_publication(_pub("a", "red fox", categories=["Poems"]))
    p2 = storage.add_publication(_pub("b", "grey fox", categories=["News", "Animals"]))
    assert [p.publication_id for p in storage.query_for_word("fox")] == [p1, p2]
    assert [p.publication_id for p in storage.query_for_word("fox", frozenset({"Animals"}))] == [p2]
    assert storage.query_for_word("fox", frozenset({"Sports"})) == []

def test_publication_roundtrip(storage):
    pub = Publication(
        title="Fox", text="red fox", author="A", editor="E", date="2001-01-01",
        source_id="x", source_url="http://x", type="text", categories=["Animals"],
    )
    pid = storage.add_publication(pub)
    assert storage.publication(pid) == pub
    with pytest.raises(KeyError):
        storage.publication(999)

def test_add_publication_feeds_tfidf(tmp_path: Path):
    for s_factory in (MemoryStorage, lambda tfidf: SQLiteStorage(str(tmp_path / "s.sqlite"), tfidf=tfidf)):
        t = MemoryTFIDF()
        s = s_factory(tfidf=t)
        try:
            pid = s.add_publication(_pub("a", "the fox\nthe hen"))
            assert t.total_documents() == 1
            assert t.term_frequency("the", pid) == 1.0
            assert t.term_frequency("fox", pid) == 0.75
            s.add_publication(_pub("b", ""))          # no words, no document
            assert t.total_documents() == 1
        finally:
            s.close()

def test_make_storage_rejects_unknown_dsn():
    with pytest.raises(ValueError):
        make_storage("postgres://host/db")

def test_sqlite_failures_are_storage_unavailable(tmp_path: Path):
    s = SQLiteStorage(str(tmp_path / "c.sqlite"))
    s.close()
    with pytest.raises(StorageUnavailable):
        s.query_for_word("fox")
    with pytest.raises(StorageUnavailable):
        s.add_publication(_pub("a", "red fox"))
    with pytest.raises(StorageUnavailable):
        SQLiteStorage(str(tmp_path / "missing-dir" / "c.sqlite"))

def test_word_index():
    idx = WordIndex()
    idx.add_many([(2, "Stopping the fox"), (1, "stopped")])
    assert idx.lookup("stop") == [1, 2]
    assert idx.lookup("nothing") == []
    assert idx.vocabulary_size() == 3
    idx.clear()
    assert idx.lookup("stop") == []

class _FlakyTFIDF(MemoryTFIDF):
    """Frequency store whose first batch write fails."""
    def __init__(self):
        super().__init__()
        self.failures = 1

    def store_many(self, records):
        if self.failures:
            self.failures -= 1
            raise StorageUnavailable("frequency store is down")
        super().store_many(records)

@pytest.mark.parametrize("kind", ["memory", "sqlite"])
def test_failed_scoring_leaves_nothing_and_retry_succeeds(kind, tmp_path: Path):
    t = _FlakyTFIDF()
    s = MemoryStorage(tfidf=t) if kind == "memory" else SQLiteStorage(str(tmp_path / "s.sqlite"), tfidf=t)
    pub = _pub("a", "red fox", source_id="src/1", categories=["Animals"])
    try:
        with pytest.raises(StorageUnavailable):
            s.add_publication(pub)
        assert s.count() == 0
        assert s.paragraph_count() == 0
        assert s.query_for_word("fox") == []
        assert t.total_documents() == 0

        pid = s.add_publication(pub)
        assert s.query_for_word("fox") == [Paragraph(pid, "red fox")]
        assert s.publication(pid) == pub
        assert t.term_frequency("fox", pid) == 1.0
        assert s.add_publication(pub) == pid
        assert s.count() == 1
    finally:
        s.close()

def test_sqlite_unindexed_rows_are_hidden_then_replaced(tmp_path: Path):
    t = MemoryTFIDF()
    s = SQLiteStorage(str(tmp_path / "s.sqlite"), tfidf=t)
    pub = _pub("a", "red fox", source_id="src/1")
    try:
        # rows left behind by an interrupted add
        with s._lock, s.conn:
            s._insert_rows(pub, "src/1", ["red fox"])
        assert s.count() == 0
        assert s.query_for_word("fox") == []

        pid = s.add_publication(pub)
        assert s.count() == 1
        assert s.paragraph_count() == 1
        assert s.query_for_word("fox") == [Paragraph(pid, "red fox")]
        assert t.total_documents() == 1
    finally:
        s.close()
