from pathlib import Path
import pytest
from altwords.config import Settings
from altwords.engine import Engine

def _seed(tmp: Path) -> str:
    root = tmp / "Archive"
    (root / "Animals").mkdir(parents=True)
    (root / "Sports").mkdir()
    (root / "Animals" / "fox.txt").write_text(
        "the quick brown fox jumps\nthe quick red fox runs\na red fox sleeps\n", encoding="utf-8"
    )
    (root / "Sports" / "team.txt").write_text("the fox mascot cheers\n", encoding="utf-8")
    return str(root)

@pytest.mark.e2e
def test_build_memory_and_query(tmp_path: Path):
    eng = Engine(settings=Settings(words_to_capture=1))
    try:
        assert eng.build(roots=[_seed(tmp_path)], db_dsn="memory://") == 2
        assert eng.storage.count() == 2
        words = eng.alternative_words("fox", 10)
        assert words[0] == "red" and "mascot" in words
    finally:
        eng.shutdown()

@pytest.mark.e2e
def test_categories_limit_the_corpus(tmp_path: Path):
    eng = Engine(settings=Settings(words_to_capture=1, categories=frozenset({"Animals"})))
    try:
        eng.build(roots=[_seed(tmp_path)], db_dsn="memory://")
        assert "mascot" not in eng.alternative_words("fox", 10)
    finally:
        eng.shutdown()

@pytest.mark.e2e
def test_persist_sqlite_and_reload(tmp_path: Path):
    roots = _seed(tmp_path)
    db = tmp_path / "corpus.sqlite"

    e1 = Engine(settings=Settings(words_to_capture=1, enable_tfidf_weighting=True))
    e1.build(roots=[roots], db_dsn=f"sqlite:///{db}")
    before = e1.rank("fox", 5)
    e1.shutdown()

    assert db.exists()
    assert (tmp_path / "corpus.tfidf.sqlite").exists()

    e2 = Engine(settings=Settings(words_to_capture=1, enable_tfidf_weighting=True))
    try:
        e2.load(db_dsn=f"sqlite:///{db}")
        assert e2.rank("fox", 5) == before
        assert e2.tfidf.total_documents() == 2
        # rebuilding over the same files adds nothing new
        e2.build(roots=[roots], db_dsn=f"sqlite:///{db}")
        assert e2.storage.count() == 2
        assert e2.tfidf.total_documents() == 2
    finally:
        e2.shutdown()

@pytest.mark.e2e
def test_load_missing_db(tmp_path: Path):
    eng = Engine()
    with pytest.raises(FileNotFoundError):
        eng.load(db_dsn=f"sqlite:///{tmp_path / 'none.sqlite'}")
    with pytest.raises(ValueError):
        eng.load(db_dsn="memory://")

@pytest.mark.e2e
def test_build_from_wikipedia_dump(tmp_path: Path):
    dump = tmp_path / "dump.xml"
    dump.write_text(
        "<mediawiki><page><title>Fox</title><ns>0</ns><id>1</id>"
        "<revision><text>The red fox hunts.\nA grey fox rests.</text></revision></page></mediawiki>",
        encoding="utf-8",
    )
    eng = Engine(settings=Settings(words_to_capture=1))
    try:
        assert eng.build(wikipedia=str(dump), db_dsn="memory://") == 1
        assert eng.alternative_words("fox", 10) == ["grey", "rest", "red", "hunt"]
    finally:
        eng.shutdown()

def test_build_requires_input():
    with pytest.raises(ValueError):
        Engine().build(roots=[])
