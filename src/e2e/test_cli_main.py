import json
from pathlib import Path
import pytest
from altwords_web.__main__ import main

def _seed(tmp: Path) -> str:
    root = tmp / "Archive"; root.mkdir()
    (root / "f.txt").write_text(
        "the quick brown fox jumps\nthe quick red fox runs\na red fox sleeps\n", encoding="utf-8"
    )
    return str(root)

@pytest.mark.e2e
def test_cli_word_json(tmp_path: Path, capsys):
    rc = main(["--build", "--roots", _seed(tmp_path), "--db", "memory://",
               "--window", "1", "--word", "fox", "-k", "2", "--json"])
    assert rc == 0
    rows = json.loads(capsys.readouterr().out)
    assert [r["word"] for r in rows] == ["red", "sleep"]

@pytest.mark.e2e
def test_cli_sentence_and_reload(tmp_path: Path, capsys):
    db = tmp_path / "corpus.sqlite"
    assert main(["--build", "--roots", _seed(tmp_path), "--db", f"sqlite:///{db}", "--window", "1"]) == 0
    capsys.readouterr()
    rc = main(["--load", "--db", f"sqlite:///{db}", "--window", "1",
               "--sentence", "the quick brown fox jumps", "--start", "16", "--end", "19", "-k", "2"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "red" in out and "brown" in out

@pytest.mark.e2e
def test_cli_bad_range(tmp_path: Path, capsys):
    rc = main(["--build", "--roots", _seed(tmp_path), "--sentence", "a fox", "--start", "4", "--end", "1"])
    assert rc == 2
    assert "invalid query range" in capsys.readouterr().out

def test_cli_requires_roots():
    with pytest.raises(SystemExit):
        main(["--build"])
    with pytest.raises(SystemExit):
        main(["--load"])
