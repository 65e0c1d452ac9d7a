import itertools
import random
import pytest
from altwords.config import Settings
from altwords.errors import MalformedInput
from altwords.models import Paragraph, WordVector
from altwords.normalize import canonical_words, normalize
from altwords.ranking import Ranker, aggregate, select_top_k

class _ListStorage:
    """Returns a fixed paragraph list, in the given order, for any word it contains."""
    def __init__(self, paragraphs):
        self.paragraphs = list(paragraphs)

    def query_for_word(self, word, categories=None):
        w = normalize(word)
        return [p for p in self.paragraphs if w in canonical_words(p.body)]

def _brute_force(vectors, k):
    return sorted(vectors, key=lambda v: -v.score)[:k]

def test_top3_of_10_matches_full_sort():
    rng = random.Random(7)
    vectors = [WordVector(f"w{i}", rng.random()) for i in range(10)]
    got = select_top_k(vectors, 3)
    assert len(got) == 3
    assert [v.score for v in got] == sorted((v.score for v in got), reverse=True)
    assert got == _brute_force(vectors, 3)

@pytest.mark.parametrize("seed", range(20))
def test_random_inputs_with_ties(seed):
    rng = random.Random(seed)
    n = rng.randint(0, 40)
    vectors = [WordVector(f"w{i}", rng.choice([0.1, 0.2, 0.3, -0.5, 1.0])) for i in range(n)]
    for k in (1, 3, 10, 50):
        assert select_top_k(vectors, k) == _brute_force(vectors, k)

def test_fewer_candidates_than_k_and_zero_k():
    vectors = [WordVector("a", 0.1), WordVector("b", 0.9)]
    assert [v.word for v in select_top_k(vectors, 5)] == ["b", "a"]
    assert select_top_k(vectors, 0) == []
    assert select_top_k([], 3) == []

def test_aggregate_sums_and_divides_in_first_seen_order():
    got = aggregate([("b", 1.0), ("a", 1.0), ("b", 1.0)], 4)
    assert got == [WordVector("b", 0.5), WordVector("a", 0.25)]
    assert aggregate([("a", 1.0)], 0) == []

PARAGRAPHS = [
    Paragraph(1, "the quick brown fox jumps"),
    Paragraph(1, "the quick red fox runs"),
    Paragraph(2, "a red fox sleeps"),
    Paragraph(3, "fox and hound and fox"),
]

def test_order_invariance():
    settings = Settings(words_to_capture=2, enable_synonym_expansion=False)
    expected = Ranker(_ListStorage(PARAGRAPHS), settings=settings).rank("fox", 4)
    assert expected
    for perm in itertools.permutations(PARAGRAPHS):
        assert Ranker(_ListStorage(perm), settings=settings).rank("fox", 4) == expected

def test_scores_are_probabilities_and_query_word_is_excluded():
    settings = Settings(words_to_capture=2, enable_synonym_expansion=False)
    rows = Ranker(_ListStorage(PARAGRAPHS), settings=settings).rank("fox", 50)
    assert all(0.0 <= r.score <= 1.0 for r in rows)
    assert "fox" not in {r.word for r in rows}

def test_window_of_one():
    settings = Settings(words_to_capture=1, enable_synonym_expansion=False)
    rows = Ranker(_ListStorage(PARAGRAPHS[:3]), settings=settings).rank("fox", 10)
    assert [r.word for r in rows] == ["red", "brown", "jump", "run", "sleep"]
    assert rows[0].score == pytest.approx(2 / 3)
    assert rows[1].score == pytest.approx(1 / 3)

def test_empty_result_and_bad_k():
    ranker = Ranker(_ListStorage(PARAGRAPHS), settings=Settings(enable_synonym_expansion=False))
    assert ranker.rank("zebra", 5) == []
    assert ranker.rank("", 5) == []
    assert ranker.rank("fox", 0) == []
    with pytest.raises(MalformedInput):
        ranker.rank("fox", -1)

def test_paragraph_found_for_word_and_synonym_counts_once():
    paras = [Paragraph(1, "big fox and vixen den")]
    settings = Settings(words_to_capture=1)
    syn = {"fox": ["vixen", "Foxes"]}.get
    ranker = Ranker(_ListStorage(paras), settings=settings, synonyms=lambda w: syn(w, []))
    assert ranker.query_words("fox") == ["fox", "vixen"]
    rows = {r.word: r.score for r in ranker.rank("fox", 10)}
    # fox -> (big, and), vixen -> (and, den): two occurrences
    assert rows == {"big": 0.5, "and": 1.0, "den": 0.5}
