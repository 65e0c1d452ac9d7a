from __future__ import annotations
import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

VOWELS = frozenset("aeiou")

# letters/digits, with a single apostrophe allowed between two runs (don't, Ryan's)
_TOKEN_RE = re.compile(r"[^\W_]+(?:['’][^\W_]+)*")
_POSSESSIVE_RE = re.compile(r"(?:['’]s?)+$")


# ---- pattern elements (matched right-to-left against the word's tail) ----

@dataclass(frozen=True)
class Literal:
    char: str

@dataclass(frozen=True)
class Consonant:
    index: int    # placeholders sharing an index must bind the same character

@dataclass(frozen=True)
class Vowel:
    index: int

Placeholder = Union[Literal, Consonant, Vowel]


# ---- predicates ----

@dataclass(frozen=True)
class LongerThan:
    n: int

@dataclass(frozen=True)
class EndsWith:
    pattern: Tuple[Placeholder, ...]

@dataclass(frozen=True)
class VowelBefore:
    """Some vowel occurs before the last `n` characters."""
    n: int

Predicate = Union[LongerThan, EndsWith, VowelBefore]


@dataclass(frozen=True)
class Slice:
    """Keep word[start:end] and append `append`. A negative end counts from the end."""
    start: int = 0
    end: Optional[int] = None
    append: str = ""

    def apply(self, word: str) -> str:
        return word[self.start:self.end] + self.append


@dataclass(frozen=True)
class Rule:
    predicates: Tuple[Predicate, ...]
    transform: Slice


def ends_with(*items: Union[str, Placeholder]) -> EndsWith:
    """Build an EndsWith predicate; plain strings expand into one Literal per character."""
    pattern: List[Placeholder] = []
    for item in items:
        if isinstance(item, str):
            pattern.extend(Literal(ch) for ch in item)
        else:
            pattern.append(item)
    return EndsWith(tuple(pattern))


# /* ~~~ evaluation order matters: the first rule whose predicates all hold wins ~~~ */
RULES: Tuple[Rule, ...] = (
    # -ying: staying -> stay, lying -> lie
    Rule((LongerThan(5), ends_with("ying")), Slice(0, -3)),
    Rule((LongerThan(4), ends_with("ying")), Slice(0, -4, "ie")),
    # doubled l/s/f/z belong to the stem: falling -> fall, passing -> pass
    Rule((LongerThan(5), ends_with("lling")), Slice(0, -3)),
    Rule((LongerThan(5), ends_with("ssing")), Slice(0, -3)),
    Rule((LongerThan(5), ends_with("ffing")), Slice(0, -3)),
    Rule((LongerThan(5), ends_with("zzing")), Slice(0, -3)),
    # stopping -> stop, starring -> star, beginning -> begin
    Rule((LongerThan(5), ends_with(Consonant(0), Consonant(0), "ing")), Slice(0, -4)),
    # dancing -> dance
    Rule((LongerThan(5), ends_with(Consonant(0), "cing")), Slice(0, -3, "e")),
    # naming -> name, having -> have, facing -> face
    Rule((LongerThan(5), ends_with(Consonant(0), Vowel(1), Consonant(2), "ing")), Slice(0, -3, "e")),
    # acting -> act; string keeps its vowel-less stem
    Rule((LongerThan(5), ends_with("ing"), VowelBefore(3)), Slice(0, -3)),

    # studied -> study, died -> die
    Rule((LongerThan(4), ends_with("ied")), Slice(0, -3, "y")),
    Rule((LongerThan(3), ends_with("ied")), Slice(0, -1)),
    Rule((LongerThan(4), ends_with("lled")), Slice(0, -2)),
    Rule((LongerThan(4), ends_with("ssed")), Slice(0, -2)),
    Rule((LongerThan(4), ends_with("ffed")), Slice(0, -2)),
    Rule((LongerThan(4), ends_with("zzed")), Slice(0, -2)),
    # stopped -> stop
    Rule((LongerThan(4), ends_with(Consonant(0), Consonant(0), "ed")), Slice(0, -3)),
    # payed -> pay
    Rule((LongerThan(4), ends_with("yed")), Slice(0, -2)),
    # danced -> dance
    Rule((LongerThan(4), ends_with(Consonant(0), "ced")), Slice(0, -1)),
    # phoned -> phone, accoladed -> accolade
    Rule((LongerThan(4), ends_with(Vowel(0), Consonant(1), "ed")), Slice(0, -1)),
    Rule((LongerThan(4), ends_with("ued")), Slice(0, -1)),
    # compacted -> compact
    Rule((LongerThan(4), ends_with(Consonant(0), Consonant(1), "ed")), Slice(0, -2)),

    # not plurals: class, bus, this
    Rule((ends_with("ss"),), Slice()),
    Rule((ends_with("us"),), Slice()),
    Rule((ends_with("is"),), Slice()),
    Rule((LongerThan(4), ends_with("ies")), Slice(0, -3, "y")),
    Rule((LongerThan(4), ends_with("sses")), Slice(0, -2)),
    Rule((LongerThan(3), ends_with("xes")), Slice(0, -2)),
    Rule((LongerThan(4), ends_with("ches")), Slice(0, -2)),
    Rule((LongerThan(4), ends_with("shes")), Slice(0, -2)),
    # safes -> safe, headphones -> headphone
    Rule((LongerThan(3), ends_with("s")), Slice(0, -1)),
)


def _is_vowel(ch: str) -> bool:
    return ch in VOWELS

def _is_consonant(ch: str) -> bool:
    return ch.isalpha() and ch not in VOWELS

def _matches_tail(word: str, pattern: Tuple[Placeholder, ...]) -> bool:
    if len(pattern) > len(word):
        return False
    bound: Dict[int, str] = {}
    tail = word[len(word) - len(pattern):]
    for ch, el in zip(tail, pattern):
        if isinstance(el, Literal):
            if ch != el.char:
                return False
            continue
        if isinstance(el, Consonant):
            if not _is_consonant(ch):
                return False
        elif not _is_vowel(ch):
            return False
        if bound.setdefault(el.index, ch) != ch:
            return False
    return True

def _holds(pred: Predicate, word: str) -> bool:
    if isinstance(pred, LongerThan):
        return len(word) > pred.n
    if isinstance(pred, VowelBefore):
        return any(_is_vowel(ch) for ch in word[:-pred.n])
    return _matches_tail(word, pred.pattern)

def apply_rules(word: str, rules: Tuple[Rule, ...] = RULES) -> str:
    """Apply the first rule whose predicate chain holds; unmatched words pass through."""
    for rule in rules:
        if all(_holds(p, word) for p in rule.predicates):
            return rule.transform.apply(word)
    return word

def _strip_possessive(word: str) -> str:
    return _POSSESSIVE_RE.sub("", word)

def normalize(token: str) -> str:
    """
    Canonical lookup key for a token: casefolded, trimmed, possessive removed and
    suffix-stripped. Rules are re-applied until the word stops changing, so
    normalize(normalize(x)) == normalize(x). Never raises.
    """
    word = token.casefold()
    while True:
        stemmed = apply_rules(_strip_possessive(word.strip()))
        if stemmed == word:
            return word
        word = stemmed

def fuzzy_string_equals(a: str, b: str) -> bool:
    """Two tokens are the same word iff their canonical forms are equal."""
    return normalize(a) == normalize(b)

def split_words(text: str) -> List[str]:
    """Split text into tokens on whitespace, punctuation and symbols. Case is kept."""
    return _TOKEN_RE.findall(text)

def canonical_words(text: str) -> List[str]:
    return [w for w in (normalize(t) for t in split_words(text)) if w]

def word_frequencies(text: str) -> Counter:
    """Occurrences of each canonical word in text."""
    return Counter(canonical_words(text))
