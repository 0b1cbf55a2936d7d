"""
Fuzzy string matching for header and value comparison.

Every score is on a 0-100 scale. Comparisons run on normalized text
(lowercase, alphanumerics only), so "Project_Name", "project-name" and
"Project Name" are all the same string.
"""

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

# Common abbreviations found in spreadsheet headers
ABBREVIATIONS: Dict[str, Tuple[str, ...]] = {
    "id": ("identifier", "identification"),
    "desc": ("description",),
    "mgr": ("manager",),
    "pm": ("project manager",),
    "dept": ("department",),
    "org": ("organization", "organisation"),
    "est": ("estimated", "estimate"),
    "act": ("actual",),
    "hrs": ("hours",),
    "pct": ("percent", "percentage"),
    "amt": ("amount",),
    "qty": ("quantity",),
    "num": ("number",),
    "dt": ("date",),
    "yr": ("year",),
    "mo": ("month",),
    "wk": ("week",),
    "fy": ("fiscal year",),
    "seq": ("sequence",),
    "cat": ("category",),
    "stat": ("status",),
    "rag": ("red amber green",),
    "wbs": ("work breakdown structure",),
    "kpi": ("key performance indicator",),
    "bsc": ("balanced scorecard",),
}

_SEPARATORS = re.compile(r"[_\-\s]+")
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NON_ALNUM_SPACE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class MatchResult:
    score: float
    reason: str


@dataclass
class BestMatch:
    target: str
    score: float
    index: int


def round_score(value: float) -> int:
    """Round half up, so 8.5 becomes 9 rather than banker's 8."""
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def normalize(text) -> str:
    """Lowercase and strip everything but letters and digits."""
    lowered = str(text).lower()
    return _NON_ALNUM.sub("", _SEPARATORS.sub("", lowered))


def normalize_with_spaces(text) -> str:
    """Like normalize() but keeps word boundaries as single spaces."""
    lowered = _SEPARATORS.sub(" ", str(text).lower())
    lowered = _NON_ALNUM_SPACE.sub("", lowered)
    return _WHITESPACE.sub(" ", lowered).strip()


def extract_words(text) -> List[str]:
    return [w for w in normalize_with_spaces(text).split(" ") if w]


# ---------------------------------------------------------------------------
# Distance metrics
# ---------------------------------------------------------------------------

def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit cost insert/delete/substitute."""
    return Levenshtein.distance(a, b)


def levenshtein_similarity(a: str, b: str) -> float:
    """1.0 for identical strings, 0.0 for completely different ones."""
    if not a and not b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def fuzzy_match(source, target) -> float:
    """Score two strings 0-100.

    Identical after normalization scores 100. When one contains the other the
    score lands between 85 and 95 depending on how much of the longer string
    the shorter one covers. Anything else is edit-distance similarity scaled
    to 80.
    """
    s = normalize(source)
    t = normalize(target)

    if s == t:
        return 100 if s else 0
    if not s or not t:
        return 0

    if t in s:
        return 85 + (len(t) / len(s)) * 10
    if s in t:
        return 85 + (len(s) / len(t)) * 10

    return round_score(levenshtein_similarity(s, t) * 80)


def word_overlap_score(source, target) -> int:
    """Jaccard overlap of the two word sets, 0-100."""
    source_words = set(extract_words(source))
    target_words = set(extract_words(target))
    if not source_words or not target_words:
        return 0

    intersection = source_words & target_words
    union = source_words | target_words
    return round_score(len(intersection) / len(union) * 100)


def contains_all_words(source, words: Sequence[str]) -> bool:
    normalized = normalize(source)
    return all(normalize(word) in normalized for word in words)


# ---------------------------------------------------------------------------
# Abbreviations
# ---------------------------------------------------------------------------

def expand_abbreviations(text: str) -> List[str]:
    """Return text plus one variant per known abbreviation substitution."""
    variants = [text]
    normalized = normalize(text)

    for abbrev, expansions in ABBREVIATIONS.items():
        if abbrev in normalized:
            pattern = re.compile(re.escape(abbrev), re.IGNORECASE)
            for expansion in expansions:
                variants.append(pattern.sub(expansion, text))

    return variants


def fuzzy_match_with_abbreviations(source: str, target: str) -> float:
    best = 0.0
    target_variants = expand_abbreviations(target)
    for source_variant in expand_abbreviations(source):
        for target_variant in target_variants:
            best = max(best, fuzzy_match(source_variant, target_variant))
    return best


# ---------------------------------------------------------------------------
# Composite matching
# ---------------------------------------------------------------------------

def composite_match(
    source: str,
    target: str,
    aliases: Sequence[str] = (),
    report_minimum: int = 60,
) -> MatchResult:
    """Best of exact / alias / fuzzy / word-overlap strategies with a reason."""
    normalized_source = normalize(source)
    if not normalized_source:
        return MatchResult(0, "Empty header")

    if normalized_source == normalize(target):
        return MatchResult(100, "Exact match")

    for alias in aliases:
        if normalized_source == normalize(alias):
            return MatchResult(98, f'Alias match: "{alias}"')

    fuzzy_score = fuzzy_match_with_abbreviations(source, target)
    word_score = word_overlap_score(source, target)

    best_alias_score = 0.0
    best_alias = ""
    for alias in aliases:
        score = fuzzy_match_with_abbreviations(source, alias)
        if score > best_alias_score:
            best_alias_score = score
            best_alias = alias

    if (
        best_alias_score >= fuzzy_score
        and best_alias_score >= word_score
        and best_alias_score >= report_minimum
    ):
        return MatchResult(best_alias_score, f'Similar to alias: "{best_alias}"')
    if word_score >= fuzzy_score and word_score >= report_minimum:
        return MatchResult(word_score, "Word overlap match")
    if fuzzy_score >= report_minimum:
        return MatchResult(fuzzy_score, "Fuzzy string match")

    return MatchResult(max(fuzzy_score, word_score, best_alias_score), "Low confidence")


def find_best_match(
    source: str, targets: Sequence[str], threshold: float = 50
) -> Optional[BestMatch]:
    """Highest-scoring target at or above threshold; earlier targets win ties."""
    best: Optional[BestMatch] = None
    for index, target in enumerate(targets):
        score = fuzzy_match(source, target)
        if score >= threshold and (best is None or score > best.score):
            best = BestMatch(target=target, score=score, index=index)
    return best


def find_all_matches(
    source: str, targets: Sequence[str], threshold: float = 50
) -> List[BestMatch]:
    matches = [
        BestMatch(target=target, score=fuzzy_match(source, target), index=index)
        for index, target in enumerate(targets)
    ]
    matches = [m for m in matches if m.score >= threshold]
    matches.sort(key=lambda m: m.score, reverse=True)
    return matches
