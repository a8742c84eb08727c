"""
Fuzzy search (fzf-style) over services.

Characters must match in order but not necessarily consecutively.
A contiguous, case-insensitive substring short-circuits with a large
bonus; otherwise every order-preserving assignment is scored and the
best one wins. Scores reward the start of the string, word and
camelCase boundaries and consecutive runs; gaps and unmatched target
length are penalized.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from functools import lru_cache

from launchplane.core.models.service import Service

# ── Scoring ─────────────────────────────────────────────────────

SCORE_CONSECUTIVE = 15
SCORE_WORD_BOUNDARY = 10
SCORE_CAMEL_CASE = 10
SCORE_START_OF_STRING = 20
SCORE_EXACT_MATCH = 100
SCORE_BASE_MATCH = 1
PENALTY_DISTANCE = 1
PENALTY_UNMATCHED = 0.5

# Service fields and their weights, in tie-break order
FIELD_WEIGHTS = (
    ("label", 1.5),
    ("display_name", 1.2),
    ("description", 0.8),
)

_SEPARATOR = re.compile(r"[._\-/\s]")


@dataclass(frozen=True)
class FuzzyMatch:
    matched: bool
    score: float
    matched_indices: list[int] = field(default_factory=list)


NO_MATCH = FuzzyMatch(matched=False, score=-math.inf)


@dataclass(frozen=True)
class ServiceMatch:
    matched: bool
    score: float
    field: str
    matched_indices: list[int] = field(default_factory=list)


def is_camel_case_boundary(text: str, index: int) -> bool:
    if index <= 0 or index >= len(text):
        return False
    prev, curr = text[index - 1], text[index]
    return prev.islower() and prev.isascii() and curr.isupper() and curr.isascii()


def is_word_boundary(text: str, index: int) -> bool:
    if index == 0:
        return True
    if index >= len(text):
        return False
    return bool(_SEPARATOR.match(text[index - 1])) or is_camel_case_boundary(text, index)


def _position_score(target: str, index: int, previous: int | None) -> float:
    score: float = SCORE_BASE_MATCH
    if index == 0:
        score += SCORE_START_OF_STRING
    if is_word_boundary(target, index):
        score += SCORE_WORD_BOUNDARY
    if is_camel_case_boundary(target, index):
        score += SCORE_CAMEL_CASE
    if previous is not None:
        if index == previous + 1:
            score += SCORE_CONSECUTIVE
        else:
            score -= (index - previous - 1) * PENALTY_DISTANCE
    return score


def _exact_match(pattern: str, target: str, start: int) -> FuzzyMatch:
    score = SCORE_EXACT_MATCH + len(pattern) * SCORE_CONSECUTIVE
    if start == 0:
        score += SCORE_START_OF_STRING
    if is_word_boundary(target, start):
        score += SCORE_WORD_BOUNDARY
    score -= (len(target) - len(pattern)) * PENALTY_UNMATCHED
    return FuzzyMatch(True, score, list(range(start, start + len(pattern))))


def _subsequence_match(pattern: str, target: str) -> FuzzyMatch:
    lower_pattern = pattern.lower()
    lower_target = target.lower()

    # best(p, t): best (score, indices) for pattern[p:] using target[t:].
    # For p > 0 the previous match is always t - 1, so (p, t) fully
    # determines the subproblem.
    @lru_cache(maxsize=None)
    def best(p: int, t: int) -> tuple[float, tuple[int, ...]] | None:
        if p == len(lower_pattern):
            return 0.0, ()
        previous = t - 1 if p > 0 else None
        winner: tuple[float, tuple[int, ...]] | None = None
        for i in range(t, len(lower_target)):
            if lower_target[i] != lower_pattern[p]:
                continue
            rest = best(p + 1, i + 1)
            if rest is None:
                continue
            total = _position_score(target, i, previous) + rest[0]
            if winner is None or total > winner[0]:
                winner = (total, (i, *rest[1]))
        return winner

    result = best(0, 0)
    if result is None:
        return NO_MATCH
    score, indices = result
    score -= (len(target) - len(pattern)) * PENALTY_UNMATCHED
    return FuzzyMatch(True, score, list(indices))


def fuzzy_match(pattern: str, target: str) -> FuzzyMatch:
    """Score ``pattern`` against ``target``."""
    if not pattern:
        return FuzzyMatch(True, 0.0, [])
    if not target:
        return NO_MATCH

    start = target.lower().find(pattern.lower())
    if start != -1:
        return _exact_match(pattern, target, start)
    return _subsequence_match(pattern, target)


def fuzzy_match_service(pattern: str, service: Service) -> ServiceMatch:
    """Best weighted match across label, display name and description."""
    if not pattern:
        return ServiceMatch(True, 0.0, "label", [])

    best: ServiceMatch | None = None
    for name, weight in FIELD_WEIGHTS:
        value = getattr(service, name) or ""
        match = fuzzy_match(pattern, value)
        if not match.matched:
            continue
        weighted = match.score * weight
        # Ties go to the earlier (heavier) field
        if best is None or weighted > best.score:
            best = ServiceMatch(True, weighted, name, match.matched_indices)

    return best or ServiceMatch(False, -math.inf, "label", [])


def search(services: list[Service], pattern: str) -> list[tuple[Service, ServiceMatch]]:
    """Matching services, best score first (stable for equal scores)."""
    matches = []
    for service in services:
        match = fuzzy_match_service(pattern, service)
        if match.matched:
            matches.append((service, match))
    matches.sort(key=lambda pair: pair[1].score, reverse=True)
    return matches
