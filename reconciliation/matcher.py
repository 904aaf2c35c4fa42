#!/usr/bin/env python3
"""
Identity Matcher - Fuzzy matching of people across data sources.

Scores name similarity on normalized names and lets an exact email match
override the name score. Every target is compared against every candidate,
which is fine at class-roster scale (tens to low hundreds of people) but
grows as N x M for larger cohorts.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .identity import Identity
from .normalizer import normalize_name

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.6
CONTAINMENT_SCORE = 0.8


@dataclass
class IdentityMatch:
    """Best candidate for a target identity."""
    candidate: Identity
    score: float  # 0-1
    index: int  # position in the candidate list


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Calculate similarity between two names.

    Returns:
        1.0 for equal normalized names, 0.8 when one contains the other,
        otherwise the share of word overlaps (0-1)
    """
    if not a or not b:
        return 0.0

    norm_a = normalize_name(a)
    norm_b = normalize_name(b)

    if not norm_a or not norm_b:
        # nothing survives normalization (e.g. a lone initial)
        if not norm_a and not norm_b and a.strip().lower() == b.strip().lower():
            return 1.0
        return 0.0

    if norm_a == norm_b:
        return 1.0

    if norm_a in norm_b or norm_b in norm_a:
        return CONTAINMENT_SCORE

    words_a = norm_a.split()
    words_b = norm_b.split()
    shorter, longer = (words_a, words_b) if len(words_a) <= len(words_b) else (words_b, words_a)

    matching = 0
    for word in shorter:
        if any(word in other or other in word for other in longer):
            matching += 1

    return matching / max(len(words_a), len(words_b))


class IdentityMatcher:
    """
    Finds the best matching identity in a candidate pool.

    Name scores are the best over every pair of target and candidate name
    fields; equal non-empty emails force a score of 1.0.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        """
        Initialize the matcher.

        Args:
            threshold: Minimum score (0-1) for a candidate to count as a match
        """
        self.threshold = threshold

    def score(self, target: Identity, candidate: Identity) -> float:
        """Score one candidate against the target."""
        best = 0.0
        for target_name in target.names():
            for candidate_name in candidate.names():
                best = max(best, similarity(target_name, candidate_name))
                if best == 1.0:
                    return best

        if target.email and candidate.email and target.email.lower() == candidate.email.lower():
            best = 1.0

        return best

    def find_best_match(self, target: Identity, candidates: Sequence[Identity]) -> Optional[IdentityMatch]:
        """
        Find the highest-scoring candidate at or above the threshold.

        Ties keep the earliest candidate so results follow input order.

        Args:
            target: Identity to look up
            candidates: Pool to search

        Returns:
            IdentityMatch or None when nothing reaches the threshold
        """
        best: Optional[IdentityMatch] = None

        for index, candidate in enumerate(candidates):
            score = self.score(target, candidate)
            if score < self.threshold:
                continue
            if best is None or score > best.score:
                best = IdentityMatch(candidate=candidate, score=score, index=index)

        if best:
            logger.debug(f"Matched '{target.primary_name}' -> '{best.candidate.primary_name}' ({best.score:.2f})")
        return best


def find_best_match(
    target: Identity,
    candidates: Sequence[Identity],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[IdentityMatch]:
    """
    Convenience function to match one identity against a pool.

    Args:
        target: Identity to look up
        candidates: Pool to search
        threshold: Minimum score (0-1)

    Returns:
        IdentityMatch or None
    """
    return IdentityMatcher(threshold).find_best_match(target, candidates)
