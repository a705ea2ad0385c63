from __future__ import annotations
import logging
from typing import Dict, Iterable, List

from .schemas import LengthStats, RankedResult, ScoredWord

logger = logging.getLogger(__name__)

TOP_N = 10
MIN_LENGTH = 3
MAX_LENGTH = 7

class RankingEngine:
    """Groups scored words by length and keeps the best of each group.

    Python's sort is stable, so words with equal scores keep the order in
    which the word source sent them, both inside a length group and in the
    combined list.
    """

    def __init__(self, top_n: int = TOP_N, min_length: int = MIN_LENGTH, max_length: int = MAX_LENGTH):
        self.top_n = top_n
        self.min_length = min_length
        self.max_length = max_length

    def group(self, candidates: Iterable[ScoredWord]) -> Dict[int, List[ScoredWord]]:
        buckets: Dict[int, List[ScoredWord]] = {n: [] for n in range(self.min_length, self.max_length + 1)}
        for candidate in candidates:
            bucket = buckets.get(candidate.length)
            if bucket is None:
                logger.debug("Dropping %r: length %d outside %d-%d", candidate.word, candidate.length,
                             self.min_length, self.max_length)
                continue
            bucket.append(candidate)
        return buckets

    def rank(self, candidates: Iterable[ScoredWord]) -> RankedResult:
        kept: List[ScoredWord] = []
        stats: Dict[int, LengthStats] = {}
        total_before = 0

        for length, words in self.group(candidates).items():
            if not words:
                continue
            ordered = sorted(words, key=lambda w: w.score, reverse=True)
            top = ordered[:self.top_n]
            kept.extend(top)
            total_before += len(ordered)
            stats[length] = LengthStats(
                total=len(ordered),
                kept=len(top),
                max_score=ordered[0].score,
                min_score=ordered[-1].score,
            )

        # second, independent sort over every kept word
        kept.sort(key=lambda w: w.score, reverse=True)

        return RankedResult(
            words=kept,
            total_returned=len(kept),
            total_before_truncation=total_before,
            per_length_stats=stats,
        )
