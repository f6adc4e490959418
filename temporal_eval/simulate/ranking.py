from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from temporal_eval.models.base import RankingRecommender
from temporal_eval.simulate.core.data import WindowedView
"""
{#!filepath: temporal_eval/simulate/ranking.py}

CandidateSampler (FINAL / FROZEN)

Builds a ranking candidate set for one event and locates the target in the
model's ordering:

    candidates = {target} ∪ decoys
    decoys     ~ uniform without replacement from
                 window items − user's window history − {target}

Invariants:
- the target is always a candidate and never drawn twice
- the user's known items are never decoys
- fewer eligible decoys than requested is not an error
- rank is 1-based, or None when the target is not in the ordering
"""


@dataclass(frozen=True)
class RankResult:
    rank: Optional[int]
    recommendations: List[int]


class CandidateSampler:
    """
    Owns nothing but the run-scoped random generator passed in by the caller.
    """

    def __init__(self, rng: np.random.Generator):
        self._rng = rng

    def sample(self, user: int, item: int, list_size: int, view: WindowedView) -> List[int]:
        if list_size < 1:
            raise ValueError(f"[CandidateSampler] list_size must be >= 1, got {list_size}")

        excludes = np.union1d(view.user_items(user), np.array([item], dtype=np.int64))

        # setdiff1d sorts the pool, so a seeded generator draws the same decoys
        pool = np.setdiff1d(view.item_ids(), excludes, assume_unique=False)

        k = min(list_size - 1, pool.size)
        decoys = self._rng.choice(pool, size=k, replace=False) if k > 0 else pool[:0]

        return [int(item)] + [int(d) for d in decoys]

    def rank_of(
        self,
        recommender: RankingRecommender,
        user: int,
        item: int,
        list_size: int,
        view: WindowedView,
    ) -> RankResult:
        candidates = self.sample(user, item, list_size, view)

        recs = [int(i) for i in recommender.recommend(user, list_size, candidates)]

        try:
            rank: Optional[int] = recs.index(int(item)) + 1
        except ValueError:
            rank = None

        return RankResult(rank=rank, recommendations=recs)
