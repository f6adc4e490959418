#!filepath: temporal_eval/models/popular.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import pandas as pd

from temporal_eval.models.base import RankingRecommender
from temporal_eval.models.topn import top_n


class PopularRecommender(RankingRecommender):
    """
    Rank-only model: orders candidates by rating count in the training window.

    No point predictions (predict() returns None), so it never moves the RMSE.
    Items never rated in the window are dropped from the ranking.
    """

    def __init__(self, counts: Dict[int, int]):
        self.counts = counts

    @classmethod
    def train(cls, ratings: pd.DataFrame) -> "PopularRecommender":
        counts = ratings["item"].value_counts()
        return cls({int(k): int(v) for k, v in counts.items()})

    def predict(self, user: int, item: int) -> Optional[float]:
        return None

    def recommend(self, user: int, n: int, candidates: Iterable[int]) -> List[int]:
        scores = {int(i): float(self.counts.get(int(i), 0)) for i in candidates}
        return top_n(scores, n, threshold=lambda c: c > 0)

    def close(self) -> None:
        self.counts = {}
