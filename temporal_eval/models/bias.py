#!filepath: temporal_eval/models/bias.py
from __future__ import annotations

"""
BiasRecommender (FINAL)

Damped baseline predictor:

    score(u, i) = mu + b_i + b_u

    b_i = sum(r_ui - mu) / (n_i + damping)
    b_u = sum(r_ui - mu - b_i) / (n_u + damping)

Unknown users / items contribute a zero offset. An empty training window
yields a model that cannot predict anything.
"""

from typing import Dict, Iterable, List, Optional

import pandas as pd

from temporal_eval.models.base import RankingRecommender
from temporal_eval.models.topn import top_n


class BiasRecommender(RankingRecommender):

    def __init__(
        self,
        *,
        mean: Optional[float],
        item_bias: Dict[int, float],
        user_bias: Dict[int, float],
    ):
        self.mean = mean
        self.item_bias = item_bias
        self.user_bias = user_bias

    @classmethod
    def train(cls, ratings: pd.DataFrame, *, damping: float = 0.0) -> "BiasRecommender":
        if damping < 0:
            raise ValueError(f"[BiasRecommender] damping must be >= 0, got {damping}")

        if ratings.empty:
            return cls(mean=None, item_bias={}, user_bias={})

        mu = float(ratings["rating"].mean())
        resid = ratings["rating"] - mu

        by_item = resid.groupby(ratings["item"]).agg(["sum", "count"])
        item_bias = by_item["sum"] / (by_item["count"] + damping)

        resid = resid - ratings["item"].map(item_bias)
        by_user = resid.groupby(ratings["user"]).agg(["sum", "count"])
        user_bias = by_user["sum"] / (by_user["count"] + damping)

        return cls(
            mean=mu,
            item_bias={int(k): float(v) for k, v in item_bias.items()},
            user_bias={int(k): float(v) for k, v in user_bias.items()},
        )

    def predict(self, user: int, item: int) -> Optional[float]:
        if self.mean is None:
            return None
        return self.mean + self.item_bias.get(item, 0.0) + self.user_bias.get(user, 0.0)

    def recommend(self, user: int, n: int, candidates: Iterable[int]) -> List[int]:
        if self.mean is None:
            return []
        scores = {int(i): self.predict(user, int(i)) for i in candidates}
        return top_n(scores, n)

    def close(self) -> None:
        self.item_bias = {}
        self.user_bias = {}
