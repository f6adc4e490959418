from __future__ import annotations

"""
Recommender (FINAL / FROZEN)

Recommender defines HOW a built model is used during replay.

Responsibilities:
- Score one (user, item) pair
- Optionally order a candidate set (RankingRecommender)
- Release held resources on close()

Non-responsibilities:
- Deciding when to rebuild (RebuildScheduler)
- Choosing candidates (CandidateSampler)
- Knowing about simulated time

A Recommender is built from exactly one WindowedView and never sees rows
beyond it.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional


class Recommender(ABC):
    """
    Runtime-only model abstraction.
    """

    @abstractmethod
    def predict(self, user: int, item: int) -> Optional[float]:
        """
        Point prediction, or None when the model cannot score the pair.
        """
        raise NotImplementedError

    def close(self) -> None:
        """
        Release held resources. Called exactly once by the owner.
        """

    def __enter__(self) -> "Recommender":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class RankingRecommender(Recommender):
    """
    Recommender that can also order a candidate set.
    """

    @abstractmethod
    def recommend(self, user: int, n: int, candidates: Iterable[int]) -> List[int]:
        """
        Return at most n items drawn from `candidates`, best first.
        """
        raise NotImplementedError
