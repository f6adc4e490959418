"""
Recommender interface + built-in reference algorithms.

The replay core only depends on `Recommender` / `RankingRecommender` and on
`ModelBuilder.build(algorithm, view)`; anything implementing those can be
replayed.
"""
from .base import Recommender, RankingRecommender
from .factory import AlgorithmFactory, ModelBuilder

__all__ = ["Recommender", "RankingRecommender", "AlgorithmFactory", "ModelBuilder"]
