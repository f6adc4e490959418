# temporal_eval/models/factory.py
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Type

from temporal_eval import logs
from temporal_eval.config.simulate_config import AlgorithmConfig
from temporal_eval.models.base import Recommender
from temporal_eval.models.bias import BiasRecommender
from temporal_eval.models.popular import PopularRecommender

if TYPE_CHECKING:
    from temporal_eval.simulate.core.data import WindowedView


class AlgorithmFactory:
    """
    AlgorithmFactory (FINAL / FROZEN)

    注册式 Recommender 构造器

    All algorithms must be explicitly registered in AlgorithmFactory._REGISTRY.
    Every registered class exposes `train(ratings: pd.DataFrame, **params)`.
    Adding an algorithm requires a deliberate code change here.
    """

    _REGISTRY: Dict[str, Type[Recommender]] = {
        "bias": BiasRecommender,
        "popular": PopularRecommender,
    }

    @classmethod
    def resolve(cls, cfg: AlgorithmConfig | Dict) -> AlgorithmConfig:
        """
        冻结规则：
          - cfg["type"] 必须存在
          - 未注册 type -> crash
        """
        if isinstance(cfg, dict):
            if "type" not in cfg:
                raise KeyError("[AlgorithmFactory] missing 'type' in algorithm config")
            cfg = AlgorithmConfig(**cfg)

        if cfg.type not in cls._REGISTRY:
            raise ValueError(f"[AlgorithmFactory] unknown algorithm type: {cfg.type}")
        return cfg

    @classmethod
    def create(cls, cfg: AlgorithmConfig | Dict, view: "WindowedView") -> Recommender:
        cfg = cls.resolve(cfg)
        algo_cls = cls._REGISTRY[cfg.type]

        ratings = view.table().to_pandas()
        return algo_cls.train(ratings, **cfg.params)


class ModelBuilder:
    """
    Builds a fresh Recommender from (training config, window).

    Subclass and override build() to plug an external engine in.
    """

    def build(self, algorithm: AlgorithmConfig, view: "WindowedView") -> Recommender:
        logs.debug(
            f"[ModelBuilder] build type={algorithm.type} "
            f"limit={view.limit} ratings={view.num_ratings}"
        )
        return AlgorithmFactory.create(algorithm, view)
