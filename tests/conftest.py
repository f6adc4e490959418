# tests/conftest.py
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Tuple

import pytest
from loguru import logger

from temporal_eval.config.simulate_config import AlgorithmConfig, SimulateConfig
from temporal_eval.models.base import RankingRecommender, Recommender
from temporal_eval.models.factory import ModelBuilder
from temporal_eval.simulate.core.data import RatingDataset, WindowedView
from temporal_eval.simulate.core.events import Rating


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)  # or sys.stderr
    yield


# =============================================================================
# Stub models (module level, shared through fixtures)
# =============================================================================

class ConstantRecommender(RankingRecommender):
    """
    Predicts a constant; ranks candidates by ascending item id.
    """

    def __init__(self, value: Optional[float], view: WindowedView):
        self.value = value
        self.view = view
        self.closed = False
        self.rank_calls: List[Tuple[int, int, List[int]]] = []

    def predict(self, user: int, item: int) -> Optional[float]:
        assert not self.closed, "closed model used"
        return self.value

    def recommend(self, user: int, n: int, candidates: Iterable[int]) -> List[int]:
        assert not self.closed, "closed model used"
        cands = sorted(int(c) for c in candidates)
        self.rank_calls.append((user, n, cands))
        return cands[:n]

    def close(self) -> None:
        self.closed = True


class PredictOnlyRecommender(Recommender):
    """
    No ranking capability.
    """

    def __init__(self, values: Dict[Tuple[int, int], float]):
        self.values = values
        self.closed = False

    def predict(self, user: int, item: int) -> Optional[float]:
        return self.values.get((user, item))

    def close(self) -> None:
        self.closed = True


class RecordingBuilder(ModelBuilder):
    """
    Records every window it is asked to build from.
    """

    def __init__(self, make: Callable[[WindowedView], Recommender]):
        self.make = make
        self.views: List[WindowedView] = []
        self.models: List[Recommender] = []

    def build(self, algorithm: AlgorithmConfig, view: WindowedView) -> Recommender:
        self.views.append(view)
        model = self.make(view)
        self.models.append(model)
        return model


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def make_dataset():
    """
    rows: iterable of (user, item, value, timestamp)
    """

    def _make(rows) -> RatingDataset:
        return RatingDataset.from_ratings(Rating(*row) for row in rows)

    return _make


@pytest.fixture
def constant_builder():
    def _make(value: Optional[float] = 3.0) -> RecordingBuilder:
        return RecordingBuilder(lambda view: ConstantRecommender(value, view))

    return _make


@pytest.fixture
def predict_only_builder():
    def _make(values: Dict[Tuple[int, int], float]) -> RecordingBuilder:
        return RecordingBuilder(lambda view: PredictOnlyRecommender(values))

    return _make


@pytest.fixture
def make_cfg(tmp_path):
    """
    Minimal SimulateConfig with one stub algorithm and a CSV output file.
    """

    def _make(**overrides) -> SimulateConfig:
        raw = {
            "name": "test",
            "algorithm": {"name": "stub", "type": "bias"},
            "rebuild_period": 10,
            "list_size": 3,
            "output_file": str(tmp_path / "out" / "predictions.csv"),
            "seed": 7,
            "progress_every": 0,
        }
        raw.update(overrides)
        return SimulateConfig(**raw)

    return _make


@pytest.fixture
def recording_builder():
    def _make(make: Callable[[WindowedView], Recommender]) -> RecordingBuilder:
        return RecordingBuilder(make)

    return _make
