# temporal_eval/simulate/result.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SimulationResult:
    """
    SimulationResult (FINAL / FROZEN)

    不可变事实结果，用于：
      - result.json
      - 回归测试
    """

    # -----------------------
    # Experiment identity
    # -----------------------
    name: str
    algorithm: str
    rebuild_period: int
    list_size: int

    # -----------------------
    # Replay stats
    # -----------------------
    n_events: int
    n_predictions: int
    n_ranked: int
    n_hits: int
    builds: int

    # -----------------------
    # Accuracy
    # -----------------------
    rmse: float
    mean_reciprocal_rank: float

    # -----------------------
    # Time bounds (timed events only)
    # -----------------------
    start_ts: Optional[int] = None
    end_ts: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
