# temporal_eval/simulate/context.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from temporal_eval.config.simulate_config import SimulateConfig
from temporal_eval.simulate.core.data import RatingDataset
from temporal_eval.simulate.result import SimulationResult


@dataclass
class SimulateContext:
    """
    SimulateContext（FROZEN）

    Contract:
    - cfg is READ-ONLY; no step mutates it
    - Step 之间唯一通信载体
    - 只存“事实 / 中间态”，不存业务逻辑
    """

    # injected once
    cfg: SimulateConfig

    # resolved by steps
    dataset: Optional[RatingDataset] = None

    # results
    result: Optional[SimulationResult] = None
