from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from temporal_eval import logs
from temporal_eval.models.base import Recommender
"""
{#!filepath: temporal_eval/simulate/core/schedule.py}

RebuildScheduler / ModelSlot (FINAL / FROZEN)

States:
- NoModel            (initial, build_time is None)
- HasModel(build_t)  (after the first timed event)

Transition (per timed event t):
- NoModel                           -> HasModel(t), rebuild
- HasModel(b) and t - b >= period   -> HasModel(t), rebuild
- otherwise                         -> unchanged

Untimed events never transition.
"""


@dataclass
class RebuildScheduler:
    period: int
    build_time: Optional[int] = None
    builds: int = 0

    def __post_init__(self):
        if self.period <= 0:
            raise ValueError(f"[RebuildScheduler] period must be > 0, got {self.period}")

    @property
    def has_model(self) -> bool:
        return self.build_time is not None

    def is_stale(self, ts: Optional[int]) -> bool:
        if ts is None:
            return False
        if self.build_time is None:
            return True
        return ts - self.build_time >= self.period

    def mark_built(self, ts: int) -> None:
        if self.build_time is not None and ts < self.build_time:
            raise ValueError(
                f"[RebuildScheduler] build time moved backwards {self.build_time} -> {ts}"
            )
        self.build_time = int(ts)
        self.builds += 1

    def model_age(self, ts: Optional[int]) -> Optional[int]:
        if ts is None or self.build_time is None:
            return None
        return ts - self.build_time


class ModelSlot:
    """
    Single-owner holder for the live Recommender.

    - replace(new): install `new`, then close the previous model
    - close(): release the live model (idempotent)
    - `with ModelSlot() as slot:` always closes on exit
    """

    def __init__(self) -> None:
        self._model: Optional[Recommender] = None

    @property
    def model(self) -> Optional[Recommender]:
        return self._model

    def replace(self, new: Recommender) -> None:
        old, self._model = self._model, new
        if old is not None and old is not new:
            logs.debug(f"[ModelSlot] close previous model {type(old).__name__}")
            old.close()

    def close(self) -> None:
        model, self._model = self._model, None
        if model is not None:
            model.close()

    def __enter__(self) -> "ModelSlot":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
